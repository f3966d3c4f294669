"""Error taxonomy for planar model construction and kinematics.

All errors derive from ``ValueError`` so callers that guard model loading
with ``except ValueError`` keep working.
"""


class PlanarModelError(ValueError):
    """Base class for every error raised while building or using a planar model."""


class StructuralError(PlanarModelError):
    """The body tree is malformed (duplicate joint target, unknown link, loop)."""


class AxisAlignmentError(PlanarModelError):
    """A joint axis is inconsistent with the chosen plane."""


class UnsupportedAxisError(PlanarModelError):
    """A prismatic axis lies in the plane but on neither supported direction."""


class UnsupportedJointTypeError(PlanarModelError):
    """The joint type tag has no planar counterpart."""


class OutOfPlaneRotationError(PlanarModelError):
    """A joint origin rotates about an axis other than the view axis."""


class DimensionMismatchError(PlanarModelError):
    """An input vector or matrix has the wrong size."""
