"""Model builder: turns joint descriptors into planar body-tree structure.

Each joint is first expanded into a chain of joint specifications by the pure
function ``joint_chain`` (one entry for ordinary joints, three for a planar
joint), then ``parse_joint`` writes that chain into the model, synthesising
the intermediate bodies a planar joint needs. All validation happens before
the model is touched, so a rejected joint leaves the model unchanged.
"""

import logging
from dataclasses import dataclass
from typing import Iterable, List, NamedTuple, Optional

import jax.numpy as jnp
import numpy as np
from jax import Array

from .core import (
    Body,
    FIXED_PITCH,
    JointCode,
    Model,
    PlaneConfig,
    PRISMATIC_PITCH,
    REVOLUTE_PITCH,
    extract_featherstone,
)
from .errors import (
    AxisAlignmentError,
    DimensionMismatchError,
    OutOfPlaneRotationError,
    StructuralError,
    UnsupportedAxisError,
    UnsupportedJointTypeError,
)
from .reduce import remove_fixed_joints
from .transforms import planar, so3

logger = logging.getLogger(__name__)

_EPS = np.finfo(np.float64).eps

# Link-name suffix of the bodies synthesised for a planar joint
_CARRIER_SUFFIX = {JointCode.PRISMATIC_X: "x", JointCode.PRISMATIC_Z: "z"}


def _vector(values, default) -> Array:
    if values is None:
        values = default
    values = np.asarray(values, dtype=np.float64)
    if values.size != 3:
        raise DimensionMismatchError(f"expected a 3-vector, got {values.tolist()}")
    return jnp.asarray(values.reshape(3))


@dataclass
class JointDescriptor:
    """One joint as handed over by a document parser.

    Attributes:
        name: Joint name.
        type: Joint type tag (revolute, continuous, prismatic, planar, fixed).
        parent: Parent link name.
        child: Child link name.
        xyz: (3,) origin translation, defaults to zeros.
        rpy: (3,) origin roll-pitch-yaw, defaults to zeros.
        axis: (3,) joint axis, defaults to [1, 0, 0]; stored normalised.
        damping: Viscous damping, defaults to 0.
    """
    name: str
    type: str
    parent: str
    child: str
    xyz: Optional[Array] = None
    rpy: Optional[Array] = None
    axis: Optional[Array] = None
    damping: float = 0.0

    def __post_init__(self):
        self.xyz = _vector(self.xyz, [0.0, 0.0, 0.0])
        self.rpy = _vector(self.rpy, [0.0, 0.0, 0.0])
        axis = _vector(self.axis, [1.0, 0.0, 0.0])
        self.axis = axis / (jnp.linalg.norm(axis) + _EPS)
        self.damping = float(self.damping)


class JointSpec(NamedTuple):
    """Joint semantics for one body of a joint's chain."""
    jcode: JointCode
    pitch: float
    joint_axis: Array
    jsign: int
    damping: float


def _sign(value: float) -> int:
    return 1 if value >= 0 else -1


def joint_chain(descriptor: JointDescriptor, plane: PlaneConfig) -> List[JointSpec]:
    """Expand a joint into the joint specs of the bodies it drives.

    The last entry always carries the joint's own semantics and belongs to
    the child link; earlier entries (planar joints only) belong to
    synthesised bodies between parent and child.

    Raises:
        AxisAlignmentError: if the axis does not suit the plane.
        UnsupportedAxisError: for in-plane prismatic axes off the x/z directions.
        UnsupportedJointTypeError: for type tags without a planar counterpart.
    """
    axis = descriptor.axis
    tol = plane.axis_tol
    damping = descriptor.damping
    view_dot = float(jnp.dot(axis, plane.view_axis))
    kind = descriptor.type.lower()

    if kind in ("revolute", "continuous"):
        if not abs(view_dot) > 1 - tol:
            raise AxisAlignmentError(
                f"joint '{descriptor.name}': revolute joints must align with the "
                f"view axis {plane.view_axis.tolist()}, got axis {axis.tolist()}"
            )
        return [JointSpec(JointCode.REVOLUTE, REVOLUTE_PITCH, axis, _sign(view_dot), damping)]

    if kind == "prismatic":
        if abs(view_dot) > tol:
            raise AxisAlignmentError(
                f"joint '{descriptor.name}': prismatic joints must be orthogonal to the "
                f"view axis {plane.view_axis.tolist()}, got axis {axis.tolist()}"
            )
        x_dot = float(jnp.dot(axis, plane.x_axis))
        z_dot = float(jnp.dot(axis, plane.y_axis))
        if abs(x_dot) > 1 - tol:
            return [JointSpec(JointCode.PRISMATIC_X, PRISMATIC_PITCH, axis, _sign(x_dot), damping)]
        if z_dot > 1 - tol:
            return [JointSpec(JointCode.PRISMATIC_Z, PRISMATIC_PITCH, axis, _sign(z_dot), damping)]
        raise UnsupportedAxisError(
            f"joint '{descriptor.name}': prismatic axis {axis.tolist()} must lie along "
            f"the plane's x axis or its positive z axis"
        )

    if kind == "planar":
        if not abs(view_dot) > 1 - tol:
            raise AxisAlignmentError(
                f"joint '{descriptor.name}': planar joints are only supported "
                f"about the view axis {plane.view_axis.tolist()}"
            )
        jsign = _sign(view_dot)
        return [
            JointSpec(JointCode.PRISMATIC_X, PRISMATIC_PITCH, plane.x_axis, jsign, damping),
            JointSpec(JointCode.PRISMATIC_Z, PRISMATIC_PITCH, plane.y_axis, jsign, damping),
            JointSpec(JointCode.REVOLUTE, REVOLUTE_PITCH, axis, jsign, damping),
        ]

    if kind == "fixed":
        return [JointSpec(JointCode.FIXED, FIXED_PITCH, axis, 1, damping)]

    raise UnsupportedJointTypeError(
        f"joint '{descriptor.name}': joint type '{descriptor.type}' is not supported "
        f"in planar models"
    )


def plane_rotation_angle(rpy: Array, plane: PlaneConfig) -> float:
    """Angle of a roll-pitch-yaw rotation about the view axis.

    Raises:
        OutOfPlaneRotationError: if the rotation axis is not parallel to the
            view axis.
    """
    rpy = jnp.asarray(rpy, dtype=jnp.float64)
    if not bool(jnp.any(rpy != 0)):
        return 0.0

    axis, angle = so3.to_axis_angle(so3.from_rpy(rpy))
    angle = float(angle)
    if angle == 0.0:
        return 0.0

    view_dot = float(jnp.dot(axis, plane.view_axis))
    if abs(view_dot) < 1 - plane.axis_tol:
        raise OutOfPlaneRotationError(
            f"rotation rpy={rpy.tolist()} turns about {axis.tolist()}, which is out of "
            f"the plane with view axis {plane.view_axis.tolist()}"
        )
    return -angle if view_dot < 0 else angle


def parse_joint(
    model: Model,
    descriptor: JointDescriptor,
    parent: Optional[Body] = None,
    child: Optional[Body] = None,
) -> Body:
    """Connect ``child`` to ``parent`` according to ``descriptor``.

    Bodies not passed explicitly are looked up by the descriptor's link
    names. For planar joints two carrier bodies ``<joint>_x`` and
    ``<joint>_z`` are appended to the model and chained between parent and
    child; the joint origin is then applied to the first carrier.

    Returns:
        The child body.

    Raises:
        StructuralError: if the child already has a parent.
        PlanarModelError: any validation error from ``joint_chain`` or
            ``plane_rotation_angle``.
    """
    plane = model.plane
    if parent is None:
        parent = model.find_link(descriptor.parent)
    if child is None:
        child = model.find_link(descriptor.child)

    if child is parent:
        raise StructuralError(
            f"joint '{descriptor.name}' connects link '{child.link_name}' to itself"
        )
    if child.parent is not None:
        raise StructuralError(
            f"joint '{descriptor.name}': link '{child.link_name}' is already attached "
            f"to a parent by joint '{child.joint_name}'"
        )

    chain = joint_chain(descriptor, plane)
    angle = plane_rotation_angle(descriptor.rpy, plane)
    xy = plane.project(descriptor.xyz)

    bodies = []
    for spec in chain[:-1]:
        carrier = model.new_body(f"{descriptor.name}_{_CARRIER_SUFFIX[spec.jcode]}")
        carrier.joint_name = carrier.link_name
        bodies.append(carrier)
        logger.debug("synthesised body '%s' for planar joint '%s'", carrier.link_name, descriptor.name)
    child.joint_name = descriptor.name
    bodies.append(child)

    predecessor = parent
    for body, spec in zip(bodies, chain):
        body.parent = predecessor.index
        body.jcode = spec.jcode
        body.pitch = spec.pitch
        body.joint_axis = spec.joint_axis
        body.jsign = spec.jsign
        body.damping = spec.damping
        body.X_tree = jnp.eye(3)
        body.T_tree = jnp.eye(3)
        body.reflected = False
        predecessor = body

    first = bodies[0]
    first.X_tree = planar.xpln(angle, xy)
    first.T_tree = planar.homogeneous(angle, xy)

    model.invalidate()
    return child


def finalize(model: Model, remove_fixed: bool = True) -> Model:
    """Bring a freshly parsed model into its usable form.

    Sorts the arena parent-before-child, mirrors the roots for views whose
    axis points into the page, removes fixed joints, numbers the dofs and,
    when the model is reduced, extracts the Featherstone form.
    """
    model.sort_bodies()
    if model.plane.reflects_roots:
        model.reflect_roots()
    if remove_fixed:
        remove_fixed_joints(model)
    NB = model.assign_dof_numbers()
    if remove_fixed:
        extract_featherstone(model)
    logger.info("finalized planar model with %d bodies and %d dofs", len(model), NB)
    return model


def build_model(
    links: Iterable[str],
    joints: Iterable[JointDescriptor],
    view: str = "right",
    remove_fixed: bool = True,
) -> Model:
    """Build and finalize a model from link names and joint descriptors."""
    model = Model(PlaneConfig.from_view(view))
    for name in links:
        model.new_body(name)
    for descriptor in joints:
        parse_joint(model, descriptor)
    return finalize(model, remove_fixed=remove_fixed)
