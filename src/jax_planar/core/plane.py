"""Plane configuration: which 3D axes a planar model keeps and which it collapses.

A planar model lives in the plane spanned by ``x_axis`` and ``y_axis``; the
``view_axis`` points out of (or, for the ``right`` view, into) the page.
Revolute joints turn about the view axis and prismatic joints slide within
the plane.
"""

import jax.numpy as jnp
from jax import Array
from flax import struct

# (x_axis, y_axis, view_axis, x label, y label, gravity)
_VIEWS = {
    "front": ([0.0, 1.0, 0.0], [0.0, 0.0, 1.0], [1.0, 0.0, 0.0], "y", "z", [0.0, -9.81]),
    "right": ([1.0, 0.0, 0.0], [0.0, 0.0, 1.0], [0.0, 1.0, 0.0], "x", "z", [0.0, -9.81]),
    "top": ([1.0, 0.0, 0.0], [0.0, 1.0, 0.0], [0.0, 0.0, 1.0], "x", "y", [0.0, 0.0]),
}

DEFAULT_VIEW = "right"
AXIS_TOLERANCE = 1e-6


@struct.dataclass
class PlaneConfig:
    """Immutable description of the modelling plane.

    Attributes:
        view: Name of the view this plane was built from ("front", "right" or "top").
        x_axis: (3,) world axis mapped to the model's in-plane x.
        y_axis: (3,) world axis mapped to the model's in-plane y. It also plays
                the role of the "z" direction for prismatic joints.
        view_axis: (3,) out-of-plane axis collapsed by the projection.
        gravity: (2,) gravity vector in plane coordinates.
        x_axis_label: Name of the world axis shown as horizontal.
        y_axis_label: Name of the world axis shown as vertical.
        axis_tol: Tolerance used for every axis-alignment check.
    """
    view: str = struct.field(pytree_node=False)
    x_axis: Array
    y_axis: Array
    view_axis: Array
    gravity: Array
    x_axis_label: str = struct.field(pytree_node=False)
    y_axis_label: str = struct.field(pytree_node=False)
    axis_tol: float = struct.field(pytree_node=False, default=AXIS_TOLERANCE)

    @classmethod
    def from_view(cls, view: str = DEFAULT_VIEW, axis_tol: float = AXIS_TOLERANCE) -> "PlaneConfig":
        """Build the plane for one of the supported views (case-insensitive)."""
        key = view.lower()
        if key not in _VIEWS:
            raise ValueError(
                f"unsupported view '{view}', expected one of {sorted(_VIEWS)}"
            )
        x_axis, y_axis, view_axis, x_label, y_label, gravity = _VIEWS[key]
        return cls(
            view=key,
            x_axis=jnp.array(x_axis),
            y_axis=jnp.array(y_axis),
            view_axis=jnp.array(view_axis),
            gravity=jnp.array(gravity),
            x_axis_label=x_label,
            y_axis_label=y_label,
            axis_tol=axis_tol,
        )

    @property
    def reflects_roots(self) -> bool:
        """True when the view axis points into the page and roots must be mirrored."""
        return self.view == "right"

    def project(self, xyz: Array) -> Array:
        """Project (..., 3) world vectors onto (..., 2) plane coordinates."""
        basis = jnp.stack([self.x_axis, self.y_axis])
        return jnp.einsum("ij,...j->...i", basis, jnp.asarray(xyz, dtype=jnp.float64))
