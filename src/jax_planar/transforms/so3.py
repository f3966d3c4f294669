"""SO(3) and so(3) Lie group operations in JAX.

Planar models still read their joint origins as 3D roll-pitch-yaw triples.
This module provides just enough of SO(3) to turn those triples into an
axis-angle pair that can be checked against the view axis. All functions are
pure, JIT-able, and operate on JAX arrays.
"""

import jax
import jax.numpy as jnp
from typing import Tuple

Array = jax.Array


def log(R: Array) -> Array:
    """
    SO(3) logarithm map: convert rotation matrix to axis-angle vector.

    Args:
        R: (..., 3, 3) array of rotation matrices

    Returns:
        (..., 3) array of axis-angle vectors
    """
    trace = jnp.trace(R, axis1=-2, axis2=-1)

    cos_angle = (trace - 1.0) / 2.0
    cos_angle = jnp.clip(cos_angle, -1.0, 1.0)  # Numerical stability
    angle = jnp.arccos(cos_angle)

    small_angle = angle < 1e-8
    near_pi = jnp.abs(angle - jnp.pi) < 1e-8

    sin_angle = jnp.where(small_angle, 1.0 - angle**2 / 6.0, jnp.sin(angle))

    # axis = [R[2,1] - R[1,2], R[0,2] - R[2,0], R[1,0] - R[0,1]] / (2 * sin(angle))
    skew_part = jnp.stack([
        R[..., 2, 1] - R[..., 1, 2],
        R[..., 0, 2] - R[..., 2, 0],
        R[..., 1, 0] - R[..., 0, 1]
    ], axis=-1)

    axis_small = skew_part / 2.0
    axis_general = skew_part / (2.0 * sin_angle[..., None])

    # For angles near π, use the column of (R + I) / 2 with the largest diagonal
    B = (R + jnp.eye(3)) / 2.0
    diag_vals = jnp.diagonal(B, axis1=-2, axis2=-1)
    max_idx = jnp.argmax(diag_vals, axis=-1)
    axis_pi = jnp.take_along_axis(B, max_idx[..., None, None], axis=-1)[..., 0]
    axis_pi = axis_pi / jnp.linalg.norm(axis_pi, axis=-1, keepdims=True)

    axis = jnp.where(
        small_angle[..., None],
        axis_small,
        jnp.where(
            near_pi[..., None],
            axis_pi,
            axis_general
        )
    )

    return angle[..., None] * axis


def from_rpy(rpy: Array) -> Array:
    """
    Convert URDF roll-pitch-yaw angles to a rotation matrix.

    Args:
        rpy: (3,) array of [roll, pitch, yaw] angles in radians.

    Returns:
        (3, 3) rotation matrix R = Rz(yaw) @ Ry(pitch) @ Rx(roll).
    """
    roll, pitch, yaw = rpy[0], rpy[1], rpy[2]
    cr, sr = jnp.cos(roll), jnp.sin(roll)
    cp, sp = jnp.cos(pitch), jnp.sin(pitch)
    cy, sy = jnp.cos(yaw), jnp.sin(yaw)

    R_x = jnp.array([[1.0, 0.0, 0.0], [0.0, cr, -sr], [0.0, sr, cr]])
    R_y = jnp.array([[cp, 0.0, sp], [0.0, 1.0, 0.0], [-sp, 0.0, cp]])
    R_z = jnp.array([[cy, -sy, 0.0], [sy, cy, 0.0], [0.0, 0.0, 1.0]])

    return R_z @ R_y @ R_x


def to_axis_angle(R: Array) -> Tuple[Array, Array]:
    """
    Split a rotation matrix into a unit axis and an angle in [0, π].

    A rotation closer to identity than 1e-9 rad yields a zero axis and a
    zero angle.

    Args:
        R: (..., 3, 3) rotation matrix

    Returns:
        Tuple of (..., 3) unit axis and (...,) angle
    """
    w = log(R)
    angle = jnp.linalg.norm(w, axis=-1)
    nonzero = angle > 1e-9
    safe_angle = jnp.where(nonzero, angle, 1.0)
    axis = jnp.where(nonzero[..., None], w / safe_angle[..., None], 0.0)
    return axis, jnp.where(nonzero, angle, 0.0)
