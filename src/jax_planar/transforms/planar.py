"""Planar rigid-body transforms implemented with JAX.

Two representations of the same planar rigid motion are used side by side:

* homogeneous transforms ``T`` (3x3, rotation + translation) map points from a
  child frame into its parent frame. They drive kinematics and geometry.
* spatial coordinate transforms ``X`` (3x3, Featherstone planar form) map
  motion vectors ``[omega, vx, vy]`` from a parent frame into a child frame.
  They are what recursive dynamics algorithms consume.

``homogeneous(theta, r)`` and ``xpln(theta, r)`` describe the same frame
placement, so compositions agree: ``T_a @ T_b`` pairs with ``X_b @ X_a``.
"""

from enum import IntEnum
from typing import Union

import jax
import jax.numpy as jnp

Array = jax.Array
Scalar = Union[float, Array]


class JointCode(IntEnum):
    """Planar joint kinematic types. Codes 1-3 are Featherstone's planar jcodes."""

    FIXED = 0
    REVOLUTE = 1
    PRISMATIC_X = 2
    PRISMATIC_Z = 3


def rotmat(theta: Scalar) -> Array:
    """2x2 rotation matrix for angle ``theta``."""
    c, s = jnp.cos(theta), jnp.sin(theta)
    return jnp.array([[c, -s], [s, c]])


def homogeneous(theta: Scalar, r: Array) -> Array:
    """
    Homogeneous planar transform ``[[R(theta), r], [0, 0, 1]]``.

    Args:
        theta: rotation angle in radians
        r: (2,) translation of the child origin in parent coordinates

    Returns:
        (3, 3) homogeneous transformation matrix
    """
    r = jnp.asarray(r, dtype=jnp.float64)
    c, s = jnp.cos(theta), jnp.sin(theta)
    return jnp.array([
        [c, -s, r[0]],
        [s, c, r[1]],
        [0.0, 0.0, 1.0],
    ])


def xpln(theta: Scalar, r: Array) -> Array:
    """
    Planar spatial coordinate transform (Featherstone's ``plnr``).

    Transforms motion vectors ``[omega, vx, vy]`` from the parent frame to a
    child frame rotated by ``theta`` and displaced by ``r``.

    Args:
        theta: rotation angle in radians
        r: (2,) displacement of the child origin in parent coordinates

    Returns:
        (3, 3) spatial transform
    """
    r = jnp.asarray(r, dtype=jnp.float64)
    c, s = jnp.cos(theta), jnp.sin(theta)
    return jnp.array([
        [1.0, 0.0, 0.0],
        [s * r[0] - c * r[1], c, s],
        [c * r[0] + s * r[1], -s, c],
    ])


def joint_transform(jcode: int, q: Scalar) -> Array:
    """
    Homogeneous transform produced by a joint at coordinate ``q``.

    Args:
        jcode: JointCode of the joint
        q: joint coordinate (angle for revolute, displacement for prismatic)

    Returns:
        (3, 3) homogeneous transform from the joint's successor frame to its
        predecessor frame
    """
    if jcode == JointCode.REVOLUTE:
        return homogeneous(q, jnp.zeros(2))
    if jcode == JointCode.PRISMATIC_X:
        return homogeneous(0.0, jnp.array([q, 0.0]))
    if jcode == JointCode.PRISMATIC_Z:
        return homogeneous(0.0, jnp.array([0.0, q]))
    if jcode == JointCode.FIXED:
        return jnp.eye(3)
    raise ValueError(f"unrecognised joint code {jcode!r}")


def motion_subspace(jcode: int) -> Array:
    """Joint motion subspace ``S`` (the velocity Jacobian column) for ``jcode``."""
    if jcode == JointCode.REVOLUTE:
        return jnp.array([1.0, 0.0, 0.0])
    if jcode == JointCode.PRISMATIC_X:
        return jnp.array([0.0, 1.0, 0.0])
    if jcode == JointCode.PRISMATIC_Z:
        return jnp.array([0.0, 0.0, 1.0])
    if jcode == JointCode.FIXED:
        return jnp.zeros(3)
    raise ValueError(f"unrecognised joint code {jcode!r}")


def apply(T: Array, points: Array) -> Array:
    """
    Apply a homogeneous planar transform to points.

    Args:
        T: (3, 3) homogeneous transform
        points: (2,) or (N, 2) points

    Returns:
        transformed points with the same shape as ``points``
    """
    return jnp.einsum("ij,...j->...i", T[:2, :2], points) + T[:2, 2]


def get_position(T: Array) -> Array:
    """Extract the (2,) translation of a homogeneous transform."""
    return T[..., :2, 2]


def get_angle(T: Array) -> Array:
    """Extract the rotation angle of a homogeneous transform."""
    return jnp.arctan2(T[..., 1, 0], T[..., 0, 0])


def planar_inertia(mass: Scalar, com: Array, inertia: Scalar) -> Array:
    """
    Planar spatial inertia from mass parameters (Featherstone's ``mcI``).

    Args:
        mass: body mass
        com: (2,) centre of mass in body coordinates
        inertia: rotational inertia about the centre of mass

    Returns:
        (3, 3) spatial inertia acting on ``[omega, vx, vy]``
    """
    cx, cy = com[0], com[1]
    return jnp.array([
        [inertia + mass * (cx * cx + cy * cy), -mass * cy, mass * cx],
        [-mass * cy, mass, 0.0],
        [mass * cx, 0.0, mass],
    ])
