"""Forward kinematics for planar models, with a whole-tree cache.

Every body remembers the ``[q, qd]`` slice its world transform ``T`` and
velocity ``v`` were computed from. The cache is valid only when all of those
slices match the requested coordinates; a single mismatch anywhere triggers
a recomputation of the entire tree.
"""

import logging
from typing import Dict, Optional, Tuple

import jax.numpy as jnp
from jax import Array

from .core import Body, Model
from .errors import DimensionMismatchError, StructuralError
from .transforms import planar

logger = logging.getLogger(__name__)


def _coordinates(model: Model, q: Array, qd: Optional[Array]) -> Tuple[Array, Array]:
    """Validate and convert (q, qd) to float arrays of length NB."""
    NB = model.num_dof
    q = jnp.asarray(q, dtype=jnp.float64)
    qd = jnp.zeros(NB) if qd is None else jnp.asarray(qd, dtype=jnp.float64)
    for name, values in (("q", q), ("qd", qd)):
        if values.shape != (NB,):
            raise DimensionMismatchError(
                f"{name} must have shape ({NB},), got {values.shape}"
            )
    return q, qd


def _cache_key(body: Body, q: Array, qd: Array) -> Array:
    """The slice of (q, qd) a body's kinematics depend on directly."""
    if body.is_root:
        return jnp.zeros(0)
    if body.dofnum is None:
        return jnp.zeros(2)
    return jnp.array([q[body.dofnum - 1], qd[body.dofnum - 1]])


def kinematics_cache_valid(model: Model, q: Array, qd: Optional[Array] = None) -> bool:
    """Check whether the cached kinematics of every body match (q, qd).

    Args:
        model: Model whose bodies carry the cache
        q: Joint coordinates of shape (NB,)
        qd: Joint velocities of shape (NB,), zeros if omitted

    Returns:
        True only if every body's cache key matches within ``model.cache_tol``
    """
    q, qd = _coordinates(model, q, qd)
    for body in model.bodies:
        if body.cached_q_qd is None:
            return False
        key = _cache_key(body, q, qd)
        if key.shape != body.cached_q_qd.shape:
            return False
        if not bool(jnp.all(jnp.abs(key - body.cached_q_qd) < model.cache_tol)):
            return False
    return True


def do_kinematics(model: Model, q: Array, qd: Optional[Array] = None) -> Model:
    """Update the world transform and velocity of every body.

    Bodies are visited in arena order, which ``finalize`` makes
    parent-before-child. The joint coordinate of a body is
    ``jsign * q[dofnum - 1]``; fixed bodies (only present in unreduced
    models) contribute no motion.

    Args:
        model: Model to update in place
        q: Joint coordinates of shape (NB,)
        qd: Joint velocities of shape (NB,), zeros if omitted

    Returns:
        The model, for chaining
    """
    q, qd = _coordinates(model, q, qd)
    if kinematics_cache_valid(model, q, qd):
        return model

    logger.debug("computing kinematics for %d bodies", len(model.bodies))
    for body in model.bodies:
        if body.is_root:
            body.T = body.T_tree
            body.v = jnp.zeros(3)
        else:
            if body.parent > body.index:
                raise StructuralError(
                    f"link '{body.link_name}' precedes its parent; sort the model first"
                )
            if body.dofnum is None and not body.is_fixed:
                raise StructuralError(
                    f"link '{body.link_name}' has no dof number; finalize the model first"
                )
            parent = model.bodies[body.parent]
            if body.dofnum is None:
                qi, qdi = 0.0, 0.0
            else:
                qi = body.jsign * q[body.dofnum - 1]
                qdi = body.jsign * qd[body.dofnum - 1]

            TJ = planar.joint_transform(body.jcode, qi)
            S = planar.motion_subspace(body.jcode)
            body.T = parent.T @ body.T_tree @ TJ
            # Parent angular rate coupled with the new body's position
            coupling = jnp.concatenate([jnp.zeros(1), parent.v[0] * planar.get_position(body.T)])
            body.v = parent.v + S * qdi + coupling
        body.cached_q_qd = _cache_key(body, q, qd)

    model.recompute_count += 1
    return model


def forward_kinematics(model: Model, q: Array, qd: Optional[Array] = None) -> Dict[str, Array]:
    """Compute forward kinematics for all bodies in the model.

    Args:
        model: Model containing the planar body tree
        q: Joint coordinates of shape (NB,)
        qd: Joint velocities of shape (NB,), zeros if omitted

    Returns:
        Dictionary mapping link names to their 3x3 homogeneous world transforms
    """
    do_kinematics(model, q, qd)
    return {body.link_name: body.T for body in model.bodies}


def body_velocities(model: Model, q: Array, qd: Optional[Array] = None) -> Dict[str, Array]:
    """Planar velocities ``[omega, vx, vy]`` of all bodies, keyed by link name."""
    do_kinematics(model, q, qd)
    return {body.link_name: body.v for body in model.bodies}


def body_poses(model: Model, q: Array, qd: Optional[Array] = None) -> Dict[str, Array]:
    """World poses ``[x, y, theta]`` of all bodies, keyed by link name."""
    do_kinematics(model, q, qd)
    return {
        body.link_name: jnp.concatenate([planar.get_position(body.T), planar.get_angle(body.T)[None]])
        for body in model.bodies
    }
