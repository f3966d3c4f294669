"""Featherstone form: the flattened arrays consumed by recursive dynamics.

Array position ``i - 1`` holds the body whose dof number is ``i``. Parent
entries are dof numbers too, with ``0`` standing for a root (the fixed base),
so that ``parent[i - 1] < i`` always holds: a single forward sweep over
1..NB visits parents first, and a backward sweep NB..1 visits children first.
"""

import logging
from typing import Tuple

import jax.numpy as jnp
from jax import Array
from flax import struct

from ..errors import StructuralError
from .model import Model

logger = logging.getLogger(__name__)

ROOT_PARENT = 0


@struct.dataclass
class Featherstone:
    """Immutable PyTree holding a model in Featherstone form.

    Attributes:
        NB: Number of dofs (bodies with a joint). Static for JIT compilation.
        link_names: Link name of each dof body, in dof order. Static.
        parent: (NB,) int32 parent dof numbers, ROOT_PARENT for the base.
        jcode: (NB,) int32 joint codes (1 revolute, 2 prismatic-x, 3 prismatic-z).
        X_tree: (NB, 3, 3) spatial transforms from parent to body frame.
        inertia: (NB, 3, 3) spatial inertias; zeros where a body carries none.
        damping: (NB,) joint damping coefficients.
    """
    NB: int = struct.field(pytree_node=False)
    link_names: Tuple[str, ...] = struct.field(pytree_node=False)
    parent: Array
    jcode: Array
    X_tree: Array
    inertia: Array
    damping: Array


def extract_featherstone(model: Model) -> Featherstone:
    """Flatten a reduced model into Featherstone form.

    The result is also stored on ``model.featherstone``; any later structural
    edit of the model clears it.

    Raises:
        StructuralError: if fixed joints remain or a parent does not precede
            its child in dof order.
    """
    fixed = [body.link_name for body in model.bodies if not body.is_root and body.is_fixed]
    if fixed:
        raise StructuralError(f"fixed joints must be removed before extraction: {fixed}")

    NB = model.assign_dof_numbers()
    dof_bodies = sorted(
        (body for body in model.bodies if body.dofnum is not None),
        key=lambda body: body.dofnum,
    )

    parents = []
    for body in dof_bodies:
        parent = model.parent_of(body)
        parent_dof = ROOT_PARENT if parent.dofnum is None else parent.dofnum
        if parent_dof >= body.dofnum:
            raise StructuralError(
                f"link '{body.link_name}' (dof {body.dofnum}) precedes its parent "
                f"'{parent.link_name}' (dof {parent_dof}); sort the model first"
            )
        parents.append(parent_dof)

    if NB:
        X_tree = jnp.stack([body.X_tree for body in dof_bodies])
        inertia = jnp.stack([
            body.inertia if body.inertia is not None else jnp.zeros((3, 3))
            for body in dof_bodies
        ])
    else:
        X_tree = jnp.zeros((0, 3, 3))
        inertia = jnp.zeros((0, 3, 3))

    featherstone = Featherstone(
        NB=NB,
        link_names=tuple(body.link_name for body in dof_bodies),
        parent=jnp.array(parents, dtype=jnp.int32),
        jcode=jnp.array([int(body.jcode) for body in dof_bodies], dtype=jnp.int32),
        X_tree=X_tree,
        inertia=inertia,
        damping=jnp.array([body.damping for body in dof_bodies], dtype=jnp.float64),
    )
    model.featherstone = featherstone
    logger.debug("extracted Featherstone form with NB=%d", NB)
    return featherstone
