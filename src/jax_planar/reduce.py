"""Fixed-joint reduction: fold zero-dof bodies into their parents."""

import logging

from .core import Model
from .transforms import planar

logger = logging.getLogger(__name__)


def remove_fixed_joints(model: Model) -> int:
    """Eliminate every body attached by a fixed joint.

    Fixed bodies are processed from the back of the arena, so a fixed body's
    own fixed descendants have already been folded into it. Each body's
    geometry is moved into its parent's frame and appended to the parent,
    its spatial inertia is added to the parent's, and the body is removed
    with its children reattached to the parent.

    Returns:
        Number of bodies removed.
    """
    fixed = [body.index for body in model.bodies if not body.is_root and body.is_fixed]

    for index in reversed(fixed):
        body = model.bodies[index]
        parent = model.parent_of(body)

        for points in body.geometry:
            parent.geometry.append(planar.apply(body.T_tree, points))

        if body.inertia is not None:
            inertia = body.X_tree.T @ body.inertia @ body.X_tree
            parent.inertia = inertia if parent.inertia is None else parent.inertia + inertia

        model.remove_body(index)

    if fixed:
        model.assign_dof_numbers()
        logger.info("removed %d fixed joints", len(fixed))
    return len(fixed)
