"""Model: the arena of Body records forming a planar body tree.

Bodies are addressed by their position in ``Model.bodies``; parent links are
arena indices. Structural edits (reordering, removal) re-index the arena and
invalidate every piece of derived state: cached kinematics and the extracted
Featherstone arrays.
"""

import heapq
import logging
from typing import TYPE_CHECKING, Dict, List, Optional, Sequence

import jax.numpy as jnp
from jax import Array

from ..errors import StructuralError
from .body import Body
from .plane import PlaneConfig

if TYPE_CHECKING:
    from .featherstone import Featherstone

logger = logging.getLogger(__name__)

# Mirrors the in-plane x axis when the view axis points into the page
ROOT_REFLECTION = jnp.diag(jnp.array([-1.0, 1.0, 1.0]))

CACHE_TOLERANCE = 1e-6


class Model:
    """Planar rigid-body model: ordered bodies plus the plane they live in.

    Attributes:
        plane: PlaneConfig fixing the model's basis and gravity.
        bodies: Bodies in construction order; ``bodies[i].index == i``.
        featherstone: Extracted Featherstone structure, None until extracted
                      and after any structural edit.
        recompute_count: Number of full forward-kinematics recomputations.
        cache_tol: Elementwise tolerance of the kinematics cache check.
    """

    def __init__(self, plane: Optional[PlaneConfig] = None, cache_tol: float = CACHE_TOLERANCE):
        self.plane = plane if plane is not None else PlaneConfig.from_view()
        self.bodies: List[Body] = []
        self.featherstone: Optional["Featherstone"] = None
        self.recompute_count = 0
        self.cache_tol = cache_tol

    @property
    def gravity(self) -> Array:
        return self.plane.gravity

    @property
    def x_axis_label(self) -> str:
        return self.plane.x_axis_label

    @property
    def y_axis_label(self) -> str:
        return self.plane.y_axis_label

    @property
    def link_names(self) -> List[str]:
        return [body.link_name for body in self.bodies]

    @property
    def num_dof(self) -> int:
        return sum(1 for body in self.bodies if body.dofnum is not None)

    def __len__(self) -> int:
        return len(self.bodies)

    def new_body(self, link_name: str = "") -> Body:
        """Append a fresh root body to the arena and return it."""
        body = Body(index=len(self.bodies), link_name=link_name)
        self.bodies.append(body)
        self.invalidate()
        return body

    def find_link(self, name: str) -> Body:
        for body in self.bodies:
            if body.link_name == name:
                return body
        raise StructuralError(f"link '{name}' not found in model")

    def parent_of(self, body: Body) -> Optional[Body]:
        return None if body.parent is None else self.bodies[body.parent]

    def children(self, index: int) -> List[Body]:
        return [body for body in self.bodies if body.parent == index]

    def roots(self) -> List[Body]:
        return [body for body in self.bodies if body.parent is None]

    def sort_bodies(self) -> None:
        """Reorder the arena so every parent precedes its children.

        Among bodies whose parents are already placed, the one constructed
        first goes first, so an already-sorted arena is left untouched.
        """
        children: Dict[int, List[int]] = {body.index: [] for body in self.bodies}
        for body in self.bodies:
            if body.parent is not None:
                children[body.parent].append(body.index)

        heap = [body.index for body in self.bodies if body.parent is None]
        heapq.heapify(heap)
        order = []
        while heap:
            index = heapq.heappop(heap)
            order.append(index)
            for child in children[index]:
                heapq.heappush(heap, child)

        if len(order) != len(self.bodies):
            placed = set(order)
            looped = [body.link_name for body in self.bodies if body.index not in placed]
            raise StructuralError(f"kinematic loop through links {looped}")

        if order != list(range(len(self.bodies))):
            self._reorder(order)

    def remove_body(self, index: int) -> Body:
        """Excise one body, reattaching its children to its parent.

        The children's reference transforms are composed with the removed
        body's so their placement relative to the grandparent is unchanged.
        """
        body = self.bodies[index]
        for child in self.children(index):
            child.X_tree = child.X_tree @ body.X_tree
            child.T_tree = body.T_tree @ child.T_tree
            child.parent = body.parent
            if body.is_root:
                child.reflected = body.reflected
        self._reorder([i for i in range(len(self.bodies)) if i != index])
        return body

    def assign_dof_numbers(self) -> int:
        """Number non-root, non-fixed bodies 1..NB in arena order and return NB."""
        dof = 0
        for body in self.bodies:
            if body.is_root or body.is_fixed:
                body.dofnum = None
            else:
                dof += 1
                body.dofnum = dof
        return dof

    def reflect_roots(self) -> int:
        """Mirror each root's reference transform about the in-plane y axis.

        Roots that already carry the reflection are left alone, so the
        model can be finalized again after further edits.

        Returns:
            Number of roots mirrored by this call.
        """
        mirrored = 0
        for body in self.roots():
            if body.reflected:
                continue
            body.T_tree = ROOT_REFLECTION @ body.T_tree
            body.reflected = True
            mirrored += 1
        if mirrored:
            self.invalidate()
        return mirrored

    def invalidate(self) -> None:
        """Drop all derived state after a structural edit."""
        self.featherstone = None
        for body in self.bodies:
            body.cached_q_qd = None

    def _reorder(self, order: Sequence[int]) -> None:
        remap = {old: new for new, old in enumerate(order)}
        bodies = [self.bodies[old] for old in order]
        for body in bodies:
            body.index = remap[body.index]
            if body.parent is not None:
                body.parent = remap[body.parent]
        self.bodies = bodies
        logger.debug("re-indexed %d bodies", len(bodies))
        self.invalidate()
