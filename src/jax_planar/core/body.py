"""Body records for the planar body tree.

A Body is one rigid link (or a synthesised intermediate dof carrier). Bodies
live in a Model arena and refer to their parent by arena index; children are
derived from the parent links and never stored.
"""

import math
from dataclasses import dataclass, field
from typing import List, Optional

import jax.numpy as jnp
from jax import Array

from ..transforms.planar import JointCode

# Legacy encoding of joint freedom, only meaningful before fixed-joint removal
REVOLUTE_PITCH = 0.0
PRISMATIC_PITCH = math.inf
FIXED_PITCH = math.nan


@dataclass(eq=False)
class Body:
    """Mutable rigid body record.

    Attributes:
        index: Position of the body in its Model arena.
        link_name: Name of the link this body represents.
        joint_name: Name of the joint connecting this body to its parent.
        parent: Arena index of the parent body, None for a root.
        jcode: Joint kinematic type, None while no joint targets this body.
        pitch: 0 for revolute, inf for prismatic, nan for fixed joints.
        joint_axis: (3,) unit joint axis in world coordinates.
        jsign: +1 or -1, aligning the physical axis with the canonical one.
        damping: Joint viscous damping, non-negative.
        dofnum: 1-based dof number, None for roots and fixed bodies.
        geometry: List of (N, 2) point sets in body coordinates.
        inertia: (3, 3) planar spatial inertia, or None.
        X_tree: (3, 3) spatial transform from the parent frame to this body.
        T_tree: (3, 3) homogeneous transform from this body to the parent frame.
        reflected: True once T_tree carries the root reflection of the right view.
        T: (3, 3) current world transform.
        v: (3,) current planar velocity [omega, vx, vy].
        cached_q_qd: The [q, qd] slice T and v were last computed from.
    """
    index: int
    link_name: str = ""
    joint_name: str = ""
    parent: Optional[int] = None
    jcode: Optional[JointCode] = None
    pitch: float = REVOLUTE_PITCH
    joint_axis: Array = field(default_factory=lambda: jnp.array([1.0, 0.0, 0.0]))
    jsign: int = 1
    damping: float = 0.0
    dofnum: Optional[int] = None
    geometry: List[Array] = field(default_factory=list)
    inertia: Optional[Array] = None
    X_tree: Array = field(default_factory=lambda: jnp.eye(3))
    T_tree: Array = field(default_factory=lambda: jnp.eye(3))
    reflected: bool = False
    T: Array = field(default_factory=lambda: jnp.eye(3))
    v: Array = field(default_factory=lambda: jnp.zeros(3))
    cached_q_qd: Optional[Array] = None

    @property
    def is_root(self) -> bool:
        return self.parent is None

    @property
    def is_fixed(self) -> bool:
        return self.jcode == JointCode.FIXED or math.isnan(self.pitch)

    def __repr__(self) -> str:
        return (
            f"Body(index={self.index}, link_name={self.link_name!r}, "
            f"parent={self.parent}, jcode={self.jcode!r}, dofnum={self.dofnum})"
        )
