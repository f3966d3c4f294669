"""
JAX-based transforms for planar rigid-body models.

This module provides pure, JIT-compilable implementations of:
- SO(3) rotations (so3 module), used to read 3D joint origins
- planar homogeneous and spatial transforms (planar module)

All functions are pure, stateless, and operate on JAX arrays.
"""

# Core modules
from . import so3
from . import planar

__all__ = [
    "so3",
    "planar",
]
