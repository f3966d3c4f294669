"""
JAX Planar: planar rigid-body kinematics and dynamics preparation.

This library turns a link/joint description into a tree of rigid bodies
constrained to a plane, computes cached forward kinematics, and flattens the
tree into the index-ordered arrays consumed by recursive (Featherstone)
dynamics algorithms.
"""

import jax
jax.config.update("jax_enable_x64", True)

# Import core modules
from . import errors
from . import transforms
from . import core
from . import builder
from . import reduce
from . import chain
from . import io

__version__ = "0.1.0"
__all__ = ["errors", "transforms", "core", "builder", "reduce", "chain", "io"]
