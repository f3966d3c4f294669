"""Core data structures for planar rigid-body models.

This module provides the plane configuration, the mutable body records and
their arena, and the immutable Featherstone form handed to dynamics code.
"""

from .plane import PlaneConfig
from .body import Body, JointCode, REVOLUTE_PITCH, PRISMATIC_PITCH, FIXED_PITCH
from .model import Model
from .featherstone import Featherstone, extract_featherstone

__all__ = [
    "PlaneConfig",
    "Body",
    "JointCode",
    "REVOLUTE_PITCH",
    "PRISMATIC_PITCH",
    "FIXED_PITCH",
    "Model",
    "Featherstone",
    "extract_featherstone",
]
