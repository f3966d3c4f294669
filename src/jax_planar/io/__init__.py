"""I/O utilities for loading planar robot models from robot-description files.

This module provides functions for parsing URDF documents and converting
them to finalized planar models.
"""

from .urdf_parser import load_urdf, parse_urdf

__all__ = ["load_urdf", "parse_urdf"]
