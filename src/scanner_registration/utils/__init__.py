"""
Utility Functions Module

This module provides common utility functions used across the scanner registration project.
- Logging setup
- Typed configuration loading
- Integer point and rigid transform helpers
"""

from .logging import setup_logger, set_package_log_level
from .coordinate_transform import Point, RigidTransform, as_point, as_points, point_set

__all__ = [
    "setup_logger",
    "set_package_log_level",
    "Point",
    "RigidTransform",
    "as_point",
    "as_points",
    "point_set",
]
