"""
Scanner Registration Package

Reconciles beacon scans reported in unknown, axis-aligned local frames into
one shared frame. Each scan is matched against already-registered scans by
searching the 24 axis-aligned rotations and the translations implied by
point pairs; a hypothesis is accepted once enough beacons coincide. The
result is the deduplicated beacon set and every scanner's position, from
which the largest Manhattan distance between scanners follows.
"""

__version__ = "0.1.0"

from .alignment import *
from .analysis import *
from .preprocessing import *
from .utils import *

__all__ = [
    "alignment",
    "analysis",
    "preprocessing",
    "utils",
]
