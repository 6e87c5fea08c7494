"""
Scan Alignment Module

This module registers scans reported in unknown axis-aligned frames into a
single reference frame: the fixed rotation table, pairwise matching by
shared beacons, breadth-first merging of all scans, and persistence of the
resulting transforms.
"""

from .rotations import ROTATIONS, iter_rotations, rotation_index, is_proper_rotation
from .scan import Scan, RegisteredFrame
from .pair_matcher import PairMatch, PairMatcher, match_scans
from .frame_merger import FrameMerger, MergeResult, NonConvergenceError, merge_scans
from .transform_io import save_transforms, load_transforms

__all__ = [
    "ROTATIONS",
    "iter_rotations",
    "rotation_index",
    "is_proper_rotation",
    "Scan",
    "RegisteredFrame",
    "PairMatch",
    "PairMatcher",
    "match_scans",
    "FrameMerger",
    "MergeResult",
    "NonConvergenceError",
    "merge_scans",
    "save_transforms",
    "load_transforms",
]
