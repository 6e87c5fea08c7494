"""
Scanner Distance Analysis

Manhattan distances between registered scanner positions.
"""

from __future__ import annotations

from typing import Iterable, Sequence, TYPE_CHECKING

import numpy as np

if TYPE_CHECKING:
    from numpy.typing import NDArray


def manhattan_distance(first: Sequence[int], second: Sequence[int]) -> int:
    """Sum of absolute coordinate differences."""
    return sum(abs(int(a) - int(b)) for a, b in zip(first, second))


def pairwise_manhattan(offsets: Iterable[Sequence[int]]) -> "NDArray[np.int64]":
    """
    Full (K, K) matrix of Manhattan distances between offsets.

    Args:
        offsets: K points (tuples or an Kx3 array)

    Returns:
        Symmetric int64 matrix with a zero diagonal
    """
    pts = np.asarray(list(offsets), dtype=np.int64).reshape(-1, 3)
    return np.abs(pts[:, None, :] - pts[None, :, :]).sum(axis=2)


def max_manhattan(offsets: Iterable[Sequence[int]]) -> int:
    """
    Largest Manhattan distance over all unordered pairs of offsets.

    Zero or one offset gives 0.
    """
    dist = pairwise_manhattan(offsets)
    if dist.shape[0] < 2:
        return 0
    return int(dist.max())
