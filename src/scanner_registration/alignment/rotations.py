"""
Axis-Aligned Rotation Group

A scan can face along any of the six axis directions and have any of four
"up" directions, giving the 24 proper rotations of the cube. Each is a
signed permutation matrix with determinant +1.

The table is fixed data, checked once at import and read-only. Its order is
part of the matching contract: when several rotations would satisfy the
overlap threshold, the one that comes first here wins. Entries are named by
the sequence of quarter turns (anti-clockwise about x, y, z) that produces
them; the identity ("xxxx") is element 19.
"""

from __future__ import annotations

from typing import Iterator, TYPE_CHECKING

import numpy as np

if TYPE_CHECKING:
    from numpy.typing import NDArray


N_ROTATIONS = 24

# Row-major 3x3 matrices.
_ROTATION_TABLE = [
    [1, 0, 0, 0, 0, -1, 0, 1, 0],    # x
    [0, 0, 1, 0, 1, 0, -1, 0, 0],    # y
    [0, -1, 0, 1, 0, 0, 0, 0, 1],    # z
    [1, 0, 0, 0, -1, 0, 0, 0, -1],   # xx
    [0, 1, 0, 0, 0, -1, -1, 0, 0],   # xy
    [0, 0, 1, 1, 0, 0, 0, 1, 0],     # xz
    [-1, 0, 0, 0, 1, 0, 0, 0, -1],   # yy
    [0, -1, 0, 0, 0, 1, -1, 0, 0],   # yz
    [0, -1, 0, 0, 0, -1, 1, 0, 0],   # zx
    [-1, 0, 0, 0, -1, 0, 0, 0, 1],   # zz
    [1, 0, 0, 0, 0, 1, 0, -1, 0],    # xxx
    [0, 0, -1, 0, -1, 0, -1, 0, 0],  # xxy
    [0, 1, 0, 1, 0, 0, 0, 0, -1],    # xxz
    [-1, 0, 0, 0, 0, -1, 0, -1, 0],  # xyy
    [0, 0, 1, 0, -1, 0, 1, 0, 0],    # xzx
    [-1, 0, 0, 0, 0, 1, 0, 1, 0],    # xzz
    [0, 0, -1, 0, 1, 0, 1, 0, 0],    # yyy
    [0, -1, 0, -1, 0, 0, 0, 0, -1],  # yyz
    [0, 1, 0, -1, 0, 0, 0, 0, 1],    # zzz
    [1, 0, 0, 0, 1, 0, 0, 0, 1],     # xxxx
    [0, 0, -1, 1, 0, 0, 0, -1, 0],   # xxxz
    [0, 1, 0, 0, 0, 1, 1, 0, 0],     # xxzx
    [0, 0, 1, -1, 0, 0, 0, -1, 0],   # xyyz
    [0, 0, -1, -1, 0, 0, 0, 1, 0],   # xzzz
]

IDENTITY_INDEX = 19


def is_proper_rotation(matrix: "NDArray") -> bool:
    """True if ``matrix`` is a 3x3 signed permutation matrix with determinant +1."""
    m = np.asarray(matrix)
    if m.shape != (3, 3):
        return False
    if not np.all(np.isin(m, (-1, 0, 1))):
        return False
    nonzero = m != 0
    if not (np.all(nonzero.sum(axis=0) == 1) and np.all(nonzero.sum(axis=1) == 1)):
        return False
    return int(round(np.linalg.det(m))) == 1


def _build_table() -> "NDArray[np.int64]":
    table = np.array(_ROTATION_TABLE, dtype=np.int64).reshape(-1, 3, 3)

    keys = {tuple(m.ravel().tolist()) for m in table}
    if len(keys) != N_ROTATIONS:
        raise AssertionError(f"expected {N_ROTATIONS} distinct rotations, got {len(keys)}")
    for m in table:
        if not is_proper_rotation(m):
            raise AssertionError(f"not a proper rotation: {m.tolist()}")
    for a in table:
        for b in table:
            if tuple((a @ b).ravel().tolist()) not in keys:
                raise AssertionError("rotation table is not closed under composition")

    table.setflags(write=False)
    return table


ROTATIONS: "NDArray[np.int64]" = _build_table()

_ROTATION_INDEX = {tuple(m.ravel().tolist()): i for i, m in enumerate(ROTATIONS)}


def iter_rotations() -> Iterator["NDArray[np.int64]"]:
    """Yield the rotations in group order."""
    for i in range(len(ROTATIONS)):
        yield ROTATIONS[i]


def rotation_index(matrix: "NDArray") -> int:
    """Position of ``matrix`` in the rotation table.

    Raises:
        ValueError: If the matrix is not one of the 24 rotations
    """
    key = tuple(np.asarray(matrix, dtype=np.int64).ravel().tolist())
    try:
        return _ROTATION_INDEX[key]
    except KeyError:
        raise ValueError(f"Not an axis-aligned proper rotation: {np.asarray(matrix).tolist()}") from None


def compose(a: "NDArray", b: "NDArray") -> "NDArray[np.int64]":
    """Matrix product ``a @ b`` (apply ``b`` first)."""
    return np.asarray(a, dtype=np.int64) @ np.asarray(b, dtype=np.int64)


def invert(rotation: "NDArray") -> "NDArray[np.int64]":
    return np.asarray(rotation, dtype=np.int64).T.copy()
