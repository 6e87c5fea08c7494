"""
Integer Rigid Transforms for Scan Registration.

Scans report beacon positions as integer triples in their own local frame.
Registration maps every scan into the frame of a reference scan with a
transform made of one axis-aligned rotation and an integer translation:

    reference = rotation @ local + translation

Everything here stays in integer arithmetic. Points are compared and hashed
by exact coordinates, so there is no tolerance anywhere in this module.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Set, Tuple, Union, TYPE_CHECKING

import numpy as np

if TYPE_CHECKING:
    from numpy.typing import NDArray


Point = Tuple[int, int, int]

ORIGIN: Point = (0, 0, 0)


def as_point(values: Iterable[int]) -> Point:
    """Convert any length-3 sequence (tuple, list, numpy row) to a Point of Python ints."""
    x, y, z = (int(v) for v in values)
    return (x, y, z)


def as_points(points: Union["NDArray[np.integer]", Iterable[Iterable[int]]]) -> "NDArray[np.int64]":
    """Convert a collection of points to an (N, 3) int64 array.

    Raises:
        ValueError: If the input is not N x 3 or holds non-integer values
    """
    arr = np.asarray(points)
    if arr.size == 0:
        return np.empty((0, 3), dtype=np.int64)
    if arr.ndim != 2 or arr.shape[1] != 3:
        raise ValueError(f"Expected Nx3 array of points, got shape {arr.shape}")
    if not np.issubdtype(arr.dtype, np.integer):
        if not np.all(np.equal(np.mod(arr, 1), 0)):
            raise ValueError("Point coordinates must be integers")
    return arr.astype(np.int64)


def point_set(points: "NDArray[np.integer]") -> Set[Point]:
    """Hashable view of an (N, 3) array as a set of Points."""
    return {tuple(row) for row in np.asarray(points, dtype=np.int64).tolist()}


def sub(a: Point, b: Point) -> Point:
    return (a[0] - b[0], a[1] - b[1], a[2] - b[2])


def add(a: Point, b: Point) -> Point:
    return (a[0] + b[0], a[1] + b[1], a[2] + b[2])


def neg(a: Point) -> Point:
    return (-a[0], -a[1], -a[2])


def mat_vec(m: "NDArray[np.integer]", v: Point) -> Point:
    """Apply a 3x3 integer matrix to a single point."""
    return (
        int(m[0][0]) * v[0] + int(m[0][1]) * v[1] + int(m[0][2]) * v[2],
        int(m[1][0]) * v[0] + int(m[1][1]) * v[1] + int(m[1][2]) * v[2],
        int(m[2][0]) * v[0] + int(m[2][1]) * v[1] + int(m[2][2]) * v[2],
    )


@dataclass(frozen=True, eq=False)
class RigidTransform:
    """Rotation plus integer translation mapping one scan frame into another.

    The transform is defined as:
        mapped = rotation @ point + translation

    Attributes:
        rotation: 3x3 integer rotation matrix
        translation: Integer translation, i.e. where the source frame's
            origin lands in the target frame

    Example:
        >>> t = RigidTransform.identity()
        >>> t.apply_point((1, 2, 3))
        (1, 2, 3)
    """

    rotation: "NDArray[np.int64]"
    translation: Point

    def __post_init__(self) -> None:
        rot = np.array(self.rotation, dtype=np.int64)
        if rot.shape != (3, 3):
            raise ValueError(f"Rotation must be 3x3, got shape {rot.shape}")
        rot.setflags(write=False)
        object.__setattr__(self, "rotation", rot)
        object.__setattr__(self, "translation", as_point(self.translation))

    @classmethod
    def identity(cls) -> "RigidTransform":
        return cls(rotation=np.eye(3, dtype=np.int64), translation=ORIGIN)

    @classmethod
    def from_matrix(cls, matrix: "NDArray") -> "RigidTransform":
        """Create transform from a 4x4 homogeneous matrix.

        Raises:
            ValueError: If the matrix is not 4x4 or not an integer transform
        """
        matrix = np.asarray(matrix)
        if matrix.shape != (4, 4):
            raise ValueError(f"Expected 4x4 matrix, got shape {matrix.shape}")
        rounded = np.rint(matrix)
        if not np.array_equal(rounded, matrix):
            raise ValueError("Transform matrix must contain integer values")
        if not np.array_equal(rounded[3], [0, 0, 0, 1]):
            raise ValueError("Last row of a homogeneous transform must be [0, 0, 0, 1]")
        rounded = rounded.astype(np.int64)
        return cls(rotation=rounded[:3, :3], translation=as_point(rounded[:3, 3]))

    def to_matrix(self) -> "NDArray[np.int64]":
        """4x4 homogeneous matrix form."""
        T = np.eye(4, dtype=np.int64)
        T[:3, :3] = self.rotation
        T[:3, 3] = self.translation
        return T

    def apply_point(self, point: Point) -> Point:
        return add(mat_vec(self.rotation, point), self.translation)

    def apply(self, points: "NDArray[np.integer]") -> "NDArray[np.int64]":
        """Map an (N, 3) array of points through the transform."""
        pts = as_points(points)
        if len(pts) == 0:
            return pts
        return pts @ self.rotation.T + np.asarray(self.translation, dtype=np.int64)

    def inverse(self) -> "RigidTransform":
        # Rotations here are orthogonal, so the transpose is the inverse.
        rot_inv = self.rotation.T
        return RigidTransform(rotation=rot_inv, translation=neg(mat_vec(rot_inv, self.translation)))

    def compose(self, other: "RigidTransform") -> "RigidTransform":
        """Transform equivalent to applying ``other`` first, then ``self``."""
        return RigidTransform(
            rotation=self.rotation @ other.rotation,
            translation=self.apply_point(other.translation),
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RigidTransform):
            return NotImplemented
        return (
            np.array_equal(self.rotation, other.rotation)
            and self.translation == other.translation
        )

    def __hash__(self) -> int:
        return hash((tuple(self.rotation.ravel().tolist()), self.translation))

    def __repr__(self) -> str:
        return (
            f"RigidTransform(rotation={self.rotation.tolist()}, "
            f"translation={self.translation})"
        )
