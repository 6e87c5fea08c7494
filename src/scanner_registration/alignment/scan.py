"""Scan and registered-frame records shared by the matcher and the merger."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Set, Sequence, Union, TYPE_CHECKING

import numpy as np

from ..utils.coordinate_transform import Point, RigidTransform, as_points, point_set

if TYPE_CHECKING:
    from numpy.typing import NDArray


@dataclass(frozen=True, eq=False)
class Scan:
    """Beacon positions reported by one scanner, in that scanner's own frame.

    Attributes:
        scan_id: Identifier of the scan (position in the input by default)
        points: (N, 3) int64 array, read-only
    """

    scan_id: int
    points: "NDArray[np.int64]" = field(repr=False)

    def __post_init__(self) -> None:
        pts = as_points(self.points).copy()
        pts.setflags(write=False)
        object.__setattr__(self, "points", pts)

    def __len__(self) -> int:
        return len(self.points)

    def __repr__(self) -> str:
        return f"Scan(scan_id={self.scan_id}, n_points={len(self.points)})"


PointsLike = Union[Scan, "NDArray[np.integer]", Sequence[Sequence[int]]]


def points_of(source: PointsLike) -> "NDArray[np.int64]":
    """(N, 3) array for a Scan or any array-like collection of points."""
    if isinstance(source, Scan):
        return source.points
    return as_points(source)


@dataclass(frozen=True, eq=False)
class RegisteredFrame:
    """A scan whose transform into the reference frame has been resolved.

    Attributes:
        scan_id: Identifier of the registered scan
        transform: Maps the scan's local points into the reference frame
        points: The scan's points already expressed in the reference frame,
            in the scan's original point order
        anchor_id: Scan it was matched against (None for the reference scan)
        overlap: Number of beacons shared with the anchor when matched
    """

    scan_id: int
    transform: RigidTransform
    points: "NDArray[np.int64]" = field(repr=False)
    anchor_id: Optional[int] = None
    overlap: int = 0

    @property
    def offset(self) -> Point:
        """Position of the scanner in the reference frame."""
        return self.transform.translation

    @property
    def point_set(self) -> Set[Point]:
        return point_set(self.points)
