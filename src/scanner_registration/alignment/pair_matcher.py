"""
Pairwise Scan Matching

Finds the rigid transform that maps a candidate scan onto a fixed scan's
frame, using only the evidence that enough beacons coincide afterwards.

For every rotation (in group order), every fixed point p and every rotated
candidate point q (in input order), the hypothesis is that p and q are the
same beacon, i.e. the candidate must be shifted by ``-(q - p)``. The first
hypothesis whose shifted candidate has at least ``min_overlap`` points in
common with the fixed scan is accepted. Because acceptance is immediate, the
enumeration order fully determines the result.

Methods implemented:
- vectorized: numpy; all hypotheses of one rotation are counted at once
- exhaustive: plain nested loops over Python sets

Both methods accept exactly the same transform.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Set, Tuple, TYPE_CHECKING

import numpy as np

from ..utils.coordinate_transform import Point, RigidTransform, as_point, neg, point_set, sub
from ..utils.logging import setup_logger
from .rotations import ROTATIONS
from .scan import PointsLike, points_of

if TYPE_CHECKING:
    from numpy.typing import NDArray

logger = setup_logger(__name__)

DEFAULT_MIN_OVERLAP = 12


@dataclass(frozen=True, eq=False)
class PairMatch:
    """Accepted alignment of a candidate scan onto a fixed scan.

    Attributes:
        points: Candidate points expressed in the fixed scan's frame, in the
            candidate's point order
        offset: Accepted hypothesis ``q - p`` (rotated candidate point minus
            fixed point); the candidate was shifted by its negation
        rotation: Rotation applied to the candidate
        rotation_index: Position of the rotation in the rotation table
        overlap: Number of coinciding points that reached the threshold
    """

    points: "NDArray[np.int64]" = field(repr=False)
    offset: Point
    rotation: "NDArray[np.int64]" = field(repr=False)
    rotation_index: int
    overlap: int

    @property
    def point_set(self) -> Set[Point]:
        return point_set(self.points)

    @property
    def transform(self) -> RigidTransform:
        """Transform mapping candidate-local points into the fixed frame."""
        return RigidTransform(rotation=self.rotation, translation=neg(self.offset))


def _unique_rows_in_order(points: "NDArray[np.int64]") -> "NDArray[np.int64]":
    # Duplicate fixed points only repeat hypotheses already tried, so dropping
    # them keeps the first accepted hypothesis unchanged.
    if len(points) == 0:
        return points
    _, first = np.unique(points, axis=0, return_index=True)
    return points[np.sort(first)]


@dataclass
class PairMatcher:
    min_overlap: int = DEFAULT_MIN_OVERLAP
    method: str = "vectorized"  # vectorized | exhaustive

    def __post_init__(self) -> None:
        if self.min_overlap < 1:
            raise ValueError(f"min_overlap must be at least 1, got {self.min_overlap}")
        self.method = self.method.lower()
        if self.method not in ("vectorized", "exhaustive"):
            raise ValueError(f"Unknown matching method '{self.method}'")

    def match(self, fixed: PointsLike, candidate: PointsLike) -> Optional[PairMatch]:
        """
        Align ``candidate`` onto ``fixed``.

        Args:
            fixed: Points already in the target frame (Scan or Nx3 array)
            candidate: Points in the candidate's local frame (Scan or Nx3 array)

        Returns:
            PairMatch for the first hypothesis reaching ``min_overlap``, or
            None when the two scans do not provably overlap.
        """
        fixed_pts = points_of(fixed)
        cand_pts = points_of(candidate)

        if len(cand_pts) < self.min_overlap or len(fixed_pts) == 0:
            return None

        if self.method == "exhaustive":
            result = self._match_exhaustive(fixed_pts, cand_pts)
        else:
            result = self._match_vectorized(fixed_pts, cand_pts)

        if result is not None:
            logger.debug(
                "Match found: rotation #%d, offset %s, %d shared beacons",
                result.rotation_index, result.offset, result.overlap,
            )
        return result

    # ------------------------ Methods ------------------------
    def _match_vectorized(self, fixed: "NDArray[np.int64]", cand: "NDArray[np.int64]") -> Optional[PairMatch]:
        fixed_u = _unique_rows_in_order(fixed)
        n_cand = len(cand)

        for r_idx, R in enumerate(ROTATIONS):
            rotated = cand @ R.T
            # diffs[i * n_cand + j] = rotated[j] - fixed_u[i]: fixed-major, as enumerated
            diffs = (rotated[None, :, :] - fixed_u[:, None, :]).reshape(-1, 3)
            _, inverse, counts = np.unique(diffs, axis=0, return_inverse=True, return_counts=True)
            # With unique fixed points, the multiplicity of an offset equals the
            # number of shifted candidate points landing on a fixed point.
            hyp_counts = counts[inverse.reshape(-1)]
            hits = np.flatnonzero(hyp_counts >= self.min_overlap)
            if hits.size == 0:
                continue

            k = int(hits[0])
            offset = as_point(diffs[k])
            return PairMatch(
                points=rotated - diffs[k],
                offset=offset,
                rotation=R,
                rotation_index=r_idx,
                overlap=int(hyp_counts[k]),
            )

        return None

    def _match_exhaustive(self, fixed: "NDArray[np.int64]", cand: "NDArray[np.int64]") -> Optional[PairMatch]:
        fixed_list = [tuple(p) for p in fixed.tolist()]
        fixed_set = set(fixed_list)

        for r_idx, R in enumerate(ROTATIONS):
            rotated = [tuple(q) for q in (cand @ R.T).tolist()]
            for p in fixed_list:
                for q in rotated:
                    offset = sub(q, p)
                    overlap = sum(1 for r in rotated if sub(r, offset) in fixed_set)
                    if overlap >= self.min_overlap:
                        return PairMatch(
                            points=np.array([sub(r, offset) for r in rotated], dtype=np.int64),
                            offset=offset,
                            rotation=R,
                            rotation_index=r_idx,
                            overlap=overlap,
                        )

        return None


def match_scans(
    fixed: PointsLike,
    candidate: PointsLike,
    min_overlap: int = DEFAULT_MIN_OVERLAP,
) -> Optional[Tuple[Set[Point], Point]]:
    """Functional form of :meth:`PairMatcher.match`.

    Returns:
        (candidate points in the fixed frame, offset) or None
    """
    result = PairMatcher(min_overlap=min_overlap).match(fixed, candidate)
    if result is None:
        return None
    return result.point_set, result.offset
