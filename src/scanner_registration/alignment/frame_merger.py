"""
Frame Merging

Resolves every scan into the frame of the first scan by breadth-first
expansion over the (unknown) overlap graph:

1. The first scan is the reference: identity transform, offset (0, 0, 0).
2. Registered scans wait on a frontier. Each popped anchor is matched
   against every still-unregistered scan; matches are registered, their
   points merged into the global beacon set, and they join the frontier.
3. Merging stops when the frontier is empty.

An anchor's points are already in the reference frame, so a match against
it yields the candidate's reference-frame transform directly. Once a scan
is registered it is never revisited.

Scans that are still unregistered at the end are reported on the result
(or raised as NonConvergenceError in strict mode), never dropped silently.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Set, TYPE_CHECKING

from ..analysis.distances import max_manhattan
from ..utils.coordinate_transform import Point, RigidTransform
from ..utils.logging import setup_logger
from .pair_matcher import PairMatch, PairMatcher
from .scan import RegisteredFrame, Scan

if TYPE_CHECKING:
    from ..acceleration.parallel_executor import MatchParallelExecutor


logger = setup_logger(__name__)


@dataclass
class MergeResult:
    """Outcome of merging a set of scans.

    Attributes:
        beacons: Deduplicated beacons in the reference frame
        frames: Registered frames keyed by scan id, in registration order
        unregistered: Ids of scans that never matched the growing frame
        pairs_tried: Number of anchor/candidate match attempts
    """

    beacons: Set[Point] = field(default_factory=set)
    frames: Dict[int, RegisteredFrame] = field(default_factory=dict)
    unregistered: List[int] = field(default_factory=list)
    pairs_tried: int = 0

    @property
    def offsets(self) -> List[Point]:
        """Scanner positions in the reference frame, reference scan first."""
        return [frame.offset for frame in self.frames.values()]

    @property
    def unique_beacon_count(self) -> int:
        return len(self.beacons)

    @property
    def converged(self) -> bool:
        return not self.unregistered

    @property
    def max_scanner_distance(self) -> int:
        return max_manhattan(self.offsets)


class NonConvergenceError(RuntimeError):
    """Raised in strict mode when some scans could not be registered."""

    def __init__(self, result: MergeResult):
        self.result = result
        super().__init__(
            f"{len(result.unregistered)} scan(s) could not be registered: {result.unregistered}"
        )


class FrameMerger:
    """
    Registers a collection of scans into a single reference frame.

    Example:
        merger = FrameMerger(PairMatcher(min_overlap=12))
        result = merger.merge(scans)
        print(result.unique_beacon_count, result.max_scanner_distance)
    """

    def __init__(
        self,
        matcher: Optional[PairMatcher] = None,
        *,
        executor: Optional["MatchParallelExecutor"] = None,
        require_convergence: bool = False,
    ):
        """
        Args:
            matcher: Pair matcher to use (default: PairMatcher with min_overlap=12)
            executor: Optional parallel executor for the per-anchor match attempts
            require_convergence: Raise NonConvergenceError instead of returning
                a partial result
        """
        self.matcher = matcher if matcher is not None else PairMatcher()
        self.executor = executor
        self.require_convergence = require_convergence

    def merge(self, scans: Sequence[Scan]) -> MergeResult:
        """
        Merge all scans into the frame of ``scans[0]``.

        Args:
            scans: Ordered scans; the first one is the reference

        Returns:
            MergeResult with beacons, registered frames and unregistered ids

        Raises:
            ValueError: If no scans are given or scan ids repeat
            NonConvergenceError: If require_convergence is set and some scans
                stay unregistered
        """
        if len(scans) == 0:
            raise ValueError("At least one scan is required")
        ids = [scan.scan_id for scan in scans]
        if len(set(ids)) != len(ids):
            raise ValueError(f"Scan ids must be unique, got {ids}")

        reference = scans[0]
        result = MergeResult()
        self._register(
            result,
            RegisteredFrame(
                scan_id=reference.scan_id,
                transform=RigidTransform.identity(),
                points=reference.points,
            ),
        )

        frontier = deque([result.frames[reference.scan_id]])
        pool: List[Scan] = list(scans[1:])

        logger.info(
            f"Merging {len(scans)} scans into the frame of scan {reference.scan_id} "
            f"(min overlap: {self.matcher.min_overlap})"
        )

        if self.executor is not None:
            self.executor.start(scans, self.matcher)
        try:
            pool = self._expand(result, frontier, pool)
        finally:
            if self.executor is not None:
                self.executor.close()

        result.unregistered = [scan.scan_id for scan in pool]

        if result.converged:
            logger.info(
                f"All {len(scans)} scans registered: {result.unique_beacon_count} unique beacons "
                f"({result.pairs_tried} pairs tried)"
            )
        else:
            logger.warning(
                f"Merging did not converge: {len(result.unregistered)} of {len(scans)} scans "
                f"unregistered {result.unregistered}; beacon count ({result.unique_beacon_count}) is partial"
            )
            if self.require_convergence:
                raise NonConvergenceError(result)

        return result

    def _expand(self, result: MergeResult, frontier: deque, pool: List[Scan]) -> List[Scan]:
        """Pop anchors until the frontier or the pool runs out; return what is left."""
        while frontier and pool:
            anchor = frontier.popleft()
            matches = self._match_pool(anchor, pool)
            result.pairs_tried += len(pool)

            still_unregistered = []
            for candidate, match in zip(pool, matches):
                if match is None:
                    logger.debug(f"Scan {candidate.scan_id}: no overlap with scan {anchor.scan_id}")
                    still_unregistered.append(candidate)
                    continue

                frame = RegisteredFrame(
                    scan_id=candidate.scan_id,
                    transform=match.transform,
                    points=match.points,
                    anchor_id=anchor.scan_id,
                    overlap=match.overlap,
                )
                self._register(result, frame)
                frontier.append(frame)
                logger.info(
                    f"Registered scan {candidate.scan_id} via scan {anchor.scan_id}: "
                    f"position {frame.offset}, {match.overlap} shared beacons"
                )
            pool = still_unregistered
        return pool

    def _match_pool(self, anchor: RegisteredFrame, pool: List[Scan]) -> List[Optional[PairMatch]]:
        if self.executor is not None:
            return self.executor.match_all(anchor, [candidate.scan_id for candidate in pool])
        return [self.matcher.match(anchor.points, candidate) for candidate in pool]

    @staticmethod
    def _register(result: MergeResult, frame: RegisteredFrame) -> None:
        result.frames[frame.scan_id] = frame
        result.beacons.update(frame.point_set)


def merge_scans(scans: Sequence[Scan], min_overlap: int = 12) -> MergeResult:
    """Merge scans with a default sequential merger."""
    return FrameMerger(PairMatcher(min_overlap=min_overlap)).merge(scans)
