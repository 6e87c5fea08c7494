"""
Parallel execution infrastructure for pairwise scan matching.

Provides MatchParallelExecutor, which keeps one worker pool alive for a whole
merge. Every worker receives the scans and the matcher once, when the pool
starts. After that a frontier pop only ships the anchor's id and transform;
each worker rebuilds the anchor's reference-frame points once per anchor and
matches its share of the candidates against them.

Results always come back in candidate order so the caller can register them
exactly as a sequential run would.
"""

from __future__ import annotations

import logging
import time
from multiprocessing import Pool, cpu_count
from typing import Dict, List, Optional, Sequence, Tuple, TYPE_CHECKING

import numpy as np

from ..utils.coordinate_transform import RigidTransform

if TYPE_CHECKING:
    from numpy.typing import NDArray
    from ..alignment.pair_matcher import PairMatch, PairMatcher
    from ..alignment.scan import RegisteredFrame, Scan

logger = logging.getLogger(__name__)

# Per-process state, filled by _init_worker when the pool starts
_worker_scans: Dict[int, "Scan"] = {}
_worker_matcher: Optional["PairMatcher"] = None
_worker_anchor: Tuple[Optional[int], Optional["NDArray[np.int64]"]] = (None, None)


def _init_worker(scans: Sequence["Scan"], matcher: "PairMatcher") -> None:
    """Pool initializer: keep the scans and matcher for the pool's lifetime."""
    global _worker_scans, _worker_matcher, _worker_anchor
    _worker_scans = {scan.scan_id: scan for scan in scans}
    _worker_matcher = matcher
    _worker_anchor = (None, None)


def _anchor_points(anchor_id: int, matrix: List[List[int]]) -> "NDArray[np.int64]":
    global _worker_anchor
    cached_id, cached_points = _worker_anchor
    if cached_id != anchor_id:
        transform = RigidTransform.from_matrix(np.asarray(matrix, dtype=np.int64))
        cached_points = transform.apply(_worker_scans[anchor_id].points)
        _worker_anchor = (anchor_id, cached_points)
    return cached_points


def _match_task(args: Tuple[int, List[List[int]], int]) -> Tuple[Optional["PairMatch"], Optional[str]]:
    """
    Match one candidate against the current anchor.

    Must be at module level for pickling.

    Args:
        args: Tuple of (anchor_id, anchor 4x4 matrix, candidate_id)

    Returns:
        Tuple of (match or None, error_message)
    """
    anchor_id, matrix, candidate_id = args
    try:
        points = _anchor_points(anchor_id, matrix)
        return _worker_matcher.match(points, _worker_scans[candidate_id]), None
    except Exception as e:
        error_msg = f"{type(e).__name__}: {e}"
        logger.error(f"Worker error on scan {candidate_id} against scan {anchor_id}: {error_msg}")
        return None, error_msg


class MatchParallelExecutor:
    """
    Runs the match attempts of each frontier pop across worker processes.

    The pool is created by ``start`` and lives until ``close``; FrameMerger
    calls both around its merge loop, so one pool serves every pop.

    Example:
        with MatchParallelExecutor(n_workers=4) as executor:
            executor.start(scans, matcher)
            matches = executor.match_all(anchor, [2, 3, 4])
    """

    def __init__(self, n_workers: Optional[int] = None):
        """
        Initialize parallel executor.

        Args:
            n_workers: Number of worker processes. If None, uses cpu_count - 1
                to leave one core for coordination. Minimum is 1, which
                matches in-process without a pool.
        """
        if n_workers is None:
            n_workers = max(1, cpu_count() - 1)
        else:
            n_workers = max(1, int(n_workers))

        self.n_workers = n_workers
        self.pools_started = 0
        self.batches_run = 0

        self._pool = None
        self._scans: Optional[Dict[int, "Scan"]] = None
        self._matcher: Optional["PairMatcher"] = None

        logger.info(
            f"Initialized MatchParallelExecutor with {self.n_workers} workers "
            f"(total CPUs: {cpu_count()})"
        )

    @property
    def is_running(self) -> bool:
        return self._scans is not None

    def start(self, scans: Sequence["Scan"], matcher: "PairMatcher") -> None:
        """
        Hand the scans and matcher to the workers.

        Raises:
            RuntimeError: If the executor is already running
        """
        if self.is_running:
            raise RuntimeError("MatchParallelExecutor is already running")

        self._scans = {scan.scan_id: scan for scan in scans}
        self._matcher = matcher
        n_processes = min(self.n_workers, max(1, len(scans) - 1))
        if n_processes > 1:
            self._pool = Pool(
                processes=n_processes,
                initializer=_init_worker,
                initargs=(list(scans), matcher),
            )
            self.pools_started += 1
            logger.debug(f"Started worker pool with {n_processes} processes for {len(scans)} scans")

    def match_all(self, anchor: "RegisteredFrame", candidate_ids: Sequence[int]) -> List[Optional["PairMatch"]]:
        """
        Match every candidate against ``anchor``.

        Args:
            anchor: Registered frame whose points are the fixed side
            candidate_ids: Ids of scans passed to ``start``

        Returns:
            One match (or None) per candidate, in candidate order

        Raises:
            RuntimeError: If the executor was not started or a worker fails
        """
        if not self.is_running:
            raise RuntimeError("MatchParallelExecutor.start must be called before match_all")

        self.batches_run += 1
        if not candidate_ids:
            return []

        start_time = time.time()

        if self._pool is None:
            results = []
            for cid in candidate_ids:
                try:
                    results.append(self._matcher.match(anchor.points, self._scans[cid]))
                except Exception as e:
                    logger.error(f"Error matching scan {cid}: {e}", exc_info=True)
                    raise RuntimeError(f"Matching failed for scan {cid}: {e}") from e
            return results

        matrix = anchor.transform.to_matrix().tolist()
        tasks = [(anchor.scan_id, matrix, cid) for cid in candidate_ids]
        outcomes = self._pool.map(_match_task, tasks)

        errors = [(cid, error) for cid, (_, error) in zip(candidate_ids, outcomes) if error]
        if errors:
            error_msg = f"{len(errors)} match attempts failed out of {len(candidate_ids)}"
            logger.error(error_msg)
            for cid, error in errors[:5]:
                logger.error(f"  Scan {cid}: {error}")
            if len(errors) > 5:
                logger.error(f"  ... and {len(errors) - 5} more errors")
            raise RuntimeError(error_msg)

        logger.debug(
            f"Matched {len(candidate_ids)} candidates against scan {anchor.scan_id} "
            f"in {time.time() - start_time:.2f}s"
        )
        return [match for match, _ in outcomes]

    def close(self) -> None:
        """Shut the pool down. Safe to call more than once."""
        if self._pool is not None:
            self._pool.close()
            self._pool.join()
            self._pool = None
        self._scans = None
        self._matcher = None

    def __enter__(self) -> "MatchParallelExecutor":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
