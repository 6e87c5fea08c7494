"""
Unit tests for the parallel match executor.

Tests MatchParallelExecutor for pool lifetime, ordering, in-process
fallback and error handling.
"""

from pathlib import Path
import sys

import pytest

sys.path.append(str(Path(__file__).parent.parent / "src"))

from scanner_registration.acceleration import MatchParallelExecutor
from scanner_registration.alignment.frame_merger import FrameMerger
from scanner_registration.alignment.pair_matcher import PairMatcher
from scanner_registration.alignment.scan import RegisteredFrame
from scanner_registration.preprocessing.loader import load_scans
from scanner_registration.utils.coordinate_transform import RigidTransform

SAMPLE = Path(__file__).parent / "data" / "sample_scans.txt"


# Module-level matcher for pickling compatibility
class _FailingMatcher(PairMatcher):
    """Matcher that raises on every attempt."""

    def match(self, fixed, candidate):
        raise ValueError(f"Intentional error on scan {candidate.scan_id}")


@pytest.fixture(scope="module")
def sample_scans():
    return load_scans(SAMPLE)


def _reference_anchor(scan):
    return RegisteredFrame(scan_id=scan.scan_id, transform=RigidTransform.identity(), points=scan.points)


class TestMatchParallelExecutor:
    """Test suite for MatchParallelExecutor."""

    def test_executor_initialization(self):
        executor = MatchParallelExecutor()
        assert executor.n_workers >= 1
        assert not executor.is_running

        assert MatchParallelExecutor(n_workers=4).n_workers == 4
        # Minimum workers (should be at least 1)
        assert MatchParallelExecutor(n_workers=0).n_workers == 1

    def test_match_all_requires_start(self, sample_scans):
        executor = MatchParallelExecutor(n_workers=2)
        with pytest.raises(RuntimeError, match="start"):
            executor.match_all(_reference_anchor(sample_scans[0]), [1])

    def test_empty_candidates(self, sample_scans):
        with MatchParallelExecutor(n_workers=2) as executor:
            executor.start(sample_scans, PairMatcher())
            assert executor.match_all(_reference_anchor(sample_scans[0]), []) == []

    @pytest.mark.parametrize("n_workers", [1, 3])
    def test_results_match_sequential_in_candidate_order(self, sample_scans, n_workers):
        matcher = PairMatcher(min_overlap=12)
        anchor = _reference_anchor(sample_scans[1])
        candidate_ids = [4, 0, 2, 3]
        expected = [matcher.match(anchor.points, sample_scans[cid]) for cid in candidate_ids]

        with MatchParallelExecutor(n_workers=n_workers) as executor:
            executor.start(sample_scans, matcher)
            results = executor.match_all(anchor, candidate_ids)

        assert [r is None for r in results] == [e is None for e in expected]
        for got, want in zip(results, expected):
            if want is not None:
                assert got.offset == want.offset
                assert got.rotation_index == want.rotation_index
                assert got.overlap == want.overlap

    def test_registered_anchor_is_rebuilt_in_workers(self, sample_scans):
        """Anchors other than the reference are matched in the reference frame."""
        matcher = PairMatcher(min_overlap=12)
        first = matcher.match(sample_scans[0].points, sample_scans[1])
        anchor = RegisteredFrame(scan_id=1, transform=first.transform, points=first.points, anchor_id=0)

        with MatchParallelExecutor(n_workers=2) as executor:
            executor.start(sample_scans, matcher)
            results = executor.match_all(anchor, [3, 4])

        assert [m.transform.translation for m in results] == [(-92, -2380, -20), (-20, -1133, 1061)]

    def test_one_pool_serves_every_frontier_pop(self, sample_scans):
        executor = MatchParallelExecutor(n_workers=2)
        result = FrameMerger(PairMatcher(min_overlap=12), executor=executor).merge(sample_scans)

        assert result.converged
        assert result.unique_beacon_count == 79
        assert executor.pools_started == 1
        # Anchors 0, 1, 3 and 4 are popped before the pool of candidates empties
        assert executor.batches_run == 4
        assert not executor.is_running

    def test_executor_can_be_reused_across_merges(self, sample_scans):
        executor = MatchParallelExecutor(n_workers=2)
        merger = FrameMerger(PairMatcher(min_overlap=12), executor=executor)
        first = merger.merge(sample_scans)
        second = merger.merge(sample_scans)
        assert first.beacons == second.beacons
        assert executor.pools_started == 2

    def test_context_manager_closes_pool(self, sample_scans):
        with MatchParallelExecutor(n_workers=2) as executor:
            executor.start(sample_scans, PairMatcher())
            assert executor.is_running
            with pytest.raises(RuntimeError, match="already running"):
                executor.start(sample_scans, PairMatcher())
        assert not executor.is_running

    def test_errors_raise_runtime_error(self, sample_scans):
        with MatchParallelExecutor(n_workers=2) as executor:
            executor.start(sample_scans, _FailingMatcher())
            with pytest.raises(RuntimeError, match="failed"):
                executor.match_all(_reference_anchor(sample_scans[0]), [1, 2, 3])

    def test_errors_raise_runtime_error_in_process(self, sample_scans):
        with MatchParallelExecutor(n_workers=1) as executor:
            executor.start(sample_scans, _FailingMatcher())
            with pytest.raises(RuntimeError, match="failed"):
                executor.match_all(_reference_anchor(sample_scans[0]), [1])

    def test_merge_closes_pool_when_matching_fails(self, sample_scans):
        executor = MatchParallelExecutor(n_workers=2)
        with pytest.raises(RuntimeError):
            FrameMerger(_FailingMatcher(), executor=executor).merge(sample_scans)
        assert not executor.is_running
