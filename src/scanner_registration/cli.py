"""
Command-line entry point for scanner registration.

Reads a scan report, merges all scans into the first scan's frame and
prints the number of unique beacons and the largest Manhattan distance
between any two scanners.
"""

import argparse
import sys
from typing import List, Optional

from .acceleration.parallel_executor import MatchParallelExecutor
from .alignment.frame_merger import FrameMerger, NonConvergenceError
from .alignment.pair_matcher import PairMatcher
from .alignment.transform_io import save_transforms
from .analysis.distances import pairwise_manhattan
from .preprocessing.loader import MalformedInputError, load_scans
from .utils.config import AppConfig, load_config
from .utils.logging import set_package_log_level, setup_logger

logger = setup_logger(__name__)

EXIT_OK = 0
EXIT_NOT_CONVERGED = 1
EXIT_BAD_INPUT = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="scanner-registration",
        description="Merge beacon scans into a single reference frame",
    )
    parser.add_argument("input", type=str, help="Path to the scan report")
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to YAML configuration file (defaults to config/default.yaml)",
    )
    parser.add_argument(
        "--min-overlap",
        type=int,
        default=None,
        help="Override the number of shared beacons required to match two scans.",
    )
    parser.add_argument(
        "--method",
        choices=["vectorized", "exhaustive"],
        default=None,
        help="Override the pair matching method.",
    )
    parser.add_argument(
        "--workers",
        type=int,
        default=None,
        help="Match candidates in this many worker processes (enables parallel matching).",
    )
    parser.add_argument(
        "--strict",
        action="store_true",
        help="Treat scans that cannot be registered as an error.",
    )
    parser.add_argument(
        "--transforms-out",
        type=str,
        default=None,
        help="Write the per-scan 4x4 transforms to this file.",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default=None,
        help="Override the configured logging level.",
    )
    return parser


def _apply_overrides(cfg: AppConfig, args: argparse.Namespace) -> AppConfig:
    """Return a new config with command-line overrides, validated like the YAML values."""
    data = cfg.model_dump()
    if args.min_overlap is not None:
        data["matching"]["min_overlap"] = args.min_overlap
    if args.method is not None:
        data["matching"]["method"] = args.method
    if args.workers is not None:
        data["parallel"]["enabled"] = True
        data["parallel"]["n_workers"] = args.workers
    if args.strict:
        data["merge"]["require_convergence"] = True
    if args.log_level is not None:
        data["logging"]["level"] = args.log_level
    return AppConfig.model_validate(data)


def main(argv: Optional[List[str]] = None) -> int:
    """
    Run the registration workflow.

    Returns:
        0 when every scan was registered, 1 when some were not, 2 on input
        or configuration errors
    """
    args = build_parser().parse_args(argv)

    try:
        cfg = _apply_overrides(load_config(args.config), args)
        matcher = PairMatcher(min_overlap=cfg.matching.min_overlap, method=cfg.matching.method)
    except (FileNotFoundError, ValueError) as e:
        logger.error(f"Configuration error: {e}")
        return EXIT_BAD_INPUT

    set_package_log_level(cfg.logging.level, cfg.logging.file)

    try:
        scans = load_scans(args.input)
    except (FileNotFoundError, MalformedInputError) as e:
        logger.error(f"Could not read scans: {e}")
        return EXIT_BAD_INPUT
    if not scans:
        logger.error(f"No scans found in {args.input}")
        return EXIT_BAD_INPUT

    executor = MatchParallelExecutor(cfg.parallel.n_workers) if cfg.parallel.enabled else None
    merger = FrameMerger(
        matcher,
        executor=executor,
        require_convergence=cfg.merge.require_convergence,
    )

    try:
        result = merger.merge(scans)
    except NonConvergenceError as e:
        logger.error(f"Registration failed: {e}")
        return EXIT_NOT_CONVERGED

    logger.debug(
        f"Scanner distance matrix (scans {list(result.frames)}):\n"
        f"{pairwise_manhattan(result.offsets)}"
    )

    if args.transforms_out:
        save_transforms(result.frames, args.transforms_out)

    print(f"Part one: {result.unique_beacon_count}")
    print(f"Part two: {result.max_scanner_distance}")

    if not result.converged:
        print(
            f"Warning: {len(result.unregistered)} scan(s) not registered {result.unregistered}; "
            f"results above are partial",
            file=sys.stderr,
        )
        return EXIT_NOT_CONVERGED
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
