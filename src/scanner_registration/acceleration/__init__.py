"""
Acceleration Module

Multiprocessing support for running independent match attempts in parallel.
"""

from .parallel_executor import MatchParallelExecutor

__all__ = [
    "MatchParallelExecutor",
]
