"""
Analysis Module

Post-processing over registered scanner positions.
"""

from .distances import manhattan_distance, max_manhattan, pairwise_manhattan

__all__ = [
    "manhattan_distance",
    "max_manhattan",
    "pairwise_manhattan",
]
