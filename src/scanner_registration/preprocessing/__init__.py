"""
Data Preprocessing Module

This module handles reading scanner reports:
- Parsing header-delimited beacon lists
- Validation of coordinate lines
"""

from .loader import ScanLoader, MalformedInputError, load_scans, parse_scans

__all__ = [
    "ScanLoader",
    "MalformedInputError",
    "load_scans",
    "parse_scans",
]
