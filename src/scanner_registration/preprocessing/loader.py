"""
Scan Report Loader

This module parses scanner reports into Scan objects. A report is a text
file of blocks, each a header line followed by one ``x,y,z`` beacon per line:

    --- scanner 0 ---
    404,-588,-901
    528,-643,409

    --- scanner 1 ---
    686,422,578
"""

import re
from pathlib import Path
from typing import List, Optional, Tuple, Union

import numpy as np

from ..alignment.scan import Scan
from ..utils.logging import setup_logger

logger = setup_logger(__name__)

_HEADER_ID = re.compile(r"-?\d+")


class MalformedInputError(ValueError):
    """A scan report line could not be parsed."""

    def __init__(self, message: str, lineno: Optional[int] = None):
        self.lineno = lineno
        if lineno is not None:
            message = f"Line {lineno}: {message}"
        super().__init__(message)


def parse_point(line: str, lineno: Optional[int] = None) -> Tuple[int, int, int]:
    """Parse one ``x,y,z`` line.

    Raises:
        MalformedInputError: If the line does not hold exactly three integers
    """
    fields = [f.strip() for f in line.split(",")]
    if len(fields) != 3:
        raise MalformedInputError(f"expected 3 coordinates, got {len(fields)}: {line!r}", lineno)
    try:
        x, y, z = (int(f) for f in fields)
    except ValueError:
        raise MalformedInputError(f"non-integer coordinate in {line!r}", lineno) from None
    return (x, y, z)


def parse_scans(text: str) -> List[Scan]:
    """
    Parse a scan report.

    The scan id is the integer in the header line when there is one,
    otherwise the block's position in the report.

    Args:
        text: Full report contents

    Returns:
        Scans in report order

    Raises:
        MalformedInputError: On bad coordinates or points outside a scan block
    """
    blocks: List[Tuple[int, List[Tuple[int, int, int]]]] = []
    current: Optional[List[Tuple[int, int, int]]] = None

    for lineno, raw in enumerate(text.splitlines(), start=1):
        line = raw.strip()
        if not line:
            current = None
            continue
        if line.startswith("---"):
            found = _HEADER_ID.search(line.strip("- "))
            scan_id = int(found.group()) if found else len(blocks)
            current = []
            blocks.append((scan_id, current))
            continue
        if current is None:
            raise MalformedInputError("beacon outside of a '--- scanner N ---' block", lineno)
        current.append(parse_point(line, lineno))

    ids = [scan_id for scan_id, _ in blocks]
    if len(set(ids)) != len(ids):
        raise MalformedInputError(f"duplicate scanner ids in report: {ids}")

    return [
        Scan(scan_id=scan_id, points=np.array(points, dtype=np.int64).reshape(-1, 3))
        for scan_id, points in blocks
    ]


class ScanLoader:
    """
    Loads scan reports from disk.

    Features:
    - Header-delimited scan blocks with integer beacon coordinates
    - Line-numbered errors for malformed reports
    - Basic statistics logged per load
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def load(self) -> List[Scan]:
        """
        Read and parse the report.

        Raises:
            FileNotFoundError: If the file does not exist
            MalformedInputError: If the report cannot be parsed
        """
        if not self.path.exists():
            raise FileNotFoundError(f"File not found: {self.path}")

        logger.info(f"Loading scans from {self.path}")
        scans = parse_scans(self.path.read_text(encoding="utf-8"))

        if not scans:
            logger.warning(f"No scans found in {self.path}")
        else:
            n_points = sum(len(scan) for scan in scans)
            logger.info(f"Loaded {len(scans)} scans with {n_points} beacons in total")
        return scans


def load_scans(path: Union[str, Path]) -> List[Scan]:
    return ScanLoader(path).load()
