"""
Transform persistence

Saves and loads the per-scan transforms of a merge as 4x4 homogeneous
integer matrices in a plain text file, one ``# scan <id>`` block per scan.
"""

from __future__ import annotations

import io
import re
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Union

import numpy as np

from ..utils.coordinate_transform import RigidTransform
from ..utils.logging import setup_logger
from .rotations import is_proper_rotation
from .scan import RegisteredFrame

logger = setup_logger(__name__)

_HEADER = re.compile(r"^#\s*scan\s+(-?\d+)\s*$")


def save_transforms(
    frames: Union[Mapping[int, RegisteredFrame], Iterable[RegisteredFrame]],
    output_file: Union[str, Path],
) -> None:
    """Save registered transforms to a text file.

    Args:
        frames: Registered frames (a MergeResult.frames mapping or any iterable)
        output_file: Path to output file
    """
    if isinstance(frames, Mapping):
        frames = frames.values()

    output_path = Path(output_file)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    count = 0
    with output_path.open("w", encoding="utf-8") as f:
        for frame in frames:
            f.write(f"# scan {frame.scan_id}\n")
            np.savetxt(f, frame.transform.to_matrix(), fmt="%d")
            count += 1

    logger.info(f"Saved {count} transforms to {output_path}")


def load_transforms(input_file: Union[str, Path]) -> Dict[int, RigidTransform]:
    """Load transforms written by :func:`save_transforms`.

    Args:
        input_file: Path to input file

    Returns:
        Mapping of scan id to transform, in file order

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If a block is not a valid 4x4 integer transform
    """
    input_path = Path(input_file)
    if not input_path.exists():
        raise FileNotFoundError(f"Transform file not found: {input_path}")

    blocks: Dict[int, List[str]] = {}
    current = None
    for lineno, line in enumerate(input_path.read_text(encoding="utf-8").splitlines(), start=1):
        if not line.strip():
            continue
        header = _HEADER.match(line.strip())
        if header:
            current = int(header.group(1))
            if current in blocks:
                raise ValueError(f"Line {lineno}: duplicate transform for scan {current}")
            blocks[current] = []
            continue
        if current is None:
            raise ValueError(f"Line {lineno}: matrix row before any '# scan' header")
        blocks[current].append(line)

    transforms = {}
    for scan_id, rows in blocks.items():
        matrix = np.loadtxt(io.StringIO("\n".join(rows)), ndmin=2)
        try:
            transform = RigidTransform.from_matrix(matrix)
        except ValueError as e:
            raise ValueError(f"Invalid transform for scan {scan_id}: {e}") from e
        if not is_proper_rotation(transform.rotation):
            raise ValueError(f"Invalid transform for scan {scan_id}: rotation is not axis-aligned")
        transforms[scan_id] = transform

    logger.info(f"Loaded {len(transforms)} transforms from {input_path}")
    return transforms
