"""
Test suite for the scan report loader.
"""

from pathlib import Path
import sys

import numpy as np
import pytest

sys.path.append(str(Path(__file__).parent.parent / "src"))

from scanner_registration.preprocessing.loader import (
    MalformedInputError,
    ScanLoader,
    load_scans,
    parse_point,
    parse_scans,
)

SAMPLE = Path(__file__).parent / "data" / "sample_scans.txt"


def test_load_sample_report():
    scans = ScanLoader(SAMPLE).load()
    assert [s.scan_id for s in scans] == [0, 1, 2, 3, 4]
    assert [len(s) for s in scans] == [25, 25, 26, 25, 26]
    assert scans[0].points[0].tolist() == [404, -588, -901]
    assert scans[4].points[-1].tolist() == [30, -46, -14]
    assert scans[0].points.dtype == np.int64


def test_scans_are_read_only():
    scan = load_scans(SAMPLE)[0]
    with pytest.raises(ValueError):
        scan.points[0, 0] = 1


def test_parse_point_tolerates_whitespace():
    assert parse_point(" 1, -2 ,3 ") == (1, -2, 3)


def test_header_without_number_uses_block_index():
    text = "--- first ---\n1,2,3\n\n--- second ---\n4,5,6\n"
    scans = parse_scans(text)
    assert [s.scan_id for s in scans] == [0, 1]


def test_header_id_is_used():
    scans = parse_scans("--- scanner 7 ---\n1,2,3\n--- scanner 3 ---\n4,5,6\n")
    assert [s.scan_id for s in scans] == [7, 3]
    assert scans[0].points.tolist() == [[1, 2, 3]]


def test_empty_scan_block():
    scans = parse_scans("--- scanner 0 ---\n\n--- scanner 1 ---\n1,1,1\n")
    assert len(scans[0]) == 0
    assert scans[0].points.shape == (0, 3)


def test_empty_report():
    assert parse_scans("") == []


@pytest.mark.parametrize(
    "text, lineno",
    [
        ("--- scanner 0 ---\n1,2\n", 2),
        ("--- scanner 0 ---\n1,2,3,4\n", 2),
        ("--- scanner 0 ---\n1,2,3\n1,x,3\n", 3),
        ("1,2,3\n", 1),
        ("--- scanner 0 ---\n1,2,3\n\n4,5,6\n", 4),
    ],
)
def test_malformed_lines_report_line_number(text, lineno):
    with pytest.raises(MalformedInputError) as excinfo:
        parse_scans(text)
    assert excinfo.value.lineno == lineno
    assert f"Line {lineno}" in str(excinfo.value)


def test_duplicate_ids_rejected():
    with pytest.raises(MalformedInputError, match="duplicate"):
        parse_scans("--- scanner 1 ---\n1,2,3\n--- scanner 1 ---\n4,5,6\n")


def test_missing_file():
    with pytest.raises(FileNotFoundError):
        load_scans(Path(__file__).parent / "data" / "does_not_exist.txt")
