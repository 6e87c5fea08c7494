"""
Tests for integer point helpers and RigidTransform.
"""

from pathlib import Path
import sys

import numpy as np
import pytest

sys.path.append(str(Path(__file__).parent.parent / "src"))

from scanner_registration.alignment.rotations import ROTATIONS
from scanner_registration.utils.coordinate_transform import (
    RigidTransform,
    as_point,
    as_points,
    point_set,
)


class TestPointHelpers:

    def test_as_point_converts_numpy_row_to_python_ints(self):
        p = as_point(np.array([1, -2, 3], dtype=np.int32))
        assert p == (1, -2, 3)
        assert all(type(v) is int for v in p)

    def test_as_points_validates_shape(self):
        with pytest.raises(ValueError, match="Nx3"):
            as_points([[1, 2], [3, 4]])

    def test_as_points_rejects_fractional_coordinates(self):
        with pytest.raises(ValueError, match="integers"):
            as_points([[1.5, 2.0, 3.0]])

    def test_as_points_accepts_integral_floats_and_empty(self):
        assert as_points([[1.0, 2.0, 3.0]]).dtype == np.int64
        assert as_points([]).shape == (0, 3)

    def test_point_set_is_hashable_exact(self):
        s = point_set(np.array([[1, 2, 3], [1, 2, 3], [4, 5, 6]]))
        assert s == {(1, 2, 3), (4, 5, 6)}


class TestRigidTransform:

    def test_identity_leaves_points_unchanged(self):
        t = RigidTransform.identity()
        pts = np.array([[1, 2, 3], [-4, 5, -6]])
        assert np.array_equal(t.apply(pts), pts)
        assert t.apply_point((7, 8, 9)) == (7, 8, 9)

    def test_apply_matches_apply_point(self):
        t = RigidTransform(rotation=ROTATIONS[7], translation=(10, -20, 30))
        pts = np.array([[1, 2, 3], [-4, 5, -6], [0, 0, 0]])
        mapped = t.apply(pts)
        for row, p in zip(mapped.tolist(), pts.tolist()):
            assert tuple(row) == t.apply_point(tuple(p))
        # The scanner origin lands on the translation
        assert t.apply_point((0, 0, 0)) == (10, -20, 30)

    def test_inverse_round_trip(self):
        rng = np.random.default_rng(3)
        pts = rng.integers(-500, 500, size=(20, 3))
        for R in ROTATIONS:
            t = RigidTransform(rotation=R, translation=(5, -7, 11))
            assert np.array_equal(t.inverse().apply(t.apply(pts)), pts)
            assert t.compose(t.inverse()) == RigidTransform.identity()

    def test_compose_applies_right_operand_first(self):
        a = RigidTransform(rotation=ROTATIONS[3], translation=(1, 2, 3))
        b = RigidTransform(rotation=ROTATIONS[17], translation=(-4, 0, 9))
        p = (12, -5, 8)
        assert a.compose(b).apply_point(p) == a.apply_point(b.apply_point(p))

    def test_matrix_round_trip(self):
        t = RigidTransform(rotation=ROTATIONS[11], translation=(68, -1246, -43))
        T = t.to_matrix()
        assert T.shape == (4, 4)
        assert T[3].tolist() == [0, 0, 0, 1]
        assert RigidTransform.from_matrix(T) == t

    def test_from_matrix_rejects_non_integer(self):
        T = np.eye(4)
        T[0, 3] = 0.5
        with pytest.raises(ValueError, match="integer"):
            RigidTransform.from_matrix(T)

    def test_from_matrix_rejects_wrong_shape(self):
        with pytest.raises(ValueError, match="4x4"):
            RigidTransform.from_matrix(np.eye(3))

    def test_equal_transforms_hash_equal(self):
        a = RigidTransform(rotation=ROTATIONS[5], translation=(1, 2, 3))
        b = RigidTransform(rotation=ROTATIONS[5].copy(), translation=[1, 2, 3])
        assert a == b
        assert hash(a) == hash(b)
        assert a != RigidTransform(rotation=ROTATIONS[6], translation=(1, 2, 3))
