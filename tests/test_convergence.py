"""Tests for the safeguarded Newton iterations."""

import numpy as np
import numpy.testing as npt
import pytest

from blobtree import ValueResult, safe_newton_1d, safe_newton_3d
from blobtree.examples import single_point


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

class _LinearField:
    """f(p) = dot(n, p)."""

    def __init__(self, n):
        self.n = np.asarray(n, dtype=float)
        self.calls = 0

    def value(self, p, res: ValueResult) -> None:
        self.calls += 1
        res.v = float(np.dot(self.n, p))
        if res.g is not None:
            res.g[:] = self.n


class _FlatField:
    def value(self, p, res: ValueResult) -> None:
        res.v = 0.0
        if res.g is not None:
            res.g[:] = 0.0


# ===========================================================================
# 3-D
# ===========================================================================

class TestSafeNewton3D:
    def test_linear_field_converges(self):
        res = safe_newton_3d(_LinearField((1, 0, 0)), (0, 0, 0), 2.5, 1e-6, 10, 10.0)
        assert res.converged
        npt.assert_allclose(res.point, [2.5, 0, 0], atol=1e-12)

    def test_result_within_eps(self):
        field = _LinearField((0.0, 3.0, 4.0))
        res = safe_newton_3d(field, (1, 1, 1), 1.0, 1e-4, 20, 10.0)
        v = ValueResult()
        field.value(res.point, v)
        # |value error| / |gradient| is the geometric distance
        assert abs(v.v - 1.0) / 5.0 < 1e-4

    def test_leaving_radius_returns_start(self):
        res = safe_newton_3d(_LinearField((1, 0, 0)), (0, 0, 0), 5.0, 1e-6, 10, 1.0)
        assert not res.converged
        npt.assert_array_equal(res.point, [0, 0, 0])

    def test_zero_gradient_returns_start(self):
        res = safe_newton_3d(_FlatField(), (1, 2, 3), 1.0, 1e-6, 10, 10.0)
        assert not res.converged
        npt.assert_array_equal(res.point, [1, 2, 3])

    def test_step_limit(self):
        field = _LinearField((1, 0, 0))
        res = safe_newton_3d(field, (0, 0, 0), 1.0, 1e-6, 1, 10.0)
        assert res.steps == 1
        assert field.calls == 1

    def test_writes_into_out(self):
        out = np.zeros(3)
        res = safe_newton_3d(_LinearField((1, 0, 0)), (0, 0, 0), 1.0, 1e-6, 10, 10.0, out=out)
        assert res.point is out

    def test_snaps_onto_sphere(self):
        root = single_point(10.0)
        res = safe_newton_3d(root, (0, 8.5, 0), 1.0, 1e-5, 20, 5.0)
        assert res.converged
        npt.assert_allclose(np.linalg.norm(res.point), 10.0, atol=1e-4)


# ===========================================================================
# 1-D
# ===========================================================================

class TestSafeNewton1D:
    def test_linear_field(self):
        # f = 5 - t along the ray, inside for small t
        res = safe_newton_1d(
            _LinearField((1, 0, 0)), (5, 0, 0), (-1, 0, 0),
            0.0, 5.0, 1.0, 2.0, 1e-6, 50,
        )
        npt.assert_allclose(res.absc, 3.0, atol=1e-6)
        npt.assert_allclose(res.point, [2.0, 0, 0], atol=1e-6)
        npt.assert_allclose(res.gradient, [1, 0, 0])

    def test_without_gradient(self):
        res = safe_newton_1d(
            _LinearField((1, 0, 0)), (5, 0, 0), (-1, 0, 0),
            0.0, 5.0, 1.0, 2.0, 1e-6, 50, want_gradient=False,
        )
        assert res.gradient is None

    def test_flat_field_bisects_within_bracket(self):
        res = safe_newton_1d(
            _FlatField(), (0, 0, 0), (1, 0, 0), 0.0, 4.0, 1.0, 1.0, 1e-3, 5,
        )
        assert 0.0 <= res.absc <= 4.0

    def test_null_direction_raises(self):
        with pytest.raises(ValueError):
            safe_newton_1d(_FlatField(), (0, 0, 0), (0, 0, 0), 0.0, 1.0, 0.5, 1.0, 1e-3, 5)

    def test_bad_eps_raises(self):
        with pytest.raises(ValueError):
            safe_newton_1d(_FlatField(), (0, 0, 0), (1, 0, 0), 0.0, 1.0, 0.5, 1.0, 0.0, 5)

    def test_start_outside_bracket_raises(self):
        with pytest.raises(ValueError):
            safe_newton_1d(_FlatField(), (0, 0, 0), (1, 0, 0), 0.0, 1.0, 2.0, 1.0, 1e-3, 5)
