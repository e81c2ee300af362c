"""Tests for the SCALIS primitives."""

import numpy as np
import numpy.testing as npt
import pytest

from blobtree import (
    AreaCapsule, AreaSphere, Material, ScalisPoint, ScalisSegment,
    ScalisVertex, ValueResult,
)
from blobtree.scalis import KS, POLY6_NF0D, poly6_eval


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _p(*xyz) -> np.ndarray:
    return np.array(xyz, dtype=float)


def _point(th=10.0, density=1.0) -> ScalisPoint:
    p = ScalisPoint(ScalisVertex((0, 0, 0), th), density=density)
    p.prepare_for_eval()
    return p


def _segment(th0=4.0, th1=4.0) -> ScalisSegment:
    s = ScalisSegment(
        ScalisVertex((-10, 0, 0), th0),
        ScalisVertex((10, 0, 0), th1),
        materials=[Material(color=(1, 0, 0)), Material(color=(0, 0, 1))],
    )
    s.prepare_for_eval()
    return s


# ===========================================================================
# Kernel
# ===========================================================================

class TestKernel:
    def test_poly6_support(self):
        assert poly6_eval(0.0) == 1.0
        assert poly6_eval(KS) == 0.0
        assert poly6_eval(3.0) == 0.0

    def test_normalization_puts_iso_one_at_thickness(self):
        npt.assert_allclose(poly6_eval(1.0) * POLY6_NF0D, 1.0)


# ===========================================================================
# ScalisVertex
# ===========================================================================

class TestScalisVertex:
    def test_support_radius(self):
        assert ScalisVertex((0, 0, 0), 3.0).support_radius() == 3.0 * KS

    def test_setters_invalidate_primitive(self):
        p = _point()
        p.vertex.set_pos((1, 0, 0))
        assert not p.is_valid_aabb()
        p.prepare_for_eval()
        npt.assert_allclose(p.get_aabb().min, [-19.0, -20.0, -20.0])


# ===========================================================================
# ScalisPoint
# ===========================================================================

class TestScalisPoint:
    def test_iso_one_at_thickness(self):
        res = ValueResult()
        _point().value(_p(10, 0, 0), res)
        npt.assert_allclose(res.v, 1.0)

    def test_zero_outside_support(self):
        res = ValueResult()
        _point().value(_p(25, 0, 0), res)
        assert res.v == 0.0

    def test_density_scales_field(self):
        res = ValueResult()
        _point(density=2.0).value(_p(10, 0, 0), res)
        npt.assert_allclose(res.v, 2.0)

    def test_gradient_matches_finite_differences(self):
        p = _point()
        x = _p(3.0, -4.0, 5.0)
        res = ValueResult.with_gradient()
        p.value(x, res)
        num = p.numerical_gradient(x, np.zeros(3))
        npt.assert_allclose(res.g, num, rtol=1e-5, atol=1e-8)
        # field decreases outward
        assert np.dot(res.g, x) < 0

    def test_material_inside_reset_outside(self):
        p = ScalisPoint(ScalisVertex((0, 0, 0), 10.0), material=Material(color=(1, 0, 0)))
        p.prepare_for_eval()
        res = ValueResult.full()
        p.value(_p(5, 0, 0), res)
        npt.assert_allclose(res.m.color, [1, 0, 0])
        p.value(_p(50, 0, 0), res)
        assert res.m.equals(Material())

    def test_step_hints(self):
        p = _point()
        res = ValueResult(step=0.0)
        p.value(_p(5, 0, 0), res)
        npt.assert_allclose(res.step, 10.0 / 3.0)
        res.step = 0.0
        p.value(_p(30, 0, 0), res)
        npt.assert_allclose(res.step, 10.0)

    def test_area(self):
        (entry,) = _point().get_areas()
        assert isinstance(entry.area, AreaSphere)
        npt.assert_allclose(entry.area.r, 20.0)
        npt.assert_allclose(entry.area.get_min_acc(), 0.3 * 20.0 * 0.5)


# ===========================================================================
# ScalisSegment
# ===========================================================================

class TestScalisSegment:
    def test_iso_one_at_thickness_around_axis(self):
        res = ValueResult()
        _segment().value(_p(3.0, 4.0, 0.0), res)
        npt.assert_allclose(res.v, 1.0, atol=1e-12)

    def test_cap_behaves_like_point(self):
        res = ValueResult()
        _segment().value(_p(-14.0, 0.0, 0.0), res)
        npt.assert_allclose(res.v, 1.0, atol=1e-12)

    def test_aabb(self):
        s = _segment(2.0, 4.0)
        npt.assert_allclose(s.get_aabb().min, [-14.0, -8.0, -8.0])
        npt.assert_allclose(s.get_aabb().max, [18.0, 8.0, 8.0])

    def test_thicker_end_has_wider_field(self):
        s = _segment(2.0, 6.0)
        a = ValueResult()
        b = ValueResult()
        s.value(_p(-8.0, 3.0, 0.0), a)
        s.value(_p(8.0, 3.0, 0.0), b)
        assert b.v > a.v

    def test_material_interpolated(self):
        s = _segment()
        res = ValueResult.full()
        s.value(_p(0.0, 1.0, 0.0), res)
        npt.assert_allclose(res.m.color, [0.5, 0.0, 0.5])

    def test_gradient_points_inward(self):
        s = _segment()
        res = ValueResult.with_gradient()
        s.value(_p(0.0, 3.0, 0.0), res)
        assert res.g[1] < 0
        npt.assert_allclose(res.g[0], 0.0, atol=1e-6)

    def test_needs_two_materials(self):
        with pytest.raises(ValueError):
            ScalisSegment(
                ScalisVertex((0, 0, 0), 1.0), ScalisVertex((1, 0, 0), 1.0),
                materials=[Material(), Material(), Material()],
            )

    def test_area(self):
        (entry,) = _segment(2.0, 4.0).get_areas()
        assert isinstance(entry.area, AreaCapsule)
        npt.assert_allclose(entry.area.get_min_acc(), 0.3 * 2.0)
