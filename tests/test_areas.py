"""Tests for the accuracy areas."""

import numpy as np
import numpy.testing as npt
import pytest

from blobtree import Accuracies, AreaBox, AreaCapsule, AreaSphere, Box3
from blobtree.areas import FAR_STEP, Sphere


def _p(*xyz) -> np.ndarray:
    return np.array(xyz, dtype=float)


class TestAccuracies:
    def test_defaults(self):
        acc = Accuracies()
        assert (acc.nice, acc.curr, acc.raw) == (0.3, 0.3, 1.0)

    def test_frozen(self):
        with pytest.raises(Exception):
            Accuracies().nice = 0.1

    def test_injected_factors_change_accuracy(self):
        fine = AreaSphere((0, 0, 0), 20.0, 0.5, Accuracies(curr=0.1))
        npt.assert_allclose(fine.get_min_acc(), 1.0)


class TestAreaSphere:
    def _area(self):
        return AreaSphere((0, 0, 0), 20.0, 0.5)

    def test_min_accuracies(self):
        a = self._area()
        npt.assert_allclose(a.get_min_acc(), 3.0)
        npt.assert_allclose(a.get_min_raw_acc(), 10.0)

    def test_tier_accuracies(self):
        a = self._area()
        s = Sphere(_p(0, 0, 0), 1.0)
        npt.assert_allclose(a.get_nice_acc(s), 3.0)
        npt.assert_allclose(a.get_curr_acc(s), 3.0)
        npt.assert_allclose(a.get_raw_acc(s), 10.0)

    def test_sphere_intersect(self):
        a = self._area()
        assert a.sphere_intersect(Sphere(_p(30, 0, 0), 11.0))
        assert not a.sphere_intersect(Sphere(_p(30, 0, 0), 9.0))

    def test_contains(self):
        a = self._area()
        assert a.contains(_p(19, 0, 0))
        assert not a.contains(_p(21, 0, 0))

    def test_axis_projection_min_step(self):
        a = self._area()
        npt.assert_allclose(a.get_axis_projection_min_step("z", -50.0), 30.0)
        npt.assert_allclose(a.get_axis_projection_min_step("z", 0.0), 3.0)
        assert a.get_axis_projection_min_step(2, 50.0) == FAR_STEP

    def test_bad_axis_raises(self):
        with pytest.raises(ValueError):
            self._area().get_axis_projection_min_step("w", 0.0)


class TestAreaCapsule:
    def _area(self):
        return AreaCapsule((0, 0, 0), (0, 0, 20), 4.0, 8.0, 0.5, 0.5)

    def test_min_accuracies_use_thin_end(self):
        a = self._area()
        npt.assert_allclose(a.get_min_acc(), 0.3 * 2.0)
        npt.assert_allclose(a.get_min_raw_acc(), 1.0 * 2.0)

    def test_contains(self):
        a = self._area()
        assert a.contains(_p(0, 0, -3))
        assert a.contains(_p(5, 0, 10))
        assert not a.contains(_p(9, 0, 10))
        assert a.contains(_p(0, 0, 27))

    def test_sphere_intersect(self):
        a = self._area()
        assert a.sphere_intersect(Sphere(_p(10, 0, 10), 5.0))
        assert not a.sphere_intersect(Sphere(_p(30, 0, 10), 5.0))

    def test_accuracy_grows_with_radius(self):
        a = self._area()
        near_thin = a.get_curr_acc(Sphere(_p(0, 0, 0), 0.1))
        near_thick = a.get_curr_acc(Sphere(_p(0, 0, 20), 0.1))
        assert near_thick > near_thin

    def test_axis_projection_min_step(self):
        a = self._area()
        # far below: jump close to the thin end
        assert a.get_axis_projection_min_step("z", -50.0) > 10.0
        # along the axis: the local accuracy
        mid = a.get_axis_projection_min_step("z", 10.0)
        assert 0.3 * 2.0 <= mid <= 0.3 * 4.0
        assert a.get_axis_projection_min_step("z", 100.0) == FAR_STEP

    def test_degenerate_capsule(self):
        a = AreaCapsule((1, 1, 1), (1, 1, 1), 3.0, 3.0)
        assert a.contains(_p(1, 1, 2))
        npt.assert_allclose(a.get_curr_acc(Sphere(_p(0, 0, 0), 1.0)), 0.9)


class TestAreaBox:
    def test_axis_steps(self):
        a = AreaBox(Box3((-5, -5, -5), (5, 5, 5)), 0.5, 2.0)
        npt.assert_allclose(a.get_axis_projection_min_step("x", -20.0), 15.0)
        npt.assert_allclose(a.get_axis_projection_min_step("x", 0.0), 0.5)
        assert a.get_axis_projection_min_step("x", 6.0) == FAR_STEP

    def test_queries(self):
        a = AreaBox(Box3((-5, -5, -5), (5, 5, 5)), 0.5, 2.0)
        assert a.contains(_p(5, 0, 0))
        assert a.sphere_intersect(Sphere(_p(7, 0, 0), 2.5))
        assert not a.sphere_intersect(Sphere(_p(9, 0, 0), 2.5))
        npt.assert_allclose(a.get_min_raw_acc(), 2.0)
        npt.assert_allclose(a.get_raw_acc(Sphere(_p(0, 0, 0), 1.0)), 0.5 / 0.3)
