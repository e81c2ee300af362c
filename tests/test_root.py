"""Tests for blobtree.root.RootNode (trimming and ray queries)."""

import numpy as np
import numpy.testing as npt
import pytest

from blobtree import Box3, PreconditionError, RootNode, ScalisPoint, ScalisVertex
from blobtree.examples import single_point


def _two_point_root() -> RootNode:
    root = RootNode()
    root.add_child(ScalisPoint(ScalisVertex((-30, 0, 0), 5.0)))
    root.add_child(ScalisPoint(ScalisVertex((30, 0, 0), 5.0)))
    root.prepare_for_eval()
    return root


class TestRootBasics:
    def test_defaults(self):
        root = RootNode()
        assert root.get_iso_value() == 1.0
        assert root.get_neutral_value() == 0.0
        assert root.is_empty()
        assert not root.is_trimmed()

    def test_set_iso_value(self):
        root = RootNode()
        root.set_iso_value(0.5)
        assert root.get_iso_value() == 0.5


class TestInternalTrim:
    def test_trim_and_untrim(self):
        root = _two_point_root()
        root.internal_trim(Box3((25, -5, -5), (35, 5, 5)))
        root.prepare_for_eval()
        assert root.is_trimmed()
        assert len(root.get_children()) == 1
        root.internal_untrim()
        root.prepare_for_eval()
        assert not root.is_trimmed()
        assert len(root.get_children()) == 2
        assert root.trimmed == []

    def test_double_trim_raises(self):
        root = _two_point_root()
        root.internal_trim(Box3((25, -5, -5), (35, 5, 5)))
        with pytest.raises(PreconditionError):
            root.internal_trim(Box3((25, -5, -5), (35, 5, 5)))

    def test_double_trim_raises_even_when_nothing_removed(self):
        root = _two_point_root()
        root.internal_trim(Box3((-50, -50, -50), (50, 50, 50)))
        with pytest.raises(PreconditionError):
            root.internal_trim(Box3((-50, -50, -50), (50, 50, 50)))

    def test_untrim_without_trim_is_noop(self):
        root = _two_point_root()
        root.internal_untrim()
        assert len(root.get_children()) == 2

    def test_untrim_mismatched_lists_raises(self):
        root = _two_point_root()
        with pytest.raises(PreconditionError):
            root.untrim([root.get_children()[0]], [])


class TestRayQueries:
    def test_hits_sphere(self):
        root = single_point(10.0)
        hit = root.intersect_ray_blob((-30, 0, 0), (1, 0, 0), 100.0)
        assert hit is not None
        npt.assert_allclose(hit.distance, 20.0, atol=0.05)
        npt.assert_allclose(hit.point, [-10.0, 0.0, 0.0], atol=0.05)
        # gradient points toward the centre
        assert hit.gradient[0] > 0

    def test_direction_need_not_be_normalized(self):
        root = single_point(10.0)
        hit = root.intersect_ray_blob((0, -30, 0), (0, 5, 0), 100.0)
        npt.assert_allclose(hit.distance, 20.0, atol=0.05)

    def test_miss_returns_none(self):
        root = single_point(10.0)
        assert root.intersect_ray_blob((-30, 50, 0), (1, 0, 0), 100.0) is None

    def test_max_distance_limits_search(self):
        root = single_point(10.0)
        assert root.intersect_ray_blob((-30, 0, 0), (1, 0, 0), 5.0) is None

    def test_origin_inside(self):
        root = single_point(10.0)
        hit = root.intersect_ray_blob((1, 0, 0), (1, 0, 0), 100.0)
        assert hit.distance == 0.0

    def test_null_direction_raises(self):
        with pytest.raises(ValueError):
            single_point().intersect_ray_blob((0, 0, 0), (0, 0, 0), 10.0)

    def test_unprepared_raises(self):
        root = RootNode()
        root.add_child(ScalisPoint(ScalisVertex((0, 0, 0), 1.0)))
        with pytest.raises(PreconditionError):
            root.intersect_ray_blob((0, 0, 0), (1, 0, 0), 10.0)
