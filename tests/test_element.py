"""Tests for the blobtree element protocol (parenting, caching, trimming)."""

import numpy as np
import numpy.testing as npt
import pytest

from blobtree import (
    Box3, DifferenceNode, Material, MaxNode, MinNode, PreconditionError,
    RicciNode, RootNode, ScaleNode, ScalisPoint, ScalisSegment, ScalisVertex,
    TwistNode, ValueResult,
)
from blobtree.scalis import POLY6_NF0D


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _point(x=0.0, y=0.0, z=0.0, th=5.0) -> ScalisPoint:
    return ScalisPoint(ScalisVertex((x, y, z), th))


def _two_point_root() -> RootNode:
    root = RootNode()
    root.add_child(_point(-30.0))
    root.add_child(_point(30.0))
    root.prepare_for_eval()
    return root


class _CountingPoint(ScalisPoint):
    n_compute = 0

    def compute_aabb(self) -> None:
        self.n_compute += 1
        super().compute_aabb()


class _CountingRicci(RicciNode):
    n_compute = 0

    def compute_aabb(self) -> None:
        self.n_compute += 1
        super().compute_aabb()


def _carved_tree() -> RootNode:
    body = RicciNode(2.0, [_point(-30.0), _point(30.0), _point(0.0, 20.0)])
    hole = _point(30.0, 5.0, 0.0, th=4.0)
    root = RootNode()
    root.add_child(DifferenceNode(body, hole))
    root.add_child(_point(-30.0, 0.0, 30.0))
    root.prepare_for_eval()
    return root


def _sample(root, points):
    vals, grads = [], []
    for x in points:
        res = ValueResult.with_gradient()
        root.value(x, res)
        vals.append(res.v)
        grads.append(res.g.copy())
    return np.array(vals), np.array(grads)


def _child_sets(node):
    out = {node.id: {c.id for c in getattr(node, "children", [])}}
    for c in getattr(node, "children", []):
        out.update(_child_sets(c))
    return out


# ===========================================================================
# Parenting
# ===========================================================================

class TestParenting:
    def test_add_child_sets_parent(self):
        node = RicciNode(2.0)
        p = _point()
        node.add_child(p)
        assert p.get_parent() is node
        assert node.get_children() == [p]

    def test_add_child_reparents(self):
        a = RicciNode(2.0)
        b = RicciNode(2.0)
        p = _point()
        a.add_child(p)
        b.add_child(p)
        assert a.get_children() == []
        assert p.get_parent() is b

    def test_remove_child_detaches(self):
        node = RicciNode(2.0)
        p = _point()
        node.add_child(p)
        node.remove_child(p)
        assert p.get_parent() is None
        assert node.get_children() == []

    def test_remove_foreign_child_raises(self):
        node = RicciNode(2.0)
        with pytest.raises(PreconditionError):
            node.remove_child(_point())

    def test_count(self):
        root = RootNode()
        inner = RicciNode(2.0, [_point(), _point(10.0)])
        root.add_child(inner)
        root.add_child(_point(-10.0))
        assert root.count(ScalisPoint) == 3
        assert root.count(RicciNode) == 2  # RootNode is a RicciNode


# ===========================================================================
# AABB cache
# ===========================================================================

class TestAABBCache:
    def test_fresh_root_is_valid(self):
        assert RootNode().is_valid_aabb()

    def test_add_child_invalidates(self):
        root = RootNode()
        root.add_child(_point())
        assert not root.is_valid_aabb()
        root.prepare_for_eval()
        assert root.is_valid_aabb()

    def test_prepare_is_idempotent(self):
        root = _two_point_root()
        before = root.get_aabb().copy()
        root.prepare_for_eval()
        assert root.get_aabb().equals(before)

    def test_vertex_change_invalidates_ancestors(self):
        v = ScalisVertex((0, 0, 0), 5.0)
        p = ScalisPoint(v)
        inner = RicciNode(2.0, [p])
        root = RootNode(children=[inner])
        root.prepare_for_eval()
        v.set_thickness(8.0)
        assert not p.is_valid_aabb()
        assert not inner.is_valid_aabb()
        assert not root.is_valid_aabb()
        root.prepare_for_eval()
        npt.assert_allclose(root.get_aabb().max, [16.0, 16.0, 16.0])

    def test_root_aabb_is_union(self):
        root = _two_point_root()
        npt.assert_allclose(root.get_aabb().min, [-40.0, -10.0, -10.0])
        npt.assert_allclose(root.get_aabb().max, [40.0, 10.0, 10.0])

    def test_value_before_prepare_raises(self):
        p = _point()
        with pytest.raises(PreconditionError):
            p.value(np.zeros(3), ValueResult())

    def test_get_areas_before_prepare_raises(self):
        root = RootNode()
        root.add_child(_point())
        with pytest.raises(PreconditionError):
            root.get_areas()

    def test_root_value_after_add_child_raises(self):
        root = RootNode()
        root.add_child(_point())
        root.prepare_for_eval()
        extra = _point(40.0)
        extra.prepare_for_eval()
        root.add_child(extra)
        with pytest.raises(PreconditionError):
            root.value(np.array([40.0, 0.0, 0.0]), ValueResult())
        root.prepare_for_eval()
        res = ValueResult()
        root.value(np.array([40.0, 0.0, 0.0]), res)
        npt.assert_allclose(res.v, POLY6_NF0D)

    @pytest.mark.parametrize("make", [
        lambda: RicciNode(2.0, [_point()]),
        lambda: MinNode([_point(), _point(1.0)]),
        lambda: MaxNode([_point(), _point(1.0)]),
        lambda: DifferenceNode(_point(), _point(3.0)),
        lambda: ScaleNode(2.0, [_point()]),
        lambda: TwistNode(0.1, (0, 1, 0), [_point()]),
    ])
    def test_node_value_before_prepare_raises(self, make):
        node = make()
        with pytest.raises(PreconditionError):
            node.value(np.zeros(3), ValueResult())
        node.prepare_for_eval()
        node.value(np.zeros(3), ValueResult())

    def test_mutation_leaves_siblings_valid(self):
        v = ScalisVertex((-20, 0, 0), 5.0)
        touched = ScalisPoint(v)
        other = _point(20.0)
        left = RicciNode(2.0, [touched])
        right = RicciNode(2.0, [other])
        root = RootNode(children=[left, right])
        root.prepare_for_eval()
        v.set_pos((-25, 0, 0))
        assert not touched.is_valid_aabb()
        assert not left.is_valid_aabb()
        assert not root.is_valid_aabb()
        assert right.is_valid_aabb()
        assert other.is_valid_aabb()

    def test_prepare_twice_does_not_recompute(self):
        a = _CountingPoint(ScalisVertex((-10, 0, 0), 5.0))
        b = _CountingPoint(ScalisVertex((10, 0, 0), 5.0))
        inner = _CountingRicci(2.0, [a, b])
        root = RootNode(children=[inner])
        root.prepare_for_eval()
        assert (a.n_compute, b.n_compute, inner.n_compute) == (1, 1, 1)
        root.prepare_for_eval()
        assert (a.n_compute, b.n_compute, inner.n_compute) == (1, 1, 1)

    def test_reprepare_only_recomputes_dirty_path(self):
        a = _CountingPoint(ScalisVertex((-10, 0, 0), 5.0))
        b = _CountingPoint(ScalisVertex((10, 0, 0), 5.0))
        inner = _CountingRicci(2.0, [a, b])
        root = RootNode(children=[inner])
        root.prepare_for_eval()
        a.vertex.set_thickness(6.0)
        root.prepare_for_eval()
        assert (a.n_compute, b.n_compute, inner.n_compute) == (2, 1, 2)


# ===========================================================================
# Primitive materials
# ===========================================================================

class TestPrimitiveMaterials:
    def test_set_materials_copies(self):
        p = _point()
        red = Material(color=(1, 0, 0))
        p.set_materials([red])
        red.color[0] = 0.0
        npt.assert_allclose(p.get_materials()[0].color, [1, 0, 0])

    def test_set_materials_wrong_length_raises(self):
        seg = ScalisSegment(ScalisVertex((0, 0, 0), 1.0), ScalisVertex((1, 0, 0), 1.0))
        with pytest.raises(PreconditionError):
            seg.set_materials([Material()])


# ===========================================================================
# Trimming
# ===========================================================================

class TestTrim:
    def test_trim_removes_far_children(self):
        root = _two_point_root()
        trimmed, parents = [], []
        root.trim(Box3((25, -5, -5), (35, 5, 5)), trimmed, parents)
        assert len(root.get_children()) == 1
        assert len(trimmed) == 1
        assert parents == [root]
        npt.assert_allclose(trimmed[0].vertex.pos, [-30.0, 0.0, 0.0])

    def test_untrim_restores(self):
        root = _two_point_root()
        before = root.get_aabb().copy()
        trimmed, parents = [], []
        root.external_trim(Box3((25, -5, -5), (35, 5, 5)), trimmed, parents)
        root.prepare_for_eval()
        root.untrim(trimmed, parents)
        root.prepare_for_eval()
        assert len(root.get_children()) == 2
        assert root.get_aabb().equals(before)

    def test_nested_node_children_are_trimmed(self):
        inner = RicciNode(2.0, [_point(-30.0), _point(30.0)])
        root = RootNode(children=[inner])
        root.prepare_for_eval()
        trimmed, parents = [], []
        root.trim(Box3((25, -5, -5), (35, 5, 5)), trimmed, parents)
        assert len(inner.get_children()) == 1
        assert parents == [inner]

    def test_values_survive_trim_round_trip(self):
        root = _carved_tree()
        box = root.get_aabb()
        rng = np.random.default_rng(7)
        points = rng.uniform(box.min, box.max, size=(200, 3))
        points[:4] = [(30, 0, 0), (27, 3, 0), (-30, 0, 30), (0, 18, 0)]
        v_before, g_before = _sample(root, points)
        structure = _child_sets(root)

        trimmed, parents = [], []
        root.external_trim(Box3((22, -8, -8), (38, 8, 8)), trimmed, parents)
        root.prepare_for_eval()
        assert len(trimmed) == 3
        root.untrim(trimmed, parents)
        root.prepare_for_eval()

        assert _child_sets(root) == structure
        v_after, g_after = _sample(root, points)
        npt.assert_allclose(v_after, v_before, rtol=1e-12, atol=1e-15)
        npt.assert_allclose(g_after, g_before, rtol=1e-12, atol=1e-12)

    def test_trimmed_tree_matches_inside_box(self):
        root = _carved_tree()
        points = np.array([(30, 0, 0), (27, 3, 0), (33, -2, 1)], dtype=float)
        v_full, _ = _sample(root, points)
        root.internal_trim(Box3((22, -8, -8), (38, 8, 8)))
        root.prepare_for_eval()
        v_trim, _ = _sample(root, points)
        root.internal_untrim()
        root.prepare_for_eval()
        # the removed children have no support at these points
        npt.assert_allclose(v_trim, v_full, rtol=1e-12)
