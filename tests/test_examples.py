"""Tests for the blobtree.examples assemblies."""

import numpy as np
import pytest

from blobtree import (
    DifferenceNode, RootNode, ScalisPoint, ScalisSegment, SMCParams,
    SlidingMarchingCubes, TwistNode, ValueResult,
)
from blobtree.examples import (
    capsule_chain, carved_blob, point_pair, single_point, twisted_bar,
)


def _v(root, *xyz) -> float:
    res = ValueResult()
    root.value(np.array(xyz, dtype=float), res)
    return res.v


class TestAssemblies:
    @pytest.mark.parametrize("factory", [
        single_point, capsule_chain, carved_blob, twisted_bar,
        lambda: point_pair("min"), lambda: point_pair("max"),
        lambda: point_pair("ricci"),
    ])
    def test_returns_prepared_root(self, factory):
        root = factory()
        assert isinstance(root, RootNode)
        assert root.is_valid_aabb()
        assert not root.get_aabb().is_empty()

    def test_single_point(self):
        root = single_point(5.0, center=(1, 2, 3))
        assert root.count(ScalisPoint) == 1
        assert _v(root, 1, 2, 3) > 1.0

    def test_point_pair_bad_kind(self):
        with pytest.raises(ValueError):
            point_pair("sum")

    def test_capsule_chain_shares_vertices(self):
        root = capsule_chain()
        assert root.count(ScalisSegment) == 2
        a, b = root.get_children()
        assert a.v[1] is b.v[0]

    def test_capsule_chain_validates(self):
        with pytest.raises(ValueError):
            capsule_chain([(0, 0, 0), (1, 0, 0)], [1.0])
        with pytest.raises(ValueError):
            capsule_chain([(0, 0, 0)], [1.0])

    def test_carved_blob_has_hole(self):
        root = carved_blob()
        assert root.count(DifferenceNode) == 1
        # inside the body, carved away by the hole
        assert _v(root, 0, 6, 0) < root.get_iso_value()
        # the far end of the body is untouched
        assert _v(root, 12, 0, 0) > root.get_iso_value()

    def test_twisted_bar(self):
        root = twisted_bar()
        assert root.count(TwistNode) == 1
        assert _v(root, 0, 0, 0) > root.get_iso_value()


class TestAssemblyMeshes:
    def test_carved_blob_mesh_is_closed(self):
        mesh = SlidingMarchingCubes(carved_blob()).compute()
        assert mesh.n_faces > 0
        assert mesh.boundary_edges() == []

    def test_twisted_bar_mesh(self):
        mesh = SlidingMarchingCubes(twisted_bar(), SMCParams(detail_ratio=2.0)).compute()
        assert mesh.n_faces > 0
        assert mesh.boundary_edges() == []
        lo, hi = mesh.bounds()
        # the bar runs along y
        assert hi[1] - lo[1] > 30.0
