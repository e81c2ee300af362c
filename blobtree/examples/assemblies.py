"""Parametric blobtree assemblies.

Usage::

    from blobtree import SlidingMarchingCubes
    from blobtree.examples import point_pair

    root = point_pair("ricci", distance=15.0, ricci_n=2.0)
    mesh = SlidingMarchingCubes(root).compute()
"""

from __future__ import annotations

from typing import Sequence

from blobtree._math import _VecLike
from blobtree.material import Material
from blobtree.nodes import DifferenceNode, MaxNode, MinNode, RicciNode, ScaleNode, TwistNode
from blobtree.root import RootNode
from blobtree.scalis import ScalisPoint, ScalisSegment, ScalisVertex

_PAIR_KINDS = ("min", "max", "ricci")


def single_point(thickness: float = 10.0, center: _VecLike = (0.0, 0.0, 0.0)) -> RootNode:
    """A single point primitive: an iso-surface sphere of radius *thickness*."""
    root = RootNode()
    root.add_child(ScalisPoint(ScalisVertex(center, thickness)))
    root.prepare_for_eval()
    return root


def point_pair(
    kind: str = "max",
    distance: float = 20.0,
    thickness: float = 10.0,
    ricci_n: float = 64.0,
) -> RootNode:
    """Two identical points on the x axis, *distance* apart.

    Parameters
    ----------
    kind:
        ``"min"`` (intersection-like), ``"max"`` (union-like) or
        ``"ricci"`` (smooth blend of exponent *ricci_n*).
    distance:
        Distance between the two centres.
    thickness:
        Thickness of both points.
    ricci_n:
        Blend exponent, only used when *kind* is ``"ricci"``.

    Raises
    ------
    ValueError
        If *kind* is unknown.
    """
    if kind not in _PAIR_KINDS:
        raise ValueError(f"kind must be one of {_PAIR_KINDS}, got {kind!r}")

    h = 0.5 * distance
    left = ScalisPoint(
        ScalisVertex((-h, 0.0, 0.0), thickness),
        material=Material(color=(0.8, 0.2, 0.2)),
    )
    right = ScalisPoint(
        ScalisVertex((h, 0.0, 0.0), thickness),
        material=Material(color=(0.2, 0.2, 0.8)),
    )
    if kind == "min":
        node = MinNode([left, right])
    elif kind == "max":
        node = MaxNode([left, right])
    else:
        node = RicciNode(ricci_n, [left, right])

    root = RootNode()
    root.add_child(node)
    root.prepare_for_eval()
    return root


def capsule_chain(
    points: Sequence[_VecLike] = ((-20.0, 0.0, 0.0), (0.0, 10.0, 0.0), (20.0, 0.0, 0.0)),
    thicknesses: Sequence[float] = (4.0, 6.0, 4.0),
) -> RootNode:
    """Segments joining consecutive *points*, blended at the root.

    Neighbouring segments share their :class:`ScalisVertex`, so moving a
    vertex later moves both segments.

    Raises
    ------
    ValueError
        If fewer than two points are given or the lengths differ.
    """
    if len(points) != len(thicknesses):
        raise ValueError(
            f"{len(points)} points for {len(thicknesses)} thicknesses"
        )
    if len(points) < 2:
        raise ValueError("capsule_chain needs at least two points")

    verts = [ScalisVertex(p, t) for p, t in zip(points, thicknesses)]
    root = RootNode()
    for v0, v1 in zip(verts[:-1], verts[1:]):
        root.add_child(ScalisSegment(v0, v1))
    root.prepare_for_eval()
    return root


def carved_blob(
    length: float = 30.0,
    thickness: float = 8.0,
    hole_thickness: float = 7.0,
    alpha: float = 1.0,
) -> RootNode:
    """A capsule along x with a point carved out of its top."""
    h = 0.5 * length
    body = ScalisSegment(
        ScalisVertex((-h, 0.0, 0.0), thickness),
        ScalisVertex((h, 0.0, 0.0), thickness),
    )
    hole = ScalisPoint(
        ScalisVertex((0.0, thickness, 0.0), hole_thickness),
        material=Material(color=(0.9, 0.6, 0.1)),
    )
    root = RootNode()
    root.add_child(DifferenceNode(body, hole, alpha))
    root.prepare_for_eval()
    return root


def twisted_bar(
    length: float = 40.0,
    thickness: float = 4.0,
    amount: float = 0.05,
    stretch: float = 1.5,
) -> RootNode:
    """A flat bar along y, stretched along x and twisted around y.

    The bar is a segment inside a :class:`ScaleNode` squashing z by
    *stretch* and stretching x by it, so the cross-section is elliptic and
    the twist is visible.
    """
    h = 0.5 * length
    seg = ScalisSegment(
        ScalisVertex((0.0, -h, 0.0), thickness),
        ScalisVertex((0.0, h, 0.0), thickness),
    )
    scale = ScaleNode((stretch, 1.0, 1.0 / stretch), [seg])
    twist = TwistNode(amount, (0.0, 1.0, 0.0), [scale])
    root = RootNode()
    root.add_child(twist)
    root.prepare_for_eval()
    return root
