"""
blobtree — Implicit Surface Composition and Adaptive Polygonization
===================================================================

A library for composing compact-support scalar fields into a tree of
blending nodes (a *blobtree*) and extracting the iso-surface of the result
as a triangle mesh with the Sliding Marching Cubes polygonizer.

Implemented features
--------------------
- Primitives: :class:`ScalisPoint`, :class:`ScalisSegment`
- Blend nodes: :class:`RicciNode`, :class:`MinNode`, :class:`MaxNode`,
  :class:`DifferenceNode`
- Warp nodes: :class:`ScaleNode`, :class:`TwistNode`
- Tree root with trimming and ray queries: :class:`RootNode`
- Accuracy areas driving the sampling: :class:`AreaSphere`,
  :class:`AreaCapsule`, :class:`AreaBox`
- Safeguarded Newton refinement: :func:`safe_newton_3d`,
  :func:`safe_newton_1d`
- Adaptive polygonization: :class:`SlidingMarchingCubes`
- Mesh container and ``.npz`` I/O: :class:`Mesh`, :func:`save_npz`,
  :func:`load_npz`
- Example assemblies: :mod:`blobtree.examples`

Quick start
-----------

::

    from blobtree import (
        RootNode, RicciNode, ScalisPoint, ScalisVertex,
        SlidingMarchingCubes, SMCParams, save_npz,
    )

    root = RootNode()
    root.add_child(RicciNode(2.0, [
        ScalisPoint(ScalisVertex((-8.0, 0.0, 0.0), 10.0)),
        ScalisPoint(ScalisVertex(( 8.0, 0.0, 0.0), 10.0)),
    ]))
    root.prepare_for_eval()

    mesh = SlidingMarchingCubes(root, SMCParams(detail_ratio=0.5)).compute()
    save_npz("out/blend.npz", mesh)
"""

from .areas import (
    Accuracies,
    DEFAULT_ACCURACIES,
    Area,
    AreaSphere,
    AreaCapsule,
    AreaBox,
)
from .box import Box3
from .convergence import safe_newton_3d, safe_newton_1d
from .element import Element, Node, Primitive, ValueResult, AreaEntry
from .errors import BlobtreeError, PreconditionError
from .logging_config import install_null_handler, setup_logging
from .material import Material
from .mesh import Mesh, MeshBuilder, save_npz, load_npz
from .nodes import (
    RicciNode,
    MinNode,
    MaxNode,
    DifferenceNode,
    ScaleNode,
    TwistNode,
)
from .polygonizer import (
    Box2Acc,
    ConvergenceParams,
    SMCParams,
    SlidingMarchingCubes,
    SweepStats,
)
from .root import RootNode, RayHit
from .scalis import ScalisVertex, ScalisPoint, ScalisSegment

install_null_handler()

__version__ = "0.2.0"

__all__ = [
    # Core
    "Box3",
    "Element",
    "Node",
    "Primitive",
    "ValueResult",
    "Material",

    # Primitives
    "ScalisVertex",
    "ScalisPoint",
    "ScalisSegment",

    # Nodes
    "RootNode",
    "RayHit",
    "RicciNode",
    "MinNode",
    "MaxNode",
    "DifferenceNode",
    "ScaleNode",
    "TwistNode",

    # Accuracy areas
    "Accuracies",
    "DEFAULT_ACCURACIES",
    "Area",
    "AreaEntry",
    "AreaSphere",
    "AreaCapsule",
    "AreaBox",

    # Convergence
    "safe_newton_3d",
    "safe_newton_1d",

    # Polygonization
    "Box2Acc",
    "ConvergenceParams",
    "SMCParams",
    "SlidingMarchingCubes",
    "SweepStats",

    # Mesh output
    "Mesh",
    "MeshBuilder",
    "save_npz",
    "load_npz",

    # Errors and logging
    "BlobtreeError",
    "PreconditionError",
    "setup_logging",
]
