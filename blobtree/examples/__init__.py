"""blobtree.examples — parametric blobtree assemblies.

Implemented assemblies
----------------------
:func:`single_point`
    One SCALIS point, the sphere-like reference blob.

:func:`point_pair`
    Two points combined by a min, max or Ricci node.

:func:`capsule_chain`
    Segments joining a polyline of skeleton vertices.

:func:`carved_blob`
    A capsule with a point carved out by a difference node.

:func:`twisted_bar`
    A stretched and twisted segment (scale + twist nodes).

Every function returns a prepared :class:`~blobtree.root.RootNode`.
"""

from .assemblies import (
    single_point,
    point_pair,
    capsule_chain,
    carved_blob,
    twisted_bar,
)

__all__ = [
    "single_point",
    "point_pair",
    "capsule_chain",
    "carved_blob",
    "twisted_bar",
]
