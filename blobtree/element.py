"""Core composition contract of the blobtree.

Every member of a blobtree is an :class:`Element`.  Inner members are
:class:`Node` instances that own an ordered list of children and combine
their fields; leaves are :class:`Primitive` instances.

Evaluation protocol
-------------------
1. Build or mutate the tree.  Every setter calls :meth:`Element.invalidate_aabb`,
   which marks the element and its ancestors dirty.
2. Call :meth:`Element.prepare_for_eval` on the root.  It recomputes bounding
   boxes bottom-up and is a no-op on an already valid subtree.
3. Call :meth:`Element.value` with a caller-owned :class:`ValueResult`.
   Only the fields that were allocated by the caller (``g``, ``m``,
   ``step``) are written.

Ownership
---------
A node owns its children.  The child keeps a *weak* reference back to its
parent, used only to propagate invalidation upward.
"""

from __future__ import annotations

import itertools
import weakref
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, List, NamedTuple, Optional, Sequence, Type

import numpy as np

from ._math import _F
from .box import Box3
from .errors import PreconditionError
from .material import Material

if TYPE_CHECKING:
    from .areas import Area

# Returned by distance/step estimators when nothing constrains the step.
FAR_DISTANCE = 1e7


# ===========================================================================
# Evaluation records
# ===========================================================================

class ValueResult:
    """Caller-owned output record for :meth:`Element.value`.

    ``v`` is always written.  ``g`` (a ``(3,)`` array), ``m`` (a
    :class:`~blobtree.material.Material`) and ``step`` (a float) are only
    written when they are not ``None`` on entry.
    """

    __slots__ = ("v", "g", "m", "step")

    def __init__(
        self,
        v: float = 0.0,
        g: Optional[_F] = None,
        m: Optional[Material] = None,
        step: Optional[float] = None,
    ) -> None:
        self.v = v
        self.g = g
        self.m = m
        self.step = step

    @classmethod
    def with_gradient(cls) -> ValueResult:
        return cls(g=np.zeros(3))

    @classmethod
    def full(cls) -> ValueResult:
        """Record requesting value, gradient and material."""
        return cls(g=np.zeros(3), m=Material())

    def __repr__(self) -> str:
        return f"ValueResult(v={self.v!r}, g={self.g!r}, step={self.step!r})"


class AreaEntry(NamedTuple):
    """One accuracy descriptor, as returned by ``get_areas``."""

    aabb: Box3
    area: "Area"
    owner: "Element"


# ===========================================================================
# Element
# ===========================================================================

class Element(ABC):
    """Abstract member of a blobtree."""

    _ids = itertools.count()

    def __init__(self) -> None:
        self.id = next(Element._ids)
        self.aabb = Box3()
        self.valid_aabb = False
        self._parent_ref: Optional[weakref.ReferenceType] = None
        # scratch for numerical_gradient
        self._grad_res = ValueResult()
        self._grad_p = np.zeros(3)

    # ------------------------------------------------------------------
    # Parent link
    # ------------------------------------------------------------------

    def get_parent(self) -> Optional[Node]:
        if self._parent_ref is None:
            return None
        return self._parent_ref()

    def _set_parent(self, parent: Optional[Node]) -> None:
        self._parent_ref = weakref.ref(parent) if parent is not None else None

    # ------------------------------------------------------------------
    # Bounding box cache
    # ------------------------------------------------------------------

    def get_aabb(self) -> Box3:
        return self.aabb

    def is_valid_aabb(self) -> bool:
        return self.valid_aabb

    def invalidate_aabb(self) -> None:
        """Mark this element and its valid ancestors as needing preparation.

        Walks up the parent chain and stops at the first ancestor that is
        already invalid.
        """
        el: Optional[Element] = self
        while el is not None:
            el.valid_aabb = False
            parent = el.get_parent()
            if parent is None or not parent.valid_aabb:
                break
            el = parent

    @abstractmethod
    def compute_aabb(self) -> None:
        """Recompute :attr:`aabb` from the current parameters."""

    @abstractmethod
    def prepare_for_eval(self) -> None:
        """Make the subtree ready for :meth:`value`."""

    # ------------------------------------------------------------------
    # Field evaluation
    # ------------------------------------------------------------------

    @abstractmethod
    def value(self, p: _F, res: ValueResult) -> None:
        """Write the field at *p* into *res*."""

    def check_prepared(self) -> None:
        """Raise :class:`PreconditionError` unless the AABB is valid."""
        if not self.valid_aabb:
            raise PreconditionError(
                f"{type(self).__name__}: prepare_for_eval() must be called "
                "before value()"
            )

    def numerical_gradient(self, p: _F, out: _F, eps: float = 1e-5) -> _F:
        """Central-difference gradient of :meth:`value` written into *out*."""
        q = self._grad_p
        r = self._grad_res
        r.g = None
        r.m = None
        r.step = None
        inv = 1.0 / (2.0 * eps)
        for k in range(3):
            q[:] = p
            q[k] += eps
            self.value(q, r)
            v_plus = r.v
            q[k] -= 2.0 * eps
            self.value(q, r)
            out[k] = (v_plus - r.v) * inv
        return out

    def distance_to(self, p: _F) -> float:
        """Lower bound of the distance from *p* to the field support."""
        return self.aabb.distance_to_point(p)

    @abstractmethod
    def heuristic_step_within(self) -> float:
        """Safe marching step inside the field support."""

    # ------------------------------------------------------------------
    # Areas and trimming
    # ------------------------------------------------------------------

    def get_areas(self) -> List[AreaEntry]:
        if not self.valid_aabb:
            raise PreconditionError(
                f"{type(self).__name__}: get_areas() needs a valid AABB, "
                "call prepare_for_eval() first"
            )
        return []

    def trim(
        self,
        aabb: Box3,
        trimmed: List[Element],
        parents: List[Node],
    ) -> None:
        """Remove subtrees that do not intersect *aabb* (no-op on leaves)."""

    def count(self, cls: Type[Element]) -> int:
        """Number of instances of *cls* in this subtree, self included."""
        return 1 if isinstance(self, cls) else 0

    def __repr__(self) -> str:
        return f"{type(self).__name__}(id={self.id})"


# ===========================================================================
# Node
# ===========================================================================

class Node(Element):
    """Element owning an ordered list of children.

    Subclasses provide :meth:`value`; the default :meth:`compute_aabb` is the
    union of the children boxes.
    """

    def __init__(self, children: Sequence[Element] = ()) -> None:
        super().__init__()
        self.children: List[Element] = []
        for c in children:
            self.add_child(c)

    def get_children(self) -> List[Element]:
        return self.children

    def add_child(self, child: Element) -> None:
        """Append *child*, detaching it from its previous parent first."""
        old = child.get_parent()
        if old is not None:
            old.remove_child(child)
        self.children.append(child)
        child._set_parent(self)
        self.invalidate_aabb()

    def remove_child(self, child: Element) -> None:
        """Detach *child*.  The last child takes its slot."""
        for i, c in enumerate(self.children):
            if c is child:
                break
        else:
            raise PreconditionError(
                f"{child!r} is not a child of {self!r}"
            )
        self.children[i] = self.children[-1]
        self.children.pop()
        self.invalidate_aabb()
        child._set_parent(None)

    def compute_aabb(self) -> None:
        self.aabb.make_empty()
        for c in self.children:
            self.aabb.union(c.get_aabb())

    def prepare_for_eval(self) -> None:
        if self.valid_aabb:
            return
        for c in self.children:
            c.prepare_for_eval()
        self.compute_aabb()
        self._prepare_scratch()
        self.valid_aabb = True

    def _prepare_scratch(self) -> None:
        """Resize per-instance evaluation buffers after a child change."""

    def get_areas(self) -> List[AreaEntry]:
        super().get_areas()
        areas: List[AreaEntry] = []
        for c in self.children:
            areas.extend(c.get_areas())
        return areas

    def distance_to(self, p: _F) -> float:
        d = FAR_DISTANCE
        for c in self.children:
            d = min(d, c.distance_to(p))
        return d

    def heuristic_step_within(self) -> float:
        s = FAR_DISTANCE
        for c in self.children:
            s = min(s, c.heuristic_step_within())
        return s

    def trim(
        self,
        aabb: Box3,
        trimmed: List[Element],
        parents: List[Node],
    ) -> None:
        for c in list(self.children):
            if not c.get_aabb().intersects_box(aabb):
                self.remove_child(c)
                trimmed.append(c)
                parents.append(self)
        for c in self.children:
            c.trim(aabb, trimmed, parents)

    def _trim_children_only(
        self,
        aabb: Box3,
        trimmed: List[Element],
        parents: List[Node],
    ) -> None:
        # Direct children stay; only deeper subtrees are trimmed.
        for c in self.children:
            c.trim(aabb, trimmed, parents)

    def count(self, cls: Type[Element]) -> int:
        n = super().count(cls)
        for c in self.children:
            n += c.count(cls)
        return n


# ===========================================================================
# Primitive
# ===========================================================================

class Primitive(Element):
    """Leaf element holding a small list of materials."""

    def __init__(self, materials: Optional[Sequence[Material]] = None) -> None:
        super().__init__()
        self.materials: List[Material] = (
            [m.copy() for m in materials] if materials else [Material()]
        )

    def get_materials(self) -> List[Material]:
        return self.materials

    def set_materials(self, materials: Sequence[Material]) -> None:
        if len(materials) != len(self.materials):
            raise PreconditionError(
                f"{type(self).__name__} expects {len(self.materials)} "
                f"material(s), got {len(materials)}"
            )
        for dst, src in zip(self.materials, materials):
            dst.copy_from(src)
        self.invalidate_aabb()

    def prepare_for_eval(self) -> None:
        if not self.valid_aabb:
            self.compute_help_variables()
            self.compute_aabb()
            self.valid_aabb = True

    def compute_help_variables(self) -> None:
        """Precompute quantities derived from the parameters."""
