"""Axis-aligned bounding boxes."""

from __future__ import annotations

import numpy as np

from ._math import _F, _VecLike, vec3


class Box3:
    """Axis-aligned 3-D box stored as two ``(3,)`` corners.

    An empty box has ``min = +inf`` and ``max = -inf`` on every axis, so
    that the first :meth:`union` simply copies the other box.
    """

    __slots__ = ("min", "max")

    def __init__(
        self,
        min: _VecLike | None = None,
        max: _VecLike | None = None,
    ) -> None:
        self.min: _F = vec3(min) if min is not None else np.full(3, np.inf)
        self.max: _F = vec3(max) if max is not None else np.full(3, -np.inf)

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def empty(cls) -> Box3:
        return cls()

    @classmethod
    def from_center_size(cls, center: _VecLike, size: _VecLike | float) -> Box3:
        """Box centred at *center* with edge lengths *size*."""
        c = vec3(center)
        half = 0.5 * np.broadcast_to(np.asarray(size, dtype=float), (3,))
        return cls(c - half, c + half)

    def copy(self) -> Box3:
        return Box3(self.min, self.max)

    def set(self, min: _VecLike, max: _VecLike) -> Box3:
        self.min[:] = min
        self.max[:] = max
        return self

    def make_empty(self) -> Box3:
        self.min[:] = np.inf
        self.max[:] = -np.inf
        return self

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def is_empty(self) -> bool:
        return bool(np.any(self.max < self.min))

    def size(self) -> _F:
        """Edge lengths; zero for an empty box."""
        if self.is_empty():
            return np.zeros(3)
        return self.max - self.min

    def center(self) -> _F:
        return 0.5 * (self.min + self.max)

    def contains_point(self, p: _F) -> bool:
        """Inclusive containment test."""
        return bool(
            self.min[0] <= p[0] <= self.max[0]
            and self.min[1] <= p[1] <= self.max[1]
            and self.min[2] <= p[2] <= self.max[2]
        )

    def intersects_box(self, other: Box3) -> bool:
        """True when the two boxes overlap or touch."""
        return not bool(
            np.any(other.max < self.min) or np.any(other.min > self.max)
        )

    def distance_to_point(self, p: _F) -> float:
        """Euclidean distance from *p* to the box (0 inside)."""
        q = np.minimum(np.maximum(p, self.min), self.max)
        return float(np.linalg.norm(q - p))

    def equals(self, other: Box3, atol: float = 0.0) -> bool:
        if self.is_empty() and other.is_empty():
            return True
        return bool(
            np.allclose(self.min, other.min, rtol=0.0, atol=atol)
            and np.allclose(self.max, other.max, rtol=0.0, atol=atol)
        )

    # ------------------------------------------------------------------
    # In-place operations
    # ------------------------------------------------------------------

    def union(self, other: Box3) -> Box3:
        np.minimum(self.min, other.min, out=self.min)
        np.maximum(self.max, other.max, out=self.max)
        return self

    def union_point(self, p: _F) -> Box3:
        np.minimum(self.min, p, out=self.min)
        np.maximum(self.max, p, out=self.max)
        return self

    def expand_by_scalar(self, s: float) -> Box3:
        """Grow every face outward by *s* (no-op on an empty box)."""
        if not self.is_empty():
            self.min -= s
            self.max += s
        return self

    def __repr__(self) -> str:
        if self.is_empty():
            return "Box3(empty)"
        return f"Box3(min={self.min.tolist()}, max={self.max.tolist()})"
