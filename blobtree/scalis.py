"""SCALIS skeleton primitives with a compact polynomial kernel.

Implemented primitives
----------------------
- :class:`ScalisPoint`    field around a single vertex
- :class:`ScalisSegment`  homothetic distance field around a segment whose
  thickness varies linearly between its two vertices

Both use the degree-6 compact kernel ``(1 - r**2/4)**3`` normalized so the
field equals ``density`` at distance ``thickness`` from the skeleton.  With
the default iso-value 1 and density 1, the surface therefore passes at
``thickness`` from the skeleton, and the field support ends at
``KS * thickness``.
"""

from __future__ import annotations

import math
from typing import Optional, Sequence

import numpy as np

from ._math import _F, _VecLike, vec3
from .areas import DEFAULT_ACCURACIES, Accuracies, AreaCapsule, AreaSphere
from .element import AreaEntry, Primitive, ValueResult
from .material import Material

# ---------------------------------------------------------------------------
# Kernel constants
# ---------------------------------------------------------------------------
KS = 2.0          # support radius / thickness
KIS = 1.0 / KS
KS2 = KS * KS
KIS2 = 1.0 / KS2


def poly6_eval(r: float) -> float:
    """Compact kernel ``max(0, 1 - KIS2*r**2)**3``."""
    aux = 1.0 - KIS2 * r * r
    return aux * aux * aux if aux > 0.0 else 0.0


def iso_value_at_distance(degree: int, scale: float, dist: float) -> float:
    """Value of the degree-*degree* compact kernel of support *scale*."""
    if dist >= scale:
        return 0.0
    return (1.0 - (dist * dist) / (scale * scale)) ** (0.5 * degree)


POLY6_NF0D = 1.0 / iso_value_at_distance(6, KS, 1.0)


# ===========================================================================
# Vertex
# ===========================================================================

class ScalisVertex:
    """Skeleton vertex: a position and a thickness.

    Setters invalidate the primitive that owns the vertex.
    """

    def __init__(self, pos: _VecLike, thickness: float) -> None:
        self.pos = vec3(pos)
        self.thickness = float(thickness)
        self._primitive: Optional[Primitive] = None

    def set_primitive(self, prim: Primitive) -> None:
        self._primitive = prim

    def get_primitive(self) -> Optional[Primitive]:
        return self._primitive

    def get_pos(self) -> _F:
        return self.pos

    def set_pos(self, pos: _VecLike) -> None:
        self.pos[:] = vec3(pos)
        self._invalidate()

    def get_thickness(self) -> float:
        return self.thickness

    def set_thickness(self, thickness: float) -> None:
        self.thickness = float(thickness)
        self._invalidate()

    def support_radius(self) -> float:
        return self.thickness * KS

    def _invalidate(self) -> None:
        if self._primitive is not None:
            self._primitive.invalidate_aabb()


# ===========================================================================
# Point
# ===========================================================================

class ScalisPoint(Primitive):
    """Field ``density * poly6(|p - pos| / thickness) * POLY6_NF0D``.

    Parameters
    ----------
    vertex:
        Position and thickness.
    density:
        Field multiplier.
    material:
        Material returned wherever the field is positive.
    accuracies:
        Tier factors given to the area of this primitive.
    """

    def __init__(
        self,
        vertex: ScalisVertex,
        density: float = 1.0,
        material: Optional[Material] = None,
        accuracies: Accuracies = DEFAULT_ACCURACIES,
    ) -> None:
        super().__init__([material] if material is not None else None)
        self.vertex = vertex
        vertex.set_primitive(self)
        self.density = float(density)
        self.accuracies = accuracies
        self._v_to_p = np.zeros(3)

    def get_density(self) -> float:
        return self.density

    def set_density(self, density: float) -> None:
        self.density = float(density)
        self.invalidate_aabb()

    def compute_aabb(self) -> None:
        r = self.vertex.support_radius()
        self.aabb.set(self.vertex.pos - r, self.vertex.pos + r)

    def get_areas(self):
        super().get_areas()
        area = AreaSphere(
            self.vertex.pos,
            self.vertex.support_radius(),
            KIS,
            self.accuracies,
        )
        return [AreaEntry(self.aabb, area, self)]

    def value(self, p: _F, res: ValueResult) -> None:
        self.check_prepared()
        th = self.vertex.thickness
        v_to_p = self._v_to_p
        np.subtract(p, self.vertex.pos, out=v_to_p)
        dist_sq = float(np.dot(v_to_p, v_to_p))
        tmp = 1.0 - KIS2 * dist_sq / (th * th)
        if tmp > 0.0:
            res.v = self.density * tmp * tmp * tmp * POLY6_NF0D
            if res.g is not None:
                # d/dp of tmp**3 is 3*tmp**2 * (-2*KIS2/th**2) * v_to_p
                coef = -6.0 * self.density * KIS2 * tmp * tmp * POLY6_NF0D / (th * th)
                np.multiply(v_to_p, coef, out=res.g)
            if res.m is not None:
                res.m.copy_from(self.materials[0])
        else:
            res.v = 0.0
            if res.g is not None:
                res.g[:] = 0.0
            if res.m is not None:
                res.m.reset()
        if res.step is not None:
            res.step = self.heuristic_step_within() if tmp > 0.0 else self.distance_to(p)

    def heuristic_step_within(self) -> float:
        return self.vertex.thickness / 3.0

    def distance_to(self, p: _F) -> float:
        d = float(np.linalg.norm(p - self.vertex.pos)) - self.vertex.support_radius()
        return max(d, 0.0)

    def __repr__(self) -> str:
        return (
            f"ScalisPoint(pos={self.vertex.pos.tolist()}, "
            f"thickness={self.vertex.thickness}, density={self.density})"
        )


# ===========================================================================
# Segment
# ===========================================================================

class ScalisSegment(Primitive):
    """Homothetic distance field around the segment ``v0 -> v1``.

    At each point the closest skeleton location is found in the homothetic
    metric (distance divided by the local thickness); the field is the
    kernel applied to that scaled distance.  Materials are interpolated
    along the segment by orthogonal projection.  The gradient is computed
    by central differences.
    """

    def __init__(
        self,
        v0: ScalisVertex,
        v1: ScalisVertex,
        density: float = 1.0,
        materials: Optional[Sequence[Material]] = None,
        accuracies: Accuracies = DEFAULT_ACCURACIES,
    ) -> None:
        super().__init__(materials if materials else [Material(), Material()])
        if len(self.materials) != 2:
            raise ValueError("ScalisSegment needs exactly two materials")
        self.v = (v0, v1)
        v0.set_primitive(self)
        v1.set_primitive(self)
        self.density = float(density)
        self.accuracies = accuracies

        self._dir = np.zeros(3)
        self._length_sq = 0.0
        self._length = 0.0
        self._unit_dir = np.zeros(3)
        self._c0 = 0.0
        self._c1 = 0.0
        self._p0_to_p = np.zeros(3)

    def get_density(self) -> float:
        return self.density

    def set_density(self, density: float) -> None:
        self.density = float(density)
        self.invalidate_aabb()

    def compute_help_variables(self) -> None:
        v0, v1 = self.v
        np.subtract(v1.pos, v0.pos, out=self._dir)
        self._length_sq = float(np.dot(self._dir, self._dir))
        self._length = math.sqrt(self._length_sq)
        if self._length > 0.0:
            np.divide(self._dir, self._length, out=self._unit_dir)
        else:
            self._unit_dir[:] = 0.0
        self._c0 = v0.thickness
        self._c1 = v1.thickness - v0.thickness

    def compute_aabb(self) -> None:
        self.aabb.make_empty()
        for vert in self.v:
            r = vert.support_radius()
            self.aabb.union_point(vert.pos - r)
            self.aabb.union_point(vert.pos + r)

    def get_areas(self):
        super().get_areas()
        v0, v1 = self.v
        area = AreaCapsule(
            v0.pos,
            v1.pos,
            v0.support_radius(),
            v1.support_radius(),
            KIS,
            KIS,
            self.accuracies,
        )
        return [AreaEntry(self.aabb, area, self)]

    def _eval_dist(self, p: _F) -> float:
        p0_to_p = self._p0_to_p
        np.subtract(p, self.v[0].pos, out=p0_to_p)
        scal_dir = float(np.dot(p0_to_p, self._dir))
        p_sq = float(np.dot(p0_to_p, p0_to_p))

        if self._length_sq == 0.0:
            t = 0.0
        else:
            denum = self._length_sq * self._c0 + scal_dir * self._c1
            t = 0.0 if self._c1 < 0.0 else 1.0
            if denum > 0.0:
                t = scal_dir * self._c0 + p_sq * self._c1
                t = 0.0 if t < 0.0 else (1.0 if t > denum else t / denum)

        proj_sq = t * (t * self._length_sq - 2.0 * scal_dir) + p_sq
        proj_l = math.sqrt(proj_sq) if proj_sq > 0.0 else 0.0
        weight = self._c0 + t * self._c1
        return self.density * poly6_eval(proj_l / weight) * POLY6_NF0D

    def _eval_material(self, p: _F, m: Material) -> None:
        if self._length == 0.0:
            m.copy_from(self.materials[0])
            return
        s = float(np.dot(self._unit_dir, p - self.v[0].pos)) / self._length
        if s >= 1.0:
            m.copy_from(self.materials[1])
        elif s <= 0.0:
            m.copy_from(self.materials[0])
        else:
            m.copy_from(self.materials[0]).lerp(self.materials[1], s)

    def value(self, p: _F, res: ValueResult) -> None:
        self.check_prepared()
        res.v = self._eval_dist(p)
        if res.m is not None:
            if res.v > 0.0:
                self._eval_material(p, res.m)
            else:
                res.m.reset()
        if res.g is not None:
            if res.v > 0.0:
                g = res.g
                res.g = None
                v = res.v
                self.numerical_gradient(p, g)
                res.g = g
                res.v = v
            else:
                res.g[:] = 0.0
        if res.step is not None:
            res.step = (
                self.heuristic_step_within() if res.v > 0.0 else self.distance_to(p)
            )

    def heuristic_step_within(self) -> float:
        return min(self.v[0].thickness, self.v[1].thickness) / 3.0

    def distance_to(self, p: _F) -> float:
        v0, v1 = self.v
        if self._length_sq == 0.0:
            closest = v0.pos
        else:
            t = float(np.dot(p - v0.pos, self._dir)) / self._length_sq
            t = min(max(t, 0.0), 1.0)
            closest = v0.pos + t * self._dir
        d = float(np.linalg.norm(p - closest))
        return max(d - max(v0.support_radius(), v1.support_radius()), 0.0)

    def __repr__(self) -> str:
        v0, v1 = self.v
        return (
            f"ScalisSegment({v0.pos.tolist()} [{v0.thickness}] -> "
            f"{v1.pos.tolist()} [{v1.thickness}])"
        )
