"""Accuracy descriptors ("areas") attached to primitives.

An area answers two kinds of cheap geometric questions about the influence
region of one primitive:

* does a query sphere touch the region (:meth:`Area.sphere_intersect`,
  :meth:`Area.contains`);
* what sampling step is safe near the query point (:meth:`Area.get_acc` and the
  three tier wrappers, :meth:`Area.get_min_acc`,
  :meth:`Area.get_axis_projection_min_step`).

The polygonizer sizes its grid, its z schedule and its per-slice
subdivision from these answers alone, without evaluating the field.

Accuracy tiers
--------------
``nice``
    Step below which a box crossed by the surface is interpolated instead
    of refined.
``curr``
    Step used for the grid itself.
``raw``
    Step below which a box *not* crossed by the surface is interpolated.

The tier factors live in an :class:`Accuracies` value passed to every area.
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import NamedTuple, Union

import numpy as np

from ._math import _F, _VecLike, vec3
from .box import Box3

# Step returned by an area that does not constrain the query.
FAR_STEP = 1e8

_Axis = Union[int, str]
_AXES = {"x": 0, "y": 1, "z": 2}


def _axis_index(axis: _Axis) -> int:
    if isinstance(axis, str):
        try:
            return _AXES[axis]
        except KeyError:
            raise ValueError(f"axis must be 'x', 'y' or 'z', got {axis!r}") from None
    return int(axis)


@dataclass(frozen=True)
class Accuracies:
    """Scale factors of the three accuracy tiers."""

    nice: float = 0.3
    curr: float = 0.3
    raw: float = 1.0


DEFAULT_ACCURACIES = Accuracies()


class Sphere(NamedTuple):
    """Probe sphere used by the area queries."""

    center: _F
    radius: float


# ===========================================================================
# Base class
# ===========================================================================

class Area(ABC):
    """Abstract accuracy descriptor."""

    def __init__(self, accuracies: Accuracies = DEFAULT_ACCURACIES) -> None:
        self.accuracies = accuracies

    @abstractmethod
    def sphere_intersect(self, sphere: Sphere) -> bool:
        """Conservative test: may *sphere* touch the influence region?"""

    @abstractmethod
    def contains(self, p: _F) -> bool:
        """Exact containment of *p* in the influence region."""

    @abstractmethod
    def get_acc(self, sphere: Sphere, factor: float) -> float:
        """Smallest safe step near *sphere*, scaled by *factor*."""

    def get_nice_acc(self, sphere: Sphere) -> float:
        return self.get_acc(sphere, self.accuracies.nice)

    def get_curr_acc(self, sphere: Sphere) -> float:
        return self.get_acc(sphere, self.accuracies.curr)

    def get_raw_acc(self, sphere: Sphere) -> float:
        return self.get_acc(sphere, self.accuracies.raw)

    @abstractmethod
    def get_min_acc(self) -> float:
        """Smallest ``curr`` accuracy anywhere in the area."""

    @abstractmethod
    def get_min_raw_acc(self) -> float:
        """Smallest ``raw`` accuracy anywhere in the area."""

    @abstractmethod
    def get_axis_projection_min_step(self, axis: _Axis, t: float) -> float:
        """Safe step along world *axis* when standing at coordinate *t*."""


# ===========================================================================
# Sphere
# ===========================================================================

class AreaSphere(Area):
    """Spherical influence region of radius *radius* around *center*.

    Parameters
    ----------
    center, radius:
        The region.
    acc_factor:
        Multiplier applied to ``radius`` before the tier factors; e.g. a
        point primitive whose support radius is twice its thickness uses
        ``0.5`` so accuracies are expressed relative to the thickness.
    """

    def __init__(
        self,
        center: _VecLike,
        radius: float,
        acc_factor: float = 1.0,
        accuracies: Accuracies = DEFAULT_ACCURACIES,
    ) -> None:
        super().__init__(accuracies)
        self.p = vec3(center)
        self.r = float(radius)
        self.acc_factor = float(acc_factor)

    def sphere_intersect(self, sphere: Sphere) -> bool:
        d = sphere.center - self.p
        rr = sphere.radius + self.r
        return float(np.dot(d, d)) < rr * rr

    def contains(self, p: _F) -> bool:
        d = p - self.p
        return float(np.dot(d, d)) < self.r * self.r

    def get_acc(self, sphere: Sphere, factor: float) -> float:
        return self.r * self.acc_factor * factor

    def get_min_acc(self) -> float:
        return self.accuracies.curr * self.r * self.acc_factor

    def get_min_raw_acc(self) -> float:
        return self.accuracies.raw * self.r * self.acc_factor

    def get_axis_projection_min_step(self, axis: _Axis, t: float) -> float:
        a = _axis_index(axis)
        curr = self.accuracies.curr * self.r * self.acc_factor
        diff = t - self.p[a]
        if diff < -2.0 * self.r:
            return max(abs(diff + self.r), curr)
        if diff < 2.0 * self.r:
            return curr
        # region is behind t
        return FAR_STEP

    def __repr__(self) -> str:
        return f"AreaSphere(center={self.p.tolist()}, radius={self.r})"


# ===========================================================================
# Capsule
# ===========================================================================

class AreaCapsule(Area):
    """Capsule between *p1* and *p2* with linearly varying radius.

    The region is the union of the spheres ``(p1, r1)``, ``(p2, r2)`` and the
    truncated cone tangent to both.  Accuracies interpolate between
    ``r1 * acc_factor1`` and ``r2 * acc_factor2`` along the axis.
    """

    def __init__(
        self,
        p1: _VecLike,
        p2: _VecLike,
        r1: float,
        r2: float,
        acc_factor1: float = 1.0,
        acc_factor2: float = 1.0,
        accuracies: Accuracies = DEFAULT_ACCURACIES,
    ) -> None:
        super().__init__(accuracies)
        self.p1 = vec3(p1)
        self.p2 = vec3(p2)
        self.r1 = float(r1)
        self.r2 = float(r2)
        self.acc_factor1 = float(acc_factor1)
        self.acc_factor2 = float(acc_factor2)

        self.unit_dir = self.p2 - self.p1
        self.length = float(np.linalg.norm(self.unit_dir))
        if self.length > 0.0:
            self.unit_dir /= self.length
        else:
            self.unit_dir[:] = (1.0, 0.0, 0.0)

        # direction orthogonal to the radius profile line
        self._ortho_x = self.r1 - self.r2
        self._ortho_y = self.length
        self._abs_diff_thick = abs(self._ortho_x)

        # scratch written by _project
        self._p1_to_p = np.zeros(3)
        self._p1_to_p_sq = 0.0
        self._x2d = 0.0
        self._y2d_sq = 0.0
        self._proj_x = 0.0

    def _project(self, p: _F) -> None:
        """Project *p* on the axis along the normal of the radius profile."""
        np.subtract(p, self.p1, out=self._p1_to_p)
        self._p1_to_p_sq = float(np.dot(self._p1_to_p, self._p1_to_p))
        self._x2d = float(np.dot(self._p1_to_p, self.unit_dir))
        self._y2d_sq = self._p1_to_p_sq - self._x2d * self._x2d
        y2d = math.sqrt(self._y2d_sq) if self._y2d_sq > 0.0 else 0.0
        if self._ortho_y > 0.0:
            self._proj_x = self._x2d - (y2d / self._ortho_y) * self._ortho_x
        else:
            self._proj_x = self._x2d

    def _radius_at(self, x: float) -> float:
        if self.length == 0.0:
            return max(self.r1, self.r2)
        tt = x / self.length
        return self.r1 * (1.0 - tt) + tt * self.r2

    def sphere_intersect(self, sphere: Sphere) -> bool:
        self._project(sphere.center)
        if self._proj_x < 0.0:
            return math.sqrt(self._p1_to_p_sq) - sphere.radius < self.r1
        if self._proj_x > self.length:
            d = sphere.center - self.p2
            return math.sqrt(float(np.dot(d, d))) - sphere.radius < self.r2
        sub = self._x2d - self._proj_x
        dist_sq = sub * sub + self._y2d_sq
        reach = sphere.radius + self._radius_at(self._proj_x)
        return dist_sq < reach * reach

    def contains(self, p: _F) -> bool:
        self._project(p)
        if self._proj_x < 0.0:
            return self._p1_to_p_sq < self.r1 * self.r1
        if self._proj_x > self.length:
            d = p - self.p2
            return float(np.dot(d, d)) < self.r2 * self.r2
        sub = self._x2d - self._proj_x
        dist_sq = sub * sub + self._y2d_sq
        w = self._radius_at(self._proj_x)
        return dist_sq < w * w

    def get_acc(self, sphere: Sphere, factor: float) -> float:
        self._project(sphere.center)
        if self.length == 0.0:
            return min(self.r1 * self.acc_factor1, self.r2 * self.acc_factor2) * factor

        # half the query extent measured along the axis, on the thinner side
        tmp = self._abs_diff_thick / self.length
        half_delta = sphere.radius * math.sqrt(1.0 + tmp * tmp) * 0.5
        absc = self._proj_x + (half_delta if self.r1 > self.r2 else -half_delta)

        if absc < 0.0:
            return self.r1 * self.acc_factor1 * factor
        if absc > self.length:
            return self.r2 * self.acc_factor2 * factor
        tt = absc / self.length
        w = self.r1 * self.acc_factor1 * (1.0 - tt) + tt * self.r2 * self.acc_factor2
        return w * factor

    def get_min_acc(self) -> float:
        return self.accuracies.curr * min(
            self.r1 * self.acc_factor1, self.r2 * self.acc_factor2
        )

    def get_min_raw_acc(self) -> float:
        return self.accuracies.raw * min(
            self.r1 * self.acc_factor1, self.r2 * self.acc_factor2
        )

    def get_axis_projection_min_step(self, axis: _Axis, t: float) -> float:
        a = _axis_index(axis)
        curr = self.accuracies.curr
        # order the two ends along the axis
        if self.p1[a] <= self.p2[a]:
            lo, hi = self.p1[a], self.p2[a]
            r_lo, r_hi = self.r1 * self.acc_factor1, self.r2 * self.acc_factor2
        else:
            lo, hi = self.p2[a], self.p1[a]
            r_lo, r_hi = self.r2 * self.acc_factor2, self.r1 * self.acc_factor1

        step = FAR_STEP
        for end, r in ((lo, r_lo), (hi, r_hi)):
            diff = t - end
            if diff < -2.0 * r:
                step = min(step, max(abs(diff + 2.0 * r), curr * r))
            elif diff < 2.0 * r:
                step = min(step, curr * r)

        tbis = t - lo
        axis_l = hi - lo
        if axis_l != 0.0 and 0.0 < tbis < axis_l:
            step = min(step, curr * (r_lo + (tbis / axis_l) * (r_hi - r_lo)))
        return step

    def __repr__(self) -> str:
        return (
            f"AreaCapsule(p1={self.p1.tolist()}, p2={self.p2.tolist()}, "
            f"r1={self.r1}, r2={self.r2})"
        )


# ===========================================================================
# Box
# ===========================================================================

class AreaBox(Area):
    """Box-shaped region with a uniform accuracy.

    Used by warping nodes, whose children areas describe the unwarped
    space: the node reports its own box with the finest accuracy of its
    children.

    Parameters
    ----------
    box:
        The region (copied).
    min_acc, min_raw_acc:
        ``curr`` and ``raw`` accuracies valid everywhere in *box*.
    """

    def __init__(
        self,
        box: Box3,
        min_acc: float,
        min_raw_acc: float,
        accuracies: Accuracies = DEFAULT_ACCURACIES,
    ) -> None:
        super().__init__(accuracies)
        self.box = box.copy()
        self.min_acc = float(min_acc)
        self.min_raw_acc = float(min_raw_acc)

    def sphere_intersect(self, sphere: Sphere) -> bool:
        return self.box.distance_to_point(sphere.center) < sphere.radius

    def contains(self, p: _F) -> bool:
        return self.box.contains_point(p)

    def get_acc(self, sphere: Sphere, factor: float) -> float:
        return self.min_acc * factor / self.accuracies.curr

    def get_min_acc(self) -> float:
        return self.min_acc

    def get_min_raw_acc(self) -> float:
        return self.min_raw_acc

    def get_axis_projection_min_step(self, axis: _Axis, t: float) -> float:
        a = _axis_index(axis)
        if t < self.box.min[a]:
            return max(self.box.min[a] - t, self.min_acc)
        if t <= self.box.max[a]:
            return self.min_acc
        return FAR_STEP

    def __repr__(self) -> str:
        return (
            f"AreaBox({self.box.min.tolist()} -> {self.box.max.tolist()}, "
            f"acc={self.min_acc})"
        )
