"""Blend and warp nodes.

Implemented nodes
-----------------
- :class:`RicciNode`      smooth power-mean blend, ``(sum v_i**n)**(1/n)``
- :class:`MinNode`        pointwise minimum (intersection-like)
- :class:`MaxNode`        pointwise maximum (union-like)
- :class:`DifferenceNode` clamped subtraction ``max(0, v0 - v1**alpha)``
- :class:`ScaleNode`      scales the children about their centre
- :class:`TwistNode`      twists the children around an axis

All nodes return the neutral value 0 outside their bounding box.  When the
caller allocates ``res.g`` the returned gradient follows the same blend
formula; when it allocates ``res.step`` the returned step is the smallest of
the children hints.
"""

from __future__ import annotations

import math
from abc import abstractmethod
from typing import List, Optional, Sequence

import numpy as np

from ._math import _F, _VecLike, vec3
from .areas import AreaBox
from .element import FAR_DISTANCE, AreaEntry, Element, Node, ValueResult
from .material import Material


# ===========================================================================
# Shared helpers
# ===========================================================================

def _reset(res: ValueResult) -> None:
    res.v = 0.0
    if res.g is not None:
        res.g[:] = 0.0
    if res.m is not None:
        res.m.reset()
    if res.step is not None:
        res.step = FAR_DISTANCE


class _BlendNode(Node):
    """Node with one scratch record per evaluation."""

    def __init__(self, children: Sequence[Element] = ()) -> None:
        self._tmp = ValueResult()
        self._tmp_g = np.zeros(3)
        self._tmp_m = Material()
        super().__init__(children)

    def _scratch_for(self, res: ValueResult) -> ValueResult:
        tmp = self._tmp
        tmp.g = self._tmp_g if res.g is not None else None
        tmp.m = self._tmp_m if res.m is not None else None
        tmp.step = None
        return tmp

    def _child_step(self, child: Element, p: _F, v: float) -> float:
        if v > 0.0:
            return child.heuristic_step_within()
        return child.distance_to(p)

    def _outside_step(self, p: _F) -> float:
        if not self.children:
            return FAR_DISTANCE
        return self.aabb.distance_to_point(p) + self.heuristic_step_within()


# ===========================================================================
# Ricci blend
# ===========================================================================

class RicciNode(_BlendNode):
    """Smooth blend ``(sum_i v_i**n) ** (1/n)`` over the positive children.

    ``n = 1`` is a plain sum; large ``n`` approaches :class:`MaxNode`.

    Parameters
    ----------
    ricci_n:
        Blend exponent.
    children:
        Initial children.
    """

    def __init__(self, ricci_n: float, children: Sequence[Element] = ()) -> None:
        self.ricci_n = float(ricci_n)
        self._v_arr: List[float] = []
        self._m_arr: List[Material] = []
        super().__init__(children)

    def get_ricci_n(self) -> float:
        return self.ricci_n

    def set_ricci_n(self, n: float) -> None:
        if self.ricci_n != n:
            self.ricci_n = float(n)
            self.invalidate_aabb()

    def _prepare_scratch(self) -> None:
        n = len(self.children)
        if len(self._v_arr) < n:
            self._v_arr = [0.0] * (2 * n)
            self._m_arr = [Material() for _ in range(2 * n)]

    def value(self, p: _F, res: ValueResult) -> None:
        self.check_prepared()
        _reset(res)
        want_step = res.step is not None
        if not self.children or not self.aabb.contains_point(p):
            if want_step:
                res.step = self._outside_step(p)
            return

        tmp = self._scratch_for(res)
        n = self.ricci_n
        v_arr = self._v_arr
        m_arr = self._m_arr
        n_m = 0
        # sum of (v_i / scale)**n, scale being the largest child value so far
        scale = 0.0
        sum_pow = 0.0
        step = FAR_DISTANCE

        for c in self.children:
            if not c.aabb.contains_point(p):
                if want_step:
                    step = min(step, c.distance_to(p))
                continue
            c.value(p, tmp)
            if tmp.v > 0.0:
                if tmp.v > scale:
                    if scale > 0.0:
                        r = scale / tmp.v
                        r_pow = r ** (n - 1.0)
                        sum_pow *= r * r_pow
                        if res.g is not None:
                            res.g *= r_pow
                        for k in range(n_m):
                            v_arr[k] *= r * r_pow
                    scale = tmp.v
                ratio = tmp.v / scale
                w = ratio ** (n - 1.0)
                sum_pow += ratio * w
                if res.g is not None:
                    res.g += tmp.g * w
                if res.m is not None:
                    v_arr[n_m] = ratio * w
                    m_arr[n_m].copy_from(tmp.m)
                    n_m += 1
            if want_step:
                step = min(step, self._child_step(c, p, tmp.v))

        if sum_pow > 0.0:
            res.v = scale * sum_pow ** (1.0 / n)
            if res.g is not None:
                res.g *= res.v / (scale * sum_pow)
            if res.m is not None:
                res.m.weighted_mean(m_arr, v_arr, n_m)
        if want_step:
            res.step = step


# ===========================================================================
# Min / Max
# ===========================================================================

class _ExtremumNode(_BlendNode):
    """Picks one child value; gradient and material come from that child."""

    _pick_smaller = True

    def value(self, p: _F, res: ValueResult) -> None:
        self.check_prepared()
        _reset(res)
        want_step = res.step is not None
        if not self.children or not self.aabb.contains_point(p):
            if want_step:
                res.step = self._outside_step(p)
            return

        tmp = self._scratch_for(res)
        best = math.inf if self._pick_smaller else -math.inf
        step = FAR_DISTANCE
        for c in self.children:
            c.value(p, tmp)
            better = tmp.v < best if self._pick_smaller else tmp.v > best
            if better:
                best = tmp.v
                if res.g is not None:
                    res.g[:] = tmp.g
                if res.m is not None:
                    res.m.copy_from(tmp.m)
            if want_step:
                step = min(step, self._child_step(c, p, tmp.v))
        res.v = best
        if want_step:
            res.step = step

    def trim(self, aabb, trimmed, parents) -> None:
        self._trim_children_only(aabb, trimmed, parents)


class MinNode(_ExtremumNode):
    """Pointwise minimum of the children fields."""

    _pick_smaller = True


class MaxNode(_ExtremumNode):
    """Pointwise maximum of the children fields."""

    _pick_smaller = False


# ===========================================================================
# Difference
# ===========================================================================

class DifferenceNode(_BlendNode):
    """``max(0, v0 - v1**alpha)``: carves *node1* out of *node0*.

    The bounding box is the one of *node0*, since the result is clamped to
    the neutral value wherever *node0* vanishes.
    """

    def __init__(self, node0: Element, node1: Element, alpha: float = 1.0) -> None:
        self.alpha = float(alpha)
        self._tmp1 = ValueResult()
        self._tmp1_g = np.zeros(3)
        self._tmp1_m = Material()
        self._v_pair = [0.0, 0.0]
        super().__init__((node0, node1))

    def get_alpha(self) -> float:
        return self.alpha

    def set_alpha(self, alpha: float) -> None:
        if self.alpha != alpha:
            self.alpha = float(alpha)
            self.invalidate_aabb()

    def compute_aabb(self) -> None:
        self.aabb.make_empty()
        if self.children:
            self.aabb.union(self.children[0].get_aabb())

    def value(self, p: _F, res: ValueResult) -> None:
        self.check_prepared()
        _reset(res)
        want_step = res.step is not None
        if len(self.children) < 2 or not self.aabb.contains_point(p):
            if want_step:
                res.step = self._outside_step(p)
            return

        c0, c1 = self.children[0], self.children[1]
        tmp0 = self._scratch_for(res)
        tmp1 = self._tmp1
        tmp1.g = self._tmp1_g if res.g is not None else None
        tmp1.m = self._tmp1_m if res.m is not None else None
        tmp1.step = None

        c0.value(p, tmp0)
        if c1.aabb.contains_point(p):
            c1.value(p, tmp1)
        else:
            tmp1.v = 0.0
            if tmp1.m is not None:
                tmp1.m.reset()

        if want_step:
            res.step = min(
                self._child_step(c0, p, tmp0.v), self._child_step(c1, p, tmp1.v)
            )

        if tmp1.v == 0.0:
            res.v = tmp0.v
            if res.g is not None:
                res.g[:] = tmp0.g
            if res.m is not None:
                res.m.copy_from(tmp0.m)
            return

        v1_pow = tmp1.v ** self.alpha
        res.v = max(0.0, tmp0.v - v1_pow)
        if res.g is not None:
            if res.v == 0.0:
                res.g[:] = 0.0
            else:
                dv1 = self.alpha * tmp1.v ** (self.alpha - 1.0)
                np.subtract(tmp0.g, tmp1.g * dv1, out=res.g)
        if res.m is not None:
            self._v_pair[0] = tmp0.v
            self._v_pair[1] = tmp1.v
            res.m.weighted_mean((tmp0.m, tmp1.m), self._v_pair, 2)

    def trim(self, aabb, trimmed, parents) -> None:
        self._trim_children_only(aabb, trimmed, parents)


# ===========================================================================
# Domain warps
# ===========================================================================

class _WarpNode(_BlendNode):
    """Evaluates the sum of its children at a warped point.

    The warp is centred on *center* when given, otherwise on the centre of
    the children union box.
    """

    def __init__(
        self,
        children: Sequence[Element] = (),
        center: Optional[_VecLike] = None,
    ) -> None:
        self._fixed_center = vec3(center) if center is not None else None
        self._center = np.zeros(3)
        self._q = np.zeros(3)
        super().__init__(children)

    def _children_box(self) -> None:
        self.aabb.make_empty()
        for c in self.children:
            self.aabb.union(c.get_aabb())
        if self._fixed_center is not None:
            self._center[:] = self._fixed_center
        elif not self.aabb.is_empty():
            self._center[:] = self.aabb.center()

    def get_center(self) -> _F:
        """Centre used by the last :meth:`compute_aabb`."""
        return self._center

    def set_center(self, center: Optional[_VecLike]) -> None:
        """Fix the warp centre, or pass ``None`` to follow the children box."""
        self._fixed_center = vec3(center) if center is not None else None
        self.invalidate_aabb()

    @abstractmethod
    def _warp(self, p: _F, out: _F) -> None:
        """Write the point at which the children are evaluated into *out*."""

    def _sum_children(self, q: _F, res: ValueResult) -> None:
        tmp = self._scratch_for(res)
        n_m = 0
        for c in self.children:
            if not c.aabb.contains_point(q):
                continue
            c.value(q, tmp)
            res.v += tmp.v
            if res.g is not None:
                res.g += tmp.g
            if res.m is not None and tmp.v > 0.0:
                # running weighted mean of the child materials
                n_m += 1
                if n_m == 1:
                    res.m.copy_from(tmp.m)
                else:
                    res.m.lerp(tmp.m, tmp.v / res.v)

    def value(self, p: _F, res: ValueResult) -> None:
        self.check_prepared()
        _reset(res)
        want_step = res.step is not None
        if not self.children or not self.aabb.contains_point(p):
            if want_step:
                res.step = self._outside_step(p)
            return
        self._warp(p, self._q)
        self._sum_children(self._q, res)
        if want_step:
            res.step = self.heuristic_step_within()

    def _acc_scale(self) -> float:
        return 1.0

    def get_areas(self) -> List[AreaEntry]:
        inner = super().get_areas()
        if not inner:
            return []
        s = self._acc_scale()
        area = AreaBox(
            self.aabb,
            min(a.area.get_min_acc() for a in inner) * s,
            min(a.area.get_min_raw_acc() for a in inner) * s,
            inner[0].area.accuracies,
        )
        return [AreaEntry(self.aabb, area, self)]

    def trim(self, aabb, trimmed, parents) -> None:
        # children are evaluated at warped points, so boxes do not compare
        pass


class ScaleNode(_WarpNode):
    """Scales its children by *scale* about *center*.

    *scale* is either a scalar or a per-axis triple.  *center* defaults to
    the centre of the children union box.  Gradients follow the chain rule
    (divided by the per-axis scale).
    """

    def __init__(
        self,
        scale: float | _VecLike = 1.0,
        children: Sequence[Element] = (),
        center: Optional[_VecLike] = None,
    ) -> None:
        self._scale = np.broadcast_to(np.asarray(scale, dtype=float), (3,)).copy()
        super().__init__(children, center)

    def get_scale(self) -> _F:
        return self._scale

    def set_scale(self, scale: float | _VecLike) -> None:
        self._scale[:] = np.broadcast_to(np.asarray(scale, dtype=float), (3,))
        self.invalidate_aabb()

    def compute_aabb(self) -> None:
        self._children_box()
        if self.aabb.is_empty():
            return
        a = self._center + (self.aabb.min - self._center) * self._scale
        b = self._center + (self.aabb.max - self._center) * self._scale
        self.aabb.set(np.minimum(a, b), np.maximum(a, b))

    def _warp(self, p: _F, out: _F) -> None:
        np.subtract(p, self._center, out=out)
        out /= self._scale
        out += self._center

    def value(self, p: _F, res: ValueResult) -> None:
        super().value(p, res)
        if res.g is not None:
            res.g /= self._scale

    def heuristic_step_within(self) -> float:
        return super().heuristic_step_within() * float(np.min(np.abs(self._scale)))

    def _acc_scale(self) -> float:
        return float(np.min(np.abs(self._scale)))


def _rotation_to_y(axis: _F) -> _F:
    """Rotation matrix mapping the unit vector *axis* onto +y."""
    y = np.array([0.0, 1.0, 0.0])
    v = np.cross(axis, y)
    s = float(np.linalg.norm(v))
    c = float(np.dot(axis, y))
    if s < 1e-12:
        if c > 0.0:
            return np.eye(3)
        # half turn around x
        return np.diag([1.0, -1.0, -1.0])
    k = v / s
    kx = np.array([
        [0.0, -k[2], k[1]],
        [k[2], 0.0, -k[0]],
        [-k[1], k[0], 0.0],
    ])
    return np.eye(3) + s * kx + (1.0 - c) * (kx @ kx)


class TwistNode(_WarpNode):
    """Twists its children around *axis* through *center*.

    *center* defaults to the centre of the children union box.

    A point at height ``h`` along the axis is rotated by ``amount * h``
    radians around it.  The node box is the bounding cube of the sphere
    enclosing the children box, which contains every rotation of it.
    Gradients are computed by central differences.
    """

    def __init__(
        self,
        amount: float = 1.0,
        axis: _VecLike = (0.0, 1.0, 0.0),
        children: Sequence[Element] = (),
        center: Optional[_VecLike] = None,
    ) -> None:
        self._amount = float(amount)
        self._axis = vec3(axis)
        self._to_y = np.eye(3)
        self._from_y = np.eye(3)
        self._set_axis_matrices()
        self._local = np.zeros(3)
        self._gres = ValueResult()
        super().__init__(children, center)

    def _set_axis_matrices(self) -> None:
        n = float(np.linalg.norm(self._axis))
        if n == 0.0:
            raise ValueError("twist axis must be non-zero")
        self._axis /= n
        self._to_y = _rotation_to_y(self._axis)
        self._from_y = self._to_y.T.copy()

    def get_amount(self) -> float:
        return self._amount

    def set_amount(self, amount: float) -> None:
        if self._amount != amount:
            self._amount = float(amount)
            self.invalidate_aabb()

    def get_axis(self) -> _F:
        return self._axis

    def set_axis(self, axis: _VecLike) -> None:
        self._axis = vec3(axis)
        self._set_axis_matrices()
        self.invalidate_aabb()

    def compute_aabb(self) -> None:
        self._children_box()
        if self.aabb.is_empty():
            return
        far = np.maximum(np.abs(self.aabb.min - self._center), np.abs(self.aabb.max - self._center))
        r = float(np.linalg.norm(far))
        self.aabb.set(self._center - r, self._center + r)

    def _warp(self, p: _F, out: _F) -> None:
        t = self._local
        np.subtract(p, self._center, out=t)
        t[:] = self._to_y @ t
        a = self._amount * t[1]
        c = math.cos(a)
        s = math.sin(a)
        x, z = t[0], t[2]
        t[0] = c * x - s * z
        t[2] = s * x + c * z
        out[:] = self._from_y @ t
        out += self._center

    def value(self, p: _F, res: ValueResult) -> None:
        if res.g is None:
            super().value(p, res)
            return
        g = res.g
        res.g = None
        super().value(p, res)
        res.g = g
        self.numerical_gradient(p, g)
