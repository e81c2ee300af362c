"""Safeguarded Newton iterations used to snap points onto an iso-surface.

Both routines only need an object with a ``value(p, res)`` method
following the :class:`~blobtree.element.ValueResult` protocol, typically a
prepared :class:`~blobtree.root.RootNode`.
"""

from __future__ import annotations

import math
from typing import NamedTuple, Optional, Protocol

import numpy as np

from ._math import _F, _VecLike, vec3
from .element import ValueResult


class ScalarField(Protocol):
    def value(self, p: _F, res: ValueResult) -> None: ...


class Newton3DResult(NamedTuple):
    point: _F
    converged: bool
    steps: int


class Newton1DResult(NamedTuple):
    absc: float
    point: _F
    gradient: Optional[_F]


def safe_newton_3d(
    field: ScalarField,
    start: _VecLike,
    value: float,
    eps: float,
    n_max: int,
    r_max: float,
    out: Optional[_F] = None,
) -> Newton3DResult:
    """Move *start* along the field gradient until ``field == value``.

    Iteration stops after two consecutive steps shorter than *eps*
    (converged) or after *n_max* steps.  It aborts and returns *start*
    unchanged when the gradient vanishes or when the point leaves the ball
    of radius *r_max* around *start*.

    Parameters
    ----------
    field:
        Scalar field with a ``value(p, res)`` method.
    start:
        Starting point, not modified.
    value:
        Target iso-value.
    eps:
        Geometric tolerance (a distance).
    n_max:
        Maximum number of Newton steps.
    r_max:
        Search radius around *start*.
    out:
        Optional ``(3,)`` array receiving the result.

    Returns
    -------
    Newton3DResult
        ``(point, converged, steps)``; ``point`` is *out* when given.
    """
    p0 = vec3(start)
    res = out if out is not None else np.empty(3)
    res[:] = p0

    ev = ValueResult.with_gradient()
    r_max_sq = r_max * r_max
    consecutive_small = 0
    i = 0
    while consecutive_small < 2 and i < n_max:
        i += 1
        field.value(res, ev)
        g_l = float(np.linalg.norm(ev.g))
        if g_l == 0.0:
            res[:] = p0
            return Newton3DResult(res, False, i)

        step = (value - ev.v) / g_l
        if abs(step) < eps:
            consecutive_small += 1
        else:
            consecutive_small = 0
        res += ev.g * (step / g_l)

        d = res - p0
        if float(np.dot(d, d)) > r_max_sq:
            res[:] = p0
            return Newton3DResult(res, False, i)

    return Newton3DResult(res, consecutive_small >= 2, i)


def safe_newton_1d(
    field: ScalarField,
    origin: _VecLike,
    direction: _VecLike,
    min_in: float,
    max_out: float,
    start_absc: float,
    value: float,
    eps: float,
    n_max: int,
    want_gradient: bool = True,
) -> Newton1DResult:
    """Newton search restricted to ``origin + t * direction``.

    The abscissa ``min_in`` must lie inside (field above *value*) and
    ``max_out`` outside.  Each iteration narrows that bracket; a Newton step
    leaving it is replaced by bisection.  Stops when the bracket is narrower
    than *eps* or after *n_max* iterations.

    Raises
    ------
    ValueError
        If *direction* is null, *eps* is not positive or *start_absc* lies
        outside ``[min_in, max_out]``.
    """
    o = vec3(origin)
    d = vec3(direction)
    if not np.any(d):
        raise ValueError("search direction is null")
    if eps <= 0.0:
        raise ValueError(f"eps must be positive, got {eps}")
    if not (min_in <= start_absc <= max_out):
        raise ValueError(
            f"start abscissa {start_absc} outside [{min_in}, {max_out}]"
        )

    ev = ValueResult.with_gradient()
    p = np.empty(3)
    absc = start_absc
    i = 0
    while max_out - min_in > eps and i < n_max:
        np.multiply(d, absc, out=p)
        p += o
        field.value(p, ev)
        if ev.v > value:
            min_in = absc
        else:
            max_out = absc

        grad = float(np.dot(ev.g, d))
        if grad != 0.0:
            absc += (value - ev.v) / grad
            if absc > max_out or absc < min_in:
                absc = 0.5 * (min_in + max_out)
        else:
            absc = 0.5 * (min_in + max_out)
        i += 1

    if math.isnan(absc):
        absc = 0.5 * (min_in + max_out)
    point = o + d * absc
    gradient = None
    if want_gradient:
        field.value(point, ev)
        gradient = ev.g.copy()
    return Newton1DResult(absc, point, gradient)
