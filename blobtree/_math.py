"""Small vector helpers shared by the blobtree modules.

This module provides:

* **Type alias**: :data:`_F`
* **Vector constructor**: :func:`vec3`
* **Math helpers**: :func:`length`, :func:`length_sq`, :func:`dot`,
  :func:`normalize`, :func:`clamp`

All helpers work on a single ``(3,)`` point as well as on ``(..., 3)``
stacks.  Not meant to be imported directly by end users.
"""

from __future__ import annotations

from typing import Sequence, Union

import numpy as np
import numpy.typing as npt

# ---------------------------------------------------------------------------
# Type aliases
# ---------------------------------------------------------------------------
_F = npt.NDArray[np.floating]
_VecLike = Union[_F, Sequence[float]]

__all__ = [
    "_F", "_VecLike",
    "vec3",
    "length", "length_sq", "dot", "normalize", "clamp",
]


# ===========================================================================
# Vector constructor
# ===========================================================================

def vec3(x: float | _VecLike = 0.0, y: float = 0.0, z: float = 0.0) -> _F:
    """Return a new float ``(3,)`` array.

    ``vec3((1, 2, 3))`` copies a sequence, ``vec3(1, 2, 3)`` builds from
    components.
    """
    if np.ndim(x) == 1:
        return np.array(x, dtype=float)
    return np.array([x, y, z], dtype=float)


# ===========================================================================
# Math helpers
# ===========================================================================

def length(v: _F) -> float | _F:
    """Euclidean length along the last axis."""
    return np.linalg.norm(v, axis=-1)


def length_sq(v: _F) -> float | _F:
    """Squared length along the last axis."""
    return np.sum(v * v, axis=-1)


def dot(a: _F, b: _F) -> float | _F:
    """Dot product along the last axis."""
    return np.sum(a * b, axis=-1)


def normalize(v: _F) -> _F:
    """Normalize *v* in place and return it.

    A zero vector is left untouched.
    """
    n = float(np.linalg.norm(v))
    if n > 0.0:
        v /= n
    return v


def clamp(x: float, lo: float, hi: float) -> float:
    """Clamp a scalar to ``[lo, hi]``."""
    return min(max(x, lo), hi)
