"""Surface material carried alongside field values."""

from __future__ import annotations

from typing import Sequence

import numpy as np

from ._math import _F, _VecLike, vec3

_DEFAULT_GREY = 0xAA / 0xFF


class Material:
    """Opaque shading payload: color, roughness, metalness, emissive.

    Parameters
    ----------
    color:
        RGB triple in ``[0, 1]``.  Defaults to light grey (``0xaaaaaa``).
    roughness, metalness:
        Scalars in ``[0, 1]``.
    emissive:
        RGB triple, black by default.
    """

    __slots__ = ("color", "roughness", "metalness", "emissive")

    def __init__(
        self,
        color: _VecLike | None = None,
        roughness: float = 0.0,
        metalness: float = 0.0,
        emissive: _VecLike | None = None,
    ) -> None:
        self.color: _F = (
            vec3(color) if color is not None else np.full(3, _DEFAULT_GREY)
        )
        self.roughness = float(roughness)
        self.metalness = float(metalness)
        self.emissive: _F = vec3(emissive) if emissive is not None else np.zeros(3)

    @classmethod
    def default(cls) -> Material:
        return cls()

    def copy(self) -> Material:
        return Material(self.color, self.roughness, self.metalness, self.emissive)

    def copy_from(self, other: Material) -> Material:
        """Overwrite this material with *other* without allocating."""
        self.color[:] = other.color
        self.roughness = other.roughness
        self.metalness = other.metalness
        self.emissive[:] = other.emissive
        return self

    def reset(self) -> Material:
        self.color[:] = _DEFAULT_GREY
        self.roughness = 0.0
        self.metalness = 0.0
        self.emissive[:] = 0.0
        return self

    def equals(self, other: Material) -> bool:
        return bool(
            np.array_equal(self.color, other.color)
            and self.roughness == other.roughness
            and self.metalness == other.metalness
            and np.array_equal(self.emissive, other.emissive)
        )

    def lerp(self, other: Material, t: float) -> Material:
        """Move this material toward *other* by *t* (in place)."""
        self.color += (other.color - self.color) * t
        self.roughness += (other.roughness - self.roughness) * t
        self.metalness += (other.metalness - self.metalness) * t
        self.emissive += (other.emissive - self.emissive) * t
        return self

    def weighted_mean(
        self,
        materials: Sequence[Material],
        weights: Sequence[float],
        n: int | None = None,
    ) -> Material:
        """Set this material to the weighted mean of the first *n* entries.

        Left unchanged when the weights sum to zero.
        """
        if n is None:
            n = len(materials)
        total = 0.0
        for i in range(n):
            total += weights[i]
        if total == 0.0:
            return self

        color = np.zeros(3)
        emissive = np.zeros(3)
        roughness = 0.0
        metalness = 0.0
        for i in range(n):
            w = weights[i]
            m = materials[i]
            color += w * m.color
            emissive += w * m.emissive
            roughness += w * m.roughness
            metalness += w * m.metalness

        inv = 1.0 / total
        self.color[:] = color * inv
        self.emissive[:] = emissive * inv
        self.roughness = roughness * inv
        self.metalness = metalness * inv
        return self

    def __repr__(self) -> str:
        return (
            f"Material(color={self.color.tolist()}, roughness={self.roughness}, "
            f"metalness={self.metalness})"
        )
