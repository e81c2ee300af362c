"""Entry point of a blobtree."""

from __future__ import annotations

import logging
from typing import List, NamedTuple, Optional, Sequence

import numpy as np

from ._math import _F, _VecLike, vec3
from .box import Box3
from .convergence import safe_newton_1d
from .element import Element, Node, ValueResult
from .errors import PreconditionError
from .nodes import RicciNode

logger = logging.getLogger(__name__)

ROOT_RICCI_N = 64


class RayHit(NamedTuple):
    distance: float
    point: _F
    gradient: _F


class RootNode(RicciNode):
    """Root of a blobtree: a wide Ricci blend owning the iso-value.

    A fresh root is valid (an empty tree needs no preparation).  Besides the
    usual node API it keeps the bookkeeping of one *internal* trim, used to
    restrict evaluation to a region temporarily::

        root.prepare_for_eval()
        root.internal_trim(box)      # drop children not touching box
        root.prepare_for_eval()
        ...                          # evaluate near box
        root.internal_untrim()
        root.prepare_for_eval()

    Callers that need their own, possibly nested, trims use
    :meth:`external_trim` and :meth:`untrim` with their own lists.
    """

    def __init__(
        self,
        iso_value: float = 1.0,
        children: Sequence[Element] = (),
    ) -> None:
        super().__init__(ROOT_RICCI_N, children)
        self.iso_value = float(iso_value)
        self.trimmed: List[Element] = []
        self.trim_parents: List[Node] = []
        self._trim_active = False
        if not children:
            self.valid_aabb = True

    # ------------------------------------------------------------------
    # Iso / neutral values
    # ------------------------------------------------------------------

    def get_iso_value(self) -> float:
        return self.iso_value

    def set_iso_value(self, v: float) -> None:
        self.iso_value = float(v)

    def get_neutral_value(self) -> float:
        return 0.0

    def is_empty(self) -> bool:
        return len(self.children) == 0

    # ------------------------------------------------------------------
    # Trimming
    # ------------------------------------------------------------------

    def is_trimmed(self) -> bool:
        return self._trim_active

    def internal_trim(self, aabb: Box3) -> None:
        """Trim everything not touching *aabb*, remembering what was removed.

        Raises
        ------
        PreconditionError
            If a previous internal trim has not been undone.
        """
        if self._trim_active:
            raise PreconditionError(
                "internal_trim() called twice without internal_untrim()"
            )
        self.trim(aabb, self.trimmed, self.trim_parents)
        self._trim_active = True

    def internal_untrim(self) -> None:
        """Undo the last :meth:`internal_trim` (no-op when not trimmed)."""
        self.untrim(self.trimmed, self.trim_parents)
        self.trimmed.clear()
        self.trim_parents.clear()
        self._trim_active = False

    def external_trim(
        self,
        aabb: Box3,
        trimmed: List[Element],
        parents: List[Node],
    ) -> None:
        """Same as :meth:`internal_trim` with caller-owned lists."""
        self.trim(aabb, trimmed, parents)

    def untrim(self, trimmed: Sequence[Element], parents: Sequence[Node]) -> None:
        """Re-insert ``trimmed[i]`` into ``parents[i]``, last removal first."""
        if len(trimmed) != len(parents):
            raise PreconditionError(
                f"untrim(): {len(trimmed)} trimmed elements for "
                f"{len(parents)} parents"
            )
        for i in range(len(trimmed) - 1, -1, -1):
            parents[i].add_child(trimmed[i])

    # ------------------------------------------------------------------
    # Ray queries
    # ------------------------------------------------------------------

    def intersect_ray_blob(
        self,
        origin: _VecLike,
        direction: _VecLike,
        max_distance: float,
        precision: float = 1e-3,
    ) -> Optional[RayHit]:
        """First crossing of the iso-surface along a ray.

        Marches with the step hints returned by :meth:`value` until the
        field reaches the iso-value, then refines between the last two
        samples with :func:`~blobtree.convergence.safe_newton_1d`.

        Parameters
        ----------
        origin, direction:
            The ray; *direction* need not be normalized.
        max_distance:
            Marching stops past this distance.
        precision:
            Lower bound of the marching step.

        Returns
        -------
        RayHit or None
            ``(distance, point, gradient)`` of the hit, ``None`` if the ray
            does not reach the surface within *max_distance*.
        """
        if not self.valid_aabb:
            raise PreconditionError(
                "intersect_ray_blob() needs a prepared tree"
            )
        pos = vec3(origin)
        d = vec3(direction)
        n = float(np.linalg.norm(d))
        if n == 0.0:
            raise ValueError("ray direction is null")
        d /= n

        res = ValueResult(step=0.0)
        self.value(pos, res)
        dist = 0.0
        prev_step = 0.0
        prev_v = res.v
        while res.v < self.iso_value and dist < max_distance:
            step = max(res.step, precision)
            pos += d * step
            dist += step
            prev_step = step
            prev_v = res.v
            res.step = 0.0
            self.value(pos, res)

        if res.v < self.iso_value:
            return None
        if prev_step == 0.0:
            # origin already inside
            res.g = np.zeros(3)
            self.value(pos, res)
            return RayHit(0.0, pos, res.g)

        # march back from the first inside sample
        guess = prev_step * (self.iso_value - res.v) / (prev_v - res.v)
        conv = safe_newton_1d(
            self,
            pos,
            -d,
            0.0,
            prev_step,
            min(max(guess, 0.0), prev_step),
            self.iso_value,
            prev_step / 512.0,
            10,
        )
        logger.debug("ray hit after %.4g (refined by %.4g)", dist, conv.absc)
        return RayHit(dist - conv.absc, conv.point, conv.gradient)
