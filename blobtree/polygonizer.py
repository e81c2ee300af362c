"""Sliding Marching Cubes: adaptive polygonization of a blobtree.

The sampled region is swept along z.  Only two xy slices of field values
("back" and "front") and two slices of emitted vertex indices live in
memory at a time.  Each new front slice is filled by an adaptive sampler
driven by the accuracy areas of the tree: boxes far from the surface are
bilinearly interpolated from their corners, boxes crossed by the surface
are refined down to the grid step.  Cells between the two slices are then
meshed surface-nets style: one vertex per cell crossed by the surface and
one quad per crossed grid edge.

Quick start
-----------
::

    from blobtree import RootNode, ScalisPoint, ScalisVertex
    from blobtree import SlidingMarchingCubes, SMCParams

    root = RootNode()
    root.add_child(ScalisPoint(ScalisVertex((0.0, 0.0, 0.0), 10.0)))
    root.prepare_for_eval()

    smc  = SlidingMarchingCubes(root, SMCParams(detail_ratio=0.5))
    mesh = smc.compute()
"""

from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence, Tuple

import numpy as np

from ._math import _F
from .areas import DEFAULT_ACCURACIES, Accuracies
from .box import Box3
from .convergence import safe_newton_3d
from .element import AreaEntry, Element, Node, ValueResult
from .errors import PreconditionError
from .mesh import Mesh, MeshBuilder
from .root import RootNode

logger = logging.getLogger(__name__)

# Corner i of a cell has x = bit 2, y = bit 1, z = bit 0.
VERTEX_TOPO = np.array(
    [
        [0, 0, 0], [0, 0, 1], [0, 1, 0], [0, 1, 1],
        [1, 0, 0], [1, 0, 1], [1, 1, 0], [1, 1, 1],
    ],
    dtype=float,
)
# Cell edges as corner pairs: 0-3 along x, 4-7 along y, 8-11 along z.
EDGE_V_MAP = (
    (0, 4), (1, 5), (2, 6), (3, 7),
    (0, 2), (1, 3), (4, 6), (5, 7),
    (0, 1), (2, 3), (4, 5), (6, 7),
)

_UNSET_ACC = 10000
_EMPTY_NICE_ACC = 10000000

Progress = Callable[[int], None]


# ===========================================================================
# Parameters
# ===========================================================================

@dataclass
class ConvergenceParams:
    """Newton refinement of the emitted vertices.

    Parameters
    ----------
    ratio:
        Tolerance as a fraction of the grid step.
    step:
        Maximum number of Newton steps per vertex.
    """

    ratio: float = 0.01
    step: int = 10


@dataclass
class SMCParams:
    """Options of :class:`SlidingMarchingCubes`.

    Parameters
    ----------
    z_resolution:
        ``"adaptive"`` steps z by the local accuracy of the areas,
        ``"uniform"`` uses the finest step everywhere.
    detail_ratio:
        Multiplies every accuracy; smaller gives more detail.  Clamped to
        at least 0.01.
    progress:
        Called with an integer percentage after each slice and with 100
        once at the end.  Must not touch the polygonizer.
    convergence:
        Enables Newton refinement of the vertices when given.
    accuracies:
        Tier factors; only ``nice``/``raw`` ratios are read here, the areas
        carry their own copy.
    slice_trim:
        Trim the tree to a thin slab around each slice before sampling it.
    min_curvature_split:
        Pick the quad diagonal whose two triangles are the most coplanar.
    """

    z_resolution: str = "adaptive"
    detail_ratio: float = 1.0
    progress: Optional[Progress] = None
    convergence: Optional[ConvergenceParams] = None
    accuracies: Accuracies = DEFAULT_ACCURACIES
    slice_trim: bool = True
    min_curvature_split: bool = True

    def __post_init__(self) -> None:
        if self.z_resolution not in ("adaptive", "uniform"):
            raise ValueError(
                f"z_resolution must be 'adaptive' or 'uniform', "
                f"got {self.z_resolution!r}"
            )
        self.detail_ratio = max(0.01, float(self.detail_ratio))


@dataclass
class SweepStats:
    """Counters filled by the last :meth:`SlidingMarchingCubes.compute`."""

    grid_shape: Tuple[int, int, int] = (0, 0, 0)
    min_acc: float = 0.0
    n_evaluations: int = 0
    n_mixed_cells: int = 0
    z_steps: List[float] = field(default_factory=list)


# ===========================================================================
# Box2Acc
# ===========================================================================

class Box2Acc:
    """Integer 2-D box of grid indices carrying nice/raw accuracies.

    Accuracies are expressed in grid cells.
    """

    __slots__ = ("min_x", "min_y", "max_x", "max_y", "nice_acc", "raw_acc")

    def __init__(
        self,
        min_x: float = math.inf,
        min_y: float = math.inf,
        max_x: float = -math.inf,
        max_y: float = -math.inf,
        nice_acc: Optional[float] = None,
        raw_acc: Optional[float] = None,
    ) -> None:
        self.min_x = min_x
        self.min_y = min_y
        self.max_x = max_x
        self.max_y = max_y
        if nice_acc is None:
            s = max(max_x - min_x, max_y - min_y)
            nice_acc = s if s > 0 else _EMPTY_NICE_ACC
        self.nice_acc = nice_acc
        self.raw_acc = raw_acc if raw_acc is not None else nice_acc

    def is_empty(self) -> bool:
        return self.max_x < self.min_x or self.max_y < self.min_y

    def size(self) -> Tuple[float, float]:
        return self.max_x - self.min_x, self.max_y - self.min_y

    def set_raw_acc(self, acc: float) -> None:
        self.raw_acc = max(0, acc)

    def set_nice_acc(self, acc: float) -> None:
        self.nice_acc = max(0, acc)

    def union(self, other: Box2Acc) -> Box2Acc:
        """Grow to contain *other*; keep the finest accuracies."""
        self.min_x = min(self.min_x, other.min_x)
        self.min_y = min(self.min_y, other.min_y)
        self.max_x = max(self.max_x, other.max_x)
        self.max_y = max(self.max_y, other.max_y)
        self.raw_acc = min(self.raw_acc, other.raw_acc)
        self.nice_acc = min(self.nice_acc, other.nice_acc)
        return self

    def intersect(self, other: Box2Acc) -> Box2Acc:
        self.min_x = max(self.min_x, other.min_x)
        self.min_y = max(self.min_y, other.min_y)
        self.max_x = min(self.max_x, other.max_x)
        self.max_y = min(self.max_y, other.max_y)
        return self

    def intersects_box(self, other: Box2Acc) -> bool:
        return not (
            other.max_x < self.min_x
            or other.min_x > self.max_x
            or other.max_y < self.min_y
            or other.min_y > self.max_y
        )

    def __repr__(self) -> str:
        return (
            f"Box2Acc(({self.min_x}, {self.min_y}) -> ({self.max_x}, {self.max_y}), "
            f"nice={self.nice_acc}, raw={self.raw_acc})"
        )


# ===========================================================================
# Polygonizer
# ===========================================================================

class SlidingMarchingCubes:
    """Adaptive dual marching cubes over a :class:`~blobtree.root.RootNode`.

    Parameters
    ----------
    blobtree:
        A prepared root node.  Later mutations are picked up by
        :meth:`compute`, which prepares the tree again.
    params:
        Options, see :class:`SMCParams`.

    Raises
    ------
    PreconditionError
        If *blobtree* has never been prepared.
    """

    def __init__(
        self,
        blobtree: RootNode,
        params: Optional[SMCParams] = None,
    ) -> None:
        if not blobtree.is_valid_aabb():
            raise PreconditionError(
                "SlidingMarchingCubes needs a prepared blobtree, "
                "call prepare_for_eval() first"
            )
        self.blobtree = blobtree
        self.params = params if params is not None else SMCParams()
        self.uniform_z = self.params.z_resolution == "uniform"
        self.detail_ratio = self.params.detail_ratio
        self.convergence = self.params.convergence
        self.stats = SweepStats()

        self.min_acc = 1.0
        self.reso = [0, 0, 0]
        self.steps_z: List[float] = []
        self._iso = blobtree.get_iso_value()

        # sliding buffers, allocated per compute()
        self._values_back: Optional[_F] = None
        self._values_front: Optional[_F] = None
        self._verts_back: Optional[np.ndarray] = None
        self._verts_front: Optional[np.ndarray] = None
        self._geometry: Optional[MeshBuilder] = None

        # per-cell scratch
        self._cell_values = np.zeros(8)
        self._edge_cross = [False] * 12
        self._cell_origin = np.zeros(3)
        self._curr_steps = np.zeros(3)
        self._vertex = np.zeros(3)
        self._normal = np.zeros(3)
        self._eval_p = np.zeros(3)
        self._eval_v = ValueResult()
        self._eval_full = ValueResult.full()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def compute(self, aabb: Optional[Box3] = None, extended: bool = False) -> Mesh:
        """Polygonize the blobtree inside *aabb* (default: the tree box).

        Parameters
        ----------
        aabb:
            Region to mesh.  The tree is trimmed to it for the duration of
            the sweep.
        extended:
            Grow the region by the local accuracy on every side so that
            meshes of neighbouring regions overlap.

        Returns
        -------
        Mesh
            Empty when the tree has no primitive.
        """
        t0 = time.perf_counter()
        self.stats = SweepStats()
        self._iso = self.blobtree.get_iso_value()
        self.blobtree.prepare_for_eval()

        box = aabb.copy() if aabb is not None else self.blobtree.get_aabb().copy()
        if extended and not box.is_empty():
            box = self._extend_box(box)

        outer_trimmed: List[Element] = []
        outer_parents: List[Node] = []
        if aabb is not None:
            self.blobtree.external_trim(box, outer_trimmed, outer_parents)
            self.blobtree.prepare_for_eval()
        try:
            mesh = self._sweep(box)
        finally:
            if aabb is not None:
                self.blobtree.untrim(outer_trimmed, outer_parents)
                self.blobtree.prepare_for_eval()

        logger.info(
            "Sliding marching cubes computed in %.1f ms (%d vertices, %d faces)",
            1000.0 * (time.perf_counter() - t0),
            mesh.n_vertices,
            mesh.n_faces,
        )
        self._report(100)
        return mesh

    # ------------------------------------------------------------------
    # Region and grid setup
    # ------------------------------------------------------------------

    def _report(self, percent: int) -> None:
        if self.params.progress is not None:
            self.params.progress(percent)

    def _min_acc_in(self, box: Box3, areas: Sequence[AreaEntry]) -> float:
        acc = math.inf
        for a in areas:
            if a.aabb.intersects_box(box):
                acc = min(acc, a.area.get_min_acc())
        return acc * self.detail_ratio

    def _max_acc_in(self, box: Box3, areas: Sequence[AreaEntry]) -> float:
        acc = 0.0
        for a in areas:
            if a.aabb.intersects_box(box):
                acc = max(acc, a.area.get_min_acc())
        return acc * self.detail_ratio

    def _extend_box(self, box: Box3) -> Box3:
        """Grow *box* by the coarsest accuracy found along each face."""
        areas = self.blobtree.get_areas()
        dims = box.size()
        slab = min(self._min_acc_in(box, areas), float(np.min(dims)))
        out = box.copy()
        for k in range(3):
            lo = box.copy()
            lo.max[k] = box.min[k] + slab
            grow = self._max_acc_in(lo, areas)
            if grow != 0.0:
                out.min[k] -= grow
            hi = box.copy()
            hi.min[k] = box.max[k] - slab
            grow = self._max_acc_in(hi, areas)
            if grow != 0.0:
                out.max[k] += grow
        return out

    def _z_schedule(self, corner_z: float, dim_z: float, areas: Sequence[AreaEntry]) -> List[float]:
        steps = [corner_z]
        end = corner_z + dim_z
        while steps[-1] < end:
            if self.uniform_z:
                min_step = self.min_acc
            else:
                min_step = dim_z
                for a in areas:
                    min_step = min(
                        min_step,
                        a.area.get_axis_projection_min_step(2, steps[-1]) * self.detail_ratio,
                    )
                min_step = max(min_step, self.min_acc)
            steps.append(steps[-1] + min_step)
        return steps

    # ------------------------------------------------------------------
    # Sweep
    # ------------------------------------------------------------------

    def _sweep(self, box: Box3) -> Mesh:
        areas = self.blobtree.get_areas()
        if not areas or box.is_empty():
            logger.debug("nothing to polygonize")
            return Mesh.empty()

        self.min_acc = min(a.area.get_min_acc() for a in areas) * self.detail_ratio
        corner = box.min.copy()
        dims = box.size()

        self.steps_z = self._z_schedule(corner[2], dims[2], areas)
        self.reso = [
            int(math.ceil(dims[0] / self.min_acc)) + 2,
            int(math.ceil(dims[1] / self.min_acc)) + 2,
            len(self.steps_z),
        ]
        nx, ny, nz = self.reso
        self.stats.grid_shape = (nx, ny, nz)
        self.stats.min_acc = self.min_acc
        self.stats.z_steps = list(self.steps_z)
        logger.info(
            "sweeping %d x %d x %d grid (step %.4g, %s z)",
            nx, ny, nz, self.min_acc, "uniform" if self.uniform_z else "adaptive",
        )

        self._values_back = np.zeros((ny, nx))
        self._values_front = np.zeros((ny, nx))
        self._verts_back = np.full((ny, nx), -1, dtype=np.int64)
        self._verts_front = np.full((ny, nx), -1, dtype=np.int64)
        self._geometry = MeshBuilder()

        slab = Box3()
        try:
            self._compute_front_values(corner[0], corner[1], self.steps_z[0])

            percent = 0
            for iz in range(nz - 1):
                self._values_back, self._values_front = self._values_front, self._values_back
                self._verts_back, self._verts_front = self._verts_front, self._verts_back
                self._verts_front.fill(-1)

                z1 = self.steps_z[iz + 1]
                if self.params.slice_trim:
                    slab.set(
                        (corner[0], corner[1], z1 - self.min_acc / 64.0),
                        (
                            corner[0] + nx * self.min_acc,
                            corner[1] + ny * self.min_acc,
                            z1 + self.min_acc / 64.0,
                        ),
                    )
                    self.blobtree.internal_trim(slab)
                    try:
                        self.blobtree.prepare_for_eval()
                        self._compute_front_values(corner[0], corner[1], z1)
                    finally:
                        self.blobtree.internal_untrim()
                        self.blobtree.prepare_for_eval()
                else:
                    self._compute_front_values(corner[0], corner[1], z1)

                self._curr_steps[:] = (self.min_acc, self.min_acc, z1 - self.steps_z[iz])
                self._triangulate_slab(iz, corner)

                p = min(99, int(round(100.0 * iz / nz)))
                if p > percent:
                    percent = p
                    self._report(percent)
                logger.debug("slice %d/%d at z=%.4g done", iz + 1, nz - 1, z1)

            return self._geometry.build()
        finally:
            self._values_back = None
            self._values_front = None
            self._verts_back = None
            self._verts_front = None

    # ------------------------------------------------------------------
    # Front slice sampling
    # ------------------------------------------------------------------

    def _compute_front_val_at(self, cx: float, cy: float, cz: float, x: int, y: int) -> None:
        """Evaluate the field at grid point (x, y) unless already known."""
        front = self._values_front
        if not math.isnan(front[y, x]):
            return
        p = self._eval_p
        p[0] = cx + x * self.min_acc
        p[1] = cy + y * self.min_acc
        p[2] = cz
        self.blobtree.value(p, self._eval_v)
        front[y, x] = self._eval_v.v
        self.stats.n_evaluations += 1

    def _compute_front_val_at_box_corners(
        self, cx: float, cy: float, cz: float, box: Box2Acc
    ) -> None:
        self._compute_front_val_at(cx, cy, cz, box.min_x, box.min_y)
        self._compute_front_val_at(cx, cy, cz, box.min_x, box.max_y)
        self._compute_front_val_at(cx, cy, cz, box.max_x, box.min_y)
        self._compute_front_val_at(cx, cy, cz, box.max_x, box.max_y)

    def _box_mask(self, box: Box2Acc) -> int:
        """4-bit inside mask of the corners (min,min) (max,min) (max,max) (min,max)."""
        v = self._values_front
        iso = self._iso
        mask = 0
        if v[box.min_y, box.min_x] > iso:
            mask |= 1
        if v[box.min_y, box.max_x] > iso:
            mask |= 2
        if v[box.max_y, box.max_x] > iso:
            mask |= 4
        if v[box.max_y, box.min_x] > iso:
            mask |= 8
        return mask

    def _fill_neutral(self, box: Box2Acc) -> None:
        sub = self._values_front[box.min_y:box.max_y + 1, box.min_x:box.max_x + 1]
        np.copyto(sub, self.blobtree.get_neutral_value(), where=np.isnan(sub))

    def _interpolate_in_box(self, box: Box2Acc) -> None:
        """Fill unknown samples of *box* bilinearly from its known edges.

        Both horizontal edges are interpolated from their end points first,
        then every column between the two edges.
        """
        sub = self._values_front[box.min_y:box.max_y + 1, box.min_x:box.max_x + 1]
        ny = box.max_y - box.min_y
        nx = box.max_x - box.min_x
        if nx > 1:
            t = np.arange(nx + 1) / nx
            for row in (sub[0], sub[ny]):
                lin = row[0] + (row[nx] - row[0]) * t
                np.copyto(row, lin, where=np.isnan(row))
        if ny > 1:
            s = (np.arange(ny + 1) / ny)[:, None]
            lin = sub[0][None, :] + (sub[ny] - sub[0])[None, :] * s
            np.copyto(sub, lin, where=np.isnan(sub))

    def _recursive_box_computation(
        self,
        cx: float,
        cy: float,
        cz: float,
        box: Box2Acc,
        boxes2d: Sequence[Box2Acc],
    ) -> None:
        """Split *box* in two along its longer side and fill each half.

        Halves touching no area are set to the neutral value; halves within
        raw accuracy whose corners agree on the side of the surface, or
        within nice accuracy, are interpolated; others are split again.
        """
        dx = box.max_x - box.min_x
        dy = box.max_y - box.min_y
        if dx > 1 and dx >= dy:
            cut = box.min_x + dx // 2
            halves = (
                Box2Acc(box.min_x, box.min_y, cut, box.max_y, _UNSET_ACC, _UNSET_ACC),
                Box2Acc(cut, box.min_y, box.max_x, box.max_y, _UNSET_ACC, _UNSET_ACC),
            )
            self._compute_front_val_at(cx, cy, cz, cut, box.min_y)
            self._compute_front_val_at(cx, cy, cz, cut, box.max_y)
        elif dy > 1:
            cut = box.min_y + dy // 2
            halves = (
                Box2Acc(box.min_x, box.min_y, box.max_x, cut, _UNSET_ACC, _UNSET_ACC),
                Box2Acc(box.min_x, cut, box.max_x, box.max_y, _UNSET_ACC, _UNSET_ACC),
            )
            self._compute_front_val_at(cx, cy, cz, box.min_x, cut)
            self._compute_front_val_at(cx, cy, cz, box.max_x, cut)
        else:
            return

        for half in halves:
            touching = [b for b in boxes2d if half.intersects_box(b)]
            if not touching:
                self._fill_neutral(half)
                continue
            for b in touching:
                half.set_raw_acc(min(half.raw_acc, b.raw_acc))
                half.set_nice_acc(min(half.nice_acc, b.nice_acc))

            sx, sy = half.size()
            if sx <= half.raw_acc and sy <= half.raw_acc:
                mask = self._box_mask(half)
                if mask == 0x0 or mask == 0xF:
                    self._interpolate_in_box(half)
                elif sx <= half.nice_acc and sy <= half.nice_acc:
                    self._interpolate_in_box(half)
                else:
                    self._recursive_box_computation(cx, cy, cz, half, touching)
            else:
                self._recursive_box_computation(cx, cy, cz, half, touching)

    def _compute_front_values(self, cx: float, cy: float, cz: float) -> None:
        """Fill the front buffer with the field on the plane ``z = cz``."""
        front = self._values_front
        front.fill(np.nan)
        nx, ny = self.reso[0], self.reso[1]

        areas = self.blobtree.get_areas()
        bigbox = Box2Acc()
        boxes2d: List[Box2Acc] = []
        for a in areas:
            raw_acc = round(a.area.get_min_raw_acc() * self.detail_ratio / self.min_acc)
            nice_acc = round(a.area.get_min_acc() * self.detail_ratio / self.min_acc)
            b = Box2Acc(
                max(0, int(math.floor((a.aabb.min[0] - cx) / self.min_acc))),
                max(0, int(math.floor((a.aabb.min[1] - cy) / self.min_acc))),
                min(nx - 1, int(math.ceil((a.aabb.max[0] - cx) / self.min_acc))),
                min(ny - 1, int(math.ceil((a.aabb.max[1] - cy) / self.min_acc))),
                nice_acc,
                raw_acc,
            )
            if b.is_empty():
                continue
            boxes2d.append(b)
            bigbox.union(b)

        if boxes2d:
            bigbox.intersect(Box2Acc(0, 0, nx - 1, ny - 1, bigbox.nice_acc, bigbox.raw_acc))
        if boxes2d and not bigbox.is_empty():
            self._compute_front_val_at_box_corners(cx, cy, cz, bigbox)
            self._recursive_box_computation(cx, cy, cz, bigbox, boxes2d)

        np.copyto(front, self.blobtree.get_neutral_value(), where=np.isnan(front))

    # ------------------------------------------------------------------
    # Cells
    # ------------------------------------------------------------------

    def _slab_masks(self) -> np.ndarray:
        """8-bit corner masks of every cell between back and front."""
        iso = self._iso
        b = (self._values_back > iso).astype(np.uint8)
        f = (self._values_front > iso).astype(np.uint8)
        return (
            b[:-1, :-1]
            | (f[:-1, :-1] << 1)
            | (b[1:, :-1] << 2)
            | (f[1:, :-1] << 3)
            | (b[:-1, 1:] << 4)
            | (f[:-1, 1:] << 5)
            | (b[1:, 1:] << 6)
            | (f[1:, 1:] << 7)
        )

    def _triangulate_slab(self, iz: int, corner: _F) -> None:
        masks = self._slab_masks()
        ys, xs = np.nonzero((masks != 0x00) & (masks != 0xFF))
        self.stats.n_mixed_cells += len(ys)
        for y, x in zip(ys.tolist(), xs.tolist()):
            self._fetch_and_triangulate(x, y, iz, corner, int(masks[y, x]))

    def _fetch_and_triangulate(self, x: int, y: int, iz: int, corner: _F, mask: int) -> None:
        back = self._values_back
        front = self._values_front
        vals = self._cell_values
        vals[0] = back[y, x]
        vals[1] = front[y, x]
        vals[2] = back[y + 1, x]
        vals[3] = front[y + 1, x]
        vals[4] = back[y, x + 1]
        vals[5] = front[y, x + 1]
        vals[6] = back[y + 1, x + 1]
        vals[7] = front[y + 1, x + 1]

        self._cell_origin[0] = corner[0] + x * self.min_acc
        self._cell_origin[1] = corner[1] + y * self.min_acc
        self._cell_origin[2] = self.steps_z[iz]
        self._compute_vertex()

        m = self._eval_full.m
        idx = self._geometry.add_vertex(
            self._vertex, self._normal, m.color, m.roughness, m.metalness
        )
        self._verts_front[y, x] = idx
        self._triangulate(x, y, iz, mask)

    def _compute_vertex(self) -> None:
        """Average the edge crossings of the cell, then optionally refine."""
        iso = self._iso
        vals = self._cell_values
        acc = np.zeros(3)
        count = 0
        for i, (e0, e1) in enumerate(EDGE_V_MAP):
            g0 = vals[e0]
            g1 = vals[e1]
            crossed = (g0 > iso) != (g1 > iso)
            self._edge_cross[i] = crossed
            if not crossed:
                continue
            d = g1 - g0
            if abs(d) <= 1e-6:
                continue
            t = (iso - g0) / d
            acc += (1.0 - t) * VERTEX_TOPO[e0] + t * VERTEX_TOPO[e1]
            count += 1

        if count == 0:
            acc[:] = 0.5
        else:
            acc /= count
        np.multiply(acc, self._curr_steps, out=self._vertex)
        self._vertex += self._cell_origin

        if self.convergence is not None:
            conv = safe_newton_3d(
                self.blobtree,
                self._vertex,
                iso,
                self.min_acc * self.convergence.ratio,
                self.convergence.step,
                self.min_acc,
            )
            self._vertex[:] = conv.point

        ev = self._eval_full
        self.blobtree.value(self._vertex, ev)
        n = float(np.linalg.norm(ev.g))
        if n > 0.0:
            np.multiply(ev.g, -1.0 / n, out=self._normal)
        else:
            self._normal[:] = 0.0

    def _vertex_pos(self, i: int) -> _F:
        pos = self._geometry.positions
        return np.array(pos[3 * i:3 * i + 3])

    def _push_quad(self, v1: int, v2: int, v3: int, v4: int, direct: bool) -> None:
        """Emit quad v1 v2 v3 v4 as two triangles.

        The default diagonal is v1-v3; with ``min_curvature_split`` the v2-v4
        diagonal is used instead when its two triangles are more coplanar.
        """
        if self.params.min_curvature_split and self._prefer_other_diagonal(v1, v2, v3, v4):
            v1, v2, v3, v4 = v2, v3, v4, v1
        geo = self._geometry
        if direct:
            geo.add_face(v1, v2, v3)
            geo.add_face(v3, v4, v1)
        else:
            geo.add_face(v3, v2, v1)
            geo.add_face(v1, v4, v3)

    def _prefer_other_diagonal(self, v1: int, v2: int, v3: int, v4: int) -> bool:
        p1 = self._vertex_pos(v1)
        p2 = self._vertex_pos(v2)
        p3 = self._vertex_pos(v3)
        p4 = self._vertex_pos(v4)

        def _agreement(a: _F, b: _F, c: _F, d: _F) -> float:
            # triangles (a, b, c) and (c, d, a)
            n1 = np.cross(b - a, c - a)
            n2 = np.cross(d - c, a - c)
            l1 = np.linalg.norm(n1)
            l2 = np.linalg.norm(n2)
            if l1 == 0.0 or l2 == 0.0:
                return -1.0
            return float(np.dot(n1, n2) / (l1 * l2))

        return _agreement(p2, p3, p4, p1) > _agreement(p1, p2, p3, p4)

    def _triangulate(self, x: int, y: int, z: int, mask: int) -> None:
        """Emit the quads of the three crossed edges meeting at the cell's min corner."""
        front = self._verts_front
        back = self._verts_back
        direct = bool(mask & 0x1)
        if self._edge_cross[0] and y != 0 and z != 0:
            self._push_quad(front[y, x], front[y - 1, x], back[y - 1, x], back[y, x], direct)
        if self._edge_cross[4] and x != 0 and z != 0:
            self._push_quad(front[y, x], back[y, x], back[y, x - 1], front[y, x - 1], direct)
        if self._edge_cross[8] and x != 0 and y != 0:
            self._push_quad(front[y, x], front[y, x - 1], front[y - 1, x - 1], front[y - 1, x], direct)
