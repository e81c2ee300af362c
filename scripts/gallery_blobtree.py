"""Render every blobtree example assembly as a Sliding Marching Cubes mesh.

Each panel is polygonized by :class:`blobtree.SlidingMarchingCubes` and drawn
with matplotlib's 3-D axes, shaded by the per-vertex material colour.  With
``--reference`` a second row shows scikit-image's uniform marching cubes on
the same field for comparison.

Usage::

    python scripts/gallery_blobtree.py                   # saves gallery_blobtree.png
    python scripts/gallery_blobtree.py --out my_file.png
    python scripts/gallery_blobtree.py --detail 0.5      # finer meshes
    python scripts/gallery_blobtree.py --reference --res 40

Requirements: numpy, matplotlib (scikit-image for --reference)
    pip install matplotlib scikit-image
"""
from __future__ import annotations

import argparse
import logging
import os
import sys

# Ensure the repo root (parent of scripts/) is importable regardless of cwd
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import matplotlib.pyplot as plt
import numpy as np
from mpl_toolkits.mplot3d.art3d import Poly3DCollection

from blobtree import SMCParams, SlidingMarchingCubes, ValueResult, setup_logging
from blobtree.examples import (
    capsule_chain, carved_blob, point_pair, single_point, twisted_bar,
)

_LIGHT = np.array([0.577, 0.577, 0.577])


# ---------------------------------------------------------------------------
# Assembly catalogue  (label, root factory)
# ---------------------------------------------------------------------------

def _make_assemblies() -> list[tuple[str, object]]:
    return [
        ("single_point", lambda: single_point(10.0)),
        ("pair: max", lambda: point_pair("max", distance=15.0)),
        ("pair: min", lambda: point_pair("min", distance=10.0)),
        ("pair: ricci n=64", lambda: point_pair("ricci", distance=15.0, ricci_n=64.0)),
        ("pair: ricci n=1", lambda: point_pair("ricci", distance=15.0, ricci_n=1.0)),
        ("capsule_chain", capsule_chain),
        ("carved_blob", carved_blob),
        ("twisted_bar", twisted_bar),
    ]


# ---------------------------------------------------------------------------
# Uniform reference with scikit-image
# ---------------------------------------------------------------------------

def _reference_surface(root, res: int):
    """Return (verts, faces) from uniform marching cubes, or None."""
    try:
        from skimage import measure
    except ImportError:
        raise SystemExit(
            "scikit-image is required for --reference.\n"
            "  pip install scikit-image"
        )
    box = root.get_aabb()
    axes = [np.linspace(box.min[k], box.max[k], res) for k in range(3)]
    vals = np.zeros((res, res, res))
    ev = ValueResult()
    p = np.zeros(3)
    for i, x in enumerate(axes[0]):
        for j, y in enumerate(axes[1]):
            for k, z in enumerate(axes[2]):
                p[:] = (x, y, z)
                root.value(p, ev)
                vals[i, j, k] = ev.v
    iso = root.get_iso_value()
    if vals.max() <= iso or vals.min() >= iso:
        return None
    spacing = tuple((box.max[k] - box.min[k]) / (res - 1) for k in range(3))
    verts, faces, _, _ = measure.marching_cubes(vals, level=iso, spacing=spacing)
    return verts + box.min, faces


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------

def _draw(ax, verts, faces, colors, label: str) -> None:
    ax.set_facecolor("#111111")
    ax.set_axis_off()
    ax.set_title(label, color="white", fontsize=7, pad=1)
    if len(faces) == 0:
        ax.text2D(0.5, 0.5, "no surface", ha="center", va="center",
                  color="gray", transform=ax.transAxes, fontsize=7)
        return

    tris  = verts[faces]
    norms = np.cross(tris[:, 1] - tris[:, 0], tris[:, 2] - tris[:, 0])
    nlen  = np.linalg.norm(norms, axis=1, keepdims=True)
    norms = norms / np.where(nlen > 0, nlen, 1.0)
    shade = 0.3 + 0.7 * np.clip(norms @ _LIGHT, 0.0, 1.0)
    face_colors = colors[faces].mean(axis=1) * shade[:, None]
    ax.add_collection3d(Poly3DCollection(tris, facecolors=np.clip(face_colors, 0, 1),
                                         edgecolors="none", alpha=1.0))

    lo = verts.min(axis=0)
    hi = verts.max(axis=0)
    c = 0.5 * (lo + hi)
    h = 0.5 * float(np.max(hi - lo))
    ax.set_xlim(c[0] - h, c[0] + h); ax.set_ylim(c[1] - h, c[1] + h); ax.set_zlim(c[2] - h, c[2] + h)
    ax.set_box_aspect([1, 1, 1])
    ax.view_init(elev=20, azim=35)


def render_gallery(assemblies, out_path: str, detail: float = 1.0,
                   reference: bool = False, res: int = 32) -> None:
    ncols = len(assemblies)
    nrows = 2 if reference else 1
    fig = plt.figure(figsize=(ncols * 2.6, nrows * 2.8), facecolor="#111111")

    for idx, (label, factory) in enumerate(assemblies):
        root = factory()
        mesh = SlidingMarchingCubes(root, SMCParams(detail_ratio=detail)).compute()
        ax = fig.add_subplot(nrows, ncols, idx + 1, projection="3d")
        _draw(ax, mesh.positions, mesh.faces, mesh.colors,
              f"{label}\n{mesh.n_vertices} v / {mesh.n_faces} f")

        if reference:
            ax = fig.add_subplot(nrows, ncols, ncols + idx + 1, projection="3d")
            result = _reference_surface(root, res)
            if result is None:
                _draw(ax, np.zeros((0, 3)), np.zeros((0, 3), dtype=int), None, "uniform MC")
                continue
            verts, faces = result
            gold = np.tile([1.0, 0.82, 0.2], (len(verts), 1))
            _draw(ax, verts, faces, gold, f"uniform MC {res}^3")

    fig.suptitle("blobtree: Sliding Marching Cubes gallery", color="white",
                 fontsize=12, y=1.02)
    plt.tight_layout(pad=0.3)
    fig.savefig(out_path, dpi=160, bbox_inches="tight", facecolor=fig.get_facecolor())
    plt.close(fig)
    print(f"Saved: {out_path}")


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Polygonize every blobtree example assembly into one PNG gallery."
    )
    parser.add_argument("--out", default="gallery_blobtree.png", help="Output PNG path")
    parser.add_argument("--detail", type=float, default=1.0,
                        help="Detail ratio (smaller is finer, default 1.0)")
    parser.add_argument("--reference", action="store_true",
                        help="Add a row of scikit-image uniform marching cubes")
    parser.add_argument("--res", type=int, default=32,
                        help="Grid resolution per axis of the reference (default 32)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log polygonizer details")
    args = parser.parse_args()

    setup_logging(logging.DEBUG if args.verbose else logging.INFO)
    render_gallery(_make_assemblies(), args.out, detail=args.detail,
                   reference=args.reference, res=args.res)


if __name__ == "__main__":
    main()
