"""Triangle mesh produced by the polygonizer, plus ``.npz`` I/O."""

from __future__ import annotations

import os
from typing import Dict, List, Tuple

import networkx as nx
import numpy as np
import numpy.typing as npt
import trimesh

from ._math import _F

_Int = npt.NDArray[np.integer]


class Mesh:
    """Indexed triangle mesh with per-vertex attributes.

    Attributes
    ----------
    positions, normals, colors:
        ``(N, 3)`` float arrays.
    roughness, metalness:
        ``(N,)`` float arrays.
    faces:
        ``(F, 3)`` integer array of vertex indices.
    """

    def __init__(
        self,
        positions: _F,
        normals: _F,
        colors: _F,
        roughness: _F,
        metalness: _F,
        faces: _Int,
    ) -> None:
        self.positions = np.asarray(positions, dtype=float).reshape(-1, 3)
        self.normals = np.asarray(normals, dtype=float).reshape(-1, 3)
        self.colors = np.asarray(colors, dtype=float).reshape(-1, 3)
        self.roughness = np.asarray(roughness, dtype=float).reshape(-1)
        self.metalness = np.asarray(metalness, dtype=float).reshape(-1)
        self.faces = np.asarray(faces, dtype=np.int64).reshape(-1, 3)

    @classmethod
    def empty(cls) -> Mesh:
        return cls(
            np.zeros((0, 3)), np.zeros((0, 3)), np.zeros((0, 3)),
            np.zeros(0), np.zeros(0), np.zeros((0, 3), dtype=np.int64),
        )

    @property
    def n_vertices(self) -> int:
        return int(self.positions.shape[0])

    @property
    def n_faces(self) -> int:
        return int(self.faces.shape[0])

    def is_empty(self) -> bool:
        return self.n_faces == 0 and self.n_vertices == 0

    def bounds(self) -> Tuple[_F, _F]:
        """``(min, max)`` corners of the vertex positions."""
        if self.n_vertices == 0:
            return np.full(3, np.inf), np.full(3, -np.inf)
        return self.positions.min(axis=0), self.positions.max(axis=0)

    def face_normals(self) -> _F:
        """Unit normals of every face (zero for degenerate faces)."""
        tris = self.positions[self.faces]
        n = np.cross(tris[:, 1] - tris[:, 0], tris[:, 2] - tris[:, 0])
        nlen = np.linalg.norm(n, axis=1, keepdims=True)
        return n / np.where(nlen > 0, nlen, 1.0)

    def to_trimesh(self) -> trimesh.Trimesh:
        """Wrap the positions and faces in an unprocessed :class:`trimesh.Trimesh`.

        ``process=False`` keeps vertex indices identical to this mesh.
        """
        return trimesh.Trimesh(vertices=self.positions, faces=self.faces, process=False)

    def edge_counts(self) -> Dict[Tuple[int, int], int]:
        """Number of faces using each undirected edge ``(u, v)`` with ``u < v``."""
        if self.n_faces == 0:
            return {}
        tm = self.to_trimesh()
        unique = tm.edges_unique
        counts = np.bincount(tm.edges_unique_inverse, minlength=len(unique))
        return {(int(u), int(v)): int(n) for (u, v), n in zip(unique, counts)}

    def boundary_edges(self) -> List[Tuple[int, int]]:
        """Edges used by exactly one face; empty for a closed mesh."""
        return [e for e, n in self.edge_counts().items() if n == 1]

    def connected_components(self) -> int:
        """Number of face groups connected through shared vertices."""
        if self.n_faces == 0:
            return 0
        graph = nx.Graph()
        graph.add_nodes_from(np.unique(self.faces).tolist())
        graph.add_edges_from(self.to_trimesh().edges_unique.tolist())
        return nx.number_connected_components(graph)

    def __repr__(self) -> str:
        return f"Mesh(n_vertices={self.n_vertices}, n_faces={self.n_faces})"


class MeshBuilder:
    """Growable vertex/face lists turned into a :class:`Mesh` at the end."""

    def __init__(self) -> None:
        self.positions: List[float] = []
        self.normals: List[float] = []
        self.colors: List[float] = []
        self.roughness: List[float] = []
        self.metalness: List[float] = []
        self.faces: List[int] = []
        self.n_vertices = 0
        self.n_faces = 0

    def add_vertex(
        self,
        p: _F,
        n: _F,
        color: _F,
        roughness: float,
        metalness: float,
    ) -> int:
        """Append a vertex and return its index."""
        self.positions.extend((float(p[0]), float(p[1]), float(p[2])))
        self.normals.extend((float(n[0]), float(n[1]), float(n[2])))
        self.colors.extend((float(color[0]), float(color[1]), float(color[2])))
        self.roughness.append(float(roughness))
        self.metalness.append(float(metalness))
        self.n_vertices += 1
        return self.n_vertices - 1

    def add_face(self, a: int, b: int, c: int) -> None:
        self.faces.extend((a, b, c))
        self.n_faces += 1

    def build(self) -> Mesh:
        return Mesh(
            np.array(self.positions, dtype=float),
            np.array(self.normals, dtype=float),
            np.array(self.colors, dtype=float),
            np.array(self.roughness, dtype=float),
            np.array(self.metalness, dtype=float),
            np.array(self.faces, dtype=np.int64),
        )


def save_npz(path: str, mesh: Mesh) -> None:
    """Save *mesh* to *path* (creates parent directories if needed)."""
    out_dir = os.path.dirname(path)
    if out_dir:
        os.makedirs(out_dir, exist_ok=True)
    np.savez(
        path,
        positions=mesh.positions,
        normals=mesh.normals,
        colors=mesh.colors,
        roughness=mesh.roughness,
        metalness=mesh.metalness,
        faces=mesh.faces,
    )


def load_npz(path: str) -> Mesh:
    """Load a mesh written by :func:`save_npz`."""
    with np.load(path) as data:
        return Mesh(
            data["positions"],
            data["normals"],
            data["colors"],
            data["roughness"],
            data["metalness"],
            data["faces"],
        )
