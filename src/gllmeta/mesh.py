"""Module defining the Mesh class for polygonal surface meshes on the sphere.

This module provides:
  - Loading from any meshio-readable file (Exodus, VTK/VTU, OBJ, ...).
  - Spherical face areas (fan triangulation + spherical excess).
  - Topology checks (edge map, non-manifold edges, repeated vertices).
  - Coincident vertex removal through a KD-tree.
  - Conforming conversion of triangles/polygons into quadrilaterals.

Meshes are treated as immutable: every transformation returns a new Mesh.
"""
from __future__ import annotations

import collections
import logging
import os
from typing import Any, DefaultDict, Dict, List, Optional, Sequence, Tuple

import meshio
import numpy as np
from numpy.typing import NDArray
from scipy.spatial import cKDTree

from .exceptions import InvalidInputError, MalformedMeshError

_LOGGER = logging.getLogger(__name__)

_SURFACE_CELL_TYPES = ("triangle", "quad")


def _unit(v: NDArray[Any]) -> NDArray[Any]:
    """Project points onto the unit sphere, rejecting points at the origin."""
    r = np.linalg.norm(v, axis=-1, keepdims=True)
    if np.any(r < 1e-14) or not np.all(np.isfinite(r)):
        _LOGGER.error("Cannot project vertex at (or near) the origin onto the sphere.")
        raise MalformedMeshError("Vertex at the origin cannot be projected to the sphere")
    return v / r


def _spherical_triangle_areas(
    a: NDArray[Any], b: NDArray[Any], c: NDArray[Any]
) -> NDArray[Any]:
    """Spherical excess of unit-vector triangles (Van Oosterom & Strackee).

    Args:
        a, b, c: Unit vectors, shape (m, 3).

    Returns:
        NDArray[Any]: Areas on the unit sphere, shape (m,).
    """
    numer = np.abs(np.einsum("ij,ij->i", a, np.cross(b, c)))
    denom = (
        1.0
        + np.einsum("ij,ij->i", a, b)
        + np.einsum("ij,ij->i", b, c)
        + np.einsum("ij,ij->i", c, a)
    )
    return 2.0 * np.arctan2(numer, denom)


class Mesh:
    """Polygonal surface mesh whose vertices lie on (or near) the unit sphere.

    Args:
        verts (NDArray[Any]): Vertex coordinates (n_nodes×3).
        faces (Sequence[Sequence[int]]): Per-face vertex indices, counter-
            clockwise seen from outside the sphere. Faces may mix sizes.

    Attributes:
        verts (NDArray[Any]): Vertex array, shape (n_nodes, 3).
        faces (List[Tuple[int, ...]]): Face connectivity in mesh order.
    """

    verts: NDArray[Any]
    faces: List[Tuple[int, ...]]

    def __init__(
        self,
        verts: NDArray[Any],
        faces: Sequence[Sequence[int]],
    ) -> None:
        self.verts = np.asarray(verts, dtype=float)
        if self.verts.ndim != 2 or self.verts.shape[1] != 3:
            _LOGGER.error("Mesh: expected (n, 3) vertices, got %s", self.verts.shape)
            raise MalformedMeshError(
                f"Vertices must have shape (n, 3), got {self.verts.shape}"
            )
        self.faces = [tuple(int(v) for v in face) for face in faces]

        _LOGGER.debug(
            "Mesh initialized with %d vertices and %d faces",
            self.verts.shape[0],
            len(self.faces),
        )

    def __repr__(self) -> str:
        return f"Mesh(n_verts={self.verts.shape[0]}, n_faces={self.n_faces})"

    @property
    def n_faces(self) -> int:
        """Number of faces."""
        return len(self.faces)

    @property
    def is_quadrilateral(self) -> bool:
        """True when every face has exactly four vertices."""
        return all(len(face) == 4 for face in self.faces)

    def quads(self) -> NDArray[Any]:
        """Return the face connectivity as an (n_faces, 4) integer array.

        Raises:
            MalformedMeshError: If any face is not a quadrilateral.
        """
        for k, face in enumerate(self.faces):
            if len(face) != 4:
                _LOGGER.error(
                    "quads: face %d has %d vertices; only quadrilaterals supported",
                    k,
                    len(face),
                )
                raise MalformedMeshError(
                    f"Mesh must only contain quadrilateral elements "
                    f"(face {k} has {len(face)} vertices)"
                )
        return np.asarray(self.faces, dtype=int).reshape(-1, 4)

    def face_corners(self) -> NDArray[Any]:
        """Return the corner coordinates of every quad, shape (n_faces, 4, 3)."""
        return self.verts[self.quads()]

    def face_areas(self) -> NDArray[Any]:
        """Compute the spherical area of every face.

        Vertices are projected onto the unit sphere and each face is fan-
        triangulated from its first vertex, so edges are great-circle arcs.

        Returns:
            NDArray[Any]: Face areas, shape (n_faces,).
        """
        self.validate_indices()
        areas = np.zeros(self.n_faces)
        by_size: DefaultDict[int, List[int]] = collections.defaultdict(list)
        for k, face in enumerate(self.faces):
            by_size[len(face)].append(k)

        unit = _unit(self.verts)
        for size, ks in by_size.items():
            conn = np.asarray([self.faces[k] for k in ks], dtype=int)
            a = unit[conn[:, 0]]
            for t in range(1, size - 1):
                areas[ks] += _spherical_triangle_areas(
                    a, unit[conn[:, t]], unit[conn[:, t + 1]]
                )
        _LOGGER.debug("face_areas: total spherical area %.15e", float(areas.sum()))
        return areas

    def total_area(self) -> float:
        """Sum of the spherical face areas."""
        return float(self.face_areas().sum())

    def edge_map(self) -> Dict[Tuple[int, int], List[int]]:
        """Map each undirected edge (lo, hi) to the faces that use it."""
        edges: DefaultDict[Tuple[int, int], List[int]] = collections.defaultdict(list)
        for k, face in enumerate(self.faces):
            n = len(face)
            for t in range(n):
                a, b = face[t], face[(t + 1) % n]
                edges[(min(a, b), max(a, b))].append(k)
        return dict(edges)

    def validate_indices(self) -> None:
        """Check that every face has >= 3 distinct, in-range vertex indices."""
        n_verts = self.verts.shape[0]
        for k, face in enumerate(self.faces):
            if len(face) < 3:
                _LOGGER.error("validate: face %d has only %d vertices", k, len(face))
                raise MalformedMeshError(f"Face {k} has fewer than 3 vertices")
            if min(face) < 0 or max(face) >= n_verts:
                _LOGGER.error("validate: face %d references a missing vertex", k)
                raise MalformedMeshError(
                    f"Face {k} references a vertex outside [0, {n_verts})"
                )
            if len(set(face)) != len(face):
                _LOGGER.error("validate: face %d repeats a vertex: %s", k, face)
                raise MalformedMeshError(f"Face {k} is degenerate (repeated vertex)")

    def validate(self) -> None:
        """Check face indices and reject non-manifold edges.

        Raises:
            MalformedMeshError: On degenerate faces or on an edge shared by
                more than two faces.
        """
        self.validate_indices()
        for edge, ks in self.edge_map().items():
            if len(ks) > 2:
                _LOGGER.error(
                    "validate: edge %s is shared by %d faces %s", edge, len(ks), ks
                )
                raise MalformedMeshError(
                    f"Non-manifold edge {edge} shared by faces {ks}"
                )

    def remove_coincident_nodes(self, tolerance: float = 1e-12) -> Mesh:
        """Merge vertices closer than `tolerance` and drop unused ones.

        Args:
            tolerance (float): Euclidean merge distance.

        Returns:
            Mesh: A new mesh with compacted vertices and re-indexed faces.
        """
        n = self.verts.shape[0]
        parent = np.arange(n)
        if n > 1:
            pairs = cKDTree(self.verts).query_pairs(r=tolerance, output_type="ndarray")
            # Union-find towards the smallest index of each cluster.
            for i, j in sorted(map(tuple, pairs)):
                ri, rj = int(i), int(j)
                while parent[ri] != ri:
                    ri = parent[ri]
                while parent[rj] != rj:
                    rj = parent[rj]
                if ri != rj:
                    parent[max(ri, rj)] = min(ri, rj)
            for i in range(n):
                parent[i] = parent[parent[i]]

        used = sorted({parent[v] for face in self.faces for v in face})
        new_index = {int(old): new for new, old in enumerate(used)}
        faces = [tuple(new_index[int(parent[v])] for v in face) for face in self.faces]
        verts = self.verts[np.asarray(used, dtype=int)] if used else self.verts[:0]

        _LOGGER.info(
            "remove_coincident_nodes: %d -> %d vertices (tolerance=%g)",
            n,
            len(used),
            tolerance,
        )
        return Mesh(verts, faces)

    def to_quadrilaterals(self) -> Mesh:
        """Split every face into quads through its centroid and edge midpoints.

        An n-gon becomes n quads ``(v_t, m_t, c, m_{t-1})``. Edge midpoints are
        shared with the neighbouring face, so the result stays conforming. New
        points are projected onto the unit sphere. A mesh that is already all
        quads is returned unchanged.

        Returns:
            Mesh: A quadrilateral mesh.
        """
        if self.is_quadrilateral:
            return self
        self.validate_indices()

        unit = _unit(self.verts)
        verts: List[NDArray[Any]] = list(self.verts)
        midpoints: Dict[Tuple[int, int], int] = {}
        faces: List[Tuple[int, ...]] = []

        def midpoint(a: int, b: int) -> int:
            key = (min(a, b), max(a, b))
            idx = midpoints.get(key)
            if idx is None:
                m = unit[key[0]] + unit[key[1]]
                verts.append(m / np.linalg.norm(m))
                idx = len(verts) - 1
                midpoints[key] = idx
            return idx

        for face in self.faces:
            n = len(face)
            c = unit[list(face)].sum(axis=0)
            verts.append(c / np.linalg.norm(c))
            ic = len(verts) - 1
            mids = [midpoint(face[t], face[(t + 1) % n]) for t in range(n)]
            for t in range(n):
                faces.append((face[t], mids[t], ic, mids[t - 1]))

        _LOGGER.info(
            "to_quadrilaterals: %d faces -> %d quads", self.n_faces, len(faces)
        )
        return Mesh(np.asarray(verts), faces)


def load_mesh(path: Optional[str]) -> Mesh:
    """Read a surface mesh from disk with meshio.

    Triangle, quad and polygon cell blocks are kept in file order; other cell
    types (lines, vertices) are ignored.

    Args:
        path (Optional[str]): Mesh file path.

    Returns:
        Mesh: The loaded mesh.

    Raises:
        InvalidInputError: If `path` is empty, missing or unreadable.
        MalformedMeshError: If the file holds no surface cells.
    """
    if not path:
        _LOGGER.error('load_mesh: invalid input mesh file "%s"', path)
        raise InvalidInputError(f'Invalid input mesh file "{path or ""}"')
    if not os.path.isfile(path):
        _LOGGER.error("load_mesh: no such file '%s'", path)
        raise InvalidInputError(f"Mesh file not found: {path}")

    try:
        raw = meshio.read(path)
    except (meshio.ReadError, ValueError, KeyError, IndexError) as exc:
        _LOGGER.error("load_mesh: meshio could not read '%s': %s", path, exc)
        raise InvalidInputError(f"Unreadable mesh file {path}: {exc}") from exc
    except SystemExit as exc:
        # meshio exits the interpreter when a format-specific reader fails.
        _LOGGER.error("load_mesh: meshio aborted reading '%s' (code %s)", path, exc.code)
        raise InvalidInputError(f"Unreadable mesh file {path}") from exc

    faces: List[Tuple[int, ...]] = []
    for block in raw.cells:
        if block.type in _SURFACE_CELL_TYPES or block.type.startswith("polygon"):
            faces.extend(tuple(int(v) for v in row) for row in block.data)
        else:
            _LOGGER.debug("load_mesh: skipping %d '%s' cells", len(block.data), block.type)

    if not faces:
        _LOGGER.error("load_mesh: '%s' contains no surface cells", path)
        raise MalformedMeshError(f"No triangle/quad/polygon cells in {path}")

    points = np.asarray(raw.points, dtype=float)
    if points.ndim != 2 or points.shape[1] != 3:
        _LOGGER.error("load_mesh: points of shape %s are not 3-D", points.shape)
        raise MalformedMeshError(f"Mesh points must be 3-D, got shape {points.shape}")

    mesh = Mesh(points, faces)
    _LOGGER.info(
        "Loaded mesh from %s with %d vertices and %d faces",
        path,
        mesh.verts.shape[0],
        mesh.n_faces,
    )
    return mesh


def compute_face_areas(mesh: Mesh) -> NDArray[Any]:
    """Return the spherical area of every face of `mesh`."""
    return mesh.face_areas()
