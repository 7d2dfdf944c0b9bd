"""Reference meshes of the unit sphere.

Two generators are provided:
  - cubed_sphere: equiangular cubed-sphere quadrilaterals (6·ne² faces).
  - icosahedron: geodesic icosahedral triangles (20·4^r faces), which need
    :meth:`Mesh.to_quadrilaterals` before GLL metadata can be generated.

Both return closed, conforming meshes with outward (counter-clockwise) face
orientation and shared vertices merged.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Tuple

import numpy as np
from numpy.typing import NDArray
from scipy.spatial import ConvexHull

from .exceptions import InvalidInputError
from .mesh import Mesh

_LOGGER = logging.getLogger(__name__)

# (origin, a-axis, b-axis) per cube panel; a × b points outward.
_CUBE_PANELS = (
    ((1.0, 0.0, 0.0), (0.0, 1.0, 0.0), (0.0, 0.0, 1.0)),
    ((0.0, 1.0, 0.0), (-1.0, 0.0, 0.0), (0.0, 0.0, 1.0)),
    ((-1.0, 0.0, 0.0), (0.0, -1.0, 0.0), (0.0, 0.0, 1.0)),
    ((0.0, -1.0, 0.0), (1.0, 0.0, 0.0), (0.0, 0.0, 1.0)),
    ((0.0, 0.0, 1.0), (1.0, 0.0, 0.0), (0.0, 1.0, 0.0)),
    ((0.0, 0.0, -1.0), (0.0, 1.0, 0.0), (1.0, 0.0, 0.0)),
)


def cubed_sphere(resolution: int) -> Mesh:
    """Build an equiangular cubed-sphere mesh.

    Args:
        resolution (int): Elements along each cube-panel edge (``ne >= 1``).

    Returns:
        Mesh: ``6 * ne**2`` quads on the unit sphere.

    Raises:
        InvalidInputError: If `resolution` < 1.
    """
    if int(resolution) != resolution or resolution < 1:
        _LOGGER.error("cubed_sphere: invalid resolution %r", resolution)
        raise InvalidInputError(f"Cubed-sphere resolution must be >= 1, got {resolution!r}")
    ne = int(resolution)

    t = np.tan(np.linspace(-0.25 * np.pi, 0.25 * np.pi, ne + 1))
    tb, ta = np.meshgrid(t, t, indexing="ij")  # [q, p]

    verts: List[NDArray[Any]] = []
    faces: List[Tuple[int, int, int, int]] = []
    for origin, a_axis, b_axis in _CUBE_PANELS:
        o = np.asarray(origin)
        pts = o + ta[..., None] * np.asarray(a_axis) + tb[..., None] * np.asarray(b_axis)
        pts = pts / np.linalg.norm(pts, axis=-1, keepdims=True)

        base = sum(v.shape[0] for v in verts)
        verts.append(pts.reshape(-1, 3))

        def vid(p: int, q: int) -> int:
            return base + q * (ne + 1) + p

        for q in range(ne):
            for p in range(ne):
                faces.append((vid(p, q), vid(p + 1, q), vid(p + 1, q + 1), vid(p, q + 1)))

    mesh = Mesh(np.concatenate(verts), faces).remove_coincident_nodes(1e-12)
    _LOGGER.info(
        "cubed_sphere(ne=%d): %d vertices, %d faces",
        ne,
        mesh.verts.shape[0],
        mesh.n_faces,
    )
    return mesh


def icosahedron(refinement: int = 0) -> Mesh:
    """Build a geodesic icosahedral triangle mesh.

    Args:
        refinement (int): Number of 1-to-4 midpoint subdivisions.

    Returns:
        Mesh: ``20 * 4**refinement`` triangles on the unit sphere.

    Raises:
        InvalidInputError: If `refinement` < 0.
    """
    if int(refinement) != refinement or refinement < 0:
        _LOGGER.error("icosahedron: invalid refinement %r", refinement)
        raise InvalidInputError(f"Refinement must be >= 0, got {refinement!r}")

    phi = 0.5 * (1.0 + np.sqrt(5.0))
    base = []
    for s1 in (-1.0, 1.0):
        for s2 in (-1.0, 1.0):
            base.append((0.0, s1, s2 * phi))
            base.append((s1, s2 * phi, 0.0))
            base.append((s2 * phi, 0.0, s1))
    verts = np.asarray(base)
    verts = verts / np.linalg.norm(verts, axis=1, keepdims=True)

    triangles = []
    for simplex in ConvexHull(verts).simplices:
        a, b, c = (int(v) for v in simplex)
        normal = np.cross(verts[b] - verts[a], verts[c] - verts[a])
        if np.dot(normal, verts[a]) < 0.0:
            b, c = c, b
        triangles.append((a, b, c))

    vert_list: List[NDArray[Any]] = list(verts)
    for _ in range(int(refinement)):
        midpoints: Dict[Tuple[int, int], int] = {}

        def midpoint(i: int, j: int) -> int:
            key = (min(i, j), max(i, j))
            if key not in midpoints:
                m = vert_list[key[0]] + vert_list[key[1]]
                vert_list.append(m / np.linalg.norm(m))
                midpoints[key] = len(vert_list) - 1
            return midpoints[key]

        refined = []
        for a, b, c in triangles:
            ab, bc, ca = midpoint(a, b), midpoint(b, c), midpoint(c, a)
            refined.extend([(a, ab, ca), (ab, b, bc), (ca, bc, c), (ab, bc, ca)])
        triangles = refined

    mesh = Mesh(np.asarray(vert_list), triangles)
    _LOGGER.info(
        "icosahedron(refinement=%d): %d vertices, %d faces",
        refinement,
        mesh.verts.shape[0],
        mesh.n_faces,
    )
    return mesh
