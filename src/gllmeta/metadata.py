"""GLL metadata generation for quadrilateral meshes of the unit sphere.

This module composes the quadrature rule, the local Jacobian evaluator, the
bubble corrector and the node registry into one pass over the mesh and returns
the two metadata tensors (global node indices and Jacobian weights) together
with the accumulated Jacobian, which converges to 4π on the unit sphere.
"""

from __future__ import annotations

import logging
import math
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Tuple

import numpy as np
from numpy.typing import NDArray

from .bubble import apply_bubble
from .exceptions import InconsistentTopologyError, InvalidInputError
from .jacobian import local_jacobians
from .mesh import Mesh
from .nodes import NodeRegistry, count_unshared_boundary_nodes
from .parameters import MetaDataParameters, bubble_flags
from .quadrature import gauss_lobatto_unit

_LOGGER = logging.getLogger(__name__)

FOUR_PI = 4.0 * math.pi
_MAX_CHUNK_FACES = 2048


@dataclass
class GLLMetaData:
    """Result of one metadata run.

    Attributes:
        nodes (NDArray[Any]): Global node indices in ``[0, K)``, int64,
            shape (nP, nP, nFaces), indexed [j, i, face].
        jacobian (NDArray[Any]): Jacobian weights, float64, same shape.
        accumulated_jacobian (float): Sum of all weights.
        n_unique_nodes (int): Number of distinct global nodes ``K``.
        n_unshared_boundary_nodes (int): Edge/corner nodes seen by one face only.
        face_areas (NDArray[Any]): Geometric face areas used for comparison
            and bubble correction.
        n_points (int): GLL points per face edge.
        bubble (str): Bubble mode that was applied.
        tolerance (float): Node-matching tolerance.
    """

    nodes: NDArray[Any]
    jacobian: NDArray[Any]
    accumulated_jacobian: float
    n_unique_nodes: int
    n_unshared_boundary_nodes: int
    face_areas: NDArray[Any]
    n_points: int
    bubble: str
    tolerance: float

    @property
    def n_faces(self) -> int:
        """Number of faces (``nelem``)."""
        return int(self.nodes.shape[2])

    def error(self, expected: float = FOUR_PI) -> float:
        """Return ``accumulated_jacobian - expected`` (4π by default)."""
        return self.accumulated_jacobian - expected

    def face_sums(self) -> NDArray[Any]:
        """Discretized area of each face, shape (nFaces,)."""
        return self.jacobian.sum(axis=(0, 1))

    def attributes(self) -> Dict[str, Any]:
        """Diagnostics suitable for dataset global attributes."""
        return {
            "np": self.n_points,
            "nelem": self.n_faces,
            "n_unique_nodes": self.n_unique_nodes,
            "n_unshared_boundary_nodes": self.n_unshared_boundary_nodes,
            "bubble": self.bubble,
            "tolerance": self.tolerance,
            "accumulated_jacobian": self.accumulated_jacobian,
            "geometric_area": float(self.face_areas.sum()),
            "error_vs_4pi": self.error(),
        }


def _chunks(n_faces: int, workers: int) -> List[slice]:
    """Split faces into contiguous slices, a few per worker."""
    size = max(1, min(_MAX_CHUNK_FACES, math.ceil(n_faces / (4 * workers))))
    return [slice(start, min(start + size, n_faces)) for start in range(0, n_faces, size)]


def generate_metadata(
    mesh: Mesh,
    n_points: int = 4,
    *,
    bubble: str = "none",
    tolerance: Optional[float] = None,
    strict_topology: Optional[bool] = None,
    workers: Optional[int] = None,
    face_areas: Optional[NDArray[Any]] = None,
) -> GLLMetaData:
    """Generate GLL node indices and Jacobian weights for every face.

    Args:
        mesh (Mesh): Quadrilateral mesh of the unit sphere.
        n_points (int): GLL points per face edge (``nP``).
        bubble (str): ``"none"``, ``"uniform"`` or ``"interior"``.
        tolerance (Optional[float]): Node-matching distance; defaults to
            :func:`gllmeta.config.default_tolerance`.
        strict_topology (Optional[bool]): Raise if boundary nodes stay
            unshared; defaults to :func:`gllmeta.config.default_strict_topology`.
        workers (Optional[int]): Threads for per-face geometry; defaults to
            :func:`gllmeta.config.default_workers`.
        face_areas (Optional[NDArray[Any]]): Geometric face areas; computed
            from the mesh when omitted.

    Returns:
        GLLMetaData: The metadata tensors and diagnostics.
    """
    bubble_uniform, bubble_interior = bubble_flags(bubble)
    kwargs: Dict[str, Any] = {}
    if tolerance is not None:
        kwargs["tolerance"] = tolerance
    if workers is not None:
        kwargs["workers"] = workers
    if strict_topology is not None:
        kwargs["strict_topology"] = strict_topology
    params = MetaDataParameters(
        n_points=n_points,
        bubble_uniform=bubble_uniform,
        bubble_interior=bubble_interior,
        **kwargs,
    )
    return generate_metadata_from_parameters(mesh, params, face_areas=face_areas)


def generate_metadata_from_parameters(
    mesh: Mesh,
    params: MetaDataParameters,
    face_areas: Optional[NDArray[Any]] = None,
) -> GLLMetaData:
    """Generate GLL metadata using a :class:`MetaDataParameters` instance.

    Faces are processed in contiguous chunks. Positions, raw Jacobians and
    bubble corrections only depend on a face's own corners and may run in a
    thread pool; global indices are then assigned chunk by chunk in face
    order, so the numbering does not depend on the worker count.

    Raises:
        InvalidInputError: On bad parameters, an empty mesh or mismatched
            face areas.
        ConfigurationError: On incompatible bubble settings.
        MalformedMeshError: On non-quadrilateral, non-manifold or degenerate
            faces.
        InconsistentTopologyError: With ``strict_topology`` when boundary
            nodes stay unshared.
    """
    params.validate()
    n_points = int(params.n_points)

    if mesh.n_faces == 0:
        _LOGGER.error("generate_metadata: mesh has no faces")
        raise InvalidInputError("Input mesh has no faces")
    mesh.validate()
    corners = mesh.face_corners()
    n_faces = corners.shape[0]

    if face_areas is None:
        areas = mesh.face_areas()
    else:
        areas = np.array(face_areas, dtype=float)
        if areas.shape != (n_faces,):
            _LOGGER.error(
                "generate_metadata: %s face areas for %d faces", areas.shape, n_faces
            )
            raise InvalidInputError(
                "Face area information unavailable or incorrect: expected "
                f"{n_faces} areas, got shape {areas.shape}"
            )

    points, weights = gauss_lobatto_unit(n_points)
    bubble = params.bubble
    _LOGGER.info(
        "generate_metadata: %d faces, nP=%d, bubble=%s, tolerance=%g, workers=%d",
        n_faces,
        n_points,
        bubble,
        params.tolerance,
        params.workers,
    )

    def face_task(sl: slice) -> Tuple[NDArray[Any], NDArray[Any]]:
        positions, raw = local_jacobians(corners[sl], points, weights, sl.start)
        return positions, apply_bubble(raw, areas[sl], bubble, sl.start)

    nodes = np.empty((n_points, n_points, n_faces), dtype=np.int64)
    jacobian = np.empty((n_points, n_points, n_faces), dtype=float)
    registry = NodeRegistry(params.tolerance)
    chunks = _chunks(n_faces, params.workers)

    def consume(results: Iterable[Tuple[NDArray[Any], NDArray[Any]]]) -> None:
        for sl, (positions, jac) in zip(chunks, results):
            # Resolve face by face, then row j, then column i.
            face_major = np.ascontiguousarray(positions.transpose(2, 0, 1, 3))
            nodes[:, :, sl] = registry.resolve(face_major).transpose(1, 2, 0)
            jacobian[:, :, sl] = jac
            _LOGGER.debug(
                "generate_metadata: faces [%d, %d) done, %d unique nodes so far",
                sl.start,
                sl.stop,
                len(registry),
            )

    if params.workers > 1 and len(chunks) > 1:
        with ThreadPoolExecutor(max_workers=params.workers) as pool:
            consume(pool.map(face_task, chunks))
    else:
        consume(map(face_task, chunks))

    accumulated = float(jacobian.sum())
    unshared = count_unshared_boundary_nodes(nodes)
    if unshared:
        _LOGGER.warning(
            "generate_metadata: %d boundary node(s) matched no neighbouring face; "
            "they were given their own indices (open or non-conforming mesh)",
            unshared,
        )
        if params.strict_topology:
            _LOGGER.error("generate_metadata: strict topology check failed")
            raise InconsistentTopologyError(
                f"{unshared} face-boundary node(s) did not resolve to a shared "
                "node; the mesh is open or non-conforming"
            )

    result = GLLMetaData(
        nodes=nodes,
        jacobian=jacobian,
        accumulated_jacobian=accumulated,
        n_unique_nodes=len(registry),
        n_unshared_boundary_nodes=unshared,
        face_areas=areas,
        n_points=n_points,
        bubble=bubble,
        tolerance=params.tolerance,
    )
    _LOGGER.info(
        "generate_metadata: %d unique nodes, accumulated J %.15e (error %.3e vs 4π)",
        result.n_unique_nodes,
        accumulated,
        result.error(),
    )
    return result
