"""Local geometry of GLL nodes on spherical quadrilaterals.

Each quad with corners v0..v3 (counter-clockwise) is parametrized over the
reference square (alpha, beta) in [0, 1]² by the bilinear map

    F(a, b) = (1-a)(1-b) v0 + a(1-b) v1 + a b v2 + (1-a) b v3

followed by radial projection G = F / |F| onto the unit sphere. The area
element is |dG/da × dG/db|, where dG = (I - G Gᵀ) dF / |F|.

All routines are vectorized over a batch of faces; array layouts follow the
metadata tensors, i.e. [j, i, face] with j the beta index and i the alpha index.
"""

from __future__ import annotations

import logging
from typing import Any, Tuple

import numpy as np
from numpy.typing import NDArray

from .exceptions import MalformedMeshError

_LOGGER = logging.getLogger(__name__)

_EPS_RADIUS = 1e-14
_REL_EPS_JACOBIAN = 1e-12


def _first_bad(mask: NDArray[Any]) -> Tuple[int, int, int]:
    """Return (j, i, face) of the first True entry of a [j, i, face] mask."""
    j, i, k = np.argwhere(mask)[0]
    return int(j), int(i), int(k)


def local_map(
    corners: NDArray[Any],
    alpha: NDArray[Any],
    beta: NDArray[Any],
    face_offset: int = 0,
) -> Tuple[NDArray[Any], NDArray[Any], NDArray[Any]]:
    """Evaluate the projected bilinear map and its tangent derivatives.

    Args:
        corners (NDArray[Any]): Quad corners, shape (nF, 4, 3).
        alpha (NDArray[Any]): First reference coordinates, shape S.
        beta (NDArray[Any]): Second reference coordinates, broadcastable to S.
        face_offset (int): Global index of ``corners[0]`` (for messages).

    Returns:
        Tuple[NDArray[Any], NDArray[Any], NDArray[Any]]:
            Positions G, dG/dalpha and dG/dbeta, each of shape S + (nF, 3).

    Raises:
        MalformedMeshError: If the bilinear point passes through the origin.
    """
    c = np.asarray(corners, dtype=float)
    v0, v1, v2, v3 = c[:, 0], c[:, 1], c[:, 2], c[:, 3]
    a, b = np.broadcast_arrays(np.asarray(alpha, dtype=float), np.asarray(beta, dtype=float))
    a = a[..., None, None]
    b = b[..., None, None]

    F = (1 - a) * (1 - b) * v0 + a * (1 - b) * v1 + a * b * v2 + (1 - a) * b * v3
    dFa = (1 - b) * (v1 - v0) + b * (v2 - v3)
    dFb = (1 - a) * (v3 - v0) + a * (v2 - v1)

    r = np.linalg.norm(F, axis=-1, keepdims=True)
    bad = ~(r[..., 0] > _EPS_RADIUS)
    if np.any(bad):
        idx = np.argwhere(bad)[0]
        face = int(idx[-1]) + face_offset
        _LOGGER.error("local_map: face %d maps a node onto the origin", face)
        raise MalformedMeshError(
            f"Face {face}: node at reference point {tuple(int(v) for v in idx[:-1])} "
            "cannot be projected onto the sphere"
        )

    G = F / r
    dGa = (dFa - G * np.sum(G * dFa, axis=-1, keepdims=True)) / r
    dGb = (dFb - G * np.sum(G * dFb, axis=-1, keepdims=True)) / r
    return G, dGa, dGb


def _grid(points: NDArray[Any]) -> Tuple[NDArray[Any], NDArray[Any]]:
    """Reference coordinates laid out as [j, i]: alpha varies along i."""
    p = np.asarray(points, dtype=float)
    return p[None, :], p[:, None]


def face_node_positions(
    corners: NDArray[Any], points: NDArray[Any], face_offset: int = 0
) -> NDArray[Any]:
    """Return the physical GLL node positions, shape (nP, nP, nF, 3)."""
    alpha, beta = _grid(points)
    G, _, _ = local_map(corners, alpha, beta, face_offset)
    return G


def signed_area_elements(
    corners: NDArray[Any], points: NDArray[Any], face_offset: int = 0
) -> Tuple[NDArray[Any], NDArray[Any]]:
    """Return node positions and signed area elements.

    The sign is positive where the face is counter-clockwise seen from
    outside the sphere.

    Returns:
        Tuple[NDArray[Any], NDArray[Any]]:
            Positions (nP, nP, nF, 3) and area elements (nP, nP, nF).
    """
    alpha, beta = _grid(points)
    G, dGa, dGb = local_map(corners, alpha, beta, face_offset)
    det = np.einsum("...k,...k->...", np.cross(dGa, dGb), G)
    return G, det


def local_jacobians(
    corners: NDArray[Any],
    points: NDArray[Any],
    weights: NDArray[Any],
    face_offset: int = 0,
) -> Tuple[NDArray[Any], NDArray[Any]]:
    """Compute GLL node positions and Jacobian weights for a batch of quads.

    The weight at node (j, i) is the area element times ``w_i * w_j``. A face
    whose area elements are all negative is clockwise and is used with
    reversed orientation; a face whose area elements change sign or vanish is
    folded or degenerate.

    Args:
        corners (NDArray[Any]): Quad corners, shape (nF, 4, 3).
        points (NDArray[Any]): GLL points on [0, 1], shape (nP,).
        weights (NDArray[Any]): GLL weights on [0, 1], shape (nP,).
        face_offset (int): Global index of ``corners[0]`` (for messages).

    Returns:
        Tuple[NDArray[Any], NDArray[Any]]:
            Positions (nP, nP, nF, 3) and weights (nP, nP, nF).

    Raises:
        MalformedMeshError: On zero, sign-changing or non-finite Jacobians.
    """
    G, det = signed_area_elements(corners, points, face_offset)

    if not np.all(np.isfinite(det)):
        j, i, k = _first_bad(~np.isfinite(det))
        _LOGGER.error("local_jacobians: non-finite Jacobian on face %d", k + face_offset)
        raise MalformedMeshError(
            f"Face {k + face_offset}: non-finite Jacobian at point (i={i}, j={j})"
        )

    # Orient each face by the sign of its largest area element.
    scale = np.max(np.abs(det), axis=(0, 1))
    pivot = np.take_along_axis(
        det.reshape(-1, det.shape[-1]),
        np.argmax(np.abs(det).reshape(-1, det.shape[-1]), axis=0)[None, :],
        axis=0,
    )[0]
    orientation = np.where(pivot < 0.0, -1.0, 1.0)
    oriented = det * orientation

    degenerate = oriented <= _REL_EPS_JACOBIAN * scale
    if np.any(degenerate):
        j, i, k = _first_bad(degenerate)
        _LOGGER.error(
            "local_jacobians: degenerate face %d (J=%g at i=%d, j=%d)",
            k + face_offset,
            float(det[j, i, k]),
            i,
            j,
        )
        raise MalformedMeshError(
            f"Face {k + face_offset}: zero or negative Jacobian {det[j, i, k]:.3e} "
            f"at point (i={i}, j={j})"
        )

    n_reversed = int(np.count_nonzero(orientation < 0.0))
    if n_reversed:
        _LOGGER.debug(
            "local_jacobians: %d clockwise face(s) in batch starting at %d",
            n_reversed,
            face_offset,
        )

    w = np.asarray(weights, dtype=float)
    jacobian = oriented * (w[:, None] * w[None, :])[:, :, None]
    return G, jacobian
