"""Bubble corrections that make per-face GLL weights match geometric areas.

Two modes exist:
  - uniform: every weight on a face is scaled by ``area / numerical_area``.
  - interior: only interior weights (not on an edge or corner) are scaled, so
    weights shared across face boundaries are left untouched.

Both return new arrays; the input weights are never modified.
"""
from __future__ import annotations

import logging
from typing import Any

import numpy as np
from numpy.typing import NDArray

from .exceptions import ConfigurationError, InvalidInputError, MalformedMeshError

_LOGGER = logging.getLogger(__name__)

BUBBLE_MODES = ("none", "uniform", "interior")


def _check_areas(jacobian: NDArray[Any], face_areas: NDArray[Any]) -> NDArray[Any]:
    areas = np.asarray(face_areas, dtype=float)
    if areas.shape != (jacobian.shape[2],):
        _LOGGER.error(
            "bubble: %s face areas for %d faces", areas.shape, jacobian.shape[2]
        )
        raise InvalidInputError(
            "Face area information unavailable or incorrect: expected "
            f"{jacobian.shape[2]} areas, got shape {areas.shape}"
        )
    return areas


def apply_uniform_bubble(
    jacobian: NDArray[Any], face_areas: NDArray[Any]
) -> NDArray[Any]:
    """Scale each face's weights so they sum to its geometric area.

    Args:
        jacobian (NDArray[Any]): Raw weights, shape (nP, nP, nF).
        face_areas (NDArray[Any]): Geometric areas, shape (nF,).

    Returns:
        NDArray[Any]: Corrected weights, same shape.
    """
    areas = _check_areas(jacobian, face_areas)
    numerical = jacobian.sum(axis=(0, 1))
    corrected = jacobian * (areas / numerical)[None, None, :]
    _LOGGER.debug(
        "uniform bubble: max relative face correction %.3e",
        float(np.max(np.abs(areas / numerical - 1.0))) if areas.size else 0.0,
    )
    return corrected


def apply_interior_bubble(
    jacobian: NDArray[Any], face_areas: NDArray[Any], face_offset: int = 0
) -> NDArray[Any]:
    """Absorb each face's area discrepancy into its interior weights.

    Interior weights are scaled by ``1 + (area - numerical) / interior_sum``;
    weights on edges and corners keep their raw values.

    Args:
        jacobian (NDArray[Any]): Raw weights, shape (nP, nP, nF).
        face_areas (NDArray[Any]): Geometric areas, shape (nF,).
        face_offset (int): Global index of the first face (for messages).

    Returns:
        NDArray[Any]: Corrected weights, same shape.

    Raises:
        ConfigurationError: If ``nP < 3`` (no interior points).
        MalformedMeshError: If a correction would make a weight non-positive.
    """
    n_points = jacobian.shape[0]
    if n_points < 3:
        _LOGGER.error("interior bubble: nP=%d has no interior points", n_points)
        raise ConfigurationError(
            f"Interior bubble correction requires nP >= 3, got nP={n_points}"
        )
    areas = _check_areas(jacobian, face_areas)

    numerical = jacobian.sum(axis=(0, 1))
    interior = jacobian[1:-1, 1:-1, :]
    factor = 1.0 + (areas - numerical) / interior.sum(axis=(0, 1))

    if np.any(factor <= 0.0):
        k = int(np.argmax(factor <= 0.0))
        _LOGGER.error(
            "interior bubble: face %d cannot absorb area difference (factor=%g)",
            k + face_offset,
            float(factor[k]),
        )
        raise MalformedMeshError(
            f"Face {k + face_offset}: interior bubble would produce non-positive "
            f"weights (area={areas[k]:.6e}, numerical={numerical[k]:.6e})"
        )

    corrected = jacobian.copy()
    corrected[1:-1, 1:-1, :] = interior * factor[None, None, :]
    return corrected


def apply_bubble(
    jacobian: NDArray[Any],
    face_areas: NDArray[Any],
    mode: str = "none",
    face_offset: int = 0,
) -> NDArray[Any]:
    """Apply the bubble correction selected by `mode`.

    Args:
        jacobian (NDArray[Any]): Raw weights, shape (nP, nP, nF).
        face_areas (NDArray[Any]): Geometric areas, shape (nF,).
        mode (str): One of ``"none"``, ``"uniform"`` or ``"interior"``.
        face_offset (int): Global index of the first face (for messages).

    Returns:
        NDArray[Any]: Corrected weights (a copy when ``mode == "none"``).

    Raises:
        ConfigurationError: On an unknown mode.
    """
    if mode == "none":
        return jacobian.copy()
    if mode == "uniform":
        return apply_uniform_bubble(jacobian, face_areas)
    if mode == "interior":
        return apply_interior_bubble(jacobian, face_areas, face_offset)
    _LOGGER.error("apply_bubble: unknown mode %r", mode)
    raise ConfigurationError(f"Unknown bubble mode {mode!r}; expected one of {BUBBLE_MODES}")
