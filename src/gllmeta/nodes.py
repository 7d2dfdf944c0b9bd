"""Module defining the NodeRegistry that assigns global GLL node indices.

The registry maps physical node positions to global degree-of-freedom indices.
Positions closer than a tolerance share one index; anything else gets the next
unused index, so numbering follows first-seen order. Lookups go through a
KD-tree of the registered representatives, rebuilt once per resolved batch.
"""


from __future__ import annotations

import logging
import math
import threading
from typing import Any, Dict, List, Optional, Sequence

import numpy as np
from numpy.typing import NDArray
from scipy.spatial import cKDTree

from .config import default_tolerance
from .exceptions import InvalidInputError

_LOGGER = logging.getLogger(__name__)


class NodeRegistry:
    """Registry of unique GLL nodes and their global indices.

    The registry is the only shared mutable state of a metadata run. All
    mutation goes through a lock, so it may be handed to several threads,
    but numbering is only deterministic when points arrive in a fixed order.

    Attributes:
        tolerance (float): Matching distance in unit-sphere coordinates.
    """

    tolerance: float

    def __init__(self, tolerance: Optional[float] = None) -> None:
        """Create an empty registry.

        Args:
            tolerance (Optional[float]): Euclidean matching distance. Defaults
                to :func:`gllmeta.config.default_tolerance`.

        Raises:
            InvalidInputError: If the tolerance is not a positive finite number.
        """
        tol = default_tolerance() if tolerance is None else float(tolerance)
        if not math.isfinite(tol) or tol <= 0.0:
            _LOGGER.error("NodeRegistry: invalid tolerance %r", tolerance)
            raise InvalidInputError(f"Node tolerance must be positive, got {tolerance!r}")

        self.tolerance = tol
        # KD-tree radii are inclusive; matching is strictly closer than tol.
        self._radius = float(np.nextafter(tol, 0.0))
        self._points: NDArray[Any] = np.empty((0, 3), dtype=float)
        self._tree: Optional[cKDTree] = None
        self._lock = threading.Lock()

        _LOGGER.debug("NodeRegistry initialized (tolerance=%g)", tol)

    def __len__(self) -> int:
        return int(self._points.shape[0])

    @property
    def points(self) -> NDArray[Any]:
        """Registered node positions in global-index order, shape (K, 3)."""
        return self._points.copy()

    def _match_registered(self, flat: NDArray[Any]) -> NDArray[Any]:
        """Earliest registered index within tolerance of each point, or -1."""
        out = np.full(flat.shape[0], -1, dtype=np.int64)
        if self._tree is None or flat.shape[0] == 0:
            return out
        candidates = self._tree.query_ball_point(flat, r=self._radius)
        for n, found in enumerate(candidates):
            if found:
                out[n] = min(found)
        return out

    def _resolve_unlocked(self, flat: NDArray[Any]) -> NDArray[Any]:
        out = self._match_registered(flat)
        fresh = np.flatnonzero(out < 0)
        if fresh.size == 0:
            return out

        # Points of this batch that matched nothing may still match each other.
        neighbours: Dict[int, List[int]] = {}
        if fresh.size > 1:
            pairs = cKDTree(flat[fresh]).query_pairs(r=self._radius, output_type="ndarray")
            for a, b in pairs.tolist():
                lo, hi = (a, b) if a < b else (b, a)
                neighbours.setdefault(hi, []).append(lo)

        base = len(self)
        is_rep = np.zeros(fresh.size, dtype=bool)
        local = np.empty(fresh.size, dtype=np.int64)
        n_new = 0
        for m in range(fresh.size):
            earlier = [lo for lo in neighbours.get(m, ()) if is_rep[lo]]
            if earlier:
                local[m] = local[min(earlier)]
            else:
                is_rep[m] = True
                local[m] = base + n_new
                n_new += 1
        out[fresh] = local

        self._points = np.concatenate([self._points, flat[fresh[is_rep]]])
        self._tree = cKDTree(self._points)
        return out

    def resolve_point(self, point: Sequence[float]) -> int:
        """Resolve a single position to its global index."""
        return int(self.resolve(np.asarray(point, dtype=float).reshape(1, 3))[0])

    def resolve(self, points: NDArray[Any]) -> NDArray[Any]:
        """Resolve a batch of positions, in order, to global indices.

        Each point takes the earliest representative within tolerance,
        including representatives registered earlier in the same batch.

        Args:
            points (NDArray[Any]): Positions of shape (..., 3).

        Returns:
            NDArray[Any]: int64 indices with shape ``points.shape[:-1]``.
        """
        arr = np.asarray(points, dtype=float)
        flat = np.ascontiguousarray(arr.reshape(-1, 3))
        with self._lock:
            before = len(self)
            out = self._resolve_unlocked(flat)
            total = len(self)

        _LOGGER.debug(
            "resolve: %d points -> %d new, %d matched (total=%d)",
            flat.shape[0],
            total - before,
            flat.shape[0] - (total - before),
            total,
        )
        return out.reshape(arr.shape[:-1])


def boundary_mask(n_points: int) -> NDArray[Any]:
    """Boolean (nP, nP) mask of the GLL nodes on a face's edges and corners."""
    mask = np.zeros((n_points, n_points), dtype=bool)
    mask[0, :] = mask[-1, :] = True
    mask[:, 0] = mask[:, -1] = True
    return mask


def count_unshared_boundary_nodes(nodes: NDArray[Any]) -> int:
    """Count boundary global indices that appear on exactly one face.

    On a closed conforming mesh every edge and corner node is seen by at
    least two faces, so the count is zero. A positive count means some
    boundary nodes found no partner (open or non-conforming mesh).

    Args:
        nodes (NDArray[Any]): Global indices, shape (nP, nP, nFaces).

    Returns:
        int: Number of unshared boundary nodes.
    """
    n_points = nodes.shape[0]
    mask = boundary_mask(n_points)
    per_face = [np.unique(nodes[:, :, k][mask]) for k in range(nodes.shape[2])]
    if not per_face:
        return 0
    _, counts = np.unique(np.concatenate(per_face), return_counts=True)
    return int(np.count_nonzero(counts == 1))
