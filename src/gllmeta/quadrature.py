"""Gauss-Lobatto-Legendre quadrature on a closed interval.

The n-point GLL rule uses the endpoints plus the n-2 roots of P'_{n-1}, the
derivative of the Legendre polynomial of degree n-1, and integrates
polynomials up to degree 2n-3 exactly.
"""

from __future__ import annotations

import logging
from typing import Any, Tuple

import numpy as np
from numpy.typing import NDArray

from .exceptions import InvalidInputError

_LOGGER = logging.getLogger(__name__)

_MAX_NEWTON_ITERATIONS = 100


def gauss_lobatto(
    n: int, a: float = -1.0, b: float = 1.0
) -> Tuple[NDArray[Any], NDArray[Any]]:
    """Return the n-point Gauss-Lobatto nodes and weights on ``[a, b]``.

    Nodes are found by Newton iteration on the Legendre three-term recurrence,
    starting from the Chebyshev-Gauss-Lobatto points, then symmetrized about
    the interval midpoint.

    Args:
        n: Number of nodes (polynomial order + 1). Must be >= 2.
        a: Left end of the interval.
        b: Right end of the interval.

    Returns:
        Tuple[NDArray[Any], NDArray[Any]]:
            - points: Ascending node coordinates, shape (n,), with
              ``points[0] == a`` and ``points[-1] == b``.
            - weights: Positive weights, shape (n,), summing to ``b - a``.

    Raises:
        InvalidInputError: If ``n < 2`` or the interval is empty.
    """
    if int(n) != n or n < 2:
        msg = f"Gauss-Lobatto rule needs at least 2 points, got n={n!r}"
        _LOGGER.error("gauss_lobatto: %s", msg)
        raise InvalidInputError(msg)
    if not (np.isfinite(a) and np.isfinite(b)) or b <= a:
        msg = f"Invalid quadrature interval [{a!r}, {b!r}]"
        _LOGGER.error("gauss_lobatto: %s", msg)
        raise InvalidInputError(msg)

    n = int(n)
    N = n - 1

    # Chebyshev-Gauss-Lobatto initial guess (descending from +1 to -1).
    x = np.cos(np.pi * np.arange(n) / N)
    P = np.zeros((n, n))
    xold = np.full(n, 2.0)

    iterations = 0
    while np.max(np.abs(x - xold)) > 4.0 * np.finfo(float).eps:
        if iterations >= _MAX_NEWTON_ITERATIONS:
            _LOGGER.warning(
                "gauss_lobatto: Newton iteration did not settle after %d steps (n=%d)",
                iterations,
                n,
            )
            break
        xold = x
        P[:, 0] = 1.0
        P[:, 1] = x
        for k in range(2, n):
            P[:, k] = ((2 * k - 1) * x * P[:, k - 1] - (k - 1) * P[:, k - 2]) / k
        x = xold - (x * P[:, N] - P[:, N - 1]) / (n * P[:, N])
        iterations += 1

    w = 2.0 / (N * n * P[:, N] ** 2)

    # Ascending order, exact endpoints and exact symmetry.
    x = x[::-1]
    w = w[::-1]
    x = 0.5 * (x - x[::-1])
    w = 0.5 * (w + w[::-1])
    x[0], x[-1] = -1.0, 1.0

    half = 0.5 * (b - a)
    points = a + half * (x + 1.0)
    points[0], points[-1] = a, b
    weights = half * w

    _LOGGER.debug(
        "gauss_lobatto(n=%d, [%g, %g]) converged in %d Newton steps",
        n,
        a,
        b,
        iterations,
    )
    return points, weights


def gauss_lobatto_unit(n: int) -> Tuple[NDArray[Any], NDArray[Any]]:
    """Return the n-point Gauss-Lobatto rule on ``[0, 1]``.

    This is the reference interval of the bilinear face map; the weights sum
    to one.
    """
    return gauss_lobatto(n, 0.0, 1.0)
