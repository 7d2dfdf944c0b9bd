"""Module defining MetaDataParameters, the settings of one metadata run.

This module provides the MetaDataParameters dataclass, which holds the GLL
order, the bubble-correction flags, the node-matching tolerance and the
worker count, and checks that they are mutually consistent.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Tuple

from .config import default_strict_topology, default_tolerance, default_workers
from .exceptions import ConfigurationError, InvalidInputError

_LOGGER = logging.getLogger(__name__)


def bubble_flags(mode: str) -> Tuple[bool, bool]:
    """Translate a bubble mode name into ``(bubble_uniform, bubble_interior)``.

    Raises:
        ConfigurationError: On an unknown mode.
    """
    if mode == "none":
        return False, False
    if mode == "uniform":
        return True, False
    if mode == "interior":
        return False, True
    _LOGGER.error("bubble_flags: unknown bubble mode %r", mode)
    raise ConfigurationError(
        f"Unknown bubble mode {mode!r}; expected 'none', 'uniform' or 'interior'"
    )


@dataclass
class MetaDataParameters:
    """Holds settings for generating GLL metadata.

    Attributes:
        n_points (int): GLL points per face edge (``nP``), at least 2.
        bubble_uniform (bool): Rescale all weights of a face to its area.
        bubble_interior (bool): Rescale only interior weights of a face.
        tolerance (float): Node-matching distance in unit-sphere coordinates.
        strict_topology (bool): Treat unshared boundary nodes as an error.
        workers (int): Threads used for per-face geometry.

    Notes:
        - The two bubble flags are mutually exclusive; neither set means the
          raw quadrature weights are kept.
        - Interior bubble needs at least one interior point, i.e. ``nP >= 3``.
    """

    n_points: int = 4
    bubble_uniform: bool = False
    bubble_interior: bool = False
    tolerance: float = field(default_factory=default_tolerance)
    strict_topology: bool = field(default_factory=default_strict_topology)
    workers: int = field(default_factory=default_workers)

    @property
    def bubble(self) -> str:
        """Bubble mode name: 'none', 'uniform' or 'interior'."""
        if self.bubble_uniform:
            return "uniform"
        if self.bubble_interior:
            return "interior"
        return "none"

    def validate(self) -> None:
        """Check the settings before any work is done.

        Raises:
            InvalidInputError: If ``n_points < 2`` or the tolerance is not a
                positive finite number.
            ConfigurationError: If both bubble modes are set, interior bubble
                is requested with ``n_points < 3``, or ``workers < 1``.
        """
        if int(self.n_points) != self.n_points or self.n_points < 2:
            _LOGGER.error("parameters: invalid nP=%r", self.n_points)
            raise InvalidInputError(
                f"GLL order nP must be an integer >= 2, got {self.n_points!r}"
            )
        if not math.isfinite(self.tolerance) or self.tolerance <= 0.0:
            _LOGGER.error("parameters: invalid tolerance %r", self.tolerance)
            raise InvalidInputError(
                f"Node tolerance must be positive, got {self.tolerance!r}"
            )
        if self.bubble_uniform and self.bubble_interior:
            _LOGGER.error("parameters: both bubble modes requested")
            raise ConfigurationError(
                "Uniform and interior bubble corrections are mutually exclusive"
            )
        if self.bubble_interior and self.n_points < 3:
            _LOGGER.error("parameters: interior bubble with nP=%d", self.n_points)
            raise ConfigurationError(
                f"Interior bubble correction requires nP >= 3, got nP={self.n_points}"
            )
        if int(self.workers) != self.workers or self.workers < 1:
            _LOGGER.error("parameters: invalid worker count %r", self.workers)
            raise ConfigurationError(f"workers must be >= 1, got {self.workers!r}")
