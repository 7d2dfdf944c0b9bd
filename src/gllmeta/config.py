"""Package-wide configuration for gllmeta.

This module holds the logging setup and the environment-driven defaults used by
the metadata generator (node-matching tolerance, worker count and strict
topology checking). Every default can be overridden per call; the environment
only changes what is used when a caller does not say.
"""

from __future__ import annotations

import logging
import os


# -----------------------------------------------------------------------------
# Logging
# -----------------------------------------------------------------------------
_LOGGER = logging.getLogger("gllmeta")


def _parse_log_level(val: str | int | None, default: int = logging.WARNING) -> int:
    """Parse a logging level string or int into a `logging` level constant.

    Args:
        val: The desired level (e.g., "DEBUG", 10). May be None.
        default: Fallback level if `val` cannot be parsed.

    Returns:
        An integer logging level (e.g., logging.DEBUG).
    """
    if val is None:
        return default
    if isinstance(val, int):
        return val
    lvl = getattr(logging, str(val).strip().upper(), None)
    if isinstance(lvl, int):
        return lvl
    return default


def set_log_level(level: str | int = "WARNING") -> None:
    """Set the package logger level programmatically.

    Child loggers (``gllmeta.mesh``, ``gllmeta.metadata``, ...) inherit it.

    Args:
        level: A standard logging level name or integer.
    """
    _LOGGER.setLevel(_parse_log_level(level))


# Default level can be overridden by env.
set_log_level(os.getenv("GLLMETA_LOGLEVEL", "WARNING"))


# -----------------------------------------------------------------------------
# Env helpers
# -----------------------------------------------------------------------------
def bool_env(varname: str, default: bool) -> bool:
    """Read an environment variable and interpret it as a boolean.

    True values: 'y', 'yes', 't', 'true', 'on', '1'.
    False values: 'n', 'no', 'f', 'false', 'off', '0'.

    Args:
        varname: The name of the environment variable.
        default: The default value if the variable is unset.

    Returns:
        A boolean value parsed from the environment.
    """
    val = os.getenv(varname, str(default))
    val = val.lower()
    if val in ("y", "yes", "t", "true", "on", "1"):
        return True
    if val in ("n", "no", "f", "false", "off", "0"):
        return False
    raise ValueError(f"invalid truth value {val!r} for environment {varname!r}")


def int_env(varname: str, default: int) -> int:
    """Read an environment variable and interpret it as an integer.

    Args:
        varname: The name of the environment variable.
        default: The default value if the variable is unset.

    Returns:
        The integer value parsed from the environment.
    """
    return int(os.getenv(varname, str(default)))


def float_env(varname: str, default: float) -> float:
    """Read an environment variable and interpret it as a float.

    Args:
        varname: The name of the environment variable.
        default: The default value if the variable is unset.

    Returns:
        The float value parsed from the environment.
    """
    return float(os.getenv(varname, repr(default)))


# -----------------------------------------------------------------------------
# Defaults
# -----------------------------------------------------------------------------
def default_tolerance() -> float:
    """Return the node-matching tolerance in unit-sphere coordinates.

    Reads ``GLLMETA_TOLERANCE`` (default ``1e-10``).
    """
    return float_env("GLLMETA_TOLERANCE", 1e-10)


def default_workers() -> int:
    """Return the number of face-geometry workers.

    Reads ``GLLMETA_WORKERS`` (default ``1``, i.e. no thread pool).
    """
    return int_env("GLLMETA_WORKERS", 1)


def default_strict_topology() -> bool:
    """Return whether unshared boundary nodes are an error.

    Reads ``GLLMETA_STRICT_TOPOLOGY`` (default ``False``).
    """
    return bool_env("GLLMETA_STRICT_TOPOLOGY", False)
