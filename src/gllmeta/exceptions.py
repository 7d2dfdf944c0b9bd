"""Error kinds raised while generating GLL metadata.

All errors derive from :class:`GLLMetaDataError` so callers can catch a single
type. Each kind also subclasses the builtin exception that plain numerical code
would raise (``ValueError`` for bad input, ``RuntimeError`` for failures found
mid-computation).
"""


class GLLMetaDataError(Exception):
    """Base class for every error raised by gllmeta."""


class InvalidInputError(GLLMetaDataError, ValueError):
    """Missing or empty mesh path, ``nP < 2``, bad tolerance, empty mesh."""


class MalformedMeshError(GLLMetaDataError, ValueError):
    """Degenerate, non-quadrilateral or non-manifold face geometry."""


class InconsistentTopologyError(GLLMetaDataError, RuntimeError):
    """A face-boundary node failed to resolve against any neighbouring face."""


class ConfigurationError(GLLMetaDataError, ValueError):
    """Incompatible run settings, e.g. interior bubble with ``nP < 3``."""
