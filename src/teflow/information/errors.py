"""Exceptions raised by the teflow calculators.

The value errors subclass :class:`ValueError` so callers that already catch
validation failures keep working.
"""


class ConfigurationError(ValueError):
    """Invalid property value, raised by ``set_property``."""


class InitializationError(ValueError):
    """Invalid embedding parameter combination, raised by ``initialize``."""


class InsufficientDataError(ValueError):
    """Too few samples for the embedding or the neighbour count."""


class DimensionMismatchError(ValueError):
    """Series lengths or dimensionalities do not agree."""


class LifecycleError(RuntimeError):
    """A calculator method was called in the wrong lifecycle state."""


__all__ = [
    "ConfigurationError",
    "InitializationError",
    "InsufficientDataError",
    "DimensionMismatchError",
    "LifecycleError",
]
