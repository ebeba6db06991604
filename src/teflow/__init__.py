"""
teflow - Transfer entropy and active information storage with KSG estimators

Kraskov-Stögbauer-Grassberger nearest-neighbour estimation of information
dynamics in continuous-valued time series, with automatic selection of
delay-embedding parameters.
"""

__version__ = "0.1.0"

# joblib backend for parallel embedding searches. numba parallel kernels
# must not be launched from several threads of one process at once.
PARALLEL_BACKEND = "loky"

_VALID_BACKENDS = ("loky", "threading", "multiprocessing")


def set_parallel_backend(backend):
    """Set the joblib backend used for parallel embedding searches.

    Parameters
    ----------
    backend : {'loky', 'threading', 'multiprocessing'}
    """
    global PARALLEL_BACKEND
    if backend not in _VALID_BACKENDS:
        raise ValueError(f"backend must be one of {_VALID_BACKENDS}, got {backend!r}")
    PARALLEL_BACKEND = backend


from . import information
from . import utils

from .information import (
    TransferEntropyKSG,
    ActiveInfoStorageKSG,
    KSGAlgorithm,
    AutoEmbedMethod,
    EmbeddingParameters,
    ConfigurationError,
    InitializationError,
    InsufficientDataError,
    DimensionMismatchError,
    LifecycleError,
)

__all__ = [
    "__version__",
    "PARALLEL_BACKEND",
    "set_parallel_backend",
    "information",
    "utils",
    "TransferEntropyKSG",
    "ActiveInfoStorageKSG",
    "KSGAlgorithm",
    "AutoEmbedMethod",
    "EmbeddingParameters",
    "ConfigurationError",
    "InitializationError",
    "InsufficientDataError",
    "DimensionMismatchError",
    "LifecycleError",
]
