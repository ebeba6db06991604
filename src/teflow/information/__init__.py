"""
Information dynamics estimators for teflow.

This module provides KSG nearest-neighbour estimators of conditional
mutual information, active information storage and transfer entropy,
together with automatic selection of delay-embedding parameters.
"""

from .errors import (
    ConfigurationError,
    InitializationError,
    InsufficientDataError,
    DimensionMismatchError,
    LifecycleError,
)
from .properties import AutoEmbedMethod, PropertyBag, canonical_name
from .ksg import NearestNeighborIndex, build_tree, DEFAULT_NN
from .cmi_ksg import (
    KSGAlgorithm,
    KSGConditionalMI1,
    KSGConditionalMI2,
    make_cmi_estimator,
)
from .embedding import EmbeddingParameters, Trial, delay_embed
from .embedding_search import (
    EmbeddingSearchEngine,
    SearchResult,
    candidate_grid,
    ragwitz_prediction_error,
)
from .ais import ActiveInfoStorageKSG
from .transfer_entropy import TransferEntropyKSG

__all__ = [
    # Errors
    "ConfigurationError",
    "InitializationError",
    "InsufficientDataError",
    "DimensionMismatchError",
    "LifecycleError",
    # Configuration
    "AutoEmbedMethod",
    "PropertyBag",
    "canonical_name",
    # Nearest neighbours and CMI
    "NearestNeighborIndex",
    "build_tree",
    "DEFAULT_NN",
    "KSGAlgorithm",
    "KSGConditionalMI1",
    "KSGConditionalMI2",
    "make_cmi_estimator",
    # Embedding
    "EmbeddingParameters",
    "Trial",
    "delay_embed",
    "EmbeddingSearchEngine",
    "SearchResult",
    "candidate_grid",
    "ragwitz_prediction_error",
    # Calculators
    "ActiveInfoStorageKSG",
    "TransferEntropyKSG",
]
