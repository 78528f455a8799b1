"""
Scoring strategies for the ranked recommendation list.

Importing this package registers every strategy with AlgorithmRegistry:
simple, irt, elo, bkt, modified-elo.
"""

from .base import (
    AlgorithmContext,
    AlgorithmObservation,
    AlgorithmRegistry,
    AlgorithmResult,
    LearnerAbilityMaps,
    RecommendationAlgorithm,
)
from .modified_elo import ModifiedEloAlgorithm
from .strategies import (
    BayesianKnowledgeTracingAlgorithm,
    EloAlgorithm,
    IRTAlgorithm,
    SimpleMasteryAlgorithm,
)

__all__ = [
    "AlgorithmContext",
    "AlgorithmObservation",
    "AlgorithmRegistry",
    "AlgorithmResult",
    "LearnerAbilityMaps",
    "RecommendationAlgorithm",
    "SimpleMasteryAlgorithm",
    "IRTAlgorithm",
    "EloAlgorithm",
    "BayesianKnowledgeTracingAlgorithm",
    "ModifiedEloAlgorithm",
]
