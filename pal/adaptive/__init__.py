"""
Adaptive Learning Module.

Components:
- recommend_next_skill: ZPD-biased next-skill state machine
- update_abilities / update_abilities_batch: hierarchical ability updates
- AdaptiveEngine: ranked list over pluggable scoring strategies
- PersonalizationService: timestamped ranked-list snapshots
- LearnerProfile: per-learner records read and written by the strategies
"""

from pal.adaptive.ability import update_abilities, update_abilities_batch
from pal.adaptive.algorithms import (
    AlgorithmContext,
    AlgorithmObservation,
    AlgorithmRegistry,
    AlgorithmResult,
    BayesianKnowledgeTracingAlgorithm,
    EloAlgorithm,
    IRTAlgorithm,
    LearnerAbilityMaps,
    ModifiedEloAlgorithm,
    RecommendationAlgorithm,
    SimpleMasteryAlgorithm,
)
from pal.adaptive.engine import AdaptiveEngine, RankedRecommendation
from pal.adaptive.personalization import (
    OutcomeSeries,
    OutcomeSeriesPoint,
    PersonalizationService,
    PersonalizationSnapshot,
    to_outcome_series,
)
from pal.adaptive.profile import (
    LearnerAbility,
    LearnerProfile,
    LearnerSkillState,
    profile_from_abilities,
)
from pal.adaptive.recommendation import recommend_next_skill

__all__ = [
    # Recommendation
    "recommend_next_skill",
    # Ability
    "update_abilities",
    "update_abilities_batch",
    # Strategies
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
    # Ranked list
    "AdaptiveEngine",
    "RankedRecommendation",
    "PersonalizationService",
    "PersonalizationSnapshot",
    "OutcomeSeries",
    "OutcomeSeriesPoint",
    "to_outcome_series",
    # Profile
    "LearnerProfile",
    "LearnerSkillState",
    "LearnerAbility",
    "profile_from_abilities",
]
