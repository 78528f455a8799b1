"""
PAL - Prerequisite-aware Adaptive Learning engine.

Components:
- core: levels, graph models, constants and the probability model
- graph: prerequisite indexing and networkx analysis
- adaptive: next-skill recommendation, ability updates, ranked lists
- loaders: CSV dataset ingestion
- cli: the `pal` command line
"""

from pal.adaptive import (
    AdaptiveEngine,
    AlgorithmRegistry,
    LearnerProfile,
    PersonalizationService,
    recommend_next_skill,
    update_abilities,
    update_abilities_batch,
)
from pal.core import (
    AbilityState,
    CoreConstants,
    DependencyGraph,
    Level,
    OutcomeEvent,
    RecommendationContext,
    RecommendationStatus,
    Skill,
    apply_core_constants_csv,
    build_graph_snapshot,
    get_core_constants,
    get_skill_probability,
    reset_core_constants,
    update_core_constants,
)
from pal.loaders import load_dataset, load_dataset_dir

__version__ = "0.1.0"

__all__ = [
    "AbilityState",
    "AdaptiveEngine",
    "AlgorithmRegistry",
    "CoreConstants",
    "DependencyGraph",
    "LearnerProfile",
    "Level",
    "OutcomeEvent",
    "PersonalizationService",
    "RecommendationContext",
    "RecommendationStatus",
    "Skill",
    "apply_core_constants_csv",
    "build_graph_snapshot",
    "get_core_constants",
    "get_skill_probability",
    "load_dataset",
    "load_dataset_dir",
    "recommend_next_skill",
    "reset_core_constants",
    "update_abilities",
    "update_abilities_batch",
    "update_core_constants",
]
