"""
Core Module - Shared domain models, constants and the probability model.

Components:
- models: Level, graph entities, AbilityState, coefficient vectors, results
- constants: CoreConstants snapshot + ConstantsStore (get / update / reset)
- probability: logistic blend of per-level thetas, graph snapshot
- errors: UnknownEntity / MalformedConfig / MalformedDataset taxonomy

Design Principle:
Recommendation, update and strategy modules import from pal.core rather
than re-deriving probabilities or defaults.
"""

from pal.core.constants import (
    INITIAL_CORE_CONSTANTS,
    ConstantsStore,
    ConstantsUpdate,
    CoreConstants,
    apply_core_constants_csv,
    get_constants_store,
    get_core_constants,
    parse_core_constants_csv,
    reset_core_constants,
    update_core_constants,
)
from pal.core.errors import (
    InvalidRequestError,
    MalformedConfigError,
    MalformedDatasetError,
    PalError,
    UnknownEntityError,
)
from pal.core.models import (
    LEVELS,
    AbilityState,
    AbilityUpdateResult,
    BatchAbilityUpdateResult,
    BlendWeights,
    Competency,
    DependencyGraph,
    Domain,
    Grade,
    LearningRates,
    Level,
    Outcome,
    OutcomeEvent,
    RecommendationContext,
    RecommendationStatus,
    Skill,
    Subject,
)
from pal.core.probability import (
    GraphSnapshot,
    SkillSnapshot,
    SkillStatus,
    blend_ability,
    build_graph_snapshot,
    get_skill_probability,
    logistic,
)

__all__ = [
    # Models
    "Level",
    "LEVELS",
    "Grade",
    "Subject",
    "Domain",
    "Competency",
    "Outcome",
    "Skill",
    "DependencyGraph",
    "AbilityState",
    "BlendWeights",
    "LearningRates",
    "OutcomeEvent",
    "RecommendationContext",
    "RecommendationStatus",
    "AbilityUpdateResult",
    "BatchAbilityUpdateResult",
    # Constants
    "CoreConstants",
    "ConstantsUpdate",
    "ConstantsStore",
    "INITIAL_CORE_CONSTANTS",
    "get_constants_store",
    "get_core_constants",
    "update_core_constants",
    "reset_core_constants",
    "parse_core_constants_csv",
    "apply_core_constants_csv",
    # Probability
    "logistic",
    "blend_ability",
    "get_skill_probability",
    "build_graph_snapshot",
    "GraphSnapshot",
    "SkillSnapshot",
    "SkillStatus",
    # Errors
    "PalError",
    "UnknownEntityError",
    "MalformedConfigError",
    "MalformedDatasetError",
    "InvalidRequestError",
]
