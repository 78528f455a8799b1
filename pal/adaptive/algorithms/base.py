"""
Base Recommendation Algorithm.

Provides the abstract base for all scoring strategies, the context and
result records they exchange, and a registry for discovery by id.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, ClassVar

from loguru import logger

from pal.adaptive.profile import LearnerProfile
from pal.core.errors import InvalidRequestError
from pal.graph.analysis import SkillContext, SkillGraph


# =============================================================================
# Context / Result
# =============================================================================


@dataclass
class LearnerAbilityMaps:
    """Mutable theta maps for the levels the strategies track."""

    skills: dict[str, float] = field(default_factory=dict)
    outcomes: dict[str, float] = field(default_factory=dict)
    competencies: dict[str, float] = field(default_factory=dict)
    grades: dict[str, float] = field(default_factory=dict)

    @classmethod
    def from_profile(cls, profile: LearnerProfile) -> LearnerAbilityMaps:
        """Seed from a profile; skill theta falls back to mastery."""
        return cls(
            skills={
                state.skill_id: state.theta if state.theta is not None else state.mastery
                for state in profile.skill_states
            },
            outcomes={a.entity_id: a.theta for a in profile.outcome_abilities},
            competencies={a.entity_id: a.theta for a in profile.competency_abilities},
            grades={a.entity_id: a.theta for a in profile.grade_abilities},
        )


@dataclass
class AlgorithmContext:
    """Everything a strategy may read when scoring one skill."""

    skill: SkillContext
    learner_profile: LearnerProfile
    mastery_map: dict[str, float]
    graph: SkillGraph
    abilities: LearnerAbilityMaps

    @property
    def grade_id(self) -> str | None:
        return self.skill.skill.grade_id or self.learner_profile.grade_id


@dataclass
class AlgorithmResult:
    """
    Score for one skill.

    ``score`` orders the ranked list (higher first); ``focus_skill_id``
    names a different skill to practise when the strategy redirects.
    """

    mastery: float
    score: float
    reason: str
    probability: float | None = None
    focus_skill_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "mastery": self.mastery,
            "score": self.score,
            "reason": self.reason,
            "probability": self.probability,
            "focus_skill_id": self.focus_skill_id,
        }


@dataclass(frozen=True)
class AlgorithmObservation:
    """An observed score in [0, 1] on a skill."""

    skill_id: str
    score: float
    timestamp: str | None = None


# =============================================================================
# Algorithm Registry
# =============================================================================


class AlgorithmRegistry:
    """
    Registry for recommendation algorithms.

    Example:
        @AlgorithmRegistry.register("simple")
        class SimpleMasteryAlgorithm(RecommendationAlgorithm):
            ...

        algorithm = AlgorithmRegistry.create("simple")
    """

    _algorithms: ClassVar[dict[str, type[RecommendationAlgorithm]]] = {}

    @classmethod
    def register(cls, algorithm_id: str):
        """
        Decorator to register an algorithm class.

        Args:
            algorithm_id: Id the algorithm is selected by
        """

        def decorator(algorithm_class: type[RecommendationAlgorithm]):
            cls._algorithms[algorithm_id] = algorithm_class
            algorithm_class.id = algorithm_id
            logger.debug(f"Registered algorithm: {algorithm_id} -> {algorithm_class.__name__}")
            return algorithm_class

        return decorator

    @classmethod
    def get(cls, algorithm_id: str) -> type[RecommendationAlgorithm]:
        """Get algorithm class by id."""
        if algorithm_id not in cls._algorithms:
            known = ", ".join(sorted(cls._algorithms))
            raise InvalidRequestError(f'Unknown algorithm "{algorithm_id}" (known: {known})')
        return cls._algorithms[algorithm_id]

    @classmethod
    def create(cls, algorithm_id: str) -> RecommendationAlgorithm:
        return cls.get(algorithm_id)()

    @classmethod
    def list_algorithms(cls) -> dict[str, type[RecommendationAlgorithm]]:
        """List all registered algorithms."""
        return dict(cls._algorithms)


# =============================================================================
# Base Algorithm
# =============================================================================


class RecommendationAlgorithm(ABC):
    """
    Abstract base class for scoring strategies.

    Subclasses must implement:
    - score(): mastery estimate + ranking score for one skill

    Stateful strategies also override update() and set
    ``supports_update = True``.
    """

    id: ClassVar[str] = "base"
    title: ClassVar[str] = "Base Algorithm"
    supports_update: ClassVar[bool] = False

    @abstractmethod
    def score(self, context: AlgorithmContext) -> AlgorithmResult:
        """
        Score one skill for a learner.

        Args:
            context: Skill, learner and graph being scored

        Returns:
            AlgorithmResult with mastery, score and reason
        """
        ...

    def update(
        self,
        context: AlgorithmContext,
        observation: AlgorithmObservation,
        result: AlgorithmResult,
    ) -> None:
        """Fold an observation back into learner state. No-op by default."""
        return None

    def __repr__(self) -> str:
        return f"{type(self).__name__}(id={self.id!r})"
