"""
Adaptive Engine.

Ranked-list builder over any registered scoring strategy:

1. Walk skills in topological order (prerequisites first)
2. Score each with the active strategy
3. Drop (or annotate) skills blocked by prerequisites below a threshold
4. Stable sort by descending score, keep the top N

Independent of ``recommend_next_skill``, which works on raw probabilities.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from loguru import logger

from pal.adaptive.algorithms import (
    AlgorithmContext,
    AlgorithmObservation,
    AlgorithmRegistry,
    AlgorithmResult,
    LearnerAbilityMaps,
    RecommendationAlgorithm,
    SimpleMasteryAlgorithm,
)
from pal.adaptive.profile import LearnerProfile
from pal.core.errors import InvalidRequestError, UnknownEntityError
from pal.core.models import DependencyGraph, Skill
from pal.graph.analysis import SkillGraph


@dataclass
class RankedRecommendation:
    """One entry of the ranked list."""

    skill: Skill
    outcome_id: str
    outcome_label: str
    mastery: float
    score: float
    reason: str
    blocked_by: list[str] = field(default_factory=list)
    probability: float | None = None
    focus_skill_id: str | None = None

    @property
    def skill_id(self) -> str:
        return self.skill.id

    @property
    def is_blocked(self) -> bool:
        return bool(self.blocked_by)

    def to_dict(self) -> dict[str, Any]:
        return {
            "skill_id": self.skill.id,
            "skill_label": self.skill.label,
            "outcome_id": self.outcome_id,
            "outcome_label": self.outcome_label,
            "mastery": self.mastery,
            "score": self.score,
            "reason": self.reason,
            "blocked_by": list(self.blocked_by),
            "probability": self.probability,
            "focus_skill_id": self.focus_skill_id,
        }


class AdaptiveEngine:
    """
    Scores every skill for a learner with a pluggable strategy.

    Example:
        engine = AdaptiveEngine(graph, algorithm="modified-elo")
        top = engine.get_recommendation_list(profile, limit=3)
    """

    def __init__(
        self,
        graph: DependencyGraph,
        algorithm: RecommendationAlgorithm | str | None = None,
    ):
        self.set_graph(graph)
        self._algorithm: RecommendationAlgorithm = SimpleMasteryAlgorithm()
        if algorithm is not None:
            self.set_algorithm(algorithm)

    # ==================== Configuration ====================

    def set_graph(self, graph: DependencyGraph) -> None:
        self.skill_graph = SkillGraph(graph)
        self._sorted_ids = self.skill_graph.topological_order()
        logger.debug(f"Engine graph set: {len(graph.skills)} skills, {len(self._sorted_ids)} ordered")

    def set_algorithm(self, algorithm: RecommendationAlgorithm | str) -> None:
        """Switch strategy by instance or registry id."""
        if isinstance(algorithm, str):
            algorithm = AlgorithmRegistry.create(algorithm)
        self._algorithm = algorithm
        logger.debug(f"Engine algorithm set: {algorithm.id}")

    @property
    def algorithm(self) -> RecommendationAlgorithm:
        return self._algorithm

    @property
    def graph(self) -> DependencyGraph:
        return self.skill_graph.graph

    # ==================== Scoring ====================

    def build_context(
        self,
        skill_id: str,
        profile: LearnerProfile,
        mastery_map: dict[str, float] | None = None,
        abilities: LearnerAbilityMaps | None = None,
    ) -> AlgorithmContext:
        skill_context = self.skill_graph.context(skill_id)
        if skill_context is None:
            raise UnknownEntityError(skill_id)
        return AlgorithmContext(
            skill=skill_context,
            learner_profile=profile,
            mastery_map=mastery_map if mastery_map is not None else profile.mastery_map(),
            graph=self.skill_graph,
            abilities=abilities if abilities is not None else LearnerAbilityMaps.from_profile(profile),
        )

    def get_recommendation_list(
        self,
        profile: LearnerProfile,
        limit: int = 5,
        prerequisite_threshold: float = 0.7,
        allow_blocked: bool = False,
    ) -> list[RankedRecommendation]:
        """
        Top ``limit`` skills for the learner, highest score first.

        Args:
            profile: Learner being ranked for
            limit: Maximum entries returned
            prerequisite_threshold: Mastery a prerequisite needs to unblock
            allow_blocked: Keep blocked skills, annotated with their blockers

        Returns:
            List of RankedRecommendation (ties keep topological order)
        """
        if limit < 0:
            raise InvalidRequestError(f"limit must be >= 0, got {limit}")

        mastery_map = profile.mastery_map()
        abilities = LearnerAbilityMaps.from_profile(profile)
        recommendations: list[RankedRecommendation] = []

        for skill_id in self._sorted_ids:
            skill_context = self.skill_graph.context(skill_id)
            if skill_context is None:
                continue

            blocked_by = self.skill_graph.blocked_by(skill_id, mastery_map, prerequisite_threshold)
            if blocked_by and not allow_blocked:
                continue

            context = self.build_context(skill_id, profile, mastery_map, abilities)
            result = self._algorithm.score(context)

            recommendations.append(
                RankedRecommendation(
                    skill=skill_context.skill,
                    outcome_id=skill_context.outcome_id,
                    outcome_label=skill_context.outcome_label,
                    mastery=result.mastery,
                    score=result.score,
                    reason=(
                        f"Requires completion of skills: {', '.join(blocked_by)}"
                        if blocked_by
                        else result.reason
                    ),
                    blocked_by=blocked_by,
                    probability=result.probability,
                    focus_skill_id=result.focus_skill_id,
                )
            )

        recommendations.sort(key=lambda item: item.score, reverse=True)
        return recommendations[:limit]

    def record_observation(
        self,
        profile: LearnerProfile,
        skill_id: str,
        score: float,
        timestamp: str | None = None,
    ) -> AlgorithmResult:
        """
        Score a skill, then let the strategy fold the observation back into
        the learner's state. Stateless strategies leave the profile untouched.
        """
        context = self.build_context(skill_id, profile)
        result = self._algorithm.score(context)
        observation = AlgorithmObservation(skill_id=skill_id, score=score, timestamp=timestamp)
        self._algorithm.update(context, observation, result)
        logger.debug(
            f"Observation on {skill_id} (score={score}) via {self._algorithm.id}: "
            f"mastery={result.mastery:.3f}"
        )
        return result
