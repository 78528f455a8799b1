"""
Scoring Strategy Implementations.

Stateless strategies that estimate mastery for one skill and rank it by
``(1 - mastery) * weight``. The hierarchical Modified-Elo strategy lives
in ``modified_elo``.
"""

from __future__ import annotations

from pal.core.probability import clamp, logistic, logit

from .base import AlgorithmContext, AlgorithmObservation, AlgorithmRegistry, AlgorithmResult, RecommendationAlgorithm


def _percent(value: float) -> str:
    return f"{value * 100:.0f}%"


# =============================================================================
# Simple
# =============================================================================


@AlgorithmRegistry.register("simple")
class SimpleMasteryAlgorithm(RecommendationAlgorithm):
    """Mastery read straight from the learner's records (default 0)."""

    title = "Simple Mastery Weighted"

    def score(self, context: AlgorithmContext) -> AlgorithmResult:
        skill = context.skill.skill
        mastery = context.mastery_map.get(skill.id, 0.0)
        return AlgorithmResult(
            mastery=mastery,
            score=(1 - mastery) * skill.weight,
            reason=f"Mastery at {_percent(mastery)}",
        )


# =============================================================================
# IRT (3PL)
# =============================================================================


@AlgorithmRegistry.register("irt")
class IRTAlgorithm(RecommendationAlgorithm):
    """
    Three-parameter logistic model.

        p = c + (1 - c) * logistic(a * (theta - b))

    theta is the logit of stored mastery (default 0.5). a, c default to
    1.0 and 0.2; b is the skill difficulty.
    """

    title = "Item Response Theory"

    DEFAULT_DISCRIMINATION = 1.0
    DEFAULT_GUESSING = 0.2
    THETA_EPSILON = 1e-3

    def score(self, context: AlgorithmContext) -> AlgorithmResult:
        skill = context.skill.skill
        theta = self.to_theta(context.mastery_map.get(skill.id, 0.5))
        a = skill.discrimination if skill.discrimination is not None else self.DEFAULT_DISCRIMINATION
        c = skill.guessing if skill.guessing is not None else self.DEFAULT_GUESSING

        probability = c + (1 - c) * logistic(a * (theta - skill.difficulty))
        mastery = clamp(probability)
        return AlgorithmResult(
            mastery=mastery,
            score=(1 - mastery) * skill.weight,
            reason=f"IRT expected success {_percent(mastery)} (θ={theta:.2f})",
            probability=probability,
        )

    def to_theta(self, mastery: float) -> float:
        return logit(clamp(mastery, self.THETA_EPSILON, 1 - self.THETA_EPSILON))


# =============================================================================
# Elo
# =============================================================================


@AlgorithmRegistry.register("elo")
class EloAlgorithm(RecommendationAlgorithm):
    """
    Expected score of the learner against the skill.

        learner rating = stored Elo rating, else 1200 + (mastery - 0.5) * 800
        skill rating   = 1200 + difficulty * 200
        expected       = 1 / (1 + 10 ** ((skill - learner) / 400))
    """

    title = "Elo Skill Rating"

    BASE_RATING = 1200.0

    def score(self, context: AlgorithmContext) -> AlgorithmResult:
        skill = context.skill.skill
        state = context.learner_profile.skill_state(skill.id)
        mastery = context.mastery_map.get(skill.id, 0.5)

        if state is not None and state.elo_rating is not None:
            learner_rating = state.elo_rating
        else:
            learner_rating = self.BASE_RATING + (mastery - 0.5) * 800
        skill_rating = self.BASE_RATING + skill.difficulty * 200

        expected = clamp(1 / (1 + 10 ** ((skill_rating - learner_rating) / 400)))
        return AlgorithmResult(
            mastery=expected,
            score=(1 - expected) * skill.weight,
            reason=f"Elo expected mastery {_percent(expected)} (R={learner_rating:.0f})",
            probability=expected,
        )

    def update(
        self,
        context: AlgorithmContext,
        observation: AlgorithmObservation,
        result: AlgorithmResult,
    ) -> None:
        """No-op: rating persistence belongs to the caller."""
        return None


# =============================================================================
# BKT
# =============================================================================


@AlgorithmRegistry.register("bkt")
class BayesianKnowledgeTracingAlgorithm(RecommendationAlgorithm):
    """
    Expected correctness under Bayesian Knowledge Tracing.

        p = prior * (1 - slip) + (1 - prior) * guess

    prior: stored probability known, else mastery, else 0.4.
    """

    title = "Bayesian Knowledge Tracing"

    DEFAULT_PRIOR = 0.4
    DEFAULT_GUESS = 0.2
    DEFAULT_SLIP = 0.1

    def score(self, context: AlgorithmContext) -> AlgorithmResult:
        skill = context.skill.skill
        state = context.learner_profile.skill_state(skill.id)

        if state is not None and state.probability_known is not None:
            prior = state.probability_known
        else:
            prior = context.mastery_map.get(skill.id, self.DEFAULT_PRIOR)
        guess = skill.guessing if skill.guessing is not None else self.DEFAULT_GUESS
        slip = skill.slip if skill.slip is not None else self.DEFAULT_SLIP

        mastery = clamp(prior * (1 - slip) + (1 - prior) * guess)
        return AlgorithmResult(
            mastery=mastery,
            score=(1 - mastery) * skill.weight,
            reason=f"BKT expected correctness {_percent(mastery)}",
            probability=mastery,
        )
