"""
Modified Elo with ZPD.

Hierarchical ability blend (skill, outcome, competency, grade) scored
against the Zone of Proximal Development:

- Unmet prerequisites (no "passport", p < 0.8) redirect the learner to the
  first one inside the ZPD, or flag the first unmet one with score 0.
- Otherwise the skill scores by closeness to the ZPD centre, with
  distance-scaled penalties below (x0.6) and above (x0.4) the window.

update() takes one gradient step per level, clamps thetas to [0, 1] and
writes them into both the ability maps and the learner profile.
"""

from __future__ import annotations

from collections import deque

from loguru import logger

from pal.core.probability import clamp, logistic
from pal.graph.analysis import SkillContext

from .base import (
    AlgorithmContext,
    AlgorithmObservation,
    AlgorithmRegistry,
    AlgorithmResult,
    LearnerAbilityMaps,
    RecommendationAlgorithm,
)


@AlgorithmRegistry.register("modified-elo")
class ModifiedEloAlgorithm(RecommendationAlgorithm):
    """ZPD-aware hierarchical Elo."""

    title = "Modified Elo with ZPD"
    supports_update = True

    ZPD_LOWER = 0.5
    ZPD_UPPER = 0.8
    TOO_HARD_THRESHOLD = 0.4
    PASSPORT_THRESHOLD = 0.8
    SCALE = 1.0

    ABILITY_WEIGHTS = {"skill": 0.45, "outcome": 0.35, "competency": 0.15, "grade": 0.05}
    LEARNING_RATES = {"skill": 0.18, "outcome": 0.12, "competency": 0.08, "grade": 0.05}

    # ==================== Scoring ====================

    def score(self, context: AlgorithmContext) -> AlgorithmResult:
        skill = context.skill.skill
        probability = self.estimate_probability(context.skill, context.abilities, context.grade_id)
        mastery = clamp(probability)

        unmet = [
            prereq_id
            for prereq_id in self.collect_prerequisites(skill.id, context)
            if not self.has_passport(prereq_id, context)
        ]

        if unmet:
            candidate = self.find_zpd_candidate(unmet, context)
            if candidate is not None:
                candidate_id, candidate_probability = candidate
                return AlgorithmResult(
                    mastery=mastery,
                    probability=probability,
                    score=clamp(self.zpd_closeness(candidate_probability) * skill.weight * 0.9),
                    focus_skill_id=candidate_id,
                    reason=(
                        f"Prerequisite {candidate_id} is in ZPD ({candidate_probability * 100:.0f}%). "
                        f"Reinforce before attempting {skill.id}."
                    ),
                )
            return AlgorithmResult(
                mastery=mastery,
                probability=probability,
                score=0.0,
                focus_skill_id=unmet[0],
                reason=f"Prerequisites for {skill.id} fall outside the ZPD. Backtrack for remediation.",
            )

        percent = f"{probability * 100:.0f}%"
        if self.is_within_zpd(probability):
            score = self.zpd_closeness(probability) * skill.weight
            reason = f"Skill {skill.id} sits in ZPD ({percent}). Ideal for practice."
        elif probability < self.ZPD_LOWER:
            score = self.low_probability_penalty(probability) * skill.weight * 0.6
            if probability < self.TOO_HARD_THRESHOLD:
                reason = f"Skill {skill.id} is too hard ({percent}). Step back to prerequisites."
            else:
                reason = f"Skill {skill.id} is below ZPD ({percent}). Consider easier items."
        else:
            score = self.high_probability_penalty(probability) * skill.weight * 0.4
            reason = f"Skill {skill.id} is above ZPD ({percent}). Move forward after stamping mastery."

        return AlgorithmResult(
            mastery=mastery,
            probability=probability,
            score=clamp(score),
            focus_skill_id=skill.id,
            reason=reason,
        )

    # ==================== Update ====================

    def update(
        self,
        context: AlgorithmContext,
        observation: AlgorithmObservation,
        result: AlgorithmResult,
    ) -> None:
        """
        One gradient step per level from the shared error.

        Each level starts from its stored theta, falling back to the level
        below's freshly updated theta. Mutates ``context.abilities``,
        ``context.learner_profile`` and ``result``.
        """
        skill = context.skill.skill
        abilities = context.abilities
        profile = context.learner_profile
        grade_id = context.grade_id

        target_probability = (
            result.probability
            if result.probability is not None
            else self.estimate_probability(context.skill, abilities, grade_id)
        )
        error = clamp(observation.score) - target_probability
        rates = self.LEARNING_RATES

        skill_theta = clamp(abilities.skills.get(skill.id, result.mastery) + rates["skill"] * error)
        outcome_theta = clamp(
            abilities.outcomes.get(skill.outcome_id, skill_theta) + rates["outcome"] * error
        )
        competency_theta = clamp(
            abilities.competencies.get(skill.competency_id, outcome_theta)
            + rates["competency"] * error
        )

        abilities.skills[skill.id] = skill_theta
        abilities.outcomes[skill.outcome_id] = outcome_theta
        abilities.competencies[skill.competency_id] = competency_theta
        profile.upsert_skill_state(skill.id, skill_theta, theta=skill_theta)
        profile.upsert_outcome_ability(skill.outcome_id, outcome_theta)
        profile.upsert_competency_ability(skill.competency_id, competency_theta)

        if grade_id is not None:
            grade_theta = clamp(
                abilities.grades.get(grade_id, competency_theta) + rates["grade"] * error
            )
            abilities.grades[grade_id] = grade_theta
            profile.upsert_grade_ability(grade_id, grade_theta)

        result.mastery = skill_theta
        result.probability = target_probability

        if skill_theta >= self.PASSPORT_THRESHOLD:
            logger.debug(f"Stamping {skill.id} as mastered (theta={skill_theta:.3f})")
            profile.upsert_skill_state(skill.id, 1.0, theta=1.0)

    # ==================== Helpers ====================

    def estimate_probability(
        self,
        skill_context: SkillContext,
        abilities: LearnerAbilityMaps,
        grade_id: str | None,
    ) -> float:
        skill = skill_context.skill
        theta_skill = abilities.skills.get(skill.id, 0.0)
        theta_outcome = abilities.outcomes.get(skill.outcome_id, theta_skill)
        theta_competency = abilities.competencies.get(skill.competency_id, theta_outcome)
        theta_grade = (
            abilities.grades.get(grade_id, theta_competency) if grade_id else theta_competency
        )

        weights = self.ABILITY_WEIGHTS
        blended = (
            weights["skill"] * theta_skill
            + weights["outcome"] * theta_outcome
            + weights["competency"] * theta_competency
            + weights["grade"] * theta_grade
        )
        return clamp(logistic((blended - skill.difficulty) / self.SCALE))

    def _grade_for(self, skill_context: SkillContext, context: AlgorithmContext) -> str | None:
        return skill_context.skill.grade_id or context.learner_profile.grade_id

    def has_passport(self, skill_id: str, context: AlgorithmContext) -> bool:
        skill_context = context.graph.context(skill_id)
        if skill_context is not None:
            probability = self.estimate_probability(
                skill_context, context.abilities, self._grade_for(skill_context, context)
            )
            return probability >= self.PASSPORT_THRESHOLD
        return context.mastery_map.get(skill_id, 0.0) >= self.PASSPORT_THRESHOLD

    def collect_prerequisites(self, skill_id: str, context: AlgorithmContext) -> list[str]:
        """All transitive prerequisites, breadth-first over reverse edges."""
        visited: set[str] = set()
        ordered: list[str] = []
        queue = deque(context.graph.prerequisites(skill_id))

        while queue:
            current = queue.popleft()
            if current in visited:
                continue
            visited.add(current)
            ordered.append(current)
            queue.extend(
                parent for parent in context.graph.prerequisites(current) if parent not in visited
            )

        return ordered

    def find_zpd_candidate(
        self, candidates: list[str], context: AlgorithmContext
    ) -> tuple[str, float] | None:
        for candidate_id in candidates:
            skill_context = context.graph.context(candidate_id)
            if skill_context is None:
                continue
            probability = self.estimate_probability(
                skill_context, context.abilities, self._grade_for(skill_context, context)
            )
            if self.is_within_zpd(probability):
                return candidate_id, probability
        return None

    def is_within_zpd(self, probability: float) -> bool:
        return self.ZPD_LOWER <= probability <= self.ZPD_UPPER

    def zpd_closeness(self, probability: float) -> float:
        mid = (self.ZPD_LOWER + self.ZPD_UPPER) / 2
        half_window = (self.ZPD_UPPER - self.ZPD_LOWER) / 2
        return clamp(1 - abs(probability - mid) / half_window)

    def low_probability_penalty(self, probability: float) -> float:
        return clamp(1 - (self.ZPD_LOWER - probability) / self.ZPD_LOWER)

    def high_probability_penalty(self, probability: float) -> float:
        return clamp(1 - (probability - self.ZPD_UPPER) / (1 - self.ZPD_UPPER))
