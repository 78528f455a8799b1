"""
Learner Profile.

Denormalized per-learner records read by the scoring strategies:

- LearnerSkillState: mastery plus optional strategy-specific fields
  (theta, Elo rating, BKT probability known)
- LearnerAbility: theta for one outcome / competency / grade
- LearnerProfile: the learner with upsert helpers for every record kind
- profile_from_abilities: profile derived from an AbilityState
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from pal.core.constants import CoreConstants
from pal.core.models import AbilityState, DependencyGraph, Level
from pal.core.probability import build_graph_snapshot


@dataclass
class LearnerSkillState:
    """Per-skill learner state. ``mastery`` is in [0, 1]."""

    skill_id: str
    mastery: float = 0.0
    theta: float | None = None
    elo_rating: float | None = None
    probability_known: float | None = None  # BKT
    attempts: int = 0
    last_practiced_at: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "skill_id": self.skill_id,
            "mastery": self.mastery,
            "theta": self.theta,
            "elo_rating": self.elo_rating,
            "probability_known": self.probability_known,
            "attempts": self.attempts,
            "last_practiced_at": self.last_practiced_at,
        }


@dataclass
class LearnerAbility:
    """Theta for one entity above the skill level."""

    entity_id: str
    theta: float = 0.0


@dataclass
class LearnerProfile:
    """
    A learner and every per-entity record the strategies read or write.

    Records are lists in insertion order; ``upsert_*`` replaces an existing
    record's value or appends a new one.
    """

    id: str
    grade_id: str | None = None
    skill_states: list[LearnerSkillState] = field(default_factory=list)
    outcome_abilities: list[LearnerAbility] = field(default_factory=list)
    competency_abilities: list[LearnerAbility] = field(default_factory=list)
    grade_abilities: list[LearnerAbility] = field(default_factory=list)

    # ==================== Lookups ====================

    def skill_state(self, skill_id: str) -> LearnerSkillState | None:
        for state in self.skill_states:
            if state.skill_id == skill_id:
                return state
        return None

    def mastery_map(self) -> dict[str, float]:
        """skill id -> mastery, later records win."""
        return {state.skill_id: state.mastery for state in self.skill_states}

    # ==================== Upserts ====================

    def upsert_skill_state(self, skill_id: str, mastery: float, **fields) -> LearnerSkillState:
        """Set ``mastery`` (and any other given fields) on the skill's record."""
        state = self.skill_state(skill_id)
        if state is None:
            state = LearnerSkillState(skill_id=skill_id, mastery=mastery, **fields)
            self.skill_states.append(state)
            return state
        state.mastery = mastery
        for name, value in fields.items():
            setattr(state, name, value)
        return state

    def upsert_outcome_ability(self, outcome_id: str, theta: float) -> LearnerAbility:
        return _upsert(self.outcome_abilities, outcome_id, theta)

    def upsert_competency_ability(self, competency_id: str, theta: float) -> LearnerAbility:
        return _upsert(self.competency_abilities, competency_id, theta)

    def upsert_grade_ability(self, grade_id: str, theta: float) -> LearnerAbility:
        return _upsert(self.grade_abilities, grade_id, theta)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "grade_id": self.grade_id,
            "skill_states": [state.to_dict() for state in self.skill_states],
            "outcome_abilities": {a.entity_id: a.theta for a in self.outcome_abilities},
            "competency_abilities": {a.entity_id: a.theta for a in self.competency_abilities},
            "grade_abilities": {a.entity_id: a.theta for a in self.grade_abilities},
        }


def _upsert(records: list[LearnerAbility], entity_id: str, theta: float) -> LearnerAbility:
    for record in records:
        if record.entity_id == entity_id:
            record.theta = theta
            return record
    record = LearnerAbility(entity_id=entity_id, theta=theta)
    records.append(record)
    return record


def profile_from_abilities(
    graph: DependencyGraph,
    abilities: AbilityState,
    learner_id: str = "learner",
    constants: CoreConstants | None = None,
) -> LearnerProfile:
    """
    Learner profile derived from an ability snapshot.

    Skill mastery is the skill's current probability; outcome, competency and
    grade records copy the stored thetas.
    """
    snapshot = build_graph_snapshot(graph, abilities, constants=constants)
    profile = LearnerProfile(id=learner_id, grade_id=graph.grades[0].id if graph.grades else None)
    for entry in snapshot.snapshot:
        profile.upsert_skill_state(
            entry.skill_id, entry.probability, theta=abilities.get(Level.SKILL, entry.skill_id)
        )
    for outcome_id, theta in abilities.outcome.items():
        profile.upsert_outcome_ability(outcome_id, theta)
    for competency_id, theta in abilities.competency.items():
        profile.upsert_competency_ability(competency_id, theta)
    for grade_id, theta in abilities.grade.items():
        profile.upsert_grade_ability(grade_id, theta)
    return profile
