"""
Core data models.

Design:
- Level: Enum for the six hierarchy levels a skill belongs to
- Grade / Subject / Domain / Competency / Outcome: composition-tree nodes
- Skill: leaf entity with difficulty and ordered prerequisites
- DependencyGraph: all level collections + skills + declared start skill
- AbilityState: per-level theta maps, missing ids read as 0
- BlendWeights / LearningRates: per-level coefficient vectors

Graph entities and coefficient vectors are immutable pydantic models so
invalid values (non-finite numbers, empty ids) are rejected on construction.
AbilityState and the result records are plain dataclasses.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from functools import cached_property
from typing import Any, Mapping

from pydantic import BaseModel, ConfigDict, Field

from pal.core.errors import UnknownEntityError


class Level(str, Enum):
    """
    Hierarchy levels, leaf first.

    skill -> outcome -> competency -> domain -> subject -> grade
    """

    SKILL = "skill"
    OUTCOME = "outcome"
    COMPETENCY = "competency"
    DOMAIN = "domain"
    SUBJECT = "subject"
    GRADE = "grade"

    @classmethod
    def parse(cls, value: str) -> Level:
        """Parse a level name, tolerating case, punctuation and a few aliases."""
        token = "".join(ch for ch in value.lower() if ch.isalnum())
        token = _LEVEL_ALIASES.get(token, token)
        return cls(token)

    @property
    def display_name(self) -> str:
        return self.value.title()


_LEVEL_ALIASES = {
    "indicator": "skill",
    "learningindicator": "skill",
    "learningoutcome": "outcome",
}

LEVELS: tuple[Level, ...] = tuple(Level)


# ============================================================================
# Graph entities
# ============================================================================


class _Entity(BaseModel):
    model_config = ConfigDict(frozen=True, allow_inf_nan=False)

    id: str = Field(..., min_length=1)
    label: str = ""


class Grade(_Entity):
    pass


class Subject(_Entity):
    grade_id: str | None = None


class Domain(_Entity):
    subject_id: str
    grade_id: str | None = None


class Competency(_Entity):
    domain_id: str
    subject_id: str
    grade_id: str | None = None


class Outcome(_Entity):
    competency_id: str
    domain_id: str
    subject_id: str
    grade_id: str | None = None


class Skill(_Entity):
    """
    Leaf entity of the graph.

    ``difficulty`` is an IRT-like b-parameter. ``prerequisites`` keeps the
    declared order; cycles are allowed. ``weight``, ``discrimination``,
    ``guessing`` and ``slip`` are only read by the scoring strategies.
    """

    outcome_id: str
    competency_id: str
    domain_id: str
    subject_id: str
    grade_id: str | None = None
    difficulty: float = 0.0
    prerequisites: tuple[str, ...] = ()

    weight: float = 1.0
    discrimination: float | None = None  # IRT a
    guessing: float | None = None  # IRT c / BKT guess
    slip: float | None = None  # BKT slip

    def entity_id(self, level: Level) -> str | None:
        """Id of the node containing this skill at ``level``."""
        return {
            Level.SKILL: self.id,
            Level.OUTCOME: self.outcome_id,
            Level.COMPETENCY: self.competency_id,
            Level.DOMAIN: self.domain_id,
            Level.SUBJECT: self.subject_id,
            Level.GRADE: self.grade_id,
        }[level]


class DependencyGraph(BaseModel):
    """All level collections, all skills and the declared start skill."""

    model_config = ConfigDict(frozen=True)

    skills: tuple[Skill, ...] = ()
    outcomes: tuple[Outcome, ...] = ()
    competencies: tuple[Competency, ...] = ()
    domains: tuple[Domain, ...] = ()
    subjects: tuple[Subject, ...] = ()
    grades: tuple[Grade, ...] = ()
    start_skill_id: str = ""

    @cached_property
    def skill_index(self) -> dict[str, Skill]:
        return {skill.id: skill for skill in self.skills}

    def has_skill(self, skill_id: str) -> bool:
        return skill_id in self.skill_index

    def get_skill(self, skill_id: str) -> Skill:
        """Look up a skill. Raises UnknownEntityError when absent."""
        try:
            return self.skill_index[skill_id]
        except KeyError:
            raise UnknownEntityError(skill_id) from None

    def entity_ids(self, level: Level) -> list[str]:
        """Ids declared at a level, in declaration order."""
        collection = {
            Level.SKILL: self.skills,
            Level.OUTCOME: self.outcomes,
            Level.COMPETENCY: self.competencies,
            Level.DOMAIN: self.domains,
            Level.SUBJECT: self.subjects,
            Level.GRADE: self.grades,
        }[level]
        return [entity.id for entity in collection]


# ============================================================================
# Coefficients
# ============================================================================


class LevelCoefficients(BaseModel):
    """Per-level coefficient vector. Finite values only; no sum constraint."""

    model_config = ConfigDict(frozen=True, allow_inf_nan=False, extra="forbid")

    skill: float = 0.0
    outcome: float = 0.0
    competency: float = 0.0
    domain: float = 0.0
    subject: float = 0.0
    grade: float = 0.0

    def for_level(self, level: Level) -> float:
        return getattr(self, level.value)

    def merged(self, overrides: Mapping[str, float]):
        """Return a copy with ``overrides`` applied (validated)."""
        return type(self).model_validate({**self.model_dump(), **dict(overrides)})

    def to_dict(self) -> dict[str, float]:
        return self.model_dump()


class BlendWeights(LevelCoefficients):
    """Weights combining per-level thetas into one composite ability."""
    pass


class LearningRates(LevelCoefficients):
    """Per-level step sizes applied to the shared prediction error."""
    pass


# ============================================================================
# Ability state
# ============================================================================


@dataclass
class AbilityState:
    """
    One map per hierarchy level from entity id to theta.

    Missing ids read as 0. Reads never mutate the maps; callers that want
    to write should ``clone()`` first.
    """

    skill: dict[str, float] = field(default_factory=dict)
    outcome: dict[str, float] = field(default_factory=dict)
    competency: dict[str, float] = field(default_factory=dict)
    domain: dict[str, float] = field(default_factory=dict)
    subject: dict[str, float] = field(default_factory=dict)
    grade: dict[str, float] = field(default_factory=dict)

    def level_map(self, level: Level) -> dict[str, float]:
        return getattr(self, level.value)

    def get(self, level: Level, entity_id: str | None) -> float:
        if entity_id is None:
            return 0.0
        return self.level_map(level).get(entity_id, 0.0)

    def set(self, level: Level, entity_id: str, theta: float) -> None:
        self.level_map(level)[entity_id] = theta

    def clone(self) -> AbilityState:
        """Deep-equal copy sharing no maps with this instance."""
        return AbilityState(**{level.value: dict(self.level_map(level)) for level in LEVELS})

    def to_dict(self) -> dict[str, dict[str, float]]:
        return {level.value: dict(self.level_map(level)) for level in LEVELS}

    @classmethod
    def from_dict(cls, data: Mapping[str, Mapping[str, float]]) -> AbilityState:
        state = cls()
        for key, values in data.items():
            level = Level.parse(key)
            for entity_id, theta in values.items():
                state.set(level, entity_id, float(theta))
        return state


# ============================================================================
# Recommendation / update records
# ============================================================================


class RecommendationStatus(str, Enum):
    """Classification of a recommendation."""

    RECOMMENDED = "recommended"
    AUTO_MASTERED = "auto-mastered"
    NEEDS_REMEDIATION = "needs-remediation"
    NO_CANDIDATE = "no-candidate"


@dataclass(frozen=True)
class RecommendationContext:
    """Result of ``recommend_next_skill``."""

    target_skill_id: str
    candidate_id: str
    probability: float
    status: RecommendationStatus
    traversed: tuple[str, ...] = ()
    notes: str | None = None

    @property
    def is_actionable(self) -> bool:
        return self.status in (
            RecommendationStatus.RECOMMENDED,
            RecommendationStatus.NEEDS_REMEDIATION,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "target_skill_id": self.target_skill_id,
            "candidate_id": self.candidate_id,
            "probability": self.probability,
            "status": self.status.value,
            "traversed": list(self.traversed),
            "notes": self.notes,
        }


@dataclass(frozen=True)
class OutcomeEvent:
    """An observed correct / incorrect answer on a skill."""

    skill_id: str
    correct: bool
    timestamp: float | None = None

    @property
    def outcome(self) -> float:
        return 1.0 if self.correct else 0.0


@dataclass
class AbilityUpdateResult:
    """Result of a single-event ability update."""

    abilities: AbilityState
    probability_before: float
    probability_after: float


@dataclass
class BatchAbilityUpdateResult:
    """Result of a serial multi-event update on one skill."""

    abilities: AbilityState
    probability_before: float
    probability_after: float
    ability_before: dict[Level, float]
    ability_after: dict[Level, float]
    skill_id: str
