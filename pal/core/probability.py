"""
Probability Model.

    blend       = sum over levels of weight(level) * theta(level)
    probability = logistic((blend - difficulty) / scale)

Pure and deterministic. An unknown skill id raises UnknownEntityError.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum

from pal.core.constants import CoreConstants, get_core_constants
from pal.core.models import LEVELS, AbilityState, BlendWeights, DependencyGraph, Skill

# Keeps results strictly inside (0, 1) where float rounding would hit the bounds
_EPSILON = 1e-12


def logistic(x: float, scale: float = 1.0) -> float:
    """Numerically stable 1 / (1 + e^(-x / scale)), strictly within (0, 1)."""
    z = x / scale
    if z >= 0:
        value = 1.0 / (1.0 + math.exp(-z))
    else:
        e = math.exp(z)
        value = e / (1.0 + e)
    return min(max(value, _EPSILON), 1.0 - _EPSILON)


def logit(p: float) -> float:
    """Inverse of ``logistic`` at scale 1."""
    return math.log(p / (1.0 - p))


def clamp(value: float, lower: float = 0.0, upper: float = 1.0) -> float:
    return min(upper, max(lower, value))


def blend_ability(skill: Skill, abilities: AbilityState, weights: BlendWeights) -> float:
    """Weighted sum of the skill's thetas across every hierarchy level."""
    return sum(
        weights.for_level(level) * abilities.get(level, skill.entity_id(level))
        for level in LEVELS
    )


def skill_probability(
    skill: Skill,
    abilities: AbilityState,
    weights: BlendWeights,
    scale: float = 1.0,
) -> float:
    """Mastery probability for an already-resolved skill."""
    return logistic(blend_ability(skill, abilities, weights) - skill.difficulty, scale)


def get_skill_probability(
    graph: DependencyGraph,
    abilities: AbilityState,
    skill_id: str,
    weights: BlendWeights | None = None,
    constants: CoreConstants | None = None,
) -> float:
    """
    Mastery probability of ``skill_id`` in (0, 1).

    Args:
        graph: Dependency graph holding the skill
        abilities: Ability snapshot (read only)
        skill_id: Skill to evaluate
        weights: Blend weights (defaults to the constants' weights)
        constants: Configuration snapshot (defaults to the current one)

    Raises:
        UnknownEntityError: if ``skill_id`` is not in the graph
    """
    constants = constants or get_core_constants()
    skill = graph.get_skill(skill_id)
    return skill_probability(skill, abilities, weights or constants.blend_weights, constants.scale)


# ============================================================================
# Graph snapshot
# ============================================================================


class SkillStatus(str, Enum):
    BELOW = "below"
    ZPD = "zpd"
    MASTERED = "mastered"


@dataclass(frozen=True)
class SkillSnapshot:
    skill_id: str
    probability: float
    status: SkillStatus


@dataclass
class GraphSnapshot:
    """Per-skill classification plus id lists, in declaration order."""

    snapshot: list[SkillSnapshot] = field(default_factory=list)
    mastered_ids: list[str] = field(default_factory=list)
    zpd_ids: list[str] = field(default_factory=list)
    below_ids: list[str] = field(default_factory=list)

    def status_of(self, skill_id: str) -> SkillStatus | None:
        for entry in self.snapshot:
            if entry.skill_id == skill_id:
                return entry.status
        return None


def build_graph_snapshot(
    graph: DependencyGraph,
    abilities: AbilityState,
    weights: BlendWeights | None = None,
    zpd_range: tuple[float, float] | None = None,
    mastered_threshold: float | None = None,
    constants: CoreConstants | None = None,
) -> GraphSnapshot:
    """
    Classify every skill as mastered, in the ZPD, or below.

    Mastered takes precedence over the ZPD band when the two overlap.
    """
    constants = constants or get_core_constants()
    weights = weights or constants.blend_weights
    zpd_min, zpd_max = zpd_range or constants.zpd_range
    threshold = constants.mastered_threshold if mastered_threshold is None else mastered_threshold

    result = GraphSnapshot()
    for skill in graph.skills:
        probability = skill_probability(skill, abilities, weights, constants.scale)
        if probability >= threshold:
            status = SkillStatus.MASTERED
            result.mastered_ids.append(skill.id)
        elif zpd_min <= probability <= zpd_max:
            status = SkillStatus.ZPD
            result.zpd_ids.append(skill.id)
        else:
            status = SkillStatus.BELOW
            result.below_ids.append(skill.id)
        result.snapshot.append(SkillSnapshot(skill.id, probability, status))

    return result
