"""
Ability Update.

One observed answer moves every hierarchy level of the answered skill by
the same prediction error:

    error        = outcome - probability_before
    theta_level += learning_rate_level * error

The caller's AbilityState is cloned, never mutated.
"""

from __future__ import annotations

from typing import Sequence

from loguru import logger

from pal.core.constants import CoreConstants, get_core_constants
from pal.core.errors import InvalidRequestError
from pal.core.models import (
    LEVELS,
    AbilityState,
    AbilityUpdateResult,
    BatchAbilityUpdateResult,
    BlendWeights,
    DependencyGraph,
    LearningRates,
    Level,
    OutcomeEvent,
    Skill,
)
from pal.core.probability import skill_probability


def _apply_error(
    skill: Skill,
    state: AbilityState,
    error: float,
    rates: LearningRates,
) -> None:
    # Single shared error for all levels; levels without an entity are skipped
    for level in LEVELS:
        entity_id = skill.entity_id(level)
        if entity_id is None:
            continue
        state.set(level, entity_id, state.get(level, entity_id) + rates.for_level(level) * error)


def _skill_thetas(skill: Skill, state: AbilityState) -> dict[Level, float]:
    return {
        level: state.get(level, skill.entity_id(level))
        for level in LEVELS
        if skill.entity_id(level) is not None
    }


def update_abilities(
    graph: DependencyGraph,
    abilities: AbilityState,
    event: OutcomeEvent,
    blend_weights: BlendWeights | None = None,
    learning_rates: LearningRates | None = None,
    constants: CoreConstants | None = None,
) -> AbilityUpdateResult:
    """
    Apply one outcome event.

    Args:
        graph: Dependency graph holding the skill
        abilities: Ability snapshot (cloned, not mutated)
        event: Observed answer
        blend_weights: Overrides the constants' blend weights
        learning_rates: Overrides the constants' learning rates
        constants: Configuration snapshot (defaults to the current one)

    Returns:
        AbilityUpdateResult with the new state and before/after probabilities

    Raises:
        UnknownEntityError: if the event's skill is not in the graph
    """
    constants = constants or get_core_constants()
    weights = blend_weights or constants.blend_weights
    rates = learning_rates or constants.learning_rates

    skill = graph.get_skill(event.skill_id)
    state = abilities.clone()

    probability_before = skill_probability(skill, state, weights, constants.scale)
    error = event.outcome - probability_before
    _apply_error(skill, state, error, rates)
    probability_after = skill_probability(skill, state, weights, constants.scale)

    logger.debug(
        f"Updated {skill.id} ({'correct' if event.correct else 'incorrect'}): "
        f"p {probability_before:.3f} -> {probability_after:.3f}"
    )
    return AbilityUpdateResult(
        abilities=state,
        probability_before=probability_before,
        probability_after=probability_after,
    )


def update_abilities_batch(
    graph: DependencyGraph,
    abilities: AbilityState,
    events: Sequence[OutcomeEvent],
    blend_weights: BlendWeights | None = None,
    learning_rates: LearningRates | None = None,
    constants: CoreConstants | None = None,
) -> BatchAbilityUpdateResult:
    """
    Apply several events on one skill, in order.

    The error is recomputed against the running state before each event.

    Raises:
        InvalidRequestError: if ``events`` is empty or mixes skills
        UnknownEntityError: if the skill is not in the graph
    """
    if not events:
        raise InvalidRequestError("At least one outcome event is required.")
    skill_id = events[0].skill_id
    if any(event.skill_id != skill_id for event in events):
        raise InvalidRequestError("All events must belong to the same skill.")

    constants = constants or get_core_constants()
    weights = blend_weights or constants.blend_weights
    rates = learning_rates or constants.learning_rates

    skill = graph.get_skill(skill_id)
    state = abilities.clone()

    ability_before = _skill_thetas(skill, state)
    probability_before = skill_probability(skill, state, weights, constants.scale)
    probability_after = probability_before

    for event in events:
        error = event.outcome - skill_probability(skill, state, weights, constants.scale)
        _apply_error(skill, state, error, rates)
        probability_after = skill_probability(skill, state, weights, constants.scale)

    logger.debug(
        f"Batch updated {skill.id} with {len(events)} events: "
        f"p {probability_before:.3f} -> {probability_after:.3f}"
    )
    return BatchAbilityUpdateResult(
        abilities=state,
        probability_before=probability_before,
        probability_after=probability_after,
        ability_before=ability_before,
        ability_after=_skill_thetas(skill, state),
        skill_id=skill.id,
    )
