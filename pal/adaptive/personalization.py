"""
Personalization service and outcome series.

Wraps the AdaptiveEngine to produce timestamped ranked-list snapshots, and
groups ranked entries by outcome for charting.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from pal.adaptive.algorithms import RecommendationAlgorithm
from pal.adaptive.engine import AdaptiveEngine, RankedRecommendation
from pal.adaptive.profile import LearnerProfile
from pal.core.models import DependencyGraph


@dataclass
class PersonalizationSnapshot:
    recommendations: list[RankedRecommendation]
    generated_at: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "recommendations": [item.to_dict() for item in self.recommendations],
            "generated_at": self.generated_at,
        }


class PersonalizationService:
    """Ranked-list snapshots for one graph."""

    def __init__(
        self,
        graph: DependencyGraph,
        algorithm: RecommendationAlgorithm | str | None = None,
    ):
        self.engine = AdaptiveEngine(graph, algorithm=algorithm)

    def update_graph(self, graph: DependencyGraph) -> None:
        self.engine.set_graph(graph)

    def set_algorithm(self, algorithm: RecommendationAlgorithm | str) -> None:
        self.engine.set_algorithm(algorithm)

    def generate_snapshot(self, profile: LearnerProfile, **options) -> PersonalizationSnapshot:
        """Ranked list plus a UTC ISO-8601 timestamp. ``options`` go to the engine."""
        return PersonalizationSnapshot(
            recommendations=self.engine.get_recommendation_list(profile, **options),
            generated_at=datetime.now(UTC).isoformat(),
        )


# ============================================================================
# Outcome series
# ============================================================================


@dataclass(frozen=True)
class OutcomeSeriesPoint:
    skill_id: str
    label: str
    value: int  # mastery percent


@dataclass
class OutcomeSeries:
    outcome_id: str
    outcome_label: str
    points: list[OutcomeSeriesPoint] = field(default_factory=list)


def to_outcome_series(recommendations: list[RankedRecommendation]) -> list[OutcomeSeries]:
    """Group entries by outcome, first-seen order, mastery as a rounded percent."""
    grouped: dict[str, OutcomeSeries] = {}
    for item in recommendations:
        series = grouped.setdefault(
            item.outcome_id,
            OutcomeSeries(outcome_id=item.outcome_id, outcome_label=item.outcome_label),
        )
        series.points.append(
            OutcomeSeriesPoint(
                skill_id=item.skill.id,
                label=item.skill.label or item.skill.id,
                value=round(item.mastery * 100),
            )
        )
    return list(grouped.values())
