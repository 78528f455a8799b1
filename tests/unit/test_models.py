"""
Unit tests for the core data models.
"""

import pytest
from pydantic import ValidationError

from pal.core import (
    LEVELS,
    AbilityState,
    BlendWeights,
    Level,
    OutcomeEvent,
    RecommendationContext,
    RecommendationStatus,
    Skill,
    UnknownEntityError,
)


class TestLevel:
    def test_order_is_leaf_first(self):
        assert [level.value for level in LEVELS] == [
            "skill", "outcome", "competency", "domain", "subject", "grade",
        ]

    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("skill", Level.SKILL),
            ("Outcome", Level.OUTCOME),
            ("Learning Outcome", Level.OUTCOME),
            ("indicator", Level.SKILL),
            ("GRADE", Level.GRADE),
        ],
    )
    def test_parse(self, raw, expected):
        assert Level.parse(raw) is expected

    def test_parse_unknown_raises(self):
        with pytest.raises(ValueError):
            Level.parse("planet")

    def test_display_name(self):
        assert Level.COMPETENCY.display_name == "Competency"


class TestSkill:
    def test_entity_id_per_level(self, make_skill):
        skill = make_skill("A", grade_id="G3")
        assert skill.entity_id(Level.SKILL) == "A"
        assert skill.entity_id(Level.OUTCOME) == "O1"
        assert skill.entity_id(Level.DOMAIN) == "D1"
        assert skill.entity_id(Level.GRADE) == "G3"

    def test_missing_grade_is_none(self, make_skill):
        assert make_skill("A").entity_id(Level.GRADE) is None

    def test_non_finite_difficulty_rejected(self, make_skill):
        with pytest.raises(ValidationError):
            make_skill("A", difficulty=float("nan"))

    def test_empty_id_rejected(self):
        with pytest.raises(ValidationError):
            Skill(id="", outcome_id="O", competency_id="C", domain_id="D", subject_id="S")

    def test_is_frozen(self, make_skill):
        skill = make_skill("A")
        with pytest.raises(ValidationError):
            skill.difficulty = 2.0


class TestDependencyGraph:
    def test_lookup(self, chain_graph):
        assert chain_graph.has_skill("B")
        assert chain_graph.get_skill("B").prerequisites == ("A",)
        assert chain_graph.entity_ids(Level.SKILL) == ["A", "B", "C"]

    def test_unknown_skill(self, chain_graph):
        assert not chain_graph.has_skill("Z")
        with pytest.raises(UnknownEntityError) as exc_info:
            chain_graph.get_skill("Z")
        assert 'Unknown skill "Z"' in str(exc_info.value)


class TestCoefficients:
    def test_merged_overrides_only_named_levels(self):
        weights = BlendWeights(skill=0.3, outcome=0.2)
        merged = weights.merged({"skill": 0.5})
        assert merged.skill == 0.5
        assert merged.outcome == 0.2
        assert weights.skill == 0.3

    def test_unknown_level_rejected(self):
        with pytest.raises(ValidationError):
            BlendWeights(planet=1.0)

    def test_no_sum_constraint(self):
        assert BlendWeights(skill=2.0, outcome=2.0).to_dict()["skill"] == 2.0


class TestAbilityState:
    def test_missing_reads_as_zero(self):
        state = AbilityState()
        assert state.get(Level.SKILL, "X") == 0.0
        assert state.get(Level.GRADE, None) == 0.0

    def test_clone_shares_no_maps(self):
        state = AbilityState(skill={"A": 1.0})
        copy = state.clone()
        copy.set(Level.SKILL, "A", 2.0)
        assert state.get(Level.SKILL, "A") == 1.0
        assert copy.get(Level.SKILL, "A") == 2.0

    def test_dict_round_trip(self):
        state = AbilityState.from_dict({"skill": {"A": 0.5}, "Learning Outcome": {"O1": "0.25"}})
        assert state.to_dict()["outcome"] == {"O1": 0.25}
        assert AbilityState.from_dict(state.to_dict()) == state


class TestRecords:
    @pytest.mark.parametrize(
        "status, actionable",
        [
            (RecommendationStatus.RECOMMENDED, True),
            (RecommendationStatus.NEEDS_REMEDIATION, True),
            (RecommendationStatus.AUTO_MASTERED, False),
            (RecommendationStatus.NO_CANDIDATE, False),
        ],
    )
    def test_actionable(self, status, actionable):
        context = RecommendationContext("T", "C", 0.5, status)
        assert context.is_actionable is actionable

    def test_outcome_value(self):
        assert OutcomeEvent("A", correct=True).outcome == 1.0
        assert OutcomeEvent("A", correct=False).outcome == 0.0
