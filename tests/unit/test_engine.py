"""
Unit tests for the ranked-list engine, personalization snapshots and
learner profiles.
"""

from datetime import datetime

import pytest

from pal.core import AbilityState, InvalidRequestError, UnknownEntityError
from pal.adaptive import (
    AdaptiveEngine,
    LearnerProfile,
    ModifiedEloAlgorithm,
    PersonalizationService,
    profile_from_abilities,
    to_outcome_series,
)


@pytest.fixture
def chain_profile():
    """A mastered, B barely started, C untouched."""
    profile = LearnerProfile(id="learner")
    profile.upsert_skill_state("A", 0.9)
    profile.upsert_skill_state("B", 0.2)
    return profile


class TestRecommendationList:
    def test_blocked_skills_dropped(self, chain_graph, chain_profile):
        engine = AdaptiveEngine(chain_graph)

        ranked = engine.get_recommendation_list(chain_profile)

        assert [item.skill_id for item in ranked] == ["B", "A"]
        assert ranked[0].score == pytest.approx(0.8)
        assert not ranked[0].is_blocked

    def test_allow_blocked_annotates(self, chain_graph, chain_profile):
        engine = AdaptiveEngine(chain_graph)

        ranked = engine.get_recommendation_list(chain_profile, allow_blocked=True)

        blocked = next(item for item in ranked if item.skill_id == "C")
        assert blocked.blocked_by == ["B"]
        assert blocked.reason == "Requires completion of skills: B"

    def test_threshold_controls_blocking(self, chain_graph, chain_profile):
        engine = AdaptiveEngine(chain_graph)
        ranked = engine.get_recommendation_list(chain_profile, prerequisite_threshold=0.95)
        assert [item.skill_id for item in ranked] == ["A"]

    def test_limit(self, chain_graph, chain_profile):
        engine = AdaptiveEngine(chain_graph)
        assert len(engine.get_recommendation_list(chain_profile, limit=1)) == 1
        assert engine.get_recommendation_list(chain_profile, limit=0) == []

    def test_negative_limit_rejected(self, chain_graph, chain_profile):
        with pytest.raises(InvalidRequestError):
            AdaptiveEngine(chain_graph).get_recommendation_list(chain_profile, limit=-1)

    def test_ties_keep_topological_order(self, make_skill, make_graph):
        graph = make_graph(
            make_skill("Z", prerequisites=("M",)),
            make_skill("M"),
            make_skill("K"),
        )
        profile = LearnerProfile(id="learner")
        profile.upsert_skill_state("M", 0.8)
        profile.upsert_skill_state("K", 0.8)

        ranked = AdaptiveEngine(graph).get_recommendation_list(profile)

        assert [item.skill_id for item in ranked] == ["Z", "M", "K"]

    def test_cyclic_skills_excluded(self, make_skill, make_graph):
        graph = make_graph(
            make_skill("A"),
            make_skill("B", prerequisites=("C",)),
            make_skill("C", prerequisites=("B",)),
        )
        ranked = AdaptiveEngine(graph).get_recommendation_list(
            LearnerProfile(id="learner"), allow_blocked=True
        )
        assert [item.skill_id for item in ranked] == ["A"]

    def test_ties_follow_kahn_queue_order(self, make_skill, make_graph):
        graph = make_graph(
            make_skill("A"),
            make_skill("D", prerequisites=("A",)),
            make_skill("B"),
        )
        profile = LearnerProfile(id="learner")
        for skill_id in ("A", "D", "B"):
            profile.upsert_skill_state(skill_id, 0.8)

        ranked = AdaptiveEngine(graph).get_recommendation_list(profile)

        # B was queued as a root before A released D
        assert [item.skill_id for item in ranked] == ["A", "B", "D"]

    def test_unknown_prerequisite_never_listed(self, make_skill, make_graph):
        graph = make_graph(
            make_skill("A"),
            make_skill("B", prerequisites=("GHOST",)),
        )
        ranked = AdaptiveEngine(graph).get_recommendation_list(
            LearnerProfile(id="learner"), allow_blocked=True
        )
        assert [item.skill_id for item in ranked] == ["A"]

    def test_to_dict(self, chain_graph, chain_profile):
        entry = AdaptiveEngine(chain_graph).get_recommendation_list(chain_profile)[0]
        data = entry.to_dict()
        assert data["skill_id"] == "B"
        assert data["outcome_label"] == "Outcome O1"
        assert data["blocked_by"] == []


class TestAlgorithmSelection:
    def test_default_is_simple(self, chain_graph):
        assert AdaptiveEngine(chain_graph).algorithm.id == "simple"

    def test_select_by_id(self, chain_graph):
        engine = AdaptiveEngine(chain_graph, algorithm="bkt")
        assert engine.algorithm.id == "bkt"
        engine.set_algorithm(ModifiedEloAlgorithm())
        assert engine.algorithm.id == "modified-elo"

    def test_unknown_id(self, chain_graph):
        with pytest.raises(InvalidRequestError):
            AdaptiveEngine(chain_graph, algorithm="random")

    def test_every_strategy_ranks(self, chain_graph, chain_profile):
        for algorithm_id in ("simple", "irt", "elo", "bkt", "modified-elo"):
            ranked = AdaptiveEngine(chain_graph, algorithm=algorithm_id).get_recommendation_list(
                chain_profile
            )
            assert {item.skill_id for item in ranked} == {"A", "B"}
            assert all(0.0 <= item.mastery <= 1.0 for item in ranked)


class TestRecordObservation:
    def test_stateless_strategy_leaves_profile(self, chain_graph, chain_profile):
        engine = AdaptiveEngine(chain_graph)
        before = chain_profile.to_dict()

        engine.record_observation(chain_profile, "B", 1.0)

        assert chain_profile.to_dict() == before

    def test_modified_elo_updates_profile(self, chain_graph):
        engine = AdaptiveEngine(chain_graph, algorithm="modified-elo")
        profile = LearnerProfile(id="learner")

        result = engine.record_observation(profile, "A", 1.0)

        state = profile.skill_state("A")
        assert state is not None
        assert state.theta == pytest.approx(result.mastery)
        assert [record.entity_id for record in profile.outcome_abilities] == ["O1"]

    def test_unknown_skill(self, chain_graph, chain_profile):
        with pytest.raises(UnknownEntityError):
            AdaptiveEngine(chain_graph).record_observation(chain_profile, "Z", 1.0)


class TestPersonalization:
    def test_snapshot(self, chain_graph, chain_profile):
        service = PersonalizationService(chain_graph)

        snapshot = service.generate_snapshot(chain_profile, limit=1)

        assert len(snapshot.recommendations) == 1
        assert datetime.fromisoformat(snapshot.generated_at).tzinfo is not None
        assert snapshot.to_dict()["recommendations"][0]["skill_id"] == "B"

    def test_update_graph(self, chain_graph, chain_profile, make_skill, make_graph):
        service = PersonalizationService(chain_graph)
        service.update_graph(make_graph(make_skill("X")))
        ids = [item.skill_id for item in service.generate_snapshot(chain_profile).recommendations]
        assert ids == ["X"]

    def test_outcome_series(self, make_skill, make_graph):
        graph = make_graph(
            make_skill("A", outcome_id="O1"),
            make_skill("B", outcome_id="O2"),
            make_skill("C", outcome_id="O1"),
        )
        profile = LearnerProfile(id="learner")
        profile.upsert_skill_state("A", 0.256)

        ranked = AdaptiveEngine(graph).get_recommendation_list(profile)
        series = to_outcome_series(ranked)

        assert [entry.outcome_id for entry in series] == ["O2", "O1"]
        o1 = series[1]
        assert [point.skill_id for point in o1.points] == ["C", "A"]
        assert o1.points[1].value == 26


class TestLearnerProfile:
    def test_upsert_replaces_existing(self):
        profile = LearnerProfile(id="learner")
        profile.upsert_skill_state("A", 0.2, attempts=1)
        profile.upsert_skill_state("A", 0.6, attempts=2)
        assert len(profile.skill_states) == 1
        assert profile.mastery_map() == {"A": 0.6}
        assert profile.skill_state("A").attempts == 2

    def test_ability_upserts(self):
        profile = LearnerProfile(id="learner")
        profile.upsert_outcome_ability("O1", 0.1)
        profile.upsert_outcome_ability("O1", 0.3)
        profile.upsert_grade_ability("G1", 0.5)
        data = profile.to_dict()
        assert data["outcome_abilities"] == {"O1": 0.3}
        assert data["grade_abilities"] == {"G1": 0.5}

    def test_profile_from_abilities(self, make_skill, make_graph):
        graph = make_graph(make_skill("A"), make_skill("B", probability=0.9))
        abilities = AbilityState(outcome={"O1": 0.4})

        profile = profile_from_abilities(graph, abilities)

        # blend = 0.2 * 0.4 from the outcome level
        assert profile.mastery_map()["A"] == pytest.approx(0.52, abs=0.01)
        assert profile.mastery_map()["B"] > 0.9
        assert profile.outcome_abilities[0].theta == 0.4
        assert profile.skill_state("A").theta == 0.0
