"""
Unit tests for the CSV dataset loader.
"""

import pytest

from pal.core import Level, MalformedDatasetError, get_core_constants
from pal.loaders import (
    default_abilities,
    load_abilities_csv,
    load_dataset,
    load_dataset_dir,
    load_graph_csv,
)

HEADER = (
    "subjectId,subjectLabel,domainId,domainLabel,competencyId,competencyLabel,"
    "outcomeId,outcomeLabel,skillId,skillLabel,difficulty\n"
)
PREREQ_HEADER = "sourceSkillId,targetSkillId\n"


def graph_row(skill_id: str, difficulty: str = "0", outcome_id: str = "O1", extra: str = "") -> str:
    return f"SUB,Subject,D,Domain,C,Comp,{outcome_id},Outcome,{skill_id},Skill {skill_id},{difficulty}{extra}\n"


class TestLoadGraph:
    def test_sample_dataset(self, csv_texts):
        graph = load_graph_csv(csv_texts["graph"], csv_texts["prerequisites"])

        assert [skill.id for skill in graph.skills] == ["S1", "S2", "S3", "S4"]
        assert graph.get_skill("S3").prerequisites == ("S2",)
        assert graph.get_skill("S3").difficulty == 0.5
        assert graph.entity_ids(Level.OUTCOME) == ["O-ADD1", "O-ADD2", "O-SUB1"]
        assert graph.entity_ids(Level.COMPETENCY) == ["C-ADD", "C-SUB"]
        assert graph.subjects[0].label == "Mathematics"
        assert graph.start_skill_id == "S1"

    def test_start_skill_is_first_without_prerequisites(self):
        graph = load_graph_csv(HEADER + graph_row("A") + graph_row("B"), PREREQ_HEADER + "B,A\n")
        assert graph.start_skill_id == "B"

    def test_start_skill_falls_back_to_first(self):
        graph = load_graph_csv(
            HEADER + graph_row("A") + graph_row("B"), PREREQ_HEADER + "B,A\nA,B\n"
        )
        assert graph.start_skill_id == "A"

    def test_optional_grade_columns(self):
        graph = load_graph_csv(HEADER + graph_row("A", extra=",G3,Grade 3"), PREREQ_HEADER)
        assert graph.get_skill("A").grade_id == "G3"
        assert graph.grades[0].label == "Grade 3"
        assert graph.subjects[0].grade_id == "G3"

    def test_prerequisite_rows(self):
        graph = load_graph_csv(
            HEADER + graph_row("A") + graph_row("B") + graph_row("C"),
            PREREQ_HEADER + "A,C\nB,C\nA,C\n,C\nA,MISSING\n",
        )
        assert graph.get_skill("C").prerequisites == ("A", "B")

    def test_unknown_source_kept(self):
        graph = load_graph_csv(HEADER + graph_row("A"), PREREQ_HEADER + "GHOST,A\n")
        assert graph.get_skill("A").prerequisites == ("GHOST",)

    def test_blank_lines_and_whitespace(self):
        graph = load_graph_csv(
            HEADER + "\n" + graph_row(" A ", difficulty=" 1.5 ") + "\n", PREREQ_HEADER
        )
        assert graph.get_skill("A").difficulty == 1.5

    @pytest.mark.parametrize(
        "graph_text, fragment",
        [
            ("", "empty"),
            (HEADER, "missing data rows"),
            (HEADER + "SUB,Subject,D\n", "11 columns"),
            (HEADER + graph_row(""), "non-empty ids"),
            (HEADER + graph_row("A") + graph_row("A"), 'Duplicate skill id detected: "A"'),
            (HEADER + graph_row("A", difficulty="hard"), "numeric"),
            (HEADER + graph_row("A", difficulty="inf"), "finite"),
        ],
    )
    def test_malformed_graph(self, graph_text, fragment):
        with pytest.raises(MalformedDatasetError) as exc_info:
            load_graph_csv(graph_text, PREREQ_HEADER)
        assert fragment in str(exc_info.value)

    def test_prerequisites_need_header(self):
        with pytest.raises(MalformedDatasetError, match="header row"):
            load_graph_csv(HEADER + graph_row("A"), "")

    def test_short_prerequisite_row(self):
        with pytest.raises(MalformedDatasetError, match="row 2"):
            load_graph_csv(HEADER + graph_row("A"), PREREQ_HEADER + "A\n")


class TestLoadAbilities:
    def test_defaults_cover_every_entity(self, csv_texts):
        graph = load_graph_csv(csv_texts["graph"], csv_texts["prerequisites"])
        state = default_abilities(graph)
        assert state.skill == {"S1": 0.0, "S2": 0.0, "S3": 0.0, "S4": 0.0}
        assert state.subject == {"MATH": 0.0}
        assert state.grade == {}

    def test_rows_override_defaults(self, csv_texts):
        graph = load_graph_csv(csv_texts["graph"], csv_texts["prerequisites"])
        state = load_abilities_csv(graph, csv_texts["abilities"])
        assert state.get(Level.SKILL, "S1") == 1.2
        assert state.get(Level.OUTCOME, "O-ADD1") == 0.4
        assert state.get(Level.SKILL, "S2") == 0.0

    def test_type_aliases(self, csv_texts):
        graph = load_graph_csv(csv_texts["graph"], csv_texts["prerequisites"])
        state = load_abilities_csv(graph, "type,id,ability\nLearning Outcome,O-ADD2,0.7\n")
        assert state.get(Level.OUTCOME, "O-ADD2") == 0.7

    def test_non_numeric_reads_as_zero(self, csv_texts):
        graph = load_graph_csv(csv_texts["graph"], csv_texts["prerequisites"])
        state = load_abilities_csv(graph, "type,id,ability\nskill,S1,high\n")
        assert state.get(Level.SKILL, "S1") == 0.0

    def test_unknown_type(self, csv_texts):
        graph = load_graph_csv(csv_texts["graph"], csv_texts["prerequisites"])
        with pytest.raises(MalformedDatasetError, match="Unknown ability type"):
            load_abilities_csv(graph, "type,id,ability\nplanet,X,1\n")


class TestLoadDataset:
    def test_bundle(self, csv_texts):
        bundle = load_dataset(csv_texts["graph"], csv_texts["prerequisites"], csv_texts["abilities"])
        assert bundle.graph.has_skill("S4")
        assert bundle.abilities.get(Level.SUBJECT, "MATH") == 0.1
        assert bundle.constants is None

    def test_directory(self, dataset_dir):
        bundle = load_dataset_dir(dataset_dir)
        assert len(bundle.graph.skills) == 4
        assert bundle.abilities.get(Level.SKILL, "S1") == 1.2

    def test_directory_without_abilities(self, dataset_dir):
        (dataset_dir / "abilities.csv").unlink()
        bundle = load_dataset_dir(dataset_dir)
        assert bundle.abilities.get(Level.SKILL, "S1") == 0.0

    def test_directory_applies_constants(self, dataset_dir, csv_texts):
        (dataset_dir / "constants.csv").write_text(csv_texts["constants"], encoding="utf-8")

        bundle = load_dataset_dir(dataset_dir)

        assert bundle.constants.zpd_range == (0.45, 0.85)
        assert get_core_constants().zpd_range == (0.45, 0.85)

    def test_missing_directory(self, tmp_path):
        with pytest.raises(MalformedDatasetError, match="not found"):
            load_dataset_dir(tmp_path / "nope")

    def test_missing_required_file(self, dataset_dir):
        (dataset_dir / "prerequisites.csv").unlink()
        with pytest.raises(MalformedDatasetError, match="prerequisites.csv"):
            load_dataset_dir(dataset_dir)
