"""
Pytest Configuration and Fixtures.

This file configures pytest and provides shared fixtures for all tests.
"""
import sys
from pathlib import Path

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from pal.core import AbilityState, DependencyGraph, Outcome, Skill, reset_core_constants  # noqa: E402
from pal.core.probability import logit  # noqa: E402


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "smoke: Smoke tests for CLI commands")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "smoke" in str(item.fspath):
            item.add_marker(pytest.mark.smoke)


@pytest.fixture(autouse=True)
def fresh_constants():
    """Every test starts and ends with the initial core constants."""
    reset_core_constants()
    yield
    reset_core_constants()


@pytest.fixture(scope="session")
def project_root():
    """Return the project root directory."""
    return PROJECT_ROOT


# ========================================
# Graph builders
# ========================================


def difficulty_for(probability: float) -> float:
    """Difficulty giving ``probability`` when every theta is 0."""
    return -logit(probability)


def build_skill(
    skill_id: str,
    probability: float | None = None,
    prerequisites: tuple[str, ...] = (),
    outcome_id: str = "O1",
    competency_id: str = "C1",
    grade_id: str | None = None,
    **extra,
) -> Skill:
    if probability is not None:
        extra.setdefault("difficulty", difficulty_for(probability))
    return Skill(
        id=skill_id,
        label=extra.pop("label", f"Skill {skill_id}"),
        outcome_id=outcome_id,
        competency_id=competency_id,
        domain_id=extra.pop("domain_id", "D1"),
        subject_id=extra.pop("subject_id", "SUB1"),
        grade_id=grade_id,
        prerequisites=tuple(prerequisites),
        **extra,
    )


def build_graph(*skills: Skill, start_skill_id: str | None = None) -> DependencyGraph:
    outcome_ids = list(dict.fromkeys(skill.outcome_id for skill in skills))
    outcomes = tuple(
        Outcome(
            id=outcome_id,
            label=f"Outcome {outcome_id}",
            competency_id="C1",
            domain_id="D1",
            subject_id="SUB1",
        )
        for outcome_id in outcome_ids
    )
    return DependencyGraph(
        skills=tuple(skills),
        outcomes=outcomes,
        start_skill_id=start_skill_id if start_skill_id is not None else (skills[0].id if skills else ""),
    )


@pytest.fixture
def make_skill():
    """Factory: make_skill("A", probability=0.6, prerequisites=("B",))."""
    return build_skill


@pytest.fixture
def make_graph():
    """Factory: make_graph(skill_a, skill_b, start_skill_id="A")."""
    return build_graph


@pytest.fixture
def empty_abilities():
    return AbilityState()


@pytest.fixture
def chain_graph():
    """A -> B -> C (A is the root), every theta 0 and difficulty 0."""
    return build_graph(
        build_skill("A"),
        build_skill("B", prerequisites=("A",)),
        build_skill("C", prerequisites=("B",)),
    )


# ========================================
# CSV datasets
# ========================================

GRAPH_CSV = """subjectId,subjectLabel,domainId,domainLabel,competencyId,competencyLabel,outcomeId,outcomeLabel,skillId,skillLabel,difficulty
MATH,Mathematics,NUM,Number,C-ADD,Addition,O-ADD1,Add within 10,S1,Count objects,-1.5
MATH,Mathematics,NUM,Number,C-ADD,Addition,O-ADD1,Add within 10,S2,Add single digits,0
MATH,Mathematics,NUM,Number,C-ADD,Addition,O-ADD2,Add within 100,S3,Add two digits,0.5
MATH,Mathematics,NUM,Number,C-SUB,Subtraction,O-SUB1,Subtract within 10,S4,Take away,0.2
"""

PREREQUISITES_CSV = """sourceSkillId,targetSkillId
S1,S2
S2,S3
S1,S4
"""

ABILITIES_CSV = """type,id,ability
skill,S1,1.2
outcome,O-ADD1,0.4
subject,MATH,0.1
"""

CONSTANTS_CSV = """category,key,value
zpdRange,min,0.45
zpdRange,max,0.85
"""


@pytest.fixture
def dataset_dir(tmp_path):
    """A complete dataset directory without constants.csv."""
    (tmp_path / "graph.csv").write_text(GRAPH_CSV, encoding="utf-8")
    (tmp_path / "prerequisites.csv").write_text(PREREQUISITES_CSV, encoding="utf-8")
    (tmp_path / "abilities.csv").write_text(ABILITIES_CSV, encoding="utf-8")
    return tmp_path


@pytest.fixture
def csv_texts():
    """Raw CSV text for the sample dataset, keyed by file stem."""
    return {
        "graph": GRAPH_CSV,
        "prerequisites": PREREQUISITES_CSV,
        "abilities": ABILITIES_CSV,
        "constants": CONSTANTS_CSV,
    }
