"""
CSV Dataset Loader.

Builds a DependencyGraph and an AbilityState from the CSV exports the
engine consumes. Every file has a header row, which is skipped; columns
are positional.

Graph rows (11 required columns, 2 optional):
    subjectId, subjectLabel, domainId, domainLabel, competencyId,
    competencyLabel, outcomeId, outcomeLabel, skillId, skillLabel,
    difficulty[, gradeId, gradeLabel]

Prerequisite rows:
    sourceSkillId, targetSkillId      (source is a prerequisite of target)

Ability rows:
    type, id, ability                 (type: grade|subject|domain|competency|outcome|skill)

A dataset directory holds graph.csv, prerequisites.csv and optionally
abilities.csv and constants.csv.
"""

from __future__ import annotations

import csv
import io
import math
from dataclasses import dataclass
from pathlib import Path

from loguru import logger
from pydantic import ValidationError

from pal.core.constants import CoreConstants, apply_core_constants_csv
from pal.core.errors import MalformedDatasetError
from pal.core.models import (
    LEVELS,
    AbilityState,
    Competency,
    DependencyGraph,
    Domain,
    Grade,
    Level,
    Outcome,
    Skill,
    Subject,
)

GRAPH_COLUMNS = 11

GRAPH_FILE = "graph.csv"
PREREQUISITES_FILE = "prerequisites.csv"
ABILITIES_FILE = "abilities.csv"
CONSTANTS_FILE = "constants.csv"


@dataclass
class DatasetBundle:
    """A loaded graph with its starting abilities."""

    graph: DependencyGraph
    abilities: AbilityState
    constants: CoreConstants | None = None


def read_csv_rows(text: str) -> list[list[str]]:
    """Parse CSV text into trimmed rows, dropping blank lines."""
    reader = csv.reader(io.StringIO(text.replace("\r\n", "\n")))
    return [[cell.strip() for cell in row] for row in reader if any(cell.strip() for cell in row)]


# ============================================================================
# Graph
# ============================================================================


def _parse_difficulty(value: str, skill_id: str) -> float:
    try:
        difficulty = float(value)
    except ValueError:
        raise MalformedDatasetError(
            f'Difficulty must be numeric. Check skill "{skill_id}".'
        ) from None
    if not math.isfinite(difficulty):
        raise MalformedDatasetError(f'Difficulty must be finite. Check skill "{skill_id}".')
    return difficulty


def load_graph_csv(graph_text: str, prerequisites_text: str) -> DependencyGraph:
    """
    Build a DependencyGraph from graph and prerequisite CSV text.

    The start skill is the first skill without prerequisites, else the
    first skill.

    Raises:
        MalformedDatasetError: missing data rows, short rows, empty ids,
            non-numeric difficulty or a duplicate skill id
    """
    rows = read_csv_rows(graph_text)
    if len(rows) <= 1:
        raise MalformedDatasetError("Graph CSV is empty or missing data rows.")

    grades: dict[str, Grade] = {}
    subjects: dict[str, Subject] = {}
    domains: dict[str, Domain] = {}
    competencies: dict[str, Competency] = {}
    outcomes: dict[str, Outcome] = {}
    skills: dict[str, dict] = {}

    for row_number, row in enumerate(rows[1:], start=2):
        if len(row) < GRAPH_COLUMNS:
            raise MalformedDatasetError(
                f"Graph row {row_number} must contain {GRAPH_COLUMNS} columns "
                f"(found {len(row)})."
            )
        (
            subject_id, subject_label,
            domain_id, domain_label,
            competency_id, competency_label,
            outcome_id, outcome_label,
            skill_id, skill_label,
            difficulty_text,
        ) = row[:GRAPH_COLUMNS]
        grade_id = row[11] if len(row) > 11 and row[11] else None
        grade_label = row[12] if len(row) > 12 else ""

        if not all((subject_id, domain_id, competency_id, outcome_id, skill_id)):
            raise MalformedDatasetError(
                f"Graph row {row_number} must include non-empty ids for all entities."
            )
        if skill_id in skills:
            raise MalformedDatasetError(f'Duplicate skill id detected: "{skill_id}".')

        difficulty = _parse_difficulty(difficulty_text, skill_id)

        if grade_id is not None and grade_id not in grades:
            grades[grade_id] = Grade(id=grade_id, label=grade_label or grade_id)
        if subject_id not in subjects:
            subjects[subject_id] = Subject(
                id=subject_id, label=subject_label or subject_id, grade_id=grade_id
            )
        if domain_id not in domains:
            domains[domain_id] = Domain(
                id=domain_id, label=domain_label or domain_id,
                subject_id=subject_id, grade_id=grade_id,
            )
        if competency_id not in competencies:
            competencies[competency_id] = Competency(
                id=competency_id, label=competency_label or competency_id,
                domain_id=domain_id, subject_id=subject_id, grade_id=grade_id,
            )
        if outcome_id not in outcomes:
            outcomes[outcome_id] = Outcome(
                id=outcome_id, label=outcome_label or outcome_id,
                competency_id=competency_id, domain_id=domain_id,
                subject_id=subject_id, grade_id=grade_id,
            )

        skills[skill_id] = {
            "id": skill_id,
            "label": skill_label or skill_id,
            "outcome_id": outcome_id,
            "competency_id": competency_id,
            "domain_id": domain_id,
            "subject_id": subject_id,
            "grade_id": grade_id,
            "difficulty": difficulty,
            "prerequisites": [],
        }

    prereq_rows = read_csv_rows(prerequisites_text)
    if not prereq_rows:
        raise MalformedDatasetError("Prerequisite CSV must include a header row.")

    for row_number, row in enumerate(prereq_rows[1:], start=2):
        if len(row) < 2:
            raise MalformedDatasetError(
                f"Prerequisite row {row_number} must contain sourceSkillId,targetSkillId."
            )
        source_id, target_id = row[0], row[1]
        if not source_id or not target_id:
            continue
        target = skills.get(target_id)
        if target is None:
            logger.warning(f"Skipping prerequisite row {row_number}: unknown target skill {target_id!r}")
            continue
        if source_id not in target["prerequisites"]:
            target["prerequisites"].append(source_id)

    try:
        skill_models = [Skill(**{**data, "prerequisites": tuple(data["prerequisites"])}) for data in skills.values()]
    except ValidationError as e:
        raise MalformedDatasetError(f"Invalid skill row: {e.errors()[0]['msg']}") from e

    start = next((skill for skill in skill_models if not skill.prerequisites), None)
    if start is None and skill_models:
        start = skill_models[0]

    graph = DependencyGraph(
        skills=tuple(skill_models),
        outcomes=tuple(outcomes.values()),
        competencies=tuple(competencies.values()),
        domains=tuple(domains.values()),
        subjects=tuple(subjects.values()),
        grades=tuple(grades.values()),
        start_skill_id=start.id if start is not None else "",
    )
    logger.info(
        f"Loaded graph: {len(graph.skills)} skills, {len(graph.outcomes)} outcomes, "
        f"{len(graph.subjects)} subjects (start: {graph.start_skill_id})"
    )
    return graph


# ============================================================================
# Abilities
# ============================================================================


def default_abilities(graph: DependencyGraph) -> AbilityState:
    """Ability state with theta 0 for every entity in the graph."""
    state = AbilityState()
    for level in LEVELS:
        for entity_id in graph.entity_ids(level):
            state.set(level, entity_id, 0.0)
    return state


def load_abilities_csv(graph: DependencyGraph, text: str | None) -> AbilityState:
    """
    Seed every graph entity at 0, then apply ``type,id,ability`` rows.

    A non-numeric ability reads as 0. An unknown type raises
    MalformedDatasetError.
    """
    state = default_abilities(graph)
    if not text:
        return state

    rows = read_csv_rows(text)
    for row_number, row in enumerate(rows[1:], start=2):
        if len(row) < 3:
            raise MalformedDatasetError(f"Ability row {row_number} must include type,id,ability.")
        raw_type, entity_id, ability_text = row[0], row[1], row[2]
        if not raw_type or not entity_id:
            continue

        try:
            level = Level.parse(raw_type)
        except ValueError:
            expected = " | ".join(level.value for level in LEVELS)
            raise MalformedDatasetError(
                f'Unknown ability type "{raw_type}" on row {row_number}. Expected {expected}.'
            ) from None

        try:
            ability = float(ability_text)
        except ValueError:
            ability = math.nan
        if not math.isfinite(ability):
            logger.warning(f"Ability row {row_number} ({entity_id}) is not numeric; using 0")
            ability = 0.0

        state.set(level, entity_id, ability)

    return state


# ============================================================================
# Bundles
# ============================================================================


def load_dataset(
    graph_csv: str,
    prerequisites_csv: str,
    ability_csv: str | None = None,
) -> DatasetBundle:
    graph = load_graph_csv(graph_csv, prerequisites_csv)
    return DatasetBundle(graph=graph, abilities=load_abilities_csv(graph, ability_csv))


def _read_file(path: Path, required: bool = True) -> str | None:
    if not path.exists():
        if required:
            raise MalformedDatasetError(f"Missing dataset file: {path}")
        return None
    return path.read_text(encoding="utf-8")


def load_dataset_dir(path: str | Path) -> DatasetBundle:
    """
    Load a dataset directory.

    When constants.csv is present it is applied to the default constants
    store and the resulting snapshot is returned on the bundle.
    """
    directory = Path(path)
    if not directory.is_dir():
        raise MalformedDatasetError(f"Dataset directory not found: {directory}")

    bundle = load_dataset(
        _read_file(directory / GRAPH_FILE),
        _read_file(directory / PREREQUISITES_FILE),
        _read_file(directory / ABILITIES_FILE, required=False),
    )

    constants_text = _read_file(directory / CONSTANTS_FILE, required=False)
    if constants_text is not None:
        bundle.constants = apply_core_constants_csv(constants_text)

    logger.info(f"Loaded dataset from {directory}")
    return bundle
