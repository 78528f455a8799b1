"""
Graph indexing.

Builds, per call, the lookup maps the recommendation engine walks:
    skill_by_id[x]   -> Skill
    prerequisites[x] -> declared prerequisite ids of x (declared order)
    dependents[x]    -> every y that lists x among its prerequisites

Every skill id is present in ``dependents``, possibly with an empty list.
Nothing is cached here; callers memoize if they need to.
"""

from __future__ import annotations

from dataclasses import dataclass

from pal.core.models import DependencyGraph, Skill


@dataclass(frozen=True)
class GraphIndex:
    skill_by_id: dict[str, Skill]
    prerequisites: dict[str, tuple[str, ...]]
    dependents: dict[str, list[str]]

    def skill(self, skill_id: str) -> Skill | None:
        return self.skill_by_id.get(skill_id)

    def dependents_of(self, skill_id: str) -> list[str]:
        return self.dependents.get(skill_id, [])


def index_graph(graph: DependencyGraph) -> GraphIndex:
    skill_by_id: dict[str, Skill] = {}
    prerequisites: dict[str, tuple[str, ...]] = {}
    dependents: dict[str, list[str]] = {}

    for skill in graph.skills:
        skill_by_id[skill.id] = skill
        prerequisites[skill.id] = skill.prerequisites
        for prereq_id in skill.prerequisites:
            dependents.setdefault(prereq_id, []).append(skill.id)
        dependents.setdefault(skill.id, [])

    return GraphIndex(
        skill_by_id=skill_by_id,
        prerequisites=prerequisites,
        dependents=dependents,
    )
