"""
Skill Graph Analysis.

networkx view of the dependency graph (edge: prerequisite -> dependent).

Features:
    - Topological ordering (Kahn, declaration-order queue) that skips cyclic regions
    - Cycle detection for dataset diagnostics
    - Blocked-by check against a mastery map
    - Skill contexts (skill + containing outcome) for the scoring strategies
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from typing import Mapping

import networkx as nx

from pal.core.models import DependencyGraph, Outcome, Skill


@dataclass(frozen=True)
class SkillContext:
    """A skill together with its containing outcome."""

    skill: Skill
    outcome: Outcome | None = None

    @property
    def skill_id(self) -> str:
        return self.skill.id

    @property
    def outcome_id(self) -> str:
        return self.skill.outcome_id

    @property
    def outcome_label(self) -> str:
        if self.outcome is not None:
            return self.outcome.label or self.outcome.id
        return self.skill.outcome_id


def to_digraph(graph: DependencyGraph) -> nx.DiGraph:
    """
    Build a DiGraph with one node per skill, in declaration order.

    Prerequisite ids missing from the graph still become (attribute-less)
    nodes so that they show up as unmet upstream dependencies.
    """
    digraph = nx.DiGraph()
    for index, skill in enumerate(graph.skills):
        digraph.add_node(skill.id, skill=skill, order=index)
    for skill in graph.skills:
        for prereq_id in skill.prerequisites:
            digraph.add_edge(prereq_id, skill.id)
    return digraph


def topological_order(graph: DependencyGraph, digraph: nx.DiGraph | None = None) -> list[str]:
    """
    Kahn's algorithm over declared skills, seeded in declaration order.

    Released dependents join the back of the queue, so a skill waits behind
    every root declared before it. Skills on or downstream of a cycle never
    reach in-degree zero and are left out. Unknown prerequisite ids count
    toward in-degree but are never released, so their dependents are left
    out too.
    """
    digraph = digraph if digraph is not None else to_digraph(graph)
    in_degree = {skill.id: digraph.in_degree(skill.id) for skill in graph.skills}

    queue = deque(skill_id for skill_id, degree in in_degree.items() if degree == 0)
    ranked: list[str] = []
    while queue:
        skill_id = queue.popleft()
        ranked.append(skill_id)
        for dependent_id in digraph.successors(skill_id):
            in_degree[dependent_id] -= 1
            if in_degree[dependent_id] == 0:
                queue.append(dependent_id)
    return ranked


def detect_cycles(graph: DependencyGraph) -> list[list[str]]:
    """All elementary cycles, each as a list of skill ids."""
    return [list(cycle) for cycle in nx.simple_cycles(to_digraph(graph))]


def find_blocked_by(
    skill_id: str,
    digraph: nx.DiGraph,
    mastery_map: Mapping[str, float],
    threshold: float = 0.7,
) -> list[str]:
    """Direct prerequisites whose mastery (default 0) is below ``threshold``."""
    if skill_id not in digraph:
        return []
    return [
        prereq_id
        for prereq_id in digraph.predecessors(skill_id)
        if mastery_map.get(prereq_id, 0.0) < threshold
    ]


class SkillGraph:
    """
    Read-only graph wrapper shared by the ranked-list builder and strategies.

    Holds the DependencyGraph, its networkx view and per-skill contexts.
    """

    def __init__(self, graph: DependencyGraph):
        self.graph = graph
        self.digraph = to_digraph(graph)
        outcomes = {outcome.id: outcome for outcome in graph.outcomes}
        self.contexts: dict[str, SkillContext] = {
            skill.id: SkillContext(skill=skill, outcome=outcomes.get(skill.outcome_id))
            for skill in graph.skills
        }

    def context(self, skill_id: str) -> SkillContext | None:
        return self.contexts.get(skill_id)

    def prerequisites(self, skill_id: str) -> list[str]:
        """Direct prerequisites (reverse adjacency), declared order."""
        if skill_id not in self.digraph:
            return []
        return list(self.digraph.predecessors(skill_id))

    def dependents(self, skill_id: str) -> list[str]:
        """Direct dependents (adjacency)."""
        if skill_id not in self.digraph:
            return []
        return list(self.digraph.successors(skill_id))

    def topological_order(self) -> list[str]:
        return topological_order(self.graph, self.digraph)

    def blocked_by(
        self,
        skill_id: str,
        mastery_map: Mapping[str, float],
        threshold: float = 0.7,
    ) -> list[str]:
        return find_blocked_by(skill_id, self.digraph, mastery_map, threshold)
