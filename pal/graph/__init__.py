"""
Graph Module - Indexing and analysis of the skill prerequisite graph.

Components:
- index: per-call skillById / prerequisites / dependents maps
- analysis: networkx view used by the ranked-list builder and strategies
"""

from pal.graph.analysis import (
    SkillContext,
    SkillGraph,
    detect_cycles,
    find_blocked_by,
    to_digraph,
    topological_order,
)
from pal.graph.index import GraphIndex, index_graph

__all__ = [
    "GraphIndex",
    "index_graph",
    "SkillContext",
    "SkillGraph",
    "to_digraph",
    "topological_order",
    "detect_cycles",
    "find_blocked_by",
]
