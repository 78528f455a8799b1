"""
Next-Skill Recommendation.

Picks the single most actionable skill for a target, biased toward the
Zone of Proximal Development (ZPD): probability inside [zpd_min, zpd_max].

Traversal (depth-first from the target, one visited-set per call):
1. A skill seen before yields ``no-candidate`` (cycle guard).
2. A skill missing from the graph yields ``no-candidate``.
3. Prerequisites are scanned in declared order:
   - mastered            -> satisfied, skipped
   - inside the ZPD      -> recommended immediately
   - below the ZPD       -> descend; the first prerequisite whose branch
                            finds nothing (and is not a cycle hit) is kept
                            as a remediation fallback
4. The skill itself:
   - inside the ZPD      -> recommended
   - mastered            -> (target only) forward advancement to dependents,
                            else auto-mastered
   - nothing left unmet  -> needs-remediation at this skill
   - otherwise           -> fallback remediation, else no-candidate

The search runs on an explicit stack of frames, so long prerequisite chains
do not touch the interpreter recursion limit. Each call is O(V + E): every
skill is evaluated at most once.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass

from loguru import logger

from pal.core.constants import CoreConstants, get_core_constants
from pal.core.models import (
    AbilityState,
    BlendWeights,
    DependencyGraph,
    RecommendationContext,
    RecommendationStatus,
    Skill,
)
from pal.core.probability import skill_probability
from pal.graph.index import index_graph


@dataclass
class _Frame:
    """One skill on the backward-search stack, with its scan position."""

    skill: Skill
    path: tuple[str, ...]
    position: int = 0
    fallback: RecommendationContext | None = None
    all_satisfied: bool = True
    # (prerequisite id, probability, was already visited) awaiting its branch
    pending: tuple[str, float, bool] | None = None


class _Traversal:
    """State for a single ``recommend_next_skill`` call."""

    def __init__(
        self,
        graph: DependencyGraph,
        abilities: AbilityState,
        target_skill_id: str,
        weights: BlendWeights,
        zpd_range: tuple[float, float],
        mastered_threshold: float,
        scale: float,
    ):
        self.graph = graph
        self.abilities = abilities
        self.target_skill_id = target_skill_id
        self.weights = weights
        self.zpd_min, self.zpd_max = zpd_range
        self.mastered_threshold = mastered_threshold
        self.scale = scale

        self.index = index_graph(graph)
        self.visited: set[str] = set()
        self._probabilities: dict[str, float] = {}

    # ==================== Helpers ====================

    def probability(self, skill: Skill) -> float:
        if skill.id not in self._probabilities:
            self._probabilities[skill.id] = skill_probability(
                skill, self.abilities, self.weights, self.scale
            )
        return self._probabilities[skill.id]

    def in_zpd(self, probability: float) -> bool:
        return self.zpd_min <= probability <= self.zpd_max

    def is_mastered(self, probability: float) -> bool:
        return probability >= self.mastered_threshold

    def result(
        self,
        candidate_id: str,
        probability: float,
        status: RecommendationStatus,
        traversed: tuple[str, ...],
        notes: str,
    ) -> RecommendationContext:
        return RecommendationContext(
            target_skill_id=self.target_skill_id,
            candidate_id=candidate_id,
            probability=probability,
            status=status,
            traversed=traversed,
            notes=notes,
        )

    def prerequisites_satisfied(self, skill_id: str) -> bool:
        """True when the skill exists and every prerequisite is mastered."""
        skill = self.index.skill(skill_id)
        if skill is None:
            return False
        for prereq_id in skill.prerequisites:
            prereq = self.index.skill(prereq_id)
            if prereq is None or not self.is_mastered(self.probability(prereq)):
                return False
        return True

    # ==================== Backward search ====================

    def evaluate(self, skill_id: str, trail: tuple[str, ...]) -> RecommendationContext:
        """
        Depth-first backward search from ``skill_id``.

        Runs on an explicit stack of ``_Frame``s, so chain length is bounded
        by the graph rather than the interpreter's recursion limit. ``outcome``
        carries the answer of the most recently finished branch to its parent.
        """
        stack: list[_Frame] = []
        outcome = self.enter(skill_id, trail, stack)

        while stack:
            frame = stack[-1]

            if frame.pending is not None:
                prereq_id, probability, on_cycle = frame.pending
                frame.pending = None
                if outcome.status is not RecommendationStatus.NO_CANDIDATE:
                    stack.pop()
                    continue
                # Cycle hits are never recorded as the fallback
                if frame.fallback is None and not on_cycle:
                    logger.debug(
                        f"Recording {prereq_id} as remediation fallback for {frame.skill.id}"
                    )
                    frame.fallback = self.result(
                        prereq_id, probability, RecommendationStatus.NEEDS_REMEDIATION,
                        (*frame.path, prereq_id),
                        "Nearest non-mastered prerequisite requires remediation",
                    )

            found = self.scan_prerequisites(frame)
            if found is not None:
                stack.pop()
                outcome = found
            elif frame.pending is not None:
                outcome = self.enter(frame.pending[0], frame.path, stack)
            else:
                stack.pop()
                outcome = self.evaluate_self(frame)

        return outcome

    def enter(
        self, skill_id: str, trail: tuple[str, ...], stack: list[_Frame]
    ) -> RecommendationContext | None:
        """Push a frame for ``skill_id``, or answer at once for a cycle hit or missing skill."""
        if skill_id in self.visited:
            logger.debug(f"Cycle guard hit at {skill_id} (trail: {' -> '.join(trail)})")
            return self.result(
                skill_id, 0.0, RecommendationStatus.NO_CANDIDATE, trail,
                "Cycle detected - already evaluated",
            )
        self.visited.add(skill_id)

        skill = self.index.skill(skill_id)
        if skill is None:
            return self.result(
                skill_id, 0.0, RecommendationStatus.NO_CANDIDATE, trail,
                "Skill missing from graph definition",
            )

        stack.append(_Frame(skill=skill, path=(*trail, skill_id)))
        return None

    def scan_prerequisites(self, frame: _Frame) -> RecommendationContext | None:
        """
        Resume the frame's prerequisite scan.

        Returns a prerequisite in the ZPD, or None after either setting
        ``frame.pending`` (a branch to descend into) or exhausting the list.
        """
        prerequisites = frame.skill.prerequisites
        while frame.position < len(prerequisites):
            prereq_id = prerequisites[frame.position]
            frame.position += 1

            prereq = self.index.skill(prereq_id)
            if prereq is None:
                continue
            probability = self.probability(prereq)

            if self.is_mastered(probability):
                continue
            frame.all_satisfied = False

            if self.in_zpd(probability):
                return self.result(
                    prereq_id, probability, RecommendationStatus.RECOMMENDED,
                    (*frame.path, prereq_id), "Prerequisite in ZPD window",
                )

            if probability < self.zpd_min:
                frame.pending = (prereq_id, probability, prereq_id in self.visited)
                return None

        return None

    def evaluate_self(self, frame: _Frame) -> RecommendationContext:
        skill, path = frame.skill, frame.path
        probability = self.probability(skill)
        is_target = skill.id == self.target_skill_id

        if self.in_zpd(probability):
            return self.result(
                skill.id, probability, RecommendationStatus.RECOMMENDED, path,
                "Gate reopened - target is in ZPD" if is_target else "Candidate skill in ZPD",
            )

        if self.is_mastered(probability):
            if is_target:
                advanced = self.advance(skill, path)
                if advanced is not None:
                    return advanced
            return self.result(
                skill.id, probability, RecommendationStatus.AUTO_MASTERED, path,
                "Target appears mastered; advance to successors"
                if is_target
                else "Prerequisite appears mastered",
            )

        if frame.all_satisfied:
            return self.result(
                skill.id, probability, RecommendationStatus.NEEDS_REMEDIATION, path,
                "Reached root skill outside ZPD - remediation suggested"
                if not skill.prerequisites
                else "Prerequisites satisfied but skill outside ZPD - remediation suggested",
            )

        if frame.fallback is not None:
            return frame.fallback

        return self.result(
            skill.id, probability, RecommendationStatus.NO_CANDIDATE, path,
            "No candidate found in ZPD; consider adjusting target",
        )

    # ==================== Forward advancement ====================

    def advance(self, skill: Skill, path: tuple[str, ...]) -> RecommendationContext | None:
        """
        Breadth-first search over dependents whose prerequisites are all
        mastered. Auto-mastered dependents extend the search.
        """
        queue = deque(
            dependent_id
            for dependent_id in self.index.dependents_of(skill.id)
            if self.prerequisites_satisfied(dependent_id)
        )
        logger.debug(f"Advancing past mastered {skill.id}: {list(queue)}")

        while queue:
            current = queue.popleft()
            result = self.evaluate(current, path)
            if result.is_actionable:
                return result
            if result.status is RecommendationStatus.AUTO_MASTERED:
                queue.extend(
                    next_id
                    for next_id in self.index.dependents_of(current)
                    if next_id not in self.visited and self.prerequisites_satisfied(next_id)
                )

        if skill.id == self.graph.start_skill_id:
            chosen = self.best_direct_dependent(skill)
            if chosen is not None and chosen not in self.visited:
                forward = self.evaluate(chosen, path)
                if forward.status is not RecommendationStatus.NO_CANDIDATE:
                    return forward

        return None

    def best_direct_dependent(self, skill: Skill) -> str | None:
        """
        Single-hop heuristic for the start skill.

        Prefer a dependent in the ZPD closest to the mastered threshold
        (ties: higher probability), else the most probable dependent.
        """
        scored: list[tuple[str, float]] = []
        for dependent_id in self.index.dependents_of(skill.id):
            dependent = self.index.skill(dependent_id)
            if dependent is not None:
                scored.append((dependent_id, self.probability(dependent)))
        if not scored:
            return None

        in_zpd = [(sid, p) for sid, p in scored if self.in_zpd(p)]
        if in_zpd:
            return min(
                in_zpd, key=lambda item: (abs(item[1] - self.mastered_threshold), -item[1])
            )[0]
        return max(scored, key=lambda item: item[1])[0]


def recommend_next_skill(
    graph: DependencyGraph,
    abilities: AbilityState,
    target_skill_id: str,
    zpd_range: tuple[float, float] | None = None,
    blend_weights: BlendWeights | None = None,
    mastered_threshold: float | None = None,
    constants: CoreConstants | None = None,
) -> RecommendationContext:
    """
    Select the next skill to present for ``target_skill_id``.

    Args:
        graph: Dependency graph
        abilities: Ability snapshot (never mutated)
        target_skill_id: Skill the learner is working toward
        zpd_range: (min, max) probability band, defaults to constants
        blend_weights: Per-level weights, defaults to constants
        mastered_threshold: Probability treated as mastered, defaults to constants
        constants: Configuration snapshot (defaults to the current one)

    Returns:
        RecommendationContext with status, candidate and traversal trail
    """
    constants = constants or get_core_constants()
    traversal = _Traversal(
        graph=graph,
        abilities=abilities,
        target_skill_id=target_skill_id,
        weights=blend_weights or constants.blend_weights,
        zpd_range=zpd_range or constants.zpd_range,
        mastered_threshold=(
            constants.mastered_threshold if mastered_threshold is None else mastered_threshold
        ),
        scale=constants.scale,
    )
    recommendation = traversal.evaluate(target_skill_id, ())
    logger.debug(
        f"Recommendation for {target_skill_id}: {recommendation.status.value} "
        f"-> {recommendation.candidate_id} (p={recommendation.probability:.3f})"
    )
    return recommendation
