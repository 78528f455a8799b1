"""
Typer CLI for the pal engine.

Commands:
    pal snapshot            - Classify every skill (mastered / ZPD / below)
    pal recommend SKILL     - Next skill to practise for a target
    pal update SKILL        - Apply correct / incorrect answers to the abilities
    pal rank                - Ranked list from a scoring strategy
    pal constants           - Show (or reset / apply) the core constants

Every command reads a dataset directory (graph.csv, prerequisites.csv,
optional abilities.csv and constants.csv) given with --data.

Usage:
    pal --help
    pal recommend S3 --data datasets/sample
    pal update S3 --correct --repeat 3 --data datasets/sample
    pal rank --algorithm modified-elo --limit 10 --data datasets/sample
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import NoReturn

import typer
from loguru import logger
from rich import print as rprint
from rich.console import Console
from rich.table import Table

from pal.adaptive import (
    AlgorithmRegistry,
    AdaptiveEngine,
    profile_from_abilities,
    recommend_next_skill,
    update_abilities_batch,
)
from pal.config import get_settings
from pal.core import (
    LEVELS,
    OutcomeEvent,
    PalError,
    RecommendationStatus,
    SkillStatus,
    apply_core_constants_csv,
    build_graph_snapshot,
    get_core_constants,
    reset_core_constants,
)
from pal.loaders import DatasetBundle, load_dataset_dir

app = typer.Typer(
    help="pal: prerequisite-aware adaptive learning engine",
    no_args_is_help=True,
)

console = Console()

DATA_OPTION = typer.Option(
    Path("."), "--data", "-d", help="Dataset directory (graph.csv, prerequisites.csv, ...)"
)

STATUS_STYLES = {
    SkillStatus.MASTERED: "green",
    SkillStatus.ZPD: "cyan",
    SkillStatus.BELOW: "red",
    RecommendationStatus.RECOMMENDED: "green",
    RecommendationStatus.AUTO_MASTERED: "cyan",
    RecommendationStatus.NEEDS_REMEDIATION: "yellow",
    RecommendationStatus.NO_CANDIDATE: "red",
}


def _fail(exc: Exception) -> NoReturn:
    rprint(f"[red]✗[/red] {exc}")
    raise typer.Exit(code=1)


def _load(data: Path) -> DatasetBundle:
    logger.info(f"Loading dataset from {data}...")
    return load_dataset_dir(data)


# ========================================
# Commands
# ========================================


@app.command("snapshot")
def snapshot(data: Path = DATA_OPTION) -> None:
    """Show the probability and status of every skill."""
    try:
        bundle = _load(data)
        result = build_graph_snapshot(bundle.graph, bundle.abilities)
    except PalError as exc:
        _fail(exc)

    table = Table(title="Skill Snapshot")
    table.add_column("Skill", style="cyan")
    table.add_column("Label")
    table.add_column("Probability", justify="right")
    table.add_column("Status")

    for entry in result.snapshot:
        skill = bundle.graph.get_skill(entry.skill_id)
        style = STATUS_STYLES[entry.status]
        table.add_row(
            entry.skill_id,
            skill.label,
            f"{entry.probability:.3f}",
            f"[{style}]{entry.status.value}[/{style}]",
        )

    console.print(table)
    rprint(
        f"  Mastered: [green]{len(result.mastered_ids)}[/green]  "
        f"ZPD: [cyan]{len(result.zpd_ids)}[/cyan]  "
        f"Below: [red]{len(result.below_ids)}[/red]"
    )


@app.command("recommend")
def recommend(
    skill_id: str = typer.Argument(..., help="Target skill id"),
    data: Path = DATA_OPTION,
) -> None:
    """Recommend the next skill to practise for a target skill."""
    try:
        bundle = _load(data)
        result = recommend_next_skill(bundle.graph, bundle.abilities, skill_id)
    except PalError as exc:
        _fail(exc)

    style = STATUS_STYLES[result.status]
    rprint(f"[bold]Target:[/bold] {result.target_skill_id}")
    rprint(f"[bold]Candidate:[/bold] {result.candidate_id} (p={result.probability:.3f})")
    rprint(f"[bold]Status:[/bold] [{style}]{result.status.value}[/{style}]")
    rprint(f"[bold]Path:[/bold] {' -> '.join(result.traversed) or '-'}")
    if result.notes:
        rprint(f"[dim]{result.notes}[/dim]")


@app.command("update")
def update(
    skill_id: str = typer.Argument(..., help="Skill that was answered"),
    correct: bool = typer.Option(True, "--correct/--incorrect", help="Answer outcome"),
    repeat: int = typer.Option(1, "--repeat", "-n", min=1, help="Number of identical answers"),
    data: Path = DATA_OPTION,
) -> None:
    """Apply answers to a skill and show the ability change per level."""
    try:
        bundle = _load(data)
        events = [OutcomeEvent(skill_id=skill_id, correct=correct) for _ in range(repeat)]
        result = update_abilities_batch(bundle.graph, bundle.abilities, events)
    except PalError as exc:
        _fail(exc)

    table = Table(title=f"Ability Update: {skill_id} ({'correct' if correct else 'incorrect'} x{repeat})")
    table.add_column("Level", style="cyan")
    table.add_column("Before", justify="right")
    table.add_column("After", justify="right")
    table.add_column("Change", justify="right")

    for level in LEVELS:
        if level not in result.ability_before:
            continue
        before = result.ability_before[level]
        after = result.ability_after[level]
        delta = after - before
        color = "green" if delta > 0 else "red" if delta < 0 else "dim"
        table.add_row(
            level.display_name, f"{before:.4f}", f"{after:.4f}", f"[{color}]{delta:+.4f}[/{color}]"
        )

    console.print(table)
    rprint(
        f"  Probability: {result.probability_before:.3f} -> "
        f"[bold]{result.probability_after:.3f}[/bold]"
    )


@app.command("rank")
def rank(
    algorithm: str | None = typer.Option(None, "--algorithm", "-a", help="Scoring strategy id"),
    limit: int | None = typer.Option(None, "--limit", "-l", min=0, help="Entries to show"),
    allow_blocked: bool = typer.Option(False, "--allow-blocked", help="Keep blocked skills"),
    data: Path = DATA_OPTION,
) -> None:
    """Rank skills for the learner with a scoring strategy."""
    config = get_settings().get_ranking_config()
    algorithm_id = algorithm or config["algorithm"]

    try:
        bundle = _load(data)
        engine = AdaptiveEngine(bundle.graph, algorithm=algorithm_id)
        profile = profile_from_abilities(bundle.graph, bundle.abilities)
        ranked = engine.get_recommendation_list(
            profile,
            limit=config["limit"] if limit is None else limit,
            prerequisite_threshold=config["prerequisite_threshold"],
            allow_blocked=allow_blocked,
        )
    except PalError as exc:
        _fail(exc)

    table = Table(title=f"Ranked Skills ({engine.algorithm.title})")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Skill", style="cyan")
    table.add_column("Outcome")
    table.add_column("Mastery", justify="right")
    table.add_column("Score", justify="right")
    table.add_column("Reason")

    for position, item in enumerate(ranked, start=1):
        table.add_row(
            str(position),
            item.skill_id,
            item.outcome_label,
            f"{item.mastery * 100:.0f}%",
            f"{item.score:.3f}",
            item.reason,
        )

    console.print(table)
    if not ranked:
        rprint("[yellow]⚠[/yellow] No unblocked skills to rank")


@app.command("constants")
def constants(
    reset: bool = typer.Option(False, "--reset", help="Restore initial values"),
    apply: Path | None = typer.Option(None, "--apply", help="Apply a constants CSV"),
) -> None:
    """Show the core constants in effect."""
    try:
        if reset:
            reset_core_constants()
            rprint("[green]✓[/green] Core constants reset")
        if apply is not None:
            if not apply.exists():
                rprint(f"[red]Error:[/red] Path not found: {apply}")
                raise typer.Exit(1)
            apply_core_constants_csv(apply.read_text(encoding="utf-8"))
            rprint(f"[green]✓[/green] Applied {apply}")
    except PalError as exc:
        _fail(exc)

    current = get_core_constants()

    table = Table(title="Core Constants")
    table.add_column("Level", style="cyan")
    table.add_column("Blend Weight", justify="right")
    table.add_column("Learning Rate", justify="right")
    for level in LEVELS:
        table.add_row(
            level.display_name,
            f"{current.blend_weights.for_level(level):.3f}",
            f"{current.learning_rates.for_level(level):.3f}",
        )
    console.print(table)

    rprint(f"  ZPD range: [{current.zpd_min:.2f}, {current.zpd_max:.2f}]")
    rprint(f"  Mastered threshold: {current.mastered_threshold:.2f}")
    rprint(f"  Scale: {current.scale:g}")


@app.command("algorithms")
def algorithms() -> None:
    """List the registered scoring strategies."""
    table = Table(title="Scoring Strategies")
    table.add_column("Id", style="cyan")
    table.add_column("Title")
    table.add_column("Stateful", justify="center")
    for algorithm_id, algorithm_class in AlgorithmRegistry.list_algorithms().items():
        table.add_row(
            algorithm_id, algorithm_class.title, "✓" if algorithm_class.supports_update else ""
        )
    console.print(table)


def main() -> None:
    """Entry point for the CLI."""
    settings = get_settings()

    logger.remove()
    logger.add(
        sys.stderr,
        level=settings.log_level,
        format="<level>{message}</level>",
    )
    if settings.log_file:
        logger.add(settings.log_file, level=settings.log_level, rotation="10 MB")

    if settings.constants_csv:
        try:
            apply_core_constants_csv(Path(settings.constants_csv).read_text(encoding="utf-8"))
        except (OSError, PalError) as exc:
            rprint(f"[red]✗[/red] Could not apply {settings.constants_csv}: {exc}")
            sys.exit(1)

    app()


if __name__ == "__main__":
    main()
