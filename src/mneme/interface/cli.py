"""mneme CLI: card authoring, reviews, stats and study schedules."""

import asyncio
import json
import logging
import sys
from dataclasses import asdict, is_dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Annotated, Any

import typer

from mneme.application.config import AppConfig, resolve_config
from mneme.domain.errors import MnemeError
from mneme.domain.models import Result
from mneme.domain.schedule.models import StudyPreferences, TimeWindow

# ---------------------------------------------------------------------------
# Root app
# ---------------------------------------------------------------------------

app = typer.Typer(
    help="mneme: spaced-repetition scheduling for flashcards.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

config_app = typer.Typer(help="Manage mneme configuration.")
app.add_typer(config_app, name="config")

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(levelname)s:%(name)s:%(message)s",
    stream=sys.stderr,
)
logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _json_default(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (set, frozenset, tuple)):
        return list(value)
    if isinstance(value, Path):
        return str(value)
    if isinstance(value, Exception):
        return f"{type(value).__name__}: {value}"
    raise TypeError(f"Not JSON serializable: {type(value).__name__}")


def to_json(value: Any) -> str:
    if is_dataclass(value):
        value = asdict(value)
    elif isinstance(value, list):
        value = [asdict(v) if is_dataclass(v) else v for v in value]
    return json.dumps(value, indent=2, default=_json_default)


def _resolve(ctx: typer.Context, **overrides: Any) -> AppConfig:
    overrides["verbose"] = 1 + (ctx.obj.get("verbose_bonus", 0) if ctx.obj else 0)
    config = resolve_config(overrides)
    if config.verbose > 1:
        logging.getLogger("mneme").setLevel(logging.DEBUG)
    return config


def _service(config: AppConfig):
    from mneme.application.factory import build_learning_service

    return build_learning_service(config)


def _unwrap(result: Result) -> Any:
    if not result.ok:
        typer.secho(f"Error: {result.error}", fg="red", err=True)
        raise typer.Exit(1)
    return result.value


BackendOpt = Annotated[str | None, typer.Option(help="Storage backend: sqlite, memory.")]
DbOpt = Annotated[Path | None, typer.Option("--db", help="SQLite database path.")]


# ---------------------------------------------------------------------------
# Global callback
# ---------------------------------------------------------------------------


@app.callback()
def main_callback(
    ctx: typer.Context,
    verbose: Annotated[
        int,
        typer.Option(
            "--verbose", "-v", count=True, help="Increase verbosity. Repeat for more detail."
        ),
    ] = 0,
):
    """Global settings for mneme."""
    ctx.ensure_object(dict)
    ctx.obj["verbose_bonus"] = verbose


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@app.command()
def add(
    ctx: typer.Context,
    owner: Annotated[str, typer.Argument(help="Owner (user) id.")],
    front: Annotated[str, typer.Argument(help="Front side text.")],
    back: Annotated[str, typer.Argument(help="Back side text.")],
    topic: Annotated[str | None, typer.Option(help="Topic id.")] = None,
    backend: BackendOpt = None,
    db: DbOpt = None,
):
    """[bold green]Add[/bold green] a new card, due immediately."""
    config = _resolve(ctx, backend=backend, database_path=db)
    card = _unwrap(asyncio.run(_service(config).create_card(owner, front, back, topic_id=topic)))
    typer.echo(to_json(card))


@app.command()
def review(
    ctx: typer.Context,
    card_id: Annotated[str, typer.Argument(help="Card id.")],
    rating: Annotated[
        int, typer.Argument(help="Difficulty rating: 1 (forgotten) to 5 (perfect recall).")
    ],
    backend: BackendOpt = None,
    db: DbOpt = None,
):
    """Record a review and reschedule the card."""
    config = _resolve(ctx, backend=backend, database_path=db)
    result = asyncio.run(_service(config).record_review(card_id, rating))

    if not result.ok:
        typer.secho(f"Review failed: {result.error}", fg="red", err=True)
        raise typer.Exit(1)

    card = result.card
    typer.secho(
        f"Next review: {card.next_review_at.isoformat()} "
        f"(reps={card.repetition_count}, ef={card.easiness_factor:.2f})",
        fg="green",
    )


@app.command()
def due(
    ctx: typer.Context,
    owner: Annotated[str, typer.Argument(help="Owner (user) id.")],
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON.")] = False,
    backend: BackendOpt = None,
    db: DbOpt = None,
):
    """List cards due now."""
    config = _resolve(ctx, backend=backend, database_path=db)
    cards = _unwrap(asyncio.run(_service(config).get_due_cards(owner)))

    if json_output:
        typer.echo(to_json(cards))
        return

    if not cards:
        typer.secho("No cards due.", fg="green")
        return
    typer.echo(f"Due cards: {len(cards)}")
    for card in cards:
        typer.echo(f"  {card.card_id}  {card.front[:60]}")


@app.command()
def stats(
    ctx: typer.Context,
    owner: Annotated[str, typer.Argument(help="Owner (user) id.")],
    backend: BackendOpt = None,
    db: DbOpt = None,
):
    """Show learning statistics as JSON."""
    config = _resolve(ctx, backend=backend, database_path=db)
    summary = _unwrap(asyncio.run(_service(config).get_learning_stats(owner)))
    typer.echo(to_json(summary))


@app.command()
def retention(
    ctx: typer.Context,
    owner: Annotated[str, typer.Argument(help="Owner (user) id.")],
    backend: BackendOpt = None,
    db: DbOpt = None,
):
    """Show current retention estimates per card and topic."""
    config = _resolve(ctx, backend=backend, database_path=db)
    snapshot = _unwrap(asyncio.run(_service(config).get_retention_snapshot(owner)))
    typer.echo(to_json(snapshot))


@app.command()
def schedule(
    ctx: typer.Context,
    owner: Annotated[str, typer.Argument(help="Owner (user) id.")],
    window: Annotated[
        list[TimeWindow] | None,
        typer.Option("--window", "-w", help="Available time window (repeatable)."),
    ] = None,
    max_minutes: Annotated[
        int | None, typer.Option(help="Maximum study session length in minutes.")
    ] = None,
    target_retention: Annotated[
        float | None, typer.Option(help="Target retention (0-1).")
    ] = None,
    backend: BackendOpt = None,
    db: DbOpt = None,
):
    """Build an optimized study schedule."""
    config = _resolve(ctx, backend=backend, database_path=db)
    defaults = config.study_preferences()

    try:
        prefs = StudyPreferences(
            available_time_windows=(
                frozenset(window) if window else defaults.available_time_windows
            ),
            max_session_minutes=(
                max_minutes if max_minutes is not None else defaults.max_session_minutes
            ),
            target_retention=(
                target_retention if target_retention is not None else defaults.target_retention
            ),
            minutes_per_card=defaults.minutes_per_card,
        )
    except MnemeError as e:
        typer.secho(f"Invalid preferences: {e}", fg="red", err=True)
        raise typer.Exit(2) from None

    plan = _unwrap(asyncio.run(_service(config).generate_study_schedule(owner, prefs)))
    typer.echo(to_json(plan))


@app.command()
def preview(
    ctx: typer.Context,
    card_id: Annotated[str, typer.Argument(help="Card id.")],
    backend: BackendOpt = None,
    db: DbOpt = None,
):
    """Show the interval each rating would give the card now."""
    config = _resolve(ctx, backend=backend, database_path=db)
    intervals = _unwrap(asyncio.run(_service(config).preview_intervals(card_id)))

    for rating, days in intervals.items():
        typer.echo(f"  {rating}: {days} day{'s' if days != 1 else ''}")


@app.command()
def serve(
    port: Annotated[int | None, typer.Option(help="Port to bind the server to.")] = None,
    host: Annotated[str | None, typer.Option(help="Host to bind the server to.")] = None,
    reload: Annotated[bool, typer.Option(help="Enable auto-reload.")] = False,
):
    """Run the HTTP API."""
    import uvicorn

    config = resolve_config()
    uvicorn.run(
        "mneme.server:app",
        host=host or config.server_host,
        port=port or config.server_port,
        reload=reload,
    )


# ---------------------------------------------------------------------------
# Config subgroup
# ---------------------------------------------------------------------------


@config_app.command("show")
def config_show():
    """Display final resolved configuration."""
    config = resolve_config()
    typer.echo(json.dumps(config.model_dump(), indent=2, default=_json_default))
