#!/usr/bin/env python3
"""Per-map Elo jobs: process pending maps, manage seasons, show the current snapshot."""

from __future__ import annotations

import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Annotated, Optional

import typer

ROOT_DIR = Path(__file__).resolve().parents[1]
SRC_DIR = ROOT_DIR / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from db import DEFAULT_DB_URL, create_db_engine, create_session_factory
from domain.errors import NoActiveSeasonError, SeasonConflictError, SeasonExistsError
from domain.ratings.config import DEFAULT_RATING_CONFIG, RatingSystemConfig, load_rating_config
from domain.ratings.engine import RatingEngine
from domain.ratings.seasons import SeasonManager
from logging_config import setup_logging
from repositories.rating_store import SqlAlchemyRatingStore, ensure_schema

app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    help="Per-map Elo rating jobs.",
)

DbUrlOption = Annotated[
    str,
    typer.Option("--db-url", help="Database URL. Defaults to the local vctpredictor postgres instance."),
]
ConfigOption = Annotated[
    Path,
    typer.Option("--config", help="Rating-system TOML config."),
]
LogLevelOption = Annotated[str, typer.Option("--log-level")]


def _load_config(config_path: Path) -> RatingSystemConfig:
    try:
        return load_rating_config(config_path)
    except (FileNotFoundError, ValueError) as exc:
        raise typer.BadParameter(str(exc), param_hint="--config") from exc


def _build(db_url: str, config_path: Path) -> tuple[SqlAlchemyRatingStore, RatingSystemConfig]:
    config = _load_config(config_path)
    engine = create_db_engine(db_url)
    ensure_schema(engine)
    store = SqlAlchemyRatingStore(create_session_factory(engine))
    return store, config


@app.command("process")
def process_pending(
    db_url: DbUrlOption = DEFAULT_DB_URL,
    config_path: ConfigOption = DEFAULT_RATING_CONFIG,
    log_level: LogLevelOption = "INFO",
    log_dir: Annotated[Optional[Path], typer.Option("--log-dir")] = None,
) -> None:
    """Rate all unprocessed maps in completion order and rebuild the current snapshot."""
    setup_logging(log_level, log_dir=log_dir)
    store, config = _build(db_url, config_path)
    engine = RatingEngine(store, config)

    try:
        summary = engine.process_pending()
    except NoActiveSeasonError as exc:
        typer.echo(f"error: {exc}", err=True)
        raise typer.Exit(code=1) from exc

    typer.echo(
        "completed "
        f"processed={summary.processed} "
        f"skipped={summary.skipped} "
        f"failed={len(summary.failed)} "
        f"season={summary.season_year} "
        f"snapshot_rows={summary.snapshot_rows}"
    )
    for issue in summary.failed:
        typer.echo(f"  {issue.kind} map_result_id={issue.map_result_id}: {issue.detail}")


@app.command("create-season")
def create_season(
    year: Annotated[int, typer.Argument(help="Calendar year of the new season.")],
    db_url: DbUrlOption = DEFAULT_DB_URL,
    config_path: ConfigOption = DEFAULT_RATING_CONFIG,
    log_level: LogLevelOption = "INFO",
) -> None:
    """End the active season and start ``YEAR`` with baseline ratings."""
    setup_logging(log_level)
    store, config = _build(db_url, config_path)
    manager = SeasonManager(store, config)
    try:
        season = manager.create_season(year)
    except (SeasonExistsError, SeasonConflictError) as exc:
        typer.echo(f"error: {exc}", err=True)
        raise typer.Exit(code=1) from exc

    RatingEngine(store, config, manager).rebuild_current_snapshot(season)
    typer.echo(f"created season year={season.year} id={season.id} start={season.start_date.date()}")


@app.command("init-seasons")
def init_seasons(
    current_year: Annotated[
        Optional[int],
        typer.Option("--current-year", help="Year of the active season. Defaults to this year."),
    ] = None,
    db_url: DbUrlOption = DEFAULT_DB_URL,
    config_path: ConfigOption = DEFAULT_RATING_CONFIG,
    log_level: LogLevelOption = "INFO",
) -> None:
    """Create historical and current seasons on an empty season table."""
    setup_logging(log_level)
    store, config = _build(db_url, config_path)
    seasons = SeasonManager(store, config).initialize_seasons(current_year=current_year)
    for season in seasons:
        status = "active" if season.is_active else "closed"
        typer.echo(f"season year={season.year} id={season.id} {status}")


@app.command("reset")
def reset_ratings(
    yes: Annotated[
        bool,
        typer.Option("--yes", help="Confirm deleting all rating history."),
    ] = False,
    db_url: DbUrlOption = DEFAULT_DB_URL,
    config_path: ConfigOption = DEFAULT_RATING_CONFIG,
    log_level: LogLevelOption = "INFO",
) -> None:
    """Delete rating history, mark every map unprocessed and re-baseline ratings."""
    setup_logging(log_level)
    if not yes:
        raise typer.BadParameter("reset deletes all ratings; pass --yes to confirm", param_hint="--yes")
    store, config = _build(db_url, config_path)
    baseline = SeasonManager(store, config).reset_all(confirm=True)
    typer.echo(f"reset complete baseline_records={baseline} reset_year={config.seasons.reset_year}")


@app.command("show-current")
def show_current(
    map_name: Annotated[Optional[str], typer.Option("--map", help="Only show one map.")] = None,
    limit: Annotated[int, typer.Option("--limit", help="Rows to print per map.")] = 10,
    db_url: DbUrlOption = DEFAULT_DB_URL,
    config_path: ConfigOption = DEFAULT_RATING_CONFIG,
) -> None:
    """Print the top teams per map from the active season's snapshot."""
    if limit <= 0:
        raise typer.BadParameter("--limit must be greater than 0")
    store, _ = _build(db_url, config_path)
    season = store.get_active_season()
    if season is None:
        typer.echo("no active season", err=True)
        raise typer.Exit(code=1)

    by_slug = store.current_ratings_by_slug(season.id)
    by_map: dict[str, list[tuple[str, float]]] = {}
    for slug, ratings in by_slug.items():
        for rated_map, rating in ratings.items():
            by_map.setdefault(rated_map, []).append((slug, rating))

    typer.echo(f"season={season.year} as_of={datetime.now(timezone.utc):%Y-%m-%d %H:%M} UTC")
    for rated_map in sorted(by_map):
        if map_name is not None and rated_map.lower() != map_name.lower():
            continue
        typer.echo(f"\n{rated_map}")
        ranked = sorted(by_map[rated_map], key=lambda row: (-row[1], row[0]))[:limit]
        for rank, (slug, rating) in enumerate(ranked, start=1):
            typer.echo(f"{rank:>3}  {slug:<10} {rating:8.1f}")


if __name__ == "__main__":
    app()
