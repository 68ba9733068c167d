#!/usr/bin/env python3
"""Monte-Carlo tournament simulations from stored per-map ratings."""

from __future__ import annotations

import sys
from datetime import datetime, time, timezone
from pathlib import Path
from typing import Annotated, Optional

import typer

ROOT_DIR = Path(__file__).resolve().parents[1]
SRC_DIR = ROOT_DIR / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from db import DEFAULT_DB_URL, create_db_engine, create_session_factory
from domain.errors import RequestValidationError, VetoError
from domain.ratings.config import DEFAULT_RATING_CONFIG, load_rating_config
from domain.ratings.engine import RatingEngine
from domain.simulation.ratings import RatingTable, SnapshotRatingSource
from domain.simulation.service import (
    DEFAULT_TRIALS,
    backtest,
    build_artifact,
    read_artifact,
    run_simulation,
    validate_trial_count,
    write_artifact,
)
from domain.simulation.tournaments import (
    DEFAULT_TOURNAMENT_DIR,
    TournamentConfig,
    find_tournament,
    load_tournament_configs,
)
from domain.veto.protocol import get_format, pairwise_win_probabilities
from logging_config import setup_logging
from repositories.rating_store import SqlAlchemyRatingStore, ensure_schema

DEFAULT_OUTPUT_DIR = ROOT_DIR / "simulations"

app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    help="Tournament simulation jobs.",
)


def _find_tournament(tournament_id: str, config_dir: Path) -> TournamentConfig:
    try:
        return find_tournament(tournament_id, config_dir)
    except KeyError as exc:
        raise typer.BadParameter(str(exc.args[0]), param_hint="tournament_id") from exc


def _historical_ratings(
    store: SqlAlchemyRatingStore,
    engine: RatingEngine,
    tournament: TournamentConfig,
) -> dict[str, dict[str, float]]:
    """Ratings as they stood at the tournament's start date, keyed by team slug."""
    teams = store.teams_by_slug(tournament.team_slugs)
    missing = sorted(set(tournament.team_slugs) - set(teams))
    if missing:
        typer.echo(f"warning: teams not in the database: {', '.join(missing)}", err=True)
    cutoff = datetime.combine(tournament.start_date, time.min)
    by_id = engine.ratings_as_of([team.id for team in teams.values()], cutoff)
    return {slug: by_id.get(team.id, {}) for slug, team in teams.items()}


def _current_ratings(store: SqlAlchemyRatingStore) -> dict[str, dict[str, float]]:
    season = store.get_active_season()
    if season is None:
        typer.echo("error: no active season; run process_ratings.py init-seasons first", err=True)
        raise typer.Exit(code=1)
    return store.current_ratings_by_slug(season.id)


@app.command("run")
def run(
    tournament_id: Annotated[str, typer.Argument(help="Tournament id, see `list`.")],
    trials: Annotated[str, typer.Option("--trials", help="Number of Monte-Carlo trials.")] = str(DEFAULT_TRIALS),
    seed: Annotated[int, typer.Option("--seed", help="Base seed; trial i uses (seed, i).")] = 0,
    workers: Annotated[int, typer.Option("--workers", help="Worker processes.")] = 1,
    historical: Annotated[
        bool,
        typer.Option("--historical", help="Use ratings as of the tournament start instead of the current snapshot."),
    ] = False,
    output: Annotated[
        Optional[Path],
        typer.Option("--output", help="Write a JSON artifact. Defaults to simulations/<id>.json with --historical."),
    ] = None,
    top: Annotated[int, typer.Option("--top", help="Rows to print.")] = 10,
    db_url: Annotated[
        str,
        typer.Option("--db-url", help="Database URL. Defaults to the local vctpredictor postgres instance."),
    ] = DEFAULT_DB_URL,
    config_path: Annotated[Path, typer.Option("--config", help="Rating-system TOML config.")] = DEFAULT_RATING_CONFIG,
    tournament_dir: Annotated[Path, typer.Option("--tournament-dir")] = DEFAULT_TOURNAMENT_DIR,
    log_level: Annotated[str, typer.Option("--log-level")] = "INFO",
) -> None:
    """Simulate a configured tournament and print championship odds."""
    setup_logging(log_level)
    try:
        trial_count = validate_trial_count(trials)
    except RequestValidationError as exc:
        raise typer.BadParameter(str(exc), param_hint="--trials") from exc
    if workers <= 0:
        raise typer.BadParameter("--workers must be greater than 0")

    tournament = _find_tournament(tournament_id, tournament_dir)
    config = load_rating_config(config_path)
    engine = create_db_engine(db_url)
    ensure_schema(engine)
    store = SqlAlchemyRatingStore(create_session_factory(engine))

    if historical:
        ratings = _historical_ratings(store, RatingEngine(store, config), tournament)
    else:
        ratings = _current_ratings(store)

    report = run_simulation(
        trial_count,
        tournament,
        SnapshotRatingSource(ratings),
        seed=seed,
        default_rating=config.parameters.initial_rating,
        scale_factor=config.parameters.scale_factor,
        workers=workers,
    )

    typer.echo(f"{tournament.name} trials={report.completed_trials} seed={seed}")
    for team, maps in sorted(report.missing_ratings.items()):
        typer.echo(f"  default rating used for {team}: {', '.join(maps)}")
    typer.echo(f"{'#':>3}  {'team':<8} {'champ%':>7} {'final%':>7} {'top4%':>7} {'top8%':>7}")
    for rank, result in enumerate(report.results[:top], start=1):
        typer.echo(
            f"{rank:>3}  {result.team:<8} {result.championships:7.2f} {result.finalist:7.2f} "
            f"{result.top4:7.2f} {result.top8:7.2f}"
        )

    if output is None and historical:
        output = DEFAULT_OUTPUT_DIR / f"{tournament.id}.json"
    if output is not None:
        artifact = build_artifact(
            report,
            tournament,
            rating_snapshot_date=tournament.start_date if historical else datetime.now(timezone.utc).date(),
        )
        write_artifact(artifact, output)
        typer.echo(f"saved {output}")
        if artifact.actual_results is not None:
            summary = backtest(artifact)
            _echo_backtest_line(summary.actual_winner, summary.winner_rank, summary.winner_championship_pct)


def _echo_backtest_line(winner: str, rank: int | None, pct: float | None) -> None:
    if rank is None:
        typer.echo(f"actual winner {winner} was not in the simulated field")
        return
    typer.echo(f"actual winner {winner}: predicted rank #{rank} with {pct:.1f}% championship odds")


@app.command("list")
def list_tournaments(
    tournament_dir: Annotated[Path, typer.Option("--tournament-dir")] = DEFAULT_TOURNAMENT_DIR,
) -> None:
    """List configured tournaments."""
    for config in load_tournament_configs(tournament_dir):
        typer.echo(f"{config.id:<28} {config.start_date}  {config.format:<24} {config.name}")


@app.command("pairwise")
def pairwise(
    tournament_id: Annotated[str, typer.Argument(help="Tournament id, see `list`.")],
    series_format: Annotated[str, typer.Option("--format", help="Series format: BO3, BO5 or BO5_ADV.")] = "BO3",
    db_url: Annotated[
        str,
        typer.Option("--db-url", help="Database URL. Defaults to the local vctpredictor postgres instance."),
    ] = DEFAULT_DB_URL,
    config_path: Annotated[Path, typer.Option("--config", help="Rating-system TOML config.")] = DEFAULT_RATING_CONFIG,
    tournament_dir: Annotated[Path, typer.Option("--tournament-dir")] = DEFAULT_TOURNAMENT_DIR,
    log_level: Annotated[str, typer.Option("--log-level")] = "INFO",
) -> None:
    """Print head-to-head series odds between every pair of teams in a tournament."""
    setup_logging(log_level)
    try:
        fmt = get_format(series_format)
    except VetoError as exc:
        raise typer.BadParameter(str(exc), param_hint="--format") from exc

    tournament = _find_tournament(tournament_id, tournament_dir)
    config = load_rating_config(config_path)
    engine = create_db_engine(db_url)
    ensure_schema(engine)
    store = SqlAlchemyRatingStore(create_session_factory(engine))

    table = RatingTable.build(
        SnapshotRatingSource(_current_ratings(store)),
        sorted(set(tournament.seeding.values())),
        tournament.map_pool,
        config.parameters.initial_rating,
    )
    matrix = pairwise_win_probabilities(
        table.ratings, table.pool, fmt, scale_factor=config.parameters.scale_factor
    )

    typer.echo(f"{'':<8}" + "".join(f"{team:>8}" for team in table.teams))
    for team_a in table.teams:
        cells = "".join(
            f"{'-':>8}" if team_a == team_b else f"{100.0 * matrix[(team_a, team_b)]:8.1f}"
            for team_b in table.teams
        )
        typer.echo(f"{team_a:<8}{cells}")


@app.command("backtest")
def backtest_artifact(
    path: Annotated[Path, typer.Argument(help="Simulation artifact JSON written by `run`.")],
) -> None:
    """Compare a stored historical simulation against the actual results."""
    try:
        artifact = read_artifact(path)
        summary = backtest(artifact)
    except (FileNotFoundError, ValueError) as exc:
        raise typer.BadParameter(str(exc), param_hint="path") from exc

    typer.echo(f"{artifact.tournament_name} ({artifact.num_trials} trials, ratings as of {artifact.rating_snapshot_date})")
    _echo_backtest_line(summary.actual_winner, summary.winner_rank, summary.winner_championship_pct)
    typer.echo(f"predicted top4: {', '.join(summary.predicted_top4)} hits={summary.top4_hits}/4")


if __name__ == "__main__":
    app()
