#!/usr/bin/env python3
"""Pick/ban optimality analysis and repair of vetoes with missing teams."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Annotated

import typer

ROOT_DIR = Path(__file__).resolve().parents[1]
SRC_DIR = ROOT_DIR / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from db import DEFAULT_DB_URL, create_db_engine, create_session_factory
from domain.ratings.config import DEFAULT_RATING_CONFIG, load_rating_config
from domain.ratings.engine import RatingEngine
from domain.veto.analysis import summarize_team_scores
from domain.veto.service import PickBanAnalyzer, propose_veto_fixes
from logging_config import setup_logging
from repositories.rating_store import SqlAlchemyRatingStore, ensure_schema
from repositories.veto_repository import SqlAlchemyVetoStore

app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    help="Pick/ban analysis jobs.",
)

DbUrlOption = Annotated[
    str,
    typer.Option("--db-url", help="Database URL. Defaults to the local vctpredictor postgres instance."),
]


@app.command("analyze")
def analyze(
    db_url: DbUrlOption = DEFAULT_DB_URL,
    config_path: Annotated[Path, typer.Option("--config", help="Rating-system TOML config.")] = DEFAULT_RATING_CONFIG,
    dry_run: Annotated[
        bool,
        typer.Option("--dry-run", help="Score matches without writing the analysis tables."),
    ] = False,
    top: Annotated[int, typer.Option("--top", help="Teams to print.")] = 15,
    log_level: Annotated[str, typer.Option("--log-level")] = "INFO",
) -> None:
    """Score every completed match with a recorded veto that has not been analyzed yet."""
    setup_logging(log_level)
    config = load_rating_config(config_path)
    engine = create_db_engine(db_url)
    ensure_schema(engine)
    session_factory = create_session_factory(engine)
    rating_store = SqlAlchemyRatingStore(session_factory)
    veto_store = SqlAlchemyVetoStore(session_factory)

    analyzer = PickBanAnalyzer(veto_store, RatingEngine(rating_store, config).ratings_as_of)
    summary = analyzer.analyze_pending(dry_run=dry_run)
    prefix = "[dry-run] " if dry_run else ""
    typer.echo(
        f"{prefix}analyzed={summary.analyzed} skipped={len(summary.skipped)} defects={summary.defects}"
    )
    if dry_run:
        return

    slugs = {team.id: team.slug for team in rating_store.active_teams()}
    scores = summarize_team_scores(veto_store.match_scores())
    typer.echo(f"{'#':>3}  {'team':<10} {'avg lost':>9} {'matches':>8}")
    for rank, score in enumerate(scores[:top], start=1):
        team = slugs.get(score.team_id, str(score.team_id))
        typer.echo(f"{rank:>3}  {team:<10} {score.average_elo_lost:9.2f} {score.matches_analyzed:>8}")


@app.command("reconcile")
def reconcile_vetoes(
    apply: Annotated[
        bool,
        typer.Option("--apply", help="Write the proposed team ids. Without it only a report is printed."),
    ] = False,
    db_url: DbUrlOption = DEFAULT_DB_URL,
    log_level: Annotated[str, typer.Option("--log-level")] = "INFO",
) -> None:
    """Propose acting teams for vetoes that have none, from turn parity."""
    setup_logging(log_level)
    engine = create_db_engine(db_url)
    ensure_schema(engine)
    veto_store = SqlAlchemyVetoStore(create_session_factory(engine))

    proposals, unresolved = propose_veto_fixes(veto_store)
    for proposal in proposals:
        typer.echo(
            f"match_id={proposal.match_id} order={proposal.order_index} "
            f"veto_id={proposal.veto_id} -> team_id={proposal.team_id}"
        )
    if unresolved:
        typer.echo(f"unresolved matches (no known first mover): {', '.join(map(str, unresolved))}")

    if not apply:
        typer.echo(f"[dry-run] proposed={len(proposals)} unresolved={len(unresolved)}")
        return
    updated = veto_store.assign_veto_teams(proposals)
    typer.echo(f"updated={updated} unresolved={len(unresolved)}")


if __name__ == "__main__":
    app()
