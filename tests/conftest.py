"""Shared fixtures: an in-memory SQLite database with the full schema."""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from datetime import datetime

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from db import create_session_factory
from models import MapResultModel, MatchModel, MatchVetoModel, TeamModel
from repositories.rating_store import SqlAlchemyRatingStore, ensure_schema


@pytest.fixture
def session_factory() -> Iterator[sessionmaker[Session]]:
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    ensure_schema(engine)
    yield create_session_factory(engine)
    engine.dispose()


@pytest.fixture
def rating_store(session_factory: sessionmaker[Session]) -> SqlAlchemyRatingStore:
    return SqlAlchemyRatingStore(session_factory, max_retries=0)


def add_team(session_factory: sessionmaker[Session], slug: str, *, is_active: bool = True) -> int:
    with session_factory() as session, session.begin():
        team = TeamModel(slug=slug, name=slug.upper(), is_active=is_active)
        session.add(team)
        session.flush()
        return team.id


def add_map_result(
    session_factory: sessionmaker[Session],
    *,
    winner_team_id: int,
    loser_team_id: int,
    map_name: str = "Ascent",
    winner_rounds: int = 13,
    loser_rounds: int = 7,
    completed_at: datetime | None,
    match_id: int | None = None,
) -> int:
    with session_factory() as session, session.begin():
        row = MapResultModel(
            match_id=match_id,
            map_name=map_name,
            winner_team_id=winner_team_id,
            loser_team_id=loser_team_id,
            winner_rounds=winner_rounds,
            loser_rounds=loser_rounds,
            completed_at=completed_at,
            processed=False,
        )
        session.add(row)
        session.flush()
        return row.id


def add_match(
    session_factory: sessionmaker[Session],
    *,
    team1_id: int,
    team2_id: int,
    completed_at: datetime,
    vetoes: Sequence[tuple[str, str, int | None]] = (),
) -> int:
    """Insert a match and its vetoes given as (action, map_name, team_id) in order."""
    with session_factory() as session, session.begin():
        match = MatchModel(team1_id=team1_id, team2_id=team2_id, format="BO3", completed_at=completed_at)
        session.add(match)
        session.flush()
        for order_index, (action, map_name, team_id) in enumerate(vetoes, start=1):
            session.add(
                MatchVetoModel(
                    match_id=match.id,
                    order_index=order_index,
                    action=action,
                    map_name=map_name,
                    team_id=team_id,
                )
            )
        return match.id
