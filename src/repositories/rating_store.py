"""SQLAlchemy implementation of the rating store."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence
from datetime import datetime
from typing import TypeVar

from sqlalchemy import delete, insert, select, update
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from db import run_with_retry
from domain.common import CurrentRating, MapResult, RatingRecord, Season, Team
from domain.errors import SeasonConflictError
from models import (
    Base,
    EloRatingCurrentModel,
    EloRatingModel,
    MapResultModel,
    SeasonModel,
    TeamModel,
)

T = TypeVar("T")


def ensure_schema(engine: Engine) -> None:
    """Create all tables and indexes when missing."""
    Base.metadata.create_all(engine, checkfirst=True)


def _to_season(row: SeasonModel) -> Season:
    return Season(
        id=row.id,
        year=row.year,
        start_date=row.start_date,
        end_date=row.end_date,
        is_active=row.is_active,
    )


def _to_record(row: EloRatingModel) -> RatingRecord:
    return RatingRecord(
        team_id=row.team_id,
        map_name=row.map_name,
        rating=float(row.rating),
        rating_date=row.rating_date,
        map_result_id=row.map_result_id,
    )


def _record_to_row(record: RatingRecord) -> dict[str, object]:
    return {
        "team_id": record.team_id,
        "map_name": record.map_name,
        "rating": record.rating,
        "rating_date": record.rating_date,
        "map_result_id": record.map_result_id,
    }


class SqlAlchemyRatingStore:
    """Each public method runs in its own transaction with transient-failure retry."""

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        *,
        max_retries: int = 3,
        backoff_factor: float = 2.0,
    ) -> None:
        self.session_factory = session_factory
        self.max_retries = max_retries
        self.backoff_factor = backoff_factor

    def _run(self, description: str, work: Callable[[Session], T]) -> T:
        def operation() -> T:
            with self.session_factory() as session:
                with session.begin():
                    return work(session)

        return run_with_retry(
            operation,
            description=description,
            max_retries=self.max_retries,
            backoff_factor=self.backoff_factor,
        )

    def active_teams(self) -> list[Team]:
        def work(session: Session) -> list[Team]:
            rows = session.execute(
                select(TeamModel).where(TeamModel.is_active.is_(True)).order_by(TeamModel.id)
            ).scalars()
            return [Team(id=row.id, slug=row.slug, name=row.name, is_active=row.is_active) for row in rows]

        return self._run("active_teams", work)

    def teams_by_slug(self, slugs: Iterable[str]) -> dict[str, Team]:
        slugs = list(slugs)

        def work(session: Session) -> dict[str, Team]:
            rows = session.execute(select(TeamModel).where(TeamModel.slug.in_(slugs))).scalars()
            return {row.slug: Team(id=row.id, slug=row.slug, name=row.name, is_active=row.is_active) for row in rows}

        return self._run("teams_by_slug", work)

    def get_active_season(self) -> Season | None:
        def work(session: Session) -> Season | None:
            row = session.execute(
                select(SeasonModel).where(SeasonModel.is_active.is_(True)).order_by(SeasonModel.year.desc())
            ).scalars().first()
            return None if row is None else _to_season(row)

        return self._run("get_active_season", work)

    def get_season(self, year: int) -> Season | None:
        def work(session: Session) -> Season | None:
            row = session.execute(select(SeasonModel).where(SeasonModel.year == year)).scalar_one_or_none()
            return None if row is None else _to_season(row)

        return self._run("get_season", work)

    def list_seasons(self) -> list[Season]:
        def work(session: Session) -> list[Season]:
            rows = session.execute(select(SeasonModel).order_by(SeasonModel.year)).scalars()
            return [_to_season(row) for row in rows]

        return self._run("list_seasons", work)

    def start_season(
        self,
        *,
        year: int,
        start_date: datetime,
        now: datetime,
        expected_active_season_id: int | None,
        baseline: Sequence[RatingRecord],
    ) -> Season:
        def work(session: Session) -> Season:
            active_ids = list(
                session.execute(
                    select(SeasonModel.id).where(SeasonModel.is_active.is_(True)).with_for_update()
                ).scalars()
            )
            expected = [] if expected_active_season_id is None else [expected_active_season_id]
            if active_ids != expected:
                raise SeasonConflictError(
                    f"active season changed (expected {expected_active_season_id}, found {active_ids})"
                )

            if expected_active_season_id is not None:
                session.execute(
                    update(SeasonModel)
                    .where(SeasonModel.id == expected_active_season_id)
                    .values(is_active=False, end_date=now)
                )

            season = SeasonModel(year=year, start_date=start_date, end_date=None, is_active=True)
            session.add(season)
            if baseline:
                session.execute(insert(EloRatingModel), [_record_to_row(record) for record in baseline])
            session.flush()
            return _to_season(season)

        return self._run("start_season", work)

    def insert_closed_season(
        self,
        *,
        year: int,
        start_date: datetime,
        end_date: datetime,
        baseline: Sequence[RatingRecord],
    ) -> Season:
        def work(session: Session) -> Season:
            season = SeasonModel(year=year, start_date=start_date, end_date=end_date, is_active=False)
            session.add(season)
            if baseline:
                session.execute(insert(EloRatingModel), [_record_to_row(record) for record in baseline])
            session.flush()
            return _to_season(season)

        return self._run("insert_closed_season", work)

    def reset_ratings(self, baseline: Sequence[RatingRecord]) -> None:
        def work(session: Session) -> None:
            session.execute(delete(EloRatingCurrentModel))
            session.execute(delete(EloRatingModel))
            session.execute(update(MapResultModel).values(processed=False))
            if baseline:
                session.execute(insert(EloRatingModel), [_record_to_row(record) for record in baseline])

        self._run("reset_ratings", work)

    def fetch_pending_map_results(self) -> list[MapResult]:
        def work(session: Session) -> list[MapResult]:
            rows = session.execute(
                select(MapResultModel)
                .where(MapResultModel.processed.is_(False))
                .order_by(
                    MapResultModel.completed_at.is_(None),
                    MapResultModel.completed_at,
                    MapResultModel.id,
                )
            ).scalars()
            return [
                MapResult(
                    id=row.id,
                    map_name=row.map_name,
                    winner_team_id=row.winner_team_id,
                    loser_team_id=row.loser_team_id,
                    winner_rounds=row.winner_rounds,
                    loser_rounds=row.loser_rounds,
                    completed_at=row.completed_at,
                    processed=row.processed,
                    match_id=row.match_id,
                )
                for row in rows
            ]

        return self._run("fetch_pending_map_results", work)

    def latest_rating_before(
        self,
        *,
        team_id: int,
        map_name: str,
        before: datetime,
        since: datetime,
    ) -> RatingRecord | None:
        def work(session: Session) -> RatingRecord | None:
            row = session.execute(
                select(EloRatingModel)
                .where(
                    EloRatingModel.team_id == team_id,
                    EloRatingModel.map_name == map_name,
                    EloRatingModel.rating_date < before,
                    EloRatingModel.rating_date >= since,
                )
                .order_by(EloRatingModel.rating_date.desc(), EloRatingModel.id.desc())
                .limit(1)
            ).scalar_one_or_none()
            return None if row is None else _to_record(row)

        return self._run("latest_rating_before", work)

    def record_map_result(self, map_result_id: int, records: Sequence[RatingRecord]) -> None:
        def work(session: Session) -> None:
            session.execute(insert(EloRatingModel), [_record_to_row(record) for record in records])
            session.execute(
                update(MapResultModel).where(MapResultModel.id == map_result_id).values(processed=True)
            )

        self._run("record_map_result", work)

    def ratings_since(self, since: datetime) -> list[RatingRecord]:
        def work(session: Session) -> list[RatingRecord]:
            rows = session.execute(
                select(EloRatingModel)
                .where(EloRatingModel.rating_date >= since)
                .order_by(EloRatingModel.rating_date, EloRatingModel.id)
            ).scalars()
            return [_to_record(row) for row in rows]

        return self._run("ratings_since", work)

    def ratings_between(
        self,
        *,
        team_ids: Iterable[int],
        since: datetime,
        before: datetime,
    ) -> list[RatingRecord]:
        team_ids = list(team_ids)

        def work(session: Session) -> list[RatingRecord]:
            rows = session.execute(
                select(EloRatingModel)
                .where(
                    EloRatingModel.team_id.in_(team_ids),
                    EloRatingModel.rating_date >= since,
                    EloRatingModel.rating_date < before,
                )
                .order_by(EloRatingModel.rating_date, EloRatingModel.id)
            ).scalars()
            return [_to_record(row) for row in rows]

        return self._run("ratings_between", work)

    def replace_current_ratings(self, season_id: int, rows: Sequence[CurrentRating]) -> None:
        def work(session: Session) -> None:
            session.execute(delete(EloRatingCurrentModel).where(EloRatingCurrentModel.season_id == season_id))
            if rows:
                session.execute(
                    insert(EloRatingCurrentModel),
                    [
                        {
                            "season_id": row.season_id,
                            "team_id": row.team_id,
                            "map_name": row.map_name,
                            "rating": row.rating,
                            "rating_date": row.rating_date,
                        }
                        for row in rows
                    ],
                )

        self._run("replace_current_ratings", work)

    def current_ratings(self, season_id: int) -> list[CurrentRating]:
        def work(session: Session) -> list[CurrentRating]:
            rows = session.execute(
                select(EloRatingCurrentModel)
                .where(EloRatingCurrentModel.season_id == season_id)
                .order_by(EloRatingCurrentModel.team_id, EloRatingCurrentModel.map_name)
            ).scalars()
            return [
                CurrentRating(
                    team_id=row.team_id,
                    season_id=row.season_id,
                    map_name=row.map_name,
                    rating=float(row.rating),
                    rating_date=row.rating_date,
                )
                for row in rows
            ]

        return self._run("current_ratings", work)

    def current_ratings_by_slug(self, season_id: int) -> dict[str, dict[str, float]]:
        """Snapshot for one season as ``{team_slug: {map_name: rating}}``."""

        def work(session: Session) -> dict[str, dict[str, float]]:
            rows = session.execute(
                select(TeamModel.slug, EloRatingCurrentModel.map_name, EloRatingCurrentModel.rating)
                .join(TeamModel, TeamModel.id == EloRatingCurrentModel.team_id)
                .where(EloRatingCurrentModel.season_id == season_id)
            ).all()
            grouped: dict[str, dict[str, float]] = {}
            for slug, map_name, rating in rows:
                grouped.setdefault(slug, {})[map_name] = float(rating)
            return grouped

        return self._run("current_ratings_by_slug", work)


__all__ = ["SqlAlchemyRatingStore", "ensure_schema"]
