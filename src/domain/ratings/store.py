"""Persistence contract consumed by the rating services."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import datetime
from typing import Protocol, runtime_checkable

from domain.common import CurrentRating, MapResult, RatingRecord, Season, Team


@runtime_checkable
class RatingStore(Protocol):
    """Each write method is one atomic transaction."""

    def active_teams(self) -> list[Team]: ...

    def get_active_season(self) -> Season | None: ...

    def get_season(self, year: int) -> Season | None: ...

    def list_seasons(self) -> list[Season]: ...

    def start_season(
        self,
        *,
        year: int,
        start_date: datetime,
        now: datetime,
        expected_active_season_id: int | None,
        baseline: Sequence[RatingRecord],
    ) -> Season:
        """End the expected active season, insert the new one and its baseline.

        Raises ``SeasonConflictError`` when the active season is no longer
        ``expected_active_season_id``.
        """
        ...

    def insert_closed_season(
        self,
        *,
        year: int,
        start_date: datetime,
        end_date: datetime,
        baseline: Sequence[RatingRecord],
    ) -> Season: ...

    def reset_ratings(self, baseline: Sequence[RatingRecord]) -> None:
        """Drop all rating history, unprocess every map and insert the baseline."""
        ...

    def fetch_pending_map_results(self) -> list[MapResult]: ...

    def latest_rating_before(
        self,
        *,
        team_id: int,
        map_name: str,
        before: datetime,
        since: datetime,
    ) -> RatingRecord | None: ...

    def record_map_result(self, map_result_id: int, records: Sequence[RatingRecord]) -> None: ...

    def ratings_since(self, since: datetime) -> list[RatingRecord]: ...

    def ratings_between(
        self,
        *,
        team_ids: Iterable[int],
        since: datetime,
        before: datetime,
    ) -> list[RatingRecord]: ...

    def replace_current_ratings(self, season_id: int, rows: Sequence[CurrentRating]) -> None: ...

    def current_ratings(self, season_id: int) -> list[CurrentRating]: ...


__all__ = ["RatingStore"]
