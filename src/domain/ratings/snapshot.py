"""Pure reductions over rating history."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime

from domain.common import CurrentRating, RatingRecord


def season_start(year: int) -> datetime:
    """Season boundary: January 1st of the competitive year."""
    return datetime(year, 1, 1)


def latest_per_team_map(
    records: Iterable[RatingRecord],
    since: datetime,
    *,
    before: datetime | None = None,
) -> dict[tuple[int, str], RatingRecord]:
    """Keep the latest record per (team, map) dated at or after ``since``.

    When ``before`` is given only records strictly earlier than it count.
    Ties on date resolve to the record seen last.
    """
    latest: dict[tuple[int, str], RatingRecord] = {}
    for record in records:
        if record.rating_date < since:
            continue
        if before is not None and record.rating_date >= before:
            continue
        key = (record.team_id, record.map_name)
        current = latest.get(key)
        if current is None or record.rating_date >= current.rating_date:
            latest[key] = record
    return latest


def build_current_snapshot(
    records: Iterable[RatingRecord],
    *,
    season_id: int,
    since: datetime,
) -> list[CurrentRating]:
    """Materialize snapshot rows for one season, ordered by team then map."""
    latest = latest_per_team_map(records, since)
    return [
        CurrentRating(
            team_id=record.team_id,
            season_id=season_id,
            map_name=record.map_name,
            rating=record.rating,
            rating_date=record.rating_date,
        )
        for _, record in sorted(latest.items(), key=lambda item: item[0])
    ]


def ratings_by_team(records: Iterable[RatingRecord]) -> dict[int, dict[str, float]]:
    """Group records as ``{team_id: {map_name: rating}}``."""
    grouped: dict[int, dict[str, float]] = {}
    for record in records:
        grouped.setdefault(record.team_id, {})[record.map_name] = record.rating
    return grouped


__all__ = ["build_current_snapshot", "latest_per_team_map", "ratings_by_team", "season_start"]
