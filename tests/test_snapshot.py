"""Unit tests for the rating-history reductions."""

from __future__ import annotations

from datetime import datetime

from domain.common import RatingRecord
from domain.ratings.snapshot import build_current_snapshot, latest_per_team_map, season_start


def _record(team_id: int, map_name: str, rating: float, when: datetime) -> RatingRecord:
    return RatingRecord(team_id=team_id, map_name=map_name, rating=rating, rating_date=when)


def test_latest_per_team_map_drops_records_before_since() -> None:
    records = [
        _record(1, "Ascent", 1040.0, datetime(2024, 12, 20)),
        _record(1, "Bind", 990.0, datetime(2024, 11, 2)),
        _record(1, "Bind", 1010.0, datetime(2025, 2, 1)),
        _record(2, "Bind", 980.0, datetime(2025, 1, 1)),
    ]

    latest = latest_per_team_map(records, season_start(2025))

    assert set(latest) == {(1, "Bind"), (2, "Bind")}
    assert latest[(1, "Bind")].rating == 1010.0
    assert latest[(2, "Bind")].rating_date == datetime(2025, 1, 1)


def test_latest_per_team_map_respects_before_and_ties() -> None:
    records = [
        _record(1, "Lotus", 1000.0, datetime(2025, 3, 1)),
        _record(1, "Lotus", 1020.0, datetime(2025, 3, 1)),
        _record(1, "Lotus", 1050.0, datetime(2025, 4, 1)),
    ]

    latest = latest_per_team_map(records, season_start(2025), before=datetime(2025, 4, 1))

    assert latest[(1, "Lotus")].rating == 1020.0


def test_current_snapshot_only_holds_rows_from_the_season() -> None:
    records = [
        _record(2, "Haven", 1100.0, datetime(2024, 12, 31, 23, 59)),
        _record(2, "Sunset", 960.0, datetime(2025, 5, 5)),
        _record(1, "Sunset", 1040.0, datetime(2025, 5, 5)),
    ]

    rows = build_current_snapshot(records, season_id=7, since=season_start(2025))

    assert [(row.team_id, row.map_name) for row in rows] == [(1, "Sunset"), (2, "Sunset")]
    assert all(row.season_id == 7 and row.rating_date >= season_start(2025) for row in rows)
