"""Shared record types passed between the store and the domain services."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class Team:
    id: int
    slug: str
    name: str
    is_active: bool = True


@dataclass(frozen=True)
class MapResult:
    """Outcome of one played map, as read from the store."""

    id: int
    map_name: str
    winner_team_id: int
    loser_team_id: int
    winner_rounds: int
    loser_rounds: int
    completed_at: datetime | None
    processed: bool = False
    match_id: int | None = None


@dataclass(frozen=True)
class RatingRecord:
    """One team's rating on one map at a point in time.

    ``map_result_id`` is None for season baseline records.
    """

    team_id: int
    map_name: str
    rating: float
    rating_date: datetime
    map_result_id: int | None = None


@dataclass(frozen=True)
class Season:
    id: int
    year: int
    start_date: datetime
    end_date: datetime | None
    is_active: bool


@dataclass(frozen=True)
class CurrentRating:
    """Snapshot row: latest rating per (team, map) within a season."""

    team_id: int
    season_id: int
    map_name: str
    rating: float
    rating_date: datetime


@dataclass(frozen=True)
class VetoAction:
    id: int
    match_id: int
    order_index: int
    action: str
    map_name: str
    team_id: int | None = None


@dataclass(frozen=True)
class CompletedMatch:
    id: int
    team1_id: int
    team2_id: int
    completed_at: datetime


__all__ = [
    "CompletedMatch",
    "CurrentRating",
    "MapResult",
    "RatingRecord",
    "Season",
    "Team",
    "VetoAction",
]
