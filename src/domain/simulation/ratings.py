"""Resolve per-map team ratings once before a simulation run."""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Protocol

logger = logging.getLogger(__name__)


class RatingSource(Protocol):
    def rating(self, team: str, map_name: str) -> float | None: ...


class SnapshotRatingSource:
    """Ratings from a ``{team: {map: rating}}`` mapping."""

    def __init__(self, ratings: Mapping[str, Mapping[str, float]]) -> None:
        self.ratings = ratings

    def rating(self, team: str, map_name: str) -> float | None:
        value = self.ratings.get(team, {}).get(map_name)
        return None if value is None else float(value)


@dataclass(frozen=True)
class RatingTable:
    """Resolved ratings for every team and pool map, plus what had to be defaulted."""

    teams: tuple[str, ...]
    pool: tuple[str, ...]
    ratings: dict[str, dict[str, float]]
    default_rating: float
    missing: tuple[tuple[str, str], ...] = ()

    @classmethod
    def build(
        cls,
        source: RatingSource,
        teams: Sequence[str],
        pool: Sequence[str],
        default: float,
    ) -> RatingTable:
        ratings: dict[str, dict[str, float]] = {}
        missing: list[tuple[str, str]] = []
        for team in teams:
            by_map: dict[str, float] = {}
            for map_name in pool:
                value = source.rating(team, map_name)
                if value is None:
                    missing.append((team, map_name))
                    value = default
                by_map[map_name] = value
            ratings[team] = by_map

        if missing:
            logger.warning(
                "Using default rating %.1f for %d missing team/map pairs", default, len(missing)
            )
        return cls(
            teams=tuple(teams),
            pool=tuple(pool),
            ratings=ratings,
            default_rating=default,
            missing=tuple(missing),
        )

    def for_team(self, team: str) -> dict[str, float]:
        return self.ratings[team]

    def missing_by_team(self) -> dict[str, list[str]]:
        result: dict[str, list[str]] = {}
        for team, map_name in self.missing:
            result.setdefault(team, []).append(map_name)
        return result


__all__ = ["RatingSource", "RatingTable", "SnapshotRatingSource"]
