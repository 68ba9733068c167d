"""Season lifecycle: creation, reset and bootstrap of rating baselines."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import UTC, datetime

from domain.common import RatingRecord, Season
from domain.errors import NoActiveSeasonError, ResetNotConfirmedError, SeasonExistsError
from domain.ratings.config import RatingSystemConfig
from domain.ratings.snapshot import season_start
from domain.ratings.store import RatingStore

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC).replace(tzinfo=None)


class SeasonManager:
    """Creates seasons and seeds every active team at the initial rating."""

    def __init__(self, store: RatingStore, config: RatingSystemConfig) -> None:
        self.store = store
        self.config = config

    def baseline_records(self, year: int, team_ids: Iterable[int]) -> list[RatingRecord]:
        """Initial-rating records for each team on each legal map of ``year``.

        Returns an empty list (with a warning) when no pool is known for the year.
        """
        maps = self.config.maps_for_year(year)
        if maps is None:
            logger.warning("No map pool defined for %d; skipping baseline ratings", year)
            return []

        start = season_start(year)
        initial = self.config.parameters.initial_rating
        return [
            RatingRecord(team_id=team_id, map_name=map_name, rating=initial, rating_date=start)
            for team_id in team_ids
            for map_name in maps
        ]

    def create_season(self, year: int, *, now: datetime | None = None) -> Season:
        """Close the active season and open ``year`` with fresh baselines."""
        if self.store.get_season(year) is not None:
            raise SeasonExistsError(year)

        now = now or _utcnow()
        active = self.store.get_active_season()
        team_ids = [team.id for team in self.store.active_teams()]
        baseline = self.baseline_records(year, team_ids)

        season = self.store.start_season(
            year=year,
            start_date=season_start(year),
            now=now,
            expected_active_season_id=None if active is None else active.id,
            baseline=baseline,
        )
        logger.info(
            "Created season %d (closed=%s, baseline_records=%d)",
            year,
            None if active is None else active.year,
            len(baseline),
        )
        return season

    def reset_all(self, *, confirm: bool = False) -> int:
        """Wipe rating history and re-baseline the reset year.

        Returns the number of baseline records inserted.
        """
        if not confirm:
            raise ResetNotConfirmedError("reset_all deletes all rating history; pass confirm=True")

        reset_year = self.config.seasons.reset_year
        team_ids = [team.id for team in self.store.active_teams()]
        baseline = self.baseline_records(reset_year, team_ids)
        self.store.reset_ratings(baseline)
        logger.warning(
            "Rating history reset; %d baseline records inserted for %d",
            len(baseline),
            reset_year,
        )
        return len(baseline)

    def initialize_seasons(self, *, current_year: int | None = None, now: datetime | None = None) -> list[Season]:
        """Bootstrap an empty season table with closed historical seasons and the current one."""
        existing = self.store.list_seasons()
        if existing:
            logger.info("Seasons already initialized (%d present)", len(existing))
            return existing

        now = now or _utcnow()
        current_year = current_year or now.year
        team_ids = [team.id for team in self.store.active_teams()]

        created: list[Season] = []
        for year in sorted(self.config.seasons.historical_years):
            if year >= current_year:
                continue
            season = self.store.insert_closed_season(
                year=year,
                start_date=season_start(year),
                end_date=season_start(year + 1),
                baseline=self.baseline_records(year, team_ids),
            )
            created.append(season)

        created.append(self.create_season(current_year, now=now))
        return created

    def ensure_active_season(self, *, now: datetime | None = None) -> Season:
        """Return the active season, creating one for the current year if allowed."""
        active = self.store.get_active_season()
        if active is not None:
            return active

        if not self.config.seasons.auto_create_season:
            raise NoActiveSeasonError("no active season and auto_create_season is disabled")

        now = now or _utcnow()
        logger.warning("No active season found; creating season %d", now.year)
        existing = self.store.get_season(now.year)
        if existing is not None:
            raise NoActiveSeasonError(
                f"season {now.year} exists but is not active; create the next season explicitly"
            )
        return self.create_season(now.year, now=now)


__all__ = ["SeasonManager"]
