"""Chronological processing of pending map results into rating history."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime

from domain.common import MapResult, RatingRecord, Season
from domain.errors import InvalidResultError
from domain.ratings.config import RatingSystemConfig
from domain.ratings.model import update_ratings
from domain.ratings.seasons import SeasonManager
from domain.ratings.snapshot import build_current_snapshot, latest_per_team_map, ratings_by_team, season_start
from domain.ratings.store import RatingStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProcessingIssue:
    """A map result that could not be rated in this run."""

    kind: str
    map_result_id: int
    detail: str


@dataclass(frozen=True)
class ProcessSummary:
    processed: int
    skipped: int
    failed: list[ProcessingIssue] = field(default_factory=list)
    snapshot_rows: int = 0
    season_year: int | None = None


class RatingEngine:
    """Applies the Elo model to unprocessed map results, oldest first."""

    def __init__(
        self,
        store: RatingStore,
        config: RatingSystemConfig,
        season_manager: SeasonManager | None = None,
    ) -> None:
        self.store = store
        self.config = config
        self.params = config.parameters
        self.season_manager = season_manager or SeasonManager(store, config)

    def pre_match_rating(self, team_id: int, map_name: str, completed_at: datetime) -> float:
        """Latest rating from the match's own season, else the initial rating."""
        record = self.store.latest_rating_before(
            team_id=team_id,
            map_name=map_name,
            before=completed_at,
            since=season_start(completed_at.year),
        )
        if record is None:
            return self.params.initial_rating
        return record.rating

    def process_map_result(self, map_result: MapResult) -> tuple[RatingRecord, RatingRecord]:
        """Rate one map and persist both records atomically."""
        if map_result.completed_at is None:
            raise ValueError(f"map_result_id={map_result.id} has no completion timestamp")

        winner_pre = self.pre_match_rating(
            map_result.winner_team_id, map_result.map_name, map_result.completed_at
        )
        loser_pre = self.pre_match_rating(
            map_result.loser_team_id, map_result.map_name, map_result.completed_at
        )
        update = update_ratings(
            winner_pre,
            loser_pre,
            map_result.winner_rounds,
            map_result.loser_rounds,
            self.params,
            map_result_id=map_result.id,
        )

        winner_record = RatingRecord(
            team_id=map_result.winner_team_id,
            map_name=map_result.map_name,
            rating=update.winner_post,
            rating_date=map_result.completed_at,
            map_result_id=map_result.id,
        )
        loser_record = RatingRecord(
            team_id=map_result.loser_team_id,
            map_name=map_result.map_name,
            rating=update.loser_post,
            rating_date=map_result.completed_at,
            map_result_id=map_result.id,
        )
        self.store.record_map_result(map_result.id, (winner_record, loser_record))
        logger.debug(
            "map_result_id=%d %s: winner %d %.2f -> %.2f, loser %d %.2f -> %.2f",
            map_result.id,
            map_result.map_name,
            map_result.winner_team_id,
            update.winner_pre,
            update.winner_post,
            map_result.loser_team_id,
            update.loser_pre,
            update.loser_post,
        )
        return winner_record, loser_record

    def process_pending(self, *, rebuild_snapshot: bool = True) -> ProcessSummary:
        """Rate every unprocessed map in completion order, then refresh the snapshot.

        Maps without a timestamp or with an invalid score are reported and left
        unprocessed; the rest of the batch still runs.
        """
        pending = self.store.fetch_pending_map_results()
        logger.info("Found %d unprocessed map results", len(pending))

        processed = 0
        issues: list[ProcessingIssue] = []
        for map_result in pending:
            if map_result.completed_at is None:
                logger.warning("Skipping map_result_id=%d: missing completed_at", map_result.id)
                issues.append(
                    ProcessingIssue(
                        kind="missing_timestamp",
                        map_result_id=map_result.id,
                        detail="completed_at is null",
                    )
                )
                continue
            try:
                self.process_map_result(map_result)
            except InvalidResultError as exc:
                logger.error("Rejected map_result_id=%d: %s", map_result.id, exc)
                issues.append(
                    ProcessingIssue(kind="invalid_result", map_result_id=map_result.id, detail=str(exc))
                )
                continue
            processed += 1

        snapshot_rows = 0
        season_year = None
        if rebuild_snapshot:
            season = self.season_manager.ensure_active_season()
            snapshot_rows = self.rebuild_current_snapshot(season)
            season_year = season.year

        skipped = sum(1 for issue in issues if issue.kind == "missing_timestamp")
        logger.info(
            "Processed %d map results (skipped=%d, failed=%d, snapshot_rows=%d)",
            processed,
            skipped,
            len(issues) - skipped,
            snapshot_rows,
        )
        return ProcessSummary(
            processed=processed,
            skipped=skipped,
            failed=issues,
            snapshot_rows=snapshot_rows,
            season_year=season_year,
        )

    def rebuild_current_snapshot(self, season: Season) -> int:
        """Swap in the latest rating per (team, map) for ``season``."""
        records = self.store.ratings_since(season.start_date)
        rows = build_current_snapshot(records, season_id=season.id, since=season.start_date)
        self.store.replace_current_ratings(season.id, rows)
        return len(rows)

    def ratings_as_of(self, team_ids: Iterable[int], before: datetime) -> dict[int, dict[str, float]]:
        """Historical ``{team_id: {map: rating}}`` within ``before``'s season."""
        team_ids = list(team_ids)
        since = season_start(before.year)
        records = self.store.ratings_between(team_ids=team_ids, since=since, before=before)
        latest = latest_per_team_map(records, since, before=before)
        return ratings_by_team(latest.values())


__all__ = ["ProcessSummary", "ProcessingIssue", "RatingEngine"]
