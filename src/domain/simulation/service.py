"""Run tournament simulations and persist their results as JSON artifacts."""

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Mapping
from dataclasses import asdict, dataclass, field
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any

from domain.errors import RequestValidationError
from domain.simulation.monte_carlo import BUCKET_NAMES, MonteCarloEngine, TeamResult
from domain.simulation.ratings import RatingSource, RatingTable
from domain.simulation.tournaments import ActualResults, TournamentConfig

logger = logging.getLogger(__name__)

DEFAULT_TRIALS = 10_000


def validate_trial_count(value: Any) -> int:
    """Parse a requested trial count; anything but a positive integer is rejected."""
    if isinstance(value, bool):
        raise RequestValidationError(f"Invalid number of simulations: {value!r}")
    if isinstance(value, float) and not value.is_integer():
        raise RequestValidationError(f"Invalid number of simulations: {value!r}")
    try:
        trials = int(str(value).strip()) if isinstance(value, str) else int(value)
    except (TypeError, ValueError):
        raise RequestValidationError(f"Invalid number of simulations: {value!r}") from None
    if trials <= 0:
        raise RequestValidationError(f"Number of simulations must be > 0, got {trials}")
    return trials


@dataclass(frozen=True)
class SimulationReport:
    tournament_id: str
    num_trials: int
    completed_trials: int
    results: list[TeamResult]
    missing_ratings: dict[str, list[str]] = field(default_factory=dict)
    stopped_early: bool = False


def run_simulation(
    trial_count: Any,
    tournament: TournamentConfig,
    source: RatingSource,
    *,
    seed: int,
    default_rating: float = 1000.0,
    scale_factor: float = 2000.0,
    workers: int = 1,
    completed_winners: Mapping[str, str] | None = None,
    should_stop: Callable[[], bool] | None = None,
) -> SimulationReport:
    """Simulate a configured tournament from the given ratings.

    ``completed_winners`` is layered over the winners already recorded in the
    tournament config.
    """
    trials = validate_trial_count(trial_count)
    teams = sorted(set(tournament.seeding.values()))
    table = RatingTable.build(source, teams, tournament.map_pool, default_rating)
    winners = {**tournament.completed_winners, **(completed_winners or {})}

    logger.info(
        "Simulating %s (%s) with %d trials, seed=%d", tournament.id, tournament.format, trials, seed
    )
    outcome = MonteCarloEngine(scale_factor=scale_factor).run(
        trials,
        tournament.bracket(),
        table,
        tournament.seeding,
        seed=seed,
        completed_winners=winners,
        workers=workers,
        should_stop=should_stop,
    )
    if outcome.stopped_early:
        logger.warning("Simulation stopped after %d of %d trials", outcome.completed_trials, trials)

    return SimulationReport(
        tournament_id=tournament.id,
        num_trials=trials,
        completed_trials=outcome.completed_trials,
        results=outcome.results(),
        missing_ratings=table.missing_by_team(),
        stopped_early=outcome.stopped_early,
    )


@dataclass(frozen=True)
class SimulationArtifact:
    tournament_id: str
    tournament_name: str
    simulated_at: datetime
    rating_snapshot_date: date
    num_trials: int
    results: list[TeamResult]
    team_names: dict[str, str] = field(default_factory=dict)
    actual_results: ActualResults | None = None
    missing_ratings: dict[str, list[str]] = field(default_factory=dict)

    def as_json(self) -> dict[str, Any]:
        return {
            "tournament_id": self.tournament_id,
            "tournament_name": self.tournament_name,
            "simulated_at": self.simulated_at.isoformat(),
            "rating_snapshot_date": self.rating_snapshot_date.isoformat(),
            "num_trials": self.num_trials,
            "results": [
                {"team_name": self.team_names.get(result.team, result.team), **asdict(result)}
                for result in self.results
            ],
            "actual_results": None if self.actual_results is None else self.actual_results.as_json(),
            "missing_ratings": {team: list(maps) for team, maps in self.missing_ratings.items()},
        }

    @classmethod
    def from_json(cls, raw: dict[str, Any]) -> SimulationArtifact:
        results = [
            TeamResult(team=str(row["team"]), **{bucket: float(row[bucket]) for bucket in BUCKET_NAMES})
            for row in raw["results"]
        ]
        actual = raw.get("actual_results")
        return cls(
            tournament_id=str(raw["tournament_id"]),
            tournament_name=str(raw["tournament_name"]),
            simulated_at=datetime.fromisoformat(raw["simulated_at"]),
            rating_snapshot_date=date.fromisoformat(raw["rating_snapshot_date"]),
            num_trials=int(raw["num_trials"]),
            results=results,
            team_names={str(row["team"]): str(row.get("team_name", row["team"])) for row in raw["results"]},
            actual_results=None if actual is None else ActualResults.from_json(actual),
            missing_ratings={
                str(team): [str(map_name) for map_name in maps]
                for team, maps in raw.get("missing_ratings", {}).items()
            },
        )


def build_artifact(
    report: SimulationReport,
    tournament: TournamentConfig,
    *,
    rating_snapshot_date: date | None = None,
    simulated_at: datetime | None = None,
) -> SimulationArtifact:
    return SimulationArtifact(
        tournament_id=tournament.id,
        tournament_name=tournament.name,
        simulated_at=simulated_at or datetime.now(timezone.utc),
        rating_snapshot_date=rating_snapshot_date or tournament.start_date,
        num_trials=report.completed_trials,
        results=list(report.results),
        team_names={team.slug: team.name for team in tournament.teams},
        actual_results=tournament.actual_results,
        missing_ratings={team: list(maps) for team, maps in report.missing_ratings.items()},
    )


def write_artifact(artifact: SimulationArtifact, file_path: Path) -> Path:
    file_path.parent.mkdir(parents=True, exist_ok=True)
    with file_path.open("w", encoding="utf-8") as file:
        json.dump(artifact.as_json(), file, indent=2)
        file.write("\n")
    logger.info("Saved simulation artifact to %s", file_path)
    return file_path


def read_artifact(file_path: Path) -> SimulationArtifact:
    if not file_path.exists():
        raise FileNotFoundError(f"Simulation artifact not found: {file_path}")
    with file_path.open("r", encoding="utf-8") as file:
        raw = json.load(file)
    try:
        return SimulationArtifact.from_json(raw)
    except (KeyError, TypeError, ValueError) as error:
        raise ValueError(f"{file_path}: malformed simulation artifact ({error})") from None


@dataclass(frozen=True)
class BacktestSummary:
    tournament_id: str
    actual_winner: str
    winner_rank: int | None
    winner_championship_pct: float | None
    predicted_top4: list[str]
    top4_hits: int


def backtest(artifact: SimulationArtifact) -> BacktestSummary:
    """Compare a historical simulation with what actually happened."""
    if artifact.actual_results is None:
        raise ValueError(f"{artifact.tournament_id}: artifact has no actual results to compare against")

    actual = artifact.actual_results
    ranked = sorted(artifact.results, key=lambda result: (-result.championships, result.team))
    winner_rank = None
    winner_pct = None
    for rank, result in enumerate(ranked, start=1):
        if result.team == actual.winner:
            winner_rank = rank
            winner_pct = result.championships
            break

    by_top4 = sorted(artifact.results, key=lambda result: (-result.top4, result.team))
    predicted_top4 = [result.team for result in by_top4[:4]]
    top4_hits = len(set(predicted_top4) & set(actual.top4))

    return BacktestSummary(
        tournament_id=artifact.tournament_id,
        actual_winner=actual.winner,
        winner_rank=winner_rank,
        winner_championship_pct=winner_pct,
        predicted_top4=predicted_top4,
        top4_hits=top4_hits,
    )


__all__ = [
    "BacktestSummary",
    "DEFAULT_TRIALS",
    "SimulationArtifact",
    "SimulationReport",
    "backtest",
    "build_artifact",
    "read_artifact",
    "run_simulation",
    "validate_trial_count",
    "write_artifact",
]
