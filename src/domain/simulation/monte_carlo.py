"""Monte-Carlo tournament simulation over a bracket topology.

Every trial draws its own generator from ``(seed, trial_index)``, so a run is
reproducible and gives the same counts whether trials execute in one process
or are split across a process pool.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from concurrent.futures import ProcessPoolExecutor
from dataclasses import dataclass

import numpy as np

from domain.simulation.bracket import Bracket, Drawn, LoserOf, Seed, Slot, WinnerOf
from domain.simulation.ratings import RatingTable
from domain.veto.protocol import SIDE_A, DraftResult, get_format, simulate_draft, simulate_series

logger = logging.getLogger(__name__)

# (bucket, worst finishing place that still counts)
BUCKETS: tuple[tuple[str, int], ...] = (
    ("championships", 1),
    ("finalist", 2),
    ("top3", 3),
    ("top4", 4),
    ("top6", 6),
    ("top8", 8),
    ("top12", 12),
)
BUCKET_NAMES = tuple(name for name, _ in BUCKETS)
_THRESHOLDS = np.array([place for _, place in BUCKETS], dtype=np.int64)


@dataclass(frozen=True)
class TeamResult:
    team: str
    championships: float
    finalist: float
    top3: float
    top4: float
    top6: float
    top8: float
    top12: float


@dataclass
class SimulationAccumulator:
    """Per-team bucket counts; accumulators over disjoint trials merge by sum."""

    teams: tuple[str, ...]
    counts: np.ndarray | None = None
    trials: int = 0

    def __post_init__(self) -> None:
        if self.counts is None:
            self.counts = np.zeros((len(self.teams), len(BUCKETS)), dtype=np.int64)
        self._index = {team: index for index, team in enumerate(self.teams)}

    def record(self, placements: Mapping[str, int]) -> None:
        for team, place in placements.items():
            self.counts[self._index[team]] += place <= _THRESHOLDS
        self.trials += 1

    def merge(self, other: SimulationAccumulator) -> SimulationAccumulator:
        if other.teams != self.teams:
            raise ValueError("Cannot merge accumulators over different teams")
        return SimulationAccumulator(
            teams=self.teams,
            counts=self.counts + other.counts,
            trials=self.trials + other.trials,
        )

    def count(self, team: str, bucket: str) -> int:
        return int(self.counts[self._index[team], BUCKET_NAMES.index(bucket)])

    def to_results(self) -> list[TeamResult]:
        """Bucket percentages over completed trials, best championship odds first."""
        if self.trials:
            percentages = self.counts / self.trials * 100.0
        else:
            percentages = np.zeros(self.counts.shape, dtype=float)
        results = [
            TeamResult(team, *(float(value) for value in percentages[index]))
            for index, team in enumerate(self.teams)
        ]
        return sorted(results, key=lambda result: (-result.championships, -result.finalist, result.team))


@dataclass(frozen=True)
class SimulationOutcome:
    accumulator: SimulationAccumulator
    requested_trials: int
    stopped_early: bool = False

    @property
    def completed_trials(self) -> int:
        return self.accumulator.trials

    def results(self) -> list[TeamResult]:
        return self.accumulator.to_results()


class MonteCarloEngine:
    def __init__(self, scale_factor: float = 2000.0) -> None:
        self.scale_factor = scale_factor

    def run(
        self,
        trials: int,
        bracket: Bracket,
        table: RatingTable,
        seeding: Mapping[str, str],
        *,
        seed: int,
        completed_winners: Mapping[str, str] | None = None,
        workers: int = 1,
        should_stop: Callable[[], bool] | None = None,
    ) -> SimulationOutcome:
        """Simulate ``trials`` runs of the bracket.

        ``seeding`` maps the bracket's seed keys to teams of ``table``.
        ``completed_winners`` maps match ids to teams that already won them.
        ``should_stop`` is polled between trials when running in one process;
        pooled runs always complete.
        """
        if trials <= 0:
            raise ValueError(f"trials must be > 0, got {trials}")
        if workers <= 0:
            raise ValueError(f"workers must be > 0, got {workers}")
        _check_seeding(bracket, table, seeding)
        completed_winners = dict(completed_winners or {})
        unknown = sorted(set(completed_winners) - set(bracket.match_ids()))
        if unknown:
            raise ValueError(f"Completed winners reference unknown matches: {unknown}")

        teams = tuple(sorted(set(seeding.values())))
        if workers == 1 or trials < workers:
            accumulator, stopped = _run_trials(
                range(trials),
                teams,
                bracket,
                table,
                seeding,
                seed,
                completed_winners,
                self.scale_factor,
                should_stop,
            )
            return SimulationOutcome(accumulator=accumulator, requested_trials=trials, stopped_early=stopped)

        bounds = np.linspace(0, trials, workers + 1, dtype=np.int64)
        logger.info("Running %d trials across %d worker processes", trials, workers)
        accumulator = SimulationAccumulator(teams=teams)
        with ProcessPoolExecutor(max_workers=workers) as executor:
            futures = [
                executor.submit(
                    _run_trials,
                    range(int(start), int(stop)),
                    teams,
                    bracket,
                    table,
                    seeding,
                    seed,
                    completed_winners,
                    self.scale_factor,
                    None,
                )
                for start, stop in zip(bounds[:-1], bounds[1:])
            ]
            for future in futures:
                partial, _ = future.result()
                accumulator = accumulator.merge(partial)
        return SimulationOutcome(accumulator=accumulator, requested_trials=trials)


def _check_seeding(bracket: Bracket, table: RatingTable, seeding: Mapping[str, str]) -> None:
    missing_keys = [key for key in bracket.seed_keys() if key not in seeding]
    if missing_keys:
        raise ValueError(f"{bracket.name}: no team seeded for {missing_keys}")
    unrated = sorted(set(seeding.values()) - set(table.teams))
    if unrated:
        raise ValueError(f"Seeded teams missing from the rating table: {unrated}")
    if len(set(seeding.values())) != len(seeding):
        raise ValueError("A team is seeded more than once")


def _run_trials(
    indices: range,
    teams: tuple[str, ...],
    bracket: Bracket,
    table: RatingTable,
    seeding: Mapping[str, str],
    seed: int,
    completed_winners: Mapping[str, str],
    scale_factor: float,
    should_stop: Callable[[], bool] | None,
) -> tuple[SimulationAccumulator, bool]:
    accumulator = SimulationAccumulator(teams=teams)
    drafts: dict[tuple[str, str, str], DraftResult] = {}
    for index in indices:
        if should_stop is not None and should_stop():
            logger.info("Stopping after %d of %d trials", accumulator.trials, len(indices))
            return accumulator, True
        rng = np.random.default_rng([seed, index])
        placements = simulate_tournament(
            bracket, table, seeding, rng, completed_winners, scale_factor=scale_factor, drafts=drafts
        )
        accumulator.record(placements)
    return accumulator, False


def simulate_tournament(
    bracket: Bracket,
    table: RatingTable,
    seeding: Mapping[str, str],
    rng: np.random.Generator,
    completed_winners: Mapping[str, str] | None = None,
    *,
    scale_factor: float = 2000.0,
    drafts: dict[tuple[str, str, str], DraftResult] | None = None,
) -> dict[str, int]:
    """Play one trial; returns each team's finishing place (1 for the champion)."""
    completed_winners = completed_winners or {}
    drafts = {} if drafts is None else drafts
    draw_orders = {draw.name: rng.permutation(len(draw.members)) for draw in bracket.draws}
    winners: dict[str, str] = {}
    losers: dict[str, str] = {}
    placements: dict[str, int] = {}

    def resolve(slot: Slot) -> str:
        if isinstance(slot, Seed):
            return seeding[slot.key]
        if isinstance(slot, WinnerOf):
            return winners[slot.match_id]
        if isinstance(slot, LoserOf):
            return losers[slot.match_id]
        if isinstance(slot, Drawn):
            members = bracket.draw(slot.group).members
            return resolve(members[int(draw_orders[slot.group][slot.index])])
        raise TypeError(f"Unknown bracket slot: {slot!r}")

    for match in bracket.matches:
        team_a = resolve(match.team1)
        team_b = resolve(match.team2)
        known = completed_winners.get(match.id)
        if known is not None:
            if known not in (team_a, team_b):
                raise ValueError(f"{match.id}: completed winner {known!r} is not {team_a!r} or {team_b!r}")
            winner = known
        else:
            fmt = get_format(match.format)
            key = (team_a, team_b, fmt.name)
            draft = drafts.get(key)
            if draft is None:
                draft = simulate_draft(table.for_team(team_a), table.for_team(team_b), table.pool, fmt)
                drafts[key] = draft
            series = simulate_series(
                table.for_team(team_a),
                table.for_team(team_b),
                table.pool,
                fmt,
                rng,
                scale_factor=scale_factor,
                draft=draft,
            )
            winner = team_a if series.winner == SIDE_A else team_b

        loser = team_b if winner == team_a else team_a
        winners[match.id] = winner
        losers[match.id] = loser
        if match.loser_place is not None:
            placements[loser] = match.loser_place

    placements[winners[bracket.final_match_id]] = 1
    return placements


__all__ = [
    "BUCKETS",
    "BUCKET_NAMES",
    "MonteCarloEngine",
    "SimulationAccumulator",
    "SimulationOutcome",
    "TeamResult",
    "simulate_tournament",
]
