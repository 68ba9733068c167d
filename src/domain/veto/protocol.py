"""Best-of-N map draft and series simulation.

Each format is a fixed sequence of (action, side) steps over a seven-map
pool. Bans remove the acting side's worst remaining map, picks take its best,
and the decider is whatever is left. Ties resolve alphabetically by map name.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass

import numpy as np

from domain.errors import VetoError
from domain.ratings.model import calculate_expected_score

SIDE_A = "A"
SIDE_B = "B"

BAN = "ban"
PICK = "pick"
DECIDER = "decider"


@dataclass(frozen=True)
class VetoStep:
    action: str
    side: str | None = None


@dataclass(frozen=True)
class VetoFormat:
    name: str
    wins_required: int
    steps: tuple[VetoStep, ...]

    @property
    def pool_size(self) -> int:
        return len(self.steps)


BO3 = VetoFormat(
    name="BO3",
    wins_required=2,
    steps=(
        VetoStep(BAN, SIDE_A),
        VetoStep(BAN, SIDE_B),
        VetoStep(PICK, SIDE_A),
        VetoStep(PICK, SIDE_B),
        VetoStep(BAN, SIDE_A),
        VetoStep(BAN, SIDE_B),
        VetoStep(DECIDER),
    ),
)

BO5 = VetoFormat(
    name="BO5",
    wins_required=3,
    steps=(
        VetoStep(BAN, SIDE_A),
        VetoStep(BAN, SIDE_B),
        VetoStep(PICK, SIDE_A),
        VetoStep(PICK, SIDE_B),
        VetoStep(PICK, SIDE_A),
        VetoStep(PICK, SIDE_B),
        VetoStep(DECIDER),
    ),
)

BO5_ADV = VetoFormat(
    name="BO5_ADV",
    wins_required=3,
    steps=(
        VetoStep(BAN, SIDE_A),
        VetoStep(BAN, SIDE_A),
        VetoStep(PICK, SIDE_A),
        VetoStep(PICK, SIDE_B),
        VetoStep(PICK, SIDE_A),
        VetoStep(PICK, SIDE_B),
        VetoStep(DECIDER),
    ),
)

FORMATS: dict[str, VetoFormat] = {fmt.name: fmt for fmt in (BO3, BO5, BO5_ADV)}


def get_format(name: str) -> VetoFormat:
    try:
        return FORMATS[name.upper()]
    except KeyError:
        raise VetoError(f"Unknown veto format {name!r}; expected one of {sorted(FORMATS)}") from None


@dataclass(frozen=True)
class DraftAction:
    side: str | None
    action: str
    map_name: str


@dataclass(frozen=True)
class DraftResult:
    maps: tuple[str, ...]
    actions: tuple[DraftAction, ...]


@dataclass(frozen=True)
class MapOutcome:
    map_name: str
    winner: str
    probability_a: float


@dataclass(frozen=True)
class SeriesResult:
    winner: str
    score_a: int
    score_b: int
    maps: tuple[MapOutcome, ...]


def map_win_probability(rating_a: float, rating_b: float, scale_factor: float = 2000.0) -> float:
    """Probability that side A wins a single map."""
    return calculate_expected_score(rating=rating_a, opponent_rating=rating_b, scale_factor=scale_factor)


def best_ban(advantages: Mapping[str, float], available: Sequence[str]) -> str:
    """Map with the lowest advantage for the acting side."""
    return min(available, key=lambda map_name: (advantages[map_name], map_name))


def best_pick(advantages: Mapping[str, float], available: Sequence[str]) -> str:
    """Map with the highest advantage for the acting side."""
    return min(available, key=lambda map_name: (-advantages[map_name], map_name))


def simulate_draft(
    ratings_a: Mapping[str, float],
    ratings_b: Mapping[str, float],
    pool: Sequence[str],
    fmt: VetoFormat,
) -> DraftResult:
    """Run the format's veto sequence with greedy rating-based choices."""
    if len(pool) != fmt.pool_size:
        raise VetoError(f"{fmt.name} needs a {fmt.pool_size}-map pool, got {len(pool)}: {list(pool)}")
    if len(set(pool)) != len(pool):
        raise VetoError(f"Map pool contains duplicates: {list(pool)}")

    advantage_a = {map_name: ratings_a[map_name] - ratings_b[map_name] for map_name in pool}
    advantage_b = {map_name: -value for map_name, value in advantage_a.items()}

    remaining = list(pool)
    played: list[str] = []
    actions: list[DraftAction] = []
    for step in fmt.steps:
        if step.action == DECIDER:
            map_name = remaining[0]
        else:
            advantages = advantage_a if step.side == SIDE_A else advantage_b
            choose = best_ban if step.action == BAN else best_pick
            map_name = choose(advantages, remaining)
        remaining.remove(map_name)
        if step.action != BAN:
            played.append(map_name)
        actions.append(DraftAction(side=step.side, action=step.action, map_name=map_name))

    return DraftResult(maps=tuple(played), actions=tuple(actions))


def series_probability(map_probabilities: Sequence[float], wins_required: int) -> float:
    """Exact probability that side A reaches ``wins_required`` first.

    Maps are played in the given order; ``map_probabilities[i]`` is A's chance
    on the i-th map.
    """
    if len(map_probabilities) < 2 * wins_required - 1:
        raise VetoError(
            f"{len(map_probabilities)} maps cannot decide a first-to-{wins_required} series"
        )

    def reach(index: int, wins_a: int, wins_b: int) -> float:
        if wins_a == wins_required:
            return 1.0
        if wins_b == wins_required:
            return 0.0
        probability = map_probabilities[index]
        return probability * reach(index + 1, wins_a + 1, wins_b) + (1.0 - probability) * reach(
            index + 1, wins_a, wins_b + 1
        )

    return reach(0, 0, 0)


def series_win_probability(
    ratings_a: Mapping[str, float],
    ratings_b: Mapping[str, float],
    pool: Sequence[str],
    fmt: VetoFormat,
    *,
    scale_factor: float = 2000.0,
    draft: DraftResult | None = None,
) -> float:
    """Probability that side A wins the series over the greedily drafted maps."""
    draft = draft or simulate_draft(ratings_a, ratings_b, pool, fmt)
    probabilities = [
        map_win_probability(ratings_a[map_name], ratings_b[map_name], scale_factor) for map_name in draft.maps
    ]
    return series_probability(probabilities, fmt.wins_required)


def pairwise_win_probabilities(
    ratings: Mapping[str, Mapping[str, float]],
    pool: Sequence[str],
    fmt: VetoFormat = BO3,
    *,
    scale_factor: float = 2000.0,
) -> dict[tuple[str, str], float]:
    """Head-to-head series odds for every ordered pair of teams, first team drafting as A."""
    return {
        (team_a, team_b): series_win_probability(
            ratings[team_a], ratings[team_b], pool, fmt, scale_factor=scale_factor
        )
        for team_a in sorted(ratings)
        for team_b in sorted(ratings)
        if team_a != team_b
    }


def simulate_series(
    ratings_a: Mapping[str, float],
    ratings_b: Mapping[str, float],
    pool: Sequence[str],
    fmt: VetoFormat,
    rng: np.random.Generator,
    *,
    scale_factor: float = 2000.0,
    draft: DraftResult | None = None,
) -> SeriesResult:
    """Draft the maps, then play them until one side reaches the win target."""
    draft = draft or simulate_draft(ratings_a, ratings_b, pool, fmt)

    score_a = 0
    score_b = 0
    outcomes: list[MapOutcome] = []
    for map_name in draft.maps:
        probability_a = map_win_probability(ratings_a[map_name], ratings_b[map_name], scale_factor)
        if rng.random() < probability_a:
            score_a += 1
            winner = SIDE_A
        else:
            score_b += 1
            winner = SIDE_B
        outcomes.append(MapOutcome(map_name=map_name, winner=winner, probability_a=probability_a))
        if score_a == fmt.wins_required or score_b == fmt.wins_required:
            break

    return SeriesResult(
        winner=SIDE_A if score_a > score_b else SIDE_B,
        score_a=score_a,
        score_b=score_b,
        maps=tuple(outcomes),
    )


__all__ = [
    "BAN",
    "BO3",
    "BO5",
    "BO5_ADV",
    "DECIDER",
    "DraftAction",
    "DraftResult",
    "FORMATS",
    "MapOutcome",
    "PICK",
    "SIDE_A",
    "SIDE_B",
    "SeriesResult",
    "VetoFormat",
    "VetoStep",
    "best_ban",
    "best_pick",
    "get_format",
    "map_win_probability",
    "pairwise_win_probabilities",
    "series_probability",
    "series_win_probability",
    "simulate_draft",
    "simulate_series",
]
