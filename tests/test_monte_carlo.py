"""Tests for the Monte-Carlo tournament engine."""

from __future__ import annotations

import numpy as np
import pytest

from domain.simulation import formats
from domain.simulation.monte_carlo import (
    BUCKET_NAMES,
    MonteCarloEngine,
    SimulationAccumulator,
    simulate_tournament,
)
from domain.simulation.ratings import RatingTable, SnapshotRatingSource

POOL = ("Abyss", "Ascent", "Bind", "Corrode", "Haven", "Lotus", "Sunset")


def _table(strengths: dict[str, float], *, missing: tuple[tuple[str, str], ...] = ()) -> RatingTable:
    ratings = {
        team: {map_name: strength for map_name in POOL if (team, map_name) not in missing}
        for team, strength in strengths.items()
    }
    return RatingTable.build(SnapshotRatingSource(ratings), list(strengths), POOL, 1000.0)


def _seeded(keys: list[str]) -> tuple[dict[str, str], RatingTable]:
    seeding = {key: f"T{index}" for index, key in enumerate(keys, start=1)}
    strengths = {team: 1000.0 + 10.0 * index for index, team in enumerate(seeding.values())}
    return seeding, _table(strengths)


def test_single_elimination_conserves_placements() -> None:
    bracket = formats.build_bracket("single-elim")
    seeding, table = _seeded(bracket.seed_keys())

    outcome = MonteCarloEngine().run(300, bracket, table, seeding, seed=1)

    counts = outcome.accumulator.counts
    assert outcome.completed_trials == 300
    assert counts[:, BUCKET_NAMES.index("championships")].sum() == 300
    assert counts[:, BUCKET_NAMES.index("finalist")].sum() == 600
    assert counts[:, BUCKET_NAMES.index("top4")].sum() == 1200
    assert counts[:, BUCKET_NAMES.index("top8")].sum() == 2400


@pytest.mark.parametrize("name", sorted(formats.get_all()))
def test_buckets_are_monotonic_and_one_champion_per_trial(name: str) -> None:
    bracket = formats.build_bracket(name)
    seeding, table = _seeded(bracket.seed_keys())

    outcome = MonteCarloEngine().run(60, bracket, table, seeding, seed=5)

    counts = outcome.accumulator.counts
    assert counts[:, 0].sum() == 60
    assert np.all(np.diff(counts, axis=1) >= 0)
    for result in outcome.results():
        values = [getattr(result, bucket) for bucket in BUCKET_NAMES]
        assert values == sorted(values)


def test_same_seed_gives_identical_counts() -> None:
    bracket = formats.build_bracket("swiss-double-elim")
    seeding, table = _seeded(bracket.seed_keys())
    engine = MonteCarloEngine()

    first = engine.run(80, bracket, table, seeding, seed=2025)
    second = engine.run(80, bracket, table, seeding, seed=2025)

    assert np.array_equal(first.accumulator.counts, second.accumulator.counts)


def test_worker_count_does_not_change_results() -> None:
    bracket = formats.build_bracket("double-elim-8")
    seeding, table = _seeded(bracket.seed_keys())
    engine = MonteCarloEngine()

    sequential = engine.run(64, bracket, table, seeding, seed=9, workers=1)
    pooled = engine.run(64, bracket, table, seeding, seed=9, workers=2)

    assert pooled.completed_trials == 64
    assert np.array_equal(sequential.accumulator.counts, pooled.accumulator.counts)


def test_completed_winner_is_respected() -> None:
    bracket = formats.build_bracket("single-elim")
    seeding, table = _seeded(bracket.seed_keys())
    top_seed = seeding["seed1"]
    underdog = seeding["seed8"]

    outcome = MonteCarloEngine().run(50, bracket, table, seeding, seed=3, completed_winners={"R1M1": underdog})

    assert outcome.accumulator.count(top_seed, "top8") == 50
    assert outcome.accumulator.count(top_seed, "top4") == 0
    assert outcome.accumulator.count(underdog, "top4") > 0


def test_completed_winner_outside_the_match_raises() -> None:
    bracket = formats.build_bracket("single-elim")
    seeding, table = _seeded(bracket.seed_keys())

    with pytest.raises(ValueError, match="completed winner"):
        MonteCarloEngine().run(5, bracket, table, seeding, seed=3, completed_winners={"R1M1": seeding["seed2"]})


def test_unknown_completed_match_raises() -> None:
    bracket = formats.build_bracket("single-elim")
    seeding, table = _seeded(bracket.seed_keys())

    with pytest.raises(ValueError, match="unknown matches"):
        MonteCarloEngine().run(5, bracket, table, seeding, seed=3, completed_winners={"QF9": "T1"})


def test_missing_seed_raises() -> None:
    bracket = formats.build_bracket("double-elim-4")
    seeding, table = _seeded(bracket.seed_keys())
    del seeding["seed4"]

    with pytest.raises(ValueError, match="no team seeded"):
        MonteCarloEngine().run(5, bracket, table, seeding, seed=3)


def test_should_stop_ends_run_early() -> None:
    bracket = formats.build_bracket("double-elim-4")
    seeding, table = _seeded(bracket.seed_keys())
    polls: list[int] = []

    def should_stop() -> bool:
        polls.append(1)
        return len(polls) > 5

    outcome = MonteCarloEngine().run(100, bracket, table, seeding, seed=3, should_stop=should_stop)

    assert outcome.stopped_early
    assert outcome.completed_trials == 5
    assert outcome.accumulator.counts[:, 0].sum() == 5
    assert sum(result.championships for result in outcome.results()) == pytest.approx(100.0)


def test_stronger_team_wins_more_often() -> None:
    bracket = formats.build_bracket("double-elim-4")
    seeding = {f"seed{index}": team for index, team in enumerate(("ACE", "B", "C", "D"), start=1)}
    table = _table({"ACE": 2600.0, "B": 1000.0, "C": 1000.0, "D": 1000.0})

    results = MonteCarloEngine().run(400, bracket, table, seeding, seed=4).results()

    assert results[0].team == "ACE"
    assert results[0].championships > 50.0


def test_trial_draws_each_draw_group_once() -> None:
    bracket = formats.build_bracket("swiss-double-elim")
    seeding, table = _seeded(bracket.seed_keys())

    placements = simulate_tournament(bracket, table, seeding, np.random.default_rng([1, 0]))

    assert sorted(placements) == sorted(seeding.values())
    assert sorted(placements.values()).count(1) == 1


def test_accumulators_merge_by_sum() -> None:
    teams = ("A", "B")
    first = SimulationAccumulator(teams=teams)
    first.record({"A": 1, "B": 2})
    second = SimulationAccumulator(teams=teams)
    second.record({"A": 2, "B": 1})
    second.record({"A": 1, "B": 2})

    merged = first.merge(second)

    assert merged.trials == 3
    assert merged.count("A", "championships") == 2
    assert merged.count("B", "finalist") == 3
    with pytest.raises(ValueError):
        first.merge(SimulationAccumulator(teams=("A", "C")))


def test_results_are_unrounded_percentages() -> None:
    accumulator = SimulationAccumulator(teams=("A", "B"))
    accumulator.record({"A": 1, "B": 2})
    accumulator.record({"A": 2, "B": 1})
    accumulator.record({"A": 2, "B": 1})

    by_team = {result.team: result for result in accumulator.to_results()}

    assert by_team["A"].championships == pytest.approx(100.0 / 3, rel=1e-12)
    assert by_team["B"].championships == pytest.approx(200.0 / 3, rel=1e-12)
    assert by_team["A"].championships != round(by_team["A"].championships, 2)
    assert by_team["A"].finalist == pytest.approx(100.0)


def test_rating_table_defaults_missing_pairs() -> None:
    table = _table({"A": 1200.0, "B": 900.0}, missing=(("B", "Lotus"),))

    assert table.for_team("A")["Lotus"] == pytest.approx(1200.0)
    assert table.for_team("B")["Lotus"] == pytest.approx(1000.0)
    assert table.missing == (("B", "Lotus"),)
    assert table.missing_by_team() == {"B": ["Lotus"]}
