from __future__ import annotations

import json
from datetime import date, datetime
from pathlib import Path

import pytest

from domain.errors import RequestValidationError
from domain.simulation.monte_carlo import TeamResult
from domain.simulation.ratings import SnapshotRatingSource
from domain.simulation.service import (
    SimulationArtifact,
    backtest,
    build_artifact,
    read_artifact,
    run_simulation,
    validate_trial_count,
    write_artifact,
)
from domain.simulation.tournaments import ActualResults, find_tournament

BANGKOK = "vct-masters-bangkok-2025"


@pytest.mark.parametrize("value", ["250", 250, 250.0, " 250 "])
def test_trial_count_accepts_positive_integers(value: object) -> None:
    assert validate_trial_count(value) == 250


@pytest.mark.parametrize("value", [0, -5, "abc", "", None, 2.5, True, "1e3"])
def test_trial_count_rejects_everything_else(value: object) -> None:
    with pytest.raises(RequestValidationError):
        validate_trial_count(value)


def _source(tournament, *, skip: str | None = None) -> SnapshotRatingSource:
    ratings = {
        slug: {map_name: 1000.0 + 15.0 * index for map_name in tournament.map_pool}
        for index, slug in enumerate(tournament.team_slugs)
        if slug != skip
    }
    return SnapshotRatingSource(ratings)


def test_run_simulation_reports_every_seeded_team() -> None:
    tournament = find_tournament(BANGKOK)
    unrated = tournament.team_slugs[-1]

    report = run_simulation("200", tournament, _source(tournament, skip=unrated), seed=11)

    assert report.tournament_id == BANGKOK
    assert report.num_trials == 200
    assert report.completed_trials == 200
    assert not report.stopped_early
    assert {result.team for result in report.results} == set(tournament.seeding.values())
    assert sum(result.championships for result in report.results) == pytest.approx(100.0, abs=0.1)
    assert report.missing_ratings == {unrated: list(tournament.map_pool)}


def test_run_simulation_rejects_bad_trial_count() -> None:
    tournament = find_tournament(BANGKOK)
    with pytest.raises(RequestValidationError):
        run_simulation("0", tournament, _source(tournament), seed=1)


def test_extra_completed_winner_is_applied() -> None:
    tournament = find_tournament(BANGKOK)
    bracket = tournament.bracket()
    first = bracket.matches[0]
    team = tournament.seeding[first.team2.key]

    report = run_simulation(
        50, tournament, _source(tournament), seed=2, completed_winners={first.id: team}
    )

    by_team = {result.team: result for result in report.results}
    assert by_team[team].top6 == pytest.approx(100.0)


def _artifact(actual: ActualResults | None) -> SimulationArtifact:
    results = [
        TeamResult("AAA", 45.0, 70.0, 80.0, 90.0, 100.0, 100.0, 100.0),
        TeamResult("BBB", 30.0, 60.0, 70.0, 85.0, 100.0, 100.0, 100.0),
        TeamResult("CCC", 15.0, 40.0, 45.0, 80.0, 100.0, 100.0, 100.0),
        TeamResult("DDD", 6.0, 20.0, 22.0, 30.0, 50.0, 100.0, 100.0),
        TeamResult("EEE", 4.0, 10.0, 12.0, 15.0, 50.0, 100.0, 100.0),
    ]
    return SimulationArtifact(
        tournament_id="cup-2025",
        tournament_name="Test Cup",
        simulated_at=datetime(2025, 3, 1, 9, 30),
        rating_snapshot_date=date(2025, 3, 1),
        num_trials=1000,
        results=results,
        team_names={"AAA": "Team A"},
        actual_results=actual,
        missing_ratings={"EEE": ["Abyss", "Corrode"]},
    )


def test_artifact_survives_write_and_read(tmp_path: Path) -> None:
    artifact = _artifact(ActualResults(winner="BBB", top4=("BBB", "AAA", "DDD", "EEE")))

    path = write_artifact(artifact, tmp_path / "out" / "cup.json")

    raw = json.loads(path.read_text(encoding="utf-8"))
    assert raw["results"][0]["team_name"] == "Team A"
    assert raw["results"][1]["team_name"] == "BBB"
    loaded = read_artifact(path)
    assert loaded.results == artifact.results
    assert loaded.actual_results == artifact.actual_results
    assert loaded.rating_snapshot_date == date(2025, 3, 1)
    assert raw["missing_ratings"] == {"EEE": ["Abyss", "Corrode"]}
    assert loaded.missing_ratings == artifact.missing_ratings


def test_read_artifact_errors(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        read_artifact(tmp_path / "missing.json")

    broken = tmp_path / "broken.json"
    broken.write_text(json.dumps({"tournament_id": "cup"}), encoding="utf-8")
    with pytest.raises(ValueError, match="malformed"):
        read_artifact(broken)


def test_backtest_ranks_actual_winner() -> None:
    summary = backtest(_artifact(ActualResults(winner="BBB", top4=("BBB", "AAA", "DDD", "EEE"))))

    assert summary.actual_winner == "BBB"
    assert summary.winner_rank == 2
    assert summary.winner_championship_pct == pytest.approx(30.0)
    assert summary.predicted_top4 == ["AAA", "BBB", "CCC", "DDD"]
    assert summary.top4_hits == 3


def test_backtest_requires_actual_results() -> None:
    with pytest.raises(ValueError, match="no actual results"):
        backtest(_artifact(None))


def test_build_artifact_from_report() -> None:
    tournament = find_tournament(BANGKOK)
    report = run_simulation(20, tournament, _source(tournament), seed=3)

    artifact = build_artifact(report, tournament, simulated_at=datetime(2025, 6, 1, 12, 0))

    assert artifact.tournament_name == tournament.name
    assert artifact.rating_snapshot_date == tournament.start_date
    assert artifact.num_trials == 20
    assert artifact.actual_results == tournament.actual_results
    assert set(artifact.team_names) == set(tournament.team_slugs)


def test_artifact_keeps_missing_ratings_from_report(tmp_path: Path) -> None:
    tournament = find_tournament(BANGKOK)
    unrated = tournament.team_slugs[0]
    report = run_simulation(10, tournament, _source(tournament, skip=unrated), seed=5)

    artifact = build_artifact(report, tournament, simulated_at=datetime(2025, 6, 1, 12, 0))
    loaded = read_artifact(write_artifact(artifact, tmp_path / "bangkok.json"))

    assert artifact.missing_ratings == {unrated: list(tournament.map_pool)}
    assert loaded.missing_ratings == artifact.missing_ratings


def test_artifact_without_missing_ratings_key_still_loads(tmp_path: Path) -> None:
    raw = _artifact(None).as_json()
    del raw["missing_ratings"]
    path = tmp_path / "old.json"
    path.write_text(json.dumps(raw), encoding="utf-8")

    assert read_artifact(path).missing_ratings == {}
