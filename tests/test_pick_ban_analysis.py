"""Pick/ban scoring, persistence and veto repair."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime

import pytest
from sqlalchemy import select
from sqlalchemy.orm import Session, sessionmaker

from conftest import add_match, add_team
from domain.common import CompletedMatch, VetoAction
from domain.veto.analysis import (
    AnalysisSkip,
    MatchVetoAnalysis,
    analyze_match,
    match_scores,
    summarize_team_scores,
)
from domain.veto.reconcile import infer_first_mover, reconcile
from domain.veto.service import PickBanAnalyzer, propose_veto_fixes
from models import MatchPickBanAnalysisModel, MatchVetoAnalysisModel, MatchVetoModel
from repositories.veto_repository import SqlAlchemyVetoStore

POOL = ("Abyss", "Ascent", "Bind", "Corrode", "Haven", "Lotus", "Sunset")
PLAYED = datetime(2025, 4, 12, 18, 0, 0)
TEAM1 = 1
TEAM2 = 2

# team1 is 30 below team2 on Abyss, level on Corrode and 30 above on Sunset
RATINGS = {
    TEAM1: dict(zip(POOL, (970.0, 980.0, 990.0, 1000.0, 1010.0, 1020.0, 1030.0))),
    TEAM2: {map_name: 1000.0 for map_name in POOL},
}

DRAFT = (
    ("ban", "Abyss", TEAM1),
    ("ban", "Lotus", TEAM2),
    ("pick", "Ascent", TEAM1),
    ("pick", "Bind", TEAM2),
    ("ban", "Sunset", TEAM1),
    ("ban", "Haven", TEAM2),
    ("decider", "Corrode", None),
)


def _vetoes(draft: Iterable[tuple[str, str, int | None]], match_id: int = 10) -> list[VetoAction]:
    return [
        VetoAction(id=100 + order, match_id=match_id, order_index=order, action=action, map_name=name, team_id=team)
        for order, (action, name, team) in enumerate(draft, start=1)
    ]


def _match(match_id: int = 10, team1: int = TEAM1, team2: int = TEAM2) -> CompletedMatch:
    return CompletedMatch(id=match_id, team1_id=team1, team2_id=team2, completed_at=PLAYED)


def test_each_turn_is_scored_against_the_greedy_choice() -> None:
    analysis = analyze_match(_match(), _vetoes(DRAFT), RATINGS)

    assert isinstance(analysis, MatchVetoAnalysis)
    assert [turn.elo_lost for turn in analysis.turns] == pytest.approx([0.0, 10.0, 50.0, 0.0, 30.0, 0.0])
    assert [turn.optimal_choice for turn in analysis.turns] == ["Abyss", "Sunset", "Sunset", "Bind", "Corrode", "Haven"]
    assert set(analysis.turns[2].available_maps) == {"Ascent", "Bind", "Corrode", "Haven", "Sunset"}
    assert analysis.elo_lost == pytest.approx({TEAM1: 80.0, TEAM2: 10.0})
    assert analysis.scored_actions == {TEAM1: 3, TEAM2: 3}
    assert analysis.turns[4].cumulative_elo_lost == pytest.approx(80.0)
    assert analysis.defects == ()


def test_greedy_draft_loses_nothing() -> None:
    draft = (
        ("ban", "Abyss", TEAM1),
        ("ban", "Sunset", TEAM2),
        ("pick", "Lotus", TEAM1),
        ("pick", "Ascent", TEAM2),
        ("ban", "Bind", TEAM1),
        ("ban", "Haven", TEAM2),
        ("decider", "Corrode", None),
    )

    analysis = analyze_match(_match(), _vetoes(draft), RATINGS)

    assert isinstance(analysis, MatchVetoAnalysis)
    assert all(turn.elo_lost == pytest.approx(0.0) for turn in analysis.turns)
    assert match_scores(analysis) == [(TEAM1, 0.0), (TEAM2, 0.0)]


def test_short_veto_is_skipped() -> None:
    outcome = analyze_match(_match(), _vetoes(DRAFT[:5]), RATINGS)

    assert isinstance(outcome, AnalysisSkip)
    assert "only 5 veto actions" in outcome.reason


def test_missing_rating_skips_match() -> None:
    ratings = {TEAM1: RATINGS[TEAM1], TEAM2: {name: 1000.0 for name in POOL if name != "Bind"}}

    outcome = analyze_match(_match(), _vetoes(DRAFT), ratings)

    assert isinstance(outcome, AnalysisSkip)
    assert "Bind" in outcome.reason


def test_veto_without_team_is_a_defect_not_a_score() -> None:
    draft = list(DRAFT)
    draft[1] = ("ban", "Lotus", None)

    analysis = analyze_match(_match(), _vetoes(draft), RATINGS)

    assert isinstance(analysis, MatchVetoAnalysis)
    assert [(defect.order, defect.reason) for defect in analysis.defects] == [(2, "missing acting team")]
    assert analysis.scored_actions == {TEAM1: 3, TEAM2: 2}
    assert all(turn.elo_lost >= 0.0 for turn in analysis.turns)


def test_summary_averages_per_match_and_sorts_best_first() -> None:
    summary = summarize_team_scores([(1, 80.0), (2, 10.0), (1, 20.0), (3, 0.0)])

    assert [score.team_id for score in summary] == [3, 2, 1]
    assert summary[2].average_elo_lost == pytest.approx(50.0)
    assert summary[2].total_elo_lost == pytest.approx(100.0)
    assert summary[2].matches_analyzed == 2


def test_first_mover_from_even_turn() -> None:
    vetoes = _vetoes([("ban", "Abyss", None), ("ban", "Lotus", TEAM1)] + list(DRAFT[2:4]))

    assert infer_first_mover(vetoes, TEAM1, TEAM2) == TEAM2


def test_reconcile_fills_gaps_by_parity() -> None:
    draft = list(DRAFT)
    draft[2] = ("pick", "Ascent", None)
    draft[5] = ("ban", "Haven", None)

    proposals = reconcile(_vetoes(draft), TEAM1, TEAM2)

    assert [(item.order_index, item.team_id) for item in proposals] == [(3, TEAM1), (6, TEAM2)]


def test_reconcile_uses_fallback_first_mover_only_when_unknown() -> None:
    draft = [(action, name, None) for action, name, _ in DRAFT]

    assert reconcile(_vetoes(draft), TEAM1, TEAM2) == []
    proposals = reconcile(_vetoes(draft), TEAM1, TEAM2, first_mover_id=TEAM2)
    assert [item.team_id for item in proposals] == [TEAM2, TEAM1, TEAM2, TEAM1, TEAM2, TEAM1]
    with pytest.raises(ValueError, match="first_mover_id"):
        reconcile(_vetoes(draft), TEAM1, TEAM2, first_mover_id=99)


def _stored_match(session_factory: sessionmaker[Session], draft=DRAFT) -> tuple[int, int, int]:
    alpha = add_team(session_factory, "alpha")
    beta = add_team(session_factory, "beta")
    remap = {TEAM1: alpha, TEAM2: beta, None: None}
    match_id = add_match(
        session_factory,
        team1_id=alpha,
        team2_id=beta,
        completed_at=PLAYED,
        vetoes=[(action, name, remap[team]) for action, name, team in draft],
    )
    return match_id, alpha, beta


def _ratings_for(alpha: int, beta: int):
    def ratings_as_of(team_ids: Iterable[int], cutoff: datetime) -> dict[int, dict[str, float]]:
        assert cutoff == PLAYED
        by_id = {alpha: RATINGS[TEAM1], beta: RATINGS[TEAM2]}
        return {team_id: dict(by_id[team_id]) for team_id in team_ids}

    return ratings_as_of


def test_analyzer_persists_once_per_match(session_factory: sessionmaker[Session]) -> None:
    match_id, alpha, beta = _stored_match(session_factory)
    store = SqlAlchemyVetoStore(session_factory, max_retries=0)
    analyzer = PickBanAnalyzer(store, _ratings_for(alpha, beta))

    preview = analyzer.analyze_pending(dry_run=True)
    assert preview.analyzed == 1
    assert store.matches_pending_analysis()[0].id == match_id

    summary = analyzer.analyze_pending()

    assert summary.analyzed == 1
    assert summary.skipped == []
    assert store.matches_pending_analysis() == []
    assert dict(store.match_scores()) == pytest.approx({alpha: 80.0, beta: 10.0})
    with session_factory() as session:
        turns = session.execute(
            select(MatchVetoAnalysisModel).order_by(MatchVetoAnalysisModel.veto_order)
        ).scalars().all()
        assert [turn.veto_order for turn in turns] == [1, 2, 3, 4, 5, 6]
        assert turns[2].optimal_choice == "Sunset"
        totals = session.execute(select(MatchPickBanAnalysisModel)).scalars().all()
        assert len(totals) == 2

    assert analyzer.analyze_pending().analyzed == 0


def test_analyzer_reports_skips(session_factory: sessionmaker[Session]) -> None:
    match_id, alpha, beta = _stored_match(session_factory, draft=DRAFT[:4])
    analyzer = PickBanAnalyzer(SqlAlchemyVetoStore(session_factory, max_retries=0), _ratings_for(alpha, beta))

    summary = analyzer.analyze_pending()

    assert summary.analyzed == 0
    assert [skip.match_id for skip in summary.skipped] == [match_id]


def test_proposed_fixes_are_applied_to_missing_teams_only(session_factory: sessionmaker[Session]) -> None:
    draft = list(DRAFT)
    draft[3] = ("pick", "Bind", None)
    match_id, alpha, beta = _stored_match(session_factory, draft=draft)
    store = SqlAlchemyVetoStore(session_factory, max_retries=0)

    proposals, unresolved = propose_veto_fixes(store)

    assert unresolved == []
    assert [(item.match_id, item.order_index, item.team_id) for item in proposals] == [(match_id, 4, beta)]
    assert store.assign_veto_teams(proposals) == 1
    assert store.matches_with_unassigned_vetoes() == []
    with session_factory() as session:
        teams = session.execute(
            select(MatchVetoModel.team_id).order_by(MatchVetoModel.order_index)
        ).scalars().all()
    assert teams == [alpha, beta, alpha, beta, alpha, beta, None]
