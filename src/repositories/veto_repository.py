"""SQLAlchemy persistence for vetoes and pick/ban analysis."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import TypeVar

from sqlalchemy import delete, exists, insert, select, update
from sqlalchemy.orm import Session, sessionmaker

from db import run_with_retry
from domain.common import CompletedMatch, VetoAction
from domain.veto.analysis import MatchVetoAnalysis
from domain.veto.protocol import DECIDER
from domain.veto.reconcile import ProposedAssignment
from models import MatchModel, MatchPickBanAnalysisModel, MatchVetoAnalysisModel, MatchVetoModel

T = TypeVar("T")


def _to_veto(row: MatchVetoModel) -> VetoAction:
    return VetoAction(
        id=row.id,
        match_id=row.match_id,
        order_index=row.order_index,
        action=row.action,
        map_name=row.map_name,
        team_id=row.team_id,
    )


def _to_match(row: MatchModel) -> CompletedMatch:
    return CompletedMatch(
        id=row.id,
        team1_id=row.team1_id,
        team2_id=row.team2_id,
        completed_at=row.completed_at,
    )


def _completed_matches_with_vetoes():
    return select(MatchModel).where(
        MatchModel.team1_id.is_not(None),
        MatchModel.team2_id.is_not(None),
        MatchModel.completed_at.is_not(None),
        exists().where(MatchVetoModel.match_id == MatchModel.id),
    )


class SqlAlchemyVetoStore:
    def __init__(self, session_factory: sessionmaker[Session], *, max_retries: int = 3) -> None:
        self.session_factory = session_factory
        self.max_retries = max_retries

    def _run(self, description: str, work: Callable[[Session], T]) -> T:
        def operation() -> T:
            with self.session_factory() as session:
                with session.begin():
                    return work(session)

        return run_with_retry(operation, description=description, max_retries=self.max_retries)

    def matches_pending_analysis(self) -> list[CompletedMatch]:
        def work(session: Session) -> list[CompletedMatch]:
            statement = (
                _completed_matches_with_vetoes()
                .where(~exists().where(MatchPickBanAnalysisModel.match_id == MatchModel.id))
                .order_by(MatchModel.completed_at, MatchModel.id)
            )
            return [_to_match(row) for row in session.execute(statement).scalars()]

        return self._run("matches_pending_analysis", work)

    def vetoes_for_match(self, match_id: int) -> list[VetoAction]:
        def work(session: Session) -> list[VetoAction]:
            rows = session.execute(
                select(MatchVetoModel)
                .where(MatchVetoModel.match_id == match_id)
                .order_by(MatchVetoModel.order_index)
            ).scalars()
            return [_to_veto(row) for row in rows]

        return self._run("vetoes_for_match", work)

    def save_match_analysis(self, analysis: MatchVetoAnalysis) -> None:
        """Replace any stored analysis for the match with this one."""

        def work(session: Session) -> None:
            session.execute(
                delete(MatchVetoAnalysisModel).where(MatchVetoAnalysisModel.match_id == analysis.match_id)
            )
            session.execute(
                delete(MatchPickBanAnalysisModel).where(MatchPickBanAnalysisModel.match_id == analysis.match_id)
            )
            if analysis.turns:
                session.execute(
                    insert(MatchVetoAnalysisModel),
                    [
                        {
                            "match_id": analysis.match_id,
                            "team_id": turn.team_id,
                            "veto_order": turn.order,
                            "action": turn.action,
                            "map_name": turn.map_name,
                            "elo_lost": turn.elo_lost,
                            "cumulative_elo_lost": turn.cumulative_elo_lost,
                            "optimal_choice": turn.optimal_choice,
                            "available_maps": list(turn.available_maps),
                        }
                        for turn in analysis.turns
                    ],
                )
            session.execute(
                insert(MatchPickBanAnalysisModel),
                [
                    {
                        "match_id": analysis.match_id,
                        "team_id": team_id,
                        "elo_lost": lost,
                        "scored_actions": analysis.scored_actions.get(team_id, 0),
                    }
                    for team_id, lost in analysis.elo_lost.items()
                ],
            )

        self._run("save_match_analysis", work)

    def match_scores(self) -> list[tuple[int, float]]:
        """Stored (team_id, rating lost) pairs for matches where the team acted."""

        def work(session: Session) -> list[tuple[int, float]]:
            rows = session.execute(
                select(MatchPickBanAnalysisModel.team_id, MatchPickBanAnalysisModel.elo_lost).where(
                    MatchPickBanAnalysisModel.scored_actions > 0
                )
            ).all()
            return [(int(team_id), float(lost)) for team_id, lost in rows]

        return self._run("match_scores", work)

    def matches_with_unassigned_vetoes(self) -> list[tuple[CompletedMatch, list[VetoAction]]]:
        def work(session: Session) -> list[tuple[CompletedMatch, list[VetoAction]]]:
            match_ids = (
                select(MatchVetoModel.match_id)
                .where(MatchVetoModel.team_id.is_(None), MatchVetoModel.action != DECIDER)
                .distinct()
            )
            matches = session.execute(
                _completed_matches_with_vetoes().where(MatchModel.id.in_(match_ids)).order_by(MatchModel.id)
            ).scalars().all()

            result: list[tuple[CompletedMatch, list[VetoAction]]] = []
            for match in matches:
                vetoes = session.execute(
                    select(MatchVetoModel)
                    .where(MatchVetoModel.match_id == match.id)
                    .order_by(MatchVetoModel.order_index)
                ).scalars()
                result.append((_to_match(match), [_to_veto(row) for row in vetoes]))
            return result

        return self._run("matches_with_unassigned_vetoes", work)

    def assign_veto_teams(self, assignments: Sequence[ProposedAssignment]) -> int:
        def work(session: Session) -> int:
            for assignment in assignments:
                session.execute(
                    update(MatchVetoModel)
                    .where(MatchVetoModel.id == assignment.veto_id, MatchVetoModel.team_id.is_(None))
                    .values(team_id=assignment.team_id)
                )
            return len(assignments)

        return self._run("assign_veto_teams", work)


__all__ = ["SqlAlchemyVetoStore"]
