"""Batch pick/ban analysis and veto repair over the store."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from typing import Protocol

from domain.common import CompletedMatch, VetoAction
from domain.veto.analysis import AnalysisSkip, MatchVetoAnalysis, analyze_match
from domain.veto.reconcile import ProposedAssignment, reconcile

logger = logging.getLogger(__name__)

RatingsAsOf = Callable[[Iterable[int], datetime], dict[int, dict[str, float]]]


class VetoStore(Protocol):
    def matches_pending_analysis(self) -> list[CompletedMatch]: ...

    def vetoes_for_match(self, match_id: int) -> list[VetoAction]: ...

    def save_match_analysis(self, analysis: MatchVetoAnalysis) -> None: ...

    def matches_with_unassigned_vetoes(self) -> list[tuple[CompletedMatch, list[VetoAction]]]: ...

    def assign_veto_teams(self, assignments: Sequence[ProposedAssignment]) -> int: ...


@dataclass(frozen=True)
class AnalysisRunSummary:
    analyzed: int
    skipped: list[AnalysisSkip] = field(default_factory=list)
    defects: int = 0


class PickBanAnalyzer:
    """Scores every completed, not yet analyzed match that has vetoes."""

    def __init__(self, store: VetoStore, ratings_as_of: RatingsAsOf) -> None:
        self.store = store
        self.ratings_as_of = ratings_as_of

    def analyze(self, match: CompletedMatch) -> MatchVetoAnalysis | AnalysisSkip:
        vetoes = self.store.vetoes_for_match(match.id)
        ratings = self.ratings_as_of((match.team1_id, match.team2_id), match.completed_at)
        return analyze_match(match, vetoes, ratings)

    def analyze_pending(self, *, dry_run: bool = False) -> AnalysisRunSummary:
        matches = self.store.matches_pending_analysis()
        logger.info("Found %d matches awaiting pick/ban analysis", len(matches))

        analyzed = 0
        defects = 0
        skipped: list[AnalysisSkip] = []
        for match in matches:
            outcome = self.analyze(match)
            if isinstance(outcome, AnalysisSkip):
                logger.info("Skipping match_id=%d: %s", outcome.match_id, outcome.reason)
                skipped.append(outcome)
                continue

            defects += len(outcome.defects)
            if not dry_run:
                self.store.save_match_analysis(outcome)
            analyzed += 1
            logger.debug(
                "match_id=%d rating lost: %s",
                match.id,
                ", ".join(f"team {team_id}={lost:.2f}" for team_id, lost in outcome.elo_lost.items()),
            )

        return AnalysisRunSummary(analyzed=analyzed, skipped=skipped, defects=defects)


def propose_veto_fixes(
    store: VetoStore,
    *,
    first_movers: dict[int, int] | None = None,
) -> tuple[list[ProposedAssignment], list[int]]:
    """Parity-based fixes for every match with unassigned vetoes.

    ``first_movers`` maps match id to a known first-mover team id. Returns the
    proposals and the ids of matches that could not be resolved.
    """
    first_movers = first_movers or {}
    proposals: list[ProposedAssignment] = []
    unresolved: list[int] = []
    for match, vetoes in store.matches_with_unassigned_vetoes():
        fixes = reconcile(
            vetoes,
            match.team1_id,
            match.team2_id,
            first_mover_id=first_movers.get(match.id),
        )
        if not fixes:
            unresolved.append(match.id)
            continue
        proposals.extend(fixes)
    return proposals, unresolved


__all__ = ["AnalysisRunSummary", "PickBanAnalyzer", "VetoStore", "propose_veto_fixes"]
