"""Score recorded vetoes against the greedy rating-optimal choice."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass

from domain.common import CompletedMatch, VetoAction
from domain.veto.protocol import BAN, DECIDER, PICK, best_ban, best_pick

logger = logging.getLogger(__name__)

MIN_VETO_ACTIONS = 7


@dataclass(frozen=True)
class TurnAnalysis:
    """One scored non-decider turn."""

    order: int
    team_id: int
    action: str
    map_name: str
    elo_lost: float
    cumulative_elo_lost: float
    optimal_choice: str
    available_maps: tuple[str, ...]


@dataclass(frozen=True)
class VetoDefect:
    veto_id: int
    order: int
    reason: str


@dataclass(frozen=True)
class MatchVetoAnalysis:
    match_id: int
    turns: tuple[TurnAnalysis, ...]
    elo_lost: dict[int, float]
    scored_actions: dict[int, int]
    defects: tuple[VetoDefect, ...] = ()


@dataclass(frozen=True)
class AnalysisSkip:
    match_id: int
    reason: str


@dataclass(frozen=True)
class TeamPickBanScore:
    team_id: int
    average_elo_lost: float
    total_elo_lost: float
    matches_analyzed: int


@dataclass
class _TeamTally:
    total: float = 0.0
    matches: int = 0


def analyze_match(
    match: CompletedMatch,
    vetoes: Sequence[VetoAction],
    ratings_by_team: Mapping[int, Mapping[str, float]],
) -> MatchVetoAnalysis | AnalysisSkip:
    """Replay one match's veto in order and score each team's choices.

    Advantage is the acting team's rating minus the opponent's on the same map,
    using ratings as of match time. A pick loses ``max_advantage - actual`` and a
    ban loses ``actual - min_advantage``; both are non-negative.
    """
    ordered = sorted(vetoes, key=lambda veto: veto.order_index)
    if len(ordered) < MIN_VETO_ACTIONS:
        return AnalysisSkip(
            match_id=match.id,
            reason=f"only {len(ordered)} veto actions recorded (need {MIN_VETO_ACTIONS})",
        )

    available = list(dict.fromkeys(veto.map_name for veto in ordered))
    team_ids = (match.team1_id, match.team2_id)
    for team_id in team_ids:
        team_ratings = ratings_by_team.get(team_id, {})
        missing = sorted(map_name for map_name in available if map_name not in team_ratings)
        if missing:
            return AnalysisSkip(
                match_id=match.id,
                reason=f"team {team_id} has no rating for {', '.join(missing)}",
            )

    elo_lost = {team_id: 0.0 for team_id in team_ids}
    scored_actions = {team_id: 0 for team_id in team_ids}
    turns: list[TurnAnalysis] = []
    defects: list[VetoDefect] = []

    for order, veto in enumerate(ordered, start=1):
        if veto.map_name not in available:
            defects.append(VetoDefect(veto_id=veto.id, order=order, reason=f"{veto.map_name} already removed"))
            continue
        if veto.action == DECIDER:
            available.remove(veto.map_name)
            continue
        if veto.team_id not in team_ids:
            reason = "missing acting team" if veto.team_id is None else f"team {veto.team_id} not in match"
            logger.warning("match_id=%d veto_id=%d: %s", match.id, veto.id, reason)
            defects.append(VetoDefect(veto_id=veto.id, order=order, reason=reason))
            available.remove(veto.map_name)
            continue

        acting = veto.team_id
        opponent = team_ids[1] if acting == team_ids[0] else team_ids[0]
        advantages = {
            map_name: ratings_by_team[acting][map_name] - ratings_by_team[opponent][map_name]
            for map_name in available
        }

        if veto.action == PICK:
            optimal = best_pick(advantages, available)
            lost = advantages[optimal] - advantages[veto.map_name]
        elif veto.action == BAN:
            optimal = best_ban(advantages, available)
            lost = advantages[veto.map_name] - advantages[optimal]
        else:
            reason = f"unknown action {veto.action!r}"
            defects.append(VetoDefect(veto_id=veto.id, order=order, reason=reason))
            available.remove(veto.map_name)
            continue

        elo_lost[acting] += lost
        scored_actions[acting] += 1
        turns.append(
            TurnAnalysis(
                order=order,
                team_id=acting,
                action=veto.action,
                map_name=veto.map_name,
                elo_lost=lost,
                cumulative_elo_lost=elo_lost[acting],
                optimal_choice=optimal,
                available_maps=tuple(available),
            )
        )
        available.remove(veto.map_name)

    return MatchVetoAnalysis(
        match_id=match.id,
        turns=tuple(turns),
        elo_lost=elo_lost,
        scored_actions=scored_actions,
        defects=tuple(defects),
    )


def match_scores(analysis: MatchVetoAnalysis) -> list[tuple[int, float]]:
    """(team_id, rating lost) for each team with at least one scored action."""
    return [
        (team_id, lost)
        for team_id, lost in analysis.elo_lost.items()
        if analysis.scored_actions.get(team_id, 0) > 0
    ]


def summarize_team_scores(scores: Iterable[tuple[int, float]]) -> list[TeamPickBanScore]:
    """Average rating lost per analyzed match, best drafters first."""
    tallies: dict[int, _TeamTally] = {}
    for team_id, lost in scores:
        tally = tallies.setdefault(team_id, _TeamTally())
        tally.total += lost
        tally.matches += 1

    summary = [
        TeamPickBanScore(
            team_id=team_id,
            average_elo_lost=tally.total / tally.matches,
            total_elo_lost=tally.total,
            matches_analyzed=tally.matches,
        )
        for team_id, tally in tallies.items()
    ]
    return sorted(summary, key=lambda score: (score.average_elo_lost, score.team_id))


__all__ = [
    "AnalysisSkip",
    "MIN_VETO_ACTIONS",
    "MatchVetoAnalysis",
    "TeamPickBanScore",
    "TurnAnalysis",
    "VetoDefect",
    "analyze_match",
    "match_scores",
    "summarize_team_scores",
]
