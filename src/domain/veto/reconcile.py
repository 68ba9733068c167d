"""Infer missing acting teams on recorded vetoes from turn parity.

Assumes strictly alternating turns with 1-based ``order_index``: odd turns
belong to the first mover, even turns to the second. Drafts with a double ban
(BO5_ADV) do not follow this pattern and should be fixed by hand.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from domain.common import VetoAction
from domain.veto.protocol import DECIDER


@dataclass(frozen=True)
class ProposedAssignment:
    veto_id: int
    match_id: int
    order_index: int
    team_id: int


def infer_first_mover(vetoes: Sequence[VetoAction], team1_id: int, team2_id: int) -> int | None:
    """First mover implied by the earliest non-decider veto with a known team."""
    for veto in sorted(vetoes, key=lambda item: item.order_index):
        if veto.action == DECIDER or veto.team_id is None:
            continue
        if veto.team_id not in (team1_id, team2_id):
            continue
        if veto.order_index % 2 == 0:
            return team2_id if veto.team_id == team1_id else team1_id
        return veto.team_id
    return None


def reconcile(
    vetoes: Sequence[VetoAction],
    team1_id: int,
    team2_id: int,
    *,
    first_mover_id: int | None = None,
) -> list[ProposedAssignment]:
    """Propose team ids for non-decider vetoes that have none.

    ``first_mover_id`` is used only when nothing in the recorded vetoes tells
    who acted first. Returns an empty list when the first mover is unknown.
    """
    if first_mover_id is not None and first_mover_id not in (team1_id, team2_id):
        raise ValueError(f"first_mover_id={first_mover_id} is not one of {team1_id}/{team2_id}")

    first = infer_first_mover(vetoes, team1_id, team2_id) or first_mover_id
    if first is None:
        return []
    second = team2_id if first == team1_id else team1_id

    return [
        ProposedAssignment(
            veto_id=veto.id,
            match_id=veto.match_id,
            order_index=veto.order_index,
            team_id=first if veto.order_index % 2 != 0 else second,
        )
        for veto in sorted(vetoes, key=lambda item: item.order_index)
        if veto.action != DECIDER and veto.team_id is None
    ]


__all__ = ["ProposedAssignment", "infer_first_mover", "reconcile"]
