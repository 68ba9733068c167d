"""Tournament bracket topology as data.

A bracket is an ordered list of matches whose two slots name where each
competitor comes from: a seed, the winner or loser of an earlier match, or a
position in a per-trial random draw. A match's loser either leaves the
tournament with a finishing place or is routed on by a later ``LoserOf`` slot.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Union


@dataclass(frozen=True)
class Seed:
    key: str


@dataclass(frozen=True)
class WinnerOf:
    match_id: str


@dataclass(frozen=True)
class LoserOf:
    match_id: str


@dataclass(frozen=True)
class Drawn:
    """Position ``index`` of a draw group, shuffled independently each trial."""

    group: str
    index: int


Slot = Union[Seed, WinnerOf, LoserOf, Drawn]


@dataclass(frozen=True)
class DrawGroup:
    name: str
    members: tuple[Slot, ...]


@dataclass(frozen=True)
class BracketMatch:
    id: str
    team1: Slot
    team2: Slot
    format: str = "BO3"
    loser_place: int | None = None


@dataclass(frozen=True)
class Bracket:
    name: str
    matches: tuple[BracketMatch, ...]
    final_match_id: str
    draws: tuple[DrawGroup, ...] = ()
    _draws_by_name: dict[str, DrawGroup] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "_draws_by_name", {draw.name: draw for draw in self.draws})
        validate_bracket(self)

    def draw(self, name: str) -> DrawGroup:
        return self._draws_by_name[name]

    @property
    def field_size(self) -> int:
        return len(self.seed_keys())

    def seed_keys(self) -> list[str]:
        keys: list[str] = []
        for slot in self._all_slots():
            if isinstance(slot, Seed) and slot.key not in keys:
                keys.append(slot.key)
        return keys

    def match_ids(self) -> list[str]:
        return [match.id for match in self.matches]

    def _all_slots(self) -> Iterable[Slot]:
        for draw in self.draws:
            yield from draw.members
        for match in self.matches:
            yield match.team1
            yield match.team2


def validate_bracket(bracket: Bracket) -> None:
    """Check references point backwards and every competitor is placed exactly once."""
    draws = {draw.name: draw for draw in bracket.draws}
    ids = [match.id for match in bracket.matches]
    if len(ids) != len(set(ids)):
        raise ValueError(f"{bracket.name}: duplicate match ids in {ids}")
    if bracket.final_match_id not in ids:
        raise ValueError(f"{bracket.name}: final match {bracket.final_match_id!r} is not in the bracket")

    for draw in bracket.draws:
        if any(isinstance(member, Drawn) for member in draw.members):
            raise ValueError(f"{bracket.name}: draw {draw.name!r} cannot contain drawn slots")

    seen: set[str] = set()
    winner_refs: dict[str, int] = {}
    loser_refs: dict[str, int] = {}
    drawn_positions: dict[str, set[int]] = {}

    for match in bracket.matches:
        for slot in (match.team1, match.team2):
            sources: list[Slot] = [slot]
            if isinstance(slot, Drawn):
                if slot.group not in draws:
                    raise ValueError(f"{bracket.name}: {match.id} uses unknown draw {slot.group!r}")
                size = len(draws[slot.group].members)
                if not 0 <= slot.index < size:
                    raise ValueError(f"{bracket.name}: {match.id} draw index {slot.index} out of range")
                # members are resolved when the group is first used
                sources = [] if slot.group in drawn_positions else list(draws[slot.group].members)
                positions = drawn_positions.setdefault(slot.group, set())
                if slot.index in positions:
                    raise ValueError(f"{bracket.name}: draw {slot.group!r} position {slot.index} used twice")
                positions.add(slot.index)
            for source in sources:
                if isinstance(source, (WinnerOf, LoserOf)):
                    if source.match_id not in seen:
                        raise ValueError(
                            f"{bracket.name}: {match.id} references {source.match_id!r} before it is played"
                        )
                    refs = winner_refs if isinstance(source, WinnerOf) else loser_refs
                    refs[source.match_id] = refs.get(source.match_id, 0) + 1
        seen.add(match.id)

    for name, draw in draws.items():
        if drawn_positions.get(name, set()) != set(range(len(draw.members))):
            raise ValueError(f"{bracket.name}: draw {name!r} positions are not all used")

    for match in bracket.matches:
        routed = loser_refs.get(match.id, 0)
        if routed > 1 or winner_refs.get(match.id, 0) > 1:
            raise ValueError(f"{bracket.name}: {match.id} result is routed more than once")
        if (match.loser_place is None) == (routed == 0):
            raise ValueError(
                f"{bracket.name}: {match.id} loser must either be placed or routed to a later match"
            )
        if match.id != bracket.final_match_id and winner_refs.get(match.id, 0) == 0:
            raise ValueError(f"{bracket.name}: {match.id} winner is never routed")


__all__ = [
    "Bracket",
    "BracketMatch",
    "DrawGroup",
    "Drawn",
    "LoserOf",
    "Seed",
    "Slot",
    "WinnerOf",
    "validate_bracket",
]
