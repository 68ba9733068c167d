"""Registry of bracket builders keyed by tournament format name."""

from __future__ import annotations

from collections.abc import Callable, Sequence

from domain.simulation.bracket import Bracket, BracketMatch, DrawGroup, Drawn, LoserOf, Seed, Slot, WinnerOf

BracketBuilder = Callable[[], Bracket]

_REGISTRY: dict[str, BracketBuilder] = {}


def register(name: str) -> Callable[[BracketBuilder], BracketBuilder]:
    def decorator(builder: BracketBuilder) -> BracketBuilder:
        if name in _REGISTRY:
            raise ValueError(f"Bracket format already registered: {name}")
        _REGISTRY[name] = builder
        return builder

    return decorator


def get(name: str) -> BracketBuilder:
    try:
        return _REGISTRY[name]
    except KeyError:
        raise KeyError(f"Unknown bracket format {name!r}; known formats: {sorted(_REGISTRY)}") from None


def get_all() -> dict[str, BracketBuilder]:
    return dict(_REGISTRY)


def build_bracket(name: str) -> Bracket:
    return get(name)()


def gsl_group(name: str, *, last_place: int, third_place: int) -> list[BracketMatch]:
    """Four-team GSL group: opening pair, winners and elimination matches, decider.

    The group winner is ``WinnerOf(<name>-WM)`` and the runner-up
    ``WinnerOf(<name>-DM)``.
    """
    return [
        BracketMatch(f"{name}-M1", Seed(f"{name}-seed1"), Seed(f"{name}-seed4")),
        BracketMatch(f"{name}-M2", Seed(f"{name}-seed2"), Seed(f"{name}-seed3")),
        BracketMatch(f"{name}-WM", WinnerOf(f"{name}-M1"), WinnerOf(f"{name}-M2")),
        BracketMatch(f"{name}-EM", LoserOf(f"{name}-M1"), LoserOf(f"{name}-M2"), loser_place=last_place),
        BracketMatch(f"{name}-DM", LoserOf(f"{name}-WM"), WinnerOf(f"{name}-EM"), loser_place=third_place),
    ]


def swiss_stage(
    name: str,
    *,
    winless_place: int,
    one_win_place: int,
) -> tuple[list[BracketMatch], list[WinnerOf]]:
    """Eight-team Swiss, first to two wins advances and two losses eliminates.

    Returns the matches and the qualifiers, 2-0 teams first, then 2-1 teams.
    """
    seeds = [Seed(f"{name}-seed{index}") for index in range(1, 9)]
    matches = [
        BracketMatch(f"{name}-R1M1", seeds[0], seeds[7]),
        BracketMatch(f"{name}-R1M2", seeds[1], seeds[6]),
        BracketMatch(f"{name}-R1M3", seeds[2], seeds[5]),
        BracketMatch(f"{name}-R1M4", seeds[3], seeds[4]),
        # 1-0 pool
        BracketMatch(f"{name}-R2M1", WinnerOf(f"{name}-R1M1"), WinnerOf(f"{name}-R1M2")),
        BracketMatch(f"{name}-R2M2", WinnerOf(f"{name}-R1M3"), WinnerOf(f"{name}-R1M4")),
        # 0-1 pool
        BracketMatch(
            f"{name}-R2M3", LoserOf(f"{name}-R1M1"), LoserOf(f"{name}-R1M2"), loser_place=winless_place
        ),
        BracketMatch(
            f"{name}-R2M4", LoserOf(f"{name}-R1M3"), LoserOf(f"{name}-R1M4"), loser_place=winless_place
        ),
        # 1-1 pool
        BracketMatch(
            f"{name}-R3M1", LoserOf(f"{name}-R2M1"), WinnerOf(f"{name}-R2M3"), loser_place=one_win_place
        ),
        BracketMatch(
            f"{name}-R3M2", LoserOf(f"{name}-R2M2"), WinnerOf(f"{name}-R2M4"), loser_place=one_win_place
        ),
    ]
    qualified = [
        WinnerOf(f"{name}-R2M1"),
        WinnerOf(f"{name}-R2M2"),
        WinnerOf(f"{name}-R3M1"),
        WinnerOf(f"{name}-R3M2"),
    ]
    return matches, qualified


def double_elimination_8(
    pairs: Sequence[tuple[Slot, Slot]],
    *,
    lower_final_format: str = "BO3",
) -> list[BracketMatch]:
    """Eight-team double elimination from four upper-bracket opening pairs."""
    if len(pairs) != 4:
        raise ValueError(f"double elimination needs 4 opening pairs, got {len(pairs)}")
    opening = [
        BracketMatch(f"UB-R1M{index}", team1, team2) for index, (team1, team2) in enumerate(pairs, start=1)
    ]
    return opening + [
        BracketMatch("UB-R2M1", WinnerOf("UB-R1M1"), WinnerOf("UB-R1M2")),
        BracketMatch("UB-R2M2", WinnerOf("UB-R1M3"), WinnerOf("UB-R1M4")),
        BracketMatch("UB-FINAL", WinnerOf("UB-R2M1"), WinnerOf("UB-R2M2")),
        BracketMatch("LB-R1M1", LoserOf("UB-R1M1"), LoserOf("UB-R1M2"), loser_place=8),
        BracketMatch("LB-R1M2", LoserOf("UB-R1M3"), LoserOf("UB-R1M4"), loser_place=8),
        # upper-bracket losers cross over to the opposite half
        BracketMatch("LB-R2M1", LoserOf("UB-R2M2"), WinnerOf("LB-R1M1"), loser_place=6),
        BracketMatch("LB-R2M2", LoserOf("UB-R2M1"), WinnerOf("LB-R1M2"), loser_place=6),
        BracketMatch("LB-R3M1", WinnerOf("LB-R2M1"), WinnerOf("LB-R2M2"), loser_place=4),
        BracketMatch(
            "LB-FINAL", LoserOf("UB-FINAL"), WinnerOf("LB-R3M1"), format=lower_final_format, loser_place=3
        ),
        BracketMatch("GRAND-FINAL", WinnerOf("UB-FINAL"), WinnerOf("LB-FINAL"), format="BO5", loser_place=2),
    ]


def double_elimination_4(seeds: Sequence[Slot]) -> list[BracketMatch]:
    """Four-team double elimination: 1v4 and 2v3 upper semifinals."""
    if len(seeds) != 4:
        raise ValueError(f"four-team double elimination needs 4 seeds, got {len(seeds)}")
    seed1, seed2, seed3, seed4 = seeds
    return [
        BracketMatch("UB-SEMI1", seed1, seed4),
        BracketMatch("UB-SEMI2", seed2, seed3),
        BracketMatch("UB-FINAL", WinnerOf("UB-SEMI1"), WinnerOf("UB-SEMI2")),
        BracketMatch("LB-R1", LoserOf("UB-SEMI1"), LoserOf("UB-SEMI2"), loser_place=4),
        BracketMatch("LB-FINAL", LoserOf("UB-FINAL"), WinnerOf("LB-R1"), format="BO5", loser_place=3),
        BracketMatch("GRAND-FINAL", WinnerOf("UB-FINAL"), WinnerOf("LB-FINAL"), format="BO5", loser_place=2),
    ]


def _bracket_order(size: int) -> list[int]:
    order = [1]
    while len(order) < size:
        total = len(order) * 2 + 1
        order = [seed for top in order for seed in (top, total - top)]
    return order


def single_elimination(size: int, *, final_format: str = "BO5") -> Bracket:
    """Seeded knockout for a power-of-two field; seed keys are ``seed1``..``seedN``."""
    if size < 2 or size & (size - 1):
        raise ValueError(f"single elimination needs a power-of-two field, got {size}")

    order = _bracket_order(size)
    slots: list[Slot] = [Seed(f"seed{seed}") for seed in order]
    matches: list[BracketMatch] = []
    round_number = 1
    remaining = size
    while remaining > 1:
        next_slots: list[Slot] = []
        for index in range(0, len(slots), 2):
            match_id = "FINAL" if remaining == 2 else f"R{round_number}M{index // 2 + 1}"
            matches.append(
                BracketMatch(
                    match_id,
                    slots[index],
                    slots[index + 1],
                    format=final_format if remaining == 2 else "BO3",
                    loser_place=remaining,
                )
            )
            next_slots.append(WinnerOf(match_id))
        slots = next_slots
        remaining //= 2
        round_number += 1

    return Bracket(name=f"single-elim-{size}", matches=tuple(matches), final_match_id="FINAL")


@register("single-elim")
def build_single_elimination() -> Bracket:
    return single_elimination(8)


@register("double-elim-4")
def build_double_elimination_4() -> Bracket:
    matches = double_elimination_4([Seed(f"seed{index}") for index in range(1, 5)])
    return Bracket(name="double-elim-4", matches=tuple(matches), final_match_id="GRAND-FINAL")


@register("double-elim-8")
def build_double_elimination_8() -> Bracket:
    seeds = [Seed(f"seed{index}") for index in range(1, 9)]
    pairs = [(seeds[0], seeds[7]), (seeds[3], seeds[4]), (seeds[1], seeds[6]), (seeds[2], seeds[5])]
    matches = double_elimination_8(pairs)
    return Bracket(name="double-elim-8", matches=tuple(matches), final_match_id="GRAND-FINAL")


@register("gsl-groups-double-elim")
def build_gsl_groups_double_elimination() -> Bracket:
    """Champions: four GSL groups of four, top two into an eight-team double elimination."""
    groups = ("groupA", "groupB", "groupC", "groupD")
    matches: list[BracketMatch] = []
    for group in groups:
        matches.extend(gsl_group(group, last_place=16, third_place=12))

    def winner(group: str) -> WinnerOf:
        return WinnerOf(f"{group}-WM")

    def runner_up(group: str) -> WinnerOf:
        return WinnerOf(f"{group}-DM")

    pairs = [
        (winner("groupA"), runner_up("groupB")),
        (winner("groupC"), runner_up("groupD")),
        (winner("groupB"), runner_up("groupA")),
        (winner("groupD"), runner_up("groupC")),
    ]
    matches.extend(double_elimination_8(pairs))
    return Bracket(name="gsl-groups-double-elim", matches=tuple(matches), final_match_id="GRAND-FINAL")


@register("swiss-double-elim")
def build_swiss_double_elimination() -> Bracket:
    """Masters: eight-team Swiss, qualifiers drawn against four auto-qualified teams."""
    swiss_matches, qualified = swiss_stage("swiss", winless_place=12, one_win_place=10)
    draws = (
        DrawGroup("auto", tuple(Seed(f"playoff-auto{index}") for index in range(1, 5))),
        DrawGroup("swiss", tuple(qualified)),
    )
    pairs = [
        (Drawn("auto", 0), Drawn("swiss", 3)),
        (Drawn("auto", 3), Drawn("swiss", 0)),
        (Drawn("auto", 1), Drawn("swiss", 2)),
        (Drawn("auto", 2), Drawn("swiss", 1)),
    ]
    matches = swiss_matches + double_elimination_8(pairs, lower_final_format="BO5")
    return Bracket(
        name="swiss-double-elim",
        matches=tuple(matches),
        final_match_id="GRAND-FINAL",
        draws=draws,
    )


@register("swiss-4team-double-elim")
def build_swiss_four_team_double_elimination() -> Bracket:
    """Masters Bangkok: eight-team Swiss, top four seeded into a four-team double elimination."""
    swiss_matches, qualified = swiss_stage("swiss", winless_place=8, one_win_place=6)
    matches = swiss_matches + double_elimination_4(qualified)
    return Bracket(name="swiss-4team-double-elim", matches=tuple(matches), final_match_id="GRAND-FINAL")


__all__ = [
    "build_bracket",
    "double_elimination_4",
    "double_elimination_8",
    "get",
    "get_all",
    "gsl_group",
    "register",
    "single_elimination",
    "swiss_stage",
]
