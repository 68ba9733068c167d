from __future__ import annotations

from datetime import date
from pathlib import Path

import pytest

from domain.simulation.tournaments import (
    DEFAULT_TOURNAMENT_DIR,
    find_tournament,
    load_tournament_config,
    load_tournament_configs,
)

POOL_LINE = 'map_pool = ["Abyss", "Ascent", "Bind", "Corrode", "Haven", "Lotus", "Sunset"]'


def _write_tournament(
    path: Path,
    *,
    tournament_id: str = "cup-2025",
    pool_line: str = POOL_LINE,
    seeding: str = 'seed1 = "AAA"\nseed2 = "BBB"\nseed3 = "CCC"\nseed4 = "DDD"',
    extra: str = "",
) -> Path:
    teams = "\n".join(f'[[teams]]\nslug = "{slug}"\nname = "Team {slug}"\n' for slug in ("AAA", "BBB", "CCC", "DDD"))
    path.write_text(
        f"""
[tournament]
id = "{tournament_id}"
name = "Test Cup"
start_date = 2025-03-01
format = "double-elim-4"
{pool_line}

{teams}
[seeding]
{seeding}
{extra}
""".strip()
        + "\n",
        encoding="utf-8",
    )
    return path


def test_load_tournament_config(tmp_path: Path) -> None:
    config = load_tournament_config(
        _write_tournament(
            tmp_path / "cup.toml",
            extra='[completed_winners]\nUB-SEMI1 = "AAA"\n\n[actual_results]\nwinner = "AAA"\ntop4 = ["AAA", "BBB", "CCC", "DDD"]',
        )
    )

    assert config.id == "cup-2025"
    assert config.start_date == date(2025, 3, 1)
    assert config.team_slugs == ["AAA", "BBB", "CCC", "DDD"]
    assert config.team_name("CCC") == "Team CCC"
    assert config.completed_winners == {"UB-SEMI1": "AAA"}
    assert config.actual_results is not None
    assert config.actual_results.winner == "AAA"
    assert config.bracket().field_size == 4
    assert config.as_config_json()["format"] == "double-elim-4"


def test_shipped_tournaments_load() -> None:
    configs = {config.id: config for config in load_tournament_configs(DEFAULT_TOURNAMENT_DIR)}

    assert set(configs) == {"vct-champions-2025", "vct-masters-bangkok-2025", "vct-masters-toronto-2025"}
    assert len(configs["vct-champions-2025"].seeding) == 16
    assert len(configs["vct-masters-toronto-2025"].seeding) == 12
    assert find_tournament("vct-masters-bangkok-2025").format == "swiss-4team-double-elim"


def test_unknown_tournament_id(tmp_path: Path) -> None:
    _write_tournament(tmp_path / "cup.toml")
    with pytest.raises(KeyError, match="cup-2025"):
        find_tournament("other", tmp_path)


def test_duplicate_tournament_ids_are_rejected(tmp_path: Path) -> None:
    _write_tournament(tmp_path / "a.toml")
    _write_tournament(tmp_path / "b.toml")

    with pytest.raises(ValueError, match="Duplicate tournament id names"):
        load_tournament_configs(tmp_path)


@pytest.mark.parametrize(
    ("kwargs", "message"),
    [
        ({"pool_line": 'map_pool = ["Abyss", "Ascent"]'}, "7 distinct maps"),
        ({"seeding": 'seed1 = "AAA"\nseed2 = "BBB"\nseed3 = "CCC"'}, "missing=\\['seed4'\\]"),
        ({"seeding": 'seed1 = "AAA"\nseed2 = "BBB"\nseed3 = "CCC"\nseed4 = "ZZZ"'}, "unknown teams"),
        ({"seeding": 'seed1 = "AAA"\nseed2 = "BBB"\nseed3 = "CCC"\nseed4 = "AAA"'}, "more than once"),
        ({"extra": '[completed_winners]\nQF1 = "AAA"'}, "unknown matches"),
        ({"extra": '[actual_results]\ntop4 = ["AAA"]'}, "winner is required"),
    ],
)
def test_invalid_tournament_is_rejected(tmp_path: Path, kwargs: dict[str, str], message: str) -> None:
    path = _write_tournament(tmp_path / "cup.toml", **kwargs)
    with pytest.raises(ValueError, match=message):
        load_tournament_config(path)


def test_unknown_format_is_rejected(tmp_path: Path) -> None:
    path = _write_tournament(tmp_path / "cup.toml")
    path.write_text(path.read_text(encoding="utf-8").replace("double-elim-4", "round-robin"), encoding="utf-8")

    with pytest.raises(ValueError, match="format"):
        load_tournament_config(path)
