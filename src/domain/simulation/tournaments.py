"""Load tournament definitions from TOML files."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import Any

from domain.config_base import BaseConfig, load_config_file, load_configs, optional_str, required_str
from domain.simulation import formats
from domain.simulation.bracket import Bracket

ROOT_DIR = Path(__file__).resolve().parents[3]
DEFAULT_TOURNAMENT_DIR = ROOT_DIR / "configs" / "tournaments"

POOL_SIZE = 7


@dataclass(frozen=True)
class TournamentTeam:
    slug: str
    name: str
    group: str | None = None


@dataclass(frozen=True)
class ActualResults:
    winner: str
    runner_up: str | None = None
    third: str | None = None
    top4: tuple[str, ...] = ()
    top6: tuple[str, ...] = ()
    top8: tuple[str, ...] = ()
    top12: tuple[str, ...] = ()

    def as_json(self) -> dict[str, Any]:
        return {
            "winner": self.winner,
            "runner_up": self.runner_up,
            "third": self.third,
            "top4": list(self.top4),
            "top6": list(self.top6),
            "top8": list(self.top8),
            "top12": list(self.top12),
        }

    @classmethod
    def from_json(cls, raw: dict[str, Any]) -> ActualResults:
        return cls(
            winner=str(raw["winner"]),
            runner_up=raw.get("runner_up"),
            third=raw.get("third"),
            top4=tuple(raw.get("top4", ())),
            top6=tuple(raw.get("top6", ())),
            top8=tuple(raw.get("top8", ())),
            top12=tuple(raw.get("top12", ())),
        )


@dataclass(frozen=True)
class TournamentConfig(BaseConfig):
    """A tournament: its field, seeding into a bracket format and map pool."""

    id: str = ""
    start_date: date = date.min
    format: str = ""
    teams: tuple[TournamentTeam, ...] = ()
    seeding: dict[str, str] = field(default_factory=dict)
    map_pool: tuple[str, ...] = ()
    completed_winners: dict[str, str] = field(default_factory=dict)
    actual_results: ActualResults | None = None

    @property
    def team_slugs(self) -> list[str]:
        return [team.slug for team in self.teams]

    def team_name(self, slug: str) -> str:
        for team in self.teams:
            if team.slug == slug:
                return team.name
        raise KeyError(slug)

    def bracket(self) -> Bracket:
        return formats.build_bracket(self.format)

    def as_config_json(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "start_date": self.start_date.isoformat(),
            "format": self.format,
            "teams": [{"slug": team.slug, "name": team.name, "group": team.group} for team in self.teams],
            "seeding": dict(self.seeding),
            "map_pool": list(self.map_pool),
            "completed_winners": dict(self.completed_winners),
            "actual_results": None if self.actual_results is None else self.actual_results.as_json(),
        }


def load_tournament_config(file_path: Path) -> TournamentConfig:
    return load_config_file(file_path, _parse_tournament_config)


def load_tournament_configs(config_dir: Path = DEFAULT_TOURNAMENT_DIR) -> list[TournamentConfig]:
    """Load every tournament in a directory; ids must be unique."""
    return load_configs(
        config_dir,
        _parse_tournament_config,
        duplicate_name_label="tournament id",
        key=lambda config: config.id,
    )


def find_tournament(tournament_id: str, config_dir: Path = DEFAULT_TOURNAMENT_DIR) -> TournamentConfig:
    configs = load_tournament_configs(config_dir)
    for config in configs:
        if config.id == tournament_id:
            return config
    raise KeyError(f"Unknown tournament {tournament_id!r}; known: {sorted(config.id for config in configs)}")


def _parse_date(value: Any, *, file_path: Path) -> date:
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value))
    except ValueError:
        raise ValueError(f"{file_path}: [tournament].start_date must be an ISO date, got {value!r}") from None


def _parse_tournament_config(raw: dict[str, Any], file_path: Path) -> TournamentConfig:
    tournament_raw = raw.get("tournament", {})
    teams_raw = raw.get("teams", [])
    seeding_raw = raw.get("seeding", {})
    completed_raw = raw.get("completed_winners", {})
    actual_raw = raw.get("actual_results")

    tournament_id = required_str(tournament_raw, "id", file_path=file_path, section_name="tournament")
    name = required_str(tournament_raw, "name", file_path=file_path, section_name="tournament")
    description = optional_str(tournament_raw, "description")
    format_name = required_str(tournament_raw, "format", file_path=file_path, section_name="tournament")
    start_date = _parse_date(tournament_raw.get("start_date"), file_path=file_path)

    try:
        bracket = formats.build_bracket(format_name)
    except KeyError as error:
        raise ValueError(f"{file_path}: [tournament].format: {error.args[0]}") from None

    map_pool = tuple(str(map_name) for map_name in tournament_raw.get("map_pool", ()))
    if len(map_pool) != POOL_SIZE or len(set(map_pool)) != POOL_SIZE:
        raise ValueError(f"{file_path}: [tournament].map_pool must list {POOL_SIZE} distinct maps")

    if not isinstance(teams_raw, list) or not teams_raw:
        raise ValueError(f"{file_path}: at least one [[teams]] entry is required")
    teams = tuple(
        TournamentTeam(
            slug=required_str(team_raw, "slug", file_path=file_path, section_name="teams"),
            name=str(team_raw.get("name") or team_raw["slug"]),
            group=optional_str(team_raw, "group"),
        )
        for team_raw in teams_raw
    )
    slugs = [team.slug for team in teams]
    if len(slugs) != len(set(slugs)):
        raise ValueError(f"{file_path}: duplicate team slugs in [[teams]]: {slugs}")

    seeding = {str(key): str(value) for key, value in seeding_raw.items()}
    expected_keys = set(bracket.seed_keys())
    if set(seeding) != expected_keys:
        missing = sorted(expected_keys - set(seeding))
        extra = sorted(set(seeding) - expected_keys)
        raise ValueError(f"{file_path}: [seeding] does not match {format_name} (missing={missing}, extra={extra})")
    unknown = sorted(set(seeding.values()) - set(slugs))
    if unknown:
        raise ValueError(f"{file_path}: [seeding] references unknown teams {unknown}")
    if len(set(seeding.values())) != len(seeding):
        raise ValueError(f"{file_path}: [seeding] seeds a team more than once")

    completed_winners = {str(key): str(value) for key, value in completed_raw.items()}
    unknown_matches = sorted(set(completed_winners) - set(bracket.match_ids()))
    if unknown_matches:
        raise ValueError(f"{file_path}: [completed_winners] references unknown matches {unknown_matches}")

    actual_results = None
    if actual_raw is not None:
        if "winner" not in actual_raw:
            raise ValueError(f"{file_path}: [actual_results].winner is required")
        actual_results = ActualResults.from_json(actual_raw)
        named = {actual_results.winner, *actual_results.top4, *actual_results.top8, *actual_results.top12}
        stray = sorted(named - set(slugs))
        if stray:
            raise ValueError(f"{file_path}: [actual_results] references unknown teams {stray}")

    return TournamentConfig(
        name=name,
        description=description,
        file_path=file_path,
        id=tournament_id,
        start_date=start_date,
        format=format_name,
        teams=teams,
        seeding=seeding,
        map_pool=map_pool,
        completed_winners=completed_winners,
        actual_results=actual_results,
    )


__all__ = [
    "ActualResults",
    "DEFAULT_TOURNAMENT_DIR",
    "TournamentConfig",
    "TournamentTeam",
    "find_tournament",
    "load_tournament_config",
    "load_tournament_configs",
]
