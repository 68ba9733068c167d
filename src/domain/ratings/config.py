"""Load rating-system settings from TOML files."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from domain.config_base import BaseConfig, load_config_file, optional_str, required_str
from domain.ratings.maps import maps_for_year
from domain.ratings.model import EloParameters

ROOT_DIR = Path(__file__).resolve().parents[3]
DEFAULT_RATING_CONFIG = ROOT_DIR / "configs" / "ratings" / "default.toml"


@dataclass(frozen=True)
class SeasonSettings:
    reset_year: int = 2025
    historical_years: tuple[int, ...] = (2023, 2024, 2025)
    auto_create_season: bool = True


@dataclass(frozen=True)
class RatingSystemConfig(BaseConfig):
    """Elo parameters, season policy and per-year map pool overrides."""

    parameters: EloParameters = field(default_factory=EloParameters)
    seasons: SeasonSettings = field(default_factory=SeasonSettings)
    map_pools: dict[int, tuple[str, ...]] = field(default_factory=dict)

    def maps_for_year(self, year: int) -> tuple[str, ...] | None:
        return maps_for_year(year, self.map_pools)

    def as_config_json(self) -> dict[str, Any]:
        return {
            "initial_rating": self.parameters.initial_rating,
            "k_factor": self.parameters.k_factor,
            "scale_factor": self.parameters.scale_factor,
            "margin_constant": self.parameters.margin_constant,
            "reset_year": self.seasons.reset_year,
            "historical_years": list(self.seasons.historical_years),
            "auto_create_season": self.seasons.auto_create_season,
            "map_pools": {str(year): list(maps) for year, maps in self.map_pools.items()},
        }


def default_rating_config() -> RatingSystemConfig:
    return RatingSystemConfig(name="default", description=None, file_path=Path("<defaults>"))


def load_rating_config(file_path: Path = DEFAULT_RATING_CONFIG) -> RatingSystemConfig:
    """Load and validate one rating-system TOML file."""
    return load_config_file(file_path, _parse_rating_config)


def _parse_rating_config(raw: dict[str, Any], file_path: Path) -> RatingSystemConfig:
    system_raw = raw.get("system", {})
    elo_raw = raw.get("elo", {})
    seasons_raw = raw.get("seasons", {})
    pools_raw = raw.get("map_pools", {})

    name = required_str(system_raw, "name", file_path=file_path, section_name="system")
    description = optional_str(system_raw, "description")

    parameters = EloParameters(
        initial_rating=float(elo_raw.get("initial_rating", 1000.0)),
        k_factor=float(elo_raw.get("k_factor", 74.0)),
        scale_factor=float(elo_raw.get("scale_factor", 2000.0)),
        margin_constant=float(elo_raw.get("margin_constant", 5.95)),
    )
    _validate_parameters(file_path=file_path, parameters=parameters)

    seasons = SeasonSettings(
        reset_year=int(seasons_raw.get("reset_year", 2025)),
        historical_years=tuple(int(year) for year in seasons_raw.get("historical_years", (2023, 2024, 2025))),
        auto_create_season=bool(seasons_raw.get("auto_create_season", True)),
    )

    map_pools: dict[int, tuple[str, ...]] = {}
    for year_key, maps in pools_raw.items():
        try:
            year = int(year_key)
        except ValueError:
            raise ValueError(f"{file_path}: [map_pools] keys must be years, got {year_key!r}") from None
        if not isinstance(maps, list) or not maps:
            raise ValueError(f"{file_path}: [map_pools].{year_key} must be a non-empty list of map names")
        map_pools[year] = tuple(str(map_name) for map_name in maps)

    return RatingSystemConfig(
        name=name,
        description=description,
        file_path=file_path,
        parameters=parameters,
        seasons=seasons,
        map_pools=map_pools,
    )


def _validate_parameters(*, file_path: Path, parameters: EloParameters) -> None:
    if parameters.initial_rating <= 0.0:
        raise ValueError(f"{file_path}: [elo].initial_rating must be > 0")
    if parameters.k_factor <= 0.0:
        raise ValueError(f"{file_path}: [elo].k_factor must be > 0")
    if parameters.scale_factor <= 0.0:
        raise ValueError(f"{file_path}: [elo].scale_factor must be > 0")
    # log(c) must stay positive so a 1-round win still moves ratings
    if parameters.margin_constant <= 1.0:
        raise ValueError(f"{file_path}: [elo].margin_constant must be > 1")


__all__ = [
    "DEFAULT_RATING_CONFIG",
    "RatingSystemConfig",
    "SeasonSettings",
    "default_rating_config",
    "load_rating_config",
]
