"""Map pools by competitive year."""

from __future__ import annotations

from collections.abc import Mapping

ACTIVE_MAP_POOL: tuple[str, ...] = ("Lotus", "Sunset", "Bind", "Haven", "Icebox", "Ascent", "Corrode")
INACTIVE_MAP_POOL: tuple[str, ...] = ("Breeze", "Split", "Abyss", "Fracture", "Pearl")

_BASE_2020 = ("Haven", "Bind", "Split", "Ascent", "Icebox", "Breeze", "Fracture")

MAP_AVAILABILITY: dict[int, tuple[str, ...]] = {
    2020: _BASE_2020,
    2021: _BASE_2020 + ("Pearl",),
    2022: _BASE_2020 + ("Pearl", "Lotus"),
    2023: _BASE_2020 + ("Pearl", "Lotus", "Sunset", "Abyss"),
    2024: _BASE_2020 + ("Pearl", "Lotus", "Sunset", "Abyss", "Corrode"),
    2025: _BASE_2020 + ("Pearl", "Lotus", "Sunset", "Abyss", "Corrode"),
}


def maps_for_year(
    year: int,
    overrides: Mapping[int, tuple[str, ...]] | None = None,
) -> tuple[str, ...] | None:
    """Return the legal map pool for a year, or None when the year is unknown."""
    if overrides and year in overrides:
        return tuple(overrides[year])
    return MAP_AVAILABILITY.get(year)


__all__ = ["ACTIVE_MAP_POOL", "INACTIVE_MAP_POOL", "MAP_AVAILABILITY", "maps_for_year"]
