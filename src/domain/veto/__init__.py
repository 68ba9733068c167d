"""Map veto protocol, draft optimality analysis and veto data repair."""

from domain.veto.protocol import (
    BO3,
    BO5,
    BO5_ADV,
    FORMATS,
    SeriesResult,
    VetoFormat,
    map_win_probability,
    series_win_probability,
    simulate_draft,
    simulate_series,
)

__all__ = [
    "BO3",
    "BO5",
    "BO5_ADV",
    "FORMATS",
    "SeriesResult",
    "VetoFormat",
    "map_win_probability",
    "series_win_probability",
    "simulate_draft",
    "simulate_series",
]
