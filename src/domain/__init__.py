"""Domain logic: ratings, veto protocol, tournament simulation."""

from domain.common import CompletedMatch, CurrentRating, MapResult, RatingRecord, Season, Team, VetoAction

__all__ = [
    "CompletedMatch",
    "CurrentRating",
    "MapResult",
    "RatingRecord",
    "Season",
    "Team",
    "VetoAction",
]
