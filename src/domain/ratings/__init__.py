"""Per-map Elo rating domain modules."""

from domain.ratings.model import EloParameters, RatingUpdate, calculate_expected_score, update_ratings

__all__ = [
    "EloParameters",
    "RatingUpdate",
    "calculate_expected_score",
    "update_ratings",
]
