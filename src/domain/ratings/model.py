"""Per-map Elo update rule with a margin-of-victory multiplier."""

from __future__ import annotations

from dataclasses import dataclass
from math import log, sqrt

from domain.errors import InvalidResultError


@dataclass(frozen=True)
class EloParameters:
    initial_rating: float = 1000.0
    k_factor: float = 74.0
    scale_factor: float = 2000.0
    margin_constant: float = 5.95


@dataclass(frozen=True)
class RatingUpdate:
    """Pre/post ratings for both sides of one map."""

    winner_pre: float
    loser_pre: float
    winner_post: float
    loser_post: float
    delta: float
    expected_score: float
    margin_multiplier: float


def calculate_expected_score(rating: float, opponent_rating: float, scale_factor: float) -> float:
    """Compute the Elo expected score for one side."""
    return 1.0 / (1.0 + 10.0 ** ((opponent_rating - rating) / scale_factor))


def margin_multiplier(winner_rounds: int, loser_rounds: int, margin_constant: float) -> float:
    """Scale an update by the round differential of the map."""
    round_diff = max(winner_rounds - loser_rounds, 0)
    return log(margin_constant * sqrt(round_diff + 1))


def update_ratings(
    winner_rating: float,
    loser_rating: float,
    winner_rounds: int,
    loser_rounds: int,
    params: EloParameters,
    *,
    map_result_id: int | None = None,
) -> RatingUpdate:
    """Apply one map result. The update is zero-sum between the two teams."""
    if winner_rounds == loser_rounds:
        raise InvalidResultError(
            f"map_result_id={map_result_id} has equal round counts ({winner_rounds}-{loser_rounds})",
            map_result_id=map_result_id,
        )

    expected = calculate_expected_score(
        rating=winner_rating,
        opponent_rating=loser_rating,
        scale_factor=params.scale_factor,
    )
    multiplier = margin_multiplier(winner_rounds, loser_rounds, params.margin_constant)
    delta = params.k_factor * multiplier * (1.0 - expected)

    return RatingUpdate(
        winner_pre=winner_rating,
        loser_pre=loser_rating,
        winner_post=winner_rating + delta,
        loser_post=loser_rating - delta,
        delta=delta,
        expected_score=expected,
        margin_multiplier=multiplier,
    )


__all__ = [
    "EloParameters",
    "RatingUpdate",
    "calculate_expected_score",
    "margin_multiplier",
    "update_ratings",
]
