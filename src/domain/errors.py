"""Exception types raised by the rating, simulation and veto layers."""

from __future__ import annotations


class VctPredictorError(Exception):
    """Base class for domain errors."""


class InvalidResultError(VctPredictorError, ValueError):
    """A map result cannot produce a rating update (e.g. equal round counts)."""

    def __init__(self, message: str, *, map_result_id: int | None = None) -> None:
        super().__init__(message)
        self.map_result_id = map_result_id


class SeasonExistsError(VctPredictorError):
    """A season for the requested year is already present."""

    def __init__(self, year: int) -> None:
        super().__init__(f"season {year} already exists")
        self.year = year


class SeasonConflictError(VctPredictorError):
    """The active season changed while a season transition was in flight."""


class NoActiveSeasonError(VctPredictorError):
    """No season is active and auto-creation is disabled."""


class ResetNotConfirmedError(VctPredictorError):
    """A destructive reset was requested without explicit confirmation."""


class VetoError(VctPredictorError, ValueError):
    """A map pool does not fit the requested veto format."""


class RequestValidationError(VctPredictorError, ValueError):
    """User-supplied request parameters are invalid."""


class StoreUnavailableError(VctPredictorError):
    """The store could not be reached; the operation may be retried."""

    retryable = True


__all__ = [
    "InvalidResultError",
    "NoActiveSeasonError",
    "RequestValidationError",
    "ResetNotConfirmedError",
    "SeasonConflictError",
    "SeasonExistsError",
    "StoreUnavailableError",
    "VctPredictorError",
    "VetoError",
]
