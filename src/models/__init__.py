"""ORM models."""

from models.base import Base
from models.map_result import MapResultModel
from models.match import MatchModel
from models.pick_ban import MatchPickBanAnalysisModel, MatchVetoAnalysisModel
from models.rating import EloRatingCurrentModel, EloRatingModel
from models.season import SeasonModel
from models.team import TeamModel
from models.veto import MatchVetoModel

__all__ = [
    "Base",
    "EloRatingCurrentModel",
    "EloRatingModel",
    "MapResultModel",
    "MatchModel",
    "MatchPickBanAnalysisModel",
    "MatchVetoAnalysisModel",
    "MatchVetoModel",
    "SeasonModel",
    "TeamModel",
]
