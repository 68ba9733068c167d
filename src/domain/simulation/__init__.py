"""Tournament brackets, Monte-Carlo simulation and simulation artifacts."""

from domain.simulation.bracket import Bracket, BracketMatch, DrawGroup, Drawn, LoserOf, Seed, WinnerOf
from domain.simulation.monte_carlo import MonteCarloEngine, SimulationAccumulator, TeamResult
from domain.simulation.ratings import RatingTable, SnapshotRatingSource
from domain.simulation.tournaments import TournamentConfig, load_tournament_configs

__all__ = [
    "Bracket",
    "BracketMatch",
    "DrawGroup",
    "Drawn",
    "LoserOf",
    "MonteCarloEngine",
    "Seed",
    "SimulationAccumulator",
    "TeamResult",
    "RatingTable",
    "SnapshotRatingSource",
    "TournamentConfig",
    "WinnerOf",
    "load_tournament_configs",
]
