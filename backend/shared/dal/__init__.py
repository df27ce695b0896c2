"""Data access layer: repository interfaces and shared persistence models."""

from shared.dal.match_repository import MatchRepository
from shared.dal.models import MatchRecord, PlayerStats
from shared.dal.stats_repository import StatsRepository

__all__ = [
    "MatchRecord",
    "MatchRepository",
    "PlayerStats",
    "StatsRepository",
]
