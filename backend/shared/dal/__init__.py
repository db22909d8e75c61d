"""Data access layer: repository interfaces and shared persistence models."""

from shared.dal.exceptions import StorageError
from shared.dal.hole_result_log import HoleResultLog
from shared.dal.models import (
    AuditAction,
    AuditEntry,
    HoleEdit,
    HoleResult,
    HoleWinner,
    Match,
    MatchFormat,
    MatchStatus,
    Player,
    Session,
    Team,
    TeamSide,
    Trip,
)
from shared.dal.tournament_repository import TournamentRepository

__all__ = [
    "AuditAction",
    "AuditEntry",
    "HoleEdit",
    "HoleResult",
    "HoleResultLog",
    "HoleWinner",
    "Match",
    "MatchFormat",
    "MatchStatus",
    "Player",
    "Session",
    "StorageError",
    "Team",
    "TeamSide",
    "TournamentRepository",
    "Trip",
]
