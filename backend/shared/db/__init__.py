"""SQLite database layer: connection management and repository implementations."""

from shared.db.connection import Database
from shared.db.hole_result_log import SqliteHoleResultLog
from shared.db.tournament_repository import SqliteTournamentRepository

__all__ = [
    "Database",
    "SqliteHoleResultLog",
    "SqliteTournamentRepository",
]
