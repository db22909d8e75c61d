"""Abstract interface for tournament setup records and snapshot queries."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from shared.dal.models import AuditEntry, HoleResult, Match, Player, Session, Team, Trip


class TournamentRepository(ABC):
    """Abstract interface for trips, teams, players, sessions and matches.

    Implementations can use SQLite, PostgreSQL, etc.
    """

    @abstractmethod
    async def create_trip(self, trip: Trip) -> None: ...

    @abstractmethod
    async def get_trip(self, trip_id: str) -> Trip | None: ...

    @abstractmethod
    async def create_team(self, team: Team) -> None: ...

    @abstractmethod
    async def list_teams(self, trip_id: str) -> list[Team]: ...

    @abstractmethod
    async def create_player(self, player: Player) -> None: ...

    @abstractmethod
    async def list_players(self, team_ids: list[str]) -> list[Player]: ...

    @abstractmethod
    async def create_session(self, session: Session) -> None: ...

    @abstractmethod
    async def get_session(self, session_id: str) -> Session | None: ...

    @abstractmethod
    async def list_sessions(self, trip_id: str) -> list[Session]: ...

    @abstractmethod
    async def set_session_locked(self, session_id: str, *, locked: bool) -> Session | None: ...

    @abstractmethod
    async def create_match(self, match: Match) -> None: ...

    @abstractmethod
    async def list_matches(self, session_ids: list[str]) -> list[Match]: ...

    @abstractmethod
    async def list_hole_results_for_matches(self, match_ids: list[str]) -> dict[str, list[HoleResult]]: ...

    @abstractmethod
    async def list_audit_entries(
        self,
        *,
        session_id: str | None = None,
        match_id: str | None = None,
    ) -> list[AuditEntry]: ...
