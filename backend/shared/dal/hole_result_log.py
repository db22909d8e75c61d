"""Abstract interface for the per-match hole result log."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from shared.dal.models import HoleResult, HoleWinner, Match, MatchStatus


class HoleResultLog(ABC):
    """Keyed store of hole results, one row per (match_id, hole_number).

    The only writer is the scoring coordinator. Reads may happen from anywhere.
    """

    @abstractmethod
    async def get_match(self, match_id: str) -> Match | None: ...

    @abstractmethod
    async def list_hole_results(self, match_id: str) -> list[HoleResult]: ...

    @abstractmethod
    async def upsert_hole_result(
        self,
        match_id: str,
        hole_number: int,
        winner: HoleWinner,
        team_a_score: int | None = None,
        team_b_score: int | None = None,
    ) -> HoleResult: ...

    @abstractmethod
    async def delete_hole_result(self, match_id: str, hole_number: int) -> None: ...

    @abstractmethod
    async def set_match_status(self, match_id: str, status: MatchStatus) -> None:
        """Store the status label derived from the match's latest state."""

    @abstractmethod
    async def is_session_locked(self, session_id: str) -> bool: ...
