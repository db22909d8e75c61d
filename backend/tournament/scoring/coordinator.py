"""Serialized hole-result writes with per-match locking and single-step undo."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import structlog

from shared.dal.models import HoleWinner
from tournament.logic.exceptions import InvalidHoleError, NotFoundError, SessionLockedError
from tournament.logic.match_state import compute_state

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from shared.dal.hole_result_log import HoleResultLog
    from shared.dal.models import Match
    from tournament.logic.types import MatchState

logger = structlog.get_logger()


def _observe_result(task: asyncio.Task[MatchState]) -> None:
    """Mark a finished critical section's exception as retrieved.

    The caller may have stopped waiting on the shielded task, in which case
    nobody else would ever look at its outcome.
    """
    if not task.cancelled():
        task.exception()


class ScoringCoordinator:
    """The only writer of the hole result log.

    Every write for a match runs inside that match's lock, so at most one
    write per match is in flight and writes land in the order they were
    requested. Different matches never wait on each other. State is never
    cached here: each operation recomputes it from the log after writing and
    only copies the resulting status label back onto the stored match.
    """

    def __init__(self, hole_result_log: HoleResultLog) -> None:
        self._log = hole_result_log
        self._match_locks: dict[str, asyncio.Lock] = {}  # match_id -> Lock
        self._lock_users: dict[str, int] = {}  # match_id -> scheduled critical sections
        self._in_flight: set[asyncio.Task[MatchState]] = set()

    def _claim_match_lock(self, match_id: str) -> asyncio.Lock:
        lock = self._match_locks.get(match_id)
        if lock is None:
            lock = asyncio.Lock()
            self._match_locks[match_id] = lock
        self._lock_users[match_id] = self._lock_users.get(match_id, 0) + 1
        return lock

    def _release_match_lock(self, match_id: str) -> None:
        """Drop the match's lock once no scheduled critical section still needs it."""
        users = self._lock_users[match_id] - 1
        if users:
            self._lock_users[match_id] = users
            return
        del self._lock_users[match_id]
        self._match_locks.pop(match_id, None)

    async def _run_serialized(self, match_id: str, operation: Callable[[], Awaitable[MatchState]]) -> MatchState:
        """Run operation under the match lock.

        The critical section is scheduled as its own task at call time, which
        fixes its place in the lock's FIFO queue. Cancelling the caller only
        abandons the wait: the shielded task still finishes its write and
        releases the lock.
        """
        lock = self._claim_match_lock(match_id)

        async def _critical_section() -> MatchState:
            async with lock:
                with structlog.contextvars.bound_contextvars(match_id=match_id):
                    return await operation()

        task = asyncio.ensure_future(_critical_section())
        self._in_flight.add(task)
        task.add_done_callback(self._in_flight.discard)
        task.add_done_callback(_observe_result)
        task.add_done_callback(lambda _: self._release_match_lock(match_id))
        return await asyncio.shield(task)

    async def _load_writable_match(self, match_id: str) -> Match:
        match = await self._log.get_match(match_id)
        if match is None:
            raise NotFoundError("match", match_id)
        if await self._log.is_session_locked(match.session_id):
            logger.warning("write rejected, session locked", session_id=match.session_id)
            raise SessionLockedError(session_id=match.session_id, match_id=match_id)
        return match

    async def _current_state(self, match: Match, team_names: tuple[str, str] | None) -> MatchState:
        results = await self._log.list_hole_results(match.id)
        return compute_state(match, results, team_names=team_names)

    async def _refresh_status(self, match: Match, state: MatchState) -> None:
        if state.status != match.status:
            await self._log.set_match_status(match.id, state.status)

    async def record_result(
        self,
        match_id: str,
        hole_number: int,
        winner: HoleWinner | str,
        *,
        team_a_score: int | None = None,
        team_b_score: int | None = None,
        team_names: tuple[str, str] | None = None,
    ) -> MatchState:
        """Upsert the result of one hole and return the recomputed match state.

        Resubmitting a hole overwrites its winner. Malformed arguments are
        rejected before anything is queued. Range and lock checks run inside
        the critical section, before the write, so a rejected call never
        touches the log.
        """
        if isinstance(hole_number, bool) or not isinstance(hole_number, int):
            raise InvalidHoleError(match_id=match_id, hole_number=hole_number, reason="hole number must be an integer")
        try:
            hole_winner = HoleWinner(winner)
        except ValueError:
            raise InvalidHoleError(
                match_id=match_id,
                hole_number=hole_number,
                reason=f"unknown winner {winner!r}",
            ) from None

        async def _write() -> MatchState:
            match = await self._load_writable_match(match_id)
            if not 1 <= hole_number <= match.scheduled_holes:
                logger.warning("write rejected, hole out of range", hole_number=hole_number)
                raise InvalidHoleError(
                    match_id=match_id,
                    hole_number=hole_number,
                    reason=f"must be between 1 and {match.scheduled_holes}",
                )

            await self._log.upsert_hole_result(
                match_id,
                hole_number,
                hole_winner,
                team_a_score=team_a_score,
                team_b_score=team_b_score,
            )
            state = await self._current_state(match, team_names)
            await self._refresh_status(match, state)
            if hole_number in state.ignored_holes:
                logger.warning(
                    "hole recorded after match was decided, ignored by state",
                    hole_number=hole_number,
                    completed_at_hole=state.completed_at_hole,
                )
            else:
                logger.info(
                    "hole result recorded",
                    hole_number=hole_number,
                    winner=hole_winner,
                    score=state.short_score,
                )
            return state

        return await self._run_serialized(match_id, _write)

    async def undo_last(self, match_id: str, *, team_names: tuple[str, str] | None = None) -> MatchState:
        """Delete the result of the highest recorded hole and return the recomputed state.

        With nothing recorded this is a no-op that returns the current state.
        """

        async def _undo() -> MatchState:
            match = await self._load_writable_match(match_id)
            results = await self._log.list_hole_results(match_id)
            if not results:
                logger.info("undo requested with no recorded holes")
                return compute_state(match, results, team_names=team_names)

            last_hole = max(r.hole_number for r in results)
            await self._log.delete_hole_result(match_id, last_hole)
            state = await self._current_state(match, team_names)
            await self._refresh_status(match, state)
            logger.info("hole result undone", hole_number=last_hole, score=state.short_score)
            return state

        return await self._run_serialized(match_id, _undo)

    async def get_state(self, match_id: str, *, team_names: tuple[str, str] | None = None) -> MatchState:
        """Recompute the state of a match without taking its lock."""
        match = await self._log.get_match(match_id)
        if match is None:
            raise NotFoundError("match", match_id)
        return await self._current_state(match, team_names)
