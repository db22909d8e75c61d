"""SQLite-backed hole result log."""

from __future__ import annotations

import asyncio
import json
import uuid
from datetime import UTC, datetime
from typing import TYPE_CHECKING

import structlog

from shared.dal.hole_result_log import HoleResultLog
from shared.dal.models import AuditAction, HoleEdit, HoleResult, HoleWinner, Match, MatchStatus
from shared.db.audit import append_audit_entry, session_of_match

if TYPE_CHECKING:
    from shared.db.connection import Database

logger = structlog.get_logger()


class SqliteHoleResultLog(HoleResultLog):
    """SQLite implementation of HoleResultLog.

    Rows are JSON snapshots keyed by a unique (match_id, hole_number) index,
    so an upsert for an already-scored hole replaces the winner in place and
    keeps the original row id.
    """

    def __init__(self, db: Database) -> None:
        self._db = db
        self._lock = asyncio.Lock()

    async def get_match(self, match_id: str) -> Match | None:
        with self._db.read() as conn:
            row = conn.execute("SELECT data FROM matches WHERE id = ?", (match_id,)).fetchone()
        if row is None:
            return None
        return Match.model_validate(json.loads(row[0]))

    async def list_hole_results(self, match_id: str) -> list[HoleResult]:
        """Return the match's results ordered by hole number."""
        with self._db.read() as conn:
            rows = conn.execute(
                "SELECT data FROM hole_results WHERE match_id = ? ORDER BY hole_number",
                (match_id,),
            ).fetchall()
        return [HoleResult.model_validate(json.loads(row[0])) for row in rows]

    async def upsert_hole_result(
        self,
        match_id: str,
        hole_number: int,
        winner: HoleWinner,
        team_a_score: int | None = None,
        team_b_score: int | None = None,
    ) -> HoleResult:
        """Insert or overwrite one hole.

        An overwrite keeps the row id and the original ``recorded_at``. When
        the winner changes, the change is appended to ``edit_history`` and an
        audit row is written in the same transaction.
        """
        async with self._lock:
            with self._db.write() as conn:
                row = conn.execute(
                    "SELECT data FROM hole_results WHERE match_id = ? AND hole_number = ?",
                    (match_id, hole_number),
                ).fetchone()
                previous = HoleResult.model_validate(json.loads(row[0])) if row is not None else None
                now = datetime.now(UTC)
                if previous is None:
                    result = HoleResult(
                        id=str(uuid.uuid4()),
                        match_id=match_id,
                        hole_number=hole_number,
                        winner=winner,
                        team_a_score=team_a_score,
                        team_b_score=team_b_score,
                        recorded_at=now,
                    )
                else:
                    history = previous.edit_history
                    last_edited_at = previous.last_edited_at
                    if previous.winner != winner:
                        edit = HoleEdit(edited_at=now, previous_winner=previous.winner, new_winner=winner)
                        history = (*history, edit)
                        last_edited_at = now
                    result = HoleResult(
                        id=previous.id,
                        match_id=match_id,
                        hole_number=hole_number,
                        winner=winner,
                        team_a_score=team_a_score,
                        team_b_score=team_b_score,
                        recorded_at=previous.recorded_at,
                        last_edited_at=last_edited_at,
                        edit_history=history,
                    )
                conn.execute(
                    "INSERT INTO hole_results (id, match_id, hole_number, data) VALUES (?, ?, ?, ?) "
                    "ON CONFLICT (match_id, hole_number) DO UPDATE SET data = excluded.data",
                    (result.id, match_id, hole_number, result.model_dump_json()),
                )
                if previous is None:
                    append_audit_entry(
                        conn,
                        AuditAction.SCORE_ENTERED,
                        f"hole {hole_number}: {winner.value}",
                        session_id=session_of_match(conn, match_id),
                        match_id=match_id,
                        hole_number=hole_number,
                        new_winner=winner,
                    )
                elif previous.winner != winner:
                    append_audit_entry(
                        conn,
                        AuditAction.SCORE_EDITED,
                        f"hole {hole_number}: {previous.winner.value} -> {winner.value}",
                        session_id=session_of_match(conn, match_id),
                        match_id=match_id,
                        hole_number=hole_number,
                        previous_winner=previous.winner,
                        new_winner=winner,
                    )
        if previous is not None:
            logger.debug("hole result overwritten", match_id=match_id, hole_number=hole_number)
        return result

    async def delete_hole_result(self, match_id: str, hole_number: int) -> None:
        async with self._lock:
            with self._db.write() as conn:
                row = conn.execute(
                    "SELECT data FROM hole_results WHERE match_id = ? AND hole_number = ?",
                    (match_id, hole_number),
                ).fetchone()
                if row is not None:
                    removed = HoleResult.model_validate(json.loads(row[0]))
                    conn.execute(
                        "DELETE FROM hole_results WHERE match_id = ? AND hole_number = ?",
                        (match_id, hole_number),
                    )
                    append_audit_entry(
                        conn,
                        AuditAction.SCORE_UNDONE,
                        f"hole {hole_number}: {removed.winner.value} removed",
                        session_id=session_of_match(conn, match_id),
                        match_id=match_id,
                        hole_number=hole_number,
                        previous_winner=removed.winner,
                    )
        if row is None:
            logger.warning("delete_hole_result had no effect", match_id=match_id, hole_number=hole_number)

    async def set_match_status(self, match_id: str, status: MatchStatus) -> None:
        async with self._lock:
            with self._db.write() as conn:
                cursor = conn.execute(
                    "UPDATE matches SET data = json_set(data, '$.status', ?) WHERE id = ?",
                    (status.value, match_id),
                )
        if cursor.rowcount == 0:
            logger.warning("set_match_status had no effect (match not found)", match_id=match_id)

    async def is_session_locked(self, session_id: str) -> bool:
        with self._db.read() as conn:
            row = conn.execute("SELECT is_locked FROM sessions WHERE id = ?", (session_id,)).fetchone()
        return bool(row[0]) if row is not None else False
