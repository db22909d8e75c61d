"""SQLite-backed tournament repository."""

from __future__ import annotations

import asyncio
import json
import sqlite3
from typing import TYPE_CHECKING

import structlog

from shared.dal.exceptions import StorageError
from shared.dal.models import AuditAction, AuditEntry, HoleResult, Match, Player, Session, Team, Trip
from shared.dal.tournament_repository import TournamentRepository
from shared.db.audit import append_audit_entry

if TYPE_CHECKING:
    from pydantic import BaseModel

    from shared.db.connection import Database

logger = structlog.get_logger()


def _placeholders(values: list[str]) -> str:
    return ", ".join("?" for _ in values)


class SqliteTournamentRepository(TournamentRepository):
    """SQLite implementation of TournamentRepository.

    Stores each record as a JSON snapshot with indexed columns for lookups.
    Creating a record whose id already exists logs a warning and keeps the
    stored row.
    """

    def __init__(self, db: Database) -> None:
        self._db = db
        self._lock = asyncio.Lock()

    async def _insert(self, table: str, columns: dict[str, object], record: BaseModel, record_id: str) -> None:
        names = ["id", *columns, "data"]
        values = [record_id, *columns.values(), record.model_dump_json()]
        sql = f"INSERT INTO {table} ({', '.join(names)}) VALUES ({', '.join('?' for _ in names)})"  # noqa: S608
        async with self._lock:
            try:
                with self._db.write() as conn:
                    conn.execute(sql, values)
            except StorageError as exc:
                if isinstance(exc.__cause__, sqlite3.IntegrityError):
                    logger.warning("record already exists, ignoring duplicate create", table=table, record_id=record_id)
                    return
                raise

    async def create_trip(self, trip: Trip) -> None:
        await self._insert("trips", {}, trip, trip.id)

    async def get_trip(self, trip_id: str) -> Trip | None:
        with self._db.read() as conn:
            row = conn.execute("SELECT data FROM trips WHERE id = ?", (trip_id,)).fetchone()
        if row is None:
            return None
        return Trip.model_validate(json.loads(row[0]))

    async def create_team(self, team: Team) -> None:
        await self._insert("teams", {"trip_id": team.trip_id}, team, team.id)

    async def list_teams(self, trip_id: str) -> list[Team]:
        with self._db.read() as conn:
            rows = conn.execute("SELECT data FROM teams WHERE trip_id = ? ORDER BY id", (trip_id,)).fetchall()
        return [Team.model_validate(json.loads(row[0])) for row in rows]

    async def create_player(self, player: Player) -> None:
        await self._insert("players", {"team_id": player.team_id}, player, player.id)

    async def list_players(self, team_ids: list[str]) -> list[Player]:
        if not team_ids:
            return []
        with self._db.read() as conn:
            rows = conn.execute(
                f"SELECT data FROM players WHERE team_id IN ({_placeholders(team_ids)}) ORDER BY id",  # noqa: S608
                team_ids,
            ).fetchall()
        return [Player.model_validate(json.loads(row[0])) for row in rows]

    async def create_session(self, session: Session) -> None:
        columns = {
            "trip_id": session.trip_id,
            "session_number": session.session_number,
            "is_locked": int(session.is_locked),
        }
        await self._insert("sessions", columns, session, session.id)

    async def get_session(self, session_id: str) -> Session | None:
        with self._db.read() as conn:
            row = conn.execute("SELECT data FROM sessions WHERE id = ?", (session_id,)).fetchone()
        if row is None:
            return None
        return Session.model_validate(json.loads(row[0]))

    async def list_sessions(self, trip_id: str) -> list[Session]:
        """Retrieve a trip's sessions ordered by session_number."""
        with self._db.read() as conn:
            rows = conn.execute(
                "SELECT data FROM sessions WHERE trip_id = ? ORDER BY session_number, id",
                (trip_id,),
            ).fetchall()
        return [Session.model_validate(json.loads(row[0])) for row in rows]

    async def set_session_locked(self, session_id: str, *, locked: bool) -> Session | None:
        """Lock or unlock a session. Returns the updated session, or None if unknown.

        The change and its audit row commit together.
        """
        async with self._lock:
            with self._db.write() as conn:
                cursor = conn.execute(
                    "UPDATE sessions SET is_locked = ?, data = json_set(data, '$.is_locked', json(?)) WHERE id = ?",
                    (int(locked), "true" if locked else "false", session_id),
                )
                if cursor.rowcount:
                    append_audit_entry(
                        conn,
                        AuditAction.SESSION_LOCKED if locked else AuditAction.SESSION_UNLOCKED,
                        f"session {session_id} {'locked' if locked else 'unlocked'}",
                        session_id=session_id,
                    )
        if cursor.rowcount == 0:
            logger.warning("set_session_locked had no effect (session not found)", session_id=session_id)
            return None
        logger.info("session lock changed", session_id=session_id, locked=locked)
        return await self.get_session(session_id)

    async def create_match(self, match: Match) -> None:
        columns = {"session_id": match.session_id, "match_number": match.match_number}
        await self._insert("matches", columns, match, match.id)

    async def list_matches(self, session_ids: list[str]) -> list[Match]:
        if not session_ids:
            return []
        with self._db.read() as conn:
            rows = conn.execute(
                f"SELECT data FROM matches WHERE session_id IN ({_placeholders(session_ids)}) "  # noqa: S608
                "ORDER BY session_id, match_number, id",
                session_ids,
            ).fetchall()
        return [Match.model_validate(json.loads(row[0])) for row in rows]

    async def list_hole_results_for_matches(self, match_ids: list[str]) -> dict[str, list[HoleResult]]:
        """Group every stored result by match id. Matches with no results map to an empty list."""
        grouped: dict[str, list[HoleResult]] = {match_id: [] for match_id in match_ids}
        if not match_ids:
            return grouped
        with self._db.read() as conn:
            rows = conn.execute(
                f"SELECT data FROM hole_results WHERE match_id IN ({_placeholders(match_ids)}) "  # noqa: S608
                "ORDER BY match_id, hole_number",
                match_ids,
            ).fetchall()
        for row in rows:
            result = HoleResult.model_validate(json.loads(row[0]))
            grouped[result.match_id].append(result)
        return grouped

    async def list_audit_entries(
        self,
        *,
        session_id: str | None = None,
        match_id: str | None = None,
    ) -> list[AuditEntry]:
        """Return audit rows oldest first, optionally filtered by session and/or match."""
        clauses: list[str] = []
        params: list[str] = []
        if session_id is not None:
            clauses.append("session_id = ?")
            params.append(session_id)
        if match_id is not None:
            clauses.append("match_id = ?")
            params.append(match_id)
        where = f"WHERE {' AND '.join(clauses)} " if clauses else ""
        with self._db.read() as conn:
            rows = conn.execute(
                f"SELECT data FROM audit_log {where}ORDER BY rowid",  # noqa: S608
                params,
            ).fetchall()
        return [AuditEntry.model_validate(json.loads(row[0])) for row in rows]
