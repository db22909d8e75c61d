"""Audit trail rows, written inside the caller's transaction."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from shared.dal.models import AuditAction, AuditEntry

if TYPE_CHECKING:
    import sqlite3

    from shared.dal.models import HoleWinner


def session_of_match(conn: sqlite3.Connection, match_id: str) -> str | None:
    row = conn.execute("SELECT session_id FROM matches WHERE id = ?", (match_id,)).fetchone()
    return row[0] if row is not None else None


def append_audit_entry(
    conn: sqlite3.Connection,
    action: AuditAction,
    summary: str,
    *,
    session_id: str | None = None,
    match_id: str | None = None,
    hole_number: int | None = None,
    previous_winner: HoleWinner | None = None,
    new_winner: HoleWinner | None = None,
) -> AuditEntry:
    """Insert one audit row on ``conn``.

    No commit happens here. The row lands or rolls back together with the
    change it describes.
    """
    entry = AuditEntry(
        id=str(uuid.uuid4()),
        action=action,
        summary=summary,
        created_at=datetime.now(UTC),
        session_id=session_id,
        match_id=match_id,
        hole_number=hole_number,
        previous_winner=previous_winner,
        new_winner=new_winner,
    )
    conn.execute(
        "INSERT INTO audit_log (id, session_id, match_id, created_at, data) VALUES (?, ?, ?, ?, ?)",
        (entry.id, session_id, match_id, entry.created_at.isoformat(timespec="microseconds"), entry.model_dump_json()),
    )
    return entry
