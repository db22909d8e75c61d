"""Tests for SqliteHoleResultLog."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

import pytest

from shared.dal.exceptions import StorageError
from shared.dal.models import AuditAction, HoleWinner, Match, MatchFormat, MatchStatus, Session
from shared.db.connection import Database
from shared.db.hole_result_log import SqliteHoleResultLog
from shared.db.tournament_repository import SqliteTournamentRepository

if TYPE_CHECKING:
    from pathlib import Path


@pytest.fixture
def db(tmp_path: Path):
    database = Database(tmp_path / "test.db")
    database.connect()
    yield database
    database.close()


@pytest.fixture
def log(db: Database) -> SqliteHoleResultLog:
    return SqliteHoleResultLog(db)


@pytest.fixture
def repo(db: Database) -> SqliteTournamentRepository:
    return SqliteTournamentRepository(db)


class TestGetMatch:
    async def test_returns_stored_match(self, log: SqliteHoleResultLog, repo: SqliteTournamentRepository) -> None:
        match = Match(
            id="m1",
            session_id="s1",
            format=MatchFormat.FOURBALL,
            team_a_player_ids=("a1", "a2"),
            team_b_player_ids=("b1", "b2"),
        )
        await repo.create_match(match)

        assert await log.get_match("m1") == match

    async def test_unknown_match_is_none(self, log: SqliteHoleResultLog) -> None:
        assert await log.get_match("missing") is None


class TestUpsert:
    async def test_insert_then_list(self, log: SqliteHoleResultLog) -> None:
        stored = await log.upsert_hole_result("m1", 1, HoleWinner.TEAM_A, team_a_score=4, team_b_score=5)

        results = await log.list_hole_results("m1")
        assert results == [stored]
        assert stored.recorded_at is not None
        assert stored.team_a_score == 4

    async def test_overwrite_keeps_row_id(self, log: SqliteHoleResultLog) -> None:
        first = await log.upsert_hole_result("m1", 3, HoleWinner.TEAM_A)
        second = await log.upsert_hole_result("m1", 3, HoleWinner.HALVED)

        results = await log.list_hole_results("m1")
        assert len(results) == 1
        assert second.id == first.id
        assert results[0].winner == HoleWinner.HALVED

    async def test_results_ordered_by_hole_and_scoped_to_match(self, log: SqliteHoleResultLog) -> None:
        await log.upsert_hole_result("m1", 5, HoleWinner.TEAM_B)
        await log.upsert_hole_result("m1", 2, HoleWinner.TEAM_A)
        await log.upsert_hole_result("m2", 1, HoleWinner.HALVED)

        assert [r.hole_number for r in await log.list_hole_results("m1")] == [2, 5]
        assert len(await log.list_hole_results("m2")) == 1

    async def test_concurrent_upserts_leave_one_row(self, log: SqliteHoleResultLog) -> None:
        await asyncio.gather(*(log.upsert_hole_result("m1", 7, w) for w in HoleWinner))

        assert len(await log.list_hole_results("m1")) == 1


class TestDelete:
    async def test_delete_removes_only_that_hole(self, log: SqliteHoleResultLog) -> None:
        await log.upsert_hole_result("m1", 1, HoleWinner.TEAM_A)
        await log.upsert_hole_result("m1", 2, HoleWinner.TEAM_B)

        await log.delete_hole_result("m1", 2)

        assert [r.hole_number for r in await log.list_hole_results("m1")] == [1]

    async def test_delete_missing_is_safe(self, log: SqliteHoleResultLog) -> None:
        await log.delete_hole_result("m1", 9)

        assert await log.list_hole_results("m1") == []


class TestSessionLock:
    async def test_reflects_repository_lock(self, log: SqliteHoleResultLog, repo: SqliteTournamentRepository) -> None:
        await repo.create_session(Session(id="s1", trip_id="t1"))
        assert not await log.is_session_locked("s1")

        await repo.set_session_locked("s1", locked=True)
        assert await log.is_session_locked("s1")

    async def test_unknown_session_is_unlocked(self, log: SqliteHoleResultLog) -> None:
        assert not await log.is_session_locked("missing")


class TestEditHistory:
    async def test_winner_change_is_appended(self, log: SqliteHoleResultLog) -> None:
        first = await log.upsert_hole_result("m1", 4, HoleWinner.TEAM_A)
        await log.upsert_hole_result("m1", 4, HoleWinner.HALVED)
        latest = await log.upsert_hole_result("m1", 4, HoleWinner.TEAM_B)

        assert [(e.previous_winner, e.new_winner) for e in latest.edit_history] == [
            (HoleWinner.TEAM_A, HoleWinner.HALVED),
            (HoleWinner.HALVED, HoleWinner.TEAM_B),
        ]
        assert latest.recorded_at == first.recorded_at
        assert latest.last_edited_at == latest.edit_history[-1].edited_at
        assert (await log.list_hole_results("m1"))[0].edit_history == latest.edit_history

    async def test_same_winner_resubmitted_is_not_an_edit(self, log: SqliteHoleResultLog) -> None:
        await log.upsert_hole_result("m1", 4, HoleWinner.TEAM_A, team_a_score=4)
        again = await log.upsert_hole_result("m1", 4, HoleWinner.TEAM_A, team_a_score=3)

        assert again.edit_history == ()
        assert again.last_edited_at is None
        assert again.team_a_score == 3


class TestAuditTrail:
    async def test_score_changes_are_audited_with_session(
        self, log: SqliteHoleResultLog, repo: SqliteTournamentRepository
    ) -> None:
        await repo.create_match(Match(id="m1", session_id="s1", team_a_player_ids=("a1",), team_b_player_ids=("b1",)))

        await log.upsert_hole_result("m1", 1, HoleWinner.TEAM_A)
        await log.upsert_hole_result("m1", 1, HoleWinner.TEAM_A)
        await log.upsert_hole_result("m1", 1, HoleWinner.TEAM_B)
        await log.delete_hole_result("m1", 1)

        entries = await repo.list_audit_entries(match_id="m1")
        assert [e.action for e in entries] == [
            AuditAction.SCORE_ENTERED,
            AuditAction.SCORE_EDITED,
            AuditAction.SCORE_UNDONE,
        ]
        assert all(e.session_id == "s1" and e.hole_number == 1 for e in entries)
        assert (entries[1].previous_winner, entries[1].new_winner) == (HoleWinner.TEAM_A, HoleWinner.TEAM_B)
        assert entries[2].previous_winner == HoleWinner.TEAM_B

    async def test_delete_of_missing_hole_is_not_audited(
        self, log: SqliteHoleResultLog, repo: SqliteTournamentRepository
    ) -> None:
        await log.delete_hole_result("m1", 9)

        assert await repo.list_audit_entries(match_id="m1") == []

    async def test_score_and_audit_roll_back_together(self, db: Database, log: SqliteHoleResultLog) -> None:
        db.connection.execute("DROP TABLE audit_log")

        with pytest.raises(StorageError, match="write failed"):
            await log.upsert_hole_result("m1", 1, HoleWinner.TEAM_A)

        assert await log.list_hole_results("m1") == []


class TestMatchStatus:
    async def test_status_is_stored_on_match(self, log: SqliteHoleResultLog, repo: SqliteTournamentRepository) -> None:
        await repo.create_match(Match(id="m1", session_id="s1", team_a_player_ids=("a1",), team_b_player_ids=("b1",)))

        await log.set_match_status("m1", MatchStatus.COMPLETED)

        match = await log.get_match("m1")
        assert match is not None
        assert match.status == MatchStatus.COMPLETED
        assert [m.status for m in await repo.list_matches(["s1"])] == [MatchStatus.COMPLETED]

    async def test_unknown_match_warns(self, log: SqliteHoleResultLog, caplog) -> None:
        with caplog.at_level(logging.WARNING, logger="shared.db.hole_result_log"):
            await log.set_match_status("missing", MatchStatus.IN_PROGRESS)

        assert "set_match_status had no effect" in caplog.text
