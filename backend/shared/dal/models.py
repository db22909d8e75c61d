"""Persistence models for the data access layer."""

from datetime import datetime
from enum import Enum
from typing import Self

from pydantic import BaseModel, Field, model_validator


class TeamSide(str, Enum):
    """Which side of the draw a team plays on."""

    A = "A"
    B = "B"


class HoleWinner(str, Enum):
    """Outcome of a single hole."""

    TEAM_A = "teamA"
    TEAM_B = "teamB"
    HALVED = "halved"


class MatchStatus(str, Enum):
    """Cached progress label. Never an input to scoring math."""

    NOT_STARTED = "notStarted"
    IN_PROGRESS = "inProgress"
    COMPLETED = "completed"


class MatchFormat(str, Enum):
    """Match-play variants. Sessions use the same vocabulary for their type."""

    SINGLES = "singles"
    FOURSOMES = "foursomes"
    FOURBALL = "fourball"


_VALID_STARTING_HOLES = frozenset({1, 10})
_PLAYERS_PER_SIDE = {
    MatchFormat.SINGLES: 1,
    MatchFormat.FOURSOMES: 2,
    MatchFormat.FOURBALL: 2,
}


class Trip(BaseModel, frozen=True):
    """A tournament: two teams, several sessions."""

    id: str
    name: str


class Team(BaseModel, frozen=True):
    id: str
    trip_id: str
    name: str
    side: TeamSide
    color: str = ""


class Player(BaseModel, frozen=True):
    id: str
    first_name: str
    last_name: str
    team_id: str
    handicap: float | None = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


class Session(BaseModel, frozen=True):
    """A scheduled block of matches with its own point weight."""

    id: str
    trip_id: str
    name: str = ""
    session_type: MatchFormat = MatchFormat.SINGLES
    session_number: int = 0
    points_per_match: float = Field(default=1.0, gt=0)
    is_locked: bool = False  # no hole results may be written once locked


class Match(BaseModel, frozen=True):
    """A single match definition. Progress lives in its hole results; `status` is a cached label."""

    id: str
    session_id: str
    match_number: int = 0
    format: MatchFormat = MatchFormat.SINGLES
    team_a_player_ids: tuple[str, ...] = ()
    team_b_player_ids: tuple[str, ...] = ()
    starting_hole: int = 1  # 10 for split starts
    scheduled_holes: int = Field(default=18, ge=1, le=18)  # contracted length
    status: MatchStatus = MatchStatus.NOT_STARTED  # refreshed by the coordinator after every write

    @model_validator(mode="after")
    def _check_sides(self) -> Self:
        if self.starting_hole not in _VALID_STARTING_HOLES:
            raise ValueError(f"starting_hole must be 1 or 10, got {self.starting_hole}")
        sides = (("team_a_player_ids", self.team_a_player_ids), ("team_b_player_ids", self.team_b_player_ids))
        required = _PLAYERS_PER_SIDE[self.format]
        for label, ids in sides:
            if len(ids) != required:
                raise ValueError(
                    f"{self.format.value} matches need {required} player(s) per side, {label} has {len(ids)}"
                )
            if len(set(ids)) != len(ids):
                raise ValueError(f"{label} contains duplicate players")
        if set(self.team_a_player_ids) & set(self.team_b_player_ids):
            raise ValueError("a player cannot be on both sides of a match")
        return self


class HoleEdit(BaseModel, frozen=True):
    """A change of winner on an already recorded hole."""

    edited_at: datetime
    previous_winner: HoleWinner
    new_winner: HoleWinner


class HoleResult(BaseModel, frozen=True):
    """Outcome of one hole of one match. One row per (match_id, hole_number)."""

    id: str
    match_id: str
    hole_number: int  # ordinal of play, 1..scheduled_holes
    winner: HoleWinner
    team_a_score: int | None = None  # informational only
    team_b_score: int | None = None
    recorded_at: datetime | None = None
    last_edited_at: datetime | None = None
    edit_history: tuple[HoleEdit, ...] = ()  # oldest first, one entry per winner change


class AuditAction(str, Enum):
    SCORE_ENTERED = "scoreEntered"
    SCORE_EDITED = "scoreEdited"
    SCORE_UNDONE = "scoreUndone"
    SESSION_LOCKED = "sessionLocked"
    SESSION_UNLOCKED = "sessionUnlocked"


class AuditEntry(BaseModel, frozen=True):
    """One row of the audit trail for score changes and session lock actions.

    Written in the same transaction as the change it describes.
    """

    id: str
    action: AuditAction
    summary: str
    created_at: datetime
    session_id: str | None = None
    match_id: str | None = None
    hole_number: int | None = None
    previous_winner: HoleWinner | None = None
    new_winner: HoleWinner | None = None
