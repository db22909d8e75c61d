"""
Derived, never-persisted views computed from hole results.

MatchState describes one match; TeamStandings and its parts describe a whole
trip. All models are frozen so callers can cache and compare them safely.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict

from shared.dal.models import MatchStatus


class Side(str, Enum):
    """One side of a match, as used for leads and standings leaders."""

    TEAM_A = "teamA"
    TEAM_B = "teamB"


class MatchOutcome(str, Enum):
    """Final result of a completed match."""

    TEAM_A = "teamA"
    TEAM_B = "teamB"
    HALVED = "halved"


class MatchState(BaseModel):
    """Match progress derived from the hole result log."""

    model_config = ConfigDict(frozen=True)

    match_id: str
    status: MatchStatus
    holes_played: int  # results evaluated into the tally
    scheduled_holes: int
    holes_remaining: int
    team_a_holes_won: int = 0
    team_b_holes_won: int = 0
    halves_count: int = 0
    leading_team: Side | None = None
    lead_magnitude: int = 0
    is_dormie: bool = False
    is_complete: bool = False
    completed_at_hole: int | None = None
    outcome: MatchOutcome | None = None  # set only once complete
    display_score: str
    short_score: str
    ignored_holes: tuple[int, ...] = ()  # stored after closeout, not evaluated

    @property
    def signed_lead(self) -> int:
        """Positive when team A leads, negative when team B leads."""
        if self.leading_team is Side.TEAM_B:
            return -self.lead_magnitude
        return self.lead_magnitude


class LiveMatch(BaseModel):
    """Momentum of an in-progress match. Never counted in authoritative points."""

    model_config = ConfigDict(frozen=True)

    match_id: str
    session_id: str
    holes_played: int
    leading_team: Side | None
    lead_magnitude: int
    short_score: str


class SessionStandings(BaseModel):
    model_config = ConfigDict(frozen=True)

    session_id: str
    name: str
    points_per_match: float
    team_a_points: float = 0.0
    team_b_points: float = 0.0
    matches_completed: int = 0
    matches_in_progress: int = 0
    total_matches: int = 0


class TeamStandings(BaseModel):
    """Trip-wide points. Finalized totals come from completed matches only."""

    model_config = ConfigDict(frozen=True)

    trip_id: str
    team_a_points: float = 0.0
    team_b_points: float = 0.0
    leader: Side | None = None
    margin: float = 0.0
    team_a_projected: float = 0.0
    team_b_projected: float = 0.0
    points_available: float = 0.0  # sum of every counted match's session weight
    points_remaining: float = 0.0  # weight of matches not yet completed
    matches_completed: int = 0
    matches_in_progress: int = 0
    total_matches: int = 0
    sessions: tuple[SessionStandings, ...] = ()
    live_matches: tuple[LiveMatch, ...] = ()


class PlayerRecord(BaseModel):
    """Win-loss-halve record for one player, counting completed matches only."""

    model_config = ConfigDict(frozen=True)

    player_id: str
    player_name: str
    team_id: str
    team_name: str
    wins: int = 0
    losses: int = 0
    halves: int = 0
    points: float = 0.0

    @property
    def matches_played(self) -> int:
        return self.wins + self.losses + self.halves

    @property
    def record(self) -> str:
        """Formatted as W-L-H, e.g. "3-1-1"."""
        return f"{self.wins}-{self.losses}-{self.halves}"


class MagicNumber(BaseModel):
    """Points each team still needs to clinch the trip."""

    model_config = ConfigDict(frozen=True)

    points_to_win: float
    team_a_needed: float
    team_b_needed: float
    team_a_can_clinch: bool
    team_b_can_clinch: bool
    clinched_by: Side | None = None
