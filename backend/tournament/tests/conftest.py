from collections.abc import Sequence

import pytest

from shared.dal.models import HoleResult, HoleWinner, Match, MatchFormat, Session, Team, TeamSide
from tournament.scoring.coordinator import ScoringCoordinator
from tournament.tests.mocks import InMemoryHoleResultLog

A = HoleWinner.TEAM_A
B = HoleWinner.TEAM_B
H = HoleWinner.HALVED

# ============================================================================
# Test Data Builder Helpers
# ============================================================================


def create_match(
    match_id: str = "m1",
    session_id: str = "s1",
    *,
    match_number: int = 1,
    scheduled_holes: int = 18,
    starting_hole: int = 1,
    team_a_player_ids: Sequence[str] = ("pa1",),
    team_b_player_ids: Sequence[str] = ("pb1",),
    match_format: MatchFormat = MatchFormat.SINGLES,
) -> Match:
    """Create a Match with sensible defaults for testing."""
    return Match(
        id=match_id,
        session_id=session_id,
        match_number=match_number,
        format=match_format,
        team_a_player_ids=tuple(team_a_player_ids),
        team_b_player_ids=tuple(team_b_player_ids),
        starting_hole=starting_hole,
        scheduled_holes=scheduled_holes,
    )


def create_results(match_id: str, winners: Sequence[HoleWinner], *, first_hole: int = 1) -> list[HoleResult]:
    """Hole results for consecutive holes starting at first_hole."""
    return [
        HoleResult(id=f"{match_id}-h{hole}", match_id=match_id, hole_number=hole, winner=winner)
        for hole, winner in enumerate(winners, start=first_hole)
    ]


def create_result(match_id: str, hole_number: int, winner: HoleWinner) -> HoleResult:
    return HoleResult(id=f"{match_id}-h{hole_number}", match_id=match_id, hole_number=hole_number, winner=winner)


def create_session(
    session_id: str = "s1",
    trip_id: str = "t1",
    *,
    session_number: int = 1,
    points_per_match: float = 1.0,
    name: str = "",
) -> Session:
    return Session(
        id=session_id,
        trip_id=trip_id,
        name=name or f"Session {session_number}",
        session_number=session_number,
        points_per_match=points_per_match,
    )


def create_teams(trip_id: str = "t1") -> list[Team]:
    return [
        Team(id=f"{trip_id}-a", trip_id=trip_id, name="Eagles", side=TeamSide.A),
        Team(id=f"{trip_id}-b", trip_id=trip_id, name="Hawks", side=TeamSide.B),
    ]


@pytest.fixture
def match():
    return create_match()


@pytest.fixture
def hole_result_log(match):
    return InMemoryHoleResultLog([match])


@pytest.fixture
def coordinator(hole_result_log):
    return ScoringCoordinator(hole_result_log)
