"""Loads trip snapshots through the repository and runs the standings calculations."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from shared.dal.models import TeamSide
from tournament.logic.exceptions import NotFoundError
from tournament.logic.match_state import DEFAULT_TEAM_NAMES
from tournament.logic.standings import compute_player_records, compute_standings

if TYPE_CHECKING:
    from shared.dal.models import HoleResult, Match, Player, Session, Team, Trip
    from shared.dal.tournament_repository import TournamentRepository
    from tournament.logic.types import PlayerRecord, TeamStandings


def _team_names(teams: list[Team]) -> tuple[str, str]:
    """Display labels for sides A and B, falling back to "Team A" / "Team B"."""
    names = {team.side: team.name for team in teams}
    return names.get(TeamSide.A, DEFAULT_TEAM_NAMES[0]), names.get(TeamSide.B, DEFAULT_TEAM_NAMES[1])


@dataclass(frozen=True)
class TripSnapshot:
    """Everything needed to score a trip, read without locking.

    Stale reads are fine: every view is recomputed from whatever snapshot
    was loaded.
    """

    trip: Trip
    teams: list[Team]
    players: list[Player]
    sessions: list[Session]
    matches: list[Match]
    hole_results_by_match: dict[str, list[HoleResult]]


class StandingsService:
    def __init__(self, repository: TournamentRepository) -> None:
        self._repository = repository

    async def load_snapshot(self, trip_id: str) -> TripSnapshot:
        trip = await self._repository.get_trip(trip_id)
        if trip is None:
            raise NotFoundError("trip", trip_id)
        teams = await self._repository.list_teams(trip_id)
        players = await self._repository.list_players([t.id for t in teams])
        sessions = await self._repository.list_sessions(trip_id)
        matches = await self._repository.list_matches([s.id for s in sessions])
        results = await self._repository.list_hole_results_for_matches([m.id for m in matches])
        return TripSnapshot(
            trip=trip,
            teams=teams,
            players=players,
            sessions=sessions,
            matches=matches,
            hole_results_by_match=results,
        )

    async def team_names_for_session(self, session_id: str) -> tuple[str, str]:
        """Team labels of the trip a session belongs to, for score display."""
        session = await self._repository.get_session(session_id)
        if session is None:
            return DEFAULT_TEAM_NAMES
        return _team_names(await self._repository.list_teams(session.trip_id))

    async def standings(self, trip_id: str) -> TeamStandings:
        snapshot = await self.load_snapshot(trip_id)
        return compute_standings(trip_id, snapshot.sessions, snapshot.matches, snapshot.hole_results_by_match)

    async def leaderboard(self, trip_id: str) -> list[PlayerRecord]:
        snapshot = await self.load_snapshot(trip_id)
        return compute_player_records(
            trip_id,
            snapshot.players,
            snapshot.teams,
            snapshot.sessions,
            snapshot.matches,
            snapshot.hole_results_by_match,
        )
