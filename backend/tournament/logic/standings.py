"""
Trip-wide standings aggregation.

Authoritative points only come from completed matches, weighted by their
session's points_per_match. In-progress matches are reported separately as
live momentum (and folded into the projected totals) so the official score
does not swing hole by hole.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from shared.dal.models import MatchStatus
from tournament.logic.exceptions import MalformedResultsError
from tournament.logic.match_state import compute_state, match_points
from tournament.logic.types import (
    LiveMatch,
    MagicNumber,
    MatchOutcome,
    PlayerRecord,
    SessionStandings,
    Side,
    TeamStandings,
)

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping, Sequence

    from shared.dal.models import HoleResult, Match, Player, Session, Team
    from tournament.logic.types import MatchState


def _leader(team_a_points: float, team_b_points: float) -> Side | None:
    if team_a_points > team_b_points:
        return Side.TEAM_A
    if team_a_points < team_b_points:
        return Side.TEAM_B
    return None


def _trip_matches(
    trip_id: str,
    sessions: Iterable[Session],
    matches: Iterable[Match],
) -> list[tuple[Session, list[Match]]]:
    """Pair each of the trip's sessions with its matches, both in a stable order.

    Matches of other trips' sessions are skipped. A match pointing at a
    session that is not in the input at all is malformed input.
    """
    all_sessions = list(sessions)
    known_ids = {s.id for s in all_sessions}
    trip_sessions = sorted((s for s in all_sessions if s.trip_id == trip_id), key=lambda s: (s.session_number, s.id))
    grouped: dict[str, list[Match]] = {s.id: [] for s in trip_sessions}
    for match in matches:
        if match.session_id not in known_ids:
            raise MalformedResultsError(f"match {match.id} references unknown session {match.session_id}")
        if match.session_id in grouped:
            grouped[match.session_id].append(match)
    return [(s, sorted(grouped[s.id], key=lambda m: (m.match_number, m.id))) for s in trip_sessions]


def _match_states(
    trip_id: str,
    sessions: Iterable[Session],
    matches: Iterable[Match],
    hole_results_by_match: Mapping[str, Sequence[HoleResult]],
) -> list[tuple[Session, list[tuple[Match, MatchState]]]]:
    return [
        (session, [(m, compute_state(m, hole_results_by_match.get(m.id, ()))) for m in session_matches])
        for session, session_matches in _trip_matches(trip_id, sessions, matches)
    ]


def compute_standings(
    trip_id: str,
    sessions: Iterable[Session],
    matches: Iterable[Match],
    hole_results_by_match: Mapping[str, Sequence[HoleResult]],
) -> TeamStandings:
    """Aggregate every match of a trip into team standings.

    Deterministic for a given input: no clock, no randomness, and a fixed
    iteration order, so callers may memoize the result.
    """
    team_a = team_b = 0.0
    projected_a = projected_b = 0.0
    available = remaining = 0.0
    completed = in_progress = total = 0
    session_rows: list[SessionStandings] = []
    live: list[LiveMatch] = []

    for session, states in _match_states(trip_id, sessions, matches, hole_results_by_match):
        weight = session.points_per_match
        session_a = session_b = 0.0
        session_completed = session_live = 0

        for match, state in states:
            total += 1
            available += weight
            if state.is_complete:
                frac_a, frac_b = match_points(state)
                session_a += frac_a * weight
                session_b += frac_b * weight
                session_completed += 1
                continue

            remaining += weight
            if state.status is not MatchStatus.IN_PROGRESS:
                continue
            session_live += 1
            live.append(
                LiveMatch(
                    match_id=match.id,
                    session_id=session.id,
                    holes_played=state.holes_played,
                    leading_team=state.leading_team,
                    lead_magnitude=state.lead_magnitude,
                    short_score=state.short_score,
                ),
            )
            if state.leading_team is Side.TEAM_A:
                projected_a += weight
            elif state.leading_team is Side.TEAM_B:
                projected_b += weight
            else:
                projected_a += weight / 2
                projected_b += weight / 2

        team_a += session_a
        team_b += session_b
        completed += session_completed
        in_progress += session_live
        session_rows.append(
            SessionStandings(
                session_id=session.id,
                name=session.name,
                points_per_match=weight,
                team_a_points=session_a,
                team_b_points=session_b,
                matches_completed=session_completed,
                matches_in_progress=session_live,
                total_matches=len(states),
            ),
        )

    return TeamStandings(
        trip_id=trip_id,
        team_a_points=team_a,
        team_b_points=team_b,
        leader=_leader(team_a, team_b),
        margin=abs(team_a - team_b),
        team_a_projected=team_a + projected_a,
        team_b_projected=team_b + projected_b,
        points_available=available,
        points_remaining=remaining,
        matches_completed=completed,
        matches_in_progress=in_progress,
        total_matches=total,
        sessions=tuple(session_rows),
        live_matches=tuple(live),
    )


def compute_player_records(
    trip_id: str,
    players: Iterable[Player],
    teams: Iterable[Team],
    sessions: Iterable[Session],
    matches: Iterable[Match],
    hole_results_by_match: Mapping[str, Sequence[HoleResult]],
) -> list[PlayerRecord]:
    """Player leaderboard: W-L-H over completed matches, points weighted by session.

    Sorted by points, then win ratio, then name.
    """
    team_by_id = {t.id: t for t in teams if t.trip_id == trip_id}
    tallies: dict[str, list[float]] = {}  # player_id -> [wins, losses, halves, points]

    for session, states in _match_states(trip_id, sessions, matches, hole_results_by_match):
        for match, state in states:
            if state.outcome is None:
                continue
            for player_ids, side in ((match.team_a_player_ids, Side.TEAM_A), (match.team_b_player_ids, Side.TEAM_B)):
                for player_id in player_ids:
                    tally = tallies.setdefault(player_id, [0, 0, 0, 0.0])
                    if state.outcome is MatchOutcome.HALVED:
                        tally[2] += 1
                        tally[3] += 0.5 * session.points_per_match
                    elif state.outcome.value == side.value:
                        tally[0] += 1
                        tally[3] += session.points_per_match
                    else:
                        tally[1] += 1

    records: list[PlayerRecord] = []
    for player in players:
        team = team_by_id.get(player.team_id)
        if team is None:
            continue
        wins, losses, halves, points = tallies.get(player.id, [0, 0, 0, 0.0])
        records.append(
            PlayerRecord(
                player_id=player.id,
                player_name=player.full_name,
                team_id=team.id,
                team_name=team.name,
                wins=int(wins),
                losses=int(losses),
                halves=int(halves),
                points=points,
            ),
        )

    def _sort_key(r: PlayerRecord) -> tuple[float, float, str, str]:
        ratio = r.wins / r.matches_played if r.matches_played else 0.0
        return (-r.points, -ratio, r.player_name, r.player_id)

    return sorted(records, key=_sort_key)


def compute_magic_number(standings: TeamStandings, points_to_win: float | None = None) -> MagicNumber:
    """Points each team still needs to clinch.

    The default target is a strict majority of all points available
    (14.5 of 28 in a classic Ryder Cup).
    """
    target = points_to_win if points_to_win is not None else standings.points_available / 2 + 0.5
    team_a_needed = max(0.0, target - standings.team_a_points)
    team_b_needed = max(0.0, target - standings.team_b_points)

    clinched_by: Side | None = None
    if standings.team_a_points >= target:
        clinched_by = Side.TEAM_A
    elif standings.team_b_points >= target:
        clinched_by = Side.TEAM_B

    return MagicNumber(
        points_to_win=target,
        team_a_needed=team_a_needed,
        team_b_needed=team_b_needed,
        team_a_can_clinch=team_a_needed <= standings.points_remaining,
        team_b_can_clinch=team_b_needed <= standings.points_remaining,
        clinched_by=clinched_by,
    )
