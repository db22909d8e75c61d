"""
Match-play state calculation.

A match's state is always recomputed from its hole results and is never
stored. The reduction is a signed running tally (+1 team A, -1 team B, 0 for a
halved hole) with the classic closeout rule: once the lead exceeds the holes
still to play, the match is decided and later results are ignored.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from shared.dal.models import HoleWinner, MatchStatus
from tournament.logic.exceptions import MalformedResultsError
from tournament.logic.types import MatchOutcome, MatchState, Side

if TYPE_CHECKING:
    from collections.abc import Iterable

    from shared.dal.models import HoleResult, Match

COURSE_HOLES = 18
DEFAULT_TEAM_NAMES = ("Team A", "Team B")

_TALLY: dict[HoleWinner, int] = {
    HoleWinner.TEAM_A: 1,
    HoleWinner.TEAM_B: -1,
    HoleWinner.HALVED: 0,
}


def _ordered_results(match: Match, hole_results: Iterable[HoleResult]) -> list[HoleResult]:
    """Sort results by hole number, failing loudly on anything the log should have prevented."""
    seen: set[int] = set()
    results = list(hole_results)
    for result in results:
        if result.match_id != match.id:
            raise MalformedResultsError(f"result {result.id} belongs to match {result.match_id}, not {match.id}")
        if not 1 <= result.hole_number <= match.scheduled_holes:
            raise MalformedResultsError(
                f"hole {result.hole_number} outside 1..{match.scheduled_holes} for match {match.id}",
            )
        if result.hole_number in seen:
            raise MalformedResultsError(f"duplicate result for hole {result.hole_number} in match {match.id}")
        if result.winner not in _TALLY:
            raise MalformedResultsError(f"unknown winner {result.winner!r} on hole {result.hole_number}")
        seen.add(result.hole_number)
    return sorted(results, key=lambda r: r.hole_number)


def _side(tally: int) -> Side | None:
    if tally > 0:
        return Side.TEAM_A
    if tally < 0:
        return Side.TEAM_B
    return None


def format_short_score(lead: int, holes_remaining: int, *, is_complete: bool) -> str:
    """Compact score: "AS", "2 UP", "3&2". A win on the final hole reads "1 UP", never "1&0"."""
    if lead == 0:
        return "AS"
    if is_complete and holes_remaining > 0:
        return f"{lead}&{holes_remaining}"
    return f"{lead} UP"


def format_display_score(
    leading_team: Side | None,
    lead: int,
    holes_remaining: int,
    *,
    holes_played: int,
    is_complete: bool,
    team_names: tuple[str, str] = DEFAULT_TEAM_NAMES,
) -> str:
    """Human-readable score line, e.g. "Team A 2 UP" or "Team B wins 4&3"."""
    if holes_played == 0:
        return "Not Started"
    if leading_team is None:
        return "Match Halved" if is_complete else "All Square"
    label = team_names[0] if leading_team is Side.TEAM_A else team_names[1]
    if not is_complete:
        return f"{label} {lead} UP"
    if holes_remaining > 0:
        return f"{label} wins {lead}&{holes_remaining}"
    return f"{label} wins"


def compute_state(
    match: Match,
    hole_results: Iterable[HoleResult],
    *,
    team_names: tuple[str, str] | None = None,
) -> MatchState:
    """Derive the match state from its hole results.

    Pure and deterministic: the input order of hole_results does not matter
    and the inputs are never mutated. Closeout is checked against the holes
    still unplayed after each result, so a log with gaps (holes entered out
    of order) is only closed out once the lead is truly unassailable.
    Results after the closeout hole stay in the log but are reported in
    ignored_holes instead of changing the outcome.
    """
    ordered = _ordered_results(match, hole_results)
    scheduled = match.scheduled_holes

    tally = 0
    team_a_won = team_b_won = halves = 0
    evaluated = 0
    completed_at: int | None = None
    ignored: list[int] = []

    for result in ordered:
        if completed_at is not None:
            ignored.append(result.hole_number)
            continue
        step = _TALLY[result.winner]
        tally += step
        evaluated += 1
        if step > 0:
            team_a_won += 1
        elif step < 0:
            team_b_won += 1
        else:
            halves += 1
        remaining = scheduled - evaluated
        if abs(tally) > remaining or remaining == 0:
            completed_at = result.hole_number

    lead = abs(tally)
    holes_remaining = scheduled - evaluated
    is_complete = completed_at is not None
    leading_team = _side(tally)

    if is_complete:
        status = MatchStatus.COMPLETED
        outcome = MatchOutcome(leading_team.value) if leading_team is not None else MatchOutcome.HALVED
    else:
        status = MatchStatus.IN_PROGRESS if evaluated else MatchStatus.NOT_STARTED
        outcome = None

    return MatchState(
        match_id=match.id,
        status=status,
        holes_played=evaluated,
        scheduled_holes=scheduled,
        holes_remaining=holes_remaining,
        team_a_holes_won=team_a_won,
        team_b_holes_won=team_b_won,
        halves_count=halves,
        leading_team=leading_team,
        lead_magnitude=lead,
        is_dormie=not is_complete and lead > 0 and lead == holes_remaining,
        is_complete=is_complete,
        completed_at_hole=completed_at,
        outcome=outcome,
        display_score=format_display_score(
            leading_team,
            lead,
            holes_remaining,
            holes_played=evaluated,
            is_complete=is_complete,
            team_names=team_names or DEFAULT_TEAM_NAMES,
        ),
        short_score=format_short_score(lead, holes_remaining, is_complete=is_complete),
        ignored_holes=tuple(ignored),
    )


def match_points(state: MatchState) -> tuple[float, float]:
    """Fraction of one point awarded to (team A, team B). Incomplete matches award nothing."""
    if state.outcome is MatchOutcome.TEAM_A:
        return 1.0, 0.0
    if state.outcome is MatchOutcome.TEAM_B:
        return 0.0, 1.0
    if state.outcome is MatchOutcome.HALVED:
        return 0.5, 0.5
    return 0.0, 0.0


def would_close_out(state: MatchState, winner: HoleWinner) -> bool:
    """Whether recording winner on the next hole would end the match.

    Covers both an early closeout and the final scheduled hole.
    """
    if state.is_complete:
        return False
    new_lead = abs(state.signed_lead + _TALLY[winner])
    remaining_after = state.holes_remaining - 1
    return new_lead > remaining_after or remaining_after == 0


def next_hole(match: Match, hole_results: Iterable[HoleResult]) -> int | None:
    """First hole ordinal with no result yet, or None once the match is decided."""
    results = list(hole_results)
    if compute_state(match, results).is_complete:
        return None
    scored = {r.hole_number for r in results}
    for hole in range(1, match.scheduled_holes + 1):
        if hole not in scored:
            return hole
    return None  # pragma: no cover - every hole scored means the match is complete


def course_hole(match: Match, hole_number: int) -> int:
    """Map a hole ordinal to the physical course hole (split starts begin on 10)."""
    return (match.starting_hole - 1 + hole_number - 1) % COURSE_HOLES + 1
