"""Typed domain exceptions for scoring rule violations.

Rule violations raised by the scoring coordinator derive from ScoringError so
the HTTP layer can convert them in one place. Storage failures are a separate
family (shared.dal.exceptions.StorageError) and are propagated unchanged.
"""


class ScoringError(Exception):
    """Base exception for scoring rule violations."""


class InvalidHoleError(ScoringError):
    """Hole number is outside the match's range, or the result is malformed."""

    def __init__(self, *, match_id: str, hole_number: object, reason: str) -> None:
        self.match_id = match_id
        self.hole_number = hole_number
        self.reason = reason
        super().__init__(f"invalid hole {hole_number!r} for match {match_id}: {reason}")


class SessionLockedError(ScoringError):
    """A write was attempted against a locked session.

    Recoverable by the user: the session has to be unlocked first.
    """

    def __init__(self, *, session_id: str, match_id: str) -> None:
        self.session_id = session_id
        self.match_id = match_id
        super().__init__(f"session {session_id} is locked; unlock the session to record or change scores")


class NotFoundError(ScoringError):
    """Referenced match (or session, trip) does not exist."""

    def __init__(self, kind: str, record_id: str) -> None:
        self.kind = kind
        self.record_id = record_id
        super().__init__(f"{kind} {record_id} not found")


class MalformedResultsError(ScoringError, ValueError):
    """Input handed to a pure calculation breaks its preconditions.

    This is a programmer error (duplicate hole numbers, foreign results,
    unknown sessions) and is never coerced away.
    """
