"""
Error taxonomy for lineup and scoring operations.

Every rejection the engine can produce is a subclass of PlayingXIError
carrying a stable machine-readable ``code`` and a ``details`` dict, so the
HTTP layer (and any other caller) can tell conditions apart without
parsing messages.

Usage:
    try:
        store.save_lineup(...)
    except TransferLimitExceeded as exc:
        print(exc.code, exc.details["remaining"])
"""

from __future__ import annotations

from typing import Any


class PlayingXIError(Exception):
    """Base class for all domain errors."""

    code = "PLAYINGXI_ERROR"
    status_code = 400

    def __init__(self, message: str, **details: Any) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details,
        }


class NotFound(PlayingXIError):
    """Unknown league, team or match, or a team outside the league."""

    code = "NOT_FOUND"
    status_code = 404


class InvalidComposition(PlayingXIError):
    """The proposed XI breaks one or more composition rules."""

    code = "INVALID_COMPOSITION"
    status_code = 422

    def __init__(self, violations: list[str]) -> None:
        super().__init__(
            "Lineup composition is invalid: " + "; ".join(violations),
            violations=violations,
        )
        self.violations = violations


class MatchLocked(PlayingXIError):
    code = "MATCH_LOCKED"
    status_code = 409

    def __init__(self, match_id: int) -> None:
        super().__init__(f"Match {match_id} has started and is locked", match_id=match_id)
        self.match_id = match_id


class SequentialLockViolation(PlayingXIError):
    """
    Raised when a write to match M would skip over unresolved history.

    ``match_id`` names the blocking match: either an earlier locked match
    with no resolved lineup, or a later match that already has one.
    """

    code = "SEQUENTIAL_LOCK_VIOLATION"
    status_code = 409

    def __init__(self, match_id: int, reason: str = "unresolved_locked_match") -> None:
        if reason == "later_lineup_exists":
            message = f"A lineup already exists for later match {match_id}"
        else:
            message = f"Locked match {match_id} has no resolved lineup for this team"
        super().__init__(message, match_id=match_id, reason=reason)
        self.match_id = match_id
        self.reason = reason


class TransferLimitExceeded(PlayingXIError):
    code = "TRANSFER_LIMIT_EXCEEDED"
    status_code = 409

    def __init__(self, limit: int, used: int, attempted: int) -> None:
        remaining = max(limit - used, 0)
        super().__init__(
            f"Lineup needs {attempted} transfers but only {remaining} of {limit} remain",
            limit=limit,
            used=used,
            remaining=remaining,
            attempted=attempted,
        )


class CaptainQuotaExceeded(PlayingXIError):
    code = "CAPTAIN_QUOTA_EXCEEDED"
    status_code = 409

    def __init__(self, quota: int, used: int) -> None:
        super().__init__(
            f"Captain change quota exhausted ({used}/{quota} used)",
            quota=quota,
            used=used,
        )


class ViceCaptainQuotaExceeded(PlayingXIError):
    code = "VICE_CAPTAIN_QUOTA_EXCEEDED"
    status_code = 409

    def __init__(self, quota: int, used: int) -> None:
        super().__init__(
            f"Vice-captain change quota exhausted ({used}/{quota} used)",
            quota=quota,
            used=used,
        )


class NoPriorLineup(PlayingXIError):
    code = "NO_PRIOR_LINEUP"
    status_code = 409


class UndoWindowExpired(PlayingXIError):
    code = "UNDO_WINDOW_EXPIRED"
    status_code = 409

    def __init__(self, revision_id: int, grace_seconds: int) -> None:
        super().__init__(
            f"Save {revision_id} is older than the {grace_seconds}s undo window",
            revision_id=revision_id,
            grace_seconds=grace_seconds,
        )


class PerformanceDataUnavailable(PlayingXIError):
    """No performance data yet for a match. Scoring is deferred, not failed."""

    code = "PERFORMANCE_DATA_UNAVAILABLE"
    status_code = 202

    def __init__(self, match_id: int) -> None:
        super().__init__(f"No performance data for match {match_id} yet", match_id=match_id)
        self.match_id = match_id


class FeedUnavailable(PlayingXIError):
    """Transient failure reading the performance feed; safe to retry."""

    code = "FEED_UNAVAILABLE"
    status_code = 503
