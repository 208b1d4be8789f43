"""Domain errors for the challenge lifecycle and reputation services.

Each error carries a stable ``code`` and the HTTP status the API layer maps
it to. ``TransactionConflict`` is the only retryable one.
"""

from __future__ import annotations


class ChallengeError(Exception):
    """Base class for domain errors raised by the lifecycle services."""

    code = "challenge_error"
    status_code = 400
    retryable = False

    def __init__(self, message: str | None = None) -> None:
        self.message = message or (self.__doc__ or self.code).strip()
        super().__init__(self.message)


class NotFound(ChallengeError):
    """Record not found."""

    code = "not_found"
    status_code = 404


class ChallengeInactive(ChallengeError):
    """Challenge is not active."""

    code = "challenge_inactive"
    status_code = 409


class ChallengeFull(ChallengeError):
    """Challenge has reached its participant limit."""

    code = "challenge_full"
    status_code = 409


class TierLocked(ChallengeError):
    """Challenge tier is locked for this user."""

    code = "tier_locked"
    status_code = 403


class AlreadyJoined(ChallengeError):
    """User already joined this challenge."""

    code = "already_joined"
    status_code = 409


class InvalidState(ChallengeError):
    """Challenge is not in a state that allows this operation."""

    code = "invalid_state"
    status_code = 409


class AlreadyCompleted(ChallengeError):
    """Challenge already completed."""

    code = "already_completed"
    status_code = 409


class SelfEndorsement(ChallengeError):
    """Users cannot endorse their own skills."""

    code = "self_endorsement"
    status_code = 400


class TransactionConflict(ChallengeError):
    """Concurrent update conflict, retry the request."""

    code = "transaction_conflict"
    status_code = 503
    retryable = True
