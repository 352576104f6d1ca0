"""Domain exceptions raised by the progression and verification services.

The HTTP layer maps each family to a status code in
``snapquest.middleware.error_handler``.
"""

from __future__ import annotations


class SnapQuestError(Exception):
    """Base class for all domain errors."""

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail


# --- Invalid input: rejected synchronously, nothing mutated ---


class InvalidInputError(SnapQuestError):
    """The request cannot be applied as given."""


class InvalidXPAmountError(InvalidInputError):
    def __init__(self, amount: int) -> None:
        super().__init__(f"XP amount must be a positive integer, got {amount}")
        self.amount = amount


class InvalidSubmissionTargetError(InvalidInputError):
    """More than one completion context was supplied for a single photo."""


class QuestInactiveError(InvalidInputError):
    """The hunt or event exists but is not accepting progress."""


# --- Not found ---


class NotFoundError(SnapQuestError):
    """A referenced record does not exist."""


class ProfileNotFoundError(NotFoundError):
    def __init__(self, user_id: object) -> None:
        super().__init__(f"Profile not found: {user_id}")
        self.user_id = user_id


class ChallengeNotFoundError(NotFoundError):
    pass


class QuestNotFoundError(NotFoundError):
    pass


class TaskNotFoundError(NotFoundError):
    pass


class PhotoNotFoundError(NotFoundError):
    pass


class EventCodeNotFoundError(NotFoundError):
    pass


# --- Persistence ---


class PersistenceError(SnapQuestError):
    """A storage mutation failed and the unit of work was rolled back."""


# --- External capability ---


class MatchScorerUnavailable(SnapQuestError):
    """The image/label similarity service could not produce scores."""
