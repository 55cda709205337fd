"""Exceptions raised by the ChoreQuest service layer.

Every error carries a user-facing message and the HTTP status code routes
should answer with.
"""

from typing import Optional


class ChoreQuestError(Exception):
    """Base exception for service errors."""

    def __init__(self, message: str, status_code: int = 400, details: Optional[dict] = None):
        self.message = message
        self.status_code = status_code
        self.details = details
        super().__init__(self.message)


class ValidationError(ChoreQuestError):
    """Missing or invalid input."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message, 400, details)


class NotFoundError(ChoreQuestError):
    """Referenced entity is absent or not in a usable state."""

    def __init__(self, message: str):
        super().__init__(message, 404)


class NotAssignedError(NotFoundError):
    pass


class RewardInactiveError(NotFoundError):
    pass


class ConflictError(ChoreQuestError):
    """The request clashes with existing state."""

    def __init__(self, message: str):
        super().__init__(message, 409)


class AlreadyPendingError(ConflictError):
    pass


class AlreadyReviewedError(ConflictError):
    pass


class AlreadySubmittedError(ConflictError):
    pass


class InsufficientPointsError(ChoreQuestError):
    """Balance does not cover the requested spend."""

    def __init__(self, required: int, available: int):
        super().__init__(
            f'Insufficient points (need {required}, have {available})',
            400,
            {'required': required, 'available': available}
        )


class PersistenceError(ChoreQuestError):
    """Storage failure. The message never includes database internals."""

    def __init__(self, message: str = 'Storage failure, please try again'):
        super().__init__(message, 500)
