"""Business logic for the chore, quest and points economy.

Routes should delegate to these services and handle HTTP responses.
"""

from .errors import (
    ChoreQuestError,
    ValidationError,
    NotFoundError,
    NotAssignedError,
    RewardInactiveError,
    ConflictError,
    AlreadyPendingError,
    AlreadyReviewedError,
    AlreadySubmittedError,
    InsufficientPointsError,
    PersistenceError,
)

__all__ = [
    'ChoreQuestError',
    'ValidationError',
    'NotFoundError',
    'NotAssignedError',
    'RewardInactiveError',
    'ConflictError',
    'AlreadyPendingError',
    'AlreadyReviewedError',
    'AlreadySubmittedError',
    'InsufficientPointsError',
    'PersistenceError',
]
