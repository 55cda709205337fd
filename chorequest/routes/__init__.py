"""Routes package for ChoreQuest API endpoints."""

import logging
import re
from flask import jsonify

from chorequest.models import db
from chorequest.services.errors import ChoreQuestError

logger = logging.getLogger(__name__)


def error_label(e: ChoreQuestError) -> str:
    """Readable label from the exception class, e.g. NotAssignedError -> 'Not Assigned Error'."""
    return re.sub(r'(?<=[a-z])(?=[A-Z])', ' ', e.__class__.__name__)


def error_response(e: ChoreQuestError):
    """JSON response for a service error."""
    body = {
        'error': error_label(e),
        'message': e.message
    }
    if e.details:
        body['details'] = e.details
    return jsonify(body), e.status_code


def internal_error_response(action: str, e: Exception):
    """Log an unexpected failure, roll back and answer 500 without internals."""
    logger.error(f"Failed to {action}: {e}", exc_info=True)
    db.session.rollback()
    return jsonify({
        'error': 'Internal Server Error',
        'message': f'Failed to {action}'
    }), 500


# Import blueprints
from .children import children_bp
from .chores import chores_bp
from .submissions import submissions_bp
from .quests import quests_bp
from .rewards import rewards_bp, redemptions_bp
from .stats import stats_bp

# Export all blueprints
__all__ = [
    'children_bp',
    'chores_bp',
    'submissions_bp',
    'quests_bp',
    'rewards_bp',
    'redemptions_bp',
    'stats_bp',
    'error_response',
    'internal_error_response',
]
