"""
Transaction helper for service operations.
"""

import logging
from contextlib import contextmanager

from sqlalchemy.exc import SQLAlchemyError

from chorequest.models import db
from chorequest.services.errors import ChoreQuestError, PersistenceError

logger = logging.getLogger(__name__)


@contextmanager
def atomic(action: str):
    """
    Run a block as one database transaction.

    Commits when the block finishes. Any error rolls the whole block back so
    no partial state is ever visible; storage errors surface as
    PersistenceError with the details only in the log.

    Args:
        action: Short description used in log and error messages
    """
    try:
        yield db.session
        db.session.commit()
    except ChoreQuestError:
        db.session.rollback()
        raise
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error(f"Database error while trying to {action}: {e}", exc_info=True)
        raise PersistenceError(f'Failed to {action}') from e
