"""
Points balance audit job.
"""

import logging

logger = logging.getLogger(__name__)


def audit_points_balances():
    """
    Audit all children's points balances.

    Verifies that the cached points column matches both the sum of the
    ledger and the total replayed from approved submissions, quest tasks
    and redemptions.

    Returns:
        list of discrepancy dicts, empty when every balance checks out
    """
    logger.info("Starting points balance audit")

    # Import inside function to avoid circular imports and to get app context
    from chorequest.models import Child
    from chorequest.services.ledger_service import LedgerService

    discrepancies = LedgerService.audit_balances()

    if discrepancies:
        logger.error(f"Points discrepancies found: {discrepancies}")
    else:
        logger.info(f"Points audit complete: all {Child.query.count()} balances verified")

    return discrepancies
