"""Points ledger service.

The child's ``points`` column is a cached projection of the append-only
``ledger_entries`` table. Every change goes through ``apply_delta`` so both
move together inside the caller's transaction.

The ledger does not refuse negative balances. Spend sufficiency is checked
by the caller (see RedemptionService).
"""

import logging
from typing import Optional

from sqlalchemy import func, select, update

from chorequest.models import (
    db, Child, LedgerEntry, Submission, QuestTask, QuestTaskStatus, Redemption, ReviewStatus
)
from chorequest.services.errors import NotFoundError

logger = logging.getLogger(__name__)


class LedgerService:
    """Service for reading and changing point balances."""

    @staticmethod
    def get_child(child_id: int) -> Child:
        """Get a child by ID or raise NotFoundError."""
        child = db.session.get(Child, child_id)
        if not child:
            raise NotFoundError(f'Child {child_id} not found')
        return child

    @staticmethod
    def get_balance(child_id: int) -> int:
        """Current stored balance for a child."""
        balance = db.session.execute(
            select(Child.points).where(Child.id == child_id)
        ).scalar_one_or_none()
        if balance is None:
            raise NotFoundError(f'Child {child_id} not found')
        return balance

    @staticmethod
    def apply_delta(child_id: int, delta: int, reason: str,
                    submission_id: Optional[int] = None,
                    quest_task_status_id: Optional[int] = None,
                    redemption_id: Optional[int] = None) -> int:
        """
        Apply a signed change to a child's balance and record it.

        The increment runs server-side (``points = points + delta``) so
        concurrent deltas for the same child are never lost. Does not commit.

        Args:
            child_id: Child whose balance changes
            delta: Points to add (positive) or subtract (negative)
            reason: Description of why points changed
            submission_id: Optional reference to the causing submission
            quest_task_status_id: Optional reference to the causing quest task
            redemption_id: Optional reference to the causing redemption

        Returns:
            The new balance
        """
        result = db.session.execute(
            update(Child)
            .where(Child.id == child_id)
            .values(points=Child.points + delta)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise NotFoundError(f'Child {child_id} not found')
        # Loaded Child objects still hold the old balance
        db.session.expire(db.session.get(Child, child_id), ['points', 'updated_at'])

        db.session.add(LedgerEntry(
            child_id=child_id,
            delta=delta,
            reason=reason,
            submission_id=submission_id,
            quest_task_status_id=quest_task_status_id,
            redemption_id=redemption_id
        ))
        db.session.flush()

        new_balance = LedgerService.get_balance(child_id)
        logger.info(f"Ledger: child={child_id} delta={delta:+d} balance={new_balance} ({reason})")
        return new_balance

    @staticmethod
    def history(child_id: int, limit: int = 50, offset: int = 0) -> list:
        """Ledger entries for a child, newest first."""
        LedgerService.get_child(child_id)
        return (LedgerEntry.query
                .filter_by(child_id=child_id)
                .order_by(LedgerEntry.created_at.desc(), LedgerEntry.id.desc())
                .limit(limit)
                .offset(offset)
                .all())

    @staticmethod
    def calculate_balance(child_id: int) -> int:
        """Sum of all ledger entries for a child."""
        total = db.session.query(func.sum(LedgerEntry.delta)).filter(
            LedgerEntry.child_id == child_id
        ).scalar()
        return total if total is not None else 0

    @staticmethod
    def replay_balance(child_id: int) -> int:
        """
        Rebuild a balance from the approved workflow rows.

        approved submission points + approved quest task points
        - approved redemption costs
        """
        approved = ReviewStatus.APPROVED.value

        earned = db.session.query(func.sum(Submission.points_awarded)).filter(
            Submission.child_id == child_id,
            Submission.status == approved
        ).scalar() or 0

        quest_earned = db.session.query(func.sum(QuestTask.points)).join(
            QuestTaskStatus, QuestTaskStatus.quest_task_id == QuestTask.id
        ).filter(
            QuestTaskStatus.child_id == child_id,
            QuestTaskStatus.status == approved
        ).scalar() or 0

        spent = db.session.query(func.sum(Redemption.cost_points)).filter(
            Redemption.child_id == child_id,
            Redemption.status == approved
        ).scalar() or 0

        return earned + quest_earned - spent

    @staticmethod
    def verify_balance(child_id: int) -> dict:
        """
        Compare the stored balance against the ledger and the workflow rows.

        Returns:
            dict with stored, ledger and replayed totals and an ``ok`` flag
        """
        stored = LedgerService.get_balance(child_id)
        ledger = LedgerService.calculate_balance(child_id)
        replayed = LedgerService.replay_balance(child_id)
        return {
            'child_id': child_id,
            'stored': stored,
            'ledger': ledger,
            'replayed': replayed,
            'ok': stored == ledger == replayed
        }

    @staticmethod
    def audit_balances() -> list:
        """Verify every child's balance. Returns the discrepancies found."""
        discrepancies = []
        for child_id in db.session.execute(select(Child.id)).scalars().all():
            result = LedgerService.verify_balance(child_id)
            if not result['ok']:
                discrepancies.append(result)
        return discrepancies
