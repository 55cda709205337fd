"""Child service.

Managing children plus the read-only views built on top of the other
services: the child feed and the administrator's stats overview.
"""

import logging
from datetime import datetime, time

from sqlalchemy import func

from chorequest.models import (
    db, Child, Assignment, Submission, QuestTaskStatus, Redemption, ReviewStatus
)
from chorequest.services.chore_service import ChoreService
from chorequest.services.errors import ValidationError
from chorequest.services.ledger_service import LedgerService
from chorequest.services.quest_service import QuestService
from chorequest.utils.db import atomic
from chorequest.utils.timezone import local_now, local_today

logger = logging.getLogger(__name__)

FEED_RECENT = 10
LEADERBOARD_SIZE = 5


class ChildService:
    """Service for children, their feed and household stats."""

    @staticmethod
    def create_child(name: str) -> Child:
        if not (name or '').strip():
            raise ValidationError('Name is required')

        with atomic('create child'):
            child = Child(name=name.strip(), points=0)
            db.session.add(child)

        logger.info(f"Created child {child.id}: {child.name}")
        return child

    @staticmethod
    def list_children() -> list:
        return Child.query.order_by(Child.name, Child.id).all()

    @staticmethod
    def get_child(child_id: int) -> Child:
        return LedgerService.get_child(child_id)

    @staticmethod
    def delete_child(child_id: int) -> None:
        """Delete a child together with all of their history."""
        child = LedgerService.get_child(child_id)

        with atomic('delete child'):
            db.session.delete(child)

        logger.info(f"Deleted child {child_id} and their history")

    @staticmethod
    def get_feed(child_id: int) -> dict:
        """
        Everything a child's dashboard shows in one payload.

        Returns:
            dict with balance, assignments (due first), recent submissions,
            quest progress and recent redemptions
        """
        child = LedgerService.get_child(child_id)
        now = local_now()

        submissions = (Submission.query
                       .filter_by(child_id=child_id)
                       .order_by(Submission.submitted_at.desc(), Submission.id.desc())
                       .limit(FEED_RECENT)
                       .all())

        redemptions = (Redemption.query
                       .filter_by(child_id=child_id)
                       .order_by(Redemption.requested_at.desc(), Redemption.id.desc())
                       .limit(FEED_RECENT)
                       .all())

        return {
            'child': child.to_dict(),
            'balance': child.points,
            'assignments': ChoreService.list_assignments(child_id, now),
            'recent_submissions': [s.to_dict() for s in submissions],
            'quests': QuestService.get_quest_progress(child_id),
            'recent_redemptions': [r.to_dict() for r in redemptions]
        }

    @staticmethod
    def stats_overview() -> dict:
        """Household summary for the administrator dashboard."""
        pending = ReviewStatus.PENDING.value
        start_of_today = datetime.combine(local_today(), time.min)

        pending_submissions = Submission.query.filter_by(status=pending).count()
        pending_redemptions = Redemption.query.filter_by(status=pending).count()
        pending_quest_tasks = QuestTaskStatus.query.filter_by(status=pending).count()

        completed_today = Submission.query.filter(
            Submission.status == ReviewStatus.APPROVED.value,
            Submission.reviewed_at >= start_of_today
        ).count()

        streak_rows = (db.session.query(Child.id, Child.name, func.max(Assignment.streak_count))
                       .join(Assignment, Assignment.child_id == Child.id)
                       .group_by(Child.id, Child.name)
                       .order_by(func.max(Assignment.streak_count).desc(), Child.id)
                       .limit(LEADERBOARD_SIZE)
                       .all())

        points_leaders = (Child.query
                          .order_by(Child.points.desc(), Child.id)
                          .limit(LEADERBOARD_SIZE)
                          .all())

        return {
            'pending_submissions': pending_submissions,
            'pending_redemptions': pending_redemptions,
            'pending_quest_tasks': pending_quest_tasks,
            'completed_today': completed_today,
            'streak_leaders': [
                {'child_id': child_id, 'name': name, 'best_streak': streak}
                for child_id, name, streak in streak_rows
            ],
            'points_leaders': [
                {'child_id': c.id, 'name': c.name, 'points': c.points}
                for c in points_leaders
            ]
        }
