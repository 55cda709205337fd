"""Quest service.

This module contains the business logic for quests:
- Managing quests and their tasks (administrator)
- Submitting a quest task (child)
- Reviewing a quest task submission; approval adds the task's points to the
  child's quest progress and to the child's balance
- Reading quest progress. A quest is complete when every task is approved;
  this is computed on read and triggers no payout.
"""

import logging
from typing import Optional

from sqlalchemy import func, update
from sqlalchemy.exc import IntegrityError

from chorequest.models import db, Child, Quest, QuestTask, QuestTaskStatus, QuestProgress, ReviewStatus
from chorequest.services.errors import (
    AlreadySubmittedError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from chorequest.services.ledger_service import LedgerService
from chorequest.utils.db import atomic
from chorequest.utils.timezone import local_now
from chorequest.utils.webhooks import fire_webhook

logger = logging.getLogger(__name__)

# A child can hold at most one of these per quest task
OPEN_STATUSES = (ReviewStatus.PENDING.value, ReviewStatus.APPROVED.value)


class QuestService:
    """Service for quests and quest progress."""

    @staticmethod
    def get_quest(quest_id: int) -> Quest:
        """Get a quest by ID or raise NotFoundError."""
        quest = db.session.get(Quest, quest_id)
        if not quest:
            raise NotFoundError(f'Quest {quest_id} not found')
        return quest

    @staticmethod
    def get_quest_task(quest_task_id: int) -> QuestTask:
        """Get a quest task by ID or raise NotFoundError."""
        quest_task = db.session.get(QuestTask, quest_task_id)
        if not quest_task:
            raise NotFoundError(f'Quest task {quest_task_id} not found')
        return quest_task

    # Administration

    @staticmethod
    def create_quest(title: str, description: Optional[str] = None,
                     target_reward: Optional[str] = None) -> Quest:
        if not (title or '').strip():
            raise ValidationError('Title is required')

        with atomic('create quest'):
            quest = Quest(title=title.strip(), description=description, target_reward=target_reward)
            db.session.add(quest)

        logger.info(f"Created quest {quest.id}: {quest.title}")
        return quest

    @staticmethod
    def toggle_quest(quest_id: int) -> Quest:
        """Flip a quest between active and inactive."""
        quest = QuestService.get_quest(quest_id)
        with atomic('toggle quest'):
            quest.is_active = not quest.is_active

        logger.info(f"Quest {quest_id} is now {'active' if quest.is_active else 'inactive'}")
        return quest

    @staticmethod
    def list_quests(include_inactive: bool = False) -> list:
        """List quests, active first, newest first."""
        query = Quest.query
        if not include_inactive:
            query = query.filter(Quest.is_active.is_(True))
        return query.order_by(Quest.is_active.desc(), Quest.created_at.desc(), Quest.id.desc()).all()

    @staticmethod
    def create_quest_task(quest_id: int, title: str, description: Optional[str] = None,
                          points: int = 10, order_index: int = 0) -> QuestTask:
        QuestService.get_quest(quest_id)

        if not (title or '').strip():
            raise ValidationError('Title is required')
        if isinstance(points, bool) or not isinstance(points, int) or points < 0:
            raise ValidationError('points must be a non-negative integer')

        with atomic('create quest task'):
            quest_task = QuestTask(
                quest_id=quest_id,
                title=title.strip(),
                description=description,
                points=points,
                order_index=order_index
            )
            db.session.add(quest_task)

        logger.info(f"Created quest task {quest_task.id} in quest {quest_id} ({points} pts)")
        return quest_task

    @staticmethod
    def list_quest_tasks(quest_id: int) -> list:
        QuestService.get_quest(quest_id)
        return (QuestTask.query
                .filter_by(quest_id=quest_id)
                .order_by(QuestTask.order_index, QuestTask.id)
                .all())

    @staticmethod
    def delete_quest_task(quest_task_id: int) -> None:
        """Delete a quest task that nobody has completed yet.

        Raises:
            ConflictError: The task has approved completions, which are part
                of children's point history
        """
        quest_task = QuestService.get_quest_task(quest_task_id)

        approved = QuestTaskStatus.query.filter_by(
            quest_task_id=quest_task_id,
            status=ReviewStatus.APPROVED.value
        ).count()
        if approved:
            raise ConflictError(
                'Quest task has approved completions and cannot be deleted. '
                'Deactivate the quest instead.'
            )

        with atomic('delete quest task'):
            db.session.delete(quest_task)

        logger.info(f"Deleted quest task {quest_task_id}")

    # Workflow

    @staticmethod
    def submit_quest_task(child_id: int, quest_task_id: int, note: Optional[str] = None) -> QuestTaskStatus:
        """Record that a child finished a quest task.

        A rejected submission may be retried; a pending or approved one may not.

        Raises:
            NotFoundError: Child or quest task not found
            ValidationError: The quest is not active
            AlreadySubmittedError: Task already pending or approved for this child
        """
        LedgerService.get_child(child_id)
        quest_task = QuestService.get_quest_task(quest_task_id)

        if not quest_task.quest.is_active:
            raise ValidationError('Quest is not active')

        existing = QuestTaskStatus.query.filter(
            QuestTaskStatus.child_id == child_id,
            QuestTaskStatus.quest_task_id == quest_task_id,
            QuestTaskStatus.status.in_(OPEN_STATUSES)
        ).first()
        if existing:
            raise AlreadySubmittedError('Task already submitted')

        now = local_now()

        with atomic('submit quest task'):
            task_status = QuestTaskStatus(
                child_id=child_id,
                quest_task_id=quest_task_id,
                status=ReviewStatus.PENDING.value,
                note=note,
                submitted_at=now
            )
            db.session.add(task_status)
            try:
                db.session.flush()
            except IntegrityError:
                raise AlreadySubmittedError('Task already submitted')

        logger.info(f"Quest task {quest_task_id} submitted by child {child_id} (status {task_status.id})")
        fire_webhook('quest_task_submitted', task_status)

        return task_status

    @staticmethod
    def review_quest_task(status_id: int, decision: str) -> QuestTaskStatus:
        """Approve or reject a pending quest task submission.

        Raises:
            ValidationError: Unknown decision
            NotFoundError: No pending submission with this ID
        """
        if decision not in ReviewStatus.decisions():
            raise ValidationError('status must be "approved" or "rejected"')

        now = local_now()

        with atomic('review quest task'):
            result = db.session.execute(
                update(QuestTaskStatus)
                .where(QuestTaskStatus.id == status_id,
                       QuestTaskStatus.status == ReviewStatus.PENDING.value)
                .values(status=decision, reviewed_at=now)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                raise NotFoundError('Task status not found')

            task_status = db.session.get(QuestTaskStatus, status_id)
            db.session.refresh(task_status)

            if decision == ReviewStatus.APPROVED.value:
                QuestService._apply_approval(task_status)

        logger.info(f"Quest task status {status_id} {decision}")
        fire_webhook(f'quest_task_{decision}', task_status)

        return task_status

    @staticmethod
    def _apply_approval(task_status: QuestTaskStatus) -> None:
        """Add the task's points to quest progress and to the balance."""
        quest_task = task_status.quest_task

        progress = QuestProgress.query.filter_by(
            child_id=task_status.child_id,
            quest_id=quest_task.quest_id
        ).first()
        if progress is None:
            progress = QuestProgress(
                child_id=task_status.child_id,
                quest_id=quest_task.quest_id,
                total_points=0
            )
            db.session.add(progress)
            db.session.flush()

        db.session.execute(
            update(QuestProgress)
            .where(QuestProgress.id == progress.id)
            .values(total_points=QuestProgress.total_points + quest_task.points)
            .execution_options(synchronize_session=False)
        )
        db.session.expire(progress)

        LedgerService.apply_delta(
            task_status.child_id,
            quest_task.points,
            reason=f"Completed quest task: {quest_task.title}",
            quest_task_status_id=task_status.id
        )

    @staticmethod
    def list_task_statuses(status: str = 'pending', child_id: Optional[int] = None) -> list:
        """List quest task submissions with a given status, newest first."""
        if status not in {s.value for s in ReviewStatus}:
            status = ReviewStatus.PENDING.value

        query = QuestTaskStatus.query.filter(QuestTaskStatus.status == status)
        if child_id is not None:
            query = query.filter(QuestTaskStatus.child_id == child_id)
        return query.order_by(QuestTaskStatus.submitted_at.desc(), QuestTaskStatus.id.desc()).all()

    # Progress

    @staticmethod
    def get_quest_progress(child_id: int, include_inactive: bool = False) -> list:
        """Progress of a child on each quest.

        Returns:
            list of dicts with earned_points, total_points, total_tasks,
            completed_tasks and is_complete per quest
        """
        LedgerService.get_child(child_id)

        earned = dict(
            db.session.query(QuestProgress.quest_id, QuestProgress.total_points)
            .filter(QuestProgress.child_id == child_id)
            .all()
        )

        completed = dict(
            db.session.query(QuestTask.quest_id, func.count(QuestTaskStatus.id))
            .join(QuestTaskStatus, QuestTaskStatus.quest_task_id == QuestTask.id)
            .filter(QuestTaskStatus.child_id == child_id,
                    QuestTaskStatus.status == ReviewStatus.APPROVED.value)
            .group_by(QuestTask.quest_id)
            .all()
        )

        totals = {
            quest_id: (task_count, points or 0)
            for quest_id, task_count, points in
            db.session.query(QuestTask.quest_id, func.count(QuestTask.id), func.sum(QuestTask.points))
            .group_by(QuestTask.quest_id)
            .all()
        }

        query = Quest.query
        if not include_inactive:
            query = query.filter(Quest.is_active.is_(True))

        progress = []
        for quest in query.order_by(Quest.id).all():
            total_tasks, total_points = totals.get(quest.id, (0, 0))
            completed_tasks = completed.get(quest.id, 0)
            progress.append({
                'quest_id': quest.id,
                'title': quest.title,
                'description': quest.description,
                'target_reward': quest.target_reward,
                'is_active': quest.is_active,
                'earned_points': earned.get(quest.id, 0),
                'total_points': total_points,
                'total_tasks': total_tasks,
                'completed_tasks': completed_tasks,
                'is_complete': total_tasks > 0 and completed_tasks == total_tasks
            })
        return progress

    @staticmethod
    def list_completed_quests(child_id: Optional[int] = None) -> list:
        """Quests each child has completed, for the administrator.

        Reward fulfilment for a completed quest happens outside the system.
        """
        if child_id is not None:
            children = [LedgerService.get_child(child_id)]
        else:
            children = Child.query.order_by(Child.id).all()

        completed = []
        for child in children:
            for entry in QuestService.get_quest_progress(child.id, include_inactive=True):
                if entry['is_complete']:
                    completed.append(dict(entry, child_id=child.id, child_name=child.name))
        return completed
