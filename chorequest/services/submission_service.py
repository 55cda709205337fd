"""Submission workflow service.

This module contains the business logic for task completion claims:
- Submitting a completion (pending, or approved at once when the task
  needs no approval)
- Reviewing a submission (approve with optional point override, or reject)
- Advancing the assignment on approval: next due date and streak

State machine: pending -> approved | rejected (both terminal)

Approval runs as one transaction: the status change, the ledger credit and
the assignment update either all happen or none do. The pending -> terminal
step is a compare-and-swap, so two concurrent reviews cannot both apply.
"""

import logging
from typing import Optional

from flask import current_app
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from chorequest.models import db, Assignment, Submission, Task, ReviewStatus
from chorequest.services.errors import (
    AlreadyPendingError,
    AlreadyReviewedError,
    NotAssignedError,
    NotFoundError,
    ValidationError,
)
from chorequest.services.ledger_service import LedgerService
from chorequest.utils.db import atomic
from chorequest.utils.recurrence import compute_next_due, is_missed
from chorequest.utils.timezone import local_now
from chorequest.utils.webhooks import fire_webhook

logger = logging.getLogger(__name__)

STREAK_POLICIES = ('never_reset', 'reset_on_miss')
MAX_LISTED = 100


def resolve_points(default_points: int, points_override=None) -> int:
    """Points to award: the override when given, else the task default.

    The override is an absolute value, not a delta.
    """
    if points_override is None:
        return default_points
    if isinstance(points_override, bool) or not isinstance(points_override, int):
        raise ValidationError('points_override must be a valid integer')
    if points_override < 0:
        raise ValidationError('points_override cannot be negative')
    return points_override


def _streak_policy() -> str:
    policy = current_app.config.get('STREAK_POLICY', 'never_reset')
    if policy not in STREAK_POLICIES:
        logger.warning(f"Unknown STREAK_POLICY '{policy}', using 'never_reset'")
        return 'never_reset'
    return policy


class SubmissionService:
    """Service for the submission approval workflow."""

    @staticmethod
    def get_submission(submission_id: int) -> Submission:
        """Get a submission by ID or raise NotFoundError."""
        submission = db.session.get(Submission, submission_id)
        if not submission:
            raise NotFoundError(f'Submission {submission_id} not found')
        return submission

    @staticmethod
    def submit_completion(child_id: int, task_id: int, note: Optional[str] = None) -> dict:
        """Record that a child completed a task.

        Args:
            child_id: ID of the child submitting
            task_id: ID of the completed task
            note: Optional note from the child

        Returns:
            dict with submission_id, status and points_awarded

        Raises:
            NotFoundError: Child not found
            NotAssignedError: Task is not assigned to the child
            ValidationError: Task is not active
            AlreadyPendingError: A submission for this task is already pending
        """
        LedgerService.get_child(child_id)

        assignment = Assignment.query.filter_by(child_id=child_id, task_id=task_id).first()
        if not assignment:
            raise NotAssignedError(f'Task {task_id} is not assigned to you')

        task = assignment.task
        if not task.is_active:
            raise ValidationError('Task is not active')

        pending = Submission.query.filter_by(
            child_id=child_id,
            task_id=task_id,
            status=ReviewStatus.PENDING.value
        ).first()
        if pending:
            raise AlreadyPendingError('Submission already pending')

        now = local_now()
        auto_approve = not task.requires_approval

        with atomic('submit completion'):
            submission = Submission(
                child_id=child_id,
                task_id=task_id,
                status=ReviewStatus.APPROVED.value if auto_approve else ReviewStatus.PENDING.value,
                note=note,
                points_awarded=task.default_points if auto_approve else 0,
                submitted_at=now,
                reviewed_at=now if auto_approve else None
            )
            db.session.add(submission)
            try:
                db.session.flush()
            except IntegrityError:
                # Lost the race against a concurrent submission for the same task
                raise AlreadyPendingError('Submission already pending')

            if auto_approve:
                SubmissionService._apply_approval(submission, task, now)

        logger.info(
            f"Submission {submission.id}: child={child_id} task={task_id} status={submission.status}"
        )

        fire_webhook('submission_created', submission)
        if auto_approve:
            fire_webhook('submission_approved', submission)

        return {
            'submission_id': submission.id,
            'status': submission.status,
            'points_awarded': submission.points_awarded
        }

    @staticmethod
    def review_submission(submission_id: int, decision: str, points_override: Optional[int] = None,
                          review_note: Optional[str] = None) -> Submission:
        """Approve or reject a pending submission.

        Args:
            submission_id: ID of the submission to review
            decision: 'approved' or 'rejected'
            points_override: Optional absolute points to award instead of the
                task default (approval only)
            review_note: Optional note from the reviewer

        Returns:
            The updated Submission

        Raises:
            ValidationError: Unknown decision or invalid override
            NotFoundError: Submission not found
            AlreadyReviewedError: Submission is already approved or rejected
        """
        if decision not in ReviewStatus.decisions():
            raise ValidationError('status must be "approved" or "rejected"')

        submission = SubmissionService.get_submission(submission_id)
        if submission.status != ReviewStatus.PENDING.value:
            raise AlreadyReviewedError(f'Submission {submission_id} has already been reviewed')

        task = submission.task
        approving = decision == ReviewStatus.APPROVED.value

        points = resolve_points(task.default_points, points_override) if approving else 0
        now = local_now()

        values = {'status': decision, 'points_awarded': points, 'reviewed_at': now}
        if review_note:
            values['review_note'] = review_note

        with atomic('review submission'):
            result = db.session.execute(
                update(Submission)
                .where(Submission.id == submission_id,
                       Submission.status == ReviewStatus.PENDING.value)
                .values(**values)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                raise AlreadyReviewedError(f'Submission {submission_id} has already been reviewed')

            db.session.refresh(submission)

            if approving:
                SubmissionService._apply_approval(submission, task, now)

        logger.info(f"Submission {submission_id} {decision} ({submission.points_awarded} pts)")

        fire_webhook('submission_approved' if approving else 'submission_rejected', submission)

        return submission

    @staticmethod
    def approve(submission_id: int, points_override: Optional[int] = None) -> Submission:
        """Approve a pending submission."""
        return SubmissionService.review_submission(
            submission_id, ReviewStatus.APPROVED.value, points_override
        )

    @staticmethod
    def reject(submission_id: int, review_note: Optional[str] = None) -> Submission:
        """Reject a pending submission. No points, streak or schedule change."""
        return SubmissionService.review_submission(
            submission_id, ReviewStatus.REJECTED.value, review_note=review_note
        )

    @staticmethod
    def _apply_approval(submission: Submission, task: Task, now) -> None:
        """Credit the ledger and advance the assignment. Runs inside the caller's transaction."""
        LedgerService.apply_delta(
            submission.child_id,
            submission.points_awarded,
            reason=f"Completed task: {task.title}",
            submission_id=submission.id
        )

        if not task.is_recurring:
            return

        assignment = Assignment.query.filter_by(
            child_id=submission.child_id,
            task_id=submission.task_id
        ).first()
        if not assignment:
            logger.warning(
                f"Submission {submission.id} approved but task {task.id} is no longer "
                f"assigned to child {submission.child_id}; schedule not advanced"
            )
            return

        SubmissionService._advance_assignment(assignment, task, now)

    @staticmethod
    def _advance_assignment(assignment: Assignment, task: Task, now) -> None:
        """Move the due date forward and count the completion in the streak."""
        reset_hour = current_app.config.get('RESET_HOUR', 7)
        next_due = compute_next_due(task.recurrence, now, reset_hour)

        if _streak_policy() == 'reset_on_miss' and is_missed(
                task.recurrence, assignment.next_due_at, now, reset_hour):
            logger.info(f"Streak reset for assignment {assignment.id}: due {assignment.next_due_at} was missed")
            streak = 1
        else:
            streak = Assignment.streak_count + 1

        db.session.execute(
            update(Assignment)
            .where(Assignment.id == assignment.id)
            .values(streak_count=streak, last_completed_at=now, next_due_at=next_due)
            .execution_options(synchronize_session=False)
        )
        db.session.expire(assignment)

    @staticmethod
    def list_submissions(status: str = 'pending', child_id: Optional[int] = None,
                         limit: int = MAX_LISTED) -> list:
        """List submissions with a given status, newest first.

        Unknown statuses fall back to 'pending'.
        """
        if status not in {s.value for s in ReviewStatus}:
            status = ReviewStatus.PENDING.value

        query = Submission.query.filter(Submission.status == status)
        if child_id is not None:
            query = query.filter(Submission.child_id == child_id)

        return (query.order_by(Submission.submitted_at.desc(), Submission.id.desc())
                .limit(min(limit, MAX_LISTED))
                .all())
