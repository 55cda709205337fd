"""Chore catalog service.

This module contains the administrator operations on tasks and assignments:
- Creating, editing and deleting tasks
- Assigning and unassigning tasks to children
- Listing a child's assignments with their lazily computed due state
- Installing preset chores in bulk
"""

import json
import logging
from typing import Optional

from flask import current_app
from sqlalchemy import func

from chorequest.models import db, Task, Assignment, Submission, ReviewStatus
from chorequest.services.errors import NotFoundError, ValidationError
from chorequest.services.ledger_service import LedgerService
from chorequest.utils.db import atomic
from chorequest.utils.recurrence import RECURRENCE_POLICIES, compute_next_due, is_due
from chorequest.utils.timezone import local_now

logger = logging.getLogger(__name__)

TASK_FIELDS = ('title', 'description', 'recurrence', 'default_points', 'requires_approval', 'is_active')


def _validate_task_fields(fields: dict) -> None:
    if 'title' in fields and not (fields['title'] or '').strip():
        raise ValidationError('Title is required')
    if 'recurrence' in fields and fields['recurrence'] not in RECURRENCE_POLICIES:
        raise ValidationError(
            f'Invalid recurrence "{fields["recurrence"]}". Use one of: {", ".join(RECURRENCE_POLICIES)}'
        )
    if 'default_points' in fields:
        points = fields['default_points']
        if isinstance(points, bool) or not isinstance(points, int) or points < 0:
            raise ValidationError('default_points must be a non-negative integer')


class ChoreService:
    """Service for managing tasks and assignments."""

    @staticmethod
    def get_task(task_id: int) -> Task:
        """Get a task by ID or raise NotFoundError."""
        task = db.session.get(Task, task_id)
        if not task:
            raise NotFoundError(f'Task {task_id} not found')
        return task

    @staticmethod
    def create_task(title: str, description: Optional[str] = None, recurrence: str = 'daily',
                    default_points: int = 10, requires_approval: bool = True) -> Task:
        """Create a new task.

        Raises:
            ValidationError: Missing title, unknown recurrence or bad points
        """
        _validate_task_fields({'title': title, 'recurrence': recurrence, 'default_points': default_points})

        with atomic('create task'):
            task = Task(
                title=title.strip(),
                description=description,
                recurrence=recurrence,
                default_points=default_points,
                requires_approval=requires_approval
            )
            db.session.add(task)

        logger.info(f"Created task {task.id}: {task.title} ({task.recurrence}, {task.default_points} pts)")
        return task

    @staticmethod
    def update_task(task_id: int, **fields) -> Task:
        """Edit a task. Only the fields passed are changed.

        Existing assignments keep their scheduling state; a new recurrence
        applies from the next approval on.
        """
        unknown = set(fields) - set(TASK_FIELDS)
        if unknown:
            raise ValidationError(f'Unknown task fields: {", ".join(sorted(unknown))}')
        _validate_task_fields(fields)

        task = ChoreService.get_task(task_id)
        with atomic('update task'):
            for name, value in fields.items():
                if name == 'title':
                    value = value.strip()
                setattr(task, name, value)

        logger.info(f"Updated task {task_id}: {sorted(fields)}")
        return task

    @staticmethod
    def delete_task(task_id: int) -> bool:
        """Delete a task and its assignments.

        A task with reviewed submissions is part of the points history, so
        it is archived (deactivated, assignments and pending submissions
        removed) instead of deleted.

        Returns:
            True if the task row was deleted, False if it was archived
        """
        task = ChoreService.get_task(task_id)

        has_history = Submission.query.filter(
            Submission.task_id == task_id,
            Submission.status != ReviewStatus.PENDING.value
        ).first() is not None

        with atomic('delete task'):
            if has_history:
                Assignment.query.filter_by(task_id=task_id).delete()
                Submission.query.filter_by(task_id=task_id, status=ReviewStatus.PENDING.value).delete()
                task.is_active = False
            else:
                db.session.delete(task)

        logger.info(f"{'Archived' if has_history else 'Deleted'} task {task_id}")
        return not has_history

    @staticmethod
    def list_tasks(include_inactive: bool = True) -> list:
        """List tasks, newest first, with the number of children assigned."""
        query = db.session.query(Task, func.count(Assignment.id)).outerjoin(
            Assignment, Assignment.task_id == Task.id
        ).group_by(Task.id)

        if not include_inactive:
            query = query.filter(Task.is_active.is_(True))

        rows = query.order_by(Task.created_at.desc(), Task.id.desc()).all()

        result = []
        for task, assigned_count in rows:
            data = task.to_dict()
            data['assigned_count'] = assigned_count
            result.append(data)
        return result

    @staticmethod
    def assign_task(task_id: int, child_id: int) -> Assignment:
        """Assign a task to a child.

        Assigning twice is a no-op that returns the existing assignment.
        The first due date is the task's next occurrence after now.
        """
        task = ChoreService.get_task(task_id)
        LedgerService.get_child(child_id)

        if not task.is_active:
            raise ValidationError(f'Task {task_id} is not active')

        existing = Assignment.query.filter_by(task_id=task_id, child_id=child_id).first()
        if existing:
            return existing

        reset_hour = current_app.config.get('RESET_HOUR', 7)
        with atomic('assign task'):
            assignment = Assignment(
                task_id=task_id,
                child_id=child_id,
                next_due_at=compute_next_due(task.recurrence, local_now(), reset_hour),
                streak_count=0
            )
            db.session.add(assignment)

        logger.info(f"Assigned task {task_id} to child {child_id}, first due {assignment.next_due_at}")
        return assignment

    @staticmethod
    def unassign_task(task_id: int, child_id: int) -> None:
        """Remove an assignment. Pending submissions stay reviewable."""
        assignment = Assignment.query.filter_by(task_id=task_id, child_id=child_id).first()
        if not assignment:
            raise NotFoundError(f'Task {task_id} is not assigned to child {child_id}')

        with atomic('unassign task'):
            db.session.delete(assignment)

        logger.info(f"Unassigned task {task_id} from child {child_id}")

    @staticmethod
    def list_assignments(child_id: int, now=None) -> list:
        """List a child's assignments, due ones first, then by due date."""
        LedgerService.get_child(child_id)
        now = now or local_now()

        assignments = Assignment.query.filter_by(child_id=child_id).all()
        assignments.sort(key=lambda a: (not is_due(a.next_due_at, now), a.next_due_at))
        return [a.to_dict(now) for a in assignments]

    # Presets

    @staticmethod
    def load_presets() -> dict:
        """Read the preset catalog named by PRESETS_FILE.

        Returns:
            dict with 'categories' (each a name and its chores) and 'rewards'
        """
        path = current_app.config.get('PRESETS_FILE')
        try:
            with open(path, encoding='utf-8') as fh:
                presets = json.load(fh)
        except (OSError, TypeError):
            logger.warning(f"Presets file not readable: {path}")
            raise NotFoundError('Presets file not found')
        except json.JSONDecodeError as e:
            logger.error(f"Presets file {path} is not valid JSON: {e}")
            raise ValidationError('Presets file is not valid JSON')

        presets.setdefault('categories', [])
        presets.setdefault('rewards', [])
        return presets

    @staticmethod
    def install_presets(chores: list, child_id: Optional[int] = None,
                        category: Optional[str] = None) -> list:
        """Create a batch of tasks, optionally assigning each to one child.

        The batch is installed as a whole or not at all.

        Args:
            chores: Task definitions with the same fields as create_task
            child_id: Child to assign every new task to
            category: Preset category name, for the log only

        Returns:
            The created Task rows

        Raises:
            ValidationError: Empty batch or an invalid task definition
            NotFoundError: Child not found
        """
        if not chores:
            raise ValidationError('No chores provided')

        allowed = set(TASK_FIELDS) - {'is_active'}
        for index, chore in enumerate(chores):
            unknown = set(chore) - allowed
            if unknown:
                raise ValidationError(f'Chore {index}: unknown fields {", ".join(sorted(unknown))}')
            if 'title' not in chore:
                raise ValidationError(f'Chore {index}: title is required')
            _validate_task_fields(chore)

        if child_id is not None:
            LedgerService.get_child(child_id)

        reset_hour = current_app.config.get('RESET_HOUR', 7)
        now = local_now()

        with atomic('install preset chores'):
            tasks = []
            for chore in chores:
                task = Task(
                    title=chore['title'].strip(),
                    description=chore.get('description'),
                    recurrence=chore.get('recurrence', 'daily'),
                    default_points=chore.get('default_points', 10),
                    requires_approval=chore.get('requires_approval', True)
                )
                db.session.add(task)
                tasks.append(task)
            db.session.flush()

            if child_id is not None:
                for task in tasks:
                    db.session.add(Assignment(
                        task_id=task.id,
                        child_id=child_id,
                        next_due_at=compute_next_due(task.recurrence, now, reset_hour),
                        streak_count=0
                    ))

        logger.info(
            f"Installed {len(tasks)} preset chores"
            + (f" from '{category}'" if category else '')
            + (f" for child {child_id}" if child_id is not None else '')
        )
        return tasks
