"""
SQLAlchemy models for ChoreQuest.

This module defines the database models for the chore, quest and points
economy. Uses Flask-SQLAlchemy for ORM integration with Flask.

Timestamps are naive local times (see utils.timezone).
"""

import enum
from typing import Optional
from flask_sqlalchemy import SQLAlchemy
from sqlalchemy import CheckConstraint, UniqueConstraint, Index, text
from sqlalchemy.orm import relationship

from chorequest.utils.recurrence import is_due
from chorequest.utils.timezone import local_now

db = SQLAlchemy()


class ReviewStatus(str, enum.Enum):
    """Lifecycle of anything an administrator reviews."""

    PENDING = 'pending'
    APPROVED = 'approved'
    REJECTED = 'rejected'

    @classmethod
    def decisions(cls) -> tuple:
        """Statuses an administrator may move a pending record to."""
        return (cls.APPROVED.value, cls.REJECTED.value)


STATUS_CHECK = "status IN ('pending', 'approved', 'rejected')"
PENDING_ONLY = text("status = 'pending'")
PENDING_OR_APPROVED = text("status IN ('pending', 'approved')")


def _iso(value) -> Optional[str]:
    return value.isoformat() if value else None


class Child(db.Model):
    """A child who earns and spends points."""

    __tablename__ = 'children'

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    name = db.Column(db.String(100), nullable=False)
    points = db.Column(db.Integer, default=0, nullable=False)  # Cached projection of ledger_entries
    created_at = db.Column(db.DateTime, default=local_now, nullable=False)
    updated_at = db.Column(db.DateTime, default=local_now, onupdate=local_now, nullable=False)

    # Relationships
    assignments = relationship('Assignment', back_populates='child', cascade='all, delete-orphan')
    submissions = relationship('Submission', back_populates='child', cascade='all, delete-orphan')
    quest_task_statuses = relationship('QuestTaskStatus', back_populates='child', cascade='all, delete-orphan')
    quest_progress = relationship('QuestProgress', back_populates='child', cascade='all, delete-orphan')
    redemptions = relationship('Redemption', back_populates='child', cascade='all, delete-orphan')
    ledger_entries = relationship('LedgerEntry', back_populates='child', cascade='all, delete-orphan')

    def __repr__(self):
        return f'<Child {self.name} ({self.points} pts)>'

    def to_dict(self) -> dict:
        """Serialize Child to dictionary for JSON/webhook responses."""
        return {
            'id': self.id,
            'name': self.name,
            'points': self.points,
            'created_at': _iso(self.created_at),
            'updated_at': _iso(self.updated_at)
        }


class Task(db.Model):
    """A chore template: recurring ('daily', 'weekly') or one-off ('once')."""

    __tablename__ = 'tasks'

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    title = db.Column(db.String(100), nullable=False)
    description = db.Column(db.Text)
    recurrence = db.Column(db.String(20), default='daily', nullable=False)
    default_points = db.Column(db.Integer, default=10, nullable=False)
    requires_approval = db.Column(db.Boolean, default=True, nullable=False)
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(db.DateTime, default=local_now, nullable=False)
    updated_at = db.Column(db.DateTime, default=local_now, onupdate=local_now, nullable=False)

    # Relationships
    assignments = relationship('Assignment', back_populates='task', cascade='all, delete-orphan')
    submissions = relationship('Submission', back_populates='task', cascade='all, delete-orphan')

    # Constraints
    __table_args__ = (
        CheckConstraint("recurrence IN ('once', 'daily', 'weekly')", name='check_task_recurrence'),
        CheckConstraint('default_points >= 0', name='check_task_points'),
    )

    def __repr__(self):
        return f'<Task {self.title} ({self.recurrence})>'

    @property
    def is_recurring(self) -> bool:
        return self.recurrence in ('daily', 'weekly')

    def to_dict(self) -> dict:
        """Serialize Task to dictionary for JSON/webhook responses."""
        return {
            'id': self.id,
            'title': self.title,
            'description': self.description,
            'recurrence': self.recurrence,
            'is_recurring': self.is_recurring,
            'default_points': self.default_points,
            'requires_approval': self.requires_approval,
            'is_active': self.is_active,
            'created_at': _iso(self.created_at),
            'updated_at': _iso(self.updated_at)
        }


class Assignment(db.Model):
    """Scheduling state binding one child to one task."""

    __tablename__ = 'assignments'

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    child_id = db.Column(db.Integer, db.ForeignKey('children.id', ondelete='CASCADE'), nullable=False)
    task_id = db.Column(db.Integer, db.ForeignKey('tasks.id', ondelete='CASCADE'), nullable=False)
    next_due_at = db.Column(db.DateTime, nullable=False)
    streak_count = db.Column(db.Integer, default=0, nullable=False)
    last_completed_at = db.Column(db.DateTime)
    assigned_at = db.Column(db.DateTime, default=local_now, nullable=False)

    # Relationships
    child = relationship('Child', back_populates='assignments')
    task = relationship('Task', back_populates='assignments')

    # Constraints
    __table_args__ = (
        UniqueConstraint('child_id', 'task_id', name='unique_child_task'),
        CheckConstraint('streak_count >= 0', name='check_streak_count'),
        Index('idx_assignments_next_due_at', 'next_due_at'),
    )

    def __repr__(self):
        return f'<Assignment child_id={self.child_id} task_id={self.task_id} streak={self.streak_count}>'

    def to_dict(self, now=None) -> dict:
        """Serialize Assignment together with its task."""
        now = now or local_now()
        return {
            'id': self.id,
            'child_id': self.child_id,
            'task_id': self.task_id,
            'title': self.task.title if self.task else None,
            'description': self.task.description if self.task else None,
            'recurrence': self.task.recurrence if self.task else None,
            'default_points': self.task.default_points if self.task else None,
            'requires_approval': self.task.requires_approval if self.task else None,
            'next_due_at': _iso(self.next_due_at),
            'is_due': is_due(self.next_due_at, now),
            'streak_count': self.streak_count,
            'last_completed_at': _iso(self.last_completed_at),
            'assigned_at': _iso(self.assigned_at)
        }


class Submission(db.Model):
    """A child's claim to have completed a task."""

    __tablename__ = 'submissions'

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    child_id = db.Column(db.Integer, db.ForeignKey('children.id', ondelete='CASCADE'), nullable=False)
    task_id = db.Column(db.Integer, db.ForeignKey('tasks.id', ondelete='CASCADE'), nullable=False)
    status = db.Column(db.String(20), default=ReviewStatus.PENDING.value, nullable=False)
    note = db.Column(db.Text)
    review_note = db.Column(db.Text)
    points_awarded = db.Column(db.Integer, default=0, nullable=False)  # Absolute value resolved at approval
    submitted_at = db.Column(db.DateTime, default=local_now, nullable=False)
    reviewed_at = db.Column(db.DateTime)

    # Relationships
    child = relationship('Child', back_populates='submissions')
    task = relationship('Task', back_populates='submissions')

    # Constraints
    __table_args__ = (
        CheckConstraint(STATUS_CHECK, name='check_submission_status'),
        Index('idx_submissions_status', 'status'),
        Index('idx_submissions_child_task', 'child_id', 'task_id'),
        # At most one pending submission per child and task
        Index('uq_submissions_one_pending', 'child_id', 'task_id', unique=True,
              sqlite_where=PENDING_ONLY, postgresql_where=PENDING_ONLY),
    )

    def __repr__(self):
        return f'<Submission child_id={self.child_id} task_id={self.task_id} status={self.status}>'

    def to_dict(self) -> dict:
        """Serialize Submission to dictionary for JSON/webhook responses."""
        return {
            'id': self.id,
            'submission_id': self.id,  # Alias for clarity in automations
            'child_id': self.child_id,
            'child_name': self.child.name if self.child else None,
            'task_id': self.task_id,
            'task_title': self.task.title if self.task else None,
            'status': self.status,
            'note': self.note,
            'review_note': self.review_note,
            'points_awarded': self.points_awarded,
            'submitted_at': _iso(self.submitted_at),
            'reviewed_at': _iso(self.reviewed_at)
        }


class Quest(db.Model):
    """A named collection of one-off quest tasks."""

    __tablename__ = 'quests'

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    title = db.Column(db.String(100), nullable=False)
    description = db.Column(db.Text)
    target_reward = db.Column(db.String(200))  # Informational, fulfilled by hand
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(db.DateTime, default=local_now, nullable=False)

    # Relationships
    tasks = relationship('QuestTask', back_populates='quest', cascade='all, delete-orphan',
                         order_by='QuestTask.order_index')
    progress = relationship('QuestProgress', back_populates='quest', cascade='all, delete-orphan')

    def __repr__(self):
        return f'<Quest {self.title}>'

    def to_dict(self) -> dict:
        """Serialize Quest to dictionary for JSON responses."""
        return {
            'id': self.id,
            'title': self.title,
            'description': self.description,
            'target_reward': self.target_reward,
            'is_active': self.is_active,
            'task_count': len(self.tasks),
            'created_at': _iso(self.created_at)
        }


class QuestTask(db.Model):
    """A static unit of work within a quest."""

    __tablename__ = 'quest_tasks'

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    quest_id = db.Column(db.Integer, db.ForeignKey('quests.id', ondelete='CASCADE'), nullable=False)
    title = db.Column(db.String(100), nullable=False)
    description = db.Column(db.Text)
    points = db.Column(db.Integer, default=10, nullable=False)
    order_index = db.Column(db.Integer, default=0, nullable=False)

    # Relationships
    quest = relationship('Quest', back_populates='tasks')
    statuses = relationship('QuestTaskStatus', back_populates='quest_task', cascade='all, delete-orphan')

    __table_args__ = (
        CheckConstraint('points >= 0', name='check_quest_task_points'),
        Index('idx_quest_tasks_quest', 'quest_id', 'order_index'),
    )

    def __repr__(self):
        return f'<QuestTask {self.title} ({self.points} pts)>'

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'quest_id': self.quest_id,
            'title': self.title,
            'description': self.description,
            'points': self.points,
            'order_index': self.order_index
        }


class QuestTaskStatus(db.Model):
    """A child's submission for one quest task."""

    __tablename__ = 'quest_task_statuses'

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    child_id = db.Column(db.Integer, db.ForeignKey('children.id', ondelete='CASCADE'), nullable=False)
    quest_task_id = db.Column(db.Integer, db.ForeignKey('quest_tasks.id', ondelete='CASCADE'), nullable=False)
    status = db.Column(db.String(20), default=ReviewStatus.PENDING.value, nullable=False)
    note = db.Column(db.Text)
    submitted_at = db.Column(db.DateTime, default=local_now, nullable=False)
    reviewed_at = db.Column(db.DateTime)

    # Relationships
    child = relationship('Child', back_populates='quest_task_statuses')
    quest_task = relationship('QuestTask', back_populates='statuses')

    __table_args__ = (
        CheckConstraint(STATUS_CHECK, name='check_quest_task_status'),
        Index('idx_quest_task_statuses_child_task', 'child_id', 'quest_task_id'),
        Index('idx_quest_task_statuses_status', 'status'),
        # A rejected submission may be retried, a pending or approved one may not
        Index('uq_quest_task_statuses_open', 'child_id', 'quest_task_id', unique=True,
              sqlite_where=PENDING_OR_APPROVED, postgresql_where=PENDING_OR_APPROVED),
    )

    def __repr__(self):
        return f'<QuestTaskStatus child_id={self.child_id} quest_task_id={self.quest_task_id} status={self.status}>'

    def to_dict(self) -> dict:
        """Serialize QuestTaskStatus to dictionary for JSON/webhook responses."""
        quest_task = self.quest_task
        return {
            'id': self.id,
            'status_id': self.id,  # Alias for clarity in automations
            'child_id': self.child_id,
            'child_name': self.child.name if self.child else None,
            'quest_task_id': self.quest_task_id,
            'quest_task_title': quest_task.title if quest_task else None,
            'quest_id': quest_task.quest_id if quest_task else None,
            'points': quest_task.points if quest_task else None,
            'status': self.status,
            'note': self.note,
            'submitted_at': _iso(self.submitted_at),
            'reviewed_at': _iso(self.reviewed_at)
        }


class QuestProgress(db.Model):
    """Points a child has accumulated towards one quest."""

    __tablename__ = 'quest_progress'

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    child_id = db.Column(db.Integer, db.ForeignKey('children.id', ondelete='CASCADE'), nullable=False)
    quest_id = db.Column(db.Integer, db.ForeignKey('quests.id', ondelete='CASCADE'), nullable=False)
    total_points = db.Column(db.Integer, default=0, nullable=False)
    updated_at = db.Column(db.DateTime, default=local_now, onupdate=local_now, nullable=False)

    # Relationships
    child = relationship('Child', back_populates='quest_progress')
    quest = relationship('Quest', back_populates='progress')

    __table_args__ = (
        UniqueConstraint('child_id', 'quest_id', name='unique_child_quest'),
    )

    def __repr__(self):
        return f'<QuestProgress child_id={self.child_id} quest_id={self.quest_id} total={self.total_points}>'


class Reward(db.Model):
    """Reward that can be redeemed with points."""

    __tablename__ = 'rewards'

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    title = db.Column(db.String(100), nullable=False)
    description = db.Column(db.Text)
    cost_points = db.Column(db.Integer, nullable=False)
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(db.DateTime, default=local_now, nullable=False)
    updated_at = db.Column(db.DateTime, default=local_now, onupdate=local_now, nullable=False)

    # Relationships
    redemptions = relationship('Redemption', back_populates='reward', cascade='all, delete-orphan')

    __table_args__ = (
        CheckConstraint('cost_points > 0', name='check_reward_cost'),
    )

    def __repr__(self):
        return f'<Reward {self.title} ({self.cost_points} pts)>'

    def to_dict(self) -> dict:
        """Serialize Reward to dictionary for JSON/webhook responses."""
        return {
            'id': self.id,
            'title': self.title,
            'description': self.description,
            'cost_points': self.cost_points,
            'is_active': self.is_active,
            'created_at': _iso(self.created_at),
            'updated_at': _iso(self.updated_at)
        }


class Redemption(db.Model):
    """A request to spend points on a reward."""

    __tablename__ = 'redemptions'

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    child_id = db.Column(db.Integer, db.ForeignKey('children.id', ondelete='CASCADE'), nullable=False)
    reward_id = db.Column(db.Integer, db.ForeignKey('rewards.id', ondelete='CASCADE'), nullable=False)
    cost_points = db.Column(db.Integer, nullable=False)  # Captured at request time
    status = db.Column(db.String(20), default=ReviewStatus.PENDING.value, nullable=False)
    requested_at = db.Column(db.DateTime, default=local_now, nullable=False)
    resolved_at = db.Column(db.DateTime)

    # Relationships
    child = relationship('Child', back_populates='redemptions')
    reward = relationship('Reward', back_populates='redemptions')

    __table_args__ = (
        CheckConstraint(STATUS_CHECK, name='check_redemption_status'),
        Index('idx_redemptions_child_status', 'child_id', 'status'),
    )

    def __repr__(self):
        return f'<Redemption child_id={self.child_id} reward_id={self.reward_id} status={self.status}>'

    def to_dict(self) -> dict:
        """Serialize Redemption to dictionary for JSON/webhook responses."""
        return {
            'id': self.id,
            'redemption_id': self.id,  # Alias for clarity in automations
            'child_id': self.child_id,
            'child_name': self.child.name if self.child else None,
            'reward_id': self.reward_id,
            'reward_title': self.reward.title if self.reward else None,
            'cost_points': self.cost_points,
            'status': self.status,
            'requested_at': _iso(self.requested_at),
            'resolved_at': _iso(self.resolved_at)
        }


class LedgerEntry(db.Model):
    """Append-only log of every change to a child's balance."""

    __tablename__ = 'ledger_entries'

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    child_id = db.Column(db.Integer, db.ForeignKey('children.id', ondelete='CASCADE'), nullable=False)
    delta = db.Column(db.Integer, nullable=False)  # Can be negative
    reason = db.Column(db.Text, nullable=False)

    # Reference to what caused this change
    submission_id = db.Column(db.Integer, db.ForeignKey('submissions.id', ondelete='SET NULL'))
    quest_task_status_id = db.Column(db.Integer, db.ForeignKey('quest_task_statuses.id', ondelete='SET NULL'))
    redemption_id = db.Column(db.Integer, db.ForeignKey('redemptions.id', ondelete='SET NULL'))

    created_at = db.Column(db.DateTime, default=local_now, nullable=False)

    # Relationships
    child = relationship('Child', back_populates='ledger_entries')

    __table_args__ = (
        Index('idx_ledger_entries_child', 'child_id'),
        Index('idx_ledger_entries_created_at', 'created_at'),
    )

    def __repr__(self):
        return f'<LedgerEntry child_id={self.child_id} delta={self.delta}>'

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'child_id': self.child_id,
            'delta': self.delta,
            'reason': self.reason,
            'submission_id': self.submission_id,
            'quest_task_status_id': self.quest_task_status_id,
            'redemption_id': self.redemption_id,
            'created_at': _iso(self.created_at)
        }

