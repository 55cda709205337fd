"""Initial schema: children, chores, quests, rewards and the points ledger

Revision ID: 20260301_initial
Revises:
Create Date: 2026-03-01

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '20260301_initial'
down_revision = None
branch_labels = None
depends_on = None

STATUS_CHECK = "status IN ('pending', 'approved', 'rejected')"


def upgrade():
    op.create_table(
        'children',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('points', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )

    op.create_table(
        'tasks',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('title', sa.String(length=100), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('recurrence', sa.String(length=20), nullable=False, server_default='daily'),
        sa.Column('default_points', sa.Integer(), nullable=False, server_default='10'),
        sa.Column('requires_approval', sa.Boolean(), nullable=False, server_default='1'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint("recurrence IN ('once', 'daily', 'weekly')", name='check_task_recurrence'),
        sa.CheckConstraint('default_points >= 0', name='check_task_points'),
    )

    op.create_table(
        'assignments',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('child_id', sa.Integer(), nullable=False),
        sa.Column('task_id', sa.Integer(), nullable=False),
        sa.Column('next_due_at', sa.DateTime(), nullable=False),
        sa.Column('streak_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('last_completed_at', sa.DateTime(), nullable=True),
        sa.Column('assigned_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['child_id'], ['children.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['task_id'], ['tasks.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('child_id', 'task_id', name='unique_child_task'),
        sa.CheckConstraint('streak_count >= 0', name='check_streak_count'),
    )
    op.create_index('idx_assignments_next_due_at', 'assignments', ['next_due_at'])

    op.create_table(
        'submissions',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('child_id', sa.Integer(), nullable=False),
        sa.Column('task_id', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='pending'),
        sa.Column('note', sa.Text(), nullable=True),
        sa.Column('review_note', sa.Text(), nullable=True),
        sa.Column('points_awarded', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('submitted_at', sa.DateTime(), nullable=False),
        sa.Column('reviewed_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['child_id'], ['children.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['task_id'], ['tasks.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint(STATUS_CHECK, name='check_submission_status'),
    )
    op.create_index('idx_submissions_status', 'submissions', ['status'])
    op.create_index('idx_submissions_child_task', 'submissions', ['child_id', 'task_id'])
    op.create_index(
        'uq_submissions_one_pending', 'submissions', ['child_id', 'task_id'], unique=True,
        sqlite_where=sa.text("status = 'pending'"),
        postgresql_where=sa.text("status = 'pending'"),
    )

    op.create_table(
        'quests',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('title', sa.String(length=100), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('target_reward', sa.String(length=200), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )

    op.create_table(
        'quest_tasks',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('quest_id', sa.Integer(), nullable=False),
        sa.Column('title', sa.String(length=100), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('points', sa.Integer(), nullable=False, server_default='10'),
        sa.Column('order_index', sa.Integer(), nullable=False, server_default='0'),
        sa.ForeignKeyConstraint(['quest_id'], ['quests.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint('points >= 0', name='check_quest_task_points'),
    )
    op.create_index('idx_quest_tasks_quest', 'quest_tasks', ['quest_id', 'order_index'])

    op.create_table(
        'quest_task_statuses',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('child_id', sa.Integer(), nullable=False),
        sa.Column('quest_task_id', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='pending'),
        sa.Column('note', sa.Text(), nullable=True),
        sa.Column('submitted_at', sa.DateTime(), nullable=False),
        sa.Column('reviewed_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['child_id'], ['children.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['quest_task_id'], ['quest_tasks.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint(STATUS_CHECK, name='check_quest_task_status'),
    )
    op.create_index('idx_quest_task_statuses_child_task', 'quest_task_statuses', ['child_id', 'quest_task_id'])
    op.create_index('idx_quest_task_statuses_status', 'quest_task_statuses', ['status'])
    op.create_index(
        'uq_quest_task_statuses_open', 'quest_task_statuses', ['child_id', 'quest_task_id'], unique=True,
        sqlite_where=sa.text("status IN ('pending', 'approved')"),
        postgresql_where=sa.text("status IN ('pending', 'approved')"),
    )

    op.create_table(
        'quest_progress',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('child_id', sa.Integer(), nullable=False),
        sa.Column('quest_id', sa.Integer(), nullable=False),
        sa.Column('total_points', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['child_id'], ['children.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['quest_id'], ['quests.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('child_id', 'quest_id', name='unique_child_quest'),
    )

    op.create_table(
        'rewards',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('title', sa.String(length=100), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('cost_points', sa.Integer(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint('cost_points > 0', name='check_reward_cost'),
    )

    op.create_table(
        'redemptions',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('child_id', sa.Integer(), nullable=False),
        sa.Column('reward_id', sa.Integer(), nullable=False),
        sa.Column('cost_points', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='pending'),
        sa.Column('requested_at', sa.DateTime(), nullable=False),
        sa.Column('resolved_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['child_id'], ['children.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['reward_id'], ['rewards.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint(STATUS_CHECK, name='check_redemption_status'),
    )
    op.create_index('idx_redemptions_child_status', 'redemptions', ['child_id', 'status'])

    op.create_table(
        'ledger_entries',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('child_id', sa.Integer(), nullable=False),
        sa.Column('delta', sa.Integer(), nullable=False),
        sa.Column('reason', sa.Text(), nullable=False),
        sa.Column('submission_id', sa.Integer(), nullable=True),
        sa.Column('quest_task_status_id', sa.Integer(), nullable=True),
        sa.Column('redemption_id', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['child_id'], ['children.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['submission_id'], ['submissions.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['quest_task_status_id'], ['quest_task_statuses.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['redemption_id'], ['redemptions.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('idx_ledger_entries_child', 'ledger_entries', ['child_id'])
    op.create_index('idx_ledger_entries_created_at', 'ledger_entries', ['created_at'])


def downgrade():
    op.drop_index('idx_ledger_entries_created_at', table_name='ledger_entries')
    op.drop_index('idx_ledger_entries_child', table_name='ledger_entries')
    op.drop_table('ledger_entries')

    op.drop_index('idx_redemptions_child_status', table_name='redemptions')
    op.drop_table('redemptions')
    op.drop_table('rewards')

    op.drop_table('quest_progress')
    op.drop_index('uq_quest_task_statuses_open', table_name='quest_task_statuses')
    op.drop_index('idx_quest_task_statuses_status', table_name='quest_task_statuses')
    op.drop_index('idx_quest_task_statuses_child_task', table_name='quest_task_statuses')
    op.drop_table('quest_task_statuses')
    op.drop_index('idx_quest_tasks_quest', table_name='quest_tasks')
    op.drop_table('quest_tasks')
    op.drop_table('quests')

    op.drop_index('uq_submissions_one_pending', table_name='submissions')
    op.drop_index('idx_submissions_child_task', table_name='submissions')
    op.drop_index('idx_submissions_status', table_name='submissions')
    op.drop_table('submissions')

    op.drop_index('idx_assignments_next_due_at', table_name='assignments')
    op.drop_table('assignments')
    op.drop_table('tasks')
    op.drop_table('children')
