"""Tests for maintenance jobs and CLI commands."""

import pytest
from datetime import datetime
from unittest.mock import patch

from chorequest.jobs import audit_points_balances, sweep_missed_streaks
from chorequest.models import Assignment, Child, Quest, Reward, Task
from chorequest.seed_db import seed_sample_data
from chorequest.services.submission_service import SubmissionService


class TestPointsAudit:
    """Tests for the points audit job."""

    def test_clean_database(self, app, db_session, child, auto_assignment):
        SubmissionService.submit_completion(child.id, auto_assignment.task_id)
        assert audit_points_balances() == []

    def test_reports_discrepancy(self, app, db_session, child, auto_assignment):
        SubmissionService.submit_completion(child.id, auto_assignment.task_id)
        child.points = 99
        db_session.commit()

        discrepancies = audit_points_balances()
        assert len(discrepancies) == 1
        assert discrepancies[0]['child_id'] == child.id

    def test_cli_command(self, app, db_session, child):
        result = app.test_cli_runner().invoke(args=['audit-points'])
        assert result.exit_code == 0
        assert 'All balances verified' in result.output


class TestStreakSweep:
    """Tests for the missed streak sweep."""

    def test_never_reset_policy_does_nothing(self, app, db_session, daily_assignment):
        daily_assignment.streak_count = 5
        daily_assignment.next_due_at = datetime(2026, 3, 1, 7, 0)
        db_session.commit()

        assert sweep_missed_streaks(now=datetime(2026, 3, 10, 9, 0)) == 0
        db_session.refresh(daily_assignment)
        assert daily_assignment.streak_count == 5

    def test_resets_only_missed_recurring_streaks(self, app, db_session, child, daily_task, auto_task, once_task):
        app.config['STREAK_POLICY'] = 'reset_on_miss'
        now = datetime(2026, 3, 10, 9, 0)

        missed = Assignment(child_id=child.id, task_id=daily_task.id,
                            next_due_at=datetime(2026, 3, 8, 7, 0), streak_count=4)
        on_time = Assignment(child_id=child.id, task_id=auto_task.id,
                             next_due_at=datetime(2026, 3, 10, 7, 0), streak_count=3)
        one_off = Assignment(child_id=child.id, task_id=once_task.id,
                             next_due_at=datetime(2026, 1, 1, 7, 0), streak_count=2)
        db_session.add_all([missed, on_time, one_off])
        db_session.commit()

        assert sweep_missed_streaks(now=now) == 1

        db_session.refresh(missed)
        db_session.refresh(on_time)
        db_session.refresh(one_off)
        assert missed.streak_count == 0
        assert on_time.streak_count == 3
        assert one_off.streak_count == 2

    def test_cli_command(self, app, db_session):
        result = app.test_cli_runner().invoke(args=['sweep-streaks'])
        assert result.exit_code == 0
        assert 'Reset 0 streak(s)' in result.output


class TestSeed:
    """Tests for the sample data seed."""

    def test_seed_creates_sample_data(self, app, db_session):
        summary = seed_sample_data()

        assert summary == {'children': 2, 'chores': 5, 'quests': 1, 'rewards': 4}
        assert Child.query.count() == 2
        assert Assignment.query.count() == 10
        assert Quest.query.one().tasks[0].title == 'Rake the leaves'

    def test_seed_is_repeatable(self, app, db_session):
        seed_sample_data()
        seed_sample_data()

        assert Child.query.count() == 2
        assert Task.query.count() == 5
        assert Reward.query.count() == 4
        assert Assignment.query.count() == 10

    def test_cli_command(self, app, db_session):
        with patch('chorequest.seed_db.seed_sample_data', return_value={'children': 2}) as mock_seed:
            result = app.test_cli_runner().invoke(args=['seed'])

        assert result.exit_code == 0
        assert '2 children' in result.output
        mock_seed.assert_called_once()
