"""Pytest configuration and fixtures for ChoreQuest tests."""

import pytest

from chorequest.app import create_app
from chorequest.models import db, Child, Task, Assignment, Quest, QuestTask, Reward
from chorequest.services.ledger_service import LedgerService
from chorequest.utils.timezone import local_now


@pytest.fixture(scope='function')
def app():
    """Create application instance for testing."""
    app = create_app('testing')

    # Create database tables
    with app.app_context():
        db.create_all()

    yield app

    # Clean up
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client for making requests."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create database session for tests."""
    with app.app_context():
        yield db.session


@pytest.fixture
def admin_headers(app):
    """Headers carrying the administrator token."""
    return {'Authorization': f"Bearer {app.config['ADMIN_API_TOKEN']}"}


@pytest.fixture
def child(db_session):
    """Create a child with an empty balance."""
    child = Child(name='Alice', points=0)
    db_session.add(child)
    db_session.commit()
    return child


@pytest.fixture
def child_2(db_session):
    """Create a second child."""
    child = Child(name='Bob', points=0)
    db_session.add(child)
    db_session.commit()
    return child


@pytest.fixture
def child_headers(child):
    """Headers identifying the first child."""
    return {'X-Child-Id': str(child.id)}


@pytest.fixture
def daily_task(db_session):
    """A daily chore worth 10 points that needs approval."""
    task = Task(
        title='Feed the cat',
        recurrence='daily',
        default_points=10,
        requires_approval=True
    )
    db_session.add(task)
    db_session.commit()
    return task


@pytest.fixture
def auto_task(db_session):
    """A daily chore worth 5 points approved on submission."""
    task = Task(
        title='Make bed',
        recurrence='daily',
        default_points=5,
        requires_approval=False
    )
    db_session.add(task)
    db_session.commit()
    return task


@pytest.fixture
def once_task(db_session):
    """A one-off chore worth 25 points."""
    task = Task(
        title='Sort old toys',
        recurrence='once',
        default_points=25,
        requires_approval=True
    )
    db_session.add(task)
    db_session.commit()
    return task


def _assign(db_session, child, task):
    assignment = Assignment(
        child_id=child.id,
        task_id=task.id,
        next_due_at=local_now(),
        streak_count=0
    )
    db_session.add(assignment)
    db_session.commit()
    return assignment


@pytest.fixture
def daily_assignment(db_session, child, daily_task):
    """The daily chore assigned to the child, due now."""
    return _assign(db_session, child, daily_task)


@pytest.fixture
def auto_assignment(db_session, child, auto_task):
    return _assign(db_session, child, auto_task)


@pytest.fixture
def once_assignment(db_session, child, once_task):
    return _assign(db_session, child, once_task)


@pytest.fixture
def quest(db_session):
    """An active quest with two tasks worth 10 and 20 points."""
    quest = Quest(title='Garden helper', target_reward='Garden centre trip', is_active=True)
    db_session.add(quest)
    db_session.flush()

    db_session.add_all([
        QuestTask(quest_id=quest.id, title='Rake the leaves', points=10, order_index=1),
        QuestTask(quest_id=quest.id, title='Plant the seeds', points=20, order_index=2),
    ])
    db_session.commit()
    return quest


@pytest.fixture
def reward(db_session):
    """An active reward costing 50 points."""
    reward = Reward(title='Pick dinner menu', cost_points=50, is_active=True)
    db_session.add(reward)
    db_session.commit()
    return reward


@pytest.fixture
def fund():
    """Credit a child's balance through the ledger."""
    def _fund(child_id, points, reason='Test credit'):
        balance = LedgerService.apply_delta(child_id, points, reason)
        db.session.commit()
        return balance
    return _fund
