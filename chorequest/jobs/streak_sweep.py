"""
Missed streak sweep job.
"""

import logging
from datetime import datetime
from typing import Optional

logger = logging.getLogger(__name__)


def sweep_missed_streaks(now: Optional[datetime] = None) -> int:
    """
    Reset the streak of every assignment whose occurrence was missed.

    Only acts under the 'reset_on_miss' streak policy. Approval already
    restarts a missed streak at 1; the sweep makes the reset visible before
    the child's next completion.

    Returns:
        Number of streaks reset
    """
    # Import inside function to avoid circular imports and to get app context
    from flask import current_app
    from chorequest.models import Assignment, Task
    from chorequest.utils.db import atomic
    from chorequest.utils.recurrence import RECURRING_POLICIES, is_missed
    from chorequest.utils.timezone import local_now

    policy = current_app.config.get('STREAK_POLICY', 'never_reset')
    if policy != 'reset_on_miss':
        logger.info(f"Streak policy is '{policy}', nothing to sweep")
        return 0

    now = now or local_now()
    reset_hour = current_app.config.get('RESET_HOUR', 7)
    reset_count = 0

    candidates = Assignment.query.join(Task).filter(
        Assignment.streak_count > 0,
        Assignment.next_due_at < now,
        Task.recurrence.in_(RECURRING_POLICIES)
    ).all()

    with atomic('sweep missed streaks'):
        for assignment in candidates:
            if is_missed(assignment.task.recurrence, assignment.next_due_at, now, reset_hour):
                logger.debug(
                    f"Resetting streak {assignment.streak_count} of assignment {assignment.id} "
                    f"(due {assignment.next_due_at})"
                )
                assignment.streak_count = 0
                reset_count += 1

    if reset_count > 0:
        logger.info(f"Reset {reset_count} missed streaks")

    return reset_count
