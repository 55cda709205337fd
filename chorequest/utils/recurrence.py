"""
Recurrence utilities for chore due dates.

A task's recurrence policy is one of 'once', 'daily' or 'weekly'. Every
occurrence starts at a fixed reset hour (07:00 by default).
"""

from datetime import datetime
from typing import Optional
from dateutil.relativedelta import relativedelta, MO

RECURRENCE_POLICIES = ('once', 'daily', 'weekly')
RECURRING_POLICIES = ('daily', 'weekly')
DEFAULT_RESET_HOUR = 7


def is_recurring(policy: Optional[str]) -> bool:
    """Return True if the policy repeats after completion."""
    return policy in RECURRING_POLICIES


def _at_reset_hour(moment: datetime, reset_hour: int) -> datetime:
    return moment.replace(hour=reset_hour, minute=0, second=0, microsecond=0)


def compute_next_due(policy: Optional[str], now: datetime,
                     reset_hour: int = DEFAULT_RESET_HOUR) -> datetime:
    """
    Calculate when a task becomes due again.

    Args:
        policy: Recurrence policy ('once', 'daily', 'weekly' or anything else)
        now: Reference time (naive local time)
        reset_hour: Hour of day at which occurrences start

    Returns:
        The next due timestamp. Always later than ``now``.

    'once' and unknown policies get a "come back tomorrow" placeholder, since
    an assignment always carries a due timestamp.
    """
    if policy == 'weekly':
        # Next Monday strictly after today (a Monday rolls to the following week)
        return _at_reset_hour(now + relativedelta(days=+1, weekday=MO(+1)), reset_hour)

    # 'daily', 'once' and unknown policies
    return _at_reset_hour(now + relativedelta(days=+1), reset_hour)


def is_due(next_due_at: Optional[datetime], now: datetime) -> bool:
    """Check whether an assignment is due at ``now``."""
    if next_due_at is None:
        return True
    return next_due_at <= now


def is_missed(policy: Optional[str], next_due_at: Optional[datetime], now: datetime,
              reset_hour: int = DEFAULT_RESET_HOUR) -> bool:
    """
    Check whether a recurring occurrence was skipped.

    An occurrence is missed once the occurrence after it has started: a daily
    chore due Tuesday 07:00 is missed from Wednesday 07:00 on.
    """
    if not is_recurring(policy) or next_due_at is None:
        return False
    following = compute_next_due(policy, next_due_at, reset_hour)
    return now >= following
