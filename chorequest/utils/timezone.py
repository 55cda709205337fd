"""
Timezone utilities for ChoreQuest.

All timestamps are stored as naive local times for a single-timezone
deployment, using the zone named by the TZ environment variable.
"""

import os
from datetime import date, datetime
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


def get_timezone() -> ZoneInfo:
    """Get the configured timezone from environment.

    Returns:
        ZoneInfo for the configured timezone, defaults to UTC
    """
    tz_name = os.environ.get('TZ', 'UTC')
    try:
        return ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError):
        return ZoneInfo('UTC')


def local_now() -> datetime:
    """Get the current local time as a naive datetime.

    The tzinfo is dropped so values compare and sort consistently with
    what is stored in the database.
    """
    return datetime.now(get_timezone()).replace(tzinfo=None)


def local_today() -> date:
    """Get today's date in the configured timezone."""
    return local_now().date()
