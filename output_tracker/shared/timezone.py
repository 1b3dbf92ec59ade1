"""
Centralized timezone management for the plant's local time.
All "today" lookups should use this module for consistency.
"""

from datetime import date, datetime
from zoneinfo import ZoneInfo

from output_tracker.core.setting import config

PLANT_TZ = ZoneInfo(config.TIMEZONE)


def get_plant_now() -> datetime:
    """
    Get current datetime in the plant timezone.

    Returns:
        datetime: Current time in the configured TIMEZONE (timezone-aware)
    """
    return datetime.now(tz=PLANT_TZ)


def get_plant_today() -> date:
    """
    Get the current production date in the plant timezone.

    The "current grid" is always the grid for this date, regardless of
    where the server process itself runs.
    """
    return get_plant_now().date()
