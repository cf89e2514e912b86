"""
Next-occurrence arithmetic for recurring calendar reminders.

Everything here is pure: results depend only on the arguments, so callers
pass the run's ``now`` explicitly.
"""
from __future__ import annotations

from datetime import datetime
from typing import Optional, Union

from dateutil.relativedelta import relativedelta

from .models import LeadTime, Recurrence

# relativedelta(months=1) clamps to the last valid day (Jan 31 -> Feb 28/29)
_PERIODS = {
    Recurrence.DAILY: relativedelta(days=1),
    Recurrence.WEEKLY: relativedelta(weeks=1),
    Recurrence.MONTHLY: relativedelta(months=1),
}


# PUBLIC_INTERFACE
def initial_trigger(anchor_time: datetime, lead_time: Union[LeadTime, str]) -> datetime:
    """
    Return the first notification time of a newly created item: the anchor
    minus its lead time. Items must be stored with this value to be picked up.
    """
    return anchor_time - LeadTime(lead_time).offset


# PUBLIC_INTERFACE
def compute_next_trigger(
    anchor_time: datetime,
    recurrence: Union[Recurrence, str],
    lead_time: Union[LeadTime, str],
    now: datetime,
) -> Optional[datetime]:
    """
    Compute the next notification time of a recurring event.

    The anchor is advanced by exactly one period (1 day, 7 days or 1 calendar
    month, time of day preserved) and the lead offset is subtracted. There is
    no catch-up loop: when that single step still lands at or before ``now``
    the result is None and the caller finalizes the item.

    Args:
        anchor_time: event start the recurrence is relative to.
        recurrence: daily, weekly or monthly.
        lead_time: none, 15m, 1h or 1d.
        now: reference time of the current run.

    Returns:
        A timestamp strictly after ``now``, or None.

    Raises:
        ValueError: for recurrence 'none' or unknown values.
    """
    period = _PERIODS.get(Recurrence(recurrence))
    if period is None:
        raise ValueError("compute_next_trigger requires a daily, weekly or monthly recurrence")

    candidate = anchor_time + period - LeadTime(lead_time).offset
    if candidate <= now:
        return None
    return candidate
