"""
Slot Generator.

Expands a doctor's recurring weekly hours into concrete bookable
instants over a bounded horizon. Pure: no I/O, no clock reads.
"""

import math
from datetime import date, datetime, timedelta, timezone, tzinfo

from app.core.scheduling.types import Doctor


def js_weekday(day: date) -> int:
    """Weekday numbered from Sunday (0) to Saturday (6)."""
    return day.isoweekday() % 7


def ceil_to_step(moment: datetime, step_minutes: int) -> datetime:
    """Round up to the next step boundary of the wall clock, dropping seconds."""
    midnight = moment.replace(hour=0, minute=0, second=0, microsecond=0)
    elapsed = moment.replace(tzinfo=None) - midnight.replace(tzinfo=None)
    steps = math.ceil(elapsed.total_seconds() / (step_minutes * 60))
    return midnight + timedelta(minutes=steps * step_minutes)


def generate_slots(
    doctor: Doctor,
    now: datetime,
    horizon_days: int = 30,
    step_minutes: int = 30,
    tz: tzinfo = timezone.utc,
) -> list[datetime]:
    """Generate the doctor's candidate slots.

    Args:
        doctor: Doctor with weekly availability windows
        now: Current instant (timezone-aware)
        horizon_days: How many calendar days ahead to cover
        step_minutes: Slot granularity
        tz: Zone the weekly windows are expressed in

    Returns:
        Aware UTC datetimes in ascending order. Every slot is strictly
        after ``now`` and no later than ``now + horizon_days``.
    """
    if now.tzinfo is None:
        raise ValueError("now must be timezone-aware")

    local_now = now.astimezone(tz)
    horizon_end = now + timedelta(days=horizon_days)
    step = timedelta(minutes=step_minutes)
    slots: list[datetime] = []

    for offset in range(horizon_days + 1):
        day = local_now.date() + timedelta(days=offset)
        weekday = js_weekday(day)

        for window in doctor.hours:
            if window.weekday != weekday:
                continue

            # Wall-clock arithmetic, then attach the zone per instant
            current = datetime.combine(day, window.start)
            limit = datetime.combine(day, window.end)

            if current.replace(tzinfo=tz) < local_now:
                current = ceil_to_step(local_now, step_minutes).replace(tzinfo=None)

            while current <= limit:
                instant = current.replace(tzinfo=tz).astimezone(timezone.utc)
                if now < instant <= horizon_end:
                    slots.append(instant)
                current += step

    slots.sort()
    return slots
