"""Recurrence and streak derivation for habits.

Everything here is a pure function of its arguments: habits carry an ``id``
and a ``frequency`` (weekday names), completions carry a ``habit_id`` and a
``date``. Records with malformed dates or unknown weekday names never match;
nothing in this module raises for bad data.

Dates are compared as calendar dates in the deployment's local calendar, so
callers pass naive local values (the API stores completions that way). A
timezone-aware datetime or an ISO string with an offset is reduced to the
date in its own offset; convert it to local time first if that differs.
"""
import logging
from collections import namedtuple
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Iterable, Iterator, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

logger = logging.getLogger(__name__)

WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")

# Upper bound on counted due days, so the backward walk always terminates.
STREAK_CEILING = 365

DateRange = namedtuple("DateRange", ["start", "end"])


def local_today(tz_name: Optional[str] = None) -> date:
    """Return today's date in ``tz_name``, or in the host's calendar when unset."""
    if tz_name:
        try:
            return datetime.now(ZoneInfo(tz_name)).date()
        except (ZoneInfoNotFoundError, ValueError):
            logger.error(f"Unknown timezone {tz_name!r}, using host local date")
    return date.today()


def to_date(value) -> Optional[date]:
    """Reduce a date, datetime or ISO-8601 string to its calendar date.

    Returns None for anything that cannot be read as a date.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            return datetime.fromisoformat(text).date()
        except ValueError:
            logger.debug(f"Unparseable date: {value!r}")
    return None


def weekday_name(day: date) -> str:
    return WEEKDAYS[day.weekday()]


def scheduled_days(habit) -> frozenset:
    """The recognised weekday names in a habit's frequency."""
    frequency = getattr(habit, "frequency", None)
    if isinstance(frequency, str):
        frequency = [frequency]
    try:
        return frozenset(name for name in frequency if name in WEEKDAYS)
    except TypeError:
        return frozenset()


def completed_days(habit, completions: Iterable) -> set:
    """Calendar dates on which ``habit`` has at least one completion."""
    days = set()
    for completion in completions:
        if getattr(completion, "habit_id", None) != habit.id:
            continue
        day = to_date(getattr(completion, "date", None))
        if day is not None:
            days.add(day)
    return days


def iter_days(start: date, end: date) -> Iterator[date]:
    """Yield every date from ``start`` to ``end`` inclusive."""
    day = start
    while day <= end:
        yield day
        if day == date.max:
            return
        day += timedelta(days=1)


def week_range(day: date, week_starts_on: int = 1) -> DateRange:
    """The seven-day window containing ``day``; ``week_starts_on`` is 0 for Sunday."""
    offset = ((day.weekday() + 1) % 7 - week_starts_on) % 7
    start = day - timedelta(days=offset)
    return DateRange(start, start + timedelta(days=6))


def is_due_on(habit, day) -> bool:
    day = to_date(day)
    if day is None:
        return False
    return weekday_name(day) in scheduled_days(habit)


def is_completed_on(habit, completions: Iterable, day) -> bool:
    day = to_date(day)
    if day is None:
        return False
    return day in completed_days(habit, completions)


def current_streak(habit, completions: Iterable, as_of) -> int:
    """Count consecutive completed due days, walking backward from ``as_of``.

    Days the habit is not scheduled on are skipped without breaking the
    streak, so an unscheduled ``as_of`` never resets it. A scheduled day
    without a completion ends the walk; when that day is ``as_of`` itself the
    streak is 0.
    """
    day = to_date(as_of)
    days = scheduled_days(habit)
    if day is None or not days:
        return 0
    done = completed_days(habit, completions)
    if not done:
        return 0

    streak = 0
    while streak < STREAK_CEILING:
        if weekday_name(day) in days:
            if day not in done:
                break
            streak += 1
        if day == date.min:
            break
        day -= timedelta(days=1)
    return streak


def completion_rate(habits: Iterable, completions: Iterable, date_range) -> int:
    """Percentage (0-100) of scheduled habit-days in ``date_range`` that were completed."""
    start, end = to_date(date_range[0]), to_date(date_range[1])
    if start is None or end is None or start > end:
        return 0

    done_by_habit = {}
    for completion in completions:
        day = to_date(getattr(completion, "date", None))
        if day is not None:
            done_by_habit.setdefault(getattr(completion, "habit_id", None), set()).add(day)

    possible = 0
    completed = 0
    schedule = [(habit, scheduled_days(habit)) for habit in habits]
    for day in iter_days(start, end):
        name = weekday_name(day)
        for habit, days in schedule:
            if name not in days:
                continue
            possible += 1
            if day in done_by_habit.get(habit.id, ()):
                completed += 1

    if possible == 0:
        return 0
    # round half up
    return (200 * completed + possible) // (2 * possible)


@dataclass
class HabitStatus:
    """A habit together with the values derived for one day."""

    habit: object
    completed: bool
    streak: int

    def to_dict(self):
        data = self.habit.to_dict()
        data["completed"] = self.completed
        data["streak"] = self.streak
        return data


def habit_status(habit, completions: Iterable, day) -> HabitStatus:
    completions = list(completions)
    return HabitStatus(
        habit=habit,
        completed=is_completed_on(habit, completions, day),
        streak=current_streak(habit, completions, day),
    )
