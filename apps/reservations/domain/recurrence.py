"""
Recurrence expansion

Turns a recurrence pattern into concrete occurrence start times, using
python-dateutil's rrule for the calendar arithmetic. The result is a
finite, restartable iterable: every iter() starts from the first
occurrence again, and nothing is computed until it is consumed.
"""

from datetime import date, datetime, time
from enum import Enum
from typing import Iterable, Iterator

from dateutil import rrule


class RecurrencePattern(Enum):
    DAILY = 'daily'
    WEEKLY = 'weekly'
    MONTHLY = 'monthly'
    CUSTOM = 'custom'


_FREQUENCIES = {
    RecurrencePattern.DAILY: rrule.DAILY,
    RecurrencePattern.WEEKLY: rrule.WEEKLY,
    RecurrencePattern.MONTHLY: rrule.MONTHLY,
}


def _calendar_day(value: date) -> date:
    return value.date() if isinstance(value, datetime) else value


def _as_datetime(value: date) -> datetime:
    return value if isinstance(value, datetime) else datetime.combine(value, time())


class Occurrences:
    """
    Lazy occurrences of a pattern between start and end (both inclusive).

    Monthly recurrences follow rrule: months without the anchor day
    (e.g. the 31st) are skipped rather than clamped. An occurrence whose
    calendar day appears in exceptions is skipped.
    """

    def __init__(
        self,
        pattern: RecurrencePattern,
        start: date,
        end: date,
        exceptions: Iterable[date] = (),
        dates: Iterable[date] = (),
    ) -> None:
        if end < start:
            raise ValueError("Recurrence end must not be before its start")
        self.pattern = RecurrencePattern(pattern)
        self.start = start
        self.end = end
        self._excluded = frozenset(_calendar_day(value) for value in exceptions)
        self._dates = tuple(dates)
        self._as_dates = not isinstance(start, datetime)

    def _source(self) -> Iterator[datetime]:
        start = _as_datetime(self.start)
        end = _as_datetime(self.end)
        if self.pattern is RecurrencePattern.CUSTOM:
            explicit = {_as_datetime(value) for value in self._dates}
            return iter(sorted(value for value in explicit if start <= value <= end))
        return iter(rrule.rrule(_FREQUENCIES[self.pattern], dtstart=start, until=end))

    def __iter__(self) -> Iterator[date]:
        for occurrence in self._source():
            if occurrence.date() in self._excluded:
                continue
            yield occurrence.date() if self._as_dates else occurrence

    def __repr__(self) -> str:
        return f"Occurrences({self.pattern.value}, {self.start} -> {self.end})"


def expand(
    pattern: RecurrencePattern,
    start: date,
    end: date,
    exceptions: Iterable[date] = (),
    dates: Iterable[date] = (),
) -> Occurrences:
    """Expand pattern into occurrences; dates is only used by the custom pattern."""
    return Occurrences(pattern, start, end, exceptions=exceptions, dates=dates)
