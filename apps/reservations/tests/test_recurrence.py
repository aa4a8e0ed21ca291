from datetime import date, datetime, timezone

from django.test import SimpleTestCase

from apps.reservations.domain.recurrence import RecurrencePattern, expand


def at(month: int, day: int, hour: int = 18) -> datetime:
    return datetime(2030, month, day, hour, tzinfo=timezone.utc)


class RecurrenceExpansionTests(SimpleTestCase):
    def test_daily_includes_end_date(self) -> None:
        occurrences = list(expand(RecurrencePattern.DAILY, at(1, 1), at(1, 4)))
        self.assertEqual(occurrences, [at(1, 1), at(1, 2), at(1, 3), at(1, 4)])

    def test_weekly_keeps_time_of_day(self) -> None:
        occurrences = list(expand(RecurrencePattern.WEEKLY, at(1, 1), at(1, 29)))
        self.assertEqual(len(occurrences), 5)
        self.assertTrue(all(o.hour == 18 and o.tzinfo is not None for o in occurrences))
        self.assertTrue(all(o.weekday() == at(1, 1).weekday() for o in occurrences))

    def test_monthly_skips_months_without_the_day(self) -> None:
        occurrences = list(expand(RecurrencePattern.MONTHLY, at(1, 31), at(5, 31)))
        self.assertEqual([o.month for o in occurrences], [1, 3, 5])

    def test_exceptions_match_calendar_days(self) -> None:
        occurrences = list(expand(
            RecurrencePattern.DAILY,
            at(1, 1),
            at(1, 5),
            exceptions=[date(2030, 1, 2), at(1, 4, hour=7)],
        ))
        self.assertEqual(occurrences, [at(1, 1), at(1, 3), at(1, 5)])

    def test_custom_uses_explicit_dates_inside_range(self) -> None:
        occurrences = list(expand(
            RecurrencePattern.CUSTOM,
            at(1, 1),
            at(1, 31),
            dates=[at(1, 20), at(1, 3), at(2, 2), at(1, 3)],
        ))
        self.assertEqual(occurrences, [at(1, 3), at(1, 20)])

    def test_plain_dates_yield_dates(self) -> None:
        occurrences = list(expand(RecurrencePattern.DAILY, date(2030, 1, 1), date(2030, 1, 2)))
        self.assertEqual(occurrences, [date(2030, 1, 1), date(2030, 1, 2)])

    def test_iteration_restarts_from_the_beginning(self) -> None:
        occurrences = expand(RecurrencePattern.DAILY, at(1, 1), at(1, 3))
        self.assertEqual(list(occurrences), list(occurrences))
        iterator = iter(occurrences)
        next(iterator)
        self.assertEqual(next(iter(occurrences)), at(1, 1))

    def test_end_before_start_is_rejected(self) -> None:
        with self.assertRaises(ValueError):
            expand(RecurrencePattern.DAILY, at(2, 1), at(1, 1))

    def test_accepts_pattern_values(self) -> None:
        occurrences = list(expand("daily", at(1, 1), at(1, 2)))
        self.assertEqual(len(occurrences), 2)
