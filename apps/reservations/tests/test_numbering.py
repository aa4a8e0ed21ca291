from concurrent.futures import ThreadPoolExecutor
from datetime import date

from django.test import SimpleTestCase

from apps.reservations.application.numbering import (
    ReservationNumberGenerator,
    format_number,
    parse_number,
)
from apps.reservations.repositories import InMemoryReservationCounter


class ReservationNumberTests(SimpleTestCase):
    def test_format(self) -> None:
        self.assertEqual(format_number(date(2024, 3, 5), 7), "RES-240305-0007")

    def test_sequence_grows_past_four_digits(self) -> None:
        number = format_number(date(2024, 3, 5), 10000)
        self.assertEqual(number, "RES-240305-10000")
        self.assertEqual(parse_number(number), ("240305", 10000))

    def test_parse_rejects_other_strings(self) -> None:
        for value in ("RES-2403-0001", "BK-240305-0001", "RES-240305-01"):
            with self.subTest(value=value):
                with self.assertRaises(ValueError):
                    parse_number(value)

    def test_sequence_restarts_each_day(self) -> None:
        generator = ReservationNumberGenerator(InMemoryReservationCounter())
        self.assertEqual(generator.generate(date(2024, 3, 5)), "RES-240305-0001")
        self.assertEqual(generator.generate(date(2024, 3, 5)), "RES-240305-0002")
        self.assertEqual(generator.generate(date(2024, 3, 6)), "RES-240306-0001")

    def test_concurrent_generation_is_unique(self) -> None:
        generator = ReservationNumberGenerator(InMemoryReservationCounter())
        day = date(2024, 3, 5)

        with ThreadPoolExecutor(max_workers=16) as pool:
            numbers = list(pool.map(lambda _: generator.generate(day), range(1000)))

        self.assertEqual(len(set(numbers)), 1000)
        self.assertEqual(sorted(parse_number(n)[1] for n in numbers), list(range(1, 1001)))
