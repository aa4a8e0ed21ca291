"""
Reservation numbering

Numbers look like RES-YYMMDD-NNNN: the creation day plus a per-day
sequence drawn from an atomic counter. NNNN is zero padded to four
digits and simply grows wider after 9999.
"""

import re
from datetime import date

NUMBER_PREFIX = 'RES'
NUMBER_RE = re.compile(r'^RES-(\d{6})-(\d{4,})$')


def format_number(day: date, sequence: int) -> str:
    if sequence < 1:
        raise ValueError("Sequence numbers start at 1")
    return f"{NUMBER_PREFIX}-{day:%y%m%d}-{sequence:04d}"


def parse_number(number: str) -> tuple[str, int]:
    """Split a reservation number into its day stamp and sequence"""
    match = NUMBER_RE.match(number)
    if not match:
        raise ValueError(f"Not a reservation number: {number!r}")
    return match.group(1), int(match.group(2))


class ReservationNumberGenerator:
    """Draws the next number of a day from a ReservationCounter"""

    def __init__(self, counter):
        self.counter = counter

    def generate(self, creation_date: date) -> str:
        return format_number(creation_date, self.counter.next_value(creation_date))
