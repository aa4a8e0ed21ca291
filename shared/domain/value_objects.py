"""
Common Value Objects

Value objects used across the resource and reservation domains:
- Money: Monetary amount with currency
- TimeRange: Half-open interval of instants [start, end)
"""

import re
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal

from shared.domain.base import ValueObject

_CURRENCY_RE = re.compile(r'^[A-Z]{3}$')

DEFAULT_CURRENCY = 'EUR'


@dataclass(frozen=True)
class Money(ValueObject):
    """
    Money value object

    Represents a non-negative monetary amount with an ISO 4217 currency code.
    Immutable and supports the arithmetic pricing needs.
    """
    amount: Decimal
    currency: str = DEFAULT_CURRENCY

    def __post_init__(self):
        if not isinstance(self.amount, Decimal):
            object.__setattr__(self, 'amount', Decimal(str(self.amount)))
        if self.amount < 0:
            raise ValueError("Amount cannot be negative")
        if not self.currency or not _CURRENCY_RE.match(self.currency):
            raise ValueError(f"Unsupported currency: {self.currency!r}")

    @classmethod
    def zero(cls, currency: str = DEFAULT_CURRENCY) -> 'Money':
        return cls(Decimal('0'), currency)

    def __add__(self, other: 'Money') -> 'Money':
        """Add two money objects"""
        if not isinstance(other, Money):
            raise TypeError("Can only add Money to Money")
        if self.currency != other.currency:
            raise ValueError(f"Cannot add different currencies: {self.currency} and {other.currency}")
        return Money(self.amount + other.amount, self.currency)

    def __sub__(self, other: 'Money') -> 'Money':
        """Subtract two money objects"""
        if not isinstance(other, Money):
            raise TypeError("Can only subtract Money from Money")
        if self.currency != other.currency:
            raise ValueError(f"Cannot subtract different currencies: {self.currency} and {other.currency}")
        return Money(self.amount - other.amount, self.currency)

    def __mul__(self, factor) -> 'Money':
        """Multiply money by a factor"""
        if isinstance(factor, bool) or not isinstance(factor, (int, float, Decimal)):
            raise TypeError("Can only multiply Money by number")
        return Money(self.amount * Decimal(str(factor)), self.currency)

    __rmul__ = __mul__

    def __ge__(self, other: 'Money') -> bool:
        if not isinstance(other, Money) or self.currency != other.currency:
            return NotImplemented
        return self.amount >= other.amount

    def __lt__(self, other: 'Money') -> bool:
        if not isinstance(other, Money) or self.currency != other.currency:
            return NotImplemented
        return self.amount < other.amount

    def __str__(self):
        return f"{self.amount:,.2f} {self.currency}"

    def __repr__(self):
        return f"Money({self.amount}, '{self.currency}')"


@dataclass(frozen=True)
class TimeRange(ValueObject):
    """
    Time range value object

    Represents [start, end): start is inclusive, end is exclusive.
    Used for reservation periods, availability windows and slots.
    """
    start: datetime
    end: datetime

    def __post_init__(self):
        if self.start >= self.end:
            raise ValueError(f"Start ({self.start.isoformat()}) must be before end ({self.end.isoformat()})")

    def overlaps_with(self, other: 'TimeRange') -> bool:
        """
        Check if this range overlaps with another

        Overlap formula: start1 < end2 AND end1 > start2.
        Adjacent ranges ([9,10) and [10,11)) do not overlap.
        """
        if not isinstance(other, TimeRange):
            raise TypeError("Can only check overlap with another TimeRange")
        return self.start < other.end and self.end > other.start

    def contains(self, instant: datetime) -> bool:
        return self.start <= instant < self.end

    def encloses(self, other: 'TimeRange') -> bool:
        return self.start <= other.start and other.end <= self.end

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    def shifted(self, delta: timedelta) -> 'TimeRange':
        return TimeRange(self.start + delta, self.end + delta)

    def __str__(self):
        return f"{self.start.isoformat()} - {self.end.isoformat()}"

    def __repr__(self):
        return f"TimeRange({self.start.isoformat()}, {self.end.isoformat()})"
