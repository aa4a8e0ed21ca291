"""
Availability calculation

Pure functions over a resource and the reservations that already hold
capacity on it. Intervals are half-open: [s, e) and [rs, re) meet iff
s < re and e > rs, so back-to-back bookings never block each other.

A candidate slot is blocked only when it overlaps existing reservations
AND the party sizes already booked over it leave no room for the
requested party. With capacity 1 that reduces to "any overlap blocks".
"""

from dataclasses import dataclass, field
from datetime import timedelta
from typing import Iterable, Sequence

from apps.resources.domain import Resource
from shared.domain.value_objects import TimeRange

from .entities import Reservation, TimeSlot

DEFAULT_INCREMENT = timedelta(hours=1)
DEFAULT_MAX_SLOTS = 1000


@dataclass
class AvailabilityResult:
    resource: Resource
    is_available: bool
    available_slots: list[TimeSlot] = field(default_factory=list)
    truncated: bool = False


def overlapping(reservations: Iterable[Reservation], window: TimeRange) -> list[Reservation]:
    """
    Capacity-holding reservations overlapping window.

    The three historical conditions (starts inside, ends inside, encloses
    the window) together are exactly the half-open overlap test.
    """
    return [r for r in reservations if r.blocks_capacity and r.period.overlaps_with(window)]


def peak_occupancy(window: TimeRange, reservations: Iterable[Reservation]) -> int:
    """Largest summed party size booked at any instant inside window."""
    changes: list[tuple] = []
    for reservation in reservations:
        if not reservation.period.overlaps_with(window):
            continue
        start = max(reservation.period.start, window.start)
        end = min(reservation.period.end, window.end)
        # At equal instants releases (0) sort before claims (1): half-open ends.
        changes.append((start, 1, reservation.party_size))
        changes.append((end, 0, -reservation.party_size))

    peak = current = 0
    for _, _, delta in sorted(changes, key=lambda change: (change[0], change[1])):
        current += delta
        peak = max(peak, current)
    return peak


def fits(window: TimeRange, reservations: Iterable[Reservation], party_size: int, capacity: int) -> bool:
    """True when party_size more people can hold the whole window."""
    return peak_occupancy(window, reservations) + party_size <= capacity


def generate_slots(
    resource: Resource,
    window: TimeRange,
    reservations: Sequence[Reservation],
    party_size: int = 1,
    increment: timedelta = DEFAULT_INCREMENT,
    max_slots: int = DEFAULT_MAX_SLOTS,
) -> AvailabilityResult:
    """
    Partition window into increments and keep the ones with room left.

    The last increment is clipped to the window end. At most max_slots
    increments are examined; truncated reports that the cap was hit.
    """
    if increment <= timedelta(0):
        raise ValueError("Slot increment must be positive")
    if max_slots < 1:
        raise ValueError("max_slots must be at least 1")

    relevant = overlapping(reservations, window)
    slots: list[TimeSlot] = []
    truncated = False
    examined = 0
    cursor = window.start

    while cursor < window.end:
        if examined >= max_slots:
            truncated = True
            break
        slot_end = min(cursor + increment, window.end)
        candidate = TimeRange(cursor, slot_end)
        booked = peak_occupancy(candidate, relevant)

        if booked + party_size <= resource.capacity:
            slots.append(TimeSlot(
                start_time=candidate.start,
                end_time=candidate.end,
                price=resource.base_price,
                max_capacity=resource.capacity,
                current_bookings=booked,
                is_available=True,
            ))

        cursor = slot_end
        examined += 1

    return AvailabilityResult(
        resource=resource,
        is_available=bool(slots),
        available_slots=slots,
        truncated=truncated,
    )
