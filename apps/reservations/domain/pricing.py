"""
Pricing

A reservation's total is either the sum of its explicitly selected slots
or the resource's base price scaled by the pricing unit. Integer
timedelta arithmetic keeps hour/day rounding exact.
"""

from __future__ import annotations

from datetime import timedelta
from typing import TYPE_CHECKING

from apps.resources.domain import PriceUnit
from shared.domain.value_objects import Money

if TYPE_CHECKING:  # pragma: no cover
    from .entities import Reservation

HOUR = timedelta(hours=1)
DAY = timedelta(days=1)


def _ceil_units(duration: timedelta, unit: timedelta) -> int:
    whole, remainder = divmod(duration, unit)
    return whole + (1 if remainder else 0)


def _floor_units(duration: timedelta, unit: timedelta) -> int:
    return duration // unit


def calculate_price(reservation: "Reservation") -> Money:
    """Compute the total without touching the reservation."""
    if reservation.time_slots:
        slots = reservation.time_slots
        total = Money.zero(slots[0].price.currency)
        for slot in slots:
            total = total + slot.effective_price
        return total

    resource = reservation.resource_data
    base_price = resource.base_price
    duration = reservation.period.duration

    if resource.price_unit is PriceUnit.HOUR:
        return base_price * _ceil_units(duration, HOUR)
    if resource.price_unit is PriceUnit.DAY:
        return base_price * _ceil_units(duration, DAY)
    if resource.price_unit is PriceUnit.NIGHT:
        return base_price * _floor_units(duration, DAY)
    if resource.price_unit is PriceUnit.PERSON:
        return base_price * reservation.party_size
    # session and flat
    return base_price
