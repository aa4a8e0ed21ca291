"""
Request validation

validate_request is pure: it inspects a creation command and returns
every field problem it finds, keyed by field name. Handlers call
ensure_valid before touching any store, so a rejected request never
leaves partial state behind.
"""

import re
from datetime import datetime
from enum import Enum
from typing import Any, Iterable

from apps.resources.domain import validate_scalar_map

from ..domain.entities import CancellationPolicy, PaymentMethod, ReservationSource
from ..domain.errors import ValidationError

EMAIL_RE = re.compile(r'^[^@\s]+@[^@\s]+\.[^@\s]+$')

CUSTOMER_FIELDS = ('first_name', 'last_name', 'email', 'phone')


def _is_aware(value: datetime) -> bool:
    return value.tzinfo is not None and value.utcoffset() is not None


def _check_datetime(errors: dict, field_name: str, value: Any) -> bool:
    if not isinstance(value, datetime):
        errors.setdefault(field_name, []).append('Must be a datetime')
        return False
    if not _is_aware(value):
        errors.setdefault(field_name, []).append('Must include a timezone')
        return False
    return True


def _check_choice(errors: dict, field_name: str, value: Any, enum_cls: type[Enum], required: bool = True):
    if value is None or value == '':
        if required:
            errors.setdefault(field_name, []).append('This field is required')
        return
    allowed = [member.value for member in enum_cls]
    if value not in allowed and not isinstance(value, enum_cls):
        errors.setdefault(field_name, []).append(
            f"'{value}' is not one of: {', '.join(allowed)}"
        )


def _check_slots(errors: dict, slots: Iterable[Any], start: datetime | None, end: datetime | None):
    checked = []
    for index, slot in enumerate(slots):
        key = f'time_slots[{index}]'
        if not (_check_datetime(errors, key, slot.start_time) and _check_datetime(errors, key, slot.end_time)):
            continue
        if slot.start_time >= slot.end_time:
            errors.setdefault(key, []).append('Slot start time must be before its end time')
            continue
        if start is not None and end is not None and (slot.start_time < start or slot.end_time > end):
            errors.setdefault(key, []).append('Slot must lie inside the reservation period')
        if slot.special_price is not None and slot.special_price < 0:
            errors.setdefault(key, []).append('Special price must not be negative')
        checked.append((slot.start_time, slot.end_time, key))

    checked.sort()
    for (_, previous_end, _), (next_start, _, key) in zip(checked, checked[1:]):
        if next_start < previous_end:
            errors.setdefault(key, []).append('Slots must not overlap each other')


def validate_request(command) -> dict[str, list[str]]:
    """
    Collect field problems of a CreateReservationCommand

    Returns an empty dict when the request is acceptable.
    """
    errors: dict[str, list[str]] = {}

    for name in CUSTOMER_FIELDS:
        value = getattr(command, name, None)
        if not isinstance(value, str) or not value.strip():
            errors.setdefault(name, []).append('This field is required')
    email = getattr(command, 'email', None)
    if isinstance(email, str) and email.strip() and not EMAIL_RE.match(email.strip()):
        errors.setdefault('email', []).append('Enter a valid email address')

    party_size = command.party_size
    if isinstance(party_size, bool) or not isinstance(party_size, int) or party_size < 1:
        errors.setdefault('party_size', []).append('Party size must be a whole number of at least 1')

    start_ok = _check_datetime(errors, 'start', command.start)
    end_ok = _check_datetime(errors, 'end', command.end)
    period_ok = start_ok and end_ok
    if period_ok and command.start >= command.end:
        errors.setdefault('end', []).append('End must be after start')
        period_ok = False

    _check_slots(
        errors,
        command.time_slots,
        command.start if period_ok else None,
        command.end if period_ok else None,
    )

    _check_choice(errors, 'cancellation_policy', command.cancellation_policy, CancellationPolicy)
    _check_choice(errors, 'source', command.source, ReservationSource)
    _check_choice(errors, 'payment_method', command.payment_method, PaymentMethod, required=False)

    if command.deposit_amount is not None and command.deposit_amount < 0:
        errors.setdefault('deposit_amount', []).append('Deposit must not be negative')

    for problem in validate_scalar_map(command.metadata, 'metadata'):
        errors.setdefault('metadata', []).append(problem)

    return errors


def ensure_valid(command):
    """Raise ValidationError carrying every problem found"""
    errors = validate_request(command)
    if errors:
        raise ValidationError(errors)
