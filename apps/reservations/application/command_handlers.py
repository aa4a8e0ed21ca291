"""
Reservation Command Handlers

These are the use cases for the reservation domain.
They orchestrate domain operations within units of work.

Commands:
- CreateReservationCommand: Book a resource for a period
- CreateRecurringReservationCommand: Book every occurrence of a series
- ConfirmReservationCommand: Accept a pending reservation
- CancelReservationCommand: Cancel a pending or confirmed reservation
- CompleteReservationCommand: Close a reservation after it took place
- MarkNoShowCommand: Record that the customer never arrived
- MarkReservationPaidCommand: Record a payment reported by the payment provider
- RecordDepositCommand: Record a paid deposit
- RescheduleReservationCommand: Move a reservation to another period
- MarkNotificationSentCommand: Record delivery of a queued notification
"""

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from decimal import Decimal, InvalidOperation
from itertools import islice
from typing import Any, Callable, NamedTuple
from uuid import UUID
import logging

from django.utils import timezone

from apps.resources.domain import Resource
from shared.domain.value_objects import Money, TimeRange

from ..domain.availability import fits, peak_occupancy
from ..domain.entities import (
    CancellationPolicy,
    Customer,
    Deposit,
    PaymentMethod,
    Recurrence,
    Reservation,
    ReservationSource,
    TimeSlot,
)
from ..domain.errors import ConflictError, InvalidRangeError, ReservationNotFoundError, ValidationError
from ..domain.recurrence import RecurrencePattern, expand
from ..repositories import StoreConflictError
from .numbering import ReservationNumberGenerator
from .queries import ensure_bookable
from .validation import ensure_valid

logger = logging.getLogger(__name__)

DEFAULT_MAX_CONFLICT_RETRIES = 3
DEFAULT_MAX_OCCURRENCES = 366


# ===== Commands =====

@dataclass
class SlotSelection:
    """An explicitly chosen slot; special_price overrides the base price"""
    start_time: datetime
    end_time: datetime
    special_price: Decimal | None = None


@dataclass
class CreateReservationCommand:
    """
    Command to create a new reservation

    This is the primary entry point for booking a resource.
    """
    resource_id: UUID
    start: datetime
    end: datetime
    first_name: str
    last_name: str
    email: str
    phone: str
    customer_notes: str = ''
    party_size: int = 1
    time_slots: list[SlotSelection] = field(default_factory=list)
    special_requests: str = ''
    internal_notes: str = ''
    cancellation_policy: str = CancellationPolicy.MODERATE.value
    source: str = ReservationSource.WEBSITE.value
    payment_method: str | None = None
    deposit_required: bool = False
    deposit_amount: Decimal | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass
class CreateRecurringReservationCommand:
    """
    Command to book a whole series

    reservation describes the first occurrence; every other occurrence
    keeps its duration. until is inclusive.
    """
    reservation: CreateReservationCommand
    pattern: str
    until: datetime
    exceptions: list[date] = field(default_factory=list)
    dates: list[datetime] = field(default_factory=list)


@dataclass
class ConfirmReservationCommand:
    reservation_id: UUID


@dataclass
class CancelReservationCommand:
    reservation_id: UUID
    reason: str | None = None


@dataclass
class CompleteReservationCommand:
    reservation_id: UUID


@dataclass
class MarkNoShowCommand:
    reservation_id: UUID


@dataclass
class MarkReservationPaidCommand:
    """Payment facts reported by the payment provider (id, amount, currency, provider, method)"""
    reservation_id: UUID
    details: dict[str, Any] = field(default_factory=dict)


@dataclass
class RecordDepositCommand:
    reservation_id: UUID
    amount: Decimal
    currency: str | None = None


@dataclass
class RescheduleReservationCommand:
    reservation_id: UUID
    start: datetime
    end: datetime


@dataclass
class MarkNotificationSentCommand:
    reservation_id: UUID
    notification_id: UUID
    sent_at: datetime | None = None


# ===== Helpers =====

class _Claim(NamedTuple):
    """Capacity claimed by a not yet stored occurrence"""
    period: TimeRange
    party_size: int


def run_with_conflict_retries(attempt: Callable[[], Any], retries: int, description: str) -> Any:
    """
    Run attempt, retrying on store-level write conflicts

    Each attempt opens its own unit of work, so a retry re-reads
    everything. After retries extra attempts a ConflictError is raised.
    """
    attempts = retries + 1
    for number in range(1, attempts + 1):
        try:
            return attempt()
        except StoreConflictError as e:
            logger.warning(f"Write conflict while {description} (attempt {number}/{attempts}): {e}")
    raise ConflictError("The reservation could not be stored because of concurrent updates")


def _customer(command: CreateReservationCommand) -> Customer:
    return Customer(
        first_name=command.first_name.strip(),
        last_name=command.last_name.strip(),
        email=command.email.strip(),
        phone=command.phone.strip(),
        notes=command.customer_notes,
    )


def _selected_slots(
    command: CreateReservationCommand,
    resource: Resource,
    existing: list,
    offset: timedelta = timedelta(0),
) -> list[TimeSlot]:
    currency = resource.base_price.currency
    slots = []
    for selection in sorted(command.time_slots, key=lambda s: s.start_time):
        period = TimeRange(selection.start_time, selection.end_time).shifted(offset)
        slots.append(TimeSlot(
            start_time=period.start,
            end_time=period.end,
            price=resource.base_price,
            max_capacity=resource.capacity,
            current_bookings=peak_occupancy(period, existing),
            special_price=(
                Money(selection.special_price, currency) if selection.special_price is not None else None
            ),
        ))
    return slots


def _booking_fields(command: CreateReservationCommand, resource: Resource) -> dict[str, Any]:
    currency = resource.base_price.currency
    return {
        'special_requests': command.special_requests,
        'internal_notes': command.internal_notes,
        'cancellation_policy': CancellationPolicy(command.cancellation_policy),
        'source': ReservationSource(command.source),
        'payment_method': PaymentMethod(command.payment_method) if command.payment_method else None,
        'deposit': Deposit(
            required=command.deposit_required,
            amount=Money(command.deposit_amount or Decimal('0'), currency),
        ),
        'metadata': dict(command.metadata or {}),
    }


def _load_for_update(uow, reservation_id: UUID) -> Reservation:
    reservation = uow.reservations.get(reservation_id, for_update=True)
    if reservation is None:
        raise ReservationNotFoundError(reservation_id)
    return reservation


def _ensure_period(start: datetime, end: datetime):
    errors = {}
    for name, value in (('start', start), ('end', end)):
        if not isinstance(value, datetime) or value.tzinfo is None:
            errors[name] = ['Must be a timezone-aware datetime']
    if errors:
        raise ValidationError(errors)
    if start >= end:
        raise InvalidRangeError(start, end)


# ===== Command Handlers =====

class CreateReservationHandler:
    """
    Handler for CreateReservation command

    This implements the critical business logic for creating reservations
    with double booking prevention.

    Strategy:
    1. Validate the request (pure, before any store call)
    2. Open a unit of work and lock the resource
    3. Re-check that the whole window fits under the lock
    4. Number, price and store the reservation
    5. Commit; events are published after commit
    6. Retry the whole attempt on store-level write conflicts
    """

    def __init__(
        self,
        uow_factory,
        max_conflict_retries: int = DEFAULT_MAX_CONFLICT_RETRIES,
        today: Callable[[], date] | None = None,
    ):
        self.uow_factory = uow_factory
        self.max_conflict_retries = max_conflict_retries
        self.today = today or timezone.localdate

    def handle(self, command: CreateReservationCommand) -> Reservation:
        """
        Handle reservation creation

        Returns: Created Reservation aggregate

        Raises:
            ValidationError, ResourceNotFoundError, ResourceInactiveError,
            CapacityExceededError, ConflictError
        """
        logger.info(
            f"Creating reservation for resource {command.resource_id}, "
            f"party of {command.party_size}, period {command.start} - {command.end}"
        )
        ensure_valid(command)

        reservation = run_with_conflict_retries(
            lambda: self._create(command),
            self.max_conflict_retries,
            f"creating a reservation on resource {command.resource_id}",
        )
        logger.info(
            f"Reservation {reservation.reservation_number} created successfully "
            f"(total {reservation.total_price})"
        )
        return reservation

    def _create(self, command: CreateReservationCommand) -> Reservation:
        window = TimeRange(command.start, command.end)

        with self.uow_factory() as uow:
            resource = ensure_bookable(
                uow.lock_resource(command.resource_id),
                command.resource_id,
                command.party_size,
            )
            existing = uow.reservations.find_overlapping(resource.id, window)
            if not fits(window, existing, command.party_size, resource.capacity):
                raise ConflictError()

            numbers = ReservationNumberGenerator(uow.counter)
            reservation = Reservation.book(
                reservation_number=numbers.generate(self.today()),
                resource=resource.snapshot(),
                period=window,
                customer=_customer(command),
                party_size=command.party_size,
                time_slots=_selected_slots(command, resource, existing),
                **_booking_fields(command, resource),
            )

            uow.collect_events(reservation)
            uow.reservations.add(reservation)

        return reservation


class CreateRecurringReservationHandler:
    """
    Handler for CreateRecurringReservation command

    All occurrences are checked and stored under one resource lock in one
    unit of work: either the whole series is booked or nothing is.
    """

    def __init__(
        self,
        uow_factory,
        max_conflict_retries: int = DEFAULT_MAX_CONFLICT_RETRIES,
        max_occurrences: int = DEFAULT_MAX_OCCURRENCES,
        today: Callable[[], date] | None = None,
    ):
        self.uow_factory = uow_factory
        self.max_conflict_retries = max_conflict_retries
        self.max_occurrences = max_occurrences
        self.today = today or timezone.localdate

    def _validate(self, command: CreateRecurringReservationCommand):
        base = command.reservation
        ensure_valid(base)

        errors: dict[str, list[str]] = {}
        pattern_values = [pattern.value for pattern in RecurrencePattern]
        if command.pattern not in pattern_values:
            errors['pattern'] = [f"'{command.pattern}' is not one of: {', '.join(pattern_values)}"]
        if not isinstance(command.until, datetime) or command.until.tzinfo is None:
            errors['until'] = ['Must be a timezone-aware datetime']
        elif command.until < base.start:
            errors['until'] = ['Recurrence end must not be before the first occurrence']
        if command.pattern == RecurrencePattern.CUSTOM.value:
            if not command.dates:
                errors['dates'] = ['Custom recurrence needs explicit dates']
            elif any(not isinstance(value, datetime) or value.tzinfo is None for value in command.dates):
                errors['dates'] = ['Dates must be timezone-aware datetimes']
        if errors:
            raise ValidationError(errors)

    def handle(self, command: CreateRecurringReservationCommand) -> list[Reservation]:
        base = command.reservation
        logger.info(
            f"Creating {command.pattern} series for resource {base.resource_id} "
            f"from {base.start} until {command.until}"
        )
        self._validate(command)

        pattern = RecurrencePattern(command.pattern)
        occurrences = expand(pattern, base.start, command.until, command.exceptions, command.dates)
        starts = list(islice(occurrences, self.max_occurrences + 1))
        if not starts:
            raise ValidationError({'recurrence': ['The recurrence produces no occurrences']})
        if len(starts) > self.max_occurrences:
            raise ValidationError({
                'recurrence': [f'A series may have at most {self.max_occurrences} occurrences']
            })

        recurrence = Recurrence(
            is_recurring=True,
            pattern=pattern,
            end_date=command.until,
            exceptions=tuple(
                value.date() if isinstance(value, datetime) else value for value in command.exceptions
            ),
            dates=tuple(command.dates),
        )
        reservations = run_with_conflict_retries(
            lambda: self._create_series(base, starts, recurrence),
            self.max_conflict_retries,
            f"creating a series on resource {base.resource_id}",
        )
        logger.info(
            f"Series of {len(reservations)} reservation(s) created, first {reservations[0].reservation_number}"
        )
        return reservations

    def _create_series(
        self,
        base: CreateReservationCommand,
        starts: list[datetime],
        recurrence: Recurrence,
    ) -> list[Reservation]:
        duration = base.end - base.start

        with self.uow_factory() as uow:
            resource = ensure_bookable(uow.lock_resource(base.resource_id), base.resource_id, base.party_size)
            span = TimeRange(starts[0], starts[-1] + duration)
            existing = uow.reservations.find_overlapping(resource.id, span)

            claims: list[_Claim] = []
            unavailable = []
            for start in starts:
                window = TimeRange(start, start + duration)
                if fits(window, [*existing, *claims], base.party_size, resource.capacity):
                    claims.append(_Claim(window, base.party_size))
                else:
                    unavailable.append(start)
            if unavailable:
                raise ConflictError(
                    f"{len(unavailable)} occurrence(s) are not available, "
                    f"first on {unavailable[0]:%Y-%m-%d %H:%M}"
                )

            numbers = ReservationNumberGenerator(uow.counter)
            today = self.today()
            snapshot = resource.snapshot()
            reservations = []
            for start in starts:
                offset = start - base.start
                reservation = Reservation.book(
                    reservation_number=numbers.generate(today),
                    resource=snapshot,
                    period=TimeRange(start, start + duration),
                    customer=_customer(base),
                    party_size=base.party_size,
                    time_slots=_selected_slots(base, resource, existing, offset),
                    recurrence=recurrence,
                    **_booking_fields(base, resource),
                )
                uow.collect_events(reservation)
                reservations.append(reservation)

            uow.reservations.add_many(reservations)

        return reservations


class ConfirmReservationHandler:
    """
    Handler for ConfirmReservation command

    Confirming an already confirmed reservation is a silent no-op:
    nothing is saved and no second notification is queued.
    """

    def __init__(self, uow_factory):
        self.uow_factory = uow_factory

    def handle(self, command: ConfirmReservationCommand) -> Reservation:
        logger.info(f"Confirming reservation {command.reservation_id}")

        with self.uow_factory() as uow:
            reservation = _load_for_update(uow, command.reservation_id)
            if not reservation.confirm():
                logger.info(f"Reservation {reservation.reservation_number} is already confirmed")
                return reservation

            uow.collect_events(reservation)
            uow.reservations.save(reservation)

        logger.info(f"Reservation {reservation.reservation_number} confirmed")
        return reservation


class _SingleReservationHandler:
    """Load one reservation under its row lock, apply a change, save it"""

    description = 'update'

    def __init__(self, uow_factory):
        self.uow_factory = uow_factory

    def apply(self, reservation: Reservation, command) -> None:
        raise NotImplementedError

    def handle(self, command) -> Reservation:
        logger.info(f"Request to {self.description} reservation {command.reservation_id}")

        with self.uow_factory() as uow:
            reservation = _load_for_update(uow, command.reservation_id)
            self.apply(reservation, command)
            uow.collect_events(reservation)
            uow.reservations.save(reservation)

        logger.info(
            f"Reservation {reservation.reservation_number}: {self.description} done "
            f"(status {reservation.status.value}, payment {reservation.payment_status.value})"
        )
        return reservation


class CancelReservationHandler(_SingleReservationHandler):
    """Capacity is released by the status filter of overlap queries"""

    description = 'cancel'

    def apply(self, reservation, command: CancelReservationCommand):
        reservation.cancel(command.reason)


class CompleteReservationHandler(_SingleReservationHandler):
    description = 'complete'

    def apply(self, reservation, command: CompleteReservationCommand):
        reservation.complete()


class MarkNoShowHandler(_SingleReservationHandler):
    description = 'mark as no-show'

    def apply(self, reservation, command: MarkNoShowCommand):
        reservation.mark_no_show()


class MarkReservationPaidHandler(_SingleReservationHandler):
    description = 'mark as paid'

    def apply(self, reservation, command: MarkReservationPaidCommand):
        try:
            reservation.mark_as_paid(command.details)
        except (ValueError, InvalidOperation) as e:
            raise ValidationError({'details': [str(e) or 'Invalid payment details']}) from e


class RecordDepositHandler(_SingleReservationHandler):
    description = 'record a deposit for'

    def apply(self, reservation, command: RecordDepositCommand):
        try:
            amount = Money(command.amount, command.currency or reservation.total_price.currency)
        except (ValueError, InvalidOperation) as e:
            raise ValidationError({'amount': [str(e) or 'Invalid amount']}) from e
        reservation.record_deposit(amount)


class MarkNotificationSentHandler(_SingleReservationHandler):
    description = 'record a delivered notification for'

    def apply(self, reservation, command: MarkNotificationSentCommand):
        reservation.mark_notification_sent(command.notification_id, command.sent_at)


class RescheduleReservationHandler:
    """
    Handler for RescheduleReservation command

    The resource is locked before the original row and the original is
    re-read under its lock, so reschedule, creation and resource deletion
    all take locks resource first. Availability is re-checked without the
    original's own claim.
    """

    def __init__(
        self,
        uow_factory,
        max_conflict_retries: int = DEFAULT_MAX_CONFLICT_RETRIES,
        today: Callable[[], date] | None = None,
    ):
        self.uow_factory = uow_factory
        self.max_conflict_retries = max_conflict_retries
        self.today = today or timezone.localdate

    def handle(self, command: RescheduleReservationCommand) -> Reservation:
        logger.info(
            f"Rescheduling reservation {command.reservation_id} to {command.start} - {command.end}"
        )
        _ensure_period(command.start, command.end)

        replacement = run_with_conflict_retries(
            lambda: self._reschedule(command),
            self.max_conflict_retries,
            f"rescheduling reservation {command.reservation_id}",
        )
        logger.info(f"Reservation {command.reservation_id} replaced by {replacement.reservation_number}")
        return replacement

    def _reschedule(self, command: RescheduleReservationCommand) -> Reservation:
        window = TimeRange(command.start, command.end)

        with self.uow_factory() as uow:
            # Resource before reservation, the order creation and resource
            # deletion lock in.
            unlocked = uow.reservations.get(command.reservation_id)
            if unlocked is None:
                raise ReservationNotFoundError(command.reservation_id)
            unlocked.ensure_can_reschedule()

            locked_resource = uow.lock_resource(unlocked.resource_id)
            original = _load_for_update(uow, command.reservation_id)
            original.ensure_can_reschedule()

            resource = ensure_bookable(locked_resource, original.resource_id, original.party_size)
            existing = uow.reservations.find_overlapping(resource.id, window, exclude_id=original.id)
            if not fits(window, existing, original.party_size, resource.capacity):
                raise ConflictError()

            replacement = Reservation.rebook(
                original,
                reservation_number=ReservationNumberGenerator(uow.counter).generate(self.today()),
                period=window,
            )
            original.reschedule_to(replacement)

            uow.collect_events(replacement)
            uow.collect_events(original)
            uow.reservations.add(replacement)
            uow.reservations.save(original)

        return replacement
