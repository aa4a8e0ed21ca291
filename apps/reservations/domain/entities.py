"""
Reservation Domain Entities

Core business entities for the reservation domain:
- Reservation: aggregate root, a customer's claim on a resource for a period
- ReservationStatus: FSM states for the reservation lifecycle
- PaymentStatus: payment state as reported by the payment collaborator
- TimeSlot, Customer, Deposit, PaymentDetails, Recurrence, Notification
"""

from dataclasses import dataclass, field, replace
from datetime import date, datetime
from enum import Enum
from typing import Any, Mapping
from uuid import UUID, uuid4

from apps.resources.domain import Resource, Scalar, validate_scalar_map
from shared.domain.base import Aggregate, utcnow
from shared.domain.value_objects import Money, TimeRange

from .errors import InvalidTransitionError, ValidationError
from .events import (
    NotificationQueued,
    ReservationCancelled,
    ReservationCompleted,
    ReservationConfirmed,
    ReservationCreated,
    ReservationMarkedNoShow,
    ReservationPaid,
    ReservationRescheduled,
)
from .recurrence import RecurrencePattern


class ReservationStatus(Enum):
    """
    Reservation Status Finite State Machine

    State transitions:
    - PENDING -> CONFIRMED (accepted by staff or payment flow)
    - PENDING -> CANCELLED
    - CONFIRMED -> COMPLETED (period over, customer showed up)
    - CONFIRMED -> CANCELLED
    - CONFIRMED -> NO_SHOW
    - PENDING | CONFIRMED -> RESCHEDULED (superseded by a new reservation)
    """
    PENDING = 'pending'
    CONFIRMED = 'confirmed'
    CANCELLED = 'cancelled'
    COMPLETED = 'completed'
    NO_SHOW = 'no-show'
    RESCHEDULED = 'rescheduled'


class PaymentStatus(Enum):
    UNPAID = 'unpaid'
    PARTIALLY_PAID = 'partially_paid'
    PAID = 'paid'
    REFUNDED = 'refunded'
    CREDIT = 'credit'


class PaymentMethod(Enum):
    CARD = 'card'
    CASH = 'cash'
    BANK_TRANSFER = 'bank_transfer'
    ON_SITE = 'on_site'
    OTHER = 'other'


class CancellationPolicy(Enum):
    FLEXIBLE = 'flexible'
    MODERATE = 'moderate'
    STRICT = 'strict'
    NON_REFUNDABLE = 'non_refundable'


class ReservationSource(Enum):
    WEBSITE = 'website'
    APP = 'app'
    PHONE = 'phone'
    WALK_IN = 'walk_in'
    PARTNER = 'partner'
    OTHER = 'other'


class NotificationType(Enum):
    EMAIL = 'email'
    SMS = 'sms'
    PUSH = 'push'


ALLOWED_TRANSITIONS: dict[ReservationStatus, frozenset[ReservationStatus]] = {
    ReservationStatus.PENDING: frozenset({
        ReservationStatus.CONFIRMED,
        ReservationStatus.CANCELLED,
        ReservationStatus.RESCHEDULED,
    }),
    ReservationStatus.CONFIRMED: frozenset({
        ReservationStatus.COMPLETED,
        ReservationStatus.CANCELLED,
        ReservationStatus.NO_SHOW,
        ReservationStatus.RESCHEDULED,
    }),
    ReservationStatus.CANCELLED: frozenset(),
    ReservationStatus.COMPLETED: frozenset(),
    ReservationStatus.NO_SHOW: frozenset(),
    ReservationStatus.RESCHEDULED: frozenset(),
}

# Statuses that no longer hold capacity on the resource
NON_BLOCKING_STATUSES = frozenset({
    ReservationStatus.CANCELLED,
    ReservationStatus.NO_SHOW,
    ReservationStatus.RESCHEDULED,
})


@dataclass(frozen=True)
class Customer:
    first_name: str
    last_name: str
    email: str
    phone: str
    notes: str = ''


@dataclass(frozen=True)
class TimeSlot:
    """
    A bounded sub-interval with its own capacity and price

    Produced by the availability calculator or selected explicitly
    by the customer when booking.
    """
    start_time: datetime
    end_time: datetime
    price: Money
    max_capacity: int = 1
    current_bookings: int = 0
    is_available: bool = True
    special_price: Money | None = None

    def __post_init__(self):
        if self.start_time >= self.end_time:
            raise ValueError("Slot start time must be before its end time")
        if self.max_capacity < 1:
            raise ValueError("Slot capacity must be at least 1")
        if not 0 <= self.current_bookings <= self.max_capacity:
            raise ValueError("Slot bookings must be between 0 and its capacity")

    @property
    def period(self) -> TimeRange:
        return TimeRange(self.start_time, self.end_time)

    @property
    def effective_price(self) -> Money:
        return self.special_price if self.special_price is not None else self.price


@dataclass(frozen=True)
class PaymentDetails:
    """Opaque facts reported by the payment collaborator"""
    id: str = ''
    amount: Money | None = None
    provider: str = ''
    method: PaymentMethod | None = None
    date: datetime | None = None

    def merged(self, details: Mapping[str, Any], paid_at: datetime, currency: str) -> 'PaymentDetails':
        """Apply reported facts; an amount without a currency is in the reservation's currency"""
        updates: dict[str, Any] = {'date': paid_at}
        if details.get('id'):
            updates['id'] = str(details['id'])
        if details.get('provider'):
            updates['provider'] = str(details['provider'])
        if details.get('method'):
            updates['method'] = PaymentMethod(details['method'])
        if details.get('amount') is not None:
            amount = details['amount']
            updates['amount'] = amount if isinstance(amount, Money) else Money(amount, details.get('currency') or currency)
        return replace(self, **updates)


@dataclass(frozen=True)
class Deposit:
    required: bool = False
    amount: Money = field(default_factory=Money.zero)
    paid: bool = False
    paid_at: datetime | None = None


@dataclass(frozen=True)
class Recurrence:
    """Recurrence description stored on every reservation of a series"""
    is_recurring: bool = False
    pattern: RecurrencePattern | None = None
    end_date: datetime | None = None
    exceptions: tuple[date, ...] = ()
    dates: tuple[datetime, ...] = ()


@dataclass
class Notification:
    """A queued notification request; delivery is done elsewhere"""
    type: NotificationType
    recipient: str
    template: str
    id: UUID = field(default_factory=uuid4)
    sent: bool = False
    sent_at: datetime | None = None


@dataclass(kw_only=True, eq=False)
class Reservation(Aggregate):
    """
    Reservation Aggregate Root

    Key invariants:
    - period.start < period.end (enforced by TimeRange)
    - reservation_number is assigned once and never changes
    - total_price is only ever written by recalculate_price()
    - status changes only through the transition methods below
    """

    resource_id: UUID
    resource_data: Resource
    period: TimeRange
    customer: Customer
    party_size: int = 1
    reservation_number: str = ''
    time_slots: list[TimeSlot] = field(default_factory=list)

    status: ReservationStatus = ReservationStatus.PENDING
    total_price: Money = field(default_factory=Money.zero)
    payment_status: PaymentStatus = PaymentStatus.UNPAID
    payment_method: PaymentMethod | None = None
    payment_details: PaymentDetails = field(default_factory=PaymentDetails)
    deposit: Deposit = field(default_factory=Deposit)

    special_requests: str = ''
    internal_notes: str = ''
    cancellation_reason: str = ''
    cancellation_policy: CancellationPolicy = CancellationPolicy.MODERATE
    recurrence: Recurrence = field(default_factory=Recurrence)
    notifications: list[Notification] = field(default_factory=list)
    metadata: dict[str, Scalar] = field(default_factory=dict)
    source: ReservationSource = ReservationSource.WEBSITE

    rescheduled_from: UUID | None = None
    rescheduled_to: UUID | None = None

    confirmed_at: datetime | None = None
    cancelled_at: datetime | None = None
    completed_at: datetime | None = None

    def __post_init__(self):
        if self.party_size < 1:
            raise ValueError("Party size must be at least 1")
        problems = validate_scalar_map(self.metadata, 'metadata')
        if problems:
            raise ValueError("; ".join(problems))

    # ----- creation -----

    @classmethod
    def book(
        cls,
        *,
        reservation_number: str,
        resource: Resource,
        period: TimeRange,
        customer: Customer,
        party_size: int = 1,
        notify_template: str | None = 'reservation_created',
        **extra: Any,
    ) -> 'Reservation':
        """
        Create a pending, unpaid reservation with its price computed

        Events: ReservationCreated, NotificationQueued (unless notify_template is None)
        """
        reservation = cls(
            resource_id=resource.id,
            resource_data=resource,
            period=period,
            customer=customer,
            party_size=party_size,
            **extra,
        )
        reservation.status = ReservationStatus.PENDING
        reservation.payment_status = PaymentStatus.UNPAID
        reservation.assign_number(reservation_number)
        reservation.recalculate_price()

        reservation.add_event(ReservationCreated(
            aggregate_id=reservation.id,
            reservation_id=reservation.id,
            reservation_number=reservation.reservation_number,
            resource_id=reservation.resource_id,
            period=reservation.period,
            total_price=reservation.total_price,
        ))
        if notify_template:
            reservation.queue_notification(notify_template)
        return reservation

    @classmethod
    def rebook(cls, original: 'Reservation', *, reservation_number: str, period: TimeRange) -> 'Reservation':
        """
        Replacement for a reservation moved to another period

        Keeps the customer, party, resource snapshot, terms and payment
        state; status carries over. Explicit slots belong to the old
        period, so the price is recomputed from the snapshot.
        Events: ReservationCreated
        """
        replacement = cls.book(
            reservation_number=reservation_number,
            resource=original.resource_data,
            period=period,
            customer=original.customer,
            party_size=original.party_size,
            notify_template=None,
            special_requests=original.special_requests,
            internal_notes=original.internal_notes,
            cancellation_policy=original.cancellation_policy,
            source=original.source,
            metadata=dict(original.metadata),
        )
        replacement.status = original.status
        replacement.confirmed_at = original.confirmed_at
        replacement.payment_status = original.payment_status
        replacement.payment_method = original.payment_method
        replacement.payment_details = original.payment_details
        replacement.deposit = original.deposit
        return replacement

    def assign_number(self, number: str):
        if self.reservation_number:
            raise ValueError(
                f"Reservation {self.id} already has number {self.reservation_number}"
            )
        if not number:
            raise ValueError("Reservation number is required")
        self.reservation_number = number

    def recalculate_price(self) -> Money:
        from .pricing import calculate_price

        self.total_price = calculate_price(self)
        return self.total_price

    # ----- lifecycle -----

    def _transition(self, target: ReservationStatus, action: str):
        if target not in ALLOWED_TRANSITIONS[self.status]:
            raise InvalidTransitionError(self.status.value, action)
        self.status = target
        self.touch()

    def confirm(self) -> bool:
        """
        Confirm (PENDING -> CONFIRMED)

        Confirming an already confirmed reservation changes nothing and
        returns False. Events: ReservationConfirmed, NotificationQueued
        """
        if self.status is ReservationStatus.CONFIRMED:
            return False

        self._transition(ReservationStatus.CONFIRMED, 'confirm')
        self.confirmed_at = utcnow()

        self.add_event(ReservationConfirmed(
            aggregate_id=self.id,
            reservation_id=self.id,
            reservation_number=self.reservation_number,
        ))
        self.queue_notification('reservation_confirmed')
        return True

    def cancel(self, reason: str | None = None):
        """
        Cancel (PENDING | CONFIRMED -> CANCELLED)

        Events: ReservationCancelled, NotificationQueued
        """
        old_status = self.status
        self._transition(ReservationStatus.CANCELLED, 'cancel')
        if reason:
            self.cancellation_reason = reason
        self.cancelled_at = utcnow()

        self.add_event(ReservationCancelled(
            aggregate_id=self.id,
            reservation_id=self.id,
            reservation_number=self.reservation_number,
            reason=self.cancellation_reason,
            old_status=old_status.value,
        ))
        self.queue_notification('reservation_cancelled')

    def complete(self):
        """Complete (CONFIRMED -> COMPLETED)"""
        self._transition(ReservationStatus.COMPLETED, 'complete')
        self.completed_at = utcnow()

        self.add_event(ReservationCompleted(
            aggregate_id=self.id,
            reservation_id=self.id,
            reservation_number=self.reservation_number,
        ))

    def mark_no_show(self):
        """Customer never arrived (CONFIRMED -> NO_SHOW)"""
        self._transition(ReservationStatus.NO_SHOW, 'mark as no-show')

        self.add_event(ReservationMarkedNoShow(
            aggregate_id=self.id,
            reservation_id=self.id,
            reservation_number=self.reservation_number,
        ))

    def ensure_can_reschedule(self):
        if ReservationStatus.RESCHEDULED not in ALLOWED_TRANSITIONS[self.status]:
            raise InvalidTransitionError(self.status.value, 'reschedule')

    def reschedule_to(self, replacement: 'Reservation'):
        """
        Supersede this reservation (PENDING | CONFIRMED -> RESCHEDULED)

        The record is kept; the replacement links back to it.
        Events: ReservationRescheduled, NotificationQueued
        """
        self._transition(ReservationStatus.RESCHEDULED, 'reschedule')
        self.rescheduled_to = replacement.id
        replacement.rescheduled_from = self.id

        self.add_event(ReservationRescheduled(
            aggregate_id=self.id,
            reservation_id=self.id,
            reservation_number=self.reservation_number,
            replacement_id=replacement.id,
            replacement_number=replacement.reservation_number,
        ))
        self.queue_notification('reservation_rescheduled')

    # ----- payment -----

    def _ensure_payable(self, action: str):
        if self.status in (ReservationStatus.CANCELLED, ReservationStatus.RESCHEDULED):
            raise InvalidTransitionError(self.status.value, action)

    def mark_as_paid(self, details: Mapping[str, Any] | None = None):
        """
        Record a completed payment reported by the payment collaborator

        Events: ReservationPaid
        """
        self._ensure_payable('mark as paid')
        paid_at = utcnow()
        self.payment_status = PaymentStatus.PAID
        self.payment_details = self.payment_details.merged(details or {}, paid_at, self.total_price.currency)
        if self.payment_details.method is not None:
            self.payment_method = self.payment_details.method
        self.touch()

        self.add_event(ReservationPaid(
            aggregate_id=self.id,
            reservation_id=self.id,
            reservation_number=self.reservation_number,
            payment_status=self.payment_status.value,
            amount=self.payment_details.amount,
        ))

    def record_deposit(self, amount: Money):
        """
        Record a paid deposit

        Covers the total -> PAID, otherwise PARTIALLY_PAID.
        Events: ReservationPaid
        """
        self._ensure_payable('record a deposit for')
        if not amount.amount > 0:
            raise ValidationError({'deposit': ['Deposit amount must be greater than zero']})
        if self.deposit.paid:
            raise ValidationError({'deposit': ['Deposit has already been recorded']})
        if amount.currency != self.total_price.currency:
            raise ValidationError({'deposit': [f'Deposit must be paid in {self.total_price.currency}']})

        self.deposit = Deposit(required=self.deposit.required, amount=amount, paid=True, paid_at=utcnow())
        if self.payment_status is not PaymentStatus.PAID:
            self.payment_status = (
                PaymentStatus.PAID if amount >= self.total_price else PaymentStatus.PARTIALLY_PAID
            )
        self.touch()

        self.add_event(ReservationPaid(
            aggregate_id=self.id,
            reservation_id=self.id,
            reservation_number=self.reservation_number,
            payment_status=self.payment_status.value,
            amount=amount,
        ))

    # ----- notifications -----

    def queue_notification(
        self,
        template: str,
        type: NotificationType = NotificationType.EMAIL,
        recipient: str | None = None,
    ) -> Notification:
        if recipient is None:
            recipient = self.customer.phone if type is NotificationType.SMS else self.customer.email
        notification = Notification(type=type, recipient=recipient, template=template)
        self.notifications.append(notification)

        self.add_event(NotificationQueued(
            aggregate_id=self.id,
            reservation_id=self.id,
            notification_id=notification.id,
            type=notification.type.value,
            recipient=notification.recipient,
            template=notification.template,
        ))
        return notification

    def mark_notification_sent(self, notification_id: UUID, sent_at: datetime | None = None) -> Notification:
        notification = next((n for n in self.notifications if n.id == notification_id), None)
        if notification is None:
            raise ValidationError({'notification_id': ['Unknown notification for this reservation']})
        if not notification.sent:
            notification.sent = True
            notification.sent_at = sent_at or utcnow()
            self.touch()
        return notification

    # ----- queries -----

    @property
    def blocks_capacity(self) -> bool:
        """Only live reservations count against resource capacity"""
        return self.status not in NON_BLOCKING_STATUSES

    @property
    def is_terminal(self) -> bool:
        return not ALLOWED_TRANSITIONS[self.status]

    def __str__(self):
        return f"Reservation {self.reservation_number} ({self.status.value})"

    def __repr__(self):
        return (
            f"Reservation(id={self.id}, reservation_number={self.reservation_number}, "
            f"status={self.status.value}, period={self.period!r})"
        )
