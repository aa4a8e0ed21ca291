"""Reservation store interfaces (repository pattern).

Handlers depend on ReservationRepository and ReservationCounter only.
The Django implementations map rows to domain aggregates; the in-memory
ones keep deep copies so callers never share mutable state with the store.
"""

from __future__ import annotations

import copy
import threading
from abc import ABC, abstractmethod
from contextlib import ExitStack
from datetime import date, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from django.db import IntegrityError, transaction  # type: ignore
from django.db.models import F  # type: ignore

from apps.resources.domain import Resource
from shared.domain.value_objects import Money, TimeRange

from .domain.entities import (
    NON_BLOCKING_STATUSES,
    CancellationPolicy,
    Customer,
    Deposit,
    Notification,
    NotificationType,
    PaymentDetails,
    PaymentMethod,
    PaymentStatus,
    Recurrence,
    Reservation,
    ReservationSource,
    ReservationStatus,
    TimeSlot,
)
from .domain.recurrence import RecurrencePattern


class StoreConflictError(Exception):
    """A write collided with a concurrent one; the whole attempt may be retried."""


class ReservationRepository(ABC):
    """Storage of reservation aggregates."""

    @abstractmethod
    def get(self, reservation_id: UUID, for_update: bool = False) -> Reservation | None:
        """Return a reservation, optionally locking it until the unit of work ends."""
        ...

    @abstractmethod
    def add(self, reservation: Reservation) -> None:
        """Insert a new reservation; raises StoreConflictError on a unique clash."""
        ...

    def add_many(self, reservations: list[Reservation]) -> None:
        """Insert several reservations; none are kept if one clashes."""
        for reservation in reservations:
            self.add(reservation)

    @abstractmethod
    def save(self, reservation: Reservation) -> None:
        """Persist changes to an existing reservation."""
        ...

    @abstractmethod
    def find_overlapping(
        self,
        resource_id: UUID,
        window: TimeRange,
        exclude_id: UUID | None = None,
    ) -> list[Reservation]:
        """Capacity-holding reservations of a resource that overlap window."""
        ...

    @abstractmethod
    def list_due_for_completion(self, now: datetime) -> list[Reservation]:
        """Confirmed reservations whose period ended at or before now."""
        ...


class ReservationCounter(ABC):
    """Atomic per-day sequence."""

    @abstractmethod
    def next_value(self, day: date) -> int:
        ...


# ===== Mapping =====

def _scalar_to_json(values: dict[str, Any]) -> dict[str, Any]:
    return {key: str(value) if isinstance(value, Decimal) else value for key, value in values.items()}


def _payment_details_to_json(details: PaymentDetails) -> dict[str, Any]:
    data: dict[str, Any] = {}
    if details.id:
        data['id'] = details.id
    if details.amount is not None:
        data['amount'] = str(details.amount.amount)
        data['currency'] = details.amount.currency
    if details.provider:
        data['provider'] = details.provider
    if details.method is not None:
        data['method'] = details.method.value
    if details.date is not None:
        data['date'] = details.date.isoformat()
    return data


def _payment_details_from_json(data: dict[str, Any], currency: str) -> PaymentDetails:
    amount = data.get('amount')
    return PaymentDetails(
        id=data.get('id', ''),
        amount=Money(Decimal(amount), data.get('currency') or currency) if amount is not None else None,
        provider=data.get('provider', ''),
        method=PaymentMethod(data['method']) if data.get('method') else None,
        date=datetime.fromisoformat(data['date']) if data.get('date') else None,
    )


def reservation_to_row_fields(reservation: Reservation) -> dict[str, Any]:
    """Column values of a reservation row (children excluded)"""
    recurrence = reservation.recurrence
    return {
        'resource_id': reservation.resource_id,
        'resource_data': reservation.resource_data.to_dict(),
        'reservation_number': reservation.reservation_number,
        'start_date': reservation.period.start,
        'end_date': reservation.period.end,
        'status': reservation.status.value,
        'total_price': reservation.total_price.amount,
        'currency': reservation.total_price.currency,
        'payment_status': reservation.payment_status.value,
        'payment_method': reservation.payment_method.value if reservation.payment_method else '',
        'payment_details': _payment_details_to_json(reservation.payment_details),
        'deposit_required': reservation.deposit.required,
        'deposit_amount': reservation.deposit.amount.amount,
        'deposit_paid': reservation.deposit.paid,
        'deposit_paid_at': reservation.deposit.paid_at,
        'customer_first_name': reservation.customer.first_name,
        'customer_last_name': reservation.customer.last_name,
        'customer_email': reservation.customer.email,
        'customer_phone': reservation.customer.phone,
        'customer_notes': reservation.customer.notes,
        'party_size': reservation.party_size,
        'special_requests': reservation.special_requests,
        'internal_notes': reservation.internal_notes,
        'cancellation_reason': reservation.cancellation_reason,
        'cancellation_policy': reservation.cancellation_policy.value,
        'is_recurring': recurrence.is_recurring,
        'recurrence_pattern': recurrence.pattern.value if recurrence.pattern else '',
        'recurrence_end_date': recurrence.end_date,
        'recurrence_exceptions': [day.isoformat() for day in recurrence.exceptions],
        'recurrence_dates': [moment.isoformat() for moment in recurrence.dates],
        'metadata': _scalar_to_json(reservation.metadata),
        'source': reservation.source.value,
        'rescheduled_from_id': reservation.rescheduled_from,
        'rescheduled_to_id': reservation.rescheduled_to,
        'confirmed_at': reservation.confirmed_at,
        'cancelled_at': reservation.cancelled_at,
        'completed_at': reservation.completed_at,
        'created_at': reservation.created_at,
        'updated_at': reservation.updated_at,
    }


def reservation_from_row(row) -> Reservation:
    """Rebuild the aggregate from a row with prefetched slots and notifications"""
    currency = row.currency
    time_slots = [
        TimeSlot(
            start_time=slot.start_time,
            end_time=slot.end_time,
            price=Money(slot.price, currency),
            max_capacity=slot.max_capacity,
            current_bookings=slot.current_bookings,
            is_available=slot.is_available,
            special_price=Money(slot.special_price, currency) if slot.special_price is not None else None,
        )
        for slot in row.time_slots.all()
    ]
    notifications = [
        Notification(
            id=item.id,
            type=NotificationType(item.type),
            recipient=item.recipient,
            template=item.template,
            sent=item.sent,
            sent_at=item.sent_at,
        )
        for item in row.notifications.all()
    ]
    recurrence = Recurrence(
        is_recurring=row.is_recurring,
        pattern=RecurrencePattern(row.recurrence_pattern) if row.recurrence_pattern else None,
        end_date=row.recurrence_end_date,
        exceptions=tuple(date.fromisoformat(value) for value in row.recurrence_exceptions or []),
        dates=tuple(datetime.fromisoformat(value) for value in row.recurrence_dates or []),
    )
    return Reservation(
        id=row.id,
        created_at=row.created_at,
        updated_at=row.updated_at,
        resource_id=row.resource_id,
        resource_data=Resource.from_dict(row.resource_data),
        period=TimeRange(row.start_date, row.end_date),
        customer=Customer(
            first_name=row.customer_first_name,
            last_name=row.customer_last_name,
            email=row.customer_email,
            phone=row.customer_phone,
            notes=row.customer_notes,
        ),
        party_size=row.party_size,
        reservation_number=row.reservation_number,
        time_slots=time_slots,
        status=ReservationStatus(row.status),
        total_price=Money(row.total_price, currency),
        payment_status=PaymentStatus(row.payment_status),
        payment_method=PaymentMethod(row.payment_method) if row.payment_method else None,
        payment_details=_payment_details_from_json(row.payment_details or {}, currency),
        deposit=Deposit(
            required=row.deposit_required,
            amount=Money(row.deposit_amount, currency),
            paid=row.deposit_paid,
            paid_at=row.deposit_paid_at,
        ),
        special_requests=row.special_requests,
        internal_notes=row.internal_notes,
        cancellation_reason=row.cancellation_reason,
        cancellation_policy=CancellationPolicy(row.cancellation_policy),
        recurrence=recurrence,
        notifications=notifications,
        metadata=dict(row.metadata or {}),
        source=ReservationSource(row.source),
        rescheduled_from=row.rescheduled_from_id,
        rescheduled_to=row.rescheduled_to_id,
        confirmed_at=row.confirmed_at,
        cancelled_at=row.cancelled_at,
        completed_at=row.completed_at,
    )


# ===== Django =====

class DjangoReservationRepository(ReservationRepository):
    """Database-backed repository using Django ORM; call inside transaction.atomic()."""

    def _queryset(self):
        from .models import Reservation as ReservationRow

        return ReservationRow.objects.prefetch_related('time_slots', 'notifications')

    def get(self, reservation_id: UUID, for_update: bool = False) -> Reservation | None:
        queryset = self._queryset()
        if for_update:
            queryset = queryset.select_for_update()
        row = queryset.filter(pk=reservation_id).first()
        return reservation_from_row(row) if row else None

    def add(self, reservation: Reservation) -> None:
        from .models import Reservation as ReservationRow
        from .models import ReservationTimeSlot

        try:
            with transaction.atomic():
                row = ReservationRow.objects.create(id=reservation.id, **reservation_to_row_fields(reservation))
                ReservationTimeSlot.objects.bulk_create([
                    ReservationTimeSlot(
                        reservation=row,
                        position=position,
                        start_time=slot.start_time,
                        end_time=slot.end_time,
                        max_capacity=slot.max_capacity,
                        current_bookings=slot.current_bookings,
                        is_available=slot.is_available,
                        price=slot.price.amount,
                        special_price=slot.special_price.amount if slot.special_price else None,
                    )
                    for position, slot in enumerate(reservation.time_slots)
                ])
                self._save_notifications(row, reservation)
        except IntegrityError as exc:
            raise StoreConflictError(str(exc)) from exc

    def save(self, reservation: Reservation) -> None:
        from .models import Reservation as ReservationRow

        fields = reservation_to_row_fields(reservation)
        updated = ReservationRow.objects.filter(pk=reservation.id).update(**fields)
        if not updated:
            raise ValueError(f"Reservation {reservation.id} does not exist")
        self._save_notifications(ReservationRow(pk=reservation.id), reservation)

    def _save_notifications(self, row, reservation: Reservation) -> None:
        from .models import ReservationNotification

        for notification in reservation.notifications:
            ReservationNotification.objects.update_or_create(
                id=notification.id,
                defaults={
                    'reservation': row,
                    'type': notification.type.value,
                    'recipient': notification.recipient,
                    'template': notification.template,
                    'sent': notification.sent,
                    'sent_at': notification.sent_at,
                },
            )

    def find_overlapping(
        self,
        resource_id: UUID,
        window: TimeRange,
        exclude_id: UUID | None = None,
    ) -> list[Reservation]:
        # start < window.end AND end > window.start covers all three overlap shapes
        queryset = (
            self._queryset()
            .filter(resource_id=resource_id, start_date__lt=window.end, end_date__gt=window.start)
            .exclude(status__in=[status.value for status in NON_BLOCKING_STATUSES])
        )
        if exclude_id is not None:
            queryset = queryset.exclude(pk=exclude_id)
        return [reservation_from_row(row) for row in queryset]

    def list_due_for_completion(self, now: datetime) -> list[Reservation]:
        queryset = self._queryset().filter(
            status=ReservationStatus.CONFIRMED.value,
            end_date__lte=now,
        ).order_by('end_date')
        return [reservation_from_row(row) for row in queryset]


class DjangoReservationCounter(ReservationCounter):
    """ReservationCounter row per day, bumped with an F() update under a row lock."""

    def next_value(self, day: date) -> int:
        from .models import ReservationCounter as CounterRow

        with transaction.atomic():
            CounterRow.objects.get_or_create(day=day)
            row = CounterRow.objects.select_for_update().get(day=day)
            CounterRow.objects.filter(day=day).update(value=F('value') + 1)
            row.refresh_from_db(fields=['value'])
            return row.value


# ===== In memory =====

class InMemoryReservationCounter(ReservationCounter):
    def __init__(self) -> None:
        self._values: dict[date, int] = {}
        self._lock = threading.Lock()

    def next_value(self, day: date) -> int:
        with self._lock:
            value = self._values.get(day, 0) + 1
            self._values[day] = value
            return value


class InMemoryReservationRepository(ReservationRepository):
    """
    Repository view over an InMemoryStore for one unit of work

    Row locks taken with get(for_update=True) are entered on the unit of
    work's exit stack and released when it finishes.
    """

    def __init__(self, store, held_locks: ExitStack) -> None:
        self._store = store
        self._held_locks = held_locks

    @staticmethod
    def _detached(reservation: Reservation) -> Reservation:
        clone = copy.deepcopy(reservation)
        clone.clear_events()
        return clone

    def get(self, reservation_id: UUID, for_update: bool = False) -> Reservation | None:
        if for_update:
            self._held_locks.enter_context(self._store.lock_for('reservation', reservation_id))
        with self._store.rows_lock:
            stored = self._store.reservations.get(reservation_id)
            return self._detached(stored) if stored else None

    def add(self, reservation: Reservation) -> None:
        with self._store.rows_lock:
            if reservation.id in self._store.reservations:
                raise StoreConflictError(f"Reservation {reservation.id} already exists")
            if reservation.reservation_number in self._store.numbers:
                raise StoreConflictError(f"Reservation number {reservation.reservation_number} is taken")
            self._store.reservations[reservation.id] = self._detached(reservation)
            self._store.numbers[reservation.reservation_number] = reservation.id

    def add_many(self, reservations: list[Reservation]) -> None:
        with self._store.rows_lock:
            numbers = [reservation.reservation_number for reservation in reservations]
            if len(set(numbers)) != len(numbers) or any(number in self._store.numbers for number in numbers):
                raise StoreConflictError("Reservation number is taken")
            if any(reservation.id in self._store.reservations for reservation in reservations):
                raise StoreConflictError("Reservation already exists")
            for reservation in reservations:
                self._store.reservations[reservation.id] = self._detached(reservation)
                self._store.numbers[reservation.reservation_number] = reservation.id

    def save(self, reservation: Reservation) -> None:
        with self._store.rows_lock:
            if reservation.id not in self._store.reservations:
                raise ValueError(f"Reservation {reservation.id} does not exist")
            self._store.reservations[reservation.id] = self._detached(reservation)

    def find_overlapping(
        self,
        resource_id: UUID,
        window: TimeRange,
        exclude_id: UUID | None = None,
    ) -> list[Reservation]:
        with self._store.rows_lock:
            return [
                self._detached(reservation)
                for reservation in self._store.reservations.values()
                if reservation.resource_id == resource_id
                and reservation.id != exclude_id
                and reservation.blocks_capacity
                and reservation.period.overlaps_with(window)
            ]

    def list_due_for_completion(self, now: datetime) -> list[Reservation]:
        with self._store.rows_lock:
            due = [
                self._detached(reservation)
                for reservation in self._store.reservations.values()
                if reservation.status is ReservationStatus.CONFIRMED and reservation.period.end <= now
            ]
        return sorted(due, key=lambda reservation: reservation.period.end)
