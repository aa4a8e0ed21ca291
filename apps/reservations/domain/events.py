"""
Reservation Domain Events

Events that represent things that have happened to a reservation.
The unit of work publishes them after the transaction commits.
"""

from dataclasses import dataclass
from uuid import UUID

from shared.domain.base import DomainEvent
from shared.domain.value_objects import Money, TimeRange


@dataclass(kw_only=True)
class ReservationCreated(DomainEvent):
    """A reservation was booked in pending state"""
    reservation_id: UUID
    reservation_number: str
    resource_id: UUID
    period: TimeRange
    total_price: Money


@dataclass(kw_only=True)
class ReservationConfirmed(DomainEvent):
    reservation_id: UUID
    reservation_number: str


@dataclass(kw_only=True)
class ReservationCancelled(DomainEvent):
    """
    Event: Reservation was cancelled

    The period stops blocking capacity because cancelled reservations
    are filtered out of overlap queries.
    """
    reservation_id: UUID
    reservation_number: str
    reason: str
    old_status: str


@dataclass(kw_only=True)
class ReservationCompleted(DomainEvent):
    reservation_id: UUID
    reservation_number: str


@dataclass(kw_only=True)
class ReservationMarkedNoShow(DomainEvent):
    reservation_id: UUID
    reservation_number: str


@dataclass(kw_only=True)
class ReservationPaid(DomainEvent):
    """Payment recorded (full payment or deposit)"""
    reservation_id: UUID
    reservation_number: str
    payment_status: str
    amount: Money | None


@dataclass(kw_only=True)
class ReservationRescheduled(DomainEvent):
    """The original reservation was superseded by a new one"""
    reservation_id: UUID
    reservation_number: str
    replacement_id: UUID
    replacement_number: str


@dataclass(kw_only=True)
class NotificationQueued(DomainEvent):
    """
    Event: A notification request was added to a reservation

    Triggers:
    - Hand the request to the external notification queue
    """
    reservation_id: UUID
    notification_id: UUID
    type: str
    recipient: str
    template: str

    def to_payload(self) -> dict:
        return {
            'reservation_id': str(self.reservation_id),
            'notification_id': str(self.notification_id),
            'type': self.type,
            'recipient': self.recipient,
            'template': self.template,
        }
