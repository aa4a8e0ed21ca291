"""Administrative services for the resource catalog."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from uuid import UUID

from django.db import transaction  # type: ignore

logger = logging.getLogger(__name__)


class ResourceInUseError(Exception):
    """Raised when deleting a resource that still has reservations."""

    def __init__(self, resource_id: UUID, reservation_count: int) -> None:
        super().__init__(
            f"Resource {resource_id} still has {reservation_count} reservation(s); "
            f"pass cascade=True to delete them as well"
        )
        self.resource_id = resource_id
        self.reservation_count = reservation_count


@dataclass(frozen=True)
class DeletionReport:
    resources: int
    reservations: int
    time_slots: int
    notifications: int


@transaction.atomic
def delete_resource(resource_id: UUID, *, cascade: bool = False) -> DeletionReport:
    """
    Delete a resource, and optionally everything booked on it.

    Dependents are removed explicitly, children first, inside one
    transaction. Without cascade the call refuses to orphan reservations.
    """
    from apps.reservations.models import Reservation, ReservationNotification, ReservationTimeSlot

    from .models import Resource

    resource = Resource.objects.select_for_update().filter(pk=resource_id).first()
    if resource is None:
        return DeletionReport(resources=0, reservations=0, time_slots=0, notifications=0)

    reservations = Reservation.objects.filter(resource_id=resource_id)
    reservation_count = reservations.count()
    if reservation_count and not cascade:
        raise ResourceInUseError(resource_id, reservation_count)

    slot_count, _ = ReservationTimeSlot.objects.filter(reservation__resource_id=resource_id).delete()
    notification_count, _ = ReservationNotification.objects.filter(
        reservation__resource_id=resource_id
    ).delete()
    # Replacement links point at siblings on the same resource.
    reservations.update(rescheduled_from=None, rescheduled_to=None)
    reservations.delete()
    resource.delete()

    logger.info(
        f"Deleted resource {resource_id} with {reservation_count} reservation(s), "
        f"{slot_count} slot(s), {notification_count} notification(s)"
    )
    return DeletionReport(
        resources=1,
        reservations=reservation_count,
        time_slots=slot_count,
        notifications=notification_count,
    )
