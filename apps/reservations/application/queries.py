"""
Availability Queries

Read side of the engine: which parts of a window can still take a party
of a given size. Handlers on the write side reuse ensure_bookable so the
same checks run, in the same order, under the resource lock.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from uuid import UUID
import logging

from apps.resources.domain import Resource
from shared.domain.value_objects import TimeRange

from ..domain.availability import DEFAULT_INCREMENT, DEFAULT_MAX_SLOTS, AvailabilityResult, generate_slots
from ..domain.errors import (
    CapacityExceededError,
    InvalidRangeError,
    ResourceInactiveError,
    ResourceNotFoundError,
    ValidationError,
)

logger = logging.getLogger(__name__)


@dataclass
class CheckAvailabilityQuery:
    """Free slots of a resource inside [start, end)"""
    resource_id: UUID
    start: datetime
    end: datetime
    party_size: int = 1
    exclude_reservation_id: UUID | None = None
    increment: timedelta | None = None


def ensure_bookable(resource: Resource | None, resource_id: UUID, party_size: int) -> Resource:
    """Raise unless resource exists, is active and can seat party_size"""
    if resource is None:
        raise ResourceNotFoundError(resource_id)
    if not resource.is_active:
        raise ResourceInactiveError(resource_id)
    if party_size > resource.capacity:
        raise CapacityExceededError(party_size, resource.capacity)
    return resource


class CheckAvailabilityHandler:
    """
    Handler for CheckAvailability query

    Order of checks: range, resource existence, active flag, capacity.
    Runs inside a unit of work but takes no locks; the answer is advisory
    and creation re-checks under the resource lock.
    """

    def __init__(self, uow_factory, increment: timedelta = DEFAULT_INCREMENT, max_slots: int = DEFAULT_MAX_SLOTS):
        self.uow_factory = uow_factory
        self.increment = increment
        self.max_slots = max_slots

    def handle(self, query: CheckAvailabilityQuery) -> AvailabilityResult:
        if query.start >= query.end:
            raise InvalidRangeError(query.start, query.end)
        if isinstance(query.party_size, bool) or not isinstance(query.party_size, int) or query.party_size < 1:
            raise ValidationError({'party_size': ['Party size must be a whole number of at least 1']})

        window = TimeRange(query.start, query.end)
        increment = query.increment or self.increment

        with self.uow_factory() as uow:
            resource = ensure_bookable(uow.resources.get(query.resource_id), query.resource_id, query.party_size)
            existing = uow.reservations.find_overlapping(
                resource.id,
                window,
                exclude_id=query.exclude_reservation_id,
            )

        result = generate_slots(
            resource,
            window,
            existing,
            party_size=query.party_size,
            increment=increment,
            max_slots=self.max_slots,
        )
        logger.debug(
            f"Availability of {resource.id} for {window}: {len(result.available_slots)} slot(s), "
            f"{len(existing)} overlapping reservation(s)"
        )
        if result.truncated:
            logger.warning(f"Availability of {resource.id} truncated at {self.max_slots} slots for {window}")
        return result
