"""
Resource Domain

A Resource is anything with finite capacity that can be booked for a
period of time. Reservations keep an immutable snapshot of the resource
as it was at booking time, so later price or capacity edits never
rewrite history.
"""

from dataclasses import dataclass, field, replace
from decimal import Decimal
from enum import Enum
from typing import Any, Mapping
from uuid import UUID

from shared.domain.base import ValueObject
from shared.domain.value_objects import Money


class ResourceType(Enum):
    ROOM = 'room'
    EQUIPMENT = 'equipment'
    SERVICE = 'service'
    VEHICLE = 'vehicle'
    PERSON = 'person'
    OTHER = 'other'


class PriceUnit(Enum):
    """How base_price scales with a reservation"""
    HOUR = 'hour'          # per started hour
    DAY = 'day'            # per started day
    NIGHT = 'night'        # per full night
    PERSON = 'person'      # per member of the party
    SESSION = 'session'    # flat, per booking
    FLAT = 'flat'          # flat, per booking


# Closed set of value types allowed in attribute and metadata maps.
# bool is listed for readability; it is already an int subclass.
SCALAR_TYPES = (str, bool, int, float, Decimal)

Scalar = str | bool | int | float | Decimal


def validate_scalar_map(values: Any, field_name: str = 'attributes') -> list[str]:
    """
    Check that values is a str -> scalar mapping.

    Returns a list of human readable problems, empty when valid.
    """
    if values is None:
        return []
    if not isinstance(values, Mapping):
        return [f"{field_name} must be a mapping of string keys to scalar values"]

    problems = []
    for key, value in values.items():
        if not isinstance(key, str) or not key:
            problems.append(f"{field_name} keys must be non-empty strings (got {key!r})")
        elif not isinstance(value, SCALAR_TYPES):
            problems.append(
                f"{field_name}[{key!r}] must be str, int, float, bool or Decimal "
                f"(got {type(value).__name__})"
            )
    return problems


@dataclass(frozen=True, eq=True)
class Resource(ValueObject):
    """
    Bookable resource

    Frozen: the engine only reads resources, and the same type doubles as
    the snapshot stored on each reservation.
    """
    id: UUID
    name: str
    type: ResourceType = ResourceType.OTHER
    capacity: int = 1
    base_price: Money = field(default_factory=Money.zero)
    price_unit: PriceUnit = PriceUnit.HOUR
    is_active: bool = True
    description: str = ''
    attributes: Mapping[str, Scalar] = field(default_factory=dict, hash=False)

    def __post_init__(self):
        if not self.name:
            raise ValueError("Resource name is required")
        if self.capacity < 1:
            raise ValueError("Resource capacity must be at least 1")
        problems = validate_scalar_map(self.attributes)
        if problems:
            raise ValueError("; ".join(problems))
        # Detach from the caller's dict so the snapshot stays immutable.
        object.__setattr__(self, 'attributes', dict(self.attributes))

    def snapshot(self) -> 'Resource':
        """Copy stored on a reservation at booking time"""
        return replace(self)

    def to_dict(self) -> dict:
        """JSON friendly form used for the reservation snapshot column"""
        return {
            'id': str(self.id),
            'name': self.name,
            'type': self.type.value,
            'capacity': self.capacity,
            'base_price': str(self.base_price.amount),
            'currency': self.base_price.currency,
            'price_unit': self.price_unit.value,
            'is_active': self.is_active,
            'description': self.description,
            'attributes': {
                key: str(value) if isinstance(value, Decimal) else value
                for key, value in self.attributes.items()
            },
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'Resource':
        return cls(
            id=UUID(str(data['id'])),
            name=data['name'],
            type=ResourceType(data.get('type', ResourceType.OTHER.value)),
            capacity=int(data.get('capacity', 1)),
            base_price=Money(Decimal(str(data.get('base_price', '0'))), data.get('currency', 'EUR')),
            price_unit=PriceUnit(data.get('price_unit', PriceUnit.HOUR.value)),
            is_active=bool(data.get('is_active', True)),
            description=data.get('description', ''),
            attributes=dict(data.get('attributes') or {}),
        )

    def __str__(self):
        return f"{self.name} ({self.type.value}, capacity {self.capacity})"
