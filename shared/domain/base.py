"""
Domain building blocks

Aggregates record DomainEvents while they change; a unit of work takes
them with take_events() and publishes them once the change is stored.
Value objects are frozen dataclasses compared by value.
"""

from abc import ABC
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List
from uuid import UUID, uuid4


def utcnow() -> datetime:
    """Timezone-aware current time; every domain timestamp goes through here."""
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class ValueObject(ABC):
    """Immutable, identity-free; equal when all fields are equal"""


@dataclass(kw_only=True)
class DomainEvent:
    event_id: UUID = field(default_factory=uuid4)
    occurred_at: datetime = field(default_factory=utcnow)
    aggregate_id: UUID | None = None


@dataclass(kw_only=True)
class Entity(ABC):
    """
    Identity plus audit timestamps

    Equality and hashing use the id only, so two loads of the same
    reservation compare equal whatever their state.
    """
    id: UUID = field(default_factory=uuid4)
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    def __eq__(self, other):
        return isinstance(other, self.__class__) and self.id == other.id

    def __hash__(self):
        return hash(self.id)

    def touch(self):
        self.updated_at = utcnow()


@dataclass(kw_only=True, eq=False)
class Aggregate(Entity):
    """Consistency boundary that records the events of its changes"""
    _events: List[DomainEvent] = field(default_factory=list, repr=False, init=False, compare=False)

    def add_event(self, event: DomainEvent):
        if event.aggregate_id is None:
            event.aggregate_id = self.id
        self._events.append(event)

    def take_events(self) -> List[DomainEvent]:
        """Hand over and forget the recorded events"""
        events, self._events = self._events, []
        return events

    def clear_events(self):
        self._events.clear()

    @property
    def events(self) -> List[DomainEvent]:
        return list(self._events)
