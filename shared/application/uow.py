"""
Unit of Work Pattern

Manages transactions and ensures that domain events
are published only after a successful commit.
"""

from abc import ABC, abstractmethod
from typing import List
import logging

from django.db import transaction

from shared.domain.base import DomainEvent

logger = logging.getLogger(__name__)


class AbstractUnitOfWork(ABC):
    """
    Abstract Unit of Work

    Subclasses provide the transaction boundary; event collection and
    post-commit publishing are shared.
    """

    def __init__(self, bus=None):
        self._events: List[DomainEvent] = []
        self._bus = bus

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is None:
            self.commit()
        else:
            self.rollback()

    @abstractmethod
    def commit(self):
        """Commit the transaction"""
        pass

    def rollback(self):
        """Rollback changes and discard events"""
        if self._events:
            logger.warning(f"Rolling back transaction, discarding {len(self._events)} events")
        self._events.clear()

    def collect_events(self, aggregate):
        """
        Collect events from aggregate root

        Takes the domain events the aggregate recorded, leaving it empty.
        """
        new_events = aggregate.take_events()
        if new_events:
            self._events.extend(new_events)
            logger.debug(
                f"Collected {len(new_events)} events from "
                f"{aggregate.__class__.__name__} (ID: {aggregate.id})"
            )

    def _take_events(self) -> List[DomainEvent]:
        events = self._events.copy()
        self._events.clear()
        return events

    def _publish_events(self, events: List[DomainEvent]):
        """
        Publish collected events to message bus

        Called after successful transaction commit.
        """
        from shared.application.message_bus import message_bus

        bus = self._bus or message_bus
        logger.info(f"Publishing {len(events)} domain events after commit")

        try:
            bus.publish_events(events)
        except Exception as e:
            # Rows are already committed; monitoring picks this up from the log.
            logger.error(f"Error publishing events: {e}", exc_info=True)


class DjangoUnitOfWork(AbstractUnitOfWork):
    """
    Django implementation of Unit of Work

    Usage:
        with DjangoUnitOfWork() as uow:
            reservation = uow.reservations.get(reservation_id)
            reservation.confirm()
            uow.collect_events(reservation)
            uow.reservations.save(reservation)
            # Transaction commits here
        # Events are published after commit
    """

    def __init__(self, bus=None):
        super().__init__(bus)
        self._transaction = None

    def __enter__(self):
        """Start database transaction"""
        self._transaction = transaction.atomic()
        self._transaction.__enter__()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Complete or rollback transaction"""
        try:
            if exc_type is None:
                self.commit()
            else:
                self.rollback()
        finally:
            if self._transaction:
                self._transaction.__exit__(exc_type, exc_val, exc_tb)
                self._transaction = None

    def commit(self):
        """
        Commit changes and publish events

        Events are published using Django's transaction.on_commit()
        so they are only sent after the database commit succeeds.
        """
        logger.debug(f"Committing transaction with {len(self._events)} events")

        events = self._take_events()
        if events:
            transaction.on_commit(lambda: self._publish_events(events))


class InMemoryUnitOfWork(AbstractUnitOfWork):
    """
    Process-local Unit of Work

    Writes go straight to the in-memory repositories, so rollback only
    discards events. Handlers validate everything before the first write.
    """

    def commit(self):
        events = self._take_events()
        if events:
            self._publish_events(events)
