"""
Reservation units of work

Both flavours expose the same surface to handlers:
    uow.resources     ResourceCatalog
    uow.reservations  ReservationRepository
    uow.counter       ReservationCounter
    uow.lock_resource(resource_id) -> Resource | None

lock_resource holds the resource's lock until the unit of work exits,
which is what serializes check-then-insert per resource.
"""

import threading
from contextlib import ExitStack
from uuid import UUID

from apps.resources.catalog import DjangoResourceCatalog, InMemoryResourceCatalog
from apps.resources.domain import Resource
from shared.application.uow import DjangoUnitOfWork, InMemoryUnitOfWork

from .repositories import (
    DjangoReservationCounter,
    DjangoReservationRepository,
    InMemoryReservationCounter,
    InMemoryReservationRepository,
)


class DjangoReservationUnitOfWork(DjangoUnitOfWork):
    """Resource lock is SELECT ... FOR UPDATE on the resource row."""

    def __init__(self, bus=None):
        super().__init__(bus)
        self.resources = DjangoResourceCatalog()
        self.reservations = DjangoReservationRepository()
        self.counter = DjangoReservationCounter()

    def lock_resource(self, resource_id: UUID) -> Resource | None:
        return self.resources.get_for_update(resource_id)


class InMemoryStore:
    """
    Shared process-local state behind InMemoryReservationUnitOfWork

    Usage:
        store = InMemoryStore([resource])
        uow_factory = store.unit_of_work
    """

    def __init__(self, resources=(), bus=None):
        self.catalog = InMemoryResourceCatalog(list(resources))
        self.counter = InMemoryReservationCounter()
        self.reservations = {}
        self.numbers = {}
        self.rows_lock = threading.Lock()
        self._bus = bus
        self._locks: dict[tuple[str, UUID], threading.RLock] = {}
        self._locks_guard = threading.Lock()

    def lock_for(self, kind: str, key: UUID) -> threading.RLock:
        with self._locks_guard:
            return self._locks.setdefault((kind, key), threading.RLock())

    def unit_of_work(self) -> 'InMemoryReservationUnitOfWork':
        return InMemoryReservationUnitOfWork(self, bus=self._bus)


class InMemoryReservationUnitOfWork(InMemoryUnitOfWork):
    """Resource lock is a per-resource RLock held until exit."""

    def __init__(self, store: InMemoryStore, bus=None):
        super().__init__(bus)
        self._store = store
        self._held_locks = ExitStack()
        self.resources = store.catalog
        self.reservations = InMemoryReservationRepository(store, self._held_locks)
        self.counter = store.counter

    def __exit__(self, exc_type, exc_val, exc_tb):
        try:
            super().__exit__(exc_type, exc_val, exc_tb)
        finally:
            self._held_locks.close()

    def lock_resource(self, resource_id: UUID) -> Resource | None:
        self._held_locks.enter_context(self._store.lock_for('resource', resource_id))
        return self.resources.get(resource_id)
