"""Resource catalog interfaces (repository pattern).

The reservation engine depends on ResourceCatalog only; the Django and
in-memory implementations are swappable and both return domain objects.
"""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from uuid import UUID

from .domain import Resource


class ResourceCatalog(ABC):
    """Read access to bookable resources."""

    @abstractmethod
    def get(self, resource_id: UUID) -> Resource | None:
        """Return a resource by ID, or None if not found."""
        ...

    @abstractmethod
    def get_for_update(self, resource_id: UUID) -> Resource | None:
        """Return a resource and hold its row lock until the transaction ends."""
        ...


class DjangoResourceCatalog(ResourceCatalog):
    """Database-backed catalog using Django ORM."""

    def get(self, resource_id: UUID) -> Resource | None:
        from .models import Resource as ResourceModel

        row = ResourceModel.objects.filter(pk=resource_id).first()
        return row.to_domain() if row else None

    def get_for_update(self, resource_id: UUID) -> Resource | None:
        from .models import Resource as ResourceModel

        # Must run inside transaction.atomic(); the unit of work guarantees it.
        row = ResourceModel.objects.select_for_update().filter(pk=resource_id).first()
        return row.to_domain() if row else None


class InMemoryResourceCatalog(ResourceCatalog):
    """Dictionary-backed catalog for tests and embedded use."""

    def __init__(self, resources: list[Resource] | None = None) -> None:
        self._resources: dict[UUID, Resource] = {}
        self._lock = threading.Lock()
        for resource in resources or []:
            self.add(resource)

    def add(self, resource: Resource) -> None:
        with self._lock:
            self._resources[resource.id] = resource

    def remove(self, resource_id: UUID) -> bool:
        with self._lock:
            return self._resources.pop(resource_id, None) is not None

    def get(self, resource_id: UUID) -> Resource | None:
        return self._resources.get(resource_id)

    def get_for_update(self, resource_id: UUID) -> Resource | None:
        # Mutual exclusion is provided by the in-memory unit of work's resource locks.
        return self.get(resource_id)
