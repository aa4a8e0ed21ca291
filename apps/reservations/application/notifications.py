"""
Notification dispatch

The engine never delivers email or SMS itself. Lifecycle transitions
queue notification requests on the reservation; once the unit of work
commits, NotificationQueued events are handed to a NotificationQueue,
and the external worker reports delivery back with
MarkNotificationSentCommand.
"""

from abc import ABC, abstractmethod
import logging
import threading

from ..domain.events import NotificationQueued

logger = logging.getLogger(__name__)


class NotificationQueue(ABC):
    """Fire-and-forget hand-off to the delivery collaborator"""

    @abstractmethod
    def enqueue(self, payload: dict) -> None:
        """payload: reservation_id, notification_id, type, recipient, template"""
        ...


class CeleryNotificationQueue(NotificationQueue):
    """
    Sends the payload to the delivery worker by task name

    The worker lives in another code base, so the task is addressed by
    name with send_task instead of being imported.
    """

    def __init__(self, task_name: str, app=None):
        self.task_name = task_name
        self._app = app

    @property
    def app(self):
        if self._app is None:
            from celery import current_app

            return current_app
        return self._app

    def enqueue(self, payload: dict) -> None:
        self.app.send_task(self.task_name, kwargs={'payload': payload})
        logger.info(
            f"Queued {payload['template']} ({payload['type']}) for reservation {payload['reservation_id']}"
        )


class InMemoryNotificationQueue(NotificationQueue):
    """Collects payloads; used by tests and embedded setups"""

    def __init__(self):
        self._payloads: list[dict] = []
        self._lock = threading.Lock()

    def enqueue(self, payload: dict) -> None:
        with self._lock:
            self._payloads.append(dict(payload))

    @property
    def payloads(self) -> list[dict]:
        with self._lock:
            return list(self._payloads)

    def templates(self, reservation_id=None) -> list[str]:
        return [
            payload['template']
            for payload in self.payloads
            if reservation_id is None or payload['reservation_id'] == str(reservation_id)
        ]


class NotificationDispatcher:
    """Event handler for NotificationQueued"""

    def __init__(self, queue: NotificationQueue):
        self.queue = queue

    def __call__(self, event: NotificationQueued) -> None:
        # Failures propagate to the message bus, which logs them without
        # affecting the already committed reservation.
        self.queue.enqueue(event.to_payload())
