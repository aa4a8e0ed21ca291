"""
Wiring of the reservation engine

bootstrap() registers every command and query handler of the engine on
a message bus, bound to one unit-of-work factory and notification
queue. The Django app calls bootstrap_default() from ready(); tests
bootstrap a private bus over an InMemoryStore.
"""

from datetime import timedelta
import logging

from shared.application.message_bus import MessageBus, message_bus

from .application.command_handlers import (
    CancelReservationCommand,
    CancelReservationHandler,
    CompleteReservationCommand,
    CompleteReservationHandler,
    ConfirmReservationCommand,
    ConfirmReservationHandler,
    CreateRecurringReservationCommand,
    CreateRecurringReservationHandler,
    CreateReservationCommand,
    CreateReservationHandler,
    MarkNoShowCommand,
    MarkNoShowHandler,
    MarkNotificationSentCommand,
    MarkNotificationSentHandler,
    MarkReservationPaidCommand,
    MarkReservationPaidHandler,
    RecordDepositCommand,
    RecordDepositHandler,
    RescheduleReservationCommand,
    RescheduleReservationHandler,
)
from .application.notifications import CeleryNotificationQueue, NotificationDispatcher, NotificationQueue
from .application.queries import CheckAvailabilityHandler, CheckAvailabilityQuery
from .conf import DEFAULTS, engine_settings
from .domain.events import NotificationQueued

logger = logging.getLogger(__name__)


def bootstrap(
    uow_factory,
    notification_queue: NotificationQueue,
    bus: MessageBus | None = None,
    settings: dict | None = None,
    today=None,
) -> MessageBus:
    """Register handlers on bus (a fresh MessageBus when omitted) and return it"""
    bus = bus if bus is not None else MessageBus()
    options = {**DEFAULTS, **(settings or {})}
    retries = int(options['MAX_CONFLICT_RETRIES'])

    handlers = {
        CheckAvailabilityQuery: CheckAvailabilityHandler(
            uow_factory,
            increment=timedelta(minutes=int(options['SLOT_INCREMENT_MINUTES'])),
            max_slots=int(options['MAX_SLOTS_PER_QUERY']),
        ),
        CreateReservationCommand: CreateReservationHandler(uow_factory, retries, today=today),
        CreateRecurringReservationCommand: CreateRecurringReservationHandler(
            uow_factory,
            retries,
            max_occurrences=int(options['MAX_RECURRING_OCCURRENCES']),
            today=today,
        ),
        ConfirmReservationCommand: ConfirmReservationHandler(uow_factory),
        CancelReservationCommand: CancelReservationHandler(uow_factory),
        CompleteReservationCommand: CompleteReservationHandler(uow_factory),
        MarkNoShowCommand: MarkNoShowHandler(uow_factory),
        MarkReservationPaidCommand: MarkReservationPaidHandler(uow_factory),
        RecordDepositCommand: RecordDepositHandler(uow_factory),
        RescheduleReservationCommand: RescheduleReservationHandler(uow_factory, retries, today=today),
        MarkNotificationSentCommand: MarkNotificationSentHandler(uow_factory),
    }
    for message_type, handler in handlers.items():
        bus.register_command_handler(message_type, handler.handle)

    bus.register_event_handler(NotificationQueued, NotificationDispatcher(notification_queue))
    return bus


def bootstrap_default() -> MessageBus:
    """Bind the global bus to the Django store and the Celery queue (idempotent)"""
    from .unit_of_work import DjangoReservationUnitOfWork

    if message_bus.has_command_handler(CreateReservationCommand):
        return message_bus

    options = engine_settings()
    bootstrap(
        DjangoReservationUnitOfWork,
        CeleryNotificationQueue(options['NOTIFICATION_TASK']),
        bus=message_bus,
        settings=options,
    )
    logger.debug("Reservation engine registered on the global message bus")
    return message_bus
