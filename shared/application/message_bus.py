"""
In-process message bus

Commands and queries go to exactly one handler and return its result.
Domain events fan out to every subscriber of the event's class or of
one of its bases, so a subscriber on DomainEvent sees everything.
"""

from typing import Any, Callable, Dict, Iterable, List, Type
import logging

from shared.domain.base import DomainEvent

logger = logging.getLogger(__name__)

CommandHandler = Callable[[Any], Any]
EventHandler = Callable[[DomainEvent], None]


def _name(handler: Callable) -> str:
    return getattr(handler, '__qualname__', type(handler).__name__)


class MessageBus:
    """Routes commands 1:1 and events 1:N"""

    def __init__(self):
        self._command_handlers: Dict[Type, CommandHandler] = {}
        self._subscribers: Dict[Type[DomainEvent], List[EventHandler]] = {}

    def register_command_handler(self, command_type: Type, handler: CommandHandler):
        if command_type in self._command_handlers:
            raise ValueError(f"{command_type.__name__} already has a handler")
        self._command_handlers[command_type] = handler
        logger.debug(f"{command_type.__name__} -> {_name(handler)}")

    def register_event_handler(self, event_type: Type[DomainEvent], handler: EventHandler):
        self._subscribers.setdefault(event_type, []).append(handler)
        logger.debug(f"{event_type.__name__} subscriber {_name(handler)}")

    def has_command_handler(self, command_type: Type) -> bool:
        return command_type in self._command_handlers

    def reset(self):
        """Forget every registration"""
        self._command_handlers.clear()
        self._subscribers.clear()

    def handle_command(self, command: Any) -> Any:
        """
        Run the handler registered for type(command) and return its result

        Errors from the handler propagate unchanged. A command nobody
        handles is a wiring mistake and raises ValueError.
        """
        command_name = type(command).__name__
        try:
            handler = self._command_handlers[type(command)]
        except KeyError:
            raise ValueError(f"No handler registered for {command_name}") from None

        logger.info(f"Handling {command_name}")
        try:
            return handler(command)
        except Exception as e:
            logger.info(f"{command_name} failed: {e.__class__.__name__}: {e}")
            raise

    def subscribers_for(self, event: DomainEvent) -> List[EventHandler]:
        """Subscribers of the event's class first, then of its bases"""
        found: List[EventHandler] = []
        for klass in type(event).__mro__:
            found.extend(self._subscribers.get(klass, ()))
        return found

    def publish_events(self, events: Iterable[DomainEvent]):
        """
        Deliver each event to its subscribers

        The state change behind an event is already committed, so a
        failing subscriber is logged and the remaining ones still run.
        """
        for event in events:
            event_name = type(event).__name__
            for handler in self.subscribers_for(event):
                try:
                    handler(event)
                except Exception:
                    logger.error(
                        f"Subscriber {_name(handler)} failed on {event_name} "
                        f"(event {event.event_id}, aggregate {event.aggregate_id})",
                        exc_info=True,
                    )


# Global message bus; the reservations app binds it in AppConfig.ready()
message_bus = MessageBus()
