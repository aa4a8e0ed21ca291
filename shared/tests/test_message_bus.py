from dataclasses import dataclass
from unittest import mock

from django.test import SimpleTestCase, TestCase

from shared.application.message_bus import MessageBus
from shared.application.uow import DjangoUnitOfWork, InMemoryUnitOfWork
from shared.domain.base import Aggregate, DomainEvent


@dataclass
class Ping:
    value: int


@dataclass(kw_only=True)
class Pinged(DomainEvent):
    value: int


@dataclass(kw_only=True, eq=False)
class Counter(Aggregate):
    hits: int = 0

    def hit(self):
        self.hits += 1
        self.add_event(Pinged(aggregate_id=self.id, value=self.hits))


class MessageBusTests(SimpleTestCase):
    def test_commands_have_a_single_handler(self) -> None:
        bus = MessageBus()
        bus.register_command_handler(Ping, lambda command: command.value * 2)

        self.assertEqual(bus.handle_command(Ping(21)), 42)
        with self.assertRaises(ValueError):
            bus.register_command_handler(Ping, lambda command: None)

    def test_unknown_command(self) -> None:
        with self.assertRaises(ValueError):
            MessageBus().handle_command(Ping(1))

    def test_failing_event_handler_does_not_stop_others(self) -> None:
        bus = MessageBus()
        received = []
        bus.register_event_handler(Pinged, mock.Mock(side_effect=RuntimeError("boom")))
        bus.register_event_handler(Pinged, received.append)

        bus.publish_events([Pinged(value=1)])

        self.assertEqual([event.value for event in received], [1])

    def test_base_class_subscribers_see_every_event(self) -> None:
        bus = MessageBus()
        seen = []
        bus.register_event_handler(DomainEvent, lambda event: seen.append("any"))
        bus.register_event_handler(Pinged, lambda event: seen.append("pinged"))

        bus.publish_events([Pinged(value=1)])

        self.assertEqual(seen, ["pinged", "any"])

    def test_aggregate_stamps_its_id_on_events(self) -> None:
        counter = Counter()
        counter.add_event(Pinged(value=7))

        events = counter.take_events()

        self.assertEqual(events[0].aggregate_id, counter.id)
        self.assertEqual(counter.events, [])


class UnitOfWorkTests(SimpleTestCase):
    def setUp(self) -> None:
        self.bus = MessageBus()
        self.received = []
        self.bus.register_event_handler(Pinged, self.received.append)

    def test_events_published_on_commit(self) -> None:
        counter = Counter()
        with InMemoryUnitOfWork(self.bus) as uow:
            counter.hit()
            uow.collect_events(counter)
            self.assertEqual(self.received, [])

        self.assertEqual([event.value for event in self.received], [1])
        self.assertEqual(counter.events, [])

    def test_events_discarded_on_error(self) -> None:
        counter = Counter()
        with self.assertRaises(RuntimeError):
            with InMemoryUnitOfWork(self.bus) as uow:
                counter.hit()
                uow.collect_events(counter)
                raise RuntimeError("abort")

        self.assertEqual(self.received, [])


class DjangoUnitOfWorkTests(TestCase):
    def test_events_wait_for_the_database_commit(self) -> None:
        bus = MessageBus()
        received = []
        bus.register_event_handler(Pinged, received.append)
        counter = Counter()

        with self.captureOnCommitCallbacks(execute=True) as callbacks:
            with DjangoUnitOfWork(bus) as uow:
                counter.hit()
                uow.collect_events(counter)
            self.assertEqual(received, [])

        self.assertEqual(len(callbacks), 1)
        self.assertEqual([event.value for event in received], [1])
