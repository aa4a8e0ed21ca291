from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from unittest import mock
from uuid import uuid4

from django.test import SimpleTestCase

from apps.reservations.application.command_handlers import (
    CancelReservationCommand,
    CompleteReservationCommand,
    ConfirmReservationCommand,
    CreateRecurringReservationCommand,
    CreateReservationCommand,
    MarkNoShowCommand,
    MarkNotificationSentCommand,
    MarkReservationPaidCommand,
    RecordDepositCommand,
    RescheduleReservationCommand,
    SlotSelection,
)
from apps.reservations.application.notifications import InMemoryNotificationQueue
from apps.reservations.application.queries import CheckAvailabilityQuery
from apps.reservations.bootstrap import bootstrap
from apps.reservations.domain.entities import PaymentStatus, ReservationStatus
from apps.reservations.domain.errors import (
    CapacityExceededError,
    ConflictError,
    InvalidRangeError,
    InvalidTransitionError,
    ReservationNotFoundError,
    ResourceInactiveError,
    ResourceNotFoundError,
    ValidationError,
)
from apps.reservations.repositories import InMemoryReservationRepository, StoreConflictError
from apps.reservations.unit_of_work import InMemoryStore
from apps.resources.domain import PriceUnit, Resource
from shared.application.message_bus import MessageBus
from shared.domain.value_objects import Money

TODAY = date(2030, 1, 1)


def at(hour: int, minute: int = 0, day: int = 7) -> datetime:
    return datetime(2030, 1, day, hour, minute, tzinfo=timezone.utc)


def make_resource(**overrides) -> Resource:
    fields = {
        "id": uuid4(),
        "name": "Meeting room",
        "capacity": 1,
        "base_price": Money(Decimal("10.00")),
        "price_unit": PriceUnit.HOUR,
    }
    fields.update(overrides)
    return Resource(**fields)


class EngineTestCase(SimpleTestCase):
    """Engine wired to an in-memory store and notification queue."""

    resource_overrides: dict = {}

    def setUp(self) -> None:
        self.resource = make_resource(**self.resource_overrides)
        self.bus = MessageBus()
        self.store = InMemoryStore([self.resource], bus=self.bus)
        self.queue = InMemoryNotificationQueue()
        bootstrap(self.store.unit_of_work, self.queue, bus=self.bus, today=lambda: TODAY)

    def create_command(self, start: datetime = None, end: datetime = None, **overrides) -> CreateReservationCommand:
        fields = {
            "resource_id": self.resource.id,
            "start": start or at(10),
            "end": end or at(12),
            "first_name": "Ada",
            "last_name": "Lovelace",
            "email": "ada@example.com",
            "phone": "+100000000",
        }
        fields.update(overrides)
        return CreateReservationCommand(**fields)

    def create(self, start: datetime = None, end: datetime = None, **overrides):
        return self.bus.handle_command(self.create_command(start, end, **overrides))

    def stored(self, reservation_id):
        return self.store.reservations[reservation_id]


class CreateReservationTests(EngineTestCase):
    def test_creates_pending_reservation(self) -> None:
        reservation = self.create()

        self.assertEqual(reservation.reservation_number, "RES-300101-0001")
        self.assertEqual(reservation.status, ReservationStatus.PENDING)
        self.assertEqual(reservation.total_price.amount, Decimal("20.00"))
        self.assertEqual(reservation.resource_data, self.resource)
        self.assertIn(reservation.id, self.store.reservations)
        self.assertEqual(self.queue.templates(reservation.id), ["reservation_created"])
        self.assertEqual(reservation.events, [])

    def test_numbers_increase(self) -> None:
        first = self.create(at(8), at(9))
        second = self.create(at(9), at(10))
        self.assertEqual(first.reservation_number, "RES-300101-0001")
        self.assertEqual(second.reservation_number, "RES-300101-0002")

    def test_overlap_conflicts(self) -> None:
        self.create(at(10), at(12))
        with self.assertRaises(ConflictError):
            self.create(at(11), at(13))
        self.assertEqual(len(self.store.reservations), 1)

    def test_back_to_back_is_allowed(self) -> None:
        self.create(at(10), at(11))
        self.create(at(11), at(12))
        self.assertEqual(len(self.store.reservations), 2)

    def test_cancelled_reservation_frees_the_period(self) -> None:
        first = self.create()
        self.bus.handle_command(CancelReservationCommand(reservation_id=first.id, reason="Ill"))
        second = self.create()
        self.assertEqual(second.status, ReservationStatus.PENDING)

    def test_validation_runs_before_any_store_access(self) -> None:
        with self.assertRaises(ValidationError) as ctx:
            self.create(email="nope", resource_id=uuid4())
        self.assertIn("email", ctx.exception.errors)
        self.assertEqual(self.store.reservations, {})

    def test_start_after_end_is_a_validation_error(self) -> None:
        with self.assertRaises(ValidationError) as ctx:
            self.create(at(12), at(10))
        self.assertIn("end", ctx.exception.errors)

    def test_unknown_resource(self) -> None:
        with self.assertRaises(ResourceNotFoundError):
            self.create(resource_id=uuid4())

    def test_inactive_resource(self) -> None:
        inactive = make_resource(is_active=False)
        self.store.catalog.add(inactive)
        with self.assertRaises(ResourceInactiveError):
            self.create(resource_id=inactive.id)

    def test_party_larger_than_capacity(self) -> None:
        with self.assertRaises(CapacityExceededError):
            self.create(party_size=2)

    def test_selected_slots_drive_the_price(self) -> None:
        reservation = self.create(time_slots=[
            SlotSelection(at(10), at(11)),
            SlotSelection(at(11), at(12), special_price=Decimal("3.00")),
        ])
        self.assertEqual(reservation.total_price.amount, Decimal("13.00"))
        self.assertEqual(len(reservation.time_slots), 2)

    def test_snapshot_survives_catalog_changes(self) -> None:
        reservation = self.create()
        self.store.catalog.add(make_resource(id=self.resource.id, base_price=Money(Decimal("99.00"))))
        self.assertEqual(self.stored(reservation.id).resource_data.base_price.amount, Decimal("10.00"))


class SharedCapacityTests(EngineTestCase):
    resource_overrides = {"capacity": 3}

    def test_parties_share_capacity(self) -> None:
        self.create(party_size=2)
        self.create(at(11), at(13), party_size=1)
        with self.assertRaises(ConflictError):
            self.create(at(11), at(12), party_size=1)
        self.create(at(12), at(13), party_size=2)

    def test_current_bookings_on_selected_slots(self) -> None:
        self.create(at(10), at(11), party_size=2)
        reservation = self.create(time_slots=[SlotSelection(at(10), at(11)), SlotSelection(at(11), at(12))])
        self.assertEqual([slot.current_bookings for slot in reservation.time_slots], [2, 0])


class AvailabilityQueryTests(EngineTestCase):
    def test_reports_free_slots(self) -> None:
        self.create(at(10), at(11))
        result = self.bus.handle_command(CheckAvailabilityQuery(self.resource.id, at(9), at(12)))
        self.assertEqual([slot.start_time for slot in result.available_slots], [at(9), at(11)])

    def test_excluding_a_reservation(self) -> None:
        reservation = self.create(at(10), at(11))
        result = self.bus.handle_command(CheckAvailabilityQuery(
            self.resource.id, at(9), at(12), exclude_reservation_id=reservation.id,
        ))
        self.assertEqual(len(result.available_slots), 3)

    def test_custom_increment(self) -> None:
        result = self.bus.handle_command(CheckAvailabilityQuery(
            self.resource.id, at(9), at(10), increment=timedelta(minutes=15),
        ))
        self.assertEqual(len(result.available_slots), 4)

    def test_invalid_range_is_checked_first(self) -> None:
        with self.assertRaises(InvalidRangeError):
            self.bus.handle_command(CheckAvailabilityQuery(uuid4(), at(12), at(9)))

    def test_errors_in_order(self) -> None:
        with self.assertRaises(ResourceNotFoundError):
            self.bus.handle_command(CheckAvailabilityQuery(uuid4(), at(9), at(12)))
        with self.assertRaises(CapacityExceededError):
            self.bus.handle_command(CheckAvailabilityQuery(self.resource.id, at(9), at(12), party_size=5))
        with self.assertRaises(ValidationError):
            self.bus.handle_command(CheckAvailabilityQuery(self.resource.id, at(9), at(12), party_size=0))


class LifecycleHandlerTests(EngineTestCase):
    def test_confirm_twice_queues_one_notification(self) -> None:
        reservation = self.create()
        self.bus.handle_command(ConfirmReservationCommand(reservation_id=reservation.id))
        again = self.bus.handle_command(ConfirmReservationCommand(reservation_id=reservation.id))

        self.assertEqual(again.status, ReservationStatus.CONFIRMED)
        self.assertEqual(
            self.queue.templates(reservation.id),
            ["reservation_created", "reservation_confirmed"],
        )
        self.assertEqual(len(self.stored(reservation.id).notifications), 2)

    def test_complete_and_no_show(self) -> None:
        first = self.create(at(8), at(9))
        second = self.create(at(9), at(10))
        for reservation in (first, second):
            self.bus.handle_command(ConfirmReservationCommand(reservation_id=reservation.id))

        self.bus.handle_command(CompleteReservationCommand(reservation_id=first.id))
        self.bus.handle_command(MarkNoShowCommand(reservation_id=second.id))

        self.assertEqual(self.stored(first.id).status, ReservationStatus.COMPLETED)
        self.assertEqual(self.stored(second.id).status, ReservationStatus.NO_SHOW)

    def test_failed_transition_leaves_store_untouched(self) -> None:
        reservation = self.create()
        with self.assertRaises(InvalidTransitionError):
            self.bus.handle_command(CompleteReservationCommand(reservation_id=reservation.id))
        self.assertEqual(self.stored(reservation.id).status, ReservationStatus.PENDING)

    def test_unknown_reservation(self) -> None:
        with self.assertRaises(ReservationNotFoundError):
            self.bus.handle_command(CancelReservationCommand(reservation_id=uuid4()))

    def test_cancel_queues_notification(self) -> None:
        reservation = self.create()
        cancelled = self.bus.handle_command(CancelReservationCommand(reservation_id=reservation.id, reason="Ill"))
        self.assertEqual(cancelled.cancellation_reason, "Ill")
        self.assertEqual(self.queue.templates(reservation.id)[-1], "reservation_cancelled")

    def test_mark_paid(self) -> None:
        reservation = self.create()
        paid = self.bus.handle_command(MarkReservationPaidCommand(
            reservation_id=reservation.id,
            details={"id": "ch_1", "amount": Decimal("20.00"), "currency": "EUR", "provider": "stripe"},
        ))
        self.assertEqual(paid.payment_status, PaymentStatus.PAID)
        self.assertEqual(self.stored(reservation.id).payment_details.provider, "stripe")

    def test_mark_paid_with_bad_details(self) -> None:
        reservation = self.create()
        with self.assertRaises(ValidationError):
            self.bus.handle_command(MarkReservationPaidCommand(
                reservation_id=reservation.id, details={"method": "barter"},
            ))

    def test_record_deposit(self) -> None:
        reservation = self.create()
        updated = self.bus.handle_command(RecordDepositCommand(reservation_id=reservation.id, amount=Decimal("5")))
        self.assertEqual(updated.payment_status, PaymentStatus.PARTIALLY_PAID)
        with self.assertRaises(ValidationError):
            self.bus.handle_command(RecordDepositCommand(reservation_id=reservation.id, amount=Decimal("-5")))

    def test_zero_deposit_is_rejected(self) -> None:
        reservation = self.create()
        with self.assertRaises(ValidationError):
            self.bus.handle_command(RecordDepositCommand(reservation_id=reservation.id, amount=Decimal("0")))
        stored = self.stored(reservation.id)
        self.assertFalse(stored.deposit.paid)
        self.assertEqual(stored.payment_status, PaymentStatus.UNPAID)

    def test_mark_notification_sent(self) -> None:
        reservation = self.create()
        notification_id = reservation.notifications[0].id
        self.bus.handle_command(MarkNotificationSentCommand(
            reservation_id=reservation.id, notification_id=notification_id,
        ))
        self.assertTrue(self.stored(reservation.id).notifications[0].sent)


class RescheduleHandlerTests(EngineTestCase):
    def test_reschedule_creates_linked_replacement(self) -> None:
        original = self.create(at(10), at(12))
        self.bus.handle_command(ConfirmReservationCommand(reservation_id=original.id))

        replacement = self.bus.handle_command(RescheduleReservationCommand(original.id, at(14), at(15)))

        stored_original = self.stored(original.id)
        self.assertEqual(stored_original.status, ReservationStatus.RESCHEDULED)
        self.assertEqual(stored_original.rescheduled_to, replacement.id)
        self.assertEqual(replacement.rescheduled_from, original.id)
        self.assertEqual(replacement.status, ReservationStatus.CONFIRMED)
        self.assertEqual(replacement.total_price.amount, Decimal("10.00"))
        self.assertEqual(self.queue.templates(original.id)[-1], "reservation_rescheduled")
        self.assertEqual(self.queue.templates(replacement.id), [])

    def test_may_overlap_its_own_period(self) -> None:
        original = self.create(at(10), at(12))
        replacement = self.bus.handle_command(RescheduleReservationCommand(original.id, at(11), at(13)))
        self.assertEqual(replacement.period.start, at(11))

    def test_conflict_keeps_original(self) -> None:
        original = self.create(at(10), at(11))
        self.create(at(14), at(15))
        with self.assertRaises(ConflictError):
            self.bus.handle_command(RescheduleReservationCommand(original.id, at(14), at(16)))
        self.assertEqual(self.stored(original.id).status, ReservationStatus.PENDING)
        self.assertEqual(len(self.store.reservations), 2)

    def test_cancelled_cannot_be_rescheduled(self) -> None:
        original = self.create()
        self.bus.handle_command(CancelReservationCommand(reservation_id=original.id))
        with self.assertRaises(InvalidTransitionError):
            self.bus.handle_command(RescheduleReservationCommand(original.id, at(14), at(15)))

    def test_invalid_period(self) -> None:
        original = self.create()
        with self.assertRaises(InvalidRangeError):
            self.bus.handle_command(RescheduleReservationCommand(original.id, at(15), at(14)))

    def test_locks_resource_before_reservation(self) -> None:
        original = self.create(at(10), at(11))

        with mock.patch.object(self.store, "lock_for", wraps=self.store.lock_for) as lock_for:
            self.bus.handle_command(RescheduleReservationCommand(original.id, at(14), at(15)))

        kinds = [call.args[0] for call in lock_for.call_args_list]
        self.assertIn("reservation", kinds)
        self.assertLess(kinds.index("resource"), kinds.index("reservation"))


class RecurringHandlerTests(EngineTestCase):
    def recurring(self, **overrides) -> CreateRecurringReservationCommand:
        fields = {
            "reservation": self.create_command(at(18), at(19, day=7)),
            "pattern": "daily",
            "until": at(18, day=10),
        }
        fields.update(overrides)
        return CreateRecurringReservationCommand(**fields)

    def test_books_every_occurrence(self) -> None:
        reservations = self.bus.handle_command(self.recurring())

        self.assertEqual([r.period.start.day for r in reservations], [7, 8, 9, 10])
        self.assertEqual(len({r.reservation_number for r in reservations}), 4)
        self.assertTrue(all(r.recurrence.is_recurring for r in reservations))
        self.assertEqual(len(self.store.reservations), 4)

    def test_exceptions_are_skipped(self) -> None:
        reservations = self.bus.handle_command(self.recurring(exceptions=[date(2030, 1, 8)]))
        self.assertEqual([r.period.start.day for r in reservations], [7, 9, 10])

    def test_one_conflict_books_nothing(self) -> None:
        self.create(at(18, 30, day=9), at(20, day=9))
        with self.assertRaises(ConflictError):
            self.bus.handle_command(self.recurring())
        self.assertEqual(len(self.store.reservations), 1)

    def test_custom_dates(self) -> None:
        reservations = self.bus.handle_command(self.recurring(
            pattern="custom",
            dates=[at(18, day=7), at(18, day=9)],
        ))
        self.assertEqual([r.period.start.day for r in reservations], [7, 9])

    def test_custom_without_dates(self) -> None:
        with self.assertRaises(ValidationError) as ctx:
            self.bus.handle_command(self.recurring(pattern="custom"))
        self.assertIn("dates", ctx.exception.errors)

    def test_unknown_pattern(self) -> None:
        with self.assertRaises(ValidationError) as ctx:
            self.bus.handle_command(self.recurring(pattern="hourly"))
        self.assertIn("pattern", ctx.exception.errors)


class ConflictRetryTests(EngineTestCase):
    """Store-level write conflicts are retried with a fresh unit of work."""

    def test_store_conflicts_are_retried(self) -> None:
        attempts = []
        original_add = InMemoryReservationRepository.add

        def flaky_add(repository, reservation):
            attempts.append(reservation.reservation_number)
            if len(attempts) < 3:
                raise StoreConflictError("number taken")
            return original_add(repository, reservation)

        with mock.patch.object(InMemoryReservationRepository, "add", flaky_add):
            reservation = self.create()

        self.assertEqual(attempts, ["RES-300101-0001", "RES-300101-0002", "RES-300101-0003"])
        self.assertEqual(list(self.store.reservations), [reservation.id])
        self.assertEqual(self.queue.templates(reservation.id), ["reservation_created"])

    def test_gives_up_after_retries(self) -> None:
        with mock.patch.object(
            InMemoryReservationRepository, "add", side_effect=StoreConflictError("always"),
        ) as add:
            with self.assertRaises(ConflictError):
                self.create()
        self.assertEqual(add.call_count, 4)
        self.assertEqual(self.queue.payloads, [])


class ForeignCurrencyTests(EngineTestCase):
    resource_overrides = {"base_price": Money(Decimal("10.00"), "USD")}

    def test_payment_without_currency_uses_reservation_currency(self) -> None:
        reservation = self.create(at(10), at(12))

        paid = self.bus.handle_command(MarkReservationPaidCommand(
            reservation_id=reservation.id, details={"amount": Decimal("20")},
        ))

        self.assertEqual(paid.total_price, Money(Decimal("20.00"), "USD"))
        self.assertEqual(paid.payment_details.amount, Money(Decimal("20"), "USD"))

    def test_deposit_defaults_to_reservation_currency(self) -> None:
        reservation = self.create(at(10), at(12))
        updated = self.bus.handle_command(RecordDepositCommand(reservation_id=reservation.id, amount=Decimal("20")))
        self.assertEqual(updated.deposit.amount.currency, "USD")
        self.assertEqual(updated.payment_status, PaymentStatus.PAID)
