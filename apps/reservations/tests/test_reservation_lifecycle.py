from datetime import datetime, timezone
from decimal import Decimal
from uuid import uuid4

from django.test import SimpleTestCase

from apps.reservations.domain.entities import (
    ALLOWED_TRANSITIONS,
    Customer,
    PaymentMethod,
    PaymentStatus,
    Reservation,
    ReservationStatus,
)
from apps.reservations.domain.errors import InvalidTransitionError, ValidationError
from apps.reservations.domain.events import (
    NotificationQueued,
    ReservationCancelled,
    ReservationConfirmed,
    ReservationCreated,
    ReservationPaid,
)
from apps.resources.domain import Resource
from shared.domain.value_objects import Money, TimeRange


def make_reservation(**extra) -> Reservation:
    resource = Resource(id=uuid4(), name="Kayak", base_price=Money(Decimal("25.00")))
    return Reservation.book(
        reservation_number="RES-300601-0001",
        resource=resource,
        period=TimeRange(
            datetime(2030, 6, 1, 9, tzinfo=timezone.utc),
            datetime(2030, 6, 1, 11, tzinfo=timezone.utc),
        ),
        customer=Customer("Alan", "Turing", "alan@example.com", "+100000002"),
        **extra,
    )


def event_types(reservation: Reservation) -> list[type]:
    return [type(event) for event in reservation.events]


class ReservationLifecycleTests(SimpleTestCase):
    """State machine of a reservation."""

    def test_booking_starts_pending_and_unpaid(self) -> None:
        reservation = make_reservation()
        self.assertEqual(reservation.status, ReservationStatus.PENDING)
        self.assertEqual(reservation.payment_status, PaymentStatus.UNPAID)
        self.assertEqual(reservation.total_price.amount, Decimal("50.00"))
        self.assertEqual(event_types(reservation), [ReservationCreated, NotificationQueued])
        self.assertEqual([n.template for n in reservation.notifications], ["reservation_created"])
        self.assertEqual(reservation.notifications[0].recipient, "alan@example.com")

    def test_pending_confirmed_completed(self) -> None:
        reservation = make_reservation()
        reservation.clear_events()

        self.assertTrue(reservation.confirm())
        self.assertIsNotNone(reservation.confirmed_at)
        reservation.complete()

        self.assertEqual(reservation.status, ReservationStatus.COMPLETED)
        self.assertIsNotNone(reservation.completed_at)
        self.assertTrue(reservation.is_terminal)

    def test_confirm_is_idempotent(self) -> None:
        reservation = make_reservation()
        reservation.confirm()
        confirmed_at = reservation.confirmed_at
        reservation.clear_events()

        self.assertFalse(reservation.confirm())

        self.assertEqual(reservation.confirmed_at, confirmed_at)
        self.assertEqual(reservation.events, [])
        self.assertEqual(
            [n.template for n in reservation.notifications],
            ["reservation_created", "reservation_confirmed"],
        )

    def test_confirmed_cannot_go_back_to_pending(self) -> None:
        reservation = make_reservation()
        reservation.confirm()
        self.assertNotIn(ReservationStatus.PENDING, ALLOWED_TRANSITIONS[ReservationStatus.CONFIRMED])
        with self.assertRaises(InvalidTransitionError):
            reservation._transition(ReservationStatus.PENDING, "reopen")
        self.assertEqual(reservation.status, ReservationStatus.CONFIRMED)

    def test_complete_requires_confirmation(self) -> None:
        with self.assertRaises(InvalidTransitionError) as ctx:
            make_reservation().complete()
        self.assertEqual(ctx.exception.current, "pending")

    def test_cancel_records_reason(self) -> None:
        reservation = make_reservation()
        reservation.clear_events()

        reservation.cancel("Weather")

        self.assertEqual(reservation.status, ReservationStatus.CANCELLED)
        self.assertEqual(reservation.cancellation_reason, "Weather")
        self.assertIsNotNone(reservation.cancelled_at)
        self.assertFalse(reservation.blocks_capacity)
        self.assertEqual(event_types(reservation), [ReservationCancelled, NotificationQueued])

    def test_terminal_states_reject_transitions(self) -> None:
        reservation = make_reservation()
        reservation.cancel()
        for action in (reservation.confirm, reservation.cancel, reservation.complete, reservation.mark_no_show):
            with self.subTest(action=action.__name__):
                with self.assertRaises(InvalidTransitionError):
                    action()

    def test_no_show_only_after_confirmation(self) -> None:
        reservation = make_reservation()
        with self.assertRaises(InvalidTransitionError):
            reservation.mark_no_show()
        reservation.confirm()
        reservation.mark_no_show()
        self.assertEqual(reservation.status, ReservationStatus.NO_SHOW)

    def test_reschedule_links_both_reservations(self) -> None:
        original = make_reservation()
        replacement = Reservation.rebook(
            original,
            reservation_number="RES-300601-0002",
            period=TimeRange(
                datetime(2030, 6, 2, 9, tzinfo=timezone.utc),
                datetime(2030, 6, 2, 10, tzinfo=timezone.utc),
            ),
        )
        original.reschedule_to(replacement)

        self.assertEqual(original.status, ReservationStatus.RESCHEDULED)
        self.assertEqual(original.rescheduled_to, replacement.id)
        self.assertEqual(replacement.rescheduled_from, original.id)
        self.assertEqual(replacement.total_price.amount, Decimal("25.00"))
        self.assertEqual(replacement.notifications, [])

    def test_number_is_assigned_once(self) -> None:
        reservation = make_reservation()
        with self.assertRaises(ValueError):
            reservation.assign_number("RES-300601-0009")


class ReservationPaymentTests(SimpleTestCase):
    def test_mark_as_paid_merges_details(self) -> None:
        reservation = make_reservation()
        reservation.clear_events()

        reservation.mark_as_paid({"id": "pi_123", "amount": Decimal("50.00"), "currency": "EUR", "method": "card"})

        self.assertEqual(reservation.payment_status, PaymentStatus.PAID)
        self.assertEqual(reservation.payment_details.id, "pi_123")
        self.assertEqual(reservation.payment_details.amount, Money(Decimal("50.00")))
        self.assertIsNotNone(reservation.payment_details.date)
        self.assertEqual(reservation.payment_method, PaymentMethod.CARD)
        self.assertEqual(event_types(reservation), [ReservationPaid])

    def test_mark_as_paid_rejected_when_cancelled(self) -> None:
        reservation = make_reservation()
        reservation.cancel()
        with self.assertRaises(InvalidTransitionError):
            reservation.mark_as_paid({})
        self.assertEqual(reservation.payment_status, PaymentStatus.UNPAID)

    def test_partial_deposit(self) -> None:
        reservation = make_reservation()
        reservation.record_deposit(Money(Decimal("10.00")))
        self.assertTrue(reservation.deposit.paid)
        self.assertEqual(reservation.payment_status, PaymentStatus.PARTIALLY_PAID)

    def test_deposit_covering_total_marks_paid(self) -> None:
        reservation = make_reservation()
        reservation.record_deposit(Money(Decimal("50.00")))
        self.assertEqual(reservation.payment_status, PaymentStatus.PAID)

    def test_deposit_is_recorded_once_in_reservation_currency(self) -> None:
        reservation = make_reservation()
        with self.assertRaises(ValidationError):
            reservation.record_deposit(Money(Decimal("10.00"), "USD"))
        reservation.record_deposit(Money(Decimal("10.00")))
        with self.assertRaises(ValidationError):
            reservation.record_deposit(Money(Decimal("10.00")))

    def test_notification_marked_sent_once(self) -> None:
        reservation = make_reservation()
        notification = reservation.notifications[0]
        sent_at = datetime(2030, 5, 1, tzinfo=timezone.utc)

        reservation.mark_notification_sent(notification.id, sent_at)
        reservation.mark_notification_sent(notification.id)

        self.assertTrue(notification.sent)
        self.assertEqual(notification.sent_at, sent_at)
        with self.assertRaises(ValidationError):
            reservation.mark_notification_sent(uuid4())
