from datetime import datetime, timezone
from decimal import Decimal
from uuid import uuid4

from django.test import SimpleTestCase

from apps.reservations.application.command_handlers import CreateReservationCommand, SlotSelection
from apps.reservations.application.validation import ensure_valid, validate_request
from apps.reservations.domain.errors import ErrorCode, ValidationError


def at(hour: int, minute: int = 0) -> datetime:
    return datetime(2030, 2, 4, hour, minute, tzinfo=timezone.utc)


def command(**overrides) -> CreateReservationCommand:
    fields = {
        "resource_id": uuid4(),
        "start": at(10),
        "end": at(12),
        "first_name": "Ada",
        "last_name": "Lovelace",
        "email": "ada@example.com",
        "phone": "+100000000",
    }
    fields.update(overrides)
    return CreateReservationCommand(**fields)


class RequestValidationTests(SimpleTestCase):
    def test_valid_request_has_no_errors(self) -> None:
        self.assertEqual(validate_request(command()), {})

    def test_missing_customer_fields_are_all_reported(self) -> None:
        errors = validate_request(command(first_name="", last_name="  ", email="", phone=""))
        self.assertEqual(sorted(errors), ["email", "first_name", "last_name", "phone"])

    def test_malformed_email(self) -> None:
        errors = validate_request(command(email="not-an-email"))
        self.assertEqual(errors["email"], ["Enter a valid email address"])

    def test_party_size_must_be_positive_int(self) -> None:
        for value in (0, -2, True, 1.5):
            with self.subTest(value=value):
                self.assertIn("party_size", validate_request(command(party_size=value)))

    def test_start_must_precede_end(self) -> None:
        errors = validate_request(command(start=at(12), end=at(12)))
        self.assertEqual(list(errors), ["end"])

    def test_naive_datetimes_are_rejected(self) -> None:
        errors = validate_request(command(start=datetime(2030, 2, 4, 10)))
        self.assertEqual(errors["start"], ["Must include a timezone"])

    def test_slots_must_fit_the_period_without_overlap(self) -> None:
        errors = validate_request(command(time_slots=[
            SlotSelection(at(9), at(10)),
            SlotSelection(at(10), at(11, 30)),
            SlotSelection(at(11), at(12), special_price=Decimal("-1")),
        ]))
        self.assertIn("Slot must lie inside the reservation period", errors["time_slots[0]"])
        self.assertIn("Slots must not overlap each other", errors["time_slots[2]"])
        self.assertIn("Special price must not be negative", errors["time_slots[2]"])
        self.assertNotIn("time_slots[1]", errors)

    def test_unknown_choices(self) -> None:
        errors = validate_request(command(cancellation_policy="lenient", source="fax", payment_method="barter"))
        self.assertEqual(sorted(errors), ["cancellation_policy", "payment_method", "source"])

    def test_metadata_values_must_be_scalars(self) -> None:
        errors = validate_request(command(metadata={"table": 4, "tags": ["a", "b"]}))
        self.assertEqual(len(errors["metadata"]), 1)

    def test_negative_deposit(self) -> None:
        self.assertIn("deposit_amount", validate_request(command(deposit_amount=Decimal("-5"))))

    def test_ensure_valid_raises_with_all_errors(self) -> None:
        with self.assertRaises(ValidationError) as ctx:
            ensure_valid(command(email="", party_size=0))
        self.assertEqual(ctx.exception.code, ErrorCode.VALIDATION_ERROR)
        self.assertEqual(sorted(ctx.exception.errors), ["email", "party_size"])
