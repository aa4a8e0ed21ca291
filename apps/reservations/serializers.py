"""Serializers for the reservation domain.

Input serializers only check wire types and build commands; business
validation happens in the command handlers so every entry point gets
the same rules and error codes.
"""

from __future__ import annotations

from rest_framework import serializers  # type: ignore

from .application.command_handlers import (
    CreateRecurringReservationCommand,
    CreateReservationCommand,
    SlotSelection,
)
from .domain.entities import CancellationPolicy, ReservationSource
from .domain.recurrence import RecurrencePattern
from .models import Reservation, ReservationNotification, ReservationTimeSlot


class SlotSelectionSerializer(serializers.Serializer):
    start_time = serializers.DateTimeField()
    end_time = serializers.DateTimeField()
    special_price = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, allow_null=True)


class CustomerSerializer(serializers.Serializer):
    first_name = serializers.CharField(allow_blank=True)
    last_name = serializers.CharField(allow_blank=True)
    email = serializers.CharField(allow_blank=True)
    phone = serializers.CharField(allow_blank=True)
    notes = serializers.CharField(required=False, allow_blank=True, default="")


class ReservationCreateSerializer(serializers.Serializer):
    """Booking request as sent by the selection UI or a partner."""

    resource = serializers.UUIDField()
    start_date = serializers.DateTimeField()
    end_date = serializers.DateTimeField()
    customer = CustomerSerializer()
    party_size = serializers.IntegerField(default=1)
    time_slots = SlotSelectionSerializer(many=True, required=False, default=list)
    special_requests = serializers.CharField(required=False, allow_blank=True, default="")
    internal_notes = serializers.CharField(required=False, allow_blank=True, default="")
    cancellation_policy = serializers.CharField(required=False, default=CancellationPolicy.MODERATE.value)
    source = serializers.CharField(required=False, default=ReservationSource.WEBSITE.value)
    payment_method = serializers.CharField(required=False, allow_null=True, allow_blank=True, default=None)
    deposit_required = serializers.BooleanField(required=False, default=False)
    deposit_amount = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, allow_null=True)
    metadata = serializers.DictField(required=False, default=dict)

    def to_command(self) -> CreateReservationCommand:
        data = self.validated_data
        customer = data["customer"]
        return CreateReservationCommand(
            resource_id=data["resource"],
            start=data["start_date"],
            end=data["end_date"],
            first_name=customer["first_name"],
            last_name=customer["last_name"],
            email=customer["email"],
            phone=customer["phone"],
            customer_notes=customer.get("notes", ""),
            party_size=data["party_size"],
            time_slots=[SlotSelection(**slot) for slot in data["time_slots"]],
            special_requests=data["special_requests"],
            internal_notes=data["internal_notes"],
            cancellation_policy=data["cancellation_policy"],
            source=data["source"],
            payment_method=data["payment_method"] or None,
            deposit_required=data["deposit_required"],
            deposit_amount=data.get("deposit_amount"),
            metadata=data["metadata"],
        )


class RecurrenceSerializer(serializers.Serializer):
    pattern = serializers.ChoiceField(choices=[pattern.value for pattern in RecurrencePattern])
    end_date = serializers.DateTimeField()
    exceptions = serializers.ListField(child=serializers.DateField(), required=False, default=list)
    dates = serializers.ListField(child=serializers.DateTimeField(), required=False, default=list)


class RecurringReservationCreateSerializer(ReservationCreateSerializer):
    recurrence = RecurrenceSerializer()

    def to_command(self) -> CreateRecurringReservationCommand:
        recurrence = self.validated_data["recurrence"]
        return CreateRecurringReservationCommand(
            reservation=super().to_command(),
            pattern=recurrence["pattern"],
            until=recurrence["end_date"],
            exceptions=recurrence["exceptions"],
            dates=recurrence["dates"],
        )


class CancelSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, max_length=255)


class RescheduleSerializer(serializers.Serializer):
    start_date = serializers.DateTimeField()
    end_date = serializers.DateTimeField()


class MarkPaidSerializer(serializers.Serializer):
    """Opaque payment facts; only these keys are kept."""

    id = serializers.CharField(required=False, allow_blank=True)
    amount = serializers.DecimalField(max_digits=12, decimal_places=2, required=False)
    currency = serializers.CharField(required=False, max_length=3)
    provider = serializers.CharField(required=False, allow_blank=True)
    method = serializers.CharField(required=False, allow_blank=True)


class DepositSerializer(serializers.Serializer):
    amount = serializers.DecimalField(max_digits=12, decimal_places=2)
    currency = serializers.CharField(required=False, max_length=3)


class NotificationSentSerializer(serializers.Serializer):
    sent_at = serializers.DateTimeField(required=False, allow_null=True)


class ReservationTimeSlotSerializer(serializers.ModelSerializer):
    class Meta:
        model = ReservationTimeSlot
        fields = [
            "start_time",
            "end_time",
            "max_capacity",
            "current_bookings",
            "is_available",
            "price",
            "special_price",
        ]


class ReservationNotificationSerializer(serializers.ModelSerializer):
    class Meta:
        model = ReservationNotification
        fields = ["id", "type", "recipient", "template", "sent", "sent_at"]


class ReservationSerializer(serializers.ModelSerializer):
    """Read-only representation of a stored reservation."""

    resource_id = serializers.UUIDField(read_only=True)
    customer = serializers.SerializerMethodField()
    deposit = serializers.SerializerMethodField()
    recurrence = serializers.SerializerMethodField()
    time_slots = ReservationTimeSlotSerializer(many=True, read_only=True)
    notifications = ReservationNotificationSerializer(many=True, read_only=True)
    rescheduled_from = serializers.UUIDField(source="rescheduled_from_id", read_only=True)
    rescheduled_to = serializers.UUIDField(source="rescheduled_to_id", read_only=True)

    class Meta:
        model = Reservation
        fields = [
            "id",
            "reservation_number",
            "resource_id",
            "resource_data",
            "start_date",
            "end_date",
            "status",
            "party_size",
            "customer",
            "time_slots",
            "total_price",
            "currency",
            "payment_status",
            "payment_method",
            "payment_details",
            "deposit",
            "special_requests",
            "internal_notes",
            "cancellation_reason",
            "cancellation_policy",
            "recurrence",
            "notifications",
            "metadata",
            "source",
            "rescheduled_from",
            "rescheduled_to",
            "confirmed_at",
            "cancelled_at",
            "completed_at",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields

    def get_customer(self, obj: Reservation) -> dict:
        return {
            "first_name": obj.customer_first_name,
            "last_name": obj.customer_last_name,
            "email": obj.customer_email,
            "phone": obj.customer_phone,
            "notes": obj.customer_notes,
        }

    def get_deposit(self, obj: Reservation) -> dict:
        return {
            "required": obj.deposit_required,
            "amount": str(obj.deposit_amount),
            "paid": obj.deposit_paid,
            "paid_at": obj.deposit_paid_at.isoformat() if obj.deposit_paid_at else None,
        }

    def get_recurrence(self, obj: Reservation) -> dict:
        return {
            "is_recurring": obj.is_recurring,
            "pattern": obj.recurrence_pattern or None,
            "end_date": obj.recurrence_end_date.isoformat() if obj.recurrence_end_date else None,
            "exceptions": obj.recurrence_exceptions,
            "dates": obj.recurrence_dates,
        }
