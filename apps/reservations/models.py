"""Persistence models for the reservation engine.

These models handle database concerns only. Business rules live in
domain/entities.py; repositories.py converts between the two.
"""

from __future__ import annotations

import uuid
from decimal import Decimal

from django.db import models  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore

from .domain import entities


def _choices(enum_cls) -> list[tuple[str, str]]:
    return [(member.value, member.value.replace("_", " ").replace("-", " ").capitalize()) for member in enum_cls]


class Reservation(models.Model):
    """A customer's claim on a resource for [start_date, end_date)."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    resource = models.ForeignKey(
        "resources.Resource",
        on_delete=models.PROTECT,
        related_name="reservations",
    )
    resource_data = models.JSONField(
        default=dict,
        help_text=_("Snapshot of the resource at booking time."),
    )
    reservation_number = models.CharField(max_length=32, unique=True, editable=False)
    start_date = models.DateTimeField()
    end_date = models.DateTimeField()
    status = models.CharField(
        max_length=20,
        choices=_choices(entities.ReservationStatus),
        default=entities.ReservationStatus.PENDING.value,
    )
    total_price = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    currency = models.CharField(max_length=3, default="EUR")
    payment_status = models.CharField(
        max_length=20,
        choices=_choices(entities.PaymentStatus),
        default=entities.PaymentStatus.UNPAID.value,
    )
    payment_method = models.CharField(max_length=20, choices=_choices(entities.PaymentMethod), blank=True)
    payment_details = models.JSONField(default=dict, blank=True)

    deposit_required = models.BooleanField(default=False)
    deposit_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    deposit_paid = models.BooleanField(default=False)
    deposit_paid_at = models.DateTimeField(null=True, blank=True)

    customer_first_name = models.CharField(max_length=100)
    customer_last_name = models.CharField(max_length=100)
    customer_email = models.EmailField()
    customer_phone = models.CharField(max_length=32)
    customer_notes = models.TextField(blank=True)

    party_size = models.PositiveSmallIntegerField(default=1)
    special_requests = models.TextField(blank=True)
    internal_notes = models.TextField(blank=True)
    cancellation_reason = models.CharField(max_length=255, blank=True)
    cancellation_policy = models.CharField(
        max_length=20,
        choices=_choices(entities.CancellationPolicy),
        default=entities.CancellationPolicy.MODERATE.value,
    )

    is_recurring = models.BooleanField(default=False)
    recurrence_pattern = models.CharField(max_length=10, blank=True)
    recurrence_end_date = models.DateTimeField(null=True, blank=True)
    recurrence_exceptions = models.JSONField(default=list, blank=True)
    recurrence_dates = models.JSONField(default=list, blank=True)

    metadata = models.JSONField(default=dict, blank=True)
    source = models.CharField(
        max_length=20,
        choices=_choices(entities.ReservationSource),
        default=entities.ReservationSource.WEBSITE.value,
    )
    rescheduled_from = models.ForeignKey(
        "self",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )
    rescheduled_to = models.ForeignKey(
        "self",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )

    confirmed_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField()
    updated_at = models.DateTimeField()

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(end_date__gt=models.F("start_date")),
                name="reservation_valid_period",
            ),
            models.CheckConstraint(condition=models.Q(party_size__gte=1), name="reservation_party_size_positive"),
            models.CheckConstraint(condition=models.Q(total_price__gte=0), name="reservation_total_non_negative"),
        ]
        indexes = [
            models.Index(fields=["resource", "start_date", "end_date"], name="resv_resource_period_idx"),
            models.Index(fields=["status"], name="resv_status_idx"),
            models.Index(fields=["customer_email"], name="resv_customer_email_idx"),
            models.Index(fields=["customer_phone"], name="resv_customer_phone_idx"),
            models.Index(fields=["-created_at"], name="resv_created_idx"),
        ]

    def __str__(self) -> str:
        return f"Reservation {self.reservation_number} ({self.status})"


class ReservationTimeSlot(models.Model):
    """Explicitly selected slot of a reservation."""

    reservation = models.ForeignKey(Reservation, on_delete=models.CASCADE, related_name="time_slots")
    position = models.PositiveSmallIntegerField(default=0)
    start_time = models.DateTimeField()
    end_time = models.DateTimeField()
    max_capacity = models.PositiveIntegerField(default=1)
    current_bookings = models.PositiveIntegerField(default=0)
    is_available = models.BooleanField(default=True)
    price = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    special_price = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)

    class Meta:
        ordering = ["reservation", "position"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(end_time__gt=models.F("start_time")),
                name="reservation_slot_valid_period",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.start_time:%Y-%m-%d %H:%M} - {self.end_time:%H:%M}"


class ReservationNotification(models.Model):
    """Notification request queued for the external delivery worker."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    reservation = models.ForeignKey(Reservation, on_delete=models.CASCADE, related_name="notifications")
    type = models.CharField(max_length=10, choices=_choices(entities.NotificationType))
    recipient = models.CharField(max_length=255)
    template = models.CharField(max_length=100)
    sent = models.BooleanField(default=False)
    sent_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["created_at"]
        indexes = [
            models.Index(fields=["sent"], name="resv_notification_sent_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.type}:{self.template} -> {self.recipient}"


class ReservationCounter(models.Model):
    """Per-day sequence behind RES-YYMMDD-NNNN numbers."""

    day = models.DateField(primary_key=True)
    value = models.PositiveIntegerField(default=0)

    def __str__(self) -> str:
        return f"{self.day:%y%m%d}: {self.value}"
