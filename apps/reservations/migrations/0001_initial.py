import uuid
from decimal import Decimal

import django.db.models.deletion
from django.db import migrations, models


STATUS_CHOICES = [
    ("pending", "Pending"),
    ("confirmed", "Confirmed"),
    ("cancelled", "Cancelled"),
    ("completed", "Completed"),
    ("no-show", "No show"),
    ("rescheduled", "Rescheduled"),
]
PAYMENT_STATUS_CHOICES = [
    ("unpaid", "Unpaid"),
    ("partially_paid", "Partially paid"),
    ("paid", "Paid"),
    ("refunded", "Refunded"),
    ("credit", "Credit"),
]
PAYMENT_METHOD_CHOICES = [
    ("card", "Card"),
    ("cash", "Cash"),
    ("bank_transfer", "Bank transfer"),
    ("on_site", "On site"),
    ("other", "Other"),
]
CANCELLATION_POLICY_CHOICES = [
    ("flexible", "Flexible"),
    ("moderate", "Moderate"),
    ("strict", "Strict"),
    ("non_refundable", "Non refundable"),
]
SOURCE_CHOICES = [
    ("website", "Website"),
    ("app", "App"),
    ("phone", "Phone"),
    ("walk_in", "Walk in"),
    ("partner", "Partner"),
    ("other", "Other"),
]
NOTIFICATION_TYPE_CHOICES = [("email", "Email"), ("sms", "Sms"), ("push", "Push")]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("resources", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="ReservationCounter",
            fields=[
                ("day", models.DateField(primary_key=True, serialize=False)),
                ("value", models.PositiveIntegerField(default=0)),
            ],
        ),
        migrations.CreateModel(
            name="Reservation",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                (
                    "resource_data",
                    models.JSONField(default=dict, help_text="Snapshot of the resource at booking time."),
                ),
                ("reservation_number", models.CharField(editable=False, max_length=32, unique=True)),
                ("start_date", models.DateTimeField()),
                ("end_date", models.DateTimeField()),
                ("status", models.CharField(choices=STATUS_CHOICES, default="pending", max_length=20)),
                ("total_price", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=12)),
                ("currency", models.CharField(default="EUR", max_length=3)),
                (
                    "payment_status",
                    models.CharField(choices=PAYMENT_STATUS_CHOICES, default="unpaid", max_length=20),
                ),
                ("payment_method", models.CharField(blank=True, choices=PAYMENT_METHOD_CHOICES, max_length=20)),
                ("payment_details", models.JSONField(blank=True, default=dict)),
                ("deposit_required", models.BooleanField(default=False)),
                ("deposit_amount", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=12)),
                ("deposit_paid", models.BooleanField(default=False)),
                ("deposit_paid_at", models.DateTimeField(blank=True, null=True)),
                ("customer_first_name", models.CharField(max_length=100)),
                ("customer_last_name", models.CharField(max_length=100)),
                ("customer_email", models.EmailField(max_length=254)),
                ("customer_phone", models.CharField(max_length=32)),
                ("customer_notes", models.TextField(blank=True)),
                ("party_size", models.PositiveSmallIntegerField(default=1)),
                ("special_requests", models.TextField(blank=True)),
                ("internal_notes", models.TextField(blank=True)),
                ("cancellation_reason", models.CharField(blank=True, max_length=255)),
                (
                    "cancellation_policy",
                    models.CharField(choices=CANCELLATION_POLICY_CHOICES, default="moderate", max_length=20),
                ),
                ("is_recurring", models.BooleanField(default=False)),
                ("recurrence_pattern", models.CharField(blank=True, max_length=10)),
                ("recurrence_end_date", models.DateTimeField(blank=True, null=True)),
                ("recurrence_exceptions", models.JSONField(blank=True, default=list)),
                ("recurrence_dates", models.JSONField(blank=True, default=list)),
                ("metadata", models.JSONField(blank=True, default=dict)),
                ("source", models.CharField(choices=SOURCE_CHOICES, default="website", max_length=20)),
                ("confirmed_at", models.DateTimeField(blank=True, null=True)),
                ("cancelled_at", models.DateTimeField(blank=True, null=True)),
                ("completed_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField()),
                ("updated_at", models.DateTimeField()),
                (
                    "resource",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="reservations",
                        to="resources.resource",
                    ),
                ),
                (
                    "rescheduled_from",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="+",
                        to="reservations.reservation",
                    ),
                ),
                (
                    "rescheduled_to",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="+",
                        to="reservations.reservation",
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["resource", "start_date", "end_date"], name="resv_resource_period_idx"),
                    models.Index(fields=["status"], name="resv_status_idx"),
                    models.Index(fields=["customer_email"], name="resv_customer_email_idx"),
                    models.Index(fields=["customer_phone"], name="resv_customer_phone_idx"),
                    models.Index(fields=["-created_at"], name="resv_created_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(end_date__gt=models.F("start_date")),
                        name="reservation_valid_period",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(party_size__gte=1),
                        name="reservation_party_size_positive",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(total_price__gte=0),
                        name="reservation_total_non_negative",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="ReservationTimeSlot",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("position", models.PositiveSmallIntegerField(default=0)),
                ("start_time", models.DateTimeField()),
                ("end_time", models.DateTimeField()),
                ("max_capacity", models.PositiveIntegerField(default=1)),
                ("current_bookings", models.PositiveIntegerField(default=0)),
                ("is_available", models.BooleanField(default=True)),
                ("price", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=12)),
                ("special_price", models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True)),
                (
                    "reservation",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="time_slots",
                        to="reservations.reservation",
                    ),
                ),
            ],
            options={
                "ordering": ["reservation", "position"],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(end_time__gt=models.F("start_time")),
                        name="reservation_slot_valid_period",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="ReservationNotification",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("type", models.CharField(choices=NOTIFICATION_TYPE_CHOICES, max_length=10)),
                ("recipient", models.CharField(max_length=255)),
                ("template", models.CharField(max_length=100)),
                ("sent", models.BooleanField(default=False)),
                ("sent_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "reservation",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="notifications",
                        to="reservations.reservation",
                    ),
                ),
            ],
            options={
                "ordering": ["created_at"],
                "indexes": [models.Index(fields=["sent"], name="resv_notification_sent_idx")],
            },
        ),
    ]
