import uuid
from decimal import Decimal

import django.core.validators
from django.db import migrations, models

import apps.resources.models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Resource",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("name", models.CharField(max_length=255)),
                ("description", models.TextField(blank=True)),
                (
                    "type",
                    models.CharField(
                        choices=[
                            ("room", "Room"),
                            ("equipment", "Equipment"),
                            ("service", "Service"),
                            ("vehicle", "Vehicle"),
                            ("person", "Person"),
                            ("other", "Other"),
                        ],
                        default="other",
                        max_length=20,
                    ),
                ),
                (
                    "capacity",
                    models.PositiveIntegerField(default=1, validators=[django.core.validators.MinValueValidator(1)]),
                ),
                (
                    "base_price",
                    models.DecimalField(
                        decimal_places=2,
                        default=Decimal("0.00"),
                        max_digits=12,
                        validators=[django.core.validators.MinValueValidator(Decimal("0"))],
                    ),
                ),
                ("currency", models.CharField(default=apps.resources.models.default_currency, max_length=3)),
                (
                    "price_unit",
                    models.CharField(
                        choices=[
                            ("hour", "Per hour"),
                            ("day", "Per day"),
                            ("night", "Per night"),
                            ("person", "Per person"),
                            ("session", "Per session"),
                            ("flat", "Flat rate"),
                        ],
                        default="hour",
                        max_length=10,
                    ),
                ),
                ("is_active", models.BooleanField(default=True)),
                (
                    "attributes",
                    models.JSONField(
                        blank=True,
                        default=dict,
                        help_text="String keys mapped to scalar values (text, number, boolean).",
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "ordering": ["name"],
                "indexes": [models.Index(fields=["type", "is_active"], name="resource_type_active_idx")],
                "constraints": [
                    models.CheckConstraint(condition=models.Q(capacity__gte=1), name="resource_capacity_positive"),
                    models.CheckConstraint(
                        condition=models.Q(base_price__gte=0),
                        name="resource_base_price_non_negative",
                    ),
                ],
            },
        ),
    ]
