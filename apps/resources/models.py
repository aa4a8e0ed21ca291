"""Persistence model for bookable resources."""

from __future__ import annotations

import uuid
from decimal import Decimal

from django.core.validators import MinValueValidator  # type: ignore
from django.db import models  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore

from shared.domain.value_objects import Money

from . import domain


def default_currency() -> str:
    from apps.reservations.conf import engine_settings

    return engine_settings()["DEFAULT_CURRENCY"]


class Resource(models.Model):
    """Bookable resource (room, equipment, service, vehicle, person)."""

    class Type(models.TextChoices):
        ROOM = domain.ResourceType.ROOM.value, _("Room")
        EQUIPMENT = domain.ResourceType.EQUIPMENT.value, _("Equipment")
        SERVICE = domain.ResourceType.SERVICE.value, _("Service")
        VEHICLE = domain.ResourceType.VEHICLE.value, _("Vehicle")
        PERSON = domain.ResourceType.PERSON.value, _("Person")
        OTHER = domain.ResourceType.OTHER.value, _("Other")

    class PriceUnit(models.TextChoices):
        HOUR = domain.PriceUnit.HOUR.value, _("Per hour")
        DAY = domain.PriceUnit.DAY.value, _("Per day")
        NIGHT = domain.PriceUnit.NIGHT.value, _("Per night")
        PERSON = domain.PriceUnit.PERSON.value, _("Per person")
        SESSION = domain.PriceUnit.SESSION.value, _("Per session")
        FLAT = domain.PriceUnit.FLAT.value, _("Flat rate")

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    type = models.CharField(max_length=20, choices=Type.choices, default=Type.OTHER)
    capacity = models.PositiveIntegerField(default=1, validators=[MinValueValidator(1)])
    base_price = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal("0.00"),
        validators=[MinValueValidator(Decimal("0"))],
    )
    currency = models.CharField(max_length=3, default=default_currency)
    price_unit = models.CharField(max_length=10, choices=PriceUnit.choices, default=PriceUnit.HOUR)
    is_active = models.BooleanField(default=True)
    attributes = models.JSONField(
        default=dict,
        blank=True,
        help_text=_("String keys mapped to scalar values (text, number, boolean)."),
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]
        constraints = [
            models.CheckConstraint(condition=models.Q(capacity__gte=1), name="resource_capacity_positive"),
            models.CheckConstraint(condition=models.Q(base_price__gte=0), name="resource_base_price_non_negative"),
        ]
        indexes = [
            models.Index(fields=["type", "is_active"], name="resource_type_active_idx"),
        ]

    def __str__(self) -> str:
        return self.name

    def clean(self) -> None:
        from django.core.exceptions import ValidationError  # type: ignore

        problems = domain.validate_scalar_map(self.attributes)
        if problems:
            raise ValidationError({"attributes": problems})

    def to_domain(self) -> domain.Resource:
        return domain.Resource(
            id=self.id,
            name=self.name,
            type=domain.ResourceType(self.type),
            capacity=self.capacity,
            base_price=Money(Decimal(self.base_price), self.currency),
            price_unit=domain.PriceUnit(self.price_unit),
            is_active=self.is_active,
            description=self.description,
            attributes=self.attributes or {},
        )
