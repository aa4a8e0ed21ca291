"""Serializers for the resource catalog."""

from __future__ import annotations

from rest_framework import serializers  # type: ignore

from .domain import validate_scalar_map
from .models import Resource


class ResourceSerializer(serializers.ModelSerializer):
    class Meta:
        model = Resource
        fields = [
            "id",
            "name",
            "description",
            "type",
            "capacity",
            "base_price",
            "currency",
            "price_unit",
            "is_active",
            "attributes",
            "created_at",
            "updated_at",
        ]
        read_only_fields = ["id", "created_at", "updated_at"]

    def validate_attributes(self, value):  # type: ignore
        problems = validate_scalar_map(value)
        if problems:
            raise serializers.ValidationError(problems)
        return value

    def validate_currency(self, value: str) -> str:
        if len(value) != 3 or not value.isalpha() or not value.isupper():
            raise serializers.ValidationError("Use a three letter upper-case currency code.")
        return value


class AvailabilityQuerySerializer(serializers.Serializer):
    start = serializers.DateTimeField()
    end = serializers.DateTimeField()
    party_size = serializers.IntegerField(required=False, default=1)
    exclude_reservation = serializers.UUIDField(required=False, allow_null=True)
    increment_minutes = serializers.IntegerField(required=False, min_value=1, allow_null=True)


class AvailableSlotSerializer(serializers.Serializer):
    start_time = serializers.DateTimeField()
    end_time = serializers.DateTimeField()
    max_capacity = serializers.IntegerField()
    current_bookings = serializers.IntegerField()
    is_available = serializers.BooleanField()
    price = serializers.SerializerMethodField()
    currency = serializers.SerializerMethodField()

    def get_price(self, slot) -> str:
        return str(slot.effective_price.amount)

    def get_currency(self, slot) -> str:
        return slot.effective_price.currency
