"""Admin registration for resources."""

from __future__ import annotations

from django.contrib import admin, messages

from .models import Resource
from .services import ResourceInUseError, delete_resource


@admin.register(Resource)
class ResourceAdmin(admin.ModelAdmin):
    list_display = ("name", "type", "capacity", "base_price", "currency", "price_unit", "is_active")
    list_filter = ("type", "price_unit", "is_active")
    search_fields = ("name", "description")
    readonly_fields = ("created_at", "updated_at")

    def delete_model(self, request, obj):  # type: ignore
        try:
            delete_resource(obj.pk)
        except ResourceInUseError as exc:
            messages.error(request, str(exc))

    def delete_queryset(self, request, queryset):  # type: ignore
        for resource in queryset:
            self.delete_model(request, resource)
