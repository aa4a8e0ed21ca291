"""Admin registration for reservations."""

from __future__ import annotations

from django.contrib import admin

from .models import Reservation, ReservationNotification, ReservationTimeSlot


class ReservationTimeSlotInline(admin.TabularInline):
    model = ReservationTimeSlot
    extra = 0
    can_delete = False
    readonly_fields = (
        "position",
        "start_time",
        "end_time",
        "max_capacity",
        "current_bookings",
        "is_available",
        "price",
        "special_price",
    )


class ReservationNotificationInline(admin.TabularInline):
    model = ReservationNotification
    extra = 0
    can_delete = False
    readonly_fields = ("type", "recipient", "template", "sent", "sent_at", "created_at")


@admin.register(Reservation)
class ReservationAdmin(admin.ModelAdmin):
    """
    Read-mostly view of reservations.

    Status and payment fields are read-only: they change only through the
    lifecycle commands so events and notifications stay consistent.
    """

    list_display = (
        "reservation_number",
        "resource",
        "customer_email",
        "status",
        "payment_status",
        "start_date",
        "end_date",
        "party_size",
        "total_price",
        "created_at",
    )
    list_filter = ("status", "payment_status", "source", "is_recurring", "start_date")
    search_fields = ("reservation_number", "customer_email", "customer_phone", "customer_last_name")
    inlines = [ReservationTimeSlotInline, ReservationNotificationInline]
    readonly_fields = (
        "reservation_number",
        "resource",
        "resource_data",
        "start_date",
        "end_date",
        "status",
        "total_price",
        "currency",
        "payment_status",
        "payment_details",
        "deposit_paid",
        "deposit_paid_at",
        "rescheduled_from",
        "rescheduled_to",
        "confirmed_at",
        "cancelled_at",
        "completed_at",
        "created_at",
        "updated_at",
    )
