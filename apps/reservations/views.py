"""API views for the reservation domain."""

from __future__ import annotations

import logging
from uuid import UUID

from rest_framework import mixins, permissions, status, viewsets  # type: ignore
from rest_framework.decorators import action  # type: ignore
from rest_framework.response import Response  # type: ignore

from shared.application.message_bus import message_bus

from .application.command_handlers import (
    CancelReservationCommand,
    CompleteReservationCommand,
    ConfirmReservationCommand,
    MarkNoShowCommand,
    MarkNotificationSentCommand,
    MarkReservationPaidCommand,
    RecordDepositCommand,
    RescheduleReservationCommand,
)
from .domain.errors import ErrorCode, ReservationError, ValidationError
from .models import Reservation
from .serializers import (
    CancelSerializer,
    DepositSerializer,
    MarkPaidSerializer,
    NotificationSentSerializer,
    RecurringReservationCreateSerializer,
    ReservationCreateSerializer,
    ReservationSerializer,
    RescheduleSerializer,
)

logger = logging.getLogger(__name__)

UUID_PATTERN = "[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}"

ERROR_STATUS = {
    ErrorCode.INVALID_RANGE: status.HTTP_400_BAD_REQUEST,
    ErrorCode.VALIDATION_ERROR: status.HTTP_400_BAD_REQUEST,
    ErrorCode.CAPACITY_EXCEEDED: status.HTTP_400_BAD_REQUEST,
    ErrorCode.RESOURCE_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.RESERVATION_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.CONFLICT: status.HTTP_409_CONFLICT,
    ErrorCode.INVALID_TRANSITION: status.HTTP_409_CONFLICT,
    ErrorCode.RESOURCE_INACTIVE: status.HTTP_422_UNPROCESSABLE_ENTITY,
}


def error_response(exc: ReservationError) -> Response:
    body = {"code": exc.code.value, "detail": exc.message}
    if isinstance(exc, ValidationError):
        body["errors"] = exc.errors
    return Response(body, status=ERROR_STATUS[exc.code])


class ReservationErrorMixin:
    """Turns engine errors into JSON responses with a fixed status table."""

    def handle_exception(self, exc):  # type: ignore
        if isinstance(exc, ReservationError):
            logger.info(f"{self.__class__.__name__} rejected request: {exc}")
            return error_response(exc)
        return super().handle_exception(exc)


class ReservationViewSet(
    ReservationErrorMixin,
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet,
):
    """
    Reservations: booking and lifecycle.

    Customers book, reschedule and cancel; staff list reservations and
    drive the rest of the lifecycle. Payment and notification
    collaborators report back through mark-paid and notification-sent.
    """

    queryset = Reservation.objects.prefetch_related("time_slots", "notifications").all()
    serializer_class = ReservationSerializer
    lookup_value_regex = UUID_PATTERN
    public_actions = {"create", "retrieve", "cancel", "reschedule", "recurring"}

    def get_permissions(self):  # type: ignore
        if self.action in self.public_actions:
            return [permissions.AllowAny()]
        return [permissions.IsAdminUser()]

    def get_queryset(self):  # type: ignore
        qs = super().get_queryset()
        params = self.request.query_params
        if params.get("resource"):
            try:
                qs = qs.filter(resource_id=UUID(params["resource"]))
            except ValueError:
                return qs.none()
        if params.get("status"):
            qs = qs.filter(status=params["status"])
        if params.get("email"):
            qs = qs.filter(customer_email__iexact=params["email"])
        return qs

    def _respond(self, reservation_id, status_code=status.HTTP_200_OK) -> Response:
        row = self.get_queryset().get(pk=reservation_id)
        return Response(self.get_serializer(row).data, status=status_code)

    def _dispatch(self, command):
        return message_bus.handle_command(command)

    def create(self, request, *args, **kwargs):  # type: ignore
        serializer = ReservationCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        reservation = self._dispatch(serializer.to_command())
        return self._respond(reservation.id, status.HTTP_201_CREATED)

    @action(detail=False, methods=["post"])
    def recurring(self, request):  # type: ignore
        serializer = RecurringReservationCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        reservations = self._dispatch(serializer.to_command())
        rows = self.get_queryset().filter(pk__in=[r.id for r in reservations]).order_by("start_date")
        return Response(self.get_serializer(rows, many=True).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=["post"])
    def confirm(self, request, pk=None):  # type: ignore
        reservation = self._dispatch(ConfirmReservationCommand(reservation_id=UUID(pk)))
        return self._respond(reservation.id)

    @action(detail=True, methods=["post"])
    def cancel(self, request, pk=None):  # type: ignore
        serializer = CancelSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        reason = serializer.validated_data.get("reason") or None
        reservation = self._dispatch(CancelReservationCommand(reservation_id=UUID(pk), reason=reason))
        return self._respond(reservation.id)

    @action(detail=True, methods=["post"])
    def complete(self, request, pk=None):  # type: ignore
        reservation = self._dispatch(CompleteReservationCommand(reservation_id=UUID(pk)))
        return self._respond(reservation.id)

    @action(detail=True, methods=["post"], url_path="no-show")
    def no_show(self, request, pk=None):  # type: ignore
        reservation = self._dispatch(MarkNoShowCommand(reservation_id=UUID(pk)))
        return self._respond(reservation.id)

    @action(detail=True, methods=["post"], url_path="mark-paid")
    def mark_paid(self, request, pk=None):  # type: ignore
        serializer = MarkPaidSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        reservation = self._dispatch(
            MarkReservationPaidCommand(reservation_id=UUID(pk), details=dict(serializer.validated_data))
        )
        return self._respond(reservation.id)

    @action(detail=True, methods=["post"])
    def deposit(self, request, pk=None):  # type: ignore
        serializer = DepositSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        reservation = self._dispatch(RecordDepositCommand(reservation_id=UUID(pk), **serializer.validated_data))
        return self._respond(reservation.id)

    @action(detail=True, methods=["post"])
    def reschedule(self, request, pk=None):  # type: ignore
        serializer = RescheduleSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        replacement = self._dispatch(RescheduleReservationCommand(
            reservation_id=UUID(pk),
            start=serializer.validated_data["start_date"],
            end=serializer.validated_data["end_date"],
        ))
        return self._respond(replacement.id, status.HTTP_201_CREATED)

    @action(
        detail=True,
        methods=["post"],
        url_path=r"notifications/(?P<notification_id>" + UUID_PATTERN + ")/sent",
    )
    def notification_sent(self, request, pk=None, notification_id=None):  # type: ignore
        serializer = NotificationSentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        reservation = self._dispatch(MarkNotificationSentCommand(
            reservation_id=UUID(pk),
            notification_id=UUID(notification_id),
            sent_at=serializer.validated_data.get("sent_at"),
        ))
        return self._respond(reservation.id)
