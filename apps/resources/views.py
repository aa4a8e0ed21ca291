"""API views for the resource catalog."""

from __future__ import annotations

from datetime import timedelta

from rest_framework import permissions, status, viewsets  # type: ignore
from rest_framework.decorators import action  # type: ignore
from rest_framework.response import Response  # type: ignore

from apps.reservations.application.queries import CheckAvailabilityQuery
from apps.reservations.views import UUID_PATTERN, ReservationErrorMixin
from shared.application.message_bus import message_bus

from .models import Resource
from .serializers import AvailabilityQuerySerializer, AvailableSlotSerializer, ResourceSerializer
from .services import ResourceInUseError, delete_resource


class IsStaffOrReadOnly(permissions.BasePermission):
    """Anyone may browse resources; only staff may change the catalog."""

    def has_permission(self, request, view):  # type: ignore
        if request.method in permissions.SAFE_METHODS:
            return True
        return bool(request.user and request.user.is_staff)


class ResourceViewSet(ReservationErrorMixin, viewsets.ModelViewSet):
    """Viewset for the resource catalog and its availability."""

    queryset = Resource.objects.all()
    serializer_class = ResourceSerializer
    permission_classes = [IsStaffOrReadOnly]
    lookup_value_regex = UUID_PATTERN

    def get_queryset(self):  # type: ignore
        qs = super().get_queryset()
        params = self.request.query_params
        if params.get("type"):
            qs = qs.filter(type=params["type"])
        if params.get("active") in ("true", "1"):
            qs = qs.filter(is_active=True)
        return qs

    def destroy(self, request, *args, **kwargs):  # type: ignore
        resource = self.get_object()
        cascade = request.query_params.get("cascade") in ("true", "1")
        try:
            report = delete_resource(resource.pk, cascade=cascade)
        except ResourceInUseError as exc:
            return Response(
                {
                    "code": "RESOURCE_IN_USE",
                    "detail": "Resource still has reservations; pass cascade=true to delete them too.",
                    "reservations": exc.reservation_count,
                },
                status=status.HTTP_409_CONFLICT,
            )
        return Response(
            {
                "deleted": {
                    "resources": report.resources,
                    "reservations": report.reservations,
                    "time_slots": report.time_slots,
                    "notifications": report.notifications,
                }
            },
            status=status.HTTP_200_OK,
        )

    @action(detail=True, methods=["get"])
    def availability(self, request, pk=None):  # type: ignore
        params = AvailabilityQuerySerializer(data=request.query_params)
        params.is_valid(raise_exception=True)
        data = params.validated_data
        increment = data.get("increment_minutes")
        resource = self.get_object()

        result = message_bus.handle_command(CheckAvailabilityQuery(
            resource_id=resource.pk,
            start=data["start"],
            end=data["end"],
            party_size=data["party_size"],
            exclude_reservation_id=data.get("exclude_reservation"),
            increment=timedelta(minutes=increment) if increment else None,
        ))
        return Response({
            "resource": ResourceSerializer(resource).data,
            "is_available": result.is_available,
            "truncated": result.truncated,
            "available_slots": AvailableSlotSerializer(result.available_slots, many=True).data,
        })
