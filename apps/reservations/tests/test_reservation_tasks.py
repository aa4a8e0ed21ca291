"""Tests for periodic reservation tasks."""

from __future__ import annotations

from datetime import timedelta
from decimal import Decimal

from django.test import TestCase
from django.utils import timezone

from apps.reservations.domain.entities import Customer, Reservation
from apps.reservations.models import Reservation as ReservationRow
from apps.reservations.repositories import DjangoReservationRepository
from apps.reservations.tasks import complete_finished_reservations
from apps.resources.models import Resource
from shared.domain.value_objects import TimeRange


class CompleteFinishedReservationsTests(TestCase):
    def setUp(self) -> None:
        self.resource = Resource.objects.create(name="Sauna", capacity=6, base_price=Decimal("15.00"))
        self.repository = DjangoReservationRepository()
        self.now = timezone.now()

    def _store(self, number: str, start_offset: timedelta, hours: int, confirm: bool) -> Reservation:
        start = self.now + start_offset
        reservation = Reservation.book(
            reservation_number=number,
            resource=self.resource.to_domain(),
            period=TimeRange(start, start + timedelta(hours=hours)),
            customer=Customer("Lina", "Berg", "lina@example.com", "+4670000000"),
        )
        if confirm:
            reservation.confirm()
        self.repository.add(reservation)
        return reservation

    def test_completes_only_finished_confirmed_reservations(self) -> None:
        finished = self._store("RES-000101-0001", timedelta(hours=-5), 2, confirm=True)
        unconfirmed = self._store("RES-000101-0002", timedelta(hours=-5), 2, confirm=False)
        running = self._store("RES-000101-0003", timedelta(hours=-1), 2, confirm=True)

        result = complete_finished_reservations()

        self.assertEqual(result, {"completed": 1, "failed": 0})
        statuses = dict(ReservationRow.objects.values_list("reservation_number", "status"))
        self.assertEqual(statuses[finished.reservation_number], "completed")
        self.assertEqual(statuses[unconfirmed.reservation_number], "pending")
        self.assertEqual(statuses[running.reservation_number], "confirmed")

    def test_nothing_to_do(self) -> None:
        self.assertEqual(complete_finished_reservations(), {"completed": 0, "failed": 0})
