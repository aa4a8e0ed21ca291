"""Celery tasks for the reservation domain."""

from __future__ import annotations

import logging

from celery import shared_task  # type: ignore
from django.utils import timezone  # type: ignore

from shared.application.message_bus import message_bus

from .application.command_handlers import CompleteReservationCommand
from .bootstrap import bootstrap_default
from .domain.errors import ReservationError
from .repositories import DjangoReservationRepository

logger = logging.getLogger(__name__)


# ============================================================================
# PERIODIC TASKS (run by Celery Beat)
# ============================================================================

@shared_task(name="reservations.complete_finished_reservations")
def complete_finished_reservations() -> dict[str, int]:
    """
    Complete confirmed reservations whose period is over.

    Each reservation goes through CompleteReservationCommand in its own
    unit of work, so one failure does not hold back the rest.

    Runs every 15 minutes.

    Returns:
        dict: {"completed": number of completed reservations, "failed": number of failures}
    """
    bootstrap_default()
    now = timezone.now()
    completed_count = 0
    failed_count = 0

    for reservation in DjangoReservationRepository().list_due_for_completion(now):
        try:
            message_bus.handle_command(CompleteReservationCommand(reservation_id=reservation.id))
            completed_count += 1
        except ReservationError as e:
            # Changed concurrently (e.g. cancelled) since it was listed.
            failed_count += 1
            logger.warning(f"Skipped completing reservation {reservation.reservation_number}: {e}")
        except Exception as e:
            failed_count += 1
            logger.error(f"Error completing reservation {reservation.id}: {e}", exc_info=True)

    if completed_count > 0:
        logger.info(f"Completed {completed_count} reservations")

    return {"completed": completed_count, "failed": failed_count}
