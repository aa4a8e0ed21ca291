"""Celery application of the reservation engine.

Workers discover the tasks of every installed app. Notification
deliveries are sent by name to a separate queue so a slow mail or SMS
provider never holds up the periodic reservation jobs.
"""

import os

from celery import Celery
from celery.schedules import crontab  # type: ignore

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings.dev")

app = Celery("reservation_engine")

app.config_from_object("django.conf:settings", namespace="CELERY")
app.autodiscover_tasks()

app.conf.task_routes = {
    "notifications.*": {"queue": "notifications"},
}

app.conf.beat_schedule = {
    # Close confirmed reservations whose period has ended
    "complete-finished-reservations": {
        "task": "reservations.complete_finished_reservations",
        "schedule": crontab(minute="*/15"),
        "options": {"expires": 600},
    },
}
