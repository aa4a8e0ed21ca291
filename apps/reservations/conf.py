"""Engine settings, read from the RESERVATIONS dict in Django settings."""

from django.conf import settings

DEFAULTS = {
    'SLOT_INCREMENT_MINUTES': 60,
    'MAX_SLOTS_PER_QUERY': 1000,
    'MAX_CONFLICT_RETRIES': 3,
    'MAX_RECURRING_OCCURRENCES': 366,
    'DEFAULT_CURRENCY': 'EUR',
    'NOTIFICATION_TASK': 'notifications.deliver_reservation_notification',
}


def engine_settings() -> dict:
    """Project overrides merged over DEFAULTS"""
    overrides = getattr(settings, 'RESERVATIONS', None) or {}
    unknown = set(overrides) - set(DEFAULTS)
    if unknown:
        raise ValueError(f"Unknown RESERVATIONS setting(s): {', '.join(sorted(unknown))}")
    return {**DEFAULTS, **overrides}
