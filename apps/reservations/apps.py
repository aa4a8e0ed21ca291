from django.apps import AppConfig


class ReservationsConfig(AppConfig):
    name = 'apps.reservations'
    label = 'reservations'
    default_auto_field = 'django.db.models.BigAutoField'

    def ready(self):
        from .bootstrap import bootstrap_default

        bootstrap_default()
