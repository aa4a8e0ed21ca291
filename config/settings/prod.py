"""Production settings.

Secrets and hosts come from the environment only. Use PostgreSQL or
MySQL here: SQLite ignores the per-resource row locks and serializes
every writer instead.
"""

from .base import *  # noqa: F401,F403
from .base import DATABASES, get_env

DEBUG = False

SECRET_KEY = get_env('DJANGO_SECRET_KEY', required=True)

ALLOWED_HOSTS = [host.strip() for host in get_env('DJANGO_ALLOWED_HOSTS', '').split(',') if host.strip()]

DATABASES['default']['CONN_MAX_AGE'] = int(get_env('DB_CONN_MAX_AGE', 60))

CSRF_COOKIE_SECURE = True
SESSION_COOKIE_SECURE = True
SECURE_PROXY_SSL_HEADER = ('HTTP_X_FORWARDED_PROTO', 'https')
