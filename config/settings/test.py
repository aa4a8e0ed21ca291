"""Test settings.

In-memory SQLite, eager Celery with an in-memory broker, locmem email
and quieter logs.
"""

from .base import *  # noqa: F401,F403
from .base import LOGGING

DEBUG = False

SECRET_KEY = 'test-secret-key'

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': ':memory:',
    }
}

PASSWORD_HASHERS = ['django.contrib.auth.hashers.MD5PasswordHasher']

EMAIL_BACKEND = 'django.core.mail.backends.locmem.EmailBackend'

CELERY_BROKER_URL = 'memory://'
CELERY_RESULT_BACKEND = 'cache+memory://'
CELERY_TASK_ALWAYS_EAGER = True
CELERY_TASK_EAGER_PROPAGATES = True

LOGGING['loggers']['apps']['level'] = 'WARNING'
LOGGING['loggers']['shared']['level'] = 'WARNING'
