"""Development settings.

Debug on, any host, mail to the console and verbose engine logs.
"""

from .base import *  # noqa: F401,F403
from .base import LOGGING

DEBUG = True

ALLOWED_HOSTS = ['*']

EMAIL_BACKEND = 'django.core.mail.backends.console.EmailBackend'

LOGGING['loggers']['apps']['level'] = 'DEBUG'
