"""ASGI entry point for async-capable servers (uvicorn, daphne).

The API is synchronous; ASGI only changes how requests reach it.
"""

import os

from django.core.asgi import get_asgi_application  # type: ignore

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'config.settings.dev')

application = get_asgi_application()
