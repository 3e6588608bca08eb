"""ASGI config for the resource_server project."""

import os

from django.core.asgi import get_asgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "resource_server.settings")

application = get_asgi_application()
