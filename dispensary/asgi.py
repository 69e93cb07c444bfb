"""
ASGI config for the dispensary project.

It exposes the ASGI callable as a module-level variable named ``application``:
the Django app wrapped by the Socket.IO server.
"""

import os

from django.core.asgi import get_asgi_application
import socketio

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'dispensary.settings')

django_asgi_app = get_asgi_application()

from .sio import sio  # noqa: E402

application = socketio.ASGIApp(sio, django_asgi_app)
