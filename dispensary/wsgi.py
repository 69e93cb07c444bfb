"""
WSGI config for the dispensary project (no Socket.IO; use asgi.py for that).
"""

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'dispensary.settings')

application = get_wsgi_application()
