"""
ASGI config for LabWise project.

Preferred for the SSE endpoints: streaming responses hold a worker per client
under WSGI.
"""
import os

from django.core.asgi import get_asgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'config.settings')

application = get_asgi_application()
