"""
WSGI config for the ValueXchange project, used for plain HTTP deployments
without websocket support.
"""
import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'project.settings.prod')

application = get_wsgi_application()
