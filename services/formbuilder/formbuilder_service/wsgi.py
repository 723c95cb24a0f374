"""WSGI config for the form builder service."""
import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "formbuilder_service.settings")

application = get_wsgi_application()
