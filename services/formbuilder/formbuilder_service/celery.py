"""Celery application for the form builder service."""
from __future__ import annotations

import os

from celery import Celery

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "formbuilder_service.settings")

app = Celery("formbuilder_service")
app.config_from_object("django.conf:settings", namespace="CELERY")
app.autodiscover_tasks()
