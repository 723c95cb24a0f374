"""Django project for the form builder service."""
from .celery import app as celery_app

__all__ = ["celery_app"]
