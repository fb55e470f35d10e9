"""Celery application for the marketplace core.

``DJANGO_SETTINGS_MODULE`` is set before the app is created so the worker
reads the ``CELERY_*`` settings (broker, beat schedule) from Django.
"""

import os

from celery import Celery

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

app = Celery("marketplace")

app.config_from_object("django.conf:settings", namespace="CELERY")

# Picks up tasks.py from every installed module (core, offers, ...)
app.autodiscover_tasks()
