"""Celery application for marketplace syncs and other background work."""

import os

from celery import Celery

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings.local")

app = Celery("contract_lifecycle")

# CELERY_* Django settings configure the app, including the beat schedule
app.config_from_object("django.conf:settings", namespace="CELERY")
app.autodiscover_tasks()
