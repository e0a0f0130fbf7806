"""
Celery configuration for the refund engine.

Celery runs the refund compensation outbox:
- run_compensation_task: retries one inventory restore or split reversal
- retry_pending_compensations: periodic sweep (django-celery-beat) that
  re-queues compensation tasks still pending or failed

Redis is both the message broker and result backend. Tasks are
auto-discovered from all installed Django apps.

For more information, see:
https://docs.celeryq.dev/en/stable/django/first-steps-with-django.html
"""

import os

from celery import Celery

# Set the default Django settings module for the Celery worker
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

app = Celery("config")

# All Celery settings are prefixed with CELERY_ in settings.py
app.config_from_object("django.conf:settings", namespace="CELERY")

# Celery will look for a tasks.py module in each installed app
app.autodiscover_tasks()
