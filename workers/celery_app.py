"""Celery app factory."""

from celery import Celery

celery_app = Celery("mockround")
celery_app.config_from_object("workers.celery_config")
celery_app.conf.imports = ("workers.tasks.emails", "workers.tasks.reminders")
