from __future__ import annotations
import os
from celery import Celery

# ensure Django settings are set for Celery
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "books_project.settings")

# name should match your project package
celery_app = Celery("books_project")

# read config from Django settings, using CELERY_ prefix
# (CELERY_BEAT_SCHEDULE holds the recurring generation tick)
celery_app.config_from_object("django.conf:settings", namespace="CELERY")

# autoload tasks from installed apps
celery_app.autodiscover_tasks()
