"""
Celery configuration for the gold trading storefront.
"""

import os

from celery import Celery
from celery.schedules import crontab

# Set the default Django settings module for the 'celery' program.
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings.development")

app = Celery("storefront")

# namespace='CELERY' means all celery-related configuration keys
# should have a `CELERY_` prefix.
app.config_from_object("django.conf:settings", namespace="CELERY")

# Load task modules from all registered Django apps.
app.autodiscover_tasks()

app.conf.beat_schedule = {
    # Flag physical assets whose pickup deadline has passed, every morning
    "flag-overdue-pickups": {
        "task": "apps.assets.tasks.flag_overdue_pickups",
        "schedule": crontab(hour=6, minute=0),
    },
    # Refresh live metal prices from the configured feed
    "refresh-live-prices": {
        "task": "apps.pricing.tasks.refresh_live_prices",
        "schedule": crontab(minute="*/5"),
    },
}
