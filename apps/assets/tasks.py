"""
Celery tasks for owned assets.
"""

import logging

from celery import shared_task

from apps.assets import services

logger = logging.getLogger(__name__)


@shared_task(name="apps.assets.tasks.flag_overdue_pickups")
def flag_overdue_pickups() -> str:
    """
    Mark missed appointments as no-shows and log assets past their pickup deadline.

    Runs every morning via Celery Beat.
    """
    result = services.flag_overdue_pickups()
    logger.info(
        f"Overdue pickup sweep: {result['no_shows']} no-shows, "
        f"{result['overdue_assets']} overdue assets"
    )
    return f"{result['no_shows']} no-shows, {result['overdue_assets']} overdue assets"
