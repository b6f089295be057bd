import asyncio

from lifestock.celery import celery
from lifestock.services.reminders.scheduler import DAILY
from lifestock.tasks.cron.cycle_runner import run_reminder_cycle


@celery.task(bind=True)
def daily_summary_task(self, request_id: str):
    """
    Daily task sending each user one summary of the tasks and events due today.

    Args:
        request_id: The request ID for tracking purposes (provided by Celery Beat configuration)
    """
    return asyncio.run(run_reminder_cycle(DAILY, request_id))
