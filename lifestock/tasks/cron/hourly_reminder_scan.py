import asyncio

from lifestock.celery import celery
from lifestock.services.reminders.scheduler import HOURLY
from lifestock.tasks.cron.cycle_runner import run_reminder_cycle


@celery.task(bind=True)
def hourly_reminder_scan_task(self, request_id: str):
    """
    Hourly task to remind users about tasks and list items due tomorrow and
    events starting in the next hour.

    Runs at minute 0 of every hour. Failures are logged and reported in the
    returned cycle report; the task is not retried.

    Args:
        request_id: The request ID for tracking purposes (provided by Celery Beat configuration)
    """
    return asyncio.run(run_reminder_cycle(HOURLY, request_id))
