"""Celery settings for SCHEDULER_MODE=celery.

Beat only enqueues; each task takes a Redis lock so overlapping firings of
the same cycle collapse into one run.
"""

from celery.schedules import crontab

from .settings import settings

broker_url = settings.redis_url
result_backend = settings.redis_url
result_expires = 3600

include = ["lifestock.tasks"]
task_default_queue = "lifestock"

# Crontab entries below are read in the reminder timezone
timezone = settings.TIMEZONE
enable_utc = True

task_serializer = result_serializer = "json"
accept_content = ["json"]

task_track_started = True
task_soft_time_limit = settings.REMINDER_LOCK_TIMEOUT - 60
task_time_limit = settings.REMINDER_LOCK_TIMEOUT

worker_prefetch_multiplier = 1
worker_max_tasks_per_child = 1000

# A failed cycle is logged and the next tick runs normally
task_acks_late = False
task_max_retries = 0

beat_schedule_filename = "tmp/celerybeat-schedule"
beat_schedule = {
    "hourly-reminder-scan": {
        "task": "lifestock.tasks.cron.hourly_reminder_scan.hourly_reminder_scan_task",
        "schedule": crontab(minute=0),
        "args": ("hourly_reminder_scan_cron",),
    },
    "daily-summary": {
        "task": "lifestock.tasks.cron.daily_summary.daily_summary_task",
        "schedule": crontab(
            hour=settings.DAILY_SUMMARY_HOUR, minute=settings.DAILY_SUMMARY_MINUTE
        ),
        "args": ("daily_summary_cron",),
    },
}
