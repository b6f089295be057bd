from .cron import *

__all__ = [
    # Scheduled/Cron Tasks
    "hourly_reminder_scan_task",
    "daily_summary_task",
]
