from .hourly_reminder_scan import hourly_reminder_scan_task
from .daily_summary import daily_summary_task

__all__ = [
    "hourly_reminder_scan_task",
    "daily_summary_task",
]
