from .dispatch import (
    Channel,
    DeliveryStatus,
    DeliveryResult,
    CategoryReport,
    CycleReport,
    ReminderDispatcher,
)
from .daily_summary import DailySummaryAggregator, SummaryAccumulator
from .queries import ReminderQueryService
from .scan_engine import ReminderCategory, ReminderScanEngine
from .scheduler import ReminderScheduler
from .windows import ScanWindow, event_window, today_window, tomorrow_window

__all__ = [
    "Channel",
    "DeliveryStatus",
    "DeliveryResult",
    "CategoryReport",
    "CycleReport",
    "ReminderDispatcher",
    "DailySummaryAggregator",
    "SummaryAccumulator",
    "ReminderQueryService",
    "ReminderCategory",
    "ReminderScanEngine",
    "ReminderScheduler",
    "ScanWindow",
    "event_window",
    "today_window",
    "tomorrow_window",
]
