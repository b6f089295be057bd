from datetime import datetime
from typing import List, Optional
from zoneinfo import ZoneInfo

from sqlalchemy import select, and_
from sqlalchemy.orm import Session, selectinload

from lifestock.db.models import CalendarEvent, ListItem, SharedList, Task
from lifestock.services.reminders.windows import ScanWindow, today_window


class ReminderQueryService:
    """Read side of the reminder engine.

    Every query loads the owner/creator and the shared/participant users so
    recipients can be resolved without further round trips.
    """

    def __init__(self, db_session: Session, zone: Optional[ZoneInfo] = None):
        self.db = db_session
        self.zone = zone

    def find_tasks_due_in_window(self, window: ScanWindow) -> List[Task]:
        """Incomplete tasks with ``window.start <= due_date < window.end``."""
        result = self.db.execute(
            select(Task)
            .options(selectinload(Task.owner), selectinload(Task.shared_with))
            .where(
                Task.due_date >= window.start,
                Task.due_date < window.end,
                Task.completed.is_(False),
            )
            .order_by(Task.due_date)
        )
        return list(result.scalars().all())

    def find_lists_with_items_due_in_window(
        self, window: ScanWindow
    ) -> List[SharedList]:
        """Lists holding at least one incomplete item due in ``window``.

        The loaded ``items`` are the whole list; callers filter per item.
        """
        item_due = and_(
            ListItem.due_date >= window.start,
            ListItem.due_date < window.end,
            ListItem.completed.is_(False),
        )
        result = self.db.execute(
            select(SharedList)
            .options(
                selectinload(SharedList.creator),
                selectinload(SharedList.collaborators),
                selectinload(SharedList.items),
            )
            .where(SharedList.items.any(item_due))
            .order_by(SharedList.created_at)
        )
        return list(result.scalars().all())

    def find_events_starting_in_window(self, window: ScanWindow) -> List[CalendarEvent]:
        result = self.db.execute(
            select(CalendarEvent)
            .options(
                selectinload(CalendarEvent.creator),
                selectinload(CalendarEvent.participants),
            )
            .where(
                CalendarEvent.start_date >= window.start,
                CalendarEvent.start_date < window.end,
            )
            .order_by(CalendarEvent.start_date)
        )
        return list(result.scalars().all())

    def find_tasks_due_today(self, now: datetime) -> List[Task]:
        return self.find_tasks_due_in_window(today_window(now, self.zone))

    def find_events_today(self, now: datetime) -> List[CalendarEvent]:
        return self.find_events_starting_in_window(today_window(now, self.zone))
