from datetime import datetime
import enum
from typing import Callable, Iterable, List, Optional, Sequence, Tuple
from zoneinfo import ZoneInfo

from lifestock.db.models import User
from lifestock.services.reminders import payloads
from lifestock.services.reminders.dispatch import CategoryReport, ReminderDispatcher
from lifestock.services.reminders.payloads import ReminderPayload
from lifestock.services.reminders.queries import ReminderQueryService
from lifestock.services.reminders.recipients import (
    event_recipients,
    list_recipients,
    task_recipients,
)
from lifestock.services.reminders.windows import event_window, tomorrow_window
from lifestock.utils.logging import get_logger

logger = get_logger()


class ReminderCategory(str, enum.Enum):
    TASK_DUE_TOMORROW = "task_due_tomorrow"
    LIST_ITEM_DUE_TOMORROW = "list_item_due_tomorrow"
    EVENT_STARTING_SOON = "event_starting_soon"


# (recipient user, payload) pairs produced for one entity
Deliveries = List[Tuple[User, ReminderPayload]]


class ReminderScanEngine:
    """Scans the three reminder categories and fans out per recipient.

    A failure to fetch a category's entities abandons that category only.
    Delivery failures are recorded by the dispatcher and never stop the scan.
    """

    def __init__(
        self,
        queries: ReminderQueryService,
        dispatcher: ReminderDispatcher,
        zone: Optional[ZoneInfo] = None,
    ):
        self.queries = queries
        self.dispatcher = dispatcher
        self.zone = zone

    async def scan_task_reminders(self, now: datetime) -> CategoryReport:
        window = tomorrow_window(now, self.zone)

        def build(task) -> Deliveries:
            return [
                (recipient.user, payloads.task_reminder(task, recipient.is_primary))
                for recipient in task_recipients(task)
            ]

        return await self._scan(
            ReminderCategory.TASK_DUE_TOMORROW,
            lambda: self.queries.find_tasks_due_in_window(window),
            build,
        )

    async def scan_list_item_reminders(self, now: datetime) -> CategoryReport:
        window = tomorrow_window(now, self.zone)

        def build(shared_list) -> Deliveries:
            due_items = [
                item
                for item in shared_list.items
                if not item.completed and window.contains(item.due_date)
            ]
            if not due_items:
                return []
            payload = payloads.list_item_reminder(shared_list, due_items)
            return [(r.user, payload) for r in list_recipients(shared_list)]

        return await self._scan(
            ReminderCategory.LIST_ITEM_DUE_TOMORROW,
            lambda: self.queries.find_lists_with_items_due_in_window(window),
            build,
        )

    async def scan_event_reminders(self, now: datetime) -> CategoryReport:
        window = event_window(now)

        def build(event) -> Deliveries:
            payload = payloads.event_reminder(event)
            return [(r.user, payload) for r in event_recipients(event)]

        return await self._scan(
            ReminderCategory.EVENT_STARTING_SOON,
            lambda: self.queries.find_events_starting_in_window(window),
            build,
        )

    async def run(self, now: datetime) -> List[CategoryReport]:
        """All three categories, one after the other."""
        return [
            await self.scan_task_reminders(now),
            await self.scan_list_item_reminders(now),
            await self.scan_event_reminders(now),
        ]

    async def _scan(
        self,
        category: ReminderCategory,
        fetch: Callable[[], Sequence],
        build: Callable[[object], Deliveries],
    ) -> CategoryReport:
        report = CategoryReport(category=category.value)
        try:
            entities: Iterable = fetch()
        except Exception as e:
            report.fetch_error = str(e)
            logger.error(f"Skipping {category.value}: failed to fetch entities: {str(e)}")
            return report

        for entity in entities:
            try:
                deliveries = build(entity)
            except Exception as e:
                logger.error(
                    f"Skipping {category.value} entity {getattr(entity, 'id', None)}: {str(e)}"
                )
                continue
            if not deliveries:
                continue

            report.entities += 1
            for user, payload in deliveries:
                report.record(await self.dispatcher.deliver(user, payload))

        logger.info(
            f"{category.value}: {report.entities} entities, {report.recipients} recipients, "
            f"{report.sent} sent, {report.failed} failed, {report.skipped} skipped"
        )
        return report
