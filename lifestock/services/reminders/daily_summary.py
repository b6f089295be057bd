from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional, Sequence
import uuid

from lifestock.config.settings import settings
from lifestock.db.models import CalendarEvent, Task, User
from lifestock.services.reminders import payloads
from lifestock.services.reminders.dispatch import CategoryReport, ReminderDispatcher
from lifestock.services.reminders.queries import ReminderQueryService
from lifestock.services.reminders.recipients import event_recipients, task_recipients
from lifestock.utils.logging import get_logger

logger = get_logger()

DAILY_SUMMARY_CATEGORY = "daily_summary"


@dataclass
class SummaryAccumulator:
    user: User
    tasks: List[Task] = field(default_factory=list)
    events: List[CalendarEvent] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.tasks and not self.events


class DailySummaryAggregator:
    """One summary per user of everything due or starting today."""

    def __init__(
        self,
        queries: ReminderQueryService,
        dispatcher: ReminderDispatcher,
        preview_limit: Optional[int] = None,
    ):
        self.queries = queries
        self.dispatcher = dispatcher
        self.preview_limit = (
            settings.DAILY_SUMMARY_PREVIEW_LIMIT
            if preview_limit is None
            else preview_limit
        )

    @staticmethod
    def build_accumulators(
        tasks: Sequence[Task], events: Sequence[CalendarEvent]
    ) -> Dict[uuid.UUID, SummaryAccumulator]:
        """Group tasks and events by every user they touch.

        Entries are created on first touch, so no user ends up with an empty
        accumulator.
        """
        accumulators: Dict[uuid.UUID, SummaryAccumulator] = {}

        def touch(user: User) -> SummaryAccumulator:
            if user.id not in accumulators:
                accumulators[user.id] = SummaryAccumulator(user=user)
            return accumulators[user.id]

        for task in tasks:
            for recipient in task_recipients(task):
                touch(recipient.user).tasks.append(task)

        for event in events:
            for recipient in event_recipients(event):
                touch(recipient.user).events.append(event)

        return accumulators

    async def run(self, now: datetime) -> CategoryReport:
        report = CategoryReport(category=DAILY_SUMMARY_CATEGORY)
        try:
            tasks = self.queries.find_tasks_due_today(now)
            events = self.queries.find_events_today(now)
        except Exception as e:
            report.fetch_error = str(e)
            logger.error(f"Skipping daily summary: failed to fetch entities: {str(e)}")
            return report

        report.entities = len(tasks) + len(events)
        for user_id, accumulator in self.build_accumulators(tasks, events).items():
            if accumulator.is_empty:
                continue
            try:
                payload = payloads.daily_summary(
                    accumulator.tasks, accumulator.events, self.preview_limit
                )
                report.record(await self.dispatcher.deliver(accumulator.user, payload))
            except Exception as e:
                logger.error(f"Daily summary for user {user_id} failed: {str(e)}")

        logger.info(
            f"Sent daily summaries to {report.recipients} users "
            f"({report.sent} sent, {report.failed} failed, {report.skipped} skipped)"
        )
        return report
