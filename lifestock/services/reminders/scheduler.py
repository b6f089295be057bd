import asyncio
from datetime import datetime
from typing import Awaitable, Callable, Dict, Optional, Set
import uuid
from zoneinfo import ZoneInfo

from celery.schedules import crontab
from sqlalchemy.orm import Session

from lifestock.config.settings import settings
from lifestock.db.session import SessionLocal
from lifestock.services.channels.base import RealtimeTransport
from lifestock.services.channels.email_service import EmailService
from lifestock.services.channels.push_service import PushNotificationService
from lifestock.services.reminders.daily_summary import DailySummaryAggregator
from lifestock.services.reminders.dispatch import CycleReport, ReminderDispatcher
from lifestock.services.reminders.queries import ReminderQueryService
from lifestock.services.reminders.scan_engine import ReminderScanEngine
from lifestock.utils.context import bound_request_id
from lifestock.utils.datetime_utils import local_now, local_zone, utc_now
from lifestock.utils.logging import get_logger

logger = get_logger()

HOURLY = "hourly"
DAILY = "daily"


class ReminderScheduler:
    """Owns the hourly scan and daily summary timers.

    Holds the realtime transport and builds a fresh session, query layer and
    dispatcher for each cycle. A trigger that fires while its previous cycle
    is still running is skipped.
    """

    def __init__(
        self,
        transport: Optional[RealtimeTransport] = None,
        session_factory: Callable[[], Session] = SessionLocal,
        email_service: Optional[EmailService] = None,
        push_enabled: Optional[bool] = None,
        zone: Optional[ZoneInfo] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.transport = transport
        self.session_factory = session_factory
        self.email_service = email_service or EmailService()
        self.push_enabled = settings.push_enabled if push_enabled is None else push_enabled
        self.zone = zone or local_zone()
        self._clock = clock or (lambda: local_now(self.zone))
        self.hourly_schedule = crontab(minute=0, nowfun=self._now)
        self.daily_schedule = crontab(
            hour=settings.DAILY_SUMMARY_HOUR,
            minute=settings.DAILY_SUMMARY_MINUTE,
            nowfun=self._now,
        )
        self._locks: Dict[str, asyncio.Lock] = {
            HOURLY: asyncio.Lock(),
            DAILY: asyncio.Lock(),
        }
        self._loops: Dict[str, asyncio.Task] = {}
        self._cycles: Set[asyncio.Task] = set()

    def _now(self) -> datetime:
        return self._clock()

    def set_transport(self, transport: Optional[RealtimeTransport]) -> None:
        self.transport = transport

    @property
    def running(self) -> bool:
        return any(not task.done() for task in self._loops.values())

    def is_cycle_running(self, trigger: str) -> bool:
        return self._locks[trigger].locked()

    def next_fire_delay(self, schedule: crontab) -> float:
        """Seconds from now until ``schedule`` next matches."""
        return max(schedule.remaining_estimate(self._now()).total_seconds(), 0.0)

    def start(self) -> None:
        if self.running:
            logger.warning("Reminder scheduler already running")
            return
        self._loops = {
            HOURLY: asyncio.create_task(
                self._timer(HOURLY, self.hourly_schedule, self.run_hourly_cycle),
                name="reminder-hourly",
            ),
            DAILY: asyncio.create_task(
                self._timer(DAILY, self.daily_schedule, self.run_daily_cycle),
                name="reminder-daily",
            ),
        }
        logger.info(
            f"Reminder scheduler started (hourly at minute 0, daily summary at "
            f"{settings.DAILY_SUMMARY_HOUR:02d}:{settings.DAILY_SUMMARY_MINUTE:02d} "
            f"{self.zone.key})"
        )

    async def stop(self) -> None:
        tasks = list(self._loops.values()) + list(self._cycles)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._loops = {}
        self._cycles.clear()
        logger.info("Reminder scheduler stopped")

    async def _timer(
        self,
        trigger: str,
        schedule: crontab,
        cycle: Callable[[], Awaitable[Optional[CycleReport]]],
    ) -> None:
        while True:
            delay = self.next_fire_delay(schedule)
            logger.debug(f"Next {trigger} reminder cycle in {delay:.0f}s")
            await asyncio.sleep(delay)
            # The cycle runs beside the timer so an overrunning cycle is seen
            # by the next firing and skipped.
            task = asyncio.create_task(cycle(), name=f"reminder-{trigger}-cycle")
            self._cycles.add(task)
            task.add_done_callback(self._cycles.discard)
            # Let the clock move past the boundary before recomputing.
            await asyncio.sleep(1)

    async def run_hourly_cycle(
        self, now: Optional[datetime] = None, cycle_id: Optional[str] = None
    ) -> Optional[CycleReport]:
        """Task, list item and event scans, one after the other."""

        async def scans(db: Session, report: CycleReport, at: datetime) -> None:
            engine = ReminderScanEngine(
                ReminderQueryService(db, self.zone), self._dispatcher(db), self.zone
            )
            report.categories.extend(await engine.run(at))

        return await self._run_cycle(HOURLY, scans, now, cycle_id)

    async def run_daily_cycle(
        self, now: Optional[datetime] = None, cycle_id: Optional[str] = None
    ) -> Optional[CycleReport]:
        async def summary(db: Session, report: CycleReport, at: datetime) -> None:
            aggregator = DailySummaryAggregator(
                ReminderQueryService(db, self.zone), self._dispatcher(db)
            )
            report.categories.append(await aggregator.run(at))

        return await self._run_cycle(DAILY, summary, now, cycle_id)

    def _dispatcher(self, db: Session) -> ReminderDispatcher:
        push_service = PushNotificationService(db) if self.push_enabled else None
        return ReminderDispatcher(self.transport, self.email_service, push_service)

    async def _run_cycle(
        self,
        trigger: str,
        body: Callable[[Session, CycleReport, datetime], Awaitable[None]],
        now: Optional[datetime],
        cycle_id: Optional[str],
    ) -> Optional[CycleReport]:
        lock = self._locks[trigger]
        if lock.locked():
            logger.warning(
                f"Skipping {trigger} reminder cycle: previous cycle still running"
            )
            return None

        async with lock:
            cycle_id = cycle_id or f"{trigger}-{uuid.uuid4().hex[:12]}"
            with bound_request_id(cycle_id):
                at = now or utc_now()
                report = CycleReport(cycle_id=cycle_id, trigger=trigger, started_at=utc_now())
                logger.info(f"Starting {trigger} reminder cycle")
                db = None
                try:
                    db = self.session_factory()
                    await body(db, report, at)
                except Exception as e:
                    logger.exception(f"{trigger} reminder cycle aborted: {str(e)}")
                finally:
                    if db is not None:
                        db.close()
                report.finished_at = utc_now()
                logger.info(
                    f"Finished {trigger} reminder cycle: {report.sent} sent, "
                    f"{report.failed} failed, {report.skipped} skipped"
                )
                return report
