import asyncio
import pytest
from datetime import datetime, timezone

from lifestock.services.reminders.scheduler import DAILY, HOURLY, ReminderScheduler
from lifestock.services.reminders.scan_engine import ReminderCategory

from conftest import FakeEmailService, FakeTransport, FIXED_NOW, UTC

pytestmark = pytest.mark.integration


class GatedTransport(FakeTransport):
    """Blocks every emit until ``gate`` is set."""

    def __init__(self):
        super().__init__()
        self.gate = asyncio.Event()
        self.started = asyncio.Event()

    async def emit_to_user(self, user_id, event_name, payload):
        self.started.set()
        await self.gate.wait()
        await super().emit_to_user(user_id, event_name, payload)


@pytest.fixture
def make_scheduler(session_factory):
    def _make_scheduler(transport=None, email_service=None) -> ReminderScheduler:
        return ReminderScheduler(
            transport=transport,
            session_factory=session_factory,
            email_service=email_service or FakeEmailService(),
            push_enabled=False,
            zone=UTC,
            clock=lambda: FIXED_NOW,
        )

    return _make_scheduler


class TestCycles:
    @pytest.mark.asyncio
    async def test_hourly_cycle_runs_every_category(
        self, make_scheduler, make_user, make_task, make_event, tomorrow_noon
    ):
        owner = make_user("owner")
        make_task(owner, due_date=tomorrow_noon)
        make_event(owner, "Standup", start_date=datetime(2025, 3, 10, 16, 0))
        transport, email = FakeTransport(), FakeEmailService()
        scheduler = make_scheduler(transport, email)

        report = await scheduler.run_hourly_cycle(now=FIXED_NOW, cycle_id="hourly-test")

        assert report.cycle_id == "hourly-test"
        assert report.trigger == HOURLY
        assert [c.category for c in report.categories] == [
            ReminderCategory.TASK_DUE_TOMORROW.value,
            ReminderCategory.LIST_ITEM_DUE_TOMORROW.value,
            ReminderCategory.EVENT_STARTING_SOON.value,
        ]
        assert report.finished_at is not None
        assert sorted(p["type"] for p in transport.for_user(owner.id)) == [
            "event_reminder",
            "task_reminder",
        ]
        assert report.sent == 4

    @pytest.mark.asyncio
    async def test_daily_cycle(self, make_scheduler, make_user, make_task):
        alice = make_user("alice")
        make_task(alice, "Rent", due_date=datetime(2025, 3, 10, 18, 0))
        transport = FakeTransport()

        report = await make_scheduler(transport).run_daily_cycle(now=FIXED_NOW)

        assert report.trigger == DAILY
        assert report.cycle_id.startswith("daily-")
        assert report.category("daily_summary").recipients == 1
        assert transport.for_user(alice.id)[0]["taskCount"] == 1

    @pytest.mark.asyncio
    async def test_cycle_without_transport_still_sends_email(
        self, make_scheduler, make_user, make_task, tomorrow_noon
    ):
        owner = make_user("owner")
        make_task(owner, due_date=tomorrow_noon)
        email = FakeEmailService()

        report = await make_scheduler(None, email).run_hourly_cycle(now=FIXED_NOW)

        tasks_report = report.category(ReminderCategory.TASK_DUE_TOMORROW.value)
        assert tasks_report.skipped == 1
        assert tasks_report.sent == 1
        assert len(email.sent_to("owner@example.com")) == 1

    @pytest.mark.asyncio
    async def test_session_failure_does_not_raise(self, transport):
        def broken_factory():
            raise RuntimeError("cannot connect")

        scheduler = ReminderScheduler(
            transport=transport,
            session_factory=broken_factory,
            email_service=FakeEmailService(),
            push_enabled=False,
            zone=UTC,
        )

        report = await scheduler.run_hourly_cycle(now=FIXED_NOW)

        assert report is not None
        assert report.categories == []
        assert report.finished_at is not None
        assert not scheduler.is_cycle_running(HOURLY)


class TestSingleFlight:
    @pytest.mark.asyncio
    async def test_overlapping_trigger_is_skipped(
        self, make_scheduler, make_user, make_task, tomorrow_noon
    ):
        owner = make_user("owner")
        make_task(owner, due_date=tomorrow_noon)
        transport = GatedTransport()
        scheduler = make_scheduler(transport)

        first = asyncio.create_task(scheduler.run_hourly_cycle(now=FIXED_NOW))
        await asyncio.wait_for(transport.started.wait(), timeout=5)

        assert scheduler.is_cycle_running(HOURLY)
        assert await scheduler.run_hourly_cycle(now=FIXED_NOW) is None

        transport.gate.set()
        report = await asyncio.wait_for(first, timeout=5)
        assert report is not None
        assert len(transport.for_user(owner.id)) == 1
        assert not scheduler.is_cycle_running(HOURLY)

    @pytest.mark.asyncio
    async def test_triggers_do_not_block_each_other(
        self, make_scheduler, make_user, make_task, tomorrow_noon
    ):
        owner = make_user("owner")
        make_task(owner, due_date=tomorrow_noon)
        transport = GatedTransport()
        scheduler = make_scheduler(transport)

        hourly = asyncio.create_task(scheduler.run_hourly_cycle(now=FIXED_NOW))
        await asyncio.wait_for(transport.started.wait(), timeout=5)

        daily = await scheduler.run_daily_cycle(now=FIXED_NOW)

        assert daily is not None
        transport.gate.set()
        await asyncio.wait_for(hourly, timeout=5)


class TestTimers:
    def test_next_fire_delays(self, make_scheduler):
        scheduler = make_scheduler()

        hourly = scheduler.next_fire_delay(scheduler.hourly_schedule)
        daily = scheduler.next_fire_delay(scheduler.daily_schedule)

        # 14:30 UTC: next top of the hour is 15:00, next 09:00 is tomorrow
        assert hourly == pytest.approx(30 * 60, abs=1)
        assert daily == pytest.approx(18.5 * 3600, abs=1)

    @pytest.mark.asyncio
    async def test_start_and_stop(self, make_scheduler):
        scheduler = make_scheduler()

        scheduler.start()
        assert scheduler.running
        scheduler.start()  # second start is a no-op

        await scheduler.stop()
        assert not scheduler.running

    @pytest.mark.asyncio
    async def test_clock_uses_configured_zone(self, session_factory):
        scheduler = ReminderScheduler(
            session_factory=session_factory,
            email_service=FakeEmailService(),
            push_enabled=False,
            zone=UTC,
        )

        assert scheduler._now().tzinfo is not None
        assert scheduler._now() <= datetime.now(timezone.utc)
