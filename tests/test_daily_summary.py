import pytest
from datetime import datetime
from unittest.mock import Mock

from lifestock.services.reminders.daily_summary import (
    DAILY_SUMMARY_CATEGORY,
    DailySummaryAggregator,
)
from lifestock.services.reminders.dispatch import ReminderDispatcher
from lifestock.services.reminders.queries import ReminderQueryService

from conftest import FakeTransport, FIXED_NOW, UTC


@pytest.fixture
def queries(db_session):
    return ReminderQueryService(db_session, UTC)


@pytest.fixture
def aggregator(queries, transport, email_service):
    return DailySummaryAggregator(
        queries, ReminderDispatcher(transport, email_service), preview_limit=5
    )


class TestBuildAccumulators:
    def test_groups_tasks_and_events_by_every_user_they_touch(
        self, make_user, make_task, make_event
    ):
        alice, bob, carol = make_user("alice"), make_user("bob"), make_user("carol")
        rent = make_task(alice, "Rent", due_date=datetime(2025, 3, 10, 18, 0))
        report = make_task(
            bob, "Report", due_date=datetime(2025, 3, 10, 20, 0), shared_with=[alice]
        )
        dinner = make_event(carol, "Dinner", participants=[bob])

        accumulators = DailySummaryAggregator.build_accumulators(
            [rent, report], [dinner]
        )

        assert [t.title for t in accumulators[alice.id].tasks] == ["Rent", "Report"]
        assert accumulators[alice.id].events == []
        assert [t.title for t in accumulators[bob.id].tasks] == ["Report"]
        assert [e.title for e in accumulators[bob.id].events] == ["Dinner"]
        assert accumulators[carol.id].tasks == []
        assert not any(a.is_empty for a in accumulators.values())

    def test_nothing_due_means_no_accumulators(self):
        assert DailySummaryAggregator.build_accumulators([], []) == {}


class TestDailySummaryRun:
    @pytest.mark.asyncio
    async def test_one_summary_per_user_with_counts(
        self, aggregator, transport, email_service, make_user, make_task, make_event
    ):
        alice, bob = make_user("alice"), make_user("bob")
        make_task(alice, "Rent", due_date=datetime(2025, 3, 10, 18, 0))
        make_task(alice, "Gym", due_date=datetime(2025, 3, 10, 7, 0))
        make_event(bob, "Dentist", start_date=datetime(2025, 3, 10, 16, 0), participants=[alice])

        report = await aggregator.run(FIXED_NOW)

        assert report.category == DAILY_SUMMARY_CATEGORY
        assert report.entities == 3
        assert report.recipients == 2

        (alice_summary,) = transport.for_user(alice.id)
        assert alice_summary["type"] == "daily_summary"
        assert alice_summary["taskCount"] == 2
        assert alice_summary["eventCount"] == 1
        assert alice_summary["message"] == "You have 2 tasks and 1 events due today"

        (bob_summary,) = transport.for_user(bob.id)
        assert bob_summary["taskCount"] == 0
        assert bob_summary["eventCount"] == 1

        assert len(email_service.sent_to("alice@example.com")) == 1
        assert len(email_service.sent_to("bob@example.com")) == 1

    @pytest.mark.asyncio
    async def test_users_with_nothing_due_get_nothing(
        self, aggregator, transport, email_service, make_user, make_task
    ):
        alice = make_user("alice")
        make_user("idle")
        make_task(alice, "Tomorrow", due_date=datetime(2025, 3, 11, 9, 0))
        make_task(alice, "Done", due_date=datetime(2025, 3, 10, 9, 0), completed=True)

        report = await aggregator.run(FIXED_NOW)

        assert report.recipients == 0
        assert transport.emitted == []
        assert email_service.sent == []

    @pytest.mark.asyncio
    async def test_preview_is_capped(
        self, queries, transport, email_service, make_user, make_task
    ):
        alice = make_user("alice")
        for hour in range(1, 8):
            make_task(alice, f"Task {hour}", due_date=datetime(2025, 3, 10, hour, 0))
        aggregator = DailySummaryAggregator(
            queries, ReminderDispatcher(transport, email_service), preview_limit=3
        )

        await aggregator.run(FIXED_NOW)

        (summary,) = transport.for_user(alice.id)
        assert summary["taskCount"] == 7
        assert [t["title"] for t in summary["tasks"]] == ["Task 1", "Task 2", "Task 3"]

    @pytest.mark.asyncio
    async def test_one_users_failure_does_not_stop_the_rest(
        self, queries, email_service, make_user, make_task
    ):
        alice, bob = make_user("alice"), make_user("bob")
        make_task(alice, "Rent", due_date=datetime(2025, 3, 10, 18, 0))
        make_task(bob, "Taxes", due_date=datetime(2025, 3, 10, 18, 0))
        transport = FakeTransport(fail_for=[alice.id])
        aggregator = DailySummaryAggregator(
            queries, ReminderDispatcher(transport, email_service)
        )

        report = await aggregator.run(FIXED_NOW)

        assert report.recipients == 2
        assert report.failed == 1
        assert transport.for_user(bob.id)
        assert len(email_service.sent) == 2

    @pytest.mark.asyncio
    async def test_fetch_failure_is_reported(self, transport, email_service):
        queries = Mock()
        queries.find_tasks_due_today.side_effect = RuntimeError("db down")
        aggregator = DailySummaryAggregator(
            queries, ReminderDispatcher(transport, email_service)
        )

        report = await aggregator.run(FIXED_NOW)

        assert report.fetch_error == "db down"
        assert transport.emitted == []
