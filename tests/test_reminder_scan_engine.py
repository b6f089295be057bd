import pytest
from datetime import datetime
from unittest.mock import Mock

from lifestock.services.reminders.dispatch import (
    Channel,
    DeliveryStatus,
    ReminderDispatcher,
)
from lifestock.services.reminders.queries import ReminderQueryService
from lifestock.services.reminders.scan_engine import (
    ReminderCategory,
    ReminderScanEngine,
)
from lifestock.services.reminders.windows import tomorrow_window, event_window

from conftest import FakeEmailService, FakeTransport, FIXED_NOW, UTC


@pytest.fixture
def queries(db_session):
    return ReminderQueryService(db_session, UTC)


@pytest.fixture
def engine(queries, transport, email_service):
    return ReminderScanEngine(
        queries, ReminderDispatcher(transport, email_service), UTC
    )


class TestReminderQueries:
    """Window queries against the database."""

    def test_tasks_due_in_window(self, queries, make_user, make_task):
        owner = make_user("owner")
        midnight = make_task(owner, "Midnight", due_date=datetime(2025, 3, 11, 0, 0))
        due = make_task(owner, "Due", due_date=datetime(2025, 3, 11, 9, 0))
        make_task(owner, "Done", due_date=datetime(2025, 3, 11, 9, 0), completed=True)
        make_task(owner, "Later", due_date=datetime(2025, 3, 12, 0, 0))
        make_task(owner, "Today", due_date=datetime(2025, 3, 10, 23, 59, 59))
        make_task(owner, "Undated")

        tasks = queries.find_tasks_due_in_window(tomorrow_window(FIXED_NOW, UTC))

        # start of the window is inclusive, its end exclusive
        assert [t.id for t in tasks] == [midnight.id, due.id]
        assert tasks[0].owner.username == "owner"

    def test_lists_need_an_incomplete_item_in_window(
        self, queries, make_user, make_list, make_item
    ):
        creator = make_user("creator")
        due_list = make_list(creator, "Groceries")
        make_item(due_list, "Milk", due_date=datetime(2025, 3, 11, 8, 0))
        done_list = make_list(creator, "Hardware")
        make_item(done_list, "Nails", due_date=datetime(2025, 3, 11, 8, 0), completed=True)
        make_item(done_list, "Screws", due_date=datetime(2025, 3, 14, 8, 0))

        lists = queries.find_lists_with_items_due_in_window(
            tomorrow_window(FIXED_NOW, UTC)
        )

        assert [sl.id for sl in lists] == [due_list.id]

    def test_events_starting_in_window(self, queries, make_user, make_event):
        creator = make_user("creator")
        soon = make_event(creator, "Soon", start_date=datetime(2025, 3, 10, 15, 30))
        make_event(creator, "Too late", start_date=datetime(2025, 3, 10, 16, 30))
        make_event(creator, "Too early", start_date=datetime(2025, 3, 10, 15, 0))

        events = queries.find_events_starting_in_window(event_window(FIXED_NOW))

        assert [e.id for e in events] == [soon.id]


class TestTaskReminders:
    @pytest.mark.asyncio
    async def test_owner_and_shared_users_each_notified_once(
        self, engine, transport, email_service, make_user, make_task, tomorrow_noon
    ):
        owner, alice = make_user("owner"), make_user("alice")
        task = make_task(owner, due_date=tomorrow_noon, shared_with=[alice, owner])

        report = await engine.scan_task_reminders(FIXED_NOW)

        assert report.entities == 1
        assert report.recipients == 2
        assert [p["type"] for p in transport.for_user(owner.id)] == ["task_reminder"]
        assert [p["type"] for p in transport.for_user(alice.id)] == [
            "shared_task_reminder"
        ]
        assert transport.for_user(alice.id)[0]["taskId"] == str(task.id)
        assert len(email_service.sent_to("owner@example.com")) == 1
        assert len(email_service.sent_to("alice@example.com")) == 1

    @pytest.mark.asyncio
    async def test_completed_and_out_of_window_tasks_are_ignored(
        self, engine, transport, make_user, make_task
    ):
        owner = make_user("owner")
        make_task(owner, due_date=datetime(2025, 3, 11, 9, 0), completed=True)
        make_task(owner, due_date=datetime(2025, 3, 10, 23, 59))

        report = await engine.scan_task_reminders(FIXED_NOW)

        assert report.entities == 0
        assert transport.emitted == []

    @pytest.mark.asyncio
    async def test_one_failing_recipient_does_not_stop_the_others(
        self, queries, email_service, make_user, make_task, tomorrow_noon
    ):
        owner, alice, bob = make_user("owner"), make_user("alice"), make_user("bob")
        make_task(owner, due_date=tomorrow_noon, shared_with=[alice, bob])
        transport = FakeTransport(fail_for=[alice.id])
        engine = ReminderScanEngine(
            queries, ReminderDispatcher(transport, email_service), UTC
        )

        report = await engine.scan_task_reminders(FIXED_NOW)

        assert report.recipients == 3
        assert report.count(DeliveryStatus.FAILED, Channel.REALTIME) == 1
        assert report.count(DeliveryStatus.SENT, Channel.REALTIME) == 2
        assert report.count(DeliveryStatus.SENT, Channel.EMAIL) == 3
        assert transport.for_user(bob.id)

    @pytest.mark.asyncio
    async def test_email_raising_for_one_owner_spares_the_other_tasks(
        self, queries, transport, make_user, make_task, tomorrow_noon
    ):
        owners = [make_user("first"), make_user("second"), make_user("third")]
        for owner in owners:
            make_task(owner, f"{owner.username} task", due_date=tomorrow_noon)
        email_service = FakeEmailService(raise_for=["second@example.com"])
        engine = ReminderScanEngine(
            queries, ReminderDispatcher(transport, email_service), UTC
        )

        report = await engine.scan_task_reminders(FIXED_NOW)

        assert report.entities == 3
        assert report.count(DeliveryStatus.SENT, Channel.REALTIME) == 3
        assert report.count(DeliveryStatus.SENT, Channel.EMAIL) == 2
        assert report.count(DeliveryStatus.FAILED, Channel.EMAIL) == 1
        assert email_service.sent_to("first@example.com")
        assert email_service.sent_to("third@example.com")
        assert all(transport.for_user(owner.id) for owner in owners)


class TestListItemReminders:
    @pytest.mark.asyncio
    async def test_only_items_due_tomorrow_are_listed(
        self, engine, transport, make_user, make_list, make_item
    ):
        creator, alice = make_user("creator"), make_user("alice")
        shared_list = make_list(creator, "Groceries", collaborators=[alice])
        make_item(shared_list, "Milk", due_date=datetime(2025, 3, 11, 8, 0), position=0)
        make_item(shared_list, "Bread", due_date=datetime(2025, 3, 13, 8, 0), position=1)
        make_item(
            shared_list,
            "Eggs",
            due_date=datetime(2025, 3, 11, 10, 0),
            completed=True,
            position=2,
        )
        make_item(shared_list, "Butter", due_date=datetime(2025, 3, 11, 18, 0), position=3)

        report = await engine.scan_list_item_reminders(FIXED_NOW)

        assert report.entities == 1 and report.recipients == 2
        for user in (creator, alice):
            (realtime,) = transport.for_user(user.id)
            assert realtime["type"] == "list_item_reminder"
            assert [i["text"] for i in realtime["items"]] == ["Milk", "Butter"]
            assert realtime["message"] == (
                'Items in "Groceries" are due tomorrow: Milk, Butter'
            )


class TestEventReminders:
    @pytest.mark.asyncio
    async def test_creator_and_participants_receive_realtime_and_email(
        self, engine, transport, email_service, make_user, make_event
    ):
        creator, alice, bob = make_user("creator"), make_user("alice"), make_user("bob")
        make_event(
            creator,
            "Quarterly planning",
            start_date=datetime(2025, 3, 10, 15, 45),
            participants=[alice, bob],
        )

        report = await engine.scan_event_reminders(FIXED_NOW)

        assert report.category == ReminderCategory.EVENT_STARTING_SOON.value
        assert len(transport.emitted) == 3
        assert {uid for uid, _, _ in transport.emitted} == {creator.id, alice.id, bob.id}
        assert len(email_service.sent) == 3
        assert all("Quarterly planning" in m["html"] for m in email_service.sent)
        assert report.sent == 6 and report.failed == 0


class TestCategoryIsolation:
    @pytest.mark.asyncio
    async def test_fetch_failure_skips_only_that_category(
        self, queries, transport, email_service, make_user, make_event
    ):
        creator = make_user("creator")
        make_event(creator, start_date=datetime(2025, 3, 10, 16, 0))
        queries.find_tasks_due_in_window = Mock(side_effect=RuntimeError("db timeout"))
        engine = ReminderScanEngine(
            queries, ReminderDispatcher(transport, email_service), UTC
        )

        tasks_report, lists_report, events_report = await engine.run(FIXED_NOW)

        assert tasks_report.fetch_error == "db timeout"
        assert tasks_report.recipients == 0
        assert lists_report.fetch_error is None
        assert events_report.entities == 1
        assert transport.for_user(creator.id)[0]["type"] == "event_reminder"

    @pytest.mark.asyncio
    async def test_bad_entity_is_skipped(
        self, queries, transport, email_service, make_user, make_task, tomorrow_noon
    ):
        owner = make_user("owner")
        make_task(owner, "Fine", due_date=tomorrow_noon)
        broken = Mock()
        broken.owner = None
        broken.shared_with = 5  # not iterable
        queries.find_tasks_due_in_window = Mock(
            side_effect=lambda window: [broken]
            + ReminderQueryService.find_tasks_due_in_window(queries, window)
        )
        engine = ReminderScanEngine(
            queries, ReminderDispatcher(transport, email_service), UTC
        )

        report = await engine.scan_task_reminders(FIXED_NOW)

        assert report.entities == 1
        assert transport.for_user(owner.id)[0]["title"] == "Fine"
