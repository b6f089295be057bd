import pytest
import uuid
from datetime import datetime
from types import SimpleNamespace

from lifestock.db.models import Priority
from lifestock.services.reminders import payloads
from lifestock.services.reminders.recipients import (
    resolve_recipients,
    task_recipients,
    event_recipients,
)

pytestmark = pytest.mark.unit


def _user(name: str, user_id=None):
    return SimpleNamespace(
        id=user_id if user_id is not None else uuid.uuid4(),
        username=name,
        email=f"{name}@example.com",
    )


class TestResolveRecipients:
    """Each user is notified at most once per entity."""

    def test_owner_first_then_members(self):
        owner, alice, bob = _user("owner"), _user("alice"), _user("bob")

        recipients = resolve_recipients(owner, [alice, bob])

        assert [r.user for r in recipients] == [owner, alice, bob]
        assert [r.is_primary for r in recipients] == [True, False, False]

    def test_owner_listed_as_member_is_kept_once_as_primary(self):
        owner, alice = _user("owner"), _user("alice")

        recipients = resolve_recipients(owner, [alice, owner])

        assert len(recipients) == 2
        assert recipients[0].user is owner and recipients[0].is_primary

    def test_duplicate_members_are_collapsed(self):
        owner = _user("owner")
        alice = _user("alice")
        alice_again = _user("alice", user_id=alice.id)

        recipients = resolve_recipients(owner, [alice, alice_again])

        assert [r.user.id for r in recipients] == [owner.id, alice.id]

    def test_missing_users_are_dropped(self):
        alice = _user("alice")
        ghost = SimpleNamespace(id=None, username="ghost", email=None)

        recipients = resolve_recipients(None, [ghost, None, alice])

        assert [r.user for r in recipients] == [alice]
        assert recipients[0].is_primary is False

    def test_no_members(self):
        owner = _user("owner")

        assert resolve_recipients(owner, []) == [(owner, True)]

    def test_task_and_event_helpers(self, make_user, make_task, make_event):
        owner = make_user("owner")
        friend = make_user("friend")
        task = make_task(owner, shared_with=[friend, owner])
        event = make_event(owner, participants=[friend])

        assert [r.user.id for r in task_recipients(task)] == [owner.id, friend.id]
        assert [r.user.id for r in event_recipients(event)] == [owner.id, friend.id]


class TestReminderPayloads:
    def _task(self, **overrides):
        owner = _user("owner")
        values = dict(
            id=uuid.uuid4(),
            title="Pay rent",
            description=None,
            due_date=datetime(2025, 3, 11, 12, 0),
            priority=Priority.HIGH,
            owner=owner,
        )
        values.update(overrides)
        return SimpleNamespace(**values)

    def test_owner_and_shared_task_wording_differs(self):
        task = self._task()

        owner_payload = payloads.task_reminder(task, is_owner=True)
        shared_payload = payloads.task_reminder(task, is_owner=False)

        assert owner_payload.reminder_type == payloads.TASK_REMINDER
        assert owner_payload.message == 'Task "Pay rent" is due tomorrow!'
        assert shared_payload.reminder_type == payloads.SHARED_TASK_REMINDER
        assert shared_payload.message == 'Shared task "Pay rent" is due tomorrow!'
        assert shared_payload.extra["owner"] == "owner"

    def test_realtime_payload_carries_reference_and_due_date(self):
        task = self._task()

        realtime = payloads.task_reminder(task, is_owner=True).to_realtime()

        assert realtime["type"] == "task_reminder"
        assert realtime["taskId"] == str(task.id)
        assert realtime["dueDate"] == "2025-03-11T12:00:00+00:00"

    def test_email_html_escapes_user_content(self):
        task = self._task(title="<script>alert(1)</script>")
        recipient = _user("owner")

        html = payloads.task_reminder(task, is_owner=True).to_email_html(recipient)

        assert "<script>" not in html
        assert "&lt;script&gt;" in html
        assert "Hello owner" in html

    def test_push_payload(self):
        task = self._task()

        push = payloads.task_reminder(task, is_owner=True).to_push()

        assert push["title"] == "Task Reminder - LifeStock"
        assert push["body"] == 'Task "Pay rent" is due tomorrow!'
        assert push["data"] == {
            "type": "task_reminder",
            "url": f"/tasks/{task.id}",
            "taskId": str(task.id),
        }

    def test_list_item_payload_names_every_due_item(self):
        shared_list = SimpleNamespace(id=uuid.uuid4(), name="Groceries")
        items = [
            SimpleNamespace(
                id=uuid.uuid4(),
                text=text,
                due_date=datetime(2025, 3, 11, 9, 0),
                priority=Priority.MEDIUM,
            )
            for text in ("Milk", "Eggs")
        ]

        payload = payloads.list_item_reminder(shared_list, items)

        assert payload.message == 'Items in "Groceries" are due tomorrow: Milk, Eggs'
        assert [i["text"] for i in payload.to_realtime()["items"]] == ["Milk", "Eggs"]
        assert payload.to_realtime()["listId"] == str(shared_list.id)

    def test_event_payload(self):
        event = SimpleNamespace(
            id=uuid.uuid4(),
            title="Dentist",
            start_date=datetime(2025, 3, 10, 16, 0),
            location=None,
        )

        payload = payloads.event_reminder(event)

        assert payload.message == 'Event "Dentist" starts in 1 hour!'
        assert payload.to_realtime()["startDate"] == "2025-03-10T16:00:00+00:00"
        assert "No location specified" in payload.to_email_html(_user("bob"))

    def test_daily_summary_counts_all_but_previews_limit(self):
        tasks = [self._task(title=f"Task {i}") for i in range(4)]

        payload = payloads.daily_summary(tasks, [], preview_limit=2)

        assert payload.message == "You have 4 tasks and 0 events due today"
        realtime = payload.to_realtime()
        assert realtime["taskCount"] == 4
        assert realtime["eventCount"] == 0
        assert [t["title"] for t in realtime["tasks"]] == ["Task 0", "Task 1"]
