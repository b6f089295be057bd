"""Per-recipient reminder payloads and their channel renderings."""

from dataclasses import dataclass, field
from datetime import datetime
from html import escape
from typing import Any, Dict, List, Optional, Sequence
import uuid

from lifestock.config.settings import settings
from lifestock.db.models import CalendarEvent, ListItem, SharedList, Task, User
from lifestock.utils.datetime_utils import (
    from_naive_utc,
    isoformat_or_none,
    local_zone,
)

REMINDER_EVENT = "reminder"

TASK_REMINDER = "task_reminder"
SHARED_TASK_REMINDER = "shared_task_reminder"
LIST_ITEM_REMINDER = "list_item_reminder"
EVENT_REMINDER = "event_reminder"
DAILY_SUMMARY = "daily_summary"


def _display_time(value: Optional[datetime]) -> str:
    if value is None:
        return "No date"
    return from_naive_utc(value, local_zone()).strftime("%Y-%m-%d %H:%M")


@dataclass
class ReminderPayload:
    reminder_type: str
    subject: str
    message: str
    reference_key: Optional[str] = None
    reference_id: Optional[uuid.UUID] = None
    url_path: str = "/dashboard"
    extra: Dict[str, Any] = field(default_factory=dict)
    email_details: List[str] = field(default_factory=list)

    def to_realtime(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"type": self.reminder_type, "message": self.message}
        if self.reference_key:
            payload[self.reference_key] = (
                str(self.reference_id) if self.reference_id else None
            )
        payload.update(self.extra)
        return payload

    def to_email_html(self, recipient: User) -> str:
        details = "".join(f"<p>{line}</p>" for line in self.email_details)
        return (
            '<div style="font-family: Arial, sans-serif; max-width: 600px; '
            'margin: 0 auto; padding: 20px;">'
            f'<h2 style="color: #4F46E5;">{escape(self.subject)}</h2>'
            f"<p>Hello {escape(recipient.username or '')},</p>"
            f"<p>{escape(self.message)}</p>"
            f"{details}"
            f'<p><a href="{settings.CLIENT_URL}{self.url_path}">Open LifeStock</a></p>'
            '<p style="font-size: 12px; color: #666;">This is an automated '
            "message from LifeStock. Please do not reply to this email.</p>"
            "</div>"
        )

    def to_push(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"type": self.reminder_type, "url": self.url_path}
        if self.reference_key and self.reference_id:
            data[self.reference_key] = str(self.reference_id)
        return {
            "title": f"{self.subject} - LifeStock",
            "body": self.message,
            "tag": self.reminder_type,
            "data": data,
        }


def task_reminder(task: Task, is_owner: bool) -> ReminderPayload:
    """Owner and shared users get differently worded reminders for one task."""
    due = isoformat_or_none(task.due_date)
    title = escape(task.title)
    details = [
        f"<strong>Due:</strong> {_display_time(task.due_date)}",
        f"<strong>Description:</strong> {escape(task.description or 'No description provided')}",
    ]
    if is_owner:
        return ReminderPayload(
            reminder_type=TASK_REMINDER,
            subject="Task Reminder",
            message=f'Task "{task.title}" is due tomorrow!',
            reference_key="taskId",
            reference_id=task.id,
            url_path=f"/tasks/{task.id}",
            extra={"title": task.title, "dueDate": due},
            email_details=[f"<strong>Task:</strong> {title}"] + details,
        )

    owner_name = task.owner.username if task.owner is not None else None
    return ReminderPayload(
        reminder_type=SHARED_TASK_REMINDER,
        subject="Shared Task Reminder",
        message=f'Shared task "{task.title}" is due tomorrow!',
        reference_key="taskId",
        reference_id=task.id,
        url_path=f"/tasks/{task.id}",
        extra={"title": task.title, "dueDate": due, "owner": owner_name},
        email_details=[
            f"<strong>Task:</strong> {title}",
            f"<strong>Shared by:</strong> {escape(owner_name or 'Unknown')}",
        ]
        + details,
    )


def list_item_reminder(
    shared_list: SharedList, due_items: Sequence[ListItem]
) -> ReminderPayload:
    names = ", ".join(item.text for item in due_items)
    return ReminderPayload(
        reminder_type=LIST_ITEM_REMINDER,
        subject="List Items Due Tomorrow",
        message=f'Items in "{shared_list.name}" are due tomorrow: {names}',
        reference_key="listId",
        reference_id=shared_list.id,
        url_path=f"/lists/{shared_list.id}",
        extra={
            "listName": shared_list.name,
            "items": [
                {
                    "id": str(item.id),
                    "text": item.text,
                    "dueDate": isoformat_or_none(item.due_date),
                    "priority": item.priority.value if item.priority else None,
                }
                for item in due_items
            ],
        },
        email_details=[
            "<ul>"
            + "".join(
                f"<li>{escape(item.text)} ({_display_time(item.due_date)})</li>"
                for item in due_items
            )
            + "</ul>"
        ],
    )


def event_reminder(event: CalendarEvent) -> ReminderPayload:
    return ReminderPayload(
        reminder_type=EVENT_REMINDER,
        subject="Event Reminder",
        message=f'Event "{event.title}" starts in 1 hour!',
        reference_key="eventId",
        reference_id=event.id,
        url_path="/calendar",
        extra={
            "title": event.title,
            "startDate": isoformat_or_none(event.start_date),
            "location": event.location,
        },
        email_details=[
            f"<strong>Event:</strong> {escape(event.title)}",
            f"<strong>When:</strong> {_display_time(event.start_date)}",
            f"<strong>Where:</strong> {escape(event.location or 'No location specified')}",
        ],
    )


def _task_preview(task: Task) -> Dict[str, Any]:
    return {
        "id": str(task.id),
        "title": task.title,
        "dueDate": isoformat_or_none(task.due_date),
        "priority": task.priority.value if task.priority else None,
    }


def _event_preview(event: CalendarEvent) -> Dict[str, Any]:
    return {
        "id": str(event.id),
        "title": event.title,
        "startDate": isoformat_or_none(event.start_date),
        "location": event.location,
    }


def daily_summary(
    tasks: Sequence[Task], events: Sequence[CalendarEvent], preview_limit: int
) -> ReminderPayload:
    task_preview = list(tasks[:preview_limit])
    event_preview = list(events[:preview_limit])
    lines = [
        f"<strong>Task:</strong> {escape(t.title)} ({_display_time(t.due_date)})"
        for t in task_preview
    ] + [
        f"<strong>Event:</strong> {escape(e.title)} ({_display_time(e.start_date)})"
        for e in event_preview
    ]
    return ReminderPayload(
        reminder_type=DAILY_SUMMARY,
        subject="Your Day on LifeStock",
        message=f"You have {len(tasks)} tasks and {len(events)} events due today",
        extra={
            "taskCount": len(tasks),
            "eventCount": len(events),
            "tasks": [_task_preview(t) for t in task_preview],
            "events": [_event_preview(e) for e in event_preview],
        },
        email_details=lines,
    )
