from typing import Iterable, List, NamedTuple, Optional

from lifestock.db.models import User, Task, SharedList, CalendarEvent


class Recipient(NamedTuple):
    user: User
    # owner of a task, creator of a list or event
    is_primary: bool


def resolve_recipients(
    primary: Optional[User], members: Iterable[Optional[User]]
) -> List[Recipient]:
    """Primary user plus members, each user id at most once.

    A user listed both as primary and as member is kept as primary. Entries
    without an id are dropped.
    """
    seen = set()
    recipients: List[Recipient] = []
    for user, is_primary in [(primary, True)] + [(m, False) for m in members or []]:
        if user is None or getattr(user, "id", None) is None:
            continue
        if user.id in seen:
            continue
        seen.add(user.id)
        recipients.append(Recipient(user, is_primary))
    return recipients


def task_recipients(task: Task) -> List[Recipient]:
    return resolve_recipients(task.owner, task.shared_with)


def list_recipients(shared_list: SharedList) -> List[Recipient]:
    return resolve_recipients(shared_list.creator, shared_list.collaborators)


def event_recipients(event: CalendarEvent) -> List[Recipient]:
    return resolve_recipients(event.creator, event.participants)
