from typing import List, Optional
from datetime import timedelta
from html import escape
import uuid

from fastapi import Depends
from sqlalchemy.orm import Session, selectinload
from sqlalchemy import select, or_

from lifestock.config.settings import settings
from lifestock.db.models import (
    NotificationType,
    Priority,
    RelatedModel,
    Task,
    User,
    task_shares,
)
from lifestock.db.session import get_sync_session
from lifestock.schemas.task_schemas import (
    CreateTaskRequest,
    TaskResponse,
    UpdateTaskRequest,
)
from lifestock.schemas.user_schemas import UserSummary
from lifestock.services.channels.email_service import EmailService
from lifestock.services.channels.realtime import connection_manager
from lifestock.services.friendship_service import FriendshipService
from lifestock.services.notification_service import NotificationService
from lifestock.utils.datetime_utils import naive_utc_now, to_naive_utc
from lifestock.utils.logging import get_logger

logger = get_logger()


def _tags(tags: Optional[List[str]]) -> str:
    return ",".join(t.strip() for t in tags or [] if t and t.strip())


class TaskService:
    """Service provider for task CRUD and sharing"""

    def __init__(
        self,
        db_session: Session,
        friendships: FriendshipService,
        notifications: NotificationService,
        email_service: Optional[EmailService] = None,
    ):
        self.db = db_session
        self.friendships = friendships
        self.notifications = notifications
        self.email_service = email_service

    def _query(self):
        return select(Task).options(
            selectinload(Task.owner), selectinload(Task.shared_with)
        )

    def _visible_to(self, user_id: uuid.UUID):
        shared = select(task_shares.c.task_id).where(task_shares.c.user_id == user_id)
        return or_(Task.owner_id == user_id, Task.id.in_(shared))

    async def _get_task(self, task_id: uuid.UUID) -> Task:
        task = self.db.execute(
            self._query().where(Task.id == task_id)
        ).scalar_one_or_none()
        if not task:
            raise ValueError("TASK_NOT_FOUND")
        return task

    @staticmethod
    def _has_access(task: Task, user_id: uuid.UUID) -> bool:
        return task.owner_id == user_id or any(u.id == user_id for u in task.shared_with)

    async def get_tasks(self, user_id: uuid.UUID) -> List[TaskResponse]:
        """Owned and shared tasks, newest first"""
        tasks = self.db.execute(
            self._query().where(self._visible_to(user_id)).order_by(Task.created_at.desc())
        ).scalars().all()
        return [self.to_response(t) for t in tasks]

    async def get_shared_tasks(self, user_id: uuid.UUID) -> List[TaskResponse]:
        """Tasks other users shared with ``user_id``"""
        shared = select(task_shares.c.task_id).where(task_shares.c.user_id == user_id)
        tasks = self.db.execute(
            self._query()
            .where(Task.id.in_(shared), Task.owner_id != user_id)
            .order_by(Task.created_at.desc())
        ).scalars().all()
        return [self.to_response(t) for t in tasks]

    async def get_upcoming_tasks(self, user_id: uuid.UUID, days: int = 7) -> List[TaskResponse]:
        now = naive_utc_now()
        tasks = self.db.execute(
            self._query()
            .where(
                self._visible_to(user_id),
                Task.completed.is_(False),
                Task.due_date >= now,
                Task.due_date <= now + timedelta(days=days),
            )
            .order_by(Task.due_date)
        ).scalars().all()
        return [self.to_response(t) for t in tasks]

    async def get_task(self, user_id: uuid.UUID, task_id: uuid.UUID) -> TaskResponse:
        task = await self._get_task(task_id)
        if not self._has_access(task, user_id):
            raise ValueError("NOT_AUTHORIZED")
        return self.to_response(task)

    async def create_task(self, user_id: uuid.UUID, data: CreateTaskRequest) -> TaskResponse:
        task = Task(
            title=data.title,
            description=data.description,
            due_date=to_naive_utc(data.due_date) if data.due_date else None,
            priority=Priority(data.priority),
            category=data.category,
            tags=_tags(data.tags),
            owner_id=user_id,
        )
        self.db.add(task)
        self.db.commit()
        logger.info(f"Created task {task.id}")
        return self.to_response(await self._get_task(task.id))

    async def update_task(
        self, user_id: uuid.UUID, task_id: uuid.UUID, data: UpdateTaskRequest
    ) -> TaskResponse:
        """Owner and shared users may edit fields; sharing is separate"""
        task = await self._get_task(task_id)
        if not self._has_access(task, user_id):
            raise ValueError("NOT_AUTHORIZED")

        changes = data.model_dump(exclude_unset=True)
        for field in ("title", "description", "completed", "category"):
            if field in changes:
                setattr(task, field, changes[field])
        if "due_date" in changes:
            task.due_date = to_naive_utc(data.due_date) if data.due_date else None
        if changes.get("priority"):
            task.priority = Priority(data.priority)
        if "tags" in changes:
            task.tags = _tags(data.tags)

        self.db.commit()
        return self.to_response(await self._get_task(task.id))

    async def delete_task(self, user_id: uuid.UUID, task_id: uuid.UUID) -> None:
        task = await self._get_task(task_id)
        if task.owner_id != user_id:
            raise ValueError("NOT_AUTHORIZED")
        self.db.delete(task)
        self.db.commit()

    async def share_task(
        self, user_id: uuid.UUID, task_id: uuid.UUID, user_ids: List[uuid.UUID]
    ) -> TaskResponse:
        task = await self._get_task(task_id)
        if task.owner_id != user_id:
            raise ValueError("NOT_AUTHORIZED")

        await self.friendships.ensure_friends(user_id, user_ids)
        already = {u.id for u in task.shared_with}
        new_users = [
            u for u in await self.friendships.get_users(user_ids) if u.id not in already
        ]
        task.shared_with.extend(new_users)
        self.db.commit()

        for shared_user in new_users:
            await self._announce_share(task, shared_user)
        return self.to_response(await self._get_task(task.id))

    async def unshare_task(
        self, user_id: uuid.UUID, task_id: uuid.UUID, user_ids: List[uuid.UUID]
    ) -> TaskResponse:
        task = await self._get_task(task_id)
        if task.owner_id != user_id:
            raise ValueError("NOT_AUTHORIZED")
        removed = set(user_ids)
        task.shared_with = [u for u in task.shared_with if u.id not in removed]
        self.db.commit()
        return self.to_response(await self._get_task(task.id))

    async def _announce_share(self, task: Task, shared_user: User) -> None:
        owner = task.owner
        await self.notifications.create_notification(
            recipient_id=shared_user.id,
            sender_id=owner.id,
            notification_type=NotificationType.TASK_SHARED,
            title="Task Shared With You",
            message=f'{owner.username} shared "{task.title}" with you',
            related_id=task.id,
            related_model=RelatedModel.TASK,
            action_url=f"/tasks/{task.id}",
        )
        if self.email_service is None or not shared_user.email:
            return
        html_body = (
            f"<h2>Task Shared With You</h2>"
            f"<p>Hello {escape(shared_user.username)},</p>"
            f"<p>{escape(owner.username)} has shared a task with you: "
            f"<strong>{escape(task.title)}</strong></p>"
            f'<p><a href="{settings.CLIENT_URL}/tasks/{task.id}">View Task</a></p>'
        )
        await self.email_service.send_email(
            shared_user.email,
            f"{owner.username} shared a task with you: {task.title}",
            html_body,
        )

    @staticmethod
    def to_response(task: Task) -> TaskResponse:
        return TaskResponse(
            id=task.id,
            title=task.title,
            description=task.description,
            completed=task.completed,
            due_date=task.due_date,
            priority=task.priority.value,
            category=task.category or "",
            tags=task.tag_list,
            owner=UserSummary.from_user(task.owner),
            shared_with=[UserSummary.from_user(u) for u in task.shared_with],
            is_shared=task.is_shared,
            created_at=task.created_at,
            updated_at=task.updated_at,
        )


# Dependency injection for service provider
def get_task_service(db: Session = Depends(get_sync_session)) -> TaskService:
    """Dependency to provide TaskService instance"""
    notifications = NotificationService(db, connection_manager)
    return TaskService(
        db,
        FriendshipService(db, notifications),
        notifications,
        EmailService() if settings.email_enabled else None,
    )
