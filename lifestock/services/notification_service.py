from typing import Optional, List, Tuple
from datetime import timedelta
import uuid

from fastapi import Depends
from sqlalchemy.orm import Session, selectinload
from sqlalchemy import select, func, update, or_

from lifestock.db.models import (
    Notification,
    NotificationType,
    Priority,
    RelatedModel,
)
from lifestock.db.session import get_sync_session
from lifestock.schemas.notification_schemas import (
    NotificationListQueryParams,
    NotificationResponse,
)
from lifestock.schemas.user_schemas import UserSummary
from lifestock.services.channels.base import RealtimeTransport
from lifestock.services.channels.realtime import connection_manager
from lifestock.utils.datetime_utils import naive_utc_now
from lifestock.utils.logging import get_logger

logger = get_logger()

NOTIFICATION_EVENT = "notification"
NOTIFICATION_TTL = timedelta(days=30)


class NotificationService:
    """Persisted in-app notifications, pushed live to the recipient when connected"""

    def __init__(
        self, db_session: Session, transport: Optional[RealtimeTransport] = None
    ):
        self.db = db_session
        self.transport = transport

    async def create_notification(
        self,
        recipient_id: uuid.UUID,
        sender_id: uuid.UUID,
        notification_type: NotificationType,
        title: str,
        message: str,
        related_id: Optional[uuid.UUID] = None,
        related_model: Optional[RelatedModel] = None,
        priority: Priority = Priority.MEDIUM,
        action_url: Optional[str] = None,
    ) -> Notification:
        notification = Notification(
            recipient_id=recipient_id,
            sender_id=sender_id,
            notification_type=notification_type,
            title=title,
            message=message,
            related_id=related_id,
            related_model=related_model,
            priority=priority,
            action_url=action_url,
            expires_at=naive_utc_now() + NOTIFICATION_TTL,
        )
        self.db.add(notification)
        self.db.commit()
        self.db.refresh(notification)

        await self._emit(notification)
        return notification

    async def _emit(self, notification: Notification) -> None:
        if self.transport is None:
            return
        try:
            await self.transport.emit_to_user(
                notification.recipient_id,
                NOTIFICATION_EVENT,
                self.to_response(notification).model_dump(by_alias=True),
            )
        except Exception as e:
            # The row is already stored; the client picks it up on next fetch.
            logger.warning(
                f"Failed to emit notification {notification.id} to "
                f"{notification.recipient_id}: {str(e)}"
            )

    def _active_filter(self, user_id: uuid.UUID):
        now = naive_utc_now()
        return (
            Notification.recipient_id == user_id,
            or_(Notification.expires_at.is_(None), Notification.expires_at > now),
        )

    async def get_notifications(
        self, user_id: uuid.UUID, params: NotificationListQueryParams
    ) -> Tuple[List[NotificationResponse], int, int]:
        """Return (page items, total matching, unread count)"""
        conditions = list(self._active_filter(user_id))
        if params.is_read is not None:
            conditions.append(Notification.is_read == params.is_read)

        total = self.db.execute(
            select(func.count(Notification.id)).where(*conditions)
        ).scalar_one()

        result = self.db.execute(
            select(Notification)
            .options(selectinload(Notification.sender))
            .where(*conditions)
            .order_by(Notification.created_at.desc())
            .offset((params.page - 1) * params.limit)
            .limit(params.limit)
        )
        notifications = [self.to_response(n) for n in result.scalars().all()]
        return notifications, total, await self.get_unread_count(user_id)

    async def get_unread_count(self, user_id: uuid.UUID) -> int:
        return self.db.execute(
            select(func.count(Notification.id)).where(
                *self._active_filter(user_id), Notification.is_read.is_(False)
            )
        ).scalar_one()

    async def _get_owned(
        self, user_id: uuid.UUID, notification_id: uuid.UUID
    ) -> Notification:
        notification = self.db.execute(
            select(Notification).where(
                Notification.id == notification_id,
                Notification.recipient_id == user_id,
            )
        ).scalar_one_or_none()
        if not notification:
            raise ValueError("NOTIFICATION_NOT_FOUND")
        return notification

    async def mark_as_read(
        self, user_id: uuid.UUID, notification_id: uuid.UUID
    ) -> NotificationResponse:
        notification = await self._get_owned(user_id, notification_id)
        notification.is_read = True
        self.db.commit()
        self.db.refresh(notification)
        return self.to_response(notification)

    async def mark_all_as_read(self, user_id: uuid.UUID) -> int:
        result = self.db.execute(
            update(Notification)
            .where(
                Notification.recipient_id == user_id,
                Notification.is_read.is_(False),
            )
            .values(is_read=True)
        )
        self.db.commit()
        return result.rowcount or 0

    async def delete_notification(
        self, user_id: uuid.UUID, notification_id: uuid.UUID
    ) -> None:
        notification = await self._get_owned(user_id, notification_id)
        self.db.delete(notification)
        self.db.commit()

    @staticmethod
    def to_response(notification: Notification) -> NotificationResponse:
        return NotificationResponse(
            id=notification.id,
            sender=(
                UserSummary.from_user(notification.sender)
                if notification.sender
                else None
            ),
            notification_type=notification.notification_type.value,
            title=notification.title,
            message=notification.message,
            related_id=notification.related_id,
            related_model=(
                notification.related_model.value if notification.related_model else None
            ),
            is_read=notification.is_read,
            priority=notification.priority.value,
            action_url=notification.action_url,
            created_at=notification.created_at,
            expires_at=notification.expires_at,
        )


# Dependency injection for service provider
def get_notification_service(
    db: Session = Depends(get_sync_session),
) -> NotificationService:
    """Dependency to provide NotificationService instance"""
    return NotificationService(db, connection_manager)
