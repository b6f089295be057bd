from typing import Any, Dict
import uuid

from fastapi import Depends
from sqlalchemy.orm import Session
from sqlalchemy import select, delete

from lifestock.config.settings import settings
from lifestock.db.models import PushSubscription
from lifestock.db.session import get_sync_session
from lifestock.schemas.push_schemas import PushSubscriptionPayload
from lifestock.services.channels.push_service import PushNotificationService
from lifestock.utils.logging import get_logger

logger = get_logger()


class PushSubscriptionService:
    """Stores browser push endpoints and sends test pushes to them"""

    def __init__(self, db_session: Session, push_service: PushNotificationService):
        self.db = db_session
        self.push_service = push_service

    @staticmethod
    def get_public_key() -> Dict[str, Any]:
        return {
            "publicKey": settings.VAPID_PUBLIC_KEY or None,
            "configured": settings.push_enabled,
        }

    async def subscribe(
        self, user_id: uuid.UUID, subscription: PushSubscriptionPayload
    ) -> Dict[str, Any]:
        """Upsert by endpoint; re-subscribing refreshes the keys"""
        existing = self.db.execute(
            select(PushSubscription).where(
                PushSubscription.user_id == user_id,
                PushSubscription.endpoint == subscription.endpoint,
            )
        ).scalar_one_or_none()

        if existing:
            existing.p256dh_key = subscription.keys.p256dh
            existing.auth_key = subscription.keys.auth
        else:
            self.db.add(
                PushSubscription(
                    user_id=user_id,
                    endpoint=subscription.endpoint,
                    p256dh_key=subscription.keys.p256dh,
                    auth_key=subscription.keys.auth,
                )
            )
        self.db.commit()
        logger.info(f"Stored push subscription for user {user_id}")
        return await self.get_status(user_id)

    async def unsubscribe(self, user_id: uuid.UUID, endpoint: str) -> Dict[str, Any]:
        self.db.execute(
            delete(PushSubscription).where(
                PushSubscription.user_id == user_id,
                PushSubscription.endpoint == endpoint,
            )
        )
        self.db.commit()
        return await self.get_status(user_id)

    async def get_status(self, user_id: uuid.UUID) -> Dict[str, Any]:
        count = len(self.push_service.get_subscriptions(user_id))
        return {
            "subscribed": count > 0,
            "subscriptionCount": count,
            "vapidConfigured": self.push_service.configured,
        }

    async def send_test(self, user_id: uuid.UUID, message: str) -> Dict[str, Any]:
        if not self.push_service.configured:
            raise ValueError("PUSH_NOT_CONFIGURED")

        result = await self.push_service.send_to_user(
            user_id,
            {
                "title": "LifeStock",
                "body": message,
                "data": {"type": "test", "url": "/"},
            },
        )
        if not result.success:
            raise ValueError(f"PUSH_DELIVERY_FAILED: {result.error}")
        return {"sent": True}


# Dependency injection for service provider
def get_push_subscription_service(
    db: Session = Depends(get_sync_session),
) -> PushSubscriptionService:
    """Dependency to provide PushSubscriptionService instance"""
    return PushSubscriptionService(db, PushNotificationService(db))
