import asyncio
import json
from typing import Any, Callable, Dict, List, Optional
import uuid

from pywebpush import webpush, WebPushException
from sqlalchemy import select, delete
from sqlalchemy.orm import Session

from lifestock.config.settings import settings
from lifestock.db.models import PushSubscription
from lifestock.services.channels.base import ChannelResult
from lifestock.utils.logging import get_logger

logger = get_logger()

# Push services answer these for subscriptions that no longer exist
GONE_STATUS_CODES = (404, 410)


class PushGoneError(Exception):
    """The push service reports the subscription as expired or invalid."""


class PushNotificationService:
    """Browser push delivery with VAPID, one user at a time."""

    def __init__(
        self,
        db_session: Session,
        vapid_private_key: Optional[str] = None,
        vapid_claims: Optional[Dict[str, str]] = None,
        sender: Callable[..., Any] = webpush,
    ):
        self.db = db_session
        self.vapid_private_key = (
            settings.VAPID_PRIVATE_KEY
            if vapid_private_key is None
            else vapid_private_key
        )
        self.vapid_claims = vapid_claims or {
            "sub": f"mailto:{settings.VAPID_CONTACT_EMAIL}"
        }
        self._sender = sender

    @property
    def configured(self) -> bool:
        return bool(self.vapid_private_key)

    def get_subscriptions(self, user_id: uuid.UUID) -> List[PushSubscription]:
        return list(
            self.db.execute(
                select(PushSubscription).where(PushSubscription.user_id == user_id)
            )
            .scalars()
            .all()
        )

    def _send_push(self, subscription: PushSubscription, payload_json: str) -> None:
        """Send to one subscription. Raises PushGoneError on 404/410."""
        subscription_info = {
            "endpoint": subscription.endpoint,
            "keys": {"p256dh": subscription.p256dh_key, "auth": subscription.auth_key},
        }
        try:
            self._sender(
                subscription_info=subscription_info,
                data=payload_json,
                vapid_private_key=self.vapid_private_key,
                vapid_claims=dict(self.vapid_claims),
                ttl=86400,
            )
        except WebPushException as e:
            response = getattr(e, "response", None)
            if response is not None and response.status_code in GONE_STATUS_CODES:
                raise PushGoneError(subscription.endpoint) from e
            raise

    async def send_to_user(
        self, user_id: uuid.UUID, payload: Dict[str, Any]
    ) -> ChannelResult:
        """Deliver ``payload`` to every endpoint of ``user_id``.

        Succeeds when at least one endpoint accepted the message. Endpoints
        reported gone are deleted; other failures leave them in place.
        """
        if not self.configured:
            return ChannelResult.skip("VAPID keys not configured")

        subscriptions = self.get_subscriptions(user_id)
        if not subscriptions:
            return ChannelResult.skip("No push subscriptions")

        payload_json = json.dumps(payload, default=str)
        delivered = 0
        errors: List[str] = []
        gone: List[uuid.UUID] = []

        for subscription in subscriptions:
            endpoint_short = subscription.endpoint[:60]
            try:
                await asyncio.to_thread(self._send_push, subscription, payload_json)
                delivered += 1
            except PushGoneError:
                logger.info(f"Removing expired push subscription {endpoint_short}")
                gone.append(subscription.id)
            except Exception as e:
                logger.warning(f"Push delivery failed for {endpoint_short}: {str(e)}")
                errors.append(str(e))

        if gone:
            self.remove_subscriptions(user_id, gone)

        if delivered:
            return ChannelResult.ok()
        if errors:
            return ChannelResult.failed("; ".join(errors))
        return ChannelResult.failed("All push subscriptions expired")

    def remove_subscriptions(
        self, user_id: uuid.UUID, subscription_ids: List[uuid.UUID]
    ) -> None:
        try:
            self.db.execute(
                delete(PushSubscription).where(
                    PushSubscription.user_id == user_id,
                    PushSubscription.id.in_(subscription_ids),
                )
            )
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to prune push subscriptions for {user_id}: {str(e)}")
