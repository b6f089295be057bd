"""Fan-out of one payload to one recipient, with a result per channel.

Every delivery attempt is caught at its own scope and turned into a
``DeliveryResult``; nothing raised by a channel leaves ``deliver``.
"""

from dataclasses import dataclass, field
from datetime import datetime
import enum
from typing import Any, Dict, List, Optional
import uuid

from lifestock.db.models import User
from lifestock.services.channels.base import ChannelResult, RealtimeTransport
from lifestock.services.channels.email_service import EmailService
from lifestock.services.channels.push_service import PushNotificationService
from lifestock.services.reminders.payloads import REMINDER_EVENT, ReminderPayload
from lifestock.utils.logging import get_logger

logger = get_logger()


class Channel(str, enum.Enum):
    REALTIME = "realtime"
    EMAIL = "email"
    PUSH = "push"


class DeliveryStatus(str, enum.Enum):
    SENT = "sent"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class DeliveryResult:
    channel: Channel
    user_id: Optional[uuid.UUID]
    entity_id: Optional[uuid.UUID]
    status: DeliveryStatus
    reason: Optional[str] = None

    @classmethod
    def from_channel_result(
        cls,
        channel: Channel,
        user_id: Optional[uuid.UUID],
        entity_id: Optional[uuid.UUID],
        result: ChannelResult,
    ) -> "DeliveryResult":
        if result.success:
            status = DeliveryStatus.SENT
        elif result.skipped:
            status = DeliveryStatus.SKIPPED
        else:
            status = DeliveryStatus.FAILED
        return cls(channel, user_id, entity_id, status, result.error)


@dataclass
class CategoryReport:
    category: str
    entities: int = 0
    recipients: int = 0
    results: List[DeliveryResult] = field(default_factory=list)
    fetch_error: Optional[str] = None

    def record(self, results: List[DeliveryResult]) -> None:
        self.recipients += 1
        self.results.extend(results)

    def count(
        self, status: DeliveryStatus, channel: Optional[Channel] = None
    ) -> int:
        return sum(
            1
            for r in self.results
            if r.status == status and (channel is None or r.channel == channel)
        )

    @property
    def sent(self) -> int:
        return self.count(DeliveryStatus.SENT)

    @property
    def failed(self) -> int:
        return self.count(DeliveryStatus.FAILED)

    @property
    def skipped(self) -> int:
        return self.count(DeliveryStatus.SKIPPED)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "category": self.category,
            "entities": self.entities,
            "recipients": self.recipients,
            "sent": self.sent,
            "failed": self.failed,
            "skipped": self.skipped,
            "by_channel": {
                channel.value: {
                    status.value: self.count(status, channel)
                    for status in DeliveryStatus
                }
                for channel in Channel
            },
            "fetch_error": self.fetch_error,
        }


@dataclass
class CycleReport:
    cycle_id: str
    trigger: str
    started_at: datetime
    finished_at: Optional[datetime] = None
    categories: List[CategoryReport] = field(default_factory=list)

    def category(self, name: str) -> Optional[CategoryReport]:
        return next((c for c in self.categories if c.category == name), None)

    @property
    def sent(self) -> int:
        return sum(c.sent for c in self.categories)

    @property
    def failed(self) -> int:
        return sum(c.failed for c in self.categories)

    @property
    def skipped(self) -> int:
        return sum(c.skipped for c in self.categories)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "cycle_id": self.cycle_id,
            "trigger": self.trigger,
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "sent": self.sent,
            "failed": self.failed,
            "skipped": self.skipped,
            "categories": [c.as_dict() for c in self.categories],
        }


class ReminderDispatcher:
    """Deliver a payload to one recipient on realtime, email and push."""

    def __init__(
        self,
        transport: Optional[RealtimeTransport],
        email_service: Optional[EmailService],
        push_service: Optional[PushNotificationService] = None,
        event_name: str = REMINDER_EVENT,
    ):
        self.transport = transport
        self.email_service = email_service
        self.push_service = push_service
        self.event_name = event_name

    async def deliver(
        self, recipient: User, payload: ReminderPayload
    ) -> List[DeliveryResult]:
        user_id = getattr(recipient, "id", None)
        entity_id = payload.reference_id
        channels = [Channel.REALTIME, Channel.EMAIL]
        if self.push_service is not None:
            channels.append(Channel.PUSH)

        if user_id is None:
            logger.warning(f"Skipping {payload.reminder_type}: recipient has no id")
            return [
                DeliveryResult(c, None, entity_id, DeliveryStatus.SKIPPED, "Missing user id")
                for c in channels
            ]

        results = [
            await self._deliver_realtime(recipient, payload),
            await self._deliver_email(recipient, payload),
        ]
        if self.push_service is not None:
            results.append(await self._deliver_push(recipient, payload))
        return results

    async def _deliver_realtime(
        self, recipient: User, payload: ReminderPayload
    ) -> DeliveryResult:
        if self.transport is None:
            return DeliveryResult(
                Channel.REALTIME,
                recipient.id,
                payload.reference_id,
                DeliveryStatus.SKIPPED,
                "No realtime transport",
            )
        try:
            await self.transport.emit_to_user(
                recipient.id, self.event_name, payload.to_realtime()
            )
            return DeliveryResult(
                Channel.REALTIME, recipient.id, payload.reference_id, DeliveryStatus.SENT
            )
        except Exception as e:
            logger.error(
                f"Realtime {payload.reminder_type} to user {recipient.id} failed: {str(e)}"
            )
            return DeliveryResult(
                Channel.REALTIME,
                recipient.id,
                payload.reference_id,
                DeliveryStatus.FAILED,
                str(e),
            )

    async def _deliver_email(
        self, recipient: User, payload: ReminderPayload
    ) -> DeliveryResult:
        if self.email_service is None:
            result = ChannelResult.skip("No email channel")
        elif not recipient.email:
            logger.warning(
                f"Skipping email {payload.reminder_type}: user {recipient.id} has no email"
            )
            result = ChannelResult.skip("Missing email address")
        else:
            try:
                result = await self.email_service.send_email(
                    recipient.email,
                    f"{payload.subject} - LifeStock",
                    payload.to_email_html(recipient),
                )
            except Exception as e:
                logger.error(
                    f"Email {payload.reminder_type} to user {recipient.id} failed: {str(e)}"
                )
                result = ChannelResult.failed(str(e))
        return DeliveryResult.from_channel_result(
            Channel.EMAIL, recipient.id, payload.reference_id, result
        )

    async def _deliver_push(
        self, recipient: User, payload: ReminderPayload
    ) -> DeliveryResult:
        try:
            result = await self.push_service.send_to_user(
                recipient.id, payload.to_push()
            )
        except Exception as e:
            logger.error(
                f"Push {payload.reminder_type} to user {recipient.id} failed: {str(e)}"
            )
            result = ChannelResult.failed(str(e))
        return DeliveryResult.from_channel_result(
            Channel.PUSH, recipient.id, payload.reference_id, result
        )
