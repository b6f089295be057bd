from .base import ChannelResult, RealtimeTransport, user_channel
from .email_service import EmailService
from .push_service import PushNotificationService
from .realtime import (
    ConnectionManager,
    RedisRealtimePublisher,
    RealtimeRelay,
    connection_manager,
)

__all__ = [
    "ChannelResult",
    "RealtimeTransport",
    "user_channel",
    "EmailService",
    "PushNotificationService",
    "ConnectionManager",
    "RedisRealtimePublisher",
    "RealtimeRelay",
    "connection_manager",
]
