from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Optional
import uuid


@dataclass(frozen=True)
class ChannelResult:
    """Outcome of one send on one channel. Channels report, they never raise."""

    success: bool
    error: Optional[str] = None
    skipped: bool = False

    @classmethod
    def ok(cls) -> "ChannelResult":
        return cls(success=True)

    @classmethod
    def failed(cls, error: str) -> "ChannelResult":
        return cls(success=False, error=error)

    @classmethod
    def skip(cls, reason: str) -> "ChannelResult":
        """Nothing to deliver to (no address, no endpoint, channel off)."""
        return cls(success=False, error=reason, skipped=True)


class RealtimeTransport(ABC):
    """Addresses a payload to one user's private realtime channel."""

    @abstractmethod
    async def emit_to_user(
        self, user_id: uuid.UUID | str, event_name: str, payload: Dict[str, Any]
    ) -> None:
        pass


def user_channel(user_id: uuid.UUID | str) -> str:
    """Name of the private channel a user's sockets are joined to."""
    return f"user-{user_id}"
