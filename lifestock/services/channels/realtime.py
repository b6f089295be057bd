"""Realtime delivery to websocket clients.

``ConnectionManager`` holds the websockets of this process grouped by user.
When reminders run inside a Celery worker, ``RedisRealtimePublisher`` puts the
events on a Redis channel and ``RealtimeRelay`` (running in the API process)
forwards them to the local ``ConnectionManager``.
"""

import asyncio
import json
from collections import defaultdict
from typing import Any, DefaultDict, Dict, Optional, Set
import uuid

from fastapi import WebSocket
from fastapi.encoders import jsonable_encoder
import redis.asyncio as aioredis

from lifestock.config.settings import settings
from lifestock.services.channels.base import RealtimeTransport, user_channel
from lifestock.utils.logging import get_logger

logger = get_logger()


class ConnectionManager(RealtimeTransport):
    """Manage active websocket connections grouped by user channel."""

    def __init__(self) -> None:
        self._connections: DefaultDict[str, Set[WebSocket]] = defaultdict(set)

    async def connect(self, user_id: uuid.UUID | str, websocket: WebSocket) -> None:
        await websocket.accept()
        self._connections[user_channel(user_id)].add(websocket)
        logger.info(f"Websocket joined {user_channel(user_id)}")

    def disconnect(self, user_id: uuid.UUID | str, websocket: WebSocket) -> None:
        channel = user_channel(user_id)
        connections = self._connections.get(channel)
        if connections is None:
            return
        connections.discard(websocket)
        if not connections:
            self._connections.pop(channel, None)
        logger.info(f"Websocket left {channel}")

    def connection_count(self, user_id: uuid.UUID | str) -> int:
        return len(self._connections.get(user_channel(user_id), ()))

    def total_connections(self) -> int:
        return sum(len(c) for c in self._connections.values())

    async def emit_to_user(
        self, user_id: uuid.UUID | str, event_name: str, payload: Dict[str, Any]
    ) -> None:
        """Send ``{"event", "data"}`` to every socket of ``user_id``.

        A user with no open socket is not an error; the event is dropped.
        """
        message = {"event": event_name, "data": jsonable_encoder(payload)}
        for connection in list(self._connections.get(user_channel(user_id), ())):
            try:
                await connection.send_json(message)
            except Exception as e:
                logger.warning(
                    f"Dropping dead websocket for {user_channel(user_id)}: {str(e)}"
                )
                self.disconnect(user_id, connection)


class RedisRealtimePublisher(RealtimeTransport):
    """Publish realtime events to Redis for the API process to relay."""

    def __init__(self, client: aioredis.Redis, channel: Optional[str] = None):
        self.client = client
        self.channel = channel or settings.REALTIME_CHANNEL

    async def emit_to_user(
        self, user_id: uuid.UUID | str, event_name: str, payload: Dict[str, Any]
    ) -> None:
        message = {
            "userId": str(user_id),
            "event": event_name,
            "data": jsonable_encoder(payload),
        }
        await self.client.publish(self.channel, json.dumps(message))


class RealtimeRelay:
    """Forward events published on Redis to the local websocket connections.

    A lost Redis connection is logged and the subscription is rebuilt after
    ``reconnect_delay`` seconds; only ``stop()`` ends the relay.
    """

    def __init__(
        self,
        manager: ConnectionManager,
        redis_url: Optional[str] = None,
        channel: Optional[str] = None,
        reconnect_delay: float = 5.0,
    ):
        self.manager = manager
        self.redis_url = redis_url or settings.redis_url
        self.channel = channel or settings.REALTIME_CHANNEL
        self.reconnect_delay = reconnect_delay
        self._task: Optional[asyncio.Task] = None

    def start(self) -> None:
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self._run(), name="realtime-relay")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Realtime relay stopped")

    async def handle_message(self, raw: Any) -> None:
        try:
            message = json.loads(raw)
            await self.manager.emit_to_user(
                message["userId"], message["event"], message.get("data") or {}
            )
        except (ValueError, KeyError, TypeError) as e:
            logger.warning(f"Ignoring malformed realtime message: {str(e)}")

    async def _run(self) -> None:
        while True:
            client = aioredis.from_url(self.redis_url, decode_responses=True)
            try:
                await self._consume(client)
                logger.warning(f"Realtime relay lost its subscription to {self.channel}")
            except Exception as e:
                logger.error(f"Realtime relay error on {self.channel}: {str(e)}")
            finally:
                await self._close(client)
            await asyncio.sleep(self.reconnect_delay)

    async def _consume(self, client: aioredis.Redis) -> None:
        pubsub = client.pubsub()
        try:
            await pubsub.subscribe(self.channel)
            logger.info(f"Realtime relay subscribed to {self.channel}")
            async for message in pubsub.listen():
                if message.get("type") != "message":
                    continue
                await self.handle_message(message["data"])
        finally:
            await self._close(pubsub)

    @staticmethod
    async def _close(resource: Any) -> None:
        # Closing a dead connection can itself fail
        try:
            await resource.aclose()
        except Exception as e:
            logger.warning(f"Error closing Redis connection: {str(e)}")


connection_manager = ConnectionManager()
