import asyncio
import json
import pytest
import uuid
from types import SimpleNamespace
from unittest.mock import AsyncMock, Mock, patch

from pywebpush import WebPushException
from redis.exceptions import ConnectionError as RedisConnectionError
from sqlalchemy import select

from lifestock.db.models import PushSubscription
from lifestock.services.channels.base import user_channel
from lifestock.services.channels.email_service import (
    EmailService,
    _sendgrid_error_details,
)
from lifestock.services.channels.push_service import PushNotificationService
from lifestock.services.channels.realtime import (
    ConnectionManager,
    RealtimeRelay,
    RedisRealtimePublisher,
)

pytestmark = pytest.mark.unit


def _web_push_error(status_code: int) -> WebPushException:
    return WebPushException(
        f"Push failed: {status_code}",
        response=SimpleNamespace(status_code=status_code, text=""),
    )


@pytest.fixture
def subscribed_user(db_session, make_user):
    user = make_user("alice")
    for endpoint in ("https://push.example/live", "https://push.example/gone"):
        db_session.add(
            PushSubscription(
                user_id=user.id, endpoint=endpoint, p256dh_key="p256", auth_key="auth"
            )
        )
    db_session.commit()
    return user


class TestPushNotificationService:
    @pytest.mark.asyncio
    async def test_gone_endpoints_are_pruned(self, db_session, subscribed_user):
        def sender(subscription_info, **kwargs):
            if subscription_info["endpoint"].endswith("gone"):
                raise _web_push_error(410)

        service = PushNotificationService(
            db_session, vapid_private_key="private-key", sender=sender
        )

        result = await service.send_to_user(subscribed_user.id, {"title": "Hi"})

        assert result.success
        endpoints = db_session.execute(
            select(PushSubscription.endpoint).where(
                PushSubscription.user_id == subscribed_user.id
            )
        ).scalars().all()
        assert endpoints == ["https://push.example/live"]

    @pytest.mark.asyncio
    async def test_other_errors_keep_the_subscription(self, db_session, subscribed_user):
        sender = Mock(side_effect=_web_push_error(500))
        service = PushNotificationService(
            db_session, vapid_private_key="private-key", sender=sender
        )

        result = await service.send_to_user(subscribed_user.id, {"title": "Hi"})

        assert not result.success and not result.skipped
        assert len(service.get_subscriptions(subscribed_user.id)) == 2

    @pytest.mark.asyncio
    async def test_all_gone_is_a_failure(self, db_session, subscribed_user):
        sender = Mock(side_effect=_web_push_error(404))
        service = PushNotificationService(
            db_session, vapid_private_key="private-key", sender=sender
        )

        result = await service.send_to_user(subscribed_user.id, {"title": "Hi"})

        assert result.error == "All push subscriptions expired"
        assert service.get_subscriptions(subscribed_user.id) == []

    @pytest.mark.asyncio
    async def test_sender_receives_vapid_details(self, db_session, subscribed_user):
        sender = Mock()
        service = PushNotificationService(
            db_session,
            vapid_private_key="private-key",
            vapid_claims={"sub": "mailto:ops@example.com"},
            sender=sender,
        )

        await service.send_to_user(subscribed_user.id, {"title": "Hi"})

        kwargs = sender.call_args.kwargs
        assert kwargs["vapid_private_key"] == "private-key"
        assert kwargs["vapid_claims"] == {"sub": "mailto:ops@example.com"}
        assert json.loads(kwargs["data"]) == {"title": "Hi"}
        assert kwargs["subscription_info"]["keys"] == {"p256dh": "p256", "auth": "auth"}

    @pytest.mark.asyncio
    async def test_unconfigured_or_unsubscribed_is_skipped(self, db_session, make_user):
        user = make_user("bob")
        sender = Mock()

        unconfigured = PushNotificationService(db_session, vapid_private_key="", sender=sender)
        configured = PushNotificationService(
            db_session, vapid_private_key="private-key", sender=sender
        )

        assert (await unconfigured.send_to_user(user.id, {})).skipped
        assert (await configured.send_to_user(user.id, {})).skipped
        sender.assert_not_called()


class TestEmailService:
    @pytest.mark.asyncio
    async def test_sends_through_sendgrid_client(self):
        client = Mock()
        client.send.return_value = SimpleNamespace(status_code=202, body="")
        service = EmailService(api_key="key", sender="noreply@example.com", client=client)

        result = await service.send_email("alice@example.com", "Hello", "<p>Hi</p>")

        assert result.success
        message = client.send.call_args.args[0]
        assert message.get()["subject"] == "Hello"
        assert message.get()["from"]["email"] == "noreply@example.com"

    @pytest.mark.asyncio
    async def test_non_2xx_response_is_a_failure(self):
        client = Mock()
        client.send.return_value = SimpleNamespace(
            status_code=400, body=b'{"errors": [{"message": "Bad sender"}]}'
        )
        service = EmailService(api_key="key", sender="noreply@example.com", client=client)

        result = await service.send_email("alice@example.com", "Hello", "<p>Hi</p>")

        assert not result.success
        assert result.error == "SendGrid status 400: Bad sender"

    @pytest.mark.asyncio
    async def test_client_exception_is_a_failure(self):
        client = Mock()
        client.send.side_effect = ConnectionError("network down")
        service = EmailService(api_key="key", sender="noreply@example.com", client=client)

        result = await service.send_email("alice@example.com", "Hello", "<p>Hi</p>")

        assert not result.success and not result.skipped
        assert "network down" in result.error

    @pytest.mark.asyncio
    async def test_unconfigured_or_missing_address_is_skipped(self):
        unconfigured = EmailService(api_key="", sender="noreply@example.com")
        client = Mock()
        configured = EmailService(api_key="key", sender="noreply@example.com", client=client)

        assert (await unconfigured.send_email("a@example.com", "s", "b")).skipped
        assert (await configured.send_email("", "s", "b")).skipped
        client.send.assert_not_called()

    def test_sendgrid_error_details(self):
        assert _sendgrid_error_details(None) is None
        assert _sendgrid_error_details("plain text") == "plain text"
        assert (
            _sendgrid_error_details('{"errors": [{"message": "a"}, {"message": "b"}]}')
            == "a; b"
        )


class TestConnectionManager:
    @pytest.mark.asyncio
    async def test_emit_reaches_every_socket_of_the_user(self):
        manager = ConnectionManager()
        user_id = uuid.uuid4()
        first, second, other = AsyncMock(), AsyncMock(), AsyncMock()
        await manager.connect(user_id, first)
        await manager.connect(user_id, second)
        await manager.connect(uuid.uuid4(), other)

        await manager.emit_to_user(user_id, "reminder", {"taskId": user_id})

        expected = {"event": "reminder", "data": {"taskId": str(user_id)}}
        first.send_json.assert_awaited_once_with(expected)
        second.send_json.assert_awaited_once_with(expected)
        other.send_json.assert_not_awaited()
        assert manager.total_connections() == 3

    @pytest.mark.asyncio
    async def test_dead_socket_is_dropped(self):
        manager = ConnectionManager()
        user_id = uuid.uuid4()
        dead = AsyncMock()
        dead.send_json.side_effect = RuntimeError("closed")
        await manager.connect(user_id, dead)

        await manager.emit_to_user(user_id, "reminder", {})

        assert manager.connection_count(user_id) == 0

    @pytest.mark.asyncio
    async def test_user_without_sockets_is_not_an_error(self):
        await ConnectionManager().emit_to_user(uuid.uuid4(), "reminder", {})

    def test_user_channel_name(self):
        assert user_channel("42") == "user-42"


class TestRedisRelay:
    @pytest.mark.asyncio
    async def test_publisher_and_relay_round_trip(self):
        client = AsyncMock()
        publisher = RedisRealtimePublisher(client, channel="test-channel")
        user_id = uuid.uuid4()

        await publisher.emit_to_user(user_id, "reminder", {"message": "hi"})

        channel, raw = client.publish.await_args.args
        assert channel == "test-channel"

        manager = AsyncMock()
        relay = RealtimeRelay(manager, redis_url="redis://localhost:6379/0")
        await relay.handle_message(raw)

        manager.emit_to_user.assert_awaited_once_with(
            str(user_id), "reminder", {"message": "hi"}
        )

    @pytest.mark.asyncio
    async def test_malformed_messages_are_ignored(self):
        manager = AsyncMock()
        relay = RealtimeRelay(manager, redis_url="redis://localhost:6379/0")

        await relay.handle_message("not json")
        await relay.handle_message(json.dumps({"event": "reminder"}))

        manager.emit_to_user.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_relay_resubscribes_after_connection_error(self):
        user_id = str(uuid.uuid4())
        delivered = asyncio.Event()

        async def listen_then_idle():
            yield {"type": "subscribe", "data": 1}
            yield {
                "type": "message",
                "data": json.dumps({"userId": user_id, "event": "reminder", "data": {}}),
            }
            await asyncio.sleep(3600)

        broken = Mock(aclose=AsyncMock())
        broken.pubsub.return_value = Mock(
            subscribe=AsyncMock(side_effect=RedisConnectionError("Connection refused")),
            aclose=AsyncMock(),
        )
        healthy = Mock(aclose=AsyncMock())
        healthy.pubsub.return_value = Mock(
            subscribe=AsyncMock(), aclose=AsyncMock(), listen=listen_then_idle
        )

        manager = AsyncMock()
        manager.emit_to_user.side_effect = lambda *args: delivered.set()
        relay = RealtimeRelay(
            manager, redis_url="redis://localhost:6379/0", reconnect_delay=0
        )

        with patch(
            "lifestock.services.channels.realtime.aioredis.from_url",
            side_effect=[broken, healthy],
        ):
            relay.start()
            try:
                await asyncio.wait_for(delivered.wait(), timeout=2)
            finally:
                await relay.stop()

        manager.emit_to_user.assert_awaited_once_with(user_id, "reminder", {})
        broken.aclose.assert_awaited_once()
        healthy.pubsub.return_value.aclose.assert_awaited_once()
