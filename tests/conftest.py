import pytest
import uuid
from datetime import datetime, timezone, timedelta
from typing import Generator, List
from unittest.mock import Mock
from zoneinfo import ZoneInfo

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from lifestock.db.models import (
    User,
    Task,
    SharedList,
    ListItem,
    CalendarEvent,
    Friendship,
    FriendshipStatus,
    Priority,
)
from lifestock.db.db import create_tables
from lifestock.services.channels.base import ChannelResult, RealtimeTransport


# Test database setup
TEST_DATABASE_URL = "sqlite:///:memory:"

UTC = ZoneInfo("UTC")

# Monday afternoon; tomorrow's window is all of 2025-03-11 UTC
FIXED_NOW = datetime(2025, 3, 10, 14, 30, tzinfo=timezone.utc)


class FakeTransport(RealtimeTransport):
    """Records every emit; raises for users listed in ``fail_for``."""

    def __init__(self, fail_for=()):
        self.emitted: List[tuple] = []
        self.fail_for = set(fail_for)

    async def emit_to_user(self, user_id, event_name, payload):
        if user_id in self.fail_for:
            raise ConnectionError("socket closed")
        self.emitted.append((user_id, event_name, payload))

    def for_user(self, user_id) -> List[dict]:
        return [payload for uid, _, payload in self.emitted if uid == user_id]


class FakeEmailService:
    """Stands in for EmailService; ``fail_for`` addresses get a failed result."""

    def __init__(self, fail_for=(), raise_for=()):
        self.sent: List[dict] = []
        self.fail_for = set(fail_for)
        self.raise_for = set(raise_for)

    async def send_email(self, to_address, subject, html_body) -> ChannelResult:
        if to_address in self.raise_for:
            raise RuntimeError("SendGrid unreachable")
        if to_address in self.fail_for:
            return ChannelResult.failed("SendGrid status 500")
        self.sent.append({"to": to_address, "subject": subject, "html": html_body})
        return ChannelResult.ok()

    def sent_to(self, address: str) -> List[dict]:
        return [m for m in self.sent if m["to"] == address]


@pytest.fixture
def test_engine():
    """Create a fresh in-memory database for each test."""
    engine = create_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False,
    )
    create_tables(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(test_engine) -> sessionmaker:
    return sessionmaker(bind=test_engine, class_=Session, expire_on_commit=False)


@pytest.fixture
def db_session(session_factory) -> Generator[Session, None, None]:
    """Create a database session for each test."""
    session = session_factory()
    yield session
    session.rollback()
    session.close()


@pytest.fixture
def fixed_now() -> datetime:
    return FIXED_NOW


@pytest.fixture
def tomorrow_noon() -> datetime:
    """Naive UTC timestamp inside tomorrow's window."""
    return datetime(2025, 3, 11, 12, 0)


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def email_service() -> FakeEmailService:
    return FakeEmailService()


@pytest.fixture
def mock_celery_task():
    """Mock bound Celery task."""
    mock_task = Mock()
    mock_task.request.id = str(uuid.uuid4())
    return mock_task


# Test data factories
@pytest.fixture
def make_user(db_session: Session):
    def _make_user(username: str, email: str = None) -> User:
        user = User(
            id=uuid.uuid4(),
            username=username,
            email=email if email is not None else f"{username}@example.com",
            password_hash="not-a-real-hash",
        )
        db_session.add(user)
        db_session.commit()
        return user

    return _make_user


@pytest.fixture
def make_friends(db_session: Session):
    def _make_friends(a: User, b: User) -> Friendship:
        friendship = Friendship(
            requester_id=a.id,
            recipient_id=b.id,
            status=FriendshipStatus.ACCEPTED,
            accepted_at=datetime(2025, 1, 1),
        )
        db_session.add(friendship)
        db_session.commit()
        return friendship

    return _make_friends


@pytest.fixture
def make_task(db_session: Session):
    def _make_task(
        owner: User,
        title: str = "Pay rent",
        due_date: datetime = None,
        shared_with=(),
        completed: bool = False,
    ) -> Task:
        task = Task(
            id=uuid.uuid4(),
            title=title,
            owner_id=owner.id,
            due_date=due_date,
            completed=completed,
            priority=Priority.HIGH,
            shared_with=list(shared_with),
        )
        db_session.add(task)
        db_session.commit()
        return task

    return _make_task


@pytest.fixture
def make_list(db_session: Session):
    def _make_list(creator: User, name: str = "Groceries", collaborators=()) -> SharedList:
        shared_list = SharedList(
            id=uuid.uuid4(),
            name=name,
            creator_id=creator.id,
            collaborators=list(collaborators),
        )
        db_session.add(shared_list)
        db_session.commit()
        return shared_list

    return _make_list


@pytest.fixture
def make_item(db_session: Session):
    def _make_item(
        shared_list: SharedList,
        text: str,
        due_date: datetime = None,
        completed: bool = False,
        position: int = 0,
    ) -> ListItem:
        item = ListItem(
            id=uuid.uuid4(),
            list_id=shared_list.id,
            position=position,
            text=text,
            due_date=due_date,
            completed=completed,
            added_by_id=shared_list.creator_id,
        )
        db_session.add(item)
        db_session.commit()
        return item

    return _make_item


@pytest.fixture
def make_event(db_session: Session):
    def _make_event(
        creator: User,
        title: str = "Team sync",
        start_date: datetime = None,
        participants=(),
        location: str = "Room 4",
    ) -> CalendarEvent:
        start = start_date or datetime(2025, 3, 10, 16, 0)
        event = CalendarEvent(
            id=uuid.uuid4(),
            title=title,
            start_date=start,
            end_date=start + timedelta(hours=1),
            location=location,
            creator_id=creator.id,
            participants=list(participants),
        )
        db_session.add(event)
        db_session.commit()
        return event

    return _make_event
