from typing import List, Optional
from datetime import datetime
import uuid
from sqlalchemy import (
    String,
    Boolean,
    Integer,
    Text,
    ForeignKey,
    Enum,
    Index,
    Table,
    Column,
    UniqueConstraint,
    DateTime,
    Uuid,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
import enum


class Base(DeclarativeBase):
    pass


# Enums
class Priority(enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class ListType(enum.Enum):
    GROCERY = "grocery"
    EXPENSE = "expense"
    TODO = "todo"
    CUSTOM = "custom"


class FriendshipStatus(enum.Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class NotificationType(enum.Enum):
    FRIEND_REQUEST = "friend_request"
    FRIEND_ACCEPTED = "friend_accepted"
    TASK_SHARED = "task_shared"
    TASK_ASSIGNED = "task_assigned"
    TASK_COMPLETED = "task_completed"
    TASK_COMMENT = "task_comment"
    LIST_SHARED = "list_shared"
    LIST_ITEM_ADDED = "list_item_added"
    LIST_ITEM_COMPLETED = "list_item_completed"
    CALENDAR_INVITE = "calendar_invite"
    CALENDAR_REMINDER = "calendar_reminder"
    GENERAL = "general"


class RelatedModel(enum.Enum):
    TASK = "Task"
    SHARED_LIST = "SharedList"
    CALENDAR_EVENT = "CalendarEvent"
    FRIENDSHIP = "Friendship"


# Base model with common audit fields
class AuditMixin:
    """Mixin for common audit fields"""

    created_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.current_timestamp(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        server_default=func.current_timestamp(),
        onupdate=func.current_timestamp(),
    )


# Association tables
task_shares = Table(
    "task_shares",
    Base.metadata,
    Column("task_id", ForeignKey("tasks.id", ondelete="CASCADE"), primary_key=True),
    Column("user_id", ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
)

shared_list_collaborators = Table(
    "shared_list_collaborators",
    Base.metadata,
    Column(
        "list_id", ForeignKey("shared_lists.id", ondelete="CASCADE"), primary_key=True
    ),
    Column("user_id", ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
)

event_participants = Table(
    "event_participants",
    Base.metadata,
    Column(
        "event_id",
        ForeignKey("calendar_events.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column("user_id", ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
)


# Models
class User(Base, AuditMixin):
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    username: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    email: Mapped[str] = mapped_column(
        String(320), unique=True, nullable=False
    )  # RFC 5321 max length
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    profile_picture: Mapped[str] = mapped_column(String(500), default="")

    # Relationships
    push_subscriptions: Mapped[List["PushSubscription"]] = relationship(
        back_populates="user", cascade="all, delete-orphan"
    )
    tasks: Mapped[List["Task"]] = relationship(
        back_populates="owner", cascade="all, delete-orphan"
    )

    def __repr__(self):
        return f"<User(id={self.id}, username='{self.username}')>"


class PushSubscription(Base, AuditMixin):
    __tablename__ = "push_subscriptions"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    endpoint: Mapped[str] = mapped_column(String(1000), nullable=False)
    p256dh_key: Mapped[str] = mapped_column(String(255), nullable=False)
    auth_key: Mapped[str] = mapped_column(String(255), nullable=False)

    user: Mapped["User"] = relationship(back_populates="push_subscriptions")

    __table_args__ = (
        UniqueConstraint("user_id", "endpoint", name="uq_push_subscription_endpoint"),
    )


class Task(Base, AuditMixin):
    __tablename__ = "tasks"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    completed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    owner_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    due_date: Mapped[Optional[datetime]] = mapped_column(DateTime)
    priority: Mapped[Priority] = mapped_column(
        Enum(Priority), default=Priority.MEDIUM, nullable=False
    )
    category: Mapped[str] = mapped_column(String(100), default="")
    tags: Mapped[str] = mapped_column(String(500), default="")

    owner: Mapped["User"] = relationship(back_populates="tasks")
    shared_with: Mapped[List["User"]] = relationship(secondary=task_shares)

    __table_args__ = (Index("ix_tasks_due_date_completed", "due_date", "completed"),)

    @property
    def is_shared(self) -> bool:
        return bool(self.shared_with)

    @property
    def tag_list(self) -> List[str]:
        return [tag for tag in (self.tags or "").split(",") if tag]


class SharedList(Base, AuditMixin):
    __tablename__ = "shared_lists"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    list_type: Mapped[ListType] = mapped_column(
        Enum(ListType), default=ListType.CUSTOM, nullable=False
    )
    creator_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )

    creator: Mapped["User"] = relationship()
    collaborators: Mapped[List["User"]] = relationship(
        secondary=shared_list_collaborators
    )
    items: Mapped[List["ListItem"]] = relationship(
        back_populates="shared_list",
        cascade="all, delete-orphan",
        order_by="ListItem.position",
    )


class ListItem(Base, AuditMixin):
    __tablename__ = "list_items"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    list_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("shared_lists.id", ondelete="CASCADE"), nullable=False
    )
    position: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    text: Mapped[str] = mapped_column(String(500), nullable=False)
    quantity: Mapped[Optional[str]] = mapped_column(String(100))
    completed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    due_date: Mapped[Optional[datetime]] = mapped_column(DateTime)
    priority: Mapped[Priority] = mapped_column(
        Enum(Priority), default=Priority.MEDIUM, nullable=False
    )
    notes: Mapped[Optional[str]] = mapped_column(Text)
    added_by_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id"), nullable=False
    )
    assigned_to_id: Mapped[Optional[uuid.UUID]] = mapped_column(ForeignKey("users.id"))
    completed_by_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        ForeignKey("users.id")
    )
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime)

    shared_list: Mapped["SharedList"] = relationship(back_populates="items")

    __table_args__ = (
        Index("ix_list_items_due_date_completed", "due_date", "completed"),
    )


class CalendarEvent(Base, AuditMixin):
    __tablename__ = "calendar_events"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    start_date: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    end_date: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    is_all_day: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    location: Mapped[Optional[str]] = mapped_column(String(255))
    creator_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )

    creator: Mapped["User"] = relationship()
    participants: Mapped[List["User"]] = relationship(secondary=event_participants)

    __table_args__ = (Index("ix_calendar_events_start_date", "start_date"),)


class Friendship(Base, AuditMixin):
    __tablename__ = "friendships"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    requester_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    recipient_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    status: Mapped[FriendshipStatus] = mapped_column(
        Enum(FriendshipStatus), default=FriendshipStatus.PENDING, nullable=False
    )
    accepted_at: Mapped[Optional[datetime]] = mapped_column(DateTime)

    requester: Mapped["User"] = relationship(foreign_keys=[requester_id])
    recipient: Mapped["User"] = relationship(foreign_keys=[recipient_id])

    __table_args__ = (
        UniqueConstraint("requester_id", "recipient_id", name="uq_friendship_pair"),
    )


class Notification(Base, AuditMixin):
    __tablename__ = "notifications"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    recipient_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    sender_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    notification_type: Mapped[NotificationType] = mapped_column(
        Enum(NotificationType), nullable=False
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    related_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid)
    related_model: Mapped[Optional[RelatedModel]] = mapped_column(Enum(RelatedModel))
    is_read: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    priority: Mapped[Priority] = mapped_column(
        Enum(Priority), default=Priority.MEDIUM, nullable=False
    )
    action_url: Mapped[Optional[str]] = mapped_column(String(500))
    expires_at: Mapped[Optional[datetime]] = mapped_column(DateTime)

    recipient: Mapped["User"] = relationship(foreign_keys=[recipient_id])
    sender: Mapped["User"] = relationship(foreign_keys=[sender_id])

    __table_args__ = (
        Index(
            "ix_notifications_recipient_read_created",
            "recipient_id",
            "is_read",
            "created_at",
        ),
    )
