from typing import List, Optional
from datetime import datetime
import uuid

from fastapi import Depends
from sqlalchemy.orm import Session, selectinload
from sqlalchemy import select, or_

from lifestock.db.models import (
    CalendarEvent,
    NotificationType,
    RelatedModel,
    event_participants,
)
from lifestock.db.session import get_sync_session
from lifestock.schemas.calendar_schemas import (
    CreateEventRequest,
    EventListQueryParams,
    EventResponse,
    UpdateEventRequest,
)
from lifestock.schemas.user_schemas import UserSummary
from lifestock.services.channels.realtime import connection_manager
from lifestock.services.friendship_service import FriendshipService
from lifestock.services.notification_service import NotificationService
from lifestock.utils.datetime_utils import to_naive_utc
from lifestock.utils.logging import get_logger

logger = get_logger()


def _validate_dates(start: datetime, end: datetime, is_all_day: bool) -> None:
    if not is_all_day and end <= start:
        raise ValueError("INVALID_EVENT_DATES: end date must be after start date")
    if is_all_day and end < start:
        raise ValueError("INVALID_EVENT_DATES: end date must not precede start date")


class CalendarService:
    """Calendar events owned by a creator and shared with participating friends"""

    def __init__(
        self,
        db_session: Session,
        friendships: FriendshipService,
        notifications: NotificationService,
    ):
        self.db = db_session
        self.friendships = friendships
        self.notifications = notifications

    def _query(self):
        return select(CalendarEvent).options(
            selectinload(CalendarEvent.creator),
            selectinload(CalendarEvent.participants),
        )

    async def _get_event(self, event_id: uuid.UUID) -> CalendarEvent:
        event = self.db.execute(
            self._query().where(CalendarEvent.id == event_id)
        ).scalar_one_or_none()
        if not event:
            raise ValueError("EVENT_NOT_FOUND")
        return event

    async def _get_owned(self, user_id: uuid.UUID, event_id: uuid.UUID) -> CalendarEvent:
        event = await self._get_event(event_id)
        if event.creator_id != user_id:
            raise ValueError("NOT_AUTHORIZED")
        return event

    async def get_events(
        self, user_id: uuid.UUID, params: Optional[EventListQueryParams] = None
    ) -> List[EventResponse]:
        participating = select(event_participants.c.event_id).where(
            event_participants.c.user_id == user_id
        )
        stmt = self._query().where(
            or_(CalendarEvent.creator_id == user_id, CalendarEvent.id.in_(participating))
        )
        if params and params.start:
            stmt = stmt.where(CalendarEvent.start_date >= to_naive_utc(params.start))
        if params and params.end:
            stmt = stmt.where(CalendarEvent.start_date < to_naive_utc(params.end))

        events = self.db.execute(stmt.order_by(CalendarEvent.start_date)).scalars().all()
        return [self.to_response(e) for e in events]

    async def get_event(self, user_id: uuid.UUID, event_id: uuid.UUID) -> EventResponse:
        event = await self._get_event(event_id)
        if user_id != event.creator_id and all(u.id != user_id for u in event.participants):
            raise ValueError("NOT_AUTHORIZED")
        return self.to_response(event)

    async def create_event(
        self, user_id: uuid.UUID, data: CreateEventRequest
    ) -> EventResponse:
        start, end = to_naive_utc(data.start_date), to_naive_utc(data.end_date)
        _validate_dates(start, end, data.is_all_day)
        await self.friendships.ensure_friends(user_id, data.participant_ids)
        participants = await self.friendships.get_users(data.participant_ids)

        event = CalendarEvent(
            title=data.title,
            description=data.description,
            start_date=start,
            end_date=end,
            is_all_day=data.is_all_day,
            location=data.location,
            creator_id=user_id,
            participants=participants,
        )
        self.db.add(event)
        self.db.commit()
        event = await self._get_event(event.id)

        for participant in participants:
            await self._announce_invite(event, participant.id)
        logger.info(f"Created calendar event {event.id}")
        return self.to_response(event)

    async def update_event(
        self, user_id: uuid.UUID, event_id: uuid.UUID, data: UpdateEventRequest
    ) -> EventResponse:
        event = await self._get_owned(user_id, event_id)
        changes = data.model_dump(exclude_unset=True)

        start = to_naive_utc(data.start_date) if data.start_date else event.start_date
        end = to_naive_utc(data.end_date) if data.end_date else event.end_date
        is_all_day = (
            changes["is_all_day"]
            if changes.get("is_all_day") is not None
            else event.is_all_day
        )
        _validate_dates(start, end, is_all_day)

        if changes.get("title"):
            event.title = changes["title"]
        for field in ("description", "location"):
            if field in changes:
                setattr(event, field, changes[field])
        event.start_date, event.end_date, event.is_all_day = start, end, is_all_day

        self.db.commit()
        return self.to_response(await self._get_event(event_id))

    async def delete_event(self, user_id: uuid.UUID, event_id: uuid.UUID) -> None:
        event = await self._get_owned(user_id, event_id)
        self.db.delete(event)
        self.db.commit()

    async def add_participant(
        self, user_id: uuid.UUID, event_id: uuid.UUID, participant_id: uuid.UUID
    ) -> EventResponse:
        event = await self._get_owned(user_id, event_id)
        if participant_id == event.creator_id or any(
            u.id == participant_id for u in event.participants
        ):
            raise ValueError("ALREADY_PARTICIPANT")
        await self.friendships.ensure_friends(user_id, [participant_id])

        event.participants.extend(await self.friendships.get_users([participant_id]))
        self.db.commit()
        await self._announce_invite(event, participant_id)
        return self.to_response(await self._get_event(event_id))

    async def remove_participant(
        self, user_id: uuid.UUID, event_id: uuid.UUID, participant_id: uuid.UUID
    ) -> EventResponse:
        """The creator may remove anyone; a participant may only leave"""
        event = await self._get_event(event_id)
        if user_id != event.creator_id and user_id != participant_id:
            raise ValueError("NOT_AUTHORIZED")
        remaining = [u for u in event.participants if u.id != participant_id]
        if len(remaining) == len(event.participants):
            raise ValueError("NOT_A_PARTICIPANT")
        event.participants = remaining
        self.db.commit()
        return self.to_response(await self._get_event(event_id))

    async def _announce_invite(self, event: CalendarEvent, participant_id: uuid.UUID) -> None:
        await self.notifications.create_notification(
            recipient_id=participant_id,
            sender_id=event.creator_id,
            notification_type=NotificationType.CALENDAR_INVITE,
            title="Event Invitation",
            message=f'{event.creator.username} invited you to "{event.title}"',
            related_id=event.id,
            related_model=RelatedModel.CALENDAR_EVENT,
            action_url=f"/calendar/{event.id}",
        )

    @staticmethod
    def to_response(event: CalendarEvent) -> EventResponse:
        return EventResponse(
            id=event.id,
            title=event.title,
            description=event.description,
            start_date=event.start_date,
            end_date=event.end_date,
            is_all_day=event.is_all_day,
            location=event.location,
            creator=UserSummary.from_user(event.creator),
            participants=[UserSummary.from_user(u) for u in event.participants],
            created_at=event.created_at,
            updated_at=event.updated_at,
        )


# Dependency injection for service provider
def get_calendar_service(db: Session = Depends(get_sync_session)) -> CalendarService:
    """Dependency to provide CalendarService instance"""
    notifications = NotificationService(db, connection_manager)
    return CalendarService(db, FriendshipService(db, notifications), notifications)
