from typing import Iterable, List
import uuid

from fastapi import Depends
from sqlalchemy.orm import Session, selectinload
from sqlalchemy import select, or_, and_, func

from lifestock.db.models import (
    Friendship,
    FriendshipStatus,
    NotificationType,
    RelatedModel,
    User,
)
from lifestock.db.session import get_sync_session
from lifestock.schemas.friendship_schemas import (
    FriendResponse,
    FriendshipResponse,
    UserSearchResult,
)
from lifestock.schemas.user_schemas import UserSummary
from lifestock.services.channels.realtime import connection_manager
from lifestock.services.notification_service import NotificationService
from lifestock.utils.datetime_utils import naive_utc_now
from lifestock.utils.logging import get_logger

logger = get_logger()

SEARCH_LIMIT = 10


def _between(a: uuid.UUID, b: uuid.UUID):
    return or_(
        and_(Friendship.requester_id == a, Friendship.recipient_id == b),
        and_(Friendship.requester_id == b, Friendship.recipient_id == a),
    )


class FriendshipService:
    """Friend requests and the friend graph used for sharing checks"""

    def __init__(self, db_session: Session, notifications: NotificationService):
        self.db = db_session
        self.notifications = notifications

    async def get_friend_ids(self, user_id: uuid.UUID) -> set:
        rows = self.db.execute(
            select(Friendship.requester_id, Friendship.recipient_id).where(
                Friendship.status == FriendshipStatus.ACCEPTED,
                or_(
                    Friendship.requester_id == user_id,
                    Friendship.recipient_id == user_id,
                ),
            )
        ).all()
        return {
            recipient if requester == user_id else requester
            for requester, recipient in rows
        }

    async def ensure_friends(
        self, user_id: uuid.UUID, other_ids: Iterable[uuid.UUID]
    ) -> None:
        """Raise NOT_FRIENDS unless every id is an accepted friend of ``user_id``"""
        friend_ids = await self.get_friend_ids(user_id)
        invalid = [str(i) for i in other_ids if i not in friend_ids]
        if invalid:
            raise ValueError(f"NOT_FRIENDS: {', '.join(invalid)}")

    async def get_users(self, user_ids: Iterable[uuid.UUID]) -> List[User]:
        ids = list(dict.fromkeys(user_ids))
        if not ids:
            return []
        users = self.db.execute(select(User).where(User.id.in_(ids))).scalars().all()
        if len(users) != len(ids):
            raise ValueError("USER_NOT_FOUND")
        return list(users)

    async def _get_friendship(self, friendship_id: uuid.UUID) -> Friendship:
        friendship = self.db.execute(
            select(Friendship)
            .options(
                selectinload(Friendship.requester), selectinload(Friendship.recipient)
            )
            .where(Friendship.id == friendship_id)
        ).scalar_one_or_none()
        if not friendship:
            raise ValueError("FRIENDSHIP_NOT_FOUND")
        return friendship

    async def send_request(
        self, requester_id: uuid.UUID, recipient_id: uuid.UUID
    ) -> FriendshipResponse:
        if requester_id == recipient_id:
            raise ValueError("SELF_FRIEND_REQUEST")

        recipient = self.db.get(User, recipient_id)
        if not recipient:
            raise ValueError("USER_NOT_FOUND")

        existing = self.db.execute(
            select(Friendship).where(_between(requester_id, recipient_id))
        ).scalar_one_or_none()
        if existing:
            raise ValueError("FRIEND_REQUEST_EXISTS")

        friendship = Friendship(
            requester_id=requester_id,
            recipient_id=recipient_id,
            status=FriendshipStatus.PENDING,
        )
        self.db.add(friendship)
        self.db.commit()
        friendship = await self._get_friendship(friendship.id)

        logger.info(f"Friend request {friendship.id} sent to {recipient_id}")
        await self.notifications.create_notification(
            recipient_id=recipient_id,
            sender_id=requester_id,
            notification_type=NotificationType.FRIEND_REQUEST,
            title="New Friend Request",
            message=f"{friendship.requester.username} sent you a friend request",
            related_id=friendship.id,
            related_model=RelatedModel.FRIENDSHIP,
            action_url="/friends",
        )
        return self.to_response(friendship)

    async def accept_request(
        self, user_id: uuid.UUID, friendship_id: uuid.UUID
    ) -> FriendshipResponse:
        friendship = await self._get_friendship(friendship_id)
        if friendship.recipient_id != user_id:
            raise ValueError("NOT_AUTHORIZED")
        if friendship.status != FriendshipStatus.PENDING:
            raise ValueError("FRIEND_REQUEST_NOT_PENDING")

        friendship.status = FriendshipStatus.ACCEPTED
        friendship.accepted_at = naive_utc_now()
        self.db.commit()

        await self.notifications.create_notification(
            recipient_id=friendship.requester_id,
            sender_id=user_id,
            notification_type=NotificationType.FRIEND_ACCEPTED,
            title="Friend Request Accepted",
            message=f"{friendship.recipient.username} accepted your friend request",
            related_id=friendship.id,
            related_model=RelatedModel.FRIENDSHIP,
            action_url="/friends",
        )
        return self.to_response(friendship)

    async def reject_request(self, user_id: uuid.UUID, friendship_id: uuid.UUID) -> None:
        friendship = await self._get_friendship(friendship_id)
        if friendship.recipient_id != user_id:
            raise ValueError("NOT_AUTHORIZED")
        if friendship.status != FriendshipStatus.PENDING:
            raise ValueError("FRIEND_REQUEST_NOT_PENDING")
        # A rejected request is removed so it can be sent again later
        self.db.delete(friendship)
        self.db.commit()

    async def get_friends(self, user_id: uuid.UUID) -> List[FriendResponse]:
        friendships = self.db.execute(
            select(Friendship)
            .options(
                selectinload(Friendship.requester), selectinload(Friendship.recipient)
            )
            .where(
                Friendship.status == FriendshipStatus.ACCEPTED,
                or_(
                    Friendship.requester_id == user_id,
                    Friendship.recipient_id == user_id,
                ),
            )
            .order_by(Friendship.accepted_at.desc())
        ).scalars().all()

        friends = []
        for f in friendships:
            friend = f.recipient if f.requester_id == user_id else f.requester
            friends.append(
                FriendResponse(
                    **UserSummary.from_user(friend).model_dump(),
                    friendship_id=f.id,
                    friends_since=f.accepted_at,
                )
            )
        return friends

    async def _requests(self, **where) -> List[FriendshipResponse]:
        friendships = self.db.execute(
            select(Friendship)
            .options(
                selectinload(Friendship.requester), selectinload(Friendship.recipient)
            )
            .filter_by(status=FriendshipStatus.PENDING, **where)
            .order_by(Friendship.created_at.desc())
        ).scalars().all()
        return [self.to_response(f) for f in friendships]

    async def get_pending_requests(self, user_id: uuid.UUID) -> List[FriendshipResponse]:
        return await self._requests(recipient_id=user_id)

    async def get_sent_requests(self, user_id: uuid.UUID) -> List[FriendshipResponse]:
        return await self._requests(requester_id=user_id)

    async def remove_friend(self, user_id: uuid.UUID, friendship_id: uuid.UUID) -> None:
        friendship = await self._get_friendship(friendship_id)
        if user_id not in (friendship.requester_id, friendship.recipient_id):
            raise ValueError("NOT_AUTHORIZED")
        self.db.delete(friendship)
        self.db.commit()

    async def search_users(self, user_id: uuid.UUID, query: str) -> List[UserSearchResult]:
        """Users matching ``query`` by username or email, minus existing connections"""
        query = (query or "").strip()
        if len(query) < 2:
            raise ValueError("SEARCH_QUERY_TOO_SHORT")

        connected = self.db.execute(
            select(Friendship.requester_id, Friendship.recipient_id).where(
                or_(
                    Friendship.requester_id == user_id,
                    Friendship.recipient_id == user_id,
                )
            )
        ).all()
        connected_ids = {
            recipient if requester == user_id else requester
            for requester, recipient in connected
        }

        pattern = f"%{query.lower()}%"
        users = self.db.execute(
            select(User)
            .where(
                User.id != user_id,
                or_(
                    func.lower(User.username).like(pattern),
                    func.lower(User.email).like(pattern),
                ),
            )
            .order_by(User.username)
            .limit(SEARCH_LIMIT + len(connected_ids))
        ).scalars().all()

        return [
            UserSearchResult(**UserSummary.from_user(u).model_dump())
            for u in users
            if u.id not in connected_ids
        ][:SEARCH_LIMIT]

    @staticmethod
    def to_response(friendship: Friendship) -> FriendshipResponse:
        return FriendshipResponse(
            id=friendship.id,
            requester=UserSummary.from_user(friendship.requester),
            recipient=UserSummary.from_user(friendship.recipient),
            status=friendship.status.value,
            accepted_at=friendship.accepted_at,
            created_at=friendship.created_at,
        )


# Dependency injection for service provider
def get_friendship_service(
    db: Session = Depends(get_sync_session),
) -> FriendshipService:
    """Dependency to provide FriendshipService instance"""
    return FriendshipService(db, NotificationService(db, connection_manager))
