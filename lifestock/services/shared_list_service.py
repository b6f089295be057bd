from typing import List
import uuid

from fastapi import Depends
from sqlalchemy.orm import Session, selectinload
from sqlalchemy import select, or_, func

from lifestock.db.models import (
    ListItem,
    ListType,
    NotificationType,
    Priority,
    RelatedModel,
    SharedList,
    shared_list_collaborators,
)
from lifestock.db.session import get_sync_session
from lifestock.schemas.list_schemas import (
    CreateListItemRequest,
    CreateSharedListRequest,
    ListItemResponse,
    SharedListResponse,
    UpdateListItemRequest,
    UpdateSharedListRequest,
)
from lifestock.schemas.user_schemas import UserSummary
from lifestock.services.channels.realtime import connection_manager
from lifestock.services.friendship_service import FriendshipService
from lifestock.services.notification_service import NotificationService
from lifestock.utils.datetime_utils import naive_utc_now, to_naive_utc
from lifestock.utils.logging import get_logger

logger = get_logger()


class SharedListService:
    """Collaborative lists: the creator manages the list, members edit items"""

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
        return select(SharedList).options(
            selectinload(SharedList.creator),
            selectinload(SharedList.collaborators),
            selectinload(SharedList.items),
        )

    async def _get_list(self, list_id: uuid.UUID) -> SharedList:
        shared_list = self.db.execute(
            self._query().where(SharedList.id == list_id)
        ).scalar_one_or_none()
        if not shared_list:
            raise ValueError("LIST_NOT_FOUND")
        return shared_list

    @staticmethod
    def _member_ids(shared_list: SharedList) -> set:
        return {shared_list.creator_id} | {u.id for u in shared_list.collaborators}

    async def _get_accessible(self, user_id: uuid.UUID, list_id: uuid.UUID) -> SharedList:
        shared_list = await self._get_list(list_id)
        if user_id not in self._member_ids(shared_list):
            raise ValueError("NOT_AUTHORIZED")
        return shared_list

    async def _get_owned(self, user_id: uuid.UUID, list_id: uuid.UUID) -> SharedList:
        shared_list = await self._get_list(list_id)
        if shared_list.creator_id != user_id:
            raise ValueError("NOT_AUTHORIZED")
        return shared_list

    async def get_lists(self, user_id: uuid.UUID) -> List[SharedListResponse]:
        member_of = select(shared_list_collaborators.c.list_id).where(
            shared_list_collaborators.c.user_id == user_id
        )
        lists = self.db.execute(
            self._query()
            .where(or_(SharedList.creator_id == user_id, SharedList.id.in_(member_of)))
            .order_by(SharedList.updated_at.desc())
        ).scalars().all()
        return [self.to_response(sl) for sl in lists]

    async def get_list(self, user_id: uuid.UUID, list_id: uuid.UUID) -> SharedListResponse:
        return self.to_response(await self._get_accessible(user_id, list_id))

    async def create_list(
        self, user_id: uuid.UUID, data: CreateSharedListRequest
    ) -> SharedListResponse:
        await self.friendships.ensure_friends(user_id, data.collaborator_ids)
        collaborators = await self.friendships.get_users(data.collaborator_ids)

        shared_list = SharedList(
            name=data.name,
            description=data.description,
            list_type=ListType(data.list_type),
            creator_id=user_id,
            collaborators=collaborators,
        )
        self.db.add(shared_list)
        self.db.commit()
        shared_list = await self._get_list(shared_list.id)

        for collaborator in collaborators:
            await self._announce_collaborator(shared_list, collaborator.id)
        logger.info(f"Created shared list {shared_list.id}")
        return self.to_response(shared_list)

    async def update_list(
        self, user_id: uuid.UUID, list_id: uuid.UUID, data: UpdateSharedListRequest
    ) -> SharedListResponse:
        shared_list = await self._get_owned(user_id, list_id)
        changes = data.model_dump(exclude_unset=True)
        if changes.get("name"):
            shared_list.name = changes["name"]
        if "description" in changes:
            shared_list.description = changes["description"]
        if changes.get("list_type"):
            shared_list.list_type = ListType(changes["list_type"])
        self.db.commit()
        return self.to_response(await self._get_list(list_id))

    async def delete_list(self, user_id: uuid.UUID, list_id: uuid.UUID) -> None:
        shared_list = await self._get_owned(user_id, list_id)
        self.db.delete(shared_list)
        self.db.commit()

    async def add_item(
        self, user_id: uuid.UUID, list_id: uuid.UUID, data: CreateListItemRequest
    ) -> SharedListResponse:
        shared_list = await self._get_accessible(user_id, list_id)
        if data.assigned_to_id and data.assigned_to_id not in self._member_ids(shared_list):
            raise ValueError("INVALID_ASSIGNEE")

        last_position = self.db.execute(
            select(func.max(ListItem.position)).where(ListItem.list_id == list_id)
        ).scalar()
        item = ListItem(
            list_id=list_id,
            position=(last_position if last_position is not None else -1) + 1,
            text=data.text,
            quantity=data.quantity,
            due_date=to_naive_utc(data.due_date) if data.due_date else None,
            priority=Priority(data.priority),
            notes=data.notes,
            added_by_id=user_id,
            assigned_to_id=data.assigned_to_id,
        )
        self.db.add(item)
        self.db.commit()
        self.db.expire(shared_list)
        return self.to_response(await self._get_list(list_id))

    async def _get_item(self, shared_list: SharedList, item_id: uuid.UUID) -> ListItem:
        for item in shared_list.items:
            if item.id == item_id:
                return item
        raise ValueError("ITEM_NOT_FOUND")

    async def update_item(
        self,
        user_id: uuid.UUID,
        list_id: uuid.UUID,
        item_id: uuid.UUID,
        data: UpdateListItemRequest,
    ) -> SharedListResponse:
        shared_list = await self._get_accessible(user_id, list_id)
        item = await self._get_item(shared_list, item_id)
        changes = data.model_dump(exclude_unset=True)

        for field in ("text", "quantity", "notes"):
            if field in changes and (field != "text" or changes[field]):
                setattr(item, field, changes[field])
        if "due_date" in changes:
            item.due_date = to_naive_utc(data.due_date) if data.due_date else None
        if changes.get("priority"):
            item.priority = Priority(changes["priority"])
        if "assigned_to_id" in changes:
            assignee = changes["assigned_to_id"]
            if assignee and assignee not in self._member_ids(shared_list):
                raise ValueError("INVALID_ASSIGNEE")
            item.assigned_to_id = assignee
        if changes.get("completed") is not None and changes["completed"] != item.completed:
            item.completed = changes["completed"]
            item.completed_by_id = user_id if item.completed else None
            item.completed_at = naive_utc_now() if item.completed else None

        self.db.commit()
        return self.to_response(await self._get_list(list_id))

    async def delete_item(
        self, user_id: uuid.UUID, list_id: uuid.UUID, item_id: uuid.UUID
    ) -> SharedListResponse:
        shared_list = await self._get_accessible(user_id, list_id)
        item = await self._get_item(shared_list, item_id)
        if user_id not in (item.added_by_id, shared_list.creator_id):
            raise ValueError("NOT_AUTHORIZED")
        shared_list.items.remove(item)
        self.db.commit()
        return self.to_response(await self._get_list(list_id))

    async def add_collaborator(
        self, user_id: uuid.UUID, list_id: uuid.UUID, collaborator_id: uuid.UUID
    ) -> SharedListResponse:
        shared_list = await self._get_owned(user_id, list_id)
        if collaborator_id in self._member_ids(shared_list):
            raise ValueError("ALREADY_COLLABORATOR")
        await self.friendships.ensure_friends(user_id, [collaborator_id])

        shared_list.collaborators.extend(await self.friendships.get_users([collaborator_id]))
        self.db.commit()

        await self._announce_collaborator(shared_list, collaborator_id)
        return self.to_response(await self._get_list(list_id))

    async def remove_collaborator(
        self, user_id: uuid.UUID, list_id: uuid.UUID, collaborator_id: uuid.UUID
    ) -> SharedListResponse:
        """The creator may remove anyone; a collaborator may only leave"""
        shared_list = await self._get_accessible(user_id, list_id)
        if user_id != shared_list.creator_id and user_id != collaborator_id:
            raise ValueError("NOT_AUTHORIZED")
        remaining = [u for u in shared_list.collaborators if u.id != collaborator_id]
        if len(remaining) == len(shared_list.collaborators):
            raise ValueError("NOT_A_COLLABORATOR")
        shared_list.collaborators = remaining
        self.db.commit()
        return self.to_response(await self._get_list(list_id))

    async def _announce_collaborator(
        self, shared_list: SharedList, collaborator_id: uuid.UUID
    ) -> None:
        await self.notifications.create_notification(
            recipient_id=collaborator_id,
            sender_id=shared_list.creator_id,
            notification_type=NotificationType.LIST_SHARED,
            title="List Shared With You",
            message=f'{shared_list.creator.username} added you to "{shared_list.name}"',
            related_id=shared_list.id,
            related_model=RelatedModel.SHARED_LIST,
            action_url=f"/lists/{shared_list.id}",
        )

    @staticmethod
    def to_item_response(item: ListItem) -> ListItemResponse:
        return ListItemResponse(
            id=item.id,
            position=item.position,
            text=item.text,
            quantity=item.quantity,
            completed=item.completed,
            due_date=item.due_date,
            priority=item.priority.value,
            notes=item.notes,
            added_by_id=item.added_by_id,
            assigned_to_id=item.assigned_to_id,
            completed_by_id=item.completed_by_id,
            completed_at=item.completed_at,
            created_at=item.created_at,
        )

    @classmethod
    def to_response(cls, shared_list: SharedList) -> SharedListResponse:
        return SharedListResponse(
            id=shared_list.id,
            name=shared_list.name,
            description=shared_list.description,
            list_type=shared_list.list_type.value,
            creator=UserSummary.from_user(shared_list.creator),
            collaborators=[UserSummary.from_user(u) for u in shared_list.collaborators],
            items=[cls.to_item_response(i) for i in shared_list.items],
            created_at=shared_list.created_at,
            updated_at=shared_list.updated_at,
        )


# Dependency injection for service provider
def get_shared_list_service(
    db: Session = Depends(get_sync_session),
) -> SharedListService:
    """Dependency to provide SharedListService instance"""
    notifications = NotificationService(db, connection_manager)
    return SharedListService(db, FriendshipService(db, notifications), notifications)
