from typing import Optional
from datetime import datetime
from pydantic import Field
import uuid

from lifestock.schemas.camel_base_model import CamelCaseBaseModel as BaseModel
from lifestock.schemas.user_schemas import UserSummary


class FriendRequestCreate(BaseModel):
    recipient_id: uuid.UUID = Field(..., description="User to befriend")


class FriendshipResponse(BaseModel):
    id: uuid.UUID = Field(..., description="Friendship ID")
    requester: UserSummary
    recipient: UserSummary
    status: str = Field(..., description="pending, accepted or rejected")
    accepted_at: Optional[datetime] = None
    created_at: Optional[datetime] = None


class FriendResponse(UserSummary):
    friendship_id: uuid.UUID = Field(..., description="Friendship linking the users")
    friends_since: Optional[datetime] = None


class UserSearchResult(UserSummary):
    # none, pending, accepted
    friendship_status: str = "none"
