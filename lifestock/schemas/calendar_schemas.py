from typing import List, Optional
from datetime import datetime
from pydantic import Field
import uuid

from lifestock.schemas.camel_base_model import CamelCaseBaseModel as BaseModel
from lifestock.schemas.user_schemas import UserSummary


class CreateEventRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=255, description="Event title")
    description: Optional[str] = None
    start_date: datetime = Field(..., description="Event start")
    end_date: datetime = Field(..., description="Event end, after start unless all-day")
    is_all_day: bool = False
    location: Optional[str] = Field(None, max_length=255)
    participant_ids: List[uuid.UUID] = Field(
        default_factory=list, description="Friends to invite"
    )


class UpdateEventRequest(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    is_all_day: Optional[bool] = None
    location: Optional[str] = Field(None, max_length=255)


class AddParticipantRequest(BaseModel):
    user_id: uuid.UUID = Field(..., description="Friend to invite")


class EventListQueryParams(BaseModel):
    start: Optional[datetime] = Field(None, description="Events starting at or after")
    end: Optional[datetime] = Field(None, description="Events starting before")


class EventResponse(BaseModel):
    id: uuid.UUID
    title: str
    description: Optional[str] = None
    start_date: datetime
    end_date: datetime
    is_all_day: bool
    location: Optional[str] = None
    creator: UserSummary
    participants: List[UserSummary] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
