from typing import Optional
from datetime import datetime
from pydantic import Field
import uuid

from lifestock.schemas.camel_base_model import CamelCaseBaseModel as BaseModel
from lifestock.schemas.user_schemas import UserSummary


class NotificationListQueryParams(BaseModel):
    page: int = Field(1, ge=1, description="Page number")
    limit: int = Field(20, ge=1, le=100, description="Page size")
    is_read: Optional[bool] = Field(None, description="Filter on read state")


class NotificationResponse(BaseModel):
    id: uuid.UUID = Field(..., description="Notification ID")
    sender: Optional[UserSummary] = Field(None, description="Who triggered it")
    notification_type: str = Field(..., description="Notification type")
    title: str
    message: str
    related_id: Optional[uuid.UUID] = None
    related_model: Optional[str] = None
    is_read: bool
    priority: str
    action_url: Optional[str] = None
    created_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None
