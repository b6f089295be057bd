from typing import List, Literal, Optional
from datetime import datetime
from pydantic import Field
import uuid

from lifestock.schemas.camel_base_model import CamelCaseBaseModel as BaseModel
from lifestock.schemas.user_schemas import UserSummary

TaskPriority = Literal["low", "medium", "high"]


class CreateTaskRequest(BaseModel):
    """Request schema for creating a task"""

    title: str = Field(..., min_length=1, max_length=255, description="Task title")
    description: Optional[str] = Field(None, description="Task description")
    due_date: Optional[datetime] = Field(None, description="When the task is due")
    priority: TaskPriority = Field("medium", description="Task priority")
    category: str = Field("", max_length=100, description="Free form category")
    tags: List[str] = Field(default_factory=list, description="Task tags")


class UpdateTaskRequest(BaseModel):
    """Partial update; omitted fields are left unchanged"""

    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    due_date: Optional[datetime] = None
    completed: Optional[bool] = None
    priority: Optional[TaskPriority] = None
    category: Optional[str] = Field(None, max_length=100)
    tags: Optional[List[str]] = None


class ShareTaskRequest(BaseModel):
    user_ids: List[uuid.UUID] = Field(
        ..., min_length=1, description="Friends to share with or unshare from"
    )


class UpcomingTasksQueryParams(BaseModel):
    days: int = Field(7, ge=1, le=365, description="How many days ahead to look")


class TaskResponse(BaseModel):
    """Response schema for task data"""

    id: uuid.UUID = Field(..., description="Task ID")
    title: str = Field(..., description="Task title")
    description: Optional[str] = Field(None, description="Task description")
    completed: bool = Field(..., description="Completion flag")
    due_date: Optional[datetime] = Field(None, description="Due timestamp")
    priority: str = Field(..., description="Task priority")
    category: str = Field("", description="Category")
    tags: List[str] = Field(default_factory=list, description="Tags")
    owner: UserSummary = Field(..., description="Task owner")
    shared_with: List[UserSummary] = Field(
        default_factory=list, description="Users the task is shared with"
    )
    is_shared: bool = Field(False, description="Whether the task is shared")
    created_at: Optional[datetime] = Field(None, description="Creation timestamp")
    updated_at: Optional[datetime] = Field(None, description="Last update timestamp")
