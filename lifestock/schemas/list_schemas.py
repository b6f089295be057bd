from typing import List, Literal, Optional
from datetime import datetime
from pydantic import Field
import uuid

from lifestock.schemas.camel_base_model import CamelCaseBaseModel as BaseModel
from lifestock.schemas.user_schemas import UserSummary

ListTypeLiteral = Literal["grocery", "expense", "todo", "custom"]
ItemPriority = Literal["low", "medium", "high"]


class CreateSharedListRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=255, description="List name")
    description: Optional[str] = Field(None, description="List description")
    list_type: ListTypeLiteral = Field("custom", description="Kind of list")
    collaborator_ids: List[uuid.UUID] = Field(
        default_factory=list, description="Friends to collaborate with"
    )


class UpdateSharedListRequest(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    list_type: Optional[ListTypeLiteral] = None


class CreateListItemRequest(BaseModel):
    text: str = Field(..., min_length=1, max_length=500, description="Item text")
    quantity: Optional[str] = Field(None, max_length=100)
    due_date: Optional[datetime] = Field(None, description="When the item is due")
    priority: ItemPriority = "medium"
    notes: Optional[str] = None
    assigned_to_id: Optional[uuid.UUID] = Field(
        None, description="Creator or collaborator responsible for the item"
    )


class UpdateListItemRequest(BaseModel):
    text: Optional[str] = Field(None, min_length=1, max_length=500)
    quantity: Optional[str] = Field(None, max_length=100)
    due_date: Optional[datetime] = None
    priority: Optional[ItemPriority] = None
    notes: Optional[str] = None
    completed: Optional[bool] = None
    assigned_to_id: Optional[uuid.UUID] = None


class AddCollaboratorRequest(BaseModel):
    user_id: uuid.UUID = Field(..., description="Friend to add as collaborator")


class ListItemResponse(BaseModel):
    id: uuid.UUID
    position: int
    text: str
    quantity: Optional[str] = None
    completed: bool
    due_date: Optional[datetime] = None
    priority: str
    notes: Optional[str] = None
    added_by_id: uuid.UUID
    assigned_to_id: Optional[uuid.UUID] = None
    completed_by_id: Optional[uuid.UUID] = None
    completed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None


class SharedListResponse(BaseModel):
    """Response schema for a shared list with its items"""

    id: uuid.UUID = Field(..., description="List ID")
    name: str = Field(..., description="List name")
    description: Optional[str] = Field(None, description="List description")
    list_type: str = Field(..., description="Kind of list")
    creator: UserSummary = Field(..., description="List creator")
    collaborators: List[UserSummary] = Field(default_factory=list)
    items: List[ListItemResponse] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
