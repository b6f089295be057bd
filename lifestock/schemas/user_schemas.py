from typing import Optional
from datetime import datetime
from pydantic import EmailStr, Field, field_validator
import uuid

from lifestock.schemas.camel_base_model import CamelCaseBaseModel as BaseModel


class RegisterRequest(BaseModel):
    """Request schema for creating an account"""

    username: str = Field(..., min_length=3, max_length=100, description="Unique username")
    email: EmailStr = Field(..., description="Email address, stored lowercased")
    password: str = Field(..., min_length=6, description="Plain text password")

    @field_validator("username")
    def strip_username(cls, v: str) -> str:
        return v.strip()


class LoginRequest(BaseModel):
    email: EmailStr = Field(..., description="Account email")
    password: str = Field(..., min_length=1, description="Account password")


class UserSummary(BaseModel):
    """Public view of a user embedded in other resources"""

    id: uuid.UUID = Field(..., description="User ID")
    username: str = Field(..., description="Username")
    email: str = Field(..., description="Email address")
    profile_picture: Optional[str] = Field(None, description="Profile picture URL")

    @classmethod
    def from_user(cls, user):
        return cls(
            id=user.id,
            username=user.username,
            email=user.email,
            profile_picture=user.profile_picture or None,
        )


class UserResponse(UserSummary):
    created_at: Optional[datetime] = Field(None, description="Account creation time")


class AuthResponse(BaseModel):
    user: UserResponse = Field(..., description="Authenticated user")
    token: str = Field(..., description="Bearer access token")
