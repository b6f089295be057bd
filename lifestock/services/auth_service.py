from typing import Optional
import uuid

from fastapi import Depends
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
from sqlalchemy import select, or_, func

from lifestock.db.models import User
from lifestock.db.session import get_sync_session
from lifestock.schemas.user_schemas import (
    AuthResponse,
    LoginRequest,
    RegisterRequest,
    UserResponse,
)
from lifestock.utils.auth import AuthUtils
from lifestock.utils.logging import get_logger

logger = get_logger()


class AuthService:
    """Account registration, login and lookup"""

    def __init__(self, db_session: Session):
        self.db = db_session

    async def get_user_by_id(self, user_id: uuid.UUID) -> Optional[User]:
        return self.db.get(User, user_id)

    async def get_user_by_email(self, email: str) -> Optional[User]:
        result = self.db.execute(
            select(User).where(func.lower(User.email) == email.lower())
        )
        return result.scalar_one_or_none()

    async def register(self, data: RegisterRequest) -> AuthResponse:
        email = str(data.email).lower()
        existing = self.db.execute(
            select(User).where(
                or_(func.lower(User.email) == email, User.username == data.username)
            )
        ).scalar_one_or_none()
        if existing:
            raise ValueError("USER_EXISTS")

        try:
            user = User(
                username=data.username,
                email=email,
                password_hash=AuthUtils.hash_password(data.password),
            )
            self.db.add(user)
            self.db.commit()
            self.db.refresh(user)
        except IntegrityError:
            self.db.rollback()
            raise ValueError("USER_EXISTS")

        logger.info(f"Registered user {user.username}")
        return self._auth_response(user)

    async def login(self, data: LoginRequest) -> AuthResponse:
        user = await self.get_user_by_email(str(data.email))
        if not user or not AuthUtils.verify_password(data.password, user.password_hash):
            raise ValueError("INVALID_CREDENTIALS")
        return self._auth_response(user)

    async def get_profile(self, user_id: uuid.UUID) -> UserResponse:
        user = await self.get_user_by_id(user_id)
        if not user:
            raise ValueError("USER_NOT_FOUND")
        return self.to_user_response(user)

    @staticmethod
    def to_user_response(user: User) -> UserResponse:
        return UserResponse(
            id=user.id,
            username=user.username,
            email=user.email,
            profile_picture=user.profile_picture or None,
            created_at=user.created_at,
        )

    def _auth_response(self, user: User) -> AuthResponse:
        return AuthResponse(
            user=self.to_user_response(user),
            token=AuthUtils.generate_access_token(str(user.id), user.username),
        )


# Dependency injection for service provider
def get_auth_service(db: Session = Depends(get_sync_session)) -> AuthService:
    """Dependency to provide AuthService instance"""
    return AuthService(db)
