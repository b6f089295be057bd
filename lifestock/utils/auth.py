import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt
from passlib.context import CryptContext

from lifestock.config.settings import settings

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

TOKEN_TYPE = "access"
REQUIRED_CLAIMS = ["sub", "username", "exp"]


class AuthUtils:
    """Bearer tokens shared by the REST routes and the notification socket."""

    @staticmethod
    def generate_access_token(user_id: str, username: str) -> str:
        issued_at = datetime.now(timezone.utc)
        claims = {
            "sub": str(user_id),
            "username": username,
            "typ": TOKEN_TYPE,
            "iat": issued_at,
            "exp": issued_at + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
        }
        return jwt.encode(claims, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)

    @staticmethod
    def verify_access_token(token: str) -> Optional[Dict[str, Any]]:
        """Claims of a valid, unexpired access token whose subject is a user id.

        Returns None for anything else so callers answer with a plain 401.
        """
        try:
            claims = jwt.decode(
                token,
                settings.JWT_SECRET_KEY,
                algorithms=[settings.JWT_ALGORITHM],
                options={"require": REQUIRED_CLAIMS},
            )
            uuid.UUID(str(claims["sub"]))
        except (jwt.InvalidTokenError, ValueError):
            return None
        if claims.get("typ", TOKEN_TYPE) != TOKEN_TYPE or not claims["username"]:
            return None
        return claims

    @staticmethod
    def extract_bearer_token(authorization: Optional[str]) -> Optional[str]:
        scheme, _, token = (authorization or "").partition(" ")
        token = token.strip()
        return token if scheme.lower() == "bearer" and token else None

    @staticmethod
    def hash_password(password: str) -> str:
        return pwd_context.hash(password)

    @staticmethod
    def verify_password(plain_password: str, hashed_password: str) -> bool:
        # passlib raises ValueError on a hash it cannot identify
        try:
            return pwd_context.verify(plain_password, hashed_password)
        except ValueError:
            return False
