from typing import Optional, Callable
import uuid
from fastapi import Request, Response

from starlette.middleware.base import BaseHTTPMiddleware

from lifestock.config.settings import settings
from lifestock.utils.auth import AuthUtils
from lifestock.utils.errors import AuthenticationError
from lifestock.utils.responses import ResponseBuilder
from lifestock.utils.logging import get_logger

logger = get_logger()


class AuthState:
    """Authentication state to be stored in request.state"""

    def __init__(self, user_id: str, username: str, is_authenticated: bool = True):
        self.user_id = user_id
        self.username = username
        self.is_authenticated = is_authenticated

    @property
    def user_uuid(self) -> uuid.UUID:
        return uuid.UUID(self.user_id)


def auth_state_from_token(token: Optional[str]) -> Optional[AuthState]:
    """Decode a bearer token into an AuthState, or None when it is not valid."""
    if not token:
        return None
    claims = AuthUtils.verify_access_token(token)
    if claims is None:
        return None
    return AuthState(user_id=str(claims["sub"]), username=str(claims["username"]))


class AuthMiddleware(BaseHTTPMiddleware):
    """Bearer token authentication for every HTTP route not explicitly public"""

    # Paths that don't require authentication
    EXCLUDED_PATHS = {
        "/health",
        "/docs",
        "/redoc",
        "/openapi.json",
        f"{settings.API_PREFIX}/health",
        f"{settings.API_PREFIX}/users/register",
        f"{settings.API_PREFIX}/users/login",
        f"{settings.API_PREFIX}/push/vapid-public-key",
    }

    def __init__(self, app, excluded_paths: Optional[set] = None):
        super().__init__(app)
        self.excluded_paths = set(self.EXCLUDED_PATHS)
        if excluded_paths:
            self.excluded_paths.update(excluded_paths)

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.method == "OPTIONS" or self._is_excluded_path(request.url.path):
            return await call_next(request)

        token = AuthUtils.extract_bearer_token(request.headers.get("authorization"))
        auth_state = auth_state_from_token(token)
        if not auth_state:
            return ResponseBuilder.error(
                request=request,
                message="Not authorized, invalid or missing token",
                error_code="UNAUTHORIZED",
                status_code=401,
            )

        request.state.auth = auth_state
        return await call_next(request)

    def _is_excluded_path(self, path: str) -> bool:
        return any(path.startswith(excluded) for excluded in self.excluded_paths)


# Dependency for getting current user from request state
def get_current_user(request: Request) -> AuthState:
    """Dependency to get current authenticated user from request state"""
    auth_state = getattr(request.state, "auth", None)

    if not auth_state or not auth_state.is_authenticated:
        raise AuthenticationError("Not authenticated", "NOT_AUTHENTICATED")

    return auth_state
