from .request_id_middleware import *
from .auth_middleware import *

__all__ = [
    "RequestIDMiddleware",
    "AuthMiddleware",
    "AuthState",
    "auth_state_from_token",
    "get_current_user",
]
