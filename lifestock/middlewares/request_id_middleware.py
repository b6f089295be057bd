import uuid
from typing import Callable, Optional

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from lifestock.utils.context import set_request_id

REQUEST_ID_HEADER = "X-Request-ID"


def resolve_request_id(header_value: Optional[str]) -> str:
    """Keep a caller supplied id only when it parses as a UUID."""
    if header_value:
        try:
            return str(uuid.UUID(header_value))
        except ValueError:
            pass
    return str(uuid.uuid4())


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Tags the request, its log lines and the response with one id.

    Reminder cycles bind their own cycle id instead, see
    ``lifestock.utils.context.bound_request_id``.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = resolve_request_id(request.headers.get(REQUEST_ID_HEADER))
        request.state.request_id = request_id
        set_request_id(request_id)

        response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = request_id
        return response
