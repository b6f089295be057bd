"""Correlation id shared by log records and API envelopes.

Inside an HTTP request the id comes from ``RequestIDMiddleware``; a reminder
cycle binds its cycle id for the duration of the run.
"""

from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator, Optional

_correlation_id: ContextVar[Optional[str]] = ContextVar("request_id", default=None)


def get_request_id() -> Optional[str]:
    return _correlation_id.get()


def set_request_id(request_id: str) -> None:
    _correlation_id.set(request_id)


@contextmanager
def bound_request_id(request_id: str) -> Iterator[str]:
    token = _correlation_id.set(request_id)
    try:
        yield request_id
    finally:
        _correlation_id.reset(token)
