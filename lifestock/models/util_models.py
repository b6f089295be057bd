from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class ResponseStatus(str, Enum):
    SUCCESS = "success"
    ERROR = "error"


class PaginationMeta(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    page: int
    per_page: int
    total: int
    total_pages: int
    has_next: bool
    has_prev: bool
    next_page: Optional[int] = None
    prev_page: Optional[int] = None

    @classmethod
    def for_page(cls, page: int, per_page: int, total: int) -> "PaginationMeta":
        total_pages = -(-total // per_page) if per_page else 0
        has_next = page < total_pages
        has_prev = page > 1
        return cls(
            page=page,
            per_page=per_page,
            total=total,
            total_pages=total_pages,
            has_next=has_next,
            has_prev=has_prev,
            next_page=page + 1 if has_next else None,
            prev_page=page - 1 if has_prev else None,
        )


class ApiResponse(BaseModel):
    """Envelope shared by every JSON response."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    success: bool
    status: ResponseStatus
    message: str
    data: Any = None
    meta: Optional[Dict[str, Any]] = None
    pagination: Optional[PaginationMeta] = None
    errors: Optional[List[Dict[str, Any]]] = None
    request_id: Optional[str] = None
    path: Optional[str] = None
