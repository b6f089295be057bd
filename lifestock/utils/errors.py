from typing import Optional

from fastapi import FastAPI, Request, status
from starlette.exceptions import HTTPException as StarletteHTTPException
from fastapi.exceptions import RequestValidationError
from sqlalchemy.exc import SQLAlchemyError
from pydantic import ValidationError

from .logging import get_logger
from .responses import ResponseBuilder
from .error_handlers import SERVICE_ERRORS, handle_service_error

logger = get_logger()


class LifeStockError(Exception):
    """Base for errors routers raise when a service call fails unexpectedly."""

    default_message = "An error occurred"
    default_code = "ERROR"
    status_code = status.HTTP_400_BAD_REQUEST
    error_type = "ERROR"

    def __init__(self, message: Optional[str] = None, error_code: Optional[str] = None):
        self.message = message or self.default_message
        self.error_code = error_code or self.default_code
        super().__init__(self.message)


class DatabaseError(LifeStockError):
    default_code = "DB_ERROR"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    error_type = "DATABASE_ERROR"


class BusinessLogicError(LifeStockError):
    default_code = "BLOC_ERROR"
    error_type = "BUSINESS_ERROR"


class AuthenticationError(LifeStockError):
    default_message = "Authentication failed"
    default_code = "UNAUTHORIZED"
    status_code = status.HTTP_401_UNAUTHORIZED
    error_type = "AUTHENTICATION_ERROR"


class AuthorizationError(LifeStockError):
    default_message = "Access denied"
    default_code = "FORBIDDEN"
    status_code = status.HTTP_403_FORBIDDEN
    error_type = "AUTHORIZATION_ERROR"


class NotFoundError(LifeStockError):
    default_message = "Resource not found"
    default_code = "NOT_FOUND"
    status_code = status.HTTP_404_NOT_FOUND
    error_type = "NOT_FOUND_ERROR"


def _format_validation_errors(errors) -> list:
    return [
        {
            "field": " -> ".join(str(loc) for loc in error["loc"]),
            "message": error["msg"],
            "type": error["type"],
        }
        for error in errors
    ]


def setup_error_handlers(app: FastAPI):
    """Register the envelope-producing handlers on ``app``."""

    @app.exception_handler(LifeStockError)
    async def lifestock_error_handler(request: Request, exc: LifeStockError):
        logger.error(f"{type(exc).__name__}: {exc.message} ({exc.error_code})")
        return ResponseBuilder.error(
            request=request,
            message=exc.message,
            error_code=exc.error_code,
            status_code=exc.status_code,
            meta={"error_type": exc.error_type},
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        logger.warning(f"HTTP {exc.status_code} on {request.url.path}: {exc.detail}")
        return ResponseBuilder.error(
            request=request,
            message=str(exc.detail),
            error_code="HTTP_ERROR",
            status_code=exc.status_code,
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_exception_handler(
        request: Request, exc: RequestValidationError
    ):
        logger.warning(f"Request validation failed on {request.url.path}")
        return ResponseBuilder.error(
            request=request,
            message="Request validation failed",
            errors=_format_validation_errors(exc.errors()),
            error_code="VALIDATION_ERROR",
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        )

    # A response model built from bad stored data, not a client error
    @app.exception_handler(ValidationError)
    async def pydantic_validation_exception_handler(
        request: Request, exc: ValidationError
    ):
        logger.error(f"Response validation failed: {exc.errors()}")
        return ResponseBuilder.error(
            request=request,
            message="Data validation failed",
            error_code="INTERNAL_VALIDATION_ERROR",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    @app.exception_handler(SQLAlchemyError)
    async def sqlalchemy_exception_handler(request: Request, exc: SQLAlchemyError):
        logger.error(f"SQLAlchemy Error: {str(exc)}")
        return ResponseBuilder.error(
            request=request,
            message="A database error occurred",
            error_code="DATABASE_ERROR",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    # Service codes that escaped a router's own try block
    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError):
        code = str(exc).split(":", 1)[0].strip()
        if code in SERVICE_ERRORS:
            return handle_service_error(request, exc)
        logger.error(f"Value Error: {str(exc)}")
        return ResponseBuilder.error(
            request=request,
            message=str(exc),
            error_code="VALUE_ERROR",
            status_code=status.HTTP_400_BAD_REQUEST,
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        logger.opt(exception=exc).error(f"Unhandled exception on {request.url.path}")
        return ResponseBuilder.error(
            request=request,
            message="An internal server error occurred",
            error_code="INTERNAL_ERROR",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )
