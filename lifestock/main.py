from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from lifestock.config.settings import settings
from lifestock.db.db import create_tables
from lifestock.utils.logging import get_logger
from lifestock.routers import main_router, websocket_router
from lifestock.utils.errors import setup_error_handlers
from lifestock.middlewares import RequestIDMiddleware, AuthMiddleware
from lifestock.services.channels.realtime import RealtimeRelay, connection_manager
from lifestock.services.reminders.scheduler import ReminderScheduler

# Initialize the logger
logger = get_logger()


@asynccontextmanager
async def lifespan(application: FastAPI):
    logger.info(f"{settings.NAME} is starting up...")
    create_tables()

    scheduler = None
    relay = None
    if settings.SCHEDULER_MODE == "inprocess":
        scheduler = ReminderScheduler(transport=connection_manager)
        scheduler.start()
    elif settings.SCHEDULER_MODE == "celery":
        # Reminders run in the Celery worker; relay its realtime events here
        relay = RealtimeRelay(connection_manager)
        relay.start()
    else:
        logger.info("Reminder scheduler disabled")

    application.state.reminder_scheduler = scheduler
    application.state.realtime_relay = relay
    yield

    if scheduler is not None:
        await scheduler.stop()
    if relay is not None:
        await relay.stop()
    logger.info(f"{settings.NAME} is shutting down...")


def create_application() -> FastAPI:
    """Initialize the FastAPI application with settings and lifespan events."""
    application = FastAPI(
        title=settings.NAME, version=settings.VERSION, lifespan=lifespan
    )

    # Setup error handlers
    setup_error_handlers(application)

    # Add CORS middleware
    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_HOSTS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "authorization", "X-Request-ID"],
    )

    # Add custom middlewares; the last one added runs first
    application.add_middleware(AuthMiddleware)
    application.add_middleware(RequestIDMiddleware)

    # Routers
    application.include_router(main_router, prefix=settings.API_PREFIX, tags=["APIs"])
    application.include_router(
        websocket_router, prefix=settings.WEB_SOCKET_PREFIX, tags=["Realtime"]
    )

    return application


app = create_application()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "lifestock.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_config=None,
        log_level=None,
    )
