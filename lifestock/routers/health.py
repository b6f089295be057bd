from fastapi import APIRouter, Request

from lifestock.config.settings import settings
from lifestock.services.channels.realtime import connection_manager
from lifestock.utils.responses import ResponseBuilder

health_router = APIRouter()


@health_router.get("/")
async def health_check(request: Request):
    """
    Basic health check endpoint

    Returns application status, the reminder scheduler mode and how many
    realtime connections this process holds
    """
    return ResponseBuilder.success(
        request=request,
        data={
            "status": "healthy",
            "service": settings.NAME,
            "version": settings.VERSION,
            "schedulerMode": settings.SCHEDULER_MODE,
            "realtimeConnections": connection_manager.total_connections(),
        },
        message="Service is running",
    )
