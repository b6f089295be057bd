from typing import Annotated
import uuid

from fastapi import APIRouter, Depends, Request, Path

from lifestock.middlewares.auth_middleware import get_current_user, AuthState
from lifestock.services.notification_service import (
    NotificationService,
    get_notification_service,
)
from lifestock.schemas.notification_schemas import NotificationListQueryParams
from lifestock.utils.responses import ResponseBuilder
from lifestock.utils.errors import BusinessLogicError
from lifestock.utils.error_handlers import handle_service_error

notifications_router = APIRouter()

NotificationId = Annotated[uuid.UUID, Path(description="Notification ID")]
CurrentUser = Annotated[AuthState, Depends(get_current_user)]


@notifications_router.get(
    "/",
    summary="List notifications",
    description="Paginated, newest first; expired notifications are left out",
)
async def get_notifications(
    request: Request,
    current_user: CurrentUser,
    query_params: Annotated[NotificationListQueryParams, Depends()],
    notification_service: NotificationService = Depends(get_notification_service),
):
    try:
        notifications, total, unread_count = (
            await notification_service.get_notifications(
                current_user.user_uuid, query_params
            )
        )

        return ResponseBuilder.paginated(
            request=request,
            data=[n.model_dump(by_alias=True) for n in notifications],
            page=query_params.page,
            per_page=query_params.limit,
            total=total,
            message=f"Retrieved {len(notifications)} notifications",
            meta={"unreadCount": unread_count},
        )

    except (ValueError, RuntimeError) as e:
        return handle_service_error(request, e)
    except Exception:
        raise BusinessLogicError(
            message="Failed to retrieve notifications",
            error_code="NOTIFICATIONS_RETRIEVAL_FAILED",
        )


@notifications_router.get("/unread-count", summary="Count unread notifications")
async def get_unread_count(
    request: Request,
    current_user: CurrentUser,
    notification_service: NotificationService = Depends(get_notification_service),
):
    try:
        count = await notification_service.get_unread_count(current_user.user_uuid)

        return ResponseBuilder.success(
            request=request,
            data={"count": count},
            message="Unread count retrieved",
        )

    except (ValueError, RuntimeError) as e:
        return handle_service_error(request, e)
    except Exception:
        raise BusinessLogicError(
            message="Failed to count notifications",
            error_code="NOTIFICATIONS_RETRIEVAL_FAILED",
        )


@notifications_router.put("/mark-all-read", summary="Mark every notification read")
async def mark_all_as_read(
    request: Request,
    current_user: CurrentUser,
    notification_service: NotificationService = Depends(get_notification_service),
):
    try:
        updated = await notification_service.mark_all_as_read(current_user.user_uuid)

        return ResponseBuilder.success(
            request=request,
            data={"updated": updated},
            message=f"Marked {updated} notifications as read",
        )

    except (ValueError, RuntimeError) as e:
        return handle_service_error(request, e)
    except Exception:
        raise BusinessLogicError(
            message="Failed to mark notifications as read",
            error_code="NOTIFICATION_UPDATE_FAILED",
        )


@notifications_router.put("/{notification_id}/read", summary="Mark a notification read")
async def mark_as_read(
    request: Request,
    notification_id: NotificationId,
    current_user: CurrentUser,
    notification_service: NotificationService = Depends(get_notification_service),
):
    try:
        notification = await notification_service.mark_as_read(
            current_user.user_uuid, notification_id
        )

        return ResponseBuilder.success(
            request=request,
            data=notification.model_dump(by_alias=True),
            message="Notification marked as read",
        )

    except (ValueError, RuntimeError) as e:
        return handle_service_error(request, e)
    except Exception:
        raise BusinessLogicError(
            message="Failed to mark notification as read",
            error_code="NOTIFICATION_UPDATE_FAILED",
        )


@notifications_router.delete("/{notification_id}", summary="Delete a notification")
async def delete_notification(
    request: Request,
    notification_id: NotificationId,
    current_user: CurrentUser,
    notification_service: NotificationService = Depends(get_notification_service),
):
    try:
        await notification_service.delete_notification(
            current_user.user_uuid, notification_id
        )

        return ResponseBuilder.success(
            request=request, data=None, message="Notification deleted"
        )

    except (ValueError, RuntimeError) as e:
        return handle_service_error(request, e)
    except Exception:
        raise BusinessLogicError(
            message="Failed to delete notification",
            error_code="NOTIFICATION_DELETION_FAILED",
        )
