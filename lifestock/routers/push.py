from typing import Annotated

from fastapi import APIRouter, Depends, Request, status

from lifestock.middlewares.auth_middleware import get_current_user, AuthState
from lifestock.services.push_subscription_service import (
    PushSubscriptionService,
    get_push_subscription_service,
)
from lifestock.schemas.push_schemas import (
    SubscribeRequest,
    TestPushRequest,
    UnsubscribeRequest,
)
from lifestock.utils.responses import ResponseBuilder
from lifestock.utils.errors import BusinessLogicError
from lifestock.utils.error_handlers import handle_service_error

push_router = APIRouter()

CurrentUser = Annotated[AuthState, Depends(get_current_user)]


@push_router.get(
    "/vapid-public-key",
    summary="VAPID public key",
    description="Public key browsers need to create a push subscription",
)
async def get_vapid_public_key(request: Request):
    return ResponseBuilder.success(
        request=request,
        data=PushSubscriptionService.get_public_key(),
        message="VAPID public key retrieved",
    )


@push_router.post(
    "/subscribe", status_code=status.HTTP_201_CREATED, summary="Register a push endpoint"
)
async def subscribe(
    request: Request,
    subscribe_data: SubscribeRequest,
    current_user: CurrentUser,
    push_service: PushSubscriptionService = Depends(get_push_subscription_service),
):
    try:
        push_status = await push_service.subscribe(
            current_user.user_uuid, subscribe_data.subscription
        )

        return ResponseBuilder.success(
            request=request,
            data=push_status,
            message="Push subscription saved",
            status_code=status.HTTP_201_CREATED,
        )

    except (ValueError, RuntimeError) as e:
        return handle_service_error(request, e)
    except Exception:
        raise BusinessLogicError(
            message="Failed to save push subscription",
            error_code="PUSH_SUBSCRIPTION_FAILED",
        )


@push_router.post("/unsubscribe", summary="Remove a push endpoint")
async def unsubscribe(
    request: Request,
    unsubscribe_data: UnsubscribeRequest,
    current_user: CurrentUser,
    push_service: PushSubscriptionService = Depends(get_push_subscription_service),
):
    try:
        push_status = await push_service.unsubscribe(
            current_user.user_uuid, unsubscribe_data.endpoint
        )

        return ResponseBuilder.success(
            request=request, data=push_status, message="Push subscription removed"
        )

    except (ValueError, RuntimeError) as e:
        return handle_service_error(request, e)
    except Exception:
        raise BusinessLogicError(
            message="Failed to remove push subscription",
            error_code="PUSH_SUBSCRIPTION_FAILED",
        )


@push_router.get("/status", summary="Push subscription status")
async def get_status(
    request: Request,
    current_user: CurrentUser,
    push_service: PushSubscriptionService = Depends(get_push_subscription_service),
):
    try:
        push_status = await push_service.get_status(current_user.user_uuid)

        return ResponseBuilder.success(
            request=request, data=push_status, message="Push status retrieved"
        )

    except (ValueError, RuntimeError) as e:
        return handle_service_error(request, e)
    except Exception:
        raise BusinessLogicError(
            message="Failed to retrieve push status",
            error_code="PUSH_STATUS_FAILED",
        )


@push_router.post("/test", summary="Send a test push to the current user")
async def send_test_push(
    request: Request,
    test_data: TestPushRequest,
    current_user: CurrentUser,
    push_service: PushSubscriptionService = Depends(get_push_subscription_service),
):
    try:
        result = await push_service.send_test(current_user.user_uuid, test_data.message)

        return ResponseBuilder.success(
            request=request, data=result, message="Test notification sent"
        )

    except (ValueError, RuntimeError) as e:
        return handle_service_error(request, e)
    except Exception:
        raise BusinessLogicError(
            message="Failed to send test notification",
            error_code="PUSH_DELIVERY_FAILED",
        )
