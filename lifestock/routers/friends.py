from typing import Annotated
import uuid

from fastapi import APIRouter, Depends, Request, status, Path, Query

from lifestock.middlewares.auth_middleware import get_current_user, AuthState
from lifestock.services.friendship_service import (
    FriendshipService,
    get_friendship_service,
)
from lifestock.schemas.friendship_schemas import FriendRequestCreate
from lifestock.utils.responses import ResponseBuilder
from lifestock.utils.errors import BusinessLogicError
from lifestock.utils.error_handlers import handle_service_error

friends_router = APIRouter()

FriendshipId = Annotated[uuid.UUID, Path(description="Friendship ID")]
CurrentUser = Annotated[AuthState, Depends(get_current_user)]


@friends_router.post(
    "/request", status_code=status.HTTP_201_CREATED, summary="Send a friend request"
)
async def send_friend_request(
    request: Request,
    request_data: FriendRequestCreate,
    current_user: CurrentUser,
    friendship_service: FriendshipService = Depends(get_friendship_service),
):
    try:
        friendship = await friendship_service.send_request(
            current_user.user_uuid, request_data.recipient_id
        )

        return ResponseBuilder.success(
            request=request,
            data=friendship.model_dump(by_alias=True),
            message="Friend request sent",
            status_code=status.HTTP_201_CREATED,
        )

    except (ValueError, RuntimeError) as e:
        return handle_service_error(request, e)
    except Exception:
        raise BusinessLogicError(
            message="Failed to send friend request",
            error_code="FRIEND_REQUEST_FAILED",
        )


@friends_router.put("/accept/{friendship_id}", summary="Accept a friend request")
async def accept_friend_request(
    request: Request,
    friendship_id: FriendshipId,
    current_user: CurrentUser,
    friendship_service: FriendshipService = Depends(get_friendship_service),
):
    try:
        friendship = await friendship_service.accept_request(
            current_user.user_uuid, friendship_id
        )

        return ResponseBuilder.success(
            request=request,
            data=friendship.model_dump(by_alias=True),
            message="Friend request accepted",
        )

    except (ValueError, RuntimeError) as e:
        return handle_service_error(request, e)
    except Exception:
        raise BusinessLogicError(
            message="Failed to accept friend request",
            error_code="FRIEND_REQUEST_FAILED",
        )


@friends_router.delete("/reject/{friendship_id}", summary="Reject a friend request")
async def reject_friend_request(
    request: Request,
    friendship_id: FriendshipId,
    current_user: CurrentUser,
    friendship_service: FriendshipService = Depends(get_friendship_service),
):
    try:
        await friendship_service.reject_request(current_user.user_uuid, friendship_id)

        return ResponseBuilder.success(
            request=request, data=None, message="Friend request rejected"
        )

    except (ValueError, RuntimeError) as e:
        return handle_service_error(request, e)
    except Exception:
        raise BusinessLogicError(
            message="Failed to reject friend request",
            error_code="FRIEND_REQUEST_FAILED",
        )


@friends_router.get("/", summary="List accepted friends")
async def get_friends(
    request: Request,
    current_user: CurrentUser,
    friendship_service: FriendshipService = Depends(get_friendship_service),
):
    try:
        friends = await friendship_service.get_friends(current_user.user_uuid)

        return ResponseBuilder.success(
            request=request,
            data=[f.model_dump(by_alias=True) for f in friends],
            message=f"Retrieved {len(friends)} friends",
        )

    except (ValueError, RuntimeError) as e:
        return handle_service_error(request, e)
    except Exception:
        raise BusinessLogicError(
            message="Failed to retrieve friends", error_code="FRIENDS_RETRIEVAL_FAILED"
        )


@friends_router.get("/pending", summary="Friend requests awaiting the current user")
async def get_pending_requests(
    request: Request,
    current_user: CurrentUser,
    friendship_service: FriendshipService = Depends(get_friendship_service),
):
    try:
        requests = await friendship_service.get_pending_requests(current_user.user_uuid)

        return ResponseBuilder.success(
            request=request,
            data=[r.model_dump(by_alias=True) for r in requests],
            message=f"Retrieved {len(requests)} pending requests",
        )

    except (ValueError, RuntimeError) as e:
        return handle_service_error(request, e)
    except Exception:
        raise BusinessLogicError(
            message="Failed to retrieve pending requests",
            error_code="FRIENDS_RETRIEVAL_FAILED",
        )


@friends_router.get("/sent", summary="Friend requests the current user sent")
async def get_sent_requests(
    request: Request,
    current_user: CurrentUser,
    friendship_service: FriendshipService = Depends(get_friendship_service),
):
    try:
        requests = await friendship_service.get_sent_requests(current_user.user_uuid)

        return ResponseBuilder.success(
            request=request,
            data=[r.model_dump(by_alias=True) for r in requests],
            message=f"Retrieved {len(requests)} sent requests",
        )

    except (ValueError, RuntimeError) as e:
        return handle_service_error(request, e)
    except Exception:
        raise BusinessLogicError(
            message="Failed to retrieve sent requests",
            error_code="FRIENDS_RETRIEVAL_FAILED",
        )


@friends_router.get(
    "/search",
    summary="Search users",
    description="Find users by username or email, excluding existing connections",
)
async def search_users(
    request: Request,
    current_user: CurrentUser,
    q: str = Query(..., description="At least two characters of a username or email"),
    friendship_service: FriendshipService = Depends(get_friendship_service),
):
    try:
        users = await friendship_service.search_users(current_user.user_uuid, q)

        return ResponseBuilder.success(
            request=request,
            data=[u.model_dump(by_alias=True) for u in users],
            message=f"Found {len(users)} users",
        )

    except (ValueError, RuntimeError) as e:
        return handle_service_error(request, e)
    except Exception:
        raise BusinessLogicError(
            message="Failed to search users", error_code="USER_SEARCH_FAILED"
        )


@friends_router.delete("/{friendship_id}", summary="Remove a friend")
async def remove_friend(
    request: Request,
    friendship_id: FriendshipId,
    current_user: CurrentUser,
    friendship_service: FriendshipService = Depends(get_friendship_service),
):
    try:
        await friendship_service.remove_friend(current_user.user_uuid, friendship_id)

        return ResponseBuilder.success(
            request=request, data=None, message="Friend removed"
        )

    except (ValueError, RuntimeError) as e:
        return handle_service_error(request, e)
    except Exception:
        raise BusinessLogicError(
            message="Failed to remove friend", error_code="FRIEND_REMOVAL_FAILED"
        )
