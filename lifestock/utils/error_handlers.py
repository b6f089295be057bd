from fastapi import Request, status

from lifestock.utils.responses import ResponseBuilder

# Error code -> (status code, user-facing message)
SERVICE_ERRORS = {
    # Users & auth
    "USER_NOT_FOUND": (status.HTTP_404_NOT_FOUND, "User not found"),
    "USER_EXISTS": (
        status.HTTP_409_CONFLICT,
        "A user with this email or username already exists",
    ),
    "INVALID_CREDENTIALS": (status.HTTP_401_UNAUTHORIZED, "Invalid email or password"),
    "NOT_AUTHORIZED": (
        status.HTTP_403_FORBIDDEN,
        "You are not allowed to perform this action",
    ),
    "NOT_FRIENDS": (
        status.HTTP_400_BAD_REQUEST,
        "You can only share with, invite or add friends",
    ),
    # Tasks
    "TASK_NOT_FOUND": (status.HTTP_404_NOT_FOUND, "Task not found"),
    # Shared lists
    "LIST_NOT_FOUND": (status.HTTP_404_NOT_FOUND, "Shared list not found"),
    "ITEM_NOT_FOUND": (status.HTTP_404_NOT_FOUND, "Item not found"),
    "INVALID_ASSIGNEE": (
        status.HTTP_400_BAD_REQUEST,
        "Cannot assign to user who is not a collaborator",
    ),
    "ALREADY_COLLABORATOR": (
        status.HTTP_400_BAD_REQUEST,
        "User is already a collaborator",
    ),
    "NOT_A_COLLABORATOR": (status.HTTP_404_NOT_FOUND, "User is not a collaborator"),
    # Calendar
    "EVENT_NOT_FOUND": (status.HTTP_404_NOT_FOUND, "Event not found"),
    "INVALID_EVENT_DATES": (
        status.HTTP_400_BAD_REQUEST,
        "End date must be after start date",
    ),
    "ALREADY_PARTICIPANT": (
        status.HTTP_400_BAD_REQUEST,
        "User is already a participant",
    ),
    "NOT_A_PARTICIPANT": (status.HTTP_404_NOT_FOUND, "User is not a participant"),
    # Friendships
    "SELF_FRIEND_REQUEST": (
        status.HTTP_400_BAD_REQUEST,
        "You cannot send a friend request to yourself",
    ),
    "FRIEND_REQUEST_EXISTS": (
        status.HTTP_409_CONFLICT,
        "Friend request already exists or you are already friends",
    ),
    "FRIENDSHIP_NOT_FOUND": (status.HTTP_404_NOT_FOUND, "Friend request not found"),
    "FRIEND_REQUEST_NOT_PENDING": (
        status.HTTP_400_BAD_REQUEST,
        "This friend request is no longer pending",
    ),
    "SEARCH_QUERY_TOO_SHORT": (
        status.HTTP_400_BAD_REQUEST,
        "Search query must be at least 2 characters long",
    ),
    # Notifications & push
    "NOTIFICATION_NOT_FOUND": (status.HTTP_404_NOT_FOUND, "Notification not found"),
    "PUSH_NOT_CONFIGURED": (
        status.HTTP_503_SERVICE_UNAVAILABLE,
        "Push notifications are not configured",
    ),
    "PUSH_DELIVERY_FAILED": (
        status.HTTP_502_BAD_GATEWAY,
        "Failed to send test notification",
    ),
}


def handle_service_error(request: Request, error: Exception):
    """Translate a service ``ValueError("ERROR_CODE[: details]")`` into a response"""
    error_message = str(error)

    if ":" in error_message:
        error_code, details = (part.strip() for part in error_message.split(":", 1))
    else:
        error_code, details = error_message, None

    status_code, message = SERVICE_ERRORS.get(
        error_code,
        (status.HTTP_500_INTERNAL_SERVER_ERROR, "An unexpected error occurred"),
    )

    return ResponseBuilder.error(
        request=request,
        message=f"{message}: {details}" if details else message,
        error_code=error_code,
        status_code=status_code,
    )
