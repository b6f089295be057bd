from typing import Annotated
import uuid

from fastapi import APIRouter, Depends, Request, status, Path

from lifestock.middlewares.auth_middleware import get_current_user, AuthState
from lifestock.services.calendar_service import CalendarService, get_calendar_service
from lifestock.schemas.calendar_schemas import (
    AddParticipantRequest,
    CreateEventRequest,
    EventListQueryParams,
    UpdateEventRequest,
)
from lifestock.utils.responses import ResponseBuilder
from lifestock.utils.errors import BusinessLogicError
from lifestock.utils.error_handlers import handle_service_error

calendar_router = APIRouter()

EventId = Annotated[uuid.UUID, Path(description="Calendar event ID")]
CurrentUser = Annotated[AuthState, Depends(get_current_user)]


@calendar_router.get(
    "/",
    summary="List calendar events",
    description="Events the current user created or participates in, optionally bounded by start time",
)
async def get_events(
    request: Request,
    current_user: CurrentUser,
    query_params: Annotated[EventListQueryParams, Depends()],
    calendar_service: CalendarService = Depends(get_calendar_service),
):
    try:
        events = await calendar_service.get_events(current_user.user_uuid, query_params)

        return ResponseBuilder.success(
            request=request,
            data=[e.model_dump(by_alias=True) for e in events],
            message=f"Retrieved {len(events)} events",
        )

    except (ValueError, RuntimeError) as e:
        return handle_service_error(request, e)
    except Exception:
        raise BusinessLogicError(
            message="Failed to retrieve events", error_code="EVENTS_RETRIEVAL_FAILED"
        )


@calendar_router.get("/{event_id}", summary="Get a calendar event")
async def get_event(
    request: Request,
    event_id: EventId,
    current_user: CurrentUser,
    calendar_service: CalendarService = Depends(get_calendar_service),
):
    try:
        event = await calendar_service.get_event(current_user.user_uuid, event_id)

        return ResponseBuilder.success(
            request=request,
            data=event.model_dump(by_alias=True),
            message="Event retrieved successfully",
        )

    except (ValueError, RuntimeError) as e:
        return handle_service_error(request, e)
    except Exception:
        raise BusinessLogicError(
            message="Failed to retrieve event", error_code="EVENT_RETRIEVAL_FAILED"
        )


@calendar_router.post(
    "/", status_code=status.HTTP_201_CREATED, summary="Create a calendar event"
)
async def create_event(
    request: Request,
    event_data: CreateEventRequest,
    current_user: CurrentUser,
    calendar_service: CalendarService = Depends(get_calendar_service),
):
    try:
        event = await calendar_service.create_event(current_user.user_uuid, event_data)

        return ResponseBuilder.success(
            request=request,
            data=event.model_dump(by_alias=True),
            message="Event created successfully",
            status_code=status.HTTP_201_CREATED,
        )

    except (ValueError, RuntimeError) as e:
        return handle_service_error(request, e)
    except Exception:
        raise BusinessLogicError(
            message="Failed to create event", error_code="EVENT_CREATION_FAILED"
        )


@calendar_router.put("/{event_id}", summary="Update a calendar event")
async def update_event(
    request: Request,
    event_id: EventId,
    event_data: UpdateEventRequest,
    current_user: CurrentUser,
    calendar_service: CalendarService = Depends(get_calendar_service),
):
    try:
        event = await calendar_service.update_event(
            current_user.user_uuid, event_id, event_data
        )

        return ResponseBuilder.success(
            request=request,
            data=event.model_dump(by_alias=True),
            message="Event updated successfully",
        )

    except (ValueError, RuntimeError) as e:
        return handle_service_error(request, e)
    except Exception:
        raise BusinessLogicError(
            message="Failed to update event", error_code="EVENT_UPDATE_FAILED"
        )


@calendar_router.delete("/{event_id}", summary="Delete a calendar event")
async def delete_event(
    request: Request,
    event_id: EventId,
    current_user: CurrentUser,
    calendar_service: CalendarService = Depends(get_calendar_service),
):
    try:
        await calendar_service.delete_event(current_user.user_uuid, event_id)

        return ResponseBuilder.success(
            request=request, data=None, message="Event deleted successfully"
        )

    except (ValueError, RuntimeError) as e:
        return handle_service_error(request, e)
    except Exception:
        raise BusinessLogicError(
            message="Failed to delete event", error_code="EVENT_DELETION_FAILED"
        )


@calendar_router.post("/{event_id}/participants", summary="Invite a participant")
async def add_participant(
    request: Request,
    event_id: EventId,
    participant_data: AddParticipantRequest,
    current_user: CurrentUser,
    calendar_service: CalendarService = Depends(get_calendar_service),
):
    try:
        event = await calendar_service.add_participant(
            current_user.user_uuid, event_id, participant_data.user_id
        )

        return ResponseBuilder.success(
            request=request,
            data=event.model_dump(by_alias=True),
            message="Participant added successfully",
        )

    except (ValueError, RuntimeError) as e:
        return handle_service_error(request, e)
    except Exception:
        raise BusinessLogicError(
            message="Failed to add participant",
            error_code="PARTICIPANT_UPDATE_FAILED",
        )


@calendar_router.delete(
    "/{event_id}/participants/{user_id}", summary="Remove a participant"
)
async def remove_participant(
    request: Request,
    event_id: EventId,
    user_id: Annotated[uuid.UUID, Path(description="Participant user ID")],
    current_user: CurrentUser,
    calendar_service: CalendarService = Depends(get_calendar_service),
):
    try:
        event = await calendar_service.remove_participant(
            current_user.user_uuid, event_id, user_id
        )

        return ResponseBuilder.success(
            request=request,
            data=event.model_dump(by_alias=True),
            message="Participant removed successfully",
        )

    except (ValueError, RuntimeError) as e:
        return handle_service_error(request, e)
    except Exception:
        raise BusinessLogicError(
            message="Failed to remove participant",
            error_code="PARTICIPANT_UPDATE_FAILED",
        )
