from typing import Annotated
import uuid

from fastapi import APIRouter, Depends, Request, status, Path

from lifestock.middlewares.auth_middleware import get_current_user, AuthState
from lifestock.services.shared_list_service import (
    SharedListService,
    get_shared_list_service,
)
from lifestock.schemas.list_schemas import (
    AddCollaboratorRequest,
    CreateListItemRequest,
    CreateSharedListRequest,
    UpdateListItemRequest,
    UpdateSharedListRequest,
)
from lifestock.utils.responses import ResponseBuilder
from lifestock.utils.errors import BusinessLogicError
from lifestock.utils.error_handlers import handle_service_error

shared_lists_router = APIRouter()

ListId = Annotated[uuid.UUID, Path(description="Shared list ID")]
ItemId = Annotated[uuid.UUID, Path(description="List item ID")]
CurrentUser = Annotated[AuthState, Depends(get_current_user)]


@shared_lists_router.get("/", summary="Lists the current user created or collaborates on")
async def get_lists(
    request: Request,
    current_user: CurrentUser,
    list_service: SharedListService = Depends(get_shared_list_service),
):
    try:
        lists = await list_service.get_lists(current_user.user_uuid)

        return ResponseBuilder.success(
            request=request,
            data=[sl.model_dump(by_alias=True) for sl in lists],
            message=f"Retrieved {len(lists)} lists",
        )

    except (ValueError, RuntimeError) as e:
        return handle_service_error(request, e)
    except Exception:
        raise BusinessLogicError(
            message="Failed to retrieve lists", error_code="LISTS_RETRIEVAL_FAILED"
        )


@shared_lists_router.get("/{list_id}", summary="Get a shared list with its items")
async def get_list(
    request: Request,
    list_id: ListId,
    current_user: CurrentUser,
    list_service: SharedListService = Depends(get_shared_list_service),
):
    try:
        shared_list = await list_service.get_list(current_user.user_uuid, list_id)

        return ResponseBuilder.success(
            request=request,
            data=shared_list.model_dump(by_alias=True),
            message="List retrieved successfully",
        )

    except (ValueError, RuntimeError) as e:
        return handle_service_error(request, e)
    except Exception:
        raise BusinessLogicError(
            message="Failed to retrieve list", error_code="LIST_RETRIEVAL_FAILED"
        )


@shared_lists_router.post(
    "/", status_code=status.HTTP_201_CREATED, summary="Create a shared list"
)
async def create_list(
    request: Request,
    list_data: CreateSharedListRequest,
    current_user: CurrentUser,
    list_service: SharedListService = Depends(get_shared_list_service),
):
    try:
        shared_list = await list_service.create_list(current_user.user_uuid, list_data)

        return ResponseBuilder.success(
            request=request,
            data=shared_list.model_dump(by_alias=True),
            message="List created successfully",
            status_code=status.HTTP_201_CREATED,
        )

    except (ValueError, RuntimeError) as e:
        return handle_service_error(request, e)
    except Exception:
        raise BusinessLogicError(
            message="Failed to create list", error_code="LIST_CREATION_FAILED"
        )


@shared_lists_router.put("/{list_id}", summary="Update a shared list")
async def update_list(
    request: Request,
    list_id: ListId,
    list_data: UpdateSharedListRequest,
    current_user: CurrentUser,
    list_service: SharedListService = Depends(get_shared_list_service),
):
    try:
        shared_list = await list_service.update_list(
            current_user.user_uuid, list_id, list_data
        )

        return ResponseBuilder.success(
            request=request,
            data=shared_list.model_dump(by_alias=True),
            message="List updated successfully",
        )

    except (ValueError, RuntimeError) as e:
        return handle_service_error(request, e)
    except Exception:
        raise BusinessLogicError(
            message="Failed to update list", error_code="LIST_UPDATE_FAILED"
        )


@shared_lists_router.delete("/{list_id}", summary="Delete a shared list")
async def delete_list(
    request: Request,
    list_id: ListId,
    current_user: CurrentUser,
    list_service: SharedListService = Depends(get_shared_list_service),
):
    try:
        await list_service.delete_list(current_user.user_uuid, list_id)

        return ResponseBuilder.success(
            request=request, data=None, message="List deleted successfully"
        )

    except (ValueError, RuntimeError) as e:
        return handle_service_error(request, e)
    except Exception:
        raise BusinessLogicError(
            message="Failed to delete list", error_code="LIST_DELETION_FAILED"
        )


@shared_lists_router.post(
    "/{list_id}/items",
    status_code=status.HTTP_201_CREATED,
    summary="Add an item to a shared list",
)
async def add_item(
    request: Request,
    list_id: ListId,
    item_data: CreateListItemRequest,
    current_user: CurrentUser,
    list_service: SharedListService = Depends(get_shared_list_service),
):
    try:
        shared_list = await list_service.add_item(
            current_user.user_uuid, list_id, item_data
        )

        return ResponseBuilder.success(
            request=request,
            data=shared_list.model_dump(by_alias=True),
            message="Item added successfully",
            status_code=status.HTTP_201_CREATED,
        )

    except (ValueError, RuntimeError) as e:
        return handle_service_error(request, e)
    except Exception:
        raise BusinessLogicError(
            message="Failed to add item", error_code="ITEM_CREATION_FAILED"
        )


@shared_lists_router.put("/{list_id}/items/{item_id}", summary="Update a list item")
async def update_item(
    request: Request,
    list_id: ListId,
    item_id: ItemId,
    item_data: UpdateListItemRequest,
    current_user: CurrentUser,
    list_service: SharedListService = Depends(get_shared_list_service),
):
    try:
        shared_list = await list_service.update_item(
            current_user.user_uuid, list_id, item_id, item_data
        )

        return ResponseBuilder.success(
            request=request,
            data=shared_list.model_dump(by_alias=True),
            message="Item updated successfully",
        )

    except (ValueError, RuntimeError) as e:
        return handle_service_error(request, e)
    except Exception:
        raise BusinessLogicError(
            message="Failed to update item", error_code="ITEM_UPDATE_FAILED"
        )


@shared_lists_router.delete("/{list_id}/items/{item_id}", summary="Delete a list item")
async def delete_item(
    request: Request,
    list_id: ListId,
    item_id: ItemId,
    current_user: CurrentUser,
    list_service: SharedListService = Depends(get_shared_list_service),
):
    try:
        shared_list = await list_service.delete_item(
            current_user.user_uuid, list_id, item_id
        )

        return ResponseBuilder.success(
            request=request,
            data=shared_list.model_dump(by_alias=True),
            message="Item deleted successfully",
        )

    except (ValueError, RuntimeError) as e:
        return handle_service_error(request, e)
    except Exception:
        raise BusinessLogicError(
            message="Failed to delete item", error_code="ITEM_DELETION_FAILED"
        )


@shared_lists_router.post("/{list_id}/collaborators", summary="Add a collaborator")
async def add_collaborator(
    request: Request,
    list_id: ListId,
    collaborator_data: AddCollaboratorRequest,
    current_user: CurrentUser,
    list_service: SharedListService = Depends(get_shared_list_service),
):
    try:
        shared_list = await list_service.add_collaborator(
            current_user.user_uuid, list_id, collaborator_data.user_id
        )

        return ResponseBuilder.success(
            request=request,
            data=shared_list.model_dump(by_alias=True),
            message="Collaborator added successfully",
        )

    except (ValueError, RuntimeError) as e:
        return handle_service_error(request, e)
    except Exception:
        raise BusinessLogicError(
            message="Failed to add collaborator",
            error_code="COLLABORATOR_UPDATE_FAILED",
        )


@shared_lists_router.delete(
    "/{list_id}/collaborators/{user_id}",
    summary="Remove a collaborator",
    description="The creator may remove anyone; collaborators may remove themselves",
)
async def remove_collaborator(
    request: Request,
    list_id: ListId,
    user_id: Annotated[uuid.UUID, Path(description="Collaborator user ID")],
    current_user: CurrentUser,
    list_service: SharedListService = Depends(get_shared_list_service),
):
    try:
        shared_list = await list_service.remove_collaborator(
            current_user.user_uuid, list_id, user_id
        )

        return ResponseBuilder.success(
            request=request,
            data=shared_list.model_dump(by_alias=True),
            message="Collaborator removed successfully",
        )

    except (ValueError, RuntimeError) as e:
        return handle_service_error(request, e)
    except Exception:
        raise BusinessLogicError(
            message="Failed to remove collaborator",
            error_code="COLLABORATOR_UPDATE_FAILED",
        )
