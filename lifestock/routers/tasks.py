from typing import Annotated
import uuid

from fastapi import APIRouter, Depends, Request, status, Path

from lifestock.middlewares.auth_middleware import get_current_user, AuthState
from lifestock.services.task_service import TaskService, get_task_service
from lifestock.schemas.task_schemas import (
    CreateTaskRequest,
    ShareTaskRequest,
    UpcomingTasksQueryParams,
    UpdateTaskRequest,
)
from lifestock.utils.responses import ResponseBuilder
from lifestock.utils.errors import BusinessLogicError
from lifestock.utils.error_handlers import handle_service_error

tasks_router = APIRouter()

TaskId = Annotated[uuid.UUID, Path(description="Task ID")]
CurrentUser = Annotated[AuthState, Depends(get_current_user)]


@tasks_router.get(
    "/",
    summary="List tasks",
    description="Tasks the current user owns or that were shared with them, newest first",
)
async def get_tasks(
    request: Request,
    current_user: CurrentUser,
    task_service: TaskService = Depends(get_task_service),
):
    try:
        tasks = await task_service.get_tasks(current_user.user_uuid)

        return ResponseBuilder.success(
            request=request,
            data=[t.model_dump(by_alias=True) for t in tasks],
            message=f"Retrieved {len(tasks)} tasks",
        )

    except (ValueError, RuntimeError) as e:
        return handle_service_error(request, e)
    except Exception:
        raise BusinessLogicError(
            message="Failed to retrieve tasks", error_code="TASKS_RETRIEVAL_FAILED"
        )


@tasks_router.get("/shared", summary="Tasks shared with the current user")
async def get_shared_tasks(
    request: Request,
    current_user: CurrentUser,
    task_service: TaskService = Depends(get_task_service),
):
    try:
        tasks = await task_service.get_shared_tasks(current_user.user_uuid)

        return ResponseBuilder.success(
            request=request,
            data=[t.model_dump(by_alias=True) for t in tasks],
            message=f"Retrieved {len(tasks)} shared tasks",
        )

    except (ValueError, RuntimeError) as e:
        return handle_service_error(request, e)
    except Exception:
        raise BusinessLogicError(
            message="Failed to retrieve shared tasks",
            error_code="TASKS_RETRIEVAL_FAILED",
        )


@tasks_router.get(
    "/upcoming",
    summary="Upcoming tasks",
    description="Incomplete tasks due within the next N days, soonest first",
)
async def get_upcoming_tasks(
    request: Request,
    current_user: CurrentUser,
    query_params: Annotated[UpcomingTasksQueryParams, Depends()],
    task_service: TaskService = Depends(get_task_service),
):
    try:
        tasks = await task_service.get_upcoming_tasks(
            current_user.user_uuid, query_params.days
        )

        return ResponseBuilder.success(
            request=request,
            data=[t.model_dump(by_alias=True) for t in tasks],
            message=f"Retrieved {len(tasks)} upcoming tasks",
        )

    except (ValueError, RuntimeError) as e:
        return handle_service_error(request, e)
    except Exception:
        raise BusinessLogicError(
            message="Failed to retrieve upcoming tasks",
            error_code="TASKS_RETRIEVAL_FAILED",
        )


@tasks_router.get("/{task_id}", summary="Get a task")
async def get_task(
    request: Request,
    task_id: TaskId,
    current_user: CurrentUser,
    task_service: TaskService = Depends(get_task_service),
):
    try:
        task = await task_service.get_task(current_user.user_uuid, task_id)

        return ResponseBuilder.success(
            request=request,
            data=task.model_dump(by_alias=True),
            message="Task retrieved successfully",
        )

    except (ValueError, RuntimeError) as e:
        return handle_service_error(request, e)
    except Exception:
        raise BusinessLogicError(
            message="Failed to retrieve task", error_code="TASK_RETRIEVAL_FAILED"
        )


@tasks_router.post("/", status_code=status.HTTP_201_CREATED, summary="Create a task")
async def create_task(
    request: Request,
    task_data: CreateTaskRequest,
    current_user: CurrentUser,
    task_service: TaskService = Depends(get_task_service),
):
    try:
        task = await task_service.create_task(current_user.user_uuid, task_data)

        return ResponseBuilder.success(
            request=request,
            data=task.model_dump(by_alias=True),
            message="Task created successfully",
            status_code=status.HTTP_201_CREATED,
        )

    except (ValueError, RuntimeError) as e:
        return handle_service_error(request, e)
    except Exception:
        raise BusinessLogicError(
            message="Failed to create task", error_code="TASK_CREATION_FAILED"
        )


@tasks_router.put("/{task_id}", summary="Update a task")
async def update_task(
    request: Request,
    task_id: TaskId,
    task_data: UpdateTaskRequest,
    current_user: CurrentUser,
    task_service: TaskService = Depends(get_task_service),
):
    try:
        task = await task_service.update_task(current_user.user_uuid, task_id, task_data)

        return ResponseBuilder.success(
            request=request,
            data=task.model_dump(by_alias=True),
            message="Task updated successfully",
        )

    except (ValueError, RuntimeError) as e:
        return handle_service_error(request, e)
    except Exception:
        raise BusinessLogicError(
            message="Failed to update task", error_code="TASK_UPDATE_FAILED"
        )


@tasks_router.delete("/{task_id}", summary="Delete a task")
async def delete_task(
    request: Request,
    task_id: TaskId,
    current_user: CurrentUser,
    task_service: TaskService = Depends(get_task_service),
):
    try:
        await task_service.delete_task(current_user.user_uuid, task_id)

        return ResponseBuilder.success(
            request=request, data=None, message="Task deleted successfully"
        )

    except (ValueError, RuntimeError) as e:
        return handle_service_error(request, e)
    except Exception:
        raise BusinessLogicError(
            message="Failed to delete task", error_code="TASK_DELETION_FAILED"
        )


@tasks_router.post(
    "/{task_id}/share",
    summary="Share a task",
    description="Share a task with friends; each new user gets a notification and an email",
)
async def share_task(
    request: Request,
    task_id: TaskId,
    share_data: ShareTaskRequest,
    current_user: CurrentUser,
    task_service: TaskService = Depends(get_task_service),
):
    try:
        task = await task_service.share_task(
            current_user.user_uuid, task_id, share_data.user_ids
        )

        return ResponseBuilder.success(
            request=request,
            data=task.model_dump(by_alias=True),
            message="Task shared successfully",
        )

    except (ValueError, RuntimeError) as e:
        return handle_service_error(request, e)
    except Exception:
        raise BusinessLogicError(
            message="Failed to share task", error_code="TASK_SHARE_FAILED"
        )


@tasks_router.post("/{task_id}/unshare", summary="Stop sharing a task")
async def unshare_task(
    request: Request,
    task_id: TaskId,
    share_data: ShareTaskRequest,
    current_user: CurrentUser,
    task_service: TaskService = Depends(get_task_service),
):
    try:
        task = await task_service.unshare_task(
            current_user.user_uuid, task_id, share_data.user_ids
        )

        return ResponseBuilder.success(
            request=request,
            data=task.model_dump(by_alias=True),
            message="Task unshared successfully",
        )

    except (ValueError, RuntimeError) as e:
        return handle_service_error(request, e)
    except Exception:
        raise BusinessLogicError(
            message="Failed to unshare task", error_code="TASK_SHARE_FAILED"
        )
