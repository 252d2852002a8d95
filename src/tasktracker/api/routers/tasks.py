"""Routes handling task CRUD, status changes and assignment."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Query, status

from ...deps import CurrentIdentityDependency, DatabaseSessionDependency
from ...schemas.envelope import ApiResponse, MessageResponse, PaginatedResponse, Pagination
from ...schemas.task import (
    TaskAssign,
    TaskCreate,
    TaskListQuery,
    TaskRead,
    TaskStatusUpdate,
    TaskUpdate,
)
from ...services import TaskService

router = APIRouter(prefix="/tasks", tags=["tasks"])


@router.get(
    "",
    response_model=PaginatedResponse[TaskRead],
    summary="List visible tasks with filtering, sorting and pagination",
)
async def list_tasks(
    query: Annotated[TaskListQuery, Query()],
    identity: CurrentIdentityDependency,
    session: DatabaseSessionDependency,
) -> PaginatedResponse[TaskRead]:
    records, total = await TaskService(session).list_tasks(
        identity.id,
        filters=query.to_filters(),
        page=query.page,
        limit=query.limit,
        sort_by=query.sort_by,
        sort_order=query.sort_order,
    )
    return PaginatedResponse[TaskRead](
        data=[TaskRead.from_record(record) for record in records],
        pagination=Pagination.build(page=query.page, limit=query.limit, total=total),
    )


@router.get("/{task_id}", response_model=ApiResponse[TaskRead], summary="Retrieve a task")
async def get_task(
    task_id: int,
    identity: CurrentIdentityDependency,
    session: DatabaseSessionDependency,
) -> ApiResponse[TaskRead]:
    record = await TaskService(session).get_task(identity.id, task_id)
    return ApiResponse(data=TaskRead.from_record(record))


@router.post(
    "",
    response_model=ApiResponse[TaskRead],
    status_code=status.HTTP_201_CREATED,
    summary="Create a task",
)
async def create_task(
    payload: TaskCreate,
    identity: CurrentIdentityDependency,
    session: DatabaseSessionDependency,
) -> ApiResponse[TaskRead]:
    record = await TaskService(session).create_task(identity.id, **payload.model_dump())
    return ApiResponse(data=TaskRead.from_record(record))


@router.put("/{task_id}", response_model=ApiResponse[TaskRead], summary="Update a task")
async def update_task(
    task_id: int,
    payload: TaskUpdate,
    identity: CurrentIdentityDependency,
    session: DatabaseSessionDependency,
) -> ApiResponse[TaskRead]:
    record = await TaskService(session).update_task(
        identity.id,
        task_id,
        payload.model_dump(exclude_unset=True),
    )
    return ApiResponse(data=TaskRead.from_record(record))


@router.delete("/{task_id}", response_model=MessageResponse, summary="Delete a task")
async def delete_task(
    task_id: int,
    identity: CurrentIdentityDependency,
    session: DatabaseSessionDependency,
) -> MessageResponse:
    await TaskService(session).delete_task(identity.id, task_id)
    return MessageResponse(message="Task deleted successfully")


@router.patch(
    "/{task_id}/status",
    response_model=ApiResponse[TaskRead],
    summary="Change a task's status",
)
async def set_task_status(
    task_id: int,
    payload: TaskStatusUpdate,
    identity: CurrentIdentityDependency,
    session: DatabaseSessionDependency,
) -> ApiResponse[TaskRead]:
    record = await TaskService(session).set_status(identity.id, task_id, payload.status)
    return ApiResponse(data=TaskRead.from_record(record), message="Task status updated successfully")


@router.patch(
    "/{task_id}/assign",
    response_model=ApiResponse[TaskRead],
    summary="Assign or unassign a task",
)
async def assign_task(
    task_id: int,
    payload: TaskAssign,
    identity: CurrentIdentityDependency,
    session: DatabaseSessionDependency,
) -> ApiResponse[TaskRead]:
    record = await TaskService(session).assign_task(identity.id, task_id, payload.assigned_to)
    return ApiResponse(data=TaskRead.from_record(record), message="Task assigned successfully")
