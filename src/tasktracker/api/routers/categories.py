"""Routes managing the caller's categories."""

from __future__ import annotations

from fastapi import APIRouter, status

from ...deps import CurrentIdentityDependency, DatabaseSessionDependency
from ...schemas.category import CategoryCreate, CategoryRead, CategoryUpdate
from ...schemas.envelope import ApiResponse, MessageResponse
from ...schemas.task import TaskRead
from ...services import CategoryService, TaskService

router = APIRouter(prefix="/categories", tags=["categories"])


@router.get("", response_model=ApiResponse[list[CategoryRead]], summary="List categories")
async def list_categories(
    identity: CurrentIdentityDependency,
    session: DatabaseSessionDependency,
) -> ApiResponse[list[CategoryRead]]:
    categories = await CategoryService(session).list_categories(identity.id)
    return ApiResponse(data=[CategoryRead.model_validate(category) for category in categories])


@router.get("/{category_id}", response_model=ApiResponse[CategoryRead], summary="Retrieve a category")
async def get_category(
    category_id: int,
    identity: CurrentIdentityDependency,
    session: DatabaseSessionDependency,
) -> ApiResponse[CategoryRead]:
    category = await CategoryService(session).get_category(identity.id, category_id)
    return ApiResponse(data=CategoryRead.model_validate(category))


@router.post(
    "",
    response_model=ApiResponse[CategoryRead],
    status_code=status.HTTP_201_CREATED,
    summary="Create a category",
)
async def create_category(
    payload: CategoryCreate,
    identity: CurrentIdentityDependency,
    session: DatabaseSessionDependency,
) -> ApiResponse[CategoryRead]:
    category = await CategoryService(session).create_category(
        identity.id,
        name=payload.name,
        description=payload.description,
        color=payload.color,
    )
    return ApiResponse(data=CategoryRead.model_validate(category))


@router.put("/{category_id}", response_model=ApiResponse[CategoryRead], summary="Update a category")
async def update_category(
    category_id: int,
    payload: CategoryUpdate,
    identity: CurrentIdentityDependency,
    session: DatabaseSessionDependency,
) -> ApiResponse[CategoryRead]:
    category = await CategoryService(session).update_category(
        identity.id,
        category_id,
        payload.model_dump(exclude_unset=True),
    )
    return ApiResponse(data=CategoryRead.model_validate(category))


@router.delete("/{category_id}", response_model=MessageResponse, summary="Delete a category")
async def delete_category(
    category_id: int,
    identity: CurrentIdentityDependency,
    session: DatabaseSessionDependency,
) -> MessageResponse:
    await CategoryService(session).delete_category(identity.id, category_id)
    return MessageResponse(message="Category deleted successfully")


@router.get(
    "/{category_id}/tasks",
    response_model=ApiResponse[list[TaskRead]],
    summary="List visible tasks filed under a category",
)
async def list_category_tasks(
    category_id: int,
    identity: CurrentIdentityDependency,
    session: DatabaseSessionDependency,
) -> ApiResponse[list[TaskRead]]:
    records = await TaskService(session).list_category_tasks(identity.id, category_id)
    return ApiResponse(data=[TaskRead.from_record(record) for record in records])
