"""Task endpoints."""

from typing import Annotated

from fastapi import APIRouter, HTTPException, Query, status
from sqlmodel import select

from src.firmguard.api.dependencies import DBSession, TaskRepo
from src.firmguard.api.guards import guard
from src.firmguard.models import Task
from src.firmguard.schemas.pagination import PaginatedResponse
from src.firmguard.schemas.task import TaskCreate, TaskRead

router = APIRouter(prefix="/tasks", tags=["tasks"])


@router.get(
    "",
    response_model=PaginatedResponse[TaskRead],
    dependencies=guard("tenant.isolation", "permission:tasks.view"),
)
async def list_tasks(
    repo: TaskRepo,
    project_id: Annotated[int | None, Query(description="Only tasks of this project")] = None,
    cursor: Annotated[str | None, Query(description="Cursor for pagination")] = None,
    limit: Annotated[int, Query(ge=1, le=100, description="Max items to return")] = 50,
) -> PaginatedResponse[TaskRead]:
    query = repo.scoped(select(Task))
    if project_id is not None:
        query = query.where(Task.project_id == project_id)
    tasks, next_cursor, has_more = await repo.paginate(query, cursor, limit, Task.id)
    return PaginatedResponse(
        items=[TaskRead.model_validate(t) for t in tasks],
        next_cursor=next_cursor,
        has_more=has_more,
    )


@router.get(
    "/{task_id}",
    response_model=TaskRead,
    dependencies=guard("tenant.isolation", "permission:tasks.view"),
)
async def get_task(task_id: int, repo: TaskRepo) -> TaskRead:
    task = await repo.get_by_id(task_id)
    if task is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Task {task_id} not found",
        )
    return TaskRead.model_validate(task)


@router.post(
    "",
    response_model=TaskRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=guard("tenant.isolation", "permission:tasks.create"),
    responses={403: {"description": "Payload references another firm's data"}},
)
async def create_task(request: TaskCreate, session: DBSession, repo: TaskRepo) -> TaskRead:
    task = await repo.create(Task(**request.model_dump(mode="json")))
    try:
        await session.commit()
        await session.refresh(task)
    except Exception:
        await session.rollback()
        raise
    return TaskRead.model_validate(task)
