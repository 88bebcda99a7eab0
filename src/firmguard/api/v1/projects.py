"""Project endpoints - firm-scoped reads and creation."""

from typing import Annotated

from fastapi import APIRouter, HTTPException, Query, status

from src.firmguard.api.dependencies import CurrentPrincipal, DBSession, ProjectRepo
from src.firmguard.api.guards import guard
from src.firmguard.models import Project, ProjectFirm
from src.firmguard.schemas.pagination import PaginatedResponse
from src.firmguard.schemas.project import ProjectCreate, ProjectRead

router = APIRouter(prefix="/projects", tags=["projects"])


@router.get(
    "",
    response_model=PaginatedResponse[ProjectRead],
    dependencies=guard("tenant.isolation", "permission:projects.view.own_firm"),
    summary="List projects",
    description="List projects associated with the caller's firm, newest first.",
)
async def list_projects(
    repo: ProjectRepo,
    cursor: Annotated[str | None, Query(description="Cursor for pagination")] = None,
    limit: Annotated[int, Query(ge=1, le=100, description="Max items to return")] = 50,
) -> PaginatedResponse[ProjectRead]:
    projects, next_cursor, has_more = await repo.list_page(cursor=cursor, limit=limit)
    return PaginatedResponse(
        items=[ProjectRead.model_validate(p) for p in projects],
        next_cursor=next_cursor,
        has_more=has_more,
    )


@router.get(
    "/{project_id}",
    response_model=ProjectRead,
    dependencies=guard("tenant.isolation", "permission:projects.view.own_firm"),
    responses={
        200: {"description": "Project details"},
        403: {"description": "Project belongs to another firm"},
        404: {"description": "Project not found"},
    },
)
async def get_project(project_id: int, repo: ProjectRepo) -> ProjectRead:
    project = await repo.get_by_id(project_id)
    if project is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Project {project_id} not found",
        )
    return ProjectRead.model_validate(project)


@router.post(
    "",
    response_model=ProjectRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=guard("tenant.isolation", "permission:projects.create"),
)
async def create_project(
    request: ProjectCreate,
    session: DBSession,
    principal: CurrentPrincipal,
    repo: ProjectRepo,
) -> ProjectRead:
    """Create a project and link the caller's firm to it."""
    project = await repo.create(Project(title=request.title))
    if principal.firm_id is not None:
        session.add(
            ProjectFirm(
                project_id=project.id,  # type: ignore[arg-type]
                firm_id=principal.firm_id,
                role_in_project=request.role_in_project.value,
            )
        )
    try:
        await session.commit()
        await session.refresh(project)
    except Exception:
        await session.rollback()
        raise
    return ProjectRead.model_validate(project)
