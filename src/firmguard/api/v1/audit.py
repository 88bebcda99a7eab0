"""Audit log endpoints - superadmin only."""

from typing import Annotated

from fastapi import APIRouter, Query

from src.firmguard.api.dependencies import AuditServiceDep
from src.firmguard.api.guards import guard
from src.firmguard.schemas.audit import AuditLogListResponse, AuditLogRead

router = APIRouter(
    prefix="/audit",
    tags=["audit"],
    dependencies=guard("superadmin.only", "permission:system.view_audit_logs"),
)

# Query parameter types
CursorQuery = Annotated[str | None, Query(description="Pagination cursor")]
LimitQuery = Annotated[int, Query(ge=1, le=100, description="Items per page")]
ActionQuery = Annotated[str | None, Query(description="Filter by action type")]
PrincipalQuery = Annotated[int | None, Query(description="Filter by acting user ID")]


@router.get(
    "/logs",
    response_model=AuditLogListResponse,
    responses={
        200: {
            "description": "List of audit logs",
            "content": {
                "application/json": {
                    "example": {
                        "items": [
                            {
                                "id": 42,
                                "principal_id": 1,
                                "action_type": "superadmin_access",
                                "entity_type": "project",
                                "entity_id": 7,
                                "metadata": {
                                    "action": "GET",
                                    "url": "http://api/api/v1/projects/7",
                                    "method": "GET",
                                    "is_superadmin": True,
                                },
                                "timestamp": "2025-01-01T00:00:00",
                            }
                        ],
                        "next_cursor": "NDE=",
                        "has_more": True,
                    }
                }
            },
        },
        403: {"description": "Superadmin access required"},
    },
)
async def list_audit_logs(
    audit_service: AuditServiceDep,
    cursor: CursorQuery = None,
    limit: LimitQuery = 50,
    action_type: ActionQuery = None,
    principal_id: PrincipalQuery = None,
) -> AuditLogListResponse:
    logs, next_cursor, has_more = await audit_service.list_logs(
        cursor=cursor,
        limit=limit,
        action_type=action_type,
        principal_id=principal_id,
    )
    return AuditLogListResponse(
        items=[AuditLogRead.model_validate(log) for log in logs],
        next_cursor=next_cursor,
        has_more=has_more,
    )


@router.get(
    "/logs/entity/{entity_type}/{entity_id}",
    response_model=AuditLogListResponse,
)
async def get_entity_history(
    audit_service: AuditServiceDep,
    entity_type: str,
    entity_id: int,
    cursor: CursorQuery = None,
    limit: LimitQuery = 50,
) -> AuditLogListResponse:
    """Audit history of one entity, e.g. ``/logs/entity/project/7``."""
    logs, next_cursor, has_more = await audit_service.list_entity_history(
        entity_type=entity_type,
        entity_id=entity_id,
        cursor=cursor,
        limit=limit,
    )
    return AuditLogListResponse(
        items=[AuditLogRead.model_validate(log) for log in logs],
        next_cursor=next_cursor,
        has_more=has_more,
    )
