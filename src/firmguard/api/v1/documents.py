"""Document endpoints (metadata only)."""

from typing import Annotated

from fastapi import APIRouter, HTTPException, Query, status

from src.firmguard.api.dependencies import DocumentRepo
from src.firmguard.api.guards import guard
from src.firmguard.schemas.document import DocumentRead
from src.firmguard.schemas.pagination import PaginatedResponse

router = APIRouter(prefix="/documents", tags=["documents"])


@router.get(
    "",
    response_model=PaginatedResponse[DocumentRead],
    dependencies=guard("tenant.isolation", "permission:documents.view.own_firm"),
)
async def list_documents(
    repo: DocumentRepo,
    cursor: Annotated[str | None, Query(description="Cursor for pagination")] = None,
    limit: Annotated[int, Query(ge=1, le=100, description="Max items to return")] = 50,
) -> PaginatedResponse[DocumentRead]:
    documents, next_cursor, has_more = await repo.list_page(cursor=cursor, limit=limit)
    return PaginatedResponse(
        items=[DocumentRead.model_validate(d) for d in documents],
        next_cursor=next_cursor,
        has_more=has_more,
    )


@router.get(
    "/{document_id}",
    response_model=DocumentRead,
    dependencies=guard("tenant.isolation", "permission:documents.view.own_firm"),
)
async def get_document(document_id: int, repo: DocumentRepo) -> DocumentRead:
    document = await repo.get_by_id(document_id)
    if document is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Document {document_id} not found",
        )
    return DocumentRead.model_validate(document)
