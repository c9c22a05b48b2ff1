"""Survey project collection endpoints — CRUD plus the live SSE change stream.

Every write is a full replace; ``updatedAt`` is always stamped server-side.
"""

import json
import logging
from collections.abc import AsyncGenerator

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import StreamingResponse

from survey_sync.application.schemas import (
    CreatedResponse,
    DocumentChangeSchema,
    SurveyDocumentResponse,
    SurveyDocumentWrite,
)
from survey_sync.domain.entities import DocumentChange
from survey_sync.domain.exceptions import FeedError, StoreWriteError
from survey_sync.infrastructure.database.repositories import SQLAlchemyDocumentStore
from survey_sync.infrastructure.dependencies import get_document_store

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/artifacts/{app_id}/public/data/projects", tags=["Projects"])


def get_store(app_id: str) -> SQLAlchemyDocumentStore:
    return get_document_store(app_id)


@router.get("", response_model=list[SurveyDocumentResponse])
async def list_projects(
    store: SQLAlchemyDocumentStore = Depends(get_store),
) -> list[SurveyDocumentResponse]:
    """Retrieve every document of the collection."""
    documents = await store.list_documents()
    return [SurveyDocumentResponse.from_document(d) for d in documents]


@router.post("", response_model=CreatedResponse, status_code=status.HTTP_201_CREATED)
async def create_project(
    data: SurveyDocumentWrite,
    store: SQLAlchemyDocumentStore = Depends(get_store),
) -> CreatedResponse:
    """Create a document; the id is assigned here."""
    try:
        document_id = await store.create(data.to_entity())
    except StoreWriteError as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))
    return CreatedResponse(id=document_id)


@router.get("/stream")
async def stream_changes(
    request: Request,
    store: SQLAlchemyDocumentStore = Depends(get_store),
) -> StreamingResponse:
    """SSE endpoint for live collection updates.

    The first ``changes`` event lists every document as ``added``; each
    later write produces one more ``changes`` event.
    """
    return StreamingResponse(
        _change_events(request, store),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )


@router.get("/{document_id}", response_model=SurveyDocumentResponse)
async def get_project(
    document_id: str,
    store: SQLAlchemyDocumentStore = Depends(get_store),
) -> SurveyDocumentResponse:
    document = await store.get(document_id)
    if document is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Project with id '{document_id}' not found",
        )
    return SurveyDocumentResponse.from_document(document)


@router.put("/{document_id}", response_model=CreatedResponse)
async def replace_project(
    document_id: str,
    data: SurveyDocumentWrite,
    store: SQLAlchemyDocumentStore = Depends(get_store),
) -> CreatedResponse:
    """Overwrite every field of a document (creating it when missing)."""
    try:
        await store.replace(document_id, data.to_entity())
    except StoreWriteError as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))
    return CreatedResponse(id=document_id)


@router.delete("/{document_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_project(
    document_id: str,
    store: SQLAlchemyDocumentStore = Depends(get_store),
) -> None:
    """Delete a document; deleting a missing id succeeds."""
    try:
        await store.delete(document_id)
    except StoreWriteError as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))


async def _change_events(
    request: Request, store: SQLAlchemyDocumentStore
) -> AsyncGenerator[str, None]:
    try:
        async for batch in store.listen():
            if await request.is_disconnected():
                break
            yield format_changes_event(batch)
    except FeedError as exc:
        logger.warning("Change stream for %s ended: %s", store.collection, exc)


def format_changes_event(batch: list[DocumentChange]) -> str:
    """Render one change batch as an SSE ``changes`` event."""
    payload = [
        DocumentChangeSchema.from_entity(c).model_dump(by_alias=True, mode="json")
        for c in batch
    ]
    return f"event: changes\ndata: {json.dumps(payload)}\n\n"
