"""Search endpoint: ranked semantic search over stored segments."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException

from transcript_search.api.dependencies import get_context
from transcript_search.api.models import ApiResponse, SearchData, SearchRequest, SearchResultItem
from transcript_search.context import AppContext
from transcript_search.errors import TranscriptSearchError, ValidationError
from transcript_search.retrieval.search import search_transcripts

router = APIRouter()


@router.post("/api/search", response_model=ApiResponse)
async def search(
    request: SearchRequest,
    context: Annotated[AppContext, Depends(get_context)],
) -> ApiResponse:
    """Return the stored segments most similar to ``queryText``."""
    settings = context.settings
    try:
        results = await search_transcripts(
            request.queryText,
            context.embedder,
            context.store,
            limit=settings.search_limit,
            similarity_threshold=settings.similarity_threshold,
        )
    except ValidationError:
        raise
    except TranscriptSearchError as exc:
        raise HTTPException(
            status_code=exc.status_code,
            detail=f"Error searching transcripts: {exc}",
        ) from exc

    items = [
        SearchResultItem(
            id=r.id,
            source_file=r.source_file,
            start_timestamp=r.start_timestamp,
            end_timestamp=r.end_timestamp,
            text_content=r.text_content,
            similarity=round(r.similarity, 4),
        )
        for r in results
    ]
    return ApiResponse(
        status="success",
        message=f"Found {len(items)} results",
        data=SearchData(results=items),
    )
