"""Chat endpoint: retrieval-augmented answers with cited segments."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException

from transcript_search.api.dependencies import get_context
from transcript_search.api.models import ApiResponse, ChatData, ChatRequest, ContextSegment
from transcript_search.context import AppContext
from transcript_search.errors import TranscriptSearchError, ValidationError

router = APIRouter()


@router.post("/api/chat", response_model=ApiResponse)
async def chat(
    request: ChatRequest,
    context: Annotated[AppContext, Depends(get_context)],
) -> ApiResponse:
    """Answer a question from the stored transcripts (embed, search, generate)."""
    history = [turn.model_dump() for turn in request.history]
    try:
        result = await context.chat.respond(request.message, history)
    except ValidationError:
        raise
    except TranscriptSearchError as exc:
        raise HTTPException(
            status_code=exc.status_code,
            detail=f"Error generating response: {exc}",
        ) from exc

    return ApiResponse(
        status="success",
        data=ChatData(
            response=result.response,
            context=[
                ContextSegment(
                    source=s.source_file,
                    start=s.start_timestamp,
                    end=s.end_timestamp,
                    text=s.text_content,
                    similarity=round(s.similarity, 2),
                )
                for s in result.context
            ],
        ),
    )
