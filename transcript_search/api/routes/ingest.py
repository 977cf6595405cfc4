"""Ingest endpoint: upload and process subtitle-style transcripts."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile

from transcript_search.api.dependencies import get_context
from transcript_search.api.models import ApiResponse, IngestData
from transcript_search.context import AppContext
from transcript_search.errors import UploadTooLargeError, ValidationError
from transcript_search.ingestion.parsers import is_supported_transcript
from transcript_search.ingestion.pipeline import ingest_transcript

router = APIRouter()


@router.post("/api/process-transcript", response_model=ApiResponse)
async def process_transcript(
    context: Annotated[AppContext, Depends(get_context)],
    file: Annotated[UploadFile | None, File()] = None,
) -> ApiResponse:
    """Parse, embed and store every segment of an uploaded ``.txt``/``.md`` transcript.

    Segments are processed independently: the response reports how many were
    stored and how many failed, and a partial failure is still a success.
    """
    if file is None:
        raise ValidationError("No file provided")

    filename = file.filename or ""
    if not is_supported_transcript(filename):
        raise ValidationError("Only .txt and .md files are supported")

    raw = await file.read()
    limit = context.settings.max_upload_bytes
    if len(raw) > limit:
        raise UploadTooLargeError(f"File too large. Maximum size is {limit // (1024 * 1024)} MB.")

    try:
        content = raw.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise ValidationError("File must be UTF-8 encoded text") from exc

    try:
        report = await ingest_transcript(
            content,
            filename,
            context.embedder,
            context.store,
            max_chunk_words=context.settings.chunk_max_words,
        )
    except Exception as exc:
        raise HTTPException(
            status_code=500,
            detail=f"Error processing transcript: {exc}",
        ) from exc

    message = f"Processed {report.successful} segments successfully"
    if report.failed:
        message += f", {report.failed} segments failed"

    return ApiResponse(
        status="success",
        message=message,
        data=IngestData(
            totalSegments=report.total,
            successful=report.successful,
            failed=report.failed,
        ),
    )
