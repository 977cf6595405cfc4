"""Pydantic request/response schemas for the Transcript Search API."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class ApiResponse(BaseModel):
    """Uniform envelope returned by every endpoint."""

    status: Literal["success", "error"]
    message: str | None = None
    data: Any = None


class SearchRequest(BaseModel):
    """Request body for the /api/search endpoint."""

    model_config = ConfigDict(str_strip_whitespace=True)

    queryText: str = Field(min_length=1)  # noqa: N815


class SearchResultItem(BaseModel):
    """A single search hit with similarity rounded to 4 decimals."""

    id: int
    source_file: str
    start_timestamp: str
    end_timestamp: str | None = None
    text_content: str
    similarity: float


class SearchData(BaseModel):
    results: list[SearchResultItem]


class ChatTurn(BaseModel):
    """One prior turn of the conversation."""

    role: Literal["system", "user", "assistant"]
    content: str


class ChatRequest(BaseModel):
    """Request body for the /api/chat endpoint."""

    model_config = ConfigDict(str_strip_whitespace=True)

    message: str = Field(min_length=1)
    history: list[ChatTurn] = []


class ContextSegment(BaseModel):
    """A cited transcript segment with similarity rounded to 2 decimals."""

    source: str
    start: str
    end: str | None = None
    text: str
    similarity: float


class ChatData(BaseModel):
    response: str
    context: list[ContextSegment]


class IngestData(BaseModel):
    """Segment counts for one processed transcript."""

    totalSegments: int  # noqa: N815
    successful: int
    failed: int
