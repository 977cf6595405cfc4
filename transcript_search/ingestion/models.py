"""Data models for the ingestion pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class TranscriptSegment:
    """One timestamped unit of transcript text.

    ``embedding`` is filled in before persistence and ``id`` is assigned by
    the store on insert.
    """

    source_file: str
    text_content: str
    start_timestamp: str = ""
    end_timestamp: str | None = None
    embedding: list[float] | None = field(default=None, repr=False)
    id: int | None = None


@dataclass(frozen=True)
class SearchResult:
    """A stored segment returned by similarity search (no embedding)."""

    id: int
    source_file: str
    start_timestamp: str
    end_timestamp: str | None
    text_content: str
    similarity: float


@dataclass
class IngestReport:
    """Outcome of ingesting one transcript file."""

    source_file: str
    total: int = 0
    successful: int = 0
    failed: int = 0
    errors: list[str] = field(default_factory=list)
