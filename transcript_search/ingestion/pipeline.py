"""End-to-end ingestion pipeline: parse -> chunk -> embed -> store."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import replace

from transcript_search.ingestion.chunking import chunk_segments
from transcript_search.ingestion.embeddings import EmbeddingClient
from transcript_search.ingestion.models import IngestReport, TranscriptSegment
from transcript_search.ingestion.parsers import parse_transcript
from transcript_search.ingestion.storage import SegmentStore

logger = logging.getLogger(__name__)


async def _embed_and_store(
    chunk: TranscriptSegment,
    embedder: EmbeddingClient,
    store: SegmentStore,
) -> TranscriptSegment:
    embedding = await embedder.embed(chunk.text_content)
    return await store.insert(replace(chunk, embedding=embedding))


async def ingest_transcript(
    content: str,
    source_file: str,
    embedder: EmbeddingClient,
    store: SegmentStore,
    max_chunk_words: int = 500,
) -> IngestReport:
    """Full ingestion pipeline for one transcript file.

    Every chunk is embedded and stored concurrently. A failing chunk is
    recorded in the report and does not affect the others, so a partially
    failed batch is a normal result rather than an error.

    Args:
        content: Raw transcript text.
        source_file: Name of the uploaded file.
        embedder: Embedding client.
        store: Connected segment store.
        max_chunk_words: Word limit per chunk.

    Returns:
        Counts of attempted, successful and failed chunks.
    """
    # 1. Parse
    segments = parse_transcript(content, source_file)

    # 2. Chunk
    chunks = chunk_segments(segments, max_chunk_words=max_chunk_words)
    report = IngestReport(source_file=source_file, total=len(chunks))

    # 3. Embed + store
    outcomes = await asyncio.gather(
        *(_embed_and_store(chunk, embedder, store) for chunk in chunks),
        return_exceptions=True,
    )

    for chunk, outcome in zip(chunks, outcomes, strict=True):
        if isinstance(outcome, Exception):
            report.failed += 1
            report.errors.append(f"[{chunk.start_timestamp or '?'}] {outcome}")
            logger.warning(
                "Failed to ingest segment %s of %s: %s",
                chunk.start_timestamp or "?",
                source_file,
                outcome,
            )
        elif isinstance(outcome, BaseException):
            raise outcome
        else:
            report.successful += 1

    logger.info(
        "Ingested %s: %d/%d segments stored",
        source_file,
        report.successful,
        report.total,
    )
    return report
