"""Semantic search over stored transcript segments."""

from __future__ import annotations

from transcript_search.ingestion.embeddings import EmbeddingClient
from transcript_search.ingestion.models import SearchResult
from transcript_search.ingestion.storage import SegmentStore


async def search_transcripts(
    query_text: str,
    embedder: EmbeddingClient,
    store: SegmentStore,
    limit: int = 10,
    similarity_threshold: float = 0.6,
) -> list[SearchResult]:
    """Embed *query_text* and return the most similar stored segments."""
    embedding = await embedder.embed(query_text)
    return await store.search(embedding, limit=limit, similarity_threshold=similarity_threshold)
