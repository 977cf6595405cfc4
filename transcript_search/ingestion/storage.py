"""PostgreSQL + pgvector storage for transcript segments."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import replace

import asyncpg
from pgvector.asyncpg import register_vector

from transcript_search.errors import StorageError, ValidationError
from transcript_search.ingestion.models import SearchResult, TranscriptSegment

logger = logging.getLogger(__name__)

TABLE_NAME = "transcript_segments"
INDEX_NAME = "transcript_segments_embedding_idx"

_DB_ERRORS = (asyncpg.PostgresError, asyncpg.InterfaceError, OSError)

_INSERT_SQL = f"""
INSERT INTO {TABLE_NAME} (source_file, start_timestamp, end_timestamp, text_content, embedding)
VALUES ($1, $2, $3, $4, $5)
RETURNING id
"""

_SEARCH_SQL = f"""
SELECT
    id,
    source_file,
    start_timestamp,
    end_timestamp,
    text_content,
    1 - (embedding <=> $1) AS similarity
FROM {TABLE_NAME}
WHERE 1 - (embedding <=> $1) > $3
ORDER BY embedding <=> $1
LIMIT $2
"""


class SegmentStore:
    """Transcript segments and their embeddings in a pgvector table.

    Connections come from an asyncpg pool; every operation holds one
    connection for its own duration only.

    Usage::

        store = SegmentStore(dsn)
        await store.connect()
        await store.init_schema()
        saved = await store.insert(segment)
        results = await store.search(query_embedding, limit=10)
        await store.close()
    """

    def __init__(
        self,
        dsn: str,
        dimensions: int = 1536,
        min_pool_size: int = 1,
        max_pool_size: int = 10,
    ) -> None:
        self.dsn = dsn
        self.dimensions = dimensions
        self.min_pool_size = min_pool_size
        self.max_pool_size = max_pool_size
        self._pool: asyncpg.Pool | None = None

    # -------------------------------------------------------------- #
    # Lifecycle
    # -------------------------------------------------------------- #

    async def connect(self) -> None:
        """Ensure the vector extension exists and open the connection pool.

        The extension has to exist before the pool's connections can register
        the pgvector codec, so it is created over a one-off connection first.
        """
        if self._pool is not None:
            return
        try:
            conn = await asyncpg.connect(self.dsn)
            try:
                await conn.execute("CREATE EXTENSION IF NOT EXISTS vector")
            finally:
                await conn.close()

            self._pool = await asyncpg.create_pool(
                self.dsn,
                min_size=self.min_pool_size,
                max_size=self.max_pool_size,
                init=register_vector,
            )
        except _DB_ERRORS as exc:
            raise StorageError(f"Failed to connect to database: {exc}") from exc
        logger.info("Connected to PostgreSQL (pool %d-%d)", self.min_pool_size, self.max_pool_size)

    async def close(self) -> None:
        if self._pool is None:
            return
        await self._pool.close()
        self._pool = None
        logger.info("Disconnected from PostgreSQL")

    async def init_schema(self) -> None:
        """Create the segments table and its similarity index if missing.

        Safe to call repeatedly. Failure to build the ivfflat index is logged
        and ignored; search still works without it, just slower.
        """
        async with self._connection() as conn:
            await conn.execute(
                f"""
                CREATE TABLE IF NOT EXISTS {TABLE_NAME} (
                    id SERIAL PRIMARY KEY,
                    source_file TEXT NOT NULL,
                    start_timestamp TEXT NOT NULL,
                    end_timestamp TEXT,
                    text_content TEXT NOT NULL,
                    embedding vector({self.dimensions}) NOT NULL
                )
                """
            )
            try:
                await conn.execute(
                    f"""
                    CREATE INDEX IF NOT EXISTS {INDEX_NAME}
                    ON {TABLE_NAME}
                    USING ivfflat (embedding vector_cosine_ops)
                    """
                )
            except asyncpg.PostgresError as exc:
                logger.warning("Could not create ivfflat index on %s: %s", TABLE_NAME, exc)
        logger.info("Database schema initialized")

    async def health_check(self) -> bool:
        """Return True if a pooled connection answers ``SELECT 1``."""
        try:
            async with self._connection() as conn:
                return await conn.fetchval("SELECT 1") == 1
        except StorageError as exc:
            logger.warning("Database health check failed: %s", exc)
            return False

    # -------------------------------------------------------------- #
    # Segments
    # -------------------------------------------------------------- #

    async def insert(self, segment: TranscriptSegment) -> TranscriptSegment:
        """Persist *segment* and return a copy carrying the assigned id.

        Raises:
            ValidationError: If the embedding is missing or has the wrong
                dimension, or the text is empty.
            StorageError: If the insert fails.
        """
        if segment.embedding is None:
            raise ValidationError("Segment embedding is required")
        self._check_dimensions(segment.embedding)
        if not segment.text_content.strip():
            raise ValidationError("Segment text_content must not be empty")

        async with self._connection() as conn:
            segment_id = await conn.fetchval(
                _INSERT_SQL,
                segment.source_file,
                segment.start_timestamp,
                segment.end_timestamp,
                segment.text_content,
                segment.embedding,
            )
        return replace(segment, id=segment_id)

    async def search(
        self,
        query_embedding: list[float],
        limit: int = 10,
        similarity_threshold: float = 0.6,
    ) -> list[SearchResult]:
        """Return up to *limit* segments with similarity above the threshold.

        Similarity is ``1 - cosine_distance``; results come back most similar
        first.
        """
        self._check_dimensions(query_embedding)
        if limit < 1:
            raise ValidationError(f"limit must be positive, got {limit}")

        async with self._connection() as conn:
            rows = await conn.fetch(_SEARCH_SQL, query_embedding, limit, similarity_threshold)

        return [
            SearchResult(
                id=row["id"],
                source_file=row["source_file"],
                start_timestamp=row["start_timestamp"],
                end_timestamp=row["end_timestamp"],
                text_content=row["text_content"],
                similarity=float(row["similarity"]),
            )
            for row in rows
        ]

    async def count(self) -> int:
        async with self._connection() as conn:
            return int(await conn.fetchval(f"SELECT COUNT(*) FROM {TABLE_NAME}"))

    # -------------------------------------------------------------- #
    # Helpers
    # -------------------------------------------------------------- #

    def _check_dimensions(self, embedding: list[float]) -> None:
        if len(embedding) != self.dimensions:
            msg = f"Expected {self.dimensions}-dimensional embedding, got {len(embedding)}"
            raise ValidationError(msg)

    @asynccontextmanager
    async def _connection(self) -> AsyncIterator[asyncpg.Connection]:
        """Borrow a pooled connection, translating driver errors to StorageError."""
        if self._pool is None:
            raise StorageError("Segment store is not connected")
        try:
            async with self._pool.acquire() as conn:
                yield conn
        except _DB_ERRORS as exc:
            raise StorageError(str(exc)) from exc
