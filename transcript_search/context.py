"""Application context: the process-wide resources, created and closed explicitly."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from anthropic import AsyncAnthropic
from openai import AsyncOpenAI

from transcript_search.config import Settings
from transcript_search.ingestion.embeddings import EmbeddingClient
from transcript_search.ingestion.storage import SegmentStore
from transcript_search.retrieval.generation import ChatService

logger = logging.getLogger(__name__)


@dataclass
class AppContext:
    """Everything a request handler needs, built once at startup.

    Use :meth:`create` at process start and :meth:`aclose` at shutdown.
    """

    settings: Settings
    store: SegmentStore
    embedder: EmbeddingClient
    chat: ChatService
    openai_client: AsyncOpenAI
    anthropic_client: AsyncAnthropic

    @classmethod
    def build(cls, settings: Settings) -> AppContext:
        """Construct the context without opening any connection."""
        openai_client = AsyncOpenAI(api_key=settings.openai_api_key or None)
        anthropic_client = AsyncAnthropic(api_key=settings.anthropic_api_key or None)

        store = SegmentStore(
            settings.database_url,
            dimensions=settings.embedding_dimensions,
            min_pool_size=settings.db_min_pool_size,
            max_pool_size=settings.db_max_pool_size,
        )
        embedder = EmbeddingClient(
            openai_client,
            model=settings.embedding_model,
            dimensions=settings.embedding_dimensions,
        )
        chat = ChatService(
            anthropic_client,
            embedder,
            store,
            model=settings.llm_model,
            temperature=settings.llm_temperature,
            max_tokens=settings.llm_max_tokens,
            context_limit=settings.chat_context_limit,
            similarity_threshold=settings.similarity_threshold,
            history_turns=settings.chat_history_turns,
        )
        return cls(
            settings=settings,
            store=store,
            embedder=embedder,
            chat=chat,
            openai_client=openai_client,
            anthropic_client=anthropic_client,
        )

    @classmethod
    async def create(cls, settings: Settings, init_schema: bool = True) -> AppContext:
        """Build the context, open the database pool and (optionally) create the schema."""
        context = cls.build(settings)
        try:
            await context.store.connect()
            if init_schema:
                await context.store.init_schema()
        except Exception:
            await context.aclose()
            raise
        logger.info("Application context ready")
        return context

    async def aclose(self) -> None:
        await self.store.close()
        await self.openai_client.close()
        await self.anthropic_client.close()
        logger.info("Application context closed")
