"""Embedding client using the OpenAI embeddings API."""

from __future__ import annotations

import re

from openai import AsyncOpenAI, OpenAIError

from transcript_search.errors import EmbeddingError


class EmbeddingClient:
    """Turns text into fixed-length embedding vectors.

    Args:
        client: Shared ``AsyncOpenAI`` client owned by the application context.
        model: OpenAI embedding model name.
        dimensions: Expected vector length; any other length is rejected.
    """

    def __init__(
        self,
        client: AsyncOpenAI,
        model: str = "text-embedding-3-small",
        dimensions: int = 1536,
    ) -> None:
        self.client = client
        self.model = model
        self.dimensions = dimensions

    async def embed(self, text: str) -> list[float]:
        """Embed a single string.

        Raises:
            EmbeddingError: If the input is empty, the API call fails, or the
                returned vector has the wrong dimension.
        """
        cleaned = re.sub(r"\s+", " ", text.strip())
        if not cleaned:
            raise EmbeddingError("Cannot embed empty text")

        try:
            response = await self.client.embeddings.create(input=cleaned, model=self.model)
        except OpenAIError as exc:
            raise EmbeddingError(f"Failed to generate embedding: {exc}") from exc

        if not response.data:
            raise EmbeddingError("Failed to generate embedding: empty response")

        embedding = list(response.data[0].embedding)
        if len(embedding) != self.dimensions:
            msg = f"Expected {self.dimensions}-dimensional embedding, got {len(embedding)}"
            raise EmbeddingError(msg)
        return embedding
