"""Claude-powered chat answers grounded in retrieved transcript segments."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any

from anthropic import AnthropicError, AsyncAnthropic
from anthropic.types import TextBlock

from transcript_search.errors import GenerationError
from transcript_search.ingestion.embeddings import EmbeddingClient
from transcript_search.ingestion.models import SearchResult
from transcript_search.ingestion.storage import SegmentStore

FALLBACK_RESPONSE = "I'm sorry, I couldn't generate a response."

SYSTEM_PROMPT = (
    "You are an expert analyst of podcast transcripts.\n\n"
    "APPROACH TO INFORMATION:\n"
    "- Synthesize information across all provided segments to form complete concepts\n"
    "- Pay close attention to specific entities (companies, products, people) "
    "mentioned in the segments\n"
    "- Identify and consolidate all information about a specific entity when it "
    "is mentioned in several segments\n"
    "- Present information with confidence when supported by multiple segments\n"
    "- Acknowledge uncertainty only when truly unclear\n"
    "- Connect related ideas from different parts of the conversation\n"
    "- Distinguish between established facts and speculative ideas in the transcript\n"
    "- IMPORTANT: Focus more on the transcript content than timestamps or metadata\n\n"
    "RESPONSE STRUCTURE:\n"
    "1. Begin with a clear definition/overview of the entity or concept\n"
    "2. Organize information by themes rather than timestamps\n"
    "3. When answering about a specific entity, consolidate ALL information about "
    "it from all segments\n"
    "4. Explain the purpose/application of the concept\n"
    "5. Describe how it relates to broader topics discussed\n"
    "6. Conclude with a concise summary\n\n"
    "STYLE GUIDELINES:\n"
    "- Use a confident, authoritative tone\n"
    "- Prioritize specific information about named entities when they are the "
    "focus of the question\n"
    "- Include references discretely at the end of relevant points (not mid-sentence)\n"
    "- If a concept appears across multiple segments, integrate the information "
    "holistically\n\n"
    "If the answer cannot be found in the transcript segments, clearly state this limitation."
)

_MILLIS_RE = re.compile(r",\d+$")


@dataclass
class ChatResult:
    """Generated answer plus the raw segments it was grounded on."""

    response: str
    context: list[SearchResult]


def _display_timestamp(timestamp: str | None) -> str:
    """Drop the ``,mmm`` milliseconds suffix for display."""
    return _MILLIS_RE.sub("", timestamp) if timestamp else ""


def group_by_source(segments: list[SearchResult]) -> dict[str, list[SearchResult]]:
    """Group segments by source file, each group sorted by start timestamp.

    Sources keep the order in which they first appear. Timestamps are
    fixed-width ``HH:MM:SS,mmm`` strings, so string order is time order.
    """
    groups: dict[str, list[SearchResult]] = {}
    for segment in segments:
        groups.setdefault(segment.source_file, []).append(segment)
    for group in groups.values():
        group.sort(key=lambda s: s.start_timestamp)
    return groups


def build_context(segments: list[SearchResult]) -> str:
    """Render retrieved segments into the context block sent to the model."""
    parts: list[str] = []
    for source_file, group in group_by_source(segments).items():
        parts.append(f"TRANSCRIPT SOURCE: {source_file}\n\n")
        for segment in group:
            start = _display_timestamp(segment.start_timestamp)
            end = _display_timestamp(segment.end_timestamp)
            span = f"{start} to {end}" if end else start
            relevance = round(segment.similarity * 100)
            parts.append(
                f"SEGMENT [{span}] (Relevance: {relevance}%):\n{segment.text_content}\n\n"
            )
        parts.append("---\n\n")
    return "".join(parts)


def trim_history(history: list[dict[str, str]], max_turns: int = 4) -> list[dict[str, str]]:
    """Keep the last *max_turns* user/assistant turns.

    System turns are never forwarded (the system prompt is fixed), blank
    turns are skipped since the Messages API rejects empty text, and a
    leading assistant turn is dropped so the conversation opens with the user.
    """
    turns = [
        {"role": turn["role"], "content": turn["content"]}
        for turn in history
        if turn.get("role") in ("user", "assistant") and turn.get("content", "").strip()
    ]
    recent = turns[-max_turns:] if max_turns > 0 else []
    while recent and recent[0]["role"] != "user":
        recent.pop(0)
    return recent


class ChatService:
    """Retrieval-augmented chat over stored transcripts."""

    def __init__(
        self,
        client: AsyncAnthropic,
        embedder: EmbeddingClient,
        store: SegmentStore,
        model: str,
        temperature: float = 0.7,
        max_tokens: int = 500,
        context_limit: int = 8,
        similarity_threshold: float = 0.6,
        history_turns: int = 4,
    ) -> None:
        self.client = client
        self.embedder = embedder
        self.store = store
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.context_limit = context_limit
        self.similarity_threshold = similarity_threshold
        self.history_turns = history_turns

    def build_messages(
        self,
        message: str,
        context: str,
        history: list[dict[str, str]],
    ) -> list[dict[str, Any]]:
        """Trimmed history followed by the context-augmented user turn."""
        user_turn = (
            f"{message}\n\nHere are relevant transcript segments to help with your "
            f"response:\n\n{context}"
        )
        return [
            *trim_history(history, self.history_turns),
            {"role": "user", "content": user_turn},
        ]

    async def respond(
        self,
        message: str,
        history: list[dict[str, str]] | None = None,
    ) -> ChatResult:
        """Answer *message* using the most relevant stored segments.

        Raises:
            EmbeddingError: If the message cannot be embedded.
            StorageError: If retrieval fails.
            GenerationError: If the model call fails.
        """
        embedding = await self.embedder.embed(message)
        segments = await self.store.search(
            embedding,
            limit=self.context_limit,
            similarity_threshold=self.similarity_threshold,
        )
        messages = self.build_messages(message, build_context(segments), history or [])

        try:
            response = await self.client.messages.create(
                model=self.model,
                max_tokens=self.max_tokens,
                temperature=self.temperature,
                system=SYSTEM_PROMPT,
                messages=messages,  # type: ignore[arg-type]
            )
        except AnthropicError as exc:
            raise GenerationError(f"LLM unavailable: {exc}") from exc

        # response.content is a union of block types; only text blocks carry the answer.
        text = "".join(block.text for block in response.content if isinstance(block, TextBlock))
        return ChatResult(response=text.strip() or FALLBACK_RESPONSE, context=segments)
