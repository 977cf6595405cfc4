"""Chunking of parsed transcript segments."""

from __future__ import annotations

from dataclasses import replace

from transcript_search.ingestion.cleaning import clean_segment
from transcript_search.ingestion.models import TranscriptSegment


def _estimate_tokens(text: str) -> int:
    """Rough token estimate: one token per whitespace-separated word."""
    return max(1, len(text.split()))


def chunk_segments(
    segments: list[TranscriptSegment],
    max_chunk_words: int = 500,
) -> list[TranscriptSegment]:
    """Clean segments and split any that exceed *max_chunk_words*.

    Subtitle cues are short, so in practice each segment becomes exactly one
    chunk. Segments whose text is empty after cleaning are dropped. An
    over-long segment is split into word windows that all keep the original
    start/end timestamps.

    Args:
        segments: Parsed transcript segments.
        max_chunk_words: Maximum word count per chunk.

    Returns:
        Cleaned chunks, in input order.

    Raises:
        ValueError: If *max_chunk_words* is not positive.
    """
    if max_chunk_words < 1:
        msg = f"max_chunk_words must be positive, got {max_chunk_words}"
        raise ValueError(msg)

    chunks: list[TranscriptSegment] = []

    for segment in segments:
        cleaned = clean_segment(segment)
        if not cleaned.text_content:
            continue

        if _estimate_tokens(cleaned.text_content) <= max_chunk_words:
            chunks.append(cleaned)
            continue

        words = cleaned.text_content.split()
        pos = 0
        while pos < len(words):
            sub_words = words[pos : pos + max_chunk_words]
            chunks.append(replace(cleaned, text_content=" ".join(sub_words)))
            pos += max_chunk_words

    return chunks
