"""Transcript text normalisation: speaker labels, non-speech markers, punctuation."""

from __future__ import annotations

import re
from dataclasses import replace

from transcript_search.ingestion.models import TranscriptSegment

_WHITESPACE_RE = re.compile(r"\s+")
# "[Speaker]: ", "Host]:" -- only at the very start of the text
_SPEAKER_LABEL_RE = re.compile(r"^\[?[A-Za-z ]+\]:\s*")
# "[laughs]", "[inaudible]", "[music]"
_MARKER_RE = re.compile(r"\[[^\]]*\]")
_SPACE_BEFORE_PUNCT_RE = re.compile(r"\s+([.,;:!?])")


def clean_text(text: str) -> str:
    """Normalise transcript text.

    Collapses whitespace, strips a leading ``[Speaker]:`` label, removes
    bracketed non-speech markers and tidies the punctuation those removals
    leave behind. Deterministic and idempotent; never raises.
    """
    # Every pass only deletes characters, so this reaches a fixed point.
    while True:
        cleaned = _clean_once(text)
        if cleaned == text:
            return cleaned
        text = cleaned


def _clean_once(text: str) -> str:
    text = _collapse_whitespace(text)
    text = _SPEAKER_LABEL_RE.sub("", text, count=1)
    text = _MARKER_RE.sub("", text)
    text = _SPACE_BEFORE_PUNCT_RE.sub(r"\1", text)
    text = _collapse_punctuation(text)
    return _collapse_whitespace(text)


def clean_segment(segment: TranscriptSegment) -> TranscriptSegment:
    """Return a copy of *segment* with cleaned ``text_content``."""
    return replace(segment, text_content=clean_text(segment.text_content))


def _collapse_whitespace(text: str) -> str:
    return _WHITESPACE_RE.sub(" ", text).strip()


def _collapse_punctuation(text: str) -> str:
    """Merge separator marks left next to other punctuation into one mark.

    ``"word,."`` -> ``"word."``, ``"end.,"`` -> ``"end."``, ``"a,;b"`` -> ``"a,b"``.
    Ellipses and ``"?!"`` are left alone.
    """
    text = re.sub(r"[,;:]+(?=[.!?])", "", text)
    text = re.sub(r"([.!?])[,;:]+", r"\1", text)
    return re.sub(r"([,;:])[,;:]+", r"\1", text)
