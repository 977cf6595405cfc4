"""Parser for numbered, subtitle-style (SRT) transcripts.

Expected input::

    1
    00:00:00,000 --> 00:00:02,500
    Hello world.

    2
    00:00:02,500 --> 00:00:05,000
    [Speaker]: Second line.

Parsing is a line-oriented state machine and never raises: blocks without text
and stray lines outside a numbered block are dropped.
"""

from __future__ import annotations

import re
from enum import Enum

from transcript_search.ingestion.models import TranscriptSegment

SEGMENT_NUMBER_RE = re.compile(r"^\d+$")
TIMESTAMP_RE = re.compile(r"(\d{2}:\d{2}:\d{2},\d{3})\s*-->\s*(\d{2}:\d{2}:\d{2},\d{3})")

SUPPORTED_EXTENSIONS = (".txt", ".md")


class ParserState(str, Enum):
    """Whether a numbered block is currently open."""

    IDLE = "idle"
    IN_SEGMENT = "in_segment"


class LineKind(str, Enum):
    """Classification of a single trimmed input line."""

    BLANK = "blank"
    NUMBER = "number"
    TIMESTAMP = "timestamp"
    TEXT = "text"


def classify_line(line: str) -> LineKind:
    """Classify a trimmed line.

    Precedence is blank, number, timestamp, text. A spoken number on a line of
    its own is therefore read as a new segment marker.
    """
    if not line:
        return LineKind.BLANK
    if SEGMENT_NUMBER_RE.match(line):
        return LineKind.NUMBER
    if TIMESTAMP_RE.search(line):
        return LineKind.TIMESTAMP
    return LineKind.TEXT


def is_supported_transcript(filename: str) -> bool:
    """Return True if *filename* has a ``.txt`` or ``.md`` suffix."""
    return filename.lower().endswith(SUPPORTED_EXTENSIONS)


class TranscriptParser:
    """Finite-state machine turning transcript lines into segments."""

    def __init__(self, source_file: str) -> None:
        self.source_file = source_file
        self.state = ParserState.IDLE
        self.segments: list[TranscriptSegment] = []
        self._start = ""
        self._end: str | None = None
        self._text_lines: list[str] = []

    def feed(self, raw_line: str) -> None:
        line = raw_line.strip()
        kind = classify_line(line)

        if kind is LineKind.BLANK:
            if self.state is ParserState.IN_SEGMENT and self._text_lines:
                self._flush()
                self.state = ParserState.IDLE
        elif kind is LineKind.NUMBER:
            if self.state is ParserState.IN_SEGMENT and self._text_lines:
                self._flush()
            self._open()
        elif self.state is ParserState.IDLE:
            # Stray text or timestamps outside a numbered block.
            return
        elif kind is LineKind.TIMESTAMP:
            match = TIMESTAMP_RE.search(line)
            if match:
                self._start, self._end = match.group(1), match.group(2)
        else:
            self._text_lines.append(line)

    def finish(self) -> list[TranscriptSegment]:
        """Flush any still-open segment and return everything parsed so far."""
        if self.state is ParserState.IN_SEGMENT and self._text_lines:
            self._flush()
        self.state = ParserState.IDLE
        return self.segments

    def _open(self) -> None:
        self.state = ParserState.IN_SEGMENT
        self._start = ""
        self._end = None
        self._text_lines = []

    def _flush(self) -> None:
        self.segments.append(
            TranscriptSegment(
                source_file=self.source_file,
                start_timestamp=self._start,
                end_timestamp=self._end,
                text_content=" ".join(self._text_lines).strip(),
            )
        )
        self._text_lines = []


def parse_transcript(content: str, source_file: str) -> list[TranscriptSegment]:
    """Parse raw subtitle-style text into ordered transcript segments.

    Args:
        content: Raw transcript text.
        source_file: Name of the originating document, stored on every segment.

    Returns:
        Parsed segments with no embedding and no id.
    """
    parser = TranscriptParser(source_file)
    for line in content.split("\n"):
        parser.feed(line)
    return parser.finish()
