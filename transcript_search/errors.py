"""Exception hierarchy shared by the ingestion, retrieval and API layers."""

from __future__ import annotations


class TranscriptSearchError(Exception):
    """Base exception. ``status_code`` is the HTTP status reported at the API boundary."""

    status_code = 500


class ValidationError(TranscriptSearchError):
    """Raised for missing or malformed input."""

    status_code = 400


class UploadTooLargeError(ValidationError):
    """Raised when an uploaded transcript exceeds the configured size limit."""

    status_code = 413


class UpstreamError(TranscriptSearchError):
    """Raised when a hosted model API call fails."""


class EmbeddingError(UpstreamError):
    """Raised when the embedding API fails or returns an unusable vector."""


class GenerationError(UpstreamError):
    """Raised when the generative model call fails."""


class StorageError(TranscriptSearchError):
    """Raised when a database connection or query fails."""
