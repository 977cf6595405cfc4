"""Tests for API endpoints (no external API keys or database required)."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import replace
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from transcript_search.api.dependencies import get_context
from transcript_search.api.main import app
from transcript_search.config import Settings
from transcript_search.errors import EmbeddingError, GenerationError, StorageError, ValidationError
from transcript_search.ingestion.models import SearchResult, TranscriptSegment
from transcript_search.retrieval.generation import ChatResult

client = TestClient(app)
client_no_raise = TestClient(app, raise_server_exceptions=False)

TRANSCRIPT = (
    "1\n00:00:00,000 --> 00:00:02,500\nHello world.\n\n"
    "2\n00:00:02,500 --> 00:00:05,000\n[Speaker]: Second line.\n\n"
    "3\n00:00:05,000 --> 00:00:07,000\nThird line.\n"
)


@pytest.fixture
def fake_context() -> Iterator[SimpleNamespace]:
    """Swap the lifespan-built AppContext for mocks."""

    async def insert(segment: TranscriptSegment) -> TranscriptSegment:
        return replace(segment, id=1)

    store = MagicMock()
    store.insert = AsyncMock(side_effect=insert)
    store.search = AsyncMock(return_value=[])
    store.health_check = AsyncMock(return_value=True)
    embedder = MagicMock()
    embedder.embed = AsyncMock(return_value=[0.1, 0.2, 0.3])
    chat = MagicMock()
    chat.respond = AsyncMock()

    context = SimpleNamespace(
        settings=Settings(_env_file=None),  # type: ignore[call-arg]
        store=store,
        embedder=embedder,
        chat=chat,
    )
    app.dependency_overrides[get_context] = lambda: context
    yield context
    app.dependency_overrides.clear()


def _hit(**overrides: object) -> SearchResult:
    values: dict[str, object] = {
        "id": 3,
        "source_file": "ep.txt",
        "start_timestamp": "00:00:02,500",
        "end_timestamp": "00:00:05,000",
        "text_content": "Second line.",
        "similarity": 0.876543,
    }
    values.update(overrides)
    return SearchResult(**values)  # type: ignore[arg-type]


def test_health(fake_context: SimpleNamespace) -> None:
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy", "database": True}


def test_health_degraded(fake_context: SimpleNamespace) -> None:
    fake_context.store.health_check.return_value = False
    assert client.get("/health").json()["status"] == "degraded"


class TestProcessTranscript:
    def test_ingests_uploaded_file(self, fake_context: SimpleNamespace) -> None:
        response = client.post(
            "/api/process-transcript",
            files={"file": ("episode.txt", TRANSCRIPT.encode(), "text/plain")},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "success"
        assert body["message"] == "Processed 3 segments successfully"
        assert body["data"] == {"totalSegments": 3, "successful": 3, "failed": 0}
        stored = [c.args[0] for c in fake_context.store.insert.await_args_list]
        assert sorted(s.text_content for s in stored) == ["Hello world.", "Second line.", "Third line."]
        assert all(s.source_file == "episode.txt" for s in stored)

    def test_partial_failure_is_success(self, fake_context: SimpleNamespace) -> None:
        async def embed(text: str) -> list[float]:
            if text == "Third line.":
                raise EmbeddingError("rate limited")
            return [0.1, 0.2, 0.3]

        fake_context.embedder.embed.side_effect = embed

        response = client.post(
            "/api/process-transcript",
            files={"file": ("episode.md", TRANSCRIPT.encode(), "text/markdown")},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Processed 2 segments successfully, 1 segments failed"
        assert body["data"] == {"totalSegments": 3, "successful": 2, "failed": 1}

    def test_missing_file(self, fake_context: SimpleNamespace) -> None:
        response = client.post("/api/process-transcript")
        assert response.status_code == 400
        assert response.json() == {"status": "error", "message": "No file provided"}

    def test_rejects_unsupported_extension(self, fake_context: SimpleNamespace) -> None:
        response = client.post(
            "/api/process-transcript",
            files={"file": ("episode.vtt", TRANSCRIPT.encode(), "text/vtt")},
        )
        assert response.status_code == 400
        assert response.json()["message"] == "Only .txt and .md files are supported"
        fake_context.store.insert.assert_not_called()

    def test_rejects_non_utf8(self, fake_context: SimpleNamespace) -> None:
        response = client.post(
            "/api/process-transcript",
            files={"file": ("episode.txt", b"\xff\xfe\x00\xd8bad", "text/plain")},
        )
        assert response.status_code == 400
        assert "UTF-8" in response.json()["message"]

    def test_rejects_oversized_upload(self, fake_context: SimpleNamespace) -> None:
        fake_context.settings = Settings(_env_file=None, max_upload_bytes=10)  # type: ignore[call-arg]
        response = client.post(
            "/api/process-transcript",
            files={"file": ("episode.txt", TRANSCRIPT.encode(), "text/plain")},
        )
        assert response.status_code == 413
        assert response.json()["status"] == "error"

    def test_pipeline_crash_is_500(self, fake_context: SimpleNamespace) -> None:
        with patch(
            "transcript_search.api.routes.ingest.ingest_transcript",
            new=AsyncMock(side_effect=RuntimeError("boom")),
        ):
            response = client.post(
                "/api/process-transcript",
                files={"file": ("episode.txt", TRANSCRIPT.encode(), "text/plain")},
            )
        assert response.status_code == 500
        assert response.json() == {
            "status": "error",
            "message": "Error processing transcript: boom",
        }


class TestSearch:
    def test_returns_ranked_results(self, fake_context: SimpleNamespace) -> None:
        fake_context.store.search.return_value = [_hit(), _hit(id=4, similarity=0.61)]

        response = client.post("/api/search", json={"queryText": "second"})

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "success"
        assert body["message"] == "Found 2 results"
        results = body["data"]["results"]
        assert results[0] == {
            "id": 3,
            "source_file": "ep.txt",
            "start_timestamp": "00:00:02,500",
            "end_timestamp": "00:00:05,000",
            "text_content": "Second line.",
            "similarity": 0.8765,
        }
        fake_context.embedder.embed.assert_awaited_once_with("second")
        fake_context.store.search.assert_awaited_once_with(
            [0.1, 0.2, 0.3], limit=10, similarity_threshold=0.6
        )

    def test_missing_query_text(self, fake_context: SimpleNamespace) -> None:
        response = client.post("/api/search", json={})
        assert response.status_code == 400
        body = response.json()
        assert body["status"] == "error"
        assert "queryText" in body["message"]

    def test_blank_query_text(self, fake_context: SimpleNamespace) -> None:
        fake_context.embedder.embed.side_effect = EmbeddingError("Cannot embed empty text")

        response = client.post("/api/search", json={"queryText": "   "})

        assert response.status_code == 400
        assert response.json()["status"] == "error"
        fake_context.embedder.embed.assert_not_called()

    def test_non_string_query_text(self, fake_context: SimpleNamespace) -> None:
        response = client.post("/api/search", json={"queryText": 12})
        assert response.status_code == 400

    def test_embedding_failure_is_500(self, fake_context: SimpleNamespace) -> None:
        fake_context.embedder.embed.side_effect = EmbeddingError("invalid api key")

        response = client.post("/api/search", json={"queryText": "hello"})

        assert response.status_code == 500
        assert response.json() == {
            "status": "error",
            "message": "Error searching transcripts: invalid api key",
        }

    def test_storage_failure_is_500(self, fake_context: SimpleNamespace) -> None:
        fake_context.store.search.side_effect = StorageError("db down")

        response = client.post("/api/search", json={"queryText": "hello"})

        assert response.status_code == 500
        assert "db down" in response.json()["message"]


class TestChat:
    def test_returns_response_and_citations(self, fake_context: SimpleNamespace) -> None:
        fake_context.chat.respond.return_value = ChatResult(
            response="Here is the answer.",
            context=[_hit(), _hit(id=5, end_timestamp=None, similarity=0.6049)],
        )

        response = client.post(
            "/api/chat",
            json={
                "message": "What was said?",
                "history": [
                    {"role": "user", "content": "hi"},
                    {"role": "assistant", "content": "hello"},
                ],
            },
        )

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "success"
        assert body["data"]["response"] == "Here is the answer."
        assert body["data"]["context"] == [
            {
                "source": "ep.txt",
                "start": "00:00:02,500",
                "end": "00:00:05,000",
                "text": "Second line.",
                "similarity": 0.88,
            },
            {
                "source": "ep.txt",
                "start": "00:00:02,500",
                "end": None,
                "text": "Second line.",
                "similarity": 0.6,
            },
        ]
        fake_context.chat.respond.assert_awaited_once_with(
            "What was said?",
            [{"role": "user", "content": "hi"}, {"role": "assistant", "content": "hello"}],
        )

    def test_history_defaults_to_empty(self, fake_context: SimpleNamespace) -> None:
        fake_context.chat.respond.return_value = ChatResult(response="ok", context=[])

        response = client.post("/api/chat", json={"message": "hi"})

        assert response.status_code == 200
        fake_context.chat.respond.assert_awaited_once_with("hi", [])

    def test_missing_message(self, fake_context: SimpleNamespace) -> None:
        response = client.post("/api/chat", json={"message": ""})
        assert response.status_code == 400
        assert response.json()["status"] == "error"
        fake_context.chat.respond.assert_not_called()

    def test_blank_message(self, fake_context: SimpleNamespace) -> None:
        response = client.post("/api/chat", json={"message": " \t\n "})

        assert response.status_code == 400
        assert response.json()["status"] == "error"
        fake_context.chat.respond.assert_not_called()

    def test_invalid_history_role(self, fake_context: SimpleNamespace) -> None:
        response = client.post(
            "/api/chat",
            json={"message": "hi", "history": [{"role": "robot", "content": "x"}]},
        )
        assert response.status_code == 400

    def test_generation_failure_is_500(self, fake_context: SimpleNamespace) -> None:
        fake_context.chat.respond.side_effect = GenerationError("LLM unavailable: overloaded")

        response = client.post("/api/chat", json={"message": "hi"})

        assert response.status_code == 500
        assert response.json() == {
            "status": "error",
            "message": "Error generating response: LLM unavailable: overloaded",
        }

    def test_validation_error_from_service_is_400(self, fake_context: SimpleNamespace) -> None:
        fake_context.chat.respond.side_effect = ValidationError("Expected 1536-dimensional embedding")

        response = client.post("/api/chat", json={"message": "hi"})

        assert response.status_code == 400

    def test_unexpected_error_is_enveloped(self, fake_context: SimpleNamespace) -> None:
        fake_context.chat.respond.side_effect = RuntimeError("kaboom")

        response = client_no_raise.post("/api/chat", json={"message": "hi"})

        assert response.status_code == 500
        assert response.json()["status"] == "error"
