# tests/test_api.py
from unittest.mock import MagicMock

import numpy as np
import pytest
from fastapi.testclient import TestClient

from conftest import LetterCountEmbedder, ScriptedEngine
from ragchat.errors import CompletionError
from ragchat.main import create_app
from ragchat.memory.loader import DocumentLoader
from ragchat.session import RAGSession


class UnloadableEngine(ScriptedEngine):

    async def load(self, progress=None):
        raise CompletionError("weights unavailable")


class ShortQueryEmbedder(LetterCountEmbedder):
    """Indexes normally but embeds the query "mismatch" into 3 dimensions."""

    async def embed(self, text):
        if text == "mismatch":
            return np.ones(3, dtype="float32")
        return await super().embed(text)


class ReportingEmbedder(LetterCountEmbedder):

    def health_check(self):
        return {"model": "letter-count", "dimension": self.dimension, "status": "healthy"}


def make_client(engine=None, embedder=None, sink=None):
    app = create_app(
        session_factory=lambda: RAGSession(
            DocumentLoader(),
            embedder or LetterCountEmbedder(),
            engine or ScriptedEngine(),
            sink=sink,
        )
    )
    return TestClient(app)


@pytest.fixture
def client():
    with make_client() as client:
        yield client


def upload(client, *named_texts):
    files = [
        ("files", (name, text.encode("utf-8"), "text/plain"))
        for name, text in named_texts
    ]
    return client.post("/documents", files=files)


class TestHealthEndpoint:

    def test_empty_session(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["total_documents"] == 0
        assert data["total_chunks"] == 0
        assert data["history_length"] == 0

    def test_reflects_uploads(self, client):
        upload(client, ("doc1.txt", "A" * 500 + "B" * 500))

        data = client.get("/health").json()

        assert data["total_documents"] == 1
        assert data["total_chunks"] == 3

    def test_embedder_health_reported(self):
        with make_client(embedder=ReportingEmbedder()) as client:
            data = client.get("/health").json()

        assert data["embedding"] == {
            "model": "letter-count",
            "dimension": 27,
            "status": "healthy",
        }

    def test_embedder_without_health_check(self, client):
        assert client.get("/health").json()["embedding"] is None


class TestDocumentsEndpoint:

    def test_batch_report(self, client):
        response = upload(
            client,
            ("notes.txt", "Plain notes about apples."),
            ("empty.txt", ""),
        )

        assert response.status_code == 200
        data = response.json()
        assert data["succeeded"] == 1
        assert data["failed"] == 1
        assert data["total_chunks"] == 1

        failed = data["documents"][1]
        assert failed["source"] == "empty.txt"
        assert failed["error_type"] == "ExtractionError"

    def test_unsupported_type_reported_not_raised(self, client):
        response = client.post(
            "/documents",
            files=[("files", ("photo.jpg", b"\xff\xd8\xff", "image/jpeg"))],
        )

        assert response.status_code == 200
        assert response.json()["failed"] == 1

    def test_no_files(self, client):
        response = client.post("/documents")

        assert response.status_code == 400


class TestChatEndpoint:

    def test_reply_with_sources(self, client):
        upload(client, ("doc1.txt", "A" * 500 + "B" * 500))

        response = client.post("/chat", json={"query": "BBBB"})

        assert response.status_code == 200
        data = response.json()
        assert data["reply"] == "Reply 1"
        assert data["history_length"] == 2
        assert data["sources"][0]["source"] == "doc1.txt"

    def test_empty_query(self, client):
        response = client.post("/chat", json={"query": "   "})

        assert response.status_code == 422
        assert client.get("/history").json() == []

    def test_model_not_ready(self):
        with make_client(engine=UnloadableEngine(ready=False)) as client:
            response = client.post("/chat", json={"query": "hello"})

            assert response.status_code == 503
            assert client.get("/history").json() == []

    def test_completion_failure(self):
        engine = ScriptedEngine(error=CompletionError("generation error"))

        with make_client(engine=engine) as client:
            response = client.post("/chat", json={"query": "hello"})

            assert response.status_code == 502
            assert response.json()["detail"].startswith("CompletionError")
            assert client.get("/history").json() == []

    def test_dimension_mismatch_maps_to_bad_gateway(self):
        with make_client(embedder=ShortQueryEmbedder()) as client:
            upload(client, ("doc1.txt", "A" * 500 + "B" * 500))

            response = client.post("/chat", json={"query": "mismatch"})

            assert response.status_code == 502
            assert response.json()["detail"].startswith("DimensionMismatchError")
            assert client.get("/history").json() == []

    def test_history_lists_turns_in_order(self, client):
        client.post("/chat", json={"query": "first"})
        client.post("/chat", json={"query": "second"})

        turns = client.get("/history").json()

        assert [(t["role"], t["content"]) for t in turns] == [
            ("user", "first"),
            ("assistant", "Reply 1"),
            ("user", "second"),
            ("assistant", "Reply 2"),
        ]


class TestEventsEndpoint:

    def test_ingestion_events(self, client):
        client.get("/events")
        upload(client, ("notes.txt", "Plain notes."))

        events = client.get("/events").json()
        kinds = [e["kind"] for e in events]

        assert kinds[0] == "ingestion_started"
        assert "document_indexed" in kinds
        assert events[-1]["message"] == "Success! 1 chunks indexed."
        assert client.get("/events").json() == []


class TestMetricsEndpoint:

    def test_requests_counted(self, client):
        client.get("/health")
        client.get("/health")

        data = client.get("/metrics").json()

        assert data["total_requests"] >= 2
        assert data["failed_requests"] == 0


class TestLifespan:

    def test_shutdown_flushes_analytics_sink(self):
        sink = MagicMock()

        with make_client(sink=sink) as client:
            client.get("/health")
            sink.shutdown.assert_not_called()

        sink.shutdown.assert_called_once_with()
