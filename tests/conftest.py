# tests/conftest.py
import asyncio
import os
import sys

import numpy as np
import pytest

# Add project root to Python path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from ragchat.errors import EmbeddingError, ModelNotReady
from ragchat.memory.history import ChatHistory
from ragchat.memory.loader import DocumentLoader
from ragchat.memory.store import VectorStore
from ragchat.models import Document, SessionSettings
from ragchat.observability.events import EventStream
from ragchat.session import RAGSession


class LetterCountEmbedder:
    """
    Deterministic embedder: one dimension per letter a-z plus one for
    everything else, valued by occurrence count.
    """

    dimension = 27

    def __init__(self, fail_after=None, delay=0.0):
        self.calls = []
        self.fail_after = fail_after
        self.delay = delay

    async def embed(self, text):
        if self.delay:
            await asyncio.sleep(self.delay)

        if self.fail_after is not None and len(self.calls) >= self.fail_after:
            raise EmbeddingError("model not loaded")

        self.calls.append(text)

        vector = np.zeros(self.dimension, dtype="float32")
        for ch in text.lower():
            if "a" <= ch <= "z":
                vector[ord(ch) - ord("a")] += 1
            else:
                vector[26] += 1
        return vector


class ScriptedEngine:
    """Completion engine returning canned replies and recording requests."""

    name = "scripted"

    def __init__(self, replies=None, ready=True, error=None, delay=0.0):
        self.replies = list(replies or [])
        self.error = error
        self.delay = delay
        self.calls = []
        self._ready = ready

    @property
    def is_ready(self):
        return self._ready

    async def load(self, progress=None):
        if progress:
            progress(0.0, "loading")
            progress(1.0, "loaded")
        self._ready = True

    async def complete(self, messages, temperature):
        if not self._ready:
            raise ModelNotReady("not loaded")

        self.calls.append((list(messages), temperature))

        if self.delay:
            await asyncio.sleep(self.delay)

        if self.error is not None:
            raise self.error

        if self.replies:
            return self.replies.pop(0)

        return f"Reply {len(self.calls)}"


def text_document(name, text):
    return Document(name=name, content=text.encode("utf-8"), media_type="text/plain")


@pytest.fixture
def embedder():
    return LetterCountEmbedder()


@pytest.fixture
def engine():
    return ScriptedEngine()


@pytest.fixture
def store():
    return VectorStore()


@pytest.fixture
def history():
    return ChatHistory()


@pytest.fixture
def events():
    return EventStream()


@pytest.fixture
def loader():
    return DocumentLoader()


@pytest.fixture
def session(embedder, engine):
    """Session wired to deterministic in-process collaborators."""
    return RAGSession(
        extractor=DocumentLoader(),
        embedder=embedder,
        engine=engine,
        settings=SessionSettings(timeout_seconds=5.0),
    )


@pytest.fixture
def doc1():
    """1000-character document: 500 A's then 500 B's."""
    return text_document("doc1", "A" * 500 + "B" * 500)
