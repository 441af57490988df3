# ragchat/session.py

"""
One chat session: the vector store, the chat history and the
collaborators that read and write them.

Created at session start, discarded at session end. Nothing here is a
process-wide singleton; two sessions never share state.
"""

import logging
import uuid
from typing import Iterable, Optional

from ragchat.interfaces import CompletionEngine, EmbeddingService, TextExtractor
from ragchat.memory.history import ChatHistory
from ragchat.memory.indexer import Indexer
from ragchat.memory.retriever import Retriever
from ragchat.memory.store import VectorStore
from ragchat.models import Document, IngestionReport, SessionSettings
from ragchat.observability import events as ev
from ragchat.observability.events import EventStream
from ragchat.workflow.conversation import ConversationManager

logger = logging.getLogger(__name__)


class RAGSession:

    def __init__(
        self,
        extractor: TextExtractor,
        embedder: EmbeddingService,
        engine: CompletionEngine,
        settings: Optional[SessionSettings] = None,
        sink=None,
        session_id: Optional[str] = None,
    ):
        self.session_id = session_id or f"session_{uuid.uuid4().hex[:12]}"
        self.settings = settings or SessionSettings()

        self.events = EventStream(sink=sink)
        self.store = VectorStore(dim=getattr(embedder, "dimension", None))
        self.history = ChatHistory()

        self.engine = engine
        self.embedder = embedder
        self.sink = sink

        self.indexer = Indexer(
            extractor=extractor,
            embedder=embedder,
            store=self.store,
            events=self.events,
            chunk_size=self.settings.chunk_size,
            chunk_overlap=self.settings.chunk_overlap,
            embedding_concurrency=self.settings.embedding_concurrency,
            timeout=self.settings.timeout_seconds,
        )

        self.retriever = Retriever(
            embedder=embedder,
            store=self.store,
            timeout=self.settings.timeout_seconds,
        )

        self.conversation = ConversationManager(
            retriever=self.retriever,
            engine=engine,
            history=self.history,
            events=self.events,
            top_k=self.settings.top_k,
            history_window=self.settings.history_window,
            timeout=self.settings.timeout_seconds,
        )

        logger.info(
            "Session created",
            extra={
                "session_id": self.session_id,
                **self.settings.model_dump(exclude={"system_directive"}),
            },
        )

    @property
    def is_ready(self) -> bool:
        return self.engine.is_ready

    def embedder_health(self) -> Optional[dict]:
        check = getattr(self.embedder, "health_check", None)
        return check() if check else None

    def close(self) -> None:
        """Flush the analytics sink; the store and history are simply dropped."""

        if self.sink is not None:
            self.sink.shutdown()

        logger.info("Session closed", extra={"session_id": self.session_id})

    async def load_model(self) -> None:
        """Load the completion engine, streaming its progress as events."""

        def report(progress: float, text: str):
            self.events.emit(
                ev.MODEL_LOADING,
                f"Loading AI: {round(progress * 100)}%",
                progress=progress,
                detail=text,
            )

        await self.engine.load(report)

        self.events.emit(
            ev.MODEL_READY,
            "AI Ready! Ask me about your documents.",
            progress=1.0,
        )

    async def ingest(self, documents: Iterable[Document]) -> IngestionReport:
        return await self.indexer.ingest_many(documents)

    async def respond(
        self,
        query: str,
        temperature: Optional[float] = None,
        system_directive: Optional[str] = None,
    ) -> str:
        return await self.conversation.respond(
            query,
            temperature=self.settings.temperature if temperature is None else temperature,
            system_directive=(
                self.settings.system_directive if system_directive is None else system_directive
            ),
        )


def create_session(settings: Optional[SessionSettings] = None) -> RAGSession:
    """Session wired to the configured extraction, embedding and LLM providers."""

    from ragchat.llm.multi_model_client import build_engine
    from ragchat.memory.embedder import build_embedder
    from ragchat.memory.loader import DocumentLoader
    from ragchat.observability.posthog_client import PostHogClient

    session_id = f"session_{uuid.uuid4().hex[:12]}"

    return RAGSession(
        extractor=DocumentLoader(),
        embedder=build_embedder(),
        engine=build_engine(),
        settings=settings,
        sink=PostHogClient(distinct_id=session_id),
        session_id=session_id,
    )
