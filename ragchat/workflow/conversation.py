# ragchat/workflow/conversation.py

"""
Retrieval-augmented chat turn.

respond() flow:
guards → retrieve → assemble messages → complete → append exchange

History is only touched after the completion engine returned a reply;
every failure before that leaves it exactly as it was.
"""

import asyncio
import logging
import time
from typing import List, Optional

from ragchat.config import (
    COLLABORATOR_TIMEOUT_SECONDS,
    HISTORY_WARNING_TURNS,
    HISTORY_WINDOW,
    LLM_TEMPERATURE,
    TOP_K,
)
from ragchat.errors import CompletionError, EmptyQuery, ModelNotReady, RAGError
from ragchat.interfaces import CompletionEngine
from ragchat.models import RetrievalResult
from ragchat.observability import events as ev
from ragchat.prompts.prompt_builder import build_messages
from ragchat.prompts.system_prompts import DEFAULT_SYSTEM_DIRECTIVE

logger = logging.getLogger(__name__)


class ConversationManager:

    def __init__(
        self,
        retriever,
        engine: CompletionEngine,
        history,
        events=None,
        top_k: int = TOP_K,
        history_window: Optional[int] = HISTORY_WINDOW,
        timeout: float = COLLABORATOR_TIMEOUT_SECONDS,
    ):
        self.retriever = retriever
        self.engine = engine
        self.history = history
        self.events = events
        self.top_k = top_k
        self.history_window = history_window
        self.timeout = timeout

        # sources used by the most recent successful respond()
        self.last_sources: List[RetrievalResult] = []

        self._respond_lock = asyncio.Lock()

    async def respond(
        self,
        query: str,
        temperature: float = LLM_TEMPERATURE,
        system_directive: str = DEFAULT_SYSTEM_DIRECTIVE,
    ) -> str:
        """
        Answer query with retrieved context and the session history.

        Raises:
            EmptyQuery: query is blank (nothing else happens)
            ModelNotReady: engine not loaded (nothing else happens)
            EmbeddingError: query embedding failed
            CompletionError: generation failed or timed out
        """
        query = (query or "").strip()

        if not query:
            raise EmptyQuery("Query cannot be empty or only whitespace")

        if not self.engine.is_ready:
            raise ModelNotReady("Completion engine is not loaded yet")

        async with self._respond_lock:
            try:
                return await self._respond_locked(query, temperature, system_directive)
            except RAGError as e:
                logger.error(
                    "Response failed",
                    extra={"error_type": type(e).__name__, "error": str(e)},
                )
                self._emit(
                    ev.RESPONSE_FAILED,
                    f"Error: {e}",
                    error_type=type(e).__name__,
                )
                raise

    async def _respond_locked(self, query: str, temperature: float, directive: str) -> str:
        start_time = time.time()

        results = await self.retriever.search(query, self.top_k)

        self._emit(
            ev.RETRIEVAL_COMPLETED,
            f"Retrieved {len(results)} passage(s)",
            passages=len(results),
            top_score=results[0].score if results else None,
        )

        history = self.history.turns()

        messages = build_messages(
            query=query,
            directive=directive,
            results=results,
            history=history,
            history_window=self.history_window,
        )

        if len(messages) - 2 > HISTORY_WARNING_TURNS:
            logger.warning(
                "Chat history is growing large",
                extra={
                    "history_turns": len(history),
                    "messages_sent": len(messages),
                },
            )

        try:
            reply = await asyncio.wait_for(
                self.engine.complete(messages, temperature),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as e:
            raise CompletionError(
                f"Completion timed out after {self.timeout}s"
            ) from e
        except RAGError:
            raise
        except Exception as e:
            raise CompletionError(f"LLM generation failed: {e}") from e

        self.history.append_exchange(query, reply)
        self.last_sources = results

        latency = time.time() - start_time

        logger.info(
            "Response completed",
            extra={
                "query_length": len(query),
                "passages": len(results),
                "messages_sent": len(messages),
                "history_turns": len(self.history),
                "latency_seconds": round(latency, 3),
            },
        )

        self._emit(
            ev.RESPONSE_COMPLETED,
            "AI Ready!",
            query_length=len(query),
            latency_seconds=round(latency, 3),
        )

        return reply

    def _emit(self, kind: str, message: str, **data):
        if self.events is not None:
            self.events.emit(kind, message, **data)
