# ragchat/llm/multi_model_client.py

import logging
import time
from typing import Dict, List, Sequence

from ragchat.config import LLM_PROVIDER
from ragchat.errors import CompletionError, ModelNotReady
from ragchat.llm.client import OpenAIChatEngine
from ragchat.llm.local_client import LocalChatEngine
from ragchat.models import ChatMessage

logger = logging.getLogger(__name__)


class FallbackChatEngine:
    """
    Multi-provider completion engine.

    Fallback order is the order of `engines` (default: OpenAI, then the
    local model).

    Guarantees:
    • Ready as soon as one engine loaded
    • Fully observable
    • Provider latency tracking
    • CompletionError only when every ready engine failed
    """

    name = "fallback"

    def __init__(self, engines: List = None):

        self.engines = engines if engines is not None else [
            OpenAIChatEngine(),
            LocalChatEngine(),
        ]

    # ============================================================
    # INITIALIZATION
    # ============================================================

    @property
    def is_ready(self) -> bool:
        return any(engine.is_ready for engine in self.engines)

    async def load(self, progress=None) -> None:

        for engine in self.engines:

            try:

                await engine.load(progress)

            except CompletionError as e:

                logger.warning(
                    "Engine unavailable, trying next",
                    extra={"provider": engine.name, "error": str(e)},
                )

        logger.info(
            "LLM initialization complete",
            extra=self.get_usage_stats(),
        )

        if not self.is_ready:
            raise CompletionError("No LLM backend available")

    # ============================================================
    # PUBLIC API
    # ============================================================

    async def complete(self, messages: Sequence[ChatMessage], temperature: float) -> str:

        if not self.is_ready:
            raise ModelNotReady("No LLM backend loaded")

        logger.info(
            "LLM request started",
            extra={
                **self.get_usage_stats(),
                "messages": len(messages),
            },
        )

        last_error = None

        for engine in self.engines:

            if not engine.is_ready:
                continue

            try:

                return await self._timed_call(engine, messages, temperature)

            except CompletionError as e:

                last_error = e

                logger.warning(
                    "Provider failed",
                    extra={"provider": engine.name, "error": str(e)},
                )

        raise CompletionError(f"All LLM backends failed: {last_error}") from last_error

    # ============================================================
    # LATENCY OBSERVABILITY
    # ============================================================

    async def _timed_call(self, engine, messages, temperature: float) -> str:

        start = time.time()

        result = await engine.complete(messages, temperature)

        latency = time.time() - start

        logger.info(
            "LLM provider success",
            extra={
                "provider": engine.name,
                "latency_seconds": round(latency, 3),
            },
        )

        return result

    # ============================================================
    # STATUS
    # ============================================================

    def get_usage_stats(self) -> Dict:

        return {
            f"{engine.name}_available": engine.is_ready
            for engine in self.engines
        }


def build_engine(provider: str = LLM_PROVIDER):

    if provider == "openai":
        return OpenAIChatEngine()

    if provider == "local":
        return LocalChatEngine()

    if provider == "fallback":
        return FallbackChatEngine()

    raise ValueError(f"Unknown LLM provider: {provider}")
