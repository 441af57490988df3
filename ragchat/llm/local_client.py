# ragchat/llm/local_client.py

import asyncio
import logging
from typing import Sequence

from transformers import pipeline

from ragchat.config import LLM_MAX_TOKENS, LOCAL_LLM_MODEL
from ragchat.errors import CompletionError, ModelNotReady
from ragchat.models import ChatMessage

logger = logging.getLogger(__name__)


class LocalChatEngine:
    """
    On-device chat model through a transformers text-generation pipeline.

    Weights are downloaded and loaded on load(), in the default executor,
    so the event loop keeps serving progress events meanwhile.
    """

    name = "local"

    def __init__(self, model: str = LOCAL_LLM_MODEL, max_new_tokens: int = LLM_MAX_TOKENS):

        self.model = model
        self.max_new_tokens = max_new_tokens
        self._pipeline = None

    @property
    def is_ready(self) -> bool:
        return self._pipeline is not None

    def _load_sync(self):

        return pipeline(
            "text-generation",
            model=self.model,
            device=-1,
        )

    async def load(self, progress=None) -> None:

        if progress:
            progress(0.0, f"Loading {self.model} (this may take a minute)...")

        loop = asyncio.get_running_loop()

        try:
            self._pipeline = await loop.run_in_executor(None, self._load_sync)

        except Exception as e:

            logger.error(
                "Local model initialization failed",
                extra={"model": self.model, "error": str(e)},
            )

            raise CompletionError(f"Local model initialization failed: {e}") from e

        if progress:
            progress(1.0, f"{self.model} ready")

        logger.info("Local model initialized successfully", extra={"model": self.model})

    def _generate_sync(self, messages, temperature: float) -> str:

        kwargs = {"max_new_tokens": self.max_new_tokens}

        if temperature > 0:
            kwargs.update(do_sample=True, temperature=temperature)
        else:
            kwargs.update(do_sample=False)

        result = self._pipeline(messages, **kwargs)

        # chat input returns the whole conversation, reply last
        return result[0]["generated_text"][-1]["content"]

    async def complete(self, messages: Sequence[ChatMessage], temperature: float) -> str:

        if not self.is_ready:
            raise ModelNotReady(f"{self.model} is not loaded")

        loop = asyncio.get_running_loop()

        try:
            text = await loop.run_in_executor(
                None,
                self._generate_sync,
                [m.model_dump() for m in messages],
                temperature,
            )

        except Exception as e:
            raise CompletionError(f"Local generation failed: {e}") from e

        if not text or not text.strip():
            raise CompletionError("Local model returned an empty response")

        return text.strip()
