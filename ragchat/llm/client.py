# ragchat/llm/client.py
import logging
from typing import Sequence

from openai import AsyncOpenAI, OpenAIError

from ragchat.config import LLM_MAX_TOKENS, LLM_MODEL
from ragchat.errors import CompletionError, ModelNotReady
from ragchat.models import ChatMessage

logger = logging.getLogger(__name__)


class OpenAIChatEngine:
    """
    Completion engine backed by the OpenAI chat completions API.

    load() verifies the key and model before the engine reports ready,
    so a session never accepts questions it cannot answer.
    """

    name = "openai"

    def __init__(self, model: str = LLM_MODEL, max_tokens: int = LLM_MAX_TOKENS,
                 client: AsyncOpenAI = None):
        """
        Args:
            model: OpenAI chat model (default: gpt-4o-mini)
            max_tokens: Reply length limit
            client: Preconfigured client; created from OPENAI_API_KEY otherwise
        """
        self.model = model
        self.max_tokens = max_tokens
        self._client = client
        self._ready = False

    @property
    def is_ready(self) -> bool:
        return self._ready

    async def load(self, progress=None) -> None:
        if progress:
            progress(0.0, f"Connecting to {self.model}...")

        try:
            if self._client is None:
                self._client = AsyncOpenAI()

            await self._client.models.retrieve(self.model)

        except OpenAIError as e:
            logger.error(
                "OpenAI initialization failed",
                extra={"model": self.model, "error": str(e)},
            )
            raise CompletionError(f"OpenAI initialization failed: {e}") from e

        self._ready = True

        if progress:
            progress(1.0, f"{self.model} ready")

        logger.info("OpenAI initialized successfully", extra={"model": self.model})

    async def complete(self, messages: Sequence[ChatMessage], temperature: float) -> str:
        """
        Generate the assistant reply for a message sequence.

        Raises:
            ModelNotReady: load() has not completed
            CompletionError: API call failed or returned no content
        """
        if not self._ready:
            raise ModelNotReady(f"{self.model} is not loaded")

        try:
            response = await self._client.chat.completions.create(
                model=self.model,
                messages=[m.model_dump() for m in messages],
                temperature=temperature,
                max_tokens=self.max_tokens,
            )
        except OpenAIError as e:
            raise CompletionError(f"OpenAI API call failed: {e}") from e

        text = response.choices[0].message.content

        if not text:
            raise CompletionError("OpenAI returned an empty response")

        return text.strip()
