# ragchat/memory/embedder.py

"""
Embedding collaborators.

Architecture contract:
chunker → embedder → vector_store

Guarantees:
• Deterministic embeddings for a given model
• Always returns a 1-D numpy float32 array of self.dimension
• Always L2-normalized (cosine-ready)
• Library failures surface as EmbeddingError
• Ingestion and retrieval share one instance, so vectors are comparable
"""

import asyncio
import logging

import numpy as np
from openai import AsyncOpenAI, OpenAIError
from transformers import pipeline

from ragchat.config import (
    EMBEDDING_MODEL,
    EMBEDDING_PROVIDER,
    LOCAL_EMBEDDING_MODEL,
)
from ragchat.errors import EmbeddingError

logger = logging.getLogger(__name__)


_OPENAI_DIMENSIONS = {
    "text-embedding-3-small": 1536,
    "text-embedding-3-large": 3072,
}


def normalize(vector: np.ndarray) -> np.ndarray:

    norm = np.linalg.norm(vector)

    return vector / np.clip(norm, 1e-10, None)


class OpenAIEmbedder:
    """
    Embedding generator backed by the OpenAI embeddings API.

    Responsibilities:
    • Call OpenAI embedding API
    • Generate normalized embeddings
    • Guarantee store-compatible output
    """

    # ============================================================
    # INITIALIZATION
    # ============================================================

    def __init__(self, model: str = EMBEDDING_MODEL, client: AsyncOpenAI = None):

        if model not in _OPENAI_DIMENSIONS:
            raise ValueError(f"Unsupported embedding model: {model}")

        self.model = model
        self.dimension = _OPENAI_DIMENSIONS[model]

        try:
            self._client = client or AsyncOpenAI()

        except OpenAIError as e:

            logger.critical(
                "Embedding client initialization failed",
                extra={"model": model, "error": str(e)},
            )

            raise EmbeddingError(
                f"Failed to initialize embedding client: {e}"
            ) from e

        logger.info(
            "Embedding model initialized",
            extra={
                "model": model,
                "dimension": self.dimension,
                "provider": "openai",
            },
        )

    # ============================================================
    # PUBLIC API
    # ============================================================

    async def embed(self, text: str) -> np.ndarray:

        if not text:
            raise EmbeddingError("Cannot embed empty text")

        try:

            response = await self._client.embeddings.create(
                model=self.model,
                input=[text],
            )

        except OpenAIError as e:

            logger.error(
                "Embedding generation failed",
                extra={"model": self.model, "error": str(e)},
            )

            raise EmbeddingError(f"Embedding generation failed: {e}") from e

        vector = np.array(response.data[0].embedding, dtype="float32")

        return normalize(vector)

    def health_check(self) -> dict:

        return {
            "model": self.model,
            "dimension": self.dimension,
            "provider": "openai",
            "status": "healthy",
        }


class LocalEmbedder:
    """
    On-device sentence embeddings through a transformers
    feature-extraction pipeline, mean-pooled over tokens.
    """

    def __init__(self, model: str = LOCAL_EMBEDDING_MODEL):

        logger.info(
            "Initializing embedding model",
            extra={"model": model, "provider": "local"},
        )

        try:

            self._pipeline = pipeline(
                "feature-extraction",
                model=model,
                device=-1,
            )

        except Exception as e:

            logger.critical(
                "Embedding model initialization failed",
                extra={"model": model, "error": str(e)},
            )

            raise EmbeddingError(
                f"Failed to initialize embedding model: {e}"
            ) from e

        self.model = model
        self.dimension = self._pipeline.model.config.hidden_size

        logger.info(
            "Embedding model initialized",
            extra={
                "model": model,
                "dimension": self.dimension,
                "provider": "local",
            },
        )

    def _embed_sync(self, text: str) -> np.ndarray:

        # shape: (1, tokens, hidden)
        token_vectors = np.asarray(self._pipeline(text), dtype="float32")[0]

        return normalize(token_vectors.mean(axis=0))

    async def embed(self, text: str) -> np.ndarray:

        if not text:
            raise EmbeddingError("Cannot embed empty text")

        loop = asyncio.get_running_loop()

        try:
            return await loop.run_in_executor(None, self._embed_sync, text)

        except Exception as e:

            logger.error(
                "Embedding generation failed",
                extra={"model": self.model, "error": str(e)},
            )

            raise EmbeddingError(f"Embedding generation failed: {e}") from e

    def health_check(self) -> dict:

        return {
            "model": self.model,
            "dimension": self.dimension,
            "provider": "local",
            "status": "healthy",
        }


def build_embedder(provider: str = EMBEDDING_PROVIDER):

    if provider == "openai":
        return OpenAIEmbedder()

    if provider == "local":
        return LocalEmbedder()

    raise ValueError(f"Unknown embedding provider: {provider}")
