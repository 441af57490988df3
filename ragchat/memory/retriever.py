# ragchat/memory/retriever.py
import asyncio
import logging
from typing import List

import numpy as np

from ragchat.config import COLLABORATOR_TIMEOUT_SECONDS, TOP_K
from ragchat.errors import DimensionMismatchError, EmbeddingError, RAGError
from ragchat.interfaces import EmbeddingService
from ragchat.models import RetrievalResult

logger = logging.getLogger(__name__)


def cosine_similarity(a, b) -> float:
    """
    Cosine of the angle between two vectors.

    Returns 0.0 when either vector has zero norm.
    """
    a = np.asarray(a, dtype="float64")
    b = np.asarray(b, dtype="float64")

    if a.shape != b.shape:
        raise DimensionMismatchError(
            f"Cannot compare vectors of shape {a.shape} and {b.shape}"
        )

    denom = np.linalg.norm(a) * np.linalg.norm(b)
    if denom == 0:
        return 0.0

    return float(np.dot(a, b) / denom)


def cosine_scores(matrix: np.ndarray, query: np.ndarray) -> np.ndarray:
    """Cosine similarity of query against every row of matrix."""
    matrix = np.asarray(matrix, dtype="float64")
    query = np.asarray(query, dtype="float64")

    if matrix.shape[1] != query.shape[0]:
        raise DimensionMismatchError(
            f"Query has {query.shape[0]} dimensions, store has {matrix.shape[1]}"
        )

    denom = np.linalg.norm(matrix, axis=1) * np.linalg.norm(query)
    dots = matrix @ query

    scores = np.zeros(len(matrix), dtype="float64")
    nonzero = denom > 0
    scores[nonzero] = dots[nonzero] / denom[nonzero]

    return scores


class Retriever:
    """
    Ranks stored chunks against a query by cosine similarity.

    Reads the store through a snapshot and never mutates it.
    """

    def __init__(self, embedder: EmbeddingService, store, timeout: float = COLLABORATOR_TIMEOUT_SECONDS):
        self.embedder = embedder
        self.store = store
        self.timeout = timeout

    async def search(self, query: str, top_k: int = TOP_K) -> List[RetrievalResult]:
        """
        Top-k passages for query, best first.

        Args:
            query: User's question
            top_k: Maximum number of results

        Returns:
            min(top_k, len(store)) results; equal scores keep insertion order
        """
        if top_k <= 0:
            raise ValueError(f"top_k must be positive, got {top_k}")

        records, matrix = self.store.snapshot()

        if not records:
            logger.info("Retrieval skipped: empty store")
            return []

        try:
            query_embedding = await asyncio.wait_for(
                self.embedder.embed(query), timeout=self.timeout
            )
        except asyncio.TimeoutError as e:
            raise EmbeddingError(
                f"Query embedding timed out after {self.timeout}s"
            ) from e
        except RAGError:
            raise
        except Exception as e:
            raise EmbeddingError(f"Query embedding failed: {e}") from e

        scores = cosine_scores(matrix, query_embedding)

        # stable sort on negated scores keeps ties in insertion order
        order = np.argsort(-scores, kind="stable")[:top_k]

        results = [
            RetrievalResult(
                text=records[i].text,
                source=records[i].source,
                score=float(scores[i]),
            )
            for i in order
        ]

        logger.info(
            "Retrieval completed",
            extra={
                "candidates": len(records),
                "top_k": top_k,
                "returned": len(results),
                "top_score": results[0].score,
            },
        )

        return results
