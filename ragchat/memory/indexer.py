# ragchat/memory/indexer.py

"""
Document ingestion: extraction → chunking → embedding → storage.

Architecture contract:
loader → chunker → embedder → vector_store

Guarantees:
• chunk configuration validated before any collaborator call
• one document at a time (ingestion lock)
• records appended in chunk order, each exactly once
• a failing document never aborts the rest of a batch
• partial success: chunks stored before an embedding failure are kept
"""

import asyncio
import logging
import time
from typing import Iterable, List

import numpy as np

from ragchat.config import (
    CHUNK_OVERLAP,
    CHUNK_SIZE,
    COLLABORATOR_TIMEOUT_SECONDS,
    EMBEDDING_CONCURRENCY,
)
from ragchat.errors import EmbeddingError, ExtractionError, RAGError
from ragchat.interfaces import EmbeddingService, TextExtractor
from ragchat.memory.chunker import chunk_text, validate_chunk_config
from ragchat.models import ChunkRecord, Document, DocumentReport, IngestionReport
from ragchat.observability import events as ev

logger = logging.getLogger(__name__)


class Indexer:

    def __init__(
        self,
        extractor: TextExtractor,
        embedder: EmbeddingService,
        store,
        events=None,
        chunk_size: int = CHUNK_SIZE,
        chunk_overlap: int = CHUNK_OVERLAP,
        embedding_concurrency: int = EMBEDDING_CONCURRENCY,
        timeout: float = COLLABORATOR_TIMEOUT_SECONDS,
    ):

        validate_chunk_config(chunk_size, chunk_overlap)

        if embedding_concurrency <= 0:
            raise ValueError(
                f"embedding_concurrency must be positive, got {embedding_concurrency}"
            )

        self.extractor = extractor
        self.embedder = embedder
        self.store = store
        self.events = events
        self.chunk_size = chunk_size
        self.chunk_overlap = chunk_overlap
        self.embedding_concurrency = embedding_concurrency
        self.timeout = timeout

        self._ingestion_lock = asyncio.Lock()

    # ============================================================
    # SINGLE DOCUMENT
    # ============================================================

    async def ingest(self, document: Document) -> int:
        """
        Index one document and return the number of records added.

        Raises ExtractionError when no text can be obtained and
        EmbeddingError (with chunks_added set) when embedding fails.
        """

        async with self._ingestion_lock:
            return await self._ingest_locked(document)

    async def _ingest_locked(self, document: Document) -> int:

        start_time = time.time()

        text = await self._extract(document)

        chunks = chunk_text(text, self.chunk_size, self.chunk_overlap)

        added = 0

        for window_start in range(0, len(chunks), self.embedding_concurrency):

            window = chunks[window_start:window_start + self.embedding_concurrency]

            outcomes = await asyncio.gather(
                *(self._embed(chunk) for chunk in window),
                return_exceptions=True,
            )

            for chunk, outcome in zip(window, outcomes):

                if isinstance(outcome, BaseException):

                    logger.error(
                        "Embedding failed, keeping chunks stored so far",
                        extra={
                            "source": document.name,
                            "chunks_added": added,
                            "chunks_total": len(chunks),
                            "error": str(outcome),
                        },
                    )

                    raise EmbeddingError(
                        str(outcome),
                        source=document.name,
                        chunks_added=added,
                    ) from outcome

                try:
                    self.store.append(
                        ChunkRecord(
                            text=chunk,
                            embedding=tuple(float(x) for x in outcome),
                            source=document.name,
                        )
                    )

                except RAGError as e:
                    # stored records stay; report how many made it
                    raise EmbeddingError(
                        str(e),
                        source=document.name,
                        chunks_added=added,
                    ) from e

                added += 1

        logger.info(
            "Document ingestion complete",
            extra={
                "source": document.name,
                "chunks": added,
                "latency_seconds": round(time.time() - start_time, 3),
            },
        )

        return added

    async def _extract(self, document: Document) -> str:

        try:
            return await asyncio.wait_for(
                self.extractor.extract(document), timeout=self.timeout
            )

        except asyncio.TimeoutError as e:
            raise ExtractionError(
                f"Extraction timed out after {self.timeout}s",
                source=document.name,
            ) from e

        except RAGError:
            raise

        except Exception as e:
            raise ExtractionError(
                f"Could not extract {document.name}: {e}",
                source=document.name,
            ) from e

    async def _embed(self, chunk: str) -> np.ndarray:

        try:
            result = await asyncio.wait_for(
                self.embedder.embed(chunk), timeout=self.timeout
            )

        except asyncio.TimeoutError as e:
            raise EmbeddingError(
                f"Embedding timed out after {self.timeout}s"
            ) from e

        except RAGError:
            raise

        except Exception as e:
            raise EmbeddingError(f"Embedding generation failed: {e}") from e

        try:
            vector = np.asarray(result, dtype="float32")

        except (TypeError, ValueError) as e:
            raise EmbeddingError(f"Embedder returned a non-numeric vector: {e}") from e

        if vector.ndim != 1 or vector.size == 0:
            raise EmbeddingError(
                f"Embedder returned shape {vector.shape}, expected a non-empty 1-D vector"
            )

        return vector

    # ============================================================
    # BATCH
    # ============================================================

    async def ingest_many(self, documents: Iterable[Document]) -> IngestionReport:
        """Index documents one by one, reporting each outcome."""

        documents = list(documents)
        reports: List[DocumentReport] = []

        self._emit(
            ev.INGESTION_STARTED,
            f"Processing {len(documents)} document(s)...",
            progress=0.0,
            documents=len(documents),
        )

        for position, document in enumerate(documents, 1):

            report = await self._ingest_reported(document)
            reports.append(report)

            if report.succeeded:
                self._emit(
                    ev.DOCUMENT_INDEXED,
                    f"Indexed {document.name}: {report.chunks_added} chunks",
                    progress=position / len(documents),
                    source=document.name,
                    chunks=report.chunks_added,
                )
            else:
                self._emit(
                    ev.DOCUMENT_FAILED,
                    f"Could not index {document.name}: {report.error}",
                    progress=position / len(documents),
                    source=document.name,
                    error_type=report.error_type,
                    chunks=report.chunks_added,
                )

        report = IngestionReport(documents=reports)

        self._emit(
            ev.INGESTION_COMPLETED,
            f"Success! {len(self.store)} chunks indexed.",
            progress=1.0,
            chunks_added=report.total_chunks,
            total_chunks=len(self.store),
            failed=len(report.failed),
        )

        return report

    async def _ingest_reported(self, document: Document) -> DocumentReport:

        try:

            added = await self.ingest(document)

            return DocumentReport(
                source=document.name,
                chunks_added=added,
                succeeded=True,
            )

        except RAGError as e:

            logger.warning(
                "Document skipped",
                extra={
                    "source": document.name,
                    "error_type": type(e).__name__,
                    "error": str(e),
                },
            )

            return DocumentReport(
                source=document.name,
                chunks_added=getattr(e, "chunks_added", 0),
                succeeded=False,
                error_type=type(e).__name__,
                error=str(e),
            )

        except Exception as e:

            # unclassified failure, still reported per document
            logger.exception(
                "Document failed with an unexpected error",
                extra={
                    "source": document.name,
                    "error_type": type(e).__name__,
                },
            )

            return DocumentReport(
                source=document.name,
                chunks_added=0,
                succeeded=False,
                error_type=type(e).__name__,
                error=str(e),
            )

    def _emit(self, kind: str, message: str, progress=None, **data):

        if self.events is not None:
            self.events.emit(kind, message, progress=progress, **data)
