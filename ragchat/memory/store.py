import logging
from typing import Dict, List, Optional, Tuple

import numpy as np

from ragchat.errors import DimensionMismatchError
from ragchat.models import ChunkRecord


logger = logging.getLogger(__name__)


class VectorStore:
    """
    Append-only, session-scoped store of embedded chunks.

    Records are kept in insertion order next to a parallel list of
    read-only float32 rows, so a search can stack them into one matrix
    without converting tuples on every query.
    """

    def __init__(self, dim: Optional[int] = None):

        if dim is not None and dim <= 0:
            raise ValueError("Embedding dimension must be positive")

        self._dim = dim
        self._records: List[ChunkRecord] = []
        self._vectors: List[np.ndarray] = []
        self._source_chunk_count: Dict[str, int] = {}

        logger.info(
            "VectorStore initialized",
            extra={"dimension": dim},
        )

    # ============================================================
    # WRITE
    # ============================================================

    def append(self, record: ChunkRecord) -> None:

        dim = record.dimension

        if dim == 0:
            raise DimensionMismatchError("Cannot store an empty embedding")

        if self._dim is None:

            self._dim = dim

            logger.info(
                "VectorStore dimension fixed by first record",
                extra={"dimension": dim},
            )

        elif dim != self._dim:

            raise DimensionMismatchError(
                f"Embedding has {dim} dimensions, store expects {self._dim}"
            )

        vector = np.asarray(record.embedding, dtype="float32")
        vector.setflags(write=False)

        # list.append is atomic, so a reader never sees half a record
        self._vectors.append(vector)
        self._records.append(record)

        self._source_chunk_count[record.source] = (
            self._source_chunk_count.get(record.source, 0) + 1
        )

    # ============================================================
    # READ
    # ============================================================

    def all(self) -> Tuple[ChunkRecord, ...]:
        return tuple(self._records)

    def snapshot(self) -> Tuple[Tuple[ChunkRecord, ...], np.ndarray]:
        """
        Records and their vectors as of this call.

        Appends made after the call are not visible in the result.
        """

        count = len(self._records)

        records = tuple(self._records[:count])

        if count == 0:
            matrix = np.empty((0, self._dim or 0), dtype="float32")
        else:
            matrix = np.vstack(self._vectors[:count])

        matrix.setflags(write=False)

        return records, matrix

    @property
    def dimension(self) -> Optional[int]:
        return self._dim

    def __len__(self) -> int:
        return len(self._records)

    def get_stats(self):

        return {
            "total_chunks": len(self._records),
            "dimension": self._dim,
            "documents": dict(self._source_chunk_count),
        }
