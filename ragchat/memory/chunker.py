# ragchat/memory/chunker.py

import logging
import math
from typing import List

from ragchat.config import (
    CHUNK_SIZE,
    CHUNK_OVERLAP,
)
from ragchat.errors import InvalidChunkConfiguration

logger = logging.getLogger(__name__)


def validate_chunk_config(size: int, overlap: int) -> None:
    """Reject any size/overlap pair whose window step is not positive."""

    if size <= 0:
        raise InvalidChunkConfiguration(f"Invalid chunk size: {size}")

    if overlap < 0:
        raise InvalidChunkConfiguration(f"Invalid chunk overlap: {overlap}")

    if overlap >= size:
        raise InvalidChunkConfiguration(
            f"Overlap must be smaller than chunk size "
            f"(overlap={overlap}, size={size})"
        )


def expected_chunk_count(length: int, size: int, overlap: int) -> int:
    """Number of windows chunk_text produces for text of this length."""

    if length <= 0:
        return 0

    return max(1, math.ceil((length - overlap) / (size - overlap)))


def chunk_text(
    text: str,
    size: int = CHUNK_SIZE,
    overlap: int = CHUNK_OVERLAP,
) -> List[str]:
    """
    Sliding character window over the extracted text.

    Architecture contract:
    loader → chunker → embedder → vector_store

    Guarantees:
    • configuration rejected before any work
    • deterministic chunk generation
    • every character offset covered by at least one window
    • last window may be shorter than size, never padded
    • no trailing window fully contained in the previous one
    """

    validate_chunk_config(size, overlap)

    if not text:
        logger.warning("Chunking skipped: empty text")
        return []

    total_chars = len(text)

    step = size - overlap

    chunks = []

    start = 0

    while True:

        end = start + size

        chunks.append(text[start:end])

        # the window that reaches the end is the last one
        if end >= total_chars:
            break

        start += step

    logger.info(
        "Chunking completed",
        extra={
            "total_chars": total_chars,
            "chunk_size": size,
            "overlap": overlap,
            "chunks_created": len(chunks),
        },
    )

    return chunks
