# ragchat/interfaces.py
"""
Collaborator contracts the pipeline depends on.

Concrete adapters live in ragchat/memory/loader.py,
ragchat/memory/embedder.py and ragchat/llm/. Tests substitute
in-memory fakes that satisfy the same protocols.
"""

from typing import Callable, Optional, Protocol, Sequence

import numpy as np

from ragchat.models import ChatMessage, Document


# progress in [0, 1] plus a human-readable status line
ProgressCallback = Callable[[float, str], None]


class TextExtractor(Protocol):

    async def extract(self, document: Document) -> str:
        """Plain text of the document; ExtractionError when unsupported."""
        ...


class EmbeddingService(Protocol):

    dimension: int

    async def embed(self, text: str) -> np.ndarray:
        """Fixed-length vector for text; EmbeddingError on failure."""
        ...


class CompletionEngine(Protocol):

    @property
    def is_ready(self) -> bool:
        ...

    async def load(self, progress: Optional[ProgressCallback] = None) -> None:
        ...

    async def complete(
        self,
        messages: Sequence[ChatMessage],
        temperature: float,
    ) -> str:
        """Assistant reply text; CompletionError on failure."""
        ...
