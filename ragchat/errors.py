# ragchat/errors.py
"""
Typed failures raised by the ragchat pipeline.

Adapters catch library-specific exceptions at their boundary and re-raise
one of these, so callers only ever handle RAGError subclasses.
"""


class RAGError(Exception):
    """Base class for every classified pipeline failure."""


class ExtractionError(RAGError):
    """Document unreadable, unsupported or empty."""

    def __init__(self, message: str, source: str = None):
        super().__init__(message)
        self.source = source


class EmbeddingError(RAGError, RuntimeError):
    """
    Embedding collaborator failed or timed out.

    chunks_added is the number of records already stored for the
    document being ingested when the failure happened.
    """

    def __init__(self, message: str, source: str = None, chunks_added: int = 0):
        super().__init__(message)
        self.source = source
        self.chunks_added = chunks_added


class InvalidChunkConfiguration(RAGError, ValueError):
    """Chunk size/overlap combination that cannot make progress."""


class DimensionMismatchError(RAGError, ValueError):
    """Vector length differs from the store's dimensionality."""


class CompletionError(RAGError, RuntimeError):
    """Completion engine failed, timed out or returned nothing."""


class ModelNotReady(CompletionError):
    """Completion engine used before load() finished."""


class EmptyQuery(RAGError, ValueError):
    """Blank user query."""
