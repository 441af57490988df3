# ragchat/models.py
from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ragchat.config import (
    CHUNK_OVERLAP,
    CHUNK_SIZE,
    COLLABORATOR_TIMEOUT_SECONDS,
    EMBEDDING_CONCURRENCY,
    HISTORY_WINDOW,
    LLM_TEMPERATURE,
    TOP_K,
)
from ragchat.prompts.system_prompts import DEFAULT_SYSTEM_DIRECTIVE


class Document(BaseModel):
    """An uploaded file handed to the text extractor."""
    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1)
    content: bytes
    media_type: Optional[str] = None


class ChunkRecord(BaseModel):
    """One embedded window of a document, as kept by the vector store."""
    model_config = ConfigDict(frozen=True)

    text: str
    embedding: Tuple[float, ...]
    source: str

    @property
    def dimension(self) -> int:
        return len(self.embedding)


class RetrievalResult(BaseModel):
    """A ranked passage for one query. Never stored."""
    text: str
    source: str
    score: float


class Turn(BaseModel):
    """One side of a chat exchange kept in session history."""
    model_config = ConfigDict(frozen=True)

    role: Literal["user", "assistant"]
    content: str


class ChatMessage(BaseModel):
    """Message handed to a completion engine."""
    model_config = ConfigDict(frozen=True)

    role: Literal["system", "user", "assistant"]
    content: str


class DocumentReport(BaseModel):
    """Outcome of ingesting a single document."""
    source: str
    chunks_added: int = 0
    succeeded: bool
    error_type: Optional[str] = None
    error: Optional[str] = None


class IngestionReport(BaseModel):
    """Per-document outcomes for one ingestion batch."""
    documents: List[DocumentReport]

    @property
    def total_chunks(self) -> int:
        return sum(d.chunks_added for d in self.documents)

    @property
    def succeeded(self) -> List[DocumentReport]:
        return [d for d in self.documents if d.succeeded]

    @property
    def failed(self) -> List[DocumentReport]:
        return [d for d in self.documents if not d.succeeded]

    def summary(self) -> Dict[str, Any]:
        return {
            "documents": [d.model_dump() for d in self.documents],
            "total_chunks": self.total_chunks,
            "succeeded": len(self.succeeded),
            "failed": len(self.failed),
        }


class ProgressEvent(BaseModel):
    """Status update streamed to the presentation layer."""
    kind: str
    message: str
    progress: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    data: Dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class SessionSettings(BaseModel):
    """Caller-suppliable configuration for one chat session."""
    chunk_size: int = Field(default=CHUNK_SIZE, gt=0)
    chunk_overlap: int = Field(default=CHUNK_OVERLAP, ge=0)
    top_k: int = Field(default=TOP_K, gt=0)
    temperature: float = Field(default=LLM_TEMPERATURE, ge=0.0, le=2.0)
    system_directive: str = DEFAULT_SYSTEM_DIRECTIVE
    embedding_concurrency: int = Field(default=EMBEDDING_CONCURRENCY, gt=0)
    timeout_seconds: float = Field(default=COLLABORATOR_TIMEOUT_SECONDS, gt=0)
    history_window: Optional[int] = HISTORY_WINDOW

    @field_validator("chunk_overlap")
    @classmethod
    def validate_overlap(cls, v, info):
        """Overlap must leave the window room to advance."""
        size = info.data.get("chunk_size")
        if size is not None and v >= size:
            raise ValueError(
                f"chunk_overlap ({v}) must be smaller than chunk_size ({size})"
            )
        return v

    @field_validator("history_window")
    @classmethod
    def validate_history_window(cls, v):
        if v is not None and v <= 0:
            raise ValueError("history_window must be positive or None")
        return v


# ========== HTTP PAYLOADS ==========

class ChatRequest(BaseModel):
    """Request to ask a question against the indexed documents."""
    query: str = Field(..., max_length=4000)
    temperature: Optional[float] = Field(default=None, ge=0.0, le=2.0)
    system_directive: Optional[str] = None


class ChatResponse(BaseModel):
    """Assistant reply with the passages that were injected."""
    reply: str
    sources: List[RetrievalResult]
    history_length: int


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    model_ready: bool
    total_chunks: int
    total_documents: int
    history_length: int
    embedding: Optional[Dict[str, Any]] = None
