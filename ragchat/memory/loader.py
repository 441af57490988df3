# ragchat/memory/loader.py

"""
Text extraction for uploaded documents.

Architecture contract preserved:
loader → chunker → embedder → vector_store

Supports:
- PDF files (pypdf, page texts joined by newline)
- Plain text and markdown files (UTF-8)

Every failure surfaces as ExtractionError so one bad upload never
aborts the rest of an ingestion batch.
"""

import asyncio
import io
import logging
import os

from pypdf import PdfReader

from ragchat.config import (
    ALLOWED_FILE_EXTENSIONS,
    ALLOWED_MEDIA_TYPES,
    MAX_FILE_SIZE_MB,
)
from ragchat.errors import ExtractionError
from ragchat.models import Document

logger = logging.getLogger(__name__)


_PDF_MEDIA_TYPE = "application/pdf"


# ============================================================
# SAFETY: TYPE AND SIZE VALIDATION
# ============================================================

def detect_kind(document: Document) -> str:
    """Return "pdf" or "text"; reject anything else."""

    extension = os.path.splitext(document.name)[1].lower()

    if extension == ".pdf" or document.media_type == _PDF_MEDIA_TYPE:
        return "pdf"

    if extension in ALLOWED_FILE_EXTENSIONS or document.media_type in ALLOWED_MEDIA_TYPES:
        return "text"

    raise ExtractionError(
        f"Unsupported document type: {document.name} "
        f"({document.media_type or 'unknown media type'})",
        source=document.name,
    )


def validate_file_size(document: Document):

    if not document.content:
        raise ExtractionError("Empty document", source=document.name)

    size_mb = len(document.content) / (1024 * 1024)

    if size_mb > MAX_FILE_SIZE_MB:
        raise ExtractionError(
            f"File too large: {size_mb:.2f}MB",
            source=document.name,
        )


# ============================================================
# PDF LOADER
# ============================================================

def load_pdf_text(content: bytes) -> str:

    reader = PdfReader(io.BytesIO(content))

    parts = []

    for page in reader.pages:

        text = page.extract_text()

        if text:
            parts.append(text)

    return "\n".join(parts)


# ============================================================
# PLAIN TEXT / MARKDOWN LOADER
# ============================================================

def load_plain_text(content: bytes) -> str:
    return content.decode("utf-8")


# ============================================================
# MAIN ENTRY POINT (ARCHITECTURE CONTRACT)
# ============================================================

def load_text(document: Document) -> str:

    kind = detect_kind(document)

    validate_file_size(document)

    try:

        if kind == "pdf":
            text = load_pdf_text(document.content)
        else:
            text = load_plain_text(document.content)

    # pypdf raises a wide range of types on malformed input
    except Exception as e:

        logger.warning(
            "Document extraction failed",
            extra={
                "source": document.name,
                "kind": kind,
                "error": str(e),
            },
        )

        raise ExtractionError(
            f"Could not read {document.name}: {e}",
            source=document.name,
        ) from e

    if not text or not text.strip():
        raise ExtractionError("No text extracted", source=document.name)

    return text


class DocumentLoader:
    """
    Async extraction collaborator.

    pypdf is blocking, so parsing runs in the loop's default executor.
    """

    async def extract(self, document: Document) -> str:

        loop = asyncio.get_running_loop()

        text = await loop.run_in_executor(None, load_text, document)

        logger.info(
            "Document text extracted",
            extra={
                "source": document.name,
                "characters": len(text),
            },
        )

        return text
