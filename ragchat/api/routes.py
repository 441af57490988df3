from fastapi import APIRouter, Depends, File, HTTPException, Request, UploadFile
import logging

from typing import List

from ragchat.errors import (
    EmptyQuery,
    ModelNotReady,
    RAGError,
)
from ragchat.models import (
    ChatRequest,
    ChatResponse,
    Document,
    HealthResponse,
)
from ragchat.session import RAGSession


# ============================================================
# LOGGER
# ============================================================

logger = logging.getLogger(__name__)

router = APIRouter()


# ============================================================
# DEPENDENCIES
# ============================================================

def get_session(request: Request) -> RAGSession:
    return request.app.state.session


# ============================================================
# HEALTH
# ============================================================

@router.get("/health", response_model=HealthResponse)
def health_check(session: RAGSession = Depends(get_session)):

    stats = session.store.get_stats()

    return HealthResponse(
        status="healthy",
        model_ready=session.is_ready,
        total_chunks=stats["total_chunks"],
        total_documents=len(stats["documents"]),
        history_length=len(session.history),
        embedding=session.embedder_health(),
    )


# ============================================================
# UPLOAD DOCUMENTS
# ============================================================

@router.post("/documents")
async def upload_documents(
    files: List[UploadFile] = File(None),
    session: RAGSession = Depends(get_session),
):

    if not files:

        raise HTTPException(
            status_code=400,
            detail="Provide at least one file",
        )

    documents = []

    for upload in files:

        documents.append(
            Document(
                name=upload.filename or "upload",
                content=await upload.read(),
                media_type=upload.content_type,
            )
        )

    report = await session.ingest(documents)

    return report.summary()


# ============================================================
# CHAT
# ============================================================

@router.post("/chat", response_model=ChatResponse)
async def chat(payload: ChatRequest, session: RAGSession = Depends(get_session)):

    try:

        reply = await session.respond(
            payload.query,
            temperature=payload.temperature,
            system_directive=payload.system_directive,
        )

    except EmptyQuery as e:
        raise HTTPException(status_code=422, detail=str(e))

    except ModelNotReady as e:
        raise HTTPException(status_code=503, detail=str(e))

    except RAGError as e:
        raise HTTPException(
            status_code=502,
            detail=f"{type(e).__name__}: {e}",
        )

    return ChatResponse(
        reply=reply,
        sources=session.conversation.last_sources,
        history_length=len(session.history),
    )


@router.get("/history")
def get_history(session: RAGSession = Depends(get_session)):

    return [turn.model_dump() for turn in session.history.turns()]


@router.get("/events")
def get_events(session: RAGSession = Depends(get_session)):

    return [event.model_dump(mode="json") for event in session.events.drain()]


# ============================================================
# METRICS ENDPOINT
# ============================================================

@router.get("/metrics")
def get_metrics(request: Request):

    return request.app.state.metrics.get_metrics()
