# ragchat/main.py
from contextlib import asynccontextmanager
import asyncio
import time
import uuid

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ragchat.api.routes import router
from ragchat.config import LOG_LEVEL
from ragchat.errors import CompletionError
from ragchat.observability import events as ev
from ragchat.observability.logger import setup_logging, get_logger
from ragchat.observability.metrics import MetricsTracker
from ragchat.session import create_session

logger = get_logger(__name__)


async def _load_model(session):

    try:

        await session.load_model()

    except CompletionError as e:

        # chat answers 503 until a model loads; upload still works
        logger.error(
            "model_load_failed",
            extra={"session_id": session.session_id, "error": str(e)},
        )

        session.events.emit(ev.MODEL_FAILED, f"Fatal Error: {e}")


def create_app(session_factory=create_session) -> FastAPI:

    @asynccontextmanager
    async def lifespan(app: FastAPI):

        session = session_factory()

        app.state.session = session
        app.state.metrics = MetricsTracker()

        # load in the background so progress events can be polled meanwhile
        app.state.model_task = asyncio.create_task(_load_model(session))

        logger.info(
            "application_startup",
            extra={"session_id": session.session_id, "version": "1.0.0"},
        )

        yield

        app.state.model_task.cancel()

        session.close()

        logger.info("application_shutdown")

    app = FastAPI(
        title="ragchat",
        description="Chat with your documents through a session-scoped RAG loop",
        version="1.0.0",
        lifespan=lifespan,
    )

    # presentation layer is served from another origin
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """
        Log every HTTP request with latency and record metrics.
        """

        request_id = str(uuid.uuid4())
        request.state.request_id = request_id

        logger.info(
            "request_started",
            extra={
                "request_id": request_id,
                "method": request.method,
                "path": request.url.path,
            }
        )

        start_time = time.time()

        try:

            response = await call_next(request)

        except Exception as e:

            request.app.state.metrics.record_failure()

            logger.error(
                "request_failed",
                extra={
                    "request_id": request_id,
                    "method": request.method,
                    "path": request.url.path,
                    "latency_seconds": round(time.time() - start_time, 3),
                    "error": str(e),
                    "error_type": type(e).__name__
                },
                exc_info=True
            )

            raise

        latency = time.time() - start_time

        if response.status_code >= 500:
            request.app.state.metrics.record_failure()
        else:
            request.app.state.metrics.record_success(latency)

        logger.info(
            "request_completed",
            extra={
                "request_id": request_id,
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "latency_seconds": round(latency, 3)
            }
        )

        return response

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):

        request_id = getattr(request.state, "request_id", "unknown")

        logger.error(
            "unhandled_exception",
            extra={
                "request_id": request_id,
                "path": request.url.path,
                "error": str(exc),
                "error_type": type(exc).__name__
            },
            exc_info=True
        )

        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "detail": "An internal error occurred. Please try again.",
                "request_id": request_id,
                "error_type": type(exc).__name__
            }
        )

    app.include_router(router)

    @app.get("/")
    async def root():

        return {
            "message": "ragchat API",
            "version": "1.0.0",
            "docs": "/docs",
            "health": "/health",
            "metrics": "/metrics"
        }

    return app


setup_logging(log_level=LOG_LEVEL)

app = create_app()
