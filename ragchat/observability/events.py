# ragchat/observability/events.py

"""
Progress events for the presentation layer.

emit() never blocks and never waits on a consumer: events go into a
bounded asyncio.Queue and, when it is full, the oldest pending event is
dropped to make room. An optional sink (PostHogClient) receives a copy
of every event for product analytics.
"""

import asyncio
import logging
from typing import Any, List, Optional

from ragchat.config import EVENT_QUEUE_SIZE
from ragchat.models import ProgressEvent

logger = logging.getLogger(__name__)


# Event kinds
MODEL_LOADING = "model_loading"
MODEL_READY = "model_ready"
MODEL_FAILED = "model_failed"
INGESTION_STARTED = "ingestion_started"
DOCUMENT_INDEXED = "document_indexed"
DOCUMENT_FAILED = "document_failed"
INGESTION_COMPLETED = "ingestion_completed"
RETRIEVAL_COMPLETED = "retrieval_completed"
RESPONSE_COMPLETED = "response_completed"
RESPONSE_FAILED = "response_failed"


class EventStream:

    def __init__(self, maxsize: int = EVENT_QUEUE_SIZE, sink=None):

        self._queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
        self._sink = sink
        self.dropped = 0

    def emit(
        self,
        kind: str,
        message: str,
        progress: Optional[float] = None,
        **data: Any,
    ) -> ProgressEvent:

        event = ProgressEvent(
            kind=kind,
            message=message,
            progress=progress,
            data=data,
        )

        if self._queue.full():

            self._queue.get_nowait()
            self.dropped += 1

            logger.debug(
                "Progress event dropped",
                extra={"dropped_total": self.dropped},
            )

        self._queue.put_nowait(event)

        if self._sink is not None:
            self._sink.capture_event(event)

        return event

    def drain(self) -> List[ProgressEvent]:
        """All pending events, oldest first."""

        events = []

        while not self._queue.empty():
            events.append(self._queue.get_nowait())

        return events

    async def next(self, timeout: Optional[float] = None) -> ProgressEvent:
        """Wait for the next event."""

        return await asyncio.wait_for(self._queue.get(), timeout=timeout)

    def __len__(self) -> int:
        return self._queue.qsize()
