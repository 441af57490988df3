# ragchat/observability/posthog_client.py

"""
PostHog Observability Client

Architecture contract:
- Optional sink behind EventStream
- Enabled only when POSTHOG_API_KEY is set
- Uses the session id as distinct_id
- Never blocks or fails the pipeline
"""

import os
import logging
from typing import Optional, Dict, Any

from posthog import Posthog

from ragchat.models import ProgressEvent


logger = logging.getLogger(__name__)


class PostHogClient:
    """
    PostHog wrapper for session analytics.

    Guarantees:
    - Tracking errors are logged, never raised
    - Non-blocking tracking (PostHog batches in a background thread)
    - Question text never leaves the process, only its length
    """

    def __init__(self, distinct_id: str, api_key: Optional[str] = None):

        self._enabled = False
        self._client: Optional[Posthog] = None
        self._distinct_id = distinct_id

        api_key = api_key or os.getenv("POSTHOG_API_KEY")
        host = os.getenv("POSTHOG_HOST", "https://app.posthog.com")

        if not api_key:
            logger.info(
                "PostHog disabled: POSTHOG_API_KEY not set"
            )
            return

        self._client = Posthog(
            project_api_key=api_key,
            host=host,
            timeout=5,
            flush_interval=1,
        )

        self._enabled = True

        logger.info(
            "PostHog client initialized",
            extra={"host": host}
        )

    @property
    def enabled(self) -> bool:
        return self._enabled

    # ==========================================================
    # INTERNAL SAFE TRACK
    # ==========================================================

    def _track(
        self,
        event: str,
        properties: Optional[Dict[str, Any]] = None,
    ):

        if not self._enabled or not self._client:
            return

        try:

            self._client.capture(
                distinct_id=self._distinct_id,
                event=event,
                properties=properties or {},
            )

        # analytics must never take the chat session down
        except Exception as e:

            logger.warning(
                "PostHog tracking failed",
                extra={
                    "event": event,
                    "error": str(e),
                }
            )

    # ==========================================================
    # EVENT STREAM SINK
    # ==========================================================

    def capture_event(self, event: ProgressEvent):

        properties = dict(event.data)

        if event.progress is not None:
            properties["progress"] = event.progress

        self._track(event.kind, properties)

    def shutdown(self):

        if self._client is not None:
            self._client.shutdown()
