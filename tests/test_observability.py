# tests/test_observability.py
import asyncio
import json
import logging
from unittest.mock import MagicMock

import numpy as np
import pytest

from ragchat.observability.events import EventStream
from ragchat.observability.logger import JSONFormatter
from ragchat.observability.metrics import MetricsTracker
from ragchat.observability.posthog_client import PostHogClient


class TestEventStream:

    def test_drain_returns_events_oldest_first(self):
        stream = EventStream()

        stream.emit("a", "first")
        stream.emit("b", "second", progress=0.5, chunks=3)

        drained = stream.drain()

        assert [e.kind for e in drained] == ["a", "b"]
        assert drained[1].progress == 0.5
        assert drained[1].data == {"chunks": 3}
        assert stream.drain() == []

    def test_full_queue_drops_oldest_without_blocking(self):
        stream = EventStream(maxsize=2)

        for i in range(5):
            stream.emit("tick", f"event {i}")

        assert [e.message for e in stream.drain()] == ["event 3", "event 4"]
        assert stream.dropped == 3

    def test_sink_receives_every_event(self):
        sink = MagicMock()
        stream = EventStream(sink=sink)

        event = stream.emit("document_indexed", "done", chunks=2)

        sink.capture_event.assert_called_once_with(event)

    @pytest.mark.asyncio
    async def test_next_waits_for_event(self):
        stream = EventStream()

        async def later():
            await asyncio.sleep(0.01)
            stream.emit("late", "arrived")

        task = asyncio.create_task(later())
        event = await stream.next(timeout=1)
        await task

        assert event.kind == "late"


class TestPostHogClient:

    def test_disabled_without_key(self, monkeypatch):
        monkeypatch.delenv("POSTHOG_API_KEY", raising=False)

        client = PostHogClient(distinct_id="session_1")

        assert client.enabled is False

    def test_capture_event_forwards_data(self, monkeypatch):
        posthog = MagicMock()
        monkeypatch.setattr(
            "ragchat.observability.posthog_client.Posthog",
            MagicMock(return_value=posthog),
        )

        client = PostHogClient(distinct_id="session_1", api_key="phc_test")
        event = EventStream().emit("document_indexed", "done", progress=1.0, chunks=2)
        client.capture_event(event)

        posthog.capture.assert_called_once_with(
            distinct_id="session_1",
            event="document_indexed",
            properties={"chunks": 2, "progress": 1.0},
        )

    def test_tracking_failure_is_logged_not_raised(self, monkeypatch, caplog):
        posthog = MagicMock()
        posthog.capture.side_effect = ConnectionError("offline")
        monkeypatch.setattr(
            "ragchat.observability.posthog_client.Posthog",
            MagicMock(return_value=posthog),
        )

        client = PostHogClient(distinct_id="session_1", api_key="phc_test")

        with caplog.at_level(logging.WARNING):
            client.capture_event(EventStream().emit("x", "y"))

        assert "PostHog tracking failed" in caplog.text


class TestMetricsTracker:

    def test_counts_and_average(self):
        tracker = MetricsTracker()

        tracker.record_success(1.0)
        tracker.record_success(3.0)
        tracker.record_failure()

        metrics = tracker.get_metrics()

        assert metrics["total_requests"] == 3
        assert metrics["successful_requests"] == 2
        assert metrics["failed_requests"] == 1
        assert metrics["avg_latency"] == pytest.approx(2.0)

    def test_percentile(self):
        tracker = MetricsTracker()

        for latency in range(1, 101):
            tracker.record_success(float(latency))

        assert tracker.get_latency_percentile(95) == 96.0
        assert tracker.get_latency_percentile(100) == 100.0

    def test_percentile_without_data(self):
        assert MetricsTracker().get_latency_percentile(95) == 0.0


class TestJSONFormatter:

    def test_extra_fields_serialized(self):
        record = logging.LogRecord(
            name="ragchat.test", level=logging.INFO, pathname=__file__,
            lineno=1, msg="Chunking completed", args=(), exc_info=None,
        )
        record.chunks_created = 3
        record.top_score = np.float32(0.5)

        payload = json.loads(JSONFormatter().format(record))

        assert payload["message"] == "Chunking completed"
        assert payload["level"] == "INFO"
        assert payload["chunks_created"] == 3
        assert payload["top_score"] == "0.5"

    def test_colliding_extra_is_prefixed(self):
        record = logging.LogRecord(
            name="ragchat.test", level=logging.INFO, pathname=__file__,
            lineno=1, msg="msg", args=(), exc_info=None,
        )
        record.level = "custom"

        payload = json.loads(JSONFormatter().format(record))

        assert payload["level"] == "INFO"
        assert payload["extra_level"] == "custom"
