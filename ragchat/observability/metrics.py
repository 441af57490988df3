import threading
from collections import deque

from ragchat.config import METRICS_LATENCY_WINDOW


class MetricsTracker:
    """
    Request counters for one running app, kept in memory.

    Averages cover every successful request; percentiles cover the most
    recent METRICS_LATENCY_WINDOW of them.
    """

    def __init__(self, latency_window: int = METRICS_LATENCY_WINDOW):

        self._lock = threading.Lock()

        self._succeeded = 0
        self._failed = 0
        self._latency_sum = 0.0
        self._recent = deque(maxlen=latency_window)

    def record_success(self, latency: float):

        with self._lock:
            self._succeeded += 1
            self._latency_sum += latency
            self._recent.append(latency)

    def record_failure(self):

        with self._lock:
            self._failed += 1

    def get_metrics(self) -> dict:

        with self._lock:
            return {
                "total_requests": self._succeeded + self._failed,
                "successful_requests": self._succeeded,
                "failed_requests": self._failed,
                "avg_latency": self._latency_sum / self._succeeded if self._succeeded else 0.0,
                "p95_latency": self._percentile(95),
            }

    def get_latency_percentile(self, percentile: float) -> float:

        with self._lock:
            return self._percentile(percentile)

    def _percentile(self, percentile: float) -> float:
        # nearest-rank on the recent window; caller holds the lock

        if not self._recent:
            return 0.0

        ordered = sorted(self._recent)
        index = min(int(len(ordered) * percentile / 100), len(ordered) - 1)

        return ordered[index]
