"""CloudWatch custom metrics emitter with background batching.

Publishes per-call metrics (count, latency, errors) for the two external
backends the relay talks to: ``gemini`` (reply generation) and ``vonage``
(message delivery).

* When ``METRICS_ENABLED=true`` data points are buffered in memory behind a
  lock, and a daemon thread flushes the buffer to
  CloudWatch every ``FLUSH_INTERVAL_SECONDS``, plus once at process exit.
* Otherwise data points are only logged at DEBUG and never buffered.

>>> from auto_replier.services.metrics import metrics
>>> metrics.record_success("vonage", "send_text", latency_ms=212.0)
>>> metrics.record_failure("gemini", "generate_content", error_type="ServerError")
"""

from __future__ import annotations

import atexit
import logging
import os
import threading
import time
from datetime import datetime, timezone
from typing import Any

logger = logging.getLogger(__name__)

NAMESPACE = "WhatsAppAutoReplier"
FLUSH_INTERVAL_SECONDS = 60
MAX_BATCH_SIZE = 1_000  # PutMetricData limit

_REQUEST_COUNT = "Backend/RequestCount"
_ERROR_COUNT = "Backend/ErrorCount"
_LATENCY = "Backend/Latency"


def _dimensions(**pairs: str) -> list[dict[str, str]]:
    return [{"Name": name, "Value": value} for name, value in pairs.items()]


class MetricsClient:
    """Batched CloudWatch metrics publisher."""

    def __init__(self) -> None:
        self._enabled = os.getenv("METRICS_ENABLED", "false").lower() == "true"
        self._buffer: list[dict[str, Any]] = []
        self._lock = threading.Lock()
        self._cw_client = None

        if self._enabled:
            self._start_flush_thread()

    @property
    def enabled(self) -> bool:
        return self._enabled

    def _get_cw_client(self):
        if self._cw_client is None:
            import boto3  # noqa: PLC0415 — optional dependency (``aws`` extra)

            self._cw_client = boto3.client("cloudwatch")
        return self._cw_client

    def record_success(self, service: str, operation: str, latency_ms: float) -> None:
        """Record one successful backend call."""
        now = datetime.now(timezone.utc)
        self._add(now, _REQUEST_COUNT, 1, "Count", Service=service, Status="success")
        self._add(
            now, _LATENCY, latency_ms, "Milliseconds",
            Service=service, Operation=operation,
        )
        logger.debug("Metric: %s %s ok %.1fms", service, operation, latency_ms)

    def record_failure(
        self,
        service: str,
        operation: str,
        error_type: str,
        latency_ms: float = 0,
    ) -> None:
        """Record one failed backend call; latency is optional."""
        now = datetime.now(timezone.utc)
        self._add(now, _REQUEST_COUNT, 1, "Count", Service=service, Status="failure")
        self._add(now, _ERROR_COUNT, 1, "Count", Service=service, ErrorType=error_type)
        if latency_ms > 0:
            self._add(
                now, _LATENCY, latency_ms, "Milliseconds",
                Service=service, Operation=operation,
            )
        logger.debug(
            "Metric: %s %s failed (%s) %.1fms",
            service, operation, error_type, latency_ms,
        )

    def flush(self) -> int:
        """Send buffered data points to CloudWatch.  Returns the count sent."""
        with self._lock:
            batch, self._buffer = self._buffer, []
        if not batch:
            return 0

        sent = 0
        try:
            cw = self._get_cw_client()
            for start in range(0, len(batch), MAX_BATCH_SIZE):
                chunk = batch[start : start + MAX_BATCH_SIZE]
                cw.put_metric_data(Namespace=NAMESPACE, MetricData=chunk)
                sent += len(chunk)
            logger.info("Flushed %d metrics to CloudWatch", sent)
        except Exception:
            logger.exception("Failed to flush metrics to CloudWatch")
        return sent

    def _add(
        self,
        timestamp: datetime,
        name: str,
        value: float,
        unit: str,
        **dims: str,
    ) -> None:
        if not self._enabled:
            return
        datum = {
            "MetricName": name,
            "Dimensions": _dimensions(**dims),
            "Timestamp": timestamp,
            "Value": value,
            "Unit": unit,
        }
        with self._lock:
            self._buffer.append(datum)

    def _start_flush_thread(self) -> None:
        def _loop() -> None:
            while True:
                time.sleep(FLUSH_INTERVAL_SECONDS)
                self.flush()

        threading.Thread(target=_loop, daemon=True, name="metrics-flush").start()
        atexit.register(self.flush)
        logger.info("Metrics flush thread started (interval=%ds)", FLUSH_INTERVAL_SECONDS)


metrics = MetricsClient()
