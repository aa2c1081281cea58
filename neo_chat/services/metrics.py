"""Per-request metrics for the completion service and the encyclopedia mirror.

Every wire call records a request count, its latency and, on failure, the
error class.  Data points are buffered in memory:

* With ``METRICS_ENABLED=true`` a daemon thread pushes the buffer to
  CloudWatch every ``FLUSH_INTERVAL_SECONDS`` and once more at exit.
* Otherwise points are only logged at DEBUG and dropped on flush.

Usage
-----
>>> from neo_chat.services.metrics import metrics
>>> metrics.record_success("llm", "chat_stream", latency_ms=812.0)
>>> metrics.record_failure("kiwix", "search", error_type="NetworkError")
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

NAMESPACE = "NeoChat"
FLUSH_INTERVAL_SECONDS = 60
MAX_BATCH_SIZE = 1_000  # PutMetricData limit


class MetricsClient:
    """Thread-safe metrics buffer with optional CloudWatch publishing."""

    def __init__(self) -> None:
        self._enabled = os.getenv("METRICS_ENABLED", "false").lower() == "true"
        self._buffer: list[dict[str, Any]] = []
        self._lock = threading.Lock()
        self._cw_client = None

        if self._enabled:
            self._start_flush_thread()

    def _get_cw_client(self):
        if self._cw_client is None:
            import boto3

            self._cw_client = boto3.client("cloudwatch")
        return self._cw_client

    # ── Recording ────────────────────────────────────────────────────

    def record_success(self, service: str, operation: str, latency_ms: float) -> None:
        """Record a call that returned a usable response."""
        now = datetime.now(timezone.utc)
        self._append(self._point(
            "Pipeline/RequestCount", 1, "Count", now,
            Service=service, Status="success",
        ))
        self._append(self._point(
            "Pipeline/Latency", latency_ms, "Milliseconds", now,
            Service=service, Operation=operation,
        ))
        logger.debug("Metric: %s %s ok in %.1fms", service, operation, latency_ms)

    def record_failure(
        self,
        service: str,
        operation: str,
        error_type: str,
        latency_ms: float = 0,
    ) -> None:
        """Record a call that raised; latency is only kept when measured."""
        now = datetime.now(timezone.utc)
        self._append(self._point(
            "Pipeline/RequestCount", 1, "Count", now,
            Service=service, Status="failure",
        ))
        self._append(self._point(
            "Pipeline/ErrorCount", 1, "Count", now,
            Service=service, ErrorType=error_type,
        ))
        if latency_ms > 0:
            self._append(self._point(
                "Pipeline/Latency", latency_ms, "Milliseconds", now,
                Service=service, Operation=operation,
            ))
        logger.debug(
            "Metric: %s %s failed (%s) after %.1fms",
            service, operation, error_type, latency_ms,
        )

    def flush(self) -> int:
        """Drain the buffer; returns how many points reached CloudWatch."""
        with self._lock:
            if not self._buffer:
                return 0
            batch = self._buffer[:]
            self._buffer.clear()

        if not self._enabled:
            logger.debug("Dropping %d metric points (publishing disabled)", len(batch))
            return 0

        sent = 0
        try:
            cw = self._get_cw_client()
            for i in range(0, len(batch), MAX_BATCH_SIZE):
                chunk = batch[i : i + MAX_BATCH_SIZE]
                cw.put_metric_data(Namespace=NAMESPACE, MetricData=chunk)
                sent += len(chunk)
            logger.info("Published %d metric points", sent)
        except Exception:
            logger.exception("Failed to publish metrics")
        return sent

    # ── Internal ─────────────────────────────────────────────────────

    @staticmethod
    def _point(
        name: str, value: float, unit: str, when: datetime, **dimensions: str,
    ) -> dict[str, Any]:
        return {
            "MetricName": name,
            "Dimensions": [{"Name": k, "Value": v} for k, v in dimensions.items()],
            "Timestamp": when,
            "Value": value,
            "Unit": unit,
        }

    def _append(self, point: dict[str, Any]) -> None:
        with self._lock:
            self._buffer.append(point)

    def _start_flush_thread(self) -> None:
        def _loop():
            while True:
                time.sleep(FLUSH_INTERVAL_SECONDS)
                try:
                    self.flush()
                except Exception:
                    logger.exception("Metrics flush thread error")

        threading.Thread(target=_loop, daemon=True, name="metrics-flush").start()
        atexit.register(self.flush)
        logger.info("Metrics publishing every %ds", FLUSH_INTERVAL_SECONDS)


metrics = MetricsClient()
