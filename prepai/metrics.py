"""
Metrics and observability for PrepAI.

Provides structured logging and in-process counters for the AI request
pipeline and the question/explanation flows.
"""

import json
import logging
import statistics
from collections import defaultdict, deque
from dataclasses import dataclass, asdict
from datetime import datetime, UTC
from pathlib import Path
from threading import Lock
from typing import Optional, Any

from prepai.config import get_log_level


@dataclass
class MetricEvent:
    """A single metric event."""
    timestamp: str
    event_type: str  # attempt, success, retry, error, fallback, cache_hit
    request_id: str
    data: dict[str, Any]


def _percentile(values: list[float], n: int, index: int) -> float:
    if len(values) >= n:
        return statistics.quantiles(values, n=n)[index]
    return max(values) if values else 0


class MetricsCollector:
    """
    Collects and aggregates pipeline metrics.

    Provides both real-time stats and a bounded window of recent events.
    """

    def __init__(
        self,
        metrics_file: Optional[Path] = None,
        enable_logging: bool = True,
        max_events: int = 1000,
    ):
        """
        Initialize metrics collector.

        Args:
            metrics_file: Optional file to append events to (JSONL format)
            enable_logging: Whether to log events
            max_events: How many recent events to keep in memory
        """
        self.metrics_file = metrics_file
        self.enable_logging = enable_logging
        self._lock = Lock()

        self.logger = logging.getLogger("prepai.metrics")
        if enable_logging and not self.logger.handlers:
            handler = logging.StreamHandler()
            handler.setFormatter(
                logging.Formatter(
                    "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
                )
            )
            self.logger.addHandler(handler)
            self.logger.setLevel(get_log_level())

        self._events: deque[MetricEvent] = deque(maxlen=max_events)
        self._counters: dict[str, int] = defaultdict(int)
        self._histograms: dict[str, list[float]] = defaultdict(list)

    def record_attempt(self, request_id: str, attempt: int, max_attempts: int) -> None:
        self._record_event("attempt", request_id, {"attempt": attempt, "max_attempts": max_attempts})
        self._increment("attempts_total")

    def record_success(self, request_id: str, attempts: int, latency_ms: int) -> None:
        self._record_event("success", request_id, {"attempts": attempts, "latency_ms": latency_ms})
        with self._lock:
            self._counters["successes_total"] += 1
            self._histograms["latency_ms"].append(latency_ms)
            self._histograms["attempts"].append(attempts)

    def record_retry(self, request_id: str, attempt: int, delay_seconds: float, error_code: str) -> None:
        self._record_event(
            "retry",
            request_id,
            {"attempt": attempt, "delay_seconds": round(delay_seconds, 3), "error_code": error_code},
        )
        self._increment("retries_total")

    def record_error(self, request_id: str, error_code: str, error_message: str, **extra: Any) -> None:
        self._record_event(
            "error",
            request_id,
            {"error_code": error_code, "error_message": error_message, **extra},
            level=logging.WARNING,
        )
        with self._lock:
            self._counters["errors_total"] += 1
            self._counters[f"failures_by_code_{error_code}"] += 1

    def record_fallback(self, request_id: str, reason: str) -> None:
        self._record_event("fallback", request_id, {"reason": reason}, level=logging.WARNING)
        self._increment("fallbacks_total")

    def record_cache_hit(self, request_id: str, kind: str) -> None:
        self._record_event("cache_hit", request_id, {"kind": kind})
        self._increment("cache_hits_total")

    def _increment(self, name: str) -> None:
        with self._lock:
            self._counters[name] += 1

    def _record_event(
        self,
        event_type: str,
        request_id: str,
        data: dict,
        level: int = logging.INFO,
    ) -> None:
        """Record a metric event."""
        event = MetricEvent(
            timestamp=datetime.now(UTC).isoformat(),
            event_type=event_type,
            request_id=request_id,
            data=data,
        )

        with self._lock:
            self._events.append(event)

        if self.metrics_file:
            with open(self.metrics_file, "a") as f:
                f.write(json.dumps(asdict(event)) + "\n")

        if self.enable_logging:
            self.logger.log(level, f"{event_type.upper()}: request_id={request_id}, data={data}")

    def recent_events(self, limit: int = 50) -> list[MetricEvent]:
        with self._lock:
            return list(self._events)[-limit:]

    def get_stats(self) -> dict:
        """
        Get aggregated statistics.

        Returns:
            Dictionary with metrics summary
        """
        with self._lock:
            latency_values = list(self._histograms.get("latency_ms", []))
            attempt_values = list(self._histograms.get("attempts", []))
            counters = dict(self._counters)
            total_events = len(self._events)

        return {
            "counters": counters,
            "latency": {
                "avg_ms": statistics.mean(latency_values) if latency_values else 0,
                "p50_ms": statistics.median(latency_values) if latency_values else 0,
                "p95_ms": _percentile(latency_values, 20, 18),
            },
            "attempts": {
                "avg": statistics.mean(attempt_values) if attempt_values else 0,
                "max": max(attempt_values) if attempt_values else 0,
            },
            "total_events": total_events,
        }

    def reset(self) -> None:
        """Reset all metrics."""
        with self._lock:
            self._events.clear()
            self._counters.clear()
            self._histograms.clear()
