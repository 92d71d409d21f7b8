"""
Quota and rate tracking for PrepAI.

Process-wide view of how hard we have been hitting the provider: daily
request counts, an explicit "daily quota exhausted" flag and the single
rate-limit cooldown slot. Nothing here is persisted across restarts.
"""

import time
from dataclasses import dataclass
from datetime import datetime, timezone
from threading import Lock
from typing import Callable, Optional


DEFAULT_RECORD_TTL_SECONDS = 3600.0


@dataclass
class QuotaRecord:
    """Request count for one calendar day (UTC)."""
    date_key: str
    request_count: int
    touched_at: float


@dataclass
class RateLimitCooldown:
    """Active cooldown after a provider 429."""
    activated_at: float
    retry_after_seconds: float

    @property
    def expires_at(self) -> float:
        return self.activated_at + self.retry_after_seconds


class QuotaTracker:
    """
    Tracks provider usage for the current process.

    Date-keyed entries expire ``record_ttl_seconds`` after they were last
    written; expiry is checked lazily, so an expired key reads as absent.
    All state is guarded by one lock and no method blocks while holding it.
    """

    def __init__(
        self,
        record_ttl_seconds: float = DEFAULT_RECORD_TTL_SECONDS,
        clock: Optional[Callable[[], float]] = None,
    ):
        """
        Initialize tracker.

        Args:
            record_ttl_seconds: Lifetime of a date-keyed entry after its last write.
            clock: Returns the current epoch time in seconds. Defaults to time.time.
        """
        self.record_ttl_seconds = record_ttl_seconds
        self._clock = clock or time.time
        self._lock = Lock()

        self._records: dict[str, QuotaRecord] = {}
        self._quota_exceeded: dict[str, float] = {}  # date_key -> flagged_at
        self._cooldown: Optional[RateLimitCooldown] = None

    def _date_key(self, now: float) -> str:
        return datetime.fromtimestamp(now, tz=timezone.utc).strftime("%Y-%m-%d")

    def _clean_old_entries(self, now: float) -> None:
        """Drop date-keyed entries whose TTL has lapsed."""
        ttl = self.record_ttl_seconds
        for key in [k for k, r in self._records.items() if now - r.touched_at > ttl]:
            del self._records[key]
        for key in [k for k, ts in self._quota_exceeded.items() if now - ts > ttl]:
            del self._quota_exceeded[key]

    def record_request(self) -> int:
        """
        Count one successful provider call against today.

        Returns:
            Today's request count after the increment.
        """
        with self._lock:
            now = self._clock()
            self._clean_old_entries(now)
            key = self._date_key(now)
            record = self._records.get(key)
            if record is None:
                record = QuotaRecord(date_key=key, request_count=0, touched_at=now)
                self._records[key] = record
            record.request_count += 1
            record.touched_at = now
            return record.request_count

    def daily_request_count(self) -> int:
        with self._lock:
            now = self._clock()
            self._clean_old_entries(now)
            record = self._records.get(self._date_key(now))
            return record.request_count if record else 0

    def activate_cooldown(self, retry_after_seconds: float) -> None:
        """Start (or replace) the process-wide cooldown."""
        with self._lock:
            self._cooldown = RateLimitCooldown(
                activated_at=self._clock(),
                retry_after_seconds=max(0.0, float(retry_after_seconds)),
            )

    def is_rate_limited(self) -> bool:
        with self._lock:
            return self._cooldown_remaining(self._clock()) > 0

    def cooldown_remaining(self) -> float:
        """Seconds left on the active cooldown, 0 when none."""
        with self._lock:
            return self._cooldown_remaining(self._clock())

    def _cooldown_remaining(self, now: float) -> float:
        if self._cooldown is None:
            return 0.0
        remaining = self._cooldown.expires_at - now
        if remaining <= 0:
            self._cooldown = None
            return 0.0
        return remaining

    def mark_daily_quota_exceeded(self) -> None:
        """Flag today as exhausted after the provider reports a hard quota hit."""
        with self._lock:
            now = self._clock()
            self._quota_exceeded[self._date_key(now)] = now

    def is_daily_quota_exceeded(self) -> bool:
        with self._lock:
            now = self._clock()
            self._clean_old_entries(now)
            return self._date_key(now) in self._quota_exceeded

    def get_stats(self) -> dict:
        """
        Get current usage statistics.

        Returns:
            Dictionary with usage stats
        """
        with self._lock:
            now = self._clock()
            self._clean_old_entries(now)
            key = self._date_key(now)
            record = self._records.get(key)
            return {
                "date": key,
                "requests_today": record.request_count if record else 0,
                "daily_quota_exceeded": key in self._quota_exceeded,
                "rate_limited": self._cooldown_remaining(now) > 0,
                "cooldown_remaining_seconds": round(self._cooldown_remaining(now), 3),
            }

    def reset(self) -> None:
        """Forget all counters, flags and cooldowns."""
        with self._lock:
            self._records.clear()
            self._quota_exceeded.clear()
            self._cooldown = None
