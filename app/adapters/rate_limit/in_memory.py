"""In-memory token-bucket rate limiter with background eviction.

Notes:
- Per-process only: running multiple workers multiplies the effective limit.
- Thread-safe: a lock guards the key -> bucket map, and each bucket has its
  own lock around check-and-decrement.
- Buckets refill on a fixed window: once ``window_seconds`` have passed since
  the window started, the next check resets the bucket to full capacity.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable

from app.adapters.rate_limit.base import AbstractRateLimiter

logger = logging.getLogger(__name__)

# Buckets whose window started longer ago than this are dropped by the sweeper.
DEFAULT_STALE_AFTER_SECONDS = 3600.0


class TokenBucket:
    """Fixed-window bucket of ``capacity`` permits for a single visitor.

    A ``window_seconds`` of 0 makes every check start a fresh window, so the
    bucket always admits (unless ``capacity`` is 0, which always denies).
    """

    def __init__(
        self,
        capacity: int,
        window_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._capacity = capacity
        self._window_seconds = window_seconds
        self._clock = clock
        self._tokens = capacity
        self._window_start = clock()
        self._lock = threading.Lock()

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def window_start(self) -> float:
        return self._window_start

    @property
    def tokens(self) -> int:
        """Snapshot of the permits left in the current window."""
        with self._lock:
            return self._tokens

    def _refill_if_elapsed(self, now: float) -> None:
        if now - self._window_start >= self._window_seconds:
            self._window_start = now
            self._tokens = self._capacity

    def allow(self) -> bool:
        """Take one permit if available, starting a new window first if due."""
        with self._lock:
            self._refill_if_elapsed(self._clock())
            if self._tokens > 0:
                self._tokens -= 1
                return True
            return False


class InMemoryTokenBucketRateLimiter(AbstractRateLimiter):
    """Per-key token buckets, created lazily and evicted when idle.

    A daemon thread wakes every ``cleanup_interval_seconds`` and removes
    buckets whose window started more than ``stale_after_seconds`` ago.
    Call :meth:`shutdown` to stop it; the call blocks until the thread exits.
    """

    def __init__(
        self,
        *,
        burst_size: int,
        window_seconds: float,
        cleanup_interval_seconds: float,
        stale_after_seconds: float = DEFAULT_STALE_AFTER_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        start_sweeper: bool = True,
    ) -> None:
        """Initialize the limiter and (by default) start the sweeper thread.

        Args:
            burst_size: Bucket capacity; also the limit reported to clients.
            window_seconds: Fixed window after which a bucket refills.
            cleanup_interval_seconds: Delay between eviction sweeps.
            stale_after_seconds: Idle age after which a bucket is evicted.
            clock: Monotonic time source in seconds.
            start_sweeper: Start the background eviction thread.

        Raises:
            ValueError: If any size or interval is out of range.
        """
        if burst_size < 0:
            raise ValueError("burst_size must be >= 0")
        if window_seconds < 0:
            raise ValueError("window_seconds must be >= 0")
        if cleanup_interval_seconds <= 0:
            raise ValueError("cleanup_interval_seconds must be > 0")
        if stale_after_seconds < 0:
            raise ValueError("stale_after_seconds must be >= 0")

        self._burst_size = burst_size
        self._window_seconds = window_seconds
        self._cleanup_interval = cleanup_interval_seconds
        self._stale_after = stale_after_seconds
        self._clock = clock

        self._lock = threading.Lock()
        self._buckets: dict[str, TokenBucket] = {}

        self._stop_event = threading.Event()
        self._shutdown_lock = threading.Lock()
        self._sweeper: threading.Thread | None = None
        if start_sweeper:
            self._start_sweeper()

    @property
    def burst_size(self) -> int:
        return self._burst_size

    @property
    def window_seconds(self) -> float:
        return self._window_seconds

    @property
    def bucket_count(self) -> int:
        with self._lock:
            return len(self._buckets)

    def _get_or_create_bucket(self, key: str) -> TokenBucket:
        with self._lock:
            bucket = self._buckets.get(key)
            if bucket is None:
                bucket = TokenBucket(self._burst_size, self._window_seconds, self._clock)
                self._buckets[key] = bucket
            return bucket

    def allow(self, key: str) -> bool:
        """Admit or deny one request for ``key``.

        The map lock is only held to find or insert the bucket; the decrement
        itself runs under the bucket's own lock so unrelated keys don't contend.

        Raises:
            ValueError: If key is empty.
        """
        if not key:
            raise ValueError("key must be a non-empty string")

        return self._get_or_create_bucket(key).allow()

    def remaining_tokens(self, key: str) -> int | None:
        with self._lock:
            bucket = self._buckets.get(key)
        if bucket is None:
            return None
        return bucket.tokens

    def sweep(self) -> int:
        """Evict buckets idle for longer than the staleness threshold.

        Returns:
            Number of buckets removed.
        """
        now = self._clock()
        with self._lock:
            stale_keys = [
                key
                for key, bucket in self._buckets.items()
                if now - bucket.window_start > self._stale_after
            ]
            for key in stale_keys:
                del self._buckets[key]
            remaining = len(self._buckets)

        logger.debug(
            "rate_limit.sweep",
            extra={"evicted": len(stale_keys), "buckets": remaining},
        )
        return len(stale_keys)

    def _start_sweeper(self) -> None:
        self._sweeper = threading.Thread(
            target=self._sweep_loop,
            name="rate-limit-sweeper",
            daemon=True,
        )
        self._sweeper.start()
        logger.info(
            "rate_limit.sweeper_started",
            extra={
                "interval_s": self._cleanup_interval,
                "stale_after_s": self._stale_after,
            },
        )

    def _sweep_loop(self) -> None:
        # Event.wait returns True once shutdown() sets the flag.
        while not self._stop_event.wait(self._cleanup_interval):
            try:
                self.sweep()
            except Exception:
                logger.exception("rate_limit.sweep_failed")

    def shutdown(self) -> None:
        """Stop the sweeper and wait for it to exit. Idempotent."""
        with self._shutdown_lock:
            if self._stop_event.is_set():
                return
            self._stop_event.set()
            if self._sweeper is not None:
                self._sweeper.join()
                logger.info("rate_limit.sweeper_stopped")
