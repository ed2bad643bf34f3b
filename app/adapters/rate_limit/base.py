"""Rate limiter interfaces.

The HTTP layer depends on this abstraction (not the concrete implementation)
so the in-memory store can be replaced without touching the middleware.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class AbstractRateLimiter(ABC):
    """Interface for per-visitor admission control."""

    @property
    @abstractmethod
    def burst_size(self) -> int:
        """Requests a single key may make per window (reported as the limit)."""

    @property
    @abstractmethod
    def window_seconds(self) -> float:
        """Length of the fixed window after which a key's budget refills."""

    @abstractmethod
    def allow(self, key: str) -> bool:
        """Consume one unit of budget for ``key``.

        Args:
            key: Opaque visitor identifier.

        Returns:
            True if the request may proceed, False if the budget is exhausted.
        """
        raise NotImplementedError

    @abstractmethod
    def remaining_tokens(self, key: str) -> int | None:
        """Return the remaining budget for ``key``, or None if it has no bucket."""
        raise NotImplementedError

    @abstractmethod
    def shutdown(self) -> None:
        """Release background resources. Safe to call more than once."""
        raise NotImplementedError
