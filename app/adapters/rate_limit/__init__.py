"""Rate limiting adapters.

This package keeps admission control behind a small interface so the HTTP
layer only ever sees ``allow`` / ``remaining_tokens`` / ``shutdown``.
"""

from app.adapters.rate_limit.base import AbstractRateLimiter
from app.adapters.rate_limit.in_memory import InMemoryTokenBucketRateLimiter, TokenBucket

__all__ = ["AbstractRateLimiter", "InMemoryTokenBucketRateLimiter", "TokenBucket"]
