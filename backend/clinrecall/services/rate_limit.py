"""
Per-client token-bucket limiter used as a FastAPI dependency on the
speech-to-text upload. Buckets hold `max_requests` tokens and refill evenly
over `window_seconds`.
"""
from __future__ import annotations

import time

from fastapi import HTTPException, Request


class TokenBucket:
    __slots__ = ("capacity", "tokens", "refill_rate", "last_refill")

    def __init__(self, capacity: int, refill_rate: float):
        self.capacity = capacity
        self.tokens = float(capacity)
        self.refill_rate = refill_rate
        self.last_refill = time.monotonic()

    def consume(self) -> bool:
        """Try to consume one token. Returns True if allowed."""
        now = time.monotonic()
        elapsed = now - self.last_refill
        self.tokens = min(self.capacity, self.tokens + elapsed * self.refill_rate)
        self.last_refill = now

        if self.tokens >= 1.0:
            self.tokens -= 1.0
            return True
        return False


class ClientRateLimiter:
    def __init__(self, max_requests: int, window_seconds: int):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._buckets: dict[str, TokenBucket] = {}
        self._last_prune = time.monotonic()
        self._prune_interval = 300.0

    def _maybe_prune(self) -> None:
        """Drop buckets idle for a full window; they would be full again anyway."""
        now = time.monotonic()
        if now - self._last_prune < self._prune_interval:
            return
        self._last_prune = now
        stale_threshold = now - self.window_seconds
        stale_keys = [
            key for key, bucket in self._buckets.items() if bucket.last_refill < stale_threshold
        ]
        for key in stale_keys:
            del self._buckets[key]

    def allow(self, client_key: str) -> bool:
        self._maybe_prune()
        bucket = self._buckets.get(client_key)
        if bucket is None:
            bucket = TokenBucket(self.max_requests, self.max_requests / self.window_seconds)
            self._buckets[client_key] = bucket
        return bucket.consume()

    def reset(self) -> None:
        self._buckets.clear()

    async def __call__(self, request: Request) -> None:
        client_key = request.client.host if request.client else "unknown"
        if not self.allow(client_key):
            raise HTTPException(
                status_code=429,
                detail={"code": "RATE_LIMIT", "message": "Too many transcription requests"},
            )
