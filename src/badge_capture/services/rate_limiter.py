"""
badge_capture.services.rate_limiter

Fixed-window submission limiter backed by the key-value collaborator.

Responsibilities:
- Count submissions per client per window bucket.
- Decide whether the current submission is allowed, incrementing only when it is.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from badge_capture.collaborators.kv import KeyValueStore

UNKNOWN_CLIENT = "unknown"


@dataclass(frozen=True, slots=True)
class RateDecision:
    allowed: bool
    count: int
    key: str


class RateLimiter:
    def __init__(self, store: KeyValueStore, *, limit: int = 2, window_seconds: int = 3600) -> None:
        self._store = store
        self._limit = limit
        self._window_seconds = window_seconds

    def bucket_key(self, client_id: str, *, at: datetime) -> str:
        bucket = int(at.timestamp()) // self._window_seconds
        return f"rl:{client_id or UNKNOWN_CLIENT}:{bucket}"

    async def check_and_increment(self, client_id: str, *, at: datetime) -> RateDecision:
        """
        Read-then-write, not atomic: two concurrent requests can both read the same
        count and under-count by one. Acceptable for abuse mitigation.
        """

        key = self.bucket_key(client_id, at=at)
        raw = await self._store.get(key)
        count = _as_int(raw)
        if count >= self._limit:
            return RateDecision(allowed=False, count=count, key=key)

        count += 1
        await self._store.put(key, str(count), ttl_seconds=self._window_seconds)
        return RateDecision(allowed=True, count=count, key=key)


def _as_int(raw: str | None) -> int:
    if raw is None:
        return 0
    try:
        return int(raw)
    except ValueError:
        # A corrupted counter resets the window rather than locking the client out.
        return 0
