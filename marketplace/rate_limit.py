"""
Request rate limiting keyed by client identifier.

The in-memory limiter is per process. Configure ``REDIS_URL`` to share the
counters between instances.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Protocol

import redis
from redis import exceptions as redis_exceptions

logger = logging.getLogger(__name__)

DEFAULT_WINDOW_SECONDS = 60
DEFAULT_LIMIT = 30


class RateLimiter(Protocol):
    """Counts a request and reports whether the caller is over the limit."""

    def is_limited(self, identifier: str, limit: int = DEFAULT_LIMIT) -> bool:
        ...


@dataclass
class InMemoryRateLimiter:
    """Sliding window over request timestamps kept in process memory."""

    window_seconds: float = DEFAULT_WINDOW_SECONDS
    clock: Callable[[], float] = time.monotonic
    requests: Dict[str, List[float]] = field(default_factory=dict)

    def __post_init__(self):
        self._lock = threading.Lock()

    def is_limited(self, identifier: str, limit: int = DEFAULT_LIMIT) -> bool:
        now = self.clock()
        with self._lock:
            recent = [
                stamp
                for stamp in self.requests.get(identifier, [])
                if now - stamp < self.window_seconds
            ]
            if len(recent) >= limit:
                self.requests[identifier] = recent
                return True
            recent.append(now)
            self.requests[identifier] = recent
            return False

    def reset(self) -> None:
        with self._lock:
            self.requests.clear()


@dataclass
class RedisRateLimiter:
    """Fixed-window counter in Redis, shared by every API process."""

    url: str
    window_seconds: int = DEFAULT_WINDOW_SECONDS
    key_prefix: str = "marketplace:ratelimit"

    def __post_init__(self):
        self.client = redis.Redis.from_url(self.url)

    def is_limited(self, identifier: str, limit: int = DEFAULT_LIMIT) -> bool:
        window = int(time.time() // self.window_seconds)
        key = f"{self.key_prefix}:{identifier}:{window}"
        try:
            pipe = self.client.pipeline()
            pipe.incr(key)
            pipe.expire(key, self.window_seconds)
            count, _ = pipe.execute()
        except redis_exceptions.ConnectionError:
            # Managed Redis drops idle connections; let the request through
            # and reconnect for the next one.
            logger.warning("Rate limiter unavailable, allowing request")
            self.client = redis.Redis.from_url(self.url)
            return False
        return int(count) > limit
