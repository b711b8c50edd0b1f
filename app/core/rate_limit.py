"""Fixed-window rate limiting keyed by tenant + client IP.

Counting is delegated to ``limits``. The default ``memory://`` storage keeps
counters in this process and expires them with the window; point
``RATE_LIMIT_STORAGE_URI`` at redis to share budgets across workers.
"""

import math
import time

from limits import RateLimitItemPerSecond
from limits.storage import Storage, storage_from_string
from limits.strategies import FixedWindowRateLimiter

from app.core.errors import RateLimitExceeded


class RateLimiter:
    def __init__(
        self,
        max_requests: int,
        window_seconds: int,
        storage: Storage | str = "memory://",
        message: str | None = None,
    ) -> None:
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.item = RateLimitItemPerSecond(max_requests, window_seconds)
        self.storage = storage_from_string(storage) if isinstance(storage, str) else storage
        self._strategy = FixedWindowRateLimiter(self.storage)
        self._message = message

    def hit(self, key: str) -> int:
        """Count one request for *key*; return how many remain in the window.

        Raises ``RateLimitExceeded`` once the window budget is spent.
        """
        allowed = self._strategy.hit(self.item, key)
        reset_at, remaining = self._strategy.get_window_stats(self.item, key)
        if not allowed:
            retry_after = max(1, math.ceil(reset_at - time.time()))
            raise RateLimitExceeded(self._message, retryAfter=retry_after)
        return remaining

    def clear(self) -> None:
        self.storage.reset()


def rate_limit_key(tenant: str | None, client_ip: str | None) -> str:
    return f"{tenant or 'anonymous'}:{client_ip or 'unknown'}"
