"""In-memory sliding-window rate limiting for the unauthenticated auth endpoints."""

import time
from collections import defaultdict, deque
from typing import Deque, Dict

from fastapi import Request

from exceptions import SplitSmartError


class RateLimitExceeded(SplitSmartError):
    status_code = 429


class RateLimiter:
    """
    FastAPI dependency allowing ``requests_limit`` calls per client within
    ``time_window`` seconds.

    State is per process. Idle clients are dropped every ``sweep_interval``
    seconds so the table does not grow without bound.
    """

    def __init__(self, requests_limit: int, time_window: int, sweep_interval: int = 600):
        self.requests_limit = requests_limit
        self.time_window = time_window
        self.sweep_interval = sweep_interval
        self.ip_requests: Dict[str, Deque[float]] = defaultdict(deque)
        self._last_sweep = time.monotonic()

    @staticmethod
    def client_key(request: Request) -> str:
        # Behind a proxy the first X-Forwarded-For entry is the original client
        forwarded_for = request.headers.get("X-Forwarded-For")
        if forwarded_for:
            return forwarded_for.split(",")[0].strip()
        if request.client and request.client.host:
            return request.client.host
        return "unknown"

    async def __call__(self, request: Request):
        now = time.monotonic()
        if now - self._last_sweep > self.sweep_interval:
            self._sweep(now)

        hits = self.ip_requests[self.client_key(request)]
        while hits and now - hits[0] >= self.time_window:
            hits.popleft()

        if len(hits) >= self.requests_limit:
            raise RateLimitExceeded("Too many requests. Please try again later.")

        hits.append(now)
        return True

    def _sweep(self, now: float):
        idle = [key for key, hits in self.ip_requests.items() if not hits or now - hits[-1] > self.time_window]
        for key in idle:
            del self.ip_requests[key]
        self._last_sweep = now


# Shared by register and login: 5 attempts per client per minute
auth_rate_limiter = RateLimiter(requests_limit=5, time_window=60)
