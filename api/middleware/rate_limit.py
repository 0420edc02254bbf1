"""
Rate limiting middleware for the Teams AI Agent API.

Each client (bearer token prefix, else remote IP) may make max_requests
calls per window_seconds. Over the limit the API answers 429 with the
usual {success, error} body.
"""

import logging
import time
from collections import deque
from typing import Deque, Dict

from fastapi import Request, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)

UNLIMITED_PATHS = frozenset({"/health", "/metrics", "/docs", "/redoc", "/openapi.json"})

RATE_LIMIT_MESSAGE = "Too many requests from this client, please try again later."


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Sliding-window rate limiter."""

    def __init__(self, app, max_requests: int = 100, window_seconds: int = 900):
        super().__init__(app)
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._hits: Dict[str, Deque[float]] = {}

    async def dispatch(self, request: Request, call_next):
        # CORS preflight and monitoring are never counted
        if request.method == "OPTIONS" or request.url.path in UNLIMITED_PATHS:
            return await call_next(request)

        client_id = self._client_id(request)
        now = time.time()
        hits = self._window(client_id, now)

        if len(hits) >= self.max_requests:
            retry_after = int(hits[0] + self.window_seconds - now) + 1
            logger.warning(f"Rate limit exceeded for {client_id}")
            return JSONResponse(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                content={"success": False, "error": RATE_LIMIT_MESSAGE},
                headers={"Retry-After": str(max(retry_after, 1))},
            )

        hits.append(now)
        response = await call_next(request)
        response.headers["X-RateLimit-Limit"] = str(self.max_requests)
        response.headers["X-RateLimit-Remaining"] = str(max(0, self.max_requests - len(hits)))
        return response

    def _window(self, client_id: str, now: float) -> Deque[float]:
        """Hits for a client inside the current window, oldest first."""
        hits = self._hits.setdefault(client_id, deque())
        cutoff = now - self.window_seconds
        while hits and hits[0] <= cutoff:
            hits.popleft()
        return hits

    @staticmethod
    def _client_id(request: Request) -> str:
        auth = request.headers.get("Authorization", "")
        if auth.startswith("Bearer ") and len(auth) > 7:
            return f"token:{auth[7:23]}"
        return f"ip:{request.client.host}" if request.client else "ip:unknown"
