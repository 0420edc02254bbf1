"""
Prometheus metrics middleware for the Teams AI Agent API.

Exposes /metrics endpoint with request counters, latency histograms,
and chat/tool metrics.
"""

import time

from fastapi import Request, Response
from prometheus_client import (
    Counter, Histogram, Gauge,
    generate_latest, CONTENT_TYPE_LATEST,
)
from starlette.middleware.base import BaseHTTPMiddleware


# Request metrics
REQUEST_COUNT = Counter(
    "agent_http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status_code"],
)
REQUEST_LATENCY = Histogram(
    "agent_http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint"],
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)
ACTIVE_REQUESTS = Gauge(
    "agent_http_active_requests",
    "Currently active HTTP requests",
)

# Chat metrics
CHAT_TURNS = Counter(
    "agent_chat_turns_total",
    "Chat turns by mode and outcome",
    ["mode", "outcome"],
)
CHAT_LATENCY = Histogram(
    "agent_chat_duration_seconds",
    "End-to-end chat turn latency",
    ["mode"],
    buckets=[0.25, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0, 60.0],
)
TOOL_INVOCATIONS = Counter(
    "agent_tool_invocations_total",
    "MCP tool invocations by outcome",
    ["outcome"],
)


def record_chat_turn(mode: str, outcome: str, seconds: float):
    """Record a finished chat turn."""
    CHAT_TURNS.labels(mode=mode, outcome=outcome).inc()
    CHAT_LATENCY.labels(mode=mode).observe(seconds)


def record_tool_invocation(success: bool):
    """Record a tool invocation outcome."""
    TOOL_INVOCATIONS.labels(outcome="success" if success else "failure").inc()


def _endpoint_label(request: Request) -> str:
    """Route template (e.g. /api/agent/history/{user_id}) so user ids stay out of labels."""
    route = request.scope.get("route")
    return getattr(route, "path", None) or "unmatched"


class MetricsMiddleware(BaseHTTPMiddleware):
    """Middleware that records HTTP request metrics."""

    async def dispatch(self, request: Request, call_next):
        if request.url.path == "/metrics":
            return await call_next(request)

        ACTIVE_REQUESTS.inc()
        start = time.time()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            endpoint = _endpoint_label(request)
            REQUEST_COUNT.labels(
                method=request.method,
                endpoint=endpoint,
                status_code=status_code,
            ).inc()
            REQUEST_LATENCY.labels(method=request.method, endpoint=endpoint).observe(time.time() - start)
            ACTIVE_REQUESTS.dec()


async def metrics_endpoint(request: Request) -> Response:
    """Prometheus metrics endpoint."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
