"""
API Middleware.
"""

from .auth import get_current_user
from .metrics import MetricsMiddleware, metrics_endpoint
from .rate_limit import RateLimitMiddleware

__all__ = ["get_current_user", "MetricsMiddleware", "metrics_endpoint", "RateLimitMiddleware"]
