"""Middleware modules for FastAPI application"""
from .rate_limit import RateLimitMiddleware
from .security_headers import SecurityHeadersMiddleware
from .timeout import CustomTimeoutMiddleware

__all__ = ["RateLimitMiddleware", "SecurityHeadersMiddleware", "CustomTimeoutMiddleware"]
