"""Middleware components.

This package provides middleware for session resolution, request routing,
rate limiting and error handling.
"""

from plura.middleware.admin_session_middleware import AdminSessionMiddleware
from plura.middleware.error_handler_middleware import (
    ErrorHandlerMiddleware,
    install_exception_handlers,
)
from plura.middleware.rate_limiting_middleware import RateLimitMiddleware
from plura.middleware.request_routing_middleware import RequestRoutingMiddleware
from plura.middleware.tenant_context_middleware import (
    TenantContextMiddleware,
    get_session,
    require_session,
)

__all__ = [
    "AdminSessionMiddleware",
    "ErrorHandlerMiddleware",
    "RateLimitMiddleware",
    "RequestRoutingMiddleware",
    "TenantContextMiddleware",
    "install_exception_handlers",
    "get_session",
    "require_session",
]
