"""Exception handling package.

Custom exception classes that the error handler middleware maps to HTTP
responses.
"""

from plura.exception.api_exceptions import (
    AuthenticationError,
    AuthorizationError,
    BadRequestError,
    PaymentProviderError,
    PluraException,
    ResourceAlreadyExistsError,
    ResourceNotFoundError,
    TenantIsolationError,
    ValidationError,
    WebhookSignatureError,
)

__all__ = [
    "AuthenticationError",
    "AuthorizationError",
    "BadRequestError",
    "PaymentProviderError",
    "PluraException",
    "ResourceAlreadyExistsError",
    "ResourceNotFoundError",
    "TenantIsolationError",
    "ValidationError",
    "WebhookSignatureError",
]
