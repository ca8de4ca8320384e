"""Custom exceptions for the Plura API.

All custom exceptions inherit from PluraException so the error handler
middleware can render them consistently.
"""

from typing import Any, Dict, Optional


class PluraException(Exception):
    """Base exception for all Plura errors."""

    def __init__(
        self,
        message: str,
        code: str = "INTERNAL_ERROR",
        status_code: int = 500,
        field: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        """Initialize Plura exception.

        Args:
            message: Human-readable error message
            code: Error code for programmatic handling
            status_code: HTTP status code
            field: Field name if validation error
            details: Additional error context
        """
        self.message = message
        self.code = code
        self.status_code = status_code
        self.field = field
        self.details = details or {}
        super().__init__(message)


# Authentication & Authorization Errors (401, 403)
class AuthenticationError(PluraException):
    """Authentication failed."""

    def __init__(self, message: str = "Authentication failed", **kwargs):
        super().__init__(
            message=message,
            code=kwargs.pop("code", "AUTHENTICATION_FAILED"),
            status_code=401,
            **kwargs,
        )


class AuthorizationError(PluraException):
    """Authorization failed - insufficient permissions."""

    def __init__(self, message: str = "Insufficient permissions", **kwargs):
        super().__init__(
            message=message,
            code=kwargs.pop("code", "AUTHORIZATION_FAILED"),
            status_code=403,
            **kwargs,
        )


class TenantIsolationError(AuthorizationError):
    """Caller touched a row owned by another agency or individual."""

    def __init__(
        self,
        message: str = "Access denied: resource belongs to another tenant",
        **kwargs,
    ):
        super().__init__(message=message, code="TENANT_ISOLATION_VIOLATION", **kwargs)


# Resource Errors (404, 409)
class ResourceNotFoundError(PluraException):
    """Requested resource not found."""

    def __init__(self, resource: str, resource_id: str, **kwargs):
        super().__init__(
            message=f"{resource} not found: {resource_id}",
            code="RESOURCE_NOT_FOUND",
            status_code=404,
            details={"resource": resource, "resource_id": resource_id},
            **kwargs,
        )


class ResourceAlreadyExistsError(PluraException):
    """Resource already exists."""

    def __init__(self, resource: str, identifier: str, **kwargs):
        super().__init__(
            message=f"{resource} already exists: {identifier}",
            code="RESOURCE_ALREADY_EXISTS",
            status_code=409,
            details={"resource": resource, "identifier": identifier},
            **kwargs,
        )


# Input Errors (400, 422)
class BadRequestError(PluraException):
    """Malformed or incomplete request."""

    def __init__(self, message: str, field: Optional[str] = None, **kwargs):
        super().__init__(
            message=message,
            code=kwargs.pop("code", "BAD_REQUEST"),
            status_code=400,
            field=field,
            **kwargs,
        )


class ValidationError(PluraException):
    """Validation error."""

    def __init__(self, message: str, field: Optional[str] = None, **kwargs):
        super().__init__(
            message=message,
            code=kwargs.pop("code", "VALIDATION_ERROR"),
            status_code=422,
            field=field,
            **kwargs,
        )


# Payment provider errors
class PaymentProviderError(PluraException):
    """Stripe call failed or returned an unusable payload."""

    def __init__(self, message: str, provider: str = "stripe", **kwargs):
        details = kwargs.pop("details", {})
        details["provider"] = provider

        super().__init__(
            message=message,
            code=kwargs.pop("code", "PAYMENT_PROVIDER_ERROR"),
            status_code=kwargs.pop("status_code", 502),
            details=details,
            **kwargs,
        )


class WebhookSignatureError(PaymentProviderError):
    """Incoming webhook failed signature verification."""

    def __init__(self, message: str = "Invalid webhook signature", **kwargs):
        super().__init__(
            message=message,
            code="WEBHOOK_SIGNATURE_INVALID",
            status_code=400,
            **kwargs,
        )
