"""Error handling middleware for the Plura API.

Catches every exception escaping a route and renders the shared error
envelope from plura.controller.schemas.responses.
"""

import logging
import traceback
import uuid
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError
from starlette.datastructures import MutableHeaders
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.types import ASGIApp, Receive, Scope, Send

from plura.controller.schemas.responses import ErrorDetail, error_response
from plura.exception.api_exceptions import PluraException

logger = logging.getLogger(__name__)

STATUS_CODE_MAP = {
    400: "BAD_REQUEST",
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    409: "CONFLICT",
    422: "UNPROCESSABLE_ENTITY",
    429: "TOO_MANY_REQUESTS",
    500: "INTERNAL_SERVER_ERROR",
    502: "BAD_GATEWAY",
    503: "SERVICE_UNAVAILABLE",
    504: "GATEWAY_TIMEOUT",
}


class ErrorHandlerMiddleware:
    """Pure ASGI middleware that formats all exceptions and tags responses
    with X-Request-ID."""

    def __init__(self, app: ASGIApp):
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request = Request(scope, receive=receive)
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id

        response_started = False

        async def send_with_request_id(message: dict) -> None:
            nonlocal response_started
            if message["type"] == "http.response.start":
                response_started = True
                headers = MutableHeaders(scope=message)
                headers.append("X-Request-ID", request_id)
            await send(message)

        try:
            await self.app(scope, receive, send_with_request_id)
        except Exception as exc:
            if response_started:
                raise
            response = self.handle_exception(request, exc, request_id)
            await response(scope, receive, send)

    @classmethod
    def handle_exception(
        cls, request: Request, exc: Exception, request_id: str
    ) -> JSONResponse:
        """Map an exception to a JSON error response.

        Args:
            request: Request that caused the exception
            exc: Exception that was raised
            request_id: Request ID for tracing

        Returns:
            JSONResponse with the error envelope
        """
        debug_mode = getattr(request.app.state, "debug", False)
        environment = getattr(request.app.state, "environment", "production")
        show_stack_trace = debug_mode or environment == "development"
        stack_trace = traceback.format_exc() if show_stack_trace else None

        path = request.url.path
        method = request.method
        cls._log(exc, request_id, path, method)

        headers: Dict[str, str] = {"X-Request-ID": request_id}

        if isinstance(exc, PluraException):
            status_code = exc.status_code
            content = error_response(
                code=exc.code,
                message=exc.message,
                field=exc.field,
                details=exc.details,
                request_id=request_id,
                path=path,
                method=method,
                stack_trace=stack_trace,
            )
        elif isinstance(exc, (RequestValidationError, PydanticValidationError)):
            status_code = status.HTTP_422_UNPROCESSABLE_CONTENT
            from_request = isinstance(exc, RequestValidationError)
            content = error_response(
                code="VALIDATION_ERROR",
                message="Request validation failed" if from_request else "Data validation failed",
                errors=cls._validation_details(exc.errors(), include_input=from_request),
                request_id=request_id,
                path=path,
                method=method,
                stack_trace=stack_trace,
            )
        elif isinstance(exc, StarletteHTTPException):
            status_code = exc.status_code
            headers.update(exc.headers or {})
            content = error_response(
                code=STATUS_CODE_MAP.get(exc.status_code, "HTTP_ERROR"),
                message=str(exc.detail),
                request_id=request_id,
                path=path,
                method=method,
                details={"status_code": exc.status_code},
                stack_trace=stack_trace,
            )
        else:
            status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
            content = error_response(
                code="INTERNAL_ERROR",
                message=str(exc) if show_stack_trace else "An internal error occurred",
                request_id=request_id,
                path=path,
                method=method,
                details=(
                    {"exception_type": type(exc).__name__} if show_stack_trace else None
                ),
                stack_trace=stack_trace,
            )

        return JSONResponse(status_code=status_code, content=content, headers=headers)

    @staticmethod
    def _log(exc: Exception, request_id: str, path: str, method: str) -> None:
        extra = {
            "request_id": request_id,
            "path": path,
            "method": method,
            "exception": str(exc),
            "exception_type": type(exc).__name__,
        }
        # client errors are expected traffic; keep tracebacks for server faults
        client_error = (
            isinstance(exc, PluraException) and exc.status_code < 500
        ) or (isinstance(exc, StarletteHTTPException) and exc.status_code < 500)
        if client_error:
            logger.warning(f"Request rejected: {method} {path}: {exc}", extra=extra)
        else:
            logger.error(f"Error processing request: {method} {path}", extra=extra, exc_info=True)

    @staticmethod
    def _validation_details(
        errors: List[Dict[str, Any]], include_input: bool
    ) -> List[ErrorDetail]:
        details = []
        for error in errors:
            extra: Dict[str, Optional[Any]] = {"type": error["type"]}
            if include_input:
                extra["input"] = error.get("input")
            details.append(
                ErrorDetail(
                    code="VALIDATION_ERROR",
                    message=error["msg"],
                    field=" -> ".join(str(loc) for loc in error["loc"]),
                    details=extra,
                )
            )
        return details


async def _render_handled_exception(request: Request, exc: Exception) -> JSONResponse:
    request_id = getattr(request.state, "request_id", None)
    response = ErrorHandlerMiddleware.handle_exception(
        request, exc, request_id or str(uuid.uuid4())
    )
    if request_id:
        # the middleware tags the response on the way out
        del response.headers["X-Request-ID"]
    return response


def install_exception_handlers(app: FastAPI) -> None:
    """Render HTTPException and request validation errors with the shared envelope.

    FastAPI answers these two itself, so they never reach the middleware.
    """
    app.add_exception_handler(StarletteHTTPException, _render_handled_exception)
    app.add_exception_handler(RequestValidationError, _render_handled_exception)
