"""Host and path based request routing.

Resolves tenant subdomains to site paths, sends legacy auth paths to the
agency sign-in page, and gates everything that is not on the public route
table behind a session. The decision is a pure function of the request
line, the Host header and whether a session is present, so it is tested
without an ASGI stack.
"""

import logging
import re
from dataclasses import dataclass
from typing import Optional, Pattern, Tuple

from fastapi import status
from fastapi.responses import JSONResponse, RedirectResponse
from starlette.types import ASGIApp, Receive, Scope, Send

from plura.constants import (
    ADMIN_PATH_PREFIXES,
    AGENCY_SIGN_IN_PATH,
    AUTH_REDIRECT_PATHS,
    IGNORED_ROUTES,
    PASS_THROUGH_PREFIXES,
    PUBLIC_ROUTES,
    SITE_PATH,
)
from plura.controller.schemas.responses import error_response

logger = logging.getLogger(__name__)

PASS = "pass"
REWRITE = "rewrite"
REDIRECT = "redirect"
UNAUTHORIZED = "unauthorized"


def compile_route_pattern(route: str) -> Pattern[str]:
    """Compile a route table entry; ':path*' matches any number of segments."""
    return re.compile(route.replace(":path*", ".*"))


PUBLIC_ROUTE_PATTERNS: Tuple[Pattern[str], ...] = tuple(
    compile_route_pattern(route) for route in PUBLIC_ROUTES
)


@dataclass(frozen=True)
class RoutingDecision:
    """What to do with a request.

    Attributes:
        action: pass, rewrite, redirect or unauthorized
        path: Rewritten path or redirect target, when relevant
    """

    action: str
    path: Optional[str] = None


def is_public_route(path: str) -> bool:
    return any(pattern.fullmatch(path) for pattern in PUBLIC_ROUTE_PATTERNS)


def extract_subdomain(host: str, domain: str) -> Optional[str]:
    """Return the tenant subdomain of host, or None.

    Only hosts of the form <sub>.<domain> carry a subdomain; any other host,
    including the bare domain, does not.
    """
    if not host or not domain:
        return None
    suffix = f".{domain.lower()}"
    host = host.lower()
    if host.endswith(suffix) and len(host) > len(suffix):
        return host[: -len(suffix)]
    return None


def decide_route(
    host: str, path: str, domain: str, authenticated: bool
) -> RoutingDecision:
    """Compute the routing decision for one request.

    Args:
        host: Host header value
        path: Request path
        domain: Configured public domain
        authenticated: Whether a primary or admin session is present

    Returns:
        RoutingDecision
    """
    if path.startswith(ADMIN_PATH_PREFIXES):
        return RoutingDecision(PASS)
    if path in IGNORED_ROUTES:
        return RoutingDecision(PASS)

    subdomain = extract_subdomain(host, domain)
    if subdomain:
        return RoutingDecision(REWRITE, f"/{subdomain}{path}")

    if "/individual/" in path and "/(auth)/" in path:
        return RoutingDecision(PASS)
    if path in AUTH_REDIRECT_PATHS:
        return RoutingDecision(REDIRECT, AGENCY_SIGN_IN_PATH)
    if path == "/" or (path == SITE_PATH and host == domain):
        return RoutingDecision(REWRITE, SITE_PATH)
    if path.startswith(PASS_THROUGH_PREFIXES):
        return RoutingDecision(PASS)

    if is_public_route(path) or authenticated:
        return RoutingDecision(PASS)
    if path.startswith("/api/"):
        return RoutingDecision(UNAUTHORIZED)
    return RoutingDecision(REDIRECT, AGENCY_SIGN_IN_PATH)


class RequestRoutingMiddleware:
    """Pure ASGI middleware applying decide_route.

    Must run inside TenantContextMiddleware and AdminSessionMiddleware so
    scope["state"] already carries the session lookups.

    Attributes:
        domain: Public domain tenant subdomains hang off
    """

    def __init__(self, app: ASGIApp, domain: str):
        self.app = app
        self.domain = domain

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http" or scope["method"] == "OPTIONS":
            await self.app(scope, receive, send)
            return

        host = ""
        for name, value in scope.get("headers", []):
            if name == b"host":
                host = value.decode("latin-1")
                break

        state = scope.get("state") or {}
        authenticated = bool(state.get("session") or state.get("admin_session"))
        path = scope["path"]
        decision = decide_route(host, path, self.domain, authenticated)

        if decision.action == REWRITE and decision.path != path:
            logger.debug(f"Rewriting {host}{path} -> {decision.path}")
            scope = dict(scope)
            scope["path"] = decision.path
            scope["raw_path"] = decision.path.encode("utf-8")
        elif decision.action == REDIRECT:
            response = RedirectResponse(
                decision.path, status_code=status.HTTP_307_TEMPORARY_REDIRECT
            )
            await response(scope, receive, send)
            return
        elif decision.action == UNAUTHORIZED:
            response = JSONResponse(
                status_code=status.HTTP_401_UNAUTHORIZED,
                content=error_response(
                    code="UNAUTHORIZED",
                    message="Authentication required",
                    path=path,
                    method=scope["method"],
                ),
            )
            await response(scope, receive, send)
            return

        await self.app(scope, receive, send)
