"""Admin console cookie resolution.

Verifies the admin-token cookie issued by the admin sign-in route and
attaches the result to request.state.admin_session. The token is
self-contained, so no store lookup is needed.
"""

import logging

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from plura.constants import ADMIN_TOKEN_COOKIE

logger = logging.getLogger(__name__)


class AdminSessionMiddleware(BaseHTTPMiddleware):
    """Sets request.state.admin_session (AdminSession or None).

    The AdminAuthService is resolved lazily from app.state.
    """

    async def dispatch(self, request: Request, call_next):
        request.state.admin_session = None

        token = request.cookies.get(ADMIN_TOKEN_COOKIE)
        if token:
            admin_auth_service = getattr(request.app.state, "admin_auth_service", None)
            if admin_auth_service:
                request.state.admin_session = admin_auth_service.verify_admin_token(token)
                if request.state.admin_session is None:
                    logger.debug("Ignoring invalid admin-token cookie")

        return await call_next(request)


def get_admin_session(request: Request):
    """Get the AdminSession attached to this request, if any."""
    return getattr(request.state, "admin_session", None)
