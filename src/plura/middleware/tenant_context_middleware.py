"""Primary session resolution for every request.

Extracts the JWT from the Authorization header, validates the signature,
then resolves the session from Redis using the JWT's jti (ULID).

The resolved session is attached to request.state for downstream
dependencies and for the request routing gate. Tenant data (agency,
individual, reachable subaccounts) lives in Redis, not in the JWT.
"""

import logging
from typing import Optional

import jwt
from fastapi import HTTPException, Request, status
from starlette.middleware.base import BaseHTTPMiddleware

from plura.repository.session_store_repository import TokenSession

logger = logging.getLogger(__name__)


class TenantContextMiddleware(BaseHTTPMiddleware):
    """Validates the Bearer JWT and loads the Redis session.

    Sets request.state.session (TokenSession or None) and
    request.state.token_jti (str or None).

    The session store is resolved lazily from app.state at request time so
    middleware can be registered before the lifespan starts.

    Attributes:
        jwt_secret: Secret key for JWT signature verification
        jwt_algorithm: JWT algorithm (default HS256)
    """

    def __init__(self, app, jwt_secret: str, jwt_algorithm: str = "HS256"):
        super().__init__(app)
        self.jwt_secret = jwt_secret
        self.jwt_algorithm = jwt_algorithm

    async def dispatch(self, request: Request, call_next):
        request.state.session = None
        request.state.token_jti = None

        bearer = self._extract_bearer(request)
        if bearer:
            jti = self._decode_jwt_jti(bearer)
            if jti:
                session_store = getattr(request.app.state, "session_store", None)
                if session_store:
                    session = await session_store.get_session(jti)
                    if session:
                        request.state.session = session
                        request.state.token_jti = jti

        return await call_next(request)

    @staticmethod
    def _extract_bearer(request: Request) -> Optional[str]:
        auth = request.headers.get("Authorization", "")
        if auth.startswith("Bearer "):
            return auth[7:]
        return None

    def _decode_jwt_jti(self, token: str) -> Optional[str]:
        """Decode the JWT and extract the jti claim.

        Args:
            token: JWT string

        Returns:
            jti string or None if the token is invalid or expired
        """
        try:
            payload = jwt.decode(
                token,
                self.jwt_secret,
                algorithms=[self.jwt_algorithm],
            )
            return payload.get("jti")
        except jwt.PyJWTError as e:
            logger.debug(f"JWT decode failed: {e}")
            return None


def get_session(request: Request) -> Optional[TokenSession]:
    """Get the TokenSession attached to this request, if any."""
    return getattr(request.state, "session", None)


def require_session(request: Request) -> TokenSession:
    """Get the TokenSession or raise 401.

    Raises:
        HTTPException: 401 if no valid session
    """
    session = get_session(request)
    if not session:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
        )
    return session
