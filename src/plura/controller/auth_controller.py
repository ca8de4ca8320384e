"""Authentication API endpoints.

Endpoints:
  POST   /api/auth/login    issue JWT (no auth required)
  DELETE /api/auth/logout   revoke current session (auth required)
  GET    /api/me            identity of the current session (auth required)
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import BaseModel, Field

from plura.exception import PluraException
from plura.middleware.authorization_middleware import (
    TenantContext,
    require_authenticated,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["auth"])


class LoginRequest(BaseModel):
    """Login credentials.

    Attributes:
        email: Account email
        password: Plain-text password
    """

    email: str = Field(..., min_length=1, description="Email")
    password: str = Field(..., min_length=1, description="Password")


class LoginResponse(BaseModel):
    """Successful login response.

    Attributes:
        token: Signed JWT; use as 'Authorization: Bearer <token>'
    """

    token: str


class MeResponse(BaseModel):
    userId: str
    email: str
    name: str
    role: str
    plan: str
    agencyId: Optional[str] = None
    individualId: Optional[str] = None
    subaccountIds: List[str] = []
    isAdmin: bool = False
    isSuperAdmin: bool = False
    expiresAt: Optional[str] = None


@router.post(
    "/api/auth/login",
    response_model=LoginResponse,
    status_code=status.HTTP_200_OK,
)
async def login(login_request: LoginRequest, request: Request):
    """Authenticate and receive a JWT.

    The JWT carries only sub (user_id) and jti (ULID session key).
    Tenant data lives in Redis and is resolved per request.

    Raises:
        AuthenticationError: 401 if credentials are invalid or the account
            is suspended
    """
    auth_service = request.app.state.auth_service
    try:
        result = await auth_service.login(
            email=login_request.email,
            password=login_request.password,
        )
        return LoginResponse(token=result["token"])
    except (HTTPException, PluraException):
        raise
    except Exception as e:
        logger.error(f"Login failed: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Login failed",
        )


@router.delete(
    "/api/auth/logout",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_authenticated)],
)
async def logout(request: Request):
    """Revoke the current session token."""
    auth_service = request.app.state.auth_service
    try:
        jti = getattr(request.state, "token_jti", None)
        if jti:
            await auth_service.logout(jti)
    except Exception as e:
        logger.error(f"Logout failed: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Logout failed",
        )


@router.get("/api/me", response_model=MeResponse)
async def get_me(
    request: Request,
    context: TenantContext = Depends(require_authenticated),
):
    """Return the identity stored in the caller's session."""
    auth_service = request.app.state.auth_service
    return MeResponse(**auth_service.describe_session(context.session))
