"""Admin console sign-in and sign-out.

Runs beside the primary login: a successful sign-in sets the admin-token
cookie that AdminSessionMiddleware verifies on later requests.
"""

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, HTTPException, Request, Response, status
from pydantic import BaseModel

from plura.constants import ADMIN_TOKEN_COOKIE
from plura.exception import PluraException

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin/auth", tags=["admin-auth"])


class AdminSignInRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


class AdminSignInResponse(BaseModel):
    success: bool
    message: str
    user: Dict[str, Any]


def _secure_cookie(request: Request) -> bool:
    return getattr(request.app.state, "environment", "production") == "production"


@router.post("/sign-in", response_model=AdminSignInResponse)
async def admin_sign_in(body: AdminSignInRequest, request: Request, response: Response):
    """Check admin credentials and set the admin-token cookie.

    Raises:
        BadRequestError: 400 if email or password is missing
        AuthenticationError: 401 if credentials are invalid
    """
    admin_auth_service = request.app.state.admin_auth_service
    try:
        token, user = await admin_auth_service.sign_in(body.email, body.password)
        response.set_cookie(
            key=ADMIN_TOKEN_COOKIE,
            value=token,
            httponly=True,
            secure=_secure_cookie(request),
            samesite="lax",
            max_age=admin_auth_service.ttl_seconds,
            path="/",
        )
        return AdminSignInResponse(success=True, message="Signed in successfully", user=user)
    except (HTTPException, PluraException):
        raise
    except Exception as e:
        logger.error(f"Admin sign-in failed: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal server error",
        )


@router.post("/sign-out")
async def admin_sign_out(request: Request, response: Response):
    """Clear the admin-token cookie."""
    response.set_cookie(
        key=ADMIN_TOKEN_COOKIE,
        value="",
        httponly=True,
        secure=_secure_cookie(request),
        samesite="lax",
        max_age=0,
        path="/",
    )
    return {"success": True, "message": "Signed out successfully"}
