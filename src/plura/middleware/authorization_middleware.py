"""Access control dependencies for FastAPI endpoints.

Tenant routes read request.state.session (a TokenSession set by
TenantContextMiddleware). Admin routes accept either the admin-token cookie
(AdminSessionMiddleware) or a primary session flagged as admin.
"""

from dataclasses import dataclass
from typing import List, Optional

from fastapi import HTTPException, Request, status

from plura.constants import UNKNOWN_CLIENT_VALUE
from plura.middleware.admin_session_middleware import get_admin_session
from plura.middleware.tenant_context_middleware import require_session
from plura.repository.session_store_repository import TokenSession
from plura.service.audit_service import AuditActor


@dataclass
class TenantContext:
    """Request-scoped identity for tenant routes.

    Attributes:
        user_id: Authenticated user identifier
        agency_id: Agency of the caller, if any
        individual_id: Individual workspace of the caller, if any
        subaccount_ids: Subaccounts the caller may act on
        session: Full session, handed to services that scope queries
    """

    user_id: str
    agency_id: Optional[str]
    individual_id: Optional[str]
    subaccount_ids: List[str]
    session: TokenSession


@dataclass
class AdminContext:
    """Request-scoped identity for admin console routes.

    Attributes:
        user_id: Admin user identifier
        email: Admin email
        is_super_admin: Whether platform-wide writes are allowed
        ip_address: First x-forwarded-for entry, or "unknown"
        user_agent: Request user agent, or "unknown"
    """

    user_id: str
    email: str
    is_super_admin: bool
    ip_address: str = UNKNOWN_CLIENT_VALUE
    user_agent: str = UNKNOWN_CLIENT_VALUE

    def audit_actor(self) -> AuditActor:
        return AuditActor(
            admin_user_id=self.user_id,
            ip_address=self.ip_address,
            user_agent=self.user_agent,
        )


def client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.headers.get("x-real-ip") or UNKNOWN_CLIENT_VALUE


def _build_context(session: TokenSession) -> TenantContext:
    return TenantContext(
        user_id=session.user_id,
        agency_id=session.agency_id,
        individual_id=session.individual_id,
        subaccount_ids=list(session.subaccount_ids),
        session=session,
    )


async def require_authenticated(request: Request) -> TenantContext:
    """Require any authenticated session.

    Raises:
        HTTPException: 401 if no valid session
    """
    return _build_context(require_session(request))


async def require_admin(request: Request) -> AdminContext:
    """Require an admin cookie or an admin-flagged primary session.

    Raises:
        HTTPException: 401 if neither credential is present, 403 if the
            primary session has no admin membership
    """
    ip_address = client_ip(request)
    user_agent = request.headers.get("user-agent") or UNKNOWN_CLIENT_VALUE

    admin_session = get_admin_session(request)
    if admin_session:
        return AdminContext(
            user_id=admin_session.user_id,
            email=admin_session.email,
            is_super_admin=admin_session.is_super_admin,
            ip_address=ip_address,
            user_agent=user_agent,
        )

    session = getattr(request.state, "session", None)
    if not session:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
        )
    if not session.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return AdminContext(
        user_id=session.user_id,
        email=session.email,
        is_super_admin=session.is_super_admin,
        ip_address=ip_address,
        user_agent=user_agent,
    )


async def require_super_admin(request: Request) -> AdminContext:
    """Require super-admin rights.

    Raises:
        HTTPException: 401 if not authenticated, 403 if not a super admin
    """
    context = await require_admin(request)
    if not context.is_super_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Super admin access required",
        )
    return context
