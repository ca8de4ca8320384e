"""Admin console authentication.

Runs in parallel to the primary session: admins sign in with their own
credentials and receive a short JWT in the admin-token cookie. The token is
self-contained (no Redis lookup) and signed with a separate secret.
"""

import hmac
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional, Tuple

import jwt

from plura.constants import ADMIN_ROLE, ADMIN_TOKEN_ALGORITHM, ADMIN_TOKEN_TTL_HOURS
from plura.exception import AuthenticationError, BadRequestError
from plura.infrastructure.persistence.postgresql.models import User
from plura.repository.user_repository import UserRepository
from plura.service.auth_service import verify_password

logger = logging.getLogger(__name__)

BOOTSTRAP_ADMIN_NAME = "Platform Admin"
BOOTSTRAP_ADMIN_ROLE = "AGENCY_OWNER"


@dataclass
class AdminSession:
    """Verified contents of an admin-token cookie.

    Attributes:
        user_id: Admin user identifier
        email: Admin email
        is_admin: Always true for a verified token
        is_super_admin: Whether the admin may change platform-wide state
        expires_at: Token expiry as a unix timestamp
    """

    user_id: str
    email: str
    is_admin: bool
    is_super_admin: bool
    expires_at: int


class AdminAuthService:
    """Issues and verifies admin-token cookies.

    Attributes:
        user_repo: User repository for admin lookup
        secret: HMAC secret for the admin JWT
        ttl_hours: Token lifetime
        bootstrap_email: Configured bootstrap admin email
        bootstrap_password: Configured bootstrap admin password
    """

    def __init__(
        self,
        user_repo: UserRepository,
        secret: str,
        ttl_hours: int = ADMIN_TOKEN_TTL_HOURS,
        bootstrap_email: Optional[str] = None,
        bootstrap_password: Optional[str] = None,
    ):
        self.user_repo = user_repo
        self.secret = secret
        self.ttl_hours = ttl_hours
        self.bootstrap_email = bootstrap_email
        self.bootstrap_password = bootstrap_password

    @property
    def ttl_seconds(self) -> int:
        return self.ttl_hours * 3600

    def create_admin_token(
        self, user_id: str, email: str, is_super_admin: bool = False
    ) -> str:
        """Sign an admin JWT.

        Args:
            user_id: Admin user identifier
            email: Admin email
            is_super_admin: Super-admin flag carried in the token

        Returns:
            Encoded HS256 JWT
        """
        now = datetime.now(timezone.utc)
        payload = {
            "userId": user_id,
            "email": email,
            "role": ADMIN_ROLE,
            "isAdmin": True,
            "isSuperAdmin": is_super_admin,
            "iat": now,
            "exp": now + timedelta(hours=self.ttl_hours),
        }
        return jwt.encode(payload, self.secret, algorithm=ADMIN_TOKEN_ALGORITHM)

    def verify_admin_token(self, token: Optional[str]) -> Optional[AdminSession]:
        """Decode an admin JWT.

        Returns:
            AdminSession when the signature and expiry are valid and the role
            is admin, None otherwise
        """
        if not token:
            return None
        try:
            payload = jwt.decode(
                token, self.secret, algorithms=[ADMIN_TOKEN_ALGORITHM]
            )
        except jwt.PyJWTError as e:
            logger.debug(f"Admin token rejected: {e}")
            return None

        user_id = payload.get("userId")
        if payload.get("role") != ADMIN_ROLE or not isinstance(user_id, str):
            return None

        return AdminSession(
            user_id=user_id,
            email=payload.get("email", ""),
            is_admin=True,
            is_super_admin=bool(payload.get("isSuperAdmin", False)),
            expires_at=int(payload["exp"]),
        )

    def _is_bootstrap_credential(self, email: str, password: str) -> bool:
        if not self.bootstrap_email or not self.bootstrap_password:
            return False
        return hmac.compare_digest(
            email.lower(), self.bootstrap_email.lower()
        ) and hmac.compare_digest(password, self.bootstrap_password)

    async def _ensure_bootstrap_admin(self, email: str) -> Tuple[User, bool]:
        user = await self.user_repo.get_by_email(email)
        if user is None:
            user = await self.user_repo.create(
                name=BOOTSTRAP_ADMIN_NAME, email=email, role=BOOTSTRAP_ADMIN_ROLE
            )
            logger.info(f"Bootstrap admin user created: {email}")
        membership = await self.user_repo.get_admin_membership(user.id)
        if membership is None:
            membership = await self.user_repo.create_admin_membership(
                user.id, is_super_admin=True
            )
        return user, membership.is_super_admin

    async def sign_in(self, email: str, password: str) -> Tuple[str, Dict[str, Any]]:
        """Authenticate an admin and issue the cookie token.

        The configured bootstrap credential is accepted first and provisions
        the admin row on first use. Otherwise the user must hold an admin
        membership and a matching password hash.

        Args:
            email: Admin email
            password: Plain-text password

        Returns:
            Tuple of (token, user summary)

        Raises:
            BadRequestError: If email or password is missing
            AuthenticationError: If credentials are invalid
        """
        if not email or not password:
            raise BadRequestError("Email and password are required")

        if self._is_bootstrap_credential(email, password):
            user, is_super_admin = await self._ensure_bootstrap_admin(email)
        else:
            user = await self.user_repo.get_by_email(email)
            if (
                user is None
                or user.admin_user is None
                or not user.is_active
                or not verify_password(password, user.password_hash)
            ):
                logger.info(f"Admin sign-in rejected for {email}")
                raise AuthenticationError("Invalid credentials")
            is_super_admin = user.admin_user.is_super_admin

        await self.user_repo.update(user.id, last_login_at=datetime.now(timezone.utc))
        token = self.create_admin_token(str(user.id), user.email, is_super_admin)

        logger.info(f"Admin signed in: user_id={user.id}")
        return token, {
            "id": str(user.id),
            "email": user.email,
            "name": user.name,
            "isSuperAdmin": is_super_admin,
        }
