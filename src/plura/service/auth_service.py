"""Authentication service for the primary login.

Verifies email/password credentials, issues a JWT whose jti (a ULID) keys a
Redis session, and resolves the tenant scope stored in that session.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt
from passlib.context import CryptContext

from plura.exception import AuthenticationError
from plura.repository.session_store_repository import (
    SessionStoreRepository,
    TokenSession,
)
from plura.repository.subaccount_repository import SubAccountRepository
from plura.repository.user_repository import UserRepository

logger = logging.getLogger(__name__)

_pwd_context = CryptContext(schemes=["argon2"], deprecated="auto")


def hash_password(plain: str) -> str:
    """Hash a plain-text password using argon2."""
    return _pwd_context.hash(plain)


def verify_password(plain: str, stored_hash: Optional[str]) -> bool:
    """Verify a password against a stored argon2 hash.

    Malformed or missing hashes never verify.
    """
    if not stored_hash:
        return False
    try:
        return _pwd_context.verify(plain, stored_hash)
    except ValueError:
        return False


def build_session_jwt(
    user_id: str,
    jti: str,
    secret_key: str,
    algorithm: str,
    ttl_seconds: int,
) -> str:
    """Build a signed JWT carrying only the subject and the session jti.

    Args:
        user_id: Subject (user identifier)
        jti: ULID used as Redis session key
        secret_key: HMAC signing key
        algorithm: JWT algorithm (e.g. HS256)
        ttl_seconds: Token lifetime in seconds

    Returns:
        Encoded JWT string
    """
    now = datetime.now(timezone.utc)
    payload = {
        "sub": user_id,
        "jti": jti,
        "iat": now,
        "exp": now + timedelta(seconds=ttl_seconds),
    }
    return jwt.encode(payload, secret_key, algorithm=algorithm)


class AuthService:
    """Handles login, logout and identity lookup for the primary session.

    Attributes:
        user_repo: User repository for credential lookup
        subaccount_repo: Subaccount repository for tenant scope resolution
        session_store: Redis session store
        secret_key: JWT signing key
        algorithm: JWT algorithm
        token_ttl_seconds: Session and JWT lifetime in seconds
    """

    def __init__(
        self,
        user_repo: UserRepository,
        subaccount_repo: SubAccountRepository,
        session_store: SessionStoreRepository,
        secret_key: str,
        algorithm: str = "HS256",
        token_ttl_seconds: int = 1800,
    ):
        self.user_repo = user_repo
        self.subaccount_repo = subaccount_repo
        self.session_store = session_store
        self.secret_key = secret_key
        self.algorithm = algorithm
        self.token_ttl_seconds = token_ttl_seconds

    async def login(self, email: str, password: str) -> Dict[str, str]:
        """Authenticate a user and issue a JWT with a ULID jti.

        Args:
            email: Account email
            password: Plain-text password

        Returns:
            Dict with 'token' key containing the signed JWT

        Raises:
            AuthenticationError: If credentials are invalid or the account is
                suspended
        """
        user = await self.user_repo.get_by_email(email)
        if not user or not verify_password(password, user.password_hash):
            raise AuthenticationError("Invalid credentials")
        if not user.is_active:
            raise AuthenticationError("Account is suspended")

        agency_id = str(user.agency_id) if user.agency_id else None
        individual_id = str(user.individual.id) if user.individual else None
        subaccount_ids = await self.subaccount_repo.list_ids_for_owner(
            agency_id=agency_id, individual_id=individual_id
        )
        admin_membership = user.admin_user

        session = await self.session_store.create_session(
            user_id=str(user.id),
            email=user.email,
            name=user.name,
            role=user.role,
            plan=user.plan,
            agency_id=agency_id,
            individual_id=individual_id,
            subaccount_ids=subaccount_ids,
            is_admin=admin_membership is not None,
            is_super_admin=bool(admin_membership and admin_membership.is_super_admin),
            ttl_seconds=self.token_ttl_seconds,
        )
        await self.user_repo.update(user.id, last_login_at=datetime.now(timezone.utc))

        token = build_session_jwt(
            user_id=str(user.id),
            jti=session.jti,
            secret_key=self.secret_key,
            algorithm=self.algorithm,
            ttl_seconds=self.token_ttl_seconds,
        )

        logger.info(f"User logged in: user_id={user.id}")
        return {"token": token}

    async def logout(self, jti: str) -> None:
        await self.session_store.delete_session(jti)
        logger.info(f"Session revoked: jti={jti}")

    @staticmethod
    def describe_session(session: TokenSession) -> Dict[str, Any]:
        """Shape the identity returned by GET /api/me."""
        return {
            "userId": session.user_id,
            "email": session.email,
            "name": session.name,
            "role": session.role,
            "plan": session.plan,
            "agencyId": session.agency_id,
            "individualId": session.individual_id,
            "subaccountIds": session.subaccount_ids,
            "isAdmin": session.is_admin,
            "isSuperAdmin": session.is_super_admin,
            "expiresAt": session.expires_at,
        }
