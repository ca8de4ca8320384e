"""Redis-backed session store for the primary login.

Sessions are keyed by the JWT's jti (a ULID) so that deleting the Redis key
revokes the token before it expires. The payload carries everything route
handlers need to scope queries by tenant without another database read.

Redis key layout:
  session:{jti}           JSON session payload, with TTL
  user_sessions:{user_id} set of active jti values, for bulk revocation
"""

import json
import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from ulid import ULID

from plura.constants import DEFAULT_SESSION_TTL_SECONDS

logger = logging.getLogger(__name__)

SESSION_KEY_PREFIX = "session"
USER_SESSIONS_KEY_PREFIX = "user_sessions"


def _session_key(jti: str) -> str:
    return f"{SESSION_KEY_PREFIX}:{jti}"


def _user_sessions_key(user_id: str) -> str:
    return f"{USER_SESSIONS_KEY_PREFIX}:{user_id}"


@dataclass
class TokenSession:
    """Primary login session as stored in Redis.

    Attributes:
        jti: ULID used as Redis key and JWT jti claim
        user_id: Authenticated user identifier
        email: User email, used for checkout and notifications
        name: Display name
        role: Platform role (AGENCY_OWNER, SUBACCOUNT_USER, ...)
        plan: User plan, drives marketplace commission
        agency_id: Agency the user belongs to, if any
        individual_id: Individual workspace owned by the user, if any
        subaccount_ids: Subaccounts reachable through agency or individual
        is_admin: Holds an admin console membership
        is_super_admin: Holds super-admin rights in the admin console
        created_at: Session creation time (ISO format)
        expires_at: Session expiry time (ISO format)
    """

    jti: str
    user_id: str
    email: str
    name: str = ""
    role: str = "SUBACCOUNT_USER"
    plan: str = "FREE"
    agency_id: Optional[str] = None
    individual_id: Optional[str] = None
    subaccount_ids: List[str] = field(default_factory=list)
    is_admin: bool = False
    is_super_admin: bool = False
    created_at: str = ""
    expires_at: str = ""

    def can_access_subaccount(self, subaccount_id: str) -> bool:
        return str(subaccount_id) in self.subaccount_ids

    def owns_individual(self, individual_id: str) -> bool:
        return self.individual_id is not None and self.individual_id == str(
            individual_id
        )


class SessionStoreRepository:
    """CRUD operations for Redis-backed JWT sessions.

    Attributes:
        redis: Redis async client
        default_ttl_seconds: Default session lifetime in seconds
    """

    def __init__(self, redis, default_ttl_seconds: int = DEFAULT_SESSION_TTL_SECONDS):
        self.redis = redis
        self.default_ttl_seconds = default_ttl_seconds

    @staticmethod
    def generate_jti() -> str:
        return str(ULID())

    async def create_session(
        self,
        user_id: str,
        email: str,
        name: str = "",
        role: str = "SUBACCOUNT_USER",
        plan: str = "FREE",
        agency_id: Optional[str] = None,
        individual_id: Optional[str] = None,
        subaccount_ids: Optional[List[str]] = None,
        is_admin: bool = False,
        is_super_admin: bool = False,
        ttl_seconds: Optional[int] = None,
    ) -> TokenSession:
        """Create and persist a new session.

        Args:
            user_id: Authenticated user identifier
            email: User email
            name: Display name
            role: Platform role
            plan: User plan
            agency_id: Agency membership
            individual_id: Owned individual workspace
            subaccount_ids: Reachable subaccount ids
            is_admin: Admin console membership flag
            is_super_admin: Super-admin flag
            ttl_seconds: Session lifetime (defaults to store default)

        Returns:
            Created TokenSession with generated jti
        """
        ttl = ttl_seconds or self.default_ttl_seconds
        now = datetime.now(timezone.utc)

        session = TokenSession(
            jti=self.generate_jti(),
            user_id=user_id,
            email=email,
            name=name,
            role=role,
            plan=plan,
            agency_id=agency_id,
            individual_id=individual_id,
            subaccount_ids=list(subaccount_ids or []),
            is_admin=is_admin,
            is_super_admin=is_super_admin,
            created_at=now.isoformat(),
            expires_at=(now + timedelta(seconds=ttl)).isoformat(),
        )

        await self.redis.setex(_session_key(session.jti), ttl, json.dumps(asdict(session)))
        await self.redis.sadd(_user_sessions_key(user_id), session.jti)

        logger.debug(f"Session created: jti={session.jti} user={user_id} ttl={ttl}s")
        return session

    async def get_session(self, jti: str) -> Optional[TokenSession]:
        """Retrieve a session by its jti, or None when missing or expired."""
        raw = await self.redis.get(_session_key(jti))
        if raw is None:
            return None

        data = json.loads(raw)
        return TokenSession(
            jti=data["jti"],
            user_id=data["user_id"],
            email=data.get("email", ""),
            name=data.get("name", ""),
            role=data.get("role", "SUBACCOUNT_USER"),
            plan=data.get("plan", "FREE"),
            agency_id=data.get("agency_id"),
            individual_id=data.get("individual_id"),
            subaccount_ids=data.get("subaccount_ids", []),
            is_admin=data.get("is_admin", False),
            is_super_admin=data.get("is_super_admin", False),
            created_at=data.get("created_at", ""),
            expires_at=data.get("expires_at", ""),
        )

    async def delete_session(self, jti: str) -> None:
        raw = await self.redis.get(_session_key(jti))
        if raw:
            user_id = json.loads(raw).get("user_id")
            if user_id:
                await self.redis.srem(_user_sessions_key(user_id), jti)
        await self.redis.delete(_session_key(jti))
        logger.debug(f"Session revoked: jti={jti}")

    async def delete_all_user_sessions(self, user_id: str) -> None:
        """Revoke every active session of a user, e.g. after suspension."""
        user_key = _user_sessions_key(user_id)
        jtis = await self.redis.smembers(user_key)

        if jtis:
            await self.redis.delete(*[_session_key(jti) for jti in jtis])

        await self.redis.delete(user_key)
        logger.debug(f"All sessions revoked for user={user_id} count={len(jtis)}")
