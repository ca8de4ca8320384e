from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, List, Optional
from uuid import UUID

from sqlalchemy import or_, select
from sqlalchemy.orm import selectinload

if TYPE_CHECKING:
    from plura.infrastructure.persistence.postgresql.client import PostgreSQLClient

from plura.infrastructure.persistence.postgresql.models import AdminUser, User, utc_now


class UserRepository:
    """Repository for platform users and their admin console membership.

    Attributes:
        client: PostgreSQL client for database access
    """

    def __init__(self, client: PostgreSQLClient):
        self.client = client

    async def create(
        self,
        name: str,
        email: str,
        password_hash: Optional[str] = None,
        role: str = "SUBACCOUNT_USER",
        plan: str = "FREE",
        agency_id: Optional[str | UUID] = None,
    ) -> User:
        """Create new user.

        Args:
            name: Display name
            email: Unique email address
            password_hash: Pre-hashed password string
            role: Agency/subaccount role
            plan: Billing plan of the user
            agency_id: Owning agency, if any

        Returns:
            Created User instance
        """
        if isinstance(agency_id, str):
            agency_id = UUID(agency_id)
        async with self.client.session() as session:
            user = User(
                name=name,
                email=email,
                password_hash=password_hash,
                role=role,
                plan=plan,
                agency_id=agency_id,
            )
            session.add(user)
            await session.flush()
            return user

    async def get_by_id(self, user_id: str | UUID) -> Optional[User]:
        """Retrieve user by ID, with the admin membership loaded."""
        if isinstance(user_id, str):
            user_id = UUID(user_id)
        async with self.client.session() as session:
            result = await session.execute(
                select(User)
                .options(selectinload(User.admin_user), selectinload(User.individual))
                .where(User.id == user_id)
            )
            return result.scalar_one_or_none()

    async def get_by_email(self, email: str) -> Optional[User]:
        """Retrieve user by email, with the admin membership loaded."""
        async with self.client.session() as session:
            result = await session.execute(
                select(User)
                .options(selectinload(User.admin_user), selectinload(User.individual))
                .where(User.email == email)
            )
            return result.scalar_one_or_none()

    async def list_filtered(
        self,
        role: Optional[str] = None,
        is_active: Optional[bool] = None,
        agency_id: Optional[str | UUID] = None,
        search: Optional[str] = None,
    ) -> List[User]:
        """List users for the admin console, newest first.

        Args:
            role: Exact role filter
            is_active: Active flag filter
            agency_id: Owning agency filter
            search: Case-insensitive match on name or email

        Returns:
            List of User instances with their agency loaded
        """
        query = select(User).options(selectinload(User.agency))
        if role:
            query = query.where(User.role == role)
        if is_active is not None:
            query = query.where(User.is_active == is_active)
        if agency_id:
            if isinstance(agency_id, str):
                agency_id = UUID(agency_id)
            query = query.where(User.agency_id == agency_id)
        if search:
            pattern = f"%{search}%"
            query = query.where(or_(User.name.ilike(pattern), User.email.ilike(pattern)))

        async with self.client.session() as session:
            result = await session.execute(query.order_by(User.created_at.desc()))
            return list(result.scalars().all())

    async def update(
        self,
        user_id: str | UUID,
        plan: Optional[str] = None,
        is_active: Optional[bool] = None,
        password_hash: Optional[str] = None,
        last_login_at: Optional[datetime] = None,
    ) -> Optional[User]:
        """Update mutable user fields; None leaves a field unchanged.

        Returns:
            Updated User instance or None if not found
        """
        if isinstance(user_id, str):
            user_id = UUID(user_id)
        async with self.client.session() as session:
            result = await session.execute(select(User).where(User.id == user_id))
            user = result.scalar_one_or_none()
            if user:
                if plan is not None:
                    user.plan = plan
                if is_active is not None:
                    user.is_active = is_active
                if password_hash is not None:
                    user.password_hash = password_hash
                if last_login_at is not None:
                    user.last_login_at = last_login_at
                user.updated_at = utc_now()
                await session.flush()
            return user

    async def get_admin_membership(self, user_id: str | UUID) -> Optional[AdminUser]:
        """Return the AdminUser row of a user, if the user is an admin."""
        if isinstance(user_id, str):
            user_id = UUID(user_id)
        async with self.client.session() as session:
            result = await session.execute(
                select(AdminUser).where(AdminUser.user_id == user_id)
            )
            return result.scalar_one_or_none()

    async def create_admin_membership(
        self,
        user_id: str | UUID,
        is_super_admin: bool = False,
        permissions: Optional[List[str]] = None,
    ) -> AdminUser:
        """Grant admin console access to a user."""
        if isinstance(user_id, str):
            user_id = UUID(user_id)
        async with self.client.session() as session:
            admin = AdminUser(
                user_id=user_id,
                is_super_admin=is_super_admin,
                permissions=permissions or [],
            )
            session.add(admin)
            await session.flush()
            return admin
