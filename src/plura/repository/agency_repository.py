from __future__ import annotations

from typing import TYPE_CHECKING, List, Optional
from uuid import UUID

from sqlalchemy import func, or_, select
from sqlalchemy.orm import selectinload

if TYPE_CHECKING:
    from plura.infrastructure.persistence.postgresql.client import PostgreSQLClient

from plura.infrastructure.persistence.postgresql.models import Agency, utc_now


class AgencyRepository:
    """Repository for agencies, the top-level tenants.

    Attributes:
        client: PostgreSQL client for database access
    """

    def __init__(self, client: PostgreSQLClient):
        self.client = client

    async def get_by_id(self, agency_id: str | UUID) -> Optional[Agency]:
        """Retrieve agency by ID.

        Args:
            agency_id: Agency identifier (UUID or string)

        Returns:
            Agency instance or None
        """
        if isinstance(agency_id, str):
            agency_id = UUID(agency_id)
        async with self.client.session() as session:
            result = await session.execute(select(Agency).where(Agency.id == agency_id))
            return result.scalar_one_or_none()

    async def get_by_customer_id(self, customer_id: str) -> Optional[Agency]:
        """Retrieve the agency billed under a Stripe customer id."""
        async with self.client.session() as session:
            result = await session.execute(
                select(Agency).where(Agency.customer_id == customer_id)
            )
            return result.scalar_one_or_none()

    async def list_filtered(
        self,
        is_active: Optional[bool] = None,
        search: Optional[str] = None,
    ) -> List[Agency]:
        """List agencies with subaccounts and subscription loaded, newest first.

        Args:
            is_active: Active flag filter
            search: Case-insensitive match on name or company email

        Returns:
            List of Agency instances
        """
        query = select(Agency).options(
            selectinload(Agency.subaccounts),
            selectinload(Agency.users),
            selectinload(Agency.subscription),
        )
        if is_active is not None:
            query = query.where(Agency.is_active == is_active)
        if search:
            pattern = f"%{search}%"
            query = query.where(
                or_(Agency.name.ilike(pattern), Agency.company_email.ilike(pattern))
            )
        async with self.client.session() as session:
            result = await session.execute(query.order_by(Agency.created_at.desc()))
            return list(result.scalars().all())

    async def set_active(
        self, agency_id: str | UUID, is_active: bool
    ) -> Optional[Agency]:
        """Suspend or reactivate an agency.

        Returns:
            Updated Agency instance or None if not found
        """
        if isinstance(agency_id, str):
            agency_id = UUID(agency_id)
        async with self.client.session() as session:
            result = await session.execute(select(Agency).where(Agency.id == agency_id))
            agency = result.scalar_one_or_none()
            if agency:
                agency.is_active = is_active
                agency.updated_at = utc_now()
                await session.flush()
            return agency

    async def count(self, is_active: Optional[bool] = None) -> int:
        """Count agencies, optionally only active or inactive ones."""
        query = select(func.count(Agency.id))
        if is_active is not None:
            query = query.where(Agency.is_active == is_active)
        async with self.client.session() as session:
            result = await session.execute(query)
            return result.scalar_one()
