from __future__ import annotations

from typing import TYPE_CHECKING, List, Optional, Tuple
from uuid import UUID

from sqlalchemy import func, or_, select
from sqlalchemy.orm import selectinload

if TYPE_CHECKING:
    from plura.infrastructure.persistence.postgresql.client import PostgreSQLClient

from plura.infrastructure.persistence.postgresql.models import (
    Automation,
    Funnel,
    FunnelPage,
    SubAccount,
    utc_now,
)


class SubAccountRepository:
    """Repository for subaccount workspaces.

    Attributes:
        client: PostgreSQL client for database access
    """

    def __init__(self, client: PostgreSQLClient):
        self.client = client

    async def get_by_id(self, subaccount_id: str | UUID) -> Optional[SubAccount]:
        """Retrieve subaccount by ID with its owning agency loaded."""
        if isinstance(subaccount_id, str):
            subaccount_id = UUID(subaccount_id)
        async with self.client.session() as session:
            result = await session.execute(
                select(SubAccount)
                .options(selectinload(SubAccount.agency))
                .where(SubAccount.id == subaccount_id)
            )
            return result.scalar_one_or_none()

    async def list_filtered(
        self,
        search: Optional[str] = None,
        is_active: Optional[bool] = None,
    ) -> List[SubAccount]:
        """List subaccounts with their agency and individual loaded.

        Args:
            search: Case-insensitive match on name or company email
            is_active: Active flag filter

        Returns:
            List of SubAccount instances, newest first
        """
        query = select(SubAccount).options(
            selectinload(SubAccount.agency),
            selectinload(SubAccount.individual),
        )
        if is_active is not None:
            query = query.where(SubAccount.is_active == is_active)
        if search:
            pattern = f"%{search}%"
            query = query.where(
                or_(
                    SubAccount.name.ilike(pattern),
                    SubAccount.company_email.ilike(pattern),
                )
            )
        async with self.client.session() as session:
            result = await session.execute(query.order_by(SubAccount.created_at.desc()))
            return list(result.scalars().all())

    async def list_ids_for_owner(
        self,
        agency_id: Optional[str | UUID] = None,
        individual_id: Optional[str | UUID] = None,
    ) -> List[str]:
        """Return ids of every subaccount owned by an agency or individual."""
        if not agency_id and not individual_id:
            return []
        conditions = []
        if agency_id:
            conditions.append(SubAccount.agency_id == UUID(str(agency_id)))
        if individual_id:
            conditions.append(SubAccount.individual_id == UUID(str(individual_id)))
        async with self.client.session() as session:
            result = await session.execute(select(SubAccount.id).where(or_(*conditions)))
            return [str(row) for row in result.scalars().all()]

    async def set_active(
        self, subaccount_id: str | UUID, is_active: bool
    ) -> Optional[SubAccount]:
        """Suspend or reactivate a subaccount."""
        if isinstance(subaccount_id, str):
            subaccount_id = UUID(subaccount_id)
        async with self.client.session() as session:
            result = await session.execute(
                select(SubAccount).where(SubAccount.id == subaccount_id)
            )
            subaccount = result.scalar_one_or_none()
            if subaccount:
                subaccount.is_active = is_active
                subaccount.updated_at = utc_now()
                await session.flush()
            return subaccount

    async def count(self) -> int:
        async with self.client.session() as session:
            result = await session.execute(select(func.count(SubAccount.id)))
            return result.scalar_one()

    async def count_usage(self, subaccount_ids: List[str]) -> Tuple[int, int, int]:
        """Count funnels, funnel pages and automations across subaccounts.

        Returns:
            Tuple of (funnel_count, page_count, automation_count)
        """
        if not subaccount_ids:
            return 0, 0, 0
        ids = [UUID(str(sid)) for sid in subaccount_ids]
        async with self.client.session() as session:
            funnels = (
                await session.execute(
                    select(func.count(Funnel.id)).where(Funnel.subaccount_id.in_(ids))
                )
            ).scalar_one()
            pages = (
                await session.execute(
                    select(func.count(FunnelPage.id))
                    .join(Funnel, Funnel.id == FunnelPage.funnel_id)
                    .where(Funnel.subaccount_id.in_(ids))
                )
            ).scalar_one()
            automations = (
                await session.execute(
                    select(func.count(Automation.id)).where(
                        Automation.subaccount_id.in_(ids)
                    )
                )
            ).scalar_one()
            return funnels, pages, automations
