from __future__ import annotations

from typing import TYPE_CHECKING, List, Optional
from uuid import UUID

from sqlalchemy import func, or_, select
from sqlalchemy.orm import selectinload

if TYPE_CHECKING:
    from plura.infrastructure.persistence.postgresql.client import PostgreSQLClient

from plura.infrastructure.persistence.postgresql.models import (
    Individual,
    Subscription,
    utc_now,
)


class IndividualRepository:
    """Repository for individual creator workspaces.

    Attributes:
        client: PostgreSQL client for database access
    """

    def __init__(self, client: PostgreSQLClient):
        self.client = client

    async def get_by_id(self, individual_id: str | UUID) -> Optional[Individual]:
        """Retrieve individual by ID with the subscription loaded."""
        if isinstance(individual_id, str):
            individual_id = UUID(individual_id)
        async with self.client.session() as session:
            result = await session.execute(
                select(Individual)
                .options(selectinload(Individual.subscription))
                .where(Individual.id == individual_id)
            )
            return result.scalar_one_or_none()

    async def get_by_customer_id(self, customer_id: str) -> Optional[Individual]:
        """Retrieve the individual billed under a Stripe customer id."""
        async with self.client.session() as session:
            result = await session.execute(
                select(Individual).where(Individual.customer_id == customer_id)
            )
            return result.scalar_one_or_none()

    async def list_filtered(
        self,
        search: Optional[str] = None,
        is_active: Optional[bool] = None,
        plan: Optional[str] = None,
    ) -> List[Individual]:
        """List individuals for the admin console, newest first.

        Args:
            search: Case-insensitive match on name or email
            is_active: Active flag filter
            plan: Exact plan filter

        Returns:
            List of Individual instances with subaccounts and subscription loaded
        """
        query = select(Individual).options(
            selectinload(Individual.subaccounts),
            selectinload(Individual.subscription),
        )
        if is_active is not None:
            query = query.where(Individual.is_active == is_active)
        if plan:
            query = query.where(Individual.plan == plan)
        if search:
            pattern = f"%{search}%"
            query = query.where(
                or_(Individual.name.ilike(pattern), Individual.email.ilike(pattern))
            )
        async with self.client.session() as session:
            result = await session.execute(query.order_by(Individual.created_at.desc()))
            return list(result.scalars().all())

    async def update(
        self,
        individual_id: str | UUID,
        is_active: Optional[bool] = None,
        plan: Optional[str] = None,
    ) -> Optional[Individual]:
        """Update the active flag or plan; None leaves a field unchanged."""
        if isinstance(individual_id, str):
            individual_id = UUID(individual_id)
        async with self.client.session() as session:
            result = await session.execute(
                select(Individual).where(Individual.id == individual_id)
            )
            individual = result.scalar_one_or_none()
            if individual:
                if is_active is not None:
                    individual.is_active = is_active
                if plan is not None:
                    individual.plan = plan
                individual.updated_at = utc_now()
                await session.flush()
            return individual

    async def count(self, is_active: Optional[bool] = None) -> int:
        query = select(func.count(Individual.id))
        if is_active is not None:
            query = query.where(Individual.is_active == is_active)
        async with self.client.session() as session:
            result = await session.execute(query)
            return result.scalar_one()

    async def count_with_active_plan(self, plans: List[str]) -> int:
        """Count individuals whose active subscription is on one of plans."""
        query = (
            select(func.count(Individual.id))
            .join(Subscription, Subscription.individual_id == Individual.id)
            .where(Subscription.active.is_(True), Subscription.plan.in_(plans))
        )
        async with self.client.session() as session:
            result = await session.execute(query)
            return result.scalar_one()
