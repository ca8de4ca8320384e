from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, List, Optional
from uuid import UUID

from sqlalchemy import select

if TYPE_CHECKING:
    from plura.infrastructure.persistence.postgresql.client import PostgreSQLClient

from plura.infrastructure.persistence.postgresql.models import (
    AddOn,
    Subscription,
    utc_now,
)


class SubscriptionRepository:
    """Repository for Stripe subscriptions and agency add-ons.

    Attributes:
        client: PostgreSQL client for database access
    """

    def __init__(self, client: PostgreSQLClient):
        self.client = client

    async def get_for_agency(self, agency_id: str | UUID) -> Optional[Subscription]:
        if isinstance(agency_id, str):
            agency_id = UUID(agency_id)
        async with self.client.session() as session:
            result = await session.execute(
                select(Subscription).where(Subscription.agency_id == agency_id)
            )
            return result.scalar_one_or_none()

    async def get_for_individual(
        self, individual_id: str | UUID
    ) -> Optional[Subscription]:
        if isinstance(individual_id, str):
            individual_id = UUID(individual_id)
        async with self.client.session() as session:
            result = await session.execute(
                select(Subscription).where(Subscription.individual_id == individual_id)
            )
            return result.scalar_one_or_none()

    async def list_active_add_ons(self, agency_id: str | UUID) -> List[AddOn]:
        """Return the add-ons an agency is currently paying for."""
        if isinstance(agency_id, str):
            agency_id = UUID(agency_id)
        async with self.client.session() as session:
            result = await session.execute(
                select(AddOn).where(AddOn.agency_id == agency_id, AddOn.active.is_(True))
            )
            return list(result.scalars().all())

    async def upsert(
        self,
        subscription_id: str,
        customer_id: str,
        price_id: Optional[str],
        plan: Optional[str],
        status: str,
        active: bool,
        current_period_end: Optional[datetime] = None,
        cancel_at_period_end: bool = False,
        agency_id: Optional[str | UUID] = None,
        individual_id: Optional[str | UUID] = None,
    ) -> Subscription:
        """Create or refresh the row mirroring a Stripe subscription.

        The row is matched by Stripe subscription id first, then by the
        owning agency or individual so a plan change replaces the old row.

        Returns:
            The stored Subscription
        """
        if isinstance(agency_id, str):
            agency_id = UUID(agency_id)
        if isinstance(individual_id, str):
            individual_id = UUID(individual_id)
        async with self.client.session() as session:
            result = await session.execute(
                select(Subscription).where(
                    Subscription.subscription_id == subscription_id
                )
            )
            subscription = result.scalar_one_or_none()
            if subscription is None and (agency_id or individual_id):
                owner_filter = (
                    Subscription.agency_id == agency_id
                    if agency_id
                    else Subscription.individual_id == individual_id
                )
                result = await session.execute(select(Subscription).where(owner_filter))
                subscription = result.scalar_one_or_none()

            if subscription is None:
                subscription = Subscription(
                    subscription_id=subscription_id,
                    customer_id=customer_id,
                    agency_id=agency_id,
                    individual_id=individual_id,
                )
                session.add(subscription)

            subscription.subscription_id = subscription_id
            subscription.customer_id = customer_id
            subscription.price_id = price_id
            subscription.plan = plan
            subscription.status = status
            subscription.active = active
            subscription.current_period_end = current_period_end
            subscription.cancel_at_period_end = cancel_at_period_end
            subscription.updated_at = utc_now()
            await session.flush()
            return subscription

    async def deactivate(self, subscription_id: str) -> Optional[Subscription]:
        """Mark a cancelled Stripe subscription inactive."""
        async with self.client.session() as session:
            result = await session.execute(
                select(Subscription).where(
                    Subscription.subscription_id == subscription_id
                )
            )
            subscription = result.scalar_one_or_none()
            if subscription:
                subscription.active = False
                subscription.status = "canceled"
                subscription.updated_at = utc_now()
                await session.flush()
            return subscription
