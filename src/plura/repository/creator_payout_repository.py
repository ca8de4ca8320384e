from __future__ import annotations

from typing import TYPE_CHECKING, Optional
from uuid import UUID

from sqlalchemy import select

if TYPE_CHECKING:
    from plura.infrastructure.persistence.postgresql.client import PostgreSQLClient

from plura.constants import PAYOUT_STATUS_PENDING
from plura.infrastructure.persistence.postgresql.models import CreatorPayout


class CreatorPayoutRepository:
    """Repository for monthly creator payout records.

    Attributes:
        client: PostgreSQL client for database access
    """

    def __init__(self, client: PostgreSQLClient):
        self.client = client

    async def get(self, creator_id: UUID, period: str) -> Optional[CreatorPayout]:
        async with self.client.session() as session:
            result = await session.execute(
                select(CreatorPayout).where(
                    CreatorPayout.creator_id == creator_id,
                    CreatorPayout.period == period,
                )
            )
            return result.scalar_one_or_none()

    async def create(
        self,
        creator_id: UUID,
        period: str,
        total_earnings: float,
        platform_fees: float,
    ) -> CreatorPayout:
        """Create a pending payout paying out the full earnings."""
        async with self.client.session() as session:
            payout = CreatorPayout(
                creator_id=creator_id,
                period=period,
                total_earnings=total_earnings,
                platform_fees=platform_fees,
                payout_amount=total_earnings,
                status=PAYOUT_STATUS_PENDING,
            )
            session.add(payout)
            await session.flush()
            await session.refresh(payout)
            return payout
