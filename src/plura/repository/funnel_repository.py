from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.orm import selectinload

if TYPE_CHECKING:
    from plura.infrastructure.persistence.postgresql.client import PostgreSQLClient

from plura.infrastructure.persistence.postgresql.models import (
    Funnel,
    FunnelPage,
    utc_now,
)


class FunnelRepository:
    """Repository for funnels and their pages.

    Attributes:
        client: PostgreSQL client for database access
    """

    def __init__(self, client: PostgreSQLClient):
        self.client = client

    async def get_by_id(self, funnel_id: str | UUID) -> Optional[Funnel]:
        if isinstance(funnel_id, str):
            funnel_id = UUID(funnel_id)
        async with self.client.session() as session:
            result = await session.execute(select(Funnel).where(Funnel.id == funnel_id))
            return result.scalar_one_or_none()

    async def get_with_pages(self, funnel_id: str | UUID) -> Optional[Funnel]:
        """Retrieve a funnel with its pages in display order."""
        if isinstance(funnel_id, str):
            funnel_id = UUID(funnel_id)
        async with self.client.session() as session:
            result = await session.execute(
                select(Funnel)
                .options(selectinload(Funnel.pages))
                .where(Funnel.id == funnel_id)
            )
            return result.scalar_one_or_none()

    async def get_by_subdomain(self, subdomain: str) -> Optional[Funnel]:
        """Retrieve the funnel served under a subdomain, pages included."""
        async with self.client.session() as session:
            result = await session.execute(
                select(Funnel)
                .options(selectinload(Funnel.pages))
                .where(Funnel.subdomain_name == subdomain)
            )
            return result.scalar_one_or_none()

    async def list_pages(self, funnel_id: str | UUID) -> List[FunnelPage]:
        if isinstance(funnel_id, str):
            funnel_id = UUID(funnel_id)
        async with self.client.session() as session:
            result = await session.execute(
                select(FunnelPage)
                .where(FunnelPage.funnel_id == funnel_id)
                .order_by(FunnelPage.order.asc())
            )
            return list(result.scalars().all())

    async def update_settings(
        self, funnel_id: str | UUID, settings: Dict[str, Any]
    ) -> Optional[Funnel]:
        if isinstance(funnel_id, str):
            funnel_id = UUID(funnel_id)
        async with self.client.session() as session:
            result = await session.execute(select(Funnel).where(Funnel.id == funnel_id))
            funnel = result.scalar_one_or_none()
            if funnel:
                funnel.settings = settings
                funnel.updated_at = utc_now()
                await session.flush()
            return funnel

    async def increment_page_visits(self, page_id: str | UUID) -> None:
        """Atomically bump a page's visit counter."""
        if isinstance(page_id, str):
            page_id = UUID(page_id)
        async with self.client.session() as session:
            await session.execute(
                update(FunnelPage)
                .where(FunnelPage.id == page_id)
                .values(visits=FunnelPage.visits + 1)
            )
