from __future__ import annotations

from typing import TYPE_CHECKING, Optional
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import selectinload

if TYPE_CHECKING:
    from plura.infrastructure.persistence.postgresql.client import PostgreSQLClient

from plura.infrastructure.persistence.postgresql.models import (
    Automation,
    AutomationInstance,
    utc_now,
)


class AutomationRepository:
    """Repository for subaccount automations and their run instances.

    Attributes:
        client: PostgreSQL client for database access
    """

    def __init__(self, client: PostgreSQLClient):
        self.client = client

    async def get_for_subaccount(
        self, automation_id: str | UUID, subaccount_id: str | UUID
    ) -> Optional[Automation]:
        """Retrieve an automation scoped to a subaccount, with instances loaded.

        Args:
            automation_id: Automation identifier
            subaccount_id: Subaccount the automation must belong to

        Returns:
            Automation instance or None when missing or owned elsewhere
        """
        if isinstance(automation_id, str):
            automation_id = UUID(automation_id)
        if isinstance(subaccount_id, str):
            subaccount_id = UUID(subaccount_id)
        async with self.client.session() as session:
            result = await session.execute(
                select(Automation)
                .options(selectinload(Automation.instances))
                .where(
                    Automation.id == automation_id,
                    Automation.subaccount_id == subaccount_id,
                )
            )
            return result.scalar_one_or_none()

    async def set_running(
        self, automation_id: str | UUID, running: bool
    ) -> Optional[Automation]:
        """Publish and activate, or unpublish and deactivate, an automation.

        Starting upserts the single instance row as active. Pausing marks
        every instance inactive.

        Args:
            automation_id: Automation identifier
            running: True to start, False to pause

        Returns:
            Updated Automation with instances loaded, or None
        """
        if isinstance(automation_id, str):
            automation_id = UUID(automation_id)
        async with self.client.session() as session:
            result = await session.execute(
                select(Automation)
                .options(selectinload(Automation.instances))
                .where(Automation.id == automation_id)
            )
            automation = result.scalar_one_or_none()
            if automation is None:
                return None

            now = utc_now()
            automation.published = running
            automation.updated_at = now
            if running:
                if automation.instances:
                    for instance in automation.instances:
                        instance.active = True
                        instance.updated_at = now
                else:
                    automation.instances.append(
                        AutomationInstance(automation_id=automation.id, active=True)
                    )
            else:
                for instance in automation.instances:
                    instance.active = False
                    instance.updated_at = now
            await session.flush()
            return automation

    async def count_published(self) -> int:
        async with self.client.session() as session:
            result = await session.execute(
                select(func.count(Automation.id)).where(Automation.published.is_(True))
            )
            return result.scalar_one()
