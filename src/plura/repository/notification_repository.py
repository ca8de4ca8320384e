from __future__ import annotations

from typing import TYPE_CHECKING, Optional
from uuid import UUID

if TYPE_CHECKING:
    from plura.infrastructure.persistence.postgresql.client import PostgreSQLClient

from plura.infrastructure.persistence.postgresql.models import Notification


class NotificationRepository:
    """Repository for the agency activity feed.

    Attributes:
        client: PostgreSQL client for database access
    """

    def __init__(self, client: PostgreSQLClient):
        self.client = client

    async def create(
        self,
        notification: str,
        agency_id: str | UUID,
        user_id: str | UUID,
        subaccount_id: Optional[str | UUID] = None,
    ) -> Notification:
        """Append an activity line to an agency feed.

        Args:
            notification: Rendered activity text
            agency_id: Owning agency
            user_id: Acting user
            subaccount_id: Subaccount the activity happened in, if any

        Returns:
            Created Notification instance
        """
        async with self.client.session() as session:
            row = Notification(
                notification=notification,
                agency_id=UUID(str(agency_id)),
                user_id=UUID(str(user_id)),
                subaccount_id=UUID(str(subaccount_id)) if subaccount_id else None,
            )
            session.add(row)
            await session.flush()
            return row
