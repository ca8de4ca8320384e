from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy import select, update

if TYPE_CHECKING:
    from plura.infrastructure.persistence.postgresql.client import PostgreSQLClient

from plura.infrastructure.persistence.postgresql.models import (
    DatabaseConnection,
    utc_now,
)

_UPDATABLE_FIELDS = (
    "name",
    "provider",
    "connection_string",
    "host",
    "port",
    "database",
    "username",
    "password",
    "is_default",
    "is_active",
    "tables",
)


def _owner_filter(subaccount_id: Optional[str], individual_id: Optional[str]):
    if subaccount_id:
        return DatabaseConnection.subaccount_id == UUID(str(subaccount_id))
    return DatabaseConnection.individual_id == UUID(str(individual_id))


class DatabaseConnectionRepository:
    """Repository for tenant-registered external database connections.

    Attributes:
        client: PostgreSQL client for database access
    """

    def __init__(self, client: PostgreSQLClient):
        self.client = client

    async def list_for_owner(
        self,
        subaccount_id: Optional[str] = None,
        individual_id: Optional[str] = None,
    ) -> List[DatabaseConnection]:
        """List an owner's connections, newest first.

        Exactly one of subaccount_id or individual_id is expected; the
        subaccount wins when both are given.
        """
        async with self.client.session() as session:
            result = await session.execute(
                select(DatabaseConnection)
                .where(_owner_filter(subaccount_id, individual_id))
                .order_by(DatabaseConnection.created_at.desc())
            )
            return list(result.scalars().all())

    async def get_by_id(self, connection_id: str | UUID) -> Optional[DatabaseConnection]:
        if isinstance(connection_id, str):
            connection_id = UUID(connection_id)
        async with self.client.session() as session:
            result = await session.execute(
                select(DatabaseConnection).where(DatabaseConnection.id == connection_id)
            )
            return result.scalar_one_or_none()

    async def create(
        self,
        values: Dict[str, Any],
        subaccount_id: Optional[str] = None,
        individual_id: Optional[str] = None,
    ) -> DatabaseConnection:
        """Create a connection record, inactive until tested.

        When the new record is the default, the owner's other defaults are
        cleared in the same transaction.
        """
        async with self.client.session() as session:
            if values.get("is_default"):
                await session.execute(
                    update(DatabaseConnection)
                    .where(_owner_filter(subaccount_id, individual_id))
                    .values(is_default=False)
                )
            connection = DatabaseConnection(
                **{k: v for k, v in values.items() if k in _UPDATABLE_FIELDS},
                subaccount_id=UUID(str(subaccount_id)) if subaccount_id else None,
                individual_id=UUID(str(individual_id)) if individual_id else None,
            )
            connection.is_active = False
            session.add(connection)
            await session.flush()
            return connection

    async def update(
        self, connection_id: str | UUID, changes: Dict[str, Any]
    ) -> Optional[DatabaseConnection]:
        if isinstance(connection_id, str):
            connection_id = UUID(connection_id)
        async with self.client.session() as session:
            result = await session.execute(
                select(DatabaseConnection).where(DatabaseConnection.id == connection_id)
            )
            connection = result.scalar_one_or_none()
            if connection is None:
                return None
            if changes.get("is_default"):
                owner = (
                    DatabaseConnection.subaccount_id == connection.subaccount_id
                    if connection.subaccount_id
                    else DatabaseConnection.individual_id == connection.individual_id
                )
                await session.execute(
                    update(DatabaseConnection)
                    .where(owner, DatabaseConnection.id != connection.id)
                    .values(is_default=False)
                )
            for field_name, value in changes.items():
                if field_name in _UPDATABLE_FIELDS:
                    setattr(connection, field_name, value)
            connection.updated_at = utc_now()
            await session.flush()
            return connection

    async def delete(self, connection_id: str | UUID) -> bool:
        if isinstance(connection_id, str):
            connection_id = UUID(connection_id)
        async with self.client.session() as session:
            result = await session.execute(
                select(DatabaseConnection).where(DatabaseConnection.id == connection_id)
            )
            connection = result.scalar_one_or_none()
            if connection is None:
                return False
            await session.delete(connection)
            return True
