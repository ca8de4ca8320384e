from __future__ import annotations

from typing import TYPE_CHECKING, List, Optional, Tuple

from sqlalchemy import select

if TYPE_CHECKING:
    from plura.infrastructure.persistence.postgresql.client import PostgreSQLClient

from plura.infrastructure.persistence.postgresql.models import SystemConfig, utc_now


class SystemConfigRepository:
    """Repository for platform-wide key/value configuration.

    Attributes:
        client: PostgreSQL client for database access
    """

    def __init__(self, client: PostgreSQLClient):
        self.client = client

    async def list_all(self, key: Optional[str] = None) -> List[SystemConfig]:
        """List entries ordered by key, optionally restricted to one key."""
        query = select(SystemConfig)
        if key:
            query = query.where(SystemConfig.key == key)
        async with self.client.session() as session:
            result = await session.execute(query.order_by(SystemConfig.key.asc()))
            return list(result.scalars().all())

    async def get_by_key(self, key: str) -> Optional[SystemConfig]:
        async with self.client.session() as session:
            result = await session.execute(
                select(SystemConfig).where(SystemConfig.key == key)
            )
            return result.scalar_one_or_none()

    async def upsert(
        self,
        key: str,
        value: str,
        value_type: str,
        description: Optional[str] = None,
        is_public: bool = False,
        modified_by: Optional[str] = None,
    ) -> Tuple[SystemConfig, Optional[dict]]:
        """Create or overwrite an entry.

        Args:
            key: Unique config key
            value: Serialized value
            value_type: Declared value type (string, number, boolean, json)
            description: Optional human description
            is_public: Whether clients may read the entry
            modified_by: Admin user performing the write

        Returns:
            Tuple of (stored entry, previous values or None when created)
        """
        async with self.client.session() as session:
            result = await session.execute(
                select(SystemConfig).where(SystemConfig.key == key)
            )
            entry = result.scalar_one_or_none()
            old_values = None
            if entry is None:
                entry = SystemConfig(key=key)
                session.add(entry)
            else:
                old_values = {
                    "value": entry.value,
                    "type": entry.type,
                    "description": entry.description,
                    "isPublic": entry.is_public,
                }
            entry.value = value
            entry.type = value_type
            entry.description = description
            entry.is_public = is_public
            entry.last_modified_by = modified_by
            entry.updated_at = utc_now()
            await session.flush()
            return entry, old_values
