from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy import select

if TYPE_CHECKING:
    from plura.infrastructure.persistence.postgresql.client import PostgreSQLClient

from plura.infrastructure.persistence.postgresql.models import FeatureFlag, utc_now

_UPDATABLE_FIELDS = (
    "name",
    "description",
    "is_enabled",
    "rollout_type",
    "rollout_data",
)


class FeatureFlagRepository:
    """Repository for feature flags.

    Attributes:
        client: PostgreSQL client for database access
    """

    def __init__(self, client: PostgreSQLClient):
        self.client = client

    async def list_all(self) -> List[FeatureFlag]:
        async with self.client.session() as session:
            result = await session.execute(
                select(FeatureFlag).order_by(FeatureFlag.key.asc())
            )
            return list(result.scalars().all())

    async def get_by_id(self, flag_id: str | UUID) -> Optional[FeatureFlag]:
        if isinstance(flag_id, str):
            flag_id = UUID(flag_id)
        async with self.client.session() as session:
            result = await session.execute(
                select(FeatureFlag).where(FeatureFlag.id == flag_id)
            )
            return result.scalar_one_or_none()

    async def get_by_key(self, key: str) -> Optional[FeatureFlag]:
        async with self.client.session() as session:
            result = await session.execute(
                select(FeatureFlag).where(FeatureFlag.key == key)
            )
            return result.scalar_one_or_none()

    async def create(
        self,
        name: str,
        key: str,
        description: Optional[str] = None,
        is_enabled: bool = False,
        rollout_type: str = "all",
        rollout_data: Optional[Dict[str, Any]] = None,
    ) -> FeatureFlag:
        async with self.client.session() as session:
            flag = FeatureFlag(
                name=name,
                key=key,
                description=description,
                is_enabled=is_enabled,
                rollout_type=rollout_type,
                rollout_data=rollout_data,
            )
            session.add(flag)
            await session.flush()
            return flag

    async def update(
        self, flag_id: str | UUID, changes: Dict[str, Any]
    ) -> Optional[FeatureFlag]:
        """Apply a partial update; keys outside the updatable set are ignored."""
        if isinstance(flag_id, str):
            flag_id = UUID(flag_id)
        async with self.client.session() as session:
            result = await session.execute(
                select(FeatureFlag).where(FeatureFlag.id == flag_id)
            )
            flag = result.scalar_one_or_none()
            if flag:
                for field_name, value in changes.items():
                    if field_name in _UPDATABLE_FIELDS:
                        setattr(flag, field_name, value)
                flag.updated_at = utc_now()
                await session.flush()
            return flag

    async def delete(self, flag_id: str | UUID) -> bool:
        """Delete a flag.

        Returns:
            True if a row was removed
        """
        if isinstance(flag_id, str):
            flag_id = UUID(flag_id)
        async with self.client.session() as session:
            result = await session.execute(
                select(FeatureFlag).where(FeatureFlag.id == flag_id)
            )
            flag = result.scalar_one_or_none()
            if flag is None:
                return False
            await session.delete(flag)
            return True
