from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from sqlalchemy import select

if TYPE_CHECKING:
    from plura.infrastructure.persistence.postgresql.client import PostgreSQLClient

from plura.infrastructure.persistence.postgresql.models import AuditLog


class AuditLogRepository:
    """Repository for admin console audit trail.

    Attributes:
        client: PostgreSQL client for database access
    """

    def __init__(self, client: PostgreSQLClient):
        self.client = client

    async def create(
        self,
        admin_user_id: str,
        action: str,
        entity: str,
        entity_id: Optional[str] = None,
        old_values: Optional[Dict[str, Any]] = None,
        new_values: Optional[Dict[str, Any]] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> AuditLog:
        """Insert an audit row.

        Returns:
            Created AuditLog instance
        """
        async with self.client.session() as session:
            row = AuditLog(
                admin_user_id=admin_user_id,
                action=action,
                entity=entity,
                entity_id=entity_id,
                old_values=old_values,
                new_values=new_values,
                ip_address=ip_address,
                user_agent=user_agent,
            )
            session.add(row)
            await session.flush()
            return row

    async def list_filtered(
        self,
        entity: Optional[str] = None,
        admin_user_id: Optional[str] = None,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
        limit: int = 100,
    ) -> List[AuditLog]:
        """List audit rows, newest first.

        Args:
            entity: Entity name filter
            admin_user_id: Acting admin filter
            date_from: Inclusive lower bound on created_at
            date_to: Inclusive upper bound on created_at
            limit: Maximum rows returned

        Returns:
            List of AuditLog instances
        """
        query = select(AuditLog)
        if entity:
            query = query.where(AuditLog.entity == entity)
        if admin_user_id:
            query = query.where(AuditLog.admin_user_id == admin_user_id)
        if date_from:
            query = query.where(AuditLog.created_at >= date_from)
        if date_to:
            query = query.where(AuditLog.created_at <= date_to)
        async with self.client.session() as session:
            result = await session.execute(
                query.order_by(AuditLog.created_at.desc()).limit(limit)
            )
            return list(result.scalars().all())
