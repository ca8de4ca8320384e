"""Audit trail for admin console actions."""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional

from plura.constants import DEFAULT_AUDIT_LOG_LIMIT, UNKNOWN_CLIENT_VALUE
from plura.infrastructure.persistence.postgresql.models import AuditLog
from plura.repository.audit_log_repository import AuditLogRepository

logger = logging.getLogger(__name__)


@dataclass
class AuditActor:
    """Who performed an audited action and from where.

    Attributes:
        admin_user_id: Acting admin user id
        ip_address: First x-forwarded-for entry, or "unknown"
        user_agent: Request user agent, or "unknown"
    """

    admin_user_id: str
    ip_address: str = UNKNOWN_CLIENT_VALUE
    user_agent: str = UNKNOWN_CLIENT_VALUE


def _audit_log_to_dict(log: AuditLog) -> Dict[str, Any]:
    return {
        "id": str(log.id),
        "adminUserId": log.admin_user_id,
        "action": log.action,
        "entity": log.entity,
        "entityId": log.entity_id,
        "oldValues": log.old_values,
        "newValues": log.new_values,
        "ipAddress": log.ip_address,
        "userAgent": log.user_agent,
        "createdAt": log.created_at.isoformat() if log.created_at else None,
    }


class AuditService:
    """Writes and reads audit log rows.

    Attributes:
        audit_repo: Audit log repository
    """

    def __init__(self, audit_repo: AuditLogRepository):
        self.audit_repo = audit_repo

    async def create_audit_log(
        self,
        admin_user_id: str,
        action: str,
        entity: str,
        entity_id: Optional[str] = None,
        old_values: Optional[Dict[str, Any]] = None,
        new_values: Optional[Dict[str, Any]] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Record one admin action.

        Args:
            admin_user_id: Acting admin
            action: Action name, e.g. SUSPEND_AGENCY
            entity: Entity kind, e.g. Agency
            entity_id: Affected row id
            old_values: State before the change
            new_values: State after the change
            ip_address: Caller IP, defaults to "unknown"
            user_agent: Caller user agent, defaults to "unknown"

        Returns:
            The stored audit entry
        """
        log = await self.audit_repo.create(
            admin_user_id=admin_user_id,
            action=action,
            entity=entity,
            entity_id=entity_id,
            old_values=old_values,
            new_values=new_values,
            ip_address=ip_address or UNKNOWN_CLIENT_VALUE,
            user_agent=user_agent or UNKNOWN_CLIENT_VALUE,
        )
        logger.info(f"Audit: {action} {entity} {entity_id or ''} by {admin_user_id}")
        return _audit_log_to_dict(log)

    async def record(
        self,
        actor: AuditActor,
        action: str,
        entity: str,
        entity_id: Optional[str] = None,
        old_values: Optional[Dict[str, Any]] = None,
        new_values: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        return await self.create_audit_log(
            admin_user_id=actor.admin_user_id,
            action=action,
            entity=entity,
            entity_id=entity_id,
            old_values=old_values,
            new_values=new_values,
            ip_address=actor.ip_address,
            user_agent=actor.user_agent,
        )

    async def get_audit_logs(
        self,
        entity: Optional[str] = None,
        admin_user_id: Optional[str] = None,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
        limit: int = DEFAULT_AUDIT_LOG_LIMIT,
    ) -> List[Dict[str, Any]]:
        logs = await self.audit_repo.list_filtered(
            entity=entity,
            admin_user_id=admin_user_id,
            date_from=date_from,
            date_to=date_to,
            limit=limit,
        )
        return [_audit_log_to_dict(log) for log in logs]
