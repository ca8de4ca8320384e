"""Admin console platform pages: dashboard, configuration, flags, audit, support."""

import logging
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from plura.constants import DEFAULT_AUDIT_LOG_LIMIT, PREMIUM_PLANS, TIME_RANGE_DAYS
from plura.exception import (
    BadRequestError,
    ResourceAlreadyExistsError,
    ResourceNotFoundError,
)
from plura.infrastructure.persistence.postgresql.models import FeatureFlag, SystemConfig
from plura.service.access import parse_uuid
from plura.service.audit_service import AuditActor
from plura.service.support_service import ticket_to_dict

logger = logging.getLogger(__name__)

DEFAULT_DASHBOARD_RANGE = "30d"

# request key -> column
_FLAG_FIELDS = {
    "name": "name",
    "description": "description",
    "isEnabled": "is_enabled",
    "rolloutType": "rollout_type",
    "rolloutData": "rollout_data",
}
_TICKET_FIELDS = {
    "status": "status",
    "priority": "priority",
    "assignedTo": "assigned_user_id",
    "resolution": "resolution",
}


def dashboard_window_start(time_range: Optional[str], now: Optional[datetime] = None) -> datetime:
    now = now or datetime.now(timezone.utc)
    days = TIME_RANGE_DAYS.get(time_range or "", TIME_RANGE_DAYS[DEFAULT_DASHBOARD_RANGE])
    return now - timedelta(days=days)


def _config_to_dict(entry: SystemConfig) -> Dict[str, Any]:
    return {
        "id": str(entry.id),
        "key": entry.key,
        "value": entry.value,
        "type": entry.type,
        "description": entry.description,
        "isPublic": entry.is_public,
        "lastModifiedBy": entry.last_modified_by,
        "updatedAt": entry.updated_at.isoformat() if entry.updated_at else None,
    }


def _flag_to_dict(flag: FeatureFlag) -> Dict[str, Any]:
    return {
        "id": str(flag.id),
        "name": flag.name,
        "key": flag.key,
        "description": flag.description,
        "isEnabled": flag.is_enabled,
        "rolloutType": flag.rollout_type,
        "rolloutData": flag.rollout_data,
        "createdAt": flag.created_at.isoformat() if flag.created_at else None,
        "updatedAt": flag.updated_at.isoformat() if flag.updated_at else None,
    }


class PlatformAdminMixin(ABC):
    """Mixin for platform-wide admin pages.

    Requires the repository getters below and self.get_audit_service().
    """

    @abstractmethod
    def get_agency_repo(self):
        pass

    @abstractmethod
    def get_subaccount_repo(self):
        pass

    @abstractmethod
    def get_individual_repo(self):
        pass

    @abstractmethod
    def get_marketplace_repo(self):
        pass

    @abstractmethod
    def get_form_repo(self):
        pass

    @abstractmethod
    def get_submission_repo(self):
        pass

    @abstractmethod
    def get_automation_repo(self):
        pass

    @abstractmethod
    def get_system_config_repo(self):
        pass

    @abstractmethod
    def get_feature_flag_repo(self):
        pass

    @abstractmethod
    def get_ticket_repo(self):
        pass

    @abstractmethod
    def get_audit_service(self):
        pass

    # -------------------------------------------------------------------------
    # Dashboard
    # -------------------------------------------------------------------------

    async def get_dashboard_stats(self, time_range: Optional[str] = None) -> Dict[str, Any]:
        """Platform counters for the admin overview.

        Args:
            time_range: 7d, 30d or 90d; bounds the submission count

        Returns:
            Nested counters for individuals, agencies, marketplace and automations
        """
        since = dashboard_window_start(time_range)
        individual_repo = self.get_individual_repo()
        agency_repo = self.get_agency_repo()
        marketplace_repo = self.get_marketplace_repo()

        return {
            "timeRange": time_range if time_range in TIME_RANGE_DAYS else DEFAULT_DASHBOARD_RANGE,
            "individuals": {
                "total": await individual_repo.count(),
                "active": await individual_repo.count(is_active=True),
                "premium": await individual_repo.count_with_active_plan(list(PREMIUM_PLANS)),
            },
            "agencies": {
                "total": await agency_repo.count(),
                "active": await agency_repo.count(is_active=True),
                "subaccounts": await self.get_subaccount_repo().count(),
            },
            "marketplace": {
                "totalProducts": await marketplace_repo.count_products(),
                "activeProducts": await marketplace_repo.count_products(active_only=True),
                "totalSales": await marketplace_repo.count_sales(),
            },
            "automations": {
                "totalForms": await self.get_form_repo().count(),
                "submissions": await self.get_submission_repo().count_since(since),
                "activeWorkflows": await self.get_automation_repo().count_published(),
            },
        }

    # -------------------------------------------------------------------------
    # System configuration
    # -------------------------------------------------------------------------

    async def list_system_config(
        self, actor: AuditActor, key: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        entries = await self.get_system_config_repo().list_all(key=key)
        await self.get_audit_service().record(actor, "VIEW_SYSTEM_CONFIG", "SystemConfig")
        return [_config_to_dict(e) for e in entries]

    async def save_system_config(
        self,
        actor: AuditActor,
        key: Optional[str],
        value: Any,
        value_type: Optional[str],
        description: Optional[str] = None,
        is_public: bool = False,
    ) -> Dict[str, Any]:
        if not key or value is None or not value_type:
            raise BadRequestError("Key, value and type are required")

        entry, old_values = await self.get_system_config_repo().upsert(
            key=key,
            value=str(value),
            value_type=value_type,
            description=description,
            is_public=is_public,
            modified_by=actor.admin_user_id,
        )
        await self.get_audit_service().record(
            actor,
            "UPDATE_SYSTEM_CONFIG" if old_values else "CREATE_SYSTEM_CONFIG",
            "SystemConfig",
            entity_id=key,
            old_values=old_values,
            new_values={
                "value": entry.value,
                "type": entry.type,
                "description": entry.description,
                "isPublic": entry.is_public,
            },
        )
        return _config_to_dict(entry)

    # -------------------------------------------------------------------------
    # Feature flags
    # -------------------------------------------------------------------------

    async def list_feature_flags(self) -> List[Dict[str, Any]]:
        flags = await self.get_feature_flag_repo().list_all()
        return [_flag_to_dict(f) for f in flags]

    async def create_feature_flag(
        self, actor: AuditActor, body: Dict[str, Any]
    ) -> Dict[str, Any]:
        name, key = body.get("name"), body.get("key")
        if not name or not key:
            raise BadRequestError("Name and key are required")

        flag_repo = self.get_feature_flag_repo()
        if await flag_repo.get_by_key(key):
            raise ResourceAlreadyExistsError("FeatureFlag", key)

        flag = await flag_repo.create(
            name=name,
            key=key,
            description=body.get("description"),
            is_enabled=bool(body.get("isEnabled", False)),
            rollout_type=body.get("rolloutType") or "all",
            rollout_data=body.get("rolloutData"),
        )
        data = _flag_to_dict(flag)
        await self.get_audit_service().record(
            actor, "CREATE_FEATURE_FLAG", "FeatureFlag", entity_id=str(flag.id), new_values=data
        )
        return data

    async def update_feature_flag(
        self, actor: AuditActor, flag_id: Optional[str], body: Dict[str, Any]
    ) -> Dict[str, Any]:
        parsed = parse_uuid(flag_id, "id")
        flag_repo = self.get_feature_flag_repo()
        existing = await flag_repo.get_by_id(parsed)
        if existing is None:
            raise ResourceNotFoundError("FeatureFlag", str(parsed))
        old_values = _flag_to_dict(existing)

        changes = {column: body[key] for key, column in _FLAG_FIELDS.items() if key in body}
        flag = await flag_repo.update(parsed, changes)
        data = _flag_to_dict(flag)
        await self.get_audit_service().record(
            actor,
            "UPDATE_FEATURE_FLAG",
            "FeatureFlag",
            entity_id=str(parsed),
            old_values=old_values,
            new_values=data,
        )
        return data

    async def delete_feature_flag(
        self, actor: AuditActor, flag_id: Optional[str]
    ) -> Dict[str, bool]:
        parsed = parse_uuid(flag_id, "id")
        flag_repo = self.get_feature_flag_repo()
        existing = await flag_repo.get_by_id(parsed)
        if existing is None:
            raise ResourceNotFoundError("FeatureFlag", str(parsed))

        await flag_repo.delete(parsed)
        await self.get_audit_service().record(
            actor,
            "DELETE_FEATURE_FLAG",
            "FeatureFlag",
            entity_id=str(parsed),
            old_values=_flag_to_dict(existing),
        )
        return {"success": True}

    # -------------------------------------------------------------------------
    # Audit logs
    # -------------------------------------------------------------------------

    async def list_audit_logs(
        self,
        entity: Optional[str] = None,
        admin_user_id: Optional[str] = None,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
        limit: int = DEFAULT_AUDIT_LOG_LIMIT,
    ) -> List[Dict[str, Any]]:
        return await self.get_audit_service().get_audit_logs(
            entity=entity,
            admin_user_id=admin_user_id,
            date_from=date_from,
            date_to=date_to,
            limit=limit,
        )

    # -------------------------------------------------------------------------
    # Support
    # -------------------------------------------------------------------------

    async def list_support_tickets(
        self,
        actor: AuditActor,
        status: Optional[str] = None,
        priority: Optional[str] = None,
        category: Optional[str] = None,
        assigned_to: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        if assigned_to:
            assigned_to = str(parse_uuid(assigned_to, "assignedTo"))
        tickets = await self.get_ticket_repo().list_filtered(
            status=status, priority=priority, category=category, assigned_to=assigned_to
        )
        await self.get_audit_service().record(actor, "VIEW_SUPPORT_TICKETS", "SupportTicket")
        return [ticket_to_dict(t) for t in tickets]

    async def update_support_ticket(
        self, actor: AuditActor, ticket_id: Optional[str], body: Dict[str, Any]
    ) -> Dict[str, Any]:
        parsed = parse_uuid(ticket_id, "ticketId")
        changes = {
            column: body[key]
            for key, column in _TICKET_FIELDS.items()
            if body.get(key) is not None
        }
        if "assigned_user_id" in changes:
            changes["assigned_user_id"] = parse_uuid(changes["assigned_user_id"], "assignedTo")

        ticket = await self.get_ticket_repo().update(parsed, changes)
        if ticket is None:
            raise ResourceNotFoundError("Ticket", str(parsed))

        await self.get_audit_service().record(
            actor,
            "UPDATE_SUPPORT_TICKET",
            "SupportTicket",
            entity_id=str(parsed),
            new_values={k: body[k] for k in _TICKET_FIELDS if body.get(k) is not None},
        )
        return ticket_to_dict(ticket)
