"""Admin console management of agencies, users, subaccounts and individuals."""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from plura.exception import BadRequestError, ResourceNotFoundError
from plura.infrastructure.persistence.postgresql.models import (
    Agency,
    Individual,
    SubAccount,
    Subscription,
    User,
)
from plura.service.access import parse_uuid
from plura.service.audit_service import AuditActor

logger = logging.getLogger(__name__)

_ACTIVE_BY_ACTION = {"suspend": False, "activate": True}


def _iso(value) -> Optional[str]:
    return value.isoformat() if value else None


def _subscription_to_dict(subscription: Optional[Subscription]) -> Optional[Dict[str, Any]]:
    if subscription is None:
        return None
    return {
        "plan": subscription.plan,
        "active": subscription.active,
        "status": subscription.status,
        "currentPeriodEnd": _iso(subscription.current_period_end),
    }


def _agency_to_dict(agency: Agency) -> Dict[str, Any]:
    return {
        "id": str(agency.id),
        "name": agency.name,
        "companyEmail": agency.company_email,
        "companyPhone": agency.company_phone,
        "country": agency.country,
        "isActive": agency.is_active,
        "createdAt": _iso(agency.created_at),
        "subscription": _subscription_to_dict(agency.subscription),
        "_count": {
            "subAccounts": len(agency.subaccounts or []),
            "users": len(agency.users or []),
        },
    }


def _user_to_dict(user: User, with_agency: bool = True) -> Dict[str, Any]:
    data = {
        "id": str(user.id),
        "name": user.name,
        "email": user.email,
        "role": user.role,
        "plan": user.plan,
        "isActive": user.is_active,
        "agencyId": str(user.agency_id) if user.agency_id else None,
        "lastLoginAt": _iso(user.last_login_at),
        "createdAt": _iso(user.created_at),
    }
    if with_agency:
        data["agency"] = {"name": user.agency.name} if user.agency else None
    return data


def _subaccount_to_dict(subaccount: SubAccount) -> Dict[str, Any]:
    agency = subaccount.agency
    return {
        "id": str(subaccount.id),
        "name": subaccount.name,
        "companyEmail": subaccount.company_email,
        "companyPhone": subaccount.company_phone,
        "address": subaccount.address,
        "city": subaccount.city,
        "zipCode": subaccount.zip_code,
        "state": subaccount.state,
        "country": subaccount.country,
        "isActive": subaccount.is_active,
        "createdAt": _iso(subaccount.created_at),
        "agencyId": str(subaccount.agency_id) if subaccount.agency_id else None,
        "individualId": str(subaccount.individual_id) if subaccount.individual_id else None,
        "agency": {"name": agency.name, "isActive": agency.is_active} if agency else None,
    }


def _individual_to_dict(individual: Individual, with_relations: bool = True) -> Dict[str, Any]:
    data = {
        "id": str(individual.id),
        "userId": str(individual.user_id),
        "name": individual.name,
        "email": individual.email,
        "plan": individual.plan,
        "isActive": individual.is_active,
        "createdAt": _iso(individual.created_at),
    }
    if with_relations:
        data["subscription"] = _subscription_to_dict(individual.subscription)
        data["_count"] = {"subAccounts": len(individual.subaccounts or [])}
    return data


def _active_flag(action: Optional[str]) -> bool:
    if action not in _ACTIVE_BY_ACTION:
        raise BadRequestError("Invalid action", field="action")
    return _ACTIVE_BY_ACTION[action]


class TenantAdminMixin(ABC):
    """Mixin for the tenant-facing admin pages.

    Requires self.get_agency_repo(), self.get_user_repo(),
    self.get_subaccount_repo(), self.get_individual_repo() and
    self.get_audit_service().
    """

    @abstractmethod
    def get_agency_repo(self):
        pass

    @abstractmethod
    def get_user_repo(self):
        pass

    @abstractmethod
    def get_subaccount_repo(self):
        pass

    @abstractmethod
    def get_individual_repo(self):
        pass

    @abstractmethod
    def get_audit_service(self):
        pass

    # -------------------------------------------------------------------------
    # Agencies
    # -------------------------------------------------------------------------

    async def list_agencies(
        self,
        actor: AuditActor,
        is_active: Optional[bool] = None,
        search: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        agencies = await self.get_agency_repo().list_filtered(
            is_active=is_active, search=search
        )
        await self.get_audit_service().record(actor, "VIEW_AGENCIES", "Agency")
        return [_agency_to_dict(a) for a in agencies]

    async def change_agency_status(
        self, actor: AuditActor, agency_id: Optional[str], action: Optional[str]
    ) -> Dict[str, Any]:
        """Suspend or activate an agency.

        Args:
            actor: Acting super admin
            agency_id: Target agency
            action: "suspend" or "activate"

        Returns:
            Updated agency summary

        Raises:
            BadRequestError: Unknown action or malformed id
            ResourceNotFoundError: Unknown agency
        """
        is_active = _active_flag(action)
        parsed = parse_uuid(agency_id, "agencyId")
        agency_repo = self.get_agency_repo()

        existing = await agency_repo.get_by_id(parsed)
        if existing is None:
            raise ResourceNotFoundError("Agency", str(parsed))
        old_active = existing.is_active

        agency = await agency_repo.set_active(parsed, is_active)
        await self.get_audit_service().record(
            actor,
            "ACTIVATE_AGENCY" if is_active else "SUSPEND_AGENCY",
            "Agency",
            entity_id=str(parsed),
            old_values={"isActive": old_active},
            new_values={"isActive": is_active},
        )
        logger.info(f"Agency {parsed} {action}d by {actor.admin_user_id}")
        return {
            "id": str(agency.id),
            "name": agency.name,
            "isActive": agency.is_active,
        }

    # -------------------------------------------------------------------------
    # Users
    # -------------------------------------------------------------------------

    async def list_users(
        self,
        actor: AuditActor,
        role: Optional[str] = None,
        is_active: Optional[bool] = None,
        agency_id: Optional[str] = None,
        search: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        if agency_id:
            agency_id = str(parse_uuid(agency_id, "agencyId"))
        users = await self.get_user_repo().list_filtered(
            role=role, is_active=is_active, agency_id=agency_id, search=search
        )
        await self.get_audit_service().record(actor, "VIEW_USERS", "User")
        return [_user_to_dict(u) for u in users]

    async def update_user(
        self,
        actor: AuditActor,
        user_id: Optional[str],
        action: Optional[str] = None,
        plan: Optional[str] = None,
        is_active: Optional[bool] = None,
    ) -> Dict[str, Any]:
        """Apply a suspend/activate action or a direct plan/isActive update."""
        parsed = parse_uuid(user_id, "userId")
        user_repo = self.get_user_repo()
        existing = await user_repo.get_by_id(parsed)
        if existing is None:
            raise ResourceNotFoundError("User", str(parsed))

        if action:
            active = _active_flag(action)
            user = await user_repo.update(parsed, is_active=active)
            await self.get_audit_service().record(
                actor,
                "ACTIVATE_USER" if active else "SUSPEND_USER",
                "User",
                entity_id=str(parsed),
                old_values={"isActive": existing.is_active},
                new_values={"isActive": active},
            )
        else:
            changes: Dict[str, Any] = {}
            if plan is not None:
                changes["plan"] = plan
            if is_active is not None:
                changes["isActive"] = is_active
            if not changes:
                raise BadRequestError("Nothing to update")
            user = await user_repo.update(parsed, plan=plan, is_active=is_active)
            await self.get_audit_service().record(
                actor,
                "UPDATE_USER",
                "User",
                entity_id=str(parsed),
                old_values={"plan": existing.plan, "isActive": existing.is_active},
                new_values=changes,
            )
        return _user_to_dict(user, with_agency=False)

    # -------------------------------------------------------------------------
    # Subaccounts
    # -------------------------------------------------------------------------

    async def list_subaccounts(
        self, search: Optional[str] = None, is_active: Optional[bool] = None
    ) -> List[Dict[str, Any]]:
        subaccounts = await self.get_subaccount_repo().list_filtered(
            search=search, is_active=is_active
        )
        return [_subaccount_to_dict(s) for s in subaccounts]

    async def change_subaccount_status(
        self, actor: AuditActor, subaccount_id: Optional[str], action: Optional[str]
    ) -> Dict[str, bool]:
        is_active = _active_flag(action)
        parsed = parse_uuid(subaccount_id, "subaccountId")
        subaccount = await self.get_subaccount_repo().set_active(parsed, is_active)
        if subaccount is None:
            raise ResourceNotFoundError("SubAccount", str(parsed))
        await self.get_audit_service().record(
            actor,
            f"SubAccount {action}",
            "SubAccount",
            entity_id=str(parsed),
            new_values={"isActive": is_active},
        )
        return {"success": True}

    # -------------------------------------------------------------------------
    # Individuals
    # -------------------------------------------------------------------------

    async def list_individuals(
        self,
        search: Optional[str] = None,
        is_active: Optional[bool] = None,
        plan: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        individuals = await self.get_individual_repo().list_filtered(
            search=search, is_active=is_active, plan=plan
        )
        return [_individual_to_dict(i) for i in individuals]

    async def update_individual(
        self,
        actor: AuditActor,
        individual_id: Optional[str],
        action: Optional[str],
        plan: Optional[str] = None,
    ) -> Dict[str, Any]:
        if not individual_id or not action:
            raise BadRequestError("Individual ID and action required")

        changes: Dict[str, Any] = {}
        if action == "updatePlan":
            if not plan:
                raise BadRequestError("Plan is required for updatePlan action", field="plan")
            changes["plan"] = plan
        else:
            changes["isActive"] = _active_flag(action)

        parsed = parse_uuid(individual_id, "individualId")
        individual = await self.get_individual_repo().update(
            parsed, is_active=changes.get("isActive"), plan=changes.get("plan")
        )
        if individual is None:
            raise ResourceNotFoundError("Individual", str(parsed))

        await self.get_audit_service().record(
            actor,
            f"Individual {action}",
            "Individual",
            entity_id=str(parsed),
            new_values=changes,
        )
        return _individual_to_dict(individual, with_relations=False)
