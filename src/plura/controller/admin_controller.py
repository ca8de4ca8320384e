"""Admin console API endpoints.

Every route requires an admin (cookie or admin-flagged session); writes to
agencies and system configuration require a super admin. Reads and writes
are audited by AdminService.
"""

import logging
from datetime import datetime
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from pydantic import BaseModel, ConfigDict, Field

from plura.constants import DEFAULT_AUDIT_LOG_LIMIT
from plura.exception import PluraException
from plura.middleware.authorization_middleware import (
    AdminContext,
    require_admin,
    require_super_admin,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin", tags=["admin"])


def _internal_error(detail: str, e: Exception) -> HTTPException:
    logger.error(f"{detail}: {e}", exc_info=True)
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=detail,
    )


class StatusActionRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    agency_id: Optional[str] = Field(None, alias="agencyId")
    subaccount_id: Optional[str] = Field(None, alias="subaccountId")
    action: Optional[str] = None


class UpdateUserRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: Optional[str] = Field(None, alias="userId")
    action: Optional[str] = None
    plan: Optional[str] = None
    is_active: Optional[bool] = Field(None, alias="isActive")


class UpdateIndividualRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    individual_id: Optional[str] = Field(None, alias="individualId")
    action: Optional[str] = None
    plan: Optional[str] = None


class SystemConfigRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    key: Optional[str] = None
    value: Any = None
    type: Optional[str] = None
    description: Optional[str] = None
    is_public: bool = Field(False, alias="isPublic")


# -----------------------------------------------------------------------------
# Agencies
# -----------------------------------------------------------------------------


@router.get("/agencies")
async def list_agencies(
    request: Request,
    is_active: Optional[bool] = Query(None, alias="isActive"),
    search: Optional[str] = None,
    admin: AdminContext = Depends(require_admin),
):
    admin_service = request.app.state.admin_service
    try:
        agencies = await admin_service.list_agencies(
            admin.audit_actor(), is_active=is_active, search=search
        )
        return {"agencies": agencies}
    except (HTTPException, PluraException):
        raise
    except Exception as e:
        raise _internal_error("Failed to fetch agencies", e)


@router.patch("/agencies")
async def change_agency_status(
    body: StatusActionRequest,
    request: Request,
    admin: AdminContext = Depends(require_super_admin),
):
    """Suspend or activate an agency (super admin only)."""
    admin_service = request.app.state.admin_service
    try:
        agency = await admin_service.change_agency_status(
            admin.audit_actor(), body.agency_id, body.action
        )
        return {"success": True, "agency": agency}
    except (HTTPException, PluraException):
        raise
    except Exception as e:
        raise _internal_error("Failed to perform action", e)


# -----------------------------------------------------------------------------
# Users
# -----------------------------------------------------------------------------


@router.get("/users")
async def list_users(
    request: Request,
    role: Optional[str] = None,
    is_active: Optional[bool] = Query(None, alias="isActive"),
    agency_id: Optional[str] = Query(None, alias="agencyId"),
    search: Optional[str] = None,
    admin: AdminContext = Depends(require_admin),
):
    admin_service = request.app.state.admin_service
    try:
        users = await admin_service.list_users(
            admin.audit_actor(),
            role=role,
            is_active=is_active,
            agency_id=agency_id,
            search=search,
        )
        return {"users": users}
    except (HTTPException, PluraException):
        raise
    except Exception as e:
        raise _internal_error("Failed to fetch users", e)


@router.patch("/users")
async def update_user(
    body: UpdateUserRequest,
    request: Request,
    admin: AdminContext = Depends(require_admin),
):
    """Suspend/activate a user, or set its plan or active flag directly."""
    admin_service = request.app.state.admin_service
    try:
        user = await admin_service.update_user(
            admin.audit_actor(),
            body.user_id,
            action=body.action,
            plan=body.plan,
            is_active=body.is_active,
        )
        return {"success": True, "user": user}
    except (HTTPException, PluraException):
        raise
    except Exception as e:
        raise _internal_error("Failed to perform action", e)


# -----------------------------------------------------------------------------
# Subaccounts
# -----------------------------------------------------------------------------


@router.get("/subaccounts")
async def list_subaccounts(
    request: Request,
    search: Optional[str] = None,
    is_active: Optional[bool] = Query(None, alias="isActive"),
    admin: AdminContext = Depends(require_admin),
):
    admin_service = request.app.state.admin_service
    try:
        subaccounts = await admin_service.list_subaccounts(search=search, is_active=is_active)
        return {"subAccounts": subaccounts}
    except (HTTPException, PluraException):
        raise
    except Exception as e:
        raise _internal_error("Failed to fetch subaccounts", e)


@router.patch("/subaccounts")
async def change_subaccount_status(
    body: StatusActionRequest,
    request: Request,
    admin: AdminContext = Depends(require_admin),
):
    admin_service = request.app.state.admin_service
    try:
        return await admin_service.change_subaccount_status(
            admin.audit_actor(), body.subaccount_id, body.action
        )
    except (HTTPException, PluraException):
        raise
    except Exception as e:
        raise _internal_error("Failed to update subaccount", e)


# -----------------------------------------------------------------------------
# Individuals
# -----------------------------------------------------------------------------


@router.get("/individuals")
async def list_individuals(
    request: Request,
    search: Optional[str] = None,
    is_active: Optional[bool] = Query(None, alias="isActive"),
    plan: Optional[str] = None,
    admin: AdminContext = Depends(require_admin),
):
    admin_service = request.app.state.admin_service
    try:
        individuals = await admin_service.list_individuals(
            search=search, is_active=is_active, plan=plan
        )
        return {"individuals": individuals}
    except (HTTPException, PluraException):
        raise
    except Exception as e:
        raise _internal_error("Internal server error", e)


@router.patch("/individuals")
async def update_individual(
    body: UpdateIndividualRequest,
    request: Request,
    admin: AdminContext = Depends(require_admin),
):
    admin_service = request.app.state.admin_service
    try:
        individual = await admin_service.update_individual(
            admin.audit_actor(), body.individual_id, body.action, plan=body.plan
        )
        return {"individual": individual}
    except (HTTPException, PluraException):
        raise
    except Exception as e:
        raise _internal_error("Internal server error", e)


# -----------------------------------------------------------------------------
# Dashboard
# -----------------------------------------------------------------------------


@router.get("/dashboard")
async def get_dashboard(
    request: Request,
    time_range: str = Query("30d", alias="timeRange"),
    admin: AdminContext = Depends(require_admin),
):
    """Platform counters; timeRange bounds the submission count."""
    admin_service = request.app.state.admin_service
    try:
        return await admin_service.get_dashboard_stats(time_range)
    except (HTTPException, PluraException):
        raise
    except Exception as e:
        raise _internal_error("Failed to fetch dashboard data", e)


# -----------------------------------------------------------------------------
# System configuration
# -----------------------------------------------------------------------------


@router.get("/system-config")
async def list_system_config(
    request: Request,
    key: Optional[str] = None,
    admin: AdminContext = Depends(require_admin),
):
    admin_service = request.app.state.admin_service
    try:
        config = await admin_service.list_system_config(admin.audit_actor(), key=key)
        return {"config": config}
    except (HTTPException, PluraException):
        raise
    except Exception as e:
        raise _internal_error("Failed to fetch system config", e)


@router.put("/system-config")
async def save_system_config(
    body: SystemConfigRequest,
    request: Request,
    admin: AdminContext = Depends(require_super_admin),
):
    admin_service = request.app.state.admin_service
    try:
        config = await admin_service.save_system_config(
            admin.audit_actor(),
            key=body.key,
            value=body.value,
            value_type=body.type,
            description=body.description,
            is_public=body.is_public,
        )
        return {"config": config}
    except (HTTPException, PluraException):
        raise
    except Exception as e:
        raise _internal_error("Failed to update system config", e)


# -----------------------------------------------------------------------------
# Feature flags
# -----------------------------------------------------------------------------


@router.get("/feature-flags")
async def list_feature_flags(
    request: Request,
    admin: AdminContext = Depends(require_admin),
):
    admin_service = request.app.state.admin_service
    try:
        return {"featureFlags": await admin_service.list_feature_flags()}
    except (HTTPException, PluraException):
        raise
    except Exception as e:
        raise _internal_error("Failed to fetch feature flags", e)


@router.post("/feature-flags", status_code=status.HTTP_201_CREATED)
async def create_feature_flag(
    body: Dict[str, Any],
    request: Request,
    admin: AdminContext = Depends(require_admin),
):
    admin_service = request.app.state.admin_service
    try:
        flag = await admin_service.create_feature_flag(admin.audit_actor(), body)
        return {"featureFlag": flag}
    except (HTTPException, PluraException):
        raise
    except Exception as e:
        raise _internal_error("Failed to create feature flag", e)


@router.patch("/feature-flags")
async def update_feature_flag(
    body: Dict[str, Any],
    request: Request,
    admin: AdminContext = Depends(require_admin),
):
    """Partial update; the flag is named by flagId in the body."""
    admin_service = request.app.state.admin_service
    try:
        flag = await admin_service.update_feature_flag(
            admin.audit_actor(), body.get("flagId"), body
        )
        return {"featureFlag": flag}
    except (HTTPException, PluraException):
        raise
    except Exception as e:
        raise _internal_error("Failed to update feature flag", e)


@router.delete("/feature-flags")
async def delete_feature_flag(
    request: Request,
    flag_id: Optional[str] = Query(None, alias="flagId"),
    admin: AdminContext = Depends(require_admin),
):
    admin_service = request.app.state.admin_service
    try:
        return await admin_service.delete_feature_flag(admin.audit_actor(), flag_id)
    except (HTTPException, PluraException):
        raise
    except Exception as e:
        raise _internal_error("Failed to delete feature flag", e)


# -----------------------------------------------------------------------------
# Audit logs
# -----------------------------------------------------------------------------


@router.get("/audit-logs")
async def list_audit_logs(
    request: Request,
    entity: Optional[str] = None,
    admin_user_id: Optional[str] = Query(None, alias="adminUserId"),
    date_from: Optional[datetime] = Query(None, alias="dateFrom"),
    date_to: Optional[datetime] = Query(None, alias="dateTo"),
    limit: int = Query(DEFAULT_AUDIT_LOG_LIMIT, ge=1, le=1000),
    admin: AdminContext = Depends(require_admin),
):
    admin_service = request.app.state.admin_service
    try:
        logs = await admin_service.list_audit_logs(
            entity=entity,
            admin_user_id=admin_user_id,
            date_from=date_from,
            date_to=date_to,
            limit=limit,
        )
        return {"auditLogs": logs}
    except (HTTPException, PluraException):
        raise
    except Exception as e:
        raise _internal_error("Failed to fetch audit logs", e)


# -----------------------------------------------------------------------------
# Support
# -----------------------------------------------------------------------------


@router.get("/support")
async def list_support_tickets(
    request: Request,
    status_filter: Optional[str] = Query(None, alias="status"),
    priority: Optional[str] = None,
    category: Optional[str] = None,
    assigned_to: Optional[str] = Query(None, alias="assignedTo"),
    admin: AdminContext = Depends(require_admin),
):
    admin_service = request.app.state.admin_service
    try:
        tickets = await admin_service.list_support_tickets(
            admin.audit_actor(),
            status=status_filter,
            priority=priority,
            category=category,
            assigned_to=assigned_to,
        )
        return {"tickets": tickets}
    except (HTTPException, PluraException):
        raise
    except Exception as e:
        raise _internal_error("Failed to fetch support tickets", e)


@router.patch("/support")
async def update_support_ticket(
    body: Dict[str, Any],
    request: Request,
    admin: AdminContext = Depends(require_admin),
):
    admin_service = request.app.state.admin_service
    try:
        ticket = await admin_service.update_support_ticket(
            admin.audit_actor(), body.get("ticketId"), body
        )
        return {"ticket": ticket}
    except (HTTPException, PluraException):
        raise
    except Exception as e:
        raise _internal_error("Failed to update support ticket", e)
