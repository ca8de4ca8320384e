"""Automation run-state endpoints."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from pydantic import BaseModel, ConfigDict, Field

from plura.exception import PluraException
from plura.middleware.authorization_middleware import (
    TenantContext,
    require_authenticated,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/automations", tags=["automations"])


class ToggleRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    subaccount_id: Optional[str] = Field(None, alias="subAccountId")
    action: Optional[str] = None


@router.post("/{automation_id}/toggle")
async def toggle_automation(
    automation_id: str,
    body: ToggleRequest,
    request: Request,
    context: TenantContext = Depends(require_authenticated),
):
    """Start or pause an automation.

    Raises:
        BadRequestError: 400 for an action other than start or pause
        ResourceNotFoundError: 404 if the automation is not in the subaccount
    """
    automation_service = request.app.state.automation_service
    try:
        return await automation_service.toggle(
            context.session, automation_id, body.subaccount_id, body.action
        )
    except (HTTPException, PluraException):
        raise
    except Exception as e:
        logger.error(f"Failed to toggle automation {automation_id}: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to toggle automation",
        )


@router.get("/{automation_id}/status")
async def get_automation_status(
    automation_id: str,
    request: Request,
    subaccount_id: Optional[str] = Query(None, alias="subAccountId"),
    context: TenantContext = Depends(require_authenticated),
):
    automation_service = request.app.state.automation_service
    try:
        return await automation_service.get_status(
            context.session, automation_id, subaccount_id
        )
    except (HTTPException, PluraException):
        raise
    except Exception as e:
        logger.error(f"Failed to load automation status {automation_id}: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to get automation status",
        )
