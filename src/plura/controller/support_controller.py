"""Customer-facing support tickets."""

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

router = APIRouter(prefix="/api/support", tags=["support"])


class CreateTicketRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    subject: Optional[str] = None
    description: Optional[str] = None
    priority: Optional[str] = None
    category: Optional[str] = None
    subaccount_id: Optional[str] = Field(None, alias="subaccountId")


@router.post("/tickets")
async def create_ticket(
    body: CreateTicketRequest,
    request: Request,
    context: TenantContext = Depends(require_authenticated),
):
    """Open a ticket as the current user.

    Raises:
        BadRequestError: 400 if subject or description is missing
    """
    support_service = request.app.state.support_service
    try:
        return await support_service.create_ticket(
            context.session,
            subject=body.subject,
            description=body.description,
            priority=body.priority,
            category=body.category,
            subaccount_id=body.subaccount_id,
        )
    except (HTTPException, PluraException):
        raise
    except Exception as e:
        logger.error(f"Failed to create support ticket: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create support ticket",
        )


@router.get("/tickets")
async def list_my_tickets(
    request: Request,
    status_filter: str = Query("all", alias="status"),
    context: TenantContext = Depends(require_authenticated),
):
    support_service = request.app.state.support_service
    try:
        tickets = await support_service.list_my_tickets(context.session, status_filter)
        return {"tickets": tickets}
    except (HTTPException, PluraException):
        raise
    except Exception as e:
        logger.error(f"Failed to list support tickets: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch support tickets",
        )
