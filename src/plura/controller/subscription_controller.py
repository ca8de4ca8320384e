"""Premium checks, the caller's subscription and the plan catalogue."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import BaseModel, ConfigDict, Field

from plura.exception import BadRequestError, PluraException
from plura.middleware.authorization_middleware import (
    TenantContext,
    require_authenticated,
)
from plura.service.plans import PRICING_PLANS, get_plan_limits_text

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["subscription"])


class SubaccountPremiumRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    subaccount_id: Optional[str] = Field(None, alias="subaccountId")


class AgencyPremiumRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    agency_id: Optional[str] = Field(None, alias="agencyId")


@router.post("/check-premium")
async def check_subaccount_premium(body: SubaccountPremiumRequest, request: Request):
    """Whether the agency behind a subaccount holds a premium subscription.

    Raises:
        BadRequestError: 400 if subaccountId is missing
        ResourceNotFoundError: 404 if the subaccount does not exist
    """
    premium_service = request.app.state.premium_service
    try:
        is_premium = await premium_service.check_subaccount_premium(body.subaccount_id)
        return {"isPremium": is_premium}
    except (HTTPException, PluraException):
        raise
    except Exception as e:
        logger.error(f"Premium check failed: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to check premium status",
        )


@router.get("/check-premium")
async def check_premium_default():
    """Anonymous default used by download buttons before sign-in."""
    return {"isPremium": False, "plan": "free", "canDownload": False}


@router.post("/subscription/check-premium")
async def check_agency_premium(body: AgencyPremiumRequest, request: Request):
    premium_service = request.app.state.premium_service
    try:
        if not body.agency_id:
            raise BadRequestError("Agency ID is required", field="agencyId")
        is_premium = await premium_service.check_premium_subscription(body.agency_id)
        return {"isPremium": is_premium}
    except (HTTPException, PluraException):
        raise
    except Exception as e:
        logger.error(f"Agency premium check failed: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to check premium status",
        )


@router.get("/user/subscription")
async def get_user_subscription(
    request: Request,
    context: TenantContext = Depends(require_authenticated),
):
    """Plan and usage of the caller: agency subscription, then individual, then free."""
    premium_service = request.app.state.premium_service
    try:
        return await premium_service.get_user_subscription(context.session)
    except (HTTPException, PluraException):
        raise
    except Exception as e:
        logger.error(f"Failed to load subscription: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch subscription",
        )


@router.get("/billing/plans", dependencies=[Depends(require_authenticated)])
async def list_plans():
    return {
        "plans": [
            {**plan, "limitsText": get_plan_limits_text(plan)} for plan in PRICING_PLANS
        ]
    }
