"""Marketing site landing data."""

from fastapi import APIRouter

from plura.service.plans import PRICING_PLANS, get_plan_limits_text

router = APIRouter(tags=["site"])


@router.get("/site")
async def landing():
    """Plan catalogue shown on the landing page."""
    return {
        "name": "Plura",
        "plans": [
            {**plan, "limitsText": get_plan_limits_text(plan)} for plan in PRICING_PLANS
        ],
    }
