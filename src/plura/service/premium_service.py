"""Premium status and subscription summaries.

An agency counts as premium when its Stripe subscription is active on a
paid price, or when it pays for an add-on that grants premium access.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional
from uuid import UUID

from plura.constants import (
    FREE_PLAN_KEYS,
    PREMIUM_ADDON_KEYWORDS,
    PREMIUM_ADDON_PRICE_IDS,
    PREMIUM_PRICE_IDS,
)
from plura.exception import ResourceNotFoundError
from plura.infrastructure.persistence.postgresql.models import AddOn, Subscription
from plura.repository.session_store_repository import TokenSession
from plura.repository.subaccount_repository import SubAccountRepository
from plura.repository.subscription_repository import SubscriptionRepository
from plura.service.access import parse_uuid

logger = logging.getLogger(__name__)


def is_premium_subscription(
    subscription: Optional[Subscription], premium_price_ids: Iterable[str]
) -> bool:
    """Active subscription on a known premium price or on any non-free price."""
    if subscription is None or not subscription.active:
        return False
    price_id = subscription.price_id or ""
    if price_id in premium_price_ids:
        return True
    return price_id not in FREE_PLAN_KEYS


def grants_premium(add_on: AddOn, premium_addon_price_ids: Iterable[str]) -> bool:
    if not add_on.active:
        return False
    if add_on.price_id in premium_addon_price_ids:
        return True
    name = (add_on.name or "").lower()
    return any(keyword in name for keyword in PREMIUM_ADDON_KEYWORDS)


def _free_summary() -> Dict[str, Any]:
    return {
        "plan": "free",
        "aiCreditsUsed": 0,
        "automationCount": 0,
        "funnelCount": 0,
        "pageCount": 0,
        "subscriptionId": None,
        "active": False,
    }


class PremiumService:
    """Answers premium checks and the caller's subscription summary.

    Attributes:
        subscription_repo: Subscription and add-on repository
        subaccount_repo: Subaccount repository
        premium_price_ids: Stripe price ids treated as premium plans
        premium_addon_price_ids: Stripe ids of add-ons that grant premium
    """

    def __init__(
        self,
        subscription_repo: SubscriptionRepository,
        subaccount_repo: SubAccountRepository,
        premium_price_ids: Optional[List[str]] = None,
        premium_addon_price_ids: Optional[List[str]] = None,
    ):
        self.subscription_repo = subscription_repo
        self.subaccount_repo = subaccount_repo
        self.premium_price_ids = list(premium_price_ids or PREMIUM_PRICE_IDS)
        self.premium_addon_price_ids = list(
            premium_addon_price_ids or PREMIUM_ADDON_PRICE_IDS
        )

    async def check_premium_subscription(self, agency_id: str) -> bool:
        """Whether an agency has premium access. Unknown agencies are not premium."""
        try:
            agency_uuid = UUID(str(agency_id))
        except ValueError:
            return False

        subscription = await self.subscription_repo.get_for_agency(agency_uuid)
        if is_premium_subscription(subscription, self.premium_price_ids):
            return True

        add_ons = await self.subscription_repo.list_active_add_ons(agency_uuid)
        return any(grants_premium(a, self.premium_addon_price_ids) for a in add_ons)

    async def check_subaccount_premium(self, subaccount_id: Optional[str]) -> bool:
        """Premium status of the tenant that owns a subaccount.

        Raises:
            BadRequestError: If the id is missing or malformed
            ResourceNotFoundError: If the subaccount does not exist
        """
        parsed = parse_uuid(subaccount_id, "subaccountId")
        subaccount = await self.subaccount_repo.get_by_id(parsed)
        if subaccount is None:
            raise ResourceNotFoundError("SubAccount", str(parsed))

        if subaccount.agency_id:
            return await self.check_premium_subscription(str(subaccount.agency_id))
        if subaccount.individual_id:
            subscription = await self.subscription_repo.get_for_individual(
                subaccount.individual_id
            )
            return is_premium_subscription(subscription, self.premium_price_ids)
        return False

    async def get_user_subscription(self, session: TokenSession) -> Dict[str, Any]:
        """Summarise the caller's plan and usage.

        The agency subscription wins when active, then the individual
        workspace subscription, then the free default.
        """
        subscription = None
        if session.agency_id:
            agency_subscription = await self.subscription_repo.get_for_agency(
                session.agency_id
            )
            if agency_subscription and agency_subscription.active:
                subscription = agency_subscription
        if subscription is None and session.individual_id:
            subscription = await self.subscription_repo.get_for_individual(
                session.individual_id
            )

        if subscription is None:
            return _free_summary()

        funnels, pages, automations = await self.subaccount_repo.count_usage(
            session.subaccount_ids
        )
        return {
            "plan": subscription.plan or "free",
            "aiCreditsUsed": 0,
            "automationCount": automations,
            "funnelCount": funnels,
            "pageCount": pages,
            "subscriptionId": str(subscription.id),
            "active": subscription.active,
        }
