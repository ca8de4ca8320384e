"""Stripe checkout and webhook handling.

Checkout creates hosted sessions for plan upgrades and one-off theme
purchases. The webhook mirrors subscription state into the subscriptions
table and records theme purchases paid through checkout.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from plura.constants import (
    CHECKOUT_TYPE_SUBSCRIPTION,
    CHECKOUT_TYPE_THEME,
    DEFAULT_CHECKOUT_PLAN_ID,
    PLAN_BY_PRICE_ID,
    SUBSCRIPTION_STATUS_ACTIVE,
)
from plura.exception import BadRequestError, ResourceAlreadyExistsError
from plura.infrastructure.payments.stripe_client import StripeClient
from plura.repository.agency_repository import AgencyRepository
from plura.repository.individual_repository import IndividualRepository
from plura.repository.session_store_repository import TokenSession
from plura.repository.subscription_repository import SubscriptionRepository
from plura.service.marketplace_service import MarketplaceService

logger = logging.getLogger(__name__)

SUBSCRIPTION_UPSERT_EVENTS = (
    "customer.subscription.created",
    "customer.subscription.updated",
)
SUBSCRIPTION_DELETED_EVENT = "customer.subscription.deleted"
CHECKOUT_COMPLETED_EVENT = "checkout.session.completed"


def _first_price_id(subscription: Dict[str, Any]) -> Optional[str]:
    items = (subscription.get("items") or {}).get("data") or []
    if not items:
        return None
    return (items[0].get("price") or {}).get("id")


def _from_timestamp(value: Optional[int]) -> Optional[datetime]:
    if not value:
        return None
    return datetime.fromtimestamp(value, tz=timezone.utc)


class BillingService:
    """Payments flows on top of StripeClient.

    Attributes:
        stripe_client: Configured Stripe wrapper
        subscription_repo: Subscription repository
        agency_repo: Agency repository, for customer id matching
        individual_repo: Individual repository, for customer id matching
        marketplace_service: Records theme purchases completed via checkout
        public_url: Base URL for success and cancel redirects
    """

    def __init__(
        self,
        stripe_client: StripeClient,
        subscription_repo: SubscriptionRepository,
        agency_repo: AgencyRepository,
        individual_repo: IndividualRepository,
        marketplace_service: MarketplaceService,
        public_url: str,
    ):
        self.stripe_client = stripe_client
        self.subscription_repo = subscription_repo
        self.agency_repo = agency_repo
        self.individual_repo = individual_repo
        self.marketplace_service = marketplace_service
        self.public_url = public_url.rstrip("/")

    async def create_checkout_session(
        self, session: TokenSession, request_data: Dict[str, Any]
    ) -> Dict[str, str]:
        """Create a checkout session for a plan upgrade or a theme.

        Args:
            session: Caller session (email and user id go to Stripe)
            request_data: Body with priceId/planId, or themeId/themeName/amount

        Returns:
            Dict with the hosted checkout 'url'

        Raises:
            BadRequestError: Neither subscription nor theme data was given
            PaymentProviderError: Stripe rejected the call
        """
        price_id = request_data.get("priceId")
        plan_id = request_data.get("planId")
        theme_id = request_data.get("themeId")

        if plan_id or price_id:
            checkout = await self.stripe_client.create_checkout_session(
                mode="subscription",
                customer_email=session.email,
                line_items=[{"price": price_id, "quantity": 1}],
                success_url=(
                    f"{self.public_url}/premium/success?session_id={{CHECKOUT_SESSION_ID}}"
                ),
                cancel_url=f"{self.public_url}/premium?canceled=true",
                metadata={
                    "type": CHECKOUT_TYPE_SUBSCRIPTION,
                    "planId": plan_id or DEFAULT_CHECKOUT_PLAN_ID,
                    "userId": session.user_id,
                },
                allow_promotion_codes=True,
                billing_address_collection="required",
            )
            logger.info(f"Subscription checkout created for user={session.user_id}")
            return {"url": checkout.url}

        if theme_id:
            checkout = await self.stripe_client.create_checkout_session(
                mode="payment",
                customer_email=session.email,
                line_items=[
                    {
                        "price_data": {
                            "currency": "usd",
                            "product_data": {
                                "name": request_data.get("themeName"),
                                "description": "Premium theme download",
                                "metadata": {"type": "theme", "themeId": theme_id},
                            },
                            "unit_amount": request_data.get("amount"),
                        },
                        "quantity": 1,
                    }
                ],
                success_url=request_data.get("successUrl")
                or f"{self.public_url}/marketplace/success",
                cancel_url=request_data.get("cancelUrl")
                or f"{self.public_url}/marketplace",
                metadata={
                    "type": CHECKOUT_TYPE_THEME,
                    "themeId": theme_id,
                    "userId": session.user_id,
                },
            )
            logger.info(f"Theme checkout created: theme={theme_id} user={session.user_id}")
            return {"url": checkout.url}

        raise BadRequestError(
            "Invalid request data. Please provide either theme or subscription information."
        )

    async def handle_webhook(self, payload: bytes, signature: Optional[str]) -> Dict[str, bool]:
        """Verify and apply a Stripe webhook event.

        Raises:
            WebhookSignatureError: Signature verification failed
        """
        event = self.stripe_client.construct_event(payload, signature)
        event_type = event.get("type")
        data = (event.get("data") or {}).get("object") or {}

        if event_type in SUBSCRIPTION_UPSERT_EVENTS:
            await self._upsert_subscription(data)
        elif event_type == SUBSCRIPTION_DELETED_EVENT:
            await self.subscription_repo.deactivate(data.get("id"))
            logger.info(f"Subscription cancelled: {data.get('id')}")
        elif event_type == CHECKOUT_COMPLETED_EVENT:
            await self._complete_checkout(data)
        else:
            logger.debug(f"Ignoring Stripe event: {event_type}")

        return {"received": True}

    async def _upsert_subscription(self, subscription: Dict[str, Any]) -> None:
        customer_id = subscription.get("customer")
        agency = await self.agency_repo.get_by_customer_id(customer_id)
        individual = None
        if agency is None:
            individual = await self.individual_repo.get_by_customer_id(customer_id)
        if agency is None and individual is None:
            logger.warning(f"No tenant found for Stripe customer {customer_id}")
            return

        price_id = _first_price_id(subscription)
        status = subscription.get("status") or ""
        await self.subscription_repo.upsert(
            subscription_id=subscription.get("id"),
            customer_id=customer_id,
            price_id=price_id,
            plan=PLAN_BY_PRICE_ID.get(price_id, price_id),
            status=status,
            active=status == SUBSCRIPTION_STATUS_ACTIVE,
            current_period_end=_from_timestamp(subscription.get("current_period_end")),
            cancel_at_period_end=bool(subscription.get("cancel_at_period_end")),
            agency_id=agency.id if agency else None,
            individual_id=individual.id if individual else None,
        )
        logger.info(
            f"Subscription synced: {subscription.get('id')} status={status} "
            f"customer={customer_id}"
        )

    async def _complete_checkout(self, checkout: Dict[str, Any]) -> None:
        metadata = checkout.get("metadata") or {}
        if metadata.get("type") != CHECKOUT_TYPE_THEME:
            return
        amount_cents = checkout.get("amount_total") or 0
        try:
            await self.marketplace_service.record_theme_purchase(
                user_id=metadata.get("userId"),
                theme_id=metadata.get("themeId"),
                price=amount_cents / 100,
            )
        except ResourceAlreadyExistsError:
            logger.info(
                f"Theme purchase already recorded: checkout={checkout.get('id')}"
            )
