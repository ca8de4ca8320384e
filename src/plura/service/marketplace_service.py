"""Theme and plugin catalogue, purchases, search and creator payouts."""

import logging
import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID

from plura.constants import (
    MARKETPLACE_PRODUCT_TYPES,
    MARKETPLACE_SEARCH_LIMIT,
    MARKETPLACE_SEARCH_SORTS,
    MINIMUM_PAYOUT_AMOUNT,
    PAYOUT_STATUS_NOT_CREATED,
    PREMIUM_COMMISSION_RATE,
    STANDARD_COMMISSION_RATE,
)
from plura.exception import (
    AuthorizationError,
    BadRequestError,
    ResourceAlreadyExistsError,
    ResourceNotFoundError,
    TenantIsolationError,
)
from plura.infrastructure.persistence.postgresql.models import (
    CreatorPayout,
    MarketplacePlugin,
    MarketplaceTheme,
    PurchasedPlugin,
    PurchasedTheme,
)
from plura.repository.creator_payout_repository import CreatorPayoutRepository
from plura.repository.marketplace_repository import MarketplaceRepository
from plura.repository.session_store_repository import TokenSession
from plura.repository.subaccount_repository import SubAccountRepository
from plura.repository.user_repository import UserRepository
from plura.service.access import (
    ensure_individual_access,
    load_accessible_subaccount,
    parse_uuid,
)
from plura.service.audit_service import AuditActor, AuditService

logger = logging.getLogger(__name__)

PREMIUM_USER_PLAN = "PREMIUM"
PERIOD_PATTERN = re.compile(r"(\d{4})-(\d{2})")

# Sort key and direction applied when theme and plugin results are merged
_MERGE_ORDER = {
    "downloads": (lambda p: p["downloads"] or 0, True),
    "price_low": (lambda p: p["price"], False),
    "price_high": (lambda p: p["price"], True),
    "rating": (lambda p: p["rating"] or 0, True),
    "newest": (lambda p: p["createdAt"] or "", True),
}


def commission_rate_for_plan(plan: Optional[str]) -> float:
    """Platform commission taken from a sale; premium buyers pay less."""
    if plan == PREMIUM_USER_PLAN:
        return PREMIUM_COMMISSION_RATE
    return STANDARD_COMMISSION_RATE


def period_bounds(period: Optional[str]) -> Tuple[datetime, datetime]:
    """Parse a YYYY-MM payout period.

    Returns:
        (first instant of the month, first instant of the next month) in UTC

    Raises:
        BadRequestError: Missing or malformed period
    """
    match = PERIOD_PATTERN.fullmatch(period or "")
    if match is None or not 1 <= int(match.group(2)) <= 12:
        raise BadRequestError("Period is required (format: YYYY-MM)", field="period")
    year, month = int(match.group(1)), int(match.group(2))
    start = datetime(year, month, 1, tzinfo=timezone.utc)
    end = datetime(year + month // 12, month % 12 + 1, 1, tzinfo=timezone.utc)
    return start, end


def parse_price_range(price: Optional[str]) -> Tuple[Optional[float], Optional[float]]:
    """Parse "min-max", "min-" or "min" into inclusive price bounds."""
    if not price:
        return None, None
    low, _, high = price.partition("-")
    try:
        min_price = float(low) if low else None
        max_price = float(high) if high else None
    except ValueError:
        raise BadRequestError("Price must be a range such as 10-50", field="price")
    return min_price, max_price


def _product_to_dict(product: MarketplaceTheme | MarketplacePlugin) -> Dict[str, Any]:
    return {
        "id": str(product.id),
        "name": product.name,
        "description": product.description,
        "price": product.price,
        "category": product.category,
        "image": product.image,
        "rating": product.rating,
        "downloads": product.downloads,
        "featured": product.featured,
        "isActive": product.is_active,
        "authorId": str(product.author_id) if product.author_id else None,
        "createdAt": product.created_at.isoformat() if product.created_at else None,
    }


def _purchase_to_dict(purchase: PurchasedTheme | PurchasedPlugin) -> Dict[str, Any]:
    data = {
        "id": str(purchase.id),
        "userId": str(purchase.user_id),
        "price": purchase.price,
        "commissionRate": purchase.commission_rate,
        "platformFee": purchase.platform_fee,
        "creatorEarnings": purchase.creator_earnings,
        "agencyId": str(purchase.agency_id) if purchase.agency_id else None,
        "subAccountId": str(purchase.subaccount_id) if purchase.subaccount_id else None,
        "individualId": str(purchase.individual_id) if purchase.individual_id else None,
        "status": purchase.status,
        "purchaseDate": purchase.purchase_date.isoformat()
        if purchase.purchase_date
        else None,
    }
    if isinstance(purchase, PurchasedTheme):
        data["themeId"] = str(purchase.theme_id)
        data["theme"] = _product_to_dict(purchase.theme) if purchase.theme else None
    else:
        data["pluginId"] = str(purchase.plugin_id)
        data["plugin"] = _product_to_dict(purchase.plugin) if purchase.plugin else None
    return data


def _payout_to_dict(payout: CreatorPayout) -> Dict[str, Any]:
    return {
        "id": str(payout.id),
        "creatorId": str(payout.creator_id),
        "period": payout.period,
        "totalEarnings": payout.total_earnings,
        "platformFees": payout.platform_fees,
        "payoutAmount": payout.payout_amount,
        "status": payout.status,
    }


def _validate_price(price: Any) -> float:
    if price is None:
        raise BadRequestError("Price is required", field="price")
    try:
        value = float(price)
    except (TypeError, ValueError):
        raise BadRequestError("Price must be a number", field="price")
    if value < 0:
        raise BadRequestError("Price must not be negative", field="price")
    return value


def _optional_uuid(value: Optional[str], field: str) -> Optional[UUID]:
    return parse_uuid(value, field) if value else None


class MarketplaceService:
    """Catalogue browsing, purchase bookkeeping and creator payouts.

    Attributes:
        marketplace_repo: Catalogue and purchase repository
        user_repo: User repository, for the buyer's plan
        subaccount_repo: Subaccount repository, for purchase ownership
        payout_repo: Monthly creator payout repository
        audit_service: Audit trail for admin payout runs
    """

    def __init__(
        self,
        marketplace_repo: MarketplaceRepository,
        user_repo: UserRepository,
        subaccount_repo: SubAccountRepository,
        payout_repo: CreatorPayoutRepository,
        audit_service: AuditService,
    ):
        self.marketplace_repo = marketplace_repo
        self.user_repo = user_repo
        self.subaccount_repo = subaccount_repo
        self.payout_repo = payout_repo
        self.audit_service = audit_service

    # -------------------------------------------------------------------------
    # Catalogue
    # -------------------------------------------------------------------------

    async def list_themes(
        self, category: Optional[str] = None, featured: Optional[bool] = None
    ) -> List[Dict[str, Any]]:
        themes = await self.marketplace_repo.list_themes(category, featured)
        return [_product_to_dict(t) for t in themes]

    async def list_plugins(
        self, category: Optional[str] = None, featured: Optional[bool] = None
    ) -> List[Dict[str, Any]]:
        plugins = await self.marketplace_repo.list_plugins(category, featured)
        return [_product_to_dict(p) for p in plugins]

    async def get_theme(self, theme_id: Optional[str]) -> Dict[str, Any]:
        parsed = parse_uuid(theme_id, "themeId")
        theme = await self.marketplace_repo.get_theme(parsed)
        if theme is None:
            raise ResourceNotFoundError("Theme", str(parsed))
        return _product_to_dict(theme)

    async def search(
        self,
        q: Optional[str] = None,
        category: Optional[str] = None,
        product_type: Optional[str] = None,
        price: Optional[str] = None,
        sort: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Search themes and plugins.

        Args:
            q: Text matched against name and description
            category: Exact category
            product_type: "theme" or "plugin"; both kinds when omitted
            price: Price range "min-max", upper bound optional
            sort: downloads (default), price_low, price_high, rating or newest

        Returns:
            {items, categories: [{name, count}], total}; each item carries
            its kind under "type"

        Raises:
            BadRequestError: Unknown type or sort, or a malformed price range
        """
        if product_type and product_type not in MARKETPLACE_PRODUCT_TYPES:
            raise BadRequestError("Type must be theme or plugin", field="type")
        sort = sort or "downloads"
        if sort not in MARKETPLACE_SEARCH_SORTS:
            raise BadRequestError(f"Unsupported sort: {sort}", field="sort")
        min_price, max_price = parse_price_range(price)

        models = {"theme": MarketplaceTheme, "plugin": MarketplacePlugin}
        kinds = [product_type] if product_type else list(MARKETPLACE_PRODUCT_TYPES)
        items: List[Dict[str, Any]] = []
        category_counts: Dict[str, int] = {}
        for kind in kinds:
            products = await self.marketplace_repo.search_products(
                models[kind],
                text=q,
                category=category,
                min_price=min_price,
                max_price=max_price,
                sort=sort,
                limit=MARKETPLACE_SEARCH_LIMIT,
            )
            items.extend({**_product_to_dict(p), "type": kind} for p in products)
            for name, count in await self.marketplace_repo.count_by_category(models[kind]):
                category_counts[name] = category_counts.get(name, 0) + count

        key, reverse = _MERGE_ORDER[sort]
        items = sorted(items, key=key, reverse=reverse)[:MARKETPLACE_SEARCH_LIMIT]
        return {
            "items": items,
            "categories": [
                {"name": name, "count": count}
                for name, count in sorted(category_counts.items())
            ],
            "total": len(items),
        }

    # -------------------------------------------------------------------------
    # Purchases
    # -------------------------------------------------------------------------

    async def _buyer_rate(self, user_id: str) -> float:
        user = await self.user_repo.get_by_id(user_id)
        return commission_rate_for_plan(user.plan if user else None)

    async def _purchase_owners(
        self,
        session: TokenSession,
        agency_id: Optional[str],
        subaccount_id: Optional[str],
        individual_id: Optional[str],
    ) -> Dict[str, Optional[UUID]]:
        """Resolve the tenant a purchase is made for.

        Raises:
            BadRequestError: Malformed id
            ResourceNotFoundError: Unknown subaccount
            TenantIsolationError: Owner belongs to another tenant
        """
        owners: Dict[str, Optional[UUID]] = {
            "agency_id": None,
            "subaccount_id": None,
            "individual_id": None,
        }
        if agency_id:
            parsed = parse_uuid(agency_id, "agencyId")
            if str(parsed) != session.agency_id:
                raise TenantIsolationError()
            owners["agency_id"] = parsed
        if subaccount_id:
            subaccount = await load_accessible_subaccount(
                self.subaccount_repo, session, subaccount_id, field="subAccountId"
            )
            owners["subaccount_id"] = subaccount.id
        if individual_id:
            parsed = parse_uuid(individual_id, "individualId")
            ensure_individual_access(session, str(parsed))
            owners["individual_id"] = parsed
        return owners

    async def purchase_theme(
        self,
        session: TokenSession,
        theme_id: Optional[str],
        price: Any,
        agency_id: Optional[str] = None,
        subaccount_id: Optional[str] = None,
        individual_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Buy a theme for the caller or one of the caller's tenants."""
        owners = await self._purchase_owners(
            session, agency_id, subaccount_id, individual_id
        )
        return await self.record_theme_purchase(
            session.user_id, theme_id, price, **owners
        )

    async def purchase_plugin(
        self,
        session: TokenSession,
        plugin_id: Optional[str],
        price: Any,
        agency_id: Optional[str] = None,
        subaccount_id: Optional[str] = None,
        individual_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        owners = await self._purchase_owners(
            session, agency_id, subaccount_id, individual_id
        )
        return await self.record_plugin_purchase(
            session.user_id, plugin_id, price, **owners
        )

    async def record_theme_purchase(
        self,
        user_id: str,
        theme_id: Optional[str],
        price: Any,
        agency_id: Optional[UUID] = None,
        subaccount_id: Optional[UUID] = None,
        individual_id: Optional[UUID] = None,
    ) -> Dict[str, Any]:
        """Record a theme purchase for already-resolved owners.

        The platform keeps price * rate and the creator earns the rest; the
        rate depends on the buyer's plan.

        Raises:
            BadRequestError: Missing theme id or price
            ResourceAlreadyExistsError: Same buyer already owns the theme for this owner
            ResourceNotFoundError: Unknown theme
        """
        parsed_theme_id = parse_uuid(theme_id, "themeId")
        amount = _validate_price(price)
        owners = {
            "agency_id": agency_id,
            "subaccount_id": subaccount_id,
            "individual_id": individual_id,
        }
        if await self.marketplace_repo.has_theme_purchase(
            parsed_theme_id, user_id, **owners
        ):
            raise ResourceAlreadyExistsError("Theme purchase", str(parsed_theme_id))
        purchase = await self.marketplace_repo.purchase_theme(
            parsed_theme_id,
            user_id,
            price=amount,
            commission_rate=await self._buyer_rate(user_id),
            **owners,
        )
        if purchase is None:
            raise ResourceNotFoundError("Theme", str(parsed_theme_id))
        logger.info(f"Theme purchased: theme={parsed_theme_id} user={user_id}")
        return _purchase_to_dict(purchase)

    async def record_plugin_purchase(
        self,
        user_id: str,
        plugin_id: Optional[str],
        price: Any,
        agency_id: Optional[UUID] = None,
        subaccount_id: Optional[UUID] = None,
        individual_id: Optional[UUID] = None,
    ) -> Dict[str, Any]:
        parsed_plugin_id = parse_uuid(plugin_id, "pluginId")
        amount = _validate_price(price)
        owners = {
            "agency_id": agency_id,
            "subaccount_id": subaccount_id,
            "individual_id": individual_id,
        }
        if await self.marketplace_repo.has_plugin_purchase(
            parsed_plugin_id, user_id, **owners
        ):
            raise ResourceAlreadyExistsError("Plugin purchase", str(parsed_plugin_id))
        purchase = await self.marketplace_repo.purchase_plugin(
            parsed_plugin_id,
            user_id,
            price=amount,
            commission_rate=await self._buyer_rate(user_id),
            **owners,
        )
        if purchase is None:
            raise ResourceNotFoundError("Plugin", str(parsed_plugin_id))
        logger.info(f"Plugin purchased: plugin={parsed_plugin_id} user={user_id}")
        return _purchase_to_dict(purchase)

    async def list_purchased_themes(
        self,
        user_id: str,
        agency_id: Optional[str] = None,
        subaccount_id: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        purchases = await self.marketplace_repo.list_purchased_themes(
            user_id,
            _optional_uuid(agency_id, "agencyId"),
            _optional_uuid(subaccount_id, "subAccountId"),
        )
        return [_purchase_to_dict(p) for p in purchases]

    async def list_purchased_plugins(
        self,
        user_id: str,
        agency_id: Optional[str] = None,
        subaccount_id: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        purchases = await self.marketplace_repo.list_purchased_plugins(
            user_id,
            _optional_uuid(agency_id, "agencyId"),
            _optional_uuid(subaccount_id, "subAccountId"),
        )
        return [_purchase_to_dict(p) for p in purchases]

    # -------------------------------------------------------------------------
    # Creator payouts
    # -------------------------------------------------------------------------

    async def calculate_payout(
        self,
        session: TokenSession,
        creator_id: Optional[str],
        period: Optional[str],
    ) -> Dict[str, Any]:
        """Summarise a creator's earnings for one month.

        Creators see their own figures; admins see anyone's.

        Raises:
            BadRequestError: Missing creator id or malformed period
            AuthorizationError: Caller is neither the creator nor an admin
        """
        parsed_creator = parse_uuid(creator_id, "creatorId")
        start, end = period_bounds(period)
        if str(parsed_creator) != session.user_id and not session.is_admin:
            raise AuthorizationError("Only the creator or an admin can view payouts")

        totals = await self.marketplace_repo.creator_sales(
            start, end, creator_id=parsed_creator
        )
        earnings, fees, sales = totals.get(parsed_creator, (0.0, 0.0, 0))
        payout = await self.payout_repo.get(parsed_creator, period)
        return {
            "creatorId": str(parsed_creator),
            "period": period,
            "totalEarnings": earnings,
            "totalPlatformFees": fees,
            "totalSales": sales,
            "payoutStatus": payout.status if payout else PAYOUT_STATUS_NOT_CREATED,
            "minimumPayout": MINIMUM_PAYOUT_AMOUNT,
            "eligibleForPayout": earnings >= MINIMUM_PAYOUT_AMOUNT,
        }

    async def process_payouts(
        self, actor: AuditActor, period: Optional[str]
    ) -> Dict[str, Any]:
        """Create pending payouts for every creator eligible in the period.

        Creators under the minimum and creators already paid for the period
        are skipped, so a second run for the same month creates nothing.
        """
        start, end = period_bounds(period)
        totals = await self.marketplace_repo.creator_sales(start, end)

        payouts: List[Dict[str, Any]] = []
        for creator_id, (earnings, fees, _) in totals.items():
            if earnings < MINIMUM_PAYOUT_AMOUNT:
                continue
            if await self.payout_repo.get(creator_id, period) is not None:
                continue
            payout = await self.payout_repo.create(creator_id, period, earnings, fees)
            payouts.append(_payout_to_dict(payout))

        await self.audit_service.record(
            actor,
            "PROCESS_PAYOUTS",
            "CreatorPayout",
            entity_id=period,
            new_values={
                "count": len(payouts),
                "totalAmount": sum(p["payoutAmount"] for p in payouts),
            },
        )
        logger.info(f"Processed {len(payouts)} creator payouts for {period}")
        return {
            "message": f"Processed {len(payouts)} payouts for period {period}",
            "payouts": payouts,
        }
