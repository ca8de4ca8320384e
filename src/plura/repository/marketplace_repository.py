from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Dict, List, Optional, Tuple, Type, Union
from uuid import UUID

from sqlalchemy import func, or_, select

if TYPE_CHECKING:
    from plura.infrastructure.persistence.postgresql.client import PostgreSQLClient

from plura.infrastructure.persistence.postgresql.models import (
    MarketplacePlugin,
    MarketplaceTheme,
    PurchasedPlugin,
    PurchasedTheme,
    utc_now,
)

Product = Union[MarketplaceTheme, MarketplacePlugin]
Purchase = Union[PurchasedTheme, PurchasedPlugin]


class MarketplaceRepository:
    """Repository for the theme and plugin catalogue and purchase records.

    Themes and plugins share one shape, so every query is written once
    against the product model and parametrised by kind.

    Attributes:
        client: PostgreSQL client for database access
    """

    def __init__(self, client: PostgreSQLClient):
        self.client = client

    async def _list_products(
        self,
        model: Type[Product],
        category: Optional[str],
        featured: Optional[bool],
    ) -> List[Product]:
        query = select(model).where(model.is_active.is_(True))
        if category and category != "all":
            query = query.where(model.category == category)
        if featured is not None:
            query = query.where(model.featured == featured)
        query = query.order_by(
            model.featured.desc(), model.rating.desc(), model.downloads.desc()
        )
        async with self.client.session() as session:
            result = await session.execute(query)
            return list(result.scalars().all())

    async def list_themes(
        self, category: Optional[str] = None, featured: Optional[bool] = None
    ) -> List[MarketplaceTheme]:
        return await self._list_products(MarketplaceTheme, category, featured)

    async def list_plugins(
        self, category: Optional[str] = None, featured: Optional[bool] = None
    ) -> List[MarketplacePlugin]:
        return await self._list_products(MarketplacePlugin, category, featured)

    async def get_theme(self, theme_id: UUID) -> Optional[MarketplaceTheme]:
        async with self.client.session() as session:
            result = await session.execute(
                select(MarketplaceTheme).where(
                    MarketplaceTheme.id == theme_id,
                    MarketplaceTheme.is_active.is_(True),
                )
            )
            return result.scalar_one_or_none()

    async def search_products(
        self,
        model: Type[Product],
        text: Optional[str] = None,
        category: Optional[str] = None,
        min_price: Optional[float] = None,
        max_price: Optional[float] = None,
        sort: str = "downloads",
        limit: int = 50,
    ) -> List[Product]:
        """Search active products of one kind.

        Args:
            model: MarketplaceTheme or MarketplacePlugin
            text: Case-insensitive match on name or description
            category: Exact category
            min_price: Inclusive lower price bound
            max_price: Inclusive upper price bound
            sort: downloads, price_low, price_high, rating or newest
            limit: Maximum rows returned

        Returns:
            Matching products in the requested order
        """
        query = select(model).where(model.is_active.is_(True))
        if text:
            query = query.where(
                or_(
                    model.name.icontains(text, autoescape=True),
                    model.description.icontains(text, autoescape=True),
                )
            )
        if category:
            query = query.where(model.category == category)
        if min_price is not None:
            query = query.where(model.price >= min_price)
        if max_price is not None:
            query = query.where(model.price <= max_price)
        order = {
            "price_low": model.price.asc(),
            "price_high": model.price.desc(),
            "rating": model.rating.desc(),
            "newest": model.created_at.desc(),
        }.get(sort, model.downloads.desc())
        async with self.client.session() as session:
            result = await session.execute(query.order_by(order).limit(limit))
            return list(result.scalars().all())

    async def count_by_category(self, model: Type[Product]) -> List[Tuple[str, int]]:
        query = (
            select(model.category, func.count(model.id))
            .where(model.is_active.is_(True))
            .group_by(model.category)
        )
        async with self.client.session() as session:
            result = await session.execute(query)
            return [(category, count) for category, count in result.all()]

    async def _purchase(
        self,
        product_model: Type[Product],
        purchase_model: Type[Purchase],
        product_field: str,
        product_id: str | UUID,
        user_id: str | UUID,
        price: float,
        commission_rate: float,
        agency_id: Optional[str] = None,
        subaccount_id: Optional[str] = None,
        individual_id: Optional[str] = None,
    ) -> Optional[Purchase]:
        product_id = UUID(str(product_id))
        async with self.client.session() as session:
            result = await session.execute(
                select(product_model).where(product_model.id == product_id)
            )
            product = result.scalar_one_or_none()
            if product is None:
                return None

            platform_fee = price * commission_rate
            purchase = purchase_model(
                user_id=UUID(str(user_id)),
                price=price,
                commission_rate=commission_rate,
                platform_fee=platform_fee,
                creator_earnings=price - platform_fee,
                agency_id=UUID(str(agency_id)) if agency_id else None,
                subaccount_id=UUID(str(subaccount_id)) if subaccount_id else None,
                individual_id=UUID(str(individual_id)) if individual_id else None,
                status="ACTIVE",
            )
            setattr(purchase, product_field, product_id)
            session.add(purchase)

            product.downloads = (product.downloads or 0) + 1
            product.updated_at = utc_now()
            await session.flush()
            await session.refresh(purchase)
            return purchase

    async def purchase_theme(
        self, theme_id: str | UUID, user_id: str | UUID, **kwargs
    ) -> Optional[PurchasedTheme]:
        """Record a theme purchase and bump its download counter.

        Args:
            theme_id: Purchased theme
            user_id: Buyer
            **kwargs: price, commission_rate and optional tenant ids

        Returns:
            PurchasedTheme with its theme loaded, or None for an unknown theme
        """
        return await self._purchase(
            MarketplaceTheme, PurchasedTheme, "theme_id", theme_id, user_id, **kwargs
        )

    async def purchase_plugin(
        self, plugin_id: str | UUID, user_id: str | UUID, **kwargs
    ) -> Optional[PurchasedPlugin]:
        return await self._purchase(
            MarketplacePlugin,
            PurchasedPlugin,
            "plugin_id",
            plugin_id,
            user_id,
            **kwargs,
        )

    async def _has_active_purchase(
        self,
        model: Type[Purchase],
        product_field: str,
        product_id: UUID,
        user_id: str | UUID,
        agency_id: Optional[UUID] = None,
        subaccount_id: Optional[UUID] = None,
        individual_id: Optional[UUID] = None,
    ) -> bool:
        query = select(func.count(model.id)).where(
            getattr(model, product_field) == product_id,
            model.user_id == UUID(str(user_id)),
            model.status == "ACTIVE",
        )
        for column, value in (
            (model.agency_id, agency_id),
            (model.subaccount_id, subaccount_id),
            (model.individual_id, individual_id),
        ):
            query = query.where(column.is_(None) if value is None else column == value)
        async with self.client.session() as session:
            return (await session.execute(query)).scalar_one() > 0

    async def has_theme_purchase(
        self, theme_id: UUID, user_id: str | UUID, **owners
    ) -> bool:
        """Whether the user already holds an active purchase of the theme for the same owner."""
        return await self._has_active_purchase(
            PurchasedTheme, "theme_id", theme_id, user_id, **owners
        )

    async def has_plugin_purchase(
        self, plugin_id: UUID, user_id: str | UUID, **owners
    ) -> bool:
        return await self._has_active_purchase(
            PurchasedPlugin, "plugin_id", plugin_id, user_id, **owners
        )

    async def creator_sales(
        self,
        start: datetime,
        end: datetime,
        creator_id: Optional[UUID] = None,
    ) -> Dict[UUID, Tuple[float, float, int]]:
        """Sum sales per product author over [start, end).

        Returns:
            Mapping of author id to (creator earnings, platform fees, sales)
            across theme and plugin purchases
        """
        totals: Dict[UUID, Tuple[float, float, int]] = {}
        sources = (
            (PurchasedTheme, MarketplaceTheme, PurchasedTheme.theme_id),
            (PurchasedPlugin, MarketplacePlugin, PurchasedPlugin.plugin_id),
        )
        async with self.client.session() as session:
            for purchase_model, product_model, product_column in sources:
                query = (
                    select(
                        product_model.author_id,
                        func.coalesce(func.sum(purchase_model.creator_earnings), 0.0),
                        func.coalesce(func.sum(purchase_model.platform_fee), 0.0),
                        func.count(purchase_model.id),
                    )
                    .join(product_model, product_column == product_model.id)
                    .where(
                        purchase_model.purchase_date >= start,
                        purchase_model.purchase_date < end,
                        product_model.author_id.is_not(None),
                    )
                    .group_by(product_model.author_id)
                )
                if creator_id is not None:
                    query = query.where(product_model.author_id == creator_id)
                for author_id, earnings, fees, sales in (await session.execute(query)).all():
                    prev_earnings, prev_fees, prev_sales = totals.get(author_id, (0.0, 0.0, 0))
                    totals[author_id] = (
                        prev_earnings + float(earnings),
                        prev_fees + float(fees),
                        prev_sales + int(sales),
                    )
        return totals

    async def _list_purchases(
        self,
        model: Type[Purchase],
        user_id: str | UUID,
        agency_id: Optional[str],
        subaccount_id: Optional[str],
    ) -> List[Purchase]:
        query = select(model).where(
            model.user_id == UUID(str(user_id)), model.status == "ACTIVE"
        )
        if agency_id:
            query = query.where(model.agency_id == UUID(str(agency_id)))
        if subaccount_id:
            query = query.where(model.subaccount_id == UUID(str(subaccount_id)))
        async with self.client.session() as session:
            result = await session.execute(query.order_by(model.purchase_date.desc()))
            return list(result.scalars().unique().all())

    async def list_purchased_themes(
        self,
        user_id: str | UUID,
        agency_id: Optional[str] = None,
        subaccount_id: Optional[str] = None,
    ) -> List[PurchasedTheme]:
        return await self._list_purchases(
            PurchasedTheme, user_id, agency_id, subaccount_id
        )

    async def list_purchased_plugins(
        self,
        user_id: str | UUID,
        agency_id: Optional[str] = None,
        subaccount_id: Optional[str] = None,
    ) -> List[PurchasedPlugin]:
        return await self._list_purchases(
            PurchasedPlugin, user_id, agency_id, subaccount_id
        )

    async def count_products(self, active_only: bool = False) -> int:
        """Count themes plus plugins."""
        total = 0
        async with self.client.session() as session:
            for model in (MarketplaceTheme, MarketplacePlugin):
                query = select(func.count(model.id))
                if active_only:
                    query = query.where(model.is_active.is_(True))
                total += (await session.execute(query)).scalar_one()
        return total

    async def count_sales(self) -> int:
        """Count active theme and plugin purchases."""
        total = 0
        async with self.client.session() as session:
            for model in (PurchasedTheme, PurchasedPlugin):
                query = select(func.count(model.id)).where(model.status == "ACTIVE")
                total += (await session.execute(query)).scalar_one()
        return total
