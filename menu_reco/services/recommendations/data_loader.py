"""
Data loader for recommendations
Gathers catalog snapshots and order aggregates before the engine runs
"""
import logging
from typing import Dict, List, Optional, Set, Tuple, FrozenSet
from datetime import datetime

import pandas as pd
from sqlalchemy import select, func, or_
from sqlalchemy.ext.asyncio import AsyncSession

from menu_reco.core.config import settings
from menu_reco.models.models import MenuItem, Order, OrderItem
from menu_reco.services.recommendations.models import CatalogItem
from menu_reco.services.utils.constants import EXCLUDED_ORDER_STATUSES

logger = logging.getLogger(__name__)

HISTORY_COLUMNS = ["order_id", "menu_item_id", "quantity", "created_at"]


def _counted_order():
    """Filter for orders that count as real demand"""
    return or_(Order.status.is_(None), Order.status.notin_(EXCLUDED_ORDER_STATUSES))


def menu_item_to_catalog(row: MenuItem) -> CatalogItem:
    """Convert an ORM row into an immutable catalog item"""
    return CatalogItem(
        id=row.id,
        name=row.name or "",
        category=row.category or "",
        price=row.price,
        rating=row.rating,
        rating_count=row.rating_count,
        tags=frozenset(row.tags or ()),
        flavor_profile=row.flavor_profile,
        preparation_time=row.preparation_time,
        popularity=row.popularity,
        metadata={"image_url": row.image_url, "description": row.description}
    )


class DataLoader:
    """
    Loads and prepares data for the recommendation engine

    Every method takes the request's database session; nothing is kept
    between requests (see cache.SignalCache for cross-request caching).
    """

    def __init__(
        self,
        candidate_pool: int = None,
        history_limit: int = None,
        basket_sample: int = None
    ):
        self.candidate_pool = candidate_pool or settings.RECOMMENDATION_CANDIDATE_POOL
        self.history_limit = history_limit or settings.HISTORY_ORDER_LIMIT
        self.basket_sample = basket_sample or settings.AFFINITY_ORDER_SAMPLE

    async def load_catalog(
        self,
        db: AsyncSession,
        category: Optional[str] = None
    ) -> List[CatalogItem]:
        """
        Load available menu items

        Args:
            db: Database session
            category: Optional category filter

        Returns:
            Catalog snapshot; rows with an invalid price are skipped
        """
        query = select(MenuItem).where(MenuItem.is_available.is_(True))
        if category:
            query = query.where(MenuItem.category == category)
        query = query.order_by(MenuItem.id).limit(self.candidate_pool)

        result = await db.execute(query)
        rows = result.scalars().all()

        items = []
        for row in rows:
            try:
                items.append(menu_item_to_catalog(row))
            except ValueError as e:
                logger.warning(f"Skipping menu item {row.id}: {e}")

        logger.debug(f"Loaded {len(items)} catalog items (category={category})")
        return items

    async def load_item_lookups(
        self,
        db: AsyncSession,
        item_ids: List[str]
    ) -> Tuple[Dict[str, str], Dict[str, FrozenSet[str]]]:
        """
        Categories and tags for items referenced by cart/history

        Returns:
            Tuple of (item_id -> category, item_id -> tags)
        """
        if not item_ids:
            return {}, {}

        result = await db.execute(
            select(MenuItem.id, MenuItem.category, MenuItem.tags)
            .where(MenuItem.id.in_(sorted(set(item_ids))))
        )
        categories = {}
        tags = {}
        for item_id, category, item_tags in result.all():
            if category:
                categories[item_id] = category
            tags[item_id] = frozenset(str(t).lower() for t in (item_tags or ()))
        return categories, tags

    async def load_customer_history(
        self,
        db: AsyncSession,
        customer_id: str
    ) -> pd.DataFrame:
        """
        Order lines from the customer's most recent orders

        Returns:
            DataFrame with order_id, menu_item_id, quantity, created_at,
            most recent first
        """
        recent_orders = (
            select(Order.id)
            .where(Order.customer_id == customer_id, _counted_order())
            .order_by(Order.createdAt.desc())
            .limit(self.history_limit)
        )
        result = await db.execute(
            select(OrderItem.order_id, OrderItem.menu_item_id, OrderItem.quantity, Order.createdAt)
            .join(Order, Order.id == OrderItem.order_id)
            .where(OrderItem.order_id.in_(recent_orders))
            .order_by(Order.createdAt.desc(), OrderItem.id)
        )
        df = pd.DataFrame(result.all(), columns=HISTORY_COLUMNS)
        logger.debug(f"Loaded {len(df)} history lines for customer {customer_id}")
        return df

    @staticmethod
    def history_item_ids(history: pd.DataFrame) -> List[str]:
        """Distinct item ids, most recently ordered first"""
        if history.empty:
            return []
        return history["menu_item_id"].drop_duplicates().tolist()

    @staticmethod
    def history_rows(history: pd.DataFrame) -> List[Tuple[str, float, datetime]]:
        """(item_id, quantity, ordered_at) tuples for temporal decay"""
        if history.empty:
            return []
        frame = history.fillna({"quantity": 1})
        return list(zip(
            frame["menu_item_id"],
            frame["quantity"].astype(float),
            pd.to_datetime(frame["created_at"]).dt.to_pydatetime()
        ))

    async def order_counts(
        self,
        db: AsyncSession,
        item_ids: List[str],
        start: datetime,
        end: datetime
    ) -> Dict[str, float]:
        """
        Ordered quantity per item in [start, end)
        """
        if not item_ids:
            return {}

        result = await db.execute(
            select(OrderItem.menu_item_id, func.sum(OrderItem.quantity))
            .join(Order, Order.id == OrderItem.order_id)
            .where(
                OrderItem.menu_item_id.in_(sorted(set(item_ids))),
                Order.createdAt >= start,
                Order.createdAt < end,
                _counted_order()
            )
            .group_by(OrderItem.menu_item_id)
        )
        return {item_id: float(total or 0) for item_id, total in result.all()}

    async def load_baskets(
        self,
        db: AsyncSession,
        item_ids: List[str]
    ) -> List[Set[str]]:
        """
        Item sets of recent orders containing any of item_ids

        Returns:
            One set of menu item ids per order
        """
        if not item_ids:
            return []

        matching_orders = (
            select(OrderItem.order_id)
            .join(Order, Order.id == OrderItem.order_id)
            .where(OrderItem.menu_item_id.in_(sorted(set(item_ids))), _counted_order())
            .distinct()
            .limit(self.basket_sample)
        )
        result = await db.execute(
            select(OrderItem.order_id, OrderItem.menu_item_id)
            .where(OrderItem.order_id.in_(matching_orders))
        )
        df = pd.DataFrame(result.all(), columns=["order_id", "menu_item_id"])
        if df.empty:
            return []

        baskets = df.groupby("order_id")["menu_item_id"].apply(set).tolist()
        logger.debug(f"Loaded {len(baskets)} baskets for {len(item_ids)} antecedent items")
        return baskets

    async def load_recent_baskets(self, db: AsyncSession) -> List[Set[str]]:
        """
        Item sets of the most recent counted orders

        Returns:
            One set of menu item ids per order
        """
        recent_orders = (
            select(Order.id)
            .where(_counted_order())
            .order_by(Order.createdAt.desc())
            .limit(self.basket_sample)
        )
        result = await db.execute(
            select(OrderItem.order_id, OrderItem.menu_item_id)
            .where(OrderItem.order_id.in_(recent_orders))
        )
        df = pd.DataFrame(result.all(), columns=["order_id", "menu_item_id"])
        if df.empty:
            return []

        baskets = df.groupby("order_id")["menu_item_id"].apply(set).tolist()
        logger.debug(f"Loaded {len(baskets)} recent baskets")
        return baskets

    async def load_item_buyers(
        self,
        db: AsyncSession,
        item_ids: List[str]
    ) -> Dict[str, Set[str]]:
        """
        Distinct customers who ordered each item

        Returns:
            item id -> customer ids (items nobody ordered are omitted)
        """
        if not item_ids:
            return {}

        result = await db.execute(
            select(OrderItem.menu_item_id, Order.customer_id)
            .join(Order, Order.id == OrderItem.order_id)
            .where(
                OrderItem.menu_item_id.in_(sorted(set(item_ids))),
                Order.customer_id.isnot(None),
                _counted_order()
            )
            .distinct()
        )
        df = pd.DataFrame(result.all(), columns=["menu_item_id", "customer_id"])
        if df.empty:
            return {}
        return df.groupby("menu_item_id")["customer_id"].apply(set).to_dict()

    def get_stats(self) -> Dict:
        """Get loader configuration"""
        return {
            "candidate_pool": self.candidate_pool,
            "history_limit": self.history_limit,
            "basket_sample": self.basket_sample
        }
