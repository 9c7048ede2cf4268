"""
Purchase history service.

Reads a user's completed ("done") orders inside the lookback window and
aggregates them into the three views the auto-pick engine needs:
    products:   product_id → quantity sum + distinct order ids
    categories: category → quantity sum
    volumes:    (category, volume or "any") → quantity sum + distinct order ids
"""

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Optional
import structlog

from config import get_supabase_client, settings
from exceptions import DatabaseError
from models.order import ORDER_STATUS_DONE, HistoryItem, OrderRecord
from models.product import UNCATEGORIZED
from utils.money import round_half_up

logger = structlog.get_logger(__name__)

ANY_VOLUME = "any"


@dataclass
class PurchaseStats:
    """Quantity bought and the orders it was bought in."""
    qty: int = 0
    order_ids: set = field(default_factory=set)

    @property
    def order_count(self) -> int:
        return len(self.order_ids)


@dataclass
class HistoryAggregate:
    """Read-only purchase history views for one user."""
    products: dict[int, PurchaseStats] = field(default_factory=dict)
    categories: dict[str, int] = field(default_factory=dict)
    volumes: dict[tuple[str, Any], PurchaseStats] = field(default_factory=dict)

    def has_purchased(self, product_id: int) -> bool:
        return product_id in self.products

    def product_qty(self, product_id: int) -> int:
        stats = self.products.get(product_id)
        return stats.qty if stats else 0

    def average_qty(
        self,
        product_id: int,
        category: Optional[str],
        volume: Optional[float],
        max_qty: int = 12,
    ) -> int:
        """
        Typical quantity per order for a product.

        Uses the product's own history, else the history of its
        (category, volume) group, else 1. Clamped to [1, max_qty].
        """
        stats = self.products.get(product_id)
        if stats is None or stats.order_count == 0:
            stats = self.volumes.get(volume_key(category, volume))
        if stats is None or stats.order_count == 0:
            return 1

        average = round_half_up(stats.qty / stats.order_count)
        return max(1, min(max_qty, average))


def volume_key(category: Optional[str], volume: Optional[float]) -> tuple[str, Any]:
    """Key for the (category, volume) view with sentinels for missing values."""
    return (category or UNCATEGORIZED, volume if volume is not None else ANY_VOLUME)


def aggregate_history(items: list[HistoryItem]) -> HistoryAggregate:
    """
    Aggregate purchased lines into product/category/volume views.

    Order of items does not matter.

    Args:
        items: Lines of the user's done orders inside the window

    Returns:
        HistoryAggregate
    """
    products: dict[int, PurchaseStats] = defaultdict(PurchaseStats)
    categories: dict[str, int] = defaultdict(int)
    volumes: dict[tuple[str, Any], PurchaseStats] = defaultdict(PurchaseStats)

    for item in items:
        qty = item.quantity or 0

        product_stats = products[item.product_id]
        product_stats.qty += qty
        product_stats.order_ids.add(item.order_id)

        categories[item.category or UNCATEGORIZED] += qty

        group_stats = volumes[volume_key(item.category, item.volume)]
        group_stats.qty += qty
        group_stats.order_ids.add(item.order_id)

    return HistoryAggregate(
        products=dict(products),
        categories=dict(categories),
        volumes=dict(volumes),
    )


class HistoryService:
    """
    Order history lookups.

    Handles reads of orders and order_items for auto-pick and scoring.
    """

    def __init__(self):
        self.db = get_supabase_client()
        self.orders_table = "orders"
        self.items_table = "order_items"
        self.products_table = "products"

    def get_done_orders(
        self,
        since: datetime,
        user_id: Optional[int] = None,
    ) -> list[OrderRecord]:
        """
        Get completed orders created at or after since.

        Args:
            since: Window start (inclusive)
            user_id: Restrict to one user; None for all users

        Returns:
            List of OrderRecord
        """
        try:
            query = (
                self.db.table(self.orders_table)
                .select("id, user_id, status, total, created_at")
                .eq("status", ORDER_STATUS_DONE)
                .gte("created_at", since.isoformat())
            )
            if user_id is not None:
                query = query.eq("user_id", user_id)

            result = query.execute()
            return [OrderRecord(**row) for row in result.data]

        except Exception as e:
            logger.error(
                "get_done_orders_failed",
                user_id=user_id,
                error=str(e)
            )
            raise DatabaseError("select", str(e))

    def get_order_items(self, orders: list[OrderRecord]) -> list[HistoryItem]:
        """
        Get lines of the given orders with product category/volume joined in.

        Args:
            orders: Orders whose lines to fetch

        Returns:
            List of HistoryItem
        """
        if not orders:
            return []

        user_by_order = {o.id: o.user_id for o in orders}

        try:
            items_result = (
                self.db.table(self.items_table)
                .select("order_id, product_id, quantity")
                .in_("order_id", list(user_by_order))
                .execute()
            )
            rows = items_result.data
            if not rows:
                return []

            product_ids = list({row["product_id"] for row in rows})
            products_result = (
                self.db.table(self.products_table)
                .select("id, category, volume")
                .in_("id", product_ids)
                .execute()
            )
            product_by_id = {p["id"]: p for p in products_result.data}

            items = []
            for row in rows:
                product = product_by_id.get(row["product_id"], {})
                items.append(HistoryItem(
                    order_id=row["order_id"],
                    product_id=row["product_id"],
                    quantity=row.get("quantity") or 0,
                    category=product.get("category"),
                    volume=product.get("volume"),
                    user_id=user_by_order.get(row["order_id"]),
                ))
            return items

        except Exception as e:
            logger.error(
                "get_order_items_failed",
                order_count=len(orders),
                error=str(e)
            )
            raise DatabaseError("select", str(e))

    def get_history(
        self,
        user_id: int,
        lookback_days: Optional[int] = None,
    ) -> tuple[HistoryAggregate, float]:
        """
        Aggregate a user's purchase history.

        Args:
            user_id: Buyer
            lookback_days: Window size (defaults to settings)

        Returns:
            Tuple of (HistoryAggregate, average done-order total in the window;
            0 when there are no orders)
        """
        days = lookback_days or settings.auto_pick_lookback_days
        since = datetime.now(timezone.utc) - timedelta(days=days)

        orders = self.get_done_orders(since, user_id=user_id)
        items = self.get_order_items(orders)
        aggregate = aggregate_history(items)

        average_total = 0.0
        if orders:
            average_total = sum(o.total or 0 for o in orders) / len(orders)

        logger.info(
            "history_aggregated",
            user_id=user_id,
            orders=len(orders),
            lines=len(items),
            products=len(aggregate.products),
            categories=len(aggregate.categories),
        )

        return aggregate, average_total


# Singleton instance
_service: Optional[HistoryService] = None


def get_history_service() -> HistoryService:
    """Get or create HistoryService instance."""
    global _service
    if _service is None:
        _service = HistoryService()
    return _service
