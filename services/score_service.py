"""
Product score recalculation.

Recomputes the automatic popularity score of every active product from
recent completed orders:

    score = 0.5 × qty_norm + 0.3 × orders_norm + 0.2 × users_norm + novelty

Each *_norm is the product's value divided by the best product's value.
novelty = 0.1 for products flagged new or created recently. Manual
overrides and boosts are left alone.
"""

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Optional
import structlog

from config import get_supabase_client, settings
from exceptions import DatabaseError
from models.order import HistoryItem
from services.history_service import get_history_service

logger = structlog.get_logger(__name__)

QTY_WEIGHT = 0.5
ORDERS_WEIGHT = 0.3
USERS_WEIGHT = 0.2
NOVELTY_BONUS = 0.1


@dataclass
class SalesStats:
    """Sales of one product across all users."""
    qty: int = 0
    orders: int = 0
    users: set = field(default_factory=set)


def collect_sales_stats(items: list[HistoryItem]) -> dict[int, SalesStats]:
    """Sum quantity, order lines and distinct buyers per product."""
    stats: dict[int, SalesStats] = defaultdict(SalesStats)
    for item in items:
        entry = stats[item.product_id]
        entry.qty += item.quantity or 0
        entry.orders += 1
        if item.user_id is not None:
            entry.users.add(item.user_id)
    return dict(stats)


def compute_score(
    stats: Optional[SalesStats],
    max_qty: int,
    max_orders: int,
    max_users: int,
    is_new: bool,
) -> float:
    """
    Score one product against the best values of the window.

    Examples:
        best seller, not new → 1.0
        no sales, new → 0.1
    """
    qty_norm = (stats.qty / max_qty) if (stats and max_qty) else 0
    orders_norm = (stats.orders / max_orders) if (stats and max_orders) else 0
    users_norm = (len(stats.users) / max_users) if (stats and max_users) else 0
    novelty = NOVELTY_BONUS if is_new else 0

    score = (
        QTY_WEIGHT * qty_norm
        + ORDERS_WEIGHT * orders_norm
        + USERS_WEIGHT * users_norm
        + novelty
    )
    return round(score, 4)


def _is_recent(created_at: Optional[str], since: datetime) -> bool:
    if not created_at:
        return False
    created = datetime.fromisoformat(str(created_at).replace("Z", "+00:00"))
    if created.tzinfo is None:
        created = created.replace(tzinfo=timezone.utc)
    return created >= since


class ScoreService:
    """Writes automatic scores to product_scores."""

    def __init__(self):
        self.db = get_supabase_client()
        self.history_service = get_history_service()
        self.products_table = "products"
        self.scores_table = "product_scores"

    def recalculate(self) -> int:
        """
        Recalculate automatic scores for all active products.

        Returns:
            Number of products updated
        """
        now = datetime.now(timezone.utc)
        since = now - timedelta(days=settings.product_score_lookback_days)
        new_since = now - timedelta(days=settings.product_score_new_days)

        logger.info(
            "recalculating_product_scores",
            lookback_days=settings.product_score_lookback_days,
        )

        try:
            products = (
                self.db.table(self.products_table)
                .select("id, is_new, created_at")
                .eq("is_archived", False)
                .execute()
            ).data
        except Exception as e:
            logger.error("recalculate_scores_products_failed", error=str(e))
            raise DatabaseError("select", str(e))

        orders = self.history_service.get_done_orders(since)
        stats = collect_sales_stats(self.history_service.get_order_items(orders))

        max_qty = max((s.qty for s in stats.values()), default=0)
        max_orders = max((s.orders for s in stats.values()), default=0)
        max_users = max((len(s.users) for s in stats.values()), default=0)

        rows = []
        for product in products:
            is_new = bool(product.get("is_new")) or _is_recent(product.get("created_at"), new_since)
            rows.append({
                "product_id": product["id"],
                "score": compute_score(
                    stats.get(product["id"]),
                    max_qty,
                    max_orders,
                    max_users,
                    is_new,
                ),
                "updated_at": now.isoformat(),
            })

        if rows:
            try:
                (
                    self.db.table(self.scores_table)
                    .upsert(rows, on_conflict="product_id")
                    .execute()
                )
            except Exception as e:
                logger.error("recalculate_scores_upsert_failed", error=str(e))
                raise DatabaseError("upsert", str(e))

        logger.info("product_scores_recalculated", updated=len(rows))
        return len(rows)


# Singleton instance
_service: Optional[ScoreService] = None


def get_score_service() -> ScoreService:
    """Get or create ScoreService instance."""
    global _service
    if _service is None:
        _service = ScoreService()
    return _service
