"""
Catalog service.

Read side of products for auto-pick: user price factors, purchasable
products with their active promotion and primary image, and ranking
scores.
"""

from datetime import datetime, timezone
from typing import Optional
import structlog

from config import get_supabase_client
from exceptions import DatabaseError
from models.product import Product, ProductScore, Promotion
from services.pricing_service import price_factor

logger = structlog.get_logger(__name__)


class CatalogService:
    """
    Catalog lookups.

    Products are returned ordered by id so rankings are reproducible.
    """

    def __init__(self):
        self.db = get_supabase_client()
        self.users_table = "users"
        self.products_table = "products"
        self.promotions_table = "promotions"
        self.images_table = "product_images"
        self.scores_table = "product_scores"

    # ===================
    # USERS
    # ===================

    def get_price_factor(self, user_id: int) -> float:
        """
        Get the price multiplier for a user.

        Args:
            user_id: User ID

        Returns:
            1 + price_modifier / 100 (1.0 for unknown users)
        """
        try:
            result = (
                self.db.table(self.users_table)
                .select("id, price_modifier")
                .eq("id", user_id)
                .limit(1)
                .execute()
            )
            modifier = result.data[0].get("price_modifier") if result.data else None
            return price_factor(modifier)

        except Exception as e:
            logger.error("get_price_factor_failed", user_id=user_id, error=str(e))
            raise DatabaseError("select", str(e))

    # ===================
    # PRODUCTS
    # ===================

    def _active_promotions(self, product_ids: list[int]) -> dict[int, Promotion]:
        """Latest-expiring unexpired promotion per product."""
        now = datetime.now(timezone.utc).isoformat()
        result = (
            self.db.table(self.promotions_table)
            .select("*")
            .in_("product_id", product_ids)
            .gt("expires_at", now)
            .order("expires_at", desc=True)
            .execute()
        )
        promotions: dict[int, Promotion] = {}
        for row in result.data:
            promotions.setdefault(row["product_id"], Promotion(**row))
        return promotions

    def _primary_images(self, product_ids: list[int]) -> dict[int, str]:
        """First image by position per product."""
        result = (
            self.db.table(self.images_table)
            .select("product_id, url, position")
            .in_("product_id", product_ids)
            .order("position")
            .execute()
        )
        images: dict[int, str] = {}
        for row in result.data:
            if row.get("url"):
                images.setdefault(row["product_id"], row["url"])
        return images

    def _enrich(self, rows: list[dict]) -> list[Product]:
        """Build Product models with promotion and image attached."""
        if not rows:
            return []
        ids = [row["id"] for row in rows]
        promotions = self._active_promotions(ids)
        images = self._primary_images(ids)
        return [
            Product(
                **row,
                promotion=promotions.get(row["id"]),
                image=images.get(row["id"]),
            )
            for row in rows
        ]

    def get_candidate_products(self) -> list[Product]:
        """
        Get every purchasable product (not archived, in stock).

        Category filters are applied by the ranker so that it can count
        what each filter removed.

        Returns:
            Products ordered by id
        """
        logger.info("getting_candidate_products")

        try:
            result = (
                self.db.table(self.products_table)
                .select("*")
                .eq("is_archived", False)
                .gt("stock", 0)
                .order("id")
                .execute()
            )
            products = self._enrich(result.data)

            logger.info("candidate_products_retrieved", count=len(products))
            return products

        except Exception as e:
            logger.error("get_candidate_products_failed", error=str(e))
            raise DatabaseError("select", str(e))

    def get_products_by_ids(self, product_ids: list[int]) -> dict[int, Product]:
        """
        Get current state of purchasable products by id.

        Archived and out-of-stock products are left out.

        Args:
            product_ids: Product IDs

        Returns:
            Dict of product_id → Product
        """
        if not product_ids:
            return {}

        try:
            result = (
                self.db.table(self.products_table)
                .select("*")
                .in_("id", product_ids)
                .eq("is_archived", False)
                .gt("stock", 0)
                .execute()
            )
            return {p.id: p for p in self._enrich(result.data)}

        except Exception as e:
            logger.error(
                "get_products_by_ids_failed",
                count=len(product_ids),
                error=str(e)
            )
            raise DatabaseError("select", str(e))

    def product_exists(self, product_id: int) -> bool:
        """Check if a product row exists (archived or not)."""
        try:
            result = (
                self.db.table(self.products_table)
                .select("id")
                .eq("id", product_id)
                .limit(1)
                .execute()
            )
            return bool(result.data)

        except Exception as e:
            logger.error("product_exists_failed", product_id=product_id, error=str(e))
            raise DatabaseError("select", str(e))

    # ===================
    # SCORES
    # ===================

    def get_scores(self, product_ids: list[int]) -> dict[int, ProductScore]:
        """
        Get ranking scores for a batch of products.

        Args:
            product_ids: Product IDs

        Returns:
            Dict of product_id → ProductScore (missing products have no score)
        """
        if not product_ids:
            return {}

        try:
            result = (
                self.db.table(self.scores_table)
                .select("*")
                .in_("product_id", product_ids)
                .execute()
            )
            return {row["product_id"]: ProductScore(**row) for row in result.data}

        except Exception as e:
            logger.error("get_scores_failed", count=len(product_ids), error=str(e))
            raise DatabaseError("select", str(e))


# Singleton instance
_service: Optional[CatalogService] = None


def get_catalog_service() -> CatalogService:
    """Get or create CatalogService instance."""
    global _service
    if _service is None:
        _service = CatalogService()
    return _service
