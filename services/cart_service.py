"""
Cart service.

Only what applying an auto-pick draft needs: one cart per (user, store)
and insert-or-overwrite of cart lines.
"""

from typing import Optional
import structlog

from config import get_supabase_client
from exceptions import DatabaseError

logger = structlog.get_logger(__name__)


class CartService:
    """Cart writes keyed by (user, store) and (cart, product)."""

    def __init__(self):
        self.db = get_supabase_client()
        self.carts_table = "carts"
        self.items_table = "cart_items"

    def ensure_cart(self, user_id: int, store_id: int) -> int:
        """
        Get the cart of a user in a store, creating it if missing.

        Args:
            user_id: Cart owner
            store_id: Store

        Returns:
            Cart ID
        """
        try:
            result = (
                self.db.table(self.carts_table)
                .upsert(
                    {"user_id": user_id, "store_id": store_id},
                    on_conflict="user_id,store_id",
                )
                .execute()
            )
            return result.data[0]["id"]

        except Exception as e:
            logger.error(
                "ensure_cart_failed",
                user_id=user_id,
                store_id=store_id,
                error=str(e)
            )
            raise DatabaseError("upsert", str(e))

    def upsert_item(self, cart_id: int, product_id: int, qty: int) -> dict:
        """
        Put a product in the cart with exactly qty units.

        An existing line is overwritten, not summed.

        Args:
            cart_id: Cart ID
            product_id: Product ID
            qty: Quantity to store

        Returns:
            Stored cart line
        """
        try:
            result = (
                self.db.table(self.items_table)
                .upsert(
                    {"cart_id": cart_id, "product_id": product_id, "qty": qty},
                    on_conflict="cart_id,product_id",
                )
                .execute()
            )
            return result.data[0]

        except Exception as e:
            logger.error(
                "upsert_cart_item_failed",
                cart_id=cart_id,
                product_id=product_id,
                error=str(e)
            )
            raise DatabaseError("upsert", str(e))


# Singleton instance
_service: Optional[CartService] = None


def get_cart_service() -> CartService:
    """Get or create CartService instance."""
    global _service
    if _service is None:
        _service = CartService()
    return _service
