"""
Auto-pick draft service.

A draft is the persisted output of one generation: line items, total and
the parameters used. It lives for a limited time and can be applied to a
cart exactly once.

Status moves one way only:
    PENDING → APPLIED   (apply succeeded)
    PENDING → EXPIRED   (apply attempted after expires_at)
Every transition is a conditional update on the current status, so two
concurrent apply calls cannot both win.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Optional
from uuid import uuid4

import structlog

from config import DatabaseSession, get_supabase_client, settings
from exceptions import (
    AppError,
    DatabaseError,
    DraftExpiredError,
    DraftNotFoundError,
    DraftNotOwnedError,
    DraftStatusError,
)
from models.auto_pick import (
    ApplyDraftResponse,
    AutoPickDraft,
    AutoPickLineItem,
    DraftStatus,
)
from services.cart_service import get_cart_service
from services.catalog_service import get_catalog_service
from services.pricing_service import resolve_price
from services.rules_service import get_rules_service
from services.stock_rule_service import StockRuleCache, is_unavailable

logger = structlog.get_logger(__name__)


def _as_utc(value: datetime) -> datetime:
    """Treat naive timestamps as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class DraftService:
    """
    Auto-pick draft business logic.

    Handles creation, lookup and application of auto_pick_drafts.
    """

    def __init__(self, stock_rule_cache: Optional[StockRuleCache] = None):
        self.db = get_supabase_client()
        self.table = "auto_pick_drafts"
        self.catalog_service = get_catalog_service()
        self.cart_service = get_cart_service()
        self.stock_rule_cache = stock_rule_cache or get_rules_service().stock_rule_cache

    def _fetch(self, draft_id: str) -> Optional[AutoPickDraft]:
        """Load a draft regardless of owner."""
        try:
            result = (
                self.db.table(self.table)
                .select("*")
                .eq("id", draft_id)
                .limit(1)
                .execute()
            )
            return AutoPickDraft(**result.data[0]) if result.data else None

        except Exception as e:
            logger.error("fetch_draft_failed", draft_id=draft_id, error=str(e))
            raise DatabaseError("select", str(e))

    def _transition(
        self,
        draft_id: str,
        from_status: DraftStatus,
        to_status: DraftStatus,
    ) -> bool:
        """
        Move a draft from one status to another if it is still in from_status.

        Returns:
            True if this call performed the transition
        """
        try:
            result = (
                self.db.table(self.table)
                .update({
                    "status": to_status.value,
                    "updated_at": datetime.now(timezone.utc).isoformat(),
                })
                .eq("id", draft_id)
                .eq("status", from_status.value)
                .execute()
            )
            moved = bool(result.data)
            logger.info(
                "draft_status_transition",
                draft_id=draft_id,
                from_status=from_status.value,
                to_status=to_status.value,
                moved=moved,
            )
            return moved

        except Exception as e:
            logger.error(
                "draft_transition_failed",
                draft_id=draft_id,
                to_status=to_status.value,
                error=str(e)
            )
            raise DatabaseError("update", str(e))

    # ===================
    # CREATE / READ
    # ===================

    def create_draft(
        self,
        user_id: int,
        store_id: int,
        params: dict[str, Any],
        items: list[AutoPickLineItem],
        total: float,
    ) -> AutoPickDraft:
        """
        Persist a generated selection as a PENDING draft.

        Written as a single row so the draft is stored whole or not at all.

        Args:
            user_id: Owner
            store_id: Store whose cart the draft targets
            params: Resolved generation parameters
            items: Line items
            total: Grand total

        Returns:
            Created AutoPickDraft
        """
        now = datetime.now(timezone.utc)
        expires_at = now + timedelta(minutes=settings.auto_pick_draft_ttl_minutes)

        row = {
            "id": str(uuid4()),
            "user_id": user_id,
            "store_id": store_id,
            "params": params,
            "items": [item.model_dump() for item in items],
            "total": total,
            "status": DraftStatus.PENDING.value,
            "expires_at": expires_at.isoformat(),
            "created_at": now.isoformat(),
        }

        try:
            with DatabaseSession("create_auto_pick_draft") as db:
                result = db.table(self.table).insert(row).execute()
            draft = AutoPickDraft(**result.data[0])

            logger.info(
                "draft_created",
                draft_id=draft.id,
                user_id=user_id,
                item_count=len(items),
                total=total,
            )
            return draft

        except Exception as e:
            logger.error("create_draft_failed", user_id=user_id, error=str(e))
            raise DatabaseError("insert", str(e))

    def get_draft(self, draft_id: str, user_id: int) -> Optional[AutoPickDraft]:
        """
        Get a draft owned by the user.

        Returns:
            AutoPickDraft, or None if missing or owned by someone else
        """
        draft = self._fetch(draft_id)
        if draft is None or draft.user_id != user_id:
            return None
        return draft

    # ===================
    # APPLY
    # ===================

    def apply_draft(
        self,
        draft_id: str,
        user_id: int,
        store_id: Optional[int] = None,
    ) -> ApplyDraftResponse:
        """
        Copy a pending draft into the user's cart.

        Each line is re-checked against current stock and stock rules;
        quantities are clamped to stock and written with overwrite
        semantics. The draft becomes APPLIED even if no line survives.

        Args:
            draft_id: Draft ID
            user_id: Caller; must own the draft
            store_id: Target store; defaults to the draft's store

        Returns:
            ApplyDraftResponse with applied/skipped counts

        Raises:
            DraftNotFoundError: No such draft
            DraftNotOwnedError: Draft belongs to another user
            DraftStatusError: Draft is not PENDING (incl. lost race)
            DraftExpiredError: Past expires_at; draft is marked EXPIRED
        """
        logger.info("applying_draft", draft_id=draft_id, user_id=user_id)

        draft = self._fetch(draft_id)
        if draft is None:
            raise DraftNotFoundError(draft_id)
        if draft.user_id != user_id:
            raise DraftNotOwnedError(draft_id)
        if draft.status != DraftStatus.PENDING:
            raise DraftStatusError(draft_id, draft.status.value)

        if _as_utc(draft.expires_at) < datetime.now(timezone.utc):
            self._transition(draft_id, DraftStatus.PENDING, DraftStatus.EXPIRED)
            logger.warning("draft_expired", draft_id=draft_id)
            raise DraftExpiredError(draft_id, draft.expires_at.isoformat())

        if not self._transition(draft_id, DraftStatus.PENDING, DraftStatus.APPLIED):
            current = self._fetch(draft_id)
            status = current.status.value if current else "UNKNOWN"
            raise DraftStatusError(draft_id, status)

        try:
            target_store = store_id if store_id is not None else draft.store_id
            products = self.catalog_service.get_products_by_ids(
                [item.product_id for item in draft.items]
            )
            factor = self.catalog_service.get_price_factor(user_id)
            rules = self.stock_rule_cache.get_rules()
            cart_id = self.cart_service.ensure_cart(user_id, target_store)

            applied = 0
            for item in draft.items:
                product = products.get(item.product_id)
                if product is None:
                    continue
                price = resolve_price(product, factor).price
                if is_unavailable(rules, product.stock, price):
                    continue
                qty = min(product.stock, item.qty)
                if qty <= 0:
                    continue

                self.cart_service.upsert_item(cart_id, product.id, qty)
                applied += 1

        except AppError:
            raise
        except Exception as e:
            logger.error("apply_draft_failed", draft_id=draft_id, error=str(e))
            raise DatabaseError("apply", str(e))

        skipped = len(draft.items) - applied
        logger.info(
            "draft_applied",
            draft_id=draft_id,
            cart_id=cart_id,
            applied=applied,
            skipped=skipped,
        )
        return ApplyDraftResponse(ok=True, applied=applied, skipped=skipped)


# Singleton instance
_service: Optional[DraftService] = None


def get_draft_service() -> DraftService:
    """Get or create DraftService instance."""
    global _service
    if _service is None:
        _service = DraftService()
    return _service
