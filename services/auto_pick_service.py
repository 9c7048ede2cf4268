"""
Auto-pick service: basket builder.

Answers: "Fill my cart for about this much money, the way I usually buy."

Pipeline for one generate call:
1. Validate the request (nothing fetched yet).
2. Fetch price factor, history, category rules, default profile, stock
   rules and catalog concurrently, then scores for the catalog.
3. Filter → weight categories → rank → interleave seen/unseen.
4. Allocate quantities against the budget window (two passes).
5. Persist the result as a PENDING draft and return it.

Nothing is written before step 5, so an abandoned or failed call leaves
no trace.
"""

import asyncio
import math
from typing import Optional
import structlog

from config import settings
from exceptions import (
    BudgetNotReachableError,
    InvalidBudgetError,
    UnsatisfiableSelectionError,
)
from models.auto_pick import (
    AutoPickDiagnostics,
    AutoPickDraft,
    AutoPickRequest,
    AutoPickResult,
)
from services.allocation_service import BudgetAllocator, resolve_budget
from services.category_weight_service import build_category_weights
from services.catalog_service import get_catalog_service
from services.draft_service import get_draft_service
from services.history_service import get_history_service
from services.ranking_service import (
    filter_candidates,
    interleave_seen_unseen,
    rank_candidates,
)
from services.rules_service import get_rules_service
from services.stock_rule_service import StockRuleCache

logger = structlog.get_logger(__name__)


def validate_request(user_id: int, request: AutoPickRequest) -> None:
    """
    Reject malformed generation parameters.

    Raises:
        InvalidBudgetError: On non-positive ids, non-finite numbers or
            inconsistent bounds
    """
    if user_id is None or user_id <= 0:
        raise InvalidBudgetError("user_id must be positive", {"user_id": user_id})
    for name in ("min_sum", "max_sum", "max_price_per_item", "assortment_mode"):
        value = getattr(request, name)
        if value is not None and not math.isfinite(value):
            raise InvalidBudgetError(f"{name} must be a finite number", {name: str(value)})
    if request.store_id < 0:
        raise InvalidBudgetError("store_id must not be negative", {"store_id": request.store_id})
    if request.min_sum is not None and request.min_sum < 0:
        raise InvalidBudgetError("min_sum must not be negative", {"min_sum": request.min_sum})
    if request.max_sum is not None and request.max_sum <= 0:
        raise InvalidBudgetError("max_sum must be positive", {"max_sum": request.max_sum})
    if (
        request.min_sum is not None
        and request.max_sum is not None
        and request.min_sum > request.max_sum
    ):
        raise InvalidBudgetError(
            "min_sum must not exceed max_sum",
            {"min_sum": request.min_sum, "max_sum": request.max_sum},
        )
    if request.max_price_per_item is not None and request.max_price_per_item <= 0:
        raise InvalidBudgetError(
            "max_price_per_item must be positive",
            {"max_price_per_item": request.max_price_per_item},
        )
    if request.assortment_mode < 0:
        raise InvalidBudgetError(
            "assortment_mode must not be negative",
            {"assortment_mode": request.assortment_mode},
        )


class AutoPickService:
    """
    Auto-pick business logic.

    Collaborators are resolved through their singletons; the stock rule
    cache can be injected to share or isolate cached rules.
    """

    def __init__(self, stock_rule_cache: Optional[StockRuleCache] = None):
        self.catalog_service = get_catalog_service()
        self.history_service = get_history_service()
        self.rules_service = get_rules_service()
        self.draft_service = get_draft_service()
        self.stock_rule_cache = stock_rule_cache or self.rules_service.stock_rule_cache

    async def generate(self, user_id: int, request: AutoPickRequest) -> AutoPickResult:
        """
        Build a basket for the user and store it as a draft.

        Args:
            user_id: Buyer
            request: Budget bounds and filters

        Returns:
            AutoPickResult with draft id, total, items and diagnostics

        Raises:
            InvalidBudgetError: Malformed parameters
            UnsatisfiableSelectionError: No line item could be produced
            BudgetNotReachableError: Total stayed below the lower bound
            DatabaseError: A collaborator lookup failed
        """
        validate_request(user_id, request)

        logger.info(
            "auto_pick_generating",
            user_id=user_id,
            min_sum=request.min_sum,
            max_sum=request.max_sum,
            max_price_per_item=request.max_price_per_item,
            assortment_mode=request.assortment_mode,
        )

        # Independent lookups, joined before any computation
        factor, (history, average_total), rules, profile, stock_rules, products = (
            await asyncio.gather(
                asyncio.to_thread(self.catalog_service.get_price_factor, user_id),
                asyncio.to_thread(self.history_service.get_history, user_id),
                asyncio.to_thread(self.rules_service.get_category_rules),
                asyncio.to_thread(self.rules_service.get_default_profile),
                asyncio.to_thread(self.stock_rule_cache.get_rules),
                asyncio.to_thread(self.catalog_service.get_candidate_products),
            )
        )

        candidates, skipped = filter_candidates(
            products,
            factor,
            stock_rules,
            exclude_categories=request.exclude_categories,
            include_categories=request.include_categories,
            max_price=request.max_price_per_item,
        )
        scores = await asyncio.to_thread(
            self.catalog_service.get_scores,
            [c.product_id for c in candidates],
        )

        weights = build_category_weights(
            history.categories,
            profile,
            [c.category for c in candidates],
        )
        ranked = rank_candidates(candidates, history, scores, request.assortment_mode)
        sequence = interleave_seen_unseen(ranked, history, settings.auto_pick_unseen_share)

        plan = resolve_budget(
            request.min_sum,
            request.max_sum,
            average_total,
            settings.auto_pick_default_budget,
        )

        min_price = min((c.price for c in candidates), default=None)
        diagnostics = AutoPickDiagnostics(
            catalog_size=len(products),
            candidates=len(candidates),
            skipped=skipped,
            min_price=min_price,
            max_budget_below_min_price=(
                request.max_sum is not None
                and min_price is not None
                and min_price > request.max_sum
            ),
            target_total=plan.target,
            lower_bound=plan.lower_bound,
            upper_bound=plan.upper_bound,
        )

        allocator = BudgetAllocator(
            plan,
            weights,
            rules,
            history,
            max_avg_qty=settings.auto_pick_max_avg_qty,
        )
        result = allocator.allocate(sequence)
        diagnostics.top_up_used = result.top_up_used

        if not result.items:
            logger.warning(
                "auto_pick_unsatisfiable",
                user_id=user_id,
                candidates=len(candidates),
                skipped=skipped.model_dump(),
            )
            raise UnsatisfiableSelectionError(diagnostics.model_dump())

        if result.total < plan.lower_bound:
            logger.warning(
                "auto_pick_budget_not_reachable",
                user_id=user_id,
                total=result.total,
                lower_bound=plan.lower_bound,
            )
            raise BudgetNotReachableError(
                result.total,
                plan.lower_bound,
                diagnostics.model_dump(),
            )

        params = {
            "min_sum": request.min_sum or None,
            "max_sum": request.max_sum,
            "max_price_per_item": request.max_price_per_item,
            "assortment_mode": request.assortment_mode,
            "exclude_categories": list(request.exclude_categories),
            "include_categories": list(request.include_categories),
            "factor": factor,
            "target_total": plan.target,
            "lower_bound": plan.lower_bound,
            "upper_bound": plan.upper_bound,
            "weight_source": weights.source.value,
        }
        draft = await asyncio.to_thread(
            self.draft_service.create_draft,
            user_id,
            request.store_id,
            params,
            result.items,
            result.total,
        )

        logger.info(
            "auto_pick_generated",
            user_id=user_id,
            draft_id=draft.id,
            lines=len(result.items),
            total=result.total,
        )

        return AutoPickResult(
            draft_id=draft.id,
            total=result.total,
            items=result.items,
            diagnostics=diagnostics,
        )

    def get_draft(self, draft_id: str, user_id: int) -> Optional[AutoPickDraft]:
        """Get a draft owned by the user, or None."""
        return self.draft_service.get_draft(draft_id, user_id)


# Singleton instance
_service: Optional[AutoPickService] = None


def get_auto_pick_service() -> AutoPickService:
    """Get or create AutoPickService instance."""
    global _service
    if _service is None:
        _service = AutoPickService()
    return _service
