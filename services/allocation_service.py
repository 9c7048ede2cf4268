"""
Budget allocator: the core of auto-pick.

Walks the interleaved candidate sequence and decides a quantity per
product so the basket lands inside [lower_bound, upper_bound]:

Pass 1 (fill): in candidate order, give each product
    max(category budget room / price, category rule minimum, usual qty)
units, box-rounded, until the total reaches both bounds.

Pass 2 (top-up): only if still under lower_bound. Cheapest products
first (already selected ones before new ones at equal price), raise or
add quantities until lower_bound is reached.

Strictly sequential: every step depends on the category spend of the
previous ones.
"""

from dataclasses import dataclass, field
from typing import Optional
import math
import structlog

from models.auto_pick import AutoPickLineItem
from models.rules import CategoryRule
from services.category_weight_service import CategoryWeights
from services.history_service import HistoryAggregate
from services.ranking_service import Candidate
from utils.money import line_total, round2

logger = structlog.get_logger(__name__)

UPPER_BOUND_FACTOR = 1.05
LOWER_BOUND_FACTOR = 0.8
MAX_BUDGET_OVERRUN = 1.05


@dataclass(frozen=True)
class BudgetPlan:
    """
    Resolved budget window.

    max_budget is the caller's explicit max_sum (None when absent); only
    then may the total overrun upper_bound, by at most 5%.
    """
    target: float
    lower_bound: float
    upper_bound: float
    max_budget: Optional[float] = None

    @property
    def ceiling(self) -> float:
        """Hard limit no commit may cross."""
        if self.max_budget:
            return self.max_budget * MAX_BUDGET_OVERRUN
        return self.upper_bound


def resolve_budget(
    min_sum: Optional[float],
    max_sum: Optional[float],
    average_order_total: float,
    default_budget: float,
) -> BudgetPlan:
    """
    Resolve target and bounds from the request and the user's history.

    target = max_sum, else min_sum, else average order total, else default
    upper  = max_sum, else target × 1.05
    lower  = min_sum, else target × 0.8

    Examples:
        resolve_budget(1000, 1200, 0, 20000) → target 1200, [1000, 1200]
        resolve_budget(None, None, 0, 20000) → target 20000, [16000, 21000]
    """
    min_budget = min_sum or None
    if max_sum is not None:
        target = max_sum
    else:
        target = min_budget or average_order_total or default_budget

    upper = max_sum if max_sum is not None else target * UPPER_BOUND_FACTOR
    lower = min_budget if min_budget else target * LOWER_BOUND_FACTOR

    return BudgetPlan(
        target=round2(target),
        lower_bound=round2(lower),
        upper_bound=round2(upper),
        max_budget=max_sum,
    )


def adjust_boxing(qty: float, box_size: Optional[int], stock: Optional[int]) -> int:
    """
    Round a desired quantity to shippable boxes and clamp to stock.

    - No box size or box size <= 1: clamp to stock.
    - qty >= box: whole boxes, rounded down (at least one box).
    - qty < box: half a box when qty reaches a quarter of the box,
      otherwise qty unchanged.
    After clamping to stock, quantities of a box or more are brought back
    to a whole number of boxes.

    Examples:
        adjust_boxing(5, 12, 100) → 6
        adjust_boxing(20, 12, 100) → 12
        adjust_boxing(2, 12, 100) → 2
    """
    if qty is None or not math.isfinite(qty) or qty <= 0:
        return 0
    qty = int(qty)
    limit = stock if stock is not None else qty

    if not box_size or box_size <= 1:
        return max(0, min(qty, limit))

    planned = qty
    if planned >= box_size:
        boxes = max(1, planned // box_size)
        planned = boxes * box_size
    else:
        half_box = max(1, int(math.floor(box_size / 2 + 0.5)))
        if planned >= half_box * 0.5:
            planned = half_box

    planned = max(0, min(planned, limit))
    if planned >= box_size:
        planned = (planned // box_size) * box_size
    return planned


def find_category_rule(
    rules: list[CategoryRule],
    category: str,
    volume: Optional[float],
) -> Optional[CategoryRule]:
    """First enabled rule for the category whose volume is null or equal."""
    for rule in rules:
        if not rule.enabled:
            continue
        if rule.category == category and (rule.volume is None or rule.volume == volume):
            return rule
    return None


@dataclass
class AllocationResult:
    """Selected lines and running state after both passes."""
    items: list[AutoPickLineItem] = field(default_factory=list)
    total: float = 0.0
    spent_by_category: dict[str, float] = field(default_factory=dict)
    top_up_used: bool = False


class BudgetAllocator:
    """
    Two-pass greedy allocation over one candidate sequence.

    Usage:
        allocator = BudgetAllocator(plan, weights, rules, history)
        result = allocator.allocate(sequence)
    """

    def __init__(
        self,
        plan: BudgetPlan,
        weights: CategoryWeights,
        rules: list[CategoryRule],
        history: HistoryAggregate,
        max_avg_qty: int = 12,
    ):
        self.plan = plan
        self.weights = weights
        self.rules = rules
        self.history = history
        self.max_avg_qty = max_avg_qty

        self._result = AllocationResult()
        self._item_by_product: dict[int, AutoPickLineItem] = {}

    # ===================
    # HELPERS
    # ===================

    def _avg_qty(self, candidate: Candidate) -> int:
        product = candidate.product
        return self.history.average_qty(
            product.id,
            product.category,
            product.volume,
            max_qty=self.max_avg_qty,
        )

    def _rule_min(self, candidate: Candidate) -> int:
        rule = find_category_rule(self.rules, candidate.category, candidate.product.volume)
        return rule.min_qty if rule else 0

    def _category_room(self, category: str) -> float:
        weight = self.weights.weight_for(category)
        target_for_category = self.plan.target * weight if weight else self.plan.target
        spent = self._result.spent_by_category.get(category, 0.0)
        return max(0.0, target_for_category - spent)

    def _desired_by_category(self, candidate: Candidate, avg_qty: int) -> int:
        room = self._category_room(candidate.category)
        if room > 0:
            return math.floor(room / candidate.price)
        return avg_qty

    def _breaches_ceiling(self, amount: float) -> bool:
        return self._result.total + amount > self.plan.ceiling + 1e-9

    def _recompute_total(self) -> None:
        self._result.total = round2(sum(item.total for item in self._result.items))

    def _add_spend(self, category: str, amount: float) -> None:
        spent = self._result.spent_by_category.get(category, 0.0)
        self._result.spent_by_category[category] = round2(spent + amount)

    def _commit_new(self, candidate: Candidate, qty: int, amount: float) -> None:
        product = candidate.product
        item = AutoPickLineItem(
            product_id=product.id,
            qty=qty,
            price=candidate.price,
            total=amount,
            name=product.name,
            category=candidate.category,
            volume=product.volume,
            box_size=product.box_size or None,
            stock=product.stock,
            img=product.image or product.img,
        )
        self._result.items.append(item)
        self._item_by_product[product.id] = item
        self._add_spend(candidate.category, amount)
        self._recompute_total()

    # ===================
    # PASSES
    # ===================

    def _fill(self, sequence: list[Candidate]) -> None:
        """Pass 1: walk the sequence once, sizing lines by category room."""
        plan = self.plan

        for candidate in sequence:
            total = self._result.total
            if total >= plan.upper_bound and total >= plan.lower_bound:
                break
            if candidate.product_id in self._item_by_product or candidate.price <= 0:
                continue

            avg_qty = self._avg_qty(candidate)
            desired = self._desired_by_category(candidate, avg_qty)
            qty = max(desired, self._rule_min(candidate), avg_qty)

            if plan.max_budget:
                room = plan.max_budget - total
                qty = min(qty, math.floor(room / candidate.price))

            qty = adjust_boxing(qty, candidate.product.box_size, candidate.product.stock)
            if qty <= 0:
                continue

            amount = line_total(candidate.price, qty)
            if amount <= 0 or self._breaches_ceiling(amount):
                continue

            self._commit_new(candidate, qty, amount)
            logger.debug(
                "auto_pick_line_added",
                product_id=candidate.product_id,
                qty=qty,
                amount=amount,
                total=self._result.total,
            )

    def _top_up(self, sequence: list[Candidate]) -> None:
        """Pass 2: cheapest first, raise quantities until lower_bound."""
        plan = self.plan
        self._result.top_up_used = True

        selected = sorted(
            (c for c in sequence if c.product_id in self._item_by_product),
            key=lambda c: c.price,
        )
        fresh = sorted(
            (c for c in sequence if c.product_id not in self._item_by_product),
            key=lambda c: c.price,
        )
        pool = sorted(selected + fresh, key=lambda c: c.price)

        for candidate in pool:
            if self._result.total >= plan.lower_bound:
                break
            if candidate.price <= 0:
                continue

            item = self._item_by_product.get(candidate.product_id)
            existing = item.qty if item else 0
            avg_qty = self._avg_qty(candidate)

            remaining = plan.lower_bound - self._result.total
            by_remaining = max(1, math.ceil(remaining / candidate.price))
            by_category = self._desired_by_category(candidate, avg_qty)

            target_qty = max(
                existing + by_remaining,
                existing + by_category,
                self._rule_min(candidate),
                existing + avg_qty,
            )
            target_qty = adjust_boxing(
                target_qty,
                candidate.product.box_size,
                candidate.product.stock,
            )

            additional = target_qty - existing
            if additional <= 0:
                continue
            amount = line_total(candidate.price, additional)
            if amount <= 0 or self._breaches_ceiling(amount):
                continue

            if item is not None:
                item.qty = target_qty
                item.total = line_total(candidate.price, target_qty)
                self._add_spend(candidate.category, amount)
                self._recompute_total()
            else:
                self._commit_new(candidate, additional, amount)

            logger.debug(
                "auto_pick_line_topped_up",
                product_id=candidate.product_id,
                added=additional,
                qty=target_qty,
                total=self._result.total,
            )

    def allocate(self, sequence: list[Candidate]) -> AllocationResult:
        """
        Run both passes over the sequence.

        Args:
            sequence: Interleaved candidates

        Returns:
            AllocationResult; emptiness and an unreached lower bound are
            reported by the caller.
        """
        self._fill(sequence)
        if self._result.total < self.plan.lower_bound:
            self._top_up(sequence)

        logger.info(
            "auto_pick_allocated",
            lines=len(self._result.items),
            total=self._result.total,
            lower_bound=self.plan.lower_bound,
            upper_bound=self.plan.upper_bound,
            top_up_used=self._result.top_up_used,
        )
        return self._result
