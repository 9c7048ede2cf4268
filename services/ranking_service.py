"""
Candidate ranking for auto-pick.

Three steps, all pure:
1. filter_candidates: drop products that cannot be offered to this user
   (category filters, unpriced, over the price ceiling, unavailable by
   stock rule), counting why each one was dropped.
2. rank_candidates: order by
       (0.6 × personal qty + 0.4 × global score) × boost
   with a stable sort so equal scores keep catalog order.
3. interleave_seen_unseen: mix never-purchased products into the
   familiar ones at a fixed share.
"""

from dataclasses import dataclass
from typing import Iterable, Optional
import structlog

from models.auto_pick import SkipCounts
from models.product import Product, ProductScore
from models.rules import StockRule
from services.history_service import HistoryAggregate
from services.pricing_service import resolve_price
from services.stock_rule_service import is_unavailable

logger = structlog.get_logger(__name__)

PERSONAL_WEIGHT = 0.6
GLOBAL_WEIGHT = 0.4
NEW_PRODUCT_BOOST = 1.15
UNSEEN_MODE_STEP = 0.15

# Float accumulation of the unseen share (0.1 × 10 = 0.9999…) must still
# release an unseen product on the tenth step.
DEBT_EPSILON = 1e-9


@dataclass
class Candidate:
    """A product that passed eligibility, with its resolved price."""
    product: Product
    price: float
    base_price: float
    promo_id: Optional[int] = None
    score: float = 0.0

    @property
    def product_id(self) -> int:
        return self.product.id

    @property
    def category(self) -> str:
        return self.product.category_key


def filter_candidates(
    products: Iterable[Product],
    factor: float,
    stock_rules: list[StockRule],
    exclude_categories: Optional[Iterable[str]] = None,
    include_categories: Optional[Iterable[str]] = None,
    max_price: Optional[float] = None,
) -> tuple[list[Candidate], SkipCounts]:
    """
    Keep products that can be offered, in input order.

    Args:
        products: Catalog products (active promotion attached)
        factor: User price factor
        stock_rules: Rules sorted by priority
        exclude_categories: Categories never offered
        include_categories: If non-empty, the only categories offered
        max_price: Optional unit price ceiling

    Returns:
        Tuple of (candidates, skip counts by reason)
    """
    excluded = set(exclude_categories or [])
    included = set(include_categories or [])
    skipped = SkipCounts()
    candidates: list[Candidate] = []

    for product in products:
        if product.is_archived or product.stock <= 0:
            continue

        category = product.category_key
        if category in excluded:
            skipped.excluded += 1
            continue
        if included and category not in included:
            skipped.category += 1
            continue

        resolved = resolve_price(product, factor)
        if resolved.price <= 0:
            skipped.non_positive_price += 1
            continue
        if max_price is not None and resolved.price > max_price:
            skipped.max_price += 1
            continue
        if is_unavailable(stock_rules, product.stock, resolved.price):
            skipped.stock_rule += 1
            continue

        candidates.append(Candidate(
            product=product,
            price=resolved.price,
            base_price=resolved.base_price,
            promo_id=resolved.promo_id,
        ))

    return candidates, skipped


def score_candidate(
    candidate: Candidate,
    history: HistoryAggregate,
    score: Optional[ProductScore],
    assortment_mode: float = 0,
) -> float:
    """Blended ranking score of one candidate."""
    personal = history.product_qty(candidate.product_id)
    global_signal = score.global_signal if score else 0

    boost = 1.0
    if score:
        boost *= score.promo_boost if score.promo_boost is not None else 1
        boost *= score.novelty_boost if score.novelty_boost is not None else 1
    if candidate.product.is_new:
        boost *= NEW_PRODUCT_BOOST
    if not history.has_purchased(candidate.product_id):
        boost *= 1 + UNSEEN_MODE_STEP * assortment_mode

    return (PERSONAL_WEIGHT * personal + GLOBAL_WEIGHT * global_signal) * boost


def rank_candidates(
    candidates: list[Candidate],
    history: HistoryAggregate,
    scores: dict[int, ProductScore],
    assortment_mode: float = 0,
) -> list[Candidate]:
    """
    Sort candidates by final score, highest first.

    Ties keep their input order (sorted() is stable, also with reverse=True).

    Args:
        candidates: Output of filter_candidates
        history: User purchase history
        scores: ProductScore by product id
        assortment_mode: Extra boost step for never-purchased products

    Returns:
        New list of candidates with .score set
    """
    for candidate in candidates:
        candidate.score = score_candidate(
            candidate,
            history,
            scores.get(candidate.product_id),
            assortment_mode,
        )
    return sorted(candidates, key=lambda c: c.score, reverse=True)


def interleave_seen_unseen(
    ranked: list[Candidate],
    history: HistoryAggregate,
    unseen_share: float = 0.1,
) -> list[Candidate]:
    """
    Mix never-purchased candidates into purchased ones.

    A running debt starts at unseen_share and grows by unseen_share per
    seen candidate emitted; whenever it reaches 1 an unseen candidate is
    emitted instead and the debt drops by 1. Both partitions keep their
    rank order. unseen_share <= 0 returns the ranking unchanged.

    Args:
        ranked: Output of rank_candidates
        history: User purchase history
        unseen_share: Fraction u; roughly one unseen per 1/u positions

    Returns:
        New list with every candidate exactly once
    """
    if unseen_share <= 0:
        return list(ranked)

    seen = [c for c in ranked if history.has_purchased(c.product_id)]
    unseen = [c for c in ranked if not history.has_purchased(c.product_id)]

    result: list[Candidate] = []
    seen_idx = 0
    unseen_idx = 0
    debt = unseen_share

    while seen_idx < len(seen) or unseen_idx < len(unseen):
        if unseen_idx < len(unseen) and debt >= 1 - DEBT_EPSILON:
            result.append(unseen[unseen_idx])
            unseen_idx += 1
            debt -= 1
        elif seen_idx < len(seen):
            result.append(seen[seen_idx])
            seen_idx += 1
            debt += unseen_share
        else:
            result.extend(unseen[unseen_idx:])
            break

    return result
