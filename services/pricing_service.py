"""
Pricing resolver.

Turns a catalog product into the price a specific user pays:
    factor = 1 + price_modifier / 100
    base   = base_price if non_modify else round2(base_price × factor)
    price  = promo price (× factor when the promotion allows it) or base

No database access here; CatalogService supplies the factor and the
active promotion.
"""

from typing import NamedTuple, Optional

from models.product import Product
from utils.money import round2


class ResolvedPrice(NamedTuple):
    """Effective and base price for one user, plus the promotion used."""
    price: float
    base_price: float
    promo_id: Optional[int]


def price_factor(price_modifier_percent: Optional[float]) -> float:
    """
    Convert a user's percentage modifier into a multiplier.

    Examples:
        price_factor(10) → 1.1
        price_factor(None) → 1.0
    """
    return 1 + (price_modifier_percent or 0) / 100


def resolve_price(product: Product, factor: float) -> ResolvedPrice:
    """
    Resolve the effective unit price of a product for a price factor.

    Args:
        product: Product with at most one active promotion attached
        factor: Multiplier from price_factor()

    Returns:
        ResolvedPrice(price, base_price, promo_id). A price <= 0 means
        the product is unpriced; callers exclude it.
    """
    if product.non_modify:
        base_price = product.base_price
    else:
        base_price = round2(product.base_price * factor)

    promo = product.promotion
    if promo is None:
        return ResolvedPrice(base_price, base_price, None)

    if promo.apply_modifier:
        price = round2(promo.promo_price * factor)
    else:
        price = promo.promo_price

    return ResolvedPrice(price, base_price, promo.id)
