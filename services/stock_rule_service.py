"""
Stock rule classification and caching.

Stock rules are read on every generate/apply call but change only when an
admin edits them, so they are cached in a StockRuleCache instance that
the rules service owns and invalidates on every write.
"""

from typing import Callable, Optional
import structlog

from models.rules import StockLabel, StockRule

logger = structlog.get_logger(__name__)


def resolve_status(rules: list[StockRule], stock: int, price: float) -> StockLabel:
    """
    Classify a product by the first matching rule in priority order.

    A rule matches when (price_max is null or price < price_max) and
    (stock_max is null or stock <= stock_max). No match → AVAILABLE.

    Args:
        rules: Rules sorted by priority ascending
        stock: Units in stock
        price: Effective unit price

    Returns:
        StockLabel of the first matching rule
    """
    stock = stock or 0
    price = price or 0

    for rule in rules:
        price_ok = rule.price_max is None or price < rule.price_max
        stock_ok = rule.stock_max is None or stock <= rule.stock_max
        if price_ok and stock_ok:
            return rule.label

    return StockLabel.AVAILABLE


def is_unavailable(rules: list[StockRule], stock: int, price: float) -> bool:
    """True when the stock rules classify the product as unavailable."""
    return resolve_status(rules, stock, price) == StockLabel.UNAVAILABLE


class StockRuleCache:
    """
    Process-local cache of stock rules.

    Usage:
        cache = StockRuleCache(loader=fetch_rules)
        rules = cache.get_rules()
        cache.invalidate()  # after an admin write
    """

    def __init__(self, loader: Callable[[], list[StockRule]]):
        self._loader = loader
        self._rules: Optional[list[StockRule]] = None

    def get_rules(self, force_fresh: bool = False) -> list[StockRule]:
        """
        Return cached rules, loading them on first use or when forced.

        Args:
            force_fresh: Bypass the cache and reload

        Returns:
            Rules sorted by priority ascending
        """
        if self._rules is None or force_fresh:
            rules = self._loader()
            self._rules = sorted(rules, key=lambda r: r.priority)
            logger.debug("stock_rules_loaded", count=len(self._rules))
        return self._rules

    def invalidate(self) -> None:
        """Drop cached rules; the next get_rules() reloads."""
        self._rules = None
        logger.info("stock_rules_cache_invalidated")

    @property
    def is_loaded(self) -> bool:
        return self._rules is not None
