"""
Category weight builder.

Decides which share of the target budget each category should receive:
1. the user's historical quantity share per category, if any history;
2. else the default assortment profile's positive weights, normalized;
3. else a uniform split over the categories present among candidates.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional
import structlog

from models.rules import AssortmentProfile

logger = structlog.get_logger(__name__)


class WeightSource(str, Enum):
    """Which rule produced the weights."""
    HISTORY = "history"
    PROFILE = "profile"
    UNIFORM = "uniform"


@dataclass(frozen=True)
class CategoryWeights:
    """Budget share per category plus the share for unlisted categories."""
    weights: dict[str, float]
    fallback: float
    source: WeightSource

    def weight_for(self, category: str) -> float:
        return self.weights.get(category, self.fallback)


def build_category_weights(
    history_by_category: dict[str, int],
    profile: Optional[AssortmentProfile],
    available_categories: Iterable[str],
) -> CategoryWeights:
    """
    Build category weights in strict priority order.

    Args:
        history_by_category: Purchased quantity per category
        profile: Default assortment profile, if one exists
        available_categories: Categories of the current candidates

    Returns:
        CategoryWeights. fallback = 1 / max(len(weights), 1)
    """
    weights: dict[str, float] = {}
    source = WeightSource.UNIFORM

    total = sum(history_by_category.values())
    if total > 0:
        weights = {cat: qty / total for cat, qty in history_by_category.items()}
        source = WeightSource.HISTORY
    else:
        declared = {}
        if profile is not None:
            declared = {
                cat: float(w)
                for cat, w in (profile.category_weights or {}).items()
                if w is not None and float(w) > 0
            }
        declared_sum = sum(declared.values())
        if declared_sum > 0:
            weights = {cat: w / declared_sum for cat, w in declared.items()}
            source = WeightSource.PROFILE
        else:
            # dict.fromkeys keeps first-seen order
            unique = list(dict.fromkeys(available_categories))
            if unique:
                weights = {cat: 1 / len(unique) for cat in unique}

    fallback = 1 / max(len(weights), 1)

    logger.debug(
        "category_weights_built",
        source=source.value,
        categories=len(weights),
        fallback=round(fallback, 4),
    )

    return CategoryWeights(weights=weights, fallback=fallback, source=source)
