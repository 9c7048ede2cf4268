"""
Admin-managed rules that shape auto-pick selections.

CategoryRule: quantity floor per category (and optionally volume).
AssortmentProfile: fallback category weights when a user has no history.
StockRule: priority-ordered availability classifier.
"""

from pydantic import Field, field_validator
from typing import Optional
from enum import Enum

from models.base import BaseSchema, TimestampMixin


class StockLabel(str, Enum):
    """Availability label produced by stock rules."""
    AVAILABLE = "available"
    UNAVAILABLE = "unavailable"


# ===================
# CATEGORY RULES
# ===================

class CategoryRule(BaseSchema, TimestampMixin):
    """Minimum quantity per line for a category (volume null = all volumes)."""

    id: int
    category: str
    volume: Optional[float] = None
    min_qty: int = Field(..., ge=0)
    enabled: bool = True


class CategoryRuleCreate(BaseSchema):
    """Create a category rule."""

    category: str = Field(..., min_length=1, description="Category label")
    volume: Optional[float] = Field(None, description="Specific volume, null for all")
    min_qty: int = Field(..., gt=0, description="Minimum quantity per line")
    enabled: bool = Field(True, description="Whether the rule is active")


class CategoryRuleUpdate(BaseSchema):
    """
    Update a category rule.

    All fields optional - only provided fields are updated.
    """

    category: Optional[str] = Field(None, min_length=1)
    volume: Optional[float] = None
    min_qty: Optional[int] = Field(None, gt=0)
    enabled: Optional[bool] = None


# ===================
# ASSORTMENT PROFILES
# ===================

class AssortmentProfile(BaseSchema, TimestampMixin):
    """Named category weighting used when a user has no purchase history."""

    id: int
    name: str
    category_weights: dict[str, float] = Field(default_factory=dict)
    is_default: bool = False


class AssortmentProfileCreate(BaseSchema):
    """Create an assortment profile. is_default clears other defaults."""

    name: str = Field(..., min_length=1, description="Profile name")
    category_weights: dict[str, float] = Field(
        default_factory=dict,
        description="Relative weight per category"
    )
    is_default: bool = Field(False, description="Use as system-wide default")

    @field_validator("category_weights")
    @classmethod
    def weights_non_negative(cls, v: dict[str, float]) -> dict[str, float]:
        """Weights must not be negative."""
        for category, weight in v.items():
            if weight < 0:
                raise ValueError(f"weight for {category} must be >= 0")
        return v


class AssortmentProfileUpdate(BaseSchema):
    """
    Update an assortment profile.

    All fields optional - only provided fields are updated.
    """

    name: Optional[str] = Field(None, min_length=1)
    category_weights: Optional[dict[str, float]] = None
    is_default: Optional[bool] = None


# ===================
# STOCK RULES
# ===================

class StockRule(BaseSchema, TimestampMixin):
    """
    One availability rule.

    Matches when price < price_max (or price_max is null) and
    stock <= stock_max (or stock_max is null).
    """

    id: int
    label: StockLabel
    price_max: Optional[float] = None
    stock_max: Optional[int] = None
    priority: int = 0
    color: Optional[str] = None


class StockRuleCreate(BaseSchema):
    """Create a stock rule."""

    label: StockLabel = Field(..., description="Availability label")
    price_max: Optional[float] = Field(None, gt=0, description="Exclusive price ceiling")
    stock_max: Optional[int] = Field(None, ge=0, description="Inclusive stock ceiling")
    priority: int = Field(0, description="Lower values are evaluated first")
    color: Optional[str] = Field(None, description="Display color for the storefront")


class StockRuleUpdate(BaseSchema):
    """
    Update a stock rule.

    All fields optional - only provided fields are updated.
    """

    label: Optional[StockLabel] = None
    price_max: Optional[float] = Field(None, gt=0)
    stock_max: Optional[int] = Field(None, ge=0)
    priority: Optional[int] = None
    color: Optional[str] = None
