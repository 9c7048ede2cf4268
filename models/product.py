"""
Catalog schemas: products, promotions and ranking scores.

The auto-pick engine only reads these; admins write scores.
"""

from pydantic import Field
from typing import Optional
from datetime import datetime

from models.base import BaseSchema, TimestampMixin


UNCATEGORIZED = "uncategorized"


class Promotion(BaseSchema):
    """
    Promotional price for one product.

    Only promotions whose expires_at lies in the future are active.
    """

    id: int = Field(..., description="Promotion ID")
    product_id: int = Field(..., description="Product the promotion belongs to")
    promo_price: float = Field(..., description="Promotional unit price")
    expires_at: datetime = Field(..., description="Promotion end")
    apply_modifier: bool = Field(
        True,
        description="Whether the user price modifier applies to the promo price"
    )


class Product(BaseSchema, TimestampMixin):
    """
    Catalog product as seen by the auto-pick engine.

    promotion and image are attached by CatalogService, they are not
    columns of the products table.
    """

    id: int = Field(..., description="Product ID")
    name: str = Field(..., description="Display name")
    category: Optional[str] = Field(None, description="Category label")
    volume: Optional[float] = Field(None, description="Volume (e.g. litres)")
    base_price: float = Field(..., description="Stored base unit price")
    non_modify: bool = Field(
        False,
        description="Base price is exempt from the user price modifier"
    )
    stock: int = Field(0, description="Units in stock")
    box_size: Optional[int] = Field(
        None,
        description="Units per shippable box (null or <= 1: no boxing)"
    )
    is_archived: bool = Field(False, description="Hidden from the catalog")
    is_new: bool = Field(False, description="Flagged as novelty")
    img: Optional[str] = Field(None, description="Legacy image reference")

    promotion: Optional[Promotion] = Field(None, description="Active promotion, if any")
    image: Optional[str] = Field(None, description="First image by position")

    @property
    def category_key(self) -> str:
        """Category used for grouping, with a sentinel for empty labels."""
        return self.category or UNCATEGORIZED


class ProductScore(BaseSchema, TimestampMixin):
    """
    Ranking signals for one product.

    score is recalculated from sales; manual_score overrides it when set.
    """

    product_id: int = Field(..., description="Product ID")
    score: float = Field(0, description="Automatic popularity score")
    manual_score: Optional[float] = Field(None, description="Manual override")
    promo_boost: float = Field(1, description="Multiplicative promotion boost")
    novelty_boost: float = Field(1, description="Multiplicative novelty boost")

    @property
    def global_signal(self) -> float:
        """Manual score if present, else automatic score."""
        if self.manual_score is not None:
            return self.manual_score
        return self.score or 0


class ProductScoreUpdate(BaseSchema):
    """Admin write for a product score. Missing fields use neutral values."""

    score: float = Field(0, ge=0, description="Automatic popularity score")
    manual_score: Optional[float] = Field(None, ge=0, description="Manual override")
    promo_boost: float = Field(1, gt=0, description="Promotion boost")
    novelty_boost: float = Field(1, gt=0, description="Novelty boost")
