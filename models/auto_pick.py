"""
Auto-pick schemas: generation request, line items, diagnostics and drafts.
"""

from pydantic import Field
from typing import Any, Optional
from datetime import datetime
from enum import Enum

from models.base import BaseSchema


class DraftStatus(str, Enum):
    """
    Draft lifecycle.

    PENDING -> APPLIED or PENDING -> EXPIRED; both targets are terminal.
    """
    PENDING = "PENDING"
    APPLIED = "APPLIED"
    EXPIRED = "EXPIRED"


class AutoPickRequest(BaseSchema):
    """
    Parameters for generating a basket.

    Bounds are checked by AutoPickService before any data is fetched,
    so malformed values surface as AUTO_PICK_INVALID_BUDGET.
    """

    min_sum: Optional[float] = Field(None, description="Lower budget bound")
    max_sum: Optional[float] = Field(None, description="Upper budget bound")
    max_price_per_item: Optional[float] = Field(None, description="Unit price ceiling")
    assortment_mode: float = Field(
        0,
        description="Extra emphasis on never-purchased products (0 = none)"
    )
    exclude_categories: list[str] = Field(default_factory=list)
    include_categories: list[str] = Field(default_factory=list)
    store_id: int = Field(0, description="Store whose cart receives the draft")


class AutoPickLineItem(BaseSchema):
    """One selected product with its quantity and display metadata."""

    product_id: int
    qty: int = Field(..., gt=0)
    price: float
    total: float
    name: Optional[str] = None
    category: Optional[str] = None
    volume: Optional[float] = None
    box_size: Optional[int] = None
    stock: Optional[int] = None
    img: Optional[str] = None


class SkipCounts(BaseSchema):
    """Why catalog products were left out of the candidate list."""

    category: int = Field(0, description="Not in the included categories")
    excluded: int = Field(0, description="In an excluded category")
    max_price: int = Field(0, description="Above the unit price ceiling")
    stock_rule: int = Field(0, description="Classified unavailable by a stock rule")
    non_positive_price: int = Field(0, description="Effective price <= 0")


class AutoPickDiagnostics(BaseSchema):
    """Counters and bounds describing one generation run."""

    catalog_size: int = 0
    candidates: int = 0
    skipped: SkipCounts = Field(default_factory=SkipCounts)
    min_price: Optional[float] = Field(None, description="Cheapest eligible unit price")
    max_budget_below_min_price: bool = False
    target_total: float = 0
    lower_bound: float = 0
    upper_bound: float = 0
    top_up_used: bool = False


class AutoPickDraft(BaseSchema):
    """Persisted selection awaiting application to a cart."""

    id: str
    user_id: int
    store_id: int = 0
    params: dict[str, Any] = Field(default_factory=dict)
    items: list[AutoPickLineItem] = Field(default_factory=list)
    total: float = 0
    status: DraftStatus = DraftStatus.PENDING
    expires_at: datetime
    created_at: Optional[datetime] = None


class AutoPickResult(BaseSchema):
    """Response of a successful generation."""

    draft_id: str
    total: float
    items: list[AutoPickLineItem]
    diagnostics: AutoPickDiagnostics


class ApplyDraftRequest(BaseSchema):
    """Optional target store override for applying a draft."""

    store_id: Optional[int] = Field(None, ge=0)


class ApplyDraftResponse(BaseSchema):
    """Result of applying a draft to a cart."""

    ok: bool = True
    applied: int = Field(0, description="Cart lines written")
    skipped: int = Field(0, description="Draft lines dropped at apply time")
