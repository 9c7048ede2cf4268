"""
Pydantic models for validation and serialization.
"""

from models.base import BaseSchema, TimestampMixin
from models.product import (
    UNCATEGORIZED,
    Promotion,
    Product,
    ProductScore,
    ProductScoreUpdate,
)
from models.rules import (
    StockLabel,
    CategoryRule,
    CategoryRuleCreate,
    CategoryRuleUpdate,
    AssortmentProfile,
    AssortmentProfileCreate,
    AssortmentProfileUpdate,
    StockRule,
    StockRuleCreate,
    StockRuleUpdate,
)
from models.order import ORDER_STATUS_DONE, OrderRecord, HistoryItem
from models.auto_pick import (
    DraftStatus,
    AutoPickRequest,
    AutoPickLineItem,
    SkipCounts,
    AutoPickDiagnostics,
    AutoPickDraft,
    AutoPickResult,
    ApplyDraftRequest,
    ApplyDraftResponse,
)

__all__ = [
    # Base
    "BaseSchema",
    "TimestampMixin",

    # Catalog
    "UNCATEGORIZED",
    "Promotion",
    "Product",
    "ProductScore",
    "ProductScoreUpdate",

    # Rules
    "StockLabel",
    "CategoryRule",
    "CategoryRuleCreate",
    "CategoryRuleUpdate",
    "AssortmentProfile",
    "AssortmentProfileCreate",
    "AssortmentProfileUpdate",
    "StockRule",
    "StockRuleCreate",
    "StockRuleUpdate",

    # Orders
    "ORDER_STATUS_DONE",
    "OrderRecord",
    "HistoryItem",

    # Auto-pick
    "DraftStatus",
    "AutoPickRequest",
    "AutoPickLineItem",
    "SkipCounts",
    "AutoPickDiagnostics",
    "AutoPickDraft",
    "AutoPickResult",
    "ApplyDraftRequest",
    "ApplyDraftResponse",
]
