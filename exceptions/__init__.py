"""
Custom exceptions module.
"""

from exceptions.errors import (
    # Base exceptions
    AppError,
    NotFoundError,
    ValidationError,
    ConflictError,
    DatabaseError,

    # Catalog
    ProductNotFoundError,

    # Rules
    CategoryRuleNotFoundError,
    AssortmentProfileNotFoundError,
    StockRuleNotFoundError,

    # Auto-pick generation
    InvalidBudgetError,
    UnsatisfiableSelectionError,
    BudgetNotReachableError,

    # Auto-pick drafts
    DraftNotFoundError,
    DraftNotOwnedError,
    DraftStatusError,
    DraftExpiredError,
)

__all__ = [
    # Base
    "AppError",
    "NotFoundError",
    "ValidationError",
    "ConflictError",
    "DatabaseError",

    # Catalog
    "ProductNotFoundError",

    # Rules
    "CategoryRuleNotFoundError",
    "AssortmentProfileNotFoundError",
    "StockRuleNotFoundError",

    # Auto-pick generation
    "InvalidBudgetError",
    "UnsatisfiableSelectionError",
    "BudgetNotReachableError",

    # Auto-pick drafts
    "DraftNotFoundError",
    "DraftNotOwnedError",
    "DraftStatusError",
    "DraftExpiredError",
]
