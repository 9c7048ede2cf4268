"""
Custom exception classes for the application.

Every error carries a stable code, an HTTP status and a details dict so
routes can return them unchanged through the AppError handler in main.py.
"""

from typing import Optional, Any
from datetime import datetime


class AppError(Exception):
    """
    Base exception for all application errors.

    All custom exceptions inherit from this.

    Attributes:
        code: Error code (e.g., "PRODUCT_NOT_FOUND")
        message: Human-readable message
        status_code: HTTP status code
        details: Additional context
    """

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 500,
        details: Optional[dict[str, Any]] = None
    ):
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        self.timestamp = datetime.utcnow().isoformat()
        super().__init__(message)

    def to_dict(self) -> dict:
        """Convert to API response format."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "details": self.details,
                "timestamp": self.timestamp
            }
        }


class NotFoundError(AppError):
    """Resource not found (404)."""

    def __init__(
        self,
        resource: str,
        identifier: str,
        code: Optional[str] = None
    ):
        super().__init__(
            code=code or f"{resource.upper()}_NOT_FOUND",
            message=f"{resource} not found",
            status_code=404,
            details={"id": identifier}
        )


class ValidationError(AppError):
    """Validation failed (422)."""

    def __init__(
        self,
        message: str,
        code: str = "VALIDATION_ERROR",
        details: Optional[dict] = None
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=422,
            details=details
        )


class ConflictError(AppError):
    """Conflict with existing resource (409)."""

    def __init__(
        self,
        message: str,
        code: str = "CONFLICT",
        details: Optional[dict] = None
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=409,
            details=details
        )


class DatabaseError(AppError):
    """Database operation failed (500)."""

    def __init__(
        self,
        operation: str,
        message: str,
        details: Optional[dict] = None
    ):
        super().__init__(
            code="DATABASE_ERROR",
            message=f"Database {operation} failed: {message}",
            status_code=500,
            details={"operation": operation, **(details or {})}
        )


# ===================
# CATALOG ERRORS
# ===================

class ProductNotFoundError(NotFoundError):
    """Product not found."""

    def __init__(self, product_id: int):
        super().__init__(
            resource="Product",
            identifier=str(product_id),
            code="PRODUCT_NOT_FOUND"
        )


# ===================
# RULE ERRORS
# ===================

class CategoryRuleNotFoundError(NotFoundError):
    """Category rule not found."""

    def __init__(self, rule_id: int):
        super().__init__(
            resource="Category rule",
            identifier=str(rule_id),
            code="CATEGORY_RULE_NOT_FOUND"
        )


class AssortmentProfileNotFoundError(NotFoundError):
    """Assortment profile not found."""

    def __init__(self, profile_id: int):
        super().__init__(
            resource="Assortment profile",
            identifier=str(profile_id),
            code="ASSORTMENT_PROFILE_NOT_FOUND"
        )


class StockRuleNotFoundError(NotFoundError):
    """Stock rule not found."""

    def __init__(self, rule_id: int):
        super().__init__(
            resource="Stock rule",
            identifier=str(rule_id),
            code="STOCK_RULE_NOT_FOUND"
        )


# ===================
# AUTO-PICK GENERATION ERRORS
# ===================

class InvalidBudgetError(ValidationError):
    """Generation parameters rejected before any computation."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(
            code="AUTO_PICK_INVALID_BUDGET",
            message=message,
            details=details
        )


class UnsatisfiableSelectionError(ValidationError):
    """No line item could be produced from the eligible candidates."""

    def __init__(self, diagnostics: dict):
        super().__init__(
            code="AUTO_PICK_UNSATISFIABLE",
            message="No products match the selection parameters",
            details={"diagnostics": diagnostics}
        )


class BudgetNotReachableError(ValidationError):
    """Items were selected but the total stayed below the lower bound."""

    def __init__(self, total: float, lower_bound: float, diagnostics: dict):
        super().__init__(
            code="AUTO_PICK_BUDGET_NOT_REACHABLE",
            message=f"Selection total {total} is below the minimum {lower_bound}",
            details={
                "total": total,
                "lower_bound": lower_bound,
                "diagnostics": diagnostics,
            }
        )


# ===================
# AUTO-PICK DRAFT ERRORS
# ===================

class DraftNotFoundError(NotFoundError):
    """Auto-pick draft not found."""

    def __init__(self, draft_id: str):
        super().__init__(
            resource="Auto-pick draft",
            identifier=draft_id,
            code="AUTO_PICK_DRAFT_NOT_FOUND"
        )


class DraftNotOwnedError(AppError):
    """Draft belongs to another user (403)."""

    def __init__(self, draft_id: str):
        super().__init__(
            code="AUTO_PICK_DRAFT_NOT_OWNED",
            message="Draft belongs to another user",
            status_code=403,
            details={"id": draft_id}
        )


class DraftStatusError(ConflictError):
    """Draft is not pending anymore."""

    def __init__(self, draft_id: str, status: str):
        super().__init__(
            code="AUTO_PICK_DRAFT_WRONG_STATUS",
            message=f"Draft already processed (status {status})",
            details={
                "id": draft_id,
                "status": status,
                "reason": "Only PENDING drafts can be applied, APPLIED and EXPIRED are terminal"
            }
        )


class DraftExpiredError(AppError):
    """Draft passed its expiry before being applied (410)."""

    def __init__(self, draft_id: str, expires_at: str):
        super().__init__(
            code="AUTO_PICK_DRAFT_EXPIRED",
            message="Draft expired",
            status_code=410,
            details={"id": draft_id, "expires_at": expires_at}
        )
