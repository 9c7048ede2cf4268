"""
Admin API routes for auto-pick tuning.

Product scores, category rules, assortment profiles and stock rules.
"""

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import Response
import structlog

from models.product import ProductScore, ProductScoreUpdate
from models.rules import (
    AssortmentProfile,
    AssortmentProfileCreate,
    AssortmentProfileUpdate,
    CategoryRule,
    CategoryRuleCreate,
    CategoryRuleUpdate,
    StockRule,
    StockRuleCreate,
    StockRuleUpdate,
)
from routes.deps import verify_api_key
from services.rules_service import get_rules_service
from services.score_service import get_score_service

logger = structlog.get_logger(__name__)

router = APIRouter(
    prefix="/api/admin/auto-pick",
    tags=["Auto-pick admin"],
    dependencies=[Depends(verify_api_key)],
)


# ===================
# PRODUCT SCORES
# ===================

@router.get("/scores", response_model=list[ProductScore])
def list_scores():
    """List product scores, most recently updated first."""
    return get_rules_service().list_scores()


@router.put("/scores/{product_id}", response_model=ProductScore)
def upsert_score(product_id: int, body: ProductScoreUpdate):
    """
    Create or replace a product's score.

    Raises:
        404: Product not found
    """
    return get_rules_service().upsert_score(product_id, body)


@router.post("/scores/recalculate")
def recalculate_scores():
    """Recalculate automatic scores from recent completed orders."""
    updated = get_score_service().recalculate()
    return {"updated": updated}


# ===================
# CATEGORY RULES
# ===================

@router.get("/category-rules", response_model=list[CategoryRule])
def list_category_rules():
    """List all category rules, enabled or not."""
    return get_rules_service().get_category_rules(enabled_only=False)


@router.post("/category-rules", response_model=CategoryRule, status_code=201)
def create_category_rule(body: CategoryRuleCreate):
    """Create a category rule."""
    return get_rules_service().create_category_rule(body)


@router.put("/category-rules/{rule_id}", response_model=CategoryRule)
def update_category_rule(rule_id: int, body: CategoryRuleUpdate):
    """Update a category rule."""
    return get_rules_service().update_category_rule(rule_id, body)


@router.delete("/category-rules/{rule_id}", status_code=204, response_class=Response)
def delete_category_rule(rule_id: int):
    """Delete a category rule."""
    if not get_rules_service().delete_category_rule(rule_id):
        raise HTTPException(status_code=404, detail="Category rule not found")


# ===================
# ASSORTMENT PROFILES
# ===================

@router.get("/profiles", response_model=list[AssortmentProfile])
def list_profiles():
    """List assortment profiles, default first."""
    return get_rules_service().list_profiles()


@router.post("/profiles", response_model=AssortmentProfile, status_code=201)
def create_profile(body: AssortmentProfileCreate):
    """Create a profile; is_default clears the flag on all others."""
    return get_rules_service().create_profile(body)


@router.put("/profiles/{profile_id}", response_model=AssortmentProfile)
def update_profile(profile_id: int, body: AssortmentProfileUpdate):
    """Update a profile."""
    return get_rules_service().update_profile(profile_id, body)


@router.delete("/profiles/{profile_id}", status_code=204, response_class=Response)
def delete_profile(profile_id: int):
    """Delete a profile."""
    if not get_rules_service().delete_profile(profile_id):
        raise HTTPException(status_code=404, detail="Assortment profile not found")


# ===================
# STOCK RULES
# ===================

@router.get("/stock-rules", response_model=list[StockRule])
def list_stock_rules():
    """List stock rules by priority."""
    return get_rules_service().list_stock_rules()


@router.post("/stock-rules", response_model=StockRule, status_code=201)
def create_stock_rule(body: StockRuleCreate):
    """Create a stock rule."""
    return get_rules_service().create_stock_rule(body)


@router.put("/stock-rules/{rule_id}", response_model=StockRule)
def update_stock_rule(rule_id: int, body: StockRuleUpdate):
    """Update a stock rule."""
    return get_rules_service().update_stock_rule(rule_id, body)


@router.delete("/stock-rules/{rule_id}", status_code=204, response_class=Response)
def delete_stock_rule(rule_id: int):
    """Delete a stock rule."""
    if not get_rules_service().delete_stock_rule(rule_id):
        raise HTTPException(status_code=404, detail="Stock rule not found")
