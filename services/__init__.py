"""
Business logic services.

Pure auto-pick steps (pricing, ranking, weights, allocation) are plain
functions and small classes; services that touch Supabase expose a
get_*_service() singleton.
"""

from services.catalog_service import CatalogService, get_catalog_service
from services.history_service import HistoryService, get_history_service
from services.rules_service import RulesService, get_rules_service
from services.cart_service import CartService, get_cart_service
from services.draft_service import DraftService, get_draft_service
from services.auto_pick_service import AutoPickService, get_auto_pick_service
from services.score_service import ScoreService, get_score_service
from services.stock_rule_service import StockRuleCache

__all__ = [
    "CatalogService",
    "get_catalog_service",
    "HistoryService",
    "get_history_service",
    "RulesService",
    "get_rules_service",
    "CartService",
    "get_cart_service",
    "DraftService",
    "get_draft_service",
    "AutoPickService",
    "get_auto_pick_service",
    "ScoreService",
    "get_score_service",
    "StockRuleCache",
]
