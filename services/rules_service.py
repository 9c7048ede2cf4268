"""
Auto-pick rules service.

Reads and admin writes for product scores, category rules, assortment
profiles and stock rules. Stock rules are served through a
StockRuleCache that every stock-rule write invalidates.
"""

from datetime import datetime, timezone
from typing import Optional
import structlog

from config import get_supabase_client
from exceptions import (
    AppError,
    AssortmentProfileNotFoundError,
    CategoryRuleNotFoundError,
    DatabaseError,
    ProductNotFoundError,
    StockRuleNotFoundError,
)
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
from services.catalog_service import get_catalog_service
from services.stock_rule_service import StockRuleCache

logger = structlog.get_logger(__name__)


class RulesService:
    """
    Rules business logic.

    Handles CRUD for product_scores, category_rules, assortment_profiles
    and stock_rules.
    """

    def __init__(self):
        self.db = get_supabase_client()
        self.catalog_service = get_catalog_service()
        self.scores_table = "product_scores"
        self.category_rules_table = "category_rules"
        self.profiles_table = "assortment_profiles"
        self.stock_rules_table = "stock_rules"
        self.stock_rule_cache = StockRuleCache(loader=self.list_stock_rules)

    # ===================
    # PRODUCT SCORES
    # ===================

    def list_scores(self) -> list[ProductScore]:
        """List all product scores, most recently updated first."""
        try:
            result = (
                self.db.table(self.scores_table)
                .select("*")
                .order("updated_at", desc=True)
                .execute()
            )
            return [ProductScore(**row) for row in result.data]

        except Exception as e:
            logger.error("list_scores_failed", error=str(e))
            raise DatabaseError("select", str(e))

    def upsert_score(self, product_id: int, data: ProductScoreUpdate) -> ProductScore:
        """
        Create or replace the score of a product.

        Args:
            product_id: Product ID
            data: Score fields

        Returns:
            Stored ProductScore

        Raises:
            ProductNotFoundError: If the product does not exist
        """
        logger.info("upserting_product_score", product_id=product_id)

        if not self.catalog_service.product_exists(product_id):
            raise ProductNotFoundError(product_id)

        try:
            row = {
                "product_id": product_id,
                **data.model_dump(),
                "updated_at": datetime.now(timezone.utc).isoformat(),
            }
            result = (
                self.db.table(self.scores_table)
                .upsert(row, on_conflict="product_id")
                .execute()
            )
            score = ProductScore(**result.data[0])

            logger.info("product_score_upserted", product_id=product_id)
            return score

        except Exception as e:
            logger.error("upsert_score_failed", product_id=product_id, error=str(e))
            raise DatabaseError("upsert", str(e))

    # ===================
    # CATEGORY RULES
    # ===================

    def get_category_rules(self, enabled_only: bool = True) -> list[CategoryRule]:
        """
        Get category rules ordered by category, then volume.

        Args:
            enabled_only: Skip disabled rules

        Returns:
            List of CategoryRule
        """
        try:
            query = self.db.table(self.category_rules_table).select("*")
            if enabled_only:
                query = query.eq("enabled", True)
            result = query.order("category").order("volume").execute()
            return [CategoryRule(**row) for row in result.data]

        except Exception as e:
            logger.error("get_category_rules_failed", error=str(e))
            raise DatabaseError("select", str(e))

    def create_category_rule(self, data: CategoryRuleCreate) -> CategoryRule:
        """Create a category rule."""
        logger.info("creating_category_rule", category=data.category, volume=data.volume)

        try:
            result = (
                self.db.table(self.category_rules_table)
                .insert(data.model_dump())
                .execute()
            )
            rule = CategoryRule(**result.data[0])

            logger.info("category_rule_created", rule_id=rule.id)
            return rule

        except Exception as e:
            logger.error("create_category_rule_failed", error=str(e))
            raise DatabaseError("insert", str(e))

    def update_category_rule(self, rule_id: int, data: CategoryRuleUpdate) -> CategoryRule:
        """
        Update provided fields of a category rule.

        Raises:
            CategoryRuleNotFoundError: If the rule does not exist
        """
        update_data = data.model_dump(exclude_unset=True)
        logger.info("updating_category_rule", rule_id=rule_id, fields=list(update_data))

        try:
            result = (
                self.db.table(self.category_rules_table)
                .update(update_data)
                .eq("id", rule_id)
                .execute()
            )
            if not result.data:
                raise CategoryRuleNotFoundError(rule_id)
            return CategoryRule(**result.data[0])

        except AppError:
            raise
        except Exception as e:
            logger.error("update_category_rule_failed", rule_id=rule_id, error=str(e))
            raise DatabaseError("update", str(e))

    def delete_category_rule(self, rule_id: int) -> bool:
        """Delete a category rule. Returns False if not found."""
        logger.info("deleting_category_rule", rule_id=rule_id)

        try:
            result = (
                self.db.table(self.category_rules_table)
                .delete()
                .eq("id", rule_id)
                .execute()
            )
            return bool(result.data)

        except Exception as e:
            logger.error("delete_category_rule_failed", rule_id=rule_id, error=str(e))
            raise DatabaseError("delete", str(e))

    # ===================
    # ASSORTMENT PROFILES
    # ===================

    def list_profiles(self) -> list[AssortmentProfile]:
        """List profiles, default first."""
        try:
            result = (
                self.db.table(self.profiles_table)
                .select("*")
                .order("is_default", desc=True)
                .order("id")
                .execute()
            )
            return [AssortmentProfile(**row) for row in result.data]

        except Exception as e:
            logger.error("list_profiles_failed", error=str(e))
            raise DatabaseError("select", str(e))

    def get_default_profile(self) -> Optional[AssortmentProfile]:
        """Get the system-wide default profile, if any."""
        try:
            result = (
                self.db.table(self.profiles_table)
                .select("*")
                .eq("is_default", True)
                .order("id")
                .limit(1)
                .execute()
            )
            return AssortmentProfile(**result.data[0]) if result.data else None

        except Exception as e:
            logger.error("get_default_profile_failed", error=str(e))
            raise DatabaseError("select", str(e))

    def _clear_other_defaults(self, profile_id: int) -> None:
        """Unset is_default on every profile except profile_id."""
        (
            self.db.table(self.profiles_table)
            .update({"is_default": False})
            .eq("is_default", True)
            .neq("id", profile_id)
            .execute()
        )

    def create_profile(self, data: AssortmentProfileCreate) -> AssortmentProfile:
        """
        Create a profile.

        A new default profile clears the flag on all others once it is
        stored.
        """
        logger.info("creating_assortment_profile", name=data.name, is_default=data.is_default)

        try:
            result = (
                self.db.table(self.profiles_table)
                .insert(data.model_dump())
                .execute()
            )
            profile = AssortmentProfile(**result.data[0])
            if profile.is_default:
                self._clear_other_defaults(profile.id)

            logger.info("assortment_profile_created", profile_id=profile.id)
            return profile

        except Exception as e:
            logger.error("create_profile_failed", error=str(e))
            raise DatabaseError("insert", str(e))

    def update_profile(
        self,
        profile_id: int,
        data: AssortmentProfileUpdate,
    ) -> AssortmentProfile:
        """
        Update provided fields of a profile.

        Raises:
            AssortmentProfileNotFoundError: If the profile does not exist
        """
        update_data = data.model_dump(exclude_unset=True)
        logger.info("updating_assortment_profile", profile_id=profile_id, fields=list(update_data))

        try:
            result = (
                self.db.table(self.profiles_table)
                .update(update_data)
                .eq("id", profile_id)
                .execute()
            )
            if not result.data:
                raise AssortmentProfileNotFoundError(profile_id)
            if update_data.get("is_default"):
                self._clear_other_defaults(profile_id)
            return AssortmentProfile(**result.data[0])

        except AppError:
            raise
        except Exception as e:
            logger.error("update_profile_failed", profile_id=profile_id, error=str(e))
            raise DatabaseError("update", str(e))

    def delete_profile(self, profile_id: int) -> bool:
        """Delete a profile. Returns False if not found."""
        logger.info("deleting_assortment_profile", profile_id=profile_id)

        try:
            result = (
                self.db.table(self.profiles_table)
                .delete()
                .eq("id", profile_id)
                .execute()
            )
            return bool(result.data)

        except Exception as e:
            logger.error("delete_profile_failed", profile_id=profile_id, error=str(e))
            raise DatabaseError("delete", str(e))

    # ===================
    # STOCK RULES
    # ===================

    def list_stock_rules(self) -> list[StockRule]:
        """List stock rules by priority, straight from the database."""
        try:
            result = (
                self.db.table(self.stock_rules_table)
                .select("*")
                .order("priority")
                .execute()
            )
            return [StockRule(**row) for row in result.data]

        except Exception as e:
            logger.error("list_stock_rules_failed", error=str(e))
            raise DatabaseError("select", str(e))

    def get_stock_rules(self) -> list[StockRule]:
        """Stock rules through the cache."""
        return self.stock_rule_cache.get_rules()

    def create_stock_rule(self, data: StockRuleCreate) -> StockRule:
        """Create a stock rule and invalidate the cache."""
        logger.info("creating_stock_rule", label=data.label.value, priority=data.priority)

        try:
            result = (
                self.db.table(self.stock_rules_table)
                .insert(data.model_dump(mode="json"))
                .execute()
            )
            rule = StockRule(**result.data[0])
            self.stock_rule_cache.invalidate()

            logger.info("stock_rule_created", rule_id=rule.id)
            return rule

        except Exception as e:
            logger.error("create_stock_rule_failed", error=str(e))
            raise DatabaseError("insert", str(e))

    def update_stock_rule(self, rule_id: int, data: StockRuleUpdate) -> StockRule:
        """
        Update provided fields of a stock rule and invalidate the cache.

        Raises:
            StockRuleNotFoundError: If the rule does not exist
        """
        update_data = data.model_dump(mode="json", exclude_unset=True)
        logger.info("updating_stock_rule", rule_id=rule_id, fields=list(update_data))

        try:
            result = (
                self.db.table(self.stock_rules_table)
                .update(update_data)
                .eq("id", rule_id)
                .execute()
            )
            if not result.data:
                raise StockRuleNotFoundError(rule_id)
            self.stock_rule_cache.invalidate()
            return StockRule(**result.data[0])

        except AppError:
            raise
        except Exception as e:
            logger.error("update_stock_rule_failed", rule_id=rule_id, error=str(e))
            raise DatabaseError("update", str(e))

    def delete_stock_rule(self, rule_id: int) -> bool:
        """Delete a stock rule and invalidate the cache. Returns False if not found."""
        logger.info("deleting_stock_rule", rule_id=rule_id)

        try:
            result = (
                self.db.table(self.stock_rules_table)
                .delete()
                .eq("id", rule_id)
                .execute()
            )
            self.stock_rule_cache.invalidate()
            return bool(result.data)

        except Exception as e:
            logger.error("delete_stock_rule_failed", rule_id=rule_id, error=str(e))
            raise DatabaseError("delete", str(e))


# Singleton instance
_service: Optional[RulesService] = None


def get_rules_service() -> RulesService:
    """Get or create RulesService instance."""
    global _service
    if _service is None:
        _service = RulesService()
    return _service
