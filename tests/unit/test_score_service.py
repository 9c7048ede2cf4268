"""
Unit tests for product score recalculation.
"""

import pytest

from models.order import HistoryItem
from services.score_service import (
    SalesStats,
    collect_sales_stats,
    compute_score,
    get_score_service,
)
from tests.factories import OrderFactory, ProductFactory, iso_days_ago


class TestComputeScore:
    """Tests for compute_score()."""

    def test_best_seller(self):
        stats = SalesStats(qty=20, orders=4, users={1, 2})

        assert compute_score(stats, 20, 4, 2, is_new=False) == 1.0

    def test_new_without_sales(self):
        assert compute_score(None, 20, 4, 2, is_new=True) == 0.1

    def test_partial(self):
        stats = SalesStats(qty=10, orders=1, users={1})

        # 0.5 × 0.5 + 0.3 × 0.25 + 0.2 × 0.5
        assert compute_score(stats, 20, 4, 2, is_new=False) == pytest.approx(0.425)

    def test_no_sales_anywhere(self):
        assert compute_score(None, 0, 0, 0, is_new=False) == 0


class TestCollectSalesStats:
    """Tests for collect_sales_stats()."""

    def test_sums_per_product(self):
        stats = collect_sales_stats([
            HistoryItem(order_id=1, product_id=1, quantity=3, user_id=1),
            HistoryItem(order_id=2, product_id=1, quantity=2, user_id=1),
            HistoryItem(order_id=3, product_id=1, quantity=5, user_id=2),
            HistoryItem(order_id=3, product_id=2, quantity=1, user_id=2),
        ])

        assert stats[1].qty == 10
        assert stats[1].orders == 3
        assert stats[1].users == {1, 2}
        assert stats[2].qty == 1


class TestScoreService:
    """Tests for ScoreService.recalculate()."""

    def test_recalculate_writes_scores(self, mock_db):
        mock_db.set_table_data("products", [
            ProductFactory.create(id=1),
            ProductFactory.create(id=2, is_new=True),
            ProductFactory.create(id=3, created_at=iso_days_ago(2)),
            ProductFactory.create(id=4, is_archived=True),
        ])
        first, first_items = OrderFactory.create(id=1, user_id=1, lines=[(1, 10)])
        second, second_items = OrderFactory.create(id=2, user_id=2, lines=[(1, 10)])
        mock_db.set_table_data("orders", [first, second])
        mock_db.set_table_data("order_items", first_items + second_items)

        updated = get_score_service().recalculate()

        scores = {r["product_id"]: r["score"] for r in mock_db.rows("product_scores")}
        assert updated == 3
        assert scores == {1: 1.0, 2: 0.1, 3: 0.1}

    def test_recalculate_keeps_manual_fields(self, mock_db):
        mock_db.set_table_data("products", [ProductFactory.create(id=1)])
        mock_db.set_table_data("product_scores", [
            {"id": 1, "product_id": 1, "score": 0.9, "manual_score": 5, "promo_boost": 2, "novelty_boost": 1},
        ])

        get_score_service().recalculate()

        row = mock_db.rows("product_scores")[0]
        assert row["score"] == 0
        assert row["manual_score"] == 5
        assert row["promo_boost"] == 2
