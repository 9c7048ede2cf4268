"""
Unit tests for candidate filtering, ranking and seen/unseen interleaving.
"""

import pytest

from models.order import HistoryItem
from models.product import Product, ProductScore
from models.rules import StockLabel, StockRule
from services.history_service import aggregate_history
from services.ranking_service import (
    Candidate,
    filter_candidates,
    interleave_seen_unseen,
    rank_candidates,
    score_candidate,
)


def make_product(id: int, **overrides) -> Product:
    data = {
        "id": id,
        "name": f"Product {id}",
        "category": "a",
        "base_price": 50,
        "stock": 10,
    }
    data.update(overrides)
    return Product(**data)


def make_candidate(id: int, price: float = 50, **overrides) -> Candidate:
    return Candidate(product=make_product(id, base_price=price, **overrides), price=price, base_price=price)


def history_for(*product_ids: int, qty: int = 1):
    return aggregate_history([
        HistoryItem(order_id=1, product_id=pid, quantity=qty) for pid in product_ids
    ])


# ===================
# FILTER
# ===================

class TestFilterCandidates:
    """Tests for filter_candidates()."""

    def test_skip_reasons_are_counted(self):
        products = [
            make_product(1, is_archived=True),
            make_product(2, stock=0),
            make_product(3, category="x"),
            make_product(4, category="y"),
            make_product(5, base_price=0),
            make_product(6, base_price=200),
            make_product(7, stock=2),
            make_product(8),
        ]
        rules = [StockRule(id=1, label=StockLabel.UNAVAILABLE, stock_max=3, priority=1)]

        candidates, skipped = filter_candidates(
            products,
            1.0,
            rules,
            exclude_categories=["x"],
            include_categories=["a"],
            max_price=100,
        )

        assert [c.product_id for c in candidates] == [8]
        assert skipped.excluded == 1
        assert skipped.category == 1
        assert skipped.non_positive_price == 1
        assert skipped.max_price == 1
        assert skipped.stock_rule == 1

    def test_price_ceiling_uses_effective_price(self):
        products = [make_product(1, base_price=95)]

        candidates, skipped = filter_candidates(products, 1.1, [], max_price=100)

        assert candidates == []
        assert skipped.max_price == 1

    def test_price_ceiling_is_inclusive(self):
        candidates, _ = filter_candidates([make_product(1, base_price=100)], 1.0, [], max_price=100)

        assert len(candidates) == 1

    def test_keeps_input_order_and_resolved_price(self):
        products = [make_product(3), make_product(1), make_product(2, base_price=20)]

        candidates, _ = filter_candidates(products, 1.5, [])

        assert [c.product_id for c in candidates] == [3, 1, 2]
        assert candidates[2].price == 30.0

    def test_missing_category_uses_sentinel(self):
        candidates, skipped = filter_candidates(
            [make_product(1, category=None)],
            1.0,
            [],
            exclude_categories=["uncategorized"],
        )

        assert candidates == []
        assert skipped.excluded == 1


# ===================
# SCORE / RANK
# ===================

class TestScoreCandidate:
    """Tests for score_candidate()."""

    def test_blends_personal_and_global(self):
        history = history_for(1, qty=10)
        score = ProductScore(product_id=1, score=5)

        # (0.6 × 10 + 0.4 × 5) × 1
        assert score_candidate(make_candidate(1), history, score) == pytest.approx(8.0)

    def test_manual_score_overrides(self):
        score = ProductScore(product_id=1, score=5, manual_score=20)

        assert score_candidate(make_candidate(1), history_for(1, qty=0), score) == pytest.approx(8.0)

    def test_boosts_multiply(self):
        score = ProductScore(product_id=1, score=10, promo_boost=2, novelty_boost=1.5)
        candidate = make_candidate(1, is_new=True)

        # 0.4 × 10 × 2 × 1.5 × 1.15 × (1 + 0.15 × 2)
        expected = 4 * 2 * 1.5 * 1.15 * 1.3
        assert score_candidate(candidate, history_for(), score, assortment_mode=2) == pytest.approx(expected)

    def test_assortment_mode_ignores_purchased(self):
        score = ProductScore(product_id=1, score=10)

        assert score_candidate(make_candidate(1), history_for(1, qty=0), score, assortment_mode=5) == pytest.approx(4.0)

    def test_no_signals(self):
        assert score_candidate(make_candidate(1), history_for(), None) == 0


class TestRankCandidates:
    """Tests for rank_candidates()."""

    def test_sorted_descending(self):
        candidates = [make_candidate(1), make_candidate(2), make_candidate(3)]
        scores = {
            2: ProductScore(product_id=2, score=20),
            3: ProductScore(product_id=3, score=10),
        }

        ranked = rank_candidates(candidates, history_for(1, qty=10), scores)

        # 2 → 8.0, 1 → 6.0, 3 → 4.0
        assert [c.product_id for c in ranked] == [2, 1, 3]
        assert ranked[0].score == pytest.approx(8.0)

    def test_ties_keep_input_order(self):
        candidates = [make_candidate(i) for i in (5, 3, 9, 1)]

        ranked = rank_candidates(candidates, history_for(), {})

        assert [c.product_id for c in ranked] == [5, 3, 9, 1]

    def test_deterministic(self):
        scores = {i: ProductScore(product_id=i, score=i % 3) for i in range(10)}

        first = rank_candidates([make_candidate(i) for i in range(10)], history_for(), scores)
        second = rank_candidates([make_candidate(i) for i in range(10)], history_for(), scores)

        assert [c.product_id for c in first] == [c.product_id for c in second]


# ===================
# INTERLEAVE
# ===================

class TestInterleaveSeenUnseen:
    """Tests for interleave_seen_unseen()."""

    def test_first_unseen_by_position_ten(self):
        seen = [make_candidate(i) for i in range(1, 11)]
        unseen = [make_candidate(i) for i in range(101, 111)]
        history = history_for(*range(1, 11))

        result = interleave_seen_unseen(seen + unseen, history, 0.1)

        first_unseen = next(i for i, c in enumerate(result) if c.product_id > 100)
        assert first_unseen <= 9

    def test_every_candidate_once_and_partitions_keep_order(self):
        ranked = [make_candidate(i) for i in (1, 101, 2, 102, 3, 103)]
        history = history_for(1, 2, 3)

        result = interleave_seen_unseen(ranked, history, 0.5)
        ids = [c.product_id for c in result]

        assert sorted(ids) == [1, 2, 3, 101, 102, 103]
        assert [i for i in ids if i < 100] == [1, 2, 3]
        assert [i for i in ids if i > 100] == [101, 102, 103]

    def test_half_share_alternates(self):
        ranked = [make_candidate(i) for i in (1, 2, 3, 101, 102)]
        history = history_for(1, 2, 3)

        result = interleave_seen_unseen(ranked, history, 0.5)

        assert [c.product_id for c in result] == [1, 101, 2, 3, 102]

    def test_remaining_unseen_appended(self):
        ranked = [make_candidate(i) for i in (101, 102, 1)]

        result = interleave_seen_unseen(ranked, history_for(1), 0.1)

        assert [c.product_id for c in result] == [1, 101, 102]

    def test_zero_share_returns_ranking(self):
        ranked = [make_candidate(i) for i in (101, 1, 102)]

        result = interleave_seen_unseen(ranked, history_for(1), 0)

        assert [c.product_id for c in result] == [101, 1, 102]

    def test_empty(self):
        assert interleave_seen_unseen([], history_for(), 0.1) == []
