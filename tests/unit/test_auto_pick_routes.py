"""
API tests for the auto-pick and admin routes.

Errors must come back in the AppError format with the right status.
"""

import pytest

from tests.factories import DraftFactory, ProductFactory


@pytest.fixture
def client(test_client_with_mock_db, mock_db):
    mock_db.set_table_data("users", [{"id": 1, "price_modifier": 0}])
    mock_db.set_table_data("products", [
        ProductFactory.create(id=1, base_price=100, stock=50),
    ])
    return test_client_with_mock_db


HEADERS = {"X-User-Id": "1"}


class TestGenerateRoute:
    """POST /api/auto-pick/generate"""

    def test_generate(self, client, mock_db):
        response = client.post("/api/auto-pick/generate", json={"max_sum": 500}, headers=HEADERS)

        assert response.status_code == 200
        body = response.json()
        assert body["total"] == 500
        assert body["items"][0]["product_id"] == 1
        assert body["draft_id"] == mock_db.rows("auto_pick_drafts")[0]["id"]

    def test_missing_user_header(self, client):
        response = client.post("/api/auto-pick/generate", json={})

        assert response.status_code == 422

    def test_invalid_budget(self, client):
        response = client.post(
            "/api/auto-pick/generate",
            json={"min_sum": 1500, "max_sum": 1000},
            headers=HEADERS,
        )

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "AUTO_PICK_INVALID_BUDGET"

    def test_non_finite_budget(self, client, mock_db):
        response = client.post(
            "/api/auto-pick/generate",
            content='{"min_sum": NaN}',
            headers={**HEADERS, "Content-Type": "application/json"},
        )

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "AUTO_PICK_INVALID_BUDGET"
        assert mock_db.rows("auto_pick_drafts") == []

    def test_unsatisfiable(self, client):
        response = client.post(
            "/api/auto-pick/generate",
            json={"max_price_per_item": 10},
            headers=HEADERS,
        )

        assert response.status_code == 422
        error = response.json()["error"]
        assert error["code"] == "AUTO_PICK_UNSATISFIABLE"
        assert error["details"]["diagnostics"]["skipped"]["max_price"] == 1


class TestDraftRoutes:
    """GET /drafts/{id} and POST /apply/{id}"""

    def test_get_own_draft(self, client, mock_db):
        row = DraftFactory.create(user_id=1, items=[{"product_id": 1, "qty": 2}])
        mock_db.set_table_data("auto_pick_drafts", [row])

        response = client.get(f"/api/auto-pick/drafts/{row['id']}", headers=HEADERS)

        assert response.status_code == 200
        assert response.json()["status"] == "PENDING"

    def test_get_foreign_draft_is_not_found(self, client, mock_db):
        row = DraftFactory.create(user_id=2)
        mock_db.set_table_data("auto_pick_drafts", [row])

        response = client.get(f"/api/auto-pick/drafts/{row['id']}", headers=HEADERS)

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "AUTO_PICK_DRAFT_NOT_FOUND"

    def test_apply_twice(self, client, mock_db):
        row = DraftFactory.create(user_id=1, items=[{"product_id": 1, "qty": 2}])
        mock_db.set_table_data("auto_pick_drafts", [row])

        first = client.post(f"/api/auto-pick/apply/{row['id']}", headers=HEADERS)
        second = client.post(f"/api/auto-pick/apply/{row['id']}", headers=HEADERS)

        assert first.status_code == 200
        assert first.json() == {"ok": True, "applied": 1, "skipped": 0}
        assert second.status_code == 409
        assert second.json()["error"]["code"] == "AUTO_PICK_DRAFT_WRONG_STATUS"

    def test_apply_expired(self, client, mock_db):
        row = DraftFactory.create(user_id=1, expires_in_minutes=-1)
        mock_db.set_table_data("auto_pick_drafts", [row])

        response = client.post(f"/api/auto-pick/apply/{row['id']}", headers=HEADERS)

        assert response.status_code == 410

    def test_apply_foreign_draft(self, client, mock_db):
        row = DraftFactory.create(user_id=2)
        mock_db.set_table_data("auto_pick_drafts", [row])

        response = client.post(f"/api/auto-pick/apply/{row['id']}", headers=HEADERS)

        assert response.status_code == 403


class TestAdminRoutes:
    """Admin CRUD under /api/admin/auto-pick"""

    def test_stock_rule_lifecycle(self, client):
        created = client.post(
            "/api/admin/auto-pick/stock-rules",
            json={"label": "unavailable", "stock_max": 2, "priority": 1},
        )
        assert created.status_code == 201
        rule_id = created.json()["id"]

        listed = client.get("/api/admin/auto-pick/stock-rules")
        assert [r["id"] for r in listed.json()] == [rule_id]

        deleted = client.delete(f"/api/admin/auto-pick/stock-rules/{rule_id}")
        assert deleted.status_code == 204

        missing = client.delete(f"/api/admin/auto-pick/stock-rules/{rule_id}")
        assert missing.status_code == 404

    def test_score_for_unknown_product(self, client):
        response = client.put("/api/admin/auto-pick/scores/99", json={"score": 1})

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "PRODUCT_NOT_FOUND"

    def test_recalculate(self, client):
        response = client.post("/api/admin/auto-pick/scores/recalculate")

        assert response.status_code == 200
        assert response.json() == {"updated": 1}

    def test_category_rule_validation(self, client):
        response = client.post("/api/admin/auto-pick/category-rules", json={"category": "beer", "min_qty": 0})

        assert response.status_code == 422


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["database"]["products_count"] == 1
