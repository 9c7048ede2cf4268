"""
Shared test fixtures.

The Supabase double below keeps table rows in memory and honours the
filters, ordering and writes the services use, so service tests can
assert on what ends up in a table.
"""

import os
import sys
from pathlib import Path

# Settings are read at import time
os.environ.setdefault("SUPABASE_URL", "http://localhost:54321")
os.environ.setdefault("SUPABASE_KEY", "test-anon-key")

# Add project root to Python path
project_dir = Path(__file__).parent.parent
sys.path.insert(0, str(project_dir))

import copy
import threading
import pytest
from unittest.mock import patch
from typing import Any, Callable, Generator, Optional


# ===================
# MOCK SUPABASE CLIENT
# ===================

class MockSupabaseResponse:
    """Mock Supabase query response."""

    def __init__(self, data: Any = None, count: Optional[int] = None):
        self.data = data if data is not None else []
        if count is not None:
            self.count = count
        else:
            self.count = len(self.data) if isinstance(self.data, list) else (1 if self.data else 0)


def _sort_key(column: str) -> Callable[[dict], tuple]:
    # None sorts last, like Postgres ASC NULLS LAST
    return lambda row: (row.get(column) is None, row.get(column))


class MockSupabaseQuery:
    """
    Chainable query against one in-memory table.

    Filters are collected and applied on execute(), for reads and writes
    alike, mirroring how the real client builds a request.
    """

    def __init__(self, table: "MockSupabaseTable", operation: str, payload: Any = None, **options):
        self._table = table
        self._operation = operation
        self._payload = payload
        self._options = options
        self._filters: list[Callable[[dict], bool]] = []
        self._orders: list[tuple[str, bool]] = []
        self._limit: Optional[int] = None
        self._is_single = False

    # Filters

    def eq(self, column, value):
        self._filters.append(lambda row: row.get(column) == value)
        return self

    def neq(self, column, value):
        self._filters.append(lambda row: row.get(column) != value)
        return self

    def in_(self, column, values):
        values = list(values)
        self._filters.append(lambda row: row.get(column) in values)
        return self

    def gt(self, column, value):
        self._filters.append(lambda row: row.get(column) is not None and row.get(column) > value)
        return self

    def gte(self, column, value):
        self._filters.append(lambda row: row.get(column) is not None and row.get(column) >= value)
        return self

    def lt(self, column, value):
        self._filters.append(lambda row: row.get(column) is not None and row.get(column) < value)
        return self

    def lte(self, column, value):
        self._filters.append(lambda row: row.get(column) is not None and row.get(column) <= value)
        return self

    # Modifiers

    def order(self, column, desc: bool = False, **kwargs):
        self._orders.append((column, desc))
        return self

    def limit(self, count):
        self._limit = count
        return self

    def range(self, start, end):
        return self

    def single(self):
        self._is_single = True
        return self

    def _matches(self, row: dict) -> bool:
        return all(f(row) for f in self._filters)

    def execute(self) -> MockSupabaseResponse:
        with self._table.lock:
            if self._operation == "select":
                return self._select()
            if self._operation == "insert":
                return MockSupabaseResponse(self._table.insert_rows(self._payload))
            if self._operation == "upsert":
                return MockSupabaseResponse(
                    self._table.upsert_rows(self._payload, self._options.get("on_conflict"))
                )
            if self._operation == "update":
                return MockSupabaseResponse(self._table.update_rows(self._matches, self._payload))
            if self._operation == "delete":
                return MockSupabaseResponse(self._table.delete_rows(self._matches))
        raise ValueError(f"Unknown operation {self._operation}")

    def _select(self) -> MockSupabaseResponse:
        rows = [copy.deepcopy(r) for r in self._table.rows if self._matches(r)]
        # Later order() calls are secondary keys, so sort them first
        for column, desc in reversed(self._orders):
            rows.sort(key=_sort_key(column), reverse=desc)
        count = len(rows)
        if self._limit is not None:
            rows = rows[:self._limit]

        if self._is_single:
            return MockSupabaseResponse(data=rows[0] if rows else None)
        return MockSupabaseResponse(data=rows, count=count)


class MockSupabaseTable:
    """One in-memory table; write operations mutate its rows."""

    def __init__(self, name: str, rows: Optional[list] = None):
        self.name = name
        self.rows: list[dict] = [dict(r) for r in (rows or [])]
        self.lock = threading.Lock()

    def _next_id(self) -> int:
        numeric = [r["id"] for r in self.rows if isinstance(r.get("id"), int)]
        return max(numeric, default=0) + 1

    def insert_rows(self, data) -> list[dict]:
        items = data if isinstance(data, list) else [data]
        inserted = []
        for item in items:
            row = copy.deepcopy(item)
            row.setdefault("id", self._next_id())
            self.rows.append(row)
            inserted.append(copy.deepcopy(row))
        return inserted

    def upsert_rows(self, data, on_conflict: Optional[str]) -> list[dict]:
        keys = [k.strip() for k in (on_conflict or "id").split(",")]
        items = data if isinstance(data, list) else [data]
        stored = []
        for item in items:
            existing = next(
                (r for r in self.rows if all(r.get(k) == item.get(k) for k in keys)),
                None,
            )
            if existing is None:
                stored.extend(self.insert_rows(item))
            else:
                existing.update(copy.deepcopy(item))
                stored.append(copy.deepcopy(existing))
        return stored

    def update_rows(self, matches: Callable[[dict], bool], data: dict) -> list[dict]:
        updated = []
        for row in self.rows:
            if matches(row):
                row.update(copy.deepcopy(data))
                updated.append(copy.deepcopy(row))
        return updated

    def delete_rows(self, matches: Callable[[dict], bool]) -> list[dict]:
        deleted = [copy.deepcopy(r) for r in self.rows if matches(r)]
        self.rows = [r for r in self.rows if not matches(r)]
        return deleted

    # Entry points used by services

    def select(self, *args, **kwargs):
        return MockSupabaseQuery(self, "select")

    def insert(self, data):
        return MockSupabaseQuery(self, "insert", data)

    def upsert(self, data, on_conflict: Optional[str] = None, **kwargs):
        return MockSupabaseQuery(self, "upsert", data, on_conflict=on_conflict)

    def update(self, data):
        return MockSupabaseQuery(self, "update", data)

    def delete(self):
        return MockSupabaseQuery(self, "delete")


class MockSupabaseClient:
    """Mock Supabase client holding named in-memory tables."""

    def __init__(self):
        self._tables: dict[str, MockSupabaseTable] = {}

    def set_table_data(self, table_name: str, data: list):
        """Replace the rows of a table."""
        self._tables[table_name] = MockSupabaseTable(table_name, data)

    def rows(self, table_name: str) -> list[dict]:
        """Current rows of a table, for assertions."""
        return self.table(table_name).rows

    def table(self, name: str) -> MockSupabaseTable:
        if name not in self._tables:
            self._tables[name] = MockSupabaseTable(name)
        return self._tables[name]


# ===================
# FIXTURES
# ===================

# Modules that bind get_supabase_client at import time
DB_MODULES = [
    "config.database",
    "services.catalog_service",
    "services.history_service",
    "services.rules_service",
    "services.cart_service",
    "services.draft_service",
    "services.score_service",
]

# Modules holding a lazily created service singleton
SINGLETON_MODULES = [
    "services.catalog_service",
    "services.history_service",
    "services.rules_service",
    "services.cart_service",
    "services.draft_service",
    "services.auto_pick_service",
    "services.score_service",
]


@pytest.fixture
def mock_supabase() -> MockSupabaseClient:
    """
    Create an in-memory Supabase client.

    Usage:
        def test_something(mock_supabase):
            mock_supabase.set_table_data("products", [
                {"id": 1, "name": "Lager 0.5", ...}
            ])
    """
    return MockSupabaseClient()


@pytest.fixture
def mock_db(mock_supabase, monkeypatch) -> Generator:
    """
    Point every service at the mock client and drop cached singletons.

    Usage:
        def test_something(mock_db):
            mock_db.set_table_data("products", [...])
            service = get_catalog_service()  # built on the mock
    """
    import importlib

    for name in SINGLETON_MODULES:
        monkeypatch.setattr(importlib.import_module(name), "_service", None)

    patchers = [
        patch(f"{name}.get_supabase_client", return_value=mock_supabase)
        for name in DB_MODULES
    ]
    for p in patchers:
        p.start()
    try:
        yield mock_supabase
    finally:
        for p in reversed(patchers):
            p.stop()


# ===================
# API TEST CLIENT
# ===================

@pytest.fixture
def test_client_with_mock_db(mock_db):
    """
    Create FastAPI test client with mocked database.

    Usage:
        def test_endpoint(test_client_with_mock_db, mock_db):
            mock_db.set_table_data("products", [...])
            response = test_client_with_mock_db.get("/health")
    """
    from fastapi.testclient import TestClient
    from main import app

    yield TestClient(app)
