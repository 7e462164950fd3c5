# tests/conftest.py
"""
Pytest configuration and fixtures for the SOW approval test suite.

Provides:
- In-memory Supabase mock client (chainable like the real query builder)
- Seeded stages A/B/C and a draft SOW
- Container, engine, checker and reporter wired to the mock
- FastAPI test client

Note: Tests never reach a real Supabase project or Slack webhook.
"""

import os
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Generator, List, Optional
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

# Set test environment before imports
os.environ["SOW_APPROVALS_ENV"] = "test"

from sow_approvals.config import AppConfig, SlackConfig, WorkflowPolicy
from sow_approvals.core.container import Container
from sow_approvals.main import create_app


# ============== Supabase Mock Fixtures ==============

class MockSupabaseResponse:
    """Mock response from Supabase operations."""
    def __init__(self, data: List[Dict] = None, count: int = None):
        self.data = data or []
        self.count = count if count is not None else len(self.data)


class MockSupabaseTable:
    """
    Mock Supabase table with chainable methods.

    select/update/delete act on the rows matching the accumulated filters;
    insert returns the inserted rows with generated ids.
    """

    def __init__(self, table_name: str, client: "MockSupabaseClient"):
        self.table_name = table_name
        self._client = client
        self._operation = "select"
        self._payload = None
        self._filters: List[tuple] = []
        self._order_by: List[tuple] = []
        self._limit = None

    @property
    def _rows(self) -> List[Dict]:
        return self._client._data_store.setdefault(self.table_name, [])

    def select(self, columns: str = "*"):
        self._operation = "select"
        return self

    def insert(self, data: Dict | List[Dict]):
        self._operation = "insert"
        self._payload = [data] if isinstance(data, dict) else list(data)
        return self

    def update(self, data: Dict):
        self._operation = "update"
        self._payload = data
        return self

    def delete(self):
        self._operation = "delete"
        return self

    def eq(self, column: str, value: Any):
        self._filters.append((column, lambda v, x=value: v == x))
        return self

    def neq(self, column: str, value: Any):
        self._filters.append((column, lambda v, x=value: v != x))
        return self

    def in_(self, column: str, values: List[Any]):
        self._filters.append((column, lambda v, x=list(values): v in x))
        return self

    def order(self, column: str, desc: bool = False):
        self._order_by.append((column, desc))
        return self

    def limit(self, count: int):
        self._limit = count
        return self

    def _matches(self, row: Dict) -> bool:
        return all(check(row.get(col)) for col, check in self._filters)

    def execute(self) -> MockSupabaseResponse:
        """Execute the query and return results."""
        self._client.calls.append((self.table_name, self._operation))
        failure = self._client._failures.get(self.table_name)
        if failure is not None:
            raise failure

        if self._operation == "insert":
            inserted = []
            for item in self._payload:
                row = dict(item)
                row.setdefault("id", str(uuid.uuid4()))
                row.setdefault("created_at", datetime.now(timezone.utc).isoformat())
                self._rows.append(row)
                inserted.append(dict(row))
            return MockSupabaseResponse(data=inserted)

        matched = [row for row in self._rows if self._matches(row)]

        if self._operation == "update":
            for row in matched:
                row.update(self._payload)
            return MockSupabaseResponse(data=[dict(row) for row in matched])

        if self._operation == "delete":
            self._client._data_store[self.table_name] = [
                row for row in self._rows if row not in matched
            ]
            return MockSupabaseResponse(data=[dict(row) for row in matched])

        for column, desc in reversed(self._order_by):
            matched.sort(key=lambda r: (r.get(column) is None, r.get(column) or 0), reverse=desc)
        if self._limit is not None:
            matched = matched[:self._limit]
        return MockSupabaseResponse(data=[dict(row) for row in matched])


class MockSupabaseClient:
    """Mock Supabase client for testing."""

    def __init__(self):
        self._data_store: Dict[str, List[Dict]] = {}
        self._failures: Dict[str, Exception] = {}
        self.calls: List[tuple] = []

    def table(self, name: str) -> MockSupabaseTable:
        return MockSupabaseTable(name, self)

    def seed_data(self, table_name: str, data: List[Dict]):
        """Seed test data into a table."""
        self._data_store[table_name] = [dict(row) for row in data]

    def rows(self, table_name: str) -> List[Dict]:
        return self._data_store.get(table_name, [])

    def set_failure(self, table_name: str, error: Optional[Exception]):
        """Make every query on `table_name` raise `error` (None clears it)."""
        if error is None:
            self._failures.pop(table_name, None)
        else:
            self._failures[table_name] = error

    def clear(self):
        """Clear all test data."""
        self._data_store.clear()
        self._failures.clear()
        self.calls.clear()


STAGES = [
    {
        "id": "stage-a",
        "name": "Professional Services",
        "description": "PS manager review",
        "sort_order": 1,
        "is_active": True,
    },
    {
        "id": "stage-b",
        "name": "Project Management",
        "description": "PMO review",
        "sort_order": 2,
        "is_active": True,
    },
    {
        "id": "stage-c",
        "name": "Sr. Leadership",
        "description": "Leadership sign-off",
        "sort_order": 3,
        "is_active": True,
    },
]


@pytest.fixture(scope="function")
def mock_supabase() -> MockSupabaseClient:
    """Empty in-memory Supabase mock."""
    return MockSupabaseClient()


@pytest.fixture(scope="function")
def seeded_supabase(mock_supabase, sow_factory) -> MockSupabaseClient:
    """Supabase mock with stages A/B/C and a draft SOW `sow-1`."""
    mock_supabase.seed_data("approval_stages", STAGES)
    mock_supabase.seed_data("sows", [sow_factory()])
    mock_supabase.seed_data("sow_approvals", [])
    mock_supabase.seed_data("approval_audit_log", [])
    return mock_supabase


# ============== Workflow Fixtures ==============

@pytest.fixture
def test_config() -> AppConfig:
    return AppConfig(
        environment="test",
        slack=SlackConfig(enabled=False),
        workflow=WorkflowPolicy(lock_timeout_seconds=2),
        app_url="https://sow.example.com",
        log_level="DEBUG",
    )


@pytest.fixture
def notifier() -> MagicMock:
    """Stand-in notification sink recording every call."""
    sink = MagicMock()
    sink.notify_decision.return_value = True
    sink.notify_status_change.return_value = True
    return sink


@pytest.fixture
def container(seeded_supabase, test_config, notifier) -> Container:
    return Container(test_config, supabase_client=seeded_supabase, notifier=notifier)


@pytest.fixture
def make_container(seeded_supabase, notifier):
    """Factory for containers with a different workflow policy."""
    def _make(**policy) -> Container:
        policy.setdefault("lock_timeout_seconds", 2)
        config = AppConfig(
            environment="test",
            slack=SlackConfig(enabled=False),
            workflow=WorkflowPolicy(**policy),
        )
        return Container(config, supabase_client=seeded_supabase, notifier=notifier)
    return _make


@pytest.fixture
def engine(container):
    return container.workflow_engine()


@pytest.fixture
def checker(container):
    return container.consistency_checker()


@pytest.fixture
def reporter(container):
    return container.reporter()


# ============== FastAPI Client Fixtures ==============

@pytest.fixture(scope="function")
def client(container, test_config) -> Generator[TestClient, None, None]:
    """FastAPI test client backed by the seeded Supabase mock."""
    app = create_app(config=test_config, container=container)
    with TestClient(app) as test_client:
        yield test_client


# ============== Sample Data Factories ==============

@pytest.fixture
def sow_factory():
    """Factory for SOW rows."""
    def _create_sow(
        sow_id: str = "sow-1",
        status: str = "draft",
        is_latest: bool = True,
        is_hidden: bool = False,
        version: int = 1,
    ) -> Dict[str, Any]:
        return {
            "id": sow_id,
            "title": "Data Platform Migration",
            "client_name": "Acme Corp",
            "status": status,
            "version": version,
            "is_latest": is_latest,
            "is_hidden": is_hidden,
            "author_id": "author-1",
            "updated_at": "2024-01-15T10:00:00Z",
        }
    return _create_sow


@pytest.fixture
def approval_factory():
    """Factory for sow_approvals rows."""
    def _create_approval(
        stage_id: str,
        status: str = "pending",
        sow_id: str = "sow-1",
        is_active: bool = True,
        approver_id: Optional[str] = None,
        version: int = 1,
    ) -> Dict[str, Any]:
        return {
            "id": f"appr-{sow_id}-{stage_id}",
            "sow_id": sow_id,
            "stage_id": stage_id,
            "status": status,
            "approver_id": approver_id,
            "comments": None,
            "decided_at": None,
            "is_active": is_active,
            "version": version,
            "created_at": "2024-01-15T10:00:00Z",
            "updated_at": "2024-01-15T10:00:00Z",
        }
    return _create_approval


# ============== Assertion Helpers ==============

@pytest.fixture
def sow_status(seeded_supabase):
    """Read the stored status of a SOW straight from the mock store."""
    def _status(sow_id: str = "sow-1") -> str:
        return next(r for r in seeded_supabase.rows("sows") if r["id"] == sow_id)["status"]
    return _status


@pytest.fixture
def assert_response_success():
    """Helper to assert successful API responses."""
    def _assert(response, status_code: int = 200):
        assert response.status_code == status_code, f"Expected {status_code}, got {response.status_code}: {response.text}"
        body = response.json()
        assert body["success"] is True
        return body["data"]
    return _assert


@pytest.fixture
def assert_response_error():
    """Helper to assert error API responses."""
    def _assert(response, status_code: int, code: str = None):
        assert response.status_code == status_code, response.text
        body = response.json()
        assert body["success"] is False
        if code:
            assert body["error"]["code"] == code
        return body["error"]
    return _assert
