"""
tests/integration/conftest.py — Fixtures and helpers for all integration tests.

Design:
  - Tests run against an in-memory SQLite database (TestingConfig default).
    Set TEST_DATABASE_URL to run the same suite against PostgreSQL.
  - A fresh app (and therefore a fresh in-memory database) is created for
    every test, so tests are isolated without any row clean-up.
  - All tables are created via db.create_all() from the model metadata.

Helper functions (not fixtures) are provided for common operations:
  - make_group(client, ...)   → group dict (with members)
  - add_member(...)           → HTTP response
  - make_expense(...)         → HTTP response
  - make_settlement(...)      → HTTP response
  - get_balances(...)         → HTTP response

These are plain functions (not pytest fixtures) so they can be called with
arbitrary arguments in any test without fixture parameterization overhead.
"""

from __future__ import annotations

import pytest

from splitsettle.app import create_app
from splitsettle.app.extensions import db as _db


# ═══════════════════════════════════════════════════════════════════════════
# App fixture
# ═══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def app():
    """
    Creates the Flask application in 'testing' mode with all tables created.

    Dropped again at teardown so a TEST_DATABASE_URL pointing at a real
    server is left empty between tests.
    """
    flask_app = create_app("testing")

    with flask_app.app_context():
        _db.create_all()

    yield flask_app

    with flask_app.app_context():
        _db.session.remove()
        _db.drop_all()


@pytest.fixture
def client(app):
    """Flask test client. Each test gets a fresh client (function-scoped)."""
    return app.test_client()


# ═══════════════════════════════════════════════════════════════════════════
# Shared helper functions (not fixtures)
# ═══════════════════════════════════════════════════════════════════════════

def make_group(
    client,
    name: str = "Test Group",
    members: list[str] | None = None,
    currency: str | None = None,
) -> dict:
    """
    Creates a group and returns the group data dict.
    Default members: Ana, Ben. Returned members are in id order.
    """
    payload: dict = {
        "name": name,
        "members": ["Ana", "Ben"] if members is None else members,
    }
    if currency is not None:
        payload["currency"] = currency

    resp = client.post("/api/v1/groups", json=payload)
    assert resp.status_code == 201, f"make_group failed: {resp.get_json()}"
    return resp.get_json()["data"]


def member_ids(group: dict) -> dict[str, int]:
    """{name: id} for the members of a group dict."""
    return {m["name"]: m["id"] for m in group["members"]}


def add_member(client, group_id: int, name: str):
    """Adds a named member to a group. Returns the HTTP response."""
    return client.post(f"/api/v1/groups/{group_id}/members", json={"name": name})


def make_expense(
    client,
    group_id: int,
    paid_by_member_id: int,
    amount: str,
    split_rule: str = "equal",
    participants: list[int] | None = None,
    shares: list[dict] | None = None,
    description: str = "Test Expense",
    category: str | None = None,
    incurred_on: str | None = None,
):
    """
    Creates an expense and returns the HTTP response.
    For split_rule='equal' pass participants (or nothing: every member).
    For other rules pass shares as a list of {member_id, value} dicts.
    """
    payload: dict = {
        "paid_by_member_id": paid_by_member_id,
        "description": description,
        "amount": amount,
        "split_rule": split_rule,
    }
    if participants is not None:
        payload["participants"] = participants
    if shares is not None:
        payload["shares"] = shares
    if category is not None:
        payload["category"] = category
    if incurred_on is not None:
        payload["incurred_on"] = incurred_on

    return client.post(f"/api/v1/groups/{group_id}/expenses", json=payload)


def make_settlement(client, group_id: int, paid_by: int, paid_to: int, amount: str):
    """Records a settlement payment. Returns the HTTP response."""
    return client.post(
        f"/api/v1/groups/{group_id}/settlements",
        json={
            "paid_by_member_id": paid_by,
            "paid_to_member_id": paid_to,
            "amount": amount,
        },
    )


def get_balances(client, group_id: int, simplify: str | None = None, **filters):
    """GET /groups/:id/balances. Extra keyword args become query params."""
    params = dict(filters)
    if simplify is not None:
        params["simplify"] = simplify
    return client.get(f"/api/v1/groups/{group_id}/balances", query_string=params)


def balances_by_name(data: dict) -> dict[str, str]:
    """{name: balance string} from a balances response payload."""
    return {b["name"]: b["balance"] for b in data["balances"]}
