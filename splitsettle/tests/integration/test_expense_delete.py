"""
tests/integration/test_expense_delete.py — Integration tests for DELETE /expenses/:id.

Rules verified:
  - Soft delete only: the row and its shares stay, deleted_at is set
  - Deleting twice is a no-op (idempotent, 200 both times)
  - Deleted expenses disappear from the expense list
  - Deleted expenses are excluded from balance computation, and the
    remaining balance still sums to 0.00
  - Unknown expense → EXPENSE_NOT_FOUND (404)
"""

from __future__ import annotations

from splitsettle.app.extensions import db
from splitsettle.app.models.expense_share import ExpenseShare

from .conftest import balances_by_name, get_balances, make_expense, make_group, member_ids


def _setup_with_expense(client):
    group = make_group(client, members=["Ana", "Ben"])
    ids = member_ids(group)
    expense = make_expense(client, group["id"], ids["Ana"], "100.00").get_json()["data"]
    return group, ids, expense


def _delete(client, expense_id: int):
    return client.delete(f"/api/v1/expenses/{expense_id}")


class TestSoftDelete:

    def test_delete_returns_200_with_envelope(self, client):
        _, _, expense = _setup_with_expense(client)

        resp = _delete(client, expense["id"])

        assert resp.status_code == 200
        body = resp.get_json()
        assert body["data"] == {"deleted": True, "expense_id": expense["id"]}
        assert body["warnings"] == []

    def test_delete_sets_deleted_at(self, client):
        _, _, expense = _setup_with_expense(client)
        _delete(client, expense["id"])

        data = client.get(f"/api/v1/expenses/{expense['id']}").get_json()["data"]

        assert data["deleted_at"] is not None

    def test_delete_is_idempotent(self, client):
        _, _, expense = _setup_with_expense(client)

        first = _delete(client, expense["id"])
        first_deleted_at = client.get(f"/api/v1/expenses/{expense['id']}").get_json()["data"]["deleted_at"]
        second = _delete(client, expense["id"])
        second_deleted_at = client.get(f"/api/v1/expenses/{expense['id']}").get_json()["data"]["deleted_at"]

        assert first.status_code == second.status_code == 200
        assert first_deleted_at == second_deleted_at

    def test_shares_remain_in_db_after_delete(self, client, app):
        _, _, expense = _setup_with_expense(client)
        _delete(client, expense["id"])

        with app.app_context():
            rows = db.session.query(ExpenseShare).filter_by(expense_id=expense["id"]).all()

        assert len(rows) == 2

    def test_deleted_expense_not_in_list(self, client):
        group, ids, expense = _setup_with_expense(client)
        kept = make_expense(client, group["id"], ids["Ben"], "20.00").get_json()["data"]
        _delete(client, expense["id"])

        data = client.get(f"/api/v1/groups/{group['id']}/expenses").get_json()["data"]

        assert [e["id"] for e in data] == [kept["id"]]

    def test_delete_nonexistent_expense_returns_404(self, client):
        resp = _delete(client, 999)

        assert resp.status_code == 404
        assert resp.get_json()["error"]["code"] == "EXPENSE_NOT_FOUND"


class TestDeleteAndBalances:

    def test_deleted_expense_excluded_from_balances(self, client):
        group, _, expense = _setup_with_expense(client)
        before = get_balances(client, group["id"]).get_json()["data"]
        assert balances_by_name(before) == {"Ana": "50.00", "Ben": "-50.00"}

        _delete(client, expense["id"])

        after = get_balances(client, group["id"]).get_json()["data"]
        assert balances_by_name(after) == {"Ana": "0.00", "Ben": "0.00"}
        assert after["debts"] == []
        assert after["balance_sum"] == "0.00"

    def test_only_deleted_expense_excluded_remaining_still_counted(self, client):
        group, ids, expense = _setup_with_expense(client)
        make_expense(client, group["id"], ids["Ben"], "40.00")
        _delete(client, expense["id"])

        data = get_balances(client, group["id"]).get_json()["data"]

        assert balances_by_name(data) == {"Ana": "-20.00", "Ben": "20.00"}
        assert data["balance_sum"] == "0.00"
