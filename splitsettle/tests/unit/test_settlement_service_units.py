"""
Unit tests for settlement_service rules, DB-free.
"""

from __future__ import annotations

from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest

from splitsettle.app import engine
from splitsettle.app.errors import AppError, ErrorCode, WarningCode
from splitsettle.app.models.settlement import Settlement
from splitsettle.app.services import settlement_service


def _data(paid_by: int = 2, paid_to: int = 1, amount: str = "30.00") -> dict:
    return {
        "paid_by_member_id": paid_by,
        "paid_to_member_id": paid_to,
        "amount": Decimal(amount),
    }


def _session_with_group() -> MagicMock:
    session = MagicMock()
    session.get.return_value = SimpleNamespace(id=1)
    return session


def _ledger_b_owes_a_fifty():
    return (
        [engine.Expense(Decimal("100.00"), payer=1, split=engine.EqualSplit((1, 2)), id=1)],
        [],
    )


def test_create_settlement_raises_group_not_found():
    session = MagicMock()
    session.get.return_value = None

    with pytest.raises(AppError) as exc_info:
        settlement_service.create_settlement(group_id=404, data=_data(), session=session)

    assert exc_info.value.code == ErrorCode.GROUP_NOT_FOUND
    assert exc_info.value.http_status == 404


def test_self_settlement_is_rejected():
    session = _session_with_group()

    with pytest.raises(AppError) as exc_info:
        settlement_service.create_settlement(
            group_id=1, data=_data(paid_by=1, paid_to=1), session=session
        )

    err = exc_info.value
    assert err.code == ErrorCode.SELF_SETTLEMENT
    assert err.http_status == 422
    assert err.field == "paid_to_member_id"


@patch("splitsettle.app.services.settlement_service.get_member_ids", return_value=[1, 2])
def test_payer_outside_group_is_rejected(mock_member_ids):
    session = _session_with_group()

    with pytest.raises(AppError) as exc_info:
        settlement_service.create_settlement(
            group_id=1, data=_data(paid_by=9), session=session
        )

    assert exc_info.value.code == ErrorCode.PAYER_NOT_MEMBER
    session.add.assert_not_called()


@patch("splitsettle.app.services.settlement_service.get_member_ids", return_value=[1, 2])
def test_recipient_outside_group_is_rejected(mock_member_ids):
    session = _session_with_group()

    with pytest.raises(AppError) as exc_info:
        settlement_service.create_settlement(
            group_id=1, data=_data(paid_to=9), session=session
        )

    assert exc_info.value.code == ErrorCode.RECIPIENT_NOT_MEMBER
    assert exc_info.value.field == "paid_to_member_id"


@patch("splitsettle.app.services.settlement_service.load_ledger")
@patch("splitsettle.app.services.settlement_service.get_member_ids", return_value=[1, 2])
def test_payment_within_debt_has_no_warning(mock_member_ids, mock_ledger):
    session = _session_with_group()
    mock_ledger.return_value = _ledger_b_owes_a_fifty()

    settlement, warnings = settlement_service.create_settlement(
        group_id=1, data=_data(amount="50.00"), session=session
    )

    assert warnings == []
    assert isinstance(settlement, Settlement)
    assert settlement.amount_minor == 5000
    session.add.assert_called_once_with(settlement)


@patch("splitsettle.app.services.settlement_service.load_ledger")
@patch("splitsettle.app.services.settlement_service.get_member_ids", return_value=[1, 2])
def test_overpayment_is_recorded_with_warning(mock_member_ids, mock_ledger):
    session = _session_with_group()
    mock_ledger.return_value = _ledger_b_owes_a_fifty()

    settlement, warnings = settlement_service.create_settlement(
        group_id=1, data=_data(amount="80.00"), session=session
    )

    assert settlement.amount_minor == 8000
    assert [w["code"] for w in warnings] == [WarningCode.OVERPAYMENT]
    assert "50.00" in warnings[0]["message"]


@patch("splitsettle.app.services.settlement_service.load_ledger")
@patch("splitsettle.app.services.settlement_service.get_member_ids", return_value=[1, 2])
def test_paying_in_the_wrong_direction_is_an_overpayment(mock_member_ids, mock_ledger):
    session = _session_with_group()
    mock_ledger.return_value = _ledger_b_owes_a_fifty()

    _, warnings = settlement_service.create_settlement(
        group_id=1, data=_data(paid_by=1, paid_to=2, amount="10.00"), session=session
    )

    assert [w["code"] for w in warnings] == [WarningCode.OVERPAYMENT]


def test_list_settlements_raises_group_not_found():
    session = MagicMock()
    session.get.return_value = None

    with pytest.raises(AppError) as exc_info:
        settlement_service.list_settlements(group_id=99999, session=session)

    err = exc_info.value
    assert err.code == ErrorCode.GROUP_NOT_FOUND
    assert err.http_status == 404
