import pytest

from conftest import give_custody
from payables.engine.errors import AuthorizationError, ValidationError
from payables.models import AuditLog
from payables.services import custody_service


def test_balance_is_sum_of_history(db_session, employee):
    give_custody(db_session, employee, 50000)
    give_custody(db_session, employee, -12000)
    give_custody(db_session, employee, 5000)
    assert custody_service.get_balance(employee.id) == 43000


def test_balance_without_history_is_zero(db_session, employee):
    assert custody_service.get_balance(employee.id) == 0


def test_admin_records_advance(db_session, admin_user, employee):
    tx = custody_service.record_transaction(
        actor=admin_user.to_actor(),
        user_id=employee.id,
        amount_cents=50000,
        reason="Weekly float",
    )

    assert tx.type == "credit"
    assert tx.created_by_user_id == admin_user.id
    assert tx.reference_type == custody_service.REFERENCE_ADJUSTMENT
    assert custody_service.get_balance(employee.id) == 50000

    entry = db_session.query(AuditLog).filter_by(action_type="custody_transaction_created").one()
    assert entry.entity_id == tx.id
    assert entry.details["amount_cents"] == 50000


def test_negative_amount_recovers_custody(db_session, admin_user, employee):
    give_custody(db_session, employee, 50000)
    tx = custody_service.record_transaction(
        actor=admin_user.to_actor(),
        user_id=employee.id,
        amount_cents=-20000,
        reason="Returned cash",
        type="debit",
    )
    assert tx.type == "debit"
    assert custody_service.get_balance(employee.id) == 30000


@pytest.mark.parametrize(
    "amount,type_",
    [(0, None), (100, "debit"), (-100, "credit"), (100, "refund"), (1.5, None), (True, None)],
)
def test_invalid_transactions(db_session, admin_user, employee, amount, type_):
    with pytest.raises(ValidationError):
        custody_service.record_transaction(
            actor=admin_user.to_actor(),
            user_id=employee.id,
            amount_cents=amount,
            reason="x",
            type=type_,
        )
    assert custody_service.get_balance(employee.id) == 0


def test_reason_required(db_session, admin_user, employee):
    with pytest.raises(ValidationError):
        custody_service.record_transaction(
            actor=admin_user.to_actor(), user_id=employee.id, amount_cents=100, reason="  ",
        )


def test_employee_cannot_record(db_session, employee):
    with pytest.raises(AuthorizationError):
        custody_service.record_transaction(
            actor=employee.to_actor(), user_id=employee.id, amount_cents=100000, reason="Raise",
        )


def test_unknown_user(db_session, admin_user):
    with pytest.raises(custody_service.UserNotFoundError):
        custody_service.record_transaction(
            actor=admin_user.to_actor(), user_id=999, amount_cents=100, reason="Float",
        )


def test_history_newest_first(db_session, employee):
    first = give_custody(db_session, employee, 100, reason="first")
    second = give_custody(db_session, employee, 200, reason="second")

    history = custody_service.list_transactions(employee.id)
    assert [t.id for t in history] == [second.id, first.id]


def test_list_balances(db_session, admin_user, employee):
    give_custody(db_session, employee, 25000)

    rows = custody_service.list_balances()
    by_username = {r["username"]: r for r in rows}
    assert by_username["sara"]["balance_cents"] == 25000
    assert by_username["sara"]["full_name"] == "Sara Employee"
    assert by_username["admin"]["balance_cents"] == 0
