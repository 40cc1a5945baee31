"""Payment reversal planning tests (pure, no database)."""

from datetime import datetime

import pytest

from payables.engine import (
    Actor,
    AuthorizationError,
    PaymentSnapshot,
    ReceivableSnapshot,
    ValidationError,
    plan_reversal,
)


ADMIN = Actor(id=1, full_name="Admin User", role="admin")
EMPLOYEE = Actor(id=2, full_name="Sara Employee", role="user")
NOW = datetime(2024, 3, 5, 12, 0)


def receivable(total, remaining, id=10, version_id=3):
    return ReceivableSnapshot(
        id=id, entity_id=7, description="Invoice",
        total_cents=total, remaining_cents=remaining, version_id=version_id,
    )


def payment(amount, id=55, receivable_id=10, payer=2, deleted=False):
    return PaymentSnapshot(
        id=id, receivable_id=receivable_id, amount_cents=amount,
        method="cash", created_by_user_id=payer, is_deleted=deleted,
    )


def reverse(p, r, actor=ADMIN):
    return plan_reversal(operation_id="rev-1", actor=actor, payment=p, receivable=r, now=NOW)


def test_reversing_75_reopens_receivable_and_credits_payer():
    plan = reverse(payment(75), receivable(total=75, remaining=0))

    assert plan.receivable_update.new_remaining_cents == 75
    assert plan.receivable_update.expected_remaining_cents == 0
    assert plan.receivable_update.expected_version_id == 3
    assert plan.custody_credit.user_id == 2
    assert plan.custody_credit.amount_cents == 75
    assert plan.custody_credit.created_by_user_id == ADMIN.id
    assert plan.custody_credit.reason == "Refund of deleted payment #55"


@pytest.mark.parametrize(
    "total,remaining,amount,expected",
    [
        (100, 25, 75, 100),
        (100, 50, 75, 100),   # clamped
        (300, 0, 50, 50),
        (100, 100, 10, 100),  # already fully open
    ],
)
def test_restores_min_of_total_and_remaining_plus_amount(total, remaining, amount, expected):
    plan = reverse(payment(amount), receivable(total, remaining))
    assert plan.receivable_update.new_remaining_cents == expected
    # Payer always gets the full payment back
    assert plan.custody_credit.amount_cents == amount


def test_restored_cents_reflects_clamp():
    plan = reverse(payment(75), receivable(total=100, remaining=50))
    assert plan.restored_cents == 50


def test_admin_payer_is_credited_too():
    plan = reverse(payment(75, payer=ADMIN.id), receivable(75, 0))
    assert plan.custody_credit.user_id == ADMIN.id
    assert plan.custody_credit.amount_cents == 75
    assert plan.receivable_update.new_remaining_cents == 75


def test_payment_without_payer_has_no_credit():
    plan = reverse(payment(20, payer=None), receivable(75, 0))
    assert plan.custody_credit is None


def test_only_admin_may_reverse():
    with pytest.raises(AuthorizationError):
        reverse(payment(75), receivable(75, 0), actor=EMPLOYEE)


def test_already_reversed_payment():
    with pytest.raises(ValidationError):
        reverse(payment(75, deleted=True), receivable(75, 75))


def test_payment_must_belong_to_receivable():
    with pytest.raises(ValidationError):
        reverse(payment(75, receivable_id=11), receivable(75, 0))


def test_audit_details():
    details = reverse(payment(75), receivable(75, 0)).audit_details()
    assert details == {
        "payment_id": 55,
        "receivable_id": 10,
        "amount_cents": 75,
        "payer_user_id": 2,
        "remaining_before_cents": 0,
        "remaining_after_cents": 75,
        "custody_credit_cents": 75,
    }
