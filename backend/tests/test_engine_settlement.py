"""
Settlement allocation tests.

Verifies:
- Allocation follows due-date order (undated last) and sums to the amount
- Outstanding and custody preconditions
- Administrators are exempt from the custody check
- The plan carries expected remaining/version for every touched receivable
"""

from datetime import date, datetime

import pytest

from payables.engine import (
    Actor,
    EntitySnapshot,
    InsufficientCustodyError,
    InsufficientReceivableError,
    InvariantViolation,
    ReceivableSnapshot,
    ValidationError,
    allocate,
    plan_settlement,
)
from payables.engine.balances import open_receivables


SUPPLIER = EntitySnapshot(id=7, name="Gulf Trading")
ADMIN = Actor(id=1, full_name="Admin User", role="admin")
EMPLOYEE = Actor(id=2, full_name="Sara Employee", role="user")
NOW = datetime(2024, 3, 5, 10, 30)


def rec(id, remaining, due=None, total=None, entity_id=7, version_id=1):
    return ReceivableSnapshot(
        id=id,
        entity_id=entity_id,
        description=f"Invoice {id}",
        total_cents=total if total is not None else remaining,
        remaining_cents=remaining,
        due_date=due,
        version_id=version_id,
    )


def plan(amount, receivables, actor=ADMIN, custody=0, method="cash", operation_id="op-1"):
    return plan_settlement(
        operation_id=operation_id,
        entity=SUPPLIER,
        amount_cents=amount,
        receivables=receivables,
        actor=actor,
        method=method,
        custody_balance_cents=custody,
        now=NOW,
    )


class TestAllocationScenario:

    def test_350_over_300_and_200(self):
        receivables = [
            rec(1, 300, date(2024, 1, 1)),
            rec(2, 200, date(2024, 2, 1)),
        ]
        result = plan(350, receivables)

        assert [(u.receivable_id, u.new_remaining_cents) for u in result.receivable_updates] == [
            (1, 0),
            (2, 150),
        ]
        assert [(p.receivable_id, p.amount_cents) for p in result.payments] == [(1, 300), (2, 50)]
        assert result.custody_transaction is None

    def test_input_order_does_not_matter(self):
        receivables = [
            rec(2, 200, date(2024, 2, 1)),
            rec(1, 300, date(2024, 1, 1)),
        ]
        result = plan(350, receivables)
        assert [a.receivable_id for a in result.allocations] == [1, 2]

    def test_undated_receivables_are_paid_last(self):
        receivables = [
            rec(1, 100, None),
            rec(2, 100, date(2030, 1, 1)),
            rec(3, 100, date(2024, 1, 1)),
        ]
        result = plan(250, receivables)
        assert [(a.receivable_id, a.amount_cents) for a in result.allocations] == [
            (3, 100),
            (2, 100),
            (1, 50),
        ]

    def test_same_due_date_breaks_ties_by_id(self):
        due = date(2024, 1, 1)
        ordered = open_receivables(7, [rec(9, 10, due), rec(4, 10, due), rec(6, 10, due)])
        assert [r.id for r in ordered] == [4, 6, 9]

    def test_closed_and_foreign_receivables_are_ignored(self):
        receivables = [
            rec(1, 0, date(2024, 1, 1), total=500),
            rec(2, 400, date(2024, 1, 2), entity_id=99),
            rec(3, 80, date(2024, 1, 3)),
        ]
        result = plan(80, receivables)
        assert [a.receivable_id for a in result.allocations] == [3]


class TestAllocationProperties:

    @pytest.mark.parametrize(
        "remainings,amount",
        [
            ([300, 200], 1),
            ([300, 200], 300),
            ([300, 200], 500),
            ([1, 1, 1, 1], 3),
            ([999, 5, 12345], 10000),
            ([50], 50),
        ],
    )
    def test_deductions_sum_to_amount_and_respect_remaining(self, remainings, amount):
        receivables = [rec(i + 1, r, date(2024, 1, i + 1)) for i, r in enumerate(remainings)]
        result = plan(amount, receivables)

        assert sum(a.amount_cents for a in result.allocations) == amount
        by_id = {r.id: r for r in receivables}
        for a in result.allocations:
            assert 0 < a.amount_cents <= by_id[a.receivable_id].remaining_cents

        after = {r.id: r.remaining_cents for r in receivables}
        for u in result.receivable_updates:
            after[u.receivable_id] = u.new_remaining_cents
        assert sum(after.values()) == sum(remainings) - amount

    def test_earlier_receivable_never_left_partial(self):
        receivables = [rec(i + 1, 100, date(2024, 1, i + 1)) for i in range(5)]
        result = plan(333, receivables)

        remaining_after = [u.new_remaining_cents for u in result.receivable_updates]
        # Only the last touched receivable may still be partly open
        assert all(r == 0 for r in remaining_after[:-1])
        assert remaining_after[-1] == 67

    def test_allocate_raises_when_receivables_run_out(self):
        with pytest.raises(InvariantViolation):
            allocate(500, [rec(1, 100)])

    def test_updates_carry_expected_state(self):
        result = plan(50, [rec(1, 120, date(2024, 1, 1), total=200, version_id=4)])
        update = result.receivable_updates[0]
        assert update.expected_remaining_cents == 120
        assert update.expected_version_id == 4
        assert update.new_remaining_cents == 70


class TestPreconditions:

    def test_amount_above_outstanding(self):
        with pytest.raises(InsufficientReceivableError) as exc:
            plan(501, [rec(1, 300), rec(2, 200)])
        assert exc.value.outstanding_cents == 500

    def test_employee_custody_100_cannot_pay_150(self):
        with pytest.raises(InsufficientCustodyError) as exc:
            plan(150, [rec(1, 300)], actor=EMPLOYEE, custody=100)
        assert exc.value.balance_cents == 100

    def test_employee_rejected_even_when_receivables_cover_it(self):
        with pytest.raises(InsufficientCustodyError):
            plan(200, [rec(1, 1000)], actor=EMPLOYEE, custody=199)

    def test_admin_never_rejected_on_custody(self):
        result = plan(300, [rec(1, 300)], actor=ADMIN, custody=-5000)
        assert result.custody_transaction is None

    def test_employee_debited_full_amount_once(self):
        result = plan(350, [rec(1, 300, date(2024, 1, 1)), rec(2, 200, date(2024, 2, 1))],
                      actor=EMPLOYEE, custody=1000, method="transfer")
        tx = result.custody_transaction
        assert tx.user_id == EMPLOYEE.id
        assert tx.amount_cents == -350
        assert tx.reason == "Payment to supplier: Gulf Trading - Bank transfer"

    @pytest.mark.parametrize("amount", [0, -10])
    def test_non_positive_amount(self, amount):
        with pytest.raises(ValidationError):
            plan(amount, [rec(1, 300)])

    def test_float_amount_rejected(self):
        with pytest.raises(ValidationError):
            plan(10.5, [rec(1, 300)])

    def test_unknown_method(self):
        with pytest.raises(ValidationError):
            plan(10, [rec(1, 300)], method="cheque")

    def test_missing_operation_id(self):
        with pytest.raises(ValidationError):
            plan(10, [rec(1, 300)], operation_id="")


def test_payment_rows_describe_payer_and_method():
    result = plan(40, [rec(1, 300)], actor=EMPLOYEE, custody=100)
    payment = result.payments[0]
    assert payment.notes == "Supplier payment: Gulf Trading - Sara Employee"
    assert payment.receipt_number == "Cash"
    assert payment.payment_date == date(2024, 3, 5)
    assert payment.created_by_user_id == EMPLOYEE.id
