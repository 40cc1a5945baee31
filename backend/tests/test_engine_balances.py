"""Balance aggregation tests (pure, no database)."""

import pytest

from payables.engine import (
    BalanceTransactionSnapshot,
    EntitySnapshot,
    PaymentSnapshot,
    ReceivableSnapshot,
    custody_balance,
    custody_balances,
    outstanding_for_entity,
    supplier_ledger_totals,
    total_outstanding,
)


def tx(user_id, amount, id=None):
    return BalanceTransactionSnapshot(id=id, user_id=user_id, amount_cents=amount)


def rec(id, entity_id, total, remaining, due=None):
    return ReceivableSnapshot(
        id=id, entity_id=entity_id, description=f"R{id}",
        total_cents=total, remaining_cents=remaining, due_date=due,
    )


def pay(id, receivable_id, amount, deleted=False):
    return PaymentSnapshot(
        id=id, receivable_id=receivable_id, amount_cents=amount,
        method="cash", created_by_user_id=1, is_deleted=deleted,
    )


class TestCustodyBalance:

    def test_sum_of_signed_amounts(self):
        history = [tx(1, 500), tx(1, -120), tx(1, 50)]
        assert custody_balance(1, history) == 430

    def test_other_users_ignored(self):
        history = [tx(1, 500), tx(2, 900), tx(1, -100)]
        assert custody_balance(1, history) == 400
        assert custody_balance(3, history) == 0

    def test_may_go_negative(self):
        assert custody_balance(1, [tx(1, 100), tx(1, -250)]) == -150

    @pytest.mark.parametrize("new_amount", [1, -1, 700, -430])
    def test_incremental_equals_full_recomputation(self, new_amount):
        history = [tx(1, 500), tx(1, -120), tx(1, 50)]
        before = custody_balance(1, history)
        assert custody_balance(1, history + [tx(1, new_amount)]) == before + new_amount

    def test_balances_for_all_users(self):
        history = [tx(1, 500), tx(2, 300), tx(1, -200), tx(2, -300)]
        assert custody_balances(history) == {1: 300, 2: 0}

    def test_type_follows_sign(self):
        assert tx(1, 10).type == "credit"
        assert tx(1, -10).type == "debit"


class TestOutstanding:

    def test_only_open_receivables_of_entity(self):
        receivables = [
            rec(1, 7, 300, 300),
            rec(2, 7, 200, 0),
            rec(3, 8, 1000, 400),
            rec(4, 7, 90, 45),
        ]
        assert outstanding_for_entity(7, receivables) == 345
        assert outstanding_for_entity(8, receivables) == 400
        assert outstanding_for_entity(99, receivables) == 0

    def test_total_outstanding_across_suppliers(self):
        entities = [
            EntitySnapshot(id=7, name="A"),
            EntitySnapshot(id=8, name="B"),
            EntitySnapshot(id=9, name="Not a supplier", type="customer"),
        ]
        receivables = [rec(1, 7, 300, 300), rec(2, 8, 100, 60), rec(3, 9, 500, 500)]
        assert total_outstanding(entities, receivables) == 360


class TestLedgerTotals:

    def test_consistent_ledger_has_zero_discrepancy(self):
        receivables = [rec(1, 7, 300, 0), rec(2, 7, 200, 150)]
        payments = [pay(1, 1, 300), pay(2, 2, 50)]
        totals = supplier_ledger_totals(7, receivables, payments)

        assert totals.total_invoiced_cents == 500
        assert totals.actual_paid_cents == 350
        assert totals.outstanding_cents == 150
        assert totals.recorded_paid_cents == 350
        assert totals.discrepancy_cents == 0

    def test_reversed_payments_do_not_count_as_paid(self):
        receivables = [rec(1, 7, 75, 75)]
        payments = [pay(1, 1, 75, deleted=True)]
        totals = supplier_ledger_totals(7, receivables, payments)

        assert totals.actual_paid_cents == 0
        assert totals.recorded_paid_cents == 0
        assert totals.reversed_paid_cents == 75
        assert totals.discrepancy_cents == 0

    def test_discrepancy_is_computed(self):
        # Payment recorded without the receivable moving
        receivables = [rec(1, 7, 100, 100)]
        totals = supplier_ledger_totals(7, receivables, [pay(1, 1, 40)])
        assert totals.discrepancy_cents == 40
        assert totals.to_dict()["discrepancy_cents"] == 40

    def test_payments_of_other_suppliers_ignored(self):
        receivables = [rec(1, 7, 100, 60), rec(2, 8, 100, 0)]
        payments = [pay(1, 1, 40), pay(2, 2, 100)]
        totals = supplier_ledger_totals(7, receivables, payments)
        assert totals.recorded_paid_cents == 40

    def test_supplier_without_receivables(self):
        totals = supplier_ledger_totals(7, [], [])
        assert totals.total_invoiced_cents == 0
        assert totals.outstanding_cents == 0
        assert totals.discrepancy_cents == 0
