# Overview: Balance aggregation over receivable, payment and custody snapshots.

"""
Balance Aggregation

Balances are derived from history every time; nothing here is cached.

- Supplier outstanding = sum of remaining amounts on open receivables
- Custody balance = sum of signed transaction amounts for the user
- Ledger totals reconcile "invoiced - outstanding" against recorded payments
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Iterable

from .snapshots import (
    ENTITY_TYPE_SUPPLIER,
    BalanceTransactionSnapshot,
    EntitySnapshot,
    PaymentSnapshot,
    ReceivableSnapshot,
)


@dataclass(frozen=True)
class LedgerTotals:
    total_invoiced_cents: int
    actual_paid_cents: int
    outstanding_cents: int
    # Sum of payments still on record
    recorded_paid_cents: int
    # Sum of payments an administrator reversed
    reversed_paid_cents: int

    @property
    def discrepancy_cents(self) -> int:
        """Recorded payments minus what the receivables say was paid; 0 when consistent."""
        return self.recorded_paid_cents - self.actual_paid_cents

    def to_dict(self) -> dict:
        return {
            "total_invoiced_cents": self.total_invoiced_cents,
            "actual_paid_cents": self.actual_paid_cents,
            "outstanding_cents": self.outstanding_cents,
            "recorded_paid_cents": self.recorded_paid_cents,
            "reversed_paid_cents": self.reversed_paid_cents,
            "discrepancy_cents": self.discrepancy_cents,
        }


def _due_date_key(receivable: ReceivableSnapshot) -> tuple:
    # Undated receivables sort after every dated one
    return (
        receivable.due_date is None,
        receivable.due_date or date.min,
        receivable.id,
    )


def sort_by_due_date(receivables: Iterable[ReceivableSnapshot]) -> list[ReceivableSnapshot]:
    return sorted(receivables, key=_due_date_key)


def open_receivables(entity_id: int, receivables: Iterable[ReceivableSnapshot]) -> list[ReceivableSnapshot]:
    """Open receivables of one entity, oldest due date first, undated last."""
    return sort_by_due_date(
        r for r in receivables if r.entity_id == entity_id and r.remaining_cents > 0
    )


def outstanding_for_entity(entity_id: int, receivables: Iterable[ReceivableSnapshot]) -> int:
    return sum(
        r.remaining_cents
        for r in receivables
        if r.entity_id == entity_id and r.remaining_cents > 0
    )


def custody_balance(user_id: int, transactions: Iterable[BalanceTransactionSnapshot]) -> int:
    """Signed sum of a user's custody transactions. May be negative."""
    return sum(t.amount_cents for t in transactions if t.user_id == user_id)


def custody_balances(transactions: Iterable[BalanceTransactionSnapshot]) -> dict[int, int]:
    """Custody balance for every user that has at least one transaction."""
    balances: dict[int, int] = {}
    for t in transactions:
        balances[t.user_id] = balances.get(t.user_id, 0) + t.amount_cents
    return balances


def total_outstanding(
    entities: Iterable[EntitySnapshot],
    receivables: Iterable[ReceivableSnapshot],
    entity_type: str = ENTITY_TYPE_SUPPLIER,
) -> int:
    """Outstanding across every entity of the given type."""
    entity_ids = {e.id for e in entities if e.type == entity_type}
    return sum(
        r.remaining_cents
        for r in receivables
        if r.entity_id in entity_ids and r.remaining_cents > 0
    )


def supplier_ledger_totals(
    entity_id: int,
    receivables: Iterable[ReceivableSnapshot],
    payments: Iterable[PaymentSnapshot],
) -> LedgerTotals:
    """
    Invoiced / paid / outstanding figures for one supplier.

    actual_paid is derived from the receivables (invoiced - outstanding).
    Reversed payments count toward reversed_paid only, never toward
    recorded_paid, so a reversal does not show up as a discrepancy.
    """
    entity_receivables = [r for r in receivables if r.entity_id == entity_id]
    receivable_ids = {r.id for r in entity_receivables}

    total_invoiced = sum(r.total_cents for r in entity_receivables)
    outstanding = sum(r.remaining_cents for r in entity_receivables if r.remaining_cents > 0)

    recorded_paid = 0
    reversed_paid = 0
    for p in payments:
        if p.receivable_id not in receivable_ids:
            continue
        if p.is_deleted:
            reversed_paid += p.amount_cents
        else:
            recorded_paid += p.amount_cents

    return LedgerTotals(
        total_invoiced_cents=total_invoiced,
        actual_paid_cents=total_invoiced - outstanding,
        outstanding_cents=outstanding,
        recorded_paid_cents=recorded_paid,
        reversed_paid_cents=reversed_paid,
    )
