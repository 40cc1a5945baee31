# Overview: Settlement allocation; turns one supplier payment into a write-set.

"""
Settlement Allocation

A payment against a supplier is spread over the supplier's open receivables
in due-date order (undated last). Each touched receivable gets one payment
row and a new remaining amount. A non-admin payer is debited the full amount
from their custody balance in a single transaction.

The engine only plans. The returned SettlementPlan is applied by the data
access layer inside one database transaction; every receivable update
carries the remaining amount and version it was computed from, so applying
a plan to rows that changed in the meantime is refused instead of
double-counting.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Iterable, Optional

from .balances import open_receivables
from .errors import (
    InsufficientCustodyError,
    InsufficientReceivableError,
    InvariantViolation,
    ValidationError,
)
from .snapshots import Actor, EntitySnapshot, ReceivableSnapshot
from ..time_utils import utcnow


METHOD_CASH = "cash"
METHOD_TRANSFER = "transfer"

VALID_METHODS = (METHOD_CASH, METHOD_TRANSFER)

METHOD_LABELS = {
    METHOD_CASH: "Cash",
    METHOD_TRANSFER: "Bank transfer",
}


@dataclass(frozen=True)
class Allocation:
    receivable_id: int
    amount_cents: int
    remaining_before_cents: int
    remaining_after_cents: int
    version_id: int


@dataclass(frozen=True)
class PlannedPayment:
    receivable_id: int
    amount_cents: int
    method: str
    receipt_number: str
    payment_date: date
    notes: str
    created_by_user_id: int


@dataclass(frozen=True)
class ReceivableUpdate:
    receivable_id: int
    expected_remaining_cents: int
    new_remaining_cents: int
    expected_version_id: Optional[int] = None


@dataclass(frozen=True)
class PlannedCustodyTransaction:
    user_id: int
    amount_cents: int
    reason: str
    created_by_user_id: int
    transaction_date: datetime


@dataclass(frozen=True)
class SettlementPlan:
    operation_id: str
    entity_id: int
    amount_cents: int
    method: str
    actor_id: int
    allocations: list[Allocation] = field(default_factory=list)
    payments: list[PlannedPayment] = field(default_factory=list)
    receivable_updates: list[ReceivableUpdate] = field(default_factory=list)
    custody_transaction: Optional[PlannedCustodyTransaction] = None

    def to_dict(self) -> dict:
        return {
            "operation_id": self.operation_id,
            "entity_id": self.entity_id,
            "amount_cents": self.amount_cents,
            "method": self.method,
            "allocations": [
                {
                    "receivable_id": a.receivable_id,
                    "amount_cents": a.amount_cents,
                    "remaining_before_cents": a.remaining_before_cents,
                    "remaining_after_cents": a.remaining_after_cents,
                }
                for a in self.allocations
            ],
            "custody_debit_cents": (
                self.custody_transaction.amount_cents if self.custody_transaction else None
            ),
        }


def validate_method(method: str) -> str:
    if method not in VALID_METHODS:
        raise ValidationError(f"Invalid payment method: {method}. Must be one of {list(VALID_METHODS)}")
    return method


def allocate(amount_cents: int, receivables: Iterable[ReceivableSnapshot]) -> list[Allocation]:
    """
    Greedy allocation over receivables in the order given.

    Callers pass receivables already sorted by due date. Receivables that
    would receive nothing are skipped.
    """
    remainder = amount_cents
    allocations: list[Allocation] = []

    for rec in receivables:
        if remainder <= 0:
            break
        pay_this = min(rec.remaining_cents, remainder)
        if pay_this <= 0:
            continue
        allocations.append(
            Allocation(
                receivable_id=rec.id,
                amount_cents=pay_this,
                remaining_before_cents=rec.remaining_cents,
                remaining_after_cents=max(rec.remaining_cents - pay_this, 0),
                version_id=rec.version_id,
            )
        )
        remainder -= pay_this

    if remainder > 0:
        raise InvariantViolation(
            f"Allocation exhausted receivables with {remainder} cents unallocated"
        )
    return allocations


def plan_settlement(
    *,
    operation_id: str,
    entity: EntitySnapshot,
    amount_cents: int,
    receivables: Iterable[ReceivableSnapshot],
    actor: Actor,
    method: str,
    custody_balance_cents: int,
    today: Optional[date] = None,
    now: Optional[datetime] = None,
) -> SettlementPlan:
    """
    Validate a supplier payment and compute its full write-set.

    Raises:
        ValidationError: non-positive amount, unknown method, missing operation id
        InsufficientReceivableError: amount above the supplier's open balance
        InsufficientCustodyError: non-admin amount above their custody balance
    """
    if not operation_id:
        raise ValidationError("operation_id is required")
    if isinstance(amount_cents, bool) or not isinstance(amount_cents, int):
        raise ValidationError("amount must be an integer number of cents")
    if amount_cents <= 0:
        raise ValidationError("Payment amount must be positive")
    validate_method(method)

    now = now or utcnow()
    today = today or now.date()

    ordered = open_receivables(entity.id, receivables)
    outstanding = sum(r.remaining_cents for r in ordered)
    if amount_cents > outstanding:
        raise InsufficientReceivableError(amount_cents, outstanding)

    if not actor.is_admin and amount_cents > custody_balance_cents:
        raise InsufficientCustodyError(amount_cents, custody_balance_cents)

    allocations = allocate(amount_cents, ordered)

    allocated = sum(a.amount_cents for a in allocations)
    if allocated != amount_cents:
        raise InvariantViolation(f"Allocated {allocated} cents of {amount_cents}")

    payer_name = actor.full_name or "employee"
    receipt = METHOD_LABELS[method]

    payments = [
        PlannedPayment(
            receivable_id=a.receivable_id,
            amount_cents=a.amount_cents,
            method=method,
            receipt_number=receipt,
            payment_date=today,
            notes=f"Supplier payment: {entity.name} - {payer_name}",
            created_by_user_id=actor.id,
        )
        for a in allocations
    ]
    updates = [
        ReceivableUpdate(
            receivable_id=a.receivable_id,
            expected_remaining_cents=a.remaining_before_cents,
            new_remaining_cents=a.remaining_after_cents,
            expected_version_id=a.version_id,
        )
        for a in allocations
    ]

    custody_tx = None
    if not actor.is_admin:
        custody_tx = PlannedCustodyTransaction(
            user_id=actor.id,
            amount_cents=-amount_cents,
            reason=f"Payment to supplier: {entity.name} - {receipt}",
            created_by_user_id=actor.id,
            transaction_date=now,
        )

    return SettlementPlan(
        operation_id=operation_id,
        entity_id=entity.id,
        amount_cents=amount_cents,
        method=method,
        actor_id=actor.id,
        allocations=allocations,
        payments=payments,
        receivable_updates=updates,
        custody_transaction=custody_tx,
    )
