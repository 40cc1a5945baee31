# Overview: Ledger & settlement engine package.
# Pure computation over snapshots; no database or Flask imports.

from .errors import (
    LedgerError,
    ValidationError,
    InsufficientReceivableError,
    InsufficientCustodyError,
    AuthorizationError,
    StoreError,
    ConcurrencyConflictError,
    InvariantViolation,
)
from .snapshots import (
    Actor,
    EntitySnapshot,
    ReceivableSnapshot,
    PaymentSnapshot,
    BalanceTransactionSnapshot,
    ROLE_ADMIN,
    ROLE_USER,
)
from .balances import (
    LedgerTotals,
    open_receivables,
    sort_by_due_date,
    outstanding_for_entity,
    custody_balance,
    custody_balances,
    total_outstanding,
    supplier_ledger_totals,
)
from .settlement import SettlementPlan, allocate, plan_settlement
from .reversal import ReversalPlan, plan_reversal
from .reports import Sheet, round_money, cents_to_amount

__all__ = [
    "LedgerError", "ValidationError", "InsufficientReceivableError", "InsufficientCustodyError",
    "AuthorizationError", "StoreError", "ConcurrencyConflictError", "InvariantViolation",
    "Actor", "EntitySnapshot", "ReceivableSnapshot", "PaymentSnapshot", "BalanceTransactionSnapshot",
    "ROLE_ADMIN", "ROLE_USER",
    "LedgerTotals", "open_receivables", "sort_by_due_date", "outstanding_for_entity", "custody_balance",
    "custody_balances", "total_outstanding", "supplier_ledger_totals",
    "SettlementPlan", "allocate", "plan_settlement",
    "ReversalPlan", "plan_reversal",
    "Sheet", "round_money", "cents_to_amount",
]
