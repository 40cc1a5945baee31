# Overview: Read-only value objects the engine computes over; built by services from ORM rows.

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional


ROLE_ADMIN = "admin"
ROLE_USER = "user"
VALID_ROLES = (ROLE_ADMIN, ROLE_USER)

ENTITY_TYPE_SUPPLIER = "supplier"

TX_CREDIT = "credit"
TX_DEBIT = "debit"


@dataclass(frozen=True)
class Actor:
    """
    The acting user for one engine call.

    Passed explicitly into every operation; the engine never looks up a
    "current user" on its own.
    """
    id: int
    full_name: str
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN


@dataclass(frozen=True)
class EntitySnapshot:
    id: int
    name: str
    type: str = ENTITY_TYPE_SUPPLIER
    address: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None


@dataclass(frozen=True)
class ReceivableSnapshot:
    id: int
    entity_id: int
    description: str
    total_cents: int
    remaining_cents: int
    due_date: Optional[date] = None
    version_id: int = 1

    @property
    def is_open(self) -> bool:
        return self.remaining_cents > 0


@dataclass(frozen=True)
class PaymentSnapshot:
    """
    A recorded payment.

    is_deleted marks payments that were reversed by an administrator; they
    stay visible to audit totals but not to reconciliation.
    """
    id: int
    receivable_id: int
    amount_cents: int
    method: str
    created_by_user_id: Optional[int]
    payment_date: Optional[date] = None
    receipt_number: Optional[str] = None
    notes: Optional[str] = None
    is_deleted: bool = False


@dataclass(frozen=True)
class BalanceTransactionSnapshot:
    id: Optional[int]
    user_id: int
    amount_cents: int
    reason: str = ""
    transaction_date: Optional[datetime] = None
    created_by_user_id: Optional[int] = None

    @property
    def type(self) -> str:
        # Sign of amount is authoritative
        return TX_CREDIT if self.amount_cents > 0 else TX_DEBIT
