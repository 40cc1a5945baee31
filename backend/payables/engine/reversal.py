# Overview: Payment reversal; the compensating write-set for an administrator deleting a payment.

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from .errors import AuthorizationError, ValidationError
from .settlement import PlannedCustodyTransaction, ReceivableUpdate
from .snapshots import Actor, PaymentSnapshot, ReceivableSnapshot
from ..time_utils import utcnow


@dataclass(frozen=True)
class ReversalPlan:
    operation_id: str
    payment_id: int
    receivable_update: ReceivableUpdate
    custody_credit: Optional[PlannedCustodyTransaction]
    amount_cents: int
    payer_user_id: Optional[int]

    @property
    def restored_cents(self) -> int:
        """How much of the payment actually re-opened the receivable (after clamping)."""
        u = self.receivable_update
        return u.new_remaining_cents - u.expected_remaining_cents

    def audit_details(self) -> dict:
        return {
            "payment_id": self.payment_id,
            "receivable_id": self.receivable_update.receivable_id,
            "amount_cents": self.amount_cents,
            "payer_user_id": self.payer_user_id,
            "remaining_before_cents": self.receivable_update.expected_remaining_cents,
            "remaining_after_cents": self.receivable_update.new_remaining_cents,
            "custody_credit_cents": self.custody_credit.amount_cents if self.custody_credit else None,
        }


def plan_reversal(
    *,
    operation_id: str,
    actor: Actor,
    payment: PaymentSnapshot,
    receivable: ReceivableSnapshot,
    now: Optional[datetime] = None,
) -> ReversalPlan:
    """
    Plan the undo of one recorded payment.

    The receivable is re-opened by the payment amount, clamped at its total.
    The original payer is credited the full payment amount, whoever paid.

    Raises:
        AuthorizationError: actor is not an administrator
        ValidationError: payment already reversed or does not belong to receivable
    """
    if not actor.is_admin:
        raise AuthorizationError("Only administrators can delete payments")
    if not operation_id:
        raise ValidationError("operation_id is required")
    if payment.is_deleted:
        raise ValidationError(f"Payment {payment.id} has already been reversed")
    if payment.receivable_id != receivable.id:
        raise ValidationError(
            f"Payment {payment.id} does not belong to receivable {receivable.id}"
        )
    if payment.amount_cents <= 0:
        raise ValidationError("Payment amount must be positive")

    now = now or utcnow()

    new_remaining = min(receivable.total_cents, receivable.remaining_cents + payment.amount_cents)
    update = ReceivableUpdate(
        receivable_id=receivable.id,
        expected_remaining_cents=receivable.remaining_cents,
        new_remaining_cents=new_remaining,
        expected_version_id=receivable.version_id,
    )

    credit = None
    if payment.created_by_user_id is not None:
        credit = PlannedCustodyTransaction(
            user_id=payment.created_by_user_id,
            amount_cents=payment.amount_cents,
            reason=f"Refund of deleted payment #{payment.id}",
            created_by_user_id=actor.id,
            transaction_date=now,
        )

    return ReversalPlan(
        operation_id=operation_id,
        payment_id=payment.id,
        receivable_update=update,
        custody_credit=credit,
        amount_cents=payment.amount_cents,
        payer_user_id=payment.created_by_user_id,
    )
