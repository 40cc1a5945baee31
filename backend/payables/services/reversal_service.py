# Overview: Service-layer operations for payment reversal; encapsulates business logic and database work.

"""
Payment Reversal Service

WHY: Administrators fix mistaken payments by deleting them. Deleting must
undo everything the payment did: re-open the receivable and give the money
back to whoever's custody paid it.

SEQUENCE:
1. Audit "attempted" (committed on its own)
2. In one transaction: receivable restored (clamped at its total), payer
   credited, payment row deleted, PaymentReversal row + audit "success"
3. On any failure: rollback, audit "failed" (committed on its own), re-raise

A payment can be reversed once. Re-sending the same operation_id returns
the recorded reversal.
"""

from __future__ import annotations

import logging
import uuid

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ..extensions import db
from ..models import EmployeeBalanceTransaction, Payment, PaymentReversal, Receivable
from ..engine.errors import (
    AuthorizationError,
    ConcurrencyConflictError,
    StoreError,
    ValidationError,
)
from ..engine.reversal import ReversalPlan, plan_reversal
from ..engine.snapshots import Actor
from .audit_service import STATUS_ATTEMPTED, STATUS_FAILED, STATUS_SUCCESS, log_action
from .concurrency import lock_for_update, run_with_retry
from .custody_service import REFERENCE_PAYMENT_REVERSAL


logger = logging.getLogger(__name__)

ACTION_PAYMENT_DELETED = "payment_deleted"


class PaymentNotFoundError(Exception):
    """Raised when the payment to reverse does not exist."""
    pass


def get_reversal_by_operation(operation_id: str) -> PaymentReversal | None:
    return db.session.query(PaymentReversal).filter_by(operation_id=operation_id).first()


def _existing_reversal(payment_id: int, operation_id: str | None) -> PaymentReversal | None:
    """
    Return the recorded reversal for a replayed request.

    Raises ValidationError when the payment was already reversed by a
    different request.
    """
    if operation_id:
        replay = get_reversal_by_operation(operation_id)
        if replay:
            if replay.payment_id != payment_id:
                raise ValidationError("operation_id was already used for a different payment")
            return replay

    previous = db.session.query(PaymentReversal).filter_by(payment_id=payment_id).first()
    if previous:
        raise ValidationError(f"Payment {payment_id} has already been reversed")
    return None


def reverse_payment(
    *,
    payment_id: int,
    actor: Actor,
    operation_id: str | None = None,
    reason: str | None = None,
    attempts: int = 3,
) -> PaymentReversal:
    """
    Delete a payment and undo its effects.

    Args:
        payment_id: Payment to delete
        actor: Administrator performing the reversal
        operation_id: Idempotency key; generated when omitted
        reason: Optional note stored with the reversal
        attempts: Retries on lock/version conflicts

    Returns:
        PaymentReversal row

    Raises:
        AuthorizationError: If actor is not an administrator
        PaymentNotFoundError: If payment not found
        ValidationError: If the payment was already reversed
        StoreError: Database failure (audit "failed" is still written)
    """
    if not actor.is_admin:
        raise AuthorizationError("Only administrators can delete payments")

    existing = _existing_reversal(payment_id, operation_id)
    if existing:
        return existing

    operation_id = operation_id or uuid.uuid4().hex

    payment = db.session.query(Payment).filter_by(id=payment_id).first()
    if not payment:
        raise PaymentNotFoundError(f"Payment {payment_id} not found")

    log_action(
        user_id=actor.id,
        action_type=ACTION_PAYMENT_DELETED,
        entity_type="payment",
        entity_id=payment_id,
        status=STATUS_ATTEMPTED,
        details={"operation_id": operation_id, "amount_cents": payment.amount_cents},
        notes=reason,
        commit=True,
    )

    def _op():
        payment = lock_for_update(db.session.query(Payment).filter_by(id=payment_id)).first()
        if not payment:
            raise PaymentNotFoundError(f"Payment {payment_id} not found")

        receivable = lock_for_update(
            db.session.query(Receivable).filter_by(id=payment.receivable_id)
        ).first()
        if not receivable:
            raise PaymentNotFoundError(f"Receivable {payment.receivable_id} of payment {payment_id} not found")

        plan = plan_reversal(
            operation_id=operation_id,
            actor=actor,
            payment=payment.to_snapshot(),
            receivable=receivable.to_snapshot(),
        )

        reversal = _apply_plan(plan, payment, receivable, actor=actor, reason=reason)

        log_action(
            user_id=actor.id,
            action_type=ACTION_PAYMENT_DELETED,
            entity_type="payment",
            entity_id=payment_id,
            status=STATUS_SUCCESS,
            details=plan.audit_details() | {"operation_id": operation_id},
            notes=reason,
        )

        db.session.commit()
        return reversal

    try:
        reversal = run_with_retry(_op, attempts=attempts)
    except Exception as exc:
        db.session.rollback()
        if isinstance(exc, IntegrityError):
            # Same operation_id committed by a concurrent request
            replay = get_reversal_by_operation(operation_id)
            if replay and replay.payment_id == payment_id:
                return replay
        log_action(
            user_id=actor.id,
            action_type=ACTION_PAYMENT_DELETED,
            entity_type="payment",
            entity_id=payment_id,
            status=STATUS_FAILED,
            details={"operation_id": operation_id, "error": str(exc)},
            notes=reason,
            commit=True,
        )
        logger.warning("Reversal of payment %s failed: %s", payment_id, exc)
        if isinstance(exc, SQLAlchemyError):
            raise StoreError("Failed to delete payment") from exc
        raise

    logger.info(
        "Payment %s reversed by user %s (%s cents)", payment_id, actor.id, reversal.amount_cents
    )
    return reversal


def _apply_plan(
    plan: ReversalPlan,
    payment: Payment,
    receivable: Receivable,
    *,
    actor: Actor,
    reason: str | None,
) -> PaymentReversal:
    update = plan.receivable_update
    if (
        receivable.remaining_cents != update.expected_remaining_cents
        or (update.expected_version_id is not None and receivable.version_id != update.expected_version_id)
    ):
        raise ConcurrencyConflictError(
            f"Receivable {receivable.id} changed while the payment was being deleted"
        )
    receivable.remaining_cents = update.new_remaining_cents

    custody_tx = None
    if plan.custody_credit is not None:
        credit = plan.custody_credit
        custody_tx = EmployeeBalanceTransaction(
            user_id=credit.user_id,
            amount_cents=credit.amount_cents,
            reason=credit.reason,
            reference_type=REFERENCE_PAYMENT_REVERSAL,
            reference_id=plan.payment_id,
            transaction_date=credit.transaction_date,
            created_by_user_id=credit.created_by_user_id,
        )
        db.session.add(custody_tx)
        db.session.flush()

    reversal = PaymentReversal(
        operation_id=plan.operation_id,
        payment_id=payment.id,
        receivable_id=receivable.id,
        entity_id=receivable.entity_id,
        amount_cents=payment.amount_cents,
        method=payment.method,
        receipt_number=payment.receipt_number,
        payment_date=payment.payment_date,
        notes=payment.notes,
        payer_user_id=payment.created_by_user_id,
        reversed_by_user_id=actor.id,
        custody_transaction_id=custody_tx.id if custody_tx else None,
        remaining_before_cents=update.expected_remaining_cents,
        remaining_after_cents=update.new_remaining_cents,
        reason=reason,
    )
    db.session.add(reversal)
    db.session.delete(payment)
    db.session.flush()
    return reversal
