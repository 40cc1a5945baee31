# Overview: Service-layer operations for supplier settlements; encapsulates business logic and database work.

"""
Settlement Service

WHY: Paying a supplier touches several rows at once (receivables, payments,
the payer's custody). All of it lands in one transaction or none of it does.

FLOW:
1. Known operation_id -> return the recorded settlement (no re-apply)
2. Lock the supplier's open receivables and the payer's user row, then read
   the payer's custody balance
3. engine.plan_settlement computes the write-set
4. Apply the write-set, checking each receivable still matches the
   remaining amount and version the plan was computed from
5. Commit; conflicts roll back and retry from step 2
"""

from __future__ import annotations

import logging

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ..extensions import db
from ..models import (
    EmployeeBalanceTransaction,
    Payment,
    PaymentReversal,
    Receivable,
    Settlement,
    User,
)
from ..engine import balances
from ..engine.errors import ConcurrencyConflictError, LedgerError, StoreError, ValidationError
from ..engine.reports import payer_label
from ..engine.settlement import SettlementPlan, plan_settlement
from ..engine.snapshots import Actor
from .audit_service import log_action
from .concurrency import lock_for_update, run_with_retry
from .custody_service import REFERENCE_SETTLEMENT, get_balance, lock_holder
from .supplier_service import get_supplier


logger = logging.getLogger(__name__)


def get_settlement_by_operation(operation_id: str) -> Settlement | None:
    return db.session.query(Settlement).filter_by(operation_id=operation_id).first()


def _check_replay(existing: Settlement, *, entity_id: int, amount_cents: int, actor: Actor) -> Settlement:
    if (
        existing.entity_id != entity_id
        or existing.amount_cents != amount_cents
        or existing.created_by_user_id != actor.id
    ):
        raise ValidationError("operation_id was already used for a different payment")
    return existing


def settle(
    *,
    entity_id: int,
    actor: Actor,
    amount_cents: int,
    method: str,
    operation_id: str,
    attempts: int = 3,
) -> Settlement:
    """
    Pay a supplier and spread the amount over its open receivables.

    Args:
        entity_id: Supplier being paid
        actor: User making the payment (non-admins pay from custody)
        amount_cents: Amount paid, in cents
        method: "cash" or "transfer"
        operation_id: Client-generated idempotency key for this submission
        attempts: Retries on lock/version conflicts

    Returns:
        The Settlement row (new, or the one recorded earlier for operation_id)

    Raises:
        SupplierNotFoundError: If supplier not found
        ValidationError: Bad amount/method, or operation_id reused for another payment
        InsufficientReceivableError: Amount above the supplier's open balance
        InsufficientCustodyError: Non-admin amount above their custody balance
        ConcurrencyConflictError: Receivables kept changing underneath the write
        StoreError: Database failure
    """
    if not operation_id:
        raise ValidationError("operation_id is required")

    existing = get_settlement_by_operation(operation_id)
    if existing:
        return _check_replay(existing, entity_id=entity_id, amount_cents=amount_cents, actor=actor)

    def _op():
        supplier = get_supplier(entity_id)

        rows = lock_for_update(
            db.session.query(Receivable).filter(
                Receivable.entity_id == entity_id,
                Receivable.remaining_cents > 0,
            )
        ).all()

        # Custody balance is derived; hold the payer row so it cannot be spent twice
        lock_holder(actor.id)

        plan = plan_settlement(
            operation_id=operation_id,
            entity=supplier.to_snapshot(),
            amount_cents=amount_cents,
            receivables=[r.to_snapshot() for r in rows],
            actor=actor,
            method=method,
            custody_balance_cents=get_balance(actor.id),
        )

        settlement = _apply_plan(plan, {r.id: r for r in rows})

        log_action(
            user_id=actor.id,
            action_type="payment_created",
            entity_type="settlement",
            entity_id=settlement.id,
            details=plan.to_dict(),
        )

        db.session.commit()
        logger.info(
            "Settlement %s: %s cents to supplier %s by user %s over %s receivable(s)",
            settlement.id, amount_cents, entity_id, actor.id, len(plan.allocations),
        )
        return settlement

    try:
        return run_with_retry(_op, attempts=attempts)
    except IntegrityError as exc:
        db.session.rollback()
        # Same operation_id committed by a concurrent request
        existing = get_settlement_by_operation(operation_id)
        if existing:
            return _check_replay(existing, entity_id=entity_id, amount_cents=amount_cents, actor=actor)
        raise StoreError("Failed to record settlement") from exc
    except SQLAlchemyError as exc:
        db.session.rollback()
        raise StoreError("Failed to record settlement") from exc
    except (LedgerError, AssertionError):
        db.session.rollback()
        raise


def _apply_plan(plan: SettlementPlan, rows_by_id: dict[int, Receivable]) -> Settlement:
    """Write one settlement plan into the current transaction (no commit)."""
    custody_tx = None
    if plan.custody_transaction is not None:
        planned = plan.custody_transaction
        custody_tx = EmployeeBalanceTransaction(
            user_id=planned.user_id,
            amount_cents=planned.amount_cents,
            reason=planned.reason,
            reference_type=REFERENCE_SETTLEMENT,
            transaction_date=planned.transaction_date,
            created_by_user_id=planned.created_by_user_id,
        )
        db.session.add(custody_tx)
        db.session.flush()

    settlement = Settlement(
        operation_id=plan.operation_id,
        entity_id=plan.entity_id,
        amount_cents=plan.amount_cents,
        method=plan.method,
        created_by_user_id=plan.actor_id,
        custody_transaction_id=custody_tx.id if custody_tx else None,
    )
    db.session.add(settlement)
    db.session.flush()

    if custody_tx is not None:
        custody_tx.reference_id = settlement.id

    for update in plan.receivable_updates:
        row = rows_by_id.get(update.receivable_id)
        if (
            row is None
            or row.remaining_cents != update.expected_remaining_cents
            or (update.expected_version_id is not None and row.version_id != update.expected_version_id)
        ):
            raise ConcurrencyConflictError(
                f"Receivable {update.receivable_id} changed while the payment was being recorded"
            )
        row.remaining_cents = update.new_remaining_cents

    for planned in plan.payments:
        db.session.add(Payment(
            receivable_id=planned.receivable_id,
            settlement_id=settlement.id,
            amount_cents=planned.amount_cents,
            method=planned.method,
            receipt_number=planned.receipt_number,
            payment_date=planned.payment_date,
            notes=planned.notes,
            created_by_user_id=planned.created_by_user_id,
        ))

    # Version check on receivables happens here (StaleDataError on mismatch)
    db.session.flush()
    return settlement


def _user_names() -> dict[int, str]:
    return {u.id: u.display_name for u in db.session.query(User).all()}


def payment_history(entity_id: int, *, include_reversed: bool = False) -> list[dict]:
    """
    Payments made to one supplier, newest first, with the payer's name.

    Raises:
        SupplierNotFoundError: If supplier not found
    """
    get_supplier(entity_id)
    names = _user_names()

    payments = (
        db.session.query(Payment, Receivable.description)
        .join(Receivable, Payment.receivable_id == Receivable.id)
        .filter(Receivable.entity_id == entity_id)
        .all()
    )
    rows = []
    for payment, description in payments:
        row = payment.to_dict()
        row["receivable_description"] = description
        row["paid_by"] = payer_label(payment.to_snapshot(), names)
        row["is_deleted"] = False
        rows.append(row)

    if include_reversed:
        reversals = (
            db.session.query(PaymentReversal, Receivable.description)
            .join(Receivable, PaymentReversal.receivable_id == Receivable.id)
            .filter(PaymentReversal.entity_id == entity_id)
            .all()
        )
        for reversal, description in reversals:
            snapshot = reversal.to_payment_snapshot()
            rows.append({
                "id": snapshot.id,
                "receivable_id": snapshot.receivable_id,
                "amount_cents": snapshot.amount_cents,
                "method": snapshot.method,
                "receipt_number": snapshot.receipt_number,
                "payment_date": snapshot.payment_date.isoformat() if snapshot.payment_date else None,
                "notes": snapshot.notes,
                "created_by_user_id": snapshot.created_by_user_id,
                "receivable_description": description,
                "paid_by": payer_label(snapshot, names),
                "is_deleted": True,
                "reversal": reversal.to_dict(),
            })

    rows.sort(key=lambda r: (r["payment_date"] or "", r["id"]), reverse=True)
    return rows


def ledger_totals(entity_id: int) -> balances.LedgerTotals:
    """
    Invoiced, paid and outstanding totals for one supplier.

    Raises:
        SupplierNotFoundError: If supplier not found
    """
    get_supplier(entity_id)
    receivables = [
        r.to_snapshot()
        for r in db.session.query(Receivable).filter_by(entity_id=entity_id).all()
    ]
    receivable_ids = [r.id for r in receivables]
    if not receivable_ids:
        return balances.supplier_ledger_totals(entity_id, [], [])

    payments = [
        p.to_snapshot()
        for p in db.session.query(Payment).filter(Payment.receivable_id.in_(receivable_ids)).all()
    ]
    payments.extend(
        r.to_payment_snapshot()
        for r in db.session.query(PaymentReversal).filter(PaymentReversal.receivable_id.in_(receivable_ids)).all()
    )
    return balances.supplier_ledger_totals(entity_id, receivables, payments)
