# Overview: Service-layer operations for receivables; encapsulates business logic and database work.

"""
Receivable Service

WHY: Receivables are what the business owes a supplier. Settlements pay
them down; only administrators create, edit or remove them.

RULES:
- A new receivable starts fully open (remaining = total)
- Editing the total shifts remaining by the same difference; an edit that
  would leave remaining below zero is rejected
- A receivable that already has payments cannot be deleted
"""

from __future__ import annotations

from datetime import date

from ..extensions import db
from ..models import Payment, PaymentReversal, Receivable
from ..engine import balances
from ..engine.errors import AuthorizationError, LedgerError, ValidationError
from ..engine.snapshots import Actor
from ..validation import ConflictError, MAX_AMOUNT_CENTS, require_text
from payables.time_utils import today
from .audit_service import log_action
from .concurrency import lock_for_update, run_with_retry
from .supplier_service import get_supplier


class ReceivableNotFoundError(Exception):
    """Raised when a receivable is not found."""
    pass


def _require_admin(actor: Actor, action: str) -> None:
    if not actor.is_admin:
        raise AuthorizationError(f"Only administrators can {action} receivables")


def _check_total(total_cents: int) -> int:
    if isinstance(total_cents, bool) or not isinstance(total_cents, int):
        raise ValidationError("total must be an integer number of cents")
    if total_cents <= 0:
        raise ValidationError("total must be positive")
    if total_cents > MAX_AMOUNT_CENTS:
        raise ValidationError(f"total cannot exceed {MAX_AMOUNT_CENTS / 100:,.2f}")
    return total_cents


def create_receivable(
    *,
    actor: Actor,
    entity_id: int,
    description: str,
    total_cents: int,
    due_date: date | None = None,
    purchase_date: date | None = None,
) -> Receivable:
    """
    Record a new amount owed to a supplier.

    Raises:
        AuthorizationError: If actor is not an administrator
        SupplierNotFoundError: If supplier not found
        ValidationError: If description or total is invalid
    """
    _require_admin(actor, "create")
    supplier = get_supplier(entity_id)

    description = require_text(description, "description", max_length=512)
    total_cents = _check_total(total_cents)

    receivable = Receivable(
        entity_id=supplier.id,
        description=description,
        total_cents=total_cents,
        remaining_cents=total_cents,
        due_date=due_date,
        purchase_date=purchase_date or today(),
    )
    db.session.add(receivable)
    db.session.flush()

    log_action(
        user_id=actor.id,
        action_type="receivable_created",
        entity_type="receivable",
        entity_id=receivable.id,
        details={"entity_id": supplier.id, "total_cents": total_cents},
    )

    db.session.commit()
    return receivable


def update_receivable(
    receivable_id: int,
    *,
    actor: Actor,
    description: str | None = None,
    total_cents: int | None = None,
    due_date: date | None = None,
    clear_due_date: bool = False,
) -> Receivable:
    """
    Edit a receivable.

    A total change moves remaining by the same difference, so money already
    paid stays paid.

    Raises:
        AuthorizationError: If actor is not an administrator
        ReceivableNotFoundError: If receivable not found
        ValidationError: If the new total would leave remaining below zero
    """
    _require_admin(actor, "edit")

    def _op():
        receivable = lock_for_update(
            db.session.query(Receivable).filter_by(id=receivable_id)
        ).first()
        if not receivable:
            raise ReceivableNotFoundError(f"Receivable {receivable_id} not found")

        before = {
            "description": receivable.description,
            "total_cents": receivable.total_cents,
            "remaining_cents": receivable.remaining_cents,
            "due_date": receivable.due_date.isoformat() if receivable.due_date else None,
        }

        if description is not None:
            receivable.description = require_text(description, "description", max_length=512)

        if total_cents is not None:
            new_total = _check_total(total_cents)
            new_remaining = receivable.remaining_cents + (new_total - receivable.total_cents)
            if new_remaining < 0:
                raise ValidationError(
                    f"New total is less than the {receivable.total_cents - receivable.remaining_cents} cents already paid"
                )
            receivable.total_cents = new_total
            receivable.remaining_cents = new_remaining

        if clear_due_date:
            receivable.due_date = None
        elif due_date is not None:
            receivable.due_date = due_date

        db.session.flush()

        log_action(
            user_id=actor.id,
            action_type="receivable_updated",
            entity_type="receivable",
            entity_id=receivable.id,
            details={
                "before": before,
                "after": {
                    "description": receivable.description,
                    "total_cents": receivable.total_cents,
                    "remaining_cents": receivable.remaining_cents,
                    "due_date": receivable.due_date.isoformat() if receivable.due_date else None,
                },
            },
        )

        db.session.commit()
        return receivable

    try:
        return run_with_retry(_op)
    except LedgerError:
        db.session.rollback()
        raise


def delete_receivable(receivable_id: int, *, actor: Actor) -> None:
    """
    Remove a receivable that has never been paid against.

    Raises:
        AuthorizationError: If actor is not an administrator
        ReceivableNotFoundError: If receivable not found
        ConflictError: If payments exist for the receivable
    """
    _require_admin(actor, "delete")

    receivable = get_receivable(receivable_id)
    if db.session.query(Payment.id).filter_by(receivable_id=receivable_id).first():
        raise ConflictError("Receivable has payments; delete the payments first")
    # Reversed payments stay on the ledger
    if db.session.query(PaymentReversal.id).filter_by(receivable_id=receivable_id).first():
        raise ConflictError("Receivable has payment history and cannot be deleted")

    log_action(
        user_id=actor.id,
        action_type="receivable_deleted",
        entity_type="receivable",
        entity_id=receivable.id,
        details={
            "entity_id": receivable.entity_id,
            "description": receivable.description,
            "total_cents": receivable.total_cents,
        },
    )
    db.session.delete(receivable)
    db.session.commit()


def get_receivable(receivable_id: int) -> Receivable:
    receivable = db.session.query(Receivable).filter_by(id=receivable_id).first()
    if not receivable:
        raise ReceivableNotFoundError(f"Receivable {receivable_id} not found")
    return receivable


def list_for_entity(entity_id: int, *, open_only: bool = False) -> list[Receivable]:
    """
    Receivables of one supplier, oldest due date first (undated last).

    Raises:
        SupplierNotFoundError: If supplier not found
    """
    get_supplier(entity_id)
    rows = db.session.query(Receivable).filter_by(entity_id=entity_id).all()
    by_id = {r.id: r for r in rows}
    snapshots = [r.to_snapshot() for r in rows]

    if open_only:
        ordered = balances.open_receivables(entity_id, snapshots)
    else:
        ordered = balances.sort_by_due_date(snapshots)
    return [by_id[s.id] for s in ordered]
