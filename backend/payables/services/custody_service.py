# Overview: Service-layer operations for employee custody; encapsulates business logic and database work.

"""
Custody Service

WHY: Employees pay suppliers out of cash the business hands them. The
custody ledger tracks how much each employee is holding.

RULES:
- The balance is never stored; it is the sum of the employee's transactions
- Positive amounts are advances (credit), negative amounts are spending or
  recovery (debit). The sign decides; a type tag that disagrees is rejected
- Only administrators record manual custody movements
"""

from __future__ import annotations

import logging

from sqlalchemy import func

from ..extensions import db
from ..models import EmployeeBalanceTransaction, User
from ..engine import balances
from ..engine.errors import AuthorizationError, ValidationError
from ..engine.snapshots import Actor, TX_CREDIT, TX_DEBIT
from ..validation import MAX_AMOUNT_CENTS, require_text
from payables.time_utils import utcnow
from .audit_service import log_action
from .concurrency import lock_for_update


logger = logging.getLogger(__name__)

REFERENCE_ADJUSTMENT = "adjustment"
REFERENCE_SETTLEMENT = "settlement"
REFERENCE_PAYMENT_REVERSAL = "payment_reversal"


class UserNotFoundError(Exception):
    """Raised when the custody holder does not exist."""
    pass


def _get_user(user_id: int) -> User:
    user = db.session.query(User).filter_by(id=user_id).first()
    if not user:
        raise UserNotFoundError(f"User {user_id} not found")
    return user


def lock_holder(user_id: int) -> User:
    """
    Lock the custody holder's user row until the transaction ends.

    Writers that check the derived balance before appending to it take this
    lock first, so two of them cannot both spend the same balance.
    """
    user = lock_for_update(db.session.query(User).filter_by(id=user_id)).first()
    if not user:
        raise UserNotFoundError(f"User {user_id} not found")
    return user


def get_balance(user_id: int) -> int:
    """Current custody balance in cents. May be negative."""
    total = (
        db.session.query(func.coalesce(func.sum(EmployeeBalanceTransaction.amount_cents), 0))
        .filter(EmployeeBalanceTransaction.user_id == user_id)
        .scalar()
    )
    return int(total or 0)


def list_transactions(user_id: int, *, limit: int = 200, offset: int = 0) -> list[EmployeeBalanceTransaction]:
    """Newest first."""
    _get_user(user_id)
    return (
        db.session.query(EmployeeBalanceTransaction)
        .filter(EmployeeBalanceTransaction.user_id == user_id)
        .order_by(EmployeeBalanceTransaction.transaction_date.desc(), EmployeeBalanceTransaction.id.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )


def list_balances(*, include_inactive: bool = False) -> list[dict]:
    """
    Custody balance of every employee, ordered by name.

    Employees with no transactions are listed with a zero balance.
    """
    query = db.session.query(User)
    if not include_inactive:
        query = query.filter(User.is_active.is_(True))
    users = query.order_by(User.full_name.asc(), User.username.asc()).all()

    snapshots = [t.to_snapshot() for t in db.session.query(EmployeeBalanceTransaction).all()]
    by_user = balances.custody_balances(snapshots)

    return [
        {
            "user_id": u.id,
            "username": u.username,
            "full_name": u.display_name,
            "role": u.role,
            "balance_cents": by_user.get(u.id, 0),
        }
        for u in users
    ]


def record_transaction(
    *,
    actor: Actor,
    user_id: int,
    amount_cents: int,
    reason: str,
    type: str | None = None,
) -> EmployeeBalanceTransaction:
    """
    Advance custody to an employee (positive) or recover it (negative).

    Args:
        actor: Administrator recording the movement
        user_id: Employee whose custody changes
        amount_cents: Signed amount; zero is rejected
        reason: Free-text explanation shown in the history
        type: Optional "credit"/"debit" tag; must agree with the sign

    Raises:
        AuthorizationError: If actor is not an administrator
        UserNotFoundError: If the employee does not exist
        ValidationError: Zero amount, missing reason, or mismatched type
    """
    if not actor.is_admin:
        raise AuthorizationError("Only administrators can record custody transactions")

    if isinstance(amount_cents, bool) or not isinstance(amount_cents, int):
        raise ValidationError("amount must be an integer number of cents")
    if amount_cents == 0:
        raise ValidationError("amount must be non-zero")
    if abs(amount_cents) > MAX_AMOUNT_CENTS:
        raise ValidationError(f"amount cannot exceed {MAX_AMOUNT_CENTS / 100:,.2f}")

    if type is not None:
        if type not in (TX_CREDIT, TX_DEBIT):
            raise ValidationError(f"Invalid transaction type: {type}")
        expected = TX_CREDIT if amount_cents > 0 else TX_DEBIT
        if type != expected:
            raise ValidationError(f"type '{type}' does not match the sign of the amount")

    reason = require_text(reason, "reason", max_length=512)
    user = lock_holder(user_id)

    tx = EmployeeBalanceTransaction(
        user_id=user.id,
        amount_cents=amount_cents,
        reason=reason,
        reference_type=REFERENCE_ADJUSTMENT,
        transaction_date=utcnow(),
        created_by_user_id=actor.id,
    )
    db.session.add(tx)
    db.session.flush()

    log_action(
        user_id=actor.id,
        action_type="custody_transaction_created",
        entity_type="employee_balance_transaction",
        entity_id=tx.id,
        details={"user_id": user.id, "amount_cents": amount_cents, "type": tx.type},
    )

    db.session.commit()
    logger.info("Custody %s of %s cents recorded for user %s", tx.type, amount_cents, user.id)
    return tx
