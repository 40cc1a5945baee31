from __future__ import annotations

from ..extensions import db
from ..engine.snapshots import PaymentSnapshot
from payables.time_utils import to_utc_z, to_iso_date

class Settlement(db.Model):
    """
    One supplier payment as entered by a user, before allocation.

    IDEMPOTENCY: operation_id is generated by the client per submission.
    Re-submitting the same operation_id returns this row instead of paying
    the supplier twice.
    """
    __tablename__ = "settlements"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    operation_id = db.Column(db.String(64), nullable=False, unique=True, index=True)

    entity_id = db.Column(db.Integer, db.ForeignKey("entities.id"), nullable=False, index=True)
    amount_cents = db.Column(db.Integer, nullable=False)
    method = db.Column(db.String(16), nullable=False)

    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    # Null when the payer was an administrator (no custody debit)
    custody_transaction_id = db.Column(
        db.Integer, db.ForeignKey("employee_balance_transactions.id"), nullable=True
    )

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    entity = db.relationship("Entity", backref=db.backref("settlements", lazy=True))
    created_by = db.relationship("User", foreign_keys=[created_by_user_id])
    custody_transaction = db.relationship("EmployeeBalanceTransaction", foreign_keys=[custody_transaction_id])

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "operation_id": self.operation_id,
            "entity_id": self.entity_id,
            "amount_cents": self.amount_cents,
            "method": self.method,
            "created_by_user_id": self.created_by_user_id,
            "custody_transaction_id": self.custody_transaction_id,
            "created_at": to_utc_z(self.created_at),
            "payments": [p.to_dict() for p in self.payments],
        }


class Payment(db.Model):
    """
    Money applied to one receivable.

    A settlement produces one Payment per receivable it touched. Payments are
    removed only by an administrator through the reversal service, which
    leaves a PaymentReversal row behind.
    """
    __tablename__ = "payments"
    __table_args__ = (
        db.CheckConstraint("amount_cents > 0", name="ck_payments_amount_positive"),
        db.Index("ix_payments_receivable_date", "receivable_id", "payment_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    receivable_id = db.Column(db.Integer, db.ForeignKey("receivables.id"), nullable=False, index=True)
    # Null for payments recorded before settlements existed
    settlement_id = db.Column(db.Integer, db.ForeignKey("settlements.id"), nullable=True, index=True)

    amount_cents = db.Column(db.Integer, nullable=False)
    method = db.Column(db.String(16), nullable=False)
    receipt_number = db.Column(db.String(128), nullable=True)
    payment_date = db.Column(db.Date, nullable=True, index=True)
    notes = db.Column(db.Text, nullable=True)

    # Attribution: the employee whose custody paid for this
    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    receivable = db.relationship("Receivable", backref=db.backref("payments", lazy=True))
    settlement = db.relationship("Settlement", backref=db.backref("payments", lazy=True))
    created_by = db.relationship("User", foreign_keys=[created_by_user_id])

    def to_snapshot(self) -> PaymentSnapshot:
        return PaymentSnapshot(
            id=self.id,
            receivable_id=self.receivable_id,
            amount_cents=self.amount_cents,
            method=self.method,
            created_by_user_id=self.created_by_user_id,
            payment_date=self.payment_date,
            receipt_number=self.receipt_number,
            notes=self.notes,
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "receivable_id": self.receivable_id,
            "settlement_id": self.settlement_id,
            "amount_cents": self.amount_cents,
            "method": self.method,
            "receipt_number": self.receipt_number,
            "payment_date": to_iso_date(self.payment_date),
            "notes": self.notes,
            "created_by_user_id": self.created_by_user_id,
            "created_at": to_utc_z(self.created_at),
        }


class PaymentReversal(db.Model):
    """
    Record of a payment an administrator deleted.

    Carries a copy of the deleted payment so audit totals can still show it,
    plus the receivable and custody effects of the reversal.

    IMMUTABLE: Never update or delete.
    """
    __tablename__ = "payment_reversals"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    operation_id = db.Column(db.String(64), nullable=False, unique=True, index=True)

    # Id of the deleted payment (no FK; the row is gone)
    payment_id = db.Column(db.Integer, nullable=False, unique=True, index=True)
    receivable_id = db.Column(db.Integer, db.ForeignKey("receivables.id"), nullable=False, index=True)
    entity_id = db.Column(db.Integer, db.ForeignKey("entities.id"), nullable=False, index=True)

    amount_cents = db.Column(db.Integer, nullable=False)
    method = db.Column(db.String(16), nullable=False)
    receipt_number = db.Column(db.String(128), nullable=True)
    payment_date = db.Column(db.Date, nullable=True)
    notes = db.Column(db.Text, nullable=True)

    payer_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)
    reversed_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    custody_transaction_id = db.Column(
        db.Integer, db.ForeignKey("employee_balance_transactions.id"), nullable=True
    )

    remaining_before_cents = db.Column(db.Integer, nullable=False)
    remaining_after_cents = db.Column(db.Integer, nullable=False)
    reason = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    receivable = db.relationship("Receivable", backref=db.backref("reversals", lazy=True))
    payer = db.relationship("User", foreign_keys=[payer_user_id])
    reversed_by = db.relationship("User", foreign_keys=[reversed_by_user_id])

    def to_payment_snapshot(self) -> PaymentSnapshot:
        return PaymentSnapshot(
            id=self.payment_id,
            receivable_id=self.receivable_id,
            amount_cents=self.amount_cents,
            method=self.method,
            created_by_user_id=self.payer_user_id,
            payment_date=self.payment_date,
            receipt_number=self.receipt_number,
            notes=self.notes,
            is_deleted=True,
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "operation_id": self.operation_id,
            "payment_id": self.payment_id,
            "receivable_id": self.receivable_id,
            "entity_id": self.entity_id,
            "amount_cents": self.amount_cents,
            "method": self.method,
            "payer_user_id": self.payer_user_id,
            "reversed_by_user_id": self.reversed_by_user_id,
            "custody_transaction_id": self.custody_transaction_id,
            "remaining_before_cents": self.remaining_before_cents,
            "remaining_after_cents": self.remaining_after_cents,
            "reason": self.reason,
            "created_at": to_utc_z(self.created_at),
        }
