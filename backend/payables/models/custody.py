from __future__ import annotations

from ..extensions import db
from ..engine.snapshots import BalanceTransactionSnapshot, TX_CREDIT, TX_DEBIT
from payables.time_utils import to_utc_z

class EmployeeBalanceTransaction(db.Model):
    """
    One movement of an employee's cash custody.

    amount_cents is signed: positive = custody handed to the employee,
    negative = custody spent (supplier payment) or recovered. The sign is the
    only source of truth for direction; `type` is derived from it.

    There is no stored balance. An employee's custody balance is always the
    sum of their rows.

    IMMUTABLE: Never update or delete. Corrections are new rows.
    """
    __tablename__ = "employee_balance_transactions"
    __table_args__ = (
        db.CheckConstraint("amount_cents <> 0", name="ck_balance_tx_nonzero"),
        db.Index("ix_balance_tx_user_date", "user_id", "transaction_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    amount_cents = db.Column(db.Integer, nullable=False)
    reason = db.Column(db.String(512), nullable=False, default="")

    # What caused this row: settlement, payment_reversal, adjustment
    reference_type = db.Column(db.String(32), nullable=True, index=True)
    reference_id = db.Column(db.Integer, nullable=True)

    transaction_date = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    user = db.relationship("User", foreign_keys=[user_id], backref=db.backref("custody_transactions", lazy=True))
    created_by = db.relationship("User", foreign_keys=[created_by_user_id])

    @property
    def type(self) -> str:
        return TX_CREDIT if self.amount_cents > 0 else TX_DEBIT

    def to_snapshot(self) -> BalanceTransactionSnapshot:
        return BalanceTransactionSnapshot(
            id=self.id,
            user_id=self.user_id,
            amount_cents=self.amount_cents,
            reason=self.reason,
            transaction_date=self.transaction_date,
            created_by_user_id=self.created_by_user_id,
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "amount_cents": self.amount_cents,
            "type": self.type,
            "reason": self.reason,
            "reference_type": self.reference_type,
            "reference_id": self.reference_id,
            "transaction_date": to_utc_z(self.transaction_date),
            "created_by_user_id": self.created_by_user_id,
            "created_by_name": self.created_by.display_name if self.created_by else None,
            "created_at": to_utc_z(self.created_at),
        }
