from __future__ import annotations

from ..extensions import db
from payables.time_utils import to_utc_z

class AuditLog(db.Model):
    """
    Audit trail for sensitive actions (payment deletion, custody movements,
    supplier and receivable edits).

    WHY: Traceability. A payment deletion writes an "attempted" row before
    anything changes and a "success" or "failed" row afterwards, so a crash
    in between still leaves evidence.

    IMMUTABLE: Never update or delete. Append-only for audit integrity.
    """
    __tablename__ = "audit_logs"
    __table_args__ = (
        db.Index("ix_audit_logs_entity", "entity_type", "entity_id"),
        db.Index("ix_audit_logs_user_action", "user_id", "action_type"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)

    # Event classification
    action_type = db.Column(db.String(64), nullable=False, index=True)  # payment_deleted, payment_created, ...
    entity_type = db.Column(db.String(64), nullable=False)               # payment, receivable, entity, custody
    entity_id = db.Column(db.Integer, nullable=True)

    status = db.Column(db.String(16), nullable=False, index=True)  # attempted, success, failed

    details = db.Column(db.JSON, nullable=True)
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    user = db.relationship("User", backref=db.backref("audit_logs", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "action_type": self.action_type,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "status": self.status,
            "details": self.details,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
        }
