from __future__ import annotations

from ..extensions import db
from ..engine.snapshots import ENTITY_TYPE_SUPPLIER, EntitySnapshot, ReceivableSnapshot
from payables.time_utils import to_utc_z, to_iso_date

class Entity(db.Model):
    """
    Counterparty tracked for payables (always a supplier today).

    Contact info is kept as plain columns; address is required by the
    supplier form, phone and email are optional.
    """
    __tablename__ = "entities"
    __table_args__ = (
        db.Index("ix_entities_type_name", "type", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    type = db.Column(db.String(32), nullable=False, default=ENTITY_TYPE_SUPPLIER, index=True)

    address = db.Column(db.String(512), nullable=True)
    phone = db.Column(db.String(64), nullable=True)
    email = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def __repr__(self) -> str:
        return f"<Entity id={self.id} name={self.name!r} type={self.type}>"

    def to_snapshot(self) -> EntitySnapshot:
        return EntitySnapshot(
            id=self.id,
            name=self.name,
            type=self.type,
            address=self.address,
            phone=self.phone,
            email=self.email,
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "contact_info": {
                "address": self.address,
                "phone": self.phone,
                "email": self.email,
            },
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class Receivable(db.Model):
    """
    An amount the business owes a supplier.

    INVARIANT: 0 <= remaining_cents <= total_cents (enforced by a check constraint).
    remaining_cents only goes down through settlements and back up through
    payment reversals or admin edits.

    CONCURRENCY: version_id is the optimistic lock. Two sessions settling
    against the same receivable cannot both write from the same snapshot;
    the second UPDATE matches no row and raises StaleDataError.
    """
    __tablename__ = "receivables"
    __table_args__ = (
        db.CheckConstraint(
            "remaining_cents >= 0 AND remaining_cents <= total_cents",
            name="ck_receivables_remaining_range",
        ),
        db.Index("ix_receivables_entity_due", "entity_id", "due_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    entity_id = db.Column(db.Integer, db.ForeignKey("entities.id"), nullable=False, index=True)

    description = db.Column(db.String(512), nullable=False)

    # Authoritative storage in cents (frontend may only format for display)
    total_cents = db.Column(db.Integer, nullable=False)
    remaining_cents = db.Column(db.Integer, nullable=False)

    due_date = db.Column(db.Date, nullable=True, index=True)
    purchase_date = db.Column(db.Date, nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    entity = db.relationship("Entity", backref=db.backref("receivables", lazy=True))
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Receivable id={self.id} entity_id={self.entity_id} remaining={self.remaining_cents}/{self.total_cents}>"

    def to_snapshot(self) -> ReceivableSnapshot:
        return ReceivableSnapshot(
            id=self.id,
            entity_id=self.entity_id,
            description=self.description,
            total_cents=self.total_cents,
            remaining_cents=self.remaining_cents,
            due_date=self.due_date,
            version_id=self.version_id,
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "entity_id": self.entity_id,
            "description": self.description,
            "total_cents": self.total_cents,
            "remaining_cents": self.remaining_cents,
            "due_date": to_iso_date(self.due_date),
            "purchase_date": to_iso_date(self.purchase_date),
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
