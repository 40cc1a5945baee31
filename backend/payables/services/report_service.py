# Overview: Service-layer operations for reporting; encapsulates business logic and database work.

from __future__ import annotations

from datetime import date

from ..extensions import db
from ..models import (
    EmployeeBalanceTransaction,
    Entity,
    Payment,
    PaymentReversal,
    Receivable,
    User,
)
from ..engine.reports import Sheet, master_report_sheets, supplier_statement_sheets
from payables.time_utils import today
from .supplier_service import get_supplier


def _user_names() -> dict[int, str]:
    return {u.id: u.display_name for u in db.session.query(User).all()}


def supplier_statement(entity_id: int, *, report_date: date | None = None) -> tuple[Entity, list[Sheet]]:
    """
    Summary, open receivables and payment history for one supplier.

    Raises:
        SupplierNotFoundError: If supplier not found
    """
    supplier = get_supplier(entity_id)
    receivables = db.session.query(Receivable).filter_by(entity_id=entity_id).all()
    receivable_ids = [r.id for r in receivables]

    payments = []
    if receivable_ids:
        payments = [
            p.to_snapshot()
            for p in db.session.query(Payment).filter(Payment.receivable_id.in_(receivable_ids)).all()
        ]

    sheets = supplier_statement_sheets(
        supplier.to_snapshot(),
        [r.to_snapshot() for r in receivables],
        payments,
        _user_names(),
        report_date or today(),
    )
    return supplier, sheets


def master_report(*, report_date: date | None = None) -> list[Sheet]:
    """Every supplier, receivable, payment (reversed ones included) and custody balance."""
    payments = [p.to_snapshot() for p in db.session.query(Payment).order_by(Payment.id).all()]
    payments.extend(
        r.to_payment_snapshot()
        for r in db.session.query(PaymentReversal).order_by(PaymentReversal.payment_id).all()
    )
    payments.sort(key=lambda p: p.id)

    return master_report_sheets(
        [e.to_snapshot() for e in db.session.query(Entity).all()],
        [r.to_snapshot() for r in db.session.query(Receivable).order_by(Receivable.id).all()],
        payments,
        [t.to_snapshot() for t in db.session.query(EmployeeBalanceTransaction).all()],
        _user_names(),
        report_date=report_date or today(),
    )
