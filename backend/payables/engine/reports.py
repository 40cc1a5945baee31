# Overview: Report row projection; flattens ledger snapshots into named sheets for export.

"""
Report Projection

Produces an ordered list of Sheet objects (name, header, rows of primitive
values). Every money cell is a Decimal rounded to 2 places, half-up. The
spreadsheet writer in services/export_service.py consumes these; nothing
here depends on the output format.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Iterable, Mapping, Optional

from .balances import (
    custody_balances,
    open_receivables,
    outstanding_for_entity,
    supplier_ledger_totals,
    total_outstanding,
)
from .settlement import METHOD_LABELS
from .snapshots import (
    ENTITY_TYPE_SUPPLIER,
    BalanceTransactionSnapshot,
    EntitySnapshot,
    PaymentSnapshot,
    ReceivableSnapshot,
)


TWO_PLACES = Decimal("0.01")
LEGACY_PAYER = "Legacy payment"


@dataclass
class Sheet:
    name: str
    header: list[str]
    rows: list[list[Any]] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "header": list(self.header),
            "rows": [[_jsonable(c) for c in row] for row in self.rows],
        }


def _jsonable(value: Any) -> Any:
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, date):
        return value.isoformat()
    return value


def round_money(value) -> Decimal:
    """Round any numeric value to 2 decimal places, half-up."""
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def cents_to_amount(cents: int) -> Decimal:
    return round_money(Decimal(cents) / 100)


def payer_label(payment: PaymentSnapshot, user_names: Mapping[int, str]) -> str:
    """
    Display name of whoever recorded a payment.

    Older payments carry the payer only inside their notes
    ("Supplier payment: <supplier> - <payer>").
    """
    if payment.created_by_user_id is not None and payment.created_by_user_id in user_names:
        return user_names[payment.created_by_user_id]
    if payment.notes and " - " in payment.notes:
        return payment.notes.split(" - ", 1)[1] or LEGACY_PAYER
    return LEGACY_PAYER


def supplier_statement_sheets(
    entity: EntitySnapshot,
    receivables: Iterable[ReceivableSnapshot],
    payments: Iterable[PaymentSnapshot],
    user_names: Mapping[int, str],
    report_date: date,
) -> list[Sheet]:
    """Summary, open receivables and payment history for one supplier."""
    receivables = list(receivables)
    payments = list(payments)
    totals = supplier_ledger_totals(entity.id, receivables, payments)

    summary = Sheet(
        name="Summary",
        header=["Item", "Value"],
        rows=[
            ["Supplier", entity.name],
            ["Report date", report_date],
            ["Total invoiced", cents_to_amount(totals.total_invoiced_cents)],
            ["Paid", cents_to_amount(totals.actual_paid_cents)],
            ["Outstanding", cents_to_amount(totals.outstanding_cents)],
        ],
    )

    open_rows = Sheet(
        name="Receivables",
        header=["Description", "Due date", "Total", "Remaining"],
        rows=[
            [r.description, r.due_date, cents_to_amount(r.total_cents), cents_to_amount(r.remaining_cents)]
            for r in open_receivables(entity.id, receivables)
        ],
    )

    receivable_ids = {r.id for r in receivables if r.entity_id == entity.id}
    history = [p for p in payments if p.receivable_id in receivable_ids and not p.is_deleted]
    history.sort(key=lambda p: (p.payment_date or date.min, p.id), reverse=True)

    payment_rows = Sheet(
        name="Payments",
        header=["Date", "Amount", "Receipt", "Paid by"],
        rows=[
            [p.payment_date, cents_to_amount(p.amount_cents), p.receipt_number or "", payer_label(p, user_names)]
            for p in history
        ],
    )
    return [summary, open_rows, payment_rows]


def master_report_sheets(
    entities: Iterable[EntitySnapshot],
    receivables: Iterable[ReceivableSnapshot],
    payments: Iterable[PaymentSnapshot],
    transactions: Iterable[BalanceTransactionSnapshot],
    user_names: Mapping[int, str],
    report_date: Optional[date] = None,
) -> list[Sheet]:
    """Suppliers, Receivables, Payments, Custody and Summary sheets for the whole book."""
    entities = [e for e in entities if e.type == ENTITY_TYPE_SUPPLIER]
    receivables = list(receivables)
    payments = list(payments)
    transactions = list(transactions)

    names_by_entity = {e.id: e.name for e in entities}
    entity_by_receivable = {r.id: r.entity_id for r in receivables}

    suppliers = Sheet(
        name="Suppliers",
        header=["Supplier ID", "Name", "Address", "Phone", "Email", "Outstanding"],
        rows=[
            [
                e.id,
                e.name,
                e.address or "",
                e.phone or "",
                e.email or "",
                cents_to_amount(outstanding_for_entity(e.id, receivables)),
            ]
            for e in sorted(entities, key=lambda e: e.name.lower())
        ],
    )

    receivable_sheet = Sheet(
        name="Receivables",
        header=["Receivable ID", "Supplier", "Description", "Due date", "Total", "Remaining"],
        rows=[
            [
                r.id,
                names_by_entity.get(r.entity_id, ""),
                r.description,
                r.due_date,
                cents_to_amount(r.total_cents),
                cents_to_amount(r.remaining_cents),
            ]
            for r in receivables
            if r.entity_id in names_by_entity
        ],
    )

    payment_sheet = Sheet(
        name="Payments",
        header=["Payment ID", "Supplier", "Receivable ID", "Date", "Amount", "Method", "Paid by", "Status"],
        rows=[
            [
                p.id,
                names_by_entity.get(entity_by_receivable.get(p.receivable_id), ""),
                p.receivable_id,
                p.payment_date,
                cents_to_amount(p.amount_cents),
                METHOD_LABELS.get(p.method, p.method),
                payer_label(p, user_names),
                "Deleted" if p.is_deleted else "Recorded",
            ]
            for p in payments
        ],
    )

    balances = custody_balances(transactions)
    custody_sheet = Sheet(
        name="Custody",
        header=["Employee", "Balance"],
        rows=[
            [user_names.get(user_id, f"User {user_id}"), cents_to_amount(balance)]
            for user_id, balance in sorted(balances.items())
        ],
    )

    total_invoiced = 0
    total_paid = 0
    for e in entities:
        t = supplier_ledger_totals(e.id, receivables, payments)
        total_invoiced += t.total_invoiced_cents
        total_paid += t.actual_paid_cents

    summary_rows: list[list[Any]] = []
    if report_date is not None:
        summary_rows.append(["Report date", report_date])
    summary_rows.extend([
        ["Suppliers", len(entities)],
        ["Total invoiced", cents_to_amount(total_invoiced)],
        ["Total paid", cents_to_amount(total_paid)],
        ["Total outstanding", cents_to_amount(total_outstanding(entities, receivables))],
        ["Total custody held", cents_to_amount(sum(balances.values()))],
    ])
    summary = Sheet(name="Summary", header=["Item", "Details"], rows=summary_rows)

    return [suppliers, receivable_sheet, payment_sheet, custody_sheet, summary]
