# Overview: Flask API routes for supplier operations; parses input and returns JSON responses.

"""
Supplier Routes

SECURITY: All routes require authentication.
- Any staff member can view, add and edit suppliers and pay them
- Deleting a supplier and adding receivables require the admin role
"""

import uuid
from io import BytesIO

from flask import Blueprint, request, jsonify, g, current_app, send_file

from ..decorators import require_admin, require_auth
from ..services import (
    export_service,
    receivable_service,
    report_service,
    settlement_service,
    supplier_service,
)
from ..validation import amount_from_payload, coerce_cents, parse_amount_cents, parse_date_field
from payables.time_utils import today
from .errors import json_error


suppliers_bp = Blueprint("suppliers", __name__, url_prefix="/api/suppliers")


@suppliers_bp.get("")
@require_auth
def list_suppliers_route():
    """
    List suppliers with their outstanding balance.

    Query parameters:
    - search: Case-insensitive name search
    - limit: Maximum results (default: 100)
    - offset: Pagination offset (default: 0)

    Returns:
        {items: Supplier[], count, limit, offset, total_outstanding_cents}
    """
    search = request.args.get("search")
    limit = request.args.get("limit", 100, type=int)
    offset = request.args.get("offset", 0, type=int)

    # Clamp limit
    if limit < 1:
        limit = 1
    if limit > 500:
        limit = 500
    if offset < 0:
        offset = 0

    try:
        suppliers, total = supplier_service.list_suppliers(search=search, limit=limit, offset=offset)
        outstanding = supplier_service.outstanding_by_supplier([s.id for s in suppliers])

        items = []
        for supplier in suppliers:
            row = supplier.to_dict()
            row["outstanding_cents"] = outstanding.get(supplier.id, 0)
            items.append(row)

        return jsonify({
            "items": items,
            "count": total,
            "limit": limit,
            "offset": offset,
            "total_outstanding_cents": supplier_service.total_outstanding(),
        })
    except Exception as e:
        return json_error(e, "list suppliers")


@suppliers_bp.post("")
@require_auth
def create_supplier_route():
    """
    Create a new supplier.

    Request body:
    {
        "name": "Supplier Name",   // required
        "address": "...",          // required
        "phone": "...",            // optional
        "email": "..."             // optional
    }

    Contact fields may also be sent nested under "contact_info".
    """
    data = request.get_json(silent=True) or {}
    contact = data.get("contact_info") or {}

    try:
        supplier = supplier_service.create_supplier(
            actor=g.actor,
            name=data.get("name"),
            address=data.get("address", contact.get("address")),
            phone=data.get("phone", contact.get("phone")),
            email=data.get("email", contact.get("email")),
        )
        return jsonify(supplier.to_dict()), 201
    except Exception as e:
        return json_error(e, "create supplier")


@suppliers_bp.get("/<int:supplier_id>")
@require_auth
def get_supplier_route(supplier_id: int):
    """Supplier with its ledger totals."""
    try:
        supplier = supplier_service.get_supplier(supplier_id)
        row = supplier.to_dict()
        row["totals"] = settlement_service.ledger_totals(supplier_id).to_dict()
        return jsonify(row)
    except Exception as e:
        return json_error(e, "get supplier")


@suppliers_bp.put("/<int:supplier_id>")
@require_auth
def update_supplier_route(supplier_id: int):
    """
    Update a supplier.

    Request body (all fields optional; phone/email require address):
    {"name": "...", "address": "...", "phone": "...", "email": "..."}
    """
    data = request.get_json(silent=True) or {}
    contact = data.get("contact_info") or {}

    try:
        supplier = supplier_service.update_supplier(
            supplier_id,
            actor=g.actor,
            name=data.get("name"),
            address=data.get("address", contact.get("address")),
            phone=data.get("phone", contact.get("phone")),
            email=data.get("email", contact.get("email")),
        )
        return jsonify(supplier.to_dict())
    except Exception as e:
        return json_error(e, "update supplier")


@suppliers_bp.delete("/<int:supplier_id>")
@require_auth
@require_admin
def delete_supplier_route(supplier_id: int):
    """Delete a supplier with no receivables."""
    try:
        supplier_service.delete_supplier(supplier_id, actor=g.actor)
        return jsonify({"message": "Supplier deleted", "id": supplier_id})
    except Exception as e:
        return json_error(e, "delete supplier")


# =============================================================================
# RECEIVABLES
# =============================================================================

@suppliers_bp.get("/<int:supplier_id>/receivables")
@require_auth
def list_receivables_route(supplier_id: int):
    """
    Receivables of a supplier, oldest due date first.

    Query parameters:
    - open: "true" to list only receivables with a remaining balance
    """
    open_only = request.args.get("open", "false").lower() == "true"
    try:
        receivables = receivable_service.list_for_entity(supplier_id, open_only=open_only)
        return jsonify({
            "items": [r.to_dict() for r in receivables],
            "count": len(receivables),
        })
    except Exception as e:
        return json_error(e, "list receivables")


@suppliers_bp.post("/<int:supplier_id>/receivables")
@require_auth
@require_admin
def create_receivable_route(supplier_id: int):
    """
    Record a new receivable.

    Request body:
    {
        "description": "...",      // required
        "total": "1250.50",        // or "total_cents": 125050
        "due_date": "2024-06-30",  // optional
        "purchase_date": "..."     // optional, defaults to today
    }
    """
    data = request.get_json(silent=True) or {}

    try:
        if data.get("total_cents") is not None:
            total_cents = coerce_cents(data["total_cents"], "total_cents")
        else:
            total_cents = parse_amount_cents(data.get("total"), field="total")

        receivable = receivable_service.create_receivable(
            actor=g.actor,
            entity_id=supplier_id,
            description=data.get("description"),
            total_cents=total_cents,
            due_date=parse_date_field(data.get("due_date"), "due_date"),
            purchase_date=parse_date_field(data.get("purchase_date"), "purchase_date"),
        )
        return jsonify(receivable.to_dict()), 201
    except Exception as e:
        return json_error(e, "create receivable")


# =============================================================================
# LEDGER & PAYMENTS
# =============================================================================

@suppliers_bp.get("/<int:supplier_id>/ledger")
@require_auth
def supplier_ledger_route(supplier_id: int):
    """Invoiced / paid / outstanding totals, including reversed payments."""
    try:
        totals = settlement_service.ledger_totals(supplier_id)
        return jsonify({"entity_id": supplier_id, **totals.to_dict()})
    except Exception as e:
        return json_error(e, "load supplier ledger")


@suppliers_bp.get("/<int:supplier_id>/payments")
@require_auth
def supplier_payments_route(supplier_id: int):
    """
    Payment history, newest first.

    Query parameters:
    - include_reversed: "true" to include payments an administrator deleted
    """
    include_reversed = request.args.get("include_reversed", "false").lower() == "true"
    try:
        rows = settlement_service.payment_history(supplier_id, include_reversed=include_reversed)
        return jsonify({"items": rows, "count": len(rows)})
    except Exception as e:
        return json_error(e, "list supplier payments")


@suppliers_bp.post("/<int:supplier_id>/settlements")
@require_auth
def settle_supplier_route(supplier_id: int):
    """
    Pay a supplier.

    The amount is spread over the supplier's open receivables, oldest due
    date first. Non-admins pay from their custody balance.

    Request body:
    {
        "amount": "350.00",          // or "amount_cents": 35000
        "method": "cash",            // cash | transfer
        "operation_id": "..."        // idempotency key (or Idempotency-Key header)
    }

    Returns:
        201: Settlement recorded
        200: Settlement already recorded for this operation_id
        400: Invalid input
        409: Amount above outstanding balance or custody balance
    """
    data = request.get_json(silent=True) or {}
    operation_id = (
        data.get("operation_id")
        or request.headers.get("Idempotency-Key")
        or uuid.uuid4().hex
    )

    try:
        known = settlement_service.get_settlement_by_operation(operation_id) is not None
        settlement = settlement_service.settle(
            entity_id=supplier_id,
            actor=g.actor,
            amount_cents=amount_from_payload(data),
            method=data.get("method") or "cash",
            operation_id=str(operation_id),
            attempts=current_app.config.get("SETTLEMENT_RETRY_ATTEMPTS", 3),
        )
        return jsonify(settlement.to_dict()), 200 if known else 201
    except Exception as e:
        return json_error(e, "record settlement")


@suppliers_bp.get("/<int:supplier_id>/export.xlsx")
@require_auth
def export_supplier_statement_route(supplier_id: int):
    """Supplier statement workbook (Summary, Receivables, Payments)."""
    try:
        report_date = today()
        supplier, sheets = report_service.supplier_statement(supplier_id, report_date=report_date)
        content = export_service.sheets_to_xlsx(
            sheets,
            title=f"{supplier.name} statement",
            right_to_left=current_app.config.get("EXPORT_RIGHT_TO_LEFT", False),
        )
        return send_file(
            BytesIO(content),
            as_attachment=True,
            download_name=f"supplier-{supplier_id}-statement-{report_date.isoformat()}.xlsx",
            mimetype=export_service.XLSX_MIMETYPE,
        )
    except Exception as e:
        return json_error(e, "export supplier statement")
