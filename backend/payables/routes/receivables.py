# Overview: Flask API routes for receivable operations; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g

from ..decorators import require_admin, require_auth
from ..services import receivable_service
from ..validation import coerce_cents, parse_amount_cents, parse_date_field
from .errors import json_error


receivables_bp = Blueprint("receivables", __name__, url_prefix="/api/receivables")


@receivables_bp.get("/<int:receivable_id>")
@require_auth
def get_receivable_route(receivable_id: int):
    try:
        receivable = receivable_service.get_receivable(receivable_id)
        return jsonify(receivable.to_dict())
    except Exception as e:
        return json_error(e, "get receivable")


@receivables_bp.put("/<int:receivable_id>")
@require_auth
@require_admin
def update_receivable_route(receivable_id: int):
    """
    Edit a receivable.

    Request body (all fields optional):
    {
        "description": "...",
        "total": "900.00",        // or "total_cents"; remaining shifts by the same difference
        "due_date": "2024-07-01"  // null clears the due date
    }
    """
    data = request.get_json(silent=True) or {}

    try:
        total_cents = None
        if data.get("total_cents") is not None:
            total_cents = coerce_cents(data["total_cents"], "total_cents")
        elif data.get("total") is not None:
            total_cents = parse_amount_cents(data["total"], field="total")

        receivable = receivable_service.update_receivable(
            receivable_id,
            actor=g.actor,
            description=data.get("description"),
            total_cents=total_cents,
            due_date=parse_date_field(data.get("due_date"), "due_date"),
            clear_due_date="due_date" in data and not data.get("due_date"),
        )
        return jsonify(receivable.to_dict())
    except Exception as e:
        return json_error(e, "update receivable")


@receivables_bp.delete("/<int:receivable_id>")
@require_auth
@require_admin
def delete_receivable_route(receivable_id: int):
    """Delete a receivable that has no payments."""
    try:
        receivable_service.delete_receivable(receivable_id, actor=g.actor)
        return jsonify({"message": "Receivable deleted", "id": receivable_id})
    except Exception as e:
        return json_error(e, "delete receivable")
