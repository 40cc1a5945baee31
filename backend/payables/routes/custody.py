# Overview: Flask API routes for employee custody; parses input and returns JSON responses.

"""
Custody Routes

- Every user can see their own custody balance and history
- Administrators see everyone's and record advances/recoveries
"""

from flask import Blueprint, request, jsonify, g

from ..decorators import require_admin, require_auth
from ..services import custody_service
from ..validation import amount_from_payload
from .errors import json_error


custody_bp = Blueprint("custody", __name__, url_prefix="/api/custody")


def _history_response(user_id: int):
    limit = request.args.get("limit", 200, type=int)
    offset = request.args.get("offset", 0, type=int)
    limit = min(max(limit, 1), 1000)
    offset = max(offset, 0)

    transactions = custody_service.list_transactions(user_id, limit=limit, offset=offset)
    return jsonify({
        "user_id": user_id,
        "balance_cents": custody_service.get_balance(user_id),
        "items": [t.to_dict() for t in transactions],
        "limit": limit,
        "offset": offset,
    })


@custody_bp.get("/me")
@require_auth
def my_balance_route():
    user = g.current_user
    return jsonify({
        "user_id": user.id,
        "full_name": user.display_name,
        "balance_cents": custody_service.get_balance(user.id),
    })


@custody_bp.get("/me/transactions")
@require_auth
def my_transactions_route():
    try:
        return _history_response(g.current_user.id)
    except Exception as e:
        return json_error(e, "list custody transactions")


@custody_bp.get("/balances")
@require_auth
@require_admin
def list_balances_route():
    """Custody balance of every active employee."""
    include_inactive = request.args.get("include_inactive", "false").lower() == "true"
    try:
        rows = custody_service.list_balances(include_inactive=include_inactive)
        return jsonify({
            "items": rows,
            "count": len(rows),
            "total_cents": sum(r["balance_cents"] for r in rows),
        })
    except Exception as e:
        return json_error(e, "list custody balances")


@custody_bp.get("/<int:user_id>/transactions")
@require_auth
@require_admin
def user_transactions_route(user_id: int):
    try:
        return _history_response(user_id)
    except Exception as e:
        return json_error(e, "list custody transactions")


@custody_bp.post("/<int:user_id>/transactions")
@require_auth
@require_admin
def record_transaction_route(user_id: int):
    """
    Advance custody to an employee or recover it.

    Request body:
    {
        "amount": "500.00",      // or "amount_cents"; negative recovers custody
        "reason": "Weekly float",
        "type": "credit"         // optional; must agree with the sign
    }
    """
    data = request.get_json(silent=True) or {}

    try:
        tx = custody_service.record_transaction(
            actor=g.actor,
            user_id=user_id,
            amount_cents=amount_from_payload(data, allow_negative=True),
            reason=data.get("reason"),
            type=data.get("type"),
        )
        return jsonify({
            "transaction": tx.to_dict(),
            "balance_cents": custody_service.get_balance(user_id),
        }), 201
    except Exception as e:
        return json_error(e, "record custody transaction")
