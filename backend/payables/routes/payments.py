# Overview: Flask API routes for payments operations; parses input and returns JSON responses.

# backend/payables/routes/payments.py
"""
Payment API Routes

Payments are created through supplier settlements
(POST /api/suppliers/<id>/settlements). This blueprint covers looking a
payment up and deleting it.

SECURITY:
- Deleting a payment requires the admin role
- Every deletion leaves attempted + success/failed audit entries
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..extensions import db
from ..models import Payment
from ..decorators import require_admin, require_auth
from ..services import reversal_service
from ..services.reversal_service import PaymentNotFoundError
from .errors import json_error


payments_bp = Blueprint("payments", __name__, url_prefix="/api/payments")


@payments_bp.get("/<int:payment_id>")
@require_auth
def get_payment_route(payment_id: int):
    payment = db.session.query(Payment).filter_by(id=payment_id).first()
    if not payment:
        return jsonify({"error": "Payment not found"}), 404
    return jsonify(payment.to_dict())


@payments_bp.delete("/<int:payment_id>")
@require_auth
@require_admin
def delete_payment_route(payment_id: int):
    """
    Delete a payment and undo its effects.

    The receivable is re-opened by the payment amount (never above its
    total) and the employee who paid is credited back.

    Optional request body:
    {
        "operation_id": "...",   // idempotency key (or Idempotency-Key header)
        "reason": "Entered twice"
    }

    Returns:
        200: PaymentReversal record
        400: Payment already deleted
        403: Not an administrator
        404: Payment not found
    """
    data = request.get_json(silent=True) or {}

    try:
        reversal = reversal_service.reverse_payment(
            payment_id=payment_id,
            actor=g.actor,
            operation_id=data.get("operation_id") or request.headers.get("Idempotency-Key"),
            reason=data.get("reason"),
            attempts=current_app.config.get("SETTLEMENT_RETRY_ATTEMPTS", 3),
        )
        return jsonify(reversal.to_dict()), 200
    except PaymentNotFoundError:
        return jsonify({"error": "Payment not found"}), 404
    except Exception as e:
        return json_error(e, "delete payment")
