# Overview: Maps ledger and service exceptions onto JSON error responses.

from flask import current_app, jsonify

from ..engine.errors import (
    AuthorizationError,
    ConcurrencyConflictError,
    InsufficientCustodyError,
    InsufficientReceivableError,
    ValidationError,
)
from ..services.custody_service import UserNotFoundError
from ..services.receivable_service import ReceivableNotFoundError
from ..services.reversal_service import PaymentNotFoundError
from ..services.supplier_service import SupplierNotFoundError
from ..validation import ConflictError


NOT_FOUND_ERRORS = (
    SupplierNotFoundError,
    ReceivableNotFoundError,
    PaymentNotFoundError,
    UserNotFoundError,
)


def json_error(exc: Exception, action: str):
    """
    Error response for a failed request.

    Anything unrecognised (StoreError included) is logged with its traceback
    and returned as a generic 500.
    """
    if isinstance(exc, ValidationError):
        return jsonify({"error": str(exc)}), 400
    if isinstance(exc, AuthorizationError):
        return jsonify({"error": str(exc)}), 403
    if isinstance(exc, NOT_FOUND_ERRORS):
        return jsonify({"error": str(exc)}), 404
    if isinstance(exc, InsufficientReceivableError):
        return jsonify({
            "error": str(exc),
            "amount_cents": exc.amount_cents,
            "outstanding_cents": exc.outstanding_cents,
        }), 409
    if isinstance(exc, InsufficientCustodyError):
        return jsonify({
            "error": str(exc),
            "amount_cents": exc.amount_cents,
            "balance_cents": exc.balance_cents,
        }), 409
    if isinstance(exc, ConcurrencyConflictError):
        current_app.logger.warning("Concurrent update while trying to %s: %s", action, exc)
        return jsonify({"error": str(exc), "retryable": True}), 409
    if isinstance(exc, ConflictError):
        return jsonify({"error": str(exc)}), 409

    current_app.logger.exception("Failed to %s", action)
    return jsonify({"error": "Internal server error"}), 500
