# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

# backend/payables/routes/auth.py
"""
Authentication API routes

- Login returns a bearer token (send as "Authorization: Bearer <token>")
- Logout revokes the token
- Accounts are created by administrators through the CLI
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..services import auth_service
from ..services import session_service
from ..services.audit_service import STATUS_FAILED, log_action
from ..decorators import require_auth


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/login")
def login_route():
    """
    Authenticate user and create session token.

    Request body: {"username": "...", "password": "..."} (email also accepted)

    Returns user info and session token on success.
    """
    try:
        data = request.get_json(silent=True) or {}
        username = data.get("username") or data.get("email")
        password = data.get("password")

        if not all([username, password]):
            return jsonify({"error": "username/email and password required"}), 400

        user = auth_service.authenticate(username, password)

        if not user:
            log_action(
                user_id=None,
                action_type="login",
                entity_type="user",
                entity_id=None,
                status=STATUS_FAILED,
                details={"identifier": username},
                commit=True,
            )
            return jsonify({"error": "Invalid credentials"}), 401

        session, token = session_service.create_session(
            user_id=user.id,
            user_agent=request.headers.get("User-Agent"),
            ip_address=request.remote_addr,
        )

        return jsonify({
            "user": user.to_dict(),
            "token": token,
            "session": session.to_dict(),
            "message": "Login successful"
        }), 200

    except Exception:
        current_app.logger.exception("Failed to login user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/logout")
@require_auth
def logout_route():
    """Revoke the session token used for this request."""
    try:
        token = request.headers.get("Authorization", "").split(" ", 1)[1]
        session_service.revoke_session(token)
        return jsonify({"message": "Logged out"}), 200
    except Exception:
        current_app.logger.exception("Failed to logout user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.get("/me")
@require_auth
def me_route():
    """Current user, as seen by the ledger (role decides admin-only actions)."""
    user = g.current_user
    return jsonify({"user": user.to_dict(), "is_admin": user.is_admin})
