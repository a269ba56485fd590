# Overview: Sign-in, sign-out, session introspection and password reset endpoints.

"""
Authentication API routes

Self-registration does not exist: users are provisioned by an admin
(POST /api/users or `flask users create`) and set their password through
the reset flow.
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..decorators import require_auth
from ..services import get_auth_provider
from ..services.auth_service import AuthenticationError
from . import error_response


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/login")
def login_route():
    """
    Authenticate and create a session token.

    The token must be sent as `Authorization: Bearer <token>` on every
    protected route. The response tells the client which portal to open.
    """
    data = request.get_json(silent=True) or {}
    email = data.get("email")
    password = data.get("password")

    if not email or not password:
        return jsonify({"error": "email and password required"}), 400

    try:
        result = get_auth_provider().sign_in(
            email,
            password,
            user_agent=request.headers.get("User-Agent"),
            ip_address=request.remote_addr,
        )
    except AuthenticationError as e:
        return jsonify({"error": str(e)}), 401
    except Exception as e:
        return error_response(e, "Failed to sign in")

    payload = result.to_dict()
    payload["portal"] = result.session.portal
    payload["message"] = "Login successful"
    return jsonify(payload), 200


@auth_bp.post("/logout")
@require_auth
def logout_route():
    try:
        get_auth_provider().sign_out(g.session_token)
        return jsonify({"message": "Logged out"}), 200
    except Exception as e:
        return error_response(e, "Failed to logout")


@auth_bp.get("/session")
@require_auth
def session_route():
    """Who am I: profile, portal, permissions and navigation."""
    return jsonify({
        "session": g.session_context.session.to_dict(),
        "portal": g.portal_context.to_dict(),
    }), 200


@auth_bp.post("/password-reset")
def password_reset_request_route():
    """
    Request a reset link.

    Always answers 200 so the response does not reveal whether the email
    has an account. The token is delivered out of band.
    """
    data = request.get_json(silent=True) or {}
    email = data.get("email")
    if not email:
        return jsonify({"error": "email required"}), 400

    try:
        token = get_auth_provider().send_password_reset(email)
    except Exception as e:
        return error_response(e, "Failed to request password reset")

    payload = {"message": "If the account exists, a reset link has been sent"}
    if token and current_app.config.get("TESTING"):
        payload["token"] = token
    return jsonify(payload), 200


@auth_bp.post("/password-reset/confirm")
def password_reset_confirm_route():
    data = request.get_json(silent=True) or {}
    token = data.get("token")
    password = data.get("password")
    if not token or not password:
        return jsonify({"error": "token and password required"}), 400

    try:
        get_auth_provider().reset_password(token, password)
        return jsonify({"message": "Password updated"}), 200
    except Exception as e:
        return error_response(e, "Failed to reset password")
