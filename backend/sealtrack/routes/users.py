# Overview: Flask API routes for staff user management.

from flask import Blueprint, request, jsonify, current_app, g

from ..decorators import require_auth, require_permission
from ..services import get_user_service
from . import error_response


users_bp = Blueprint("users", __name__, url_prefix="/api/users")


@users_bp.get("")
@require_auth
@require_permission("VIEW_USERS")
def list_users_route():
    try:
        users = get_user_service().list_users(role=request.args.get("role") or None)
        return jsonify({"users": [u.to_dict() for u in users]}), 200
    except Exception as e:
        return error_response(e, "Failed to list users")


@users_bp.get("/<user_id>")
@require_auth
@require_permission("VIEW_USERS")
def get_user_route(user_id: str):
    try:
        return jsonify(get_user_service().get_user(user_id).to_dict()), 200
    except Exception as e:
        return error_response(e, "Failed to load user")


@users_bp.post("")
@require_auth
@require_permission("MANAGE_USERS")
def create_user_route():
    """
    Provision a user: identity with a temporary password, profile, reset link.

    Request body: {"email", "name", "role", "stationId"?}
    The reset token is only echoed back under TESTING; otherwise it is
    delivered out of band (`flask users reset-link`).
    """
    data = request.get_json(silent=True) or {}
    try:
        provisioned = get_user_service().add_user(data, actor=g.actor)
        payload = provisioned.user.to_dict()
        if current_app.config.get("TESTING"):
            payload["resetToken"] = provisioned.reset_token
        return jsonify(payload), 201
    except Exception as e:
        return error_response(e, "Failed to create user")


@users_bp.patch("/<user_id>")
@require_auth
@require_permission("MANAGE_USERS")
def update_user_route(user_id: str):
    data = request.get_json(silent=True) or {}
    try:
        user = get_user_service().update_user(user_id, data, actor=g.actor)
        return jsonify(user.to_dict()), 200
    except Exception as e:
        return error_response(e, "Failed to update user")
