# Overview: Flask API routes for organization and integration settings.

from flask import Blueprint, request, jsonify

from ..decorators import require_auth, require_permission
from ..services import get_settings_service
from . import error_response


settings_bp = Blueprint("settings", __name__, url_prefix="/api/settings")


@settings_bp.get("")
@require_auth
@require_permission("VIEW_SETTINGS")
def get_settings_route():
    """Both singletons. API keys are masked."""
    try:
        return jsonify(get_settings_service().get_all()), 200
    except Exception as e:
        return error_response(e, "Failed to load settings")


@settings_bp.get("/organization")
@require_auth
@require_permission("VIEW_SETTINGS")
def get_organization_settings_route():
    try:
        return jsonify(get_settings_service().get_organization()), 200
    except Exception as e:
        return error_response(e, "Failed to load organization settings")


@settings_bp.patch("/organization")
@require_auth
@require_permission("MANAGE_SETTINGS")
def update_organization_settings_route():
    """Merge update: only the keys present in the body change."""
    data = request.get_json(silent=True)
    try:
        return jsonify(get_settings_service().update_organization(data)), 200
    except Exception as e:
        return error_response(e, "Failed to update organization settings")


@settings_bp.get("/integrations")
@require_auth
@require_permission("MANAGE_SETTINGS")
def get_integration_settings_route():
    try:
        return jsonify(get_settings_service().get_integrations()), 200
    except Exception as e:
        return error_response(e, "Failed to load integration settings")


@settings_bp.patch("/integrations")
@require_auth
@require_permission("MANAGE_SETTINGS")
def update_integration_settings_route():
    """Deep merge: nested maps (whatsapp, email, templates) merge key by key."""
    data = request.get_json(silent=True)
    try:
        return jsonify(get_settings_service().update_integrations(data)), 200
    except Exception as e:
        return error_response(e, "Failed to update integration settings")
