# Overview: Portal shell endpoints: which portal the caller gets, and entry checks.

from flask import Blueprint, jsonify, g

from ..decorators import require_auth
from ..permissions import PORTAL_HOME
from ..services.portal_service import ScopeError
from . import error_response


portal_bp = Blueprint("portal", __name__, url_prefix="/api")


@portal_bp.get("/portal")
@require_auth
def my_portal_route():
    """Portal, home path, permissions and navigation for the signed-in user."""
    return jsonify(g.portal_context.to_dict()), 200


@portal_bp.get("/portals/<portal>")
@require_auth
def enter_portal_route(portal: str):
    """
    Entry check for a portal's pages.

    403 with the caller's own home path when the portal belongs to
    another role, so the client can redirect.
    """
    if portal not in PORTAL_HOME:
        return jsonify({"error": f"Unknown portal '{portal}'"}), 404
    try:
        g.portal_context.require_portal(portal)
    except ScopeError as e:
        return jsonify({"error": str(e), "redirect": PORTAL_HOME[g.portal_context.portal]}), 403
    except Exception as e:
        return error_response(e, "Failed to check portal access")
    return jsonify(g.portal_context.to_dict()), 200
