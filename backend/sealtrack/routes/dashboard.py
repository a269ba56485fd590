# Overview: Flask API routes for portal dashboards (one-shot and live).

import queue

from flask import Blueprint, request, jsonify, g

from ..decorators import require_auth, require_permission
from ..services import get_document_store
from ..services.dashboard_service import DashboardAggregator, current_view
from . import error_response
from .streaming import max_events_arg, queue_reader, snapshot_events, sse_response


dashboard_bp = Blueprint("dashboard", __name__, url_prefix="/api/dashboard")


@dashboard_bp.get("")
@require_auth
@require_permission("VIEW_DASHBOARD")
def dashboard_route():
    """
    Dashboard for the caller's portal.

    Admin portal: organisation-wide totals. Station portals: the same
    view restricted to the caller's station.
    """
    try:
        view = current_view(get_document_store(), scope=g.portal_context.dashboard_scope())
        return jsonify(view.to_dict()), 200
    except Exception as e:
        return error_response(e, "Failed to build dashboard")


@dashboard_bp.get("/stream")
@require_auth
@require_permission("VIEW_DASHBOARD")
def dashboard_stream_route():
    """Server-Sent Events: a fresh dashboard view after every relevant write."""
    try:
        scope = g.portal_context.dashboard_scope()
    except Exception as e:
        return error_response(e, "Failed to open dashboard stream")

    views: queue.Queue = queue.Queue()
    aggregator = DashboardAggregator(get_document_store(), scope=scope).start(views.put)

    events = snapshot_events(
        queue_reader(views),
        lambda view: view.to_dict(),
        aggregator.stop,
        "dashboard",
        max_events=max_events_arg(request),
    )
    return sse_response(events)
