# Overview: Flask API routes for the activity log.

from flask import Blueprint, request, jsonify

from ..decorators import require_auth, require_permission
from ..services import get_activity_log, get_document_store
from ..services.activity_log_service import RECENT_LIMIT
from ..services.entities import ACTIVITY_LOGS, ActivityLog
from . import error_response
from .streaming import max_events_arg, snapshot_events, sse_response


logs_bp = Blueprint("logs", __name__, url_prefix="/api/logs")


@logs_bp.get("")
@require_auth
@require_permission("VIEW_ACTIVITY_LOGS")
def list_logs_route():
    """Newest first. Query params: limit (max 100), entityId."""
    try:
        limit = min(request.args.get("limit", RECENT_LIMIT, type=int), RECENT_LIMIT)
        logs = get_activity_log().list_recent(limit=limit, entity_id=request.args.get("entityId") or None)
        return jsonify({"logs": [entry.to_dict() for entry in logs]}), 200
    except Exception as e:
        return error_response(e, "Failed to list activity logs")


@logs_bp.get("/stream")
@require_auth
@require_permission("VIEW_ACTIVITY_LOGS")
def stream_logs_route():
    stream = get_document_store().stream(
        ACTIVITY_LOGS, order_by="timestamp", descending=True, limit=RECENT_LIMIT
    )

    def render(docs):
        return {"logs": [ActivityLog.from_document(d).to_dict() for d in docs]}

    events = snapshot_events(stream.get, render, stream.close, "logs", max_events=max_events_arg(request))
    return sse_response(events)
