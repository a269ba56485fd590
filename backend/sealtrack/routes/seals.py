# Overview: Flask API routes for seals: registry, lifecycle transitions, images and live stream.

"""
Seal API routes

Station-scoped portals (station / substation) only see seals that involve
their own station, and only act on seals at it: dispatch what is there,
receive what is headed there. Receiving always lands the seal at the
caller's station for those portals.
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..decorators import require_auth, require_permission, require_any_permission
from ..services import get_document_store, get_lifecycle_service
from ..services.entities import SEALS, Seal
from ..services.image_service import process_upload
from ..services.portal_service import ScopeError
from ..services.seal_lifecycle_service import (
    OP_ATTACH_IMAGE,
    OP_DISPATCH,
    OP_ISSUE,
    OP_RECEIVE,
    OP_UPDATE_STATUS,
    OP_UPDATE_UTILIZATION,
    available_operations,
)
from ..validation import ValidationError, optional_text, require_bool
from ..time_utils import utcnow
from . import error_response
from .streaming import max_events_arg, snapshot_events, sse_response


seals_bp = Blueprint("seals", __name__, url_prefix="/api/seals")


def _image_limits() -> dict:
    return {
        "max_bytes": current_app.config["MAX_IMAGE_BYTES"],
        "max_source_bytes": current_app.config["MAX_SOURCE_IMAGE_BYTES"],
    }


def _seal_payload(seal: Seal, include_images: bool = True) -> dict:
    payload = seal.to_dict(now=utcnow(), include_images=include_images)
    payload["availableOperations"] = available_operations(seal)
    return payload


def _scoped_seal(seal_id: str, operation: str | None = None) -> Seal:
    seal = get_lifecycle_service().get_seal(seal_id)
    g.portal_context.require_seal_scope(seal, operation)
    return seal


@seals_bp.get("")
@require_auth
@require_permission("VIEW_SEALS")
def list_seals_route():
    """
    List seals, most recently updated first.

    Query params: status, q (serial or QR code substring), station (name).
    Images are omitted from list responses; fetch a single seal for them.
    """
    try:
        seals = get_lifecycle_service().list_seals(
            status=request.args.get("status") or None,
            search=request.args.get("q") or None,
            station_name=request.args.get("station") or None,
        )
        seals = g.portal_context.filter_seals(seals)
        return jsonify({"seals": [_seal_payload(s, include_images=False) for s in seals]}), 200
    except Exception as e:
        return error_response(e, "Failed to list seals")


@seals_bp.get("/stats")
@require_auth
@require_permission("VIEW_SEALS")
def seal_stats_route():
    try:
        stats = get_lifecycle_service().statistics(station_name=g.portal_context.station_name)
        return jsonify(stats.to_dict()), 200
    except Exception as e:
        return error_response(e, "Failed to compute seal statistics")


@seals_bp.get("/stream")
@require_auth
@require_permission("VIEW_SEALS")
def seal_stream_route():
    """Server-Sent Events: a full seal list now and after every seal write."""
    portal = g.portal_context
    stream = get_document_store().stream(SEALS, order_by="lastUpdated", descending=True)

    def render(docs):
        seals = portal.filter_seals(Seal.from_document(d) for d in docs)
        return {"seals": [_seal_payload(s, include_images=False) for s in seals]}

    events = snapshot_events(stream.get, render, stream.close, "seals", max_events=max_events_arg(request))
    return sse_response(events)


@seals_bp.get("/<seal_id>")
@require_auth
@require_permission("VIEW_SEALS")
def get_seal_route(seal_id: str):
    try:
        return jsonify(_seal_payload(_scoped_seal(seal_id))), 200
    except Exception as e:
        return error_response(e, "Failed to load seal")


@seals_bp.post("")
@require_auth
@require_permission("CREATE_SEALS")
def create_seal_route():
    """
    Register a seal (multipart/form-data).

    Fields: serialCode, qrCode, stationId; files: images (1-5).
    Oversized images are compressed before anything is written.
    """
    try:
        files = request.files.getlist("images")
        images = [
            process_upload(f.read(), f.filename, "initial", f.mimetype, **_image_limits())
            for f in files
            if f and f.filename
        ]
        seal = get_lifecycle_service().create_seal(
            serial_code=request.form.get("serialCode", ""),
            qr_code=request.form.get("qrCode", ""),
            station_id=request.form.get("stationId"),
            images=images,
            actor=g.actor,
        )
        return jsonify(_seal_payload(seal)), 201
    except Exception as e:
        return error_response(e, "Failed to create seal")


@seals_bp.post("/<seal_id>/dispatch")
@require_auth
@require_permission("DISPATCH_SEALS")
def dispatch_seal_route(seal_id: str):
    data = request.get_json(silent=True) or {}
    try:
        _scoped_seal(seal_id, OP_DISPATCH)
        seal = get_lifecycle_service().dispatch(
            seal_id,
            destination_station_id=data.get("destinationStationId"),
            actor=g.actor,
            notes=optional_text(data, "notes"),
        )
        return jsonify(_seal_payload(seal)), 200
    except Exception as e:
        return error_response(e, "Failed to dispatch seal")


@seals_bp.post("/<seal_id>/receive")
@require_auth
@require_permission("RECEIVE_SEALS")
def receive_seal_route(seal_id: str):
    data = request.get_json(silent=True) or {}
    try:
        _scoped_seal(seal_id, OP_RECEIVE)
        seal = get_lifecycle_service().receive(
            seal_id,
            actor=g.actor,
            notes=optional_text(data, "notes"),
            station_id=g.portal_context.receiving_station_id(data.get("stationId")),
        )
        return jsonify(_seal_payload(seal)), 200
    except Exception as e:
        return error_response(e, "Failed to receive seal")


@seals_bp.post("/<seal_id>/issue")
@require_auth
@require_permission("ISSUE_SEALS")
def issue_seal_route(seal_id: str):
    data = request.get_json(silent=True) or {}
    try:
        _scoped_seal(seal_id, OP_ISSUE)
        seal = get_lifecycle_service().issue(seal_id, station_id=data.get("stationId"), actor=g.actor)
        return jsonify(_seal_payload(seal)), 200
    except Exception as e:
        return error_response(e, "Failed to issue seal")


@seals_bp.post("/<seal_id>/status")
@require_auth
@require_any_permission("UPDATE_SEAL_STATUS", "REPORT_SEAL_DAMAGE")
def update_seal_status_route(seal_id: str):
    """
    Body: {"condition": "good" | "damaged" | "repaired"}.
    Damage reporters without UPDATE_SEAL_STATUS may only report "damaged".
    """
    data = request.get_json(silent=True) or {}
    condition = (data.get("condition") or "").strip().lower()
    try:
        _scoped_seal(seal_id, OP_UPDATE_STATUS)
        if not g.portal_context.can("UPDATE_SEAL_STATUS") and condition != "damaged":
            raise ScopeError("Only damage reports are allowed from this portal")
        seal = get_lifecycle_service().update_status(seal_id, condition, actor=g.actor)
        return jsonify(_seal_payload(seal)), 200
    except Exception as e:
        return error_response(e, "Failed to update seal status")


@seals_bp.post("/<seal_id>/utilization")
@require_auth
@require_permission("UPDATE_SEAL_UTILIZATION")
def update_seal_utilization_route(seal_id: str):
    data = request.get_json(silent=True) or {}
    try:
        in_use = require_bool(data, "inUse")
        _scoped_seal(seal_id, OP_UPDATE_UTILIZATION)
        seal = get_lifecycle_service().update_utilization(seal_id, in_use, actor=g.actor)
        return jsonify(_seal_payload(seal)), 200
    except Exception as e:
        return error_response(e, "Failed to update seal utilization")


@seals_bp.post("/<seal_id>/images")
@require_auth
@require_permission("ATTACH_SEAL_IMAGES")
def attach_seal_image_route(seal_id: str):
    """
    Attach one image (multipart: file `image`, field `type`).
    Station-scoped portals may only attach damage photos.
    """
    image_type = request.form.get("type", "damage")
    upload = request.files.get("image")
    try:
        if upload is None or not upload.filename:
            raise ValidationError("An image file is required")
        _scoped_seal(seal_id, OP_ATTACH_IMAGE)
        if g.portal_context.is_station_scoped and image_type != "damage":
            raise ScopeError("Only damage photos can be attached from this portal")
        image = process_upload(upload.read(), upload.filename, image_type, upload.mimetype, **_image_limits())
        seal = get_lifecycle_service().attach_image(seal_id, image, actor=g.actor)
        return jsonify(_seal_payload(seal)), 201
    except Exception as e:
        return error_response(e, "Failed to attach seal image")
