# Overview: Flask API routes for stations.

from flask import Blueprint, request, jsonify, g

from ..decorators import require_auth, require_permission
from ..services import get_document_store, get_station_service
from ..services import entity_store
from ..services.dashboard_service import stations_with_live_counters
from . import error_response


stations_bp = Blueprint("stations", __name__, url_prefix="/api/stations")


@stations_bp.get("")
@require_auth
@require_permission("VIEW_STATIONS")
def list_stations_route():
    """
    List stations, most recently active first.

    activeSeals/totalSeals are derived from the seals on every read.
    Query params: status (active | inactive).
    """
    try:
        stations = get_station_service().list_stations(status=request.args.get("status") or None)
        seals = entity_store.seals(get_document_store()).list()
        stations = stations_with_live_counters(stations, seals)
        return jsonify({"stations": [s.to_dict() for s in stations]}), 200
    except Exception as e:
        return error_response(e, "Failed to list stations")


@stations_bp.get("/<station_id>")
@require_auth
@require_permission("VIEW_STATIONS")
def get_station_route(station_id: str):
    try:
        station = get_station_service().get_station(station_id)
        seals = entity_store.seals(get_document_store()).list()
        return jsonify(stations_with_live_counters([station], seals)[0].to_dict()), 200
    except Exception as e:
        return error_response(e, "Failed to load station")


@stations_bp.post("")
@require_auth
@require_permission("MANAGE_STATIONS")
def create_station_route():
    """
    Request body:
    {
        "name": str,
        "type": "main" | "sub" | "mobile",
        "location": {"address": str, "latitude": float?, "longitude": float?},
        "manager": {"id": str, "name": str, "email": str}?
    }
    """
    data = request.get_json(silent=True) or {}
    try:
        station = get_station_service().add_station(data, actor=g.actor)
        return jsonify(station.to_dict()), 201
    except Exception as e:
        return error_response(e, "Failed to create station")


@stations_bp.patch("/<station_id>")
@require_auth
@require_permission("MANAGE_STATIONS")
def update_station_route(station_id: str):
    data = request.get_json(silent=True) or {}
    try:
        station = get_station_service().update_station(station_id, data, actor=g.actor)
        return jsonify(station.to_dict()), 200
    except Exception as e:
        return error_response(e, "Failed to update station")
