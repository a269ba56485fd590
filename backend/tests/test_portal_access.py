"""
Portal and permission enforcement tests.

Verifies:
- Unauthenticated requests return 401 with the sign-in redirect
- Each role lands in its own portal and is bounced from the others
- Permission checks return 403 and are recorded as security events
- Station portals only see and touch their own station's seals
"""

import io

import pytest

from conftest import create_seal, png_bytes
from sealtrack.extensions import db
from sealtrack.models import SecurityEvent
from sealtrack.permissions import ALL_ROLES, PERMISSION_CODES, get_role_permissions


# =============================================================================
# UNAUTHENTICATED ACCESS (401)
# =============================================================================


class TestUnauthenticatedAccess:
    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/portal"),
            ("GET", "/api/portals/admin"),
            ("GET", "/api/seals"),
            ("POST", "/api/seals"),
            ("GET", "/api/seals/stream"),
            ("GET", "/api/stations"),
            ("POST", "/api/stations"),
            ("GET", "/api/users"),
            ("GET", "/api/logs"),
            ("GET", "/api/dashboard"),
            ("GET", "/api/settings"),
            ("POST", "/api/auth/logout"),
        ],
    )
    def test_requires_auth(self, client, seed, method, path):
        resp = getattr(client, method.lower())(path)
        assert resp.status_code == 401, f"{method} {path} returned {resp.status_code}"
        assert resp.json["redirect"] == "/auth"

    def test_garbage_token(self, client, seed):
        resp = client.get("/api/portal", headers={"Authorization": "Bearer not-a-token"})
        assert resp.status_code == 401
        assert resp.json["error"] == "Invalid or expired token"

    def test_health_is_public(self, client, seed):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json["checks"]["document_store"]["details"]["stations"] == 2


# =============================================================================
# PORTAL ROUTING
# =============================================================================


class TestPortalRouting:
    @pytest.mark.parametrize("headers_fixture,portal,home", [
        ("admin_headers", "admin", "/dashboard"),
        ("store_manager_headers", "admin", "/dashboard"),
        ("station_headers", "station", "/station/dashboard"),
        ("substation_headers", "substation", "/substation/dashboard"),
    ])
    def test_each_role_gets_its_portal(self, client, request, headers_fixture, portal, home):
        headers = request.getfixturevalue(headers_fixture)

        resp = client.get("/api/portal", headers=headers)

        assert resp.status_code == 200
        assert resp.json["portal"] == portal
        assert resp.json["home"] == home
        assert client.get(f"/api/portals/{portal}", headers=headers).status_code == 200

    def test_station_manager_bounced_from_admin_portal(self, client, station_headers):
        resp = client.get("/api/portals/admin", headers=station_headers)

        assert resp.status_code == 403
        assert resp.json["redirect"] == "/station/dashboard"

    def test_admin_bounced_from_substation_portal(self, client, admin_headers):
        resp = client.get("/api/portals/substation", headers=admin_headers)
        assert resp.status_code == 403
        assert resp.json["redirect"] == "/dashboard"

    def test_unknown_portal(self, client, admin_headers):
        assert client.get("/api/portals/backoffice", headers=admin_headers).status_code == 404

    def test_navigation_follows_permissions(self, client, admin_headers, substation_headers):
        admin_nav = [n["key"] for n in client.get("/api/portal", headers=admin_headers).json["navigation"]]
        sub_nav = [n["key"] for n in client.get("/api/portal", headers=substation_headers).json["navigation"]]

        assert admin_nav == ["dashboard", "seals", "stations", "users", "logs", "settings"]
        assert sub_nav == ["dashboard", "seals", "settings"]


# =============================================================================
# PERMISSIONS (403)
# =============================================================================


class TestPermissions:
    @pytest.mark.parametrize("headers_fixture,method,path", [
        ("station_headers", "GET", "/api/users"),
        ("station_headers", "POST", "/api/stations"),
        ("station_headers", "POST", "/api/seals"),
        ("station_headers", "GET", "/api/logs"),
        ("substation_headers", "GET", "/api/stations"),
        ("substation_headers", "PATCH", "/api/settings/organization"),
        ("store_manager_headers", "POST", "/api/users"),
        ("store_manager_headers", "GET", "/api/settings/integrations"),
    ])
    def test_denied(self, client, request, headers_fixture, method, path):
        headers = request.getfixturevalue(headers_fixture)
        resp = getattr(client, method.lower())(path, headers=headers, json={})
        assert resp.status_code == 403, f"{method} {path} returned {resp.status_code}"
        assert resp.json["error"] == "Permission denied"

    def test_denial_is_recorded(self, client, seed, station_headers):
        client.get("/api/users", headers=station_headers)

        event = db.session.query(SecurityEvent).filter_by(event_type="PERMISSION_DENIED").one()
        assert event.identity_id == seed.users["station-manager"]["id"]
        assert event.action == "VIEW_USERS"
        assert event.resource == "/api/users"

    def test_denial_names_the_permission(self, client, station_headers):
        resp = client.get("/api/users", headers=station_headers)
        assert resp.json["required_permission"] == "VIEW_USERS"
        assert resp.json["message"] == "View Users is not allowed for your role"

    @pytest.mark.parametrize("role", ALL_ROLES)
    def test_role_grants_only_defined_codes(self, role):
        assert get_role_permissions(role) <= PERMISSION_CODES

    def test_admin_can_manage_everything(self, client, admin_headers):
        assert client.get("/api/users", headers=admin_headers).status_code == 200
        assert client.get("/api/logs", headers=admin_headers).status_code == 200
        assert client.get("/api/settings/integrations", headers=admin_headers).status_code == 200
        resp = client.post("/api/stations", headers=admin_headers, json={"name": "East Gate", "type": "sub"})
        assert resp.status_code == 201


# =============================================================================
# STATION SCOPE
# =============================================================================


class TestStationScope:
    @pytest.fixture
    def seals(self, client, seed, admin_headers):
        main = create_seal(client, admin_headers, seed.stations["main"].id, "SN-MAIN").json
        north = create_seal(client, admin_headers, seed.stations["north"].id, "SN-NORTH").json
        return {"main": main, "north": north}

    def test_station_portal_sees_only_its_seals(self, client, seals, station_headers, substation_headers):
        main_view = client.get("/api/seals", headers=station_headers).json["seals"]
        north_view = client.get("/api/seals", headers=substation_headers).json["seals"]

        assert [s["serialCode"] for s in main_view] == ["SN-MAIN"]
        assert [s["serialCode"] for s in north_view] == ["SN-NORTH"]

    def test_admin_sees_all(self, client, seals, admin_headers):
        assert len(client.get("/api/seals", headers=admin_headers).json["seals"]) == 2

    def test_out_of_scope_seal_is_forbidden(self, client, seals, station_headers):
        resp = client.get(f"/api/seals/{seals['north']['id']}", headers=station_headers)
        assert resp.status_code == 403

    def test_out_of_scope_dispatch_is_forbidden(self, client, seed, seals, station_headers):
        resp = client.post(
            f"/api/seals/{seals['north']['id']}/dispatch",
            headers=station_headers,
            json={"destinationStationId": seed.stations["main"].id},
        )
        assert resp.status_code == 403

    def _dispatch(self, client, headers, seal_id, destination_id):
        return client.post(f"/api/seals/{seal_id}/dispatch", headers=headers, json={"destinationStationId": destination_id})

    def test_sender_cannot_receive_its_own_dispatch(self, client, seed, seals, admin_headers, station_headers):
        seal_id = seals["main"]["id"]
        assert self._dispatch(client, station_headers, seal_id, seed.stations["north"].id).status_code == 200

        resp = client.post(f"/api/seals/{seal_id}/receive", headers=station_headers, json={})

        assert resp.status_code == 403
        seal = client.get(f"/api/seals/{seal_id}", headers=admin_headers).json
        assert seal["status"] == "In Transit"
        assert seal["currentStation"] == "Main Store"

    def test_sender_cannot_redispatch_seal_held_elsewhere(self, client, seed, seals, station_headers, substation_headers):
        seal_id = seals["main"]["id"]
        self._dispatch(client, station_headers, seal_id, seed.stations["north"].id)
        assert client.post(f"/api/seals/{seal_id}/receive", headers=substation_headers, json={}).status_code == 200

        # still visible to the sender, but no longer theirs to move
        assert client.get(f"/api/seals/{seal_id}", headers=station_headers).status_code == 200
        resp = self._dispatch(client, station_headers, seal_id, seed.stations["north"].id)
        assert resp.status_code == 403

    def test_substation_cannot_touch_seal_that_left(self, client, seed, seals, admin_headers, substation_headers):
        seal_id = seals["north"]["id"]
        self._dispatch(client, admin_headers, seal_id, seed.stations["main"].id)

        damaged = client.post(f"/api/seals/{seal_id}/status", headers=substation_headers, json={"condition": "damaged"})
        photo = client.post(
            f"/api/seals/{seal_id}/images",
            headers=substation_headers,
            data={"type": "damage", "image": (io.BytesIO(png_bytes()), "crack.png")},
            content_type="multipart/form-data",
        )

        assert damaged.status_code == 403
        assert photo.status_code == 403

    def test_substation_may_only_report_damage(self, client, seals, substation_headers):
        seal_id = seals["north"]["id"]

        repaired = client.post(f"/api/seals/{seal_id}/status", headers=substation_headers, json={"condition": "repaired"})
        assert repaired.status_code == 403

        damaged = client.post(f"/api/seals/{seal_id}/status", headers=substation_headers, json={"condition": "damaged"})
        assert damaged.status_code == 200
        assert damaged.json["status"] == "Damaged"

    def test_station_manager_cannot_change_status(self, client, seals, station_headers):
        resp = client.post(f"/api/seals/{seals['main']['id']}/status", headers=station_headers, json={"condition": "damaged"})
        assert resp.status_code == 403

    def test_substation_attaches_damage_photos_only(self, client, seals, substation_headers):
        seal_id = seals["north"]["id"]

        def attach(image_type):
            return client.post(
                f"/api/seals/{seal_id}/images",
                headers=substation_headers,
                data={"type": image_type, "image": (io.BytesIO(png_bytes()), "crack.png")},
                content_type="multipart/form-data",
            )

        assert attach("repair").status_code == 403
        resp = attach("damage")
        assert resp.status_code == 201
        assert [i["type"] for i in resp.json["images"]] == ["initial", "damage"]

    def test_station_dashboard_is_scoped(self, client, seals, substation_headers):
        body = client.get("/api/dashboard", headers=substation_headers).json
        assert body["station"] == "North Depot"
        assert body["summary"]["totalSeals"] == 1
