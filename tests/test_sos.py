import pytest
from fastapi import HTTPException

from app.config.settings import settings
from app.main import app
from app.modules.maps.routes import get_maps_service
from app.modules.sos.service import (
    SOSService, can_transition, marker_color, marker_title, directions_url
)

API = "/api/v1"

NEW_SOS = {
    "type": "Y tế khẩn cấp",
    "description": "  Người già bị sốt cao  ",
    "urgency": "Khẩn cấp",
    "people_affected": 2,
    "latitude": 16.06,
    "longitude": 108.22,
}


class TestLifecycleRules:
    def test_allowed_transitions(self):
        assert can_transition("active", "helping")
        assert can_transition("active", "cancelled")
        assert can_transition("helping", "completed")

    @pytest.mark.parametrize("current,target", [
        ("active", "completed"),
        ("helping", "cancelled"),
        ("completed", "active"),
        ("cancelled", "helping"),
        (None, "active"),
    ])
    def test_rejected_transitions(self, current, target):
        assert not can_transition(current, target)

    def test_marker_colour_follows_status_then_urgency(self):
        assert marker_color("Khẩn cấp", "helping") == "#00AA00"
        assert marker_color("Khẩn cấp", "active") == "#FF0000"
        assert marker_color("Trung bình", "active") == "#FFA500"
        assert marker_color("Thấp", "active") == "#FFFF00"

    def test_marker_title_names_helper(self):
        sos = {"type": "Cứu hộ", "urgency": "Thấp", "status": "helping", "helper_profile": {"name": "Minh"}}
        assert marker_title(sos) == "SOS: Cứu hộ - Đang được Minh giúp đỡ"
        assert marker_title({**sos, "status": "active"}) == "SOS: Cứu hộ - Thấp"

    def test_directions_url(self):
        url = directions_url(10.0, 106.0, 10.5, 106.5)
        assert url.startswith("https://www.google.com/maps/dir/?api=1")
        assert "destination=10.5%2C106.5" in url


class TestCreateSOS:
    def test_create_trims_and_starts_active(self, client, login, people):
        login("u-req")
        response = client.post(f"{API}/sos", json={**NEW_SOS, "manual_address": "  12 Lê Lợi  "})
        assert response.status_code == 201
        body = response.json()
        assert body["status"] == "active"
        assert body["description"] == "Người già bị sốt cao"
        assert body["manual_address"] == "12 Lê Lợi"

    def test_blank_address_is_omitted(self, client, login, people, db):
        login("u-req")
        client.post(f"{API}/sos", json={**NEW_SOS, "manual_address": "   "})
        assert "manual_address" not in db.rows("sos_requests")[0]

    def test_missing_position_uses_default(self, client, login, people):
        login("u-req")
        payload = {k: v for k, v in NEW_SOS.items() if k not in ("latitude", "longitude")}
        body = client.post(f"{API}/sos", json=payload).json()
        assert (body["latitude"], body["longitude"]) == (settings.default_latitude, settings.default_longitude)

    @pytest.mark.parametrize("override", [
        {"type": "Không rõ"},
        {"urgency": "Rất gấp"},
        {"description": "   "},
        {"people_affected": 0},
        {"latitude": 10.0, "longitude": None},
    ])
    def test_invalid_payloads(self, client, login, people, override):
        login("u-req")
        assert client.post(f"{API}/sos", json={**NEW_SOS, **override}).status_code == 422

    def test_one_open_sos_per_user(self, client, login, people):
        login("u-req")
        assert client.post(f"{API}/sos", json=NEW_SOS).status_code == 201
        assert client.post(f"{API}/sos", json=NEW_SOS).status_code == 409


class TestFeedAndHistory:
    def test_feed_lists_open_requests_newest_first(self, client, login, people, make_sos):
        make_sos("u-req", profiles={"name": "Lan"})
        helping = make_sos("u-other", status="helping", helper_id="u-vol",
                           urgency="Thấp", helper_profile={"name": "Minh"})
        make_sos("u-vol2", status="completed")
        login("u-vol")

        feed = client.get(f"{API}/sos").json()
        assert [item["id"] for item in feed][0] == helping["id"]
        assert len(feed) == 2
        assert feed[0]["marker_color"] == "#00AA00"
        assert feed[0]["helper_name"] == "Minh"
        assert feed[1]["requester_name"] == "Lan"

    def test_active_includes_pending_offers(self, client, login, people, make_sos, db):
        sos = make_sos("u-req")
        db.seed("help_offers", sos_request_id=sos["id"], volunteer_id="u-vol", status="pending")
        db.seed("help_offers", sos_request_id=sos["id"], volunteer_id="u-vol2", status="rejected")
        login("u-req")

        body = client.get(f"{API}/sos/active").json()
        assert body["sos"]["id"] == sos["id"]
        assert [o["volunteer_id"] for o in body["offers"]] == ["u-vol"]

    def test_active_is_empty_without_open_sos(self, client, login, people):
        login("u-req")
        assert client.get(f"{API}/sos/active").json() == {"sos": None, "offers": []}

    def test_request_history_groups_offers_for_active_only(self, client, login, people, make_sos, db):
        old = make_sos("u-req", status="completed", helper_id="u-vol")
        quiet = make_sos("u-req")
        busy = make_sos("u-req")
        db.seed("help_offers", sos_request_id=busy["id"], volunteer_id="u-vol", status="pending")
        login("u-req")

        body = client.get(f"{API}/sos/history/requests").json()
        assert [r["id"] for r in body["requests"]] == [busy["id"], quiet["id"], old["id"]]
        assert set(body["offers"]) == {busy["id"], quiet["id"]}
        assert body["offers"][quiet["id"]] == []
        assert len(body["offers"][busy["id"]]) == 1

    def test_help_history_and_recent(self, client, login, people, make_sos):
        for _ in range(4):
            make_sos("u-req", status="completed", helper_id="u-vol", requester_profile={"name": "Lan"})
        login("u-vol")

        helps = client.get(f"{API}/sos/history/help").json()
        assert len(helps) == 4
        assert helps[0]["requester_name"] == "Lan"

        recent = client.get(f"{API}/sos/recent").json()
        assert recent["requests"] == []
        assert len(recent["helps"]) == 3

    def test_get_missing_sos(self, client, login, people):
        login("u-req")
        assert client.get(f"{API}/sos/does-not-exist").status_code == 404


class TestTransitions:
    def test_owner_cancels_active(self, client, login, people, make_sos):
        sos = make_sos("u-req")
        login("u-req")
        response = client.post(f"{API}/sos/{sos['id']}/cancel")
        assert response.status_code == 200
        assert response.json()["status"] == "cancelled"

    def test_only_owner_cancels(self, client, login, people, make_sos):
        sos = make_sos("u-req")
        login("u-other")
        assert client.post(f"{API}/sos/{sos['id']}/cancel").status_code == 403

    def test_cannot_cancel_once_helping(self, client, login, people, make_sos):
        sos = make_sos("u-req", status="helping", helper_id="u-vol")
        login("u-req")
        assert client.post(f"{API}/sos/{sos['id']}/cancel").status_code == 409

    def test_helper_completes_and_sets_timestamp(self, client, login, people, make_sos):
        sos = make_sos("u-req", status="helping", helper_id="u-vol")
        login("u-vol")
        body = client.post(f"{API}/sos/{sos['id']}/complete").json()
        assert body["status"] == "completed"
        assert body["completed_at"] is not None

    def test_outsider_cannot_complete(self, client, login, people, make_sos):
        sos = make_sos("u-req", status="helping", helper_id="u-vol")
        login("u-other")
        assert client.post(f"{API}/sos/{sos['id']}/complete").status_code == 403

    def test_complete_requires_helping(self, client, login, people, make_sos):
        sos = make_sos("u-req")
        login("u-req")
        assert client.post(f"{API}/sos/{sos['id']}/complete").status_code == 409

    def test_conditional_update_loses_race(self, db, make_sos):
        sos = make_sos("u-req", status="helping", helper_id="u-vol")
        with pytest.raises(HTTPException) as exc:
            SOSService(db).assign_helper(sos["id"], "u-vol2")
        assert exc.value.status_code == 409
        assert db.rows("sos_requests")[0]["helper_id"] == "u-vol"


class StubMaps:
    def __init__(self, result):
        self.result = result
        self.calls = []

    def distance_matrix(self, origin, destination):
        self.calls.append((origin, destination))
        return self.result


class TestRoute:
    def test_helper_gets_route(self, client, login, people, make_sos):
        sos = make_sos("u-req", status="helping", helper_id="u-vol")
        maps = StubMaps({"distance": "3,2 km", "duration": "9 phút"})
        app.dependency_overrides[get_maps_service] = lambda: maps
        login("u-vol")

        body = client.get(f"{API}/sos/{sos['id']}/route", params={"latitude": 16.0, "longitude": 108.0}).json()
        assert body["distance"] == "3,2 km"
        assert body["duration"] == "9 phút"
        assert maps.calls == [((16.0, 108.0), (16.0544, 108.2022))]

    def test_missing_distance_is_null(self, client, login, people, make_sos):
        sos = make_sos("u-req", status="helping", helper_id="u-vol")
        app.dependency_overrides[get_maps_service] = lambda: StubMaps(None)
        login("u-vol")

        body = client.get(f"{API}/sos/{sos['id']}/route", params={"latitude": 16.0, "longitude": 108.0}).json()
        assert body["distance"] is None
        assert body["directions_url"].startswith("https://www.google.com/maps/dir/")

    def test_requester_cannot_request_route(self, client, login, people, make_sos):
        sos = make_sos("u-req", status="helping", helper_id="u-vol")
        app.dependency_overrides[get_maps_service] = lambda: StubMaps(None)
        login("u-req")
        response = client.get(f"{API}/sos/{sos['id']}/route", params={"latitude": 16.0, "longitude": 108.0})
        assert response.status_code == 403
