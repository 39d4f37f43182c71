import json
from datetime import datetime, timezone

import pytest

from app.modules.notifications.schemas import NotificationItem, NotificationState
from app.modules.notifications.service import (
    apply_overlay, badge_for, preview, should_refresh, haversine_km
)
from app.modules.notifications.store import NotificationStateStore
from app.modules.realtime.schemas import ChangeEvent

API = "/api/v1"


def item(notification_id, minute):
    return NotificationItem(
        id=notification_id,
        type="message",
        title="Tin nhắn mới",
        description="...",
        created_at=datetime(2025, 1, 1, 0, minute, tzinfo=timezone.utc),
    )


class TestHelpers:
    def test_overlay_sorts_drops_deleted_and_copies_read(self):
        items = [item("a", 1), item("b", 3), item("c", 2)]
        states = {
            "b": NotificationState(is_read=True),
            "c": NotificationState(is_deleted=True),
        }
        merged = apply_overlay(items, states)
        assert [n.id for n in merged] == ["b", "a"]
        assert [n.is_read for n in merged] == [True, False]

    def test_preview(self):
        assert preview("ngắn") == "ngắn"
        assert preview("x" * 50) == "x" * 50
        assert preview("x" * 51) == "x" * 50 + "..."

    @pytest.mark.parametrize("count,badge", [(0, None), (1, "1"), (9, "9"), (10, "9+")])
    def test_badge(self, count, badge):
        assert badge_for(count) == badge

    def test_haversine(self):
        # Hà Nội -> Hồ Chí Minh is a little over 1100 km
        assert 1100 < haversine_km(21.0285, 105.8542, 10.8231, 106.6297) < 1200
        assert haversine_km(16.0, 108.0, 16.0, 108.0) == 0


class TestRefreshRules:
    def test_new_sos_by_someone_else_for_volunteers(self):
        change = ChangeEvent(table="sos_requests", event="INSERT", new={"user_id": "u-req"})
        assert should_refresh(change, "u-vol", True)
        assert not should_refresh(change, "u-vol", False)
        assert not should_refresh(change, "u-req", True)

    def test_own_sos_accepted(self):
        change = ChangeEvent(
            table="sos_requests", event="UPDATE",
            new={"user_id": "u-req", "status": "helping"}, old={"status": "active"},
        )
        assert should_refresh(change, "u-req", False)
        assert not should_refresh(change, "u-vol", True)

    def test_own_sos_completed(self):
        change = ChangeEvent(
            table="sos_requests", event="UPDATE",
            new={"user_id": "u-req", "status": "completed"}, old={"status": "helping"},
        )
        assert should_refresh(change, "u-req", False)

    def test_cancel_does_not_refresh(self):
        change = ChangeEvent(
            table="sos_requests", event="UPDATE",
            new={"user_id": "u-req", "status": "cancelled"}, old={"status": "active"},
        )
        assert not should_refresh(change, "u-req", False)

    def test_message_to_user(self):
        change = ChangeEvent(table="chat_messages", event="INSERT", new={"receiver_id": "u-req", "sender_id": "u-vol"})
        assert should_refresh(change, "u-req", False)
        assert not should_refresh(change, "u-vol", False)


class TestStateStore:
    def test_missing_file_is_empty(self, tmp_path):
        assert NotificationStateStore(str(tmp_path)).load("u-1") == {}

    def test_corrupt_file_is_empty(self, tmp_path):
        store = NotificationStateStore(str(tmp_path))
        store.path_for("u-1").write_text("{not json", encoding="utf-8")
        assert store.load("u-1") == {}

    def test_round_trip_uses_per_user_file(self, tmp_path):
        store = NotificationStateStore(str(tmp_path))
        assert store.set_state("u-1", ["message-1"], is_read=True, is_deleted=False) == 1
        raw = json.loads((tmp_path / "notification_states_u-1.json").read_text(encoding="utf-8"))
        assert raw == {"message-1": {"is_read": True, "is_deleted": False}}
        assert store.load("u-2") == {}

    def test_user_id_cannot_escape_directory(self, tmp_path):
        store = NotificationStateStore(str(tmp_path))
        assert store.path_for("../../etc/passwd").parent == tmp_path


@pytest.fixture
def inbox(db, people, make_sos):
    """Notifications for the volunteer u-vol, who also has a finished SOS of their own"""
    nearby = make_sos("u-req", profiles={"name": "Lan"}, urgency="Trung bình")
    make_sos("u-vol", status="helping", helper_id="u-vol2", profiles={"name": "Hoa"})
    done = make_sos("u-vol", status="completed", helper_id="u-vol2",
                    completed_at="2025-01-01T05:00:00+00:00", profiles={"name": "Hoa"})
    make_sos("u-vol", status="completed", helper_id="u-vol2", completed_at=None)
    message = db.seed("chat_messages", sos_request_id=nearby["id"], sender_id="u-req", receiver_id="u-vol",
                      content="Xin hãy mang theo nước uống và thuốc hạ sốt cho hai người già",
                      profiles={"name": "Lan"})
    return {"nearby": nearby, "done": done, "message": message}


class TestNotificationsApi:
    def test_merged_list(self, client, login, inbox):
        login("u-vol")
        body = client.get(f"{API}/notifications").json()
        ids = [n["id"] for n in body["notifications"]]

        assert ids[0] == f"completed-{inbox['done']['id']}"
        assert set(ids) == {
            f"completed-{inbox['done']['id']}",
            f"message-{inbox['message']['id']}",
            f"sos-{inbox['nearby']['id']}",
            next(i for i in ids if i.startswith("accepted-")),
        }
        assert body["unread_count"] == 4
        assert body["badge"] == "4"

        by_type = {n["type"]: n for n in body["notifications"]}
        assert by_type["sos_nearby"]["title"] == "SOS gần bạn"
        assert by_type["sos_nearby"]["description"] == "Cứu hộ - Trung bình từ Lan"
        assert by_type["sos_accepted"]["description"] == "Cứu hộ đã được chấp nhận bởi Hoa"
        assert by_type["message"]["description"].endswith("...")
        assert by_type["message"]["sender_name"] == "Lan"
        assert by_type["help_completed"]["created_at"].startswith("2025-01-01T05:00:00")

    def test_nearby_only_for_volunteers(self, client, login, inbox):
        login("u-other")
        body = client.get(f"{API}/notifications").json()
        assert body["notifications"] == []
        assert body["badge"] is None

    def test_radius_filter(self, client, login, inbox):
        login("u-vol")
        far = client.get(f"{API}/notifications", params={"latitude": 21.0, "longitude": 105.8, "radius_km": 5}).json()
        assert not any(n["type"] == "sos_nearby" for n in far["notifications"])
        near = client.get(f"{API}/notifications", params={"latitude": 16.05, "longitude": 108.2, "radius_km": 5}).json()
        assert any(n["type"] == "sos_nearby" for n in near["notifications"])

    def test_read_and_delete(self, client, login, inbox):
        login("u-vol")
        message_id = f"message-{inbox['message']['id']}"
        completed_id = f"completed-{inbox['done']['id']}"

        client.post(f"{API}/notifications/{message_id}/read")
        client.delete(f"{API}/notifications/{completed_id}")

        body = client.get(f"{API}/notifications").json()
        ids = [n["id"] for n in body["notifications"]]
        assert completed_id not in ids
        assert next(n for n in body["notifications"] if n["id"] == message_id)["is_read"] is True
        assert body["unread_count"] == 2

    def test_read_all_then_delete_all(self, client, login, inbox, notification_dir):
        login("u-vol")
        assert client.post(f"{API}/notifications/read-all").json()["updated"] == 4
        body = client.get(f"{API}/notifications").json()
        assert body["unread_count"] == 0

        assert client.delete(f"{API}/notifications").json()["updated"] == 4
        assert client.get(f"{API}/notifications").json()["notifications"] == []

        stored = json.loads((notification_dir / "notification_states_u-vol.json").read_text(encoding="utf-8"))
        assert all(state == {"is_read": False, "is_deleted": True} for state in stored.values())
