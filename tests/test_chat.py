import pytest

API = "/api/v1"


@pytest.fixture
def thread(db, people, make_sos):
    sos = make_sos("u-req", status="helping", helper_id="u-vol")
    db.seed("chat_messages", sos_request_id=sos["id"], sender_id="u-req", receiver_id="u-vol", content="Nhà tôi ở hẻm 5")
    db.seed("chat_messages", sos_request_id=sos["id"], sender_id="u-vol", receiver_id="u-req", content="Tôi đang tới")
    db.seed("chat_messages", sos_request_id=sos["id"], sender_id="u-req", receiver_id="u-vol2", content="Cảm ơn bạn")
    return sos


def test_thread_is_ascending_and_scoped_to_caller(client, login, thread):
    login("u-vol")
    messages = client.get(f"{API}/sos/{thread['id']}/messages").json()
    assert [m["content"] for m in messages] == ["Nhà tôi ở hẻm 5", "Tôi đang tới"]


def test_listing_marks_received_messages_read(client, login, thread, db):
    login("u-vol")
    client.get(f"{API}/sos/{thread['id']}/messages")
    to_vol = [m for m in db.rows("chat_messages") if m["receiver_id"] == "u-vol"]
    assert all(m["is_read"] for m in to_vol)
    to_req = [m for m in db.rows("chat_messages") if m["receiver_id"] == "u-req"]
    assert not any(m["is_read"] for m in to_req)


def test_outsider_cannot_read(client, login, thread):
    login("u-other")
    assert client.get(f"{API}/sos/{thread['id']}/messages").status_code == 403


def test_volunteer_with_offer_can_chat(client, login, db, people, make_sos):
    sos = make_sos("u-req")
    db.seed("help_offers", sos_request_id=sos["id"], volunteer_id="u-vol2", status="pending")
    login("u-vol2")
    response = client.post(f"{API}/sos/{sos['id']}/messages", json={"receiver_id": "u-req", "content": "Bạn cần gì?"})
    assert response.status_code == 201


def test_requester_writes_only_to_thread_members(client, login, db, people, make_sos):
    sos = make_sos("u-req")
    db.seed("help_offers", sos_request_id=sos["id"], volunteer_id="u-vol2", status="pending")
    login("u-req")

    to_offerer = client.post(f"{API}/sos/{sos['id']}/messages", json={"receiver_id": "u-vol2", "content": "Bạn tới được không?"})
    assert to_offerer.status_code == 201
    to_stranger = client.post(f"{API}/sos/{sos['id']}/messages", json={"receiver_id": "u-other", "content": "Chào"})
    assert to_stranger.status_code == 400
    assert [m["receiver_id"] for m in db.rows("chat_messages")] == ["u-vol2"]



def test_send_trims_content(client, login, thread):
    login("u-vol")
    response = client.post(f"{API}/sos/{thread['id']}/messages", json={"receiver_id": "u-req", "content": "  Sắp tới  "})
    assert response.status_code == 201
    assert response.json()["content"] == "Sắp tới"
    assert response.json()["is_read"] is False


@pytest.mark.parametrize("payload,status", [
    ({"receiver_id": "u-req", "content": "   "}, 422),
    ({"receiver_id": "u-vol", "content": "tự nhắn"}, 400),
    ({"receiver_id": "u-vol2", "content": "không liên quan chủ SOS"}, 400),
])
def test_send_rules(client, login, thread, payload, status):
    login("u-vol")
    assert client.post(f"{API}/sos/{thread['id']}/messages", json=payload).status_code == status


def test_unread_count_and_mark_read(client, login, thread):
    login("u-req")
    assert client.get(f"{API}/messages/unread-count").json() == {"unread_count": 1}
    assert client.post(f"{API}/sos/{thread['id']}/messages/read").json() == {"marked": 1}
    assert client.get(f"{API}/messages/unread-count").json() == {"unread_count": 0}
