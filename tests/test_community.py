import pytest

from app.modules.community.service import extract_hashtags

API = "/api/v1"


@pytest.mark.parametrize("content,tags", [
    ("Cần áo ấm #cuutro #mienTrung", ["cuutro", "mienTrung"]),
    ("Không có thẻ nào", []),
    ("#lũ_lụt khu vực #QuảngNam!", ["lũ_lụt", "QuảngNam"]),
    ("email a#b không phải thẻ? #ok", ["b", "ok"]),
])
def test_extract_hashtags(content, tags):
    assert extract_hashtags(content) == tags


def test_create_post_extracts_hashtags_and_tags(client, login, people, db):
    login("u-req")
    response = client.post(f"{API}/community/posts", json={
        "content": "  Cảm ơn đội cứu hộ #camon #DaNang  ",
        "tagged_users": ["u-vol"],
    })
    assert response.status_code == 201
    body = response.json()
    assert body["content"] == "Cảm ơn đội cứu hộ #camon #DaNang"
    assert body["hashtags"] == ["camon", "DaNang"]
    assert body["privacy_level"] == "public"
    assert [p["name"] for p in body["tagged_users_profiles"]] == ["Minh"]


def test_empty_post_rejected(client, login, people):
    login("u-req")
    assert client.post(f"{API}/community/posts", json={"content": "   "}).status_code == 422


def test_feed_hides_other_users_private_posts(client, login, people, db):
    db.seed("community_posts", user_id="u-req", content="công khai", privacy_level="public")
    db.seed("community_posts", user_id="u-req", content="riêng tư", privacy_level="private")
    db.seed("community_posts", user_id="u-vol", content="của tôi", privacy_level="private")
    db.seed("community_posts", user_id="u-req", content="cũ", privacy_level=None)
    login("u-vol")

    posts = client.get(f"{API}/community/posts").json()
    assert [p["content"] for p in posts] == ["cũ", "của tôi", "công khai"]
    assert posts[0]["privacy_level"] == "public"


def test_feed_pagination(client, login, people, db):
    for i in range(5):
        db.seed("community_posts", user_id="u-req", content=f"bài {i}", privacy_level="public")
    login("u-req")
    page = client.get(f"{API}/community/posts", params={"limit": 2, "offset": 2}).json()
    assert [p["content"] for p in page] == ["bài 2", "bài 1"]


def test_hashtag_feed(client, login, people, db):
    db.seed("community_posts", user_id="u-req", content="#nuocsach", hashtags=["nuocsach"], privacy_level="public")
    db.seed("community_posts", user_id="u-req", content="#khac", hashtags=["khac"], privacy_level="public")
    login("u-vol")
    posts = client.get(f"{API}/community/hashtags/nuocsach").json()
    assert [p["hashtags"] for p in posts] == [["nuocsach"]]


def test_user_public_posts_with_counts(client, login, people, db):
    db.seed("community_posts", user_id="u-req", content="công khai", privacy_level="public",
            post_likes=[{"user_id": "u-vol"}, {"user_id": "u-other"}], post_comments=[{"id": "c1"}])
    db.seed("community_posts", user_id="u-req", content="bạn bè", privacy_level="friends")
    login("u-vol")
    posts = client.get(f"{API}/community/users/u-req/posts").json()
    assert len(posts) == 1
    assert posts[0]["likes_count"] == 2
    assert posts[0]["comments_count"] == 1
    assert posts[0]["liked_by_me"] is True


def test_only_owner_edits_and_deletes(client, login, people, db):
    post = db.seed("community_posts", user_id="u-req", content="ban đầu", privacy_level="public")
    login("u-vol")
    assert client.put(f"{API}/community/posts/{post['id']}", json={"content": "sửa"}).status_code == 403
    assert client.delete(f"{API}/community/posts/{post['id']}").status_code == 403

    login("u-req")
    updated = client.put(f"{API}/community/posts/{post['id']}", json={"content": "đã sửa #moi"}).json()
    assert updated["hashtags"] == ["moi"]
    assert updated["updated_at"] is not None
    assert client.delete(f"{API}/community/posts/{post['id']}").status_code == 204
    assert db.rows("community_posts") == []


def test_like_toggles(client, login, people, db):
    post = db.seed("community_posts", user_id="u-req", content="bài", privacy_level="public")
    login("u-vol")
    assert client.post(f"{API}/community/posts/{post['id']}/like").json() == {
        "post_id": post["id"], "liked": True, "likes_count": 1,
    }
    assert client.post(f"{API}/community/posts/{post['id']}/like").json()["liked"] is False
    assert db.rows("post_likes") == []


def test_comments(client, login, people, db):
    post = db.seed("community_posts", user_id="u-req", content="bài", privacy_level="public")
    login("u-vol")
    created = client.post(f"{API}/community/posts/{post['id']}/comments", json={"content": " Cố lên! "})
    assert created.status_code == 201
    assert created.json()["content"] == "Cố lên!"
    assert created.json()["author"]["name"] == "Minh"

    comments = client.get(f"{API}/community/posts/{post['id']}/comments").json()
    assert [c["content"] for c in comments] == ["Cố lên!"]

    login("u-req")
    comment_id = created.json()["id"]
    assert client.delete(f"{API}/community/comments/{comment_id}").status_code == 403
    login("u-vol")
    assert client.delete(f"{API}/community/comments/{comment_id}").status_code == 204


def test_comment_on_missing_post(client, login, people):
    login("u-vol")
    assert client.post(f"{API}/community/posts/missing/comments", json={"content": "hi"}).status_code == 404
