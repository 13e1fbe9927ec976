"""Tests for the paginated feed and the explore listing."""

import pytest

import social
from config import settings


class TestFeed:
    """GET /api/v1/social"""

    def test_first_page_newest_first(self, client, author, make_post):
        """Two newest of five posts, with total and hasNextPage."""
        for i in range(5):
            make_post(author, text=f"post {i}")

        response = client.get("/api/v1/social", params={"start": 0, "limit": 2, "order": "desc"})

        assert response.status_code == 200
        body = response.json()
        assert [p["textContent"] for p in body["data"]] == ["post 4", "post 3"]
        assert body["total"] == 5
        assert body["hasNextPage"] is True
        assert body["filters"] == {"start": 0, "limit": 2, "order": "desc"}

    def test_ascending_order(self, client, author, make_post):
        for i in range(3):
            make_post(author, text=f"post {i}")

        body = client.get("/api/v1/social", params={"limit": 2, "order": "asc"}).json()

        assert [p["textContent"] for p in body["data"]] == ["post 0", "post 1"]

    def test_last_page(self, client, author, make_post):
        for i in range(5):
            make_post(author, text=f"post {i}")

        body = client.get("/api/v1/social", params={"start": 2, "limit": 2}).json()

        assert [p["textContent"] for p in body["data"]] == ["post 0"]
        assert body["total"] == 5
        assert body["hasNextPage"] is False

    def test_defaults(self, client, author, make_post):
        """Missing start/limit fall back to 0 and the default page size."""
        make_post(author)

        body = client.get("/api/v1/social").json()

        assert body["filters"] == {"start": 0, "limit": settings.FEED_DEFAULT_LIMIT, "order": "desc"}
        assert len(body["data"]) == 1
        assert body["hasNextPage"] is False

    def test_zero_limit_uses_default(self, client, author, make_post):
        for i in range(12):
            make_post(author, text=f"post {i}")

        body = client.get("/api/v1/social", params={"limit": 0}).json()

        assert len(body["data"]) == settings.FEED_DEFAULT_LIMIT
        assert body["hasNextPage"] is True

    def test_author_summary_is_joined(self, client, make_user, make_post):
        user_id = make_user(first_name="Grace", last_name="Hopper", email="grace@example.com")
        post_id = make_post(user_id, likes=["someone"])

        post = client.get("/api/v1/social").json()["data"][0]

        assert post["id"] == post_id
        assert post["userId"] == user_id
        assert post["likes"] == ["someone"]
        assert post["user"]["id"] == user_id
        assert post["user"]["firstName"] == "Grace"
        assert post["user"]["lastName"] == "Hopper"
        assert post["user"]["email"] == "grace@example.com"
        assert "passwordHash" not in post["user"]
        assert "skills" not in post["user"]

    def test_post_without_author_is_kept(self, client, make_post):
        make_post("0123456789ab0123456789ab", text="orphan")

        body = client.get("/api/v1/social").json()

        assert body["total"] == 1
        assert body["data"][0]["textContent"] == "orphan"
        assert not body["data"][0].get("user")

    def test_empty_store(self, client):
        body = client.get("/api/v1/social").json()

        assert body["data"] == []
        assert body["total"] == 0
        assert body["hasNextPage"] is False

    @pytest.mark.parametrize(
        "params",
        [
            {"limit": settings.FEED_MAX_LIMIT + 1},
            {"limit": -1},
            {"start": -1},
            {"order": "sideways"},
        ],
    )
    def test_invalid_query_rejected(self, client, params):
        response = client.get("/api/v1/social", params=params)

        assert response.status_code == 422
        assert response.json()["message"] == "Validation error"


class TestFeedPaging:
    """social.get_feed page arithmetic."""

    @pytest.mark.parametrize("start,limit", [(0, 1), (0, 3), (1, 3), (2, 2), (3, 2), (0, 7)])
    def test_page_size_and_next_page(self, mongo_db, author, make_post, start, limit):
        for i in range(7):
            make_post(author, text=f"post {i}")

        page = social.get_feed(start=start, limit=limit, order="desc")

        assert len(page["data"]) <= limit
        assert page["total"] == 7
        assert page["hasNextPage"] == (7 > start * limit + limit)


class TestExplore:
    """GET/PUT /api/v1/social/explore/{postTag}"""

    def test_ten_most_recent(self, client, author, make_post):
        for i in range(12):
            make_post(author, text=f"post {i}")

        body = client.get("/api/v1/social/explore").json()

        assert len(body["posts"]) == settings.EXPLORE_LIMIT
        assert body["posts"][0]["textContent"] == "post 11"
        assert body["posts"][-1]["textContent"] == "post 2"

    def test_filter_by_tag(self, client, author, make_post):
        make_post(author, text="py", tags=("python", "code"))
        make_post(author, text="js", tags=("javascript",))
        make_post(author, text="py2", tags=("python",))

        body = client.get("/api/v1/social/explore/python").json()

        assert [p["textContent"] for p in body["posts"]] == ["py2", "py"]

    def test_put_is_accepted(self, client, author, make_post):
        make_post(author, tags=("python",))

        response = client.put("/api/v1/social/explore/python")

        assert response.status_code == 200
        assert len(response.json()["posts"]) == 1

    def test_unknown_tag(self, client, author, make_post):
        make_post(author, tags=("python",))

        response = client.get("/api/v1/social/explore/cobol")

        assert response.status_code == 404
        assert response.json() == {"message": "Tag not found"}

    def test_no_posts_at_all(self, client):
        response = client.get("/api/v1/social/explore")

        assert response.status_code == 204
        assert response.content == b""
