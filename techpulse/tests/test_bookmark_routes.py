"""
Tests for bookmark routes.
"""

USER = {"X-User-Id": "reader-1"}


class TestBookmarks:
    """Tests for /bookmarks endpoints."""

    def test_identity_required(self, client_with_data):
        client, data = client_with_data
        response = client.get("/bookmarks")
        assert response.status_code == 401

    def test_overlong_identity_rejected(self, client_with_data):
        client, data = client_with_data
        response = client.get("/bookmarks", headers={"X-User-Id": "x" * 200})
        assert response.status_code == 400

    def test_add_and_list(self, client_with_data):
        client, data = client_with_data
        article_id = data["article_ids"][0]

        response = client.post("/bookmarks", json={"article_id": article_id}, headers=USER)
        assert response.status_code == 201
        assert response.json()["is_bookmarked"] is True

        listed = client.get("/bookmarks", headers=USER).json()
        assert [a["id"] for a in listed] == [article_id]

    def test_second_bookmark_conflicts(self, client_with_data):
        client, data = client_with_data
        article_id = data["article_ids"][0]

        client.post("/bookmarks", json={"article_id": article_id}, headers=USER)
        response = client.post("/bookmarks", json={"article_id": article_id}, headers=USER)
        assert response.status_code == 409
        assert response.json()["error"] == "DuplicateBookmark"

        status = client.get(f"/bookmarks/{article_id}", headers=USER).json()
        assert status["is_bookmarked"] is True

    def test_bookmark_unknown_article(self, client_with_data):
        client, data = client_with_data
        response = client.post("/bookmarks", json={"article_id": 99999}, headers=USER)
        assert response.status_code == 404

    def test_bookmark_invalid_article_id(self, client_with_data):
        client, data = client_with_data
        response = client.post("/bookmarks", json={"article_id": 0}, headers=USER)
        assert response.status_code == 422

    def test_remove(self, client_with_data):
        client, data = client_with_data
        article_id = data["article_ids"][1]
        client.post("/bookmarks", json={"article_id": article_id}, headers=USER)

        response = client.delete(f"/bookmarks/{article_id}", headers=USER)
        assert response.status_code == 200
        assert response.json() == {"success": True, "article_id": article_id}
        assert client.get("/bookmarks", headers=USER).json() == []

    def test_remove_missing(self, client_with_data):
        client, data = client_with_data
        response = client.delete(f"/bookmarks/{data['article_ids'][0]}", headers=USER)
        assert response.status_code == 404

    def test_bookmarks_scoped_per_user(self, client_with_data):
        client, data = client_with_data
        client.post("/bookmarks", json={"article_id": data["article_ids"][0]}, headers=USER)
        other = client.get("/bookmarks", headers={"X-User-Id": "reader-2"}).json()
        assert other == []
