"""
Tests for source registry routes.
"""

OPML = """<?xml version="1.0" encoding="UTF-8"?>
<opml version="2.0">
  <head><title>Feeds</title></head>
  <body>
    <outline text="Tech">
      <outline type="rss" text="Feed One" xmlUrl="https://one.example.com/rss" htmlUrl="https://one.example.com"/>
      <outline type="rss" text="Feed Two" xmlUrl="https://two.example.com/atom.xml"/>
    </outline>
  </body>
</opml>
"""


class TestSources:
    """Tests for /sources endpoints."""

    def test_list_sources(self, client_with_data):
        client, data = client_with_data
        response = client.get("/sources")
        assert response.status_code == 200
        sources = response.json()
        assert [s["id"] for s in sources] == [data["source_id"]]
        assert sources[0]["is_active"] is True

    def test_add_source_derives_name(self, client):
        response = client.post("/sources", json={"feed_url": "https://www.new-site.org/rss"})
        assert response.status_code == 201
        source = response.json()
        assert source["name"] == "new-site.org"
        assert source["url"] == "https://www.new-site.org"
        assert source["fetch_interval_minutes"] == 30

    def test_add_source_rejects_non_http(self, client):
        response = client.post("/sources", json={"feed_url": "ftp://example.com/feed"})
        assert response.status_code == 400

    def test_add_existing_feed_returns_same_source(self, client_with_data):
        client, data = client_with_data
        response = client.post("/sources", json={"feed_url": "https://example.com/feed.xml"})
        assert response.status_code == 201
        assert response.json()["id"] == data["source_id"]

    def test_update_source(self, client_with_data):
        client, data = client_with_data
        response = client.patch(
            f"/sources/{data['source_id']}",
            json={"name": "Renamed", "fetch_interval_minutes": 10},
        )
        assert response.status_code == 200
        assert response.json()["name"] == "Renamed"
        assert response.json()["fetch_interval_minutes"] == 10

    def test_update_interval_bounds(self, client_with_data):
        client, data = client_with_data
        response = client.patch(f"/sources/{data['source_id']}", json={"fetch_interval_minutes": 0})
        assert response.status_code == 422

    def test_update_unknown_source(self, client):
        response = client.patch("/sources/999", json={"name": "x"})
        assert response.status_code == 404

    def test_remove_keeps_articles(self, client_with_data):
        client, data = client_with_data
        response = client.delete(f"/sources/{data['source_id']}")
        assert response.status_code == 200
        assert response.json()["is_active"] is False

        assert client.get("/sources").json() == []
        assert len(client.get("/sources?include_inactive=true").json()) == 1
        articles = client.get(f"/articles?source_id={data['source_id']}").json()["articles"]
        assert len(articles) == 2

    def test_remove_unknown_source(self, client):
        response = client.delete("/sources/999")
        assert response.status_code == 404

    def test_readding_reactivates(self, client_with_data):
        client, data = client_with_data
        client.delete(f"/sources/{data['source_id']}")
        response = client.post("/sources", json={"feed_url": "https://example.com/feed.xml"})
        assert response.json()["id"] == data["source_id"]
        assert response.json()["is_active"] is True


class TestOPML:
    def test_import(self, client):
        response = client.post("/sources/import", json={"opml_content": OPML})
        assert response.status_code == 200
        sources = response.json()
        assert [s["name"] for s in sources] == ["Feed One", "Feed Two"]
        assert sources[1]["url"] == "https://two.example.com"

    def test_import_invalid(self, client):
        response = client.post("/sources/import", json={"opml_content": "<html></html>"})
        assert response.status_code == 400

    def test_export(self, client_with_data):
        client, data = client_with_data
        response = client.get("/sources/export")
        assert response.status_code == 200
        assert "application/xml" in response.headers["content-type"]
        assert 'xmlUrl="https://example.com/feed.xml"' in response.text
