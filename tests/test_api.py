"""Tests for the REST API."""
import json

from fastapi.testclient import TestClient

from bookshelf.covers import LocalCoverStorage
from bookshelf.main import create_app
from bookshelf.storage import InMemoryBookRepository, StorageError


class BrokenRepository(InMemoryBookRepository):
    def list_books(self):
        raise StorageError("database is down")

    def create_book(self, req):
        raise StorageError("database is down")

    def ping(self):
        return False


def test_root_and_health(client):
    assert client.get("/").json()["version"] == "v1"
    body = client.get("/health").json()
    assert body["status"] == "OK"
    assert body["database"] == "Connected"
    assert "timestamp" in body


def test_list_books_envelope(client):
    resp = client.get("/api/v1/books")
    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert body["count"] == 3
    assert [b["id"] for b in body["data"]] == ["3", "2", "1"]
    assert "timestamp" in body


def test_get_book_and_not_found(client):
    assert client.get("/api/v1/books/1").json()["data"]["title"] == "Dune"

    resp = client.get("/api/v1/books/missing")
    assert resp.status_code == 404
    assert resp.json()["success"] is False
    assert resp.json()["error"] == "Book not found"


def test_create_book(client):
    resp = client.post(
        "/api/v1/books",
        json={"title": "  Project Hail Mary ", "author": "Andy Weir", "category": "Sci-Fi"},
    )
    assert resp.status_code == 201
    body = resp.json()
    assert body["message"] == "Book created successfully"
    assert body["data"]["title"] == "Project Hail Mary"
    assert body["data"]["reading_status"] == "to-read"
    assert body["data"]["id"]

    listed = client.get("/api/v1/books").json()
    assert listed["count"] == 4
    assert listed["data"][0]["id"] == body["data"]["id"]


def test_create_book_missing_field_is_400(client):
    resp = client.post("/api/v1/books", json={"title": "Dune", "author": "Herbert"})
    assert resp.status_code == 400
    body = resp.json()
    assert body["success"] is False
    assert "category" in body["message"]


def test_create_book_blank_title_is_400(client):
    resp = client.post("/api/v1/books", json={"title": " ", "author": "A", "category": "C"})
    assert resp.status_code == 400


def test_update_book(client):
    resp = client.put("/api/v1/books/2", json={"reading_status": "finished"})
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["reading_status"] == "finished"
    assert data["progress_percentage"] == 100
    assert data["title"] == "JavaScript Guide"


def test_update_missing_book_is_404(client):
    resp = client.put("/api/v1/books/missing", json={"title": "x"})
    assert resp.status_code == 404


def test_delete_book(client):
    resp = client.delete("/api/v1/books/1")
    assert resp.status_code == 200
    assert resp.json()["message"] == "Book deleted successfully"
    assert client.get("/api/v1/books/1").status_code == 404
    assert client.delete("/api/v1/books/1").status_code == 404


def test_stats(client):
    data = client.get("/api/v1/books/stats").json()["data"]
    assert data["total_books"] == 3
    assert data["categories"] == {"Science": 1, "Programming": 1, "Sci-Fi": 1}
    assert len(data["top_categories"]) == 3


def test_storage_failure_is_500(config, covers):
    app = create_app(config, repository=BrokenRepository(), cover_storage=covers)
    with TestClient(app) as c:
        resp = c.get("/api/v1/books")
        assert resp.status_code == 500
        assert resp.json()["error"] == "Failed to fetch books"
        assert resp.json()["message"] == "database is down"

        resp = c.post("/api/v1/books", json={"title": "A", "author": "B", "category": "C"})
        assert resp.status_code == 500
        assert resp.json()["error"] == "Failed to create book"

        assert c.get("/health").json()["database"] == "Disconnected"


def test_unknown_route_lists_available_routes(client):
    resp = client.get("/api/v2/nothing")
    assert resp.status_code == 404
    body = resp.json()
    assert body["error"].startswith("Route not found")
    assert "GET /api/v1/books" in body["available_routes"]


def test_analytics_overview(client):
    data = client.get("/api/v1/analytics/overview").json()["data"]
    assert data["total_books"] == 3
    assert data["reading_stats"] == {"finished": 1, "reading": 1, "to_read": 1}
    assert data["progress_stats"]["average_progress"] == 47
    assert data["progress_stats"]["books_with_progress"] == 2


def test_dashboard_is_html(client):
    resp = client.get("/api/v1/analytics/dashboard")
    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/html")
    assert "Reading Analytics Dashboard" in resp.text
    assert "JavaScript Guide" in resp.text


def test_recommendations_fall_back_when_model_fails(client):
    resp = client.post("/api/v1/recommendations")
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert 0 < len(data["recommendations"]) <= 4
    assert data["error"] == "Using fallback recommendations"
    # most read category is Sci-Fi, which has no fallback list of its own
    assert data["recommendations"][0]["title"] == "Educated"
    assert data["based_on"] == {
        "completed_books": 1,
        "categories": ["Science", "Programming", "Sci-Fi"],
        "total_books": 3,
    }


def test_recommendations_from_model_output(client, fake_generator):
    fake_generator.text = json.dumps([
        {"title": "Hyperion", "author": "Dan Simmons", "reason": "Epic sci-fi.", "confidence": 9, "genre": "Sci-Fi"},
    ])
    resp = client.post(
        "/api/v1/recommendations",
        json={"books": [{"title": "Dune", "author": "Frank Herbert", "category": "Sci-Fi",
                         "reading_status": "finished"}]},
    )
    data = resp.json()["data"]
    assert data["error"] is None
    assert data["recommendations"] == [
        {"title": "Hyperion", "author": "Dan Simmons", "reason": "Epic sci-fi.",
         "confidence": 9, "genre": "Sci-Fi", "cover_url": None},
    ]
    assert data["based_on"]["total_books"] == 1
    assert '"Dune" by Frank Herbert' in fake_generator.prompts[0]


def test_insights_and_analysis_fallbacks(client):
    insight = client.post("/api/v1/recommendations/insights").json()["data"]
    assert insight["pattern"]
    assert len(insight["categories"]) == 3

    resp = client.post("/api/v1/recommendations/analyze", json={"title": "Dune", "author": "Herbert"})
    data = resp.json()["data"]
    assert data["title"] == "Dune"
    assert data["analysis"]


def test_cover_upload_and_delete_with_book(client, covers):
    resp = client.post(
        "/api/v1/covers",
        files={"file": ("front.png", b"\x89PNG fake", "image/png")},
    )
    assert resp.status_code == 201
    url = resp.json()["data"]["url"]
    assert url.startswith("/covers/book-cover-") and url.endswith(".png")
    assert client.get(url).content == b"\x89PNG fake"

    book = client.post(
        "/api/v1/books",
        json={"title": "A", "author": "B", "category": "C", "cover_url": url},
    ).json()["data"]
    client.delete(f"/api/v1/books/{book['id']}")
    assert not (covers.directory / url.rsplit("/", 1)[-1]).exists()


def test_cover_upload_rejects_non_images(client):
    resp = client.post(
        "/api/v1/covers",
        files={"file": ("notes.txt", b"hello", "text/plain")},
    )
    assert resp.status_code == 400
    assert resp.json()["message"] == "Please upload an image file"


def test_create_book_non_text_title_is_400(client):
    resp = client.post("/api/v1/books", json={"title": 123, "author": "A", "category": "C"})
    assert resp.status_code == 400
    assert resp.json()["error"] == "Missing or invalid fields"
    assert "title" in resp.json()["message"]

    resp = client.put("/api/v1/books/1", json={"author": ["x"]})
    assert resp.status_code == 400


def test_cover_upload_rejects_oversized_file(config, repo, tmp_path):
    small = LocalCoverStorage(str(tmp_path / "small"), max_bytes=8)
    app = create_app(config, repository=repo, cover_storage=small)
    with TestClient(app) as c:
        resp = c.post(
            "/api/v1/covers",
            files={"file": ("big.png", b"x" * 64, "image/png")},
        )
    assert resp.status_code == 400
    assert resp.json()["error"] == "Invalid cover image"
    assert list(small.directory.iterdir()) == []
