"""End-to-end tests of the admin HTTP routes over a temporary SQLite database."""

import io

import pytest
from fastapi.testclient import TestClient

from app.api.dependencies import get_store
from app.core.config import settings
from app.core.resources import get_registry
from app.main import app
from tests.conftest import TEST_REGISTRY, query_db

API = f"{settings.API_V1_STR}/admin"


@pytest.fixture
def client(db_path, monkeypatch):
    monkeypatch.setattr(settings, "DATABASE_URL", f"sqlite+aiosqlite:///{db_path}")
    app.dependency_overrides[get_registry] = lambda: TEST_REGISTRY
    try:
        with TestClient(app) as test_client:
            yield test_client
    finally:
        app.dependency_overrides.clear()


class TestListing:
    def test_resources(self, client):
        response = client.get(f"{API}/resources")
        assert response.status_code == 200
        keys = [r["key"] for r in response.json()["resources"]]
        assert keys == ["kanji", "strict_items", "quiz_results"]

    def test_list(self, client):
        response = client.get(f"{API}/kanji", params={"page": "2", "limit": "4"})
        assert response.status_code == 200
        body = response.json()
        assert body["meta"] == {"total": 10, "page": 2, "limit": 4, "totalPages": 3}
        assert [row["id"] for row in body["data"]] == [6, 5, 4, 3]

    def test_invalid_paging_values_fall_back(self, client):
        response = client.get(f"{API}/kanji", params={"page": "abc", "limit": "-1"})
        assert response.status_code == 200
        assert response.json()["meta"]["page"] == 1
        assert response.json()["meta"]["limit"] == settings.DEFAULT_PAGE_SIZE

    def test_huge_page_number(self, client):
        response = client.get(f"{API}/kanji", params={"page": "99999999999999999999", "limit": "10"})
        assert response.status_code == 200
        assert response.json()["data"] == []
        assert response.json()["meta"]["total"] == 10

    def test_search_and_filters(self, client):
        response = client.get(f"{API}/kanji", params={"search": "N5"})
        assert response.json()["meta"]["total"] == 3

        response = client.get(f"{API}/kanji", params={"jlpt_level": "N4", "is_common": "true"})
        assert {row["character"] for row in response.json()["data"]} == {"金", "土"}

    def test_injection_attempts_are_inert(self, client, db_path):
        params = {
            "search": "'; DROP TABLE kanji; --",
            "sort": "id; DROP TABLE kanji",
            "kanji; DROP TABLE kanji": "1",
        }
        response = client.get(f"{API}/kanji", params=params)
        assert response.status_code == 200
        assert response.json()["meta"]["total"] == 0
        assert query_db(db_path, "SELECT COUNT(*) FROM kanji") == [(10,)]


class TestUnknownResource:
    def test_store_is_never_touched(self, client):
        calls = []

        def tracking_store():
            calls.append(True)

        app.dependency_overrides[get_store] = tracking_store
        for method, path in [
            ("get", f"{API}/nope"),
            ("get", f"{API}/nope/1"),
            ("delete", f"{API}/nope/1"),
            ("get", f"{API}/nope/export"),
        ]:
            response = getattr(client, method)(path)
            assert response.status_code == 404
            assert response.json() == {"detail": "Resource not found"}
        assert calls == []


class TestRowRoutes:
    def test_crud_cycle(self, client, db_path):
        response = client.post(f"{API}/kanji", json={"character": "石", "meaning_en": "stone", "id": 500})
        assert response.status_code == 201
        row_id = response.json()["id"]
        assert row_id == 11

        response = client.get(f"{API}/kanji/{row_id}")
        assert response.json()["meaning_en"] == "stone"

        response = client.put(f"{API}/kanji/{row_id}", json={"meaning_en": "rock"})
        assert response.status_code == 200
        assert response.json()["meaning_en"] == "rock"

        response = client.delete(f"{API}/kanji/{row_id}")
        assert response.status_code == 200
        assert response.json()["success"] is True

        response = client.delete(f"{API}/kanji/{row_id}")
        assert response.status_code == 404
        assert response.json() == {"detail": "Item not found"}
        assert query_db(db_path, "SELECT COUNT(*) FROM kanji") == [(10,)]

    def test_missing_row(self, client):
        response = client.get(f"{API}/kanji/999")
        assert response.status_code == 404
        assert response.json() == {"detail": "Item not found"}

    def test_no_valid_fields(self, client):
        response = client.post(f"{API}/kanji", json={"bogus": 1})
        assert response.status_code == 400
        assert response.json() == {"detail": "No valid fields provided"}

    def test_store_error(self, client):
        response = client.post(f"{API}/strict_items", json={"code": "TOOLONG"})
        assert response.status_code == 500
        assert response.json()["detail"].startswith("Database error:")

    def test_read_only(self, client, db_path):
        response = client.post(f"{API}/quiz_results", json={"score": 10})
        assert response.status_code == 405
        response = client.delete(f"{API}/quiz_results/1")
        assert response.status_code == 405
        assert query_db(db_path, "SELECT COUNT(*) FROM quiz_results") == [(2,)]


class TestBulkRoutes:
    def test_import(self, client):
        rows = [
            {"character": "石", "meaning_en": "stone"},
            {"character": "水", "meaning_en": "water"},
            {"meaning_en": "nothing"},
        ]
        response = client.post(f"{API}/kanji/import", json={"data": rows})
        assert response.status_code == 200
        body = response.json()
        assert (body["success"], body["skipped"], body["failed"]) == (1, 1, 1)
        assert body["details"][2]["message"] == "Missing required fields: Character"

    def test_import_without_rows(self, client):
        response = client.post(f"{API}/kanji/import", json={})
        assert response.status_code == 400
        assert response.json() == {"detail": "No data provided"}

    def test_import_file(self, client, db_path):
        content = "Character,Meaning,JLPT Level\n石,stone,N4\n花,flower,N4\n".encode("utf-8")
        response = client.post(
            f"{API}/kanji/import/file",
            files={"file": ("kanji.csv", io.BytesIO(content), "text/csv")},
        )
        assert response.status_code == 200
        assert response.json()["success"] == 2
        assert query_db(db_path, "SELECT COUNT(*) FROM kanji WHERE jlpt_level = 'N4'") == [(4,)]

    def test_export(self, client):
        response = client.get(f"{API}/kanji/export", params={"search": "N5", "limit": "1"})
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        assert 'filename="kanji_export_all.csv"' in response.headers["content-disposition"]
        lines = response.content.decode("utf-8-sig").splitlines()
        assert len(lines) == 4

    def test_export_bad_format(self, client):
        response = client.get(f"{API}/kanji/export", params={"format": "pdf"})
        assert response.status_code == 400

    def test_batch_update(self, client):
        response = client.post(f"{API}/kanji/batch-update", json={"ids": [1, 2, 999], "data": {"jlpt_level": "N1"}})
        assert response.status_code == 200
        body = response.json()
        assert (body["success"], body["failed"]) == (2, 1)

    def test_batch_delete(self, client, db_path):
        response = client.post(f"{API}/kanji/batch-delete", json={"ids": [1, 2]})
        assert response.json()["success"] == 2
        assert query_db(db_path, "SELECT COUNT(*) FROM kanji") == [(8,)]

        response = client.post(f"{API}/kanji/batch-delete", json={"ids": []})
        assert response.status_code == 400


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"ok": True, "dialect": "sqlite"}
