"""
Tests for the HTTP surface over a real SQLite store
"""
import pytest
from fastapi.testclient import TestClient

from main import create_app
from tests.conftest import png_bytes
from utils.settings import Settings


@pytest.fixture
def settings(tmp_path):
    return Settings(database_dir=tmp_path, log_level="WARNING")


@pytest.fixture
def client(settings):
    with TestClient(create_app(settings)) as test_client:
        yield test_client


def _upload(client, *names, category_id="c1"):
    files = [("files", (name, png_bytes(), "image/png")) for name in names]
    return client.post("/images", files=files, data={"category_id": category_id})


def test_health_reports_ready_repository(client):
    body = client.get("/health").json()
    assert body["ok"] is True
    assert body["repository_ready"] is True
    assert body["images"] == 0


def test_upload_list_and_duplicate_warning(client):
    first = _upload(client, "cat.png", "dog.png")
    assert first.status_code == 200
    assert first.json()["skipped"] == 0

    second = _upload(client, "cat.png")
    assert second.json() == {"added": [], "skipped": 1}

    notes = client.get("/notifications").json()["notifications"]
    assert [n["level"] for n in notes] == ["warning"]

    listed = client.get("/images", params={"q": "CAT"}).json()
    assert [i["file_name"] for i in listed["images"]] == ["cat.png"]
    assert listed["search_query"] == "CAT"


def test_request_query_does_not_replace_stored_search(client):
    _upload(client, "cat.png", "dog.png")
    client.put("/search", json={"query": "dog"})

    listed = client.get("/images", params={"q": "cat"}).json()
    assert [i["file_name"] for i in listed["images"]] == ["cat.png"]

    stored = client.get("/images").json()
    assert stored["search_query"] == "dog"
    assert [i["file_name"] for i in stored["images"]] == ["dog.png"]


def test_toggle_of_image_deleted_meanwhile_is_404(client, monkeypatch):
    image_id = _upload(client, "cat.png").json()["added"][0]["id"]
    repository = client.app.state.image_repository

    async def deleted_before_toggle(record_id):
        await repository.delete_one(record_id)
        return None

    monkeypatch.setattr(repository, "toggle_favorite", deleted_before_toggle)

    assert client.post(f"/images/{image_id}/favorite").status_code == 404


def test_display_handle_serves_content(client):
    added = _upload(client, "cat.png").json()["added"][0]

    blob = client.get(added["display_handle"])
    assert blob.status_code == 200
    assert blob.headers["content-type"] == "image/png"
    assert blob.content == png_bytes()

    content = client.get(f"/images/{added['id']}/content")
    assert content.content == png_bytes()

    thumb = client.get(f"/images/{added['id']}/thumbnail")
    assert thumb.headers["content-type"] == "image/png"


def test_favorite_toggle_survives_restart(settings):
    with TestClient(create_app(settings)) as client:
        image_id = _upload(client, "cat.png").json()["added"][0]["id"]
        toggled = client.post(f"/images/{image_id}/favorite").json()
        assert toggled["is_favorite"] is True

    with TestClient(create_app(settings)) as client:
        favorites = client.get("/images/favorites").json()["images"]
        assert [f["id"] for f in favorites] == [image_id]


def test_delete_and_clear(client):
    ids = [i["id"] for i in _upload(client, "a.png", "b.png", "c.png").json()["added"]]

    assert client.delete(f"/images/{ids[0]}").status_code == 200
    assert client.post("/images/delete", json={"ids": [ids[1]]}).json() == {"deleted": [ids[1]]}
    client.post(f"/images/{ids[2]}/favorite")

    assert client.delete("/images", params={"only_favorites": True}).json() == {"remaining": 0}
    assert client.get("/images").json()["images"] == []


def test_unknown_image_is_404(client):
    assert client.delete("/images/missing").status_code == 404
    assert client.post("/images/missing/favorite").status_code == 404
    assert client.get("/blobs/unknown").status_code == 404


def test_category_counts_and_search(client):
    _upload(client, "a.png", category_id="c1")
    _upload(client, "b.png", category_id="c2")

    assert client.get("/categories/counts").json() == {"all": 2, "c1": 1, "c2": 1}

    client.put("/search", json={"query": "b"})
    assert [i["file_name"] for i in client.get("/images").json()["images"]] == ["b.png"]
    assert client.get("/images", params={"category_id": "c1"}).json()["images"] == []


def test_upload_into_all_is_rejected(client):
    assert _upload(client, "a.png", category_id="all").status_code == 400
