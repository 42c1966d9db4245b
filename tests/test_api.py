import pytest
from fastapi.testclient import TestClient

from pictureframe.api import create_app
from pictureframe.settings import read_settings


@pytest.fixture
def client(config, store, image_dir):
    return TestClient(create_app(config, store=store, display=False))


def test_get_settings(client):
    resp = client.get("/api/settings")
    assert resp.status_code == 200
    assert resp.json() == {
        "display_enabled": True,
        "rotate_interval_secs": 10,
        "shuffle": False,
        "pinned_image": None,
    }


def test_patch_applies_only_provided_fields(client, store):
    resp = client.patch("/api/settings", json={"rotate_interval_secs": 30})
    assert resp.status_code == 200
    assert resp.json()["rotate_interval_secs"] == 30
    assert resp.json()["display_enabled"] is True

    resp = client.patch("/api/settings", json={"shuffle": True})
    assert resp.json()["rotate_interval_secs"] == 30
    assert read_settings(store.path).shuffle is True


def test_patch_rejects_bad_values(client):
    assert client.patch("/api/settings", json={"rotate_interval_secs": -5}).status_code == 422
    assert client.patch("/api/settings", json={"brightness": 3}).status_code == 422
    assert client.patch("/api/settings", json={"display_enabled": None}).status_code == 400


def test_patch_pin_must_exist(client):
    assert client.patch("/api/settings", json={"pinned_image": "nope.jpg"}).status_code == 404
    resp = client.patch("/api/settings", json={"pinned_image": "b.jpg"})
    assert resp.json()["pinned_image"] == "b.jpg"
    resp = client.patch("/api/settings", json={"pinned_image": None})
    assert resp.json()["pinned_image"] is None


def test_patch_io_failure_is_500(client, store, monkeypatch):
    def broken_replace(src, dst):
        raise OSError("read-only file system")

    monkeypatch.setattr("pictureframe.store.os.replace", broken_replace)
    assert client.patch("/api/settings", json={"shuffle": True}).status_code == 500
    monkeypatch.undo()
    assert store.get().shuffle is False


def test_pin_and_unpin(client):
    assert client.put("/api/settings/pin", json={"filename": "missing.jpg"}).status_code == 404

    resp = client.put("/api/settings/pin", json={"filename": "c.png"})
    assert resp.status_code == 200
    assert resp.json()["pinned_image"] == "c.png"
    assert client.put("/api/settings/pin", json={"filename": "c.png"}).json()["pinned_image"] == "c.png"

    assert client.delete("/api/settings/pin/a.jpg").status_code == 409
    resp = client.delete("/api/settings/pin/c.png")
    assert resp.status_code == 200
    assert resp.json()["pinned_image"] is None

    # nothing pinned: both forms succeed
    assert client.delete("/api/settings/pin").status_code == 200
    assert client.delete("/api/settings/pin/c.png").status_code == 200


def test_pictures_list_upload_delete(client, config):
    assert client.get("/api/pictures").json() == {"pictures": ["a.jpg", "b.jpg", "c.png"]}

    resp = client.post("/api/pictures", files={"file": ("d.jpg", b"data", "image/jpeg")})
    assert resp.status_code == 201
    assert resp.json() == {"filename": "d.jpg"}
    assert (config.image_dir / "d.jpg").read_bytes() == b"data"

    bad = client.post("/api/pictures", files={"file": ("d.txt", b"data", "text/plain")})
    assert bad.status_code == 400

    assert client.delete("/api/pictures/d.jpg").status_code == 204
    assert client.delete("/api/pictures/d.jpg").status_code == 204
    assert client.get("/api/pictures").json()["pictures"] == ["a.jpg", "b.jpg", "c.png"]


def test_upload_without_file(client):
    assert client.post("/api/pictures").status_code in (400, 422)
