from __future__ import annotations

import os

import pytest

from app.errors import RemoteStorageError
from app.services import handoff


def _upload(client, content: bytes, filename: str = "cat.png", **form):
    data = {"title": "A cat", "body": "sleeping"}
    data.update(form)
    return client.post("/api/posts", data=data, files={"file": (filename, content, "image/png")})


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"ok": True}
    assert r.headers.get("x-request-id")
    assert client.app.title == "mediarelay API"


def test_request_id_is_echoed(client):
    r = client.get("/health", headers={"x-request-id": "abc-123"})
    assert r.headers["x-request-id"] == "abc-123"


def test_upload_sets_listing(client):
    r = client.get("/api/upload-sets")
    assert r.status_code == 200
    items = {i["name"]: i for i in r.json()["items"]}
    assert items["images"]["resource_type"] == "image"
    assert "png" in items["images"]["extensions"]
    assert "pdf" in items["documents"]["extensions"]


def test_upload_then_fetch_and_render(client, png_bytes):
    r = _upload(client, png_bytes)
    assert r.status_code == 201, r.text
    post = r.json()
    assert post["status"] == "ready"
    assert post["title"] == "A cat"
    image = post["image"]
    assert image["backend"] == "local"
    assert image["filename"] == "cat.png"
    assert image["size_bytes"] == len(png_bytes)
    assert image["url"] == f"/media/posts/{post['post_id']}.png"

    r = client.get(f"/api/posts/{post['post_id']}")
    assert r.status_code == 200
    assert r.json()["image"]["url"] == image["url"]
    assert r.json()["job"] is None

    r = client.get(f"/api/posts/{post['post_id']}/image", follow_redirects=False)
    assert r.status_code == 307
    assert r.headers["location"] == image["url"]

    r = client.get(image["url"])
    assert r.status_code == 200
    assert r.content == png_bytes

    listed = client.get("/api/posts").json()["items"]
    assert [p["post_id"] for p in listed] == [post["post_id"]]


def test_upload_rejects_disallowed_type(client):
    r = _upload(client, b"MZ\x90\x00", filename="setup.exe")
    assert r.status_code == 400
    assert "not allowed" in r.json()["detail"]


def test_upload_unknown_set(client, png_bytes):
    r = _upload(client, png_bytes, upload_set="videos")
    assert r.status_code == 404


def test_upload_document_set(client):
    r = _upload(client, b"hello", filename="notes.txt", upload_set="documents")
    assert r.status_code == 201, r.text
    post = r.json()
    assert post["upload_set"] == "documents"
    assert post["image"]["resource_type"] == "raw"
    assert post["image"]["url"].endswith(".txt")


def test_upload_too_large(client, settings, monkeypatch, png_bytes):
    monkeypatch.setattr(settings, "max_upload_bytes", 32)
    r = _upload(client, png_bytes)
    assert r.status_code == 413


def test_upload_empty_file(client):
    r = _upload(client, b"")
    assert r.status_code == 400


def test_upload_requires_title(client, png_bytes):
    r = client.post("/api/posts", data={"body": "x"}, files={"file": ("cat.png", png_bytes, "image/png")})
    assert r.status_code == 422


def test_remote_failure_returns_502(client, monkeypatch, png_bytes):
    class Down:
        name = "down"

        def upload(self, *a, **kw):
            raise RemoteStorageError("media host unavailable")

    monkeypatch.setattr(handoff, "get_storage", lambda *a, **kw: Down())
    r = _upload(client, png_bytes)
    assert r.status_code == 502
    assert r.json()["detail"] == "media host unavailable"
    assert client.get("/api/posts").json()["items"] == []


def test_large_upload_processes_in_background(client, settings, monkeypatch, png_bytes):
    monkeypatch.setattr(settings, "upload_async_threshold_bytes", 16)
    r = _upload(client, png_bytes)
    assert r.status_code == 201, r.text
    post = r.json()
    assert post["status"] == "processing"
    assert post["image"] is None
    assert post["job"]["status"] == "queued"

    # TestClient runs background tasks before returning
    r = client.get(f"/api/posts/{post['post_id']}")
    body = r.json()
    assert body["status"] == "ready"
    assert body["image"]["url"].endswith(f"{post['post_id']}.png")


def test_image_redirect_conflicts_while_not_ready(client, settings, monkeypatch, png_bytes):
    monkeypatch.setattr(settings, "upload_async_threshold_bytes", 16)

    class Down:
        name = "down"

        def upload(self, *a, **kw):
            raise RemoteStorageError("timeout")

    monkeypatch.setattr(handoff, "get_storage", lambda *a, **kw: Down())
    post = _upload(client, png_bytes).json()

    r = client.get(f"/api/posts/{post['post_id']}")
    assert r.json()["status"] == "failed"
    assert r.json()["error"] == "timeout"
    assert r.json()["job"]["status"] == "failed"

    r = client.get(f"/api/posts/{post['post_id']}/image", follow_redirects=False)
    assert r.status_code == 409


def test_delete_post(client, settings, png_bytes):
    post = _upload(client, png_bytes).json()
    media_file = os.path.join(settings.media_dir, "posts", f"{post['post_id']}.png")
    assert os.path.exists(media_file)

    r = client.delete(f"/api/posts/{post['post_id']}")
    assert r.status_code == 200
    assert r.json() == {"ok": True}
    assert not os.path.exists(media_file)
    assert client.get(f"/api/posts/{post['post_id']}").status_code == 404


@pytest.mark.parametrize("method", ["get", "delete"])
def test_unknown_post_is_404(client, method):
    r = getattr(client, method)("/api/posts/nope")
    assert r.status_code == 404
