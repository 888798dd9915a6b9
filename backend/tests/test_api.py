"""
End-to-end tests for the HTTP and WebSocket API.

Each client gets fresh session services whose HTTP client talks to a FakeServer.
"""
import time
from contextlib import contextmanager
from dataclasses import replace

import pytest
from fastapi.testclient import TestClient

from conftest import FakeServer
from dependencies import build_services
from main import app, app_config

VIDEO_URL = "https://cdn.example.com/media/clip.mp4"


@contextmanager
def make_client(server, config=app_config):
    app.state.service_factory = lambda: build_services(config, transport=server.transport)
    try:
        with TestClient(app) as test_client:
            yield test_client
    finally:
        del app.state.service_factory


@pytest.fixture
def server():
    return FakeServer([b"v" * 250] * 4, content_length=1000)


@pytest.fixture
def client(server):
    with make_client(server) as test_client:
        yield test_client


def upload(client, *files):
    return client.post(
        "/api/entries/upload",
        files=[("files", (name, data, mime_type)) for name, data, mime_type in files],
    )


def test_health(client):
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


class TestEntries:
    def test_upload_registers_supported_files(self, client):
        response = upload(client, ("clip.mp4", b"abc", "video/mp4"), ("notes.txt", b"hi", "text/plain"))

        assert response.status_code == 201
        body = response.json()
        assert body["rejected"] == ["notes.txt"]
        assert len(body["added"]) == 1
        added = body["added"][0]
        assert added["name"] == "clip.mp4"
        assert added["media_category"] == "video"
        assert added["size_bytes"] == 3
        assert added["has_payload"] is True
        assert added["settings"] == {"format": "mp4", "quality": 80, "resolution": "1920x1080", "fps": 30}

        listed = client.get("/api/entries").json()
        assert [entry["id"] for entry in listed] == [added["id"]]

    def test_get_missing_entry(self, client):
        assert client.get("/api/entries/does-not-exist").status_code == 404

    def test_update_settings(self, client):
        entry_id = upload(client, ("song.mp3", b"abc", "audio/mpeg")).json()["added"][0]["id"]

        response = client.patch(f"/api/entries/{entry_id}/settings", json={"field": "bitrate", "value": "250"})
        assert response.status_code == 200
        assert response.json()["settings"]["bitrate"] == 256

        response = client.patch(f"/api/entries/{entry_id}/settings", json={"field": "fps", "value": 30})
        assert response.status_code == 400

    def test_non_finite_quality_is_a_validation_error(self, client):
        entry_id = upload(client, ("clip.mp4", b"abc", "video/mp4")).json()["added"][0]["id"]

        response = client.patch(f"/api/entries/{entry_id}/settings", json={"field": "quality", "value": "inf"})

        assert response.status_code == 400
        assert client.get(f"/api/entries/{entry_id}").json()["settings"]["quality"] == 80

    def test_upload_over_limit_is_rejected(self, server):
        with make_client(server, replace(app_config, max_upload_bytes=4)) as client:
            assert upload(client, ("clip.mp4", b"abcd", "video/mp4")).status_code == 201

            response = upload(client, ("big.mp4", b"abcdefgh", "video/mp4"))

            assert response.status_code == 413
            assert "big.mp4" in response.json()["detail"]
            assert len(client.get("/api/entries").json()) == 1

    def test_convert_returns_attachment(self, client):
        entry_id = upload(client, ("clip.final.mp4", b"abc", "video/mp4")).json()["added"][0]["id"]

        response = client.post(f"/api/entries/{entry_id}/convert")
        assert response.status_code == 200
        assert response.content == b"abc"
        assert response.headers["content-type"] == "video/mp4"
        assert 'filename="converted_clip.mp4"' in response.headers["content-disposition"]

        response = client.post(f"/api/entries/{entry_id}/convert", params={"to_mp3": "true"})
        assert response.headers["content-type"] == "audio/mpeg"
        assert 'filename="clip_audio.mp3"' in response.headers["content-disposition"]

    def test_convert_image_to_mp3_is_rejected(self, client):
        entry_id = upload(client, ("photo.png", b"png", "image/png")).json()["added"][0]["id"]
        assert client.post(f"/api/entries/{entry_id}/convert", params={"to_mp3": "true"}).status_code == 400

    def test_export_original_file(self, client):
        entry_id = upload(client, ("clip.mp4", b"abc", "video/mp4")).json()["added"][0]["id"]

        response = client.get(f"/api/entries/{entry_id}/file")

        assert response.status_code == 200
        assert response.content == b"abc"

    def test_delete_is_idempotent(self, client):
        entry_id = upload(client, ("clip.mp4", b"abc", "video/mp4")).json()["added"][0]["id"]

        assert client.delete(f"/api/entries/{entry_id}").status_code == 204
        assert client.delete(f"/api/entries/{entry_id}").status_code == 204
        assert client.get(f"/api/entries/{entry_id}").status_code == 404


class TestDownloads:
    def test_download_and_wait(self, client, server):
        response = client.post("/api/downloads", params={"wait": "true"}, json={"url": VIDEO_URL})

        assert response.status_code == 200
        entry = response.json()
        assert entry["name"] == "clip.mp4"
        assert entry["source_kind"] == "remote_download"
        assert entry["mime_type"] == "video/mp4"
        assert entry["size_bytes"] == 1000
        assert entry["has_payload"] is True
        assert entry["source_url"] == VIDEO_URL
        assert server.calls == 1

        exported = client.get(f"/api/entries/{entry['id']}/file")
        assert len(exported.content) == 1000

    def test_background_download_completes(self, client):
        response = client.post("/api/downloads", json={"url": VIDEO_URL})
        assert response.status_code == 202
        entry_id = response.json()["id"]

        deadline = time.monotonic() + 5
        entry = response.json()
        while not entry["has_payload"] and time.monotonic() < deadline:
            time.sleep(0.01)
            entry = client.get(f"/api/entries/{entry_id}").json()
        assert entry["has_payload"] is True
        assert entry["size_bytes"] == 1000

    @pytest.mark.parametrize("url", ["ftp://cdn.example.com/clip.mp4", "https://cdn.example.com/readme.txt", ""])
    def test_invalid_url_is_rejected_without_network(self, client, server, url):
        response = client.post("/api/downloads", params={"wait": "true"}, json={"url": url})

        assert response.status_code == 400
        assert server.calls == 0
        assert client.get("/api/entries").json() == []

    def test_upstream_error_maps_to_bad_gateway_and_rolls_back(self):
        with make_client(FakeServer(status_code=404)) as client:
            response = client.post("/api/downloads", params={"wait": "true"}, json={"url": VIDEO_URL})

            assert response.status_code == 502
            assert response.json()["detail"]["status_code"] == 404
            assert client.get("/api/entries").json() == []

    def test_cancel_unknown_download(self, client):
        assert client.post("/api/downloads/nope/cancel").status_code == 404

    def test_preview(self, client):
        valid = client.get("/api/downloads/preview", params={"url": VIDEO_URL}).json()
        assert valid["valid"] is True
        assert valid["filename"] == "clip.mp4"
        assert valid["label"] == "Type: MP4 | Direct Link"

        invalid = client.get("/api/downloads/preview", params={"url": "https://cdn.example.com/page"}).json()
        assert invalid == {"valid": False, "filename": None, "extension": None, "label": None, "mime_type": None}


def test_websocket_connect_and_ping(client):
    with client.websocket_connect("/api/ws") as websocket:
        assert websocket.receive_json()["type"] == "connection"
        websocket.send_json({"type": "ping"})
        assert websocket.receive_json() == {"type": "pong"}
