from __future__ import annotations

import pytest
from starlette.datastructures import UploadFile as StarletteUploadFile

from cinefree.catalog import StorageError

from .conftest import ADMIN_PASSWORD, ADMIN_USERNAME

MOVIE = {"title": "X", "genre": "Drama", "description": "Y"}


def _upload_files(settings):
    if not settings.upload_dir.exists():
        return []
    return sorted(p.name for p in settings.upload_dir.iterdir())


def test_health(client):
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.json() == {"ok": True}


def test_login_success_and_failure(client):
    ok = client.post("/api/login", json={"username": ADMIN_USERNAME, "password": ADMIN_PASSWORD})
    assert ok.status_code == 200
    assert ok.json()["token"]

    bad = client.post("/api/login", json={"username": ADMIN_USERNAME, "password": "wrong"})
    assert bad.status_code == 401
    assert bad.json() == {"error": "Invalid credentials"}

    unknown = client.post("/api/login", json={"username": "nobody", "password": ADMIN_PASSWORD})
    assert unknown.status_code == 401
    assert "token" not in unknown.json()


def test_create_without_file(client, auth_headers):
    client.post("/api/movies", data={**MOVIE, "title": "First"}, headers=auth_headers)

    response = client.post("/api/movies", data=MOVIE, headers=auth_headers)

    assert response.status_code == 201
    created = response.json()
    assert created["videoUrl"] is None
    assert {k: created[k] for k in MOVIE} == MOVIE
    listed = client.get("/api/movies").json()
    assert [m["id"] for m in listed].count(created["id"]) == 1
    assert listed[-1] == created


@pytest.mark.parametrize("missing", ["title", "genre", "description"])
def test_create_rejects_missing_field(client, auth_headers, missing):
    data = {**MOVIE, missing: "   "}

    response = client.post("/api/movies", data=data, headers=auth_headers)

    assert response.status_code == 400
    assert response.json() == {"error": "Missing fields", "fields": [missing]}
    assert client.get("/api/movies").json() == []


@pytest.mark.parametrize(
    "headers",
    [{}, {"Authorization": "Bearer dev-token"}, {"Authorization": "Basic YWRtaW46YWRtaW4="}],
)
def test_mutations_require_valid_token(client, settings, auth_headers, headers):
    existing = client.post("/api/movies", data=MOVIE, headers=auth_headers).json()
    files_before = _upload_files(settings)

    created = client.post(
        "/api/movies",
        data=MOVIE,
        files={"video": ("clip.mp4", b"data", "video/mp4")},
        headers=headers,
    )
    deleted = client.delete(f"/api/movies/{existing['id']}", headers=headers)

    assert created.status_code == 401
    assert deleted.status_code == 401
    assert created.json() == {"error": "Unauthorized"}
    assert client.get("/api/movies").json() == [existing]
    assert _upload_files(settings) == files_before


def test_upload_and_delete_video_file(client, settings, auth_headers):
    response = client.post(
        "/api/movies",
        data=MOVIE,
        files={"video": ("my clip.mp4", b"moving pictures", "video/mp4")},
        headers=auth_headers,
    )

    assert response.status_code == 201
    movie = response.json()
    stored = _upload_files(settings)
    assert len(stored) == 1
    assert stored[0].endswith("_my_clip.mp4")
    assert movie["videoUrl"] == f"/uploads/{stored[0]}"
    assert client.get(movie["videoUrl"]).content == b"moving pictures"

    assert client.delete(f"/api/movies/{movie['id']}", headers=auth_headers).status_code == 204
    assert _upload_files(settings) == []


def test_delete_unknown_and_twice(client, auth_headers):
    movie = client.post("/api/movies", data=MOVIE, headers=auth_headers).json()

    first = client.delete(f"/api/movies/{movie['id']}", headers=auth_headers)
    second = client.delete(f"/api/movies/{movie['id']}", headers=auth_headers)
    unknown = client.delete("/api/movies/does-not-exist", headers=auth_headers)

    assert first.status_code == 204
    assert first.content == b""
    assert second.status_code == 404
    assert unknown.status_code == 404
    assert unknown.json() == {"error": "Not found"}


def test_delete_survives_missing_video_file(client, settings, auth_headers):
    movie = client.post(
        "/api/movies",
        data=MOVIE,
        files={"video": ("clip.mp4", b"x", "video/mp4")},
        headers=auth_headers,
    ).json()
    for path in settings.upload_dir.iterdir():
        path.unlink()

    response = client.delete(f"/api/movies/{movie['id']}", headers=auth_headers)

    assert response.status_code == 204
    assert client.get("/api/movies").json() == []


def test_storage_failure_is_a_server_error(client, settings, auth_headers, monkeypatch):
    store = client.app.state.store

    def failing_create(**kwargs):
        raise StorageError("disk full")

    monkeypatch.setattr(store, "create", failing_create)

    response = client.post(
        "/api/movies",
        data=MOVIE,
        files={"video": ("clip.mp4", b"x", "video/mp4")},
        headers=auth_headers,
    )

    assert response.status_code == 500
    assert response.json() == {"error": "Internal server error"}
    assert _upload_files(settings) == []
    assert client.get("/api/health").status_code == 200


def test_index_without_front_end(client):
    response = client.get("/")
    assert response.status_code == 404
    assert response.json() == {"error": "Front-end assets missing."}


def test_end_to_end_scenario(client):
    assert client.get("/api/movies").json() == []

    token = client.post(
        "/api/login", json={"username": ADMIN_USERNAME, "password": ADMIN_PASSWORD}
    ).json()["token"]
    headers = {"Authorization": f"Bearer {token}"}

    created = client.post("/api/movies", data=MOVIE, headers=headers)
    assert created.status_code == 201

    listed = client.get("/api/movies").json()
    assert len(listed) == 1
    assert listed[0]["title"] == "X"
    assert listed[0]["genre"] == "Drama"
    assert listed[0]["description"] == "Y"
    assert listed[0]["videoUrl"] is None

    assert client.delete(f"/api/movies/{listed[0]['id']}", headers=headers).status_code == 204
    assert client.get("/api/movies").json() == []


def test_failed_upload_write_leaves_no_file(client, settings, auth_headers, monkeypatch):
    calls = []

    async def failing_read(self, size=-1):
        calls.append(size)
        if len(calls) == 1:
            return b"abc"
        raise OSError(28, "No space left on device")

    monkeypatch.setattr(StarletteUploadFile, "read", failing_read)

    response = client.post(
        "/api/movies",
        data=MOVIE,
        files={"video": ("clip.mp4", b"abcdef", "video/mp4")},
        headers=auth_headers,
    )

    assert response.status_code == 500
    assert response.json() == {"error": "Internal server error"}
    assert _upload_files(settings) == []
    assert client.get("/api/movies").json() == []


@pytest.mark.parametrize(
    "kwargs",
    [
        {},
        {"content": b"not json"},
        {"json": {"username": 1, "password": 2}},
        {"json": [ADMIN_USERNAME, ADMIN_PASSWORD]},
        {"json": {"username": ADMIN_USERNAME}},
    ],
)
def test_malformed_login_is_unauthorized(client, kwargs):
    response = client.post("/api/login", **kwargs)

    assert response.status_code == 401
    assert response.json() == {"error": "Invalid credentials"}


def test_validation_errors_use_error_body(client):
    @client.app.get("/api/page")
    async def page(number: int) -> dict:
        return {"number": number}

    response = client.get("/api/page", params={"number": "many"})

    assert response.status_code == 400
    assert response.json() == {"error": "Invalid request"}
