from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from cinefree.config import CatalogSettings
from cinefree.server import create_app

ADMIN_USERNAME = "admin"
ADMIN_PASSWORD = "s3cret"


@pytest.fixture
def settings(tmp_path):
    return CatalogSettings(
        data_dir=tmp_path / "data",
        upload_dir=tmp_path / "uploads",
        static_dir=tmp_path / "static",
        admin_username=ADMIN_USERNAME,
        admin_password=ADMIN_PASSWORD,
        secret_key="test-secret",
        token_max_age=60,
    )


@pytest.fixture
def client(settings):
    with TestClient(create_app(settings)) as test_client:
        yield test_client


@pytest.fixture
def token(client):
    response = client.post("/api/login", json={"username": ADMIN_USERNAME, "password": ADMIN_PASSWORD})
    assert response.status_code == 200
    return response.json()["token"]


@pytest.fixture
def auth_headers(token):
    return {"Authorization": f"Bearer {token}"}
