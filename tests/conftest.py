import os

# Settings are read at import time
os.environ["AZURE_SQL_CONNECTION_STRING"] = "sqlite://"
os.environ["AZURE_BLOB_ENDPOINT"] = "https://blob.test"

import base64

import httpx
import pytest
from fastapi.testclient import TestClient

from polis.core.storage import BlobStore
from polis.db.init_db import bootstrap_schema
from polis.db.session import Database
from polis.deps import get_blob_store, get_database
from polis.main import app

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 16
JPEG_BYTES = b"\xff\xd8\xff\xe0" + b"\x00" * 16
PNG_DATA_URL = "data:image/png;base64," + base64.b64encode(PNG_BYTES).decode()

BLOB_ENDPOINT = "https://blob.test"
PHOTOS_TOKEN = "sv=2024&sig=photos"
PROFILES_TOKEN = "sv=2024&sig=profiles"


class FakeBlobBackend:
    """Stands in for the blob endpoint and for remote image hosts"""

    def __init__(self):
        self.requests = []
        self.remote_images = {}
        self.put_status = 201
        self.delete_status = 202

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.method == "PUT":
            return httpx.Response(self.put_status, text="" if self.put_status < 300 else "AuthenticationFailed")
        if request.method == "DELETE":
            return httpx.Response(self.delete_status)
        url = str(request.url)
        if url in self.remote_images:
            data, content_type = self.remote_images[url]
            return httpx.Response(200, content=data, headers={"content-type": content_type})
        return httpx.Response(404)

    def by_method(self, method):
        return [r for r in self.requests if r.method == method]


@pytest.fixture
def database():
    database = Database("sqlite://").open()
    bootstrap_schema(database)
    yield database
    database.close()


@pytest.fixture
def blob_backend():
    return FakeBlobBackend()


@pytest.fixture
def blob_store(blob_backend):
    return BlobStore(
        endpoint=BLOB_ENDPOINT,
        sas_tokens={"post-images": PHOTOS_TOKEN, "profile-pics": PROFILES_TOKEN},
        transport=httpx.MockTransport(blob_backend),
    )


@pytest.fixture
def client(database, blob_store):
    app.dependency_overrides[get_database] = lambda: database
    app.dependency_overrides[get_blob_store] = lambda: blob_store
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(client):
    def _make_user(uid, display_name=None, email=None):
        response = client.post("/api/user", json={
            "uid": uid,
            "email": email or f"{uid}@example.com",
            "displayName": display_name or uid,
        })
        assert response.status_code == 201
        return uid
    return _make_user


@pytest.fixture
def make_post(client):
    def _make_post(user_id, title="Sunset", tags=None, private=False, **extra):
        body = {
            "userId": user_id,
            "type": "post",
            "title": title,
            "description": "Nice view from the pier",
            "latitude": 40.0,
            "longitude": -73.0,
            "latitudeDelta": 0.01,
            "longitudeDelta": 0.01,
            "private": private,
            "tags": tags or [],
        }
        body.update(extra)
        response = client.post("/api/posts", json=body)
        assert response.status_code == 201, response.text
        return response.json()["postId"]
    return _make_post
