import base64
import re

import pytest

from conftest import BLOB_ENDPOINT, JPEG_BYTES, PHOTOS_TOKEN, PNG_BYTES, PNG_DATA_URL, PROFILES_TOKEN
from polis.modules.posts.models.post import Image


@pytest.fixture
def post_id(make_user, make_post):
    make_user("u1")
    return make_post("u1")


def image_rows(database):
    db = database.session()
    try:
        return db.query(Image).all()
    finally:
        db.close()


def test_upload_data_url_and_sign_it(client, database, blob_backend, post_id):
    response = client.post("/api/image", json={"image": PNG_DATA_URL, "postId": post_id})
    assert response.status_code == 201
    body = response.json()
    assert body["message"] == "Image uploaded successfully"
    assert re.fullmatch(rf"{BLOB_ENDPOINT}/post-images/{post_id}_\d+", body["url"])

    put = blob_backend.by_method("PUT")[0]
    assert str(put.url) == f"{body['url']}?{PHOTOS_TOKEN}"
    assert put.headers["x-ms-blob-type"] == "BlockBlob"
    assert put.headers["content-type"] == "image/png"
    assert put.content == PNG_BYTES

    assert [row.image_url for row in image_rows(database)] == [body["url"]]

    signed = client.get("/api/safeimage", params={"url": body["url"]})
    assert signed.json() == {"url": f"{body['url']}?{PHOTOS_TOKEN}"}


def test_upload_bare_base64(client, blob_backend, post_id):
    encoded = base64.b64encode(JPEG_BYTES).decode()
    response = client.post("/api/image", json={"image": encoded, "postId": post_id})
    assert response.status_code == 201
    assert blob_backend.by_method("PUT")[0].headers["content-type"] == "image/jpeg"


def test_upload_explicit_uri(client, blob_backend, post_id):
    blob_backend.remote_images["https://cdn.test/cat.jpg"] = (JPEG_BYTES, "image/jpeg")

    response = client.post("/api/image", json={
        "image": {"kind": "uri", "value": "https://cdn.test/cat.jpg"},
        "postId": post_id,
    })
    assert response.status_code == 201
    put = blob_backend.by_method("PUT")[0]
    assert put.content == JPEG_BYTES
    assert put.headers["content-type"] == "image/jpeg"


def test_upload_unreachable_uri(client, database, blob_backend, post_id):
    response = client.post("/api/image", json={
        "image": {"kind": "uri", "value": "https://cdn.test/missing.jpg"},
        "postId": post_id,
    })
    assert response.status_code == 502
    assert response.json()["success"] is False
    assert blob_backend.by_method("PUT") == []
    assert image_rows(database) == []


def test_upload_invalid_base64(client, blob_backend, post_id):
    response = client.post("/api/image", json={"image": "not base64 at all!", "postId": post_id})
    assert response.status_code == 400
    assert "base64" in response.json()["error"]
    assert blob_backend.by_method("PUT") == []


def test_upload_unknown_kind(client, post_id):
    response = client.post("/api/image", json={"image": {"kind": "file", "value": "abc"}, "postId": post_id})
    assert response.status_code == 400


def test_upload_unknown_post(client, blob_backend):
    response = client.post("/api/image", json={"image": PNG_DATA_URL, "postId": "missing"})
    assert response.status_code == 404
    assert blob_backend.requests == []


def test_upload_rejected_by_blob_store(client, database, blob_backend, post_id):
    blob_backend.put_status = 403

    response = client.post("/api/image", json={"image": PNG_DATA_URL, "postId": post_id})
    assert response.status_code == 500
    assert "403" in response.json()["error"]
    assert image_rows(database) == []


def test_upload_many(client, database, blob_backend, post_id):
    response = client.post("/api/images", json={"images": [PNG_DATA_URL, PNG_DATA_URL], "postId": post_id})
    assert response.status_code == 201
    urls = response.json()["urls"]
    assert len(urls) == 2
    assert urls[0].endswith("_0")
    assert urls[1].endswith("_1")
    assert len(image_rows(database)) == 2

    post = client.get("/api/post/by-id", params={"postId": post_id}).json()["post"]
    assert sorted(post["images"]) == sorted(urls)


def test_upload_many_requires_images(client, post_id):
    response = client.post("/api/images", json={"images": [], "postId": post_id})
    assert response.status_code == 400


def test_upload_profile_picture(client, database, blob_backend):
    response = client.post("/api/image-user", json={"image": PNG_DATA_URL, "uid": "u9"})
    assert response.status_code == 201
    url = response.json()["url"]
    assert url.startswith(f"{BLOB_ENDPOINT}/profile-pics/u9_")
    assert str(blob_backend.by_method("PUT")[0].url).endswith(f"?{PROFILES_TOKEN}")
    # Profile pictures are not image rows
    assert image_rows(database) == []


def test_safe_image_keeps_signed_url(client):
    url = f"{BLOB_ENDPOINT}/post-images/a.png?sig=existing"
    assert client.get("/api/safeimage", params={"url": url}).json() == {"url": url}


def test_safe_image_requires_url(client):
    response = client.get("/api/safeimage")
    assert response.status_code == 400
    assert response.json()["error"] == "url: Field required"


def test_delete_images(client, database, blob_backend, post_id):
    client.post("/api/images", json={"images": [PNG_DATA_URL, PNG_DATA_URL], "postId": post_id})
    rows = image_rows(database)

    response = client.request("DELETE", "/api/delete-images", json={
        "images": [{"imageId": row.id, "imageUrl": row.image_url} for row in rows],
    })
    assert response.status_code == 200
    assert response.json() == {"message": "Images deleted successfully", "deletedCount": 2}
    assert image_rows(database) == []
    assert len(blob_backend.by_method("DELETE")) == 2


def test_delete_images_when_blob_delete_fails(client, database, blob_backend, post_id):
    client.post("/api/image", json={"image": PNG_DATA_URL, "postId": post_id})
    row = image_rows(database)[0]
    blob_backend.delete_status = 404

    response = client.request("DELETE", "/api/delete-images", json={
        "images": [{"imageId": row.id, "imageUrl": row.image_url}],
    })
    assert response.status_code == 200
    assert response.json()["deletedCount"] == 1


@pytest.mark.parametrize("body", [{}, {"images": []}, {"images": None}])
def test_delete_no_images(client, blob_backend, body):
    response = client.request("DELETE", "/api/delete-images", json=body)
    assert response.status_code == 200
    assert response.json() == {"message": "No images to delete", "deletedCount": 0}
    assert blob_backend.requests == []


def test_safe_image_does_not_sign_foreign_hosts(client):
    url = "https://attacker.example/a.png"
    assert client.get("/api/safeimage", params={"url": url}).json() == {"url": url}


def test_delete_images_never_calls_foreign_hosts(client, database, blob_backend, post_id):
    client.post("/api/image", json={"image": PNG_DATA_URL, "postId": post_id})
    row = image_rows(database)[0]

    response = client.request("DELETE", "/api/delete-images", json={
        "images": [{"imageId": row.id, "imageUrl": "https://attacker.example/loot"}],
    })
    assert response.status_code == 200
    assert response.json()["deletedCount"] == 1
    assert blob_backend.by_method("DELETE") == []
    assert [r for r in blob_backend.requests if r.url.host == "attacker.example"] == []


def test_images_keep_upload_order(client, post_id):
    batch = client.post("/api/images", json={"images": [PNG_DATA_URL] * 3, "postId": post_id}).json()["urls"]
    single = client.post("/api/image", json={"image": PNG_DATA_URL, "postId": post_id}).json()["url"]

    post = client.get("/api/post/by-id", params={"postId": post_id}).json()["post"]
    assert post["images"] == batch + [single]


def test_image_positions(database, client, post_id):
    client.post("/api/images", json={"images": [PNG_DATA_URL] * 3, "postId": post_id})
    client.post("/api/image", json={"image": PNG_DATA_URL, "postId": post_id})

    positions = sorted((row.position, row.image_url) for row in image_rows(database))
    assert [position for position, _ in positions] == [0, 1, 2, 3]
    assert positions[0][1].endswith("_0")
    assert positions[2][1].endswith("_2")
