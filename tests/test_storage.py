import asyncio
import re

import httpx
import pytest

from polis.core.storage import (
    DELETE_SUCCESS,
    PAYLOAD_BASE64,
    PAYLOAD_DATA_URL,
    PAYLOAD_URI,
    BlobStore,
    DeleteError,
    FetchError,
    ImagePayload,
    InvalidImagePayload,
    UploadError,
    parse_data_url,
    payload_from_string,
    sniff_content_type,
)


def make_store(handler):
    return BlobStore(
        endpoint="https://acct.blob.core.windows.net/",
        sas_tokens={"post-images": "?sig=photos", "profile-pics": "sig=profiles"},
        transport=httpx.MockTransport(handler),
    )


def test_payload_from_string():
    assert payload_from_string("data:image/png;base64,AAAA").kind == PAYLOAD_DATA_URL
    assert payload_from_string("https://cdn.test/a.png").kind == PAYLOAD_URI
    assert payload_from_string("http://cdn.test/a.png").kind == PAYLOAD_URI
    assert payload_from_string("  iVBORw0KGgo=  ") == ImagePayload(PAYLOAD_BASE64, "iVBORw0KGgo=")
    # No guessing: anything else is base64 and fails to decode later
    assert payload_from_string("file:///tmp/a.png").kind == PAYLOAD_BASE64


def test_sniff_content_type():
    assert sniff_content_type(b"\x89PNG\r\n\x1a\nrest") == "image/png"
    assert sniff_content_type(b"\xff\xd8\xff\xe1rest") == "image/jpeg"
    assert sniff_content_type(b"GIF89a...") == "image/gif"
    assert sniff_content_type(b"RIFF\x00\x00\x00\x00WEBPVP8 ") == "image/webp"
    assert sniff_content_type(b"\x00\x00\x00\x18ftypheic") == "image/heic"
    assert sniff_content_type(b"plain text") == "application/octet-stream"


def test_parse_data_url():
    resolved = parse_data_url("data:image/gif;base64,R0lGODlh")
    assert resolved.content_type == "image/gif"
    assert resolved.data.startswith(b"GIF89a")


@pytest.mark.parametrize("value", [
    "data:image/png,plain",
    "data:image/png;base64",
    "data:image/png;base64,",
    "data:image/png;base64,@@@@",
])
def test_parse_data_url_rejects_malformed(value):
    with pytest.raises(InvalidImagePayload):
        parse_data_url(value)


def test_with_sas():
    store = make_store(lambda request: httpx.Response(200))
    base = "https://acct.blob.core.windows.net"

    assert store.with_sas(f"{base}/post-images/a.png") == f"{base}/post-images/a.png?sig=photos"
    assert store.with_sas(f"{base}/profile-pics/u1.png") == f"{base}/profile-pics/u1.png?sig=profiles"
    assert store.with_sas(f"{base}/post-images/a.png?sig=old") == f"{base}/post-images/a.png?sig=old"


def test_with_sas_leaves_foreign_urls_unsigned():
    store = make_store(lambda request: httpx.Response(200))
    base = "https://acct.blob.core.windows.net"

    assert store.with_sas(f"{base}/other/a.png") == f"{base}/other/a.png"
    assert store.with_sas(f"{base}/post-images") == f"{base}/post-images"
    assert store.with_sas("https://attacker.example/post-images/a.png") == "https://attacker.example/post-images/a.png"
    assert store.with_sas(f"{base}.attacker.example/post-images/a.png") == f"{base}.attacker.example/post-images/a.png"


def test_with_sas_without_tokens():
    store = BlobStore(endpoint="https://acct.blob.core.windows.net", sas_tokens={"post-images": ""})
    url = "https://acct.blob.core.windows.net/post-images/a.png"
    assert store.with_sas(url) == url


def test_object_name():
    assert re.fullmatch(r"post1_\d{13}", BlobStore.object_name("post1"))
    assert re.fullmatch(r"post1_\d{13}_3", BlobStore.object_name("post1", 3))


def test_upload_failure_carries_status():
    store = make_store(lambda request: httpx.Response(403, text="AuthorizationFailure"))
    payload = ImagePayload(PAYLOAD_BASE64, "iVBORw0KGgo=")

    with pytest.raises(UploadError) as exc_info:
        asyncio.run(store.upload(payload, "p_1", "post-images"))
    assert "403" in str(exc_info.value)
    assert "AuthorizationFailure" in str(exc_info.value)


def test_upload_connection_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    store = make_store(handler)
    with pytest.raises(UploadError):
        asyncio.run(store.upload(ImagePayload(PAYLOAD_BASE64, "iVBORw0KGgo="), "p_1", "post-images"))


def test_fetch_failure():
    store = make_store(lambda request: httpx.Response(500))
    with pytest.raises(FetchError):
        asyncio.run(store.resolve(ImagePayload(PAYLOAD_URI, "https://cdn.test/a.png")))


def test_fetch_uses_sniffing_without_content_type():
    store = make_store(lambda request: httpx.Response(200, content=b"\x89PNG\r\n\x1a\nxx"))
    resolved = asyncio.run(store.resolve(ImagePayload(PAYLOAD_URI, "https://cdn.test/a")))
    assert resolved.content_type == "image/png"


def test_resolve_unknown_kind():
    store = make_store(lambda request: httpx.Response(200))
    with pytest.raises(InvalidImagePayload):
        asyncio.run(store.resolve(ImagePayload("file", "/tmp/a.png")))


def test_delete():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(202)

    store = make_store(handler)
    result = asyncio.run(store.delete("https://acct.blob.core.windows.net/post-images/a.png"))
    assert result == DELETE_SUCCESS
    assert seen[0].method == "DELETE"
    assert str(seen[0].url).endswith("?sig=photos")


def test_delete_failure():
    store = make_store(lambda request: httpx.Response(404, text="BlobNotFound"))
    with pytest.raises(DeleteError) as exc_info:
        asyncio.run(store.delete("https://acct.blob.core.windows.net/post-images/a.png"))
    assert "404" in str(exc_info.value)


@pytest.mark.parametrize("url", [
    "https://attacker.example/loot",
    "https://attacker.example/post-images/a.png",
    "https://acct.blob.core.windows.net/other/a.png",
])
def test_delete_refuses_foreign_urls(url):
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(202)

    store = make_store(handler)
    with pytest.raises(DeleteError):
        asyncio.run(store.delete(url))
    assert seen == []
