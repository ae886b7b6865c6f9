import base64
import binascii
import logging
import time
import urllib.parse
from typing import Dict, NamedTuple, Optional

import httpx

from .config import Settings

logger = logging.getLogger(__name__)

PAYLOAD_DATA_URL = "dataUrl"
PAYLOAD_BASE64 = "base64"
PAYLOAD_URI = "uri"
PAYLOAD_KINDS = (PAYLOAD_DATA_URL, PAYLOAD_BASE64, PAYLOAD_URI)

DEFAULT_CONTENT_TYPE = "application/octet-stream"
DELETE_SUCCESS = "Blob deleted successfully"

_MAGIC_NUMBERS = (
    (b"\x89PNG\r\n\x1a\n", "image/png"),
    (b"\xff\xd8\xff", "image/jpeg"),
    (b"GIF87a", "image/gif"),
    (b"GIF89a", "image/gif"),
)


class BlobStoreError(Exception):
    """Non-2xx answer from the blob endpoint or from a source URI"""


class UploadError(BlobStoreError):
    pass


class FetchError(BlobStoreError):
    pass


class DeleteError(BlobStoreError):
    pass


class InvalidImagePayload(ValueError):
    pass


class ImagePayload(NamedTuple):
    kind: str
    value: str


class ResolvedPayload(NamedTuple):
    data: bytes
    content_type: str


def sniff_content_type(data: bytes) -> str:
    for magic, content_type in _MAGIC_NUMBERS:
        if data.startswith(magic):
            return content_type
    if data[:4] == b"RIFF" and data[8:12] == b"WEBP":
        return "image/webp"
    if data[4:12] in (b"ftypheic", b"ftypheix", b"ftypmif1"):
        return "image/heic"
    return DEFAULT_CONTENT_TYPE


def payload_from_string(value: str) -> ImagePayload:
    """
    Classify a bare string sent by older clients.

    Only unambiguous prefixes are used: "data:" is a data URL, "http(s)://"
    is a remote URI, everything else must be plain base64.
    """
    stripped = value.strip()
    if stripped.startswith("data:"):
        return ImagePayload(PAYLOAD_DATA_URL, stripped)
    if stripped.startswith(("http://", "https://")):
        return ImagePayload(PAYLOAD_URI, stripped)
    return ImagePayload(PAYLOAD_BASE64, stripped)


def _decode_base64(value: str) -> bytes:
    try:
        data = base64.b64decode("".join(value.split()), validate=True)
    except (binascii.Error, ValueError) as e:
        raise InvalidImagePayload(f"Image is not valid base64: {e}")
    if not data:
        raise InvalidImagePayload("Image is empty")
    return data


def parse_data_url(value: str) -> ResolvedPayload:
    header, sep, encoded = value.partition(",")
    if not sep or not header.startswith("data:") or not header.endswith(";base64"):
        raise InvalidImagePayload("Image data URL must look like data:<mime>;base64,<data>")
    content_type = header[len("data:"):-len(";base64")] or DEFAULT_CONTENT_TYPE
    return ResolvedPayload(_decode_base64(encoded), content_type)


class BlobStore:
    """
    Azure blob containers addressed through SAS-signed URLs.

    Every container has its own SAS token. Objects are written with a single
    PUT and removed with a DELETE, no SDK involved.
    """

    def __init__(
        self,
        endpoint: str,
        sas_tokens: Dict[str, str],
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.endpoint = endpoint.rstrip("/")
        self.sas_tokens = {name: token.lstrip("?") for name, token in sas_tokens.items() if token}
        self.timeout = timeout
        self.transport = transport

        configured = [name for name in sas_tokens if name in self.sas_tokens]
        missing = [name for name in sas_tokens if name not in self.sas_tokens]
        logger.info(f"BlobStore endpoint: {self.endpoint}")
        logger.info(f"  Containers with SAS token: {configured}")
        if missing:
            logger.warning(f"  Containers without SAS token: {missing}")

    @classmethod
    def from_settings(cls, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None) -> "BlobStore":
        return cls(
            endpoint=settings.blob_endpoint,
            sas_tokens={
                settings.AZURE_PHOTOS_CONTAINER: settings.AZURE_BLOB_URL_PHOTOS,
                settings.AZURE_PROFILES_CONTAINER: settings.AZURE_BLOB_URL_PROFILES,
            },
            timeout=settings.BLOB_TIMEOUT_SECONDS,
            transport=transport,
        )

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self.transport)

    def public_url(self, container: str, object_name: str) -> str:
        return f"{self.endpoint}/{container}/{urllib.parse.quote(object_name)}"

    def container_of(self, url: str) -> Optional[str]:
        """Container of a URL on this store's endpoint, None for any other URL."""
        if not url.startswith(self.endpoint + "/"):
            return None
        container, sep, name = url[len(self.endpoint) + 1:].partition("/")
        if not sep or not name or container not in self.sas_tokens:
            return None
        return container

    def with_sas(self, url: str) -> str:
        """
        Append the container's SAS token to a bare blob URL.
        URLs outside this store's configured containers are returned unchanged.
        """
        if "?" in url:
            return url
        container = self.container_of(url)
        if container is None:
            return url
        return f"{url}?{self.sas_tokens[container]}"

    @staticmethod
    def object_name(owner_id: str, index: Optional[int] = None) -> str:
        name = f"{owner_id}_{int(time.time() * 1000)}"
        if index is not None:
            name = f"{name}_{index}"
        return name

    async def resolve(self, payload: ImagePayload) -> ResolvedPayload:
        if payload.kind == PAYLOAD_DATA_URL:
            return parse_data_url(payload.value)
        if payload.kind == PAYLOAD_BASE64:
            data = _decode_base64(payload.value)
            return ResolvedPayload(data, sniff_content_type(data))
        if payload.kind == PAYLOAD_URI:
            return await self._fetch(payload.value)
        raise InvalidImagePayload(f"Unknown image payload kind: {payload.kind}")

    async def _fetch(self, uri: str) -> ResolvedPayload:
        logger.info(f"[FETCH] Dereferencing image source {uri}")
        try:
            async with self._client() as client:
                response = await client.get(uri, follow_redirects=True)
        except httpx.HTTPError as e:
            raise FetchError(f"Failed to fetch {uri}: {e}")
        if not response.is_success:
            raise FetchError(f"Failed to fetch {uri}: {response.status_code} {response.reason_phrase}")
        content_type = response.headers.get("content-type", "").split(";")[0].strip()
        data = response.content
        return ResolvedPayload(data, content_type or sniff_content_type(data))

    async def upload(self, payload: ImagePayload, object_name: str, container: str) -> str:
        """Upload the payload and return its public URL (without SAS token)."""
        resolved = await self.resolve(payload)
        public_url = self.public_url(container, object_name)
        signed_url = self.with_sas(public_url)
        logger.info(
            f"[UPLOAD] {len(resolved.data)} bytes ({resolved.content_type}) to '{container}/{object_name}'"
        )
        try:
            async with self._client() as client:
                response = await client.put(
                    signed_url,
                    content=resolved.data,
                    headers={
                        "x-ms-blob-type": "BlockBlob",
                        "Content-Type": resolved.content_type,
                    },
                )
        except httpx.HTTPError as e:
            raise UploadError(f"Upload failed: {e}")
        if not response.is_success:
            logger.error(f"[UPLOAD] Failed with status {response.status_code}: {response.text}")
            raise UploadError(f"Upload failed: {response.status_code} {response.reason_phrase} {response.text}")
        logger.info(f"[UPLOAD] Stored at {public_url}")
        return public_url

    async def delete(self, url: str) -> str:
        if self.container_of(url.split("?", 1)[0]) is None:
            raise DeleteError(f"Refusing to delete {url}: not a blob in a configured container")
        try:
            async with self._client() as client:
                response = await client.delete(self.with_sas(url))
        except httpx.HTTPError as e:
            raise DeleteError(f"Failed to delete blob: {e}")
        if not response.is_success:
            raise DeleteError(
                f"Failed to delete blob: {response.status_code} {response.reason_phrase} {response.text}"
            )
        logger.info(f"[DELETE] Removed {url}")
        return DELETE_SUCCESS

