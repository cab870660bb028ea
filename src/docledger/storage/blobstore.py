from __future__ import annotations

import hashlib
from typing import Dict, Protocol, runtime_checkable

from docledger.runtime.errors import BlobStoreError


@runtime_checkable
class BlobStore(Protocol):
    """Content-addressed blob storage.

    Implementations raise BlobStoreError on any failure. Uploading identical
    bytes is expected to return the same hash.
    """

    def upload(self, content: bytes, *, name: str = "") -> str:
        ...

    def fetch(self, content_hash: str) -> bytes:
        ...


class InMemoryBlobStore:
    """Dict-backed store addressed by the sha256 hex digest of the content."""

    def __init__(self) -> None:
        self._blobs: Dict[str, bytes] = {}

    def __contains__(self, content_hash: object) -> bool:
        return content_hash in self._blobs

    def __len__(self) -> int:
        return len(self._blobs)

    def upload(self, content: bytes, *, name: str = "") -> str:
        if not isinstance(content, (bytes, bytearray)):
            raise BlobStoreError("Failed to add to blob store", {"name": name, "error": "content must be bytes"})
        digest = hashlib.sha256(content).hexdigest()
        self._blobs[digest] = bytes(content)
        return digest

    def fetch(self, content_hash: str) -> bytes:
        data = self._blobs.get(str(content_hash or ""))
        if data is None:
            raise BlobStoreError(f"Blob not found: {content_hash}", {"content_hash": content_hash})
        return data
