# src/docledger/storage/__init__.py
"""
Blob storage collaborators.

- BlobStore: the protocol AssetService consumes (upload bytes -> content hash, fetch by hash)
- IpfsBlobStore: Kubo HTTP API client
- InMemoryBlobStore: sha256-addressed dict store for development and tests
"""

from docledger.storage.blobstore import BlobStore, InMemoryBlobStore
from docledger.storage.files import read_local_file
from docledger.storage.ipfs import IpfsBlobStore, IpfsConfig

__all__ = [
    "BlobStore",
    "InMemoryBlobStore",
    "IpfsBlobStore",
    "IpfsConfig",
    "read_local_file",
]
