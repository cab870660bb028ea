# src/docledger/runtime/asset_service.py
from __future__ import annotations

import logging
from typing import Callable, Optional, Sequence, Tuple

from docledger.runtime import record_codec
from docledger.runtime.errors import AssetError, ArgumentError, BlobStoreError, NotFoundError, StorageError
from docledger.runtime.event_log import log_event
from docledger.runtime.ledger import Ledger
from docledger.storage.blobstore import BlobStore
from docledger.storage.files import read_local_file

FileReader = Callable[[str], bytes]

# Fetched content is logged, not returned; keep the log line bounded.
_CONTENT_LOG_BYTES = 512


def _require_args(args: Sequence[str], n: int, message: str) -> None:
    if len(args) != n:
        raise ArgumentError(message, {"expected": n, "got": len(args)})


class AssetService:
    """Ledger records with IPFS attachments.

    Stateless between calls: every operation reads what it needs from the
    ledger view it was built with. The ledger view is scoped to one
    transaction; this class never begins or commits one.
    """

    def __init__(
        self,
        *,
        ledger: Ledger,
        blobs: BlobStore,
        logger: logging.Logger,
        read_file: Optional[FileReader] = None,
    ) -> None:
        self._ledger = ledger
        self._blobs = blobs
        self._log = logger
        self._read_file: FileReader = read_file or read_local_file

    # ---- ledger access ----

    def _get_state(self, key: str) -> Optional[bytes]:
        try:
            return self._ledger.get_state(key)
        except AssetError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to get asset: {key} with error: {e}", {"key": key}) from e

    def _put_state(self, key: str, value: str) -> None:
        try:
            self._ledger.put_state(key, value.encode("utf-8"))
        except AssetError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to set asset: {key}", {"key": key, "error": str(e)}) from e

    def _require_state(self, key: str) -> bytes:
        value = self._get_state(key)
        if value is None:
            raise NotFoundError(f"Asset not found: {key}", {"key": key})
        return value

    # ---- blob access ----

    def _upload(self, filename: str) -> str:
        try:
            content = self._read_file(filename)
            return self._blobs.upload(content, name=filename)
        except BlobStoreError:
            raise
        except Exception as e:
            raise BlobStoreError("Failed to add to IPFS", {"filename": filename, "error": str(e)}) from e

    def _fetch(self, content_hash: str) -> bytes:
        try:
            return self._blobs.fetch(content_hash)
        except BlobStoreError:
            raise
        except Exception as e:
            raise BlobStoreError("Failed to cat from IPFS", {"content_hash": content_hash, "error": str(e)}) from e

    # ---- operations ----

    def set(self, args: Sequence[str]) -> str:
        """Store a value verbatim, overwriting any existing entry. Returns the value."""
        _require_args(args, 2, "Incorrect arguments. Expecting a key and a value")
        key, value = args[0], args[1]
        self._put_state(key, value)
        log_event(self._log, "asset_set", key=key)
        return value

    def get(self, args: Sequence[str]) -> str:
        """Return the stored value for a key."""
        _require_args(args, 1, "Incorrect arguments. Expecting a key")
        key = args[0]
        value = self._require_state(key).decode("utf-8", errors="replace")
        log_event(self._log, "asset_get", key=key)
        return value

    def set_addipfs(self, args: Sequence[str]) -> str:
        """Upload the file named in a composite value and record its content hash.

        The upload happens before the ledger write, so a failed upload leaves
        the ledger untouched. A ledger failure after a successful upload leaves
        the blob orphaned; nothing removes it.
        """
        _require_args(args, 2, "Incorrect arguments. Expecting a key and a composite value")
        key, value = args[0], args[1]

        record = record_codec.decode(value)
        filename = record.filename or ""
        log_event(self._log, "ipfs_add_start", key=key, filename=filename, fields=record.field_count)

        content_hash = self._upload(filename)
        log_event(self._log, "ipfs_add_ok", key=key, content_hash=content_hash)

        new_value = record_codec.encode(
            record.sender or "",
            record.receiver or "",
            filename,
            content_hash,
        )
        self._put_state(key, new_value)
        log_event(self._log, "ledger_put_ok", key=key, value=new_value)
        return key

    def _read_record(self, key: str) -> record_codec.AssetRecord:
        raw = self._require_state(key).decode("utf-8", errors="replace")
        record = record_codec.decode(raw)
        log_event(self._log, "ledger_record_read", key=key, **record.to_json())
        return record

    def cat_content(self, key: str) -> Tuple[str, bytes]:
        """Resolve a key to its attached blob. Returns (content_hash, content)."""
        record = self._read_record(key)
        # A record without a hash still triggers a fetch, with an empty hash.
        content_hash = record.content_hash or ""
        return content_hash, self._fetch(content_hash)

    def get_catipfs(self, args: Sequence[str]) -> str:
        """Fetch the blob attached to a record and return its content hash.

        The content itself only goes to the log.
        """
        _require_args(args, 1, "Incorrect arguments. Expecting document number.")
        key = args[0]
        content_hash, content = self.cat_content(key)
        log_event(
            self._log,
            "query_response",
            key=key,
            content_hash=content_hash,
            size=len(content),
            contents=content[:_CONTENT_LOG_BYTES].decode("utf-8", errors="replace"),
        )
        return content_hash
