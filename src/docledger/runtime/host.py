# src/docledger/runtime/host.py
from __future__ import annotations

import functools
import logging
from typing import Callable, Optional, Sequence, Tuple

from docledger.config import NodeConfig, load_node_config
from docledger.runtime import dispatch
from docledger.runtime.asset_service import AssetService
from docledger.runtime.errors import AssetError, StorageError
from docledger.runtime.event_log import configure_structured_logging, log_event
from docledger.runtime.ledger import InMemoryLedger, LedgerStore, LedgerTx
from docledger.runtime.sqlite_db import SqliteDB, SqliteLedgerStore
from docledger.storage.blobstore import BlobStore, InMemoryBlobStore
from docledger.storage.files import read_local_file
from docledger.storage.ipfs import IpfsBlobStore


class AssetRuntime:
    """Hosts the asset operations: one ledger transaction per invocation.

    Success responses commit; error responses roll back every ledger write the
    invocation made. Blob uploads are outside the transaction and stay put.
    """

    def __init__(
        self,
        *,
        store: LedgerStore,
        blobs: BlobStore,
        logger: logging.Logger,
        files_root: Optional[str] = None,
    ) -> None:
        self.store = store
        self.blobs = blobs
        self.logger = logger
        self._read_file = functools.partial(read_local_file, root=files_root)

    def service(self, tx: LedgerTx) -> AssetService:
        return AssetService(ledger=tx, blobs=self.blobs, logger=self.logger, read_file=self._read_file)

    def _run(self, name: str, call: Callable[[AssetService], dispatch.Response]) -> dispatch.Response:
        resp: Optional[dispatch.Response] = None
        try:
            with self.store.transaction() as tx:
                resp = call(self.service(tx))
                if not resp.ok:
                    tx.rollback_only()
        except Exception as e:
            if resp is None:
                log_event(self.logger, "invocation_failed", level=logging.ERROR, function=name, error=str(e))
                return dispatch.Response.error(f"Failed to execute {name}: {e}", code=StorageError.code)
            log_event(self.logger, "ledger_commit_failed", level=logging.ERROR, function=name, error=str(e))
            return dispatch.Response.error(f"Failed to commit transaction: {e}", code=StorageError.code)
        return resp

    def init(self, args: Sequence[str]) -> dispatch.Response:
        return self._run("init", lambda svc: dispatch.init(svc, args, logger=self.logger))

    def invoke(self, function: str, args: Sequence[str]) -> dispatch.Response:
        return self._run(function, lambda svc: dispatch.invoke(svc, function, args, logger=self.logger))

    def cat_content(self, key: str) -> Tuple[str, bytes]:
        """Read-only lookup of a record's blob. Raises AssetError subclasses."""
        try:
            with self.store.transaction() as tx:
                tx.rollback_only()
                return self.service(tx).cat_content(key)
        except AssetError:
            raise
        except Exception as e:
            log_event(self.logger, "ledger_read_failed", level=logging.ERROR, key=key, error=str(e))
            raise StorageError(f"Failed to get asset: {key} with error: {e}", {"key": key}) from e


def build_ledger_store(cfg: NodeConfig) -> LedgerStore:
    if cfg.ledger == "memory":
        return InMemoryLedger()
    return SqliteLedgerStore(db=SqliteDB(path=cfg.db_path))


def build_blob_store(cfg: NodeConfig) -> BlobStore:
    if cfg.blobstore == "memory":
        return InMemoryBlobStore()
    return IpfsBlobStore(cfg.ipfs)


def build_runtime(cfg: Optional[NodeConfig] = None, *, logger: Optional[logging.Logger] = None) -> AssetRuntime:
    """Wire config, logging, ledger and blob store once at process start."""
    cfg = cfg or load_node_config()
    if logger is None:
        logger = configure_structured_logging(cfg.log_level)

    rt = AssetRuntime(
        store=build_ledger_store(cfg),
        blobs=build_blob_store(cfg),
        logger=logger,
        files_root=cfg.files_root,
    )
    log_event(
        logger,
        "runtime_started",
        ledger=cfg.ledger,
        db_path=cfg.db_path if cfg.ledger == "sqlite" else None,
        blobstore=cfg.blobstore,
        ipfs_api=cfg.ipfs.api_base if cfg.blobstore == "ipfs" else None,
        ipfs_pin=cfg.ipfs.pin,
    )
    return rt
