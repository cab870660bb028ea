from __future__ import annotations

import sqlite3
import threading
from pathlib import Path
from typing import List

import pytest

from docledger.runtime.dispatch import Response
from docledger.runtime.host import AssetRuntime
from docledger.runtime.sqlite_db import SqliteDB, SqliteLedgerStore
from docledger.storage.blobstore import InMemoryBlobStore


def _store(tmp_path: Path) -> SqliteLedgerStore:
    return SqliteLedgerStore(db=SqliteDB(path=str(tmp_path / "ledger" / "docledger.db")))


def test_committed_writes_are_visible_to_later_reads(tmp_path: Path) -> None:
    store = _store(tmp_path)
    with store.transaction() as tx:
        tx.put_state("doc1", b"hello")
    assert store.read("doc1") == b"hello"

    with store.transaction() as tx:
        assert tx.get_state("doc1") == b"hello"
        assert tx.get_state("missing") is None


def test_transaction_reads_its_own_writes(tmp_path: Path) -> None:
    store = _store(tmp_path)
    with store.transaction() as tx:
        tx.put_state("doc1", b"v1")
        assert tx.get_state("doc1") == b"v1"
        # not yet committed
        assert store.read("doc1") is None


def test_rollback_only_discards_writes(tmp_path: Path) -> None:
    store = _store(tmp_path)
    with store.transaction() as tx:
        tx.put_state("doc1", b"hello")
        tx.rollback_only()
    assert store.read("doc1") is None


def test_exception_discards_writes(tmp_path: Path) -> None:
    store = _store(tmp_path)
    with pytest.raises(RuntimeError):
        with store.transaction() as tx:
            tx.put_state("doc1", b"hello")
            raise RuntimeError("boom")
    assert store.read("doc1") is None


def test_overwrite_replaces_value(tmp_path: Path) -> None:
    store = _store(tmp_path)
    for v in (b"one", b"two"):
        with store.transaction() as tx:
            tx.put_state("doc1", v)
    assert store.read("doc1") == b"two"


def test_binary_values_survive(tmp_path: Path) -> None:
    store = _store(tmp_path)
    raw = bytes(range(256))
    with store.transaction() as tx:
        tx.put_state("bin", raw)
    assert store.read("bin") == raw


def test_empty_key_is_rejected(tmp_path: Path) -> None:
    store = _store(tmp_path)
    with store.transaction() as tx:
        with pytest.raises(ValueError):
            tx.put_state("", b"x")


def test_schema_version_mismatch_refuses_to_start(tmp_path: Path) -> None:
    db = SqliteDB(path=str(tmp_path / "docledger.db"))
    db.init_schema()
    with db.write_tx() as con:
        con.execute("UPDATE meta SET value='99' WHERE key='schema_version';")

    with pytest.raises(RuntimeError, match="schema_version mismatch"):
        SqliteLedgerStore(db=db)


def test_wal_mode_is_enabled(tmp_path: Path) -> None:
    db = SqliteDB(path=str(tmp_path / "docledger.db"))
    db.init_schema()
    with db.connection() as con:
        row = con.execute("PRAGMA journal_mode;").fetchone()
        assert isinstance(con, sqlite3.Connection)
        assert str(row[0]).lower() == "wal"


def test_runtime_over_sqlite_round_trip(tmp_path: Path, logger) -> None:
    files = tmp_path / "files"
    files.mkdir()
    (files / "report.txt").write_bytes(b"abc")

    rt = AssetRuntime(store=_store(tmp_path), blobs=InMemoryBlobStore(), logger=logger, files_root=str(files))
    assert rt.init(["doc1", "hello"]).ok
    assert rt.invoke("get", ["doc1"]).payload == b"hello"

    assert rt.invoke("set_addipfs", ["doc2", "alice|bob|report.txt"]).payload == b"doc2"
    h = rt.invoke("get_catipfs", ["doc2"]).payload.decode("utf-8")
    assert rt.invoke("get", ["doc2"]).payload.decode("utf-8") == f"alice|bob|report.txt|{h}"

    # failed upload: nothing committed
    resp = rt.invoke("set_addipfs", ["doc3", "alice|bob|nope.txt"])
    assert resp.code == "blobstore_error"
    assert rt.invoke("get", ["doc3"]).code == "asset_not_found"


class _GatedBlobStore(InMemoryBlobStore):
    """Upload blocks until released, standing in for a slow IPFS add."""

    def __init__(self) -> None:
        super().__init__()
        self.started = threading.Event()
        self.release = threading.Event()

    def upload(self, content: bytes, *, name: str = "") -> str:
        self.started.set()
        assert self.release.wait(10)
        return super().upload(content, name=name)


def test_slow_upload_does_not_block_writes_to_other_keys(
    tmp_path: Path, logger, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setenv("DOCLEDGER_SQLITE_WRITE_DEADLINE_MS", "300")
    files = tmp_path / "files"
    files.mkdir()
    (files / "report.txt").write_bytes(b"abc")

    blobs = _GatedBlobStore()
    rt = AssetRuntime(store=_store(tmp_path), blobs=blobs, logger=logger, files_root=str(files))

    results: List[Response] = []
    t = threading.Thread(target=lambda: results.append(rt.invoke("set_addipfs", ["doc2", "alice|bob|report.txt"])))
    t.start()
    try:
        assert blobs.started.wait(10)
        other = rt.invoke("set", ["other", "v"])
        assert other.ok, other.message
        assert rt.invoke("get", ["other"]).payload == b"v"
    finally:
        blobs.release.set()
        t.join(10)

    assert len(results) == 1 and results[0].ok
    assert rt.invoke("get", ["doc2"]).payload.decode("utf-8").startswith("alice|bob|report.txt|")


def test_reads_and_rollbacks_take_no_write_lock(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DOCLEDGER_SQLITE_WRITE_DEADLINE_MS", "300")
    store = _store(tmp_path)
    with store.db.write_tx():
        # another writer holds the lock; a read-only transaction still completes
        with store.transaction() as tx:
            assert tx.get_state("doc1") is None
        with store.transaction() as tx:
            tx.put_state("doc1", b"x")
            tx.rollback_only()
    assert store.read("doc1") is None
