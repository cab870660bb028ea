from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

import pytest
from fastapi.testclient import TestClient

from docledger.api.app import create_app
from docledger.config import load_node_config
from docledger.runtime.host import AssetRuntime
from docledger.runtime.ledger import InMemoryLedger, LedgerTx
from docledger.storage.blobstore import InMemoryBlobStore


@pytest.fixture
def client(tmp_path: Path, logger, monkeypatch: pytest.MonkeyPatch) -> TestClient:
    monkeypatch.setenv("DOCLEDGER_MODE", "dev")
    monkeypatch.setenv("DOCLEDGER_LEDGER", "memory")
    monkeypatch.setenv("DOCLEDGER_BLOBSTORE", "memory")
    (tmp_path / "report.txt").write_bytes(b"abc")

    rt = AssetRuntime(store=InMemoryLedger(), blobs=InMemoryBlobStore(), logger=logger, files_root=str(tmp_path))
    return TestClient(create_app(cfg=load_node_config(), runtime=rt))


def _invoke(client: TestClient, function: str, *args: str):
    return client.post("/v1/invoke", json={"function": function, "args": list(args)})


def test_health(client: TestClient) -> None:
    r = client.get("/v1/health")
    assert r.status_code == 200
    assert r.json()["ok"] is True
    assert r.json()["runtime"] is True


def test_init_then_get(client: TestClient) -> None:
    r = client.post("/v1/init", json={"args": ["doc1", "hello"]})
    assert r.status_code == 200
    assert r.json() == {"ok": True, "status": 200, "payload": ""}

    r = _invoke(client, "get", "doc1")
    assert r.status_code == 200
    assert r.json()["payload"] == "hello"
    assert r.headers.get("x-request-id")


def test_init_wrong_arity_is_400(client: TestClient) -> None:
    r = client.post("/v1/init", json={"args": ["doc1"]})
    assert r.status_code == 400
    err = r.json()["error"]
    assert err["code"] == "invalid_args"
    assert err["message"] == "Incorrect arguments. Expecting a key and a value"


def test_get_missing_is_404(client: TestClient) -> None:
    r = _invoke(client, "get", "nope")
    assert r.status_code == 404
    body = r.json()
    assert body["ok"] is False
    assert body["error"]["code"] == "asset_not_found"
    assert body["error"]["message"] == "Asset not found: nope"


def test_unknown_function_is_400(client: TestClient) -> None:
    r = _invoke(client, "delete", "doc1")
    assert r.status_code == 400
    assert r.json()["error"]["code"] == "unknown_function"


def test_set_addipfs_get_catipfs_and_download(client: TestClient) -> None:
    r = _invoke(client, "set_addipfs", "doc2", "alice|bob|report.txt")
    assert r.status_code == 200
    assert r.json()["payload"] == "doc2"

    stored = _invoke(client, "get", "doc2").json()["payload"]
    sender, receiver, filename, content_hash = stored.split("|")
    assert (sender, receiver, filename) == ("alice", "bob", "report.txt")

    r = _invoke(client, "get_catipfs", "doc2")
    assert r.status_code == 200
    assert r.json()["payload"] == content_hash

    r = client.get("/v1/assets/doc2/content")
    assert r.status_code == 200
    assert r.content == b"abc"
    assert r.headers["x-content-hash"] == content_hash


def test_set_addipfs_missing_file_is_502_and_commits_nothing(client: TestClient) -> None:
    r = _invoke(client, "set_addipfs", "doc3", "alice|bob|missing.txt")
    assert r.status_code == 502
    assert r.json()["error"]["code"] == "blobstore_error"

    assert _invoke(client, "get", "doc3").status_code == 404


def test_content_for_missing_key_is_404(client: TestClient) -> None:
    r = client.get("/v1/assets/nope/content")
    assert r.status_code == 404
    assert r.json()["error"]["code"] == "asset_not_found"


def test_args_must_be_strings(client: TestClient) -> None:
    r = client.post("/v1/invoke", json={"function": "set", "args": ["k", {"nested": True}]})
    assert r.status_code == 422


def test_without_runtime_invocations_are_not_ready(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DOCLEDGER_LEDGER", "memory")
    monkeypatch.setenv("DOCLEDGER_BLOBSTORE", "memory")
    app = create_app(cfg=load_node_config(), boot_runtime=False)
    c = TestClient(app)

    r = c.post("/v1/invoke", json={"function": "get", "args": ["doc1"]})
    assert r.status_code == 500
    assert r.json()["error"]["code"] == "not_ready"
    assert c.get("/v1/health").json()["runtime"] is False


def test_prod_mode_hides_docs(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DOCLEDGER_MODE", "prod")
    c = TestClient(create_app(cfg=load_node_config(), boot_runtime=False))
    assert c.get("/docs").status_code == 404


def test_content_store_failure_is_structured_500(logger, monkeypatch: pytest.MonkeyPatch) -> None:
    class _LockedStore:
        @contextmanager
        def transaction(self) -> Iterator[LedgerTx]:
            raise sqlite3.OperationalError("database is locked")
            yield  # pragma: no cover

    monkeypatch.setenv("DOCLEDGER_LEDGER", "memory")
    monkeypatch.setenv("DOCLEDGER_BLOBSTORE", "memory")
    rt = AssetRuntime(store=_LockedStore(), blobs=InMemoryBlobStore(), logger=logger)
    c = TestClient(create_app(cfg=load_node_config(), runtime=rt))

    r = c.get("/v1/assets/doc1/content")
    assert r.status_code == 500
    body = r.json()
    assert body["ok"] is False
    assert body["error"]["code"] == "storage_error"
    assert "database is locked" in body["error"]["message"]
