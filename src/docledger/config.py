# src/docledger/config.py
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from docledger.storage.ipfs import IpfsConfig


def _is_truthy(v: str | None) -> bool:
    if v is None:
        return False
    return v.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_str(name: str, default: str) -> str:
    v = (os.getenv(name) or "").strip()
    return v or default


def _env_int(name: str, default: int) -> int:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return int(default)
    try:
        return int(raw)
    except ValueError as e:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from e


def _env_float(name: str, default: float) -> float:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return float(default)
    try:
        return float(raw)
    except ValueError as e:
        raise ValueError(f"{name} must be a number, got {raw!r}") from e


@dataclass(frozen=True)
class NodeConfig:
    mode: str  # "prod" | "dev"
    ledger: str  # "sqlite" | "memory"
    db_path: str
    blobstore: str  # "ipfs" | "memory"
    ipfs: IpfsConfig
    files_root: Optional[str]
    log_level: str
    api_host: str
    api_port: int


def load_node_config() -> NodeConfig:
    """Read DOCLEDGER_* variables into a NodeConfig. Unknown backends are rejected."""
    ledger = _env_str("DOCLEDGER_LEDGER", "sqlite").lower()
    if ledger not in {"sqlite", "memory"}:
        raise ValueError(f"DOCLEDGER_LEDGER must be 'sqlite' or 'memory', got {ledger!r}")

    blobstore = _env_str("DOCLEDGER_BLOBSTORE", "ipfs").lower()
    if blobstore not in {"ipfs", "memory"}:
        raise ValueError(f"DOCLEDGER_BLOBSTORE must be 'ipfs' or 'memory', got {blobstore!r}")

    scheme = _env_str("DOCLEDGER_IPFS_SCHEME", "http").lower()
    if scheme not in {"http", "https"}:
        raise ValueError(f"DOCLEDGER_IPFS_SCHEME must be 'http' or 'https', got {scheme!r}")

    pin_raw = os.getenv("DOCLEDGER_IPFS_PIN")
    ipfs = IpfsConfig(
        host=_env_str("DOCLEDGER_IPFS_HOST", "127.0.0.1"),
        port=_env_int("DOCLEDGER_IPFS_PORT", 5001),
        scheme=scheme,
        timeout_s=_env_float("DOCLEDGER_IPFS_TIMEOUT_S", 30.0),
        pin=True if pin_raw is None else _is_truthy(pin_raw),
    )

    files_root = (os.getenv("DOCLEDGER_FILES_ROOT") or "").strip() or None

    return NodeConfig(
        mode=_env_str("DOCLEDGER_MODE", "prod").lower(),
        ledger=ledger,
        db_path=_env_str("DOCLEDGER_DB_PATH", "./data/docledger.db"),
        blobstore=blobstore,
        ipfs=ipfs,
        files_root=files_root,
        log_level=_env_str("DOCLEDGER_LOG_LEVEL", "INFO").upper(),
        api_host=_env_str("DOCLEDGER_API_HOST", "127.0.0.1"),
        api_port=_env_int("DOCLEDGER_API_PORT", 8080),
    )
