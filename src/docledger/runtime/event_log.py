from __future__ import annotations

import json
import logging
import time
from typing import Any, Dict


Json = Dict[str, Any]


def _now_ms() -> int:
    return int(time.time() * 1000)


def log_event(logger: logging.Logger, event: str, *, level: int = logging.INFO, **fields: Any) -> None:
    """Emit a single JSONL log event on the given logger.

    The logger is always passed in by the caller; nothing here reaches for a
    module-level logger.
    """
    if not logger.isEnabledFor(level):
        return
    payload: Json = {"ts_ms": _now_ms(), "event": str(event)}
    payload.update(fields)
    try:
        logger.log(level, json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False))
    except (TypeError, ValueError):
        parts = [f"event={event}"] + [f"{k}={fields.get(k)!r}" for k in sorted(fields.keys())]
        logger.log(level, " ".join(parts))


def configure_structured_logging(level_name: str = "INFO", *, name: str = "docledger") -> logging.Logger:
    """Configure stdlib logging for JSONL output (stderr) and return the service logger.

    Call once at process start; the returned logger is what gets passed down
    to the asset service. Safe to call again (only the level is updated).
    """
    level = getattr(logging, (level_name or "INFO").strip().upper(), logging.INFO)
    if not isinstance(level, int):
        level = logging.INFO

    root = logging.getLogger()
    if getattr(root, "_docledger_configured", False):
        root.setLevel(level)
        return logging.getLogger(name)

    handler = logging.StreamHandler()
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter("%(message)s"))

    root.handlers = [handler]
    root.setLevel(level)
    setattr(root, "_docledger_configured", True)
    return logging.getLogger(name)
