# src/docledger/runtime/dispatch.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Sequence

from docledger.runtime.asset_service import AssetService
from docledger.runtime.errors import AssetError, ArgumentError, DispatchError, StorageError
from docledger.runtime.event_log import log_event

OperationFn = Callable[[AssetService, Sequence[str]], str]

OK = 200
ERROR = 500

# Exact-match names; nothing is case-folded or trimmed.
OPERATIONS: Dict[str, OperationFn] = {
    "set": AssetService.set,
    "get": AssetService.get,
    "set_addipfs": AssetService.set_addipfs,
    "get_catipfs": AssetService.get_catipfs,
}


@dataclass(frozen=True)
class Response:
    """Outcome of one invocation, as handed back to the hosting runtime."""

    status: int
    payload: bytes = b""
    message: str = ""
    code: Optional[str] = None
    details: Any | None = None

    @property
    def ok(self) -> bool:
        return self.status == OK

    @staticmethod
    def success(payload: bytes = b"") -> "Response":
        return Response(OK, payload=payload)

    @staticmethod
    def error(message: str, *, code: Optional[str] = None, details: Any | None = None) -> "Response":
        return Response(ERROR, message=message, code=code, details=details)

    @staticmethod
    def from_error(e: AssetError) -> "Response":
        return Response.error(e.reason, code=e.code, details=e.details)


def _str_args(args: Sequence[Any]) -> list[str]:
    return [a if isinstance(a, str) else str(a) for a in args]


def init(service: AssetService, args: Sequence[str], *, logger: logging.Logger) -> Response:
    """One-time setup: store the initial key/value pair. Payload is empty on success."""
    args = _str_args(args)
    try:
        if len(args) != 2:
            raise ArgumentError("Incorrect arguments. Expecting a key and a value", {"got": len(args)})
        try:
            service.set(args)
        except StorageError as e:
            raise StorageError(f"Failed to create asset: {args[0]}", e.details) from e
    except AssetError as e:
        log_event(logger, "init_failed", level=logging.ERROR, code=e.code, reason=e.reason)
        return Response.from_error(e)
    log_event(logger, "init_ok", key=args[0])
    return Response.success()


def invoke(service: AssetService, function: str, args: Sequence[str], *, logger: logging.Logger) -> Response:
    """Route one call to its operation and wrap the result."""
    args = _str_args(args)
    fn = OPERATIONS.get(function) if isinstance(function, str) else None
    if fn is None:
        log_event(logger, "unsupported_function", level=logging.ERROR, function=function)
        return Response.from_error(DispatchError(f"Unsupported function: {function}", {"function": function}))

    try:
        result = fn(service, args)
    except AssetError as e:
        log_event(logger, "invoke_failed", level=logging.ERROR, function=function, code=e.code, reason=e.reason)
        return Response.from_error(e)

    return Response.success(result.encode("utf-8"))
