from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

from fastapi import Request
from fastapi.responses import JSONResponse

from docledger.runtime.errors import (
    ArgumentError,
    BlobStoreError,
    DispatchError,
    NotFoundError,
    StorageError,
)

# Machine error code -> HTTP status.
_STATUS_BY_CODE: Dict[str, int] = {
    ArgumentError.code: 400,
    DispatchError.code: 400,
    NotFoundError.code: 404,
    BlobStoreError.code: 502,
    StorageError.code: 500,
}


def status_for_code(code: Optional[str]) -> int:
    return _STATUS_BY_CODE.get(str(code or ""), 500)


@dataclass
class ApiError(Exception):
    status_code: int
    code: str
    message: str
    details: Dict[str, Any]

    @staticmethod
    def from_code(code: Optional[str], message: str, details: Any | None = None) -> "ApiError":
        d = details if isinstance(details, dict) else ({} if details is None else {"details": details})
        return ApiError(status_for_code(code), str(code or "internal_error"), message, d)

    @staticmethod
    def internal(code: str, message: str, details: Optional[Dict[str, Any]] = None) -> "ApiError":
        return ApiError(500, code, message, details or {})


def error_body(code: str, message: str, details: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    err: Dict[str, Any] = {"code": code, "message": message}
    if details:
        err["details"] = details
    return {"ok": False, "error": err}


async def api_error_handler(request: Request, exc: Exception) -> JSONResponse:
    assert isinstance(exc, ApiError)
    return JSONResponse(status_code=exc.status_code, content=error_body(exc.code, exc.message, exc.details))
