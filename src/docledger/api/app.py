# src/docledger/api/app.py
from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, FastAPI, Request
from fastapi.responses import Response as HttpResponse

from docledger.api.errors import ApiError, api_error_handler
from docledger.api.schemas import InitRequest, InvokeRequest
from docledger.api.structured_logging import RequestLogMiddleware
from docledger.config import NodeConfig, load_node_config
from docledger.runtime.dispatch import Response
from docledger.runtime.errors import AssetError
from docledger.runtime.host import AssetRuntime, build_runtime

Json = Dict[str, Any]

router = APIRouter()


def _runtime(request: Request) -> AssetRuntime:
    rt = getattr(request.app.state, "runtime", None)
    if rt is None:
        raise ApiError.internal("not_ready", "runtime not attached to app.state")
    return rt


def _render(resp: Response) -> Json:
    if not resp.ok:
        raise ApiError.from_code(resp.code, resp.message, resp.details)
    return {
        "ok": True,
        "status": resp.status,
        "payload": resp.payload.decode("utf-8", errors="replace"),
    }


@router.get("/v1/health")
def v1_health(request: Request) -> Json:
    rt = getattr(request.app.state, "runtime", None)
    return {"ok": True, "service": "docledger", "version": "v1", "runtime": rt is not None}


@router.post("/v1/init")
def v1_init(body: InitRequest, request: Request) -> Json:
    return _render(_runtime(request).init(body.args))


@router.post("/v1/invoke")
def v1_invoke(body: InvokeRequest, request: Request) -> Json:
    return _render(_runtime(request).invoke(body.function, body.args))


@router.get("/v1/assets/{key}/content")
def v1_asset_content(key: str, request: Request) -> HttpResponse:
    """Download the blob attached to a record (what get_catipfs only logs)."""
    try:
        content_hash, content = _runtime(request).cat_content(key)
    except AssetError as e:
        raise ApiError.from_code(e.code, e.reason, e.details) from e
    return HttpResponse(
        content=content,
        media_type="application/octet-stream",
        headers={"x-content-hash": content_hash},
    )


def create_app(*, cfg: Optional[NodeConfig] = None, runtime: Optional[AssetRuntime] = None, boot_runtime: bool = True) -> FastAPI:
    """Create the FastAPI application.

    runtime:
      - given: attached as-is (tests pass an in-memory runtime)
      - None and boot_runtime=True: built from cfg / DOCLEDGER_* env
      - None and boot_runtime=False: no runtime; invocation routes answer 500 not_ready
    """
    cfg = cfg or load_node_config()

    if cfg.mode == "prod":
        app = FastAPI(title="docledger", docs_url=None, redoc_url=None, openapi_url=None)
    else:
        app = FastAPI(title="docledger")

    if runtime is None and boot_runtime:
        runtime = build_runtime(cfg)
    app.state.cfg = cfg
    app.state.runtime = runtime

    app.add_exception_handler(ApiError, api_error_handler)
    http_logger = runtime.logger.getChild("http") if runtime is not None else None
    app.add_middleware(RequestLogMiddleware, logger=http_logger)
    app.include_router(router)
    return app

