# src/docledger/storage/ipfs.py
from __future__ import annotations

import http.client
import json
import urllib.error
import urllib.parse
import urllib.request
from dataclasses import dataclass
from io import BytesIO
from typing import BinaryIO, Optional, Tuple

from docledger.runtime.errors import BlobStoreError


_BOUNDARY = "----docledger-ipfs-boundary-5c1e0a9d27f84b36"
_CHUNK_BYTES = 1024 * 256


@dataclass(frozen=True)
class IpfsConfig:
    host: str = "127.0.0.1"
    port: int = 5001
    scheme: str = "http"
    timeout_s: float = 30.0
    pin: bool = True

    @property
    def api_base(self) -> str:
        return f"{self.scheme}://{self.host}:{int(self.port)}"


def _send_chunk(conn: http.client.HTTPConnection, data: bytes) -> None:
    if not data:
        return
    conn.send(f"{len(data):X}\r\n".encode("ascii"))
    conn.send(data)
    conn.send(b"\r\n")


def _finish_chunks(conn: http.client.HTTPConnection) -> None:
    conn.send(b"0\r\n\r\n")


def multipart_filename(name: str) -> str:
    """Basename of a caller-supplied filename, safe for a quoted Content-Disposition value."""
    base = str(name or "").replace("\\", "/").rsplit("/", 1)[-1]
    for ch in ('"', "\r", "\n"):
        base = base.replace(ch, "")
    return base.strip() or "upload"


def parse_ipfs_add_response(raw: bytes) -> Tuple[str, int]:
    """
    IPFS /api/v0/add returns NDJSON (one JSON per line).
    We take the last valid JSON object and extract Hash + Size.
    """
    txt = raw.decode("utf-8", errors="replace").strip()
    if not txt:
        raise BlobStoreError("Failed to add to IPFS", {"error": "empty_response"})

    last_obj: Optional[dict] = None
    for line in txt.splitlines():
        line = line.strip()
        if not line:
            continue
        try:
            obj = json.loads(line)
        except json.JSONDecodeError:
            continue
        if isinstance(obj, dict):
            last_obj = obj

    if not isinstance(last_obj, dict):
        raise BlobStoreError("Failed to add to IPFS", {"error": "bad_response", "body": txt[:200]})

    cid = str(last_obj.get("Hash") or "").strip()
    try:
        size = int(str(last_obj.get("Size") or "0").strip())
    except ValueError:
        size = 0

    if not cid:
        raise BlobStoreError("Failed to add to IPFS", {"error": "missing_hash", "body": txt[:200]})

    return cid, size


class IpfsBlobStore:
    """BlobStore backed by a Kubo (go-ipfs) HTTP API.

    upload() streams a multipart body with chunked transfer encoding to
    /api/v0/add; fetch() reads /api/v0/cat. Neither call retries.
    """

    def __init__(self, cfg: IpfsConfig) -> None:
        self.cfg = cfg

    def _connection(self) -> http.client.HTTPConnection:
        if self.cfg.scheme.lower() == "https":
            return http.client.HTTPSConnection(self.cfg.host, int(self.cfg.port), timeout=self.cfg.timeout_s)
        return http.client.HTTPConnection(self.cfg.host, int(self.cfg.port), timeout=self.cfg.timeout_s)

    def add_fileobj(self, *, name: str, fileobj: BinaryIO) -> Tuple[str, int]:
        """Stream a file-like object to IPFS. Returns (cid, size)."""
        qs = urllib.parse.urlencode(
            {
                "pin": "true" if self.cfg.pin else "false",
                "wrap-with-directory": "false",
                "progress": "false",
            }
        )
        path = f"/api/v0/add?{qs}"
        filename = multipart_filename(name)

        preamble = (
            f"--{_BOUNDARY}\r\n"
            f'Content-Disposition: form-data; name="file"; filename="{filename}"\r\n'
            f"Content-Type: application/octet-stream\r\n"
            f"\r\n"
        ).encode("utf-8")
        epilogue = f"\r\n--{_BOUNDARY}--\r\n".encode("utf-8")

        conn = self._connection()
        try:
            conn.putrequest("POST", path)
            conn.putheader("Content-Type", f"multipart/form-data; boundary={_BOUNDARY}")
            conn.putheader("Transfer-Encoding", "chunked")
            conn.endheaders()

            _send_chunk(conn, preamble)
            while True:
                chunk = fileobj.read(_CHUNK_BYTES)
                if not chunk:
                    break
                _send_chunk(conn, chunk)
            _send_chunk(conn, epilogue)
            _finish_chunks(conn)

            resp = conn.getresponse()
            body = resp.read()
        except (OSError, http.client.HTTPException) as e:
            raise BlobStoreError("Failed to add to IPFS", {"name": filename, "error": str(e)}) from e
        finally:
            conn.close()

        if resp.status < 200 or resp.status >= 300:
            msg = body.decode("utf-8", errors="replace").strip()
            raise BlobStoreError("Failed to add to IPFS", {"name": filename, "status": resp.status, "body": msg[:300]})

        return parse_ipfs_add_response(body)

    def upload(self, content: bytes, *, name: str = "") -> str:
        cid, _size = self.add_fileobj(name=name, fileobj=BytesIO(content))
        return cid

    def fetch(self, content_hash: str) -> bytes:
        qs = urllib.parse.urlencode({"arg": str(content_hash or "")})
        url = f"{self.cfg.api_base}/api/v0/cat?{qs}"

        # Kubo only accepts POST on the RPC API.
        req = urllib.request.Request(url=url, method="POST", data=b"")
        try:
            with urllib.request.urlopen(req, timeout=self.cfg.timeout_s) as resp:
                return resp.read()
        except urllib.error.HTTPError as e:
            try:
                body = e.read().decode("utf-8", errors="replace").strip()
            except OSError:
                body = ""
            raise BlobStoreError(
                "Failed to cat from IPFS",
                {"content_hash": content_hash, "status": int(e.code or 0), "body": body[:300]},
            ) from e
        except OSError as e:
            raise BlobStoreError("Failed to cat from IPFS", {"content_hash": content_hash, "error": str(e)}) from e
