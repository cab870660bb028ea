from __future__ import annotations

from dataclasses import dataclass
from typing import Any, ClassVar


@dataclass
class AssetError(Exception):
    """Canonical error type for asset operations and dispatch failures.

    `reason` is the human-readable message surfaced to callers; `code` is a
    stable machine identifier fixed per subclass.
    """

    reason: str
    details: Any | None = None

    code: ClassVar[str] = "asset_error"

    def __str__(self) -> str:  # pragma: no cover
        if self.details is None:
            return f"{self.code}:{self.reason}"
        return f"{self.code}:{self.reason}:{self.details}"


class ArgumentError(AssetError):
    code: ClassVar[str] = "invalid_args"


class NotFoundError(AssetError):
    code: ClassVar[str] = "asset_not_found"


class StorageError(AssetError):
    code: ClassVar[str] = "storage_error"


class BlobStoreError(AssetError):
    code: ClassVar[str] = "blobstore_error"


class DispatchError(AssetError):
    code: ClassVar[str] = "unknown_function"
