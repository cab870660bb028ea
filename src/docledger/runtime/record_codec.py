"""Composite ledger values.

A record is stored as one string, fields joined by ``|``:

    sender|receiver|filename[|content_hash]

There is no escaping. A field that itself contains ``|`` shifts every later
field on decode; callers must keep the delimiter out of their fields.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional, Tuple

DELIMITER = "|"
MAX_FIELDS = 4


@dataclass(frozen=True)
class AssetRecord:
    """Named view over a decoded composite value.

    A field is ``None`` when the stored value did not reach its position.
    """

    sender: Optional[str] = None
    receiver: Optional[str] = None
    filename: Optional[str] = None
    content_hash: Optional[str] = None

    @property
    def field_count(self) -> int:
        n = 0
        for v in self.fields():
            if v is None:
                break
            n += 1
        return n

    def fields(self) -> Tuple[Optional[str], ...]:
        return (self.sender, self.receiver, self.filename, self.content_hash)

    def to_json(self) -> Dict[str, Optional[str]]:
        return {
            "sender": self.sender,
            "receiver": self.receiver,
            "filename": self.filename,
            "content_hash": self.content_hash,
        }


def encode(sender: str, receiver: str, filename: str, content_hash: Optional[str] = None) -> str:
    """Join fields positionally. Empty strings keep their slot; only a missing hash is omitted."""
    parts = [sender, receiver, filename]
    if content_hash is not None:
        parts.append(content_hash)
    return DELIMITER.join(parts)


def decode(raw: str) -> AssetRecord:
    """Split a stored value into an AssetRecord.

    Never fails: short input leaves the trailing fields unset, fields past the
    fourth are dropped.
    """
    parts = (raw or "").split(DELIMITER)[:MAX_FIELDS]
    padded: list[Optional[str]] = list(parts) + [None] * (MAX_FIELDS - len(parts))
    return AssetRecord(
        sender=padded[0],
        receiver=padded[1],
        filename=padded[2],
        content_hash=padded[3],
    )
