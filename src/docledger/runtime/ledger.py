from __future__ import annotations

from contextlib import contextmanager
from typing import ContextManager, Dict, Iterator, Optional, Protocol, runtime_checkable


@runtime_checkable
class Ledger(Protocol):
    """Key-value view of ledger state inside one transaction.

    `get_state` returns None for an absent key. Both calls raise on failure;
    the caller never begins or commits the surrounding transaction.
    """

    def get_state(self, key: str) -> Optional[bytes]:
        ...

    def put_state(self, key: str, value: bytes) -> None:
        ...


@runtime_checkable
class LedgerStore(Protocol):
    """Something that can open per-invocation ledger transactions."""

    def transaction(self) -> ContextManager["LedgerTx"]:
        ...


class LedgerTx:
    """Ledger view buffering writes until the owning transaction commits.

    Reads see this transaction's own writes first. `rollback_only()` marks the
    transaction so the store discards the buffered writes.
    """

    def __init__(self, reader) -> None:
        self._reader = reader
        self._writes: Dict[str, bytes] = {}
        self._rollback = False

    def get_state(self, key: str) -> Optional[bytes]:
        if key in self._writes:
            return self._writes[key]
        return self._reader(key)

    def put_state(self, key: str, value: bytes) -> None:
        if not isinstance(key, str) or not key:
            raise ValueError("ledger key must be a non-empty string")
        if not isinstance(value, (bytes, bytearray)):
            raise TypeError("ledger value must be bytes")
        self._writes[key] = bytes(value)

    def rollback_only(self) -> None:
        self._rollback = True

    @property
    def is_rollback_only(self) -> bool:
        return self._rollback

    @property
    def writes(self) -> Dict[str, bytes]:
        return dict(self._writes)


class InMemoryLedger:
    """Dict-backed ledger store for development and tests."""

    def __init__(self, initial: Optional[Dict[str, bytes]] = None) -> None:
        self._state: Dict[str, bytes] = dict(initial or {})

    def snapshot(self) -> Dict[str, bytes]:
        return dict(self._state)

    @contextmanager
    def transaction(self) -> Iterator[LedgerTx]:
        tx = LedgerTx(self._state.get)
        yield tx
        if not tx.is_rollback_only:
            self._state.update(tx.writes)
