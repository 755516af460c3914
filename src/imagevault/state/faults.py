"""Fault injection for metadata stores.

``FaultInjectingStore`` wraps another store and raises configured errors from
selected operations. Tests use it to simulate disk failures without patching
module globals.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from imagevault.errors import ImageVaultError, StoreCorruptedError

from . import MetadataStore, RecordMutator
from .models import ImageQuery, ImageRecord

OPERATIONS = frozenset(
    {"initialize", "put", "get", "update", "delete", "list", "list_all", "find_by_hash", "count"}
)


@dataclass(slots=True)
class _Fault:
    error: Exception
    remaining: Optional[int]


class FaultInjectingStore(MetadataStore):
    """Decorate a store so chosen operations fail on demand."""

    def __init__(self, inner: MetadataStore) -> None:
        self.inner = inner
        self._faults: dict[str, _Fault] = {}
        self.calls: list[str] = []

    def fail_on(
        self,
        operation: str,
        error: Optional[Exception] = None,
        *,
        times: Optional[int] = None,
    ) -> None:
        """Make ``operation`` raise ``error``.

        Args:
            operation: Store method name to fail.
            error: Exception to raise; defaults to ``StoreCorruptedError``.
            times: Number of calls to fail before recovering; ``None`` fails forever.
        """
        if operation not in OPERATIONS:
            raise ValueError(f"Unknown store operation: {operation}")
        self._faults[operation] = _Fault(
            error=error or StoreCorruptedError(detail=f"Injected failure in {operation}"),
            remaining=times,
        )

    def clear(self) -> None:
        """Remove every configured fault."""
        self._faults.clear()

    def _check(self, operation: str) -> None:
        self.calls.append(operation)
        fault = self._faults.get(operation)
        if fault is None:
            return
        if fault.remaining is not None:
            fault.remaining -= 1
            if fault.remaining <= 0:
                del self._faults[operation]
        if isinstance(fault.error, ImageVaultError):
            raise fault.error
        raise StoreCorruptedError(detail=str(fault.error)) from fault.error

    def initialize(self) -> None:
        self._check("initialize")
        self.inner.initialize()

    def put(self, record: ImageRecord) -> ImageRecord:
        self._check("put")
        return self.inner.put(record)

    def get(self, image_id: str) -> ImageRecord:
        self._check("get")
        return self.inner.get(image_id)

    def update(self, image_id: str, mutator: RecordMutator) -> ImageRecord:
        self._check("update")
        return self.inner.update(image_id, mutator)

    def delete(self, image_id: str) -> ImageRecord:
        self._check("delete")
        return self.inner.delete(image_id)

    def list(self, query: Optional[ImageQuery] = None) -> list[ImageRecord]:
        self._check("list")
        return self.inner.list(query)

    def list_all(self) -> list[ImageRecord]:
        self._check("list_all")
        return self.inner.list_all()

    def find_by_hash(self, content_hash: str) -> list[ImageRecord]:
        self._check("find_by_hash")
        return self.inner.find_by_hash(content_hash)

    def count(self) -> int:
        self._check("count")
        return self.inner.count()


__all__ = ["FaultInjectingStore", "OPERATIONS"]
