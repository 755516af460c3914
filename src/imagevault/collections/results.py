"""Result containers returned by collection operations."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Any, BinaryIO, Iterator, Optional

from imagevault.errors import ImageVaultError
from imagevault.state.models import ImageRecord


@dataclass(slots=True)
class ImageContent:
    """Open byte stream for an original or thumbnail, with serving metadata.

    Attributes:
        stream: Binary stream positioned at the start of the content.
        mime: MIME type to advertise.
        size: Content length in bytes.
        filename: Suggested download filename.
    """

    stream: BinaryIO
    mime: str
    size: int
    filename: str

    def read(self) -> bytes:
        return self.stream.read()

    def iter_chunks(self, chunk_size: int = 64 * 1024) -> Iterator[bytes]:
        for chunk in iter(lambda: self.stream.read(chunk_size), b""):
            yield chunk

    def close(self) -> None:
        self.stream.close()

    def __enter__(self) -> "ImageContent":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    @staticmethod
    def stream_size(stream: BinaryIO) -> int:
        return os.fstat(stream.fileno()).st_size


@dataclass(slots=True)
class BatchItemResult:
    """Outcome for a single id within a batch operation."""

    image_id: str
    image: Optional[ImageRecord] = None
    error: Optional[ImageVaultError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"imageId": self.image_id, "ok": self.ok}
        if self.image is not None:
            payload["image"] = self.image.model_dump(mode="json")
        if self.error is not None:
            payload["error"] = {"code": self.error.code, "message": self.error.message}
        return payload


@dataclass(slots=True)
class BatchResult:
    """Per-id results of a batch operation, in request order."""

    items: list[BatchItemResult] = field(default_factory=list)

    @property
    def succeeded(self) -> list[BatchItemResult]:
        return [item for item in self.items if item.ok]

    @property
    def failed(self) -> list[BatchItemResult]:
        return [item for item in self.items if not item.ok]

    @property
    def total(self) -> int:
        return len(self.items)

    @property
    def summary(self) -> str:
        return f"{len(self.succeeded)} of {self.total} succeeded"

    def to_payload(self) -> dict[str, Any]:
        return {
            "summary": self.summary,
            "succeeded": len(self.succeeded),
            "failed": len(self.failed),
            "results": [item.to_payload() for item in self.items],
        }


__all__ = ["ImageContent", "BatchItemResult", "BatchResult"]
