"""Content hashing utilities."""

from __future__ import annotations

import hashlib
from typing import BinaryIO

CHUNK_SIZE = 1024 * 1024


def compute_content_hash(data: bytes) -> str:
    """Return the SHA-256 hex digest of ``data``."""
    return hashlib.sha256(data).hexdigest()


class HashComputer:
    """Compute content hashes for integrity checks and duplicate detection."""

    def __init__(self, chunk_size: int = CHUNK_SIZE) -> None:
        self.chunk_size = chunk_size

    def compute(self, data: bytes) -> str:
        """Return a hex digest representing ``data``."""
        return compute_content_hash(data)

    def compute_stream(self, stream: BinaryIO) -> str:
        """Return a hex digest of a binary stream, read in chunks."""
        digest = hashlib.sha256()
        for chunk in iter(lambda: stream.read(self.chunk_size), b""):
            digest.update(chunk)
        return digest.hexdigest()
