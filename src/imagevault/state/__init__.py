"""Metadata store abstraction and its JSON file implementation."""

from __future__ import annotations

import json
import logging
import os
import threading
import uuid
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Callable, Optional

from pydantic import ValidationError

from imagevault.errors import ImageNotFoundError, StoreCorruptedError

from .models import CollectionIndex, ImageQuery, ImageRecord, ImageStatus

LOGGER = logging.getLogger(__name__)

DEFAULT_INDEX_FILENAME = "collection.json"

RecordMutator = Callable[[ImageRecord], Optional[ImageRecord]]


class MetadataStore(ABC):
    """Durable mapping from image id to image metadata for one collection."""

    @abstractmethod
    def initialize(self) -> None:
        """Create an empty store for a new collection."""

    @abstractmethod
    def put(self, record: ImageRecord) -> ImageRecord:
        """Insert or replace a record and return the stored version."""

    @abstractmethod
    def get(self, image_id: str) -> ImageRecord:
        """Return the record for ``image_id`` or raise ``ImageNotFoundError``."""

    @abstractmethod
    def update(self, image_id: str, mutator: RecordMutator) -> ImageRecord:
        """Apply ``mutator`` to a record under the store lock and persist the result.

        The mutator returns the replacement record, or ``None`` to leave the
        stored record untouched.
        """

    @abstractmethod
    def delete(self, image_id: str) -> ImageRecord:
        """Remove and return the record for ``image_id``."""

    @abstractmethod
    def list(self, query: Optional[ImageQuery] = None) -> list[ImageRecord]:
        """Return records filtered, ordered, and paginated by ``query``."""

    @abstractmethod
    def list_all(self) -> list[ImageRecord]:
        """Return every record ordered by creation."""

    @abstractmethod
    def find_by_hash(self, content_hash: str) -> list[ImageRecord]:
        """Return records whose content hash equals ``content_hash``."""

    def count(self) -> int:
        """Return the number of stored records."""
        return len(self.list_all())


class JsonMetadataStore(MetadataStore):
    """Persist a collection's image records as a single JSON document.

    Every mutation reads the document, applies the change, and atomically
    replaces the file, so a failed write leaves the previous version intact.
    """

    def __init__(
        self,
        directory: Path,
        collection_id: str,
        *,
        filename: str = DEFAULT_INDEX_FILENAME,
    ) -> None:
        """Bind the store to a collection directory.

        Args:
            directory: Collection directory that holds the index file.
            collection_id: Identifier of the owning collection.
            filename: Name of the index file inside ``directory``.
        """
        self._directory = directory
        self._collection_id = collection_id
        self._path = directory / filename
        self._lock = threading.RLock()

    @property
    def path(self) -> Path:
        """Return the path of the index file."""
        return self._path

    @property
    def collection_id(self) -> str:
        return self._collection_id

    def initialize(self) -> None:
        with self._lock:
            self._write(CollectionIndex(collection=self._collection_id))

    def put(self, record: ImageRecord) -> ImageRecord:
        with self._lock:
            index = self._read()
            existing = index.images.get(record.id)
            if existing is not None:
                stored = record.model_copy(update={"sequence": existing.sequence})
            elif record.sequence > 0:
                # restoring a previously stored record keeps its position
                stored = record
                index.next_sequence = max(index.next_sequence, record.sequence + 1)
            else:
                stored = record.model_copy(update={"sequence": index.next_sequence})
                index.next_sequence += 1
            index.images[stored.id] = stored
            self._write(index)
            return stored

    def get(self, image_id: str) -> ImageRecord:
        index = self._read()
        record = index.images.get(image_id)
        if record is None:
            raise ImageNotFoundError()
        return record

    def update(self, image_id: str, mutator: RecordMutator) -> ImageRecord:
        with self._lock:
            index = self._read()
            current = index.images.get(image_id)
            if current is None:
                raise ImageNotFoundError()
            replacement = mutator(current)
            if replacement is None:
                return current
            replacement = replacement.model_copy(
                update={"id": current.id, "sequence": current.sequence, "created": current.created}
            )
            index.images[image_id] = replacement
            self._write(index)
            return replacement

    def delete(self, image_id: str) -> ImageRecord:
        with self._lock:
            index = self._read()
            record = index.images.pop(image_id, None)
            if record is None:
                raise ImageNotFoundError()
            self._write(index)
            return record

    def list(self, query: Optional[ImageQuery] = None) -> list[ImageRecord]:
        query = query or ImageQuery()
        records = list(self._read().images.values())
        if query.status is not None:
            records = [record for record in records if record.status == query.status]
        records.sort(
            key=lambda record: (getattr(record, query.order_by), record.sequence),
            reverse=query.order_direction == "DESC",
        )
        end = None if query.limit is None else query.offset + query.limit
        return records[query.offset : end]

    def list_all(self) -> list[ImageRecord]:
        records = list(self._read().images.values())
        records.sort(key=lambda record: (record.created, record.sequence))
        return records

    def find_by_hash(self, content_hash: str) -> list[ImageRecord]:
        return [record for record in self.list_all() if record.hash == content_hash]

    def count(self) -> int:
        return len(self._read().images)

    # Internal helpers -------------------------------------------------

    def _read(self) -> CollectionIndex:
        try:
            raw = self._path.read_text(encoding="utf-8")
        except OSError as exc:
            raise self._corrupted(f"Unable to read {self._path}: {exc}") from exc
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise self._corrupted(f"Invalid collection index data: {exc}") from exc
        try:
            index = CollectionIndex.model_validate(data)
        except ValidationError as exc:
            raise self._corrupted(f"Invalid collection index schema: {exc}") from exc
        if index.collection != self._collection_id:
            raise self._corrupted(
                f"Index at {self._path} belongs to collection {index.collection!r}"
            )
        return index

    def _write(self, index: CollectionIndex) -> None:
        payload = json.dumps(index.model_dump(mode="json"), indent=2, sort_keys=False)
        temp_path = self._path.with_name(f".{self._path.name}.{uuid.uuid4().hex}.tmp")
        try:
            temp_path.write_text(payload, encoding="utf-8")
            os.replace(temp_path, self._path)
        except OSError as exc:
            try:
                temp_path.unlink(missing_ok=True)
            except OSError:
                LOGGER.warning("Could not remove temporary index file %s", temp_path)
            raise self._corrupted(f"Unable to write {self._path}: {exc}") from exc

    def _corrupted(self, detail: str) -> StoreCorruptedError:
        LOGGER.error("Metadata store failure for collection %s: %s", self._collection_id, detail)
        return StoreCorruptedError(detail=detail)


__all__ = [
    "DEFAULT_INDEX_FILENAME",
    "MetadataStore",
    "JsonMetadataStore",
    "RecordMutator",
    "CollectionIndex",
    "ImageQuery",
    "ImageRecord",
    "ImageStatus",
]
