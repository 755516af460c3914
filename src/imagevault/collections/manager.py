"""Collection lifecycle and per-collection image operations."""

from __future__ import annotations

import logging
import shutil
import threading
import uuid
from pathlib import Path
from typing import Callable, Iterable, Optional

from imagevault.config.models import ImageSettings, ImageVaultConfig
from imagevault.errors import (
    CollectionNotFoundError,
    DuplicateCollectionError,
    DuplicateImageError,
    ImageVaultError,
    InternalError,
    InvalidRequestError,
    ThumbnailNotFoundError,
    UnsupportedMediaTypeError,
)
from imagevault.identity import (
    HashComputer,
    validate_collection_id,
    validate_collection_name,
    validate_image_filename,
    validate_image_id,
)
from imagevault.media import (
    THUMBNAIL_MIME,
    ImageProbe,
    ImageStore,
    ThumbnailGenerator,
)
from imagevault.state import DEFAULT_INDEX_FILENAME, JsonMetadataStore, MetadataStore
from imagevault.state.models import ImageQuery, ImageRecord, ImageStatus, utcnow

from .results import BatchItemResult, BatchResult, ImageContent

LOGGER = logging.getLogger(__name__)

StoreFactory = Callable[[Path, str], MetadataStore]

# Fixed length so renaming never exceeds the filesystem's name limit.
TOMBSTONE_PREFIX = ".deleting-"


class Collection:
    """Handle bound to one collection's metadata store and image store."""

    def __init__(
        self,
        collection_id: str,
        directory: Path,
        store: MetadataStore,
        images: ImageStore,
        *,
        probe: ImageProbe,
        thumbnailer: ThumbnailGenerator,
        hasher: HashComputer,
        settings: ImageSettings,
    ) -> None:
        self._id = collection_id
        self._directory = directory
        self._store = store
        self._images = images
        self._probe = probe
        self._thumbnailer = thumbnailer
        self._hasher = hasher
        self._settings = settings

    def __repr__(self) -> str:
        return f"Collection(id={self._id!r})"

    @property
    def id(self) -> str:
        return self._id

    @property
    def name(self) -> str:
        """Display name; identical to the id."""
        return self._id

    @property
    def path(self) -> Path:
        return self._directory

    @property
    def store(self) -> MetadataStore:
        return self._store

    @property
    def images(self) -> ImageStore:
        return self._images

    # Images -----------------------------------------------------------

    def add_image(self, data: bytes, original_filename: str) -> ImageRecord:
        """Accept image bytes into the collection with status INBOX.

        Args:
            data: Raw bytes of the uploaded file.
            original_filename: Filename supplied by the uploader.

        Returns:
            ImageRecord: Metadata of the created image.

        Raises:
            InvalidNameError: If the filename is unsafe or too long.
            UnsupportedMediaTypeError: If the bytes are not a supported image.
            DuplicateImageError: If duplicate rejection is enabled and the
                content already exists.
            InternalError: If bytes or metadata cannot be persisted.
        """
        name = validate_image_filename(original_filename, self._settings.max_filename_length)
        if not isinstance(data, (bytes, bytearray, memoryview)):
            raise UnsupportedMediaTypeError("Image content must be bytes")
        data = bytes(data)

        probe = self._probe.probe(data)
        content_hash = self._hasher.compute(data)
        if self._settings.reject_duplicates and self._store.find_by_hash(content_hash):
            raise DuplicateImageError()

        image_id = str(uuid.uuid4())
        thumbnail = self._thumbnailer.try_generate(data)

        written: list[Path] = []
        try:
            written.append(self._images.save_original(image_id, probe.extension, data))
            has_thumbnail = False
            if thumbnail.ok:
                try:
                    written.append(self._images.save_thumbnail(image_id, thumbnail.data or b""))
                    has_thumbnail = True
                except InternalError as exc:
                    LOGGER.warning("Storing thumbnail for %s failed: %s", image_id, exc.detail)
            now = utcnow()
            record = ImageRecord(
                id=image_id,
                collection=self._id,
                name=name,
                extension=probe.extension,
                mime=probe.mime,
                size=len(data),
                hash=content_hash,
                width=probe.width,
                height=probe.height,
                aspect=probe.aspect,
                status=ImageStatus.INBOX,
                created=now,
                updated=now,
                has_thumbnail=has_thumbnail,
            )
            stored = self._store.put(record)
        except ImageVaultError:
            self._images.discard(*written)
            raise
        except OSError as exc:
            self._images.discard(*written)
            LOGGER.error("Adding image to %s failed: %s", self._id, exc)
            raise InternalError(detail=str(exc)) from exc

        LOGGER.info("Added image %s (%s) to collection %s", stored.id, stored.filename, self._id)
        return stored

    def get_image(self, image_id: str) -> ImageRecord:
        """Return metadata for ``image_id``."""
        return self._store.get(validate_image_id(image_id))

    def list_images(self, query: Optional[ImageQuery] = None) -> list[ImageRecord]:
        """Return image metadata filtered and ordered by ``query``."""
        return self._store.list(query)

    def image_count(self) -> int:
        return self._store.count()

    def delete_image(self, image_id: str) -> None:
        """Remove an image's metadata, original, and thumbnail.

        The record is removed first. The image store drops the thumbnail before
        the original, so when removal fails the original is still on disk and
        the record is restored, with ``has_thumbnail`` cleared if the thumbnail
        is already gone.
        """
        image_id = validate_image_id(image_id)
        record = self._store.delete(image_id)
        try:
            self._images.delete(image_id, record.extension)
        except InternalError:
            LOGGER.error("Restoring metadata for %s after failed file removal", image_id)
            if record.has_thumbnail and not self._images.has_thumbnail(image_id):
                record = record.model_copy(update={"has_thumbnail": False})
            self._store.put(record)
            raise
        LOGGER.info("Deleted image %s from collection %s", image_id, self._id)

    def delete_images(self, image_ids: Iterable[str]) -> BatchResult:
        """Delete several images, isolating each failure."""
        result = BatchResult()
        for image_id in dict.fromkeys(image_ids):
            try:
                self.delete_image(image_id)
            except ImageVaultError as exc:
                result.items.append(BatchItemResult(image_id=image_id, error=exc))
            except Exception as exc:  # pragma: no cover
                LOGGER.exception("Unexpected failure deleting %s", image_id)
                result.items.append(
                    BatchItemResult(image_id=image_id, error=InternalError(detail=str(exc)))
                )
            else:
                result.items.append(BatchItemResult(image_id=image_id))
        return result

    # Content ----------------------------------------------------------

    def open_original(self, image_id: str) -> ImageContent:
        """Open the original bytes of an image for serving."""
        record = self.get_image(image_id)
        stream = self._images.open_original(record.id, record.extension)
        return ImageContent(stream=stream, mime=record.mime, size=record.size, filename=record.filename)

    def open_thumbnail(self, image_id: str) -> ImageContent:
        """Open the thumbnail of an image.

        Raises:
            ImageNotFoundError: If the image does not exist.
            ThumbnailNotFoundError: If the image exists without a thumbnail.
        """
        record = self.get_image(image_id)
        if not record.has_thumbnail:
            raise ThumbnailNotFoundError()
        stream = self._images.open_thumbnail(record.id)
        return ImageContent(
            stream=stream,
            mime=THUMBNAIL_MIME,
            size=ImageContent.stream_size(stream),
            filename=f"{record.name}.jpg",
        )

    def download(self, image_id: str) -> ImageContent:
        """Return the original stream with the suggested ``<name>.<extension>`` filename."""
        return self.open_original(image_id)

    def verify_image(self, image_id: str) -> bool:
        """Re-hash the stored original and compare it with the recorded hash."""
        record = self.get_image(image_id)
        with self._images.open_original(record.id, record.extension) as stream:
            actual = self._hasher.compute_stream(stream)
        if actual != record.hash:
            LOGGER.warning("Integrity check failed for image %s in %s", record.id, self._id)
            return False
        return True


class CollectionManager:
    """Own collection existence and hand out collection handles.

    Handles are cached per id so concurrent callers share one metadata store
    (and therefore one store lock) per collection.
    """

    def __init__(
        self,
        root: Path,
        *,
        store_factory: Optional[StoreFactory] = None,
        thumbnailer: Optional[ThumbnailGenerator] = None,
        probe: Optional[ImageProbe] = None,
        hasher: Optional[HashComputer] = None,
        image_settings: Optional[ImageSettings] = None,
        index_filename: str = DEFAULT_INDEX_FILENAME,
    ) -> None:
        """Initialize the manager.

        Args:
            root: Directory holding one subdirectory per collection.
            store_factory: Builds the metadata store for a collection directory.
            thumbnailer: Thumbnail generator shared by all collections.
            probe: Image decoder used to validate uploads.
            hasher: Content hasher.
            image_settings: Image acceptance rules.
            index_filename: Index filename for the default JSON store.
        """
        self._root = root.expanduser()
        self._store_factory = store_factory or (
            lambda directory, collection_id: JsonMetadataStore(
                directory, collection_id, filename=index_filename
            )
        )
        self._thumbnailer = thumbnailer or ThumbnailGenerator()
        self._probe = probe or ImageProbe()
        self._hasher = hasher or HashComputer()
        self._settings = image_settings or ImageSettings()
        self._handles: dict[str, Collection] = {}
        self._lock = threading.Lock()

    @classmethod
    def from_config(cls, config: ImageVaultConfig, **kwargs: object) -> "CollectionManager":
        """Build a manager from the resolved configuration."""
        return cls(
            config.storage.collections_path,
            thumbnailer=ThumbnailGenerator(
                max_dimension=config.thumbnails.max_dimension,
                quality=config.thumbnails.quality,
            ),
            image_settings=config.images,
            index_filename=config.storage.index_filename,
            **kwargs,  # type: ignore[arg-type]
        )

    @property
    def root(self) -> Path:
        return self._root

    def create(self, collection_id: str) -> Collection:
        """Create a new, empty collection.

        Raises:
            InvalidIdentifierError: If the id is unsafe as a directory name.
            InvalidNameError: If the id uses characters outside ``[A-Za-z0-9_-]``.
            DuplicateCollectionError: If the collection already exists.
            InternalError: If the directory tree cannot be created.
        """
        validate_collection_id(collection_id)
        validate_collection_name(collection_id)

        directory = self._root / collection_id
        # Held until the handle is cached so a concurrent load never sees a
        # half-built collection or caches a second store for it.
        with self._lock:
            try:
                self._root.mkdir(parents=True, exist_ok=True)
                directory.mkdir()
            except FileExistsError as exc:
                raise DuplicateCollectionError() from exc
            except OSError as exc:
                LOGGER.error("Unable to create collection %s: %s", collection_id, exc)
                raise InternalError(detail=str(exc)) from exc

            try:
                handle = self._build_handle(collection_id, directory)
                handle.images.initialize()
                handle.store.initialize()
            except (ImageVaultError, OSError) as exc:
                LOGGER.error("Rolling back partial collection %s: %s", collection_id, exc)
                shutil.rmtree(directory, ignore_errors=True)
                if isinstance(exc, InternalError):
                    raise
                raise InternalError(detail=str(exc)) from exc

            self._handles[collection_id] = handle
        LOGGER.info("Created collection %s", collection_id)
        return handle

    def list(self) -> list[str]:
        """Return collection ids in lexicographic order."""
        if not self._root.exists():
            return []
        try:
            entries = [entry for entry in self._root.iterdir() if entry.is_dir()]
        except OSError as exc:
            LOGGER.error("Unable to list collections in %s: %s", self._root, exc)
            raise InternalError(detail=str(exc)) from exc

        names: list[str] = []
        for entry in entries:
            try:
                validate_collection_id(entry.name)
                validate_collection_name(entry.name)
            except InvalidRequestError:
                continue
            names.append(entry.name)
        return sorted(names)

    def exists(self, collection_id: str) -> bool:
        try:
            validate_collection_id(collection_id)
        except InvalidRequestError:
            return False
        return self._is_collection_dir(self._root / collection_id)

    def load(self, collection_id: str) -> Collection:
        """Return the handle for an existing collection.

        Raises:
            InvalidIdentifierError: If the id is unsafe.
            CollectionNotFoundError: If no such collection exists.
        """
        validate_collection_id(collection_id)
        directory = self._root / collection_id
        with self._lock:
            if not self._is_collection_dir(directory):
                self._handles.pop(collection_id, None)
                raise CollectionNotFoundError()
            handle = self._handles.get(collection_id)
            if handle is None:
                handle = self._build_handle(collection_id, directory)
                self._handles[collection_id] = handle
            return handle

    def delete(self, collection_id: str) -> None:
        """Irreversibly remove a collection with all of its images.

        The directory is renamed to a hidden tombstone first, so once this call
        returns no lookup can reach the collection's records or bytes.
        """
        validate_collection_id(collection_id)
        directory = self._root / collection_id
        with self._lock:
            if not self._is_collection_dir(directory):
                raise CollectionNotFoundError()
            tombstone = self._root / f"{TOMBSTONE_PREFIX}{uuid.uuid4().hex}"
            try:
                directory.rename(tombstone)
            except OSError as exc:
                LOGGER.error("Unable to delete collection %s: %s", collection_id, exc)
                raise InternalError(detail=str(exc)) from exc
            self._handles.pop(collection_id, None)

        try:
            shutil.rmtree(tombstone)
        except OSError as exc:
            LOGGER.error("Collection %s removed but %s was left behind: %s", collection_id, tombstone, exc)
        LOGGER.info("Deleted collection %s", collection_id)

    def add_image(self, collection_id: str, data: bytes, original_filename: str) -> ImageRecord:
        """Add image bytes to a collection; see ``Collection.add_image``."""
        validate_image_filename(original_filename, self._settings.max_filename_length)
        return self.load(collection_id).add_image(data, original_filename)

    def get_image(self, collection_id: str, image_id: str) -> ImageRecord:
        validate_image_id(image_id)
        return self.load(collection_id).get_image(image_id)

    def list_images(self, collection_id: str, query: Optional[ImageQuery] = None) -> list[ImageRecord]:
        return self.load(collection_id).list_images(query)

    def delete_image(self, collection_id: str, image_id: str) -> None:
        validate_image_id(image_id)
        self.load(collection_id).delete_image(image_id)

    def reset_all(self) -> None:
        """Remove every collection. Intended for test isolation only."""
        with self._lock:
            self._handles.clear()
            if not self._root.exists():
                return
            for entry in self._root.iterdir():
                if entry.is_dir():
                    shutil.rmtree(entry)
                else:
                    entry.unlink()

    def _is_collection_dir(self, directory: Path) -> bool:
        try:
            return directory.is_dir()
        except OSError as exc:
            LOGGER.warning("Unable to stat collection directory %s: %s", directory, exc)
            return False

    def _build_handle(self, collection_id: str, directory: Path) -> Collection:
        return Collection(
            collection_id,
            directory,
            self._store_factory(directory, collection_id),
            ImageStore(directory),
            probe=self._probe,
            thumbnailer=self._thumbnailer,
            hasher=self._hasher,
            settings=self._settings,
        )


__all__ = ["Collection", "CollectionManager", "StoreFactory"]
