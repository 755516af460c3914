"""On-disk placement of original and thumbnail bytes for one collection."""

from __future__ import annotations

import logging
import os
import uuid
from pathlib import Path
from typing import BinaryIO

from imagevault.errors import ImageNotFoundError, InternalError, ThumbnailNotFoundError

from .thumbnails import THUMBNAIL_EXTENSION

LOGGER = logging.getLogger(__name__)

IMAGES_DIRNAME = "images"
ORIGINALS_DIRNAME = "original"
THUMBNAILS_DIRNAME = "thumbnails"


class ImageStore:
    """Manage original and thumbnail files addressed by image id.

    Every path the store touches lives under ``<collection>/images``; nothing
    outside the collection directory is visible to it.
    """

    def __init__(self, collection_dir: Path) -> None:
        self._root = collection_dir / IMAGES_DIRNAME

    @property
    def originals_dir(self) -> Path:
        return self._root / ORIGINALS_DIRNAME

    @property
    def thumbnails_dir(self) -> Path:
        return self._root / THUMBNAILS_DIRNAME

    def initialize(self) -> None:
        """Create the originals and thumbnails directories."""
        self.originals_dir.mkdir(parents=True, exist_ok=True)
        self.thumbnails_dir.mkdir(parents=True, exist_ok=True)

    def original_path(self, image_id: str, extension: str) -> Path:
        return self.originals_dir / f"{image_id}.{extension}"

    def thumbnail_path(self, image_id: str) -> Path:
        return self.thumbnails_dir / f"{image_id}.{THUMBNAIL_EXTENSION}"

    def save_original(self, image_id: str, extension: str, data: bytes) -> Path:
        """Persist original bytes and return their path."""
        return self._atomic_write(self.original_path(image_id, extension), data)

    def save_thumbnail(self, image_id: str, data: bytes) -> Path:
        """Persist thumbnail bytes and return their path."""
        return self._atomic_write(self.thumbnail_path(image_id), data)

    def open_original(self, image_id: str, extension: str) -> BinaryIO:
        """Open the original for reading.

        Raises:
            ImageNotFoundError: If no original exists for the id.
            InternalError: If the file exists but cannot be opened.
        """
        return self._open(self.original_path(image_id, extension), ImageNotFoundError)

    def open_thumbnail(self, image_id: str) -> BinaryIO:
        """Open the thumbnail for reading.

        Raises:
            ThumbnailNotFoundError: If the image has no thumbnail.
            InternalError: If the file exists but cannot be opened.
        """
        return self._open(self.thumbnail_path(image_id), ThumbnailNotFoundError)

    def original_size(self, image_id: str, extension: str) -> int:
        try:
            return self.original_path(image_id, extension).stat().st_size
        except FileNotFoundError as exc:
            raise ImageNotFoundError() from exc
        except OSError as exc:
            raise InternalError(detail=str(exc)) from exc

    def has_thumbnail(self, image_id: str) -> bool:
        return self.thumbnail_path(image_id).is_file()

    def delete(self, image_id: str, extension: str) -> None:
        """Remove the thumbnail, when present, and then the original.

        The original goes last, so a failure leaves it readable.

        Raises:
            InternalError: If an existing file cannot be removed.
        """
        original = self.original_path(image_id, extension)
        if not original.exists():
            LOGGER.warning("Original for image %s already missing at %s", image_id, original)
        for path in (self.thumbnail_path(image_id), original):
            try:
                path.unlink(missing_ok=True)
            except OSError as exc:
                LOGGER.error("Unable to remove %s: %s", path, exc)
                raise InternalError(detail=f"Unable to remove {path}: {exc}") from exc

    def discard(self, *paths: Path) -> None:
        """Best-effort removal used to roll back partially stored images."""
        for path in paths:
            try:
                path.unlink(missing_ok=True)
            except OSError as exc:
                LOGGER.warning("Unable to clean up %s: %s", path, exc)

    def _open(self, path: Path, missing: type[Exception]) -> BinaryIO:
        try:
            return path.open("rb")
        except FileNotFoundError as exc:
            raise missing() from exc
        except OSError as exc:
            LOGGER.error("Unable to open %s: %s", path, exc)
            raise InternalError(detail=f"Unable to open {path}: {exc}") from exc

    def _atomic_write(self, target: Path, data: bytes) -> Path:
        temp_path = target.with_name(f".{target.name}.{uuid.uuid4().hex}.tmp")
        try:
            temp_path.write_bytes(data)
            os.replace(temp_path, target)
        except OSError as exc:
            self.discard(temp_path)
            LOGGER.error("Unable to write %s: %s", target, exc)
            raise InternalError(detail=f"Unable to write {target}: {exc}") from exc
        return target


__all__ = ["ImageStore", "IMAGES_DIRNAME", "ORIGINALS_DIRNAME", "THUMBNAILS_DIRNAME"]
