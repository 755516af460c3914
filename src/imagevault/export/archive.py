"""ZIP export of selected images from a collection."""

from __future__ import annotations

import logging
import shutil
import tempfile
import zipfile
from dataclasses import dataclass, field
from typing import BinaryIO, Iterable, Iterator, Optional

from imagevault.collections import CollectionManager
from imagevault.config.models import ExportSettings
from imagevault.errors import EmptyRequestError, ImageVaultError, InternalError
from imagevault.identity import validate_archive_name, validate_image_id

from .naming import resolve_entry_names

LOGGER = logging.getLogger(__name__)

ARCHIVE_CONTENT_TYPE = "application/zip"

_COMPRESSION = {
    "stored": zipfile.ZIP_STORED,
    "deflated": zipfile.ZIP_DEFLATED,
}


@dataclass
class ArchiveEntry:
    """One file inside an exported archive."""

    image_id: str
    name: str
    size: int


@dataclass
class ArchiveExport:
    """A finished archive ready to be streamed to a caller.

    Attributes:
        filename: Suggested download filename, ``<archive_name>.zip``.
        stream: Spooled file holding the archive bytes.
        size: Archive length in bytes, usable as ``Content-Length``.
        entries: Entries in the order they were written.
        chunk_size: Default chunk size for ``iter_chunks``.
    """

    filename: str
    stream: BinaryIO
    size: int
    entries: list[ArchiveEntry] = field(default_factory=list)
    chunk_size: int = 64 * 1024
    content_type: str = ARCHIVE_CONTENT_TYPE

    @property
    def entry_names(self) -> list[str]:
        return [entry.name for entry in self.entries]

    def iter_chunks(self, chunk_size: Optional[int] = None) -> Iterator[bytes]:
        size = chunk_size or self.chunk_size
        self.stream.seek(0)
        for chunk in iter(lambda: self.stream.read(size), b""):
            yield chunk

    def read(self) -> bytes:
        self.stream.seek(0)
        return self.stream.read()

    def write_to(self, target: BinaryIO) -> int:
        """Copy the archive into ``target`` and return the number of bytes written."""
        self.stream.seek(0)
        shutil.copyfileobj(self.stream, target, self.chunk_size)
        return self.size

    def close(self) -> None:
        self.stream.close()

    def __enter__(self) -> "ArchiveExport":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class ArchiveExporter:
    """Build ZIP archives of images with collision-free entry names."""

    def __init__(self, manager: CollectionManager, settings: Optional[ExportSettings] = None) -> None:
        self._manager = manager
        self._settings = settings or ExportSettings()

    def export_images(
        self,
        collection_id: str,
        image_ids: Iterable[str],
        archive_name: str,
    ) -> ArchiveExport:
        """Package the requested images into a ZIP archive.

        Args:
            collection_id: Collection the images belong to.
            image_ids: Requested ids; repeated ids are exported once.
            archive_name: Archive base name, with or without ``.zip``.

        Returns:
            ArchiveExport: The archive with its size and entry listing.

        Raises:
            InvalidArchiveNameError: If the archive name is unsafe.
            InvalidIdentifierError: If any image id is malformed.
            EmptyRequestError: If no image ids were supplied.
            CollectionNotFoundError: If the collection does not exist.
            ImageNotFoundError: If any id does not resolve to an image.
            InternalError: If image bytes cannot be read or the archive written.
        """
        stem = validate_archive_name(archive_name)
        requested = [validate_image_id(image_id) for image_id in image_ids]
        unique_ids = list(dict.fromkeys(requested))
        if not unique_ids:
            raise EmptyRequestError()

        collection = self._manager.load(collection_id)
        records = [collection.get_image(image_id) for image_id in unique_ids]
        names = resolve_entry_names(records)

        spool = tempfile.SpooledTemporaryFile(
            max_size=self._settings.spool_max_size_mb * 1024 * 1024
        )
        entries: list[ArchiveEntry] = []
        chunk_size = self._settings.chunk_size_kb * 1024
        try:
            with zipfile.ZipFile(
                spool, mode="w", compression=_COMPRESSION[self._settings.compression]
            ) as archive:
                for record in records:
                    entry_name = names[record.id]
                    info = zipfile.ZipInfo(
                        entry_name, date_time=record.created.timetuple()[:6]
                    )
                    info.compress_type = archive.compression
                    with collection.images.open_original(record.id, record.extension) as source:
                        with archive.open(info, mode="w") as target:
                            shutil.copyfileobj(source, target, chunk_size)
                    entries.append(ArchiveEntry(image_id=record.id, name=entry_name, size=record.size))
            size = spool.seek(0, 2)
            spool.seek(0)
        except ImageVaultError:
            spool.close()
            raise
        except (OSError, zipfile.BadZipFile) as exc:
            spool.close()
            LOGGER.error("Building archive %s for %s failed: %s", stem, collection_id, exc)
            raise InternalError(detail=str(exc)) from exc

        LOGGER.info(
            "Exported %d image(s) from %s into %s.zip (%d bytes)",
            len(entries),
            collection_id,
            stem,
            size,
        )
        return ArchiveExport(
            filename=f"{stem}.zip",
            stream=spool,  # type: ignore[arg-type]
            size=size,
            entries=entries,
            chunk_size=chunk_size,
        )


__all__ = ["ARCHIVE_CONTENT_TYPE", "ArchiveEntry", "ArchiveExport", "ArchiveExporter"]
