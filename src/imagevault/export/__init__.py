"""Archive export of collection images."""

from .archive import ARCHIVE_CONTENT_TYPE, ArchiveEntry, ArchiveExport, ArchiveExporter
from .naming import resolve_entry_names

__all__ = [
    "ARCHIVE_CONTENT_TYPE",
    "ArchiveEntry",
    "ArchiveExport",
    "ArchiveExporter",
    "resolve_entry_names",
]
