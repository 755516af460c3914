"""Image decoding, thumbnail generation, and byte storage."""

from .probe import ImageProbe, ProbeResult
from .storage import ImageStore
from .thumbnails import (
    THUMBNAIL_EXTENSION,
    THUMBNAIL_MIME,
    ProcessingError,
    ThumbnailError,
    ThumbnailGenerator,
    ThumbnailResult,
    UnsupportedFormatError,
)

__all__ = [
    "ImageProbe",
    "ProbeResult",
    "ImageStore",
    "THUMBNAIL_EXTENSION",
    "THUMBNAIL_MIME",
    "ProcessingError",
    "ThumbnailError",
    "ThumbnailGenerator",
    "ThumbnailResult",
    "UnsupportedFormatError",
]
