"""Thumbnail generation.

Thumbnails are always JPEG, bounded to a square box, and never enlarged. The
generator is a pure transform; persisting the bytes is the image store's job.
"""

from __future__ import annotations

import io
import logging
from dataclasses import dataclass
from typing import Optional

from PIL import Image, ImageOps, UnidentifiedImageError

from imagevault.errors import InternalError

LOGGER = logging.getLogger(__name__)

THUMBNAIL_MIME = "image/jpeg"
THUMBNAIL_EXTENSION = "jpg"


class ThumbnailError(InternalError):
    """Base class for thumbnail generation failures."""


class UnsupportedFormatError(ThumbnailError):
    """Raised when the original cannot be decoded."""

    default_message = "Unsupported image format"


class ProcessingError(ThumbnailError):
    """Raised when decoding succeeded but the thumbnail could not be produced."""

    default_message = "Thumbnail processing failed"


@dataclass(slots=True)
class ThumbnailResult:
    """Outcome of a best-effort thumbnail generation."""

    data: Optional[bytes] = None
    error: Optional[ThumbnailError] = None

    @property
    def ok(self) -> bool:
        return self.data is not None


class ThumbnailGenerator:
    """Produce bounded JPEG previews from original image bytes."""

    def __init__(self, max_dimension: int = 300, quality: int = 80) -> None:
        if max_dimension < 1:
            raise ValueError("max_dimension must be positive")
        self.max_dimension = max_dimension
        self.quality = quality

    def generate(self, original: bytes) -> bytes:
        """Return JPEG thumbnail bytes for ``original``.

        Raises:
            UnsupportedFormatError: If the original cannot be decoded.
            ProcessingError: If resizing or encoding fails.
        """
        try:
            img = Image.open(io.BytesIO(original))
            img.load()
        except (UnidentifiedImageError, Image.DecompressionBombError, OSError, SyntaxError) as exc:
            raise UnsupportedFormatError(detail=str(exc)) from exc

        try:
            with img:
                oriented = ImageOps.exif_transpose(img)
                rgb = _flatten(oriented)
                rgb.thumbnail((self.max_dimension, self.max_dimension), Image.Resampling.LANCZOS)
                buffer = io.BytesIO()
                rgb.save(buffer, format="JPEG", quality=self.quality)
        except Exception as exc:
            raise ProcessingError(detail=str(exc)) from exc
        return buffer.getvalue()

    def try_generate(self, original: bytes) -> ThumbnailResult:
        """Generate a thumbnail, capturing the failure instead of raising it."""
        try:
            return ThumbnailResult(data=self.generate(original))
        except ThumbnailError as exc:
            LOGGER.warning("Thumbnail generation failed: %s", exc.detail or exc.message)
            return ThumbnailResult(error=exc)


def _flatten(img: Image.Image) -> Image.Image:
    has_alpha = img.mode in {"RGBA", "LA"} or (img.mode == "P" and "transparency" in img.info)
    if not has_alpha:
        return img.convert("RGB")
    rgba = img.convert("RGBA")
    background = Image.new("RGB", rgba.size, (255, 255, 255))
    background.paste(rgba, mask=rgba.getchannel("A"))
    return background


__all__ = [
    "THUMBNAIL_MIME",
    "THUMBNAIL_EXTENSION",
    "ThumbnailError",
    "UnsupportedFormatError",
    "ProcessingError",
    "ThumbnailResult",
    "ThumbnailGenerator",
]
