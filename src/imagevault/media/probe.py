"""Decode uploaded bytes and extract the metadata stored for each image."""

from __future__ import annotations

import io
import logging
from dataclasses import dataclass

from PIL import Image, UnidentifiedImageError

from imagevault.errors import UnsupportedMediaTypeError

LOGGER = logging.getLogger(__name__)

# Pillow format name -> (extension, MIME type)
SUPPORTED_FORMATS: dict[str, tuple[str, str]] = {
    "JPEG": ("jpg", "image/jpeg"),
    "PNG": ("png", "image/png"),
    "WEBP": ("webp", "image/webp"),
}

UNSUPPORTED_MESSAGE = "Unsupported file type, must be image file with extension jpg/jpeg/png/webp"
CORRUPTED_MESSAGE = "Invalid or corrupted image file"


@dataclass(slots=True, frozen=True)
class ProbeResult:
    """Facts derived from decoding an image."""

    format: str
    extension: str
    mime: str
    width: int
    height: int

    @property
    def aspect(self) -> float:
        return self.width / self.height


class ImageProbe:
    """Identify and fully decode image bytes."""

    def probe(self, data: bytes) -> ProbeResult:
        """Return format and dimensions for ``data``.

        Args:
            data: Raw bytes of the uploaded file.

        Returns:
            ProbeResult: Detected format, MIME type, and pixel dimensions.

        Raises:
            UnsupportedMediaTypeError: If the bytes are not a decodable JPEG,
                PNG, or WebP image.
        """
        if not data:
            raise UnsupportedMediaTypeError(CORRUPTED_MESSAGE)
        try:
            with Image.open(io.BytesIO(data)) as img:
                image_format = (img.format or "").upper()
                if image_format not in SUPPORTED_FORMATS:
                    raise UnsupportedMediaTypeError(UNSUPPORTED_MESSAGE)
                img.load()
                width, height = img.size
        except UnsupportedMediaTypeError:
            raise
        except UnidentifiedImageError as exc:
            raise UnsupportedMediaTypeError(UNSUPPORTED_MESSAGE, detail=str(exc)) from exc
        except (OSError, SyntaxError, ValueError, Image.DecompressionBombError) as exc:
            LOGGER.debug("Image decode failed: %s", exc)
            raise UnsupportedMediaTypeError(CORRUPTED_MESSAGE, detail=str(exc)) from exc

        if width <= 0 or height <= 0:
            raise UnsupportedMediaTypeError(CORRUPTED_MESSAGE)
        extension, mime = SUPPORTED_FORMATS[image_format]
        return ProbeResult(
            format=image_format,
            extension=extension,
            mime=mime,
            width=width,
            height=height,
        )


__all__ = ["ImageProbe", "ProbeResult", "SUPPORTED_FORMATS"]
