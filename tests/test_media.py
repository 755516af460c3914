"""Probe, thumbnail generator, and image store tests."""

from __future__ import annotations

import io
from pathlib import Path
from typing import Callable

import pytest
from PIL import Image

from imagevault.errors import (
    ImageNotFoundError,
    InternalError,
    ThumbnailNotFoundError,
    UnsupportedMediaTypeError,
)
from imagevault.media import (
    ImageProbe,
    ImageStore,
    ProcessingError,
    ThumbnailGenerator,
    UnsupportedFormatError,
)

ImageFactory = Callable[..., bytes]

IMAGE_ID = "0b6f3b2e-9c4e-4f4a-9a43-6f1c2d3e4f50"


@pytest.mark.parametrize(
    ("fmt", "extension", "mime"),
    [("JPEG", "jpg", "image/jpeg"), ("PNG", "png", "image/png"), ("WEBP", "webp", "image/webp")],
)
def test_probe_detects_supported_formats(
    make_image: ImageFactory, fmt: str, extension: str, mime: str
) -> None:
    result = ImageProbe().probe(make_image(fmt, size=(30, 20)))

    assert (result.extension, result.mime) == (extension, mime)
    assert (result.width, result.height) == (30, 20)
    assert result.aspect == pytest.approx(1.5)


def test_probe_rejects_unsupported_and_corrupt_bytes(make_image: ImageFactory) -> None:
    probe = ImageProbe()

    for data in (b"", b"plain text, not an image", make_image("GIF", mode="P", color=1)):
        with pytest.raises(UnsupportedMediaTypeError):
            probe.probe(data)

    truncated = make_image("PNG", size=(200, 200))[:60]
    with pytest.raises(UnsupportedMediaTypeError):
        probe.probe(truncated)


def test_thumbnail_is_bounded_jpeg_preserving_aspect(make_image: ImageFactory) -> None:
    generator = ThumbnailGenerator()

    data = generator.generate(make_image("PNG", size=(1200, 600)))

    with Image.open(io.BytesIO(data)) as thumb:
        assert thumb.format == "JPEG"
        assert thumb.size == (300, 150)


def test_thumbnail_never_enlarges(make_image: ImageFactory) -> None:
    data = ThumbnailGenerator().generate(make_image("JPEG", size=(120, 80)))

    with Image.open(io.BytesIO(data)) as thumb:
        assert thumb.size == (120, 80)


def test_thumbnail_flattens_alpha_onto_white(make_image: ImageFactory) -> None:
    transparent = make_image("PNG", size=(10, 10), color=(0, 0, 0, 0), mode="RGBA")

    data = ThumbnailGenerator().generate(transparent)

    with Image.open(io.BytesIO(data)) as thumb:
        assert thumb.mode == "RGB"
        red, green, blue = thumb.getpixel((5, 5))
        assert min(red, green, blue) > 240


def test_thumbnail_is_deterministic(make_image: ImageFactory) -> None:
    original = make_image("WEBP", size=(640, 480))
    generator = ThumbnailGenerator(max_dimension=100, quality=70)

    assert generator.generate(original) == generator.generate(original)


def test_thumbnail_failures_are_captured(monkeypatch: pytest.MonkeyPatch, make_image: ImageFactory) -> None:
    generator = ThumbnailGenerator()

    with pytest.raises(UnsupportedFormatError):
        generator.generate(b"garbage")

    result = generator.try_generate(b"garbage")
    assert not result.ok
    assert isinstance(result.error, UnsupportedFormatError)

    def _boom(*_: object, **__: object) -> None:
        raise RuntimeError("resize failed")

    monkeypatch.setattr(Image.Image, "thumbnail", _boom)
    result = generator.try_generate(make_image())
    assert isinstance(result.error, ProcessingError)
    assert result.data is None


def test_image_store_layout_and_streams(tmp_path: Path) -> None:
    store = ImageStore(tmp_path)
    store.initialize()

    original = store.save_original(IMAGE_ID, "png", b"original-bytes")
    thumbnail = store.save_thumbnail(IMAGE_ID, b"thumb-bytes")

    assert original == tmp_path / "images" / "original" / f"{IMAGE_ID}.png"
    assert thumbnail == tmp_path / "images" / "thumbnails" / f"{IMAGE_ID}.jpg"
    with store.open_original(IMAGE_ID, "png") as stream:
        assert stream.read() == b"original-bytes"
    with store.open_thumbnail(IMAGE_ID) as stream:
        assert stream.read() == b"thumb-bytes"
    assert store.original_size(IMAGE_ID, "png") == len(b"original-bytes")
    assert store.has_thumbnail(IMAGE_ID)


def test_image_store_missing_files(tmp_path: Path) -> None:
    store = ImageStore(tmp_path)
    store.initialize()

    with pytest.raises(ImageNotFoundError):
        store.open_original(IMAGE_ID, "jpg")
    with pytest.raises(ThumbnailNotFoundError):
        store.open_thumbnail(IMAGE_ID)
    with pytest.raises(ImageNotFoundError):
        store.original_size(IMAGE_ID, "jpg")


def test_image_store_delete_tolerates_missing_thumbnail(tmp_path: Path) -> None:
    store = ImageStore(tmp_path)
    store.initialize()
    store.save_original(IMAGE_ID, "jpg", b"x")

    store.delete(IMAGE_ID, "jpg")

    assert not store.original_path(IMAGE_ID, "jpg").exists()
    assert not store.has_thumbnail(IMAGE_ID)


def test_image_store_write_failure_is_internal_error(tmp_path: Path) -> None:
    store = ImageStore(tmp_path)

    # directories were never created
    with pytest.raises(InternalError):
        store.save_original(IMAGE_ID, "jpg", b"x")
