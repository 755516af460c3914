"""Shared fixtures for Image Vault tests."""

from __future__ import annotations

import io
from pathlib import Path
from typing import Callable

import pytest
from PIL import Image

from imagevault.collections import CollectionManager

ImageFactory = Callable[..., bytes]


def encode_image(
    fmt: str = "JPEG",
    size: tuple[int, int] = (64, 48),
    color: tuple[int, ...] = (200, 30, 30),
    mode: str = "RGB",
) -> bytes:
    """Return encoded bytes of a solid-colour image.

    Args:
        fmt: Pillow format name (JPEG, PNG, WEBP, GIF, ...).
        size: Pixel dimensions.
        color: Fill colour matching ``mode``.
        mode: Pillow image mode.

    Returns:
        bytes: Encoded image.
    """
    buffer = io.BytesIO()
    Image.new(mode, size, color).save(buffer, format=fmt)
    return buffer.getvalue()


@pytest.fixture
def make_image() -> ImageFactory:
    return encode_image


@pytest.fixture
def collections_root(tmp_path: Path) -> Path:
    return tmp_path / "collections"


@pytest.fixture
def manager(collections_root: Path) -> CollectionManager:
    return CollectionManager(collections_root)
