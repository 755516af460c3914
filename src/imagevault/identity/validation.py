"""Identifier and name validation rules."""

from __future__ import annotations

import re
from pathlib import PurePath

from imagevault.errors import (
    InvalidArchiveNameError,
    InvalidIdentifierError,
    InvalidNameError,
)

MAX_NAME_LENGTH = 256

_UNSAFE_ID_CHARS = re.compile(r'[/\\:*?"<>|]')
_COLLECTION_NAME = re.compile(r"^[A-Za-z0-9_-]+$")
_IMAGE_ID = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-4[0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$",
    re.IGNORECASE,
)
_FILENAME_STEM = re.compile(r"^[A-Za-z0-9()._-]+$")
_ARCHIVE_NAME = re.compile(r"^[A-Za-z0-9_-]+$")

COLLECTION_ID_MESSAGE = "Invalid collection ID format"
IMAGE_ID_MESSAGE = "Invalid image ID format"


def validate_collection_id(collection_id: object) -> str:
    """Ensure a collection id is safe to use as a directory name.

    Args:
        collection_id: Candidate identifier.

    Returns:
        str: The validated identifier.

    Raises:
        InvalidIdentifierError: If the identifier is empty, longer than
            ``MAX_NAME_LENGTH``, a dot path, contains path separators or reserved
            characters, or starts/ends with a dot.
    """
    if not isinstance(collection_id, str) or not collection_id.strip():
        raise InvalidIdentifierError(COLLECTION_ID_MESSAGE)
    if len(collection_id) > MAX_NAME_LENGTH:
        raise InvalidIdentifierError(COLLECTION_ID_MESSAGE)
    if collection_id in {".", ".."}:
        raise InvalidIdentifierError(COLLECTION_ID_MESSAGE)
    if _UNSAFE_ID_CHARS.search(collection_id):
        raise InvalidIdentifierError(COLLECTION_ID_MESSAGE)
    if collection_id.startswith(".") or collection_id.endswith("."):
        raise InvalidIdentifierError(COLLECTION_ID_MESSAGE)
    return collection_id


def validate_collection_name(name: object) -> str:
    """Ensure a collection name uses the allowed character set.

    Args:
        name: Candidate collection name.

    Returns:
        str: The validated name.

    Raises:
        InvalidNameError: If the name is empty, too long, or uses characters
            outside ``[A-Za-z0-9_-]``.
    """
    if not isinstance(name, str) or not name.strip():
        raise InvalidNameError("Collection name cannot be empty")
    if len(name) > MAX_NAME_LENGTH:
        raise InvalidNameError(f"Collection name exceeds {MAX_NAME_LENGTH} characters")
    if not _COLLECTION_NAME.match(name):
        raise InvalidNameError(f'"{name}" is not a valid Collection name')
    return name


def validate_image_id(image_id: object) -> str:
    """Ensure an image id is a hyphenated UUID v4."""
    if not isinstance(image_id, str) or not _IMAGE_ID.match(image_id):
        raise InvalidIdentifierError(IMAGE_ID_MESSAGE)
    return image_id.lower()


def split_filename(filename: str) -> tuple[str, str]:
    """Return the stem and lower-cased extension (without dot) of a filename."""
    base = PurePath(filename.replace("\\", "/")).name
    path = PurePath(base)
    suffix = path.suffix
    stem = base[: len(base) - len(suffix)] if suffix else base
    return stem, suffix.lstrip(".").lower()


def validate_image_filename(filename: object, max_length: int = MAX_NAME_LENGTH) -> str:
    """Validate an uploaded filename and return its stem.

    Args:
        filename: Original filename supplied by the caller.
        max_length: Maximum permitted stem length.

    Returns:
        str: Filename stem used as the image's display name.

    Raises:
        InvalidNameError: If the stem is empty, too long, or unsafe.
    """
    if not isinstance(filename, str) or not filename.strip():
        raise InvalidNameError("Unsafe or invalid filename")
    stem, _ = split_filename(filename)
    if len(stem) > max_length:
        raise InvalidNameError(f"Filename exceeds {max_length} characters")
    if not stem or not _FILENAME_STEM.match(stem):
        raise InvalidNameError("Unsafe or invalid filename")
    return stem


def validate_archive_name(name: object) -> str:
    """Validate an archive name and return it without a ``.zip`` suffix."""
    if not isinstance(name, str):
        raise InvalidArchiveNameError()
    candidate = name[:-4] if name.lower().endswith(".zip") else name
    if not candidate or len(candidate) > MAX_NAME_LENGTH:
        raise InvalidArchiveNameError()
    if not _ARCHIVE_NAME.match(candidate):
        raise InvalidArchiveNameError()
    return candidate


__all__ = [
    "MAX_NAME_LENGTH",
    "COLLECTION_ID_MESSAGE",
    "IMAGE_ID_MESSAGE",
    "validate_collection_id",
    "validate_collection_name",
    "validate_image_id",
    "validate_image_filename",
    "validate_archive_name",
    "split_filename",
]
