"""Error taxonomy shared by every Image Vault component.

Each error carries a stable, caller-facing ``message`` and a machine-readable
``code``. Diagnostic information that must not leak to callers is kept in
``detail`` and only written to the log.
"""

from __future__ import annotations

from typing import ClassVar, Optional


class ImageVaultError(Exception):
    """Base exception for collection engine operations."""

    default_message: ClassVar[str] = "Image Vault error"
    code: ClassVar[str] = "error"

    def __init__(self, message: Optional[str] = None, *, detail: Optional[str] = None) -> None:
        self.message = message or self.default_message
        self.detail = detail
        super().__init__(self.message)


class InvalidRequestError(ImageVaultError):
    """Raised for malformed input detected before touching storage."""

    default_message = "Invalid request"
    code = "validation_error"


class InvalidIdentifierError(InvalidRequestError):
    """Raised when a collection or image identifier is unsafe or malformed."""

    default_message = "Invalid identifier"
    code = "invalid_identifier"


class InvalidNameError(InvalidRequestError):
    """Raised when a collection name or image filename is not acceptable."""

    default_message = "Invalid name"
    code = "invalid_name"


class InvalidQueryError(InvalidRequestError):
    """Raised for invalid filter, ordering, or pagination values."""

    default_message = "Invalid query"
    code = "invalid_query"


class InvalidStatusError(InvalidRequestError):
    """Raised when a status value is outside the image status enum."""

    default_message = "Invalid status"
    code = "invalid_status"


class InvalidArchiveNameError(InvalidRequestError):
    """Raised when an archive name contains unsafe characters."""

    default_message = "Invalid archive name"
    code = "invalid_archive_name"


class EmptyRequestError(InvalidRequestError):
    """Raised when a batch request resolves to no image ids."""

    default_message = "imageIds array cannot be empty"
    code = "empty_request"


class UnsupportedMediaTypeError(ImageVaultError):
    """Raised when uploaded bytes are not a supported, decodable image."""

    default_message = "Unsupported media type"
    code = "unsupported_media_type"


class ConflictError(ImageVaultError):
    """Base class for uniqueness violations."""

    default_message = "Conflict"
    code = "conflict"


class DuplicateCollectionError(ConflictError):
    """Raised when creating a collection whose id already exists."""

    default_message = "Duplicate collection ID"


class DuplicateImageError(ConflictError):
    """Raised when duplicate rejection is enabled and the content already exists."""

    default_message = "Image already exists in Collection"


class NotFoundError(ImageVaultError):
    """Base class for missing resources."""

    default_message = "Not found"
    code = "not_found"


class CollectionNotFoundError(NotFoundError):
    """Raised when a collection does not exist."""

    default_message = "Collection not found"


class ImageNotFoundError(NotFoundError):
    """Raised when an image id does not resolve within a collection."""

    default_message = "Image not found"


class ThumbnailNotFoundError(NotFoundError):
    """Raised when an image exists but has no thumbnail."""

    default_message = "Thumbnail not found"


class InternalError(ImageVaultError):
    """Raised for unexpected storage or processing failures."""

    default_message = "Internal error"
    code = "internal_error"


class StoreCorruptedError(InternalError):
    """Raised when the metadata store cannot be read or written."""


__all__ = [
    "ImageVaultError",
    "InvalidRequestError",
    "InvalidIdentifierError",
    "InvalidNameError",
    "InvalidQueryError",
    "InvalidStatusError",
    "InvalidArchiveNameError",
    "EmptyRequestError",
    "UnsupportedMediaTypeError",
    "ConflictError",
    "DuplicateCollectionError",
    "DuplicateImageError",
    "NotFoundError",
    "CollectionNotFoundError",
    "ImageNotFoundError",
    "ThumbnailNotFoundError",
    "InternalError",
    "StoreCorruptedError",
]
