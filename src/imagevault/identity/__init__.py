"""Identity helpers: identifier validation and content hashing."""

from .hashing import HashComputer, compute_content_hash
from .validation import (
    MAX_NAME_LENGTH,
    split_filename,
    validate_archive_name,
    validate_collection_id,
    validate_collection_name,
    validate_image_filename,
    validate_image_id,
)

__all__ = [
    "HashComputer",
    "compute_content_hash",
    "MAX_NAME_LENGTH",
    "split_filename",
    "validate_archive_name",
    "validate_collection_id",
    "validate_collection_name",
    "validate_image_filename",
    "validate_image_id",
]
