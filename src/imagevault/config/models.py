"""Configuration models describing Image Vault settings."""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class ImageVaultBaseModel(BaseModel):
    """Shared configuration for Image Vault Pydantic models."""

    model_config = ConfigDict(extra="forbid")


class StorageSettings(ImageVaultBaseModel):
    """Where collections live on disk.

    Attributes:
        collections_dir: Directory holding one subdirectory per collection.
        index_filename: Name of the metadata index file inside each collection.
    """

    collections_dir: str = "~/.imagevault/collections"
    index_filename: str = "collection.json"

    @property
    def collections_path(self) -> Path:
        return Path(self.collections_dir).expanduser()


class ImageSettings(ImageVaultBaseModel):
    """Rules applied when images are added.

    Attributes:
        reject_duplicates: Refuse bytes whose hash already exists in the collection.
        max_filename_length: Maximum length of an uploaded filename stem.
    """

    reject_duplicates: bool = False
    max_filename_length: int = Field(default=256, ge=1, le=256)


class ThumbnailSettings(ImageVaultBaseModel):
    """Thumbnail generation options.

    Attributes:
        max_dimension: Bounding box edge, in pixels, for generated thumbnails.
        quality: JPEG quality used when encoding thumbnails.
    """

    max_dimension: int = Field(default=300, ge=16, le=4096)
    quality: int = Field(default=80, ge=1, le=95)


class ExportSettings(ImageVaultBaseModel):
    """Archive export options.

    Attributes:
        compression: ZIP entry compression; images are usually already compressed.
        spool_max_size_mb: Archive size kept in memory before spilling to disk.
        chunk_size_kb: Chunk size used when streaming archives to callers.
    """

    compression: Literal["stored", "deflated"] = "stored"
    spool_max_size_mb: int = Field(default=32, ge=1)
    chunk_size_kb: int = Field(default=64, ge=1)


class LoggingSettings(ImageVaultBaseModel):
    """Runtime logging configuration.

    Attributes:
        level: Logging verbosity level.
        max_size_mb: Maximum log size before rotation.
        backup_count: Number of historical log files to retain.
    """

    level: str = "WARNING"
    max_size_mb: int = 100
    backup_count: int = 5


class CLIOptions(ImageVaultBaseModel):
    """CLI presentation defaults.

    Attributes:
        page_size: Default number of images listed by ``images list``.
    """

    page_size: int = Field(default=50, ge=1, le=1000)


class ImageVaultConfig(ImageVaultBaseModel):
    """Top-level configuration struct for Image Vault.

    Attributes:
        storage: Collection storage location.
        images: Image acceptance rules.
        thumbnails: Thumbnail generation settings.
        export: Archive export settings.
        logging: Logging configuration.
        cli: CLI presentation defaults.
    """

    storage: StorageSettings = Field(default_factory=StorageSettings)
    images: ImageSettings = Field(default_factory=ImageSettings)
    thumbnails: ThumbnailSettings = Field(default_factory=ThumbnailSettings)
    export: ExportSettings = Field(default_factory=ExportSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    cli: CLIOptions = Field(default_factory=CLIOptions)


__all__ = [
    "ImageVaultBaseModel",
    "StorageSettings",
    "ImageSettings",
    "ThumbnailSettings",
    "ExportSettings",
    "LoggingSettings",
    "CLIOptions",
    "ImageVaultConfig",
]
