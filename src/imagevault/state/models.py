"""Metadata models persisted in each collection's index."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Literal, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from imagevault.errors import InvalidQueryError, InvalidStatusError

INDEX_VERSION = 1


class ImageStatus(str, Enum):
    """Lifecycle status of an image within its collection."""

    INBOX = "INBOX"
    COLLECTION = "COLLECTION"
    ARCHIVE = "ARCHIVE"

    @classmethod
    def parse(cls, value: object) -> "ImageStatus":
        """Return the enum member for ``value``.

        Raises:
            InvalidStatusError: If the value is not one of the enum members.
        """
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError as exc:
            raise InvalidStatusError() from exc


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ImageRecord(BaseModel):
    """Metadata describing one image stored in a collection.

    Attributes:
        id: UUID v4 identifier assigned on creation.
        collection: Identifier of the owning collection.
        name: Original filename stem.
        extension: Normalized file extension without the dot.
        mime: MIME type of the original bytes.
        size: Size of the original in bytes.
        hash: SHA-256 hex digest of the original bytes.
        width: Pixel width of the original.
        height: Pixel height of the original.
        aspect: Width divided by height.
        status: Current lifecycle status.
        created: Creation timestamp; never changes.
        updated: Timestamp of the last metadata-changing mutation.
        sequence: Per-collection insertion counter used to break timestamp ties.
        has_thumbnail: Whether a thumbnail was generated for the image.
    """

    model_config = ConfigDict(extra="forbid")

    id: str
    collection: str
    name: str
    extension: Literal["jpg", "png", "webp"]
    mime: Literal["image/jpeg", "image/png", "image/webp"]
    size: int = Field(ge=0)
    hash: str
    width: int = Field(gt=0)
    height: int = Field(gt=0)
    aspect: float
    status: ImageStatus = ImageStatus.INBOX
    created: datetime
    updated: datetime
    sequence: int = Field(default=0, ge=0)
    has_thumbnail: bool = False

    @property
    def filename(self) -> str:
        """Suggested download filename, ``<name>.<extension>``."""
        return f"{self.name}.{self.extension}"


class CollectionIndex(BaseModel):
    """On-disk document holding every image record of a collection."""

    model_config = ConfigDict(extra="forbid")

    version: int = INDEX_VERSION
    collection: str
    created_at: datetime = Field(default_factory=utcnow)
    next_sequence: int = 1
    images: Dict[str, ImageRecord] = Field(default_factory=dict)


class ImageQuery(BaseModel):
    """Filter, ordering, and pagination options for listing images.

    Attributes:
        status: Optional status filter.
        order_by: Timestamp used for ordering.
        order_direction: ``ASC`` or ``DESC``.
        limit: Maximum number of records (1-1000), unlimited when omitted.
        offset: Number of records to skip.
    """

    model_config = ConfigDict(extra="forbid")

    status: Optional[ImageStatus] = None
    order_by: Literal["created", "updated"] = "updated"
    order_direction: Literal["ASC", "DESC"] = "DESC"
    limit: Optional[int] = Field(default=None, ge=1, le=1000)
    offset: int = Field(default=0, ge=0)

    def __init__(self, **values: Any) -> None:
        try:
            super().__init__(**values)
        except ValidationError as exc:
            raise InvalidQueryError(_describe(exc)) from exc

    @classmethod
    def build(cls, **values: Any) -> "ImageQuery":
        """Validate keyword values into a query.

        Raises:
            InvalidQueryError: If any value is outside its allowed range.
        """
        return cls(**values)

    @classmethod
    def from_params(cls, params: Mapping[str, Optional[str]]) -> "ImageQuery":
        """Parse string parameters as received from a query string or CLI.

        Accepts ``orderBy``/``order_by`` as well as the ``created_at`` and
        ``updated_at`` aliases for the ordering field.
        """
        values: dict[str, Any] = {}
        status = params.get("status")
        if status is not None:
            if status not in ImageStatus.__members__:
                raise InvalidQueryError(
                    "Invalid status parameter: must be one of INBOX, COLLECTION, ARCHIVE"
                )
            values["status"] = status
        for key, aliases in (
            ("limit", ("limit",)),
            ("offset", ("offset",)),
            ("order_by", ("orderBy", "order_by")),
            ("order_direction", ("orderDirection", "order_direction")),
        ):
            raw = next((params[a] for a in aliases if params.get(a) is not None), None)
            if raw is None:
                continue
            if key in {"limit", "offset"}:
                try:
                    values[key] = int(str(raw), 10)
                except ValueError as exc:
                    raise InvalidQueryError(f"Invalid {key} parameter: must be a number") from exc
            elif key == "order_by":
                values[key] = {"created_at": "created", "updated_at": "updated"}.get(raw, raw)
            else:
                values[key] = raw
        return cls.build(**values)


def _describe(exc: ValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid query"
    first = errors[0]
    field = ".".join(str(part) for part in first.get("loc", ())) or "query"
    return f"Invalid {field} parameter: {first.get('msg', 'invalid value')}"


__all__ = [
    "INDEX_VERSION",
    "ImageStatus",
    "ImageRecord",
    "CollectionIndex",
    "ImageQuery",
    "utcnow",
]
