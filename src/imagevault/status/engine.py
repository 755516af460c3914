"""Image status transitions, single and batched."""

from __future__ import annotations

import logging
from typing import Iterable, Optional

from imagevault.collections import BatchItemResult, BatchResult, CollectionManager
from imagevault.errors import ImageVaultError, InternalError
from imagevault.identity import validate_image_id
from imagevault.state.models import ImageRecord, ImageStatus, utcnow

LOGGER = logging.getLogger(__name__)


def _transition(new_status: ImageStatus):
    def mutate(record: ImageRecord) -> Optional[ImageRecord]:
        if record.status == new_status:
            return None
        return record.model_copy(update={"status": new_status, "updated": utcnow()})

    return mutate


class StatusTransitionEngine:
    """Move images between INBOX, COLLECTION, and ARCHIVE.

    Every transition is allowed. Setting an image to the status it already has
    returns the stored record without touching ``updated``.
    """

    def __init__(self, manager: CollectionManager) -> None:
        self._manager = manager

    def update_status(self, collection_id: str, image_id: str, new_status: object) -> ImageRecord:
        """Set the status of one image.

        Args:
            collection_id: Collection holding the image.
            image_id: UUID v4 of the image.
            new_status: Target status, as an ``ImageStatus`` or its string value.

        Returns:
            ImageRecord: The full record after the transition.

        Raises:
            InvalidStatusError: If ``new_status`` is not a known status.
            InvalidIdentifierError: If either identifier is malformed.
            CollectionNotFoundError: If the collection does not exist.
            ImageNotFoundError: If the image does not exist.
        """
        status = ImageStatus.parse(new_status)
        image_id = validate_image_id(image_id)
        collection = self._manager.load(collection_id)
        record = collection.store.update(image_id, _transition(status))
        LOGGER.debug("Image %s in %s is now %s", image_id, collection_id, record.status.value)
        return record

    def batch_update_status(
        self,
        collection_id: str,
        image_ids: Iterable[str],
        new_status: object,
    ) -> BatchResult:
        """Set the status of several images, isolating per-image failures.

        The status and collection are checked once up front; those failures
        abort the whole batch. Repeated ids are processed once, in the order of
        their first occurrence.
        """
        status = ImageStatus.parse(new_status)
        collection = self._manager.load(collection_id)
        mutate = _transition(status)

        result = BatchResult()
        for image_id in dict.fromkeys(image_ids):
            try:
                record = collection.store.update(validate_image_id(image_id), mutate)
            except ImageVaultError as exc:
                result.items.append(BatchItemResult(image_id=image_id, error=exc))
            except Exception as exc:  # pragma: no cover
                LOGGER.exception("Unexpected failure updating status of %s", image_id)
                result.items.append(
                    BatchItemResult(image_id=image_id, error=InternalError(detail=str(exc)))
                )
            else:
                result.items.append(BatchItemResult(image_id=image_id, image=record))

        LOGGER.info(
            "Batch status update to %s in %s: %s", status.value, collection_id, result.summary
        )
        return result


__all__ = ["StatusTransitionEngine"]
