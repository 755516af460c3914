"""Status transition engine tests."""

from __future__ import annotations

import uuid
from datetime import timedelta
from pathlib import Path
from typing import Callable

import pytest

from imagevault.collections import CollectionManager
from imagevault.errors import (
    CollectionNotFoundError,
    ImageNotFoundError,
    InvalidIdentifierError,
    InvalidStatusError,
    StoreCorruptedError,
)
from imagevault.state import JsonMetadataStore
from imagevault.state.faults import FaultInjectingStore
from imagevault.state.models import ImageStatus
from imagevault.status import StatusTransitionEngine

ImageFactory = Callable[..., bytes]


@pytest.fixture
def engine(manager: CollectionManager) -> StatusTransitionEngine:
    return StatusTransitionEngine(manager)


@pytest.mark.parametrize("status", ["INBOX", "COLLECTION", "ARCHIVE"])
def test_update_status_accepts_every_state(
    manager: CollectionManager,
    engine: StatusTransitionEngine,
    make_image: ImageFactory,
    status: str,
) -> None:
    record = manager.create("album").add_image(make_image(), "a.jpg")

    updated = engine.update_status("album", record.id, status)

    assert updated.status is ImageStatus(status)
    assert manager.get_image("album", record.id).status is ImageStatus(status)


@pytest.mark.parametrize("status", ["inbox", "DELETED", "", None, 3])
def test_update_status_rejects_unknown_states(
    manager: CollectionManager,
    engine: StatusTransitionEngine,
    make_image: ImageFactory,
    status: object,
) -> None:
    record = manager.create("album").add_image(make_image(), "a.jpg")

    with pytest.raises(InvalidStatusError):
        engine.update_status("album", record.id, status)

    assert manager.get_image("album", record.id).status is ImageStatus.INBOX


def test_update_status_bumps_updated_only_on_change(
    manager: CollectionManager,
    engine: StatusTransitionEngine,
    make_image: ImageFactory,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    record = manager.create("album").add_image(make_image(), "a.jpg")
    later = record.updated + timedelta(minutes=5)
    monkeypatch.setattr("imagevault.status.engine.utcnow", lambda: later)

    same = engine.update_status("album", record.id, ImageStatus.INBOX)
    assert same == record

    changed = engine.update_status("album", record.id, ImageStatus.COLLECTION)
    assert changed.updated == later
    assert changed.created == record.created
    assert changed.sequence == record.sequence

    back = engine.update_status("album", record.id, "INBOX")
    assert back.status is ImageStatus.INBOX


def test_update_status_error_cases(
    manager: CollectionManager, engine: StatusTransitionEngine
) -> None:
    manager.create("album")

    with pytest.raises(CollectionNotFoundError):
        engine.update_status("missing", str(uuid.uuid4()), "ARCHIVE")
    with pytest.raises(InvalidIdentifierError):
        engine.update_status("album", "not-a-uuid", "ARCHIVE")
    with pytest.raises(ImageNotFoundError):
        engine.update_status("album", str(uuid.uuid4()), "ARCHIVE")


def test_batch_update_isolates_failures(
    manager: CollectionManager, engine: StatusTransitionEngine, make_image: ImageFactory
) -> None:
    collection = manager.create("album")
    first = collection.add_image(make_image(), "a.jpg")
    second = collection.add_image(make_image(), "b.jpg")
    missing = str(uuid.uuid4())

    result = engine.batch_update_status(
        "album", [first.id, missing, "bad-id", second.id, first.id], "ARCHIVE"
    )

    assert [item.image_id for item in result.items] == [first.id, missing, "bad-id", second.id]
    assert [item.ok for item in result.items] == [True, False, False, True]
    assert isinstance(result.items[1].error, ImageNotFoundError)
    assert isinstance(result.items[2].error, InvalidIdentifierError)
    assert result.summary == "2 of 4 succeeded"
    assert collection.get_image(first.id).status is ImageStatus.ARCHIVE
    assert collection.get_image(second.id).status is ImageStatus.ARCHIVE

    payload = result.to_payload()
    assert payload["succeeded"] == 2
    assert payload["failed"] == 2
    assert payload["results"][1]["error"] == {"code": "not_found", "message": "Image not found"}


def test_batch_update_on_empty_collection_reports_not_found(
    manager: CollectionManager, engine: StatusTransitionEngine
) -> None:
    manager.create("album")
    image_id = str(uuid.uuid4())

    result = engine.batch_update_status("album", [image_id], "COLLECTION")

    assert result.total == 1
    assert isinstance(result.items[0].error, ImageNotFoundError)
    assert result.summary == "0 of 1 succeeded"


def test_batch_update_validates_status_and_collection_up_front(
    manager: CollectionManager, engine: StatusTransitionEngine
) -> None:
    manager.create("album")

    with pytest.raises(InvalidStatusError):
        engine.batch_update_status("album", [str(uuid.uuid4())], "TRASH")
    with pytest.raises(CollectionNotFoundError):
        engine.batch_update_status("missing", [str(uuid.uuid4())], "ARCHIVE")


def test_batch_update_reports_store_failures_per_item(
    collections_root: Path, make_image: ImageFactory
) -> None:
    stores: dict[str, FaultInjectingStore] = {}

    def _factory(directory: Path, collection_id: str) -> FaultInjectingStore:
        stores[collection_id] = FaultInjectingStore(JsonMetadataStore(directory, collection_id))
        return stores[collection_id]

    manager = CollectionManager(collections_root, store_factory=_factory)
    collection = manager.create("album")
    first = collection.add_image(make_image(), "a.jpg")
    second = collection.add_image(make_image(), "b.jpg")
    stores["album"].fail_on("update", times=1)

    result = StatusTransitionEngine(manager).batch_update_status(
        "album", [first.id, second.id], "COLLECTION"
    )

    assert isinstance(result.items[0].error, StoreCorruptedError)
    assert result.items[0].error.message == "Internal error"
    assert result.items[1].ok
    assert result.items[1].image is not None
    assert result.items[1].image.status is ImageStatus.COLLECTION
