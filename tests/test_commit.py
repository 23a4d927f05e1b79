"""Tests for committing analyzed photos into a box."""

import pytest

from box_tracker.domain.analysis import AnalyzedItem
from box_tracker.domain.errors import NothingToCommitError
from box_tracker.domain.queue import PhotoStatus, QueuedPhoto
from box_tracker.services.commit import CommitService
from box_tracker.services.inventory import InventoryService
from tests.conftest import InMemoryInventoryRepository


def _completed(photo_id: str, name: str) -> QueuedPhoto:
    return QueuedPhoto(
        id=photo_id,
        photo=f"data:image/jpeg;base64,{photo_id}",
        status=PhotoStatus.COMPLETED,
        result=AnalyzedItem(
            name=name,
            description=f"{name} description",
            category="Kitchen",
            photo=f"data:image/jpeg;base64,{photo_id}",
        ),
    )


def _mixed_entries() -> list[QueuedPhoto]:
    return [
        _completed("p1", "Kettle"),
        QueuedPhoto(id="p2", photo="x", status=PhotoStatus.FAILED, error="boom"),
        _completed("p3", "Toaster"),
        QueuedPhoto(id="p4", photo="y"),
        _completed("p5", "3 Coffee Mugs"),
    ]


def test_commit_creates_items_for_completed_entries_only(
    inventory_service: InventoryService,
    inventory_repository: InMemoryInventoryRepository,
) -> None:
    service = CommitService(inventory_service)

    result = service.commit("user-1", "box-1", _mixed_entries())

    assert result.count == 3
    assert result.failures == []
    assert [item.name for item in result.created] == [
        "Kettle",
        "Toaster",
        "3 Coffee Mugs",
    ]
    assert len(inventory_repository.items) == 3


def test_commit_maps_analysis_fields_onto_item(
    inventory_service: InventoryService,
) -> None:
    service = CommitService(inventory_service)

    result = service.commit("user-1", "box-1", [_completed("p1", "Kettle")])
    (item,) = result.created
    stored = inventory_service.get_item("box-1", item.id)

    assert stored == item
    assert item.box_id == "box-1"
    assert item.user_id == "user-1"
    assert item.notes == "Kettle description"
    assert item.category == "Kitchen"
    assert item.photo == "data:image/jpeg;base64,p1"


def test_commit_without_completed_entries_raises(
    inventory_service: InventoryService,
    inventory_repository: InMemoryInventoryRepository,
) -> None:
    service = CommitService(inventory_service)
    entries = [
        QueuedPhoto(id="p1", photo="x", status=PhotoStatus.FAILED, error="boom"),
        QueuedPhoto(id="p2", photo="y"),
    ]

    with pytest.raises(NothingToCommitError, match="No items were successfully"):
        service.commit("user-1", "box-1", entries)

    assert inventory_repository.calls == []


def test_commit_continues_past_store_failures(
    inventory_service: InventoryService,
    inventory_repository: InMemoryInventoryRepository,
) -> None:
    inventory_repository.failures["create_item"] = 3
    service = CommitService(inventory_service)

    result = service.commit(
        "user-1", "box-1", [_completed("p1", "Kettle"), _completed("p2", "Toaster")]
    )

    assert [item.name for item in result.created] == ["Toaster"]
    assert len(result.failures) == 1
    failure = result.failures[0]
    assert failure.photo_id == "p1"
    assert failure.name == "Kettle"
    assert "create_item" in failure.error
