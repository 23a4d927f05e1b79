"""Services for managing boxes, items and groups."""

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol, TypeVar

from box_tracker.domain.errors import NotFoundError, StoreOperationError
from box_tracker.domain.inventory import Box, Group, Item, ItemSearchResult

logger = logging.getLogger(__name__)

T = TypeVar("T")


class InventoryRepository(Protocol):
    """Persistence interface for boxes, items and groups."""

    def create_box(self, user_id: str, payload: dict[str, object]) -> Box:
        """Create a box and return it."""

    def get_box(self, box_id: str) -> Box | None:
        """Return a box by id, if present."""

    def list_boxes(self, user_id: str, group: str | None = None) -> list[Box]:
        """Return a user's boxes, newest first."""

    def update_box(self, box_id: str, updates: dict[str, object]) -> None:
        """Update box fields."""

    def delete_box(self, box_id: str) -> None:
        """Delete a box."""

    def create_item(
        self, box_id: str, user_id: str, payload: dict[str, object]
    ) -> Item:
        """Create an item inside a box and return it."""

    def get_item(self, box_id: str, item_id: str) -> Item | None:
        """Return an item by id, if present in the box."""

    def list_items(self, box_id: str) -> list[Item]:
        """Return a box's items, newest first."""

    def update_item(
        self, box_id: str, item_id: str, updates: dict[str, object]
    ) -> None:
        """Update item fields."""

    def delete_item(self, box_id: str, item_id: str) -> None:
        """Delete an item from a box."""

    def create_group(self, user_id: str, name: str) -> Group:
        """Create a group and return it."""

    def list_groups(self, user_id: str) -> list[Group]:
        """Return a user's groups ordered by name."""


@dataclass
class InventoryService:
    """Application service for inventory operations."""

    repository: InventoryRepository
    base_url: str
    max_attempts: int = 3
    retry_delay_seconds: float = 1.0
    sleep: Callable[[float], None] = time.sleep

    def create_box(self, user_id: str, payload: dict[str, object]) -> Box:
        """Create a box."""
        return self._run(
            "create_box", lambda: self.repository.create_box(user_id, payload)
        )

    def get_box(self, box_id: str) -> Box:
        """Return a box or raise ``NotFoundError``."""
        box = self._run("get_box", lambda: self.repository.get_box(box_id))
        if box is None:
            raise NotFoundError("Box not found")
        return box

    def list_boxes(self, user_id: str, group: str | None = None) -> list[Box]:
        """Return a user's boxes, optionally limited to one group."""
        return self._run(
            "list_boxes", lambda: self.repository.list_boxes(user_id, group)
        )

    def update_box(self, box_id: str, updates: dict[str, object]) -> Box:
        """Update a box and return the stored version."""
        self.get_box(box_id)
        self._run("update_box", lambda: self.repository.update_box(box_id, updates))
        return self.get_box(box_id)

    def delete_box(self, box_id: str) -> None:
        """Delete a box."""
        self._run("delete_box", lambda: self.repository.delete_box(box_id))

    def next_box_number(self, user_id: str) -> int:
        """Return one more than the highest box number in use."""
        boxes = self.list_boxes(user_id)
        return max((box.box_number for box in boxes), default=0) + 1

    def search_boxes(self, user_id: str, term: str) -> list[Box]:
        """Return boxes whose summary, category or notes contain ``term``."""
        needle = term.lower()
        return [
            box
            for box in self.list_boxes(user_id)
            if needle in box.summary.lower()
            or needle in box.category.lower()
            or (box.notes and needle in box.notes.lower())
        ]

    def create_item(
        self, box_id: str, user_id: str, payload: dict[str, object]
    ) -> Item:
        """Create an item inside a box."""
        return self._run(
            "create_item", lambda: self.repository.create_item(box_id, user_id, payload)
        )

    def get_item(self, box_id: str, item_id: str) -> Item:
        """Return an item or raise ``NotFoundError``."""
        item = self._run("get_item", lambda: self.repository.get_item(box_id, item_id))
        if item is None:
            raise NotFoundError("Item not found")
        return item

    def list_items(self, box_id: str) -> list[Item]:
        """Return a box's items."""
        return self._run("list_items", lambda: self.repository.list_items(box_id))

    def update_item(
        self, box_id: str, item_id: str, updates: dict[str, object]
    ) -> Item:
        """Update an item and return the stored version."""
        self.get_item(box_id, item_id)
        self._run(
            "update_item", lambda: self.repository.update_item(box_id, item_id, updates)
        )
        return self.get_item(box_id, item_id)

    def delete_item(self, box_id: str, item_id: str) -> None:
        """Delete an item."""
        self._run("delete_item", lambda: self.repository.delete_item(box_id, item_id))

    def move_item(self, from_box_id: str, to_box_id: str, item_id: str) -> Item:
        """Move an item so it ends up in exactly one of the two boxes.

        The copy is created in the target first; if removing the original
        fails, the copy is deleted again and the item stays in the source.
        """
        item = self.get_item(from_box_id, item_id)
        self.get_box(to_box_id)
        moved = self.create_item(to_box_id, item.user_id, _item_payload(item))
        try:
            self.delete_item(from_box_id, item_id)
        except StoreOperationError:
            logger.warning(
                "Rolling back move of item %s to box %s", item_id, to_box_id
            )
            self.delete_item(to_box_id, moved.id)
            raise
        logger.info("Moved item %s from box %s to %s", item_id, from_box_id, to_box_id)
        return moved

    def search_items(self, user_id: str, term: str) -> list[ItemSearchResult]:
        """Return items whose name or notes contain ``term`` across all boxes."""
        needle = term.lower()
        results: list[ItemSearchResult] = []
        for box in self.list_boxes(user_id):
            try:
                items = self.list_items(box.id)
            except StoreOperationError:
                logger.warning("Skipping items of box %s during search", box.id)
                continue
            results.extend(
                ItemSearchResult(item=item, box=box)
                for item in items
                if needle in item.name.lower()
                or (item.notes and needle in item.notes.lower())
            )
        return results

    def create_group(self, user_id: str, name: str) -> Group:
        """Create a packing group."""
        return self._run(
            "create_group", lambda: self.repository.create_group(user_id, name)
        )

    def list_groups(self, user_id: str) -> list[Group]:
        """Return a user's packing groups."""
        return self._run("list_groups", lambda: self.repository.list_groups(user_id))

    def box_url(self, box_id: str) -> str:
        """Return the deep link encoded into a box's QR code."""
        return f"{self.base_url.rstrip('/')}/box/{box_id}"

    def _run(self, operation: str, call: Callable[[], T]) -> T:
        """Run a store call, retrying with a linearly growing delay."""
        for attempt in range(1, self.max_attempts + 1):
            try:
                return call()
            except Exception as exc:
                logger.warning(
                    "Store operation %s attempt %s failed: %s", operation, attempt, exc
                )
                if attempt == self.max_attempts:
                    raise StoreOperationError(f"{operation} failed: {exc}") from exc
                self.sleep(self.retry_delay_seconds * attempt)
        raise StoreOperationError(f"{operation} failed")


def _item_payload(item: Item) -> dict[str, object]:
    return {
        "name": item.name,
        "notes": item.notes,
        "category": item.category,
        "photo": item.photo,
    }
