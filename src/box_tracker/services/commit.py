"""Commit analyzed photos into a box as inventory items."""

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

from box_tracker.domain.errors import NothingToCommitError, StoreOperationError
from box_tracker.domain.inventory import Item
from box_tracker.domain.queue import PhotoStatus, QueuedPhoto
from box_tracker.services.inventory import InventoryService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CommitFailure:
    """A completed entry that could not be stored."""

    photo_id: str
    name: str
    error: str


@dataclass(frozen=True)
class CommitResult:
    """Outcome of a bulk commit."""

    created: list[Item] = field(default_factory=list)
    failures: list[CommitFailure] = field(default_factory=list)

    @property
    def count(self) -> int:
        """Number of items created."""
        return len(self.created)


@dataclass
class CommitService:
    """Best-effort bulk creation of items from completed queue entries."""

    inventory_service: InventoryService

    def commit(
        self, user_id: str, box_id: str, entries: Sequence[QueuedPhoto]
    ) -> CommitResult:
        """Create one item per completed entry, continuing past failures."""
        completed = [
            entry
            for entry in entries
            if entry.status is PhotoStatus.COMPLETED and entry.result is not None
        ]
        if not completed:
            raise NothingToCommitError("No items were successfully analyzed")

        result = CommitResult()
        for entry in completed:
            analyzed = entry.result
            try:
                item = self.inventory_service.create_item(
                    box_id,
                    user_id,
                    {
                        "name": analyzed.name,
                        "notes": analyzed.description,
                        "category": analyzed.category,
                        "photo": analyzed.photo,
                    },
                )
            except StoreOperationError as exc:
                logger.warning("Failed to commit photo %s: %s", entry.id, exc)
                result.failures.append(
                    CommitFailure(photo_id=entry.id, name=analyzed.name, error=str(exc))
                )
                continue
            result.created.append(item)
        logger.info(
            "Committed %s items to box %s (%s failed)",
            result.count,
            box_id,
            len(result.failures),
        )
        return result
