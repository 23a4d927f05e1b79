"""Domain models for the photo ingestion queue."""

from dataclasses import dataclass
from enum import StrEnum

from box_tracker.domain.analysis import AnalyzedItem


class PhotoStatus(StrEnum):
    """Lifecycle states of a queued photo."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


ALLOWED_TRANSITIONS: dict[PhotoStatus, frozenset[PhotoStatus]] = {
    PhotoStatus.PENDING: frozenset({PhotoStatus.PROCESSING}),
    PhotoStatus.PROCESSING: frozenset({PhotoStatus.COMPLETED, PhotoStatus.FAILED}),
    PhotoStatus.COMPLETED: frozenset(),
    PhotoStatus.FAILED: frozenset(),
}


@dataclass(frozen=True)
class QueuedPhoto:
    """A captured photo awaiting or undergoing analysis."""

    id: str
    photo: str
    status: PhotoStatus = PhotoStatus.PENDING
    result: AnalyzedItem | None = None
    error: str | None = None

    def __post_init__(self) -> None:
        if (self.result is not None) != (self.status is PhotoStatus.COMPLETED):
            raise ValueError("result must be set exactly when status is completed")
        if (self.error is not None) != (self.status is PhotoStatus.FAILED):
            raise ValueError("error must be set exactly when status is failed")


@dataclass(frozen=True)
class AppendPhoto:
    """Append a new pending entry."""

    photo_id: str
    photo: str


@dataclass(frozen=True)
class StartProcessing:
    """Move a pending entry to processing."""

    photo_id: str


@dataclass(frozen=True)
class CompletePhoto:
    """Attach an analysis result to a processing entry."""

    photo_id: str
    result: AnalyzedItem


@dataclass(frozen=True)
class FailPhoto:
    """Record an error on a processing entry."""

    photo_id: str
    error: str


@dataclass(frozen=True)
class RemovePhoto:
    """Delete an entry in any state."""

    photo_id: str


@dataclass(frozen=True)
class ClearQueue:
    """Delete every entry."""


QueueCommand = (
    AppendPhoto | StartProcessing | CompletePhoto | FailPhoto | RemovePhoto | ClearQueue
)
