"""Sequential photo ingestion queue.

``QueueState`` owns the ordered entries and is only mutated through
``QueueState.apply``, which validates every status change against
``ALLOWED_TRANSITIONS``. ``IngestionQueue`` wraps it with a single drain loop
that submits pending photos one at a time, in insertion order.
"""

import asyncio
import contextlib
import itertools
import logging
import time
from collections import Counter
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from typing import Protocol

from box_tracker.domain.analysis import AnalyzedItem
from box_tracker.domain.errors import InvalidTransitionError
from box_tracker.domain.queue import (
    ALLOWED_TRANSITIONS,
    AppendPhoto,
    ClearQueue,
    CompletePhoto,
    FailPhoto,
    PhotoStatus,
    QueueCommand,
    QueuedPhoto,
    RemovePhoto,
    StartProcessing,
)

logger = logging.getLogger(__name__)

QueueListener = Callable[[tuple[QueuedPhoto, ...]], None]


class PhotoAnalyzer(Protocol):
    """Anything that can turn an encoded photo into an analyzed item."""

    async def analyze(self, photo: str, context: str | None = None) -> AnalyzedItem:
        """Describe the main item in an encoded photo."""


class QueueState:
    """Ordered queue entries with a single mutation entry point."""

    def __init__(self) -> None:
        self._entries: dict[str, QueuedPhoto] = {}

    def apply(self, command: QueueCommand) -> QueuedPhoto | None:
        """Apply a command and return the affected entry, if any."""
        if isinstance(command, AppendPhoto):
            if command.photo_id in self._entries:
                raise InvalidTransitionError(f"Duplicate photo id {command.photo_id}")
            entry = QueuedPhoto(id=command.photo_id, photo=command.photo)
            self._entries[entry.id] = entry
            return entry
        if isinstance(command, RemovePhoto):
            return self._entries.pop(command.photo_id, None)
        if isinstance(command, ClearQueue):
            self._entries.clear()
            return None
        if isinstance(command, StartProcessing):
            return self._transition(command.photo_id, PhotoStatus.PROCESSING)
        if isinstance(command, CompletePhoto):
            return self._transition(
                command.photo_id, PhotoStatus.COMPLETED, result=command.result
            )
        if isinstance(command, FailPhoto):
            return self._transition(
                command.photo_id, PhotoStatus.FAILED, error=command.error
            )
        raise TypeError(f"Unknown queue command: {command!r}")

    def get(self, photo_id: str) -> QueuedPhoto | None:
        """Return an entry by id, if present."""
        return self._entries.get(photo_id)

    def next_pending(self) -> QueuedPhoto | None:
        """Return the oldest pending entry."""
        for entry in self._entries.values():
            if entry.status is PhotoStatus.PENDING:
                return entry
        return None

    def snapshot(self) -> tuple[QueuedPhoto, ...]:
        """Return entries in insertion order."""
        return tuple(self._entries.values())

    def _transition(
        self,
        photo_id: str,
        status: PhotoStatus,
        result: AnalyzedItem | None = None,
        error: str | None = None,
    ) -> QueuedPhoto | None:
        current = self._entries.get(photo_id)
        if current is None:
            return None
        if status not in ALLOWED_TRANSITIONS[current.status]:
            raise InvalidTransitionError(
                f"Photo {photo_id} cannot move from {current.status} to {status}"
            )
        updated = replace(current, status=status, result=result, error=error)
        self._entries[photo_id] = updated
        return updated


@dataclass
class IngestionQueue:
    """Queue that analyzes captured photos strictly one at a time."""

    analyzer: PhotoAnalyzer
    context: str | None = None
    _state: QueueState = field(default_factory=QueueState, init=False)
    _lock: asyncio.Lock = field(default_factory=asyncio.Lock, init=False)
    _drain_task: asyncio.Task | None = field(default=None, init=False)
    _listeners: list[QueueListener] = field(default_factory=list, init=False)
    _sequence: itertools.count = field(default_factory=itertools.count, init=False)

    def enqueue(self, photo: str) -> str:
        """Append a pending photo and start draining if idle."""
        photo_id = self._next_id()
        self._apply(AppendPhoto(photo_id=photo_id, photo=photo))
        logger.info("Photo %s queued for analysis", photo_id)
        self._schedule_drain()
        return photo_id

    def remove(self, photo_id: str) -> None:
        """Delete an entry in any state."""
        self._apply(RemovePhoto(photo_id))

    def retry(self, photo_id: str) -> QueuedPhoto | None:
        """Discard a failed entry so the caller can capture a new photo."""
        entry = self._state.get(photo_id)
        if entry is None:
            return None
        if entry.status is not PhotoStatus.FAILED:
            raise InvalidTransitionError(
                f"Only failed photos can be retried, {photo_id} is {entry.status}"
            )
        return self._apply(RemovePhoto(photo_id))

    def clear(self) -> None:
        """Discard every entry."""
        self._apply(ClearQueue())

    def snapshot(self) -> tuple[QueuedPhoto, ...]:
        """Return a read-only ordered view of the queue."""
        return self._state.snapshot()

    def counts(self) -> dict[PhotoStatus, int]:
        """Return the number of entries per status."""
        tally = Counter(entry.status for entry in self._state.snapshot())
        return {status: tally.get(status, 0) for status in PhotoStatus}

    @property
    def is_draining(self) -> bool:
        """Whether a drain pass is currently running."""
        return self._lock.locked()

    def subscribe(self, listener: QueueListener) -> Callable[[], None]:
        """Register a change listener and return a callable that removes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def drain(self) -> None:
        """Process pending entries in order until none remain.

        Returns immediately when another drain pass is active.
        """
        if self._lock.locked():
            logger.debug("Drain already in progress, skipping")
            return
        async with self._lock:
            while (entry := self._state.next_pending()) is not None:
                await self._process(entry)
        logger.debug("Drain finished")

    async def join(self) -> None:
        """Wait until the scheduled drain task has finished."""
        while self._drain_task is not None and not self._drain_task.done():
            await self._drain_task

    async def shutdown(self) -> None:
        """Cancel the drain task and wait for it to unwind.

        An entry whose analysis is interrupted stays ``processing``.
        """
        task, self._drain_task = self._drain_task, None
        if task is None or task.done():
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

    async def _process(self, entry: QueuedPhoto) -> None:
        self._apply(StartProcessing(entry.id))
        try:
            result = await self.analyzer.analyze(entry.photo, self.context)
        except Exception as exc:  # noqa: BLE001
            message = str(exc) or type(exc).__name__
            logger.warning("Analysis failed for photo %s: %s", entry.id, message)
            self._apply(FailPhoto(entry.id, error=message))
            return
        logger.info("Analyzed photo %s as %s", entry.id, result.name)
        self._apply(CompletePhoto(entry.id, result=result))

    def _schedule_drain(self) -> None:
        if self._drain_task is not None and not self._drain_task.done():
            return
        self._drain_task = asyncio.get_running_loop().create_task(self.drain())

    def _apply(self, command: QueueCommand) -> QueuedPhoto | None:
        entry = self._state.apply(command)
        snapshot = self._state.snapshot()
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.exception("Queue listener failed")
        return entry

    def _next_id(self) -> str:
        return f"{time.monotonic_ns():020d}{next(self._sequence):06d}"
