"""Persisted FIFO queue of side-effecting actions captured while offline."""

import json
import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any

from optitour.logging import log_queue_enqueued
from optitour.store.base import PersistedStore, make_id, now_ms

logger = logging.getLogger(__name__)

OFFLINE_QUEUE_KEY = "optitour-offline-queue"
DEAD_LETTER_KEY = "optitour-offline-dead-letter"


class QueueItemType(str, Enum):
    """Tag selecting how a queued action is replayed."""

    GPS_POSITION = "gps-position"
    PHOTO_UPLOAD = "photo-upload"
    POINT_COMPLETION = "point-completion"


@dataclass(frozen=True)
class QueueItem:
    """An action waiting to reach the backend."""

    id: str
    type: QueueItemType
    payload: dict[str, Any] = field(default_factory=dict)
    retries: int = 0
    created_at: int = 0  # epoch milliseconds

    def to_dict(self) -> dict[str, Any]:
        """Serialize using the persisted camelCase layout."""
        return {
            "id": self.id,
            "type": self.type.value,
            "payload": self.payload,
            "retries": self.retries,
            "createdAt": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "QueueItem":
        """Parse a persisted item."""
        return cls(
            id=str(data["id"]),
            type=QueueItemType(data["type"]),
            payload=dict(data.get("payload") or {}),
            retries=int(data.get("retries", 0)),
            created_at=int(data.get("createdAt", 0)),
        )


class OfflineQueue(PersistedStore):
    """Ordered queue of pending actions, persisted after every mutation.

    Items keep insertion order and are never reordered. They leave the
    queue only through `remove` (success acknowledgment) or `clear`;
    failed replays only bump `retries`. Abandoning an item after too many
    retries is the replay driver's decision, not the queue's.
    """

    storage_key = OFFLINE_QUEUE_KEY

    def _load_state(self, state: dict[str, Any]) -> None:
        raw_items = state.get("queue", [])
        if not isinstance(raw_items, list):
            raise TypeError(f"queue must be a list, got {type(raw_items).__name__}")

        self._queue: list[QueueItem] = []
        # Entries this client cannot parse are persisted back as they were
        self._unreadable: list[Any] = []
        for raw in raw_items:
            try:
                self._queue.append(QueueItem.from_dict(raw))
            except (AttributeError, KeyError, TypeError, ValueError) as e:
                logger.warning(
                    "Keeping unreadable queue entry untouched: key=%s, error=%s",
                    self.storage_key,
                    e,
                )
                self._unreadable.append(raw)

    def _dump_state(self) -> dict[str, Any]:
        return {"queue": [item.to_dict() for item in self._queue] + self._unreadable}

    @property
    def unreadable(self) -> list[Any]:
        """Raw persisted entries that could not be parsed, never replayed."""
        return list(self._unreadable)

    @property
    def items(self) -> list[QueueItem]:
        """Snapshot of the queue in FIFO order."""
        return list(self._queue)

    def __len__(self) -> int:
        return len(self._queue)

    def get(self, item_id: str) -> QueueItem | None:
        """Return the item with `item_id`, or None."""
        for item in self._queue:
            if item.id == item_id:
                return item
        return None

    def enqueue(self, item_type: QueueItemType | str, payload: dict[str, Any]) -> None:
        """Append a new action with zero retries.

        Args:
            item_type: One of the QueueItemType tags
            payload: JSON-serializable data for the replay driver

        Raises:
            ValueError: If item_type is not a known tag or the payload
                cannot be stored as JSON
        """
        item_type = QueueItemType(item_type)
        try:
            json.dumps(payload)
        except (TypeError, ValueError) as e:
            raise ValueError(f"payload is not JSON-serializable: {e}") from e

        item = QueueItem(
            id=make_id(item_type.value),
            type=item_type,
            payload=dict(payload),
            retries=0,
            created_at=now_ms(),
        )
        self._queue.append(item)
        self._commit()
        log_queue_enqueued(logger, item.id, item_type.value, len(self._queue))

    def remove(self, item_id: str) -> None:
        """Remove the item with `item_id`; absent ids are ignored."""
        remaining = [item for item in self._queue if item.id != item_id]
        if len(remaining) == len(self._queue):
            logger.debug("Remove ignored, item not queued: item_id=%s", item_id)
            return
        self._queue = remaining
        self._commit()

    def increment_retries(self, item_id: str) -> None:
        """Bump the retry counter of `item_id`; absent ids are ignored."""
        for index, item in enumerate(self._queue):
            if item.id == item_id:
                self._queue[index] = replace(item, retries=item.retries + 1)
                self._commit()
                return
        logger.debug("Retry bump ignored, item not queued: item_id=%s", item_id)

    def clear(self) -> None:
        """Empty the queue unconditionally, unreadable entries included."""
        self._queue = []
        self._unreadable = []
        self._commit()

    def list_by_type(self, item_type: QueueItemType | str) -> list[QueueItem]:
        """Return the items of `item_type` in insertion order."""
        item_type = QueueItemType(item_type)
        return [item for item in self._queue if item.type == item_type]


class DeadLetterQueue(OfflineQueue):
    """Items the replay driver gave up on, kept for inspection."""

    storage_key = DEAD_LETTER_KEY

    def add(self, item: QueueItem) -> None:
        """Append an existing item, keeping its id and retry count."""
        self._queue.append(item)
        self._commit()
