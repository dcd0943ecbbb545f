"""Base class for persisted, observable client state stores."""

import logging
import random
import string
import time
from typing import Any, Callable

from optitour.storage import LocalStorage

logger = logging.getLogger(__name__)

STORE_VERSION = 0

_ID_ALPHABET = string.digits + string.ascii_lowercase


def now_ms() -> int:
    """Return the current time as epoch milliseconds."""
    return int(time.time() * 1000)


def make_id(prefix: str) -> str:
    """Build a `{prefix}-{epoch_ms}-{suffix}` identifier with a random base36 suffix."""
    suffix = "".join(random.choices(_ID_ALPHABET, k=5))
    return f"{prefix}-{now_ms()}-{suffix}"


class PersistedStore:
    """State container that persists itself and notifies subscribers.

    Subclasses keep their state in plain attributes, implement
    `_dump_state`/`_load_state`, and call `_commit()` at the end of every
    mutation. `_commit()` writes the whole state under `storage_key` and then
    calls every subscriber synchronously.

    Example:
        store = NotificationStore(storage)
        unsubscribe = store.subscribe(lambda s: print(s.unread_count()))
        store.add_notification("info", "Hello", "World")
        unsubscribe()
    """

    storage_key: str = ""

    def __init__(self, storage: LocalStorage) -> None:
        """Initialize the store and rehydrate it from storage.

        Args:
            storage: Blob storage the store persists into
        """
        self._storage = storage
        self._subscribers: list[Callable[[Any], None]] = []
        self._hydrate()

    def subscribe(self, callback: Callable[[Any], None]) -> Callable[[], None]:
        """Register a callback called with the store after every mutation.

        Args:
            callback: Function called with this store instance

        Returns:
            A function that removes the callback again
        """
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def _hydrate(self) -> None:
        """Load persisted state, falling back to empty state."""
        blob = self._storage.load_json(self.storage_key)
        state = blob.get("state") if isinstance(blob, dict) else None
        if blob is not None and not isinstance(state, dict):
            logger.warning("Ignoring malformed persisted state: key=%s", self.storage_key)
            state = None
        try:
            self._load_state(state or {})
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(
                "Ignoring invalid persisted state: key=%s, error=%s", self.storage_key, e
            )
            self._load_state({})

    def _commit(self) -> None:
        """Persist the whole state, then notify subscribers."""
        self._storage.save_json(
            self.storage_key,
            {"state": self._dump_state(), "version": STORE_VERSION},
        )
        for callback in list(self._subscribers):
            try:
                callback(self)
            except Exception:
                logger.exception("Store subscriber failed: key=%s", self.storage_key)

    def _dump_state(self) -> dict[str, Any]:
        raise NotImplementedError

    def _load_state(self, state: dict[str, Any]) -> None:
        raise NotImplementedError
