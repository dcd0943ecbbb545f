"""Replay driver that drains the offline queue against the backend."""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from pathlib import Path

import httpx

from optitour.logging import log_dead_lettered, log_replay_failed, log_replay_success
from optitour.store.offline import DeadLetterQueue, OfflineQueue, QueueItem, QueueItemType
from optitour.sync.client import ApiClient
from optitour.sync.policy import RetryPolicy

logger = logging.getLogger(__name__)


class ReplayError(Exception):
    """A queued item could not be turned into a request."""


@dataclass
class ReplayReport:
    """Outcome of one pass over the queue."""

    sent: int = 0
    failed: int = 0
    dead_lettered: int = 0
    superseded: int = 0
    skipped: int = 0

    def as_dict(self) -> dict[str, int]:
        return {
            "sent": self.sent,
            "failed": self.failed,
            "dead_lettered": self.dead_lettered,
            "superseded": self.superseded,
            "skipped": self.skipped,
        }


class QueueReplayer:
    """Replays queued actions in FIFO order with per-item backoff.

    A successful replay acknowledges the item (removes it). A failed one only
    bumps its retry count. Items that exhausted the retry policy go to the
    dead-letter queue when one is configured; otherwise they stay queued and
    are skipped.

    With `coalesce_gps`, only the newest GPS ping of a pass is sent; once it
    succeeds the older pings are acknowledged as superseded.

    Example:
        replayer = QueueReplayer(queue, api, settings.retry_policy(), dead_letters)
        report = await replayer.process_queue()
    """

    def __init__(
        self,
        queue: OfflineQueue,
        api: ApiClient,
        policy: RetryPolicy | None = None,
        dead_letters: DeadLetterQueue | None = None,
        coalesce_gps: bool = False,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._queue = queue
        self._api = api
        self._policy = policy or RetryPolicy()
        self._dead_letters = dead_letters
        self._coalesce_gps = coalesce_gps
        self._sleep = sleep
        self._lock = asyncio.Lock()

    @property
    def policy(self) -> RetryPolicy:
        return self._policy

    async def process_queue(self) -> ReplayReport:
        """Run one replay pass over a snapshot of the queue.

        Items enqueued during the pass are left for the next one. A pass
        requested while another is running returns an empty report.
        """
        report = ReplayReport()
        if self._lock.locked():
            logger.debug("Replay pass already running, skipping")
            return report

        async with self._lock:
            items = self._queue.items
            if not items:
                return report

            logger.info("Processing offline queue: items=%d", len(items))

            superseded: list[QueueItem] = []
            if self._coalesce_gps:
                gps_items = [i for i in items if i.type == QueueItemType.GPS_POSITION]
                superseded = gps_items[:-1]
                superseded_ids = {i.id for i in superseded}
                items = [i for i in items if i.id not in superseded_ids]

            for snapshot in items:
                # The item may have been acknowledged or cleared meanwhile
                item = self._queue.get(snapshot.id)
                if item is None:
                    continue

                if self._policy.exhausted(item.retries):
                    self._abandon(item, report)
                    continue

                delay = self._policy.backoff(item.retries)
                if delay > 0:
                    await self._sleep(delay)

                started = time.monotonic()
                try:
                    handled = await self._dispatch(item)
                except (httpx.HTTPError, ReplayError, KeyError) as e:
                    self._queue.increment_retries(item.id)
                    log_replay_failed(logger, item.id, str(e), item.retries + 1)
                    report.failed += 1
                    continue

                if not handled:
                    report.skipped += 1
                    continue

                self._queue.remove(item.id)
                report.sent += 1
                log_replay_success(
                    logger,
                    item.id,
                    item.type.value,
                    (time.monotonic() - started) * 1000,
                )

                if item.type == QueueItemType.GPS_POSITION and superseded:
                    for old in superseded:
                        self._queue.remove(old.id)
                    report.superseded += len(superseded)
                    logger.debug("Superseded GPS pings acknowledged: count=%d", len(superseded))
                    superseded = []

        logger.info("Offline queue pass done: %s", report.as_dict())
        return report

    def _abandon(self, item: QueueItem, report: ReplayReport) -> None:
        if self._dead_letters is None:
            logger.warning(
                "Item exhausted retries, keeping it queued: item_id=%s, retries=%d",
                item.id,
                item.retries,
            )
            report.skipped += 1
            return
        self._dead_letters.add(item)
        self._queue.remove(item.id)
        log_dead_lettered(logger, item.id, item.type.value, item.retries)
        report.dead_lettered += 1

    async def _dispatch(self, item: QueueItem) -> bool:
        """Send one item. Returns False for items this driver cannot handle."""
        payload = item.payload
        if item.type == QueueItemType.GPS_POSITION:
            await self._api.post_gps_position(payload)
            return True

        if item.type == QueueItemType.PHOTO_UPLOAD:
            files = [_read_queued_file(entry) for entry in payload.get("files", [])]
            if not files:
                raise ReplayError("photo upload has no files")
            response = await self._api.upload_point_photos(
                str(payload["tourneeId"]), str(payload["pointId"]), files
            )
            response.raise_for_status()
            return True

        if item.type == QueueItemType.POINT_COMPLETION:
            await self._api.patch_point(
                str(payload["tourneeId"]),
                str(payload["pointId"]),
                dict(payload.get("data") or {}),
            )
            return True

        logger.warning("Unknown queue item type: item_id=%s, type=%s", item.id, item.type)
        return False


def _read_queued_file(entry: dict) -> tuple[str, bytes, str]:
    path = Path(entry["path"])
    try:
        content = path.read_bytes()
    except OSError as e:
        raise ReplayError(f"cannot read queued photo {path}: {e}") from e
    return (
        entry.get("filename") or path.name,
        content,
        entry.get("contentType") or "image/jpeg",
    )
