"""Field actions sent online first, queued for replay when that fails."""

import logging
import mimetypes
from pathlib import Path
from typing import Any

import httpx

from optitour.store.offline import OfflineQueue, QueueItemType
from optitour.sync.client import ApiClient

logger = logging.getLogger(__name__)


class FieldActions:
    """Driver-side side effects with an offline fallback.

    Each action tries the backend once. On a network error or a non-2xx
    answer the action is captured in the offline queue instead, and the
    optional sync worker is woken so the replay starts as soon as possible.
    """

    def __init__(self, api: ApiClient, queue: OfflineQueue, worker: Any | None = None) -> None:
        """Initialize field actions.

        Args:
            api: Backend client
            queue: Offline queue receiving failed actions
            worker: Optional SyncWorker to wake after queuing
        """
        self._api = api
        self._queue = queue
        self._worker = worker

    def _queued(self, item_type: QueueItemType, payload: dict[str, Any]) -> bool:
        self._queue.enqueue(item_type, payload)
        if self._worker is not None:
            self._worker.request_sync()
        return False

    async def send_gps_position(self, position: dict[str, Any]) -> bool:
        """Send a GPS ping, queueing it if the backend is unreachable.

        Returns:
            True if sent, False if queued
        """
        try:
            await self._api.post_gps_position(position)
            return True
        except httpx.HTTPError as e:
            logger.debug("GPS ping deferred: %s", e)
            return self._queued(QueueItemType.GPS_POSITION, position)

    async def complete_point(self, tour_id: str, point_id: str, data: dict[str, Any]) -> bool:
        """Mark a tour point completed, queueing the update on failure.

        Returns:
            True if sent, False if queued
        """
        try:
            await self._api.patch_point(tour_id, point_id, data)
            return True
        except httpx.HTTPError as e:
            logger.debug("Point completion deferred: point_id=%s, error=%s", point_id, e)
            return self._queued(
                QueueItemType.POINT_COMPLETION,
                {"tourneeId": tour_id, "pointId": point_id, "data": data},
            )

    def queue_photo_upload(self, tour_id: str, point_id: str, paths: list[Path]) -> bool:
        """Queue photos stored on disk for a later upload.

        Returns:
            Always False, the upload happens on replay
        """
        files = [
            {
                "path": str(Path(p).resolve()),
                "filename": Path(p).name,
                "contentType": mimetypes.guess_type(str(p))[0] or "image/jpeg",
            }
            for p in paths
        ]
        return self._queued(
            QueueItemType.PHOTO_UPLOAD,
            {"tourneeId": tour_id, "pointId": point_id, "files": files},
        )
