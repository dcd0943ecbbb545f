"""Field client wiring storage, stores, backend access and sync together."""

import logging
from typing import Any

import httpx

from optitour.config import Settings
from optitour.photos import PhotoUploadSession
from optitour.storage import LocalStorage
from optitour.store import (
    AuthStore,
    DeadLetterQueue,
    NotificationStore,
    OfflineQueue,
    QueueItemType,
)
from optitour.sync import ApiClient, FieldActions, QueueReplayer, SyncWorker

logger = logging.getLogger(__name__)


class FieldClient:
    """High-level entry point for the driver device.

    Owns the local storage and every persisted store, the backend client,
    the queue replayer and the background sync worker. The CLI and any UI
    shell build one of these and use its components.

    Example:
        async with FieldClient(settings) as client:
            client.start_sync()
            await client.actions.send_gps_position(position)
    """

    def __init__(
        self,
        config: Settings,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the field client.

        Args:
            config: Settings instance with all configuration
            transport: Optional HTTP transport override
        """
        self.config = config

        self.storage = LocalStorage(config.storage_path)
        self.queue = OfflineQueue(self.storage)
        self.dead_letters = DeadLetterQueue(self.storage)
        self.notifications = NotificationStore(self.storage)
        self.auth = AuthStore(self.storage, offline_queue=self.queue)

        self.api = ApiClient(
            config.api_url,
            self.storage,
            timeout=config.request_timeout,
            transport=transport,
        )
        self.replayer = QueueReplayer(
            self.queue,
            self.api,
            policy=config.retry_policy(),
            dead_letters=self.dead_letters,
            coalesce_gps=config.replay_coalesce_gps,
        )
        self.worker = SyncWorker(
            self.queue,
            self.api,
            self.replayer,
            interval=config.sync_interval,
            startup_delay=config.sync_startup_delay,
            online_delay=config.sync_online_delay,
        )
        self.actions = FieldActions(self.api, self.queue, worker=self.worker)

    def photo_session(self, tour_id: str, point_id: str) -> PhotoUploadSession:
        """Create an upload session for one tour point."""
        return PhotoUploadSession(
            tour_id,
            point_id,
            self.api,
            compression=self.config.compression_options(),
        )

    def start_sync(self) -> None:
        """Start the background sync worker."""
        self.worker.start()

    def get_status(self) -> dict[str, Any]:
        """Get queue, notification and sync status."""
        return {
            "queue": {
                item_type.value: len(self.queue.list_by_type(item_type))
                for item_type in QueueItemType
            },
            "queue_total": len(self.queue),
            "queue_unreadable": len(self.queue.unreadable),
            "dead_letters": len(self.dead_letters),
            "unread_notifications": self.notifications.unread_count(),
            "authenticated": self.auth.is_authenticated,
            "sync": self.worker.get_status(),
            "data_dir": str(self.config.data_path),
        }

    async def close(self) -> None:
        """Stop the worker and release resources."""
        await self.worker.stop()
        await self.api.close()
        self.storage.close()
        logger.debug("Field client closed")

    async def __aenter__(self) -> "FieldClient":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()
