"""Background worker that replays the offline queue when the backend is reachable."""

import asyncio
import logging
from typing import Any

from optitour.store.offline import OfflineQueue
from optitour.sync.client import ApiClient
from optitour.sync.replay import QueueReplayer

logger = logging.getLogger(__name__)


class SyncWorker:
    """Connectivity driver for the offline queue.

    Probes the backend health endpoint on a fixed interval and runs a replay
    pass whenever the backend is reachable and the queue is not empty. Coming
    back online triggers a pass after `online_delay`. `request_sync()` wakes
    the worker early, e.g. right after something was enqueued.

    Example:
        worker = SyncWorker(queue, api, replayer)
        worker.start()
        # ... run until stopped ...
        await worker.stop()
    """

    def __init__(
        self,
        queue: OfflineQueue,
        api: ApiClient,
        replayer: QueueReplayer,
        interval: float = 30.0,
        startup_delay: float = 2.0,
        online_delay: float = 1.0,
    ) -> None:
        self._queue = queue
        self._api = api
        self._replayer = replayer
        self.interval = interval
        self.startup_delay = startup_delay
        self.online_delay = online_delay

        self._wake = asyncio.Event()
        self._task: asyncio.Task | None = None
        self._online: bool | None = None
        self._passes = 0

    @property
    def online(self) -> bool | None:
        """Last observed connectivity, None before the first probe."""
        return self._online

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start the background loop on the running event loop."""
        if self.running:
            return
        self._task = asyncio.create_task(self._run())
        logger.info("Sync worker started: interval=%.1fs", self.interval)

    def request_sync(self) -> None:
        """Wake the worker for an immediate connectivity check and pass."""
        self._wake.set()

    async def run_once(self) -> bool:
        """Probe connectivity and replay the queue if online.

        Returns:
            True if a replay pass ran
        """
        online = await self._api.check_server()
        came_online = online and self._online is False
        if online != self._online:
            logger.info("Connectivity changed: online=%s", online)
        self._online = online

        if not online or len(self._queue) == 0:
            return False

        if came_online and self.online_delay > 0:
            await asyncio.sleep(self.online_delay)

        await self._replayer.process_queue()
        self._passes += 1
        return True

    async def _run(self) -> None:
        if self.startup_delay > 0:
            await asyncio.sleep(self.startup_delay)

        while True:
            self._wake.clear()
            try:
                await self.run_once()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error("Sync worker error: %s", e)

            try:
                await asyncio.wait_for(self._wake.wait(), timeout=self.interval)
            except asyncio.TimeoutError:
                pass

    async def stop(self) -> None:
        """Stop the background loop gracefully."""
        if self._task and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self._task = None
        logger.info("Sync worker stopped: passes=%d", self._passes)

    def get_status(self) -> dict[str, Any]:
        """Get current worker status."""
        return {
            "running": self.running,
            "online": self._online,
            "queue_size": len(self._queue),
            "passes": self._passes,
        }
