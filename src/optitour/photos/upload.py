"""Photo upload session for one tour point."""

import asyncio
import logging
from collections.abc import Callable, Sequence

import httpx

from optitour.logging import log_photo_status
from optitour.photos.compression import CompressionOptions, compress_photos, make_preview
from optitour.photos.models import PhotoFile, PhotoItem, PhotoStatus
from optitour.store.base import make_id
from optitour.sync.client import ApiClient

logger = logging.getLogger(__name__)


class PhotoUploadSession:
    """In-memory photo list for one (tour, point) pair with concurrent uploads.

    Every photo runs its own state machine: pending -> uploading -> done,
    or uploading -> error. An errored photo goes back to uploading only
    through `retry_photo`. Uploads run concurrently, each as its own task,
    and every list update is keyed by photo id, so a photo removed while
    its request is in flight is simply not updated when the answer arrives.

    Example:
        session = PhotoUploadSession("t1", "p1", api)
        session.subscribe(lambda s: render(s.photos))
        await session.add_photos([PhotoFile.from_path("door.jpg")])
        await session.wait()
    """

    def __init__(
        self,
        tour_id: str,
        point_id: str,
        api: ApiClient,
        compression: CompressionOptions | None = None,
        compress: bool = True,
    ) -> None:
        """Initialize the session.

        Args:
            tour_id: Tour the photos belong to
            point_id: Point the photos belong to
            api: Backend client used for uploads
            compression: Compression bounds, defaults to CompressionOptions()
            compress: Set to False to upload files untouched
        """
        self.tour_id = tour_id
        self.point_id = point_id
        self._api = api
        self._compression = compression or CompressionOptions()
        self._compress = compress

        self._photos: list[PhotoItem] = []
        self._in_flight: set[str] = set()
        self._tasks: set[asyncio.Task] = set()
        self._subscribers: list[Callable[["PhotoUploadSession"], None]] = []

    @property
    def photos(self) -> list[PhotoItem]:
        """Snapshot of the photo list in insertion order."""
        return list(self._photos)

    @property
    def is_uploading(self) -> bool:
        return any(
            p.status in (PhotoStatus.PENDING, PhotoStatus.UPLOADING) for p in self._photos
        )

    def get(self, photo_id: str) -> PhotoItem | None:
        for photo in self._photos:
            if photo.id == photo_id:
                return photo
        return None

    def subscribe(self, callback: Callable[["PhotoUploadSession"], None]) -> Callable[[], None]:
        """Register a callback called after every change to the photo list.

        Returns:
            A function that removes the callback again
        """
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def _notify(self) -> None:
        for callback in list(self._subscribers):
            try:
                callback(self)
            except Exception:
                logger.exception("Photo session subscriber failed")

    def _update(self, photo_id: str, **changes) -> PhotoItem | None:
        photo = self.get(photo_id)
        if photo is None:
            return None
        for name, value in changes.items():
            setattr(photo, name, value)
        self._notify()
        return photo

    def _set_status(self, photo_id: str, status: PhotoStatus, **changes) -> PhotoItem | None:
        photo = self.get(photo_id)
        if photo is None:
            logger.debug("Ignoring update for removed photo: photo_id=%s", photo_id)
            return None
        old_status = photo.status
        self._update(photo_id, status=status, **changes)
        log_photo_status(logger, photo_id, old_status.value, status.value, changes.get("error"))
        return photo

    async def add_photos(self, files: Sequence[PhotoFile]) -> list[PhotoItem]:
        """Add photos and start uploading each one.

        Compression is best-effort: a photo that cannot be compressed is
        uploaded as-is. Returns once the previews exist and every upload has
        been started, not when they finish.

        Returns:
            The new photo items, in input order
        """
        if not files:
            return []

        if self._compress:
            prepared = await compress_photos(list(files), self._compression)
        else:
            prepared = list(files)

        new_photos = [
            PhotoItem(
                id=f"{make_id('upload')}-{index}",
                file=file,
                preview=make_preview(file),
                filename=file.filename,
            )
            for index, file in enumerate(prepared)
        ]
        self._photos.extend(new_photos)
        self._notify()

        for photo in new_photos:
            self._start_upload(photo)

        logger.info(
            "Photos uploading: count=%d, tour_id=%s, point_id=%s",
            len(new_photos),
            self.tour_id,
            self.point_id,
        )
        return new_photos

    def _start_upload(self, photo: PhotoItem) -> asyncio.Task:
        task = asyncio.create_task(self.upload_single_photo(photo))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def upload_single_photo(self, photo: PhotoItem) -> None:
        """Upload one photo, tracking progress and the final state.

        Never raises: network failures and non-2xx answers end in the
        error state. Does nothing for photos without a file, photos no longer
        in the session, or photos that already have an upload in flight.
        """
        file = photo.file
        if file is None:
            return
        if photo.id in self._in_flight:
            logger.debug("Upload already in flight: photo_id=%s", photo.id)
            return
        if self.get(photo.id) is None:
            return

        self._in_flight.add(photo.id)
        try:
            self._set_status(photo.id, PhotoStatus.UPLOADING, progress=0, error=None)

            def on_progress(sent: int, total: int) -> None:
                self._report_progress(photo.id, sent, total)

            try:
                response = await self._api.upload_point_photos(
                    self.tour_id,
                    self.point_id,
                    [file.as_upload()],
                    on_progress=on_progress,
                )
            except httpx.HTTPError as e:
                self._set_status(photo.id, PhotoStatus.ERROR, error=f"Network error: {e}")
                return

            if not response.is_success:
                self._set_status(
                    photo.id,
                    PhotoStatus.ERROR,
                    error=f"Upload failed: {response.status_code}",
                )
                return

            self._complete(photo.id, response)
        finally:
            self._in_flight.discard(photo.id)

    def _report_progress(self, photo_id: str, sent: int, total: int) -> None:
        photo = self.get(photo_id)
        if photo is None or photo.status != PhotoStatus.UPLOADING:
            return
        percent = min(100, round(sent * 100 / total))
        # Progress never goes backwards within one attempt
        if percent > photo.progress:
            self._update(photo_id, progress=percent)

    def _complete(self, photo_id: str, response: httpx.Response) -> None:
        photo = self.get(photo_id)
        if photo is None:
            logger.debug("Ignoring upload result for removed photo: photo_id=%s", photo_id)
            return

        try:
            body = response.json()
        except ValueError:
            logger.warning("Upload answer is not JSON: photo_id=%s", photo_id)
            self._set_status(photo_id, PhotoStatus.DONE, progress=100, file=None)
            return

        data = body.get("data") if isinstance(body, dict) else None
        server_photo = data[0] if isinstance(data, list) and data else data
        path = server_photo.get("path") if isinstance(server_photo, dict) else None
        self._set_status(
            photo_id,
            PhotoStatus.DONE,
            progress=100,
            server_path=path or photo.preview,
            file=None,
        )

    def remove_photo(self, photo_id: str) -> None:
        """Drop a photo from the list whatever its state.

        An upload in flight is not cancelled; its result is ignored.
        """
        remaining = [p for p in self._photos if p.id != photo_id]
        if len(remaining) == len(self._photos):
            return
        self._photos = remaining
        self._notify()

    def retry_photo(self, photo_id: str) -> bool:
        """Upload an errored photo again.

        Returns:
            True if a new attempt was started
        """
        photo = self.get(photo_id)
        if photo is None or photo.status != PhotoStatus.ERROR or photo.file is None:
            return False
        self._start_upload(photo)
        return True

    async def wait(self) -> None:
        """Wait until every upload started so far has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))
