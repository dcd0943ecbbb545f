"""Async HTTP client for the OptiTour backend API."""

import logging
from collections.abc import AsyncIterator, Callable
from typing import Any

import httpx

from optitour import __version__
from optitour.storage import LocalStorage
from optitour.store.auth import read_auth_token

logger = logging.getLogger(__name__)

# Upload body is re-chunked so progress is reported at this granularity
UPLOAD_CHUNK_SIZE = 64 * 1024

ProgressCallback = Callable[[int, int], None]


class ApiClient:
    """Async client for the backend endpoints the field client talks to.

    Uses httpx.AsyncClient for connection pooling. The bearer token is read
    from the persisted auth blob on every request, so a login or logout takes
    effect without rebuilding the client. Without a token the request is sent
    unauthenticated.
    """

    def __init__(
        self,
        api_url: str,
        storage: LocalStorage,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            api_url: Base URL of the backend API (e.g., http://localhost:3000/api)
            storage: Local storage holding the persisted auth blob
            timeout: Request timeout in seconds
            transport: Optional transport override (tests use httpx.MockTransport)
        """
        self.api_url = api_url.rstrip("/")
        self._storage = storage
        self._client = httpx.AsyncClient(
            base_url=self.api_url,
            timeout=httpx.Timeout(timeout),
            headers={"User-Agent": f"optitour-client/{__version__}"},
            transport=transport,
        )

    def _auth_headers(self) -> dict[str, str]:
        token = read_auth_token(self._storage)
        if not token:
            return {}
        return {"Authorization": f"Bearer {token}"}

    async def post_gps_position(self, position: dict[str, Any]) -> httpx.Response:
        """Send a GPS position ping.

        Raises:
            httpx.HTTPError: On network failure or non-2xx status
        """
        response = await self._client.post(
            "/gps/position", json=position, headers=self._auth_headers()
        )
        response.raise_for_status()
        return response

    async def patch_point(
        self, tour_id: str, point_id: str, data: dict[str, Any]
    ) -> httpx.Response:
        """Update a tour point, e.g. to mark it completed.

        Raises:
            httpx.HTTPError: On network failure or non-2xx status
        """
        response = await self._client.patch(
            f"/tournees/{tour_id}/points/{point_id}",
            json=data,
            headers=self._auth_headers(),
        )
        response.raise_for_status()
        return response

    async def upload_point_photos(
        self,
        tour_id: str,
        point_id: str,
        files: list[tuple[str, bytes, str]],
        on_progress: ProgressCallback | None = None,
    ) -> httpx.Response:
        """Upload photos for a tour point as one multipart request.

        Args:
            tour_id: Tour identifier
            point_id: Point identifier
            files: (filename, content, content_type) per photo, each sent
                as a `photos` field
            on_progress: Called with (bytes_sent, bytes_total) as the body
                is streamed

        Returns:
            The raw response; the status is not checked here.

        Raises:
            httpx.HTTPError: On network failure
        """
        request = self._client.build_request(
            "POST",
            f"/tournees/{tour_id}/points/{point_id}/photos",
            files=[("photos", file) for file in files],
            headers=self._auth_headers(),
        )
        if on_progress is None:
            return await self._client.send(request)

        total = int(request.headers.get("Content-Length", 0))
        body = request.stream

        async def stream_with_progress() -> AsyncIterator[bytes]:
            sent = 0
            async for chunk in body:
                for start in range(0, len(chunk), UPLOAD_CHUNK_SIZE):
                    piece = chunk[start : start + UPLOAD_CHUNK_SIZE]
                    yield piece
                    sent += len(piece)
                    if total:
                        on_progress(sent, total)

        progress_request = httpx.Request(
            "POST",
            request.url,
            headers=request.headers,
            content=stream_with_progress(),
            extensions=request.extensions,
        )
        return await self._client.send(progress_request)

    async def check_server(self) -> bool:
        """Check if the backend is reachable.

        Returns:
            True if the health endpoint answers 200, False otherwise
        """
        try:
            response = await self._client.get("/health", timeout=httpx.Timeout(5.0))
            return response.status_code == 200
        except httpx.HTTPError:
            return False

    async def close(self) -> None:
        """Close the HTTP client and release resources."""
        await self._client.aclose()

    async def __aenter__(self) -> "ApiClient":
        """Enter async context manager."""
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        """Exit async context manager."""
        await self.close()
