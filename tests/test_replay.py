"""Tests for offline queue replay and field actions."""

import json

import httpx
import pytest

from optitour.store.offline import DeadLetterQueue, OfflineQueue, QueueItemType
from optitour.sync.actions import FieldActions
from optitour.sync.policy import RetryPolicy
from optitour.sync.replay import QueueReplayer


class RecordingSleep:
    """Stand-in for asyncio.sleep that records requested delays."""

    def __init__(self):
        self.delays = []

    async def __call__(self, delay):
        self.delays.append(delay)


class TestRetryPolicy:
    """Test backoff and exhaustion rules."""

    def test_backoff_doubles_and_caps(self):
        """No wait on the first attempt, then 2s, 4s, 8s, 16s, 16s."""
        policy = RetryPolicy()
        assert [policy.backoff(r) for r in range(6)] == [0.0, 2.0, 4.0, 8.0, 16.0, 16.0]

    def test_exhausted_at_max_retries(self):
        """Five failed attempts exhaust the default policy."""
        policy = RetryPolicy()
        assert not policy.exhausted(4)
        assert policy.exhausted(5)


class TestReplay:
    """Test one replay pass over the queue."""

    @pytest.mark.asyncio
    async def test_success_acknowledges_in_fifo_order(self, storage, api_factory):
        """Every item is sent once, oldest first, then removed."""
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append((request.method, request.url.path))
            return httpx.Response(200, json={"ok": True})

        queue = OfflineQueue(storage)
        queue.enqueue("gps-position", {"latitude": 1.0, "longitude": 2.0})
        queue.enqueue(
            "point-completion",
            {"tourneeId": "t1", "pointId": "p1", "data": {"status": "termine"}},
        )

        async with api_factory(handler) as api:
            report = await QueueReplayer(queue, api, sleep=RecordingSleep()).process_queue()

        assert report.sent == 2
        assert len(queue) == 0
        assert seen == [
            ("POST", "/api/gps/position"),
            ("PATCH", "/api/tournees/t1/points/p1"),
        ]

    @pytest.mark.asyncio
    async def test_point_completion_sends_data_body(self, storage, api_factory):
        """The queued `data` object becomes the PATCH body."""
        bodies = []

        def handler(request: httpx.Request) -> httpx.Response:
            bodies.append(json.loads(request.content))
            return httpx.Response(200, json={})

        queue = OfflineQueue(storage)
        queue.enqueue(
            "point-completion",
            {"tourneeId": "t1", "pointId": "p9", "data": {"status": "termine", "signature": "x"}},
        )

        async with api_factory(handler) as api:
            await QueueReplayer(queue, api).process_queue()

        assert bodies == [{"status": "termine", "signature": "x"}]

    @pytest.mark.asyncio
    async def test_failure_increments_retries_and_keeps_item(self, storage, api_factory):
        """A failed replay leaves the item queued with one more retry."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(503)

        queue = OfflineQueue(storage)
        queue.enqueue("gps-position", {"latitude": 1.0})

        async with api_factory(handler) as api:
            report = await QueueReplayer(queue, api, sleep=RecordingSleep()).process_queue()

        assert report.failed == 1
        [item] = queue.items
        assert item.retries == 1

    @pytest.mark.asyncio
    async def test_network_error_counts_as_failure(self, storage, api_factory):
        """Connection errors are handled like error statuses."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("unreachable", request=request)

        queue = OfflineQueue(storage)
        queue.enqueue("gps-position", {})

        async with api_factory(handler) as api:
            report = await QueueReplayer(queue, api).process_queue()

        assert report.failed == 1
        assert queue.items[0].retries == 1

    @pytest.mark.asyncio
    async def test_backoff_applied_before_retry(self, storage, api_factory):
        """Attempts after failures wait 2s, 4s, 8s, 16s."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500)

        queue = OfflineQueue(storage)
        queue.enqueue("gps-position", {})
        sleep = RecordingSleep()

        async with api_factory(handler) as api:
            replayer = QueueReplayer(queue, api, sleep=sleep)
            for _ in range(5):
                await replayer.process_queue()

        assert sleep.delays == [2.0, 4.0, 8.0, 16.0]
        assert queue.items[0].retries == 5

    @pytest.mark.asyncio
    async def test_exhausted_item_moves_to_dead_letters(self, storage, api_factory):
        """After max retries the item leaves the live queue but is kept."""
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(500)

        queue = OfflineQueue(storage)
        dead = DeadLetterQueue(storage)
        queue.enqueue("point-completion", {"tourneeId": "t", "pointId": "p", "data": {}})

        async with api_factory(handler) as api:
            replayer = QueueReplayer(
                queue, api, RetryPolicy(max_retries=2), dead, sleep=RecordingSleep()
            )
            await replayer.process_queue()
            await replayer.process_queue()
            report = await replayer.process_queue()

        assert len(requests) == 2
        assert report.dead_lettered == 1
        assert len(queue) == 0
        [kept] = dead.items
        assert kept.type == QueueItemType.POINT_COMPLETION
        assert kept.retries == 2

    @pytest.mark.asyncio
    async def test_exhausted_item_kept_without_dead_letters(self, storage, api_factory):
        """Without a dead-letter queue nothing is silently dropped."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500)

        queue = OfflineQueue(storage)
        queue.enqueue("gps-position", {})
        item_id = queue.items[0].id
        for _ in range(5):
            queue.increment_retries(item_id)

        async with api_factory(handler) as api:
            report = await QueueReplayer(queue, api).process_queue()

        assert report.skipped == 1
        assert queue.get(item_id).retries == 5

    @pytest.mark.asyncio
    async def test_coalesced_gps_sends_newest_only(self, storage, api_factory):
        """Older GPS pings are acknowledged once the newest one is accepted."""
        sent = []

        def handler(request: httpx.Request) -> httpx.Response:
            sent.append(json.loads(request.content))
            return httpx.Response(200, json={})

        queue = OfflineQueue(storage)
        for n in range(4):
            queue.enqueue("gps-position", {"n": n})

        async with api_factory(handler) as api:
            report = await QueueReplayer(queue, api, coalesce_gps=True).process_queue()

        assert sent == [{"n": 3}]
        assert report.sent == 1
        assert report.superseded == 3
        assert len(queue) == 0

    @pytest.mark.asyncio
    async def test_coalesced_gps_kept_when_newest_fails(self, storage, api_factory):
        """If the newest ping fails the older ones stay queued."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500)

        queue = OfflineQueue(storage)
        for n in range(3):
            queue.enqueue("gps-position", {"n": n})

        async with api_factory(handler) as api:
            await QueueReplayer(queue, api, coalesce_gps=True).process_queue()

        assert [i.payload["n"] for i in queue.items] == [0, 1, 2]
        assert [i.retries for i in queue.items] == [0, 0, 1]

    @pytest.mark.asyncio
    async def test_photo_upload_reads_queued_files(self, storage, api_factory, tmp_path, jpeg_factory):
        """Queued photo paths are read and posted as `photos` fields."""
        uploads = []

        def handler(request: httpx.Request) -> httpx.Response:
            uploads.append((request.url.path, request.headers["content-type"], request.content))
            return httpx.Response(201, json={"data": [{"path": "/uploads/a.jpg"}]})

        photo = tmp_path / "door.jpg"
        photo.write_bytes(jpeg_factory())
        queue = OfflineQueue(storage)

        async with api_factory(handler) as api:
            FieldActions(api, queue).queue_photo_upload("t1", "p1", [photo])
            report = await QueueReplayer(queue, api).process_queue()

        assert report.sent == 1
        [(path, content_type, body)] = uploads
        assert path == "/api/tournees/t1/points/p1/photos"
        assert content_type.startswith("multipart/form-data")
        assert b'name="photos"; filename="door.jpg"' in body

    @pytest.mark.asyncio
    async def test_photo_upload_missing_file_fails(self, storage, api_factory, tmp_path):
        """A vanished photo file counts as a failed attempt."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(201, json={})

        queue = OfflineQueue(storage)
        queue.enqueue(
            "photo-upload",
            {"tourneeId": "t1", "pointId": "p1", "files": [{"path": str(tmp_path / "gone.jpg")}]},
        )

        async with api_factory(handler) as api:
            report = await QueueReplayer(queue, api).process_queue()

        assert report.failed == 1
        assert queue.items[0].retries == 1

    @pytest.mark.asyncio
    async def test_items_enqueued_during_pass_wait(self, storage, api_factory):
        """The pass works on a snapshot taken when it starts."""
        queue = OfflineQueue(storage)

        def handler(request: httpx.Request) -> httpx.Response:
            if len(queue) < 3:
                queue.enqueue("gps-position", {"late": True})
            return httpx.Response(200, json={})

        queue.enqueue("gps-position", {"late": False})

        async with api_factory(handler) as api:
            report = await QueueReplayer(queue, api).process_queue()

        assert report.sent == 1
        assert [i.payload for i in queue.items] == [{"late": True}]


class TestFieldActions:
    """Test online-first actions with queue fallback."""

    @pytest.mark.asyncio
    async def test_gps_sent_when_online(self, storage, api_factory):
        """A successful ping is not queued."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={})

        queue = OfflineQueue(storage)
        async with api_factory(handler) as api:
            assert await FieldActions(api, queue).send_gps_position({"latitude": 1.0}) is True
        assert len(queue) == 0

    @pytest.mark.asyncio
    async def test_gps_queued_when_offline(self, storage, api_factory):
        """A failed ping is queued and wakes the worker."""

        class Worker:
            woken = 0

            def request_sync(self):
                self.woken += 1

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("offline", request=request)

        queue = OfflineQueue(storage)
        worker = Worker()
        async with api_factory(handler) as api:
            actions = FieldActions(api, queue, worker=worker)
            assert await actions.send_gps_position({"latitude": 1.0}) is False

        [item] = queue.items
        assert item.type == QueueItemType.GPS_POSITION
        assert item.payload == {"latitude": 1.0}
        assert worker.woken == 1

    @pytest.mark.asyncio
    async def test_point_completion_queued_on_error_status(self, storage, api_factory):
        """A rejected completion is queued with its tour and point ids."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(502)

        queue = OfflineQueue(storage)
        async with api_factory(handler) as api:
            sent = await FieldActions(api, queue).complete_point("t1", "p1", {"status": "termine"})

        assert sent is False
        assert queue.items[0].payload == {
            "tourneeId": "t1",
            "pointId": "p1",
            "data": {"status": "termine"},
        }
