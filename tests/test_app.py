"""Tests for the field client wiring."""

import json

import httpx
import pytest

from optitour.app import FieldClient
from optitour.config import Settings
from optitour.store.offline import OFFLINE_QUEUE_KEY, QueueItemType


@pytest.fixture
def settings(tmp_path):
    return Settings(_env_file=None, data_dir=tmp_path, api_url="http://booth.test/api")


def offline_transport():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("offline", request=request)

    return httpx.MockTransport(handler)


class TestFieldClient:
    """Test status reporting across the wired components."""

    @pytest.mark.asyncio
    async def test_status_counts_every_queue_type(self, settings):
        """Each queue type is reported, including empty ones."""
        async with FieldClient(settings, transport=offline_transport()) as client:
            client.queue.enqueue("gps-position", {})
            client.queue.enqueue("gps-position", {})
            client.queue.enqueue("point-completion", {"tourneeId": "t", "pointId": "p"})
            client.notifications.add_notification("info", "Hello", "")

            status = client.get_status()

        assert status["queue"] == {
            QueueItemType.GPS_POSITION.value: 2,
            QueueItemType.PHOTO_UPLOAD.value: 0,
            QueueItemType.POINT_COMPLETION.value: 1,
        }
        assert status["queue_total"] == 3
        assert status["queue_unreadable"] == 0
        assert status["unread_notifications"] == 1
        assert status["authenticated"] is False

    @pytest.mark.asyncio
    async def test_status_reports_unreadable_entries(self, settings):
        """Entries a client cannot parse are counted, not hidden."""
        async with FieldClient(settings, transport=offline_transport()) as client:
            client.storage.set_item(
                OFFLINE_QUEUE_KEY,
                json.dumps({"state": {"queue": [{"type": "signature-capture"}]}, "version": 0}),
            )

        async with FieldClient(settings, transport=offline_transport()) as client:
            status = client.get_status()

        assert status["queue_total"] == 0
        assert status["queue_unreadable"] == 1

    @pytest.mark.asyncio
    async def test_actions_queue_while_offline(self, settings):
        """A failed GPS ping lands in the persisted queue."""
        async with FieldClient(settings, transport=offline_transport()) as client:
            assert await client.actions.send_gps_position({"latitude": 1.0}) is False

        async with FieldClient(settings, transport=offline_transport()) as client:
            [item] = client.queue.items

        assert item.type == QueueItemType.GPS_POSITION
