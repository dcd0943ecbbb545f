"""Shared fixtures for the field client tests."""

import json
from io import BytesIO

import httpx
import pytest
from PIL import Image

from optitour.storage import LocalStorage
from optitour.store.auth import AUTH_KEY
from optitour.sync.client import ApiClient

API_URL = "http://booth.test/api"


@pytest.fixture
def storage(tmp_path):
    """Blob storage in a temporary directory."""
    store = LocalStorage(tmp_path / "storage.db")
    yield store
    store.close()


@pytest.fixture
def logged_in(storage):
    """Persist an auth blob the way the login flow does."""
    storage.set_item(
        AUTH_KEY,
        json.dumps({"state": {"token": "tok-123", "user": {"id": "u1"}}, "version": 0}),
    )
    return "tok-123"


@pytest.fixture
def api_factory(storage):
    """Build ApiClients whose requests are answered by a handler."""

    def _make(handler) -> ApiClient:
        return ApiClient(API_URL, storage, transport=httpx.MockTransport(handler))

    return _make


@pytest.fixture
def jpeg_factory():
    """Encode a solid-color test image as JPEG bytes."""

    def _make(size=(64, 48), color="red") -> bytes:
        buffer = BytesIO()
        Image.new("RGB", size, color=color).save(buffer, format="JPEG", quality=90)
        return buffer.getvalue()

    return _make
